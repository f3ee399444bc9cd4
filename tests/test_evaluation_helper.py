import unittest

from mutation_watch.helpers.evaluation_helper import STRATEGY_FALLBACK, STRATEGY_INVENTORY, EvaluationHelper
from mutation_watch.helpers.garden_helper import GardenHelper
from mutation_watch.helpers.logging_helper import LoggingHelper
from mutation_watch.helpers.scan_helper import ScanHelper
from mutation_watch.helpers.slot_helper import SlotHelper
from mutation_watch.models import (
    ALL_WEATHERS,
    SLOT_SOURCE_FALLBACK,
    SLOT_SOURCE_GARDEN,
    SLOT_SOURCE_INVENTORY,
    PlantEntry,
    empty_bold_counts,
    empty_letter_counts,
)


def slot_plant(descriptors, fruit_count=None, source=SLOT_SOURCE_INVENTORY, name="Pepper Plant"):
    slots = [SlotHelper.compute_slot_state(d) for d in descriptors]
    return PlantEntry(
        name=name,
        fruit_count=len(slots) if fruit_count is None else fruit_count,
        slot_states=slots,
        slot_source=source,
        dom_mutation_counts=SlotHelper.letter_counts(slots),
        dom_bold_counts=SlotHelper.bold_counts(slots),
    )


def badge_plant(fruit_count, bold=None, **letters):
    counts = empty_letter_counts()
    counts.update(letters)
    bold_counts = empty_bold_counts()
    bold_counts.update(bold or {})
    return PlantEntry(
        name="Pepper Plant",
        fruit_count=fruit_count,
        slot_source=SLOT_SOURCE_FALLBACK,
        dom_mutation_counts=counts,
        dom_bold_counts=bold_counts,
    )


class SlotStrategyTests(unittest.TestCase):
    def setUp(self) -> None:
        self.helper = EvaluationHelper(LoggingHelper(None, 0))

    def test_rain_counts_the_untouched_slot(self) -> None:
        evaluation = self.helper.evaluate(slot_plant([["wet"], ["frozen"], []]), "rain")

        self.assertTrue(evaluation.decision)
        self.assertEqual(evaluation.pending_fruit, 1)
        self.assertEqual(evaluation.total_fruit, 3)
        self.assertEqual(evaluation.detail["strategy"], STRATEGY_INVENTORY)

    def test_snow_counts_wet_but_not_frozen_slots(self) -> None:
        evaluation = self.helper.evaluate(slot_plant([["wet"], ["frozen"], []]), "snow")

        self.assertTrue(evaluation.decision)
        self.assertEqual(evaluation.pending_fruit, 1)
        self.assertEqual(evaluation.needs_snow, 1)

    def test_opposite_lunar_slot_is_not_a_veto(self) -> None:
        plant = slot_plant([["dawnlit"], ["amberlit"]])

        dawn = self.helper.evaluate(plant, "dawn")
        amber = self.helper.evaluate(plant, "amber")

        self.assertEqual(dawn.pending_fruit, 0)
        self.assertFalse(dawn.decision)
        self.assertEqual(amber.pending_fruit, 0)
        self.assertFalse(amber.decision)

    def test_lunar_slot_leaves_free_slots_pending(self) -> None:
        plant = slot_plant([["dawnlit"], ["wet"], []])

        self.assertEqual(self.helper.evaluate(plant, "dawn").pending_fruit, 2)
        self.assertEqual(self.helper.evaluate(plant, "amber").pending_fruit, 2)

    def test_stage_progress_raises_total(self) -> None:
        plant = slot_plant([["wet 1/4"]], fruit_count=1)
        evaluation = self.helper.evaluate(plant, "rain")

        self.assertEqual(evaluation.total_fruit, 4)
        self.assertEqual(evaluation.pending_fruit, 3)

    def test_garden_source_uses_slot_strategy(self) -> None:
        evaluation = self.helper.evaluate(slot_plant([["frozen"], []], source=SLOT_SOURCE_GARDEN), "rain")
        self.assertEqual(evaluation.detail["strategy"], STRATEGY_INVENTORY)
        self.assertEqual(evaluation.pending_fruit, 1)

    def test_slots_without_any_signal_use_badges(self) -> None:
        plant = slot_plant([[], []])
        evaluation = self.helper.evaluate(plant, "rain")

        self.assertEqual(evaluation.detail["strategy"], STRATEGY_FALLBACK)
        self.assertEqual(evaluation.pending_fruit, 2)

    def test_inactive_weather_never_flags(self) -> None:
        plant = slot_plant([[], ["wet"]])
        for weather in ("sunny", "unknown", "hail"):
            evaluation = self.helper.evaluate(plant, weather)
            self.assertFalse(evaluation.decision)
            self.assertEqual(evaluation.pending_fruit, 0)


class BadgeStrategyTests(unittest.TestCase):
    def setUp(self) -> None:
        self.helper = EvaluationHelper(LoggingHelper(None, 0))

    def test_rain_pending_until_every_fruit_is_wet(self) -> None:
        self.assertEqual(self.helper.evaluate(badge_plant(5, W=1, F=1), "rain").pending_fruit, 3)

    def test_rain_counts_chilled_when_all_fruit_wet(self) -> None:
        self.assertEqual(self.helper.evaluate(badge_plant(3, W=2, F=1, C=2), "rain").pending_fruit, 1)

    def test_snow_needs_wet_without_frozen(self) -> None:
        evaluation = self.helper.evaluate(badge_plant(4, W=3, F=1), "snow")
        self.assertEqual(evaluation.pending_fruit, 2)
        self.assertEqual(evaluation.needs_snow, 2)

    def test_other_lunar_colour_vetoes_the_plant(self) -> None:
        self.assertEqual(self.helper.evaluate(badge_plant(3, A=1), "dawn").pending_fruit, 0)
        self.assertEqual(self.helper.evaluate(badge_plant(3, bold={"D": 1}), "amber").pending_fruit, 0)
        self.assertEqual(self.helper.evaluate(badge_plant(3, D=1), "dawn").pending_fruit, 2)

    def test_zero_fruit_is_never_flagged(self) -> None:
        evaluation = self.helper.evaluate(badge_plant(0), "rain")
        self.assertFalse(evaluation.decision)
        self.assertEqual(evaluation.total_fruit, 0)


class BoundFruitTests(unittest.TestCase):
    def setUp(self) -> None:
        self.logger = LoggingHelper(None, 0)
        self.helper = EvaluationHelper(self.logger)

    def test_bound_garden_fruit_counts_once(self) -> None:
        garden = {"tileObjects": {"1": {"objectType": "plant", "species": "Moonbinder",
                                        "slots": [{"mutations": ["Dawnbound"]}, {"mutations": []}]}}}
        plant = GardenHelper(SlotHelper(self.logger), self.logger).collect_plants(garden)[0]

        self.assertEqual(plant.dom_count("D"), 0)
        self.assertEqual(plant.dom_bold("D"), 1)

        evaluation = self.helper.evaluate(plant, "dawn")
        self.assertEqual(evaluation.detail["dawn_finished"], 1)
        self.assertEqual(evaluation.pending_fruit, 1)
        self.assertTrue(evaluation.decision)

    def test_bound_and_lit_on_one_fruit_counts_once(self) -> None:
        plant = slot_plant([["amberlit", "amberbound"], []])
        self.assertEqual(self.helper.evaluate(plant, "amber").pending_fruit, 1)

    def test_bold_badge_counts_once(self) -> None:
        counts, bold = ScanHelper.count_badges([("D", True)])
        plant = PlantEntry(name="Moonbinder Plant+2", fruit_count=2, slot_source=SLOT_SOURCE_FALLBACK,
                           dom_mutation_counts=counts, dom_bold_counts=bold)

        evaluation = self.helper.evaluate(plant, "dawn")
        self.assertEqual(evaluation.detail["strategy"], STRATEGY_FALLBACK)
        self.assertEqual(evaluation.pending_fruit, 1)


class ClampingTests(unittest.TestCase):
    def setUp(self) -> None:
        self.helper = EvaluationHelper(LoggingHelper(None, 0))

    def test_pending_and_needs_snow_never_exceed_total(self) -> None:
        plants = [
            badge_plant(2, W=9, F=0, C=7, D=5, A=0),
            badge_plant(1, bold={"A": 4}),
            slot_plant([["wet"], ["wet"], ["chilled"]], fruit_count=1),
            slot_plant([["dawnbound", "amberlit"], ["rainbow", "gold"]]),
            slot_plant([["wet 9/2"]], fruit_count=0),
        ]
        plants[0].dom_mutation_counts["W"] = 40

        for plant in plants:
            for weather in ALL_WEATHERS:
                evaluation = self.helper.evaluate(plant, weather)
                self.assertGreaterEqual(evaluation.pending_fruit, 0)
                self.assertLessEqual(evaluation.pending_fruit, evaluation.total_fruit)
                self.assertLessEqual(evaluation.needs_snow, max(evaluation.total_fruit, 0))

    def test_evaluation_is_deterministic(self) -> None:
        plant = slot_plant([["wet"], ["frozen"], ["dawnlit"], []])
        for weather in ALL_WEATHERS:
            self.assertEqual(self.helper.evaluate(plant, weather), self.helper.evaluate(plant, weather))


if __name__ == "__main__":
    unittest.main()
