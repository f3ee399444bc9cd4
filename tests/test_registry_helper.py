import unittest

from mutation_watch.helpers.evaluation_helper import EvaluationHelper
from mutation_watch.helpers.logging_helper import LoggingHelper
from mutation_watch.helpers.registry_helper import SummaryRegistry, create_debug_metadata
from mutation_watch.helpers.summary_helper import SummaryHelper
from mutation_watch.models import DebugSnapshot, DebugWeatherEntry, empty_debug_map


class SummaryRegistryTests(unittest.TestCase):
    def setUp(self) -> None:
        logger = LoggingHelper(None, 0)
        self.registry = SummaryRegistry(logger)
        self.summaries = SummaryHelper(EvaluationHelper(logger), logger)

    def summary(self, weather="rain", timestamp=1):
        return self.summaries.build_summary([], weather, now_ms=timestamp)

    def test_get_prefers_inventory_over_garden(self) -> None:
        garden = self.summary(timestamp=1)
        inventory = self.summary(timestamp=2)

        self.assertIsNone(self.registry.get())
        self.registry.publish("garden", garden)
        self.assertIs(self.registry.get(), garden)
        self.registry.publish("inventory", inventory)
        self.assertIs(self.registry.get(), inventory)
        self.assertIs(self.registry.get("garden"), garden)
        self.assertEqual(set(self.registry.get_all()), {"garden", "inventory"})

    def test_failing_listener_does_not_block_others(self) -> None:
        received = []

        def broken(envelope):
            raise RuntimeError("listener bug")

        self.registry.subscribe(broken)
        self.registry.subscribe(lambda envelope: received.append(envelope.source))
        self.registry.publish("inventory", self.summary())

        self.assertEqual(received, ["inventory"])

    def test_subscribe_fires_immediately_with_last_summaries(self) -> None:
        self.registry.publish("garden", self.summary())
        received = []

        self.registry.subscribe(lambda envelope: received.append(envelope.source))
        self.registry.subscribe(lambda envelope: received.append("late"), fire_immediately=False)

        self.assertEqual(received, ["garden"])

    def test_unsubscribe(self) -> None:
        received = []
        unsubscribe = self.registry.subscribe(lambda envelope: received.append(envelope.source))
        unsubscribe()
        unsubscribe()
        self.registry.publish("inventory", self.summary())
        self.assertEqual(received, [])

    def test_debug_surface(self) -> None:
        summary = self.summary(weather="snow")
        per_weather = empty_debug_map()
        per_weather["snow"].append(DebugWeatherEntry("Pepper Plant", 1, 1, 3, "inventory"))
        per_weather["amber"].append(DebugWeatherEntry("Pepper Plant", 3, 0, 3, "inventory", tag="lunar-any"))

        self.registry.update_debug(DebugSnapshot("inventory", 5, summary, per_weather, {"notes": "x"}))
        per_weather["snow"].clear()

        listing = self.registry.debug_list()
        self.assertEqual(listing["source"], "inventory")
        self.assertEqual(listing["per_weather"]["snow"], ["Pepper Plant"])
        self.assertEqual(listing["metadata"], {"notes": "x"})

        rows = self.registry.debug_rows("inventory")
        self.assertEqual(len(rows), 2)
        self.assertEqual(rows[0]["weather"], "snow")
        self.assertEqual(rows[1]["tag"], "lunar-any")
        self.assertIsNone(self.registry.debug_rows("garden"))

        copy = self.registry.debug_get()
        copy.per_weather["snow"].clear()
        self.assertEqual(len(self.registry.debug_get("inventory").per_weather["snow"]), 1)

    def test_debug_default_prefers_garden(self) -> None:
        summary = self.summary()
        self.registry.update_debug(DebugSnapshot("inventory", 1, summary, empty_debug_map()))
        self.registry.update_debug(DebugSnapshot("garden", 2, summary, empty_debug_map()))

        self.assertEqual(self.registry.debug_get().source, "garden")
        self.assertEqual(set(self.registry.debug_get_all()), {"inventory", "garden"})

    def test_create_debug_metadata(self) -> None:
        metadata = create_debug_metadata(self.summary(), scanned_plant_count=0, notes="Inventory empty")

        self.assertEqual(metadata["scanned_plant_count"], 0)
        self.assertEqual(metadata["notes"], "Inventory empty")
        self.assertEqual(metadata["lunar_tracked_plant_count"], 0)
        self.assertEqual(metadata["non_lunar_mutated_plant_count"], 0)


if __name__ == "__main__":
    unittest.main()
