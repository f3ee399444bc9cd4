from typing import Any, Dict

from ..models import (
    SLOT_SOURCE_GARDEN,
    SLOT_SOURCE_INVENTORY,
    WEATHER_AMBER,
    WEATHER_DAWN,
    WEATHER_RAIN,
    WEATHER_SNOW,
    PlantEntry,
    PlantEvaluation,
    is_active_weather,
)
from .logging_helper import LoggingHelper

STRATEGY_INVENTORY = "inventory"
STRATEGY_FALLBACK = "fallback"


class EvaluationHelper:
    """
    Decides whether a plant should be placed out for a given weather.

    Two strategies share one result shape: the slot-based strategy reads per-fruit
    mutation records, and the badge-based strategy works from on-screen letter counts
    only. Callers never branch on which one ran; `detail["strategy"]` is for logs.
    """

    def __init__(self, logger: LoggingHelper):
        self.logger = logger

    def evaluate(self, plant: PlantEntry, weather: str, emit_debug: bool = True) -> PlantEvaluation:
        try:
            if not is_active_weather(weather):
                evaluation = PlantEvaluation(
                    decision=False,
                    pending_fruit=0,
                    total_fruit=max(plant.fruit_count, 0),
                    needs_snow=0,
                    detail=self._empty_fallback_detail(max(plant.fruit_count, 0)),
                )
            elif self._can_use_slots(plant):
                evaluation = self._evaluate_from_slots(plant, weather)
            else:
                evaluation = self._evaluate_from_badges(plant, weather)
        except (TypeError, ValueError, KeyError, AttributeError) as e:
            self.logger.log(f"[Mutations] Evaluation of {plant.name!r} for {weather} failed: {e}", "ERROR")
            return PlantEvaluation(decision=False, pending_fruit=0, total_fruit=0, needs_snow=0,
                                   detail={"strategy": "error", "error": str(e)})

        if emit_debug:
            self.report_conflicts(plant)
            self._debug_decision(plant, weather, evaluation)

        return evaluation

    def report_conflicts(self, plant: PlantEntry) -> int:
        """Warns about fruit holding mutually exclusive mutations. Call once per plant per pass."""

        if not self._can_use_slots(plant):
            return 0
        conflicting = sum(1 for slot in plant.slot_states if slot.has_conflict)
        if conflicting:
            self.logger.log(
                f"{plant.name} has {conflicting} fruit(s) with conflicting mutations "
                f"(same fruit cannot be both amber+dawn or rainbow+gold)", "WARNING")
        return conflicting

    @staticmethod
    def _can_use_slots(plant: PlantEntry) -> bool:
        if plant.slot_source not in (SLOT_SOURCE_INVENTORY, SLOT_SOURCE_GARDEN):
            return False
        return any(slot.has_mutation_signal for slot in plant.slot_states)

    def _evaluate_from_slots(self, plant: PlantEntry, weather: str) -> PlantEvaluation:
        slots = plant.slot_states

        conflicting = sum(1 for slot in slots if slot.has_conflict)

        wet_finished = sum(1 for slot in slots if slot.has_wet or slot.has_frozen)
        wet_needs_snow = sum(1 for slot in slots if slot.has_wet and not slot.has_frozen)
        dawn_finished = sum(1 for slot in slots if slot.has_any_dawn)
        amber_finished = sum(1 for slot in slots if slot.has_any_amber)
        # A fruit holds one lunar colour, so a fruit already showing the other colour is unavailable.
        amber_only = sum(1 for slot in slots if slot.has_any_amber and not slot.has_any_dawn)
        dawn_only = sum(1 for slot in slots if slot.has_any_dawn and not slot.has_any_amber)

        stage_complete: Dict[str, int] = {}
        stage_total: Dict[str, int] = {}
        for slot in slots:
            for stage, progress in slot.progress.items():
                stage_total[stage] = max(stage_total.get(stage, 0), progress.total)
                stage_complete[stage] = max(stage_complete.get(stage, 0), progress.complete)

        total_fruit = max(plant.fruit_count, 1, wet_finished, dawn_finished, amber_finished)

        def clamp_dom(value: int) -> int:
            return max(0, min(total_fruit, value))

        dom_frozen = clamp_dom(plant.dom_count("F"))
        dom_wet_progress = clamp_dom(dom_frozen + clamp_dom(plant.dom_count("W")))
        dom_wet_needs_snow = clamp_dom(dom_wet_progress - dom_frozen)
        dom_dawn_complete = clamp_dom(plant.dom_count("D") + plant.dom_bold("D"))
        dom_amber_complete = clamp_dom(plant.dom_count("A") + plant.dom_bold("A"))

        wet_finished = max(wet_finished, dom_wet_progress)
        wet_needs_snow = max(wet_needs_snow, dom_wet_needs_snow)
        dawn_finished = max(dawn_finished, dom_dawn_complete)
        amber_finished = max(amber_finished, dom_amber_complete)

        if stage_total.get("wet", 0) > 0:
            total_fruit = max(total_fruit, stage_total["wet"])
            wet_finished = max(wet_finished, stage_complete["wet"])
        if stage_total.get("dawn", 0) > 0:
            total_fruit = max(total_fruit, stage_total["dawn"])
            dawn_finished = max(dawn_finished, stage_complete["dawn"])
        if stage_total.get("amber", 0) > 0:
            total_fruit = max(total_fruit, stage_total["amber"])
            amber_finished = max(amber_finished, stage_complete["amber"])

        wet_pending = max(0, total_fruit - wet_finished)
        dawn_pending = max(0, total_fruit - dawn_finished - amber_only)
        amber_pending = max(0, total_fruit - amber_finished - dawn_only)

        detail: Dict[str, Any] = {
            "strategy": STRATEGY_INVENTORY,
            "total_fruit": total_fruit,
            "wet_pending": wet_pending,
            "wet_finished": wet_finished,
            "wet_needs_snow": wet_needs_snow,
            "wet_progress_complete": stage_complete.get("wet", 0),
            "wet_progress_total": stage_total.get("wet", 0),
            "dom_wet_progress": dom_wet_progress,
            "dom_wet_needs_snow": dom_wet_needs_snow,
            "dawn_pending": dawn_pending,
            "dawn_finished": dawn_finished,
            "dawn_progress_complete": stage_complete.get("dawn", 0),
            "dawn_progress_total": stage_total.get("dawn", 0),
            "dom_dawn_complete": dom_dawn_complete,
            "amber_pending": amber_pending,
            "amber_finished": amber_finished,
            "amber_progress_complete": stage_complete.get("amber", 0),
            "amber_progress_total": stage_total.get("amber", 0),
            "dom_amber_complete": dom_amber_complete,
            "has_any_dawn": any(slot.has_any_dawn for slot in slots),
            "has_any_amber": any(slot.has_any_amber for slot in slots),
            "has_any_rainbow": any(slot.has_rainbow for slot in slots),
            "has_any_gold": any(slot.has_gold for slot in slots),
            "conflicting_slots": conflicting,
        }

        needs_snow = min(wet_needs_snow, total_fruit)
        if weather == WEATHER_RAIN:
            pending = wet_pending
        elif weather == WEATHER_SNOW:
            pending = needs_snow
        elif weather == WEATHER_DAWN:
            pending, needs_snow = dawn_pending, 0
        elif weather == WEATHER_AMBER:
            pending, needs_snow = amber_pending, 0
        else:
            pending, needs_snow = 0, 0

        pending = max(0, min(pending, total_fruit))
        return PlantEvaluation(
            decision=pending > 0,
            pending_fruit=pending,
            total_fruit=max(1, total_fruit),
            needs_snow=max(0, needs_snow),
            detail=detail,
        )

    def _evaluate_from_badges(self, plant: PlantEntry, weather: str) -> PlantEvaluation:
        total_fruit = max(plant.fruit_count, 0)
        if total_fruit <= 0:
            return PlantEvaluation(decision=False, pending_fruit=0, total_fruit=total_fruit, needs_snow=0,
                                   detail=self._empty_fallback_detail(total_fruit))

        def clamp(value: int) -> int:
            return max(0, min(value, total_fruit))

        frozen = clamp(plant.dom_count("F"))
        wet = clamp(plant.dom_count("W"))
        chilled = clamp(plant.dom_count("C"))
        dawn = clamp(plant.dom_count("D"))
        amber = clamp(plant.dom_count("A"))
        dawn_bound = clamp(plant.dom_bold("D"))
        amber_bound = clamp(plant.dom_bold("A"))

        detail: Dict[str, Any] = {
            "strategy": STRATEGY_FALLBACK,
            "fruit_count": total_fruit,
            "frozen_count": frozen,
            "wet_count": wet,
            "chilled_count": chilled,
            "dawn_count": dawn,
            "amber_count": amber,
            "dawn_bound_count": dawn_bound,
            "amber_bound_count": amber_bound,
            "rainbow_count": clamp(plant.dom_count("R")),
            "gold_count": clamp(plant.dom_count("G")),
        }

        pending = 0
        needs_snow = max(0, wet - frozen)

        if weather == WEATHER_RAIN:
            wet_progress = wet + frozen
            if wet_progress < total_fruit:
                pending = total_fruit - wet_progress
            else:
                pending = max(0, chilled - frozen)
        elif weather == WEATHER_SNOW:
            pending = needs_snow
        elif weather == WEATHER_DAWN:
            needs_snow = 0
            if amber + amber_bound == 0:
                pending = max(0, total_fruit - (dawn + dawn_bound))
        elif weather == WEATHER_AMBER:
            needs_snow = 0
            if dawn + dawn_bound == 0:
                pending = max(0, total_fruit - (amber + amber_bound))
        else:
            needs_snow = 0

        pending = clamp(pending)
        return PlantEvaluation(
            decision=pending > 0,
            pending_fruit=pending,
            total_fruit=total_fruit,
            needs_snow=clamp(needs_snow),
            detail=detail,
        )

    @staticmethod
    def _empty_fallback_detail(fruit_count: int) -> Dict[str, Any]:
        return {
            "strategy": STRATEGY_FALLBACK,
            "fruit_count": fruit_count,
            "frozen_count": 0,
            "wet_count": 0,
            "chilled_count": 0,
            "dawn_count": 0,
            "amber_count": 0,
            "dawn_bound_count": 0,
            "amber_bound_count": 0,
            "rainbow_count": 0,
            "gold_count": 0,
        }

    def _debug_decision(self, plant: PlantEntry, weather: str, evaluation: PlantEvaluation):
        if not self.logger.debug_enabled:
            return

        verdict = "highlight" if evaluation.decision else "skip"
        slot_summary = ",".join(slot.signature() for slot in plant.slot_states) or "no-slots"
        self.logger.log(
            f"[Mutations] {verdict} {plant.name} for {weather}: source={plant.slot_source} "
            f"fruit={plant.fruit_count} slots={slot_summary} pending={evaluation.pending_fruit} "
            f"needs_snow={evaluation.needs_snow} detail={evaluation.detail}",
            "DEBUG",
        )
