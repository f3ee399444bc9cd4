from typing import Callable, Dict, List, Mapping, Optional, Sequence, Set

from ..models import (
    ACTIVE_WEATHERS,
    WEATHER_AMBER,
    WEATHER_DAWN,
    WEATHER_SNOW,
    LunarStats,
    MutationSummary,
    PlantEntry,
    PlantEvaluation,
    WeatherSnapshot,
    WeatherTotals,
    WeatherWindow,
    is_active_weather,
)
from .evaluation_helper import EvaluationHelper
from .logging_helper import LoggingHelper
from .time_helper import TimeHelper

SummaryCollector = Callable[[str, PlantEntry, Dict[str, object]], None]

DEFAULT_DURATIONS_MS: Dict[str, int] = {
    "rain": 5 * 60 * 1000,
    "snow": 5 * 60 * 1000,
    "dawn": 10 * 60 * 1000,
    "amber": 10 * 60 * 1000,
}

LUNAR_TAG_BOTH = "lunar-any"


class SummaryHelper:
    """Folds per-plant evaluations for every active weather into one MutationSummary."""

    def __init__(self, evaluation_helper: EvaluationHelper, logger: LoggingHelper,
                 durations_ms: Optional[Mapping[str, int]] = None):
        self.evaluation_helper = evaluation_helper
        self.logger = logger
        self.durations_ms: Dict[str, int] = dict(DEFAULT_DURATIONS_MS)
        if durations_ms:
            self.durations_ms.update(durations_ms)

    def resolve_duration_ms(self, weather: str) -> Optional[int]:
        return self.durations_ms.get(weather) if is_active_weather(weather) else None

    def derive_weather_window(self, weather: str, snapshot: Optional[WeatherSnapshot],
                              now_ms: Optional[int] = None) -> Optional[WeatherWindow]:
        if not is_active_weather(weather):
            return None

        now = now_ms if now_ms is not None else TimeHelper.now_ms()
        duration_ms = self.resolve_duration_ms(weather)
        started_at = None
        if snapshot is not None:
            started_at = snapshot.started_at if snapshot.started_at is not None else (snapshot.timestamp or None)

        expected_end_at = snapshot.expected_end_at if snapshot is not None else None
        if expected_end_at is None and duration_ms is not None:
            expected_end_at = (started_at if started_at is not None else now) + duration_ms

        remaining_ms = max(0, expected_end_at - now) if expected_end_at is not None else None
        if expected_end_at is not None and started_at is not None:
            duration_ms = max(0, expected_end_at - started_at)

        return WeatherWindow(
            weather=weather,
            started_at=started_at,
            expected_end_at=expected_end_at,
            duration_ms=duration_ms,
            remaining_ms=remaining_ms,
        )

    def _evaluate_all(self, plant: PlantEntry) -> Optional[Dict[str, PlantEvaluation]]:
        try:
            self.evaluation_helper.report_conflicts(plant)
            return {weather: self.evaluation_helper.evaluate(plant, weather, emit_debug=False)
                    for weather in ACTIVE_WEATHERS}
        except Exception as e:
            self.logger.log(f"[Mutations] Skipping {plant.name!r} in summary: {e}", "ERROR")
            return None

    def build_summary(self, plants: Sequence[PlantEntry], active_weather: str,
                      weather_window: Optional[WeatherWindow] = None,
                      collect: Optional[SummaryCollector] = None,
                      now_ms: Optional[int] = None) -> MutationSummary:
        """
        Evaluates every plant against all four active weathers, not only the current one,
        so lunar (dawn + amber) statistics are available regardless of the weather.
        """

        now = now_ms if now_ms is not None else TimeHelper.now_ms()
        totals: Dict[str, WeatherTotals] = {weather: WeatherTotals(weather=weather) for weather in ACTIVE_WEATHERS}
        totals[WEATHER_SNOW].needs_snow_fruit_count = 0

        unique_eligible: Set[str] = set()
        unique_tracked: Set[str] = set()
        lunar_tracked: Set[str] = set()
        lunar_pending: Set[str] = set()
        lunar_total_fruit = 0
        lunar_pending_fruit = 0

        for plant in plants:
            evaluations = self._evaluate_all(plant)
            if evaluations is None:
                continue

            plant_id = plant.plant_id
            unique_tracked.add(plant_id)

            dawn_eval = evaluations[WEATHER_DAWN]
            amber_eval = evaluations[WEATHER_AMBER]
            both_lunar = dawn_eval.decision and amber_eval.decision

            if amber_eval.total_fruit > 0 or dawn_eval.total_fruit > 0:
                lunar_tracked.add(plant_id)

            chosen: Optional[PlantEvaluation] = None
            if amber_eval.total_fruit > 0 or amber_eval.pending_fruit > 0:
                chosen = amber_eval
            elif dawn_eval.total_fruit > 0 or dawn_eval.pending_fruit > 0:
                chosen = dawn_eval

            if chosen is not None and chosen.total_fruit > 0:
                lunar_total_fruit += chosen.total_fruit
                lunar_pending_fruit += chosen.pending_fruit
                if chosen.pending_fruit > 0:
                    lunar_pending.add(plant_id)

            for weather in ACTIVE_WEATHERS:
                evaluation = evaluations[weather]
                if not evaluation.decision:
                    continue

                pending_fruit = max(0, evaluation.pending_fruit)
                needs_snow_fruit = max(0, evaluation.needs_snow) if weather == WEATHER_SNOW else 0

                weather_totals = totals[weather]
                weather_totals.plant_count += 1
                weather_totals.pending_fruit_count += pending_fruit
                if weather == WEATHER_SNOW:
                    weather_totals.needs_snow_fruit_count = (weather_totals.needs_snow_fruit_count or 0) \
                        + needs_snow_fruit

                if collect is not None:
                    stats: Dict[str, object] = {"pending_fruit": pending_fruit, "needs_snow_fruit": needs_snow_fruit}
                    if weather == WEATHER_AMBER and both_lunar:
                        stats["tag"] = LUNAR_TAG_BOTH
                    try:
                        collect(weather, plant, stats)
                    except Exception as e:
                        self.logger.log(f"[Mutations] Summary collector failed: {e}", "WARNING")

                unique_eligible.add(plant_id)

        lunar_tracked_count = len(lunar_tracked)
        lunar_pending_count = len(lunar_pending)

        return MutationSummary(
            timestamp=now,
            active_weather=active_weather,
            totals=totals,
            overall_eligible_plant_count=len(unique_eligible),
            overall_pending_fruit_count=sum(totals[weather].pending_fruit_count for weather in ACTIVE_WEATHERS),
            overall_tracked_plant_count=len(unique_tracked),
            lunar=LunarStats(
                tracked_plant_count=lunar_tracked_count,
                pending_plant_count=lunar_pending_count,
                mutated_plant_count=max(0, lunar_tracked_count - lunar_pending_count),
                total_fruit_count=lunar_total_fruit,
                pending_fruit_count=lunar_pending_fruit,
                mutated_fruit_count=max(0, lunar_total_fruit - lunar_pending_fruit),
            ),
            weather_window=weather_window.recomputed(now) if weather_window is not None else None,
        )

    def eligible_plants(self, plants: Sequence[PlantEntry], weather: str) -> List[PlantEntry]:
        """The plants to flag for the given weather."""
        return [plant for plant in plants if self.evaluation_helper.evaluate(plant, weather).decision]
