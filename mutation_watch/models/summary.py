from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional, Tuple

WEATHER_RAIN = "rain"
WEATHER_SNOW = "snow"
WEATHER_DAWN = "dawn"
WEATHER_AMBER = "amber"
WEATHER_SUNNY = "sunny"
WEATHER_UNKNOWN = "unknown"

ACTIVE_WEATHERS: Tuple[str, ...] = (WEATHER_RAIN, WEATHER_SNOW, WEATHER_DAWN, WEATHER_AMBER)
ALL_WEATHERS: Tuple[str, ...] = ACTIVE_WEATHERS + (WEATHER_SUNNY, WEATHER_UNKNOWN)

SUMMARY_SOURCE_INVENTORY = "inventory"
SUMMARY_SOURCE_GARDEN = "garden"
SUMMARY_SOURCES: Tuple[str, ...] = (SUMMARY_SOURCE_INVENTORY, SUMMARY_SOURCE_GARDEN)


def is_active_weather(weather: str) -> bool:
    return weather in ACTIVE_WEATHERS


@dataclass(frozen=True)
class WeatherWindow:
    weather: str
    started_at: Optional[int]
    expected_end_at: Optional[int]
    duration_ms: Optional[int]
    remaining_ms: Optional[int]

    def recomputed(self, now_ms: int) -> "WeatherWindow":
        """Returns a copy whose remaining time is measured from `now_ms`."""
        if self.expected_end_at is None:
            return self
        return replace(self, remaining_ms=max(0, self.expected_end_at - now_ms))


@dataclass(frozen=True)
class PlantEvaluation:
    decision: bool
    pending_fruit: int
    total_fruit: int
    needs_snow: int
    detail: Dict[str, Any] = field(default_factory=dict)


@dataclass
class WeatherTotals:
    weather: str
    plant_count: int = 0
    pending_fruit_count: int = 0
    needs_snow_fruit_count: Optional[int] = None


@dataclass(frozen=True)
class LunarStats:
    tracked_plant_count: int = 0
    pending_plant_count: int = 0
    mutated_plant_count: int = 0
    total_fruit_count: int = 0
    pending_fruit_count: int = 0
    mutated_fruit_count: int = 0


@dataclass(frozen=True)
class MutationSummary:
    """Aggregated mutation opportunities across all plants of one scan."""
    timestamp: int
    active_weather: str
    totals: Dict[str, WeatherTotals]
    overall_eligible_plant_count: int
    overall_pending_fruit_count: int
    overall_tracked_plant_count: int
    lunar: LunarStats
    weather_window: Optional[WeatherWindow]


@dataclass(frozen=True)
class DebugWeatherEntry:
    name: str
    pending_fruit: int
    needs_snow_fruit: int
    fruit_count: int
    source: str
    tag: Optional[str] = None


@dataclass
class DebugSnapshot:
    """Per-weather plant listing behind a summary, kept for manual inspection."""
    source: str
    generated_at: int
    summary: MutationSummary
    per_weather: Dict[str, List[DebugWeatherEntry]]
    metadata: Dict[str, Any] = field(default_factory=dict)

    def copy(self) -> "DebugSnapshot":
        return DebugSnapshot(
            source=self.source,
            generated_at=self.generated_at,
            summary=self.summary,
            per_weather={weather: list(self.per_weather.get(weather, [])) for weather in ACTIVE_WEATHERS},
            metadata=dict(self.metadata),
        )


def empty_debug_map() -> Dict[str, List[DebugWeatherEntry]]:
    return {weather: [] for weather in ACTIVE_WEATHERS}
