from .slots import (
    MUTATION_LETTERS,
    BOLD_LETTERS,
    MUTATION_STAGES,
    SLOT_SOURCE_INVENTORY,
    SLOT_SOURCE_GARDEN,
    SLOT_SOURCE_FALLBACK,
    StageProgress,
    SlotState,
    PlantEntry,
    ReconciledInventoryEntry,
    InventoryResult,
    VisibleItem,
    empty_letter_counts,
    empty_bold_counts,
)
from .summary import (
    WEATHER_RAIN,
    WEATHER_SNOW,
    WEATHER_DAWN,
    WEATHER_AMBER,
    WEATHER_SUNNY,
    WEATHER_UNKNOWN,
    ACTIVE_WEATHERS,
    ALL_WEATHERS,
    SUMMARY_SOURCE_INVENTORY,
    SUMMARY_SOURCE_GARDEN,
    SUMMARY_SOURCES,
    WeatherWindow,
    PlantEvaluation,
    WeatherTotals,
    LunarStats,
    MutationSummary,
    DebugWeatherEntry,
    DebugSnapshot,
    empty_debug_map,
    is_active_weather,
)
from .weather import WeatherSnapshot, WeatherDefinition

__all__ = [
    "MUTATION_LETTERS",
    "BOLD_LETTERS",
    "MUTATION_STAGES",
    "SLOT_SOURCE_INVENTORY",
    "SLOT_SOURCE_GARDEN",
    "SLOT_SOURCE_FALLBACK",
    "StageProgress",
    "SlotState",
    "PlantEntry",
    "ReconciledInventoryEntry",
    "InventoryResult",
    "VisibleItem",
    "empty_letter_counts",
    "empty_bold_counts",
    "WEATHER_RAIN",
    "WEATHER_SNOW",
    "WEATHER_DAWN",
    "WEATHER_AMBER",
    "WEATHER_SUNNY",
    "WEATHER_UNKNOWN",
    "ACTIVE_WEATHERS",
    "ALL_WEATHERS",
    "SUMMARY_SOURCE_INVENTORY",
    "SUMMARY_SOURCE_GARDEN",
    "SUMMARY_SOURCES",
    "WeatherWindow",
    "PlantEvaluation",
    "WeatherTotals",
    "LunarStats",
    "MutationSummary",
    "DebugWeatherEntry",
    "DebugSnapshot",
    "empty_debug_map",
    "is_active_weather",
    "WeatherSnapshot",
    "WeatherDefinition",
]
