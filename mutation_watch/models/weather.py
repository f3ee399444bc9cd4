from dataclasses import dataclass
from typing import Optional

from .summary import WEATHER_UNKNOWN


@dataclass(frozen=True)
class WeatherSnapshot:
    """What the weather source currently reports."""
    kind: str = WEATHER_UNKNOWN
    started_at: Optional[int] = None
    expected_end_at: Optional[int] = None
    timestamp: int = 0
    source: str = "unknown"
    label: Optional[str] = None

    def same_window(self, other: Optional["WeatherSnapshot"]) -> bool:
        return (
            other is not None
            and self.kind == other.kind
            and self.started_at == other.started_at
            and self.expected_end_at == other.expected_end_at
        )


@dataclass(frozen=True)
class WeatherDefinition:
    """Display and timing data for one weather kind, loaded from weather.json."""
    id: str
    name: str
    emoji: str = "❓"
    duration_minutes: Optional[float] = None
    action: str = "for mutations"
