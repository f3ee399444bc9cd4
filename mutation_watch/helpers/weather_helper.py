from typing import Callable, List, Optional, Tuple

from ..models import ALL_WEATHERS, WEATHER_UNKNOWN, WeatherSnapshot
from .logging_helper import LoggingHelper
from .time_helper import TimeHelper

WeatherListener = Callable[[WeatherSnapshot], None]

WEATHER_ALIASES = {
    "frost": "snow",
    "sunset": "amber",
    "amber moon": "amber",
    "ambermoon": "amber",
    "dawn moon": "dawn",
    "clear": "sunny",
    "none": "sunny",
}


def normalize_weather_kind(value: Optional[str]) -> str:
    if not value:
        return WEATHER_UNKNOWN
    lowered = value.strip().lower()
    lowered = WEATHER_ALIASES.get(lowered, lowered)
    return lowered if lowered in ALL_WEATHERS else WEATHER_UNKNOWN


class WeatherHub:
    """
    The current weather as reported by the game, plus an optional manual override
    used for simulation. Listeners are only called when the snapshot changes.
    """

    def __init__(self, logger: LoggingHelper):
        self.logger = logger
        self._reported = WeatherSnapshot(timestamp=TimeHelper.now_ms())
        self._current = self._reported
        self._override: Optional[Tuple[WeatherSnapshot, int]] = None
        self._listeners: List[WeatherListener] = []

    def current(self) -> WeatherSnapshot:
        self._expire_override()
        return self._current

    def subscribe(self, callback: WeatherListener, fire_immediately: bool = True) -> Callable[[], None]:
        self._listeners.append(callback)
        if fire_immediately:
            self._notify(callback, self.current())

        def unsubscribe():
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    def _notify(self, listener: WeatherListener, snapshot: WeatherSnapshot):
        try:
            listener(snapshot)
        except Exception as e:
            self.logger.log(f"Weather hub listener failed: {e}", "WARNING")

    def _emit(self, snapshot: WeatherSnapshot):
        if snapshot.same_window(self._current) and snapshot.source == self._current.source \
                and snapshot.label == self._current.label:
            return
        self._current = snapshot
        for listener in list(self._listeners):
            self._notify(listener, snapshot)

    def update(self, kind: str, started_at: Optional[int] = None, expected_end_at: Optional[int] = None,
               source: str = "report", label: Optional[str] = None):
        """Records a weather report from the game."""

        normalized = normalize_weather_kind(kind)
        self._reported = WeatherSnapshot(
            kind=normalized,
            started_at=started_at,
            expected_end_at=expected_end_at,
            timestamp=TimeHelper.now_ms(),
            source=source,
            label=label or (None if normalized == WEATHER_UNKNOWN else normalized),
        )
        if self._override is None:
            self._emit(self._reported)

    def set_override(self, kind: str, duration_seconds: float = 30.0):
        """Forces a weather for a limited time, ignoring reports until it expires."""

        now = TimeHelper.now_ms()
        normalized = normalize_weather_kind(kind)
        expires_at = now + int(duration_seconds * 1000)
        snapshot = WeatherSnapshot(
            kind=normalized,
            started_at=now,
            expected_end_at=expires_at,
            timestamp=now,
            source="override",
            label=normalized,
        )
        self._override = (snapshot, expires_at)
        self.logger.log(f"Weather override set: {normalized} for {duration_seconds:.0f}s", "INFO")
        self._emit(snapshot)

    def clear_override(self):
        if self._override is None:
            return
        self._override = None
        self._emit(self._reported)

    def _expire_override(self):
        if self._override is not None and TimeHelper.now_ms() >= self._override[1]:
            self.logger.log("Weather override expired, resuming reported weather.", "INFO")
            self.clear_override()

    def refresh(self):
        """Re-evaluates override expiry; called from the periodic tick."""
        self._expire_override()
