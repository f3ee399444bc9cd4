from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from ..models import (
    ACTIVE_WEATHERS,
    SUMMARY_SOURCE_GARDEN,
    SUMMARY_SOURCE_INVENTORY,
    DebugSnapshot,
    MutationSummary,
)
from .logging_helper import LoggingHelper


@dataclass(frozen=True)
class SummaryEnvelope:
    source: str
    summary: MutationSummary


SummaryListener = Callable[[SummaryEnvelope], None]


def create_debug_metadata(summary: MutationSummary, **extra: Any) -> Dict[str, Any]:
    """Summary-derived counters attached to a debug snapshot."""

    overall_mutated = max(0, summary.overall_tracked_plant_count - summary.overall_eligible_plant_count)
    metadata = dict(extra)
    metadata.update({
        "lunar_tracked_plant_count": summary.lunar.tracked_plant_count,
        "lunar_pending_plant_count": summary.lunar.pending_plant_count,
        "lunar_mutated_plant_count": summary.lunar.mutated_plant_count,
        "non_lunar_mutated_plant_count": max(0, overall_mutated - summary.lunar.mutated_plant_count),
        "dawn_pending_fruit_count": summary.totals["dawn"].pending_fruit_count,
        "amber_pending_fruit_count": summary.totals["amber"].pending_fruit_count,
    })
    return metadata


class SummaryRegistry:
    """
    Keeps the last summary per source and fans new ones out to subscribers.
    Also keeps the last per-weather plant listing per source for inspection tooling.
    """

    def __init__(self, logger: LoggingHelper):
        self.logger = logger
        self._listeners: List[SummaryListener] = []
        self._last_summaries: Dict[str, MutationSummary] = {}
        self._debug_snapshots: Dict[str, DebugSnapshot] = {}

    def _notify(self, listener: SummaryListener, envelope: SummaryEnvelope, label: str):
        try:
            listener(envelope)
        except Exception as e:
            self.logger.log(f"Mutation summary {label} error: {e}", "WARNING")

    def publish(self, source: str, summary: MutationSummary):
        self._last_summaries[source] = summary
        envelope = SummaryEnvelope(source=source, summary=summary)
        for listener in list(self._listeners):
            self._notify(listener, envelope, "listener")

    def get(self, source: Optional[str] = None) -> Optional[MutationSummary]:
        if source:
            return self._last_summaries.get(source)
        return self._last_summaries.get(SUMMARY_SOURCE_INVENTORY) or self._last_summaries.get(SUMMARY_SOURCE_GARDEN)

    def get_all(self) -> Dict[str, MutationSummary]:
        return dict(self._last_summaries)

    def subscribe(self, callback: SummaryListener, fire_immediately: bool = True) -> Callable[[], None]:
        """Registers a listener; returns a function that removes it again."""

        self._listeners.append(callback)

        if fire_immediately:
            for source, summary in list(self._last_summaries.items()):
                self._notify(callback, SummaryEnvelope(source=source, summary=summary), "immediate listener")

        def unsubscribe():
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    # --- Debug surface ---

    def update_debug(self, snapshot: DebugSnapshot):
        self._debug_snapshots[snapshot.source] = snapshot.copy()

    def _debug_ref(self, source: Optional[str]) -> Optional[DebugSnapshot]:
        if source:
            return self._debug_snapshots.get(source)
        return self._debug_snapshots.get(SUMMARY_SOURCE_GARDEN) or self._debug_snapshots.get(SUMMARY_SOURCE_INVENTORY)

    def debug_get(self, source: Optional[str] = None) -> Optional[DebugSnapshot]:
        snapshot = self._debug_ref(source)
        return snapshot.copy() if snapshot else None

    def debug_get_all(self) -> Dict[str, DebugSnapshot]:
        return {source: snapshot.copy() for source, snapshot in self._debug_snapshots.items()}

    def debug_list(self, source: Optional[str] = None) -> Optional[Dict[str, Any]]:
        """Plant names per weather plus metadata for the chosen snapshot."""

        snapshot = self._debug_ref(source)
        if not snapshot:
            return None

        return {
            "source": snapshot.source,
            "generated_at": snapshot.generated_at,
            "active_weather": snapshot.summary.active_weather,
            "per_weather": {weather: [entry.name for entry in snapshot.per_weather.get(weather, [])]
                            for weather in ACTIVE_WEATHERS},
            "metadata": dict(snapshot.metadata),
        }

    def debug_rows(self, source: Optional[str] = None) -> Optional[List[Dict[str, Any]]]:
        """Flat table rows (weather, name, pending, needs_snow, fruit, source, tag)."""

        snapshot = self._debug_ref(source)
        if not snapshot:
            return None

        rows: List[Dict[str, Any]] = []
        for weather in ACTIVE_WEATHERS:
            for entry in snapshot.per_weather.get(weather, []):
                row: Dict[str, Any] = {
                    "weather": weather,
                    "name": entry.name,
                    "pending": entry.pending_fruit,
                    "needs_snow": entry.needs_snow_fruit,
                    "fruit": entry.fruit_count,
                    "source": entry.source,
                }
                if entry.tag:
                    row["tag"] = entry.tag
                rows.append(row)
        return rows
