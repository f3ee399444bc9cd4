from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from ..models import (
    SUMMARY_SOURCE_GARDEN,
    SUMMARY_SOURCE_INVENTORY,
    SUMMARY_SOURCES,
    DebugSnapshot,
    DebugWeatherEntry,
    MutationSummary,
    PlantEntry,
    VisibleItem,
    empty_debug_map,
    is_active_weather,
)
from .garden_helper import GardenHelper
from .inventory_helper import InventoryHelper, InventorySource, ReconciliationPass
from .lock_helper import LockHelper
from .logging_helper import LoggingHelper
from .registry_helper import SummaryRegistry, create_debug_metadata
from .scan_helper import BASE_INDEX_ATTRS, ScanHelper
from .scheduler_helper import ScanScheduler
from .summary_helper import SummaryHelper
from .weather_helper import WeatherHub

SourcesProvider = Callable[[], Sequence[InventorySource]]
VisibleItemsProvider = Callable[[], Sequence[VisibleItem]]
GardenSnapshotProvider = Callable[[], Optional[Mapping[str, Any]]]


class MutationTracker:
    """
    Runs evaluation passes for one player: reconcile inventory sources, match scanned
    items, evaluate, aggregate and publish into the player's SummaryRegistry.
    """

    def __init__(self, user_id: int, *, inventory_helper: InventoryHelper, scan_helper: ScanHelper,
                 garden_helper: GardenHelper, summary_helper: SummaryHelper, weather_hub: WeatherHub,
                 lock_helper: LockHelper, logger: LoggingHelper, inventory_sources: SourcesProvider,
                 visible_items: VisibleItemsProvider, garden_snapshot: GardenSnapshotProvider,
                 debounce_seconds: float = 0.075):
        self.user_id = user_id
        self.inventory_helper = inventory_helper
        self.scan_helper = scan_helper
        self.garden_helper = garden_helper
        self.summary_helper = summary_helper
        self.weather_hub = weather_hub
        self.logger = logger
        self.inventory_sources = inventory_sources
        self.visible_items = visible_items
        self.garden_snapshot = garden_snapshot

        self.registry = SummaryRegistry(logger)
        self.last_plants: Dict[str, List[PlantEntry]] = {source: [] for source in SUMMARY_SOURCES}
        self.schedulers: Dict[str, ScanScheduler] = {
            SUMMARY_SOURCE_INVENTORY: ScanScheduler(
                (user_id, SUMMARY_SOURCE_INVENTORY), self.run_inventory_pass, lock_helper, logger, debounce_seconds),
            SUMMARY_SOURCE_GARDEN: ScanScheduler(
                (user_id, SUMMARY_SOURCE_GARDEN), self.run_garden_pass, lock_helper, logger, debounce_seconds),
        }

    def schedule(self, source: Optional[str] = None):
        """Requests a debounced pass for one source, or for both."""
        for name, scheduler in self.schedulers.items():
            if source is None or source == name:
                scheduler.schedule()

    async def flush(self):
        for scheduler in self.schedulers.values():
            await scheduler.flush()

    async def run_now(self):
        for scheduler in self.schedulers.values():
            await scheduler.run_now()

    def cancel(self):
        for scheduler in self.schedulers.values():
            scheduler.cancel()

    @staticmethod
    def _visible_items_from_pass(reconciliation: ReconciliationPass) -> List[VisibleItem]:
        """Stands in for an on-screen scan when only the raw inventory is known."""
        items: List[VisibleItem] = []
        for entry in sorted(reconciliation.by_index.values(), key=lambda e: e.base_index):
            if not entry.name:
                continue
            name = entry.name if "plant" in entry.name.lower() else f"{entry.name} Plant"
            items.append(VisibleItem(name_candidates=(name,), attributes={BASE_INDEX_ATTRS[0]: str(entry.base_index)}))
        return items

    async def run_inventory_pass(self):
        reconciliation = await self.inventory_helper.fetch_and_build(self.inventory_sources())

        items = list(self.visible_items())
        notes = None
        if not items and reconciliation is not None:
            items = self._visible_items_from_pass(reconciliation)
            notes = "No on-screen scan; matched raw inventory entries directly"

        plants = self.scan_helper.scan(items, reconciliation)
        if not plants:
            notes = "Inventory empty"

        self._publish(SUMMARY_SOURCE_INVENTORY, plants, notes=notes)

    async def run_garden_pass(self):
        plants = self.garden_helper.collect_plants(self.garden_snapshot())
        self._publish(SUMMARY_SOURCE_GARDEN, plants)

    def _publish(self, source: str, plants: List[PlantEntry], notes: Optional[str] = None) -> MutationSummary:
        weather_snapshot = self.weather_hub.current()
        weather = weather_snapshot.kind
        window = self.summary_helper.derive_weather_window(weather, weather_snapshot)
        per_weather = empty_debug_map()

        def collect(weather_kind: str, plant: PlantEntry, stats: Dict[str, object]):
            per_weather[weather_kind].append(DebugWeatherEntry(
                name=plant.name,
                pending_fruit=int(stats["pending_fruit"]),
                needs_snow_fruit=int(stats["needs_snow_fruit"]),
                fruit_count=plant.fruit_count,
                source=plant.slot_source,
                tag=stats.get("tag"),
            ))

        summary = self.summary_helper.build_summary(plants, weather, window, collect)
        highlighted = len(per_weather[weather]) if is_active_weather(weather) else 0

        self.last_plants[source] = plants

        extra: Dict[str, Any] = {"scanned_plant_count": len(plants)}
        if source == SUMMARY_SOURCE_INVENTORY:
            extra["highlighted_plant_count"] = highlighted
        if notes:
            extra["notes"] = notes

        self.registry.update_debug(DebugSnapshot(
            source=source,
            generated_at=summary.timestamp,
            summary=summary,
            per_weather=per_weather,
            metadata=create_debug_metadata(summary, **extra),
        ))
        self.registry.publish(source, summary)

        if is_active_weather(weather):
            self.logger.log(
                f"[Mutations] {source} pass for user {self.user_id}: {highlighted} plant(s) to place for {weather}.",
                "DEBUG")
        return summary

    def eligible_plant_names(self, source: Optional[str] = None) -> List[str]:
        snapshot = self.registry.debug_get(source)
        if snapshot is None or not is_active_weather(snapshot.summary.active_weather):
            return []
        return [entry.name for entry in snapshot.per_weather[snapshot.summary.active_weather]]
