import asyncio
import json
import pathlib
import re
from collections import deque
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Deque, Dict, List, Mapping, Optional, Sequence

from ..models import InventoryResult, ReconciledInventoryEntry
from .logging_helper import LoggingHelper
from .payload_helper import as_item_list, first_of, non_empty_list, path, string_field
from .slot_helper import SlotHelper

FetchCallable = Callable[[], Awaitable[Any]]

FRUIT_SUFFIX_PATTERN = re.compile(r"\+\d+$")

read_slots = first_of(
    non_empty_list(path("slots")),
    non_empty_list(path("plant", "slots")),
    non_empty_list(path("item", "slots")),
    non_empty_list(path("data", "slots")),
    non_empty_list(path("slots", "slots")),
    non_empty_list(path("growSlots")),
)

read_item_type = first_of(
    string_field("itemType", "type", "category", "kind"),
    lambda raw: string_field("itemType", "type")(path("item")(raw)),
    lambda raw: string_field("itemType", "type")(path("plant")(raw)),
)

read_display_name = string_field("name", "itemName", "displayName")


def normalize_plant_name(name: str) -> str:
    """Lower-cases a display name and strips its '+N' fruit suffix."""
    return FRUIT_SUFFIX_PATTERN.sub("", name.lower()).strip()


def item_has_slots(raw_item: Any) -> bool:
    return read_slots(raw_item) is not None


@dataclass(frozen=True)
class InventorySource:
    """A named raw-inventory fetcher; sources are tried in the order they are listed."""
    name: str
    fetch: FetchCallable


def read_json_file(file_path: pathlib.Path) -> Optional[Any]:
    """Blocking JSON read; returns None when the file does not exist."""
    if not file_path.exists():
        return None
    with open(file_path, 'r', encoding='utf-8') as f:
        return json.load(f)


def json_file_source(name: str, file_path: pathlib.Path) -> InventorySource:
    """An InventorySource backed by a JSON file, read in a worker thread off the event loop."""

    async def fetch():
        return await asyncio.to_thread(read_json_file, file_path)

    return InventorySource(name, fetch)


class ReconciliationPass:
    """
    Index maps and consumption flags for a single scan pass.
    A new pass is built for every scan; entries are handed out at most once.
    """

    def __init__(self, source: str, has_slot_data: bool):
        self.source = source
        self.has_slot_data = has_slot_data
        self.by_index: Dict[int, ReconciledInventoryEntry] = {}
        self.by_id: Dict[str, ReconciledInventoryEntry] = {}
        self.by_name: Dict[str, Deque[ReconciledInventoryEntry]] = {}

    def add(self, entry: ReconciledInventoryEntry):
        self.by_index[entry.base_index] = entry
        if entry.id:
            self.by_id[entry.id] = entry
        if entry.normalized_name:
            self.by_name.setdefault(entry.normalized_name, deque()).append(entry)

    def __len__(self) -> int:
        return len(self.by_index)

    @property
    def remaining(self) -> int:
        return sum(1 for entry in self.by_index.values() if not entry.used)

    def match(self, index: Optional[int], item_id: Optional[str], name: Optional[str]) \
            -> Optional[ReconciledInventoryEntry]:
        """Matches by stable index, then stable id, then the first unused entry with the same name."""

        entry = self.by_index.get(index) if index is not None else None

        if (entry is None or entry.used) and item_id:
            by_id_entry = self.by_id.get(item_id)
            if by_id_entry is not None and not by_id_entry.used:
                entry = by_id_entry

        if (entry is None or entry.used) and name:
            candidates = self.by_name.get(normalize_plant_name(name))
            if candidates:
                while candidates and candidates[0].used:
                    candidates.popleft()
                if candidates:
                    entry = candidates.popleft()

        if entry is None or entry.used:
            return None

        entry.used = True
        return entry


class InventoryHelper:
    """Chooses an inventory source from a priority list and indexes its plant entries."""

    def __init__(self, slot_helper: SlotHelper, logger: LoggingHelper):
        self.slot_helper = slot_helper
        self.logger = logger
        self._failed_sources: set = set()
        self._skipped_samples = 0

    async def _safe_fetch(self, source: InventorySource) -> List[Any]:
        try:
            value = await source.fetch()
        except Exception as e:
            if source.name not in self._failed_sources:
                self.logger.log(f"[Mutations] Inventory source '{source.name}' failed: {e}", "WARNING")
                self._failed_sources.add(source.name)
            return []

        self._failed_sources.discard(source.name)
        return as_item_list(value) or []

    async def reconcile(self, sources: Sequence[InventorySource]) -> Optional[InventoryResult]:
        """
        Tries each source in order. The first source where any item carries slot data wins;
        failing that, the first non-empty source is used without slot data. Returns None
        when every source is empty.
        """

        fallback: Optional[InventoryResult] = None

        for source in sources:
            items = await self._safe_fetch(source)
            if not items:
                continue

            has_slot_data = any(item_has_slots(item) for item in items)
            result = InventoryResult(items=tuple(items), source=source.name, has_slot_data=has_slot_data)

            if has_slot_data:
                self.logger.log(f"[Mutations] Using inventory source '{source.name}' ({len(items)} items).", "DEBUG")
                return result

            self.logger.log(
                f"[Mutations] Inventory source '{source.name}' lacks slot data, trying next source.", "DEBUG")
            if fallback is None:
                fallback = result

        if fallback is not None:
            self.logger.log(
                f"[Mutations] No source carries slot data; proceeding with '{fallback.source}'.", "INFO")
        else:
            self.logger.log("[Mutations] Inventory lookup unavailable (no items).", "DEBUG")

        return fallback

    def map_inventory_item(self, raw_item: Any, index: int) -> Optional[ReconciledInventoryEntry]:
        if not isinstance(raw_item, Mapping):
            return None

        slots = read_slots(raw_item)
        if slots is None and not self._is_plant_type(raw_item):
            if self._skipped_samples < 5:
                self.logger.log(f"[Mutations] Inventory item {index} skipped (type mismatch).", "DEBUG")
                self._skipped_samples += 1
            return None

        slot_states = tuple(self.slot_helper.build_slot_state(slot) for slot in (slots or []))

        item_id = raw_item.get("id") if isinstance(raw_item.get("id"), str) else None
        name = read_display_name(raw_item)
        if not name:
            species = string_field("species")(raw_item)
            if species:
                name = species if "plant" in species.lower() else f"{species} Plant"

        return ReconciledInventoryEntry(
            base_index=index,
            id=item_id,
            name=name,
            normalized_name=normalize_plant_name(name) if name else None,
            slot_states=slot_states,
            raw=raw_item,
        )

    @staticmethod
    def _is_plant_type(raw_item: Mapping) -> bool:
        item_type = read_item_type(raw_item)
        if not item_type:
            return False
        lowered = item_type.lower()
        return lowered == "crop" or "plant" in lowered

    def build_pass(self, result: Optional[InventoryResult]) -> Optional[ReconciliationPass]:
        """Builds the index/id/name lookups over the accepted items."""

        if result is None:
            return None

        self._skipped_samples = 0
        self.slot_helper.reset_debug_samples()

        reconciliation = ReconciliationPass(result.source, result.has_slot_data)
        for index, raw_item in enumerate(result.items):
            entry = self.map_inventory_item(raw_item, index)
            if entry is not None:
                reconciliation.add(entry)

        if len(reconciliation) == 0:
            self.logger.log("[Mutations] Inventory lookup construction produced zero entries.", "DEBUG")
            return None

        self.logger.log(
            f"[Mutations] Inventory lookup ready: {len(result.items)} items, {len(reconciliation.by_index)} by "
            f"index, {len(reconciliation.by_id)} by id, {len(reconciliation.by_name)} names.", "DEBUG")
        return reconciliation

    async def fetch_and_build(self, sources: Sequence[InventorySource]) -> Optional[ReconciliationPass]:
        return self.build_pass(await self.reconcile(sources))
