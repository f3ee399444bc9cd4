import re
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from ..models import (
    MUTATION_LETTERS,
    SLOT_SOURCE_FALLBACK,
    SLOT_SOURCE_INVENTORY,
    PlantEntry,
    SlotState,
    VisibleItem,
    empty_bold_counts,
    empty_letter_counts,
)
from .inventory_helper import ReconciliationPass
from .logging_helper import LoggingHelper
from .payload_helper import coerce_int, read_attribute
from .slot_helper import SlotHelper

FRUIT_COUNT_PATTERN = re.compile(r"\+(\d+)")
BASE_NAME_PATTERN = re.compile(r"^(.+?)(?:\+\d+)?$")

BASE_INDEX_ATTRS = (
    "data-tm-inventory-base-index",
    "data-tm-inventory-baseindex",
    "data-tm-base-index",
    "data-base-index",
)

ID_ATTRS = (
    "data-tm-inventory-id", "data-inventory-id", "data-item-id", "data-itemid", "data-itemId",
    "data-item-uuid", "data-itemuuid", "data-item-guid", "data-uuid", "data-guid", "data-entity-id",
    "data-entityid", "data-record-id", "data-recordid", "data-row-id", "data-rowid", "data-tm-item-id",
    "data-tm-itemid", "data-id",
)

MAX_ANCESTOR_DEPTH = 5

DEFAULT_NON_PLANT_WORDS = (
    "seed", "spore", "cutting", "pod", "kernel", "pit", "shovel", "pot", "watering can", "tool",
    "fertilizer", "egg", "decor", "furniture", "planter",
)


class ScanHelper:
    """Turns scanned on-screen items into PlantEntry records, matched against a reconciliation pass."""

    def __init__(self, slot_helper: SlotHelper, logger: LoggingHelper,
                 non_plant_words: Sequence[str] = DEFAULT_NON_PLANT_WORDS):
        self.slot_helper = slot_helper
        self.logger = logger
        self.non_plant_words = tuple(word.lower() for word in non_plant_words)
        self._non_plant_pattern = re.compile(
            r"\b(?:" + "|".join(re.escape(word) for word in self.non_plant_words) + r")s?\b"
        ) if self.non_plant_words else None

    def is_plant_name(self, name: str) -> bool:
        """Plants read like 'Pepper Plant+9'; seeds, tools and decor are excluded."""

        base_match = BASE_NAME_PATTERN.match(name.strip())
        base_name = (base_match.group(1) if base_match else name).lower().strip()

        if "plant" not in base_name:
            return False

        return self._non_plant_pattern is None or not self._non_plant_pattern.search(base_name)

    @staticmethod
    def choose_name(candidates: Iterable[str]) -> str:
        texts = [text.strip() for text in candidates if text and text.strip()]
        for text in texts:
            if "plant" in text.lower():
                return text
        return next((text for text in texts if re.search(r"[a-z]", text, re.IGNORECASE)), "")

    @staticmethod
    def parse_fruit_count(name: str) -> int:
        match = FRUIT_COUNT_PATTERN.search(name)
        return int(match.group(1)) if match else 0

    @staticmethod
    def read_base_index(item: VisibleItem, fallback_index: int) -> int:
        direct = coerce_int(read_attribute(item.attributes, BASE_INDEX_ATTRS))
        if direct is not None:
            return direct

        for key, value in item.attributes.items():
            if "inventorybaseindex" in key.lower().replace("-", "").replace("_", ""):
                parsed = coerce_int(value)
                if parsed is not None:
                    return parsed

        return fallback_index

    @staticmethod
    def read_item_id(item: VisibleItem) -> Optional[str]:
        """Reads a stable id from the item or, failing that, its nearest ancestors."""

        search_nodes: List[Mapping[str, str]] = [item.attributes, *item.ancestors[:MAX_ANCESTOR_DEPTH]]

        for node in search_nodes:
            direct = read_attribute(node, ID_ATTRS)
            if direct:
                return direct

            for key, value in node.items():
                lowered = key.lower().replace("-", "")
                if not value:
                    continue
                if "inventoryid" in lowered or "itemid" in lowered or lowered.endswith(("uuid", "guid")):
                    return str(value)

        return None

    @staticmethod
    def count_badges(badges: Iterable[Tuple[str, bool]]) -> Tuple[Dict[str, int], Dict[str, int]]:
        counts = empty_letter_counts()
        bold = empty_bold_counts()

        for raw_letter, is_bold in badges:
            letter = (raw_letter or "").strip().upper()
            if len(letter) != 1 or letter not in MUTATION_LETTERS:
                continue
            # A bold lunar badge is a bound fruit and counts once, as bold.
            if is_bold and letter in bold:
                bold[letter] += 1
            else:
                counts[letter] += 1

        return counts, bold

    def extract_plant(self, item: VisibleItem, reconciliation: Optional[ReconciliationPass],
                      fallback_index: int) -> Optional[PlantEntry]:
        name = self.choose_name(item.name_candidates)
        if not name or not self.is_plant_name(name):
            return None

        dom_counts, dom_bold = self.count_badges(item.badges)
        parsed_fruit_count = self.parse_fruit_count(name)

        slot_states: List[SlotState] = []
        slot_source = SLOT_SOURCE_FALLBACK

        if reconciliation is not None:
            entry = reconciliation.match(
                self.read_base_index(item, fallback_index),
                self.read_item_id(item),
                name,
            )
            if entry is not None:
                slot_states = [slot.clone() for slot in entry.slot_states]
                slot_source = SLOT_SOURCE_INVENTORY

        fruit_count = parsed_fruit_count if parsed_fruit_count > 0 else len(slot_states)
        if fruit_count == 0:
            reason = "no slots yet" if slot_source == SLOT_SOURCE_INVENTORY else "no fruit count"
            self.logger.log(f"Skipping ungrown plant: {name} ({reason})", "DEBUG")
            return None

        return PlantEntry(
            name=name,
            fruit_count=fruit_count,
            slot_states=slot_states,
            slot_source=slot_source,
            dom_mutation_counts=dom_counts,
            dom_bold_counts=dom_bold,
            mutations=self.slot_helper.combine_letters(slot_states, dom_counts, dom_bold),
        )

    def scan(self, items: Sequence[VisibleItem], reconciliation: Optional[ReconciliationPass]) -> List[PlantEntry]:
        plants: List[PlantEntry] = []

        for index, item in enumerate(items):
            try:
                plant = self.extract_plant(item, reconciliation, index)
            except (TypeError, ValueError, AttributeError) as e:
                self.logger.log(f"Error extracting plant data from item {index}: {e}", "ERROR")
                continue
            if plant is not None:
                plants.append(plant)

        self.logger.log(f"Scanned {len(plants)} plants from inventory.", "DEBUG")
        return plants

    @staticmethod
    def visible_item_from_dict(raw: Mapping) -> Optional[VisibleItem]:
        """Builds a VisibleItem from an uploaded snapshot row."""

        if not isinstance(raw, Mapping):
            return None

        names = raw.get("names")
        if isinstance(names, str):
            names = [names]
        if not isinstance(names, (list, tuple)):
            names = [raw.get("name")] if isinstance(raw.get("name"), str) else []

        badges: List[Tuple[str, bool]] = []
        for badge in raw.get("badges") or []:
            if isinstance(badge, str):
                badges.append((badge, False))
            elif isinstance(badge, Mapping) and isinstance(badge.get("letter"), str):
                badges.append((badge["letter"], bool(badge.get("bold", False))))

        attributes = {str(k): str(v) for k, v in (raw.get("attributes") or {}).items() if v is not None}
        ancestors = tuple(
            {str(k): str(v) for k, v in ancestor.items() if v is not None}
            for ancestor in (raw.get("ancestors") or []) if isinstance(ancestor, Mapping)
        )

        return VisibleItem(
            name_candidates=tuple(str(n) for n in names if n),
            attributes=attributes,
            ancestors=ancestors,
            badges=tuple(badges),
        )
