from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Tuple

MUTATION_LETTERS: Tuple[str, ...] = ("F", "W", "C", "D", "A", "R", "G")
BOLD_LETTERS: Tuple[str, ...] = ("D", "A")
MUTATION_STAGES: Tuple[str, ...] = ("wet", "dawn", "amber")

SLOT_SOURCE_INVENTORY = "inventory"
SLOT_SOURCE_GARDEN = "garden"
SLOT_SOURCE_FALLBACK = "fallback"


def empty_letter_counts(initial: int = 0) -> Dict[str, int]:
    return {letter: initial for letter in MUTATION_LETTERS}


def empty_bold_counts() -> Dict[str, int]:
    return {letter: 0 for letter in BOLD_LETTERS}


@dataclass(frozen=True)
class StageProgress:
    """Completed/total fruit count reported for one mutation stage."""
    complete: int
    total: int

    def supersedes(self, other: Optional["StageProgress"]) -> bool:
        """True when this observation should replace `other` (larger total wins, ties go to higher complete)."""
        if other is None:
            return True
        return self.total > other.total or (self.total == other.total and self.complete > other.complete)


@dataclass(frozen=True)
class SlotState:
    """Canonical mutation record for a single fruit slot."""
    letters: Tuple[str, ...] = ()
    has_frozen: bool = False
    has_wet: bool = False
    has_chilled: bool = False
    has_dawnlit: bool = False
    has_amberlit: bool = False
    has_dawnbound: bool = False
    has_amberbound: bool = False
    has_rainbow: bool = False
    has_gold: bool = False
    progress: Mapping[str, StageProgress] = field(default_factory=lambda: MappingProxyType({}))

    @property
    def has_any_dawn(self) -> bool:
        return self.has_dawnlit or self.has_dawnbound

    @property
    def has_any_amber(self) -> bool:
        return self.has_amberlit or self.has_amberbound

    @property
    def has_mutation_signal(self) -> bool:
        return bool(self.letters) or any((
            self.has_wet, self.has_frozen, self.has_chilled,
            self.has_dawnlit, self.has_amberlit, self.has_dawnbound, self.has_amberbound,
            self.has_rainbow, self.has_gold,
        ))

    @property
    def has_conflict(self) -> bool:
        return (self.has_any_dawn and self.has_any_amber) or (self.has_rainbow and self.has_gold)

    def with_progress(self, stage: str, progress: StageProgress) -> "SlotState":
        """Returns a new SlotState with `progress` folded into `stage` using the max-total rule."""
        if not progress.supersedes(self.progress.get(stage)):
            return self
        merged = dict(self.progress)
        merged[stage] = progress
        return replace(self, progress=MappingProxyType(merged))

    def clone(self) -> "SlotState":
        return replace(self, letters=tuple(self.letters), progress=MappingProxyType(dict(self.progress)))

    def signature(self) -> str:
        base = "".join(self.letters) or "_"
        bound_flags = ("d" if self.has_dawnbound else "") + ("a" if self.has_amberbound else "")
        return f"{base}+{bound_flags}" if bound_flags else base


@dataclass
class PlantEntry:
    """One plant as seen by the evaluator, whatever source it was assembled from."""
    name: str
    fruit_count: int
    slot_states: List[SlotState] = field(default_factory=list)
    slot_source: str = SLOT_SOURCE_FALLBACK
    dom_mutation_counts: Dict[str, int] = field(default_factory=empty_letter_counts)
    dom_bold_counts: Dict[str, int] = field(default_factory=empty_bold_counts)
    mutations: str = ""

    @property
    def plant_id(self) -> str:
        if self.slot_states:
            slot_signature = ",".join(slot.signature() for slot in self.slot_states)
        else:
            slot_signature = "no-slots"
        return f"{self.name}|{self.mutations}|{self.fruit_count}|{slot_signature}"

    def dom_count(self, letter: str) -> int:
        return self.dom_mutation_counts.get(letter, 0)

    def dom_bold(self, letter: str) -> int:
        return self.dom_bold_counts.get(letter, 0)


@dataclass
class ReconciledInventoryEntry:
    """An inventory record available for matching during one reconciliation pass."""
    base_index: int
    id: Optional[str]
    name: Optional[str]
    normalized_name: Optional[str]
    slot_states: Tuple[SlotState, ...]
    raw: Any = None
    used: bool = False


@dataclass(frozen=True)
class InventoryResult:
    """The raw items accepted from one inventory source."""
    items: Tuple[Any, ...]
    source: str
    has_slot_data: bool


@dataclass(frozen=True)
class VisibleItem:
    """
    A scanned on-screen inventory item.
    `attributes` holds the element's own data attributes; `ancestors` holds the
    attribute maps of its parent chain, nearest first.
    """
    name_candidates: Tuple[str, ...]
    attributes: Mapping[str, str] = field(default_factory=dict)
    ancestors: Tuple[Mapping[str, str], ...] = ()
    badges: Tuple[Tuple[str, bool], ...] = ()
