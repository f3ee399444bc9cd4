import re
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Set

from ..models import (
    MUTATION_LETTERS,
    MUTATION_STAGES,
    SlotState,
    StageProgress,
    empty_bold_counts,
    empty_letter_counts,
)
from .logging_helper import LoggingHelper
from .payload_helper import coerce_int, coerce_string, iter_collection

PROGRESS_PATTERN = re.compile(r"(\d+)\s*/\s*(\d+)")

MUTATION_COLLECTION_KEYS = (
    "mutations", "mutationStates", "mutation_states", "mutationHistory",
    "appliedMutations", "pendingMutations", "mutationsList",
)
MUTATION_FIELD_KEYS = (
    "mutation", "mutationName", "mutationType", "currentMutation", "activeMutation", "latestMutation",
)
ENTRY_TEXT_KEYS = (
    "name", "displayName", "display_name", "mutationName", "mutation", "label", "title", "text",
    "type", "kind", "state", "status", "key",
)
ENTRY_NESTED_KEYS = ("mutation", "mut", "data", "info", "details", "entry", "node", "item")
PROGRESS_PAIRS = (
    ("complete", "total"), ("completed", "total"), ("completed", "goal"), ("count", "total"),
    ("count", "required"), ("current", "max"), ("value", "max"),
)
PROGRESS_NESTED_KEYS = ("progress", "state", "status", "data", "info", "details", "counts")
STAGE_KEY_NEEDLES = (
    ("wet", "wet"), ("water", "wet"), ("rain", "wet"), ("freeze", "wet"), ("frozen", "wet"),
    ("chill", "wet"), ("dawn", "dawn"), ("amber", "amber"),
)
EXPLICIT_PROGRESS_KEYS = ("progress", "mutationProgress")


class SlotHelper:
    """
    Normalizes free-form slot mutation descriptions into SlotState records.
    All SlotState values produced here are immutable; merges return new objects.
    """

    SLOT_DEBUG_LIMIT = 5

    def __init__(self, logger: LoggingHelper):
        self.logger = logger
        self._missing_text_samples = 0

    def reset_debug_samples(self):
        self._missing_text_samples = 0

    @staticmethod
    def compute_slot_state(descriptors: Iterable[Any]) -> SlotState:
        """Classifies each descriptor by substring and accumulates flags, letters and stage progress."""

        letters: Set[str] = set()
        flags = dict(
            has_frozen=False, has_wet=False, has_chilled=False,
            has_dawnlit=False, has_amberlit=False, has_dawnbound=False, has_amberbound=False,
            has_rainbow=False, has_gold=False,
        )
        progress: Dict[str, StageProgress] = {}
        occurrences = {stage: 0 for stage in MUTATION_STAGES}

        def record_progress(stage: str, complete: int, total: int):
            if total <= 0 or complete < 0:
                return
            observed = StageProgress(complete=complete, total=total)
            if observed.supersedes(progress.get(stage)):
                progress[stage] = observed

        for raw in descriptors:
            normalized = str(raw if raw is not None else "").lower()

            frozen_like = "frozen" in normalized or "freeze" in normalized
            wet_like = "wet" in normalized
            chilled_like = "chill" in normalized
            dawn_bound = "dawnbound" in normalized
            amber_bound = "amberbound" in normalized
            dawn_like = "dawn" in normalized and not dawn_bound
            amber_like = "amber" in normalized and not amber_bound
            rainbow_like = "rainbow" in normalized
            gold_like = "gold" in normalized

            if frozen_like:
                flags["has_frozen"] = True
                letters.add("F")
            if wet_like:
                flags["has_wet"] = True
                letters.add("W")
            if chilled_like:
                flags["has_chilled"] = True
                letters.add("C")
            if dawn_bound:
                flags["has_dawnbound"] = True
                letters.add("D")
            if amber_bound:
                flags["has_amberbound"] = True
                letters.add("A")
            if dawn_like:
                flags["has_dawnlit"] = True
                letters.add("D")
            if amber_like:
                flags["has_amberlit"] = True
                letters.add("A")
            if rainbow_like:
                flags["has_rainbow"] = True
                letters.add("R")
            if gold_like:
                flags["has_gold"] = True
                letters.add("G")

            stage_hits = {
                "wet": frozen_like or wet_like or chilled_like,
                "dawn": dawn_like or dawn_bound,
                "amber": amber_like or amber_bound,
            }
            for stage, hit in stage_hits.items():
                if hit:
                    occurrences[stage] += 1

            match = PROGRESS_PATTERN.search(normalized)
            if match:
                complete, total = int(match.group(1)), int(match.group(2))
                for stage, hit in stage_hits.items():
                    if hit:
                        record_progress(stage, complete, total)

        for stage in MUTATION_STAGES:
            if stage not in progress and occurrences[stage] > 0:
                progress[stage] = StageProgress(complete=occurrences[stage], total=occurrences[stage])

        return SlotState(
            letters=tuple(sorted(letters)),
            progress=MappingProxyType(progress),
            **flags,
        )

    def build_slot_state(self, raw_slot: Any) -> SlotState:
        """Builds a SlotState from one raw inventory slot record."""

        descriptors = self.descriptors_from_slot(raw_slot)
        if not descriptors and self._missing_text_samples < self.SLOT_DEBUG_LIMIT:
            keys = list(raw_slot.keys())[:10] if isinstance(raw_slot, Mapping) else []
            self.logger.log(f"[Mutations] Inventory slot missing mutation text (keys: {keys})", "DEBUG")
            self._missing_text_samples += 1
        return self.compute_slot_state(descriptors)

    @classmethod
    def descriptors_from_slot(cls, raw_slot: Any) -> List[str]:
        if not isinstance(raw_slot, Mapping):
            return []

        results: List[str] = []
        seen_text: Set[str] = set()

        def push(text: Optional[str]):
            if not text:
                return
            normalized = text.strip()
            if normalized and normalized not in seen_text:
                seen_text.add(normalized)
                results.append(normalized)

        for key in MUTATION_COLLECTION_KEYS:
            for entry in iter_collection(raw_slot.get(key)):
                push(cls.normalize_mutation_entry(entry))

        for key in MUTATION_FIELD_KEYS:
            push(cls.normalize_mutation_entry(raw_slot.get(key)))

        if not results:
            for key, value in raw_slot.items():
                lower_key = str(key).lower()
                stage = next((stage for needle, stage in STAGE_KEY_NEEDLES if needle in lower_key), None)
                if stage is None:
                    continue
                stage_progress = cls.extract_progress(value)
                if stage_progress:
                    push(f"{stage} {stage_progress.complete}/{stage_progress.total}")

        return results

    @classmethod
    def normalize_mutation_entry(cls, entry: Any, seen: Optional[Set[int]] = None) -> Optional[str]:
        """Reduces a string, number or nested record to one descriptor string."""

        if isinstance(entry, str):
            return entry
        if not isinstance(entry, Mapping):
            return coerce_string(entry) if isinstance(entry, (int, float)) else None

        seen = seen if seen is not None else set()
        if id(entry) in seen:
            return None
        seen.add(id(entry))

        text = next((coerce_string(entry.get(key)) for key in ENTRY_TEXT_KEYS if coerce_string(entry.get(key))), None)

        if not text:
            for key in ENTRY_NESTED_KEYS:
                nested = entry.get(key)
                if not nested:
                    continue
                nested_text = cls.normalize_mutation_entry(nested, seen)
                if nested_text:
                    text = nested_text
                    break

        stage_progress = cls.extract_progress(entry, seen)
        if stage_progress:
            fraction = f"{stage_progress.complete}/{stage_progress.total}"
            if not text:
                text = fraction
            elif not PROGRESS_PATTERN.search(text):
                text = f"{text} {fraction}"

        return text

    @classmethod
    def extract_progress(cls, value: Any, seen: Optional[Set[int]] = None) -> Optional[StageProgress]:
        """Finds a complete/total pair in a record or any of its usual nested containers."""

        if not isinstance(value, (Mapping, list, tuple)):
            return None

        seen = seen if seen is not None else set()
        if id(value) in seen and not isinstance(value, Mapping):
            return None
        seen.add(id(value))

        if isinstance(value, (list, tuple)):
            for entry in value:
                found = cls.extract_progress(entry, seen)
                if found:
                    return found
            return None

        for complete_key, total_key in PROGRESS_PAIRS:
            complete = coerce_int(value.get(complete_key))
            total = coerce_int(value.get(total_key))
            if complete is not None and total is not None and total > 0 and complete >= 0:
                return StageProgress(complete=complete, total=total)

        for key in PROGRESS_NESTED_KEYS:
            nested = value.get(key)
            if not nested or (isinstance(nested, (Mapping, list, tuple)) and id(nested) in seen):
                continue
            found = cls.extract_progress(nested, seen)
            if found:
                return found

        return None

    @staticmethod
    def merge_explicit_progress(slot_state: SlotState, raw_slot: Any) -> SlotState:
        """Folds `progress`/`mutationProgress` stage records of a raw slot into a new SlotState."""

        if not isinstance(raw_slot, Mapping):
            return slot_state

        merged = slot_state
        for key in EXPLICIT_PROGRESS_KEYS:
            record = raw_slot.get(key)
            if not isinstance(record, Mapping):
                continue
            for stage in MUTATION_STAGES:
                entry = record.get(stage)
                if not isinstance(entry, Mapping):
                    continue
                complete = coerce_int(entry.get("complete"))
                total = coerce_int(entry.get("total"))
                if total is None or total <= 0 or complete is None or complete < 0:
                    continue
                merged = merged.with_progress(stage, StageProgress(complete=complete, total=total))

        return merged

    @staticmethod
    def letter_counts(slot_states: Sequence[SlotState]) -> Dict[str, int]:
        """
        Per-letter badge counts as they would be rendered for these slots.
        D and A count lit fruit only; bound fruit are counted by bold_counts.
        """

        counts = empty_letter_counts()
        for slot in slot_states:
            if slot.has_frozen:
                counts["F"] += 1
            if slot.has_wet:
                counts["W"] += 1
            if slot.has_chilled:
                counts["C"] += 1
            if slot.has_dawnlit and not slot.has_dawnbound:
                counts["D"] += 1
            if slot.has_amberlit and not slot.has_amberbound:
                counts["A"] += 1
            if slot.has_rainbow:
                counts["R"] += 1
            if slot.has_gold:
                counts["G"] += 1
        return counts

    @staticmethod
    def bold_counts(slot_states: Sequence[SlotState]) -> Dict[str, int]:
        counts = empty_bold_counts()
        for slot in slot_states:
            if slot.has_dawnbound:
                counts["D"] += 1
            if slot.has_amberbound:
                counts["A"] += 1
        return counts

    @staticmethod
    def combine_letters(slot_states: Sequence[SlotState], dom_counts: Mapping[str, int],
                        dom_bold_counts: Mapping[str, int]) -> str:
        """Merges slot letters and on-screen badges into one sorted letter string, e.g. 'DFW'."""

        combined: Set[str] = set()
        for slot in slot_states:
            combined.update(slot.letters)
            if slot.has_dawnbound:
                combined.add("D")
            if slot.has_amberbound:
                combined.add("A")

        for letter in MUTATION_LETTERS:
            if dom_counts.get(letter, 0) > 0:
                combined.add(letter)

        for letter, count in dom_bold_counts.items():
            if count > 0:
                combined.add(letter)

        return "".join(sorted(combined))
