import unittest

from mutation_watch.helpers.logging_helper import LoggingHelper
from mutation_watch.helpers.slot_helper import SlotHelper
from mutation_watch.models import StageProgress


class SlotStateTests(unittest.TestCase):
    def setUp(self) -> None:
        self.helper = SlotHelper(LoggingHelper(None, 0))

    def test_cold_chain_descriptors_share_the_wet_stage(self) -> None:
        wet = SlotHelper.compute_slot_state(["wet"])
        frozen = SlotHelper.compute_slot_state(["frozen"])
        chilled = SlotHelper.compute_slot_state(["chilled"])

        self.assertTrue(wet.has_wet)
        self.assertFalse(wet.has_frozen)
        self.assertTrue(frozen.has_frozen)
        self.assertFalse(frozen.has_wet)
        self.assertTrue(chilled.has_chilled)

        expected = {"wet": StageProgress(complete=1, total=1)}
        self.assertEqual(dict(wet.progress), expected)
        self.assertEqual(dict(frozen.progress), expected)
        self.assertEqual(dict(chilled.progress), expected)

    def test_letters_are_sorted_and_unique(self) -> None:
        state = SlotHelper.compute_slot_state(["Wet", "Frozen", "wet again", "Gold"])
        self.assertEqual(state.letters, ("F", "G", "W"))

    def test_bound_suppresses_lit_for_the_same_descriptor(self) -> None:
        state = SlotHelper.compute_slot_state(["Dawnbound"])
        self.assertTrue(state.has_dawnbound)
        self.assertFalse(state.has_dawnlit)
        self.assertTrue(state.has_any_dawn)
        self.assertEqual(state.letters, ("D",))

    def test_lit_and_bound_from_separate_descriptors_both_set(self) -> None:
        state = SlotHelper.compute_slot_state(["Amberlit", "Amberbound"])
        self.assertTrue(state.has_amberlit)
        self.assertTrue(state.has_amberbound)

    def test_fraction_uses_largest_total(self) -> None:
        state = SlotHelper.compute_slot_state(["wet 1/3", "wet 2/5", "frozen 4/5"])
        self.assertEqual(state.progress["wet"], StageProgress(complete=4, total=5))

    def test_fraction_replaces_occurrence_count(self) -> None:
        state = SlotHelper.compute_slot_state(["Dawnlit 2/4", "dawn"])
        self.assertEqual(state.progress["dawn"], StageProgress(complete=2, total=4))

    def test_empty_and_none_descriptors(self) -> None:
        state = SlotHelper.compute_slot_state([None, ""])
        self.assertEqual(state.letters, ())
        self.assertFalse(state.has_mutation_signal)
        self.assertEqual(dict(state.progress), {})

    def test_conflict_flags(self) -> None:
        self.assertTrue(SlotHelper.compute_slot_state(["dawnlit", "amberlit"]).has_conflict)
        self.assertTrue(SlotHelper.compute_slot_state(["rainbow", "gold"]).has_conflict)
        self.assertFalse(SlotHelper.compute_slot_state(["wet", "gold"]).has_conflict)

    def test_with_progress_returns_new_object(self) -> None:
        state = SlotHelper.compute_slot_state(["wet"])
        merged = state.with_progress("wet", StageProgress(complete=2, total=3))

        self.assertIsNot(merged, state)
        self.assertEqual(state.progress["wet"], StageProgress(complete=1, total=1))
        self.assertEqual(merged.progress["wet"], StageProgress(complete=2, total=3))

    def test_with_progress_keeps_larger_observation(self) -> None:
        state = SlotHelper.compute_slot_state(["wet 3/4"])
        self.assertIs(state.with_progress("wet", StageProgress(complete=1, total=2)), state)

    def test_clone_is_equal_but_distinct(self) -> None:
        state = SlotHelper.compute_slot_state(["wet 1/2"])
        clone = state.clone()
        self.assertEqual(clone, state)
        self.assertIsNot(clone, state)


class SlotDescriptorTests(unittest.TestCase):
    def setUp(self) -> None:
        self.helper = SlotHelper(LoggingHelper(None, 0))

    def test_descriptors_from_mutation_collection(self) -> None:
        raw = {"mutations": ["Wet", {"name": "Dawnlit", "progress": {"complete": 1, "total": 2}}]}
        self.assertEqual(SlotHelper.descriptors_from_slot(raw), ["Wet", "Dawnlit 1/2"])

    def test_descriptors_from_single_field_and_nested_entry(self) -> None:
        raw = {"mutation": {"data": {"label": "Frozen"}}}
        self.assertEqual(SlotHelper.descriptors_from_slot(raw), ["Frozen"])

    def test_descriptors_from_stage_named_keys(self) -> None:
        raw = {"rainProgress": {"current": 2, "max": 3}, "amberState": {"count": 1, "required": 4}}
        self.assertEqual(SlotHelper.descriptors_from_slot(raw), ["wet 2/3", "amber 1/4"])

    def test_descriptors_are_deduplicated(self) -> None:
        raw = {"mutations": ["Wet", "Wet"], "mutation": "Wet"}
        self.assertEqual(SlotHelper.descriptors_from_slot(raw), ["Wet"])

    def test_non_mapping_slot_has_no_descriptors(self) -> None:
        self.assertEqual(SlotHelper.descriptors_from_slot(["wet"]), [])
        self.assertEqual(SlotHelper.descriptors_from_slot(None), [])

    def test_self_referencing_entry_terminates(self) -> None:
        entry = {}
        entry["data"] = entry
        self.assertIsNone(SlotHelper.normalize_mutation_entry(entry))

    def test_build_slot_state_from_raw_slot(self) -> None:
        state = self.helper.build_slot_state({"mutations": ["Chilled", "Frozen 1/2"]})
        self.assertTrue(state.has_chilled)
        self.assertTrue(state.has_frozen)
        self.assertEqual(state.progress["wet"], StageProgress(complete=1, total=2))

    def test_merge_explicit_progress(self) -> None:
        state = SlotHelper.compute_slot_state(["wet"])
        raw = {"progress": {"wet": {"complete": 2, "total": 3}, "dawn": {"complete": "1", "total": 0}}}
        merged = SlotHelper.merge_explicit_progress(state, raw)

        self.assertEqual(merged.progress["wet"], StageProgress(complete=2, total=3))
        self.assertNotIn("dawn", merged.progress)

    def test_letter_and_bold_counts(self) -> None:
        slots = [
            SlotHelper.compute_slot_state(["wet"]),
            SlotHelper.compute_slot_state(["Dawnbound"]),
            SlotHelper.compute_slot_state(["Amberlit", "Frozen"]),
        ]
        counts = SlotHelper.letter_counts(slots)
        bold = SlotHelper.bold_counts(slots)

        self.assertEqual(counts["W"], 1)
        self.assertEqual(counts["D"], 0)
        self.assertEqual(counts["A"], 1)
        self.assertEqual(counts["F"], 1)
        self.assertEqual(bold, {"D": 1, "A": 0})
        self.assertEqual(SlotHelper.combine_letters(slots, counts, bold), "ADFW")


if __name__ == "__main__":
    unittest.main()
