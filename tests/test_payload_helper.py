import unittest

from mutation_watch.helpers.payload_helper import (
    as_item_list,
    coerce_int,
    coerce_string,
    first_of,
    non_empty_list,
    path,
    read_attribute,
    string_field,
)


class PayloadReaderTests(unittest.TestCase):
    def test_first_of_returns_first_non_none(self) -> None:
        reader = first_of(path("a", "b"), path("c"), lambda _: "fallback")
        self.assertEqual(reader({"a": {"b": 1}, "c": 2}), 1)
        self.assertEqual(reader({"c": 2}), 2)
        self.assertEqual(reader({}), "fallback")

    def test_path_stops_on_non_mapping(self) -> None:
        self.assertIsNone(path("a", "b")({"a": [1, 2]}))
        self.assertIsNone(path("a")(None))

    def test_non_empty_list(self) -> None:
        reader = non_empty_list(path("slots"))
        self.assertIsNone(reader({"slots": []}))
        self.assertIsNone(reader({"slots": "x"}))
        self.assertEqual(reader({"slots": ({"m": 1},)}), [{"m": 1}])

    def test_string_field_skips_blank_values(self) -> None:
        reader = string_field("name", "itemName")
        self.assertEqual(reader({"name": "  ", "itemName": "Pepper Plant"}), "Pepper Plant")
        self.assertIsNone(reader({"name": None}))

    def test_coerce_string(self) -> None:
        self.assertEqual(coerce_string(" hi "), "hi")
        self.assertEqual(coerce_string(3.0), "3")
        self.assertIsNone(coerce_string(True))
        self.assertIsNone(coerce_string(float("nan")))

    def test_coerce_int_reads_leading_digits(self) -> None:
        self.assertEqual(coerce_int("12px"), 12)
        self.assertEqual(coerce_int("-4"), -4)
        self.assertEqual(coerce_int(7.9), 7)
        self.assertIsNone(coerce_int("abc"))
        self.assertIsNone(coerce_int(False))

    def test_as_item_list(self) -> None:
        self.assertEqual(as_item_list([1, 2]), [1, 2])
        self.assertEqual(as_item_list({"items": [3]}), [3])
        self.assertIsNone(as_item_list({"other": []}))
        self.assertIsNone(as_item_list(None))

    def test_read_attribute_falls_back_to_case_insensitive(self) -> None:
        attributes = {"DATA-ID": "abc", "data-item-id": None}
        self.assertEqual(read_attribute(attributes, ["data-item-id", "data-id"]), "abc")
        self.assertIsNone(read_attribute({}, ["data-id"]))


if __name__ == "__main__":
    unittest.main()
