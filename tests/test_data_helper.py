import json
import pathlib
import tempfile
import unittest

from mutation_watch.helpers.data_helper import DataHelper
from mutation_watch.helpers.logging_helper import LoggingHelper
from mutation_watch.helpers.scan_helper import DEFAULT_NON_PLANT_WORDS

BUNDLED_DATA = pathlib.Path(__file__).resolve().parents[1] / "mutation_watch" / "data"


class DataHelperTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.data_path = pathlib.Path(self._tmp.name)
        self.helper = DataHelper(self.data_path, LoggingHelper(None, 0))

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def write(self, filename: str, content: str):
        (self.data_path / filename).write_text(content, encoding="utf-8")

    def test_missing_files_fall_back_to_defaults(self) -> None:
        self.helper.load_all_data()

        self.assertEqual(self.helper.get_weather("snow").name, "Snow")
        self.assertEqual(self.helper.non_plant_words, list(DEFAULT_NON_PLANT_WORDS))
        self.assertEqual(self.helper.durations_ms(), {
            "rain": 300000, "snow": 300000, "dawn": 600000, "amber": 600000,
        })

    def test_malformed_json_falls_back(self) -> None:
        self.write("weather.json", "{not json")
        self.write("crop_filters.json", "[]")
        self.helper.load_all_data()

        self.assertEqual(self.helper.get_weather("amber").name, "Amber Moon")
        self.assertEqual(self.helper.non_plant_words, list(DEFAULT_NON_PLANT_WORDS))

    def test_file_values_override_defaults(self) -> None:
        self.write("weather.json", json.dumps({
            "rain": {"name": "Drizzle", "emoji": "💧", "duration_minutes": 2.5, "action": "to make wet (W)"},
            "snow": {"name": "Blizzard", "bogus_field": 1},
        }))
        self.write("crop_filters.json", json.dumps({"non_plant_words": ["Seed", "", "Gnome"]}))
        self.helper.load_all_data()

        self.assertEqual(self.helper.get_weather("rain").name, "Drizzle")
        self.assertEqual(self.helper.durations_ms()["rain"], 150000)
        # The invalid snow entry is replaced by the built-in one.
        self.assertEqual(self.helper.get_weather("snow").name, "Snow")
        self.assertEqual(self.helper.non_plant_words, ["seed", "gnome"])

    def test_unknown_weather_gets_a_plain_definition(self) -> None:
        self.helper.load_all_data()
        definition = self.helper.get_weather("hail")

        self.assertEqual(definition.name, "Hail")
        self.assertIsNone(definition.duration_minutes)
        self.assertNotIn("sunny", self.helper.durations_ms())

    def test_bundled_data_loads(self) -> None:
        helper = DataHelper(BUNDLED_DATA, LoggingHelper(None, 0))
        helper.load_all_data()

        self.assertEqual(set(helper.durations_ms()), {"rain", "snow", "dawn", "amber"})
        self.assertIn("seed", helper.non_plant_words)


if __name__ == "__main__":
    unittest.main()
