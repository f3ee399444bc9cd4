import json
import pathlib
from typing import Any, Dict, List

from ..models import ACTIVE_WEATHERS, WeatherDefinition
from .logging_helper import LoggingHelper
from .scan_helper import DEFAULT_NON_PLANT_WORDS

DEFAULT_WEATHER_DATA: Dict[str, Dict[str, Any]] = {
    "rain": {"name": "Rain", "emoji": "🌧️", "duration_minutes": 5, "action": "to make wet (W)"},
    "snow": {"name": "Snow", "emoji": "❄️", "duration_minutes": 5, "action": "to freeze (C→F)"},
    "dawn": {"name": "Dawn Moon", "emoji": "🌅", "duration_minutes": 10, "action": "to dawnlight (D)"},
    "amber": {"name": "Amber Moon", "emoji": "🌕", "duration_minutes": 10, "action": "to amberlight (A)"},
    "sunny": {"name": "Sunny", "emoji": "☀️"},
}


class DataHelper:
    """
    Handles the loading and validation of the bundled JSON data files.
    Parses raw JSON into WeatherDefinition objects and crop filter lists; read-only on the data path.
    """

    def __init__(self, data_path_obj: pathlib.Path, logger: LoggingHelper):
        self.data_path = data_path_obj
        self.logger = logger

        self.weather_data: Dict[str, WeatherDefinition] = {}
        self.non_plant_words: List[str] = []

    def load_all_data(self):
        """Master method to load all data files."""

        self.logger.init_log("Data loading process initiated.", "INFO")

        self.weather_data = self._load_weather_data()
        self.non_plant_words = self._load_crop_filters()

        self.logger.init_log("All data files loaded and processed.", "INFO")

    def _load_json_file(self, filename: str, default_data: Any) -> Any:
        """Generic JSON file loader with validation and logging. Does not write to disk."""

        file_path = self.data_path / filename
        log_prefix = f"Data Load ({filename}): "
        try:
            if file_path.exists():
                with open(file_path, 'r', encoding='utf-8') as f:
                    data = json.load(f)

                if data:
                    self.logger.init_log(f"{log_prefix}Successfully loaded {len(data)} entries.", "INFO")
                    return data
                else:
                    self.logger.init_log(f"{log_prefix}File is empty. Using default fallback data.", "WARNING")
                    return default_data
            else:
                self.logger.init_log(f"{log_prefix}File not found. Using default fallback data.", "ERROR")
                return default_data
        except (json.JSONDecodeError, OSError) as e:
            self.logger.init_log(f"{log_prefix}Failed to load or parse: {e}. Using default fallback data.", "ERROR")
            return default_data

    def _load_weather_data(self) -> Dict[str, WeatherDefinition]:
        data = self._load_json_file("weather.json", DEFAULT_WEATHER_DATA)
        if not isinstance(data, dict):
            self.logger.init_log("Data Load (weather.json): Expected an object keyed by weather. Using defaults.",
                                 "ERROR")
            data = DEFAULT_WEATHER_DATA

        definitions: Dict[str, WeatherDefinition] = {}
        for weather_id, details in data.items():
            if not isinstance(details, dict):
                continue
            try:
                definitions[weather_id] = WeatherDefinition(id=weather_id, **details)
            except TypeError as e:
                self.logger.init_log(f"Data Load (weather.json): Invalid entry '{weather_id}': {e}", "WARNING")

        for weather_id, details in DEFAULT_WEATHER_DATA.items():
            definitions.setdefault(weather_id, WeatherDefinition(id=weather_id, **details))
        return definitions

    def _load_crop_filters(self) -> List[str]:
        data = self._load_json_file("crop_filters.json", {"non_plant_words": list(DEFAULT_NON_PLANT_WORDS)})
        words = data.get("non_plant_words") if isinstance(data, dict) else None
        if not isinstance(words, list) or not words:
            return list(DEFAULT_NON_PLANT_WORDS)
        return [str(word).lower() for word in words if word]

    def durations_ms(self) -> Dict[str, int]:
        """Weather window lengths in milliseconds for the active weathers that declare one."""

        return {
            weather: int(definition.duration_minutes * 60 * 1000)
            for weather, definition in self.weather_data.items()
            if weather in ACTIVE_WEATHERS and definition.duration_minutes
        }

    def get_weather(self, weather: str) -> WeatherDefinition:
        return self.weather_data.get(weather) or WeatherDefinition(id=weather, name=weather.capitalize())
