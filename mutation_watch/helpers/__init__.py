from .time_helper import TimeHelper
from .lock_helper import LockHelper
from .logging_helper import LoggingHelper
from .payload_helper import first_of, path, string_field
from .slot_helper import SlotHelper
from .inventory_helper import InventoryHelper, InventorySource, ReconciliationPass, normalize_plant_name
from .scan_helper import ScanHelper
from .garden_helper import GardenHelper
from .evaluation_helper import EvaluationHelper
from .summary_helper import SummaryHelper
from .registry_helper import SummaryRegistry, SummaryEnvelope, create_debug_metadata
from .weather_helper import WeatherHub, normalize_weather_kind
from .scheduler_helper import ScanScheduler
from .tracker_helper import MutationTracker
from .data_helper import DataHelper
from .notification_helper import NotificationHelper, window_key
from .game_state_helper import GameStateHelper
