import time
from datetime import datetime
from typing import Optional

import pytz


class TimeHelper:
    """A static helper class for standardized time and date operations."""
    EST = pytz.timezone('US/Eastern')

    @staticmethod
    def now_ms() -> int:
        """Returns the current Unix timestamp in milliseconds."""
        return int(time.time() * 1000)

    @staticmethod
    def get_current_timestamp() -> int:
        """Returns the current Unix timestamp as an integer."""
        return int(time.time())

    @staticmethod
    def format_est_clock(timestamp_ms: Optional[int]) -> str:
        if timestamp_ms is None:
            return "unknown"
        return datetime.fromtimestamp(timestamp_ms / 1000, TimeHelper.EST).strftime('%H:%M:%S %Z')

    @staticmethod
    def format_duration(duration_ms: Optional[int]) -> str:
        if duration_ms is None:
            return "unknown"
        total_seconds = max(0, int(duration_ms // 1000))
        minutes, seconds = divmod(total_seconds, 60)
        return f"{minutes}m {seconds:02d}s"
