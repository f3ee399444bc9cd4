from typing import Any, Dict, Optional

from .logging_helper import LoggingHelper

DEFAULT_SETTINGS: Dict[str, Any] = {
    "enabled": True,
    "poll_interval_seconds": 60,
    "debounce_ms": 75,
    "log_channel_id": 0,
    "debug_decisions": False,
}

DEFAULT_USER_STATE: Dict[str, Any] = {
    "snapshot": {},
    "notifications": True,
    "channel_id": None,
    "last_notified_window": None,
}


class GameStateHelper:
    """
    The single source of truth for persisted cog settings and per-player state.
    Keeps an in-memory copy and is the sole gatekeeper for disk I/O with Red's Config.
    """

    def __init__(self, config_object: Any, logger: LoggingHelper):
        self.config = config_object
        self.logger = logger
        self.settings: Dict[str, Any] = dict(DEFAULT_SETTINGS)
        self.users: Dict[int, Dict[str, Any]] = {}
        self._dirty_users = set()
        self._settings_dirty = False

    async def load_game_state(self):
        """Loads global settings and every stored player from disk, filling in defaults."""

        stored_settings = await self.config.settings()
        self.settings = dict(DEFAULT_SETTINGS)
        self.settings.update(stored_settings or {})

        all_users = await self.config.all_users()
        self.users = {}
        for user_id, user_data in all_users.items():
            merged = dict(DEFAULT_USER_STATE)
            merged.update(user_data or {})
            self.users[int(user_id)] = merged

        await self.logger.log_to_discord(
            f"System Startup: Mutation watch state loaded for {len(self.users)} player(s).", "INFO")

    def get_setting(self, key: str, default: Any = None) -> Any:
        return self.settings.get(key, DEFAULT_SETTINGS.get(key, default))

    def set_setting(self, key: str, value: Any):
        self.settings[key] = value
        self._settings_dirty = True

    def get_all_user_ids(self):
        return list(self.users.keys())

    def get_user_data(self, user_id: int) -> Dict[str, Any]:
        return self.users.get(user_id) or dict(DEFAULT_USER_STATE)

    def _user_entry(self, user_id: int) -> Dict[str, Any]:
        if user_id not in self.users:
            self.users[user_id] = dict(DEFAULT_USER_STATE)
        return self.users[user_id]

    def set_user_value(self, user_id: int, key: str, value: Any):
        self._user_entry(user_id)[key] = value
        self._dirty_users.add(user_id)

    def get_snapshot(self, user_id: int) -> Dict[str, Any]:
        snapshot = self.get_user_data(user_id).get("snapshot")
        return snapshot if isinstance(snapshot, dict) else {}

    def set_snapshot(self, user_id: int, snapshot: Dict[str, Any]):
        self.set_user_value(user_id, "snapshot", snapshot)

    def notifications_enabled(self, user_id: int) -> bool:
        return bool(self.get_user_data(user_id).get("notifications", True))

    def get_channel_id(self, user_id: int) -> Optional[int]:
        return self.get_user_data(user_id).get("channel_id")

    def get_last_notified_window(self, user_id: int) -> Optional[str]:
        return self.get_user_data(user_id).get("last_notified_window")

    async def commit_to_disk(self):
        """Writes changed settings and players back to Config."""

        if self._settings_dirty:
            await self.config.settings.set(self.settings)
            self._settings_dirty = False

        dirty, self._dirty_users = self._dirty_users, set()
        for user_id in dirty:
            user_config = self.config.user_from_id(user_id)
            for key, value in self.users.get(user_id, {}).items():
                await getattr(user_config, key).set(value)
