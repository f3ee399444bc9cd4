import unittest
from typing import Any, Dict

from mutation_watch.helpers.game_state_helper import DEFAULT_SETTINGS, GameStateHelper
from mutation_watch.helpers.logging_helper import LoggingHelper


class FakeValue:
    """Mimics a Red Config value: awaitable when called, with an async set()."""

    def __init__(self, store: Dict[str, Any], key: str):
        self.store = store
        self.key = key

    async def __call__(self):
        return self.store.get(self.key)

    async def set(self, value):
        self.store[self.key] = value


class FakeGroup:
    def __init__(self, store: Dict[str, Any]):
        self._store = store

    def __getattr__(self, key):
        return FakeValue(self._store, key)


class FakeConfig:
    def __init__(self, settings=None, users=None):
        self.data: Dict[str, Any] = {"settings": settings}
        self.user_data: Dict[int, Dict[str, Any]] = users or {}
        self.settings = FakeValue(self.data, "settings")

    async def all_users(self):
        return {user_id: dict(values) for user_id, values in self.user_data.items()}

    def user_from_id(self, user_id: int):
        return FakeGroup(self.user_data.setdefault(user_id, {}))


class GameStateHelperTests(unittest.IsolatedAsyncioTestCase):
    async def test_load_merges_defaults(self) -> None:
        config = FakeConfig(settings={"poll_interval_seconds": 30}, users={7: {"notifications": False}})
        state = GameStateHelper(config, LoggingHelper(None, 0))
        await state.load_game_state()

        self.assertEqual(state.get_setting("poll_interval_seconds"), 30)
        self.assertEqual(state.get_setting("debounce_ms"), DEFAULT_SETTINGS["debounce_ms"])
        self.assertEqual(state.get_all_user_ids(), [7])
        self.assertFalse(state.notifications_enabled(7))
        self.assertEqual(state.get_snapshot(7), {})
        self.assertIsNone(state.get_channel_id(7))

    async def test_unknown_user_reads_defaults_without_creating_an_entry(self) -> None:
        state = GameStateHelper(FakeConfig(), LoggingHelper(None, 0))
        await state.load_game_state()

        self.assertTrue(state.notifications_enabled(99))
        self.assertIsNone(state.get_last_notified_window(99))
        self.assertEqual(state.get_all_user_ids(), [])

    async def test_commit_writes_only_dirty_state(self) -> None:
        config = FakeConfig(users={7: {"notifications": True}})
        state = GameStateHelper(config, LoggingHelper(None, 0))
        await state.load_game_state()

        await state.commit_to_disk()
        self.assertIsNone(config.data["settings"])

        state.set_setting("enabled", False)
        state.set_snapshot(8, {"inventory": [{"name": "Pepper Plant"}]})
        state.set_user_value(8, "last_notified_window", "rain:1000")
        await state.commit_to_disk()

        self.assertFalse(config.data["settings"]["enabled"])
        self.assertEqual(config.user_data[8]["snapshot"], {"inventory": [{"name": "Pepper Plant"}]})
        self.assertEqual(config.user_data[8]["last_notified_window"], "rain:1000")
        self.assertNotIn("snapshot", config.user_data[7])


if __name__ == "__main__":
    unittest.main()
