import time
from typing import Any, Dict, Hashable, Optional


class LockHelper:
    """Manages all non-persistent, in-memory scan pass locks using a dictionary for fast lookups."""

    def __init__(self):
        self._locks: Dict[Hashable, Dict[str, Any]] = {}

    def get_lock(self, key: Hashable) -> Optional[Dict[str, Any]]:
        """Retrieves the lock object for a key if a pass holds it."""
        return self._locks.get(key)

    def is_locked(self, key: Hashable) -> bool:
        return key in self._locks

    def add_lock(self, key: Hashable, lock_type: str, message: str) -> bool:
        """
        Applies a lock to a key, including a timestamp.
        Returns False and does nothing if the key is already locked.
        """
        if key in self._locks:
            return False

        self._locks[key] = {
            "key": key,
            "type": lock_type,
            "message": message,
            "timestamp": time.time()
        }
        return True

    def remove_lock(self, key: Hashable):
        """Removes the lock for a specific key."""
        self._locks.pop(key, None)

    def locks_for_user(self, user_id: int) -> Dict[Hashable, Dict[str, Any]]:
        return {key: lock for key, lock in self._locks.items()
                if isinstance(key, tuple) and key and key[0] == user_id}

    def clear_all_locks(self):
        """Removes all active locks. To be used on cog unload."""
        self._locks.clear()
