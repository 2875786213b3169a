"""
Secure Finance Manager - Identity Cache

PURPOSE: Process-wide mapping of usernames to user IDs
SCOPE: Lookup used by every manager to scope queries to the authenticated user
DEPENDENCIES: None
"""

import logging
import threading
from typing import Dict, Iterable, Optional, Tuple

logger = logging.getLogger(__name__)

UNKNOWN_USER_ID = -1


class UserCache:
    """Username -> user ID cache, loaded at startup and updated on user changes.

    Every read and write of the mapping happens under the instance lock, so a
    rename racing a lookup sees either the old or the new name, never a
    half-applied state.
    """

    _instance: Optional['UserCache'] = None
    _instance_lock = threading.Lock()

    def __init__(self):
        self._users: Dict[str, int] = {}
        self._lock = threading.Lock()

    @classmethod
    def get_instance(cls) -> 'UserCache':
        """Return the process-wide cache, creating it on first use."""
        with cls._instance_lock:
            if cls._instance is None:
                cls._instance = cls()
            return cls._instance

    def load(self, users: Iterable[Tuple[str, int]]) -> None:
        """Replace the whole mapping with the given (username, user_id) pairs."""
        users = dict(users)
        with self._lock:
            self._users = users
        logger.info(f"Identity cache loaded with {len(users)} users")

    def add_user(self, username: str, user_id: int) -> None:
        with self._lock:
            self._users[username] = user_id

    def remove_user(self, username: str) -> None:
        with self._lock:
            self._users.pop(username, None)

    def rename_user(self, old_username: str, new_username: str) -> None:
        """Move the ID of old_username to new_username."""
        with self._lock:
            user_id = self._users.pop(old_username, UNKNOWN_USER_ID)
            if user_id != UNKNOWN_USER_ID:
                self._users[new_username] = user_id

    def get_user_id(self, username: str) -> int:
        """Return the user ID for username, or UNKNOWN_USER_ID."""
        with self._lock:
            return self._users.get(username, UNKNOWN_USER_ID)

    def __len__(self) -> int:
        with self._lock:
            return len(self._users)

    def __contains__(self, username: str) -> bool:
        with self._lock:
            return username in self._users
