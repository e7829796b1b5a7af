"""
state.py — Pending environment selections
==========================================
The only state the integration keeps between turns. When a user has
access to more than one environment we show a picker and park the
authentication result here until they answer.

Entries are keyed by (conversation_id, user_id), so two users never
see each other's selection. Writing a key overwrites whatever was there:
a user who restarts the flow silently abandons the earlier round.
Entries also expire ttl_seconds after they were written, and every save
first drops whatever has expired, so abandoned pickers do not pile up.
"""

import logging
import threading
import time
from typing import Optional

from essembi_teams.schema import PendingSelection

logger = logging.getLogger(__name__)

SessionKey = tuple[str, str]


class SessionStore:
    """In-memory, thread-safe scratchpad of PendingSelection per user."""

    def __init__(self, ttl_seconds: int = 3600):
        self.ttl_seconds = ttl_seconds
        self._lock = threading.Lock()
        # (conversation_id, user_id) -> (selection, expires_at)
        self._items: dict[SessionKey, tuple[PendingSelection, float]] = {}

    def save(self, conversation_id: str, user_id: str, selection: PendingSelection) -> None:
        now = time.time()
        with self._lock:
            # Drop abandoned pickers before the map grows
            self._sweep_locked(now)
            self._items[(conversation_id, user_id)] = (selection, now + self.ttl_seconds)

    def load(self, conversation_id: str, user_id: str) -> Optional[PendingSelection]:
        key = (conversation_id, user_id)
        with self._lock:
            item = self._items.get(key)
            if item is None:
                return None
            selection, expires_at = item
            if expires_at <= time.time():
                del self._items[key]
                logger.debug("Pending selection for %s expired", key)
                return None
            return selection

    def clear(self, conversation_id: str, user_id: str) -> None:
        with self._lock:
            self._items.pop((conversation_id, user_id), None)

    def _sweep_locked(self, now: float) -> int:
        expired = [k for k, (_, expires_at) in self._items.items() if expires_at <= now]
        for k in expired:
            del self._items[k]
        if expired:
            logger.debug("Swept %d expired pending selections", len(expired))
        return len(expired)

    def sweep_expired(self) -> int:
        """Drop expired entries. Returns how many were removed."""
        with self._lock:
            return self._sweep_locked(time.time())

    def __len__(self) -> int:
        """Number of live (unexpired) selections."""
        with self._lock:
            self._sweep_locked(time.time())
            return len(self._items)
