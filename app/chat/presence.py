"""
In-memory presence registry.

Maps a user id to the connection handle (Channels channel name) that most
recently registered for it, plus the time of its last activity.

Design Decisions:
    - Process-local storage, no persistence. A horizontally scaled
      deployment would need a shared store; see DESIGN.md.
    - Last write wins: a newer registration silently replaces the older
      handle, and removal is conditional on the handle still matching so a
      late disconnect can never erase a reconnected session.
    - Mutations hold a lock. Consumers run on one event loop, but sync
      code (health check, REST views under WSGI) reads from other threads.

Usage:
    from chat.realtime import get_presence_registry

    registry = get_presence_registry()
    registry.register(user_id, channel_name)
    registry.unregister_if_current(user_id, channel_name)
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import TYPE_CHECKING

from django.utils import timezone

if TYPE_CHECKING:
    from collections.abc import Callable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PresenceEntry:
    """Current connection handle and last activity for one user."""

    handle: str
    last_seen: datetime


class PresenceRegistry:
    """
    Registry of online users keyed by user id.

    User ids are normalized to strings so that ids arriving from JSON
    (sometimes numbers, sometimes strings) address the same entry.

    Args:
        clock: Callable returning the current aware datetime. Defaults to
            django.utils.timezone.now so freezegun can control it in tests.
    """

    def __init__(self, clock: Callable[[], datetime] | None = None):
        self._clock = clock or timezone.now
        self._entries: dict[str, PresenceEntry] = {}
        self._lock = threading.Lock()

    @staticmethod
    def _key(user_id) -> str:
        return str(user_id)

    def register(self, user_id, handle: str) -> None:
        """Insert or overwrite the entry for user_id with a fresh timestamp."""
        key = self._key(user_id)
        with self._lock:
            previous = self._entries.get(key)
            self._entries[key] = PresenceEntry(handle=handle, last_seen=self._clock())

        if previous and previous.handle != handle:
            logger.debug(
                f"User {key} re-registered on {handle} (replacing {previous.handle})"
            )

    def touch(self, user_id) -> None:
        """Refresh last activity for user_id; no-op when not registered."""
        key = self._key(user_id)
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None:
                self._entries[key] = PresenceEntry(
                    handle=entry.handle, last_seen=self._clock()
                )

    def lookup(self, user_id) -> str | None:
        """Return the current connection handle for user_id, or None."""
        entry = self._entries.get(self._key(user_id))
        return entry.handle if entry else None

    def get_entry(self, user_id) -> PresenceEntry | None:
        return self._entries.get(self._key(user_id))

    def user_for_handle(self, handle: str) -> str | None:
        """Return the user id whose current handle is ``handle``, if any."""
        with self._lock:
            for key, entry in self._entries.items():
                if entry.handle == handle:
                    return key
        return None

    def unregister_if_current(self, user_id, handle: str) -> bool:
        """
        Remove the entry for user_id only if it still points at handle.

        Returns:
            True if the entry was removed, False if it was absent or has
            been replaced by a newer connection.
        """
        key = self._key(user_id)
        with self._lock:
            entry = self._entries.get(key)
            if entry is None or entry.handle != handle:
                return False
            del self._entries[key]
        return True

    def list_online(self) -> list[str]:
        """Return the ids of all registered users, sorted for stable output."""
        with self._lock:
            return sorted(self._entries)

    def sweep_stale(self, max_age: timedelta | float) -> list[str]:
        """
        Remove every entry whose last activity is older than max_age.

        Args:
            max_age: timedelta or number of seconds

        Returns:
            Ids of the removed users, for downstream broadcast
        """
        if not isinstance(max_age, timedelta):
            max_age = timedelta(seconds=max_age)
        cutoff = self._clock() - max_age

        with self._lock:
            stale = [
                key for key, entry in self._entries.items() if entry.last_seen < cutoff
            ]
            for key in stale:
                del self._entries[key]

        return sorted(stale)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, user_id) -> bool:
        return self._key(user_id) in self._entries
