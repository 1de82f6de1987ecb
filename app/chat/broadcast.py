"""
Presence broadcast.

Pushes presence snapshots and deltas to connected clients and answers
"who is online" for non-realtime callers (health check, REST views).

Every connection joins PRESENCE_CONFIG.PRESENCE_GROUP on connect, so a
group send reaches all of them; ``exclude`` leaves out the subject's own
connection for deltas.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from chat.constants import PRESENCE_CONFIG, RealtimeEvent

if TYPE_CHECKING:
    from chat.presence import PresenceRegistry
    from chat.protocols import RealtimeTransport

logger = logging.getLogger(__name__)


class PresenceBroadcast:
    """Presence notifications over a RealtimeTransport."""

    def __init__(
        self,
        registry: PresenceRegistry,
        transport: RealtimeTransport,
        group: str = PRESENCE_CONFIG.PRESENCE_GROUP,
    ):
        self.registry = registry
        self.transport = transport
        self.group = group

    def get_online_users(self) -> set[str]:
        return set(self.registry.list_online())

    async def broadcast_online_list(self) -> None:
        """Push the full online list to every connection."""
        await self._emit(RealtimeEvent.ONLINE_USERS, self.registry.list_online())

    async def send_online_list(self, handle: str) -> None:
        """Push the full online list to one connection."""
        try:
            await self.transport.send_to_connection(
                handle, RealtimeEvent.ONLINE_USERS, self.registry.list_online()
            )
        except Exception:
            logger.warning(f"Could not send online list to {handle}", exc_info=True)

    async def broadcast_user_online(self, user_id, exclude: str | None = None) -> None:
        """Tell every other connection that user_id came online."""
        await self._emit(RealtimeEvent.USER_ONLINE, str(user_id), exclude=exclude)

    async def broadcast_user_offline(self, user_id, exclude: str | None = None) -> None:
        """Tell every other connection that user_id went offline."""
        await self._emit(RealtimeEvent.USER_OFFLINE, str(user_id), exclude=exclude)

    async def _emit(self, event: str, data, exclude: str | None = None) -> None:
        try:
            await self.transport.send_to_group(self.group, event, data, exclude=exclude)
        except Exception:
            logger.warning(f"Presence broadcast {event} failed", exc_info=True)
