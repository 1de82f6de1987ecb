"""
Realtime session manager.

Owns the lifecycle of every websocket connection in this process:

    Connected(anonymous) --user_connected--> Registered(user) --close--> Disconnected

Disconnects do not take a user offline immediately. Removal is scheduled
after a grace period and only happens if the registry still points at the
disconnected handle, so a quick reconnect (tab refresh) never produces a
``user_offline``. A periodic sweep reclaims entries whose connections died
without a clean close.

Both the grace timers and the sweep are asyncio tasks owned by this object;
``stop()`` cancels all of them.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING

from django.utils import timezone

from core.services import ServiceResult

from chat.constants import PRESENCE_CONFIG, RealtimeEvent, user_group_name

if TYPE_CHECKING:
    from chat.broadcast import PresenceBroadcast
    from chat.presence import PresenceRegistry
    from chat.protocols import RealtimeTransport

logger = logging.getLogger(__name__)


@dataclass
class Connection:
    """One live websocket connection."""

    handle: str
    user_id: str | None = None
    created_at: datetime = field(default_factory=timezone.now)


class RealtimeSessionManager:
    """
    Connection lifecycle, heartbeats, grace-period removal and stale sweep.

    Args:
        registry: Presence registry shared with the dispatch engine
        broadcast: Presence broadcast for online/offline notifications
        transport: Realtime transport (group membership, welcome frame)
        grace_seconds: Delay before a disconnected user is removed
        sweep_interval: Seconds between stale sweeps
        stale_after: Max seconds without activity before the sweep removes a user
    """

    def __init__(
        self,
        registry: PresenceRegistry,
        broadcast: PresenceBroadcast,
        transport: RealtimeTransport,
        grace_seconds: float = PRESENCE_CONFIG.DISCONNECT_GRACE_SECONDS,
        sweep_interval: float = PRESENCE_CONFIG.SWEEP_INTERVAL_SECONDS,
        stale_after: float = PRESENCE_CONFIG.STALE_AFTER_SECONDS,
    ):
        self.registry = registry
        self.broadcast = broadcast
        self.transport = transport
        self.grace_seconds = grace_seconds
        self.sweep_interval = sweep_interval
        self.stale_after = stale_after

        self.connections: dict[str, Connection] = {}
        self._grace_tasks: dict[str, asyncio.Task] = {}
        self._sweeper: asyncio.Task | None = None

    # -------------------------------------------------------------------------
    # Connection events
    # -------------------------------------------------------------------------

    async def connect(self, handle: str) -> Connection:
        """Track a new anonymous connection and send the welcome frame."""
        connection = Connection(handle=handle)
        self.connections[handle] = connection

        await self.transport.add_to_group(PRESENCE_CONFIG.PRESENCE_GROUP, handle)
        await self.transport.send_to_connection(
            handle,
            RealtimeEvent.WELCOME,
            {"message": "Connected to chat server", "connectionId": handle},
        )
        logger.info(f"Connection {handle} opened")
        return connection

    async def register(self, handle: str, user_id) -> ServiceResult[bool]:
        """
        Handle ``user_connected``: bind the connection to user_id.

        An empty user id is ignored and the connection stays anonymous.

        Returns:
            ServiceResult with True if the connection was registered
        """
        if not user_id:
            logger.debug(f"Ignoring user_connected without user id on {handle}")
            return ServiceResult.success(False)

        user_id = str(user_id)
        connection = self.connections.get(handle)
        if connection is None:
            connection = Connection(handle=handle)
            self.connections[handle] = connection

        if connection.user_id and connection.user_id != user_id:
            await self._release_user(connection)

        await self.transport.add_to_group(user_group_name(user_id), handle)
        connection.user_id = user_id
        self.registry.register(user_id, handle)

        await self.broadcast.send_online_list(handle)
        await self.broadcast.broadcast_user_online(user_id, exclude=handle)

        logger.info(f"User {user_id} registered on {handle}")
        return ServiceResult.success(True)

    def heartbeat(self, handle: str, user_id=None) -> None:
        """Refresh liveness for user_id (or the user bound to handle)."""
        connection = self.connections.get(handle)
        user_id = user_id or (connection.user_id if connection else None)
        if user_id:
            self.registry.touch(user_id)

    def user_for(self, handle: str) -> str | None:
        connection = self.connections.get(handle)
        return connection.user_id if connection else None

    async def disconnect(self, handle: str) -> None:
        """
        Handle transport close: schedule grace-period removal if the handle
        is the user's current one.
        """
        connection = self.connections.pop(handle, None)

        try:
            await self.transport.discard_from_group(PRESENCE_CONFIG.PRESENCE_GROUP, handle)
            if connection and connection.user_id:
                await self.transport.discard_from_group(
                    user_group_name(connection.user_id), handle
                )
        except Exception:
            logger.warning(f"Group cleanup failed for {handle}", exc_info=True)

        user_id = self.registry.user_for_handle(handle)
        logger.info(f"Connection {handle} closed (user {user_id or 'anonymous'})")
        if user_id is None:
            return

        self._schedule_removal(user_id, handle)

    def _schedule_removal(self, user_id: str, handle: str) -> None:
        previous = self._grace_tasks.pop(handle, None)
        if previous is not None:
            previous.cancel()
        self._grace_tasks[handle] = asyncio.create_task(
            self._remove_after_grace(user_id, handle)
        )

    async def _remove_after_grace(self, user_id: str, handle: str) -> None:
        try:
            await asyncio.sleep(self.grace_seconds)
            if not self.registry.unregister_if_current(user_id, handle):
                logger.debug(f"User {user_id} reconnected within grace period")
                return

            logger.info(f"User {user_id} went offline after grace period")
            await self.broadcast.broadcast_online_list()
            await self.broadcast.broadcast_user_offline(user_id)
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception(f"Grace-period removal failed for user {user_id}")
        finally:
            if self._grace_tasks.get(handle) is asyncio.current_task():
                del self._grace_tasks[handle]

    async def _release_user(self, connection: Connection) -> None:
        """Unbind a connection from its previous user (re-registration)."""
        await self.transport.discard_from_group(
            user_group_name(connection.user_id), connection.handle
        )
        if self.registry.unregister_if_current(connection.user_id, connection.handle):
            await self.broadcast.broadcast_user_offline(
                connection.user_id, exclude=connection.handle
            )

    # -------------------------------------------------------------------------
    # Stale sweep
    # -------------------------------------------------------------------------

    async def sweep_once(self) -> list[str]:
        """Remove stale presence entries and broadcast each removal."""
        removed = self.registry.sweep_stale(self.stale_after)
        for user_id in removed:
            logger.info(f"StaleConnectionRemoval: user {user_id} inactive for {self.stale_after}s")
            await self.broadcast.broadcast_online_list()
            await self.broadcast.broadcast_user_offline(user_id)
        return removed

    async def _sweep_loop(self) -> None:
        while True:
            await asyncio.sleep(self.sweep_interval)
            try:
                await self.sweep_once()
            except Exception:
                logger.exception("Presence sweep failed")

    @property
    def is_running(self) -> bool:
        return self._sweeper is not None and not self._sweeper.done()

    def ensure_started(self) -> None:
        """Start the periodic sweep if it is not already running."""
        if self.is_running:
            return
        self._sweeper = asyncio.create_task(self._sweep_loop())
        logger.info(
            f"Presence sweep started (every {self.sweep_interval}s, "
            f"stale after {self.stale_after}s)"
        )

    async def stop(self) -> None:
        """Cancel the sweep and every pending grace timer."""
        tasks = list(self._grace_tasks.values())
        if self._sweeper is not None:
            tasks.append(self._sweeper)
        for task in tasks:
            task.cancel()
        # Tasks left over from a loop that has since closed cannot be awaited.
        loop = asyncio.get_running_loop()
        local = [task for task in tasks if task.get_loop() is loop]
        if local:
            await asyncio.gather(*local, return_exceptions=True)

        self._grace_tasks.clear()
        self._sweeper = None
        logger.info("Realtime session manager stopped")

    @property
    def pending_removals(self) -> int:
        return len(self._grace_tasks)
