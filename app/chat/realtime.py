"""
Process-wide wiring of the realtime core.

The presence registry, session manager, dispatch engine and translation
gateway are constructed once per server process and shared by every
consumer. ``get_realtime()`` builds them lazily from settings;
``reset_realtime()`` tears them down (tests, shutdown).

Related files:
    - consumers.py: Calls get_realtime() on connect
    - lifespan.py: Starts and stops the services with the ASGI server
    - core/views.py: Reads get_presence_registry() for the health check
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from channels.layers import get_channel_layer

from chat.broadcast import PresenceBroadcast
from chat.constants import presence_setting, translation_setting
from chat.dispatch import MessageDispatchEngine
from chat.presence import PresenceRegistry
from chat.sessions import RealtimeSessionManager
from chat.store import OrmMessageStore, OrmUserDirectory
from chat.translation import TranslationGateway

logger = logging.getLogger(__name__)

# Channel layer message type; consumers handle it in realtime_event()
REALTIME_EVENT_TYPE = "realtime.event"


class ChannelLayerTransport:
    """
    RealtimeTransport over the Channels layer.

    Channel layers have no "all but one" group send, so ``exclude`` travels
    with the event and the receiving consumer drops it for that channel.
    """

    def __init__(self, alias: str = "default"):
        self.alias = alias

    @property
    def layer(self):
        return get_channel_layer(self.alias)

    @staticmethod
    def _event(event: str, data, exclude: str | None = None) -> dict:
        return {"type": REALTIME_EVENT_TYPE, "event": event, "data": data, "exclude": exclude}

    async def send_to_connection(self, handle: str, event: str, data) -> None:
        await self.layer.send(handle, self._event(event, data))

    async def send_to_group(self, group: str, event: str, data, exclude: str | None = None) -> None:
        await self.layer.group_send(group, self._event(event, data, exclude))

    async def add_to_group(self, group: str, handle: str) -> None:
        await self.layer.group_add(group, handle)

    async def discard_from_group(self, group: str, handle: str) -> None:
        await self.layer.group_discard(group, handle)


@dataclass
class RealtimeServices:
    """Everything a consumer needs, built once per process."""

    registry: PresenceRegistry
    gateway: TranslationGateway
    transport: ChannelLayerTransport
    broadcast: PresenceBroadcast
    sessions: RealtimeSessionManager
    dispatcher: MessageDispatchEngine

    async def start(self) -> None:
        self.sessions.ensure_started()

    async def shutdown(self) -> None:
        await self.sessions.stop()
        await self.gateway.aclose()


_registry = PresenceRegistry()
_services: RealtimeServices | None = None


def get_presence_registry() -> PresenceRegistry:
    return _registry


def build_realtime(registry: PresenceRegistry | None = None) -> RealtimeServices:
    """Construct the realtime services from settings."""
    registry = registry or _registry
    transport = ChannelLayerTransport()
    gateway = TranslationGateway.from_settings()
    broadcast = PresenceBroadcast(registry, transport)
    sessions = RealtimeSessionManager(
        registry,
        broadcast,
        transport,
        grace_seconds=presence_setting("DISCONNECT_GRACE_SECONDS"),
        sweep_interval=presence_setting("SWEEP_INTERVAL_SECONDS"),
        stale_after=presence_setting("STALE_AFTER_SECONDS"),
    )
    dispatcher = MessageDispatchEngine(
        registry=registry,
        gateway=gateway,
        store=OrmMessageStore(),
        directory=OrmUserDirectory(),
        transport=transport,
        default_source_language=translation_setting("DEFAULT_SOURCE_LANGUAGE"),
    )
    return RealtimeServices(
        registry=registry,
        gateway=gateway,
        transport=transport,
        broadcast=broadcast,
        sessions=sessions,
        dispatcher=dispatcher,
    )


def get_realtime() -> RealtimeServices:
    global _services
    if _services is None:
        _services = build_realtime()
        logger.info("Realtime services initialized")
    return _services


async def reset_realtime() -> None:
    """Stop and discard the process services and clear presence."""
    global _services
    if _services is not None:
        await _services.shutdown()
    _services = None
    _registry.clear()
