"""
WebSocket consumers for the chat application.

This module implements the realtime endpoint. The consumer is a thin
adapter: it decodes frames, routes them by event type to the session
manager or the dispatch engine, and forwards channel layer events to the
socket. All state lives in the process-wide services from chat.realtime.

Consumers:
    ChatConsumer: Handles one websocket connection

Frame format (both directions):
    {"type": "<event>", "data": <payload>}

Events (from client):
    - user_connected: register presence (data: userId)
    - heartbeat: refresh liveness (data: userId)
    - private_message: send a text message
    - image_message / audio_message: relay a persisted attachment message
    - mark_seen: read receipt
    - typing: typing indicator

Events (to client):
    welcome, online_users, user_online, user_offline, private_message,
    message_delivered, message_sent, messages_seen, typing, error_message

Error handling:
    A failure while handling one event is logged and reported to this
    connection as error_message; it never closes the socket or touches
    other connections.
"""

from __future__ import annotations

import json
import logging

from channels.generic.websocket import AsyncJsonWebsocketConsumer

from core.exceptions import BaseApplicationError

from chat.constants import MESSAGE_CONFIG, RealtimeEvent
from chat.exceptions import InvalidMessage
from chat.payloads import (
    extract_user_id,
    normalize_attachment,
    normalize_private_message,
    normalize_seen,
    normalize_typing,
)
from chat.realtime import get_realtime

logger = logging.getLogger(__name__)


class ChatConsumer(AsyncJsonWebsocketConsumer):
    """
    WebSocket consumer for real-time private messaging.

    Attributes:
        realtime: Process-wide RealtimeServices
    """

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.realtime = None
        self._handlers = {
            RealtimeEvent.USER_CONNECTED: self._handle_user_connected,
            RealtimeEvent.HEARTBEAT: self._handle_heartbeat,
            RealtimeEvent.PRIVATE_MESSAGE: self._handle_private_message,
            RealtimeEvent.IMAGE_MESSAGE: self._handle_image_message,
            RealtimeEvent.AUDIO_MESSAGE: self._handle_audio_message,
            RealtimeEvent.MARK_SEEN: self._handle_mark_seen,
            RealtimeEvent.TYPING: self._handle_typing,
        }

    # -------------------------------------------------------------------------
    # Connection lifecycle
    # -------------------------------------------------------------------------

    async def connect(self):
        self.realtime = get_realtime()
        self.realtime.sessions.ensure_started()

        subprotocols = self.scope.get("subprotocols", [])
        await self.accept(subprotocol="jwt" if subprotocols[:1] == ["jwt"] else None)
        await self.realtime.sessions.connect(self.channel_name)

    async def disconnect(self, close_code):
        if self.realtime is None:
            return
        logger.debug(f"Connection {self.channel_name} closing with code {close_code}")
        await self.realtime.sessions.disconnect(self.channel_name)

    # -------------------------------------------------------------------------
    # Inbound frames
    # -------------------------------------------------------------------------

    async def receive(self, text_data=None, bytes_data=None, **kwargs):
        if not text_data:
            await self._send_error("Binary frames are not supported")
            return
        try:
            content = await self.decode_json(text_data)
        except json.JSONDecodeError:
            logger.warning(f"Dropped undecodable frame on {self.channel_name}")
            await self._send_error("Invalid JSON")
            return
        await self.receive_json(content, **kwargs)

    async def receive_json(self, content, **kwargs):
        if not isinstance(content, dict):
            await self._send_error("Invalid message format")
            return

        event = content.get("type")
        handler = self._handlers.get(event)
        if handler is None:
            logger.warning(f"Dropped unknown event {event!r} on {self.channel_name}")
            await self._send_error(f"Unknown event type: {event}")
            return

        try:
            await handler(content.get("data"))
        except InvalidMessage as exc:
            logger.warning(f"Dropped malformed {event} on {self.channel_name}: {exc.message}")
            await self.send_event(RealtimeEvent.ERROR_MESSAGE, exc.to_dict())
        except BaseApplicationError as exc:
            logger.warning(f"{event} failed on {self.channel_name}: {exc}")
            await self.send_event(RealtimeEvent.ERROR_MESSAGE, exc.to_dict())
        except Exception:
            logger.exception(f"Error handling {event} on {self.channel_name}")
            await self._send_error(MESSAGE_CONFIG.SERVER_ERROR_TEXT)

    # -------------------------------------------------------------------------
    # Event handlers
    # -------------------------------------------------------------------------

    async def _handle_user_connected(self, data):
        user_id = extract_user_id(data)
        authenticated = self._authenticated_user_id()
        if user_id and authenticated and user_id != authenticated:
            raise InvalidMessage("Cannot register as another user")
        await self.realtime.sessions.register(self.channel_name, user_id)

    async def _handle_heartbeat(self, data):
        self.realtime.sessions.heartbeat(self.channel_name, extract_user_id(data))

    async def _handle_private_message(self, data):
        intent = normalize_private_message(data)
        await self.realtime.dispatcher.dispatch(
            intent, self.channel_name, registered_user_id=self._acting_user_id()
        )

    async def _handle_image_message(self, data):
        intent = normalize_attachment(data, kind="image")
        await self.realtime.dispatcher.relay_attachment(
            intent, self.channel_name, registered_user_id=self._acting_user_id()
        )

    async def _handle_audio_message(self, data):
        intent = normalize_attachment(data, kind="audio")
        await self.realtime.dispatcher.relay_attachment(
            intent, self.channel_name, registered_user_id=self._acting_user_id()
        )

    async def _handle_mark_seen(self, data):
        intent = normalize_seen(data)
        acting = self._acting_user_id()
        if acting is not None and acting != intent.user_id:
            raise InvalidMessage("Cannot mark messages seen for another user")
        await self.realtime.dispatcher.mark_seen(intent)

    async def _handle_typing(self, data):
        intent = normalize_typing(data)
        acting = self._acting_user_id()
        if acting is not None and acting != intent.sender_id:
            raise InvalidMessage("Cannot send typing events for another user")
        await self.realtime.dispatcher.relay_typing(intent)

    # -------------------------------------------------------------------------
    # Outbound
    # -------------------------------------------------------------------------

    async def realtime_event(self, event):
        """Forward realtime.event messages from the channel layer to the socket."""
        if event.get("exclude") == self.channel_name:
            return
        await self.send_event(event["event"], event.get("data"))

    async def send_event(self, event: str, data) -> None:
        await self.send_json({"type": event, "data": data})

    async def _send_error(self, message: str) -> None:
        await self.send_event(RealtimeEvent.ERROR_MESSAGE, {"error": message})

    # -------------------------------------------------------------------------
    # Identity
    # -------------------------------------------------------------------------

    def _authenticated_user_id(self) -> str | None:
        user = self.scope.get("user")
        if user is not None and user.is_authenticated:
            return str(user.pk)
        return None

    def _acting_user_id(self) -> str | None:
        """User this connection speaks for: JWT user first, then registration."""
        return self._authenticated_user_id() or self.realtime.sessions.user_for(
            self.channel_name
        )
