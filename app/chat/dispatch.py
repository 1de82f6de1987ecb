"""
Message dispatch engine.

Handles one outbound message end to end: validation, receiver language
resolution, translation with pass-through fallback, persistence, fan-out to
the receiver's live connections and the sender acknowledgement. Also owns
read receipts, attachment relay and typing relay.

Ordering:
    The message insert happens before any delivery or acknowledgement, so a
    client reload always sees at least what was delivered. The conversation
    pointer update is a second, non-atomic write; if it fails the message
    is still delivered and the failure is logged.

Delivery:
    The receiver view goes to the receiver's registered handle AND to the
    per-user group, so a receiver connection may see the same message
    twice. Clients de-duplicate by ``_id``/``clientMessageId``.

Every public coroutine returns a ServiceResult; failures the client should
see are additionally pushed to the sending connection as ``error_message``.

Related files:
    - payloads.py: Produces the intents consumed here
    - presence.py: Registry consulted for online receivers
    - translation.py: Gateway raising TranslationUnavailable
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from core.exceptions import BaseApplicationError
from core.services import ServiceResult

from chat.constants import MESSAGE_CONFIG, TRANSLATION_CONFIG, RealtimeEvent, user_group_name
from chat.exceptions import InvalidMessage, StoreWriteFailure, TranslationUnavailable

if TYPE_CHECKING:
    from chat.payloads import AttachmentIntent, MessageIntent, SeenIntent, TypingIntent
    from chat.presence import PresenceRegistry
    from chat.protocols import (
        MessageStore,
        RealtimeTransport,
        StoredMessage,
        UserDirectory,
    )
    from chat.translation import TranslationGateway

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DispatchOutcome:
    """Result of a successful dispatch."""

    message: StoredMessage
    delivered: bool
    translated: bool

    @property
    def status(self) -> str:
        return "delivered" if self.delivered else "sent"


class MessageDispatchEngine:
    """
    Dispatches private messages between users.

    Args:
        registry: Presence registry (who is online, on which handle)
        gateway: Translation gateway
        store: Message store
        directory: User directory (preferred languages)
        transport: Realtime transport used for every push
        default_source_language: Language assumed for outbound text
    """

    def __init__(
        self,
        registry: PresenceRegistry,
        gateway: TranslationGateway,
        store: MessageStore,
        directory: UserDirectory,
        transport: RealtimeTransport,
        default_source_language: str = TRANSLATION_CONFIG.DEFAULT_SOURCE_LANGUAGE,
    ):
        self.registry = registry
        self.gateway = gateway
        self.store = store
        self.directory = directory
        self.transport = transport
        self.default_source_language = default_source_language

    # -------------------------------------------------------------------------
    # Private messages
    # -------------------------------------------------------------------------

    async def dispatch(
        self,
        intent: MessageIntent,
        sender_handle: str,
        registered_user_id=None,
    ) -> ServiceResult[DispatchOutcome]:
        """
        Translate, persist and deliver one message.

        Args:
            intent: Normalized message
            sender_handle: Connection that sent the message (receives the ack)
            registered_user_id: User the sending connection is registered or
                authenticated as; when set, the intent's sender must match

        Returns:
            ServiceResult with DispatchOutcome. Error codes:
            INVALID_MESSAGE, STORE_WRITE_FAILURE
        """
        if registered_user_id is not None and str(registered_user_id) != intent.sender_id:
            return await self._reject(
                sender_handle,
                InvalidMessage("Sender does not match the connected user"),
            )

        try:
            conversation = await self.store.get_conversation(intent.conversation_id)
        except Exception as exc:
            return await self._store_failure(sender_handle, exc, "conversation lookup")

        if conversation is None:
            return await self._reject(
                sender_handle,
                InvalidMessage(
                    "Conversation not found",
                    details={"conversationId": intent.conversation_id},
                ),
            )
        if not (
            conversation.has_participant(intent.sender_id)
            and conversation.has_participant(intent.receiver_id)
        ):
            return await self._reject(
                sender_handle,
                InvalidMessage(
                    "Sender and receiver must both belong to the conversation",
                    details={"conversationId": intent.conversation_id},
                ),
            )

        source = intent.source_language or self.default_source_language
        translated_text, translated_language = await self._translate_for(
            intent.text, source, intent.receiver_id
        )

        try:
            message = await self.store.create_message(
                conversation_id=conversation.id,
                sender_id=intent.sender_id,
                receiver_id=intent.receiver_id,
                original_text=intent.text,
                translated_text=translated_text,
                original_language=source,
                translated_language=translated_language,
                client_message_id=intent.client_message_id,
            )
        except Exception as exc:
            return await self._store_failure(sender_handle, exc, "message insert")

        try:
            await self.store.record_conversation_message(
                conversation.id,
                message.id,
                {intent.sender_id, intent.receiver_id},
            )
        except Exception:
            # Message row exists without the conversation pointer; delivery goes on.
            logger.error(
                f"Conversation {conversation.id} pointer not updated "
                f"for message {message.id}",
                exc_info=True,
            )

        delivered = await self._deliver(message, sender_handle)

        ack_event = (
            RealtimeEvent.MESSAGE_DELIVERED if delivered else RealtimeEvent.MESSAGE_SENT
        )
        await self._safe_send(
            sender_handle,
            ack_event,
            {
                "messageId": message.id,
                "clientMessageId": message.client_message_id or None,
                "conversationId": message.conversation_id,
                "receiver": message.receiver_id,
                "status": "delivered" if delivered else "sent",
                "timestamp": message.timestamp,
            },
        )

        logger.debug(
            f"Dispatched message {message.id} from {message.sender_id} "
            f"to {message.receiver_id} ({'delivered' if delivered else 'sent'})"
        )

        return ServiceResult.success(
            DispatchOutcome(
                message=message,
                delivered=delivered,
                translated=translated_language != source,
            )
        )

    async def _translate_for(self, text: str, source: str, receiver_id: str):
        """Return (text, language) as the receiver should see them."""
        try:
            target = await self.directory.get_preferred_language(receiver_id)
        except Exception:
            logger.warning(
                f"Language lookup failed for user {receiver_id}; skipping translation",
                exc_info=True,
            )
            target = None

        if not target or target == source:
            return text, source

        try:
            return await self.gateway.translate(text, source, target), target
        except TranslationUnavailable as exc:
            logger.warning(
                f"Translation {source}->{target} unavailable for user {receiver_id}, "
                f"delivering original text: {exc.message}"
            )
            return text, source

    async def _deliver(self, message: StoredMessage, sender_handle: str) -> bool:
        """
        Push the message to the receiver and to the sender's other connections.

        The sending connection is left out of the sender echo; it gets the ack.

        Returns:
            True if the receiver had a live connection at lookup time
        """
        receiver_view = message.to_payload(view="receiver")
        handle = self.registry.lookup(message.receiver_id)

        if handle is not None:
            await self._safe_send(handle, RealtimeEvent.PRIVATE_MESSAGE, receiver_view)
            await self._safe_group(
                user_group_name(message.receiver_id),
                RealtimeEvent.PRIVATE_MESSAGE,
                receiver_view,
            )

        await self._safe_group(
            user_group_name(message.sender_id),
            RealtimeEvent.PRIVATE_MESSAGE,
            message.to_payload(view="sender"),
            exclude=sender_handle,
        )
        return handle is not None

    # -------------------------------------------------------------------------
    # Read receipts
    # -------------------------------------------------------------------------

    async def mark_seen(self, intent: SeenIntent) -> ServiceResult[int]:
        """
        Mark every unseen message addressed to intent.user_id as seen.

        Best effort: failures are logged and returned, never pushed to the
        client. ``messages_seen`` is only emitted when something changed and
        the other participant is online.
        """
        try:
            conversation = await self.store.get_conversation(intent.conversation_id)
            if conversation is None or not conversation.has_participant(intent.user_id):
                logger.warning(
                    f"mark_seen ignored: user {intent.user_id} not in "
                    f"conversation {intent.conversation_id}"
                )
                return ServiceResult.failure(
                    "Conversation not found", error_code="NOT_FOUND"
                )

            count = await self.store.mark_seen(conversation.id, intent.user_id)
            await self.store.add_reader(conversation.id, intent.user_id)
        except Exception as exc:
            logger.error(
                f"mark_seen failed for conversation {intent.conversation_id}",
                exc_info=True,
            )
            return ServiceResult.from_exception(exc)

        other_id = conversation.other_participant(intent.user_id)
        if count and other_id and self.registry.lookup(other_id) is not None:
            await self._safe_group(
                user_group_name(other_id),
                RealtimeEvent.MESSAGES_SEEN,
                {"conversationId": conversation.id, "userId": intent.user_id},
            )

        return ServiceResult.success(count)

    # -------------------------------------------------------------------------
    # Attachments and typing
    # -------------------------------------------------------------------------

    async def relay_attachment(
        self,
        intent: AttachmentIntent,
        sender_handle: str,
        registered_user_id=None,
    ) -> ServiceResult[StoredMessage]:
        """
        Relay an attachment message that was persisted through the REST API.

        The persisted record is loaded by id and relayed as
        ``private_message``; the client-supplied copy is never trusted.
        """
        try:
            message = await self.store.get_message(intent.message_id)
        except Exception as exc:
            return await self._store_failure(sender_handle, exc, "attachment lookup")

        if message is None or message.message_type != intent.kind:
            return await self._reject(
                sender_handle,
                InvalidMessage(
                    f"No {intent.kind} message with id {intent.message_id}",
                    details={"messageId": intent.message_id},
                ),
            )
        if registered_user_id is not None and str(registered_user_id) != message.sender_id:
            return await self._reject(
                sender_handle,
                InvalidMessage("Only the sender can relay an attachment"),
            )

        payload = message.to_payload(view="receiver")
        handle = self.registry.lookup(message.receiver_id)
        if handle is not None:
            await self._safe_send(handle, RealtimeEvent.PRIVATE_MESSAGE, payload)
            await self._safe_group(
                user_group_name(message.receiver_id),
                RealtimeEvent.PRIVATE_MESSAGE,
                payload,
            )

        await self._safe_send(
            sender_handle, RealtimeEvent.PRIVATE_MESSAGE, message.to_payload(view="sender")
        )
        return ServiceResult.success(message)

    async def relay_typing(self, intent: TypingIntent) -> ServiceResult[bool]:
        """Forward a typing indicator to the receiver; dropped when offline."""
        if self.registry.lookup(intent.receiver_id) is None:
            return ServiceResult.success(False)

        await self._safe_group(
            user_group_name(intent.receiver_id),
            RealtimeEvent.TYPING,
            {
                "conversationId": intent.conversation_id,
                "from": intent.sender_id,
                "to": intent.receiver_id,
                "isTyping": intent.is_typing,
            },
        )
        return ServiceResult.success(True)

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    async def _reject(self, handle: str, exc: BaseApplicationError) -> ServiceResult:
        logger.info(f"Rejected event from {handle}: {exc}")
        await self._safe_send(handle, RealtimeEvent.ERROR_MESSAGE, exc.to_dict())
        return ServiceResult.from_exception(exc)

    async def _store_failure(self, handle: str, exc: Exception, context: str) -> ServiceResult:
        logger.error(f"Message store failure during {context}: {exc}", exc_info=True)
        failure = StoreWriteFailure(MESSAGE_CONFIG.SERVER_ERROR_TEXT)
        await self._safe_send(handle, RealtimeEvent.ERROR_MESSAGE, failure.to_dict())
        return ServiceResult.from_exception(failure)

    async def _safe_send(self, handle: str, event: str, data) -> None:
        # The handle may have disconnected since it was looked up.
        try:
            await self.transport.send_to_connection(handle, event, data)
        except Exception:
            logger.warning(f"Could not emit {event} to {handle}", exc_info=True)

    async def _safe_group(self, group: str, event: str, data, exclude=None) -> None:
        try:
            await self.transport.send_to_group(group, event, data, exclude=exclude)
        except Exception:
            logger.warning(f"Could not emit {event} to group {group}", exc_info=True)
