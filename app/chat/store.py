"""
Async ORM adapters for the realtime core.

OrmMessageStore and OrmUserDirectory implement the MessageStore and
UserDirectory protocols on top of the synchronous service layer, using
``database_sync_to_async`` so every query runs in a worker thread with its
connection cleaned up afterwards.

They return StoredMessage / ConversationRef snapshots; ORM instances never
cross into async code.
"""

from __future__ import annotations

from channels.db import database_sync_to_async

from chat.models import Conversation, Message
from chat.protocols import ConversationRef, StoredMessage
from chat.services import ConversationService, MessageService, UserDirectoryService


def snapshot_message(message: Message) -> StoredMessage:
    """Copy a Message row into a StoredMessage."""
    return StoredMessage(
        id=str(message.pk),
        conversation_id=str(message.conversation_id),
        sender_id=str(message.sender_id),
        receiver_id=str(message.receiver_id),
        original_text=message.original_text,
        translated_text=message.translated_text,
        original_language=message.original_language,
        translated_language=message.translated_language,
        created_at=message.created_at,
        message_type=message.message_type,
        seen=message.seen,
        client_message_id=message.client_message_id,
        attachment_id=message.attachment_id,
        attachment_filename=message.attachment_filename,
        attachment_content_type=message.attachment_content_type,
    )


def snapshot_conversation(conversation: Conversation) -> ConversationRef:
    participant_ids = conversation.participants.values_list("pk", flat=True)
    return ConversationRef(
        id=str(conversation.pk),
        participant_ids=frozenset(str(pk) for pk in participant_ids),
    )


def _as_pk(value) -> int | None:
    """Wire ids are strings; non-numeric ones never match a row."""
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


class OrmMessageStore:
    """MessageStore backed by the chat models."""

    @database_sync_to_async
    def get_conversation(self, conversation_id) -> ConversationRef | None:
        pk = _as_pk(conversation_id)
        if pk is None:
            return None
        conversation = Conversation.objects.filter(pk=pk).first()
        return snapshot_conversation(conversation) if conversation else None

    @database_sync_to_async
    def find_or_create_conversation(self, user_a, user_b) -> ConversationRef:
        from django.contrib.auth import get_user_model

        User = get_user_model()
        users = User.objects.in_bulk([_as_pk(user_a), _as_pk(user_b)])
        first, second = users.get(_as_pk(user_a)), users.get(_as_pk(user_b))
        if first is None or second is None:
            raise LookupError(f"Unknown user in pair ({user_a}, {user_b})")

        result = ConversationService.find_or_create_direct(first, second)
        if not result.success:
            raise ValueError(result.error)
        return snapshot_conversation(result.data)

    @database_sync_to_async
    def create_message(
        self,
        *,
        conversation_id,
        sender_id,
        receiver_id,
        original_text: str,
        translated_text: str,
        original_language: str,
        translated_language: str,
        message_type: str = "text",
        client_message_id: str = "",
    ) -> StoredMessage:
        message = MessageService.create_message(
            conversation_id=_as_pk(conversation_id),
            sender_id=_as_pk(sender_id),
            receiver_id=_as_pk(receiver_id),
            original_text=original_text,
            translated_text=translated_text,
            original_language=original_language,
            translated_language=translated_language,
            message_type=message_type,
            client_message_id=client_message_id,
        )
        return snapshot_message(message)

    @database_sync_to_async
    def record_conversation_message(self, conversation_id, message_id, participant_ids) -> None:
        ConversationService.record_message(
            _as_pk(conversation_id),
            _as_pk(message_id),
            [_as_pk(pk) for pk in participant_ids],
        )

    @database_sync_to_async
    def mark_seen(self, conversation_id, user_id) -> int:
        return MessageService.mark_seen(_as_pk(conversation_id), _as_pk(user_id))

    @database_sync_to_async
    def add_reader(self, conversation_id, user_id) -> None:
        ConversationService.add_reader(_as_pk(conversation_id), _as_pk(user_id))

    @database_sync_to_async
    def get_message(self, message_id) -> StoredMessage | None:
        pk = _as_pk(message_id)
        if pk is None:
            return None
        message = MessageService.get_message(pk)
        return snapshot_message(message) if message else None

    @database_sync_to_async
    def delete_conversation_messages(self, conversation_id) -> int:
        return MessageService.delete_for_conversation(_as_pk(conversation_id))


class OrmUserDirectory:
    """UserDirectory backed by the user table."""

    @database_sync_to_async
    def get_preferred_language(self, user_id) -> str | None:
        pk = _as_pk(user_id)
        if pk is None:
            return None
        return UserDirectoryService.get_preferred_language(pk)
