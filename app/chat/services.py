"""
Chat system service layer.

This module provides the synchronous business logic for conversations and
messages. The realtime core reaches it through the async adapters in
store.py; REST views call it directly.

Services:
    ConversationService: Find-or-create, listing, pointer updates, clearing
    MessageService: Message creation, read receipts, history queries
    UserDirectoryService: User lookups (preferred language, chat partners)

Design Principles:
    - Services are stateless (use class methods)
    - Expected failures return ServiceResult.failure()
    - Unexpected failures raise exceptions
    - Conversations are only created through find_or_create_direct()

Usage:
    from chat.services import ConversationService, MessageService

    result = ConversationService.find_or_create_direct(me, other)
    if result.success:
        conversation = result.data

    count = MessageService.mark_seen(conversation.id, me.id)
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from django.contrib.auth import get_user_model
from django.db import IntegrityError, transaction
from django.db.models import Count, Q

from core.services import BaseService, ServiceResult

from chat.constants import MESSAGE_CONFIG
from chat.models import Conversation, DirectConversationPair, Message, MessageType

if TYPE_CHECKING:
    from authentication.models import User

logger = logging.getLogger(__name__)


class ConversationService(BaseService):
    """
    Service for conversation operations.

    Methods:
        find_or_create_direct: Get or create the conversation between two users
        get_for_participant: Fetch a conversation the user takes part in
        list_for_user: User's conversations, most recent first
        record_message: Update last-message pointer, timestamp, participants
        add_reader: Add a user to the read-by set
        clear_messages: Bulk delete every message in a conversation
    """

    @classmethod
    def find_or_create_direct(
        cls,
        user1: User,
        user2: User,
    ) -> ServiceResult[Conversation]:
        """
        Create or retrieve the conversation between two users.

        Conversations are unique per user pair regardless of who initiates.

        Implementation:
            1. Validate users are different
            2. Canonicalize order (lower user id first)
            3. Look up existing DirectConversationPair
            4. If not found, create conversation + pair within a transaction;
               a concurrent creator losing the unique-constraint race
               re-reads the winner's row

        Error codes:
            SAME_USER: Cannot start a conversation with yourself
        """
        if user1.id == user2.id:
            return ServiceResult.failure(
                "Cannot start a conversation with yourself",
                error_code="SAME_USER",
            )

        user_lower, user_higher = (
            (user1, user2) if user1.id < user2.id else (user2, user1)
        )

        existing = cls._get_pair_conversation(user_lower, user_higher)
        if existing is not None:
            cls.get_logger().debug(
                f"Found existing conversation {existing.id} "
                f"between users {user_lower.id} and {user_higher.id}"
            )
            return ServiceResult.success(existing)

        try:
            with transaction.atomic():
                conversation = Conversation.objects.create()
                DirectConversationPair.objects.create(
                    conversation=conversation,
                    user_lower=user_lower,
                    user_higher=user_higher,
                )
                conversation.participants.add(user_lower, user_higher)
        except IntegrityError:
            existing = cls._get_pair_conversation(user_lower, user_higher)
            if existing is None:
                raise
            return ServiceResult.success(existing)

        cls.get_logger().info(
            f"Created conversation {conversation.id} "
            f"between users {user_lower.id} and {user_higher.id}"
        )
        return ServiceResult.success(conversation)

    @staticmethod
    def _get_pair_conversation(user_lower, user_higher) -> Conversation | None:
        pair = (
            DirectConversationPair.objects.select_related("conversation")
            .filter(user_lower=user_lower, user_higher=user_higher)
            .first()
        )
        return pair.conversation if pair else None

    @classmethod
    def get_for_participant(cls, conversation_id, user: User) -> ServiceResult[Conversation]:
        """
        Fetch a conversation, checking that user takes part in it.

        Error codes:
            NOT_FOUND: Conversation does not exist
            NOT_PARTICIPANT: User is not in the conversation
        """
        conversation = Conversation.objects.filter(pk=conversation_id).first()
        if conversation is None:
            return ServiceResult.failure(
                "Conversation not found", error_code="NOT_FOUND"
            )
        if not conversation.has_participant(user.id):
            return ServiceResult.failure(
                "You are not a participant in this conversation",
                error_code="NOT_PARTICIPANT",
            )
        return ServiceResult.success(conversation)

    @classmethod
    def list_for_user(cls, user: User):
        """Return the user's conversations with participants prefetched."""
        return (
            Conversation.objects.filter(participants=user)
            .select_related("last_message")
            .prefetch_related("participants", "read_by")
            .annotate(
                unseen_count=Count(
                    "messages",
                    filter=Q(messages__receiver=user, messages__seen=False),
                    distinct=True,
                )
            )
            .order_by("-last_message_at", "-created_at")
        )

    @classmethod
    def record_message(cls, conversation_id, message_id, participant_ids) -> None:
        """
        Point the conversation at its newest message.

        Sets last_message and last_message_at, unions the participant set
        and resets read_by to the message's sender.
        """
        message = Message.objects.select_related("conversation").get(pk=message_id)
        conversation = message.conversation
        if str(conversation.pk) != str(conversation_id):
            raise ValueError(
                f"Message {message_id} does not belong to conversation {conversation_id}"
            )

        with transaction.atomic():
            conversation.last_message = message
            conversation.last_message_at = message.created_at
            conversation.save(
                update_fields=["last_message", "last_message_at", "updated_at"]
            )
            conversation.participants.add(*participant_ids)
            conversation.read_by.set([message.sender_id])

    @classmethod
    def add_reader(cls, conversation_id, user_id) -> None:
        Conversation.objects.get(pk=conversation_id).read_by.add(user_id)

    @classmethod
    def clear_messages(cls, conversation: Conversation, user: User) -> ServiceResult[int]:
        """
        Delete every message in the conversation (chat-clear).

        Error codes:
            NOT_PARTICIPANT: User is not in the conversation
        """
        if not conversation.has_participant(user.id):
            return ServiceResult.failure(
                "You are not a participant in this conversation",
                error_code="NOT_PARTICIPANT",
            )

        with transaction.atomic():
            deleted = MessageService.delete_for_conversation(conversation.id)
            conversation.last_message = None
            conversation.last_message_at = None
            conversation.save(
                update_fields=["last_message", "last_message_at", "updated_at"]
            )
            conversation.read_by.clear()

        cls.get_logger().info(
            f"User {user.id} cleared {deleted} messages from conversation {conversation.id}"
        )
        return ServiceResult.success(deleted)


class MessageService(BaseService):
    """
    Service for message operations.

    Methods:
        create_message: Insert a text message (used by the dispatch engine)
        create_attachment_message: Record an uploaded image/audio file
        mark_seen: Bulk flip seen=True for one receiver
        between_users: All messages exchanged by two users
        delete_for_conversation: Bulk delete (chat-clear)
    """

    @classmethod
    def create_message(
        cls,
        *,
        conversation_id,
        sender_id,
        receiver_id,
        original_text: str,
        translated_text: str = "",
        original_language: str = "en",
        translated_language: str = "",
        message_type: str = MessageType.TEXT,
        client_message_id: str = "",
    ) -> Message:
        """
        Insert a message row.

        Raises on database errors; the async store adapter turns those into
        StoreWriteFailure for the dispatch engine.
        """
        message = Message.objects.create(
            conversation_id=conversation_id,
            sender_id=sender_id,
            receiver_id=receiver_id,
            message_type=message_type,
            original_text=original_text,
            translated_text=translated_text or original_text,
            original_language=original_language,
            translated_language=translated_language or original_language,
            client_message_id=client_message_id,
        )
        cls.get_logger().debug(
            f"User {sender_id} sent message {message.id} to conversation {conversation_id}"
        )
        return message

    @classmethod
    def create_attachment_message(
        cls,
        conversation: Conversation,
        sender: User,
        *,
        message_type: str,
        attachment_id: str,
        filename: str,
        content_type: str,
        caption: str = "",
        client_message_id: str = "",
    ) -> ServiceResult[Message]:
        """
        Record an image or audio file that was uploaded out of band.

        The receiver is the other participant; the conversation pointer is
        updated in the same transaction.

        Error codes:
            NOT_PARTICIPANT: Sender is not in the conversation
            INVALID_TYPE: message_type is not image or audio
            INVALID_CONTENT_TYPE: content_type does not match message_type
            NO_RECEIVER: Conversation has no other participant
        """
        if not conversation.has_participant(sender.id):
            return ServiceResult.failure(
                "You are not a participant in this conversation",
                error_code="NOT_PARTICIPANT",
            )

        prefix = MESSAGE_CONFIG.ALLOWED_ATTACHMENT_PREFIXES.get(message_type)
        if prefix is None:
            return ServiceResult.failure(
                f"Unsupported attachment type: {message_type}",
                error_code="INVALID_TYPE",
            )
        if not content_type.startswith(prefix):
            return ServiceResult.failure(
                f"Content type {content_type} is not a valid {message_type}",
                error_code="INVALID_CONTENT_TYPE",
            )

        receiver_id = conversation.other_participant_id(sender.id)
        if receiver_id is None:
            return ServiceResult.failure(
                "Conversation has no other participant",
                error_code="NO_RECEIVER",
            )

        with transaction.atomic():
            message = Message.objects.create(
                conversation=conversation,
                sender=sender,
                receiver_id=receiver_id,
                message_type=message_type,
                original_text=caption,
                translated_text=caption,
                original_language=sender.preferred_language,
                translated_language=sender.preferred_language,
                attachment_id=attachment_id,
                attachment_filename=filename,
                attachment_content_type=content_type,
                client_message_id=client_message_id,
            )
            ConversationService.record_message(
                conversation.id, message.id, [sender.id, receiver_id]
            )

        cls.get_logger().info(
            f"User {sender.id} attached {message_type} {attachment_id} "
            f"to conversation {conversation.id}"
        )
        return ServiceResult.success(message)

    @classmethod
    def mark_seen(cls, conversation_id, user_id) -> int:
        """
        Mark unseen messages addressed to user_id in the conversation as seen.

        Returns:
            Number of messages flipped (0 on a repeated call)
        """
        return Message.objects.filter(
            conversation_id=conversation_id, receiver_id=user_id, seen=False
        ).update(seen=True)

    @classmethod
    def get_message(cls, message_id) -> Message | None:
        return Message.objects.filter(pk=message_id).first()

    @classmethod
    def between_users(cls, user: User, other_id):
        """All messages exchanged by user and other_id, oldest first."""
        return Message.objects.filter(
            Q(sender=user, receiver_id=other_id) | Q(sender_id=other_id, receiver=user)
        ).order_by("created_at", "id")

    @classmethod
    def delete_for_conversation(cls, conversation_id) -> int:
        Conversation.objects.filter(pk=conversation_id).update(last_message=None)
        deleted, _ = Message.objects.filter(conversation_id=conversation_id).delete()
        return deleted


class UserDirectoryService(BaseService):
    """User lookups needed by the chat core and REST views."""

    @classmethod
    def get_preferred_language(cls, user_id) -> str | None:
        """Return the user's preferred language, or None if the user is unknown."""
        User = get_user_model()
        try:
            return (
                User.objects.filter(pk=user_id, is_active=True)
                .values_list("preferred_language", flat=True)
                .first()
            )
        except (ValueError, TypeError):
            # Non-numeric ids from the wire never match a user
            return None

    @classmethod
    def chat_partners(cls, user: User):
        """
        Users that user has exchanged messages with.

        Each user is annotated with ``unseen_count``: messages they sent to
        user that user has not seen yet.
        """
        User = get_user_model()
        sent_to = Message.objects.filter(sender=user).values("receiver_id")
        received_from = Message.objects.filter(receiver=user).values("sender_id")
        return (
            User.objects.filter(Q(pk__in=sent_to) | Q(pk__in=received_from))
            .exclude(pk=user.pk)
            .annotate(
                unseen_count=Count(
                    "sent_messages",
                    filter=Q(sent_messages__receiver=user, sent_messages__seen=False),
                )
            )
            .order_by("display_name", "email")
        )
