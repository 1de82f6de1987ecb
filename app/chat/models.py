"""
Chat system models.

This module defines the persisted half of the private messaging system:
- Conversations between exactly two users
- Messages carrying original and translated text plus optional attachments

Models:
    Conversation: Container for messages between two participants
    DirectConversationPair: Helper for enforcing uniqueness of a user pair
    Message: Individual message within a conversation

Design Decisions:
    - Conversations are created explicitly (find-or-create), never as a side
      effect of sending a message
    - Participant sets only grow (set-union on every message)
    - Messages are mutated only to flip ``seen``; clearing a chat deletes
      its messages in bulk
    - Attachments are uploaded out of band; messages keep an opaque
      reference (id, filename, content type)
"""

from __future__ import annotations

from django.conf import settings
from django.db import models
from django.db.models import F, Q

from core.models import BaseModel


class MessageType(models.TextChoices):
    """
    Kind of message content.

    TEXT: User-authored text, possibly translated for the receiver
    IMAGE: Image attachment uploaded out of band
    AUDIO: Audio attachment (voice note) uploaded out of band
    """

    TEXT = "text", "Text"
    IMAGE = "image", "Image"
    AUDIO = "audio", "Audio"


class Conversation(BaseModel):
    """
    A private conversation between two users.

    Fields:
        participants: Users taking part (exactly two for private chat)
        read_by: Users who have read the latest message
        last_message: Most recent message (null until the first message)
        last_message_at: Timestamp of most recent message (for sorting)

    Relationships:
        messages: All Message records for this conversation
        direct_pair: DirectConversationPair used for find-or-create dedupe
    """

    participants = models.ManyToManyField(
        settings.AUTH_USER_MODEL,
        related_name="conversations",
        help_text="Users taking part in this conversation",
    )

    read_by = models.ManyToManyField(
        settings.AUTH_USER_MODEL,
        related_name="read_conversations",
        blank=True,
        help_text="Users who have read the latest message",
    )

    last_message = models.ForeignKey(
        "chat.Message",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
        help_text="Most recent message in this conversation",
    )

    last_message_at = models.DateTimeField(
        null=True,
        blank=True,
        db_index=True,
        help_text="Timestamp of most recent message (for sorting conversation lists)",
    )

    class Meta:
        db_table = "chat_conversation"
        ordering = ["-last_message_at", "-created_at"]

    def __str__(self) -> str:
        return f"Conversation({self.pk})"

    def has_participant(self, user_id) -> bool:
        """Check whether the given user id takes part in this conversation."""
        return self.participants.filter(pk=user_id).exists()

    def other_participant_id(self, user_id):
        """
        Return the id of the participant that is not ``user_id``.

        Returns:
            The other participant's id, or None if there is none
        """
        return (
            self.participants.exclude(pk=user_id)
            .values_list("pk", flat=True)
            .first()
        )


class DirectConversationPair(models.Model):
    """
    Enforces uniqueness of conversations between two users.

    Stores user pairs in canonical order (lower user id first) so that,
    regardless of who initiates, only one conversation exists per pair.

    Constraints:
        - UniqueConstraint(user_lower, user_higher): One conversation per pair
        - CheckConstraint(user_lower_id < user_higher_id): Canonical order
    """

    conversation = models.OneToOneField(
        Conversation,
        on_delete=models.CASCADE,
        primary_key=True,
        related_name="direct_pair",
        help_text="The conversation this pair represents",
    )

    user_lower = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="+",
        help_text="User with lower ID in this conversation pair",
    )

    user_higher = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="+",
        help_text="User with higher ID in this conversation pair",
    )

    class Meta:
        db_table = "chat_direct_conversation_pair"
        constraints = [
            models.UniqueConstraint(
                fields=["user_lower", "user_higher"],
                name="unique_direct_conversation_pair",
            ),
            models.CheckConstraint(
                condition=Q(user_lower_id__lt=F("user_higher_id")),
                name="user_lower_less_than_higher",
            ),
        ]

    def __str__(self) -> str:
        return f"DirectPair({self.user_lower_id}, {self.user_higher_id})"


class Message(BaseModel):
    """
    A message within a conversation.

    ``created_at`` is the message timestamp; ordering within a conversation
    is by persisted timestamp, not by client send time.

    Fields:
        conversation: Conversation this message belongs to
        sender: User who sent the message
        receiver: User the message is addressed to
        message_type: text, image or audio
        original_text: Text as written by the sender
        translated_text: Text in the receiver's language (equals the
            original when no translation was needed or possible)
        original_language: Language code of original_text
        translated_language: Language code of translated_text
        seen: Whether the receiver has read the message
        attachment_id / attachment_filename / attachment_content_type:
            Opaque reference to an out-of-band upload
        client_message_id: Client correlation id used for de-duplication
    """

    conversation = models.ForeignKey(
        Conversation,
        on_delete=models.CASCADE,
        related_name="messages",
        help_text="Conversation this message belongs to",
    )

    sender = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="sent_messages",
        help_text="User who sent this message",
    )

    receiver = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="received_messages",
        help_text="User this message is addressed to",
    )

    message_type = models.CharField(
        max_length=10,
        choices=MessageType.choices,
        default=MessageType.TEXT,
        db_index=True,
        help_text="Type of message (text, image or audio)",
    )

    original_text = models.TextField(
        blank=True,
        default="",
        help_text="Text as written by the sender",
    )

    translated_text = models.TextField(
        blank=True,
        default="",
        help_text="Text in the receiver's preferred language",
    )

    original_language = models.CharField(
        max_length=16,
        default="en",
        help_text="Language code of the original text",
    )

    translated_language = models.CharField(
        max_length=16,
        blank=True,
        default="",
        help_text="Language code of the translated text",
    )

    seen = models.BooleanField(
        default=False,
        db_index=True,
        help_text="Whether the receiver has read this message",
    )

    attachment_id = models.CharField(
        max_length=255,
        blank=True,
        default="",
        help_text="Opaque id of an uploaded image or audio file",
    )

    attachment_filename = models.CharField(
        max_length=255,
        blank=True,
        default="",
        help_text="Original filename of the attachment",
    )

    attachment_content_type = models.CharField(
        max_length=100,
        blank=True,
        default="",
        help_text="MIME type of the attachment",
    )

    client_message_id = models.CharField(
        max_length=64,
        blank=True,
        default="",
        help_text="Client-generated correlation id",
    )

    class Meta:
        db_table = "chat_message"
        ordering = ["created_at", "id"]
        indexes = [
            # Messages in a conversation (cursor pagination)
            models.Index(
                fields=["conversation", "created_at", "id"],
                name="chat_msg_conv_cursor_idx",
            ),
            # Unseen messages addressed to a user
            models.Index(
                fields=["receiver", "seen"],
                name="chat_msg_receiver_seen_idx",
            ),
        ]
        constraints = [
            models.CheckConstraint(
                condition=~Q(sender=F("receiver")),
                name="chat_message_sender_not_receiver",
            ),
        ]

    def __str__(self) -> str:
        preview = (
            self.original_text[:50] + "..."
            if len(self.original_text) > 50
            else self.original_text
        )
        return f"User {self.sender_id} -> User {self.receiver_id}: {preview}"

    @property
    def has_attachment(self) -> bool:
        """Check if this message references an uploaded file."""
        return bool(self.attachment_id)

    @property
    def was_translated(self) -> bool:
        """Check if the receiver sees a different language than the sender wrote."""
        return bool(self.translated_language) and (
            self.translated_language != self.original_language
        )
