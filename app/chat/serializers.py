"""
Serializers for chat API.

This module provides serializers for the chat system:
- Conversation serializers (list, detail, create)
- Message serializers (read, attachment create)
- Chat partner and presence serializers

Serializer Hierarchy:
    ConversationListSerializer: List view with last message and unseen count
    ConversationDetailSerializer: Full details including participants
    ConversationCreateSerializer: Find-or-create with another user

    MessageSerializer: Message as seen by the requesting user
    MessagePreviewSerializer: Minimal message for list preview
    AttachmentMessageCreateSerializer: Record an uploaded image/audio file

    ChatPartnerSerializer: User plus unseen message count
    OnlineUsersSerializer: Online user ids

Design Decisions:
    - Read and write serializers are separate for clarity
    - ``text`` is resolved per viewer: the receiver reads the translation,
      the sender reads what they wrote
"""

from __future__ import annotations

from rest_framework import serializers

from authentication.serializers import UserSerializer
from chat.constants import MESSAGE_CONFIG
from chat.models import Conversation, Message, MessageType


def _viewer_id(context) -> int | None:
    request = context.get("request")
    if request is None or not request.user.is_authenticated:
        return None
    return request.user.id


# =============================================================================
# Message Serializers
# =============================================================================


class MessagePreviewSerializer(serializers.ModelSerializer):
    """
    Minimal message serializer for conversation list preview.
    """

    text = serializers.SerializerMethodField(help_text="Text as seen by the viewer")

    class Meta:
        model = Message
        fields = ["id", "sender", "message_type", "text", "seen", "created_at"]
        read_only_fields = fields

    def get_text(self, obj: Message) -> str:
        if obj.receiver_id == _viewer_id(self.context):
            return obj.translated_text
        return obj.original_text


class MessageSerializer(serializers.ModelSerializer):
    """
    Full message serializer.

    ``text`` is the translated text when the viewer is the receiver and
    the original otherwise; both raw fields are included as well.
    """

    text = serializers.SerializerMethodField(help_text="Text as seen by the viewer")
    attachment = serializers.SerializerMethodField(
        help_text="Attachment reference for image/audio messages"
    )

    class Meta:
        model = Message
        fields = [
            "id",
            "conversation",
            "sender",
            "receiver",
            "message_type",
            "text",
            "original_text",
            "translated_text",
            "original_language",
            "translated_language",
            "seen",
            "attachment",
            "client_message_id",
            "created_at",
        ]
        read_only_fields = fields

    def get_text(self, obj: Message) -> str:
        if obj.receiver_id == _viewer_id(self.context):
            return obj.translated_text
        return obj.original_text

    def get_attachment(self, obj: Message) -> dict | None:
        if not obj.has_attachment:
            return None
        return {
            "id": obj.attachment_id,
            "filename": obj.attachment_filename,
            "content_type": obj.attachment_content_type,
        }


class AttachmentMessageCreateSerializer(serializers.Serializer):
    """
    Input for recording an uploaded image or audio file.

    The binary itself lives in external storage; only its reference is kept.
    """

    message_type = serializers.ChoiceField(
        choices=[MessageType.IMAGE, MessageType.AUDIO],
        help_text="image or audio",
    )
    attachment_id = serializers.CharField(max_length=255)
    filename = serializers.CharField(max_length=255)
    content_type = serializers.CharField(max_length=100)
    caption = serializers.CharField(
        max_length=MESSAGE_CONFIG.MAX_CONTENT_LENGTH,
        required=False,
        allow_blank=True,
        default="",
    )
    client_message_id = serializers.CharField(
        max_length=MESSAGE_CONFIG.MAX_CLIENT_MESSAGE_ID_LENGTH,
        required=False,
        allow_blank=True,
        default="",
    )

    def validate(self, attrs):
        prefix = MESSAGE_CONFIG.ALLOWED_ATTACHMENT_PREFIXES[attrs["message_type"]]
        if not attrs["content_type"].startswith(prefix):
            raise serializers.ValidationError(
                {"content_type": f"Expected a {prefix}* content type."}
            )
        return attrs


# =============================================================================
# Conversation Serializers
# =============================================================================


class ConversationListSerializer(serializers.ModelSerializer):
    """
    Conversation list serializer.

    ``unseen_count`` comes from the annotation added by
    ConversationService.list_for_user().
    """

    participants = UserSerializer(many=True, read_only=True)
    last_message = MessagePreviewSerializer(read_only=True)
    unseen_count = serializers.IntegerField(read_only=True, default=0)

    class Meta:
        model = Conversation
        fields = [
            "id",
            "participants",
            "last_message",
            "last_message_at",
            "unseen_count",
            "created_at",
        ]
        read_only_fields = fields


class ConversationDetailSerializer(serializers.ModelSerializer):
    """Conversation details including the read-by set."""

    participants = UserSerializer(many=True, read_only=True)
    read_by = serializers.PrimaryKeyRelatedField(many=True, read_only=True)
    last_message = MessagePreviewSerializer(read_only=True)

    class Meta:
        model = Conversation
        fields = [
            "id",
            "participants",
            "read_by",
            "last_message",
            "last_message_at",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class ConversationCreateSerializer(serializers.Serializer):
    """Find-or-create input: the other participant's id."""

    user_id = serializers.IntegerField(help_text="Id of the other participant")


# =============================================================================
# Partner / Presence Serializers
# =============================================================================


class ChatPartnerSerializer(UserSerializer):
    """A user the requester has exchanged messages with."""

    unseen_count = serializers.IntegerField(read_only=True, default=0)
    is_online = serializers.SerializerMethodField()

    class Meta(UserSerializer.Meta):
        fields = UserSerializer.Meta.fields + ["unseen_count", "is_online"]
        read_only_fields = fields

    def get_is_online(self, obj) -> bool:
        online = self.context.get("online_user_ids", set())
        return str(obj.pk) in online


class OnlineUsersSerializer(serializers.Serializer):
    online_users = serializers.ListField(child=serializers.CharField())
    count = serializers.IntegerField()
