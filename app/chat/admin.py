"""
Django admin configuration for chat models.

Provides admin interfaces for:
- Conversation inspection
- Message moderation
"""

from django.contrib import admin

from chat.models import Conversation, DirectConversationPair, Message


class MessageInline(admin.TabularInline):
    """Most recent messages shown inside the conversation admin."""

    model = Message
    extra = 0
    fields = ["sender", "receiver", "message_type", "original_text", "seen", "created_at"]
    readonly_fields = fields
    show_change_link = True
    can_delete = False


@admin.register(Conversation)
class ConversationAdmin(admin.ModelAdmin):
    """Admin interface for Conversation model."""

    list_display = ["id", "created_at", "last_message_at"]
    list_filter = ["created_at"]
    search_fields = ["id", "participants__email"]
    readonly_fields = ["created_at", "updated_at", "last_message", "last_message_at"]
    filter_horizontal = ["participants", "read_by"]
    inlines = [MessageInline]
    ordering = ["-created_at"]


@admin.register(DirectConversationPair)
class DirectConversationPairAdmin(admin.ModelAdmin):
    """Admin interface for DirectConversationPair model."""

    list_display = ["conversation", "user_lower", "user_higher"]
    raw_id_fields = ["conversation", "user_lower", "user_higher"]


@admin.register(Message)
class MessageAdmin(admin.ModelAdmin):
    """Admin interface for Message model."""

    list_display = [
        "id",
        "conversation",
        "sender",
        "receiver",
        "message_type",
        "original_language",
        "translated_language",
        "seen",
        "created_at",
    ]
    list_filter = ["message_type", "seen", "original_language", "translated_language"]
    search_fields = ["original_text", "translated_text", "sender__email", "receiver__email"]
    readonly_fields = ["created_at", "updated_at"]
    raw_id_fields = ["conversation", "sender", "receiver"]
    ordering = ["-created_at"]
