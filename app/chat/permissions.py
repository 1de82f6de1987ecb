"""
Permission classes for chat API.

- IsConversationParticipant: requester takes part in the conversation
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from rest_framework import permissions

from chat.models import Conversation, Message

if TYPE_CHECKING:
    from rest_framework.request import Request
    from rest_framework.views import APIView


class IsConversationParticipant(permissions.BasePermission):
    """
    Allows access only to participants of the conversation.

    Works on Conversation and Message objects.
    """

    message = "You are not a participant in this conversation."

    def has_object_permission(
        self, request: Request, view: APIView, obj: Conversation | Message
    ) -> bool:
        if not request.user.is_authenticated:
            return False

        conversation = obj.conversation if isinstance(obj, Message) else obj
        return conversation.has_participant(request.user.id)
