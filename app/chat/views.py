"""
Views for chat API.

This module provides the REST side of the chat system. Realtime delivery
happens over the websocket (consumers.py); these endpoints cover history,
conversation creation and attachment metadata.

URL Structure:
    /api/v1/chat/conversations/                       GET, POST
    /api/v1/chat/conversations/{id}/                  GET
    /api/v1/chat/conversations/{id}/messages/         GET
    /api/v1/chat/conversations/{id}/clear/            POST
    /api/v1/chat/conversations/{id}/attachments/      POST
    /api/v1/chat/messages/between/?user=<id>          GET
    /api/v1/chat/partners/                            GET
    /api/v1/chat/online-users/                        GET

Design Decisions:
    - Conversations are never created implicitly; POST /conversations/ is
      the single find-or-create path
    - All operations use the service layer for business logic
"""

from __future__ import annotations

from django.contrib.auth import get_user_model
from django.shortcuts import get_object_or_404
from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import (
    OpenApiParameter,
    OpenApiResponse,
    extend_schema,
    extend_schema_view,
)
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from chat.models import Conversation
from chat.pagination import ConversationCursorPagination, MessageCursorPagination
from chat.permissions import IsConversationParticipant
from chat.realtime import get_presence_registry
from chat.serializers import (
    AttachmentMessageCreateSerializer,
    ChatPartnerSerializer,
    ConversationCreateSerializer,
    ConversationDetailSerializer,
    ConversationListSerializer,
    MessageSerializer,
    OnlineUsersSerializer,
)
from chat.services import ConversationService, MessageService, UserDirectoryService

User = get_user_model()


def _failure_response(result, http_status=status.HTTP_400_BAD_REQUEST) -> Response:
    return Response(result.to_response(), status=http_status)


@extend_schema_view(
    list=extend_schema(
        operation_id="list_conversations",
        summary="List conversations",
        tags=["Chat - Conversations"],
    ),
    create=extend_schema(
        operation_id="find_or_create_conversation",
        summary="Find or create conversation",
        request=ConversationCreateSerializer,
        responses={
            200: ConversationDetailSerializer,
            201: ConversationDetailSerializer,
        },
        tags=["Chat - Conversations"],
    ),
    retrieve=extend_schema(
        operation_id="get_conversation",
        summary="Get conversation",
        tags=["Chat - Conversations"],
    ),
)
class ConversationViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    viewsets.GenericViewSet,
):
    """
    ViewSet for conversation operations.

    list:
        Conversations of the current user, most recently active first,
        with last message preview and unseen count.

    create:
        Find or create the conversation with ``user_id``. Returns 201 when
        created, 200 when it already existed.

    retrieve:
        Conversation details including participants and read-by set.

    messages:
        Message history, oldest first (cursor paginated).

    clear:
        Delete every message in the conversation.

    attachments:
        Record an image/audio file uploaded out of band. The response is
        the message record clients relay over the websocket as
        image_message / audio_message.
    """

    permission_classes = [IsAuthenticated]
    pagination_class = ConversationCursorPagination

    def get_queryset(self):
        if not self.request.user.is_authenticated:
            return Conversation.objects.none()
        return ConversationService.list_for_user(self.request.user)

    def get_serializer_class(self):
        if self.action == "list":
            return ConversationListSerializer
        if self.action == "create":
            return ConversationCreateSerializer
        if self.action == "attachments":
            return AttachmentMessageCreateSerializer
        if self.action == "messages":
            return MessageSerializer
        return ConversationDetailSerializer

    def get_permissions(self):
        if self.action in ("retrieve", "messages", "clear", "attachments"):
            return [IsAuthenticated(), IsConversationParticipant()]
        return [IsAuthenticated()]

    def create(self, request):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        other_user = get_object_or_404(
            User, id=serializer.validated_data["user_id"], is_active=True
        )
        existed = Conversation.objects.filter(
            participants=request.user
        ).filter(participants=other_user).exists()

        result = ConversationService.find_or_create_direct(request.user, other_user)
        if not result.success:
            return _failure_response(result)

        output = ConversationDetailSerializer(result.data, context={"request": request})
        return Response(
            output.data,
            status=status.HTTP_200_OK if existed else status.HTTP_201_CREATED,
        )

    @extend_schema(
        operation_id="list_conversation_messages",
        summary="List conversation messages",
        responses={200: MessageSerializer(many=True)},
        tags=["Chat - Messages"],
    )
    @action(detail=True, methods=["get"])
    def messages(self, request, pk=None):
        conversation = self.get_object()
        queryset = conversation.messages.all()

        paginator = MessageCursorPagination()
        page = paginator.paginate_queryset(queryset, request, view=self)
        serializer = MessageSerializer(page, many=True, context={"request": request})
        return paginator.get_paginated_response(serializer.data)

    @extend_schema(
        operation_id="clear_conversation",
        summary="Delete all messages in a conversation",
        request=None,
        responses={200: OpenApiResponse(description="Number of deleted messages")},
        tags=["Chat - Conversations"],
    )
    @action(detail=True, methods=["post"])
    def clear(self, request, pk=None):
        conversation = self.get_object()

        result = ConversationService.clear_messages(conversation, request.user)
        if not result.success:
            return _failure_response(result, status.HTTP_403_FORBIDDEN)

        return Response({"deleted": result.data})

    @extend_schema(
        operation_id="create_attachment_message",
        summary="Record an image or audio message",
        request=AttachmentMessageCreateSerializer,
        responses={201: MessageSerializer},
        tags=["Chat - Messages"],
    )
    @action(detail=True, methods=["post"])
    def attachments(self, request, pk=None):
        conversation = self.get_object()
        serializer = AttachmentMessageCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        result = MessageService.create_attachment_message(
            conversation,
            request.user,
            message_type=data["message_type"],
            attachment_id=data["attachment_id"],
            filename=data["filename"],
            content_type=data["content_type"],
            caption=data["caption"],
            client_message_id=data["client_message_id"],
        )
        if not result.success:
            return _failure_response(result)

        output = MessageSerializer(result.data, context={"request": request})
        return Response(output.data, status=status.HTTP_201_CREATED)


class MessagesBetweenView(APIView):
    """All messages exchanged between the requester and another user."""

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="list_messages_between_users",
        summary="Messages between me and another user",
        parameters=[
            OpenApiParameter(
                name="user",
                type=OpenApiTypes.INT,
                location=OpenApiParameter.QUERY,
                required=True,
                description="Id of the other user",
            )
        ],
        responses={200: MessageSerializer(many=True)},
        tags=["Chat - Messages"],
    )
    def get(self, request):
        other_id = request.query_params.get("user", "")
        if not other_id.isdigit():
            return Response(
                {"error": "user query parameter is required", "error_code": "MISSING_USER"},
                status=status.HTTP_400_BAD_REQUEST,
            )

        queryset = MessageService.between_users(request.user, int(other_id))
        paginator = MessageCursorPagination()
        page = paginator.paginate_queryset(queryset, request, view=self)
        serializer = MessageSerializer(page, many=True, context={"request": request})
        return paginator.get_paginated_response(serializer.data)


class ChatPartnersView(APIView):
    """Users the requester has chatted with, with unseen counts and presence."""

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="list_chat_partners",
        summary="List chat partners",
        responses={200: ChatPartnerSerializer(many=True)},
        tags=["Chat - Presence"],
    )
    def get(self, request):
        partners = UserDirectoryService.chat_partners(request.user)
        serializer = ChatPartnerSerializer(
            partners,
            many=True,
            context={
                "request": request,
                "online_user_ids": set(get_presence_registry().list_online()),
            },
        )
        return Response(serializer.data)


class OnlineUsersView(APIView):
    """Ids of users with a live realtime connection in this process."""

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="list_online_users",
        summary="List online users",
        responses={200: OnlineUsersSerializer},
        tags=["Chat - Presence"],
    )
    def get(self, request):
        online = get_presence_registry().list_online()
        return Response({"online_users": online, "count": len(online)})
