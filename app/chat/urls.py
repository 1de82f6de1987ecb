"""
URL configuration for chat API.

URL Structure:
    Conversations:
        /conversations/                       GET, POST
        /conversations/{id}/                  GET
        /conversations/{id}/messages/         GET
        /conversations/{id}/clear/            POST
        /conversations/{id}/attachments/      POST

    Messages:
        /messages/between/?user=<id>          GET

    Presence:
        /partners/                            GET
        /online-users/                        GET

All URLs are prefixed with /api/v1/chat/ in the main URL configuration.
The realtime endpoint lives in routing.py (ws/chat/).
"""

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from chat.views import (
    ChatPartnersView,
    ConversationViewSet,
    MessagesBetweenView,
    OnlineUsersView,
)

router = DefaultRouter()
router.register(r"conversations", ConversationViewSet, basename="conversation")

app_name = "chat"

urlpatterns = [
    path("", include(router.urls)),
    path("messages/between/", MessagesBetweenView.as_view(), name="messages-between"),
    path("partners/", ChatPartnersView.as_view(), name="partners"),
    path("online-users/", OnlineUsersView.as_view(), name="online-users"),
]
