"""
WebSocket URL routing for the chat application.

URL Patterns:
    ws/chat/ - Single realtime endpoint; every event travels over it as
               {"type": <event>, "data": <payload>}

Authentication:
    Optional. A JWT may be passed as ?token=<jwt_access_token> or via the
    "jwt" subprotocol; JWTAuthMiddleware attaches the user to the scope.
"""

from django.urls import path

from chat import consumers

websocket_urlpatterns = [
    path("ws/chat/", consumers.ChatConsumer.as_asgi()),
]
