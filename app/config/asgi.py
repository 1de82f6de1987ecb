"""
ASGI config for the chat backend.

This file exposes the ASGI callable as a module-level variable named
`application`.

This configuration supports:
- HTTP requests via Django (REST API, admin, health check)
- WebSocket connections via Django Channels (realtime chat)
- The ASGI lifespan protocol, which starts the presence sweep and the
  translation probe with the server and stops them on shutdown

For more information on this file, see:
https://docs.djangoproject.com/en/5.2/howto/deployment/asgi/
"""

import os

from django.core.asgi import get_asgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

# Initialize Django ASGI application early to ensure settings are loaded
# before importing any models or other Django components
django_asgi_app = get_asgi_application()

from channels.routing import ProtocolTypeRouter, URLRouter  # noqa: E402
from channels.security.websocket import AllowedHostsOriginValidator  # noqa: E402

from chat.lifespan import RealtimeLifespan  # noqa: E402
from chat.middleware import JWTAuthMiddleware  # noqa: E402
from chat.routing import websocket_urlpatterns  # noqa: E402

application = ProtocolTypeRouter(
    {
        "http": django_asgi_app,
        # WebSocket connections are routed through:
        # 1. AllowedHostsOriginValidator - ensures origin matches ALLOWED_HOSTS
        # 2. JWTAuthMiddleware - optional JWT user on the scope
        # 3. URLRouter - routes to the chat consumer
        "websocket": AllowedHostsOriginValidator(
            JWTAuthMiddleware(URLRouter(websocket_urlpatterns))
        ),
        "lifespan": RealtimeLifespan(),
    }
)
