"""
WSGI entry point.

Serves the REST API only (history, conversations, attachments, presence
queries). The realtime websocket and the presence sweep need the ASGI
application in config/asgi.py; a WSGI-only deployment has no live
delivery and reports nobody online.
"""

import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

application = get_wsgi_application()
