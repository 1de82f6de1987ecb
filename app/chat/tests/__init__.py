"""
Tests for chat app.

This package contains test modules for:
- test_presence.py, test_sessions.py, test_broadcast.py: presence core
- test_dispatch.py, test_translation.py, test_payloads.py: message path
- test_models.py, test_services.py, test_store.py: persistence
- test_views.py: REST API endpoint tests
- test_consumers.py, test_middleware.py, test_lifespan.py: websocket surface

Usage:
    pytest chat/tests/
    pytest chat/tests/test_consumers.py
"""
