"""
Chat app for real-time private messaging.

This app handles:
- Conversations between two users (explicit find-or-create)
- Realtime delivery over a single websocket endpoint
- Presence (online/offline with a disconnect grace period)
- Translation of messages into the receiver's preferred language
- Read receipts, typing indicators and attachment relay

Related apps:
    - authentication: User model (preferred_language)

WebSocket Support:
    Uses Django Channels. See consumers.py for the endpoint, realtime.py
    for the process-wide services it drives.

Usage:
    from chat.services import ConversationService

    result = ConversationService.find_or_create_direct(user, other_user)
"""
