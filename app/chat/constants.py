"""
Constants and configuration for chat module features.

This module centralizes configuration values for:
- Presence tracking (grace period, stale sweep, broadcast groups)
- Translation (service endpoint, timeout, language defaults)
- Message handling (content limits, accepted attachment types)
- Realtime event names exchanged over the websocket

These values can be overridden via Django settings (see config/settings.py).
Import example:
    from chat.constants import PRESENCE_CONFIG, RealtimeEvent
"""

from typing import Final

from django.conf import settings


# =============================================================================
# Presence Configuration
# =============================================================================


class PRESENCE_CONFIG:
    """Configuration for presence tracking."""

    # Delay between a transport disconnect and treating the user as offline
    DISCONNECT_GRACE_SECONDS: Final[float] = 5

    # How often the stale-entry sweep runs
    SWEEP_INTERVAL_SECONDS: Final[float] = 60

    # Entries without activity for this long are reclaimed by the sweep
    STALE_AFTER_SECONDS: Final[float] = 300

    # Channel layer group every connection joins (full presence broadcasts)
    PRESENCE_GROUP: Final[str] = "presence"

    # Per-user group prefix; every connection of a user joins "user_<id>"
    USER_GROUP_PREFIX: Final[str] = "user_"

    # Ids become part of group names, which the channel layer limits to
    # ASCII letters, digits, "-", "_" and "." and fewer than 100 characters
    MAX_USER_ID_LENGTH: Final[int] = 94


# =============================================================================
# Translation Configuration
# =============================================================================


class TRANSLATION_CONFIG:
    """Configuration for the external translation service (LibreTranslate API)."""

    SERVICE_URL: Final[str] = "http://localhost:5001"
    API_KEY: Final[str] = ""

    # Per-request ceiling for calls to the service
    TIMEOUT_SECONDS: Final[float] = 5

    DEFAULT_SOURCE_LANGUAGE: Final[str] = "en"

    # Empty tuple = accept any target language code
    SUPPORTED_LANGUAGES: Final[tuple] = ()

    TRANSLATE_PATH: Final[str] = "/translate"
    LANGUAGES_PATH: Final[str] = "/languages"


# =============================================================================
# Message Configuration
# =============================================================================


class MESSAGE_CONFIG:
    """Configuration for message operations."""

    MAX_CONTENT_LENGTH: Final[int] = 10000  # Characters
    MAX_CLIENT_MESSAGE_ID_LENGTH: Final[int] = 64

    SERVER_ERROR_TEXT: Final[str] = "Server error processing message"

    ALLOWED_ATTACHMENT_PREFIXES: Final[dict] = {
        "image": "image/",
        "audio": "audio/",
    }

    DEFAULT_PAGE_SIZE: Final[int] = 50


# =============================================================================
# Realtime Events
# =============================================================================


class RealtimeEvent:
    """Event names used in {"type": ..., "data": ...} websocket frames."""

    # client -> server
    USER_CONNECTED = "user_connected"
    HEARTBEAT = "heartbeat"
    MARK_SEEN = "mark_seen"
    IMAGE_MESSAGE = "image_message"
    AUDIO_MESSAGE = "audio_message"

    # both directions
    PRIVATE_MESSAGE = "private_message"
    TYPING = "typing"

    # server -> client
    WELCOME = "welcome"
    MESSAGES_SEEN = "messages_seen"
    ONLINE_USERS = "online_users"
    USER_ONLINE = "user_online"
    USER_OFFLINE = "user_offline"
    MESSAGE_DELIVERED = "message_delivered"
    MESSAGE_SENT = "message_sent"
    ERROR_MESSAGE = "error_message"


def presence_setting(name: str):
    """Read a presence value, letting CHAT_* settings override the default."""
    overrides = {
        "DISCONNECT_GRACE_SECONDS": "CHAT_DISCONNECT_GRACE_SECONDS",
        "SWEEP_INTERVAL_SECONDS": "CHAT_PRESENCE_SWEEP_INTERVAL_SECONDS",
        "STALE_AFTER_SECONDS": "CHAT_PRESENCE_STALE_AFTER_SECONDS",
    }
    return getattr(settings, overrides[name], getattr(PRESENCE_CONFIG, name))


def translation_setting(name: str):
    """Read a translation value, letting TRANSLATION_* settings override the default."""
    return getattr(settings, f"TRANSLATION_{name}", getattr(TRANSLATION_CONFIG, name))


def user_group_name(user_id) -> str:
    """Channel layer group that reaches every connection of one user."""
    return f"{PRESENCE_CONFIG.USER_GROUP_PREFIX}{user_id}"
