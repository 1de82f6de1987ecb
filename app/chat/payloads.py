"""
Normalization of incoming websocket payloads.

Clients send the same information under several names (``from``/``sender``,
``to``/``receiver``, ``message``/``text``/``originalText``). Every accepted
shape is mapped here into one canonical intent type; nothing downstream
ever looks at raw payload keys.

All normalizers raise InvalidMessage for missing or malformed fields.

Usage:
    intent = normalize_private_message(frame["data"])
    await dispatcher.dispatch(intent, channel_name)
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from chat.constants import MESSAGE_CONFIG, PRESENCE_CONFIG
from chat.exceptions import InvalidMessage

_ID_PATTERN = re.compile(r"[A-Za-z0-9._-]+")


@dataclass(frozen=True)
class MessageIntent:
    """Canonical outbound text message."""

    sender_id: str
    receiver_id: str
    conversation_id: str
    text: str
    client_message_id: str = ""
    source_language: str | None = None


@dataclass(frozen=True)
class AttachmentIntent:
    """Notification that an attachment message was persisted out of band."""

    message_id: str
    kind: str


@dataclass(frozen=True)
class SeenIntent:
    conversation_id: str
    user_id: str


@dataclass(frozen=True)
class TypingIntent:
    conversation_id: str
    sender_id: str
    receiver_id: str
    is_typing: bool = True


def coerce_id(value) -> str | None:
    """
    Normalize an identifier from JSON into a non-empty string.

    Accepts strings and integers; returns None for anything else (including
    booleans, which are ints in Python but never valid ids).

    Raises:
        InvalidMessage: the id cannot be used in a channel layer group name
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        value = str(value)
    if not isinstance(value, str):
        return None

    value = value.strip()
    if not value:
        return None
    if len(value) > PRESENCE_CONFIG.MAX_USER_ID_LENGTH or not _ID_PATTERN.fullmatch(value):
        raise InvalidMessage("Invalid identifier")
    return value


def extract_user_id(data) -> str | None:
    """
    Read the user id from a ``user_connected`` or ``heartbeat`` payload.

    The payload is either the bare id or an object with ``userId``.
    """
    if isinstance(data, dict):
        data = data.get("userId", data.get("user_id"))
    return coerce_id(data)


def _require_dict(data) -> dict:
    if not isinstance(data, dict):
        raise InvalidMessage("Invalid message format")
    return data


def normalize_private_message(data) -> MessageIntent:
    """
    Map any accepted ``private_message`` shape to a MessageIntent.

    Accepted shapes:
        {"from", "to", "message"|"text", "conversationId", "clientMessageId"?}
        {"sender", "receiver", "originalText"|"text"|"message", "conversationId", ...}

    Raises:
        InvalidMessage: unknown shape, missing fields, self-addressed or
            over-long text
    """
    data = _require_dict(data)

    if data.get("from") is not None and data.get("to") is not None:
        sender, receiver = data.get("from"), data.get("to")
        text = data.get("message") or data.get("text")
    elif data.get("sender") is not None and data.get("receiver") is not None:
        sender, receiver = data.get("sender"), data.get("receiver")
        text = data.get("originalText") or data.get("text") or data.get("message")
    else:
        raise InvalidMessage("Invalid message format")

    sender_id = coerce_id(sender)
    receiver_id = coerce_id(receiver)
    conversation_id = coerce_id(data.get("conversationId"))
    text = text.strip() if isinstance(text, str) else ""

    missing = [
        name
        for name, value in (
            ("sender", sender_id),
            ("receiver", receiver_id),
            ("text", text),
            ("conversationId", conversation_id),
        )
        if not value
    ]
    if missing:
        raise InvalidMessage(
            "Missing required message fields", details={"missing": missing}
        )

    if sender_id == receiver_id:
        raise InvalidMessage("Cannot send a message to yourself")

    if len(text) > MESSAGE_CONFIG.MAX_CONTENT_LENGTH:
        raise InvalidMessage(
            f"Message exceeds {MESSAGE_CONFIG.MAX_CONTENT_LENGTH} characters"
        )

    client_message_id = data.get("clientMessageId") or ""
    if not isinstance(client_message_id, str) or (
        len(client_message_id) > MESSAGE_CONFIG.MAX_CLIENT_MESSAGE_ID_LENGTH
    ):
        raise InvalidMessage("Invalid clientMessageId")

    source_language = data.get("sourceLanguage")
    if source_language is not None and not (
        isinstance(source_language, str) and source_language.strip()
    ):
        raise InvalidMessage("Invalid sourceLanguage")

    return MessageIntent(
        sender_id=sender_id,
        receiver_id=receiver_id,
        conversation_id=conversation_id,
        text=text,
        client_message_id=client_message_id,
        source_language=source_language.strip() if source_language else None,
    )


def normalize_attachment(data, kind: str) -> AttachmentIntent:
    """
    Read the persisted message id from an ``image_message``/``audio_message``.

    The payload is the message record returned by the attachment upload
    endpoint, so the id may appear as ``_id``, ``id`` or ``messageId``.
    """
    data = _require_dict(data)
    message_id = coerce_id(
        data.get("_id") or data.get("id") or data.get("messageId")
    )
    if not message_id:
        raise InvalidMessage("Attachment message id is required")
    return AttachmentIntent(message_id=message_id, kind=kind)


def normalize_seen(data) -> SeenIntent:
    data = _require_dict(data)
    conversation_id = coerce_id(data.get("conversationId"))
    user_id = coerce_id(data.get("userId"))
    if not conversation_id or not user_id:
        raise InvalidMessage("conversationId and userId are required")
    return SeenIntent(conversation_id=conversation_id, user_id=user_id)


def normalize_typing(data) -> TypingIntent:
    data = _require_dict(data)
    sender_id = coerce_id(data.get("from", data.get("sender")))
    receiver_id = coerce_id(data.get("to", data.get("receiver")))
    conversation_id = coerce_id(data.get("conversationId"))
    if not (sender_id and receiver_id and conversation_id):
        raise InvalidMessage("Typing event requires conversationId, from and to")
    return TypingIntent(
        conversation_id=conversation_id,
        sender_id=sender_id,
        receiver_id=receiver_id,
        is_typing=bool(data.get("isTyping", True)),
    )
