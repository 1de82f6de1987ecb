"""
Protocol definitions for the collaborators of the realtime core.

The dispatch engine, session manager and presence broadcast depend only on
these interfaces. Production wiring (chat.realtime) plugs in the ORM store
and the channel layer; tests plug in the in-memory fakes from
chat/tests/fakes.py.

Available Protocols:
    MessageStore: Persists messages and conversations
    UserDirectory: Looks up user attributes the core needs
    RealtimeTransport: Pushes events to connections and groups

Snapshot types:
    StoredMessage: Plain copy of a persisted message
    ConversationRef: Plain copy of a conversation's id and participants

Snapshots are immutable and carry no ORM state, so they are safe to hold
across ``await`` points.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from typing import Any


@dataclass(frozen=True)
class ConversationRef:
    """Conversation id plus the string ids of its participants."""

    id: str
    participant_ids: frozenset[str] = field(default_factory=frozenset)

    def has_participant(self, user_id) -> bool:
        return str(user_id) in self.participant_ids

    def other_participant(self, user_id) -> str | None:
        """Return the participant that is not user_id (None if there is none)."""
        others = sorted(self.participant_ids - {str(user_id)})
        return others[0] if others else None


@dataclass(frozen=True)
class StoredMessage:
    """
    Snapshot of a persisted message.

    ``to_payload()`` renders the wire shape used by ``private_message``
    frames. The receiver view carries the translated text as ``text``; the
    sender view carries the original.
    """

    id: str
    conversation_id: str
    sender_id: str
    receiver_id: str
    original_text: str
    translated_text: str
    original_language: str
    translated_language: str
    created_at: datetime
    message_type: str = "text"
    seen: bool = False
    client_message_id: str = ""
    attachment_id: str = ""
    attachment_filename: str = ""
    attachment_content_type: str = ""

    @property
    def timestamp(self) -> str:
        return self.created_at.isoformat()

    @property
    def attachment(self) -> dict | None:
        if not self.attachment_id:
            return None
        return {
            "id": self.attachment_id,
            "filename": self.attachment_filename,
            "contentType": self.attachment_content_type,
        }

    def to_payload(self, view: str = "receiver") -> dict[str, Any]:
        """
        Build the ``private_message`` payload.

        Args:
            view: "receiver" (translated text) or "sender" (original text)
        """
        text = self.translated_text if view == "receiver" else self.original_text
        return {
            "_id": self.id,
            "conversationId": self.conversation_id,
            "sender": self.sender_id,
            "receiver": self.receiver_id,
            "from": self.sender_id,
            "to": self.receiver_id,
            "type": self.message_type,
            "text": text,
            "originalText": self.original_text,
            "translatedText": self.translated_text,
            "originalLanguage": self.original_language,
            "translatedLanguage": self.translated_language,
            "seen": self.seen,
            "clientMessageId": self.client_message_id or None,
            "attachment": self.attachment,
            "createdAt": self.timestamp,
            "timestamp": self.timestamp,
        }


@runtime_checkable
class MessageStore(Protocol):
    """
    Async persistence interface for messages and conversations.

    Implementations raise on infrastructure failures; the dispatch engine
    converts those into StoreWriteFailure.
    """

    async def get_conversation(self, conversation_id) -> ConversationRef | None: ...

    async def find_or_create_conversation(self, user_a, user_b) -> ConversationRef: ...

    async def create_message(
        self,
        *,
        conversation_id,
        sender_id,
        receiver_id,
        original_text: str,
        translated_text: str,
        original_language: str,
        translated_language: str,
        message_type: str = "text",
        client_message_id: str = "",
    ) -> StoredMessage: ...

    async def record_conversation_message(
        self, conversation_id, message_id, participant_ids
    ) -> None:
        """Set the last-message pointer and timestamp and union participants."""
        ...

    async def mark_seen(self, conversation_id, user_id) -> int:
        """Flip seen=True on unseen messages addressed to user_id; return the count."""
        ...

    async def add_reader(self, conversation_id, user_id) -> None: ...

    async def get_message(self, message_id) -> StoredMessage | None: ...

    async def delete_conversation_messages(self, conversation_id) -> int: ...


@runtime_checkable
class UserDirectory(Protocol):
    """Read-only user lookups needed by the realtime core."""

    async def get_preferred_language(self, user_id) -> str | None:
        """Return the user's language code, or None when the user is unknown."""
        ...


@runtime_checkable
class RealtimeTransport(Protocol):
    """
    Pushes ``{"type": event, "data": data}`` frames to clients.

    Handles are opaque connection identifiers (Channels channel names).
    Sending to a handle whose connection has gone away must not raise.
    """

    async def send_to_connection(self, handle: str, event: str, data: Any) -> None: ...

    async def send_to_group(
        self, group: str, event: str, data: Any, exclude: str | None = None
    ) -> None: ...

    async def add_to_group(self, group: str, handle: str) -> None: ...

    async def discard_from_group(self, group: str, handle: str) -> None: ...
