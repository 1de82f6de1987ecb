"""
Tests for websocket payload normalization.

Every accepted private_message shape must produce the same MessageIntent;
malformed payloads raise InvalidMessage.
"""

import pytest

from chat.exceptions import InvalidMessage
from chat.payloads import (
    coerce_id,
    extract_user_id,
    normalize_attachment,
    normalize_private_message,
    normalize_seen,
    normalize_typing,
)


class TestNormalizePrivateMessage:
    def test_from_to_message_shape(self):
        intent = normalize_private_message(
            {"from": "1", "to": "2", "message": "hello", "conversationId": "9"}
        )

        assert intent.sender_id == "1"
        assert intent.receiver_id == "2"
        assert intent.text == "hello"
        assert intent.conversation_id == "9"

    def test_sender_receiver_original_text_shape_matches(self):
        a = normalize_private_message(
            {"from": 1, "to": 2, "text": "hello", "conversationId": 9}
        )
        b = normalize_private_message(
            {"sender": "1", "receiver": "2", "originalText": "hello", "conversationId": "9"}
        )

        assert a == b

    def test_keeps_client_message_id_and_source_language(self):
        intent = normalize_private_message(
            {
                "from": "1",
                "to": "2",
                "message": "hola",
                "conversationId": "9",
                "clientMessageId": "c-1",
                "sourceLanguage": "es",
            }
        )

        assert intent.client_message_id == "c-1"
        assert intent.source_language == "es"

    def test_missing_text_lists_missing_field(self):
        with pytest.raises(InvalidMessage) as exc_info:
            normalize_private_message({"from": "1", "to": "2", "conversationId": "9"})

        assert exc_info.value.message == "Missing required message fields"
        assert exc_info.value.details == {"missing": ["text"]}

    def test_missing_conversation_id_is_rejected(self):
        with pytest.raises(InvalidMessage) as exc_info:
            normalize_private_message({"from": "1", "to": "2", "message": "hi"})

        assert "conversationId" in exc_info.value.details["missing"]

    def test_unknown_shape_is_rejected(self):
        with pytest.raises(InvalidMessage, match="Invalid message format"):
            normalize_private_message({"author": "1", "text": "hi"})

    def test_non_object_is_rejected(self):
        with pytest.raises(InvalidMessage):
            normalize_private_message("hello")

    def test_message_to_self_is_rejected(self):
        with pytest.raises(InvalidMessage, match="yourself"):
            normalize_private_message(
                {"from": "1", "to": 1, "message": "me", "conversationId": "9"}
            )

    def test_whitespace_only_text_counts_as_missing(self):
        with pytest.raises(InvalidMessage):
            normalize_private_message(
                {"from": "1", "to": "2", "message": "   ", "conversationId": "9"}
            )

    def test_over_long_text_is_rejected(self):
        with pytest.raises(InvalidMessage, match="exceeds"):
            normalize_private_message(
                {"from": "1", "to": "2", "message": "x" * 10001, "conversationId": "9"}
            )


class TestOtherPayloads:
    def test_extract_user_id_accepts_bare_value_or_object(self):
        assert extract_user_id("5") == "5"
        assert extract_user_id(5) == "5"
        assert extract_user_id({"userId": 5}) == "5"
        assert extract_user_id({}) is None
        assert extract_user_id("") is None

    def test_coerce_id_rejects_booleans(self):
        assert coerce_id(True) is None

    def test_coerce_id_accepts_object_id_like_strings(self):
        assert coerce_id("64f1c2ab9e.user_1-a") == "64f1c2ab9e.user_1-a"

    @pytest.mark.parametrize("value", ["bad id!", "ü", "a/b", "x" * 95])
    def test_ids_unusable_as_group_names_are_rejected(self, value):
        with pytest.raises(InvalidMessage, match="Invalid identifier"):
            extract_user_id(value)

    def test_normalize_attachment_reads_any_id_key(self):
        assert normalize_attachment({"_id": "4"}, "image").message_id == "4"
        assert normalize_attachment({"id": 4}, "audio").message_id == "4"
        assert normalize_attachment({"messageId": "4"}, "image").kind == "image"

    def test_normalize_attachment_requires_id(self):
        with pytest.raises(InvalidMessage):
            normalize_attachment({"filename": "a.png"}, "image")

    def test_normalize_seen(self):
        intent = normalize_seen({"conversationId": 3, "userId": "2"})

        assert (intent.conversation_id, intent.user_id) == ("3", "2")

    def test_normalize_seen_requires_both_ids(self):
        with pytest.raises(InvalidMessage):
            normalize_seen({"conversationId": "3"})

    def test_normalize_typing_defaults_to_typing(self):
        intent = normalize_typing({"conversationId": "3", "from": "1", "to": "2"})

        assert intent.is_typing is True

    def test_normalize_typing_stop(self):
        intent = normalize_typing(
            {"conversationId": "3", "sender": "1", "receiver": "2", "isTyping": False}
        )

        assert intent.is_typing is False
