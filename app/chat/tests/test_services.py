"""
Tests for chat service layer business logic.

- ConversationService: find-or-create, pointer updates, clearing
- MessageService: inserts, attachments, read receipts, history
- UserDirectoryService: language lookup, chat partners

Tests use descriptive names following: test_<scenario>_<expected_outcome>
"""

import pytest

from authentication.tests.factories import UserFactory
from chat.models import Conversation, DirectConversationPair, Message, MessageType
from chat.services import ConversationService, MessageService, UserDirectoryService
from chat.tests.factories import MessageFactory


def _send(conversation, sender, receiver, text="hello", **extra):
    message = MessageService.create_message(
        conversation_id=conversation.id,
        sender_id=sender.id,
        receiver_id=receiver.id,
        original_text=text,
        **extra,
    )
    ConversationService.record_message(
        conversation.id, message.id, [sender.id, receiver.id]
    )
    return message


# =============================================================================
# ConversationService
# =============================================================================


class TestFindOrCreateDirect:
    def test_creates_conversation_with_both_participants(self, english_user, hindi_user):
        result = ConversationService.find_or_create_direct(english_user, hindi_user)

        assert result.success is True
        assert set(result.data.participants.values_list("pk", flat=True)) == {
            english_user.id,
            hindi_user.id,
        }
        assert DirectConversationPair.objects.filter(conversation=result.data).exists()

    def test_returns_existing_regardless_of_order(self, english_user, hindi_user):
        first = ConversationService.find_or_create_direct(english_user, hindi_user)
        second = ConversationService.find_or_create_direct(hindi_user, english_user)

        assert first.data.id == second.data.id
        assert Conversation.objects.count() == 1

    def test_rejects_same_user(self, english_user):
        result = ConversationService.find_or_create_direct(english_user, english_user)

        assert result.success is False
        assert result.error_code == "SAME_USER"


class TestGetForParticipant:
    def test_participant_gets_conversation(self, conversation, english_user):
        result = ConversationService.get_for_participant(conversation.id, english_user)

        assert result.data == conversation

    def test_outsider_is_refused(self, conversation, outsider):
        result = ConversationService.get_for_participant(conversation.id, outsider)

        assert result.error_code == "NOT_PARTICIPANT"

    def test_unknown_conversation(self, english_user):
        result = ConversationService.get_for_participant(999999, english_user)

        assert result.error_code == "NOT_FOUND"


class TestRecordMessage:
    def test_sets_pointer_and_resets_read_by(
        self, conversation, english_user, hindi_user
    ):
        conversation.read_by.add(hindi_user)

        message = _send(conversation, english_user, hindi_user)

        conversation.refresh_from_db()
        assert conversation.last_message == message
        assert conversation.last_message_at == message.created_at
        assert list(conversation.read_by.values_list("pk", flat=True)) == [english_user.id]

    def test_rejects_message_from_other_conversation(
        self, conversation, english_user, hindi_user, outsider
    ):
        elsewhere = ConversationService.find_or_create_direct(english_user, outsider).data
        message = _send(elsewhere, english_user, outsider)

        with pytest.raises(ValueError):
            ConversationService.record_message(
                conversation.id, message.id, [english_user.id, hindi_user.id]
            )


class TestListForUser:
    def test_annotates_unseen_count(self, conversation, english_user, hindi_user):
        _send(conversation, english_user, hindi_user, "one")
        _send(conversation, english_user, hindi_user, "two")
        _send(conversation, hindi_user, english_user, "back")

        [listed] = ConversationService.list_for_user(hindi_user)

        assert listed.unseen_count == 2

    def test_excludes_other_users_conversations(self, conversation, outsider):
        assert list(ConversationService.list_for_user(outsider)) == []


class TestClearMessages:
    def test_deletes_messages_and_resets_pointer(
        self, conversation, english_user, hindi_user
    ):
        _send(conversation, english_user, hindi_user)
        _send(conversation, hindi_user, english_user)

        result = ConversationService.clear_messages(conversation, english_user)

        assert result.data == 2
        conversation.refresh_from_db()
        assert conversation.last_message is None
        assert conversation.messages.count() == 0
        assert conversation.read_by.count() == 0

    def test_outsider_cannot_clear(self, conversation, english_user, hindi_user, outsider):
        _send(conversation, english_user, hindi_user)

        result = ConversationService.clear_messages(conversation, outsider)

        assert result.error_code == "NOT_PARTICIPANT"
        assert conversation.messages.count() == 1


# =============================================================================
# MessageService
# =============================================================================


class TestCreateMessage:
    def test_translation_defaults_to_original(self, conversation, english_user, hindi_user):
        message = MessageService.create_message(
            conversation_id=conversation.id,
            sender_id=english_user.id,
            receiver_id=hindi_user.id,
            original_text="hello",
        )

        assert message.translated_text == "hello"
        assert message.translated_language == "en"

    def test_keeps_translation(self, conversation, english_user, hindi_user):
        message = MessageService.create_message(
            conversation_id=conversation.id,
            sender_id=english_user.id,
            receiver_id=hindi_user.id,
            original_text="hello",
            translated_text="namaste",
            translated_language="hi",
        )

        assert message.was_translated is True


class TestCreateAttachmentMessage:
    def test_records_attachment_for_other_participant(
        self, conversation, english_user, hindi_user
    ):
        result = MessageService.create_attachment_message(
            conversation,
            english_user,
            message_type=MessageType.IMAGE,
            attachment_id="blob-1",
            filename="cat.png",
            content_type="image/png",
            caption="look",
        )

        message = result.data
        assert message.receiver_id == hindi_user.id
        assert message.original_text == "look"
        assert message.attachment_filename == "cat.png"
        conversation.refresh_from_db()
        assert conversation.last_message == message

    def test_content_type_must_match_kind(self, conversation, english_user):
        result = MessageService.create_attachment_message(
            conversation,
            english_user,
            message_type=MessageType.AUDIO,
            attachment_id="blob-1",
            filename="cat.png",
            content_type="image/png",
        )

        assert result.error_code == "INVALID_CONTENT_TYPE"

    def test_text_is_not_an_attachment_kind(self, conversation, english_user):
        result = MessageService.create_attachment_message(
            conversation,
            english_user,
            message_type=MessageType.TEXT,
            attachment_id="blob-1",
            filename="a.txt",
            content_type="text/plain",
        )

        assert result.error_code == "INVALID_TYPE"

    def test_outsider_cannot_attach(self, conversation, outsider):
        result = MessageService.create_attachment_message(
            conversation,
            outsider,
            message_type=MessageType.IMAGE,
            attachment_id="blob-1",
            filename="cat.png",
            content_type="image/png",
        )

        assert result.error_code == "NOT_PARTICIPANT"


class TestMarkSeen:
    def test_flips_only_messages_addressed_to_user(
        self, conversation, english_user, hindi_user
    ):
        _send(conversation, english_user, hindi_user, "one")
        _send(conversation, english_user, hindi_user, "two")
        mine = _send(conversation, hindi_user, english_user, "mine")

        count = MessageService.mark_seen(conversation.id, hindi_user.id)

        assert count == 2
        mine.refresh_from_db()
        assert mine.seen is False

    def test_second_call_changes_nothing(self, conversation, english_user, hindi_user):
        _send(conversation, english_user, hindi_user)
        MessageService.mark_seen(conversation.id, hindi_user.id)

        assert MessageService.mark_seen(conversation.id, hindi_user.id) == 0


class TestBetweenUsers:
    def test_returns_both_directions_oldest_first(
        self, conversation, english_user, hindi_user, outsider
    ):
        first = _send(conversation, english_user, hindi_user, "one")
        second = _send(conversation, hindi_user, english_user, "two")
        MessageFactory(sender=english_user, receiver=outsider)

        messages = list(MessageService.between_users(english_user, hindi_user.id))

        assert messages == [first, second]


# =============================================================================
# UserDirectoryService
# =============================================================================


class TestUserDirectory:
    def test_preferred_language(self, hindi_user):
        assert UserDirectoryService.get_preferred_language(hindi_user.id) == "hi"

    def test_unknown_user(self, db):
        assert UserDirectoryService.get_preferred_language(999999) is None

    def test_inactive_user(self, db):
        user = UserFactory(is_active=False, preferred_language="fr")

        assert UserDirectoryService.get_preferred_language(user.id) is None

    def test_non_numeric_id(self, db):
        assert UserDirectoryService.get_preferred_language("abc") is None

    def test_chat_partners_with_unseen_counts(
        self, conversation, english_user, hindi_user, outsider
    ):
        _send(conversation, hindi_user, english_user, "one")
        _send(conversation, hindi_user, english_user, "two")

        partners = list(UserDirectoryService.chat_partners(english_user))

        assert partners == [hindi_user]
        assert partners[0].unseen_count == 2
        assert Message.objects.filter(receiver=english_user, seen=False).count() == 2
