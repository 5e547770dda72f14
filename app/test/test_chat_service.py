from datetime import datetime, timedelta, timezone

import pytest
from fastapi import HTTPException

from app.models.chat import (
    AddParticipantRequest,
    CreateConversationRequest,
    SendMessageRequest,
)
from app.services.chat_service import ChatService


class StepClock:
    """Each call is one second after the previous one."""

    def __init__(self):
        self.now = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self):
        self.now += timedelta(seconds=1)
        return self.now


@pytest.fixture
def chat(db):
    return ChatService(db, clock=StepClock())


def _conversation(chat, *users, type="direct"):
    return chat.create_conversation(CreateConversationRequest(
        title="Viewing at 12 Oak St",
        type=type,
        participants=[{"userId": u, "userType": "buyer"} for u in users],
    ))


def _send(chat, conversation_id, sender, content):
    return chat.send_message(SendMessageRequest(
        conversation_id=conversation_id,
        sender_id=sender,
        sender_name=sender.title(),
        content=content,
    ))


def test_create_conversation_collapses_duplicate_participants(chat):
    conversation = _conversation(chat, "alice", "bob", "alice")

    assert sorted(p.user_id for p in conversation.participants) == ["alice", "bob"]
    assert conversation.last_message_at == conversation.created_at
    assert conversation.latest_message is None


def test_direct_conversation_needs_two_users(chat):
    with pytest.raises(HTTPException) as exc:
        _conversation(chat, "alice", "alice")
    assert exc.value.status_code == 400


def test_group_conversation_allows_single_member(chat):
    conversation = _conversation(chat, "alice", type="group")
    assert [p.user_id for p in conversation.participants] == ["alice"]


def test_numeric_user_ids_are_normalised(chat):
    conversation = chat.create_conversation(CreateConversationRequest(
        title="Numbers",
        participants=[{"userId": 7}, {"userId": "8"}],
    ))
    assert sorted(p.user_id for p in conversation.participants) == ["7", "8"]


def test_send_message_to_missing_conversation_is_404(chat):
    with pytest.raises(HTTPException) as exc:
        _send(chat, "missing", "alice", "hello")
    assert exc.value.status_code == 404


def test_messages_come_back_in_timestamp_order(chat):
    conversation = _conversation(chat, "alice", "bob")
    _send(chat, conversation.id, "alice", "first")
    _send(chat, conversation.id, "bob", "second")
    last = _send(chat, conversation.id, "alice", "third")

    messages = chat.get_messages(conversation.id)
    assert [m.content for m in messages] == ["first", "second", "third"]

    details = chat.get_conversation(conversation.id)
    assert details.last_message_at == last.timestamp
    assert details.latest_message.content == "third"


def test_unread_count_ignores_own_messages(chat):
    conversation = _conversation(chat, "alice", "bob")
    _send(chat, conversation.id, "alice", "hi bob")
    _send(chat, conversation.id, "alice", "are you there?")
    _send(chat, conversation.id, "bob", "yes")

    assert chat.get_conversation(conversation.id, "bob").unread_count == 2
    assert chat.get_conversation(conversation.id, "alice").unread_count == 1


def test_mark_read_marks_other_senders_and_is_repeatable(chat):
    conversation = _conversation(chat, "alice", "bob")
    _send(chat, conversation.id, "alice", "hi bob")
    _send(chat, conversation.id, "bob", "hi alice")

    first = chat.mark_read(conversation.id, "bob")
    assert first.success is True
    assert first.messages_marked == 1

    second = chat.mark_read(conversation.id, "bob")
    assert second.messages_marked == 0
    assert second.last_read_at > first.last_read_at

    bob = next(p for p in chat.get_participants(conversation.id) if p.user_id == "bob")
    assert bob.last_read_at == second.last_read_at
    assert chat.get_conversation(conversation.id, "alice").unread_count == 1


def test_mark_read_for_non_participant_is_404(chat):
    conversation = _conversation(chat, "alice", "bob")
    with pytest.raises(HTTPException) as exc:
        chat.mark_read(conversation.id, "mallory")
    assert exc.value.status_code == 404


def test_add_participant_posts_join_message_once(chat):
    conversation = _conversation(chat, "alice", "bob")
    request = AddParticipantRequest(conversation_id=conversation.id, user_id="carol", user_type="expert")

    chat.add_participant(request, "Carol")
    chat.add_participant(request, "Carol")

    messages = chat.get_messages(conversation.id)
    assert [m.type for m in messages] == ["join"]
    assert messages[0].content == "Carol joined the conversation"
    assert len(chat.get_participants(conversation.id)) == 3


def test_remove_participant_posts_leave_message(chat):
    conversation = _conversation(chat, "alice", "bob")
    assert chat.remove_participant(conversation.id, "bob") is True

    assert [p.user_id for p in chat.get_participants(conversation.id)] == ["alice"]
    assert chat.get_messages(conversation.id)[-1].type == "leave"

    with pytest.raises(HTTPException) as exc:
        chat.remove_participant(conversation.id, "bob")
    assert exc.value.status_code == 404


def test_list_conversations_newest_activity_first(chat):
    older = _conversation(chat, "alice", "bob")
    newer = _conversation(chat, "alice", "carol")
    _conversation(chat, "bob", "carol")
    _send(chat, older.id, "bob", "bump")

    listed = chat.list_conversations("alice")
    assert [c.id for c in listed] == [older.id, newer.id]
    assert chat.list_conversations("nobody") == []
