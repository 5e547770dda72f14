from datetime import datetime, timedelta, timezone

import pytest

from app.database.connection import MESSAGES
from app.models.chat import CreateConversationRequest, SendMessageRequest
from app.services.chat_service import ChatService
from app.services.chat_subscription import MESSAGES_FEED, PARTICIPANTS_FEED, ChatSubscription


@pytest.fixture
def chat(db):
    return ChatService(db)


@pytest.fixture
def conversation_id(chat):
    return chat.create_conversation(CreateConversationRequest(
        title="Inspection",
        participants=[{"userId": "alice"}, {"userId": "bob", "userType": "expert"}],
    )).id


def _message(conversation_id, content, sender="alice"):
    return SendMessageRequest(
        conversation_id=conversation_id,
        sender_id=sender,
        sender_name=sender.title(),
        content=content,
    )


@pytest.mark.parametrize("bad_id", [None, "", "   "])
def test_requires_conversation_id(db, bad_id):
    with pytest.raises(ValueError):
        ChatSubscription(db, bad_id)


def test_initial_snapshot_and_live_updates(db, chat, conversation_id):
    events = []
    subscription = ChatSubscription(db, conversation_id, on_change=lambda f, d, e: events.append((f, len(d), e)))

    assert subscription.loading is True
    subscription.open()
    assert subscription.loading is False
    assert len(subscription.participants) == 2
    assert subscription.messages == []

    chat.send_message(_message(conversation_id, "hello"))
    chat.send_message(_message(conversation_id, "anyone?"))

    assert [m.content for m in subscription.messages] == ["hello", "anyone?"]
    assert (MESSAGES_FEED, 2, None) in events
    subscription.close()


def test_snapshot_is_sorted_by_timestamp(db, conversation_id):
    base = datetime(2026, 3, 1, tzinfo=timezone.utc)
    for i, content in [(2, "third"), (0, "first"), (1, "second")]:
        db.collection(MESSAGES).document(f"m{i}").set({
            "conversationId": conversation_id,
            "senderId": "bob",
            "senderName": "Bob",
            "senderType": "expert",
            "content": content,
            "timestamp": base + timedelta(minutes=i),
            "isRead": False,
        })

    with ChatSubscription(db, conversation_id) as subscription:
        assert [m.content for m in subscription.messages] == ["first", "second", "third"]


def test_malformed_message_is_skipped(db, chat, conversation_id):
    chat.send_message(_message(conversation_id, "hello"))
    with ChatSubscription(db, conversation_id) as subscription:
        # missing required fields
        db.collection(MESSAGES).document("broken").set({"conversationId": conversation_id})
        chat.send_message(_message(conversation_id, "still here", sender="bob"))

        assert subscription.error(MESSAGES_FEED) is None
        assert [m.content for m in subscription.messages] == ["hello", "still here"]


def test_failed_feed_does_not_affect_the_other(db, chat, conversation_id):
    db.listen_errors[MESSAGES] = RuntimeError("permission denied")

    with ChatSubscription(db, conversation_id) as subscription:
        chat.send_message(_message(conversation_id, "hello"))

        assert subscription.error(MESSAGES_FEED) == "permission denied"
        assert subscription.messages == []
        assert subscription.error(PARTICIPANTS_FEED) is None
        assert len(subscription.participants) == 2


def test_listener_registration_failure_sets_error(db, conversation_id):
    db.listen_error = RuntimeError("permission denied")
    subscription = ChatSubscription(db, conversation_id).open()

    assert subscription.error(MESSAGES_FEED) == "permission denied"
    assert subscription.error(PARTICIPANTS_FEED) == "permission denied"
    assert subscription.loading is False


def test_close_is_idempotent_and_stops_updates(db, chat, conversation_id):
    subscription = ChatSubscription(db, conversation_id).open()
    subscription.close()
    subscription.close()

    assert db.watches == []
    chat.send_message(_message(conversation_id, "after close"))
    assert subscription.messages == []
