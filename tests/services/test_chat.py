# tests/services/test_chat.py
"""Tests for the chat service and realtime delivery."""

import asyncio

import pytest

from inspira.core.errors import ApiErrorCode, InvalidRequestError, NotFoundError
from inspira.models import ChatConversation, ChatMessage
from inspira.services import chat
from inspira.services.notifications import ConnectionRegistry, notify_quietly


def test_conversation_pair_is_unordered(make_user, db_session) -> None:
    alice = make_user("Alice")
    bob = make_user("Bob")

    first, created = chat.get_or_create_conversation(db_session, bob.ctx, alice.profile_id)
    second, created_again = chat.get_or_create_conversation(
        db_session, alice.ctx, bob.profile_id
    )

    assert created is True
    assert created_again is False
    assert first.id == second.id
    assert first.other_participant.id == alice.profile_id
    assert second.other_participant.id == bob.profile_id
    stored = db_session.query(ChatConversation).one()
    assert stored.participant1_id < stored.participant2_id


def test_conversation_with_self_or_unknown(make_user, db_session) -> None:
    alice = make_user("Alice")

    with pytest.raises(InvalidRequestError) as exc_info:
        chat.get_or_create_conversation(db_session, alice.ctx, alice.profile_id)
    assert exc_info.value.code is ApiErrorCode.E_SELF_CONVERSATION

    with pytest.raises(NotFoundError):
        chat.get_or_create_conversation(db_session, alice.ctx, 9999)


def test_send_message_notifies_other_participant(make_user, db_session, notifier) -> None:
    alice = make_user("Alice")
    bob = make_user("Bob")
    conversation, _ = chat.get_or_create_conversation(db_session, alice.ctx, bob.profile_id)

    message = chat.send_message(db_session, alice.ctx, notifier, conversation.id, content=" hi ")

    assert message.content == "hi"
    assert message.is_read is False
    assert notifier.sent[0][0] == bob.profile_id
    assert notifier.sent[0][1]["type"] == "new_message"
    assert notifier.sent[0][1]["data"]["content"] == "hi"
    stored = db_session.get(ChatConversation, conversation.id)
    assert stored.last_message_id == message.id


def test_notifier_failure_does_not_fail_send(make_user, db_session) -> None:
    alice = make_user("Alice")
    bob = make_user("Bob")
    conversation, _ = chat.get_or_create_conversation(db_session, alice.ctx, bob.profile_id)

    class BrokenNotifier:
        def notify(self, profile_id, payload):
            raise ConnectionError("socket gone")

    chat.send_message(db_session, alice.ctx, BrokenNotifier(), conversation.id, content="hello")

    assert db_session.query(ChatMessage).count() == 1


def test_file_message_requires_url(make_user, db_session, notifier) -> None:
    alice = make_user("Alice")
    bob = make_user("Bob")
    conversation, _ = chat.get_or_create_conversation(db_session, alice.ctx, bob.profile_id)

    with pytest.raises(InvalidRequestError) as exc_info:
        chat.send_message(
            db_session, alice.ctx, notifier, conversation.id, content="doc", message_type="FILE"
        )

    assert exc_info.value.code is ApiErrorCode.E_MISSING_FIELD
    assert notifier.sent == []


def test_outsider_cannot_see_conversation(make_user, db_session, notifier) -> None:
    alice = make_user("Alice")
    bob = make_user("Bob")
    eve = make_user("Eve")
    conversation, _ = chat.get_or_create_conversation(db_session, alice.ctx, bob.profile_id)

    with pytest.raises(NotFoundError) as exc_info:
        chat.send_message(db_session, eve.ctx, notifier, conversation.id, content="hey")

    assert exc_info.value.code is ApiErrorCode.E_CONVERSATION_NOT_FOUND


def test_listing_marks_received_messages_read(make_user, db_session, notifier) -> None:
    alice = make_user("Alice")
    bob = make_user("Bob")
    conversation, _ = chat.get_or_create_conversation(db_session, alice.ctx, bob.profile_id)
    chat.send_message(db_session, alice.ctx, notifier, conversation.id, content="one")
    chat.send_message(db_session, bob.ctx, notifier, conversation.id, content="two")

    inbox = chat.list_conversations(db_session, bob.ctx)
    assert inbox[0].unread_count == 1

    messages, pagination = chat.list_messages(db_session, bob.ctx, conversation.id)

    assert [m.content for m in messages] == ["one", "two"]
    assert pagination.total == 2
    by_content = {m.content: m for m in messages}
    assert by_content["one"].is_read is True
    assert by_content["two"].is_read is False


def test_mark_read_rules(make_user, db_session, notifier) -> None:
    alice = make_user("Alice")
    bob = make_user("Bob")
    conversation, _ = chat.get_or_create_conversation(db_session, alice.ctx, bob.profile_id)
    sent = chat.send_message(db_session, alice.ctx, notifier, conversation.id, content="hi")

    with pytest.raises(InvalidRequestError) as exc_info:
        chat.mark_read(db_session, alice.ctx, sent.id)
    assert exc_info.value.code is ApiErrorCode.E_OWN_MESSAGE

    read = chat.mark_read(db_session, bob.ctx, sent.id, notifier)
    assert read.is_read is True
    assert read.read_at is not None
    assert notifier.types_for(alice.profile_id) == ["message_read"]

    with pytest.raises(NotFoundError) as exc_info:
        chat.mark_read(db_session, bob.ctx, 12345)
    assert exc_info.value.code is ApiErrorCode.E_MESSAGE_NOT_FOUND


def test_search_users_excludes_caller(make_user, db_session) -> None:
    alice = make_user("Alice")
    make_user("Alina")
    make_user("Bob")

    users, pagination = chat.search_users(db_session, alice.ctx, "ali")

    assert [u.name for u in users] == ["Alina"]
    assert pagination.total == 1


class _FakeSocket:
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.sent: list[dict] = []

    async def send_json(self, payload):
        if self.fail:
            raise RuntimeError("closed")
        self.sent.append(payload)


def test_registry_send_is_best_effort() -> None:
    registry = ConnectionRegistry()
    good = _FakeSocket()
    broken = _FakeSocket(fail=True)

    async def scenario():
        await registry.connect(1, good)
        await registry.connect(2, broken)
        delivered = await registry.send(1, {"type": "ping"})
        dropped = await registry.send(2, {"type": "ping"})
        offline = await registry.send(3, {"type": "ping"})
        return delivered, dropped, offline

    delivered, dropped, offline = asyncio.run(scenario())

    assert (delivered, dropped, offline) == (True, False, False)
    assert good.sent == [{"type": "ping"}]
    assert registry.is_connected(1)
    assert not registry.is_connected(2)


def test_notify_quietly_swallows_errors() -> None:
    class Boom:
        def notify(self, profile_id, payload):
            raise RuntimeError("boom")

    notify_quietly(Boom(), 1, {"type": "x"})
