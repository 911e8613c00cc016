"""
Tests for chat business logic against an in-memory database.

Test coverage:
- SqlChatStore participant checks and message persistence
- Team chat creation and joining
- Sending messages over HTTP
- History paging and member listing
"""

from datetime import datetime, timedelta, timezone

import pytest

from projectx_backend.business_logic.chat import (
    DEFAULT_PAGE_LIMIT,
    SqlChatStore,
    create_team_chat,
    get_messages,
    get_or_create_team_chat,
    get_room_members,
    join_team_chat,
    message_event,
    send_message,
)
from projectx_backend.database import SessionLocal
from projectx_backend.exceptions import (
    BadRequestException,
    ChatAccessDeniedException,
    ForbiddenException,
    NotFoundException,
)
from projectx_backend.model.chat import ChatMessage, ChatParticipant, ChatRoom
from projectx_backend.permissions.principal import Principal
from projectx_backend.settings import settings


def _principal(user):
    return Principal(user_id=user.id, username=user.username, role=user.role)


@pytest.fixture
def room(db, make_user):
    owner = make_user("owner")
    return create_team_chat("General", "General chat", owner.id, db)


@pytest.fixture
def store():
    return SqlChatStore(SessionLocal)


class TestSqlChatStore:
    """Tests for the store used by the WebSocket router."""

    def test_participant_checks(self, db, room, make_user, store):
        member = make_user("member")
        reader = make_user("reader")
        banned = make_user("banned")
        outsider = make_user("outsider")
        db.add_all([
            ChatParticipant(chat_room_id=room.id, user_id=member.id, role="member", is_blocked=False),
            ChatParticipant(chat_room_id=room.id, user_id=reader.id, role="read_only", is_blocked=False),
            ChatParticipant(chat_room_id=room.id, user_id=banned.id, role="member", is_blocked=True),
        ])
        db.commit()

        assert store.is_participant(room.id, member.id)
        assert not store.is_participant(room.id, outsider.id)
        assert store.is_read_only(room.id, reader.id)
        assert not store.is_read_only(room.id, member.id)
        assert store.is_blocked(room.id, banned.id)
        assert not store.is_blocked(room.id, member.id)
        assert not store.is_blocked(room.id, outsider.id)

    def test_save_message(self, db, room, store):
        saved = store.save_message(room.id, room.created_by, "hello", "file", None, {"name": "a.pdf"})

        assert saved.id is not None
        message = db.query(ChatMessage).filter(ChatMessage.id == saved.id).one()
        assert message.content == "hello"
        assert message.type == "file"
        assert message.status == "sent"
        assert message.properties == {"name": "a.pdf"}

    def test_save_message_rejects_unknown_type(self, room, store):
        with pytest.raises(ValueError):
            store.save_message(room.id, room.created_by, "hello", "sticker")

    def test_touch_room_last_message(self, db, room, store):
        at = datetime(2026, 1, 2, 3, 4, 5, tzinfo=timezone.utc)

        store.touch_room_last_message(room.id, at)

        db.expire_all()
        last_message = db.query(ChatRoom.last_message).filter(ChatRoom.id == room.id).scalar()
        assert last_message.replace(tzinfo=None) == at.replace(tzinfo=None)


class TestTeamChat:
    """Tests for creating and joining the team chat room."""

    def test_create_team_chat_joins_creator(self, db, room):
        participants = db.query(ChatParticipant).filter(ChatParticipant.chat_room_id == room.id).all()

        assert [p.user_id for p in participants] == [room.created_by]

    def test_create_team_chat_returns_existing(self, db, room, make_user):
        other = make_user("other")

        again = create_team_chat("General", "Duplicate", other.id, db)

        assert again.id == room.id
        assert db.query(ChatRoom).count() == 1

    def test_join_team_chat_is_idempotent(self, db, room, make_user):
        user = make_user("joiner")

        first = join_team_chat(room.id, user.id, db)
        second = join_team_chat(room.id, user.id, db)

        assert first.id == second.id
        assert db.query(ChatParticipant).filter(ChatParticipant.user_id == user.id).count() == 1

    def test_get_or_create_team_chat(self, db, make_user):
        alice = make_user("alice")
        bob = make_user("bob")

        created = get_or_create_team_chat(_principal(alice), db)
        joined = get_or_create_team_chat(_principal(bob), db)

        assert created.id == joined.id
        assert created.name == settings.TEAM_CHAT_NAME
        assert {u.username for u in get_room_members(created.id, db)} == {"alice", "bob"}


class TestSendMessage:
    """Tests for sending messages over HTTP."""

    def test_send_message(self, db, room, make_user):
        owner_principal = Principal(user_id=room.created_by, username="owner")

        message = send_message(room.id, owner_principal, "hello team", db)

        assert message.id is not None
        assert message.type == "text"
        db.expire_all()
        assert db.query(ChatRoom.last_message).filter(ChatRoom.id == room.id).scalar() is not None

    def test_non_participant_denied(self, db, room, make_user):
        outsider = make_user("outsider")

        with pytest.raises(ChatAccessDeniedException):
            send_message(room.id, _principal(outsider), "hello", db)

    def test_read_only_forbidden(self, db, room, make_user):
        reader = make_user("reader")
        db.add(ChatParticipant(chat_room_id=room.id, user_id=reader.id, role="read_only", is_blocked=False))
        db.commit()

        with pytest.raises(ForbiddenException):
            send_message(room.id, _principal(reader), "hello", db)

    def test_blank_content(self, db, room):
        owner_principal = Principal(user_id=room.created_by, username="owner")

        with pytest.raises(BadRequestException):
            send_message(room.id, owner_principal, "  ", db)

    def test_message_event(self, db, room):
        owner_principal = Principal(user_id=room.created_by, username="owner")
        message = send_message(room.id, owner_principal, "hello", db)

        event = message_event(message, "owner")

        assert event.type == "message"
        assert event.message_id == message.id
        assert event.room_id == room.id
        assert event.sender_name == "owner"
        assert event.message_type == "text"


class TestHistory:
    """Tests for paging through room history."""

    def _seed(self, db, room, count):
        base = datetime(2026, 1, 1, tzinfo=timezone.utc)
        for index in range(count):
            db.add(ChatMessage(
                chat_room_id=room.id,
                sender_id=room.created_by,
                content=f"m{index}",
                type="text",
                status="sent",
                created_at=base + timedelta(minutes=index),
            ))
        db.commit()

    def test_newest_first(self, db, room):
        self._seed(db, room, 3)

        result = get_messages(room.id, room.created_by, 1, 50, db)

        assert [m.content for m in result.messages] == ["m2", "m1", "m0"]
        assert result.messages[0].sender == "owner"

    def test_paging(self, db, room):
        self._seed(db, room, 5)

        page_two = get_messages(room.id, room.created_by, 2, 2, db)

        assert [m.content for m in page_two.messages] == ["m2", "m1"]
        assert page_two.page == 2
        assert page_two.limit == 2

    @pytest.mark.parametrize("page,limit", [(0, 10), (-1, 0), (1, 500)])
    def test_out_of_range_paging_normalized(self, db, room, page, limit):
        result = get_messages(room.id, room.created_by, page, limit, db)

        assert result.page >= 1
        assert 1 <= result.limit <= 100
        if limit < 1 or limit > 100:
            assert result.limit == DEFAULT_PAGE_LIMIT

    def test_history_requires_participation(self, db, room, make_user):
        outsider = make_user("outsider")

        with pytest.raises(ChatAccessDeniedException):
            get_messages(room.id, outsider.id, 1, 50, db)


class TestMembers:

    def test_members_of_missing_room(self, db):
        with pytest.raises(NotFoundException):
            get_room_members(12345, db)

    def test_members_ordered_by_id(self, db, room, make_user):
        users = [make_user(f"user{i}") for i in range(3)]
        for user in reversed(users):
            join_team_chat(room.id, user.id, db)

        members = get_room_members(room.id, db)

        assert [m.id for m in members] == sorted(m.id for m in members)
        assert len(members) == 4
