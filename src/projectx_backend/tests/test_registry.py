"""
Tests for the connection and room registries.

Test coverage:
- Room creation on first join and removal when empty
- Session/room membership staying in step
- Replacement of a user's session and identity-checked unregister
- Thread safety of concurrent joins and leaves
"""

import threading

import pytest

from projectx_backend.websocket.registry import ConnectionRegistry, RoomRegistry
from projectx_backend.tests.conftest import make_session


@pytest.fixture
def rooms():
    return RoomRegistry()


@pytest.fixture
def connections(rooms):
    return ConnectionRegistry(rooms)


@pytest.mark.unit
class TestRoomRegistry:
    """Tests for room membership bookkeeping."""

    def test_join_creates_room(self, rooms):
        """Test that the first join creates the room."""
        session = make_session(1)

        assert rooms.join(session, "42", 42) is True

        room = rooms.get("42")
        assert room is not None
        assert room.room_id == 42
        assert room.members == {1: session}
        assert session.rooms == {"42"}

    def test_join_twice_is_not_new(self, rooms):
        """Test that re-joining the same room reports no change."""
        session = make_session(1)
        rooms.join(session, "42", 42)

        assert rooms.join(session, "42", 42) is False
        assert rooms.members("42") == [session]

    def test_last_leave_removes_room(self, rooms):
        """Test that a room disappears when its last member leaves."""
        alice = make_session(1)
        bob = make_session(2)
        rooms.join(alice, "42", 42)
        rooms.join(bob, "42", 42)

        rooms.leave(alice, "42")
        assert rooms.has_room("42")
        assert rooms.members("42") == [bob]

        rooms.leave(bob, "42")
        assert not rooms.has_room("42")
        assert rooms.room_count() == 0
        assert bob.rooms == set()

    def test_leave_unknown_room_is_noop(self, rooms):
        """Test that leaving a room never joined is harmless."""
        session = make_session(1)

        assert rooms.leave(session, "7") is False
        assert rooms.room_count() == 0

    def test_leave_all(self, rooms):
        """Test leaving every room at once."""
        session = make_session(1)
        other = make_session(2)
        rooms.join(session, "1", 1)
        rooms.join(session, "2", 2)
        rooms.join(other, "2", 2)

        left = rooms.leave_all(session)

        assert sorted(left) == ["1", "2"]
        assert session.rooms == set()
        assert rooms.room_keys() == ["2"]
        assert rooms.members("2") == [other]

    def test_leave_does_not_evict_newer_session(self, rooms):
        """Test that a stale session leaving keeps the newer session of the same user."""
        old = make_session(1)
        new = make_session(1)
        rooms.join(old, "42", 42)
        rooms.join(new, "42", 42)

        rooms.leave(old, "42")

        assert rooms.members("42") == [new]
        assert "42" in new.rooms

    def test_members_of_unknown_room(self, rooms):
        assert rooms.members("missing") == []

    def test_clear(self, rooms):
        """Test that clear drops every room and resets session room sets."""
        session = make_session(1)
        rooms.join(session, "1", 1)
        rooms.join(session, "2", 2)

        rooms.clear()

        assert rooms.room_count() == 0
        assert session.rooms == set()

    def test_membership_stays_consistent(self, rooms):
        """Test that session.rooms mirrors room membership after mixed operations."""
        sessions = [make_session(i) for i in range(1, 6)]
        for index, session in enumerate(sessions):
            for room_id in range(index + 1):
                rooms.join(session, str(room_id), room_id)
        rooms.leave(sessions[2], "0")
        rooms.leave_all(sessions[4])

        for session in sessions:
            for key in session.rooms:
                assert session in rooms.members(key)
        for key in rooms.room_keys():
            for member in rooms.members(key):
                assert key in member.rooms


@pytest.mark.unit
class TestConnectionRegistry:
    """Tests for the user -> session map."""

    def test_register_and_lookup(self, connections):
        session = make_session(1)

        assert connections.register(session) is None
        assert connections.lookup(1) is session
        assert connections.count() == 1

    def test_register_returns_displaced_session(self, connections):
        """Test that a second connection of the same user replaces the first."""
        first = make_session(1)
        second = make_session(1)
        connections.register(first)

        assert connections.register(second) is first
        assert connections.lookup(1) is second
        assert connections.count() == 1

    def test_unregister_leaves_rooms_and_closes(self, connections, rooms):
        """Test that unregister removes the session from every room and closes it."""
        session = make_session(1)
        connections.register(session)
        rooms.join(session, "42", 42)

        assert connections.unregister(session) is True

        assert connections.lookup(1) is None
        assert not rooms.has_room("42")
        assert session.closed

    def test_unregister_twice_is_noop(self, connections):
        """Test that a second unregister reports nothing to tear down."""
        session = make_session(1)
        connections.register(session)

        assert connections.unregister(session) is True
        assert connections.unregister(session) is False
        assert connections.count() == 0

    def test_unregister_stale_session_keeps_replacement(self, connections):
        """Test that tearing down a replaced session does not evict its successor."""
        old = make_session(1)
        new = make_session(1)
        connections.register(old)
        connections.register(new)

        connections.unregister(old)

        assert connections.lookup(1) is new
        assert not new.closed

    def test_list_online(self, connections):
        connections.register(make_session(1, "alice", role="admin"))
        connections.register(make_session(2, "bob"))

        online = sorted(connections.list_online(), key=lambda u: u["id"])

        assert [u["username"] for u in online] == ["alice", "bob"]
        assert online[0]["role"] == "admin"
        assert "last_seen" in online[0]


@pytest.mark.unit
class TestRegistryConcurrency:
    """Tests for concurrent access from several threads."""

    def test_concurrent_join_leave(self, connections, rooms):
        """Test that concurrent joins and leaves leave no empty room behind."""
        sessions = [make_session(i) for i in range(1, 21)]
        for session in sessions:
            connections.register(session)

        def churn(session):
            for _ in range(200):
                rooms.join(session, "42", 42)
                rooms.join(session, "43", 43)
                rooms.leave(session, "42")
                rooms.leave(session, "43")

        threads = [threading.Thread(target=churn, args=(s,)) for s in sessions]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert rooms.room_count() == 0
        assert all(session.rooms == set() for session in sessions)

    def test_concurrent_unregister(self, connections, rooms):
        """Test that racing teardowns of one session report a single teardown."""
        session = make_session(1)
        connections.register(session)
        rooms.join(session, "42", 42)
        results = []

        def teardown():
            results.append(connections.unregister(session))

        threads = [threading.Thread(target=teardown) for _ in range(10)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert results.count(True) == 1
        assert connections.count() == 0
        assert rooms.room_count() == 0
