import anyio
import pytest

from meetroom.errors import AlreadyExists, NotFound, RoomClosed, ValidationFailure
from meetroom.services.room_directory import JoinStatus

pytestmark = pytest.mark.anyio


def participant(pid, username=None, socket_id=None):
    return {"id": pid, "username": username or pid.upper(), "socketId": socket_id or f"sock-{pid}"}


async def test_create_room_then_duplicate_fails(directory):
    room = await directory.create_room("ROOM1", "host")
    assert room.code == "ROOM1"
    assert room.is_active is True
    assert room.participants == []

    with pytest.raises(AlreadyExists):
        await directory.create_room("ROOM1", "someone-else")


async def test_create_room_requires_code(directory):
    with pytest.raises(ValidationFailure):
        await directory.create_room("", "host")


async def test_find_room_absent(directory):
    assert await directory.find_room("NOPE") is None


async def test_join_creates_missing_room(directory):
    outcome = await directory.join_room("ABC123", participant("alice"))

    assert outcome.status is JoinStatus.CREATED
    assert outcome.created
    assert outcome.added
    room = await directory.find_room("ABC123")
    assert room.is_active is True
    assert room.host_id == "alice"
    assert room.participant_ids() == ["alice"]


async def test_join_existing_room_keeps_host(directory):
    await directory.create_room("R", "host")
    outcome = await directory.join_room("R", participant("bob"))

    assert outcome.status is JoinStatus.FOUND
    assert outcome.room.host_id == "host"
    assert outcome.room.participant_ids() == ["bob"]


async def test_rejoin_is_idempotent_and_refreshes_socket(directory):
    await directory.join_room("R", participant("alice", socket_id="s1"))
    first_joined_at = (await directory.find_room("R")).participants[0]["joinedAt"]

    outcome = await directory.join_room("R", participant("alice", username="Alice 2", socket_id="s2"))

    assert outcome.added is False
    roster = outcome.room.participants
    assert len(roster) == 1
    assert roster[0]["socketId"] == "s2"
    assert roster[0]["username"] == "Alice 2"
    assert roster[0]["joinedAt"] == first_joined_at


async def test_concurrent_joins_lose_nobody(directory):
    ids = [f"user{i}" for i in range(15)]

    async with anyio.create_task_group() as tg:
        for pid in ids:
            tg.start_soon(directory.join_room, "BUSY", participant(pid))

    room = await directory.find_room("BUSY")
    assert sorted(room.participant_ids()) == sorted(ids)
    assert len(set(room.participant_ids())) == len(ids)


async def test_concurrent_rejoins_keep_identities_unique(directory):
    async with anyio.create_task_group() as tg:
        for i in range(10):
            tg.start_soon(directory.join_room, "DUP", participant("same", socket_id=f"s{i}"))

    room = await directory.find_room("DUP")
    assert room.participant_ids() == ["same"]


async def test_remove_participant_keeps_others(directory):
    await directory.join_room("R", participant("a"))
    await directory.join_room("R", participant("b"))

    room = await directory.remove_participant("R", "a")

    assert room.participant_ids() == ["b"]
    assert room.is_active is True


async def test_removing_last_participant_deactivates(directory):
    await directory.join_room("R", participant("a"))

    room = await directory.remove_participant("R", "a")

    assert room.participants == []
    assert room.is_active is False


async def test_join_inactive_room_is_rejected(directory):
    await directory.join_room("R", participant("a"))
    await directory.set_active("R", False)

    with pytest.raises(RoomClosed):
        await directory.join_room("R", participant("b"))

    room = await directory.find_room("R")
    assert room.participant_ids() == ["a"]


async def test_upsert_participant(directory):
    await directory.create_room("R", "host")

    await directory.upsert_participant("R", participant("a", socket_id="s1"))
    room = await directory.upsert_participant("R", participant("a", socket_id="s2"))

    assert room.participant_ids() == ["a"]
    assert room.participants[0]["socketId"] == "s2"

    with pytest.raises(NotFound):
        await directory.upsert_participant("MISSING", participant("a"))


async def test_missing_room_operations_raise_not_found(directory):
    with pytest.raises(NotFound):
        await directory.remove_participant("MISSING", "a")
    with pytest.raises(NotFound):
        await directory.set_active("MISSING", False)


async def test_join_requires_participant_id(directory):
    with pytest.raises(ValidationFailure):
        await directory.join_room("R", {"id": "", "username": "x"})


async def test_room_locks_are_released(directory):
    for i in range(50):
        assert await directory.find_room(f"NOPE{i}") is None

    async with anyio.create_task_group() as tg:
        for i in range(10):
            tg.start_soon(directory.join_room, "BUSY", participant(f"user{i}"))

    with pytest.raises(NotFound):
        await directory.remove_participant("MISSING", "a")
    with pytest.raises(AlreadyExists):
        await directory.create_room("BUSY", "host")

    assert directory._locks == {}
