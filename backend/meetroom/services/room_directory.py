import asyncio
import enum
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi.concurrency import run_in_threadpool
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import sessionmaker

from ..errors import AlreadyExists, NotFound, RoomClosed, ValidationFailure
from ..models.room import Room

logger = logging.getLogger(__name__)


class JoinStatus(enum.Enum):
    CREATED = "created"
    FOUND = "found"


@dataclass
class JoinOutcome:
    status: JoinStatus
    room: Room
    added: bool

    @property
    def created(self) -> bool:
        return self.status is JoinStatus.CREATED


class RoomDirectory:
    """Durable record of rooms and their rosters.

    Every write for one room code goes through that code's lock, so a
    read-modify-write of the roster can never interleave with another one for
    the same room. A lock lives only while some task holds or waits on it.
    Session work runs in the threadpool; rooms do not wait on each other.
    """

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory
        # code -> [lock, number of tasks holding or waiting on it]
        self._locks: Dict[str, list] = {}

    @asynccontextmanager
    async def _room_lock(self, code: str):
        entry = self._locks.get(code)
        if entry is None:
            entry = self._locks[code] = [asyncio.Lock(), 0]
        entry[1] += 1
        try:
            async with entry[0]:
                yield
        finally:
            entry[1] -= 1
            if entry[1] == 0:
                self._locks.pop(code, None)

    async def create_room(self, code: str, host_id: Optional[str] = None) -> Room:
        if not code:
            raise ValidationFailure("code required")
        async with self._room_lock(code):
            try:
                return await run_in_threadpool(self._create_room, code, host_id)
            except IntegrityError:
                raise AlreadyExists("Room already exists")

    async def find_room(self, code: str) -> Optional[Room]:
        # single read, nothing to serialize against
        return await run_in_threadpool(self._find_room, code)

    async def join_room(self, code: str, participant: Dict[str, Any]) -> JoinOutcome:
        _check_participant(participant)
        async with self._room_lock(code):
            try:
                return await run_in_threadpool(self._join_room, code, participant)
            except IntegrityError:
                # another process created the room between our read and insert
                logger.info("Room %s created concurrently, retrying join", code)
                return await run_in_threadpool(self._join_room, code, participant)

    async def upsert_participant(self, code: str, participant: Dict[str, Any]) -> Room:
        _check_participant(participant)
        async with self._room_lock(code):
            return await run_in_threadpool(self._upsert_participant, code, participant)

    async def remove_participant(self, code: str, identity: str) -> Room:
        async with self._room_lock(code):
            return await run_in_threadpool(self._remove_participant, code, identity)

    async def set_active(self, code: str, active: bool) -> Room:
        async with self._room_lock(code):
            return await run_in_threadpool(self._set_active, code, active)

    # Blocking parts. All but _find_room run with the room lock held.

    def _create_room(self, code, host_id):
        with self._session_factory() as db:
            if db.get(Room, code) is not None:
                raise AlreadyExists("Room already exists")
            room = Room(code=code, host_id=host_id, is_active=True, participants=[])
            db.add(room)
            db.commit()
            logger.info("Room %s created by %s", code, host_id)
            return room

    def _find_room(self, code):
        with self._session_factory() as db:
            return db.get(Room, code)

    def _join_room(self, code, participant):
        with self._session_factory() as db:
            room = db.get(Room, code)
            status = JoinStatus.FOUND
            if room is None:
                room = Room(
                    code=code,
                    host_id=participant["id"],
                    is_active=True,
                    participants=[],
                )
                db.add(room)
                status = JoinStatus.CREATED
            elif not room.is_active:
                raise RoomClosed("Room has ended")

            added = _merge_participant(room, participant)
            db.commit()
            return JoinOutcome(status=status, room=room, added=added)

    def _upsert_participant(self, code, participant):
        with self._session_factory() as db:
            room = db.get(Room, code)
            if room is None:
                raise NotFound("Room not found")
            if not room.is_active:
                raise RoomClosed("Room has ended")
            _merge_participant(room, participant)
            db.commit()
            return room

    def _remove_participant(self, code, identity):
        with self._session_factory() as db:
            room = db.get(Room, code)
            if room is None:
                raise NotFound("Room not found")

            remaining = [dict(p) for p in (room.participants or []) if p.get("id") != identity]
            room.participants = remaining
            if not remaining:
                room.is_active = False
                logger.info("Room %s is empty, marking inactive", code)
            db.commit()
            return room

    def _set_active(self, code, active):
        with self._session_factory() as db:
            room = db.get(Room, code)
            if room is None:
                raise NotFound("Room not found")
            room.is_active = active
            db.commit()
            return room


def _check_participant(participant):
    if not participant.get("id"):
        raise ValidationFailure("participant id required")


def _merge_participant(room: Room, participant: Dict[str, Any]) -> bool:
    """Add or refresh a roster entry. Returns True when the identity is new."""
    roster = [dict(p) for p in (room.participants or [])]
    existing = next((p for p in roster if p.get("id") == participant["id"]), None)

    if existing:
        # last write wins for the mutable fields
        existing["username"] = participant.get("username") or existing.get("username")
        existing["socketId"] = participant.get("socketId")
        added = False
    else:
        roster.append({
            "id": participant["id"],
            "username": participant.get("username"),
            "socketId": participant.get("socketId"),
            "joinedAt": datetime.now(timezone.utc).isoformat(),
        })
        added = True

    room.participants = roster
    return added
