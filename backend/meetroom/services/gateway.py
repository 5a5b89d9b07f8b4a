import logging
from typing import Optional

from ..errors import NotFound, NotPermitted, ValidationFailure
from ..models.room import Room
from .history_service import HistoryService
from .presence import PresenceBroadcaster
from .room_directory import RoomDirectory
from .websocket_manager import ConnectionManager

logger = logging.getLogger(__name__)


class SessionGateway:
    """Admits channels into rooms and takes them out again.

    Keeps the in-memory room groups (ConnectionManager) and the durable roster
    (RoomDirectory) in step, and hands membership changes to the presence
    broadcaster.
    """

    def __init__(
        self,
        directory: RoomDirectory,
        manager: ConnectionManager,
        presence: PresenceBroadcaster,
        history: Optional[HistoryService] = None,
    ):
        self.directory = directory
        self.manager = manager
        self.presence = presence
        self.history = history

    async def join(self, channel_id: str, room_code: str, identity: str, username: Optional[str]) -> Room:
        if not room_code or not identity:
            raise ValidationFailure("room and user id are required")

        previous = self.manager.membership(channel_id)
        if previous and (previous.room, previous.identity) != (room_code, identity):
            await self._leave_current(channel_id)

        outcome = await self.directory.join_room(room_code, {
            "id": identity,
            "username": username,
            "socketId": channel_id,
        })

        room = outcome.room
        logger.info(
            "%s (%s) joined room %s [%s]",
            username, identity, room_code, outcome.status.value,
        )

        if outcome.added and self.history is not None:
            action = "started" if room.host_id == identity else "joined"
            await self.history.record(identity, room_code, action)

        # attached only now, so the roster below is the first room event the
        # channel sees
        self.manager.attach(channel_id, room_code, identity, username)
        if not self.manager.is_open(channel_id):
            # the channel closed while the directory was busy; its own
            # disconnect path does the cleanup
            return room

        await self.presence.announce_join(channel_id, room, identity, username)
        return room

    async def leave(self, channel_id: str, room_code: str, identity: Optional[str] = None) -> Room:
        """Explicit leave from a channel. A channel can only take itself out."""
        membership = self.manager.membership(channel_id)
        if membership is None or membership.room != room_code:
            raise ValidationFailure(f"Not joined to room {room_code}")
        if identity and identity != membership.identity:
            raise ValidationFailure("Cannot leave on behalf of another participant")

        return await self._remove(channel_id, membership.room, membership.identity)

    async def disconnect(self, channel_id: str):
        """Abrupt channel loss counts as leaving the current room."""
        membership = self.manager.membership(channel_id)
        if membership is None:
            return

        if self.manager.has_other_channel(membership.room, membership.identity, channel_id):
            # the identity is still present through a newer channel
            self.manager.detach(channel_id)
            return

        try:
            await self._remove(channel_id, membership.room, membership.identity)
        except NotFound:
            logger.info("Room %s already gone on disconnect of %s", membership.room, channel_id)

    async def end_room(self, room_code: str, requested_by: Optional[str] = None) -> Room:
        room = await self.directory.find_room(room_code)
        if room is None:
            raise NotFound("not found")
        if requested_by is not None and room.host_id and requested_by != room.host_id:
            raise NotPermitted("Only the host can end the room")

        room = await self.directory.set_active(room_code, False)
        await self.presence.announce_room_ended(room_code)
        self.manager.detach_room(room_code)
        return room

    async def _leave_current(self, channel_id: str):
        membership = self.manager.membership(channel_id)
        try:
            await self._remove(channel_id, membership.room, membership.identity)
        except NotFound:
            self.manager.detach(channel_id)

    async def _remove(self, channel_id: str, room_code: str, identity: str) -> Room:
        self.manager.detach(channel_id)
        room = await self.directory.remove_participant(room_code, identity)
        logger.info("%s left room %s", identity, room_code)
        await self.presence.announce_leave(room_code, identity, exclude=channel_id)
        return room
