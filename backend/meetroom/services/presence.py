import logging
from typing import Optional

from ..models.room import Room
from .notifier import Notifier

logger = logging.getLogger(__name__)


class PresenceBroadcaster:
    """Tells room members who came, who went, and when the room is over."""

    def __init__(self, notifier: Notifier):
        self.notifier = notifier

    async def announce_join(self, channel_id: str, room: Room, identity: str, username: Optional[str]):
        await self.notifier.send(channel_id, {
            "type": "existing-participants",
            "room": room.code,
            "participants": list(room.participants or []),
            "hostId": room.host_id,
        })

        others = self.notifier.channels_in(room.code, exclude=channel_id)
        await self.notifier.send_many(others, {
            "type": "new-participant",
            "id": identity,
            "username": username,
        })

    async def announce_leave(self, room_code: str, identity: str, exclude: Optional[str] = None):
        others = self.notifier.channels_in(room_code, exclude=exclude)
        await self.notifier.send_many(others, {"type": "participant-left", "id": identity})

    async def announce_room_ended(self, room_code: str) -> int:
        channels = self.notifier.channels_in(room_code)
        delivered = await self.notifier.send_many(channels, {"type": "room-ended", "room": room_code})
        logger.info("Room %s ended, notified %d channel(s)", room_code, delivered)
        return delivered
