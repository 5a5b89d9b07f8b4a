import logging

from ..errors import ValidationFailure
from .websocket_manager import ConnectionManager

logger = logging.getLogger(__name__)


class ChatRelay:
    def __init__(self, manager: ConnectionManager):
        self.manager = manager

    async def send_chat(self, channel_id: str, room: str, username: str, message: str) -> int:
        """Fan a chat line out to the whole room, sender included."""
        membership = self.manager.membership(channel_id)
        if membership is None or membership.room != room:
            raise ValidationFailure(f"Not joined to room {room}")

        channels = self.manager.channels_in(room)
        return await self.manager.send_many(channels, {
            "type": "chat-message",
            "username": username,
            "message": message,
        })
