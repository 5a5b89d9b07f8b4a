import logging
from typing import Any, Dict

from ..errors import ValidationFailure
from .websocket_manager import ConnectionManager

logger = logging.getLogger(__name__)

SIGNAL_KINDS = ("offer", "answer", "ice-candidate")

# keys that address the message; everything else is payload and passes through
# "to" is the older spelling of "target"
ROUTING_KEYS = ("room", "target", "to")


class SignalingRelay:
    """Forwards negotiation messages between peers of one room.

    Payloads are never inspected. A message for a peer with no live channel is
    dropped without telling anyone.
    """

    def __init__(self, manager: ConnectionManager):
        self.manager = manager

    async def relay(self, channel_id: str, kind: str, message: Dict[str, Any]) -> int:
        if kind not in SIGNAL_KINDS:
            raise ValidationFailure(f"Unknown signal kind: {kind}")

        membership = self.manager.membership(channel_id)
        if membership is None:
            raise ValidationFailure("Not joined to any room")

        room = message.get("room")
        if room and room != membership.room:
            raise ValidationFailure(f"Not joined to room {room}")

        outbound = {k: v for k, v in message.items() if k not in ROUTING_KEYS}
        outbound["type"] = kind
        outbound["fromId"] = membership.identity

        target = message.get("target") or message.get("to")
        if target:
            target_channel = self.manager.channel_for(membership.room, target)
            if target_channel is None or target_channel == channel_id:
                logger.debug("Dropping %s for %s in room %s: no live channel", kind, target, membership.room)
                return 0
            return 1 if await self.manager.send(target_channel, outbound) else 0

        others = self.manager.channels_in(membership.room, exclude=channel_id)
        return await self.manager.send_many(others, outbound)
