from typing import Any, Dict, Iterable, List, Optional, Protocol


class Notifier(Protocol):
    """What the room logic needs from a channel transport."""

    def channels_in(self, room: str, exclude: Optional[str] = None) -> List[str]:
        ...

    async def send(self, channel_id: str, message: Dict[str, Any]) -> bool:
        ...

    async def send_many(self, channel_ids: Iterable[str], message: Dict[str, Any]) -> int:
        ...
