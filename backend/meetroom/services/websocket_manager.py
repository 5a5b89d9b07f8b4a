import json
import logging
import uuid
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Set

from fastapi import WebSocket

logger = logging.getLogger(__name__)


@dataclass
class Membership:
    room: str
    identity: str
    username: Optional[str] = None


class ConnectionManager:
    """Process-local registry of open channels and the room groups they are in.

    Nothing here is durable: a restart loses it and clients rebuild it by
    joining again. Every mutation is synchronous, so within the event loop the
    maps are never observed half updated.
    """

    def __init__(self):
        self.sockets: Dict[str, WebSocket] = {}
        self.memberships: Dict[str, Membership] = {}
        self.rooms: Dict[str, Set[str]] = {}
        # room -> identity -> channel currently routing for that identity
        self.peers: Dict[str, Dict[str, str]] = {}

    async def connect(self, websocket: WebSocket) -> str:
        await websocket.accept()
        channel_id = uuid.uuid4().hex
        self.sockets[channel_id] = websocket
        logger.info("Channel %s connected", channel_id)
        await self.send(channel_id, {"type": "connected", "socketId": channel_id})
        return channel_id

    def forget(self, channel_id: str):
        self.detach(channel_id)
        self.sockets.pop(channel_id, None)
        logger.info("Channel %s forgotten", channel_id)

    def is_open(self, channel_id: str) -> bool:
        return channel_id in self.sockets

    def attach(self, channel_id: str, room: str, identity: str, username: Optional[str] = None):
        self.detach(channel_id)
        self.memberships[channel_id] = Membership(room, identity, username)
        self.rooms.setdefault(room, set()).add(channel_id)
        self.peers.setdefault(room, {})[identity] = channel_id

    def detach(self, channel_id: str) -> Optional[Membership]:
        membership = self.memberships.pop(channel_id, None)
        if membership is None:
            return None

        group = self.rooms.get(membership.room)
        if group is not None:
            group.discard(channel_id)
            if not group:
                self.rooms.pop(membership.room, None)

        routes = self.peers.get(membership.room)
        if routes is not None:
            if routes.get(membership.identity) == channel_id:
                # fall back to another channel of the same identity, if any
                others = [
                    c for c in self.rooms.get(membership.room, ())
                    if self.memberships[c].identity == membership.identity
                ]
                if others:
                    routes[membership.identity] = others[0]
                else:
                    routes.pop(membership.identity, None)
            if not routes:
                self.peers.pop(membership.room, None)
        return membership

    def detach_room(self, room: str) -> List[str]:
        channel_ids = list(self.rooms.get(room, ()))
        for channel_id in channel_ids:
            self.detach(channel_id)
        return channel_ids

    def membership(self, channel_id: str) -> Optional[Membership]:
        return self.memberships.get(channel_id)

    def channels_in(self, room: str, exclude: Optional[str] = None) -> List[str]:
        return [c for c in self.rooms.get(room, ()) if c != exclude]

    def channel_for(self, room: str, identity: str) -> Optional[str]:
        return self.peers.get(room, {}).get(identity)

    def has_other_channel(self, room: str, identity: str, channel_id: str) -> bool:
        return any(
            self.memberships[c].identity == identity
            for c in self.rooms.get(room, ())
            if c != channel_id and c in self.sockets
        )

    async def _safe_send(self, socket: WebSocket, data: str) -> bool:
        try:
            await socket.send_text(data)
            return True
        except Exception:
            return False

    async def send(self, channel_id: str, message: Dict[str, Any]) -> bool:
        socket = self.sockets.get(channel_id)
        if socket is None:
            return False
        if await self._safe_send(socket, json.dumps(message)):
            return True
        self.remove_dead_sockets([channel_id])
        return False

    async def send_many(self, channel_ids: Iterable[str], message: Dict[str, Any]) -> int:
        data = json.dumps(message)
        delivered = 0
        dead_sockets = []

        for channel_id in list(channel_ids):
            socket = self.sockets.get(channel_id)
            if socket is None:
                continue
            if await self._safe_send(socket, data):
                delivered += 1
            else:
                dead_sockets.append(channel_id)

        if dead_sockets:
            self.remove_dead_sockets(dead_sockets)
        return delivered

    def remove_dead_sockets(self, channel_ids: List[str]):
        # membership stays until the channel's own loop runs the disconnect path
        for channel_id in channel_ids:
            if self.sockets.pop(channel_id, None) is not None:
                logger.info("Dropping dead channel %s", channel_id)
