import json
import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError

from ..dependencies import get_chat, get_gateway, get_manager, get_relay
from ..errors import MeetingError, ValidationFailure
from ..schemas import ChatMessage, EndRoomMessage, JoinRoomMessage, LeaveRoomMessage
from ..services.chat import ChatRelay
from ..services.gateway import SessionGateway
from ..services.signaling import SIGNAL_KINDS, SignalingRelay
from ..services.websocket_manager import ConnectionManager

router = APIRouter()
logger = logging.getLogger(__name__)


class ChannelSession:
    """Dispatches the inbound messages of one open channel."""

    def __init__(self, channel_id: str, manager: ConnectionManager, gateway: SessionGateway,
                 relay: SignalingRelay, chat: ChatRelay):
        self.channel_id = channel_id
        self.manager = manager
        self.gateway = gateway
        self.relay = relay
        self.chat = chat

    async def handle(self, raw: str):
        try:
            data = json.loads(raw)
            if not isinstance(data, dict):
                raise ValueError("message must be an object")
        except ValueError:
            logger.warning("Invalid JSON from %s", self.channel_id)
            await self.send_error("Invalid JSON format")
            return

        kind = data.get("type")
        logger.debug("Received %s from %s", kind, self.channel_id)

        handler = {
            "join-room": self.handle_join,
            "leave-room": self.handle_leave,
            "chat": self.handle_chat,
            "end-room": self.handle_end_room,
        }.get(kind)
        if handler is None and kind in SIGNAL_KINDS:
            handler = self.handle_signal

        if handler is None:
            logger.warning("Unknown message type: %s", kind)
            await self.send_error(f"Unknown message type: {kind}")
            return

        try:
            await handler(data)
        except ValidationError:
            await self.send_error(f"Invalid {kind} message")
        except MeetingError as e:
            await self.send_error(e.message)
        except SQLAlchemyError:
            logger.exception("Database error while handling %s", kind)
            await self.send_error("Database error")

    async def handle_join(self, data: Dict[str, Any]):
        msg = JoinRoomMessage.model_validate(data)
        await self.gateway.join(self.channel_id, msg.room, msg.user.id, msg.user.username)

    async def handle_leave(self, data: Dict[str, Any]):
        msg = LeaveRoomMessage.model_validate(data)
        await self.gateway.leave(self.channel_id, msg.room, msg.userId)

    async def handle_signal(self, data: Dict[str, Any]):
        await self.relay.relay(self.channel_id, data["type"], data)

    async def handle_chat(self, data: Dict[str, Any]):
        msg = ChatMessage.model_validate(data)
        await self.chat.send_chat(self.channel_id, msg.room, msg.username, msg.message)

    async def handle_end_room(self, data: Dict[str, Any]):
        msg = EndRoomMessage.model_validate(data)
        membership = self.manager.membership(self.channel_id)
        if membership is None or membership.room != msg.room:
            raise ValidationFailure(f"Not joined to room {msg.room}")
        await self.gateway.end_room(msg.room, requested_by=membership.identity)

    async def send_error(self, message: str):
        await self.manager.send(self.channel_id, {"type": "error", "message": message})


@router.websocket("/ws")
async def websocket_endpoint(
    websocket: WebSocket,
    manager: ConnectionManager = Depends(get_manager),
    gateway: SessionGateway = Depends(get_gateway),
    relay: SignalingRelay = Depends(get_relay),
    chat: ChatRelay = Depends(get_chat),
):
    channel_id = await manager.connect(websocket)
    session = ChannelSession(channel_id, manager, gateway, relay, chat)

    try:
        while True:
            try:
                raw = await websocket.receive_text()
            except WebSocketDisconnect:
                break

            try:
                await session.handle(raw)
            except Exception:
                logger.exception("Error in websocket loop for %s", channel_id)
                await session.send_error("Internal server error")
    finally:
        try:
            await gateway.disconnect(channel_id)
        except Exception:
            logger.exception("Failed to clean up channel %s", channel_id)
        manager.forget(channel_id)
        logger.info("Channel %s disconnected", channel_id)
