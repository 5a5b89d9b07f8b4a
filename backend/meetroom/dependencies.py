from typing import Optional

from fastapi import Depends, Header
from fastapi.requests import HTTPConnection
from sqlalchemy.orm import Session

from .core.database import get_db
from .errors import Unauthenticated
from .models.user import User
from .services.chat import ChatRelay
from .services.gateway import SessionGateway
from .services.history_service import HistoryService
from .services.room_directory import RoomDirectory
from .services.signaling import SignalingRelay
from .services.websocket_manager import ConnectionManager


def get_manager(conn: HTTPConnection) -> ConnectionManager:
    return conn.app.state.manager


def get_directory(conn: HTTPConnection) -> RoomDirectory:
    return conn.app.state.directory


def get_gateway(conn: HTTPConnection) -> SessionGateway:
    return conn.app.state.gateway


def get_relay(conn: HTTPConnection) -> SignalingRelay:
    return conn.app.state.relay


def get_chat(conn: HTTPConnection) -> ChatRelay:
    return conn.app.state.chat


def get_history(conn: HTTPConnection) -> HistoryService:
    return conn.app.state.history


def get_current_user(
    x_user_id: Optional[str] = Header(None),
    db: Session = Depends(get_db),
) -> User:
    if not x_user_id:
        raise Unauthenticated()
    user = db.get(User, x_user_id)
    if user is None:
        raise Unauthenticated()
    return user
