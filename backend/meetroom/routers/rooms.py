import logging

from fastapi import APIRouter, Depends, Request
from sqlalchemy.exc import SQLAlchemyError

from ..dependencies import get_directory, get_gateway
from ..schemas import CreateRoomRequest, RoomStatusResponse
from ..services.gateway import SessionGateway
from ..services.room_directory import RoomDirectory

router = APIRouter(prefix="/api", tags=["rooms"])
logger = logging.getLogger(__name__)


@router.post("/rooms")
async def create_room(
    payload: CreateRoomRequest,
    directory: RoomDirectory = Depends(get_directory),
):
    try:
        room = await directory.create_room(payload.code, payload.hostId)
        return {"ok": True, "code": room.code}
    except SQLAlchemyError:
        logger.exception("SQLAlchemy error while creating room")
        return {"ok": False, "error": "Database error"}


@router.get("/rooms/{code}", response_model=RoomStatusResponse)
async def get_room(code: str, directory: RoomDirectory = Depends(get_directory)):
    try:
        room = await directory.find_room(code)
    except SQLAlchemyError:
        logger.exception("SQLAlchemy error in get_room")
        return RoomStatusResponse(exists=False, isActive=False)

    if room is None:
        return RoomStatusResponse(exists=False, isActive=False)
    return RoomStatusResponse(
        exists=True,
        isActive=room.is_active,
        hostId=room.host_id,
        participants=list(room.participants or []),
    )


@router.post("/rooms/{code}/end")
async def end_room(code: str, gateway: SessionGateway = Depends(get_gateway)):
    try:
        await gateway.end_room(code)
        return {"ok": True}
    except SQLAlchemyError:
        logger.exception("SQLAlchemy error in end_room")
        return {"ok": False, "error": "Database error"}


@router.get("/config")
def webrtc_config(request: Request):
    return {"iceServers": request.app.state.settings.ice_servers}
