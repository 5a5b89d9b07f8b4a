import logging

from fastapi import APIRouter, Depends
from sqlalchemy.exc import SQLAlchemyError

from ..dependencies import get_current_user, get_history
from ..models.user import User
from ..schemas import HistoryCreate, HistoryOut
from ..services.history_service import HistoryService

router = APIRouter(prefix="/api", tags=["history"])
logger = logging.getLogger(__name__)


@router.get("/history")
async def list_history(
    user: User = Depends(get_current_user),
    history: HistoryService = Depends(get_history),
):
    try:
        entries = await history.list_for_user(user.id)
    except SQLAlchemyError:
        logger.exception("SQLAlchemy error while listing history")
        return {"ok": False, "error": "Database error"}
    return {
        "ok": True,
        "history": [HistoryOut.model_validate(e).model_dump(mode="json") for e in entries],
    }


@router.post("/history")
async def add_history(
    payload: HistoryCreate,
    user: User = Depends(get_current_user),
    history: HistoryService = Depends(get_history),
):
    try:
        entry = await history.record(user.id, payload.meetingCode, payload.action)
    except SQLAlchemyError:
        logger.exception("SQLAlchemy error while recording history")
        return {"ok": False, "error": "Database error"}
    return {"ok": True, "record": HistoryOut.model_validate(entry).model_dump(mode="json")}
