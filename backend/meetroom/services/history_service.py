import logging
from typing import List

from fastapi.concurrency import run_in_threadpool
from sqlalchemy.orm import sessionmaker

from ..errors import ValidationFailure
from ..models.history import HISTORY_ACTIONS, History

logger = logging.getLogger(__name__)


class HistoryService:
    """Append-only meeting log per user."""

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    async def record(self, user_id: str, meeting_code: str, action: str) -> History:
        if not user_id or not meeting_code:
            raise ValidationFailure("userId and meetingCode required")
        if action not in HISTORY_ACTIONS:
            raise ValidationFailure(f"Unknown history action: {action}")
        return await run_in_threadpool(self._record, user_id, meeting_code, action)

    async def list_for_user(self, user_id: str) -> List[History]:
        return await run_in_threadpool(self._list_for_user, user_id)

    def _record(self, user_id, meeting_code, action):
        with self._session_factory() as db:
            entry = History(user_id=user_id, meeting_code=meeting_code, action=action)
            db.add(entry)
            db.commit()
            logger.debug("History: %s %s %s", user_id, action, meeting_code)
            return entry

    def _list_for_user(self, user_id):
        with self._session_factory() as db:
            return (
                db.query(History)
                .filter(History.user_id == user_id)
                .order_by(History.timestamp.desc(), History.id.desc())
                .all()
            )
