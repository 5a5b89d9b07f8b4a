from sqlalchemy import Column, DateTime, Index, Integer, String

from ..core.database import Base
from .room import utcnow

HISTORY_ACTIONS = ("started", "joined")


class History(Base):
    __tablename__ = "history"
    __table_args__ = (Index("ix_history_user_timestamp", "user_id", "timestamp"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String, nullable=False)
    meeting_code = Column(String, nullable=False)
    action = Column(String, nullable=False)
    timestamp = Column(DateTime(timezone=True), default=utcnow, nullable=False)
