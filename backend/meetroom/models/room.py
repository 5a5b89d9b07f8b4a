from datetime import datetime, timezone

from sqlalchemy import JSON, Boolean, Column, DateTime, String
from sqlalchemy.ext.mutable import MutableList

from ..core.database import Base


def utcnow():
    return datetime.now(timezone.utc)


class Room(Base):
    __tablename__ = "rooms"

    code = Column(String, primary_key=True, index=True)
    host_id = Column(String, nullable=True)
    # [{"id", "username", "socketId", "joinedAt"}], unique by "id"
    participants = Column(MutableList.as_mutable(JSON), default=list, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    def participant_ids(self):
        return [p.get("id") for p in (self.participants or [])]
