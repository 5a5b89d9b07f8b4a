import uuid

from sqlalchemy import Column, DateTime, String

from ..core.database import Base
from .room import utcnow


def _new_user_id():
    return uuid.uuid4().hex


class User(Base):
    __tablename__ = "users"

    id = Column(String, primary_key=True, default=_new_user_id)
    google_id = Column(String, nullable=True)
    name = Column(String, nullable=False)
    # username and email are lookup keys only; duplicates are allowed
    username = Column(String, nullable=False, index=True)
    email = Column(String, nullable=True, index=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
