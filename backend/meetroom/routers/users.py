import logging

from fastapi import APIRouter, Depends
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.database import get_db
from ..dependencies import get_current_user
from ..models.user import User
from ..schemas import UserCreate, UserOut

router = APIRouter(prefix="/api", tags=["users"])
logger = logging.getLogger(__name__)


@router.post("/users")
def create_user(payload: UserCreate, db: Session = Depends(get_db)):
    try:
        user = User(
            name=payload.name,
            username=payload.username,
            email=payload.email,
            google_id=payload.googleId,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return {"ok": True, "user": UserOut.model_validate(user).model_dump(mode="json")}
    except SQLAlchemyError:
        db.rollback()
        logger.exception("SQLAlchemy error while creating user")
        return {"ok": False, "error": "Database error"}


@router.get("/me")
def me(user: User = Depends(get_current_user)):
    return {"user": UserOut.model_validate(user).model_dump(mode="json")}
