import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import models  # noqa: F401  registers tables on Base
from .core.config import Settings
from .core.database import Base, build_engine, build_session_factory
from .errors import MeetingError, Unauthenticated
from .routers import history, rooms, users, websockets
from .services.chat import ChatRelay
from .services.gateway import SessionGateway
from .services.history_service import HistoryService
from .services.presence import PresenceBroadcaster
from .services.room_directory import RoomDirectory
from .services.signaling import SignalingRelay
from .services.websocket_manager import ConnectionManager

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or Settings()
    logging.basicConfig(level=settings.log_level)

    app = FastAPI(title="Meeting Rooms")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    engine = build_engine(settings.database_url)
    session_factory = build_session_factory(engine)

    manager = ConnectionManager()
    directory = RoomDirectory(session_factory)
    history_service = HistoryService(session_factory)
    presence = PresenceBroadcaster(manager)

    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = session_factory
    app.state.manager = manager
    app.state.directory = directory
    app.state.history = history_service
    app.state.gateway = SessionGateway(directory, manager, presence, history_service)
    app.state.relay = SignalingRelay(manager)
    app.state.chat = ChatRelay(manager)

    app.include_router(rooms.router)
    app.include_router(users.router)
    app.include_router(history.router)
    app.include_router(websockets.router)

    @app.exception_handler(Unauthenticated)
    async def unauthenticated_handler(request: Request, exc: Unauthenticated):
        return JSONResponse(status_code=401, content={"error": "not authenticated"})

    @app.exception_handler(MeetingError)
    async def meeting_error_handler(request: Request, exc: MeetingError):
        return JSONResponse(status_code=200, content={"ok": False, "error": exc.message})

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        fields = ", ".join(".".join(str(p) for p in err["loc"][1:]) for err in exc.errors())
        return JSONResponse(status_code=200, content={"ok": False, "error": f"invalid fields: {fields}"})

    @app.on_event("startup")
    async def startup_event():
        try:
            Base.metadata.create_all(bind=engine)
            logger.info("Tables created successfully.")
        except Exception:
            logger.exception("Error creating tables")
            raise

    return app


app = create_app()
