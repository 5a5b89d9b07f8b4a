import json

import pytest
from fastapi.testclient import TestClient

from meetroom.core.config import Settings
from meetroom.core.database import Base, build_engine, build_session_factory
from meetroom.main import create_app
from meetroom.services.room_directory import RoomDirectory
from meetroom.services.websocket_manager import ConnectionManager


class FakeSocket:
    """Stands in for a starlette WebSocket in service-level tests."""

    def __init__(self, broken=False):
        self.accepted = False
        self.sent = []
        self.broken = broken

    async def accept(self):
        self.accepted = True

    async def send_text(self, data):
        if self.broken:
            raise RuntimeError("socket closed")
        self.sent.append(data)

    def messages(self):
        return [json.loads(d) for d in self.sent]

    def types(self):
        return [m["type"] for m in self.messages()]


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def settings(tmp_path):
    return Settings(
        database_url=f"sqlite:///{tmp_path / 'meetroom.db'}",
        log_level="DEBUG",
        cors_origins=["*"],
        ice_servers=[{"urls": "stun:stun.example.org:3478"}],
    )


@pytest.fixture
def client(settings):
    app = create_app(settings)
    with TestClient(app) as c:
        yield c


@pytest.fixture
def session_factory(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'directory.db'}")
    Base.metadata.create_all(bind=engine)
    yield build_session_factory(engine)
    engine.dispose()


@pytest.fixture
def directory(session_factory):
    return RoomDirectory(session_factory)


@pytest.fixture
def manager():
    return ConnectionManager()


@pytest.fixture
def make_socket():
    return FakeSocket
