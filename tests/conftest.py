import os

# Keep the module-level server engine off disk during tests
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("DB_LOG_SLOW_QUERIES", "false")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.database import Base, get_db
from app.main import app
from app.offline import LocalStore, NetworkStatus, PendingOperationQueue
from app.services.realtime_service import ConnectionManager, get_connection_manager


class FakeWebSocket:
    """Collects frames broadcast by the connection manager"""

    def __init__(self, fail: bool = False):
        self.sent = []
        self.fail = fail

    async def send_text(self, text: str):
        if self.fail:
            raise RuntimeError("socket closed")
        self.sent.append(text)


@pytest.fixture
def session_factory():
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def manager():
    return ConnectionManager()


@pytest.fixture
def api(session_factory, manager):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_connection_manager] = lambda: manager
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def client(api):
    return TestClient(api)


@pytest.fixture
def store(tmp_path):
    local = LocalStore(f"sqlite:///{tmp_path / 'offline.db'}")
    yield local
    local.close()


@pytest.fixture
def queue(store):
    return PendingOperationQueue(store)


@pytest.fixture
def network():
    return NetworkStatus(is_online=True)
