# tests/conftest.py

import pytest
from starlette.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app import models  # noqa: F401  (registers every table on Base.metadata)
from app.main import app
from app.api import deps
from app.core.config import settings
from app.core.limiter import limiter
from app.db.base_class import Base
from app.db.session import get_db
from app.services.locks import KeyedLock
from app.services.offer_session_service import OfferSessionService
from app.services.order_service import OrderService
from app.services.permissions import PermissionEvaluator

from tests.utils.notifier import FakeNotifier


# --- In-memory Test Database Setup ---
engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def db():
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    yield session
    session.close()
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def session_factory(db):
    """Session factory bound to the test engine, for scheduler jobs."""
    return TestingSessionLocal


# --- Collaborator Fixtures ---
@pytest.fixture(scope="function")
def notifier():
    return FakeNotifier()


@pytest.fixture(scope="function")
def permissions(db):
    return PermissionEvaluator(db)


@pytest.fixture(scope="function")
def offer_service(db, permissions, notifier):
    return OfferSessionService(db, permissions, notifier, KeyedLock())


@pytest.fixture(scope="function")
def order_service(db, permissions, notifier):
    return OrderService(db, permissions, notifier)


# --- Test Client Fixture ---
@pytest.fixture(scope="function")
def test_client(db, notifier, monkeypatch):
    """
    Provides a TestClient that uses the in-memory database and a recording
    notifier. Authentication is real: send headers from tests.utils.auth.
    """

    def override_get_db():
        yield db

    monkeypatch.setattr(settings, "SCHEDULER_ENABLED", False)
    monkeypatch.setattr(limiter, "enabled", False)
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[deps.get_notifier] = lambda: notifier

    with TestClient(app) as client:
        yield client

    app.dependency_overrides.clear()
