import os

os.environ.setdefault("HOSTGRID_DATABASE_URL", "sqlite://")
os.environ.setdefault("HOSTGRID_SITE_HOSTNAME", "example.com")
os.environ.setdefault("HOSTGRID_HASHING_MODE", "fast")
os.environ.setdefault("HOSTGRID_REQUEST_RATE_LIMIT", "10000/minute")
os.environ.setdefault("HOSTGRID_ADMIN_RATE_LIMIT", "10000/minute")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from hostgrid.api import app, get_store
from hostgrid.config import settings
from hostgrid.database import create_store_engine, init_db
from hostgrid.hashing import PasswordHasher
from hostgrid.services import UserStore

ADMIN_SECRET = "hunter2"


@pytest.fixture
def session_local():
    """Provide an isolated in-memory database for each test."""
    engine = create_store_engine("sqlite://")
    TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
    init_db(engine)
    return TestingSessionLocal


@pytest.fixture
def store(session_local):
    return UserStore(session_local, PasswordHasher("fast"))


@pytest.fixture
def client(store):
    app.dependency_overrides[get_store] = lambda: store
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def admin_secret(monkeypatch):
    monkeypatch.setattr(settings, "admin_secret", ADMIN_SECRET)
    return ADMIN_SECRET


@pytest.fixture
def query(client):
    """Send a request whose Host header carries ``label``."""

    def send(label: str):
        return client.get(f"http://{label}.{settings.site_hostname}/")

    return send
