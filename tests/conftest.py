import os

# Keep the app's own engine off the filesystem during tests
os.environ.setdefault("DATABASE_URL", "sqlite://")

from typing import Generator
import pytest
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from catalog import config
from catalog.db import make_engine
from catalog.main import app, get_db, get_session_store
from catalog.seed import init_db
from catalog.sessions import InMemorySessionStore

ADMIN_EMAIL = "admin@admin.com"
ADMIN_PASSWORD = "admin123"


@pytest.fixture(scope="function")
def engine():
    # Use in-memory SQLite with a single connection
    engine = make_engine("sqlite://", poolclass=StaticPool)
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture(scope="function")
def db_session(engine) -> Generator:
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine, future=True)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(scope="function")
def session_store():
    return InMemorySessionStore(ttl_seconds=config.get_settings().session_ttl_seconds)


@pytest.fixture(scope="function")
def client(db_session, session_store):
    # Override dependencies to use the same DB session and a fresh session store
    def override_get_db():
        try:
            yield db_session
        finally:
            pass
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_store] = lambda: session_store
    from fastapi.testclient import TestClient
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


def login(client, email: str, password: str):
    client.cookies.clear()
    r = client.post("/api/auth/login", json={"email": email, "password": password})
    assert r.status_code == 200, r.text
    return r.json()["user"]


def register(client, email: str, password: str = "secret1", **extra):
    client.cookies.clear()
    r = client.post("/api/auth/register", json={"email": email, "password": password, **extra})
    assert r.status_code == 201, r.text
    return r.json()["user"]


@pytest.fixture
def admin_client(client):
    login(client, ADMIN_EMAIL, ADMIN_PASSWORD)
    return client


WIDGET = {
    "name": "Widget",
    "license": "MIT",
    "description": "d",
    "rating": 5,
    "price": 9.99,
    "category": "Tools",
}
