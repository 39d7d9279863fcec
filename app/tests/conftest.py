import os
import tempfile
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from fastapi.testclient import TestClient

# Ensure tests always use SQLite to avoid requiring Postgres drivers
os.environ.setdefault("DATABASE_URL", "sqlite:///./test_jobcache.db")

from app.database import Base, get_db, get_session_factory
from app.jobs.google_search import get_search_client
from app.jobs.llm import get_completion_client
from app.jobs.url_validator import get_url_probe
from app.main import app
from app import crud

from app.tests.fakes import FakeCompletionClient, FakeProbe, FakeSearchClient


@pytest.fixture(scope="session")
def test_db_url():
    # Use a temporary SQLite file to persist across tests within a session
    db_fd, db_path = tempfile.mkstemp(prefix="test_jobcache_", suffix=".db")
    os.close(db_fd)
    url = f"sqlite:///{db_path}"
    yield url
    try:
        os.remove(db_path)
    except FileNotFoundError:
        pass


@pytest.fixture()
def session_factory(test_db_url):
    engine = create_engine(test_db_url, connect_args={"check_same_thread": False})
    TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
    # Create all tables
    Base.metadata.create_all(bind=engine)
    yield TestingSessionLocal
    Base.metadata.drop_all(bind=engine)
    # Ensure file handles are released on Windows
    engine.dispose()


@pytest.fixture()
def db_session(session_factory):
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture()
def search_client():
    return FakeSearchClient()


@pytest.fixture()
def completion_client():
    return FakeCompletionClient()


@pytest.fixture()
def probe():
    return FakeProbe()


@pytest.fixture()
def client(db_session, session_factory, search_client, completion_client, probe):
    # Override the dependencies to use the test session and fake collaborators
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_search_client] = lambda: search_client
    app.dependency_overrides[get_completion_client] = lambda: completion_client
    app.dependency_overrides[get_url_probe] = lambda: probe
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture()
def make_user(db_session):
    def _make(email="user@example.com", password="password123", **fields):
        user = crud.create_user(db_session, email, password)
        for k, v in fields.items():
            setattr(user, k, v)
        db_session.commit()
        return user
    return _make


@pytest.fixture()
def auth_headers(client):
    def _headers(email="user@example.com", password="password123"):
        tok = client.post(
            "/api/login",
            data={"username": email, "password": password},
            headers={"Content-Type": "application/x-www-form-urlencoded"},
        ).json()["access_token"]
        return {"Authorization": f"Bearer {tok}"}
    return _headers
