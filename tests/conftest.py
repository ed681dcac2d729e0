"""Shared fixtures: temp SQLite database, temp video storage, fake converter, API client."""

import threading
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from app.auth import create_access_token
from app.config import get_settings
from app.database import Base, build_engine, build_session_factory, get_db
from app.repositories.conversation_repository import add_member, create_conversation
from app.services.transcode_worker import TranscodeWorker
from tests.fakes import FakeConverter


@pytest.fixture(autouse=True)
def settings_env(tmp_path, monkeypatch):
    """Point storage at a temp dir and make retries instant."""
    monkeypatch.setenv("VIDEOS_DIR", str(tmp_path / "videos"))
    monkeypatch.setenv("TRANSCODE_RETRY_DELAY_SECONDS", "0")
    get_settings.cache_clear()
    yield get_settings()
    get_settings.cache_clear()


@pytest.fixture
def videos_root(settings_env) -> Path:
    return Path(settings_env.videos_dir)


@pytest.fixture
def session_factory(tmp_path):
    """File-backed SQLite so request and worker threads get their own connections."""
    engine = build_engine(f"sqlite:///{tmp_path / 'test.db'}")
    Base.metadata.create_all(engine)
    yield build_session_factory(engine)
    engine.dispose()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def seeded(db):
    """conv-1 has alice, conv-2 has bob."""
    create_conversation(db, "conv-1", "Alice's group")
    create_conversation(db, "conv-2", "Bob's group")
    add_member(db, "conv-1", "alice")
    add_member(db, "conv-2", "bob")
    return db


@pytest.fixture
def converter():
    return FakeConverter()


@pytest.fixture
def worker(session_factory, converter):
    w = TranscodeWorker(
        session_factory,
        max_workers=2,
        max_pending=8,
        max_attempts=3,
        retry_delay=0,
        converter=converter,
    )
    yield w
    w.shutdown(wait=True)


@pytest.fixture
def client(session_factory, worker, seeded):
    from app.main import app
    from app.routers.videos import get_transcoder

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_transcoder] = lambda: worker
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    def _headers(username: str = "alice") -> dict:
        return {"Authorization": f"Bearer {create_access_token(username)}"}

    return _headers


@pytest.fixture
def gate():
    """Holds the fake converter until released, to observe the pending state."""
    event = threading.Event()
    yield event
    event.set()
