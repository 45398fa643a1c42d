"""
Shared fixtures: one in-memory SQLite database per test, the FastAPI app
wired to it, and small factories for users and auth headers.
"""
import os
import tempfile

# settings are read at import time
os.environ["DB_URL"] = "sqlite://"
os.environ["START_BACKGROUND_WORKERS"] = "0"
os.environ["UPLOADS_DIR"] = tempfile.mkdtemp(prefix="mask-uploads-")
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["GEMINI_API_KEY"] = ""
os.environ["MOTIVATION_ENABLED"] = "1"
os.environ["ADMIN_KEY"] = "test-admin-key"
os.environ["REQUIRE_EMAIL_VERIFICATION"] = "0"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from config.db import get_db
from model import load_all_models
from model.base import Base
from routes.auth import create_account
from src.app import app
from src.factcheck.worker import FactCheckWorker, set_worker
from src.utils import make_access_token

load_all_models()

PASSWORD = "secret123"


def _stub_provider(text, **kwargs):
    return {"ok": True, "verdict": "true", "confidence": 0.9, "explanation": "stubbed"}


# ===================================================================
# Database
# ===================================================================

@pytest.fixture(scope="function")
def engine():
    """Create an in-memory SQLite database shared by every session in a test."""
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(eng, "connect")
    def _fk_on(dbapi_conn, _record):
        cur = dbapi_conn.cursor()
        cur.execute("PRAGMA foreign_keys=ON")
        cur.close()

    Base.metadata.create_all(eng)
    yield eng
    Base.metadata.drop_all(eng)
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def worker(session_factory):
    w = FactCheckWorker(session_factory=session_factory, provider=_stub_provider)
    set_worker(w)
    yield w
    set_worker(None)


@pytest.fixture
def client(session_factory, worker):
    def _get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


# ===================================================================
# Factories
# ===================================================================

@pytest.fixture
def make_user(db):
    def _make(pseudonym, role="user", email=None, password=PASSWORD):
        user = create_account(db, pseudonym, password, email=email, role=role)
        db.commit()
        db.refresh(user)
        return user
    return _make


def auth(user):
    return {"Authorization": f"Bearer {make_access_token(user.public_id, user.id, user.role)}"}


@pytest.fixture
def alice(make_user):
    return make_user("alice", email="alice@example.com")


@pytest.fixture
def bob(make_user):
    return make_user("bob")


@pytest.fixture
def carol(make_user):
    return make_user("carol")


@pytest.fixture
def admin(make_user):
    return make_user("root_admin", role="admin")


@pytest.fixture
def moderator(make_user):
    return make_user("modder", role="moderator")
