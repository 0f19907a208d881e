"""
LearnHub Backend: Test Configuration (conftest.py)
====================================================

What:  Shared pytest fixtures for the entire test suite.
How:   Environment overrides are applied before any learnhub import, so the
       module-level settings, engine and service singletons pick them up.

Fixture Hierarchy:
    Function-scoped (created fresh for each test):
    ├── mock_db_session:    AsyncMock session for pure service tests
    ├── temp_storage:       temporary directory for file operations
    ├── sample_image_bytes: minimal JPEG that passes libmagic
    ├── db_engine:          in-memory SQLite with every table created
    ├── db_session:         session on db_engine for service tests
    ├── fake_llm:           LLMService double wired into the AI services
    └── test_client:        HTTPX AsyncClient against the app, DB overridden
"""

import os
import tempfile
from typing import Optional
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

# ══════════════════════════════════════════════════════════════════════════
# Environment Setup
# ══════════════════════════════════════════════════════════════════════════

os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["GEMINI_API_KEY"] = "test-key-not-real"
os.environ["GOOGLE_SPEECH_API_KEY"] = "test-speech-key"
os.environ["STORAGE_ROOT"] = tempfile.mkdtemp(prefix="learnhub_test_")
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["RATE_LIMIT_REQUESTS"] = "10000"

from sqlalchemy import event  # noqa: E402
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from learnhub import models  # noqa: E402,F401
from learnhub.database import Base, get_db_session  # noqa: E402
from learnhub.services.llm_base import Completion, LLMService  # noqa: E402


# ══════════════════════════════════════════════════════════════════════════
# Test doubles
# ══════════════════════════════════════════════════════════════════════════

class FakeLLM(LLMService):
    """
    Records every prompt and answers with `reply`.

    Set `error` to make complete() raise it instead.
    """

    def __init__(self, reply: str = "", tokens_used: int = 42, model: str = "fake-model"):
        self.reply = reply
        self.tokens_used = tokens_used
        self.model = model
        self.error: Optional[Exception] = None
        self.calls = []

    async def complete(self, prompt, system=None, max_tokens=500, temperature=0.7):
        self.calls.append(
            {
                "prompt": prompt,
                "system": system,
                "max_tokens": max_tokens,
                "temperature": temperature,
            }
        )
        if self.error is not None:
            raise self.error
        return Completion(text=self.reply, tokens_used=self.tokens_used, model=self.model)

    async def health_check(self) -> bool:
        return self.error is None


# ══════════════════════════════════════════════════════════════════════════
# Function-Scoped Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def mock_db_session():
    """
    Provides a mock async database session.

    begin_nested() returns an async context manager that does not swallow
    exceptions, like a real savepoint.

    Usage:
        async def test_missing_activity(mock_db_session):
            mock_db_session.get.return_value = None
            ...
    """
    session = AsyncMock()
    session.execute = AsyncMock()
    session.get = AsyncMock()
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.delete = AsyncMock()
    session.close = AsyncMock()
    session.add = MagicMock()
    session.begin_nested = MagicMock()
    return session


@pytest.fixture
def temp_storage(tmp_path):
    """A fresh storage directory for each test."""
    storage_dir = tmp_path / "storage"
    storage_dir.mkdir()
    return str(storage_dir)


@pytest.fixture
def sample_image_bytes():
    """
    Minimal JPEG bytes: SOI marker + JFIF header + EOI marker.

    Not a viewable picture, but libmagic reports image/jpeg for it.
    """
    return (
        b'\xff\xd8\xff\xe0\x00\x10JFIF\x00\x01\x01\x00\x00\x01\x00\x01\x00\x00'
        b'\xff\xd9'
    )


@pytest_asyncio.fixture
async def db_engine():
    """
    In-memory SQLite engine with the full schema.

    pysqlite's own transaction handling breaks SAVEPOINT; the two listeners
    hand BEGIN back to SQLAlchemy so begin_nested() works as on PostgreSQL.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return async_sessionmaker(db_engine, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def fake_llm(monkeypatch):
    """Swaps the Gemini-backed LLM out of the coaching and workout services."""
    from learnhub.services.coaching_service import coaching_service
    from learnhub.services.workout_service import workout_service

    llm = FakeLLM()
    monkeypatch.setattr(coaching_service, "llm", llm)
    monkeypatch.setattr(workout_service, "llm", llm)
    return llm


@pytest_asyncio.fixture
async def test_client(session_factory):
    """
    HTTPX AsyncClient talking to the app through ASGITransport.

    Each request gets its own session on the test engine, committed or
    rolled back exactly like get_db_session does in production.

    Usage:
        async def test_health(test_client):
            response = await test_client.get("/health")
    """
    from learnhub.main import app

    async def _session_override():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db_session] = _session_override
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()
