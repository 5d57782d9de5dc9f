"""Pytest configuration and fixtures for testing."""

import io
import os
import tempfile
from pathlib import Path
from typing import Generator

import pytest
from _pytest.monkeypatch import MonkeyPatch
from PIL import Image
from sqlalchemy import create_engine, delete, inspect
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from img2prompt.core.config import settings
from img2prompt.db.base import Base
from img2prompt.models.async_task import AsyncTask
from img2prompt.repositories import (
    DatabaseTaskStore,
    MemoryTaskStore,
    set_task_store,
)
from img2prompt.services.prompt_service import prompt_service
from img2prompt.services.workflow_client import WorkflowClient
from img2prompt.worker import celery_app
from tests.upstream import FakeUpstream


@pytest.fixture(scope="session")
def monkeypatch_session() -> Generator[MonkeyPatch, None, None]:
    """A session-scoped monkeypatch to prevent scope mismatch errors."""
    mpatch = MonkeyPatch()
    yield mpatch
    mpatch.undo()


@pytest.fixture(scope="session")
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    temp_dir = Path(tempfile.mkdtemp())
    yield temp_dir


@pytest.fixture(scope="session", autouse=True)
def apply_test_settings(monkeypatch_session: MonkeyPatch, temp_dir: Path) -> None:
    """
    Apply test settings for the entire test session.

    This fixture ensures that all parts of the application use a test configuration
    by monkeypatching the settings object before any test runs.
    """
    test_settings = {
        "TESTING": True,
        "DATABASE_URL": "sqlite:///:memory:",
        "UPLOAD_FOLDER": temp_dir / "uploads",
        "CELERY_BROKER_URL": "memory://",
        "CELERY_RESULT_BACKEND": "cache+memory://",
        "CELERY_TASK_ALWAYS_EAGER": True,
        "CELERY_TASK_EAGER_PROPAGATES": True,
        "COZE_API_TOKEN": "test-coze-token",
        "COZE_WORKFLOW_ID": "7498765432101234567",
        "COZE_API_BASE": "https://upstream.test",
        "APP_URL": None,
        "TASK_STORE_BACKEND": "memory",
        "TASK_EXECUTION_MODE": "worker",
        "TASK_EXPIRY_SECONDS": 3600,
    }

    for key, value in test_settings.items():
        monkeypatch_session.setattr(settings, key, value)

    celery_app.conf.update(
        broker_url="memory://",
        result_backend="cache+memory://",
        task_always_eager=True,
        task_eager_propagates=True,
    )


@pytest.fixture(scope="session")
def engine() -> Engine:
    """
    Create a new in-memory SQLite engine for the entire test session.
    """
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=bool(os.getenv("SQL_ECHO")),
    )
    Base.metadata.create_all(bind=engine)

    missing_tables = set(Base.metadata.tables) - set(
        inspect(engine).get_table_names()
    )
    if missing_tables:
        raise RuntimeError(f"Missing tables in database: {missing_tables}")
    return engine


@pytest.fixture(scope="function")
def session_factory(engine: Engine) -> Generator[sessionmaker, None, None]:
    """Sessionmaker bound to the test engine; the table is emptied afterwards."""
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    yield factory
    with factory() as db:
        db.execute(delete(AsyncTask))
        db.commit()


@pytest.fixture(scope="function")
def db_store(session_factory: sessionmaker) -> DatabaseTaskStore:
    return DatabaseTaskStore(session_factory=session_factory)


@pytest.fixture(scope="function", autouse=True)
def task_store() -> Generator[MemoryTaskStore, None, None]:
    """Give every test a fresh process-wide memory store."""
    store = MemoryTaskStore()
    set_task_store(store)
    yield store
    set_task_store(None)


@pytest.fixture(scope="function")
def upstream(monkeypatch: MonkeyPatch) -> FakeUpstream:
    """Route all upstream calls made by the services to a FakeUpstream."""
    fake = FakeUpstream()
    monkeypatch.setattr(
        prompt_service,
        "_client_factory",
        lambda: WorkflowClient.from_settings(transport=fake.transport),
    )
    return fake


@pytest.fixture(scope="session")
def test_image() -> bytes:
    """Generate a JPEG of roughly 10KB for upload tests."""
    img = Image.effect_noise((64, 64), 48).convert("RGB")
    buf = io.BytesIO()
    img.save(buf, format="JPEG", quality=90)
    return buf.getvalue()


@pytest.fixture(scope="session")
def test_png() -> bytes:
    img = Image.new("RGB", (100, 100), color="white")
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()
