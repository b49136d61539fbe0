"""
Pytest configuration and fixtures.
"""

from __future__ import annotations

import os
import tempfile
from collections.abc import Callable
from typing import Any

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

# Force a throwaway SQLite DB and a quiet app before radar is imported;
# don't inherit from .env.
_tmp_dir = tempfile.mkdtemp(prefix="radar-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_tmp_dir, 'app.db')}"
os.environ["SCHEDULER_ENABLED"] = "false"
os.environ["SOURCES_FILE"] = os.path.join(_tmp_dir, "missing-sources.json")
os.environ["LLM_API_KEY"] = ""

from radar.llm.provider import LLMProvider  # noqa: E402


@pytest.fixture
def client() -> TestClient:
    """FastAPI test client (lifespan runs on entering the context)."""
    from radar.main import app

    with TestClient(app) as c:
        yield c


@pytest.fixture
def engine(tmp_path):
    """Fresh SQLite database file with all tables, one per test."""
    import radar.models  # noqa: F401
    from radar.db.session import Base

    eng = create_engine(
        f"sqlite:///{tmp_path / 'radar.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    Base.metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine) -> sessionmaker:
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def db(session_factory) -> Session:
    """Database session bound to the per-test SQLite file."""
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


class FakeProvider(LLMProvider):
    """LLMProvider stand-in: ``responder(prompt, system_prompt, kwargs)`` returns text or raises."""

    def __init__(self, responder: Callable[..., str] | str) -> None:
        self._responder = responder
        self.calls: list[dict[str, Any]] = []

    def complete(self, prompt: str, system_prompt: str | None = None, **kwargs: Any) -> str:
        self.calls.append({"prompt": prompt, "system_prompt": system_prompt, **kwargs})
        if callable(self._responder):
            return self._responder(prompt, system_prompt, kwargs)
        return self._responder


@pytest.fixture
def fake_provider_cls() -> type[FakeProvider]:
    return FakeProvider
