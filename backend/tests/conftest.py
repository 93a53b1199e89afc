"""Shared pytest fixtures for backend tests."""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path
from typing import Any, Callable, Iterator

os.environ["DATABASE_URL"] = "sqlite+pysqlite:///:memory:"
os.environ["DEBUG"] = "false"
os.environ.setdefault("JWT_SECRET_KEY", "test-secret")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session, sessionmaker

ROOT_DIR = Path(__file__).resolve().parents[1]
for path in (ROOT_DIR, ROOT_DIR / "src"):
    if str(path) not in sys.path:
        sys.path.insert(0, str(path))

from app.core.security import create_access_token, get_password_hash
from app.database import SessionLocal, engine
from app.main import app
from app.models import Base, User
from app.services.realtime import Realtime, reset_realtime


@pytest.fixture()
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture(autouse=True)
def realtime_log_capture(monkeypatch) -> None:
    """Let caplog see the realtime loggers, which do not propagate in the app config."""

    monkeypatch.setattr(logging.getLogger("huddle.realtime"), "propagate", True)


@pytest.fixture(autouse=True)
def database() -> Iterator[None]:
    """Create the schema on the shared in-memory engine for each test."""

    Base.metadata.create_all(engine)
    try:
        yield
    finally:
        Base.metadata.drop_all(engine)


@pytest.fixture(autouse=True)
def realtime() -> Iterator[Realtime]:
    """Start every test with empty hub channels."""

    yield reset_realtime(push_timeout=0.5)
    reset_realtime()


@pytest.fixture()
def session_factory() -> sessionmaker[Session]:
    return SessionLocal


@pytest.fixture()
def db_session(session_factory) -> Iterator[Session]:
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def make_user(session_factory) -> Callable[..., User]:
    """Insert a user and return it detached from its session."""

    def factory(username: str, *, display_name: str | None = None, password: str = "supersecret") -> User:
        with session_factory() as session:
            user = User(
                username=username,
                email=f"{username}@example.com",
                display_name=display_name,
                hashed_password=get_password_hash(password),
            )
            session.add(user)
            session.commit()
            session.refresh(user)
            session.expunge(user)
            return user

    return factory


@pytest.fixture()
def auth_headers() -> Callable[[User], dict[str, Any]]:
    def build(user: User) -> dict[str, Any]:
        return {"Authorization": f"Bearer {create_access_token({'sub': str(user.id)})}"}

    return build


@pytest.fixture()
def client() -> Iterator[TestClient]:
    with TestClient(app) as test_client:
        yield test_client
