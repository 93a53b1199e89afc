from contextlib import contextmanager
from typing import Any, Iterator

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.config import get_settings

settings = get_settings()


def _engine_options(url: str) -> dict[str, Any]:
    if url.startswith("sqlite"):
        options: dict[str, Any] = {"connect_args": {"check_same_thread": False}}
        # In-memory databases live as long as their single connection.
        if ":memory:" in url or url.rstrip("/").endswith("sqlite"):
            options["poolclass"] = StaticPool
        return options
    # pool_size: connections kept open; max_overflow: extra connections on demand
    return {"pool_size": 10, "max_overflow": 20, "pool_pre_ping": True}


engine = create_engine(
    settings.sqlalchemy_url,
    echo=settings.debug,
    future=True,
    **_engine_options(settings.sqlalchemy_url),
)
SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False, future=True)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def get_db_session() -> Iterator[Session]:
    """Context manager for short-lived database sessions.

    Hub handlers and services use this instead of Depends(get_db) so a
    websocket never holds a connection for its whole lifetime.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
