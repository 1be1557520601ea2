from __future__ import annotations

from collections.abc import Generator

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from club_finance.core.config import settings


def _build_engine(url: str) -> Engine:
    is_sqlite = url.startswith("sqlite")
    if is_sqlite:
        connect_args = {"check_same_thread": False, "timeout": settings.database_timeout_s}
    else:
        connect_args = {"connect_timeout": int(settings.database_timeout_s)}
    built = create_engine(url, pool_pre_ping=True, connect_args=connect_args)

    if is_sqlite:
        # Foreign keys are off by default in SQLite; expenses rely on them.
        @event.listens_for(built, "connect")
        def _sqlite_pragmas(dbapi_connection, _record) -> None:
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return built


engine = _build_engine(settings.database_url)
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)


def db_session() -> Generator[Session, None, None]:
    """Request-scoped session. Anything left uncommitted is rolled back."""
    with SessionLocal() as session:
        try:
            yield session
        except Exception:
            session.rollback()
            raise


def ping() -> None:
    with SessionLocal() as session:
        session.execute(text("SELECT 1"))
