"""Database session configuration."""

from __future__ import annotations

from collections.abc import Generator, Iterator
from contextlib import contextmanager
from typing import Any

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from inspira.core.settings import settings


class Base(DeclarativeBase):
    """Declarative base shared by all ORM models."""


def install_sqlite_pragmas(engine: Engine) -> None:
    """Give SQLite real transactions, savepoints and foreign keys.

    pysqlite defers BEGIN and breaks SAVEPOINT semantics unless the driver's
    own transaction handling is switched off and BEGIN is emitted explicitly.
    """

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection: Any, connection_record: Any) -> None:
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn: Any) -> None:
        conn.exec_driver_sql("BEGIN")


def create_db_engine(database_url: str | None = None, **kwargs: Any) -> Engine:
    """Create an engine for ``database_url`` (defaults to the configured URL)."""
    url = database_url or settings.effective_database_url
    connect_args: dict[str, Any] = kwargs.pop("connect_args", {})
    if url.startswith("sqlite"):
        connect_args.setdefault("check_same_thread", False)
    engine = create_engine(
        url,
        pool_pre_ping=True,
        echo=settings.sql_debug,
        connect_args=connect_args,
        **kwargs,
    )
    if engine.dialect.name == "sqlite":
        install_sqlite_pragmas(engine)
    return engine


# Ensure model modules are imported so that metadata is populated when create_all runs.
import inspira.models  # noqa: E402,F401

engine = create_db_engine()

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    expire_on_commit=False,
    bind=engine,
)


def get_session_factory() -> sessionmaker[Session]:
    """Return the session factory for code that manages its own sessions (WebSockets)."""
    return SessionLocal


def get_db() -> Generator[Session, None, None]:
    """Yield a database session for dependency injection."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def transaction(db: Session) -> Iterator[Session]:
    """Run a unit of work: commit on success, roll back on any exception.

    Usage:
        with transaction(db):
            ledger.apply_delta(db, ...)
            db.add(...)
    """
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise

