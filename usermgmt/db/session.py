"""Engine/session helpers for the SQL backend."""
from __future__ import annotations

from contextlib import contextmanager
from functools import lru_cache
from pathlib import Path

from sqlalchemy import create_engine, event
from sqlalchemy.engine import make_url
from sqlalchemy.orm import declarative_base, sessionmaker, Session

from usermgmt.core.config import get_settings

Base = declarative_base()
WRITE_LOCK_OPTION = "usermgmt_write_lock"


def _ensure_sqlite_directory(url: str) -> None:
    parsed = make_url(url)
    database = parsed.database or ""
    if parsed.get_backend_name() != "sqlite" or not database or database == ":memory:":
        return
    Path(database).expanduser().resolve(strict=False).parent.mkdir(parents=True, exist_ok=True)


@lru_cache
def get_engine():
    settings = get_settings()
    url = (settings.database_url or "").strip()
    if not url:
        raise RuntimeError("DATABASE_URL must be configured to use the SQL backend.")
    if not url.startswith("sqlite"):
        return create_engine(url, future=True, pool_pre_ping=True)
    _ensure_sqlite_directory(url)
    engine = create_engine(
        url,
        future=True,
        pool_pre_ping=True,
        connect_args={"check_same_thread": False},
    )
    _serialize_sqlite_transactions(engine)
    return engine


def _serialize_sqlite_transactions(engine) -> None:
    # pysqlite defers BEGIN until the first DML statement, so a count read
    # before an update would run outside the write lock. Write transactions
    # take the lock upfront; plain reads keep a deferred BEGIN.
    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        if conn.get_execution_options().get(WRITE_LOCK_OPTION):
            conn.exec_driver_sql("BEGIN IMMEDIATE")
        else:
            conn.exec_driver_sql("BEGIN")


@lru_cache
def _get_sessionmaker():
    return sessionmaker(
        bind=get_engine(),
        autoflush=False,
        autocommit=False,
        expire_on_commit=False,
        future=True,
    )


@contextmanager
def get_session() -> Session:
    session: Session = _get_sessionmaker()()
    try:
        yield session
    finally:
        session.close()


def acquire_write_lock(session: Session) -> None:
    """Bind the session's transaction to a connection that begins with the write lock.

    Must run inside ``session.begin()`` before any statement is executed.
    """
    session.connection(execution_options={WRITE_LOCK_OPTION: True})
