"""
core/database.py -- Shared SQLAlchemy engine factory.

One Engine (and therefore one connection pool) is created per process in the
API lifespan and injected into every store. Stores never create engines of
their own, so tests can hand them an in-memory engine instead.

In-memory SQLite URLs ("sqlite://", "sqlite:///:memory:") use StaticPool so
every thread in the pool sees the same database; TestClient runs sync route
handlers in a worker thread.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool

_MEMORY_URLS = ("sqlite://", "sqlite:///:memory:")


def _set_sqlite_pragmas(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode for concurrent read safety.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def create_db_engine(db_url: str) -> Engine:
    """Build the process-wide Engine for db_url."""
    if db_url in _MEMORY_URLS:
        return create_engine(
            db_url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    if db_url.startswith("sqlite"):
        engine = create_engine(db_url, connect_args={"check_same_thread": False})
        event.listen(engine, "connect", _set_sqlite_pragmas)
        return engine
    return create_engine(db_url, pool_pre_ping=True)


def now_iso() -> str:
    """UTC timestamp in ISO 8601. Lexicographic order equals time order."""
    return datetime.now(timezone.utc).isoformat()
