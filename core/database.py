"""
core/database.py -- Engine construction shared by the auth and blog stores.

One Engine is created at process start (api/main.py lifespan) and handed to
UserStore and BlogStore explicitly. No module keeps a global connection.

SQLite URLs get check_same_thread=False (FastAPI runs sync work in a thread
pool) plus WAL journal mode; every backend gets a bounded connect/pool timeout.
"""

from __future__ import annotations

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode for concurrent read safety.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def create_db_engine(db_url: str, timeout: float = 5.0) -> Engine:
    """Build an Engine for db_url. Each store creates its own tables on it."""
    connect_args: dict = {}
    if db_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
        connect_args["timeout"] = timeout
        engine = create_engine(db_url, connect_args=connect_args)
        event.listen(engine, "connect", _set_wal_mode)
    else:
        engine = create_engine(db_url, pool_timeout=timeout, pool_pre_ping=True)
    return engine


def ping(engine: Engine) -> bool:
    """Return True if the database answers a trivial query."""
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except Exception:
        return False
