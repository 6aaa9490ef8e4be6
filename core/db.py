"""
core/db.py -- Engine construction and error translation shared by the stores.

Both auth/store.py and boards/store.py build their engine here so SQLite
gets the same connect_args and WAL pragma everywhere, and both translate
SQLAlchemy failures the same way:

  IntegrityError    -> core.errors.Conflict
  SQLAlchemyError   -> core.errors.StorageUnavailable

No retries. A failed call fails once and the error reaches the caller.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from core.errors import Conflict, StorageUnavailable

logger = logging.getLogger("taskboard.store")


def _set_sqlite_pragmas(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode and foreign keys on every new SQLite connection.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")
    dbapi_conn.execute("PRAGMA foreign_keys=ON")


def make_engine(db_url: str) -> Engine:
    connect_args: dict = {}
    if db_url.startswith("sqlite"):
        # TestClient and uvicorn run sync handlers in a thread pool, so one
        # pooled connection may be used from more than one thread.
        connect_args["check_same_thread"] = False
    engine = create_engine(db_url, connect_args=connect_args)
    if db_url.startswith("sqlite"):
        event.listen(engine, "connect", _set_sqlite_pragmas)
    return engine


@contextmanager
def storage_errors(operation: str) -> Iterator[None]:
    """Translate SQLAlchemy exceptions raised inside the block."""
    try:
        yield
    except IntegrityError as exc:
        logger.info("%s rejected by constraint: %s", operation, exc.orig)
        raise Conflict() from exc
    except SQLAlchemyError as exc:
        logger.error("%s failed", operation, exc_info=True)
        raise StorageUnavailable() from exc
