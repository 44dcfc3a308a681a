"""Database session management and write helpers."""

from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from pathlib import Path

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.engine import make_url
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session, sessionmaker

from . import create_database_engine, create_tables

logger = logging.getLogger(__name__)


def _is_lock_error(exc: Exception) -> bool:
    message = str(exc).lower()
    return "database is locked" in message or "database table is locked" in message


def _commit_with_retry(session: Session, retries: int = 4, backoff: float = 0.1):
    """Commit ``session``, retrying while SQLite reports the database is locked."""
    attempt = 0
    while True:
        try:
            session.commit()
            return
        except OperationalError as e:
            session.rollback()
            attempt += 1
            if not _is_lock_error(e) or attempt > retries:
                raise
            delay = backoff * (2 ** (attempt - 1))
            logger.debug(f"Database locked, retrying commit in {delay:.2f}s")
            time.sleep(delay)


def safe_session_execute(session: Session, statement, params=None, retries: int = 4):
    """Execute ``statement`` retrying on SQLite lock contention."""
    attempt = 0
    while True:
        try:
            return session.execute(statement, params or {})
        except OperationalError as e:
            attempt += 1
            if not _is_lock_error(e) or attempt > retries:
                raise
            session.rollback()
            time.sleep(0.1 * (2 ** (attempt - 1)))


def upsert(session: Session, table, values: dict, index_elements: list[str], set_):
    """Build and execute ``INSERT ... ON CONFLICT DO UPDATE`` for ``table``.

    ``set_`` is either a dict of column -> value/expression or a callable
    receiving the statement (so expressions may refer to ``excluded``) and
    returning that dict. Both SQLite and PostgreSQL evaluate the SET clause
    against the existing row inside one statement.
    """
    dialect = session.get_bind().dialect.name
    if dialect == "postgresql":
        stmt = postgresql.insert(table).values(**values)
    elif dialect == "sqlite":
        stmt = sqlite.insert(table).values(**values)
    else:
        raise NotImplementedError(f"Upsert not supported for dialect '{dialect}'")

    set_values = set_(stmt) if callable(set_) else set_
    stmt = stmt.on_conflict_do_update(index_elements=index_elements, set_=set_values)
    return safe_session_execute(session, stmt)


class DatabaseManager:
    """Own an engine and hand out sessions.

    Usage::

        with DatabaseManager(url) as db:
            with db.get_session() as session:
                ...
    """

    def __init__(self, database_url: str | None = None, create: bool = True):
        if database_url is None:
            from freereader.config import DATABASE_URL

            database_url = DATABASE_URL

        self.database_url = database_url
        self._ensure_sqlite_directory(database_url)
        self.engine = create_database_engine(database_url)
        self.SessionLocal = sessionmaker(bind=self.engine, expire_on_commit=False)

        if create:
            create_tables(self.engine)

    @staticmethod
    def _ensure_sqlite_directory(database_url: str) -> None:
        url = make_url(database_url)
        if url.get_backend_name() != "sqlite":
            return
        database = url.database
        if database and database != ":memory:" and not database.startswith("file:"):
            Path(database).parent.mkdir(parents=True, exist_ok=True)

    @contextmanager
    def get_session(self):
        """Yield a short-lived session, rolling back on error."""
        session = self.SessionLocal()
        try:
            yield session
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def close(self) -> None:
        self.engine.dispose()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False
