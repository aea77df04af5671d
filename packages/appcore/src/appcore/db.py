"""
Database store.

A Store owns one SQLAlchemy engine and its sessionmaker. Entry points build
it explicitly and hand it to services; tests build an isolated one each.
"""

from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import MetaData, create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    # SQLite ignores ON DELETE clauses unless this is set per connection
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class Store:
    """Engine + sessionmaker pair with transactional session scopes."""

    def __init__(self, engine: Engine):
        self.engine = engine
        self._sessionmaker = sessionmaker(
            bind=engine,
            autocommit=False,
            autoflush=False,
            expire_on_commit=False,
        )

    @classmethod
    def from_url(cls, url: str, **engine_kwargs) -> "Store":
        """
        Create a store for a database URL.

        SQLite URLs get check_same_thread disabled so sessions can be opened
        from worker threads.
        """
        if url.startswith("sqlite"):
            connect_args = engine_kwargs.pop("connect_args", {})
            connect_args.setdefault("check_same_thread", False)
            engine_kwargs["connect_args"] = connect_args
        else:
            engine_kwargs.setdefault("pool_pre_ping", True)

        engine = create_engine(url, echo=False, **engine_kwargs)
        if url.startswith("sqlite"):
            event.listen(engine, "connect", _enable_sqlite_foreign_keys)
        return cls(engine)

    @contextmanager
    def session(self) -> Iterator[Session]:
        """
        Transactional session scope.

        Commits when the block exits normally, rolls back on any exception
        and always closes the session.
        """
        db = self._sessionmaker()
        try:
            yield db
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def create_all(self, metadata: MetaData) -> None:
        """Create all tables of a metadata (dev/test bootstrap)."""
        metadata.create_all(self.engine)

    def dispose(self) -> None:
        self.engine.dispose()
