from __future__ import annotations

import logging
import threading
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker

from jobbot.db.init import create_schema
from jobbot.db.repositories import Repository

logger = logging.getLogger(__name__)


def build_engine(database_url: str) -> Engine:
    connect_args = {"check_same_thread": False} if database_url.startswith("sqlite") else {}
    return create_engine(database_url, connect_args=connect_args, future=True)


class Database:
    """Owned handle over one store: engine, session factory and the write lock.

    Every mutation made through a repository from this handle is serialized on
    ``write_lock``, which is shared by the email monitor and the job scanner.
    """

    def __init__(self, database_url: str):
        self.database_url = database_url
        self.write_lock = threading.RLock()
        self._engine: Engine | None = None
        self._session_factory: sessionmaker[Session] | None = None

    @property
    def is_open(self) -> bool:
        return self._engine is not None

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            raise RuntimeError("database is not open")
        return self._engine

    def open(self, *, create_tables: bool = True) -> Database:
        if self._engine is not None:
            return self
        self._engine = build_engine(self.database_url)
        self._session_factory = sessionmaker(
            bind=self._engine,
            autoflush=False,
            autocommit=False,
            expire_on_commit=False,
            future=True,
        )
        if create_tables:
            create_schema(self._engine)
        logger.info("Opened store %s", self._engine.url.render_as_string(hide_password=True))
        return self

    def close(self) -> None:
        if self._engine is None:
            return
        self._engine.dispose()
        self._engine = None
        self._session_factory = None

    def __enter__(self) -> Database:
        return self.open()

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def session(self) -> Session:
        if self._session_factory is None:
            raise RuntimeError("database is not open")
        return self._session_factory()

    @contextmanager
    def repository(self) -> Iterator[Repository]:
        with self.session() as session:
            yield Repository(session, write_lock=self.write_lock)
