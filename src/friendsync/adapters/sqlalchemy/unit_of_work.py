"""SQLAlchemy-backed units of work for the friendship index."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Literal

from sqlalchemy import create_engine, event
from sqlalchemy.exc import DBAPIError, OperationalError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.orm.exc import StaleDataError

from friendsync.adapters.notifications.capture import ChangeCapture
from friendsync.adapters.sqlalchemy.mappings import start_mappers
from friendsync.adapters.sqlalchemy.migrations import upgrade_head
from friendsync.adapters.sqlalchemy.repositories import SqlAlchemyUserRepository
from friendsync.config import get_database_config
from friendsync.domain.ports.unit_of_work import FriendshipRepositories, RepositoryCollection
from friendsync.domain.transactions import TransactionConflictError

if TYPE_CHECKING:
    from collections.abc import Callable
    from datetime import datetime
    from sqlite3 import Connection as SQLiteConnection
    from types import TracebackType

    from sqlalchemy.engine import Connection, Engine
    from sqlalchemy.pool import ConnectionPoolEntry

    from friendsync.domain.model import ChangeNotification

log = logging.getLogger(__name__)

# serialization_failure and deadlock_detected
_CONFLICT_SQLSTATES = frozenset({"40001", "40P01"})
_SQLITE_BUSY_MESSAGES = ("database is locked", "database table is locked")


class StartupError(RuntimeError):
    """Raised when a SQLAlchemy unit of work is used before initialisation."""


@dataclass(slots=True)
class _AdapterState:
    _engine: Engine | None = None
    _session_factory: sessionmaker[Session] | None = None

    @property
    def engine(self) -> Engine | None:
        return self._engine

    @engine.setter
    def engine(self, value: Engine | None) -> None:
        self._session_factory = None
        self._engine = value

    @property
    def session_factory(self) -> sessionmaker[Session]:
        if self._engine is None:
            raise StartupError(
                "SQLAlchemy adapter not initialised. Call friendsync.adapters.sqlalchemy."
                "unit_of_work.startup() before requesting a unit of work."
            )
        if self._session_factory is None:
            self._session_factory = sessionmaker(bind=self._engine, expire_on_commit=False)
        return self._session_factory


_STATE = _AdapterState()


def _sqlite_connect(
    dbapi_connection: SQLiteConnection, connection_record: ConnectionPoolEntry
) -> None:
    _ = connection_record
    # let SQLAlchemy, not pysqlite, decide where transactions begin
    dbapi_connection.isolation_level = None


def _sqlite_begin(conn: Connection) -> None:
    conn.exec_driver_sql("BEGIN")


def configure_engine(engine: Engine) -> Engine:
    """Make every transaction on ``engine`` serializable.

    SQLite only serializes transactions that start before their first read,
    so BEGIN is emitted eagerly; other back ends get SERIALIZABLE isolation.
    """

    if engine.dialect.name != "sqlite":
        return engine.execution_options(isolation_level="SERIALIZABLE")
    if not event.contains(engine, "begin", _sqlite_begin):
        event.listen(engine, "connect", _sqlite_connect)
        event.listen(engine, "begin", _sqlite_begin)
    return engine


def startup(
    *,
    engine: Engine | None = None,
    database_uri: str | None = None,
    force: bool = False,
) -> None:
    """Initialise the SQLAlchemy engine, schema, and session factory."""

    if _STATE.engine is not None and not force:
        raise StartupError(
            "SQLAlchemy adapter already initialised. Pass force=True to reconfigure."
        )

    resolved_engine = engine or create_engine(
        database_uri or get_database_config().uri, future=True
    )
    resolved_engine = configure_engine(resolved_engine)
    start_mappers()
    upgrade_head(engine=resolved_engine)

    _STATE.engine = resolved_engine


def configured_engine() -> Engine | None:
    """Return the engine currently managed by the adapter (if any)."""

    return _STATE.engine


def shutdown() -> None:
    """Dispose the managed engine and reset state (primarily for tests)."""

    if _STATE.engine is not None:
        _STATE.engine.dispose()
    _STATE.engine = None


def is_conflict(exc: BaseException) -> bool:
    """Return whether ``exc`` means a concurrent transaction invalidated ours."""

    if isinstance(exc, StaleDataError):
        return True
    if not isinstance(exc, DBAPIError):
        return False
    orig = exc.orig
    sqlstate = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if sqlstate in _CONFLICT_SQLSTATES:
        return True
    if isinstance(exc, OperationalError):
        message = str(orig).lower()
        return any(text in message for text in _SQLITE_BUSY_MESSAGES)
    return False


class BaseSqlAlchemyUnitOfWork[TRepositories: RepositoryCollection](ABC):
    """Generic SQLAlchemy unit of work with pluggable repository collections.

    Driver errors that signal a lost optimistic race surface as
    ``TransactionConflictError``; every other error propagates as raised.
    """

    def __init__(self, *, clock: Callable[[], datetime] | None = None) -> None:
        self.session_factory: sessionmaker[Session] = _STATE.session_factory
        self._session: Session | None = None
        self._capture = ChangeCapture() if clock is None else ChangeCapture(clock=clock)

    @abstractmethod
    def _build_repositories(self, session: Session) -> TRepositories: ...

    def __enter__(self) -> BaseSqlAlchemyUnitOfWork[TRepositories]:
        self.session = self.session_factory()
        self._capture.attach(self.session)
        self._repositories = self._build_repositories(self.session)
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> Literal[False]:
        session = self.session
        try:
            if exc_type is not None:
                self.rollback()
        finally:
            self._capture.detach(session)
            session.close()
            self.session = None
        if exc_value is not None and is_conflict(exc_value):
            raise TransactionConflictError(str(exc_value)) from exc_value
        return False

    def commit(self) -> None:
        try:
            self.session.commit()
        except (StaleDataError, DBAPIError) as exc:
            if not is_conflict(exc):
                raise
            log.debug("Commit lost an optimistic race: %s", exc)
            raise TransactionConflictError(str(exc)) from exc

    def rollback(self) -> None:
        self.session.rollback()

    def collect_notifications(self) -> tuple[ChangeNotification, ...]:
        return self._capture.drain()

    @property
    def repositories(self) -> TRepositories:
        if self._session is None:
            raise StartupError("Unit of work session not initialised")
        return self._repositories

    @property
    def session(self) -> Session:
        if self._session is None:
            raise StartupError("Unit of work session not initialised")
        return self._session

    @session.setter
    def session(self, session: Session | None) -> None:
        if self._session is not None and session is not None:
            raise StartupError("Unit of work session already initialised")
        self._session = session


class SqlAlchemyFriendshipUnitOfWork(BaseSqlAlchemyUnitOfWork[FriendshipRepositories]):
    """Unit of work managing SQLAlchemy sessions for the friendship index."""

    def _build_repositories(self, session: Session) -> FriendshipRepositories:
        return FriendshipRepositories(users=SqlAlchemyUserRepository(session))


if TYPE_CHECKING:
    from friendsync.domain.ports.unit_of_work import FriendshipUnitOfWork

    _uow_check: FriendshipUnitOfWork = SqlAlchemyFriendshipUnitOfWork()
