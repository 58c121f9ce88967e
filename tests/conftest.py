from __future__ import annotations

import os
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

import pytest
from sqlalchemy import create_engine

from friendsync.adapters.sqlalchemy import (
    SqlAlchemyFriendshipUnitOfWork,
    configure_engine,
    shutdown,
    start_mappers,
    startup,
)
from friendsync.adapters.sqlalchemy.migrations import upgrade_head
from friendsync.domain.friendship import FriendshipReconciler

os.environ.setdefault("DATABASE_URI", "sqlite+pysqlite:///:memory:")

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator

    from sqlalchemy.engine import Engine


class TickingClock:
    """Deterministic clock advancing one second per reading."""

    def __init__(self, start: datetime | None = None) -> None:
        self.current = start or datetime(2025, 1, 1, tzinfo=UTC)

    def __call__(self) -> datetime:
        self.current += timedelta(seconds=1)
        return self.current


@pytest.fixture
def sqlite_engine() -> Iterator[Engine]:
    engine = configure_engine(create_engine("sqlite+pysqlite:///:memory:", future=True))
    start_mappers()
    upgrade_head(engine=engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def clock() -> TickingClock:
    return TickingClock()


@pytest.fixture
def sqlite_unit_of_work(
    sqlite_engine: Engine,
    clock: TickingClock,
) -> Iterator[Callable[[], SqlAlchemyFriendshipUnitOfWork]]:
    startup(engine=sqlite_engine, force=True)

    def factory() -> SqlAlchemyFriendshipUnitOfWork:
        return SqlAlchemyFriendshipUnitOfWork(clock=clock)

    try:
        yield factory
    finally:
        shutdown()


@pytest.fixture
def sqlite_reconciler(
    sqlite_unit_of_work: Callable[[], SqlAlchemyFriendshipUnitOfWork],
) -> FriendshipReconciler:
    return FriendshipReconciler(unit_of_work_factory=sqlite_unit_of_work)
