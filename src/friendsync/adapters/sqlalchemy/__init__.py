"""SQLAlchemy adapter package for friendsync."""

from __future__ import annotations

from .mappings import mapper_registry, start_mappers, user_table
from .repositories import SqlAlchemyUserRepository
from .unit_of_work import (
    SqlAlchemyFriendshipUnitOfWork,
    StartupError,
    configure_engine,
    is_conflict,
    shutdown,
    startup,
)

__all__ = [
    "SqlAlchemyFriendshipUnitOfWork",
    "SqlAlchemyUserRepository",
    "StartupError",
    "configure_engine",
    "is_conflict",
    "mapper_registry",
    "shutdown",
    "start_mappers",
    "startup",
    "user_table",
]
