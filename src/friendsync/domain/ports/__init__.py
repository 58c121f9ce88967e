"""Domain port definitions for adapters."""

from __future__ import annotations

from .persistence import Repository, UserNotFoundError, UserRepository
from .unit_of_work import (
    FriendshipRepositories,
    FriendshipUnitOfWork,
    RepositoryCollection,
    UnitOfWork,
)

__all__ = [
    "FriendshipRepositories",
    "FriendshipUnitOfWork",
    "Repository",
    "RepositoryCollection",
    "UnitOfWork",
    "UserNotFoundError",
    "UserRepository",
]
