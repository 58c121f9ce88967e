"""Unit-of-work abstractions for coordinating repositories."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from types import TracebackType

    from friendsync.domain.model import ChangeNotification
    from friendsync.domain.ports.persistence import UserRepository


@runtime_checkable
class RepositoryCollection(Protocol):
    """Marker protocol for groups of repositories managed together."""


@runtime_checkable
class UnitOfWork[TRepositories: RepositoryCollection](Protocol):
    """Generic unit-of-work boundary around a repository collection.

    ``commit`` raises ``TransactionConflictError`` when a concurrent commit
    invalidated anything read inside the unit of work.
    """

    @property
    def repositories(self) -> TRepositories: ...  # the repo list itself should be immutable

    def __enter__(self) -> UnitOfWork[TRepositories]: ...

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> bool: ...

    def commit(self) -> None: ...

    def rollback(self) -> None: ...

    def collect_notifications(self) -> tuple[ChangeNotification, ...]:
        """Return notifications for number changes committed by this unit of work."""
        ...


@dataclass(slots=True)
class FriendshipRepositories(RepositoryCollection):
    """Repositories required to maintain the friendship index."""

    users: UserRepository


type FriendshipUnitOfWork = UnitOfWork[FriendshipRepositories]
