"""Ports for persisting user records."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

from friendsync.domain.model import User

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence
    from datetime import datetime


class UserNotFoundError(LookupError):
    """Raised when a repository primitive targets an unknown user id."""

    def __init__(self, user_id: str) -> None:
        super().__init__(f"User {user_id} does not exist")
        self.user_id = user_id


@runtime_checkable
class Repository[TEntity](Protocol):
    """Minimal repository contract for a persistent aggregate store."""

    def add(self, entity: TEntity) -> None: ...


@runtime_checkable
class UserRepository(Repository[User], Protocol):
    """Persistence contract for user records and their friend sets.

    All reads take part in the surrounding transaction's read set.
    """

    def get(self, user_id: str) -> User | None: ...

    def members_of(self, *numbers: int) -> Mapping[int, Sequence[User]]:
        """Return the users holding each of ``numbers``, keyed by number."""
        ...

    def record_transition(
        self, user_id: str, *, friends: frozenset[str], at: datetime
    ) -> None: ...

    def add_friend(self, user_id: str, friend_id: str) -> None: ...

    def remove_friend(self, user_id: str, friend_id: str) -> None: ...
