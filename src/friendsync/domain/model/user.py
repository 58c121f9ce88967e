"""User records and the derived friendship index they carry."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Final
from uuid import uuid4

# Fallback for records whose number was never reconciled: one millisecond after the epoch.
NEVER_UPDATED: Final[datetime] = datetime.fromtimestamp(0.001, UTC)


def _new_user_id() -> str:
    return uuid4().hex


@dataclass(eq=False, kw_only=True)
class User:
    """A user whose friends are exactly the other users sharing its ``number``.

    ``friends`` and ``number_last_updated_at`` are owned by the friendship
    reconciler; external writers only ever change ``number``.
    """

    id: str = field(default_factory=_new_user_id)
    number: int | None = None
    number_last_updated_at: datetime | None = None
    friends: frozenset[str] = field(default_factory=frozenset[str])

    def __post_init__(self) -> None:
        if self.id in self.friends:
            raise ValueError(f"User {self.id} cannot be its own friend")

    @property
    def last_number_update(self) -> datetime:
        """Time of the last accepted transition, or ``NEVER_UPDATED``."""
        return self.number_last_updated_at or NEVER_UPDATED

    def befriend(self, user_id: str) -> bool:
        """Add ``user_id`` to the friend set; return whether anything changed."""
        if user_id == self.id:
            raise ValueError(f"User {self.id} cannot be its own friend")
        if user_id in self.friends:
            return False
        self.friends = self.friends | {user_id}
        return True

    def unfriend(self, user_id: str) -> bool:
        """Remove ``user_id`` from the friend set; return whether anything changed."""
        if user_id not in self.friends:
            return False
        self.friends = self.friends - {user_id}
        return True

    def accept_transition(self, *, friends: frozenset[str], at: datetime) -> None:
        if self.id in friends:
            raise ValueError(f"User {self.id} cannot be its own friend")
        self.friends = friends
        self.number_last_updated_at = at
