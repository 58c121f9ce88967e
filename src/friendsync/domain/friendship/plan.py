"""Pure computation of the friend-set delta for one number transition."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable
    from datetime import datetime

    from friendsync.domain.model import User


@dataclass(frozen=True, slots=True)
class FriendshipPlan:
    """Write set produced by a transition of ``user_id`` between value groups.

    ``gains`` lists peers that must add ``user_id`` to their friends, ``losses``
    peers that must drop it. A peer never appears in both.
    """

    user_id: str
    at: datetime
    friends: frozenset[str]
    gains: tuple[str, ...]
    losses: tuple[str, ...]

    @property
    def write_count(self) -> int:
        return 1 + len(self.gains) + len(self.losses)


def plan_transition(
    user_id: str,
    at: datetime,
    *,
    old_group: Iterable[User],
    new_group: Iterable[User],
) -> FriendshipPlan:
    new_ids = sorted({member.id for member in new_group} - {user_id})
    new_id_set = frozenset(new_ids)
    # A peer read in both groups only ever holds the new number; treat it as a gain.
    old_ids = sorted({member.id for member in old_group} - {user_id} - new_id_set)
    return FriendshipPlan(
        user_id=user_id,
        at=at,
        friends=new_id_set,
        gains=tuple(new_ids),
        losses=tuple(old_ids),
    )
