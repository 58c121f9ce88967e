"""Repository implementations backed by SQLAlchemy sessions."""

from __future__ import annotations

from collections import defaultdict
from typing import TYPE_CHECKING, cast

from sqlalchemy import select

from friendsync.adapters.sqlalchemy.mappings import user_table
from friendsync.domain.model import User
from friendsync.domain.ports.persistence import UserNotFoundError

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence
    from datetime import datetime

    from sqlalchemy.orm import Session


class SqlAlchemyUserRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, entity: User) -> None:
        self.session.add(entity)

    def get(self, user_id: str) -> User | None:
        return self.session.get(User, user_id)

    def members_of(self, *numbers: int) -> Mapping[int, Sequence[User]]:
        if not numbers:
            return {}
        stmt = (
            select(User)
            .where(user_table.c.number.in_(sorted(set(numbers))))
            .order_by(user_table.c.id)
        )
        groups: defaultdict[int, list[User]] = defaultdict(list)
        for user in self.session.scalars(stmt):
            if user.number is not None:
                groups[user.number].append(user)
        return dict(groups)

    def record_transition(self, user_id: str, *, friends: frozenset[str], at: datetime) -> None:
        self._require(user_id).accept_transition(friends=friends, at=at)

    def add_friend(self, user_id: str, friend_id: str) -> None:
        self._require(user_id).befriend(friend_id)

    def remove_friend(self, user_id: str, friend_id: str) -> None:
        self._require(user_id).unfriend(friend_id)

    def _require(self, user_id: str) -> User:
        user = self.get(user_id)
        if user is None:
            raise UserNotFoundError(user_id)
        return user


if TYPE_CHECKING:
    from friendsync.domain.ports.persistence import UserRepository

    _session_stub = cast("Session", object())
    _repo_check: UserRepository = SqlAlchemyUserRepository(_session_stub)
