from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from sqlalchemy import select

from friendsync.adapters.sqlalchemy import user_table
from friendsync.app import create_user, deliver, get_user, update_user_number
from friendsync.domain.friendship import ReconcileOutcome, Staleness
from friendsync.domain.model import User
from friendsync.domain.ports.persistence import UserNotFoundError

if TYPE_CHECKING:
    from collections.abc import Callable

    from friendsync.adapters.sqlalchemy import SqlAlchemyFriendshipUnitOfWork
    from friendsync.domain.friendship import FriendshipReconciler
    from friendsync.domain.model import ChangeNotification

    UowFactory = Callable[[], SqlAlchemyFriendshipUnitOfWork]

pytestmark = pytest.mark.integration


def _friends(user_id: str, factory: UowFactory) -> frozenset[str]:
    return get_user(user_id, unit_of_work_factory=factory).friends


def _versions(factory: UowFactory) -> dict[str, int]:
    with factory() as uow:
        rows = uow.session.execute(select(user_table.c.id, user_table.c.version)).all()
    return {row.id: row.version for row in rows}


def _set_number(
    user_id: str, number: int, factory: UowFactory
) -> tuple[ChangeNotification, ...]:
    with factory() as uow:
        user = uow.repositories.users.get(user_id)
        assert user is not None
        user.number = number
        uow.commit()
    return uow.collect_notifications()


def test_users_created_with_same_number_become_friends(
    sqlite_unit_of_work: UowFactory,
    sqlite_reconciler: FriendshipReconciler,
) -> None:
    kwargs = {"unit_of_work_factory": sqlite_unit_of_work, "reconciler": sqlite_reconciler}
    create_user(user_id="a", number=1, **kwargs)
    create_user(user_id="b", number=1, **kwargs)
    loner = create_user(user_id="c", **kwargs)

    assert _friends("a", sqlite_unit_of_work) == frozenset({"b"})
    assert _friends("b", sqlite_unit_of_work) == frozenset({"a"})
    assert loner.friends == frozenset()


def test_end_to_end_move_and_redelivery(
    sqlite_unit_of_work: UowFactory,
    sqlite_reconciler: FriendshipReconciler,
) -> None:
    kwargs = {"unit_of_work_factory": sqlite_unit_of_work, "reconciler": sqlite_reconciler}
    create_user(user_id="x", number=5, **kwargs)
    create_user(user_id="y", number=5, **kwargs)
    create_user(user_id="z", number=7, **kwargs)

    notifications = _set_number("x", 7, sqlite_unit_of_work)
    (applied,) = deliver(notifications, reconciler=sqlite_reconciler)

    assert applied.outcome is ReconcileOutcome.APPLIED
    assert _friends("x", sqlite_unit_of_work) == frozenset({"z"})
    assert _friends("z", sqlite_unit_of_work) == frozenset({"x"})
    assert _friends("y", sqlite_unit_of_work) == frozenset()

    versions = _versions(sqlite_unit_of_work)
    (redelivered,) = deliver(notifications, reconciler=sqlite_reconciler)

    assert redelivered.outcome is ReconcileOutcome.STALE
    assert redelivered.staleness is Staleness.ALREADY_APPLIED
    assert _versions(sqlite_unit_of_work) == versions


def test_out_of_order_delivery_keeps_latest_state(
    sqlite_unit_of_work: UowFactory,
    sqlite_reconciler: FriendshipReconciler,
) -> None:
    kwargs = {"unit_of_work_factory": sqlite_unit_of_work, "reconciler": sqlite_reconciler}
    create_user(user_id="u", **kwargs)
    create_user(user_id="p", number=3, **kwargs)

    (first,) = _set_number("u", 2, sqlite_unit_of_work)
    (second,) = _set_number("u", 3, sqlite_unit_of_work)
    assert second.timestamp > first.timestamp

    (late_applied,) = deliver([second], reconciler=sqlite_reconciler)
    versions = _versions(sqlite_unit_of_work)
    (dropped,) = deliver([first], reconciler=sqlite_reconciler)

    assert late_applied.outcome is ReconcileOutcome.APPLIED
    assert dropped.outcome is ReconcileOutcome.STALE
    assert dropped.staleness is Staleness.SUPERSEDED
    assert _versions(sqlite_unit_of_work) == versions
    assert _friends("u", sqlite_unit_of_work) == frozenset({"p"})
    assert _friends("p", sqlite_unit_of_work) == frozenset({"u"})


@pytest.mark.parametrize("move_first", [True, False])
def test_concurrent_move_and_creation_converge(
    sqlite_unit_of_work: UowFactory,
    sqlite_reconciler: FriendshipReconciler,
    move_first: bool,
) -> None:
    kwargs = {"unit_of_work_factory": sqlite_unit_of_work, "reconciler": sqlite_reconciler}
    create_user(user_id="a", number=1, **kwargs)
    create_user(user_id="b", number=1, **kwargs)

    # both writes commit before either notification is processed
    move_a = _set_number("a", 2, sqlite_unit_of_work)
    with sqlite_unit_of_work() as uow:
        uow.repositories.users.add(User(id="c", number=2))
        uow.commit()
    create_c = uow.collect_notifications()

    ordered = (*move_a, *create_c) if move_first else (*create_c, *move_a)
    results = deliver(ordered, reconciler=sqlite_reconciler)

    assert [result.outcome for result in results] == [ReconcileOutcome.APPLIED] * 2
    assert _friends("a", sqlite_unit_of_work) == frozenset({"c"})
    assert _friends("c", sqlite_unit_of_work) == frozenset({"a"})
    assert _friends("b", sqlite_unit_of_work) == frozenset()


def test_symmetry_holds_after_many_moves(
    sqlite_unit_of_work: UowFactory,
    sqlite_reconciler: FriendshipReconciler,
) -> None:
    kwargs = {"unit_of_work_factory": sqlite_unit_of_work, "reconciler": sqlite_reconciler}
    for index, number in enumerate([1, 1, 2, 2, 3]):
        create_user(user_id=f"u{index}", number=number, **kwargs)
    for user_id, number in [("u0", 2), ("u2", 3), ("u4", 1), ("u1", 3), ("u0", 1)]:
        update_user_number(user_id, number, **kwargs)

    users = {
        user_id: get_user(user_id, unit_of_work_factory=sqlite_unit_of_work)
        for user_id in (f"u{index}" for index in range(5))
    }
    for a in users.values():
        assert a.id not in a.friends
        for b in users.values():
            if a.id == b.id:
                continue
            same_number = a.number == b.number
            assert same_number == (b.id in a.friends)
            assert same_number == (a.id in b.friends)


def test_updating_unknown_user_raises(
    sqlite_unit_of_work: UowFactory,
    sqlite_reconciler: FriendshipReconciler,
) -> None:
    with pytest.raises(UserNotFoundError):
        update_user_number(
            "ghost",
            1,
            unit_of_work_factory=sqlite_unit_of_work,
            reconciler=sqlite_reconciler,
        )
