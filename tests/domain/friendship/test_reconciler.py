from __future__ import annotations

import pytest

from friendsync.domain.friendship import FriendshipReconciler, ReconcileOutcome, Staleness
from friendsync.domain.model import User
from friendsync.domain.transactions import RetryExhaustedError, RetryPolicy
from tests.helpers.users import FakeUnitOfWork, FakeUserStore, at, creation, number_change


def _reconciler(store: FakeUserStore, *, attempts: int = 5) -> FriendshipReconciler:
    return FriendshipReconciler(
        unit_of_work_factory=lambda: FakeUnitOfWork(store),
        retry_policy=RetryPolicy(max_attempts=attempts),
    )


def _friends_store() -> FakeUserStore:
    store = FakeUserStore()
    store.seed(
        User(id="x", number=7, friends=frozenset({"y"})),
        User(id="y", number=5, friends=frozenset({"x"})),
        User(id="z", number=7),
    )
    return store


def test_transition_moves_user_between_friend_groups() -> None:
    store = _friends_store()

    result = _reconciler(store).reconcile(number_change("x", 5, 7, seconds=1))

    assert result.outcome is ReconcileOutcome.APPLIED
    assert result.attempts == 1
    assert store.friends_of("x") == frozenset({"z"})
    assert store.friends_of("z") == frozenset({"x"})
    assert store.friends_of("y") == frozenset()
    assert store.users["x"].last_number_update == at(1)


def test_duplicate_delivery_writes_nothing() -> None:
    store = _friends_store()
    reconciler = _reconciler(store)
    notification = number_change("x", 5, 7, seconds=1)
    reconciler.reconcile(notification)
    writes_before = list(store.writes)

    result = reconciler.reconcile(notification)

    assert result.outcome is ReconcileOutcome.STALE
    assert result.staleness is Staleness.ALREADY_APPLIED
    assert store.writes == writes_before


def test_unchanged_number_does_not_open_a_transaction() -> None:
    store = _friends_store()

    result = _reconciler(store).reconcile(number_change("x", 7, 7, seconds=1))

    assert result.outcome is ReconcileOutcome.UNCHANGED
    assert result.attempts == 0
    assert store.commits == 0


def test_earlier_transition_delivered_late_is_dropped() -> None:
    store = FakeUserStore()
    store.seed(User(id="u", number=2), User(id="p", number=2))
    reconciler = _reconciler(store)
    first = number_change("u", 1, 2, seconds=1)
    second = number_change("u", 2, 1, seconds=2)
    third = number_change("u", 1, 2, seconds=3)

    assert reconciler.reconcile(third).outcome is ReconcileOutcome.APPLIED
    late = reconciler.reconcile(first)
    superseded = reconciler.reconcile(second)

    assert late.staleness is Staleness.ALREADY_APPLIED
    assert superseded.staleness is Staleness.SUPERSEDED
    assert store.users["u"].last_number_update == at(3)
    assert store.friends_of("u") == frozenset({"p"})
    assert store.friends_of("p") == frozenset({"u"})


def test_conflicting_commit_is_retried_from_scratch() -> None:
    store = _friends_store()
    store.pending_conflicts = 2

    result = _reconciler(store).reconcile(number_change("x", 5, 7, seconds=1))

    assert result.outcome is ReconcileOutcome.APPLIED
    assert result.attempts == 3
    assert store.commits == 1
    assert store.friends_of("z") == frozenset({"x"})


def test_conflicts_past_policy_propagate() -> None:
    store = _friends_store()
    store.pending_conflicts = 10

    with pytest.raises(RetryExhaustedError) as exc:
        _reconciler(store, attempts=3).reconcile(number_change("x", 5, 7, seconds=1))

    assert exc.value.attempts == 3
    assert store.commits == 0
    assert store.friends_of("y") == frozenset({"x"})


def test_creation_joins_existing_group() -> None:
    store = FakeUserStore()
    store.seed(User(id="a", number=2), User(id="c", number=2))

    result = _reconciler(store).reconcile(creation("c", 2, seconds=1))

    assert result.outcome is ReconcileOutcome.APPLIED
    assert result.plan is not None
    assert result.plan.losses == ()
    assert store.friends_of("c") == frozenset({"a"})
    assert store.friends_of("a") == frozenset({"c"})


def test_clearing_number_leaves_every_group() -> None:
    store = FakeUserStore()
    store.seed(
        User(id="a", friends=frozenset({"b"})),
        User(id="b", number=1, friends=frozenset({"a"})),
    )

    _reconciler(store).reconcile(number_change("a", 1, None, seconds=1))

    assert store.friends_of("a") == frozenset()
    assert store.friends_of("b") == frozenset()


def test_notification_for_unknown_user_is_stale() -> None:
    store = FakeUserStore()

    result = _reconciler(store).reconcile(number_change("ghost", 1, 2, seconds=1))

    assert result.staleness is Staleness.MISSING
    assert store.writes == []


@pytest.mark.parametrize("a_first", [True, False])
def test_concurrent_transitions_into_one_group_converge(a_first: bool) -> None:
    store = FakeUserStore()
    store.seed(
        User(id="a", number=2, friends=frozenset({"b"})),
        User(id="b", number=1, friends=frozenset({"a"})),
        User(id="c", number=2),
    )
    reconciler = _reconciler(store)
    move_a = number_change("a", 1, 2, seconds=1)
    create_c = creation("c", 2, seconds=1)

    for notification in (move_a, create_c) if a_first else (create_c, move_a):
        reconciler.reconcile(notification)

    assert store.friends_of("a") == frozenset({"c"})
    assert store.friends_of("c") == frozenset({"a"})
    assert store.friends_of("b") == frozenset()
