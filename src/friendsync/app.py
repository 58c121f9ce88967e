"""Application orchestration entry points."""

from __future__ import annotations

from collections import Counter
from collections.abc import Callable
from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from friendsync.config import ReconcileConfig, get_reconcile_config
from friendsync.domain.friendship import (
    FriendshipReconciler,
    ReconcileOutcome,
    ReconcileResult,
)
from friendsync.domain.model import User
from friendsync.domain.ports.persistence import UserNotFoundError
from friendsync.domain.ports.unit_of_work import FriendshipUnitOfWork
from friendsync.domain.transactions import RetryPolicy

if TYPE_CHECKING:
    from collections.abc import Iterable

    from friendsync.domain.model import ChangeNotification

UnitOfWorkFactory = Callable[[], FriendshipUnitOfWork]


log = getLogger(__name__)


@dataclass(slots=True)
class ReplaySummary:
    """Outcome of delivering a batch of archived notifications."""

    delivered: int
    applied: int
    stale: int
    unchanged: int


def build_reconciler(
    unit_of_work_factory: UnitOfWorkFactory,
    *,
    config: ReconcileConfig | None = None,
) -> FriendshipReconciler:
    effective = config or get_reconcile_config()
    policy = RetryPolicy(
        max_attempts=effective.max_transaction_attempts,
        backoff_seconds=effective.retry_backoff_seconds,
    )
    return FriendshipReconciler(unit_of_work_factory=unit_of_work_factory, retry_policy=policy)


def on_user_changed(
    notification: ChangeNotification,
    *,
    reconciler: FriendshipReconciler,
) -> ReconcileResult:
    """Trigger entry point invoked once per delivered change notification.

    Store failures and exhausted retries propagate so the delivery mechanism
    can report the invocation as failed and redeliver it.
    """

    result = reconciler.reconcile(notification)
    if result.outcome is ReconcileOutcome.UNCHANGED:
        log.debug("No change in number (event %s)", notification.event_id)
    return result


def deliver(
    notifications: Iterable[ChangeNotification],
    *,
    reconciler: FriendshipReconciler,
) -> list[ReconcileResult]:
    return [on_user_changed(item, reconciler=reconciler) for item in notifications]


def get_user(user_id: str, *, unit_of_work_factory: UnitOfWorkFactory) -> User:
    with unit_of_work_factory() as uow:
        user = uow.repositories.users.get(user_id)
    if user is None:
        raise UserNotFoundError(user_id)
    return user


def create_user(
    *,
    unit_of_work_factory: UnitOfWorkFactory,
    reconciler: FriendshipReconciler,
    number: int | None = None,
    user_id: str | None = None,
) -> User:
    """Create a user and deliver the resulting creation notification."""

    user = User(number=number) if user_id is None else User(id=user_id, number=number)
    with unit_of_work_factory() as uow:
        uow.repositories.users.add(user)
        uow.commit()
    deliver(uow.collect_notifications(), reconciler=reconciler)
    return get_user(user.id, unit_of_work_factory=unit_of_work_factory)


def update_user_number(
    user_id: str,
    number: int | None,
    *,
    unit_of_work_factory: UnitOfWorkFactory,
    reconciler: FriendshipReconciler,
) -> User:
    """Change a user's number the way an external writer would, then deliver the update."""

    with unit_of_work_factory() as uow:
        user = uow.repositories.users.get(user_id)
        if user is None:
            raise UserNotFoundError(user_id)
        user.number = number
        uow.commit()
    deliver(uow.collect_notifications(), reconciler=reconciler)
    return get_user(user_id, unit_of_work_factory=unit_of_work_factory)


def replay_notifications(
    notifications: Iterable[ChangeNotification],
    *,
    reconciler: FriendshipReconciler,
) -> ReplaySummary:
    """Deliver archived notifications in the given order."""

    outcomes = Counter(result.outcome for result in deliver(notifications, reconciler=reconciler))
    summary = ReplaySummary(
        delivered=outcomes.total(),
        applied=outcomes[ReconcileOutcome.APPLIED],
        stale=outcomes[ReconcileOutcome.STALE],
        unchanged=outcomes[ReconcileOutcome.UNCHANGED],
    )
    log.info(
        "Replay finished: delivered=%s, applied=%s, stale=%s, unchanged=%s",
        summary.delivered,
        summary.applied,
        summary.stale,
        summary.unchanged,
    )
    return summary
