"""Reconcile the friendship index after a user's number changed.

Every reconciliation runs as one optimistic transaction:

1. re-read the user and drop the notification if it is stale,
2. load the old and the new value group in a single query,
3. set the user's friends to the new group, remove the user from the old
   group's friend sets and add it to the new group's,
4. commit, or start over from step 1 when the store reports a conflict.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING

from friendsync.domain.friendship.plan import FriendshipPlan, plan_transition
from friendsync.domain.friendship.staleness import Staleness, check_staleness, number_changed
from friendsync.domain.transactions import RetryPolicy, run_in_transaction

if TYPE_CHECKING:
    from collections.abc import Callable

    from friendsync.domain.model import ChangeNotification
    from friendsync.domain.ports.unit_of_work import FriendshipUnitOfWork

log = logging.getLogger(__name__)


class ReconcileOutcome(StrEnum):
    APPLIED = "applied"
    STALE = "stale"
    UNCHANGED = "unchanged"


@dataclass(frozen=True, slots=True)
class ReconcileResult:
    outcome: ReconcileOutcome
    attempts: int = 0
    staleness: Staleness | None = None
    plan: FriendshipPlan | None = None


@dataclass(slots=True)
class FriendshipReconciler:
    """Apply number transitions to the friendship index."""

    unit_of_work_factory: Callable[[], FriendshipUnitOfWork]
    retry_policy: RetryPolicy = field(default_factory=RetryPolicy)

    def reconcile(self, notification: ChangeNotification) -> ReconcileResult:
        if not number_changed(notification):
            return ReconcileResult(outcome=ReconcileOutcome.UNCHANGED)

        log.info(
            "User %s changed number from %s to %s (event %s)",
            notification.record_id,
            notification.old_number,
            notification.new_number,
            notification.event_id,
        )
        result = run_in_transaction(
            lambda uow: self._reconcile_in(uow, notification),
            unit_of_work_factory=self.unit_of_work_factory,
            policy=self.retry_policy,
        )
        plan_or_reason = result.value
        if isinstance(plan_or_reason, Staleness):
            log.info(
                "Skip processing obsolete event %s for user %s (%s)",
                notification.event_id,
                notification.record_id,
                plan_or_reason,
            )
            return ReconcileResult(
                outcome=ReconcileOutcome.STALE,
                attempts=result.attempts,
                staleness=plan_or_reason,
            )

        log.info(
            "User %s joined %s friend(s) and left %s (event %s, %s attempt(s))",
            notification.record_id,
            len(plan_or_reason.gains),
            len(plan_or_reason.losses),
            notification.event_id,
            result.attempts,
        )
        return ReconcileResult(
            outcome=ReconcileOutcome.APPLIED,
            attempts=result.attempts,
            plan=plan_or_reason,
        )

    def _reconcile_in(
        self, uow: FriendshipUnitOfWork, notification: ChangeNotification
    ) -> FriendshipPlan | Staleness:
        users = uow.repositories.users
        staleness = check_staleness(users.get(notification.record_id), notification)
        if staleness is not Staleness.FRESH:
            return staleness

        old_number, new_number = notification.old_number, notification.new_number
        groups = users.members_of(*(n for n in (old_number, new_number) if n is not None))
        old_group = () if old_number is None else groups.get(old_number, ())
        new_group = () if new_number is None else groups.get(new_number, ())

        plan = plan_transition(
            notification.record_id,
            notification.timestamp,
            old_group=old_group,
            new_group=new_group,
        )
        users.record_transition(plan.user_id, friends=plan.friends, at=plan.at)
        for peer_id in plan.losses:
            users.remove_friend(peer_id, plan.user_id)
        for peer_id in plan.gains:
            users.add_friend(peer_id, plan.user_id)
        return plan
