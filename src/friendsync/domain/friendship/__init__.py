"""Friendship index maintenance."""

from __future__ import annotations

from .plan import FriendshipPlan, plan_transition
from .reconciler import FriendshipReconciler, ReconcileOutcome, ReconcileResult
from .staleness import Staleness, check_staleness, number_changed

__all__ = [
    "FriendshipPlan",
    "FriendshipReconciler",
    "ReconcileOutcome",
    "ReconcileResult",
    "Staleness",
    "check_staleness",
    "number_changed",
    "plan_transition",
]
