"""Optimistic transactions with explicit retry on conflict.

The store detects conflicts at commit time (or on the first write that hits a
row changed under us) and reports them as ``TransactionConflictError``. The
combinator in this module re-runs the whole transaction body from a fresh unit
of work, so bodies must derive every write from what they read inside that unit
of work.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable

    from friendsync.domain.ports.unit_of_work import FriendshipUnitOfWork

log = logging.getLogger(__name__)


class TransactionConflictError(RuntimeError):
    """Raised by a unit of work when a concurrent commit invalidated its reads."""


class RetryExhaustedError(RuntimeError):
    """Raised when a transaction keeps conflicting past the retry policy."""

    def __init__(self, attempts: int) -> None:
        super().__init__(f"Transaction still conflicting after {attempts} attempt(s)")
        self.attempts = attempts


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    max_attempts: int = 5
    backoff_seconds: float = 0.0

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.backoff_seconds < 0:
            raise ValueError("backoff_seconds must be non-negative")

    def delay_for(self, attempt: int) -> float:
        """Linear backoff before retrying after ``attempt`` failed."""
        return self.backoff_seconds * attempt


@dataclass(frozen=True, slots=True)
class TransactionResult[T]:
    value: T
    attempts: int


def run_in_transaction[T](
    work: Callable[[FriendshipUnitOfWork], T],
    *,
    unit_of_work_factory: Callable[[], FriendshipUnitOfWork],
    policy: RetryPolicy | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> TransactionResult[T]:
    """Run ``work`` inside a unit of work and commit, retrying on conflicts.

    Anything other than ``TransactionConflictError`` propagates unchanged; the
    unit of work rolls back on the way out so nothing is partially applied.
    """

    effective_policy = policy or RetryPolicy()
    attempt = 0
    while True:
        attempt += 1
        try:
            with unit_of_work_factory() as uow:
                value = work(uow)
                uow.commit()
        except TransactionConflictError as exc:
            if attempt >= effective_policy.max_attempts:
                raise RetryExhaustedError(attempt) from exc
            log.warning(
                "Transaction conflict on attempt %s/%s: %s",
                attempt,
                effective_policy.max_attempts,
                exc,
            )
            delay = effective_policy.delay_for(attempt)
            if delay:
                sleep(delay)
            continue
        return TransactionResult(value=value, attempts=attempt)
