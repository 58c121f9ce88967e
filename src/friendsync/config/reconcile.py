"""Reconciliation defaults for the friendship trigger."""

from __future__ import annotations

from dataclasses import dataclass

from .env import env_float, env_int
from .errors import InvalidConfigurationError

DEFAULT_MAX_TRANSACTION_ATTEMPTS = 5
DEFAULT_RETRY_BACKOFF_SECONDS = 0.0

ATTEMPTS_VAR = "FRIENDSYNC_MAX_TRANSACTION_ATTEMPTS"
BACKOFF_VAR = "FRIENDSYNC_RETRY_BACKOFF_SECONDS"


@dataclass(frozen=True, slots=True)
class ReconcileConfig:
    max_transaction_attempts: int = DEFAULT_MAX_TRANSACTION_ATTEMPTS
    retry_backoff_seconds: float = DEFAULT_RETRY_BACKOFF_SECONDS


def get_reconcile_config() -> ReconcileConfig:
    attempts = env_int(ATTEMPTS_VAR, DEFAULT_MAX_TRANSACTION_ATTEMPTS)
    backoff = env_float(BACKOFF_VAR, DEFAULT_RETRY_BACKOFF_SECONDS)
    if attempts < 1:
        raise InvalidConfigurationError(ATTEMPTS_VAR, str(attempts), "must be at least 1")
    if backoff < 0:
        raise InvalidConfigurationError(BACKOFF_VAR, str(backoff), "must be non-negative")
    return ReconcileConfig(max_transaction_attempts=attempts, retry_backoff_seconds=backoff)
