"""Change notifications emitted for writes to user records."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from uuid import uuid4


def _new_event_id() -> str:
    return uuid4().hex


@dataclass(frozen=True, slots=True)
class UserSnapshot:
    """The watched part of a user record at one point in time."""

    number: int | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class ChangeNotification:
    """A single write to a user record, delivered at least once.

    ``before`` is ``None`` for the write that created the record. ``event_id``
    only correlates log lines; it plays no part in deciding what to apply.
    """

    record_id: str
    before: UserSnapshot | None
    after: UserSnapshot
    timestamp: datetime
    event_id: str = field(default_factory=_new_event_id)

    def __post_init__(self) -> None:
        if self.timestamp.tzinfo is None:
            raise ValueError("Notification timestamps must include timezone information")
        object.__setattr__(self, "timestamp", self.timestamp.astimezone(UTC))

    @property
    def is_creation(self) -> bool:
        return self.before is None

    @property
    def old_number(self) -> int | None:
        return None if self.before is None else self.before.number

    @property
    def new_number(self) -> int | None:
        return self.after.number
