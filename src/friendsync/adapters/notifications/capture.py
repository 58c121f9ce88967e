"""Turn flushed writes to user records into change notifications.

This plays the part of a document-store update trigger: every flush that
inserts a user with a number, or changes the ``number`` of an existing user,
yields one ``ChangeNotification``. Notifications are held back until the
session commits and discarded if it rolls back.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy import event, inspect

from friendsync.domain.model import ChangeNotification, User, UserSnapshot

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from sqlalchemy.orm import Session, UOWTransaction

log = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class ChangeCapture:
    def __init__(self, *, clock: Callable[[], datetime] = _utcnow) -> None:
        self._clock = clock
        self._pending: list[ChangeNotification] = []
        self._committed: list[ChangeNotification] = []

    def attach(self, session: Session) -> None:
        event.listen(session, "before_flush", self._before_flush)
        event.listen(session, "after_commit", self._after_commit)
        event.listen(session, "after_rollback", self._after_rollback)

    def detach(self, session: Session) -> None:
        event.remove(session, "before_flush", self._before_flush)
        event.remove(session, "after_commit", self._after_commit)
        event.remove(session, "after_rollback", self._after_rollback)

    def drain(self) -> tuple[ChangeNotification, ...]:
        """Return and forget the notifications of committed transactions."""
        committed = tuple(self._committed)
        self._committed.clear()
        return committed

    def _before_flush(
        self,
        session: Session,
        flush_context: UOWTransaction,
        instances: Iterable[object] | None,
    ) -> None:
        _ = flush_context, instances
        timestamp = self._clock()
        for obj in session.new:
            if isinstance(obj, User) and obj.number is not None:
                self._record(obj.id, None, obj.number, timestamp)
        for obj in session.dirty:
            if not isinstance(obj, User):
                continue
            history = inspect(obj).attrs.number.history
            if not history.has_changes():
                continue
            before = history.deleted[0] if history.deleted else None
            if before != obj.number:
                self._record(obj.id, UserSnapshot(number=before), obj.number, timestamp)

    def _record(
        self,
        record_id: str,
        before: UserSnapshot | None,
        number: int | None,
        timestamp: datetime,
    ) -> None:
        notification = ChangeNotification(
            record_id=record_id,
            before=before,
            after=UserSnapshot(number=number),
            timestamp=timestamp,
        )
        log.debug("Captured change %s for user %s", notification.event_id, record_id)
        self._pending.append(notification)

    def _after_commit(self, session: Session) -> None:
        _ = session
        self._committed.extend(self._pending)
        self._pending.clear()

    def _after_rollback(self, session: Session) -> None:
        _ = session
        self._pending.clear()
