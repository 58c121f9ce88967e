"""Decide whether a change notification still describes the latest transition."""

from __future__ import annotations

from enum import StrEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from friendsync.domain.model import ChangeNotification, User


class Staleness(StrEnum):
    FRESH = "fresh"
    MISSING = "missing"
    SUPERSEDED = "superseded"
    ALREADY_APPLIED = "already_applied"


def number_changed(notification: ChangeNotification) -> bool:
    """Cheap trigger-level check run before any transaction is opened.

    Writes that left ``number`` untouched are no-ops. A creation counts as a
    change only when the record was created with a number.
    """

    if notification.is_creation:
        return notification.new_number is not None
    return notification.old_number != notification.new_number


def check_staleness(current: User | None, notification: ChangeNotification) -> Staleness:
    """Authoritative check against the record as read inside the transaction.

    A notification is already applied when the record's last accepted
    transition is at or after the notification's timestamp, so an exact
    redelivery writes nothing.
    """

    if current is None:
        return Staleness.MISSING
    if current.number != notification.new_number:
        return Staleness.SUPERSEDED
    if current.last_number_update >= notification.timestamp:
        return Staleness.ALREADY_APPLIED
    return Staleness.FRESH
