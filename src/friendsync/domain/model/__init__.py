"""Public domain model surface."""

from __future__ import annotations

from friendsync.domain.model.notifications import ChangeNotification, UserSnapshot
from friendsync.domain.model.user import NEVER_UPDATED, User

__all__ = [
    "NEVER_UPDATED",
    "ChangeNotification",
    "User",
    "UserSnapshot",
]
