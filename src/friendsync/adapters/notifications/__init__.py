"""Change notification capture and wire format."""

from __future__ import annotations

from .capture import ChangeCapture
from .schema import (
    ChangeNotificationPayload,
    decode_notification,
    decode_notifications,
    encode_notification,
)

__all__ = [
    "ChangeCapture",
    "ChangeNotificationPayload",
    "decode_notification",
    "decode_notifications",
    "encode_notification",
]
