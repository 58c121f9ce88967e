"""JSON-lines wire format for archived change notifications."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, ClassVar

from pydantic import AwareDatetime, BaseModel, ConfigDict, Field

from friendsync.domain.model import ChangeNotification, UserSnapshot

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

log = logging.getLogger(__name__)


class NotificationBaseModel(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)
    _logged_extra_keys: ClassVar[set[str]] = set()

    def model_post_init(self, _context: object, /) -> None:
        extras = self.__pydantic_extra__
        if not extras:
            return
        new_keys = set(extras).difference(self._logged_extra_keys)
        if not new_keys:
            return
        self._logged_extra_keys.update(new_keys)
        log.warning(
            "Notification %s: unmodeled keys: %s",
            type(self).__name__,
            ", ".join(sorted(new_keys)),
        )


class UserStatePayload(NotificationBaseModel):
    number: int | None = None


class ChangeNotificationPayload(NotificationBaseModel):
    record_id: str = Field(alias="recordId")
    previous_state: UserStatePayload | None = Field(default=None, alias="previousState")
    new_state: UserStatePayload = Field(alias="newState")
    event_timestamp: AwareDatetime = Field(alias="eventTimestamp")
    event_id: str = Field(alias="eventId")

    def to_domain(self) -> ChangeNotification:
        before = (
            None
            if self.previous_state is None
            else UserSnapshot(number=self.previous_state.number)
        )
        return ChangeNotification(
            record_id=self.record_id,
            before=before,
            after=UserSnapshot(number=self.new_state.number),
            timestamp=self.event_timestamp,
            event_id=self.event_id,
        )

    @classmethod
    def from_domain(cls, notification: ChangeNotification) -> ChangeNotificationPayload:
        previous = (
            None
            if notification.before is None
            else UserStatePayload(number=notification.before.number)
        )
        return cls(
            record_id=notification.record_id,
            previous_state=previous,
            new_state=UserStatePayload(number=notification.after.number),
            event_timestamp=notification.timestamp,
            event_id=notification.event_id,
        )


def encode_notification(notification: ChangeNotification) -> str:
    payload = ChangeNotificationPayload.from_domain(notification)
    return payload.model_dump_json(by_alias=True)


def decode_notification(line: str) -> ChangeNotification:
    return ChangeNotificationPayload.model_validate_json(line).to_domain()


def decode_notifications(lines: Iterable[str]) -> Iterator[ChangeNotification]:
    """Decode every non-blank line; malformed lines raise ``pydantic.ValidationError``."""
    for line in lines:
        if line.strip():
            yield decode_notification(line)


__all__ = [
    "ChangeNotificationPayload",
    "UserStatePayload",
    "decode_notification",
    "decode_notifications",
    "encode_notification",
]
