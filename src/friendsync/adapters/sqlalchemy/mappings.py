"""SQLAlchemy mapping metadata for the friendsync domain model."""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from functools import cache
from typing import Any, cast

from sqlalchemy import (
    Column,
    DateTime,
    Dialect,
    Integer,
    String,
    Table,
    Text,
    TypeDecorator,
    orm,
)
from sqlalchemy.orm import column_property, configure_mappers

from friendsync.domain.model import User

log = logging.getLogger(__name__)


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


class FriendIdSetType(TypeDecorator[frozenset[str]]):
    """Store a set of user ids as a sorted JSON array.

    Rows that do not decode to an array of strings raise ``ValueError``.
    """

    impl = Text
    cache_ok = True

    def process_bind_param(self, value: frozenset[str] | None, dialect: Dialect) -> str | None:
        _ = dialect
        if value is None:
            return None
        return json.dumps(sorted(value))

    def process_result_value(self, value: str | None, dialect: Dialect) -> frozenset[str]:
        _ = dialect
        if value is None:
            return frozenset()
        loaded = json.loads(value)
        if not isinstance(loaded, list):
            raise ValueError(f"Friend ids must be stored as a JSON array, got {value!r}")
        items = cast(list[Any], loaded)
        if not all(isinstance(item, str) for item in items):
            raise ValueError(f"Friend ids must be strings, got {value!r}")
        return frozenset(cast(list[str], items))


mapper_registry = orm.registry()
mapper_registry.metadata.naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_label)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_label)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

user_table = Table(
    "users",
    mapper_registry.metadata,
    Column("id", String(64), primary_key=True),
    Column("number", Integer, nullable=True, index=True),
    Column("number_last_updated_at", UTCDateTime(), nullable=True),
    Column("friends", FriendIdSetType(), nullable=False),
    # Bumped on every UPDATE; a mismatch means a concurrent transaction won.
    Column("version", Integer, nullable=False),
)


@cache
def start_mappers() -> orm.registry:
    """Configure SQLAlchemy mappers for the domain model."""

    log.info("Starting SQLAlchemy mappers")

    mapper_registry.map_imperatively(
        User,
        user_table,
        properties={
            # old values are needed to emit change notifications
            "number": column_property(user_table.c.number, active_history=True),
        },
        version_id_col=user_table.c.version,
    )

    configure_mappers()
    return mapper_registry
