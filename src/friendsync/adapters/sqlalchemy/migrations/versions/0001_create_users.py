"""Create the users table.

Revision ID: 0001_create_users
Revises:
Create Date: 2026-10-19 00:00:00
"""

from __future__ import annotations

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

revision: str = "0001_create_users"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.String(length=64), nullable=False),
        sa.Column("number", sa.Integer(), nullable=True),
        sa.Column("number_last_updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("friends", sa.Text(), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_users")),
    )
    op.create_index(op.f("ix_users_number"), "users", ["number"], unique=False)


def downgrade() -> None:
    op.drop_index(op.f("ix_users_number"), table_name="users")
    op.drop_table("users")
