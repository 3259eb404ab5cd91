"""Add recurring request schedules.

Revision ID: 003
Revises: 002
Create Date: 2023-12-19

Requests spawned by a schedule point back at it through
``requests.created_by_schedule``; the newest such request decides when the
schedule is due again.
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

revision = "003"
down_revision = "002"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "request_schedules",
        sa.Column("id", sa.VARCHAR(), nullable=False),
        sa.Column("created_by", sa.VARCHAR(), nullable=False),
        sa.Column("created_at", sa.DATETIME(), nullable=False),
        sa.Column("disabled_at", sa.DATETIME(), nullable=True),
        sa.Column("channel_id", sa.VARCHAR(), nullable=False),
        sa.Column("seconds_between_requests", sa.INTEGER(), nullable=False),
        sa.Column("title", sa.VARCHAR(), nullable=False),
        sa.Column("tasks", sa.VARCHAR(), nullable=False),
        sa.Column("thumbnail_url", sa.VARCHAR(), nullable=True),
        sa.ForeignKeyConstraint(["created_by"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_request_schedules_created_by", "request_schedules", ["created_by"])
    op.create_index("ix_request_schedules_disabled_at", "request_schedules", ["disabled_at"])

    with op.batch_alter_table("requests") as batch_op:
        batch_op.add_column(sa.Column("created_by_schedule", sa.VARCHAR(), nullable=True))
        batch_op.create_index("ix_requests_created_by_schedule", ["created_by_schedule"])
        batch_op.create_foreign_key(
            "fk_requests_created_by_schedule",
            "request_schedules",
            ["created_by_schedule"],
            ["id"],
        )


def downgrade() -> None:
    with op.batch_alter_table("requests") as batch_op:
        batch_op.drop_constraint("fk_requests_created_by_schedule", type_="foreignkey")
        batch_op.drop_index("ix_requests_created_by_schedule")
        batch_op.drop_column("created_by_schedule")
    op.drop_table("request_schedules")
