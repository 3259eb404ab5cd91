"""Add channel and thumbnail to requests.

Revision ID: 002
Revises: 001
Create Date: 2023-12-09
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

revision = "002"
down_revision = "001"
branch_labels = None
depends_on = None


def upgrade() -> None:
    with op.batch_alter_table("requests") as batch_op:
        batch_op.add_column(sa.Column("channel_id", sa.VARCHAR(), nullable=True))
        batch_op.add_column(sa.Column("thumbnail_url", sa.VARCHAR(), nullable=True))


def downgrade() -> None:
    with op.batch_alter_table("requests") as batch_op:
        batch_op.drop_column("thumbnail_url")
        batch_op.drop_column("channel_id")
