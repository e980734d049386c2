"""Add assigned manager, deadline and level to tasks.

Revision ID: 002
Revises: 001
Create Date: 2026-10-18

Uses batch mode for SQLite compatibility.
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

revision = "002"
down_revision = "001"
branch_labels = None
depends_on = None


def upgrade() -> None:
    with op.batch_alter_table("tasks", schema=None) as batch_op:
        batch_op.add_column(sa.Column("assigned_manager_id", sa.VARCHAR(), nullable=True))
        batch_op.add_column(sa.Column("deadline", sa.DATETIME(), nullable=True))
        batch_op.add_column(sa.Column("level", sa.INTEGER(), nullable=True))
        batch_op.create_foreign_key(
            "fk_tasks_assigned_manager_id_users", "users", ["assigned_manager_id"], ["id"]
        )
        batch_op.create_index("ix_tasks_assigned_manager_id", ["assigned_manager_id"])


def downgrade() -> None:
    with op.batch_alter_table("tasks", schema=None) as batch_op:
        batch_op.drop_index("ix_tasks_assigned_manager_id")
        batch_op.drop_constraint("fk_tasks_assigned_manager_id_users", type_="foreignkey")
        batch_op.drop_column("level")
        batch_op.drop_column("deadline")
        batch_op.drop_column("assigned_manager_id")
