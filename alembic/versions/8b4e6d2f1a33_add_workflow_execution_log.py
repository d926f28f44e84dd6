"""add workflow execution log

Revision ID: 8b4e6d2f1a33
Revises: 3f1c2a9b7d10
Create Date: 2026-10-12 11:02:47.905114
"""

from __future__ import annotations

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

revision: str = "8b4e6d2f1a33"
down_revision: Union[str, Sequence[str], None] = "3f1c2a9b7d10"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "workflow_executions",
        sa.Column("id", sa.String(), primary_key=True, nullable=False),
        sa.Column("workflow_id", sa.String(), nullable=False),
        sa.Column("trigger_type", sa.String(), nullable=False),
        sa.Column("trigger_payload", sa.JSON(), nullable=False),
        sa.Column("status", sa.String(), nullable=False, server_default="running"),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("finished_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint("status in ('running', 'success', 'error')", name="ck_workflow_executions_status"),
    )
    op.create_index("ix_workflow_executions_id", "workflow_executions", ["id"], unique=False)
    op.create_index("ix_workflow_executions_workflow_id", "workflow_executions", ["workflow_id"], unique=False)
    op.create_index(
        "ix_workflow_executions_workflow_started",
        "workflow_executions",
        ["workflow_id", "started_at"],
        unique=False,
    )

    op.create_table(
        "workflow_execution_steps",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("execution_id", sa.String(), nullable=False),
        sa.Column("node_id", sa.String(), nullable=False),
        sa.Column("node_label", sa.String(), nullable=True),
        sa.Column("action_type", sa.String(), nullable=True),
        sa.Column("status", sa.String(), nullable=False),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("output", sa.JSON(), nullable=True),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("finished_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["execution_id"], ["workflow_executions.id"], ondelete="CASCADE"),
        sa.CheckConstraint(
            "status in ('success', 'error', 'skipped')", name="ck_workflow_execution_steps_status"
        ),
    )
    op.create_index(
        "ix_workflow_execution_steps_execution_id", "workflow_execution_steps", ["execution_id"], unique=False
    )


def downgrade() -> None:
    op.drop_index("ix_workflow_execution_steps_execution_id", table_name="workflow_execution_steps")
    op.drop_table("workflow_execution_steps")

    op.drop_index("ix_workflow_executions_workflow_started", table_name="workflow_executions")
    op.drop_index("ix_workflow_executions_workflow_id", table_name="workflow_executions")
    op.drop_index("ix_workflow_executions_id", table_name="workflow_executions")
    op.drop_table("workflow_executions")
