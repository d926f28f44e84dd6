"""create workflows contacts conversations forms integrations

Revision ID: 3f1c2a9b7d10
Revises:
Create Date: 2026-10-12 09:14:02.418355
"""

from __future__ import annotations

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

revision: str = "3f1c2a9b7d10"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "workflows",
        sa.Column("id", sa.String(), primary_key=True, nullable=False),
        sa.Column("account_id", sa.Integer(), nullable=False),
        sa.Column("widget_id", sa.String(), nullable=True),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("status", sa.String(), nullable=False, server_default="draft"),
        sa.Column("nodes", sa.JSON(), nullable=False),
        sa.Column("edges", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("status in ('draft', 'live')", name="ck_workflows_status"),
    )
    op.create_index("ix_workflows_id", "workflows", ["id"], unique=False)
    op.create_index("ix_workflows_account_id", "workflows", ["account_id"], unique=False)
    op.create_index("ix_workflows_widget_id", "workflows", ["widget_id"], unique=False)

    op.create_table(
        "contacts",
        sa.Column("id", sa.String(), primary_key=True, nullable=False),
        sa.Column("account_id", sa.Integer(), nullable=False),
        sa.Column("widget_id", sa.String(), nullable=True),
        sa.Column("conversation_id", sa.String(), nullable=True),
        sa.Column("name", sa.String(), nullable=True),
        sa.Column("email", sa.String(), nullable=True),
        sa.Column("phone", sa.String(), nullable=True),
        sa.Column("address", sa.String(), nullable=True),
        sa.Column("tags", sa.JSON(), nullable=False),
        sa.Column("documents", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_contacts_id", "contacts", ["id"], unique=False)
    op.create_index("ix_contacts_account_id", "contacts", ["account_id"], unique=False)
    op.create_index("ix_contacts_widget_id", "contacts", ["widget_id"], unique=False)
    op.create_index("ix_contacts_conversation_id", "contacts", ["conversation_id"], unique=False)
    op.create_index("ix_contacts_email", "contacts", ["email"], unique=False)

    op.create_table(
        "conversations",
        sa.Column("id", sa.String(), primary_key=True, nullable=False),
        sa.Column("account_id", sa.Integer(), nullable=False),
        sa.Column("widget_id", sa.String(), nullable=True),
        sa.Column("contact_id", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_conversations_id", "conversations", ["id"], unique=False)
    op.create_index("ix_conversations_account_id", "conversations", ["account_id"], unique=False)
    op.create_index("ix_conversations_widget_id", "conversations", ["widget_id"], unique=False)
    op.create_index("ix_conversations_contact_id", "conversations", ["contact_id"], unique=False)

    op.create_table(
        "conversation_messages",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("conversation_id", sa.String(), nullable=False),
        sa.Column("role", sa.String(), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(["conversation_id"], ["conversations.id"], ondelete="CASCADE"),
        sa.CheckConstraint("role in ('user', 'assistant', 'system')", name="ck_conversation_messages_role"),
    )
    op.create_index(
        "ix_conversation_messages_conversation_id", "conversation_messages", ["conversation_id"], unique=False
    )

    op.create_table(
        "quote_forms",
        sa.Column("id", sa.String(), primary_key=True, nullable=False),
        sa.Column("account_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
    )
    op.create_index("ix_quote_forms_id", "quote_forms", ["id"], unique=False)
    op.create_index("ix_quote_forms_account_id", "quote_forms", ["account_id"], unique=False)

    op.create_table(
        "integrations",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("account_id", sa.Integer(), nullable=False),
        sa.Column("integration_type", sa.String(), nullable=False),
        sa.Column("config", sa.JSON(), nullable=False),
        sa.UniqueConstraint("account_id", "integration_type", name="uq_integrations_account_type"),
    )
    op.create_index("ix_integrations_account_id", "integrations", ["account_id"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_integrations_account_id", table_name="integrations")
    op.drop_table("integrations")

    op.drop_index("ix_quote_forms_account_id", table_name="quote_forms")
    op.drop_index("ix_quote_forms_id", table_name="quote_forms")
    op.drop_table("quote_forms")

    op.drop_index("ix_conversation_messages_conversation_id", table_name="conversation_messages")
    op.drop_table("conversation_messages")

    op.drop_index("ix_conversations_contact_id", table_name="conversations")
    op.drop_index("ix_conversations_widget_id", table_name="conversations")
    op.drop_index("ix_conversations_account_id", table_name="conversations")
    op.drop_index("ix_conversations_id", table_name="conversations")
    op.drop_table("conversations")

    op.drop_index("ix_contacts_email", table_name="contacts")
    op.drop_index("ix_contacts_conversation_id", table_name="contacts")
    op.drop_index("ix_contacts_widget_id", table_name="contacts")
    op.drop_index("ix_contacts_account_id", table_name="contacts")
    op.drop_index("ix_contacts_id", table_name="contacts")
    op.drop_table("contacts")

    op.drop_index("ix_workflows_widget_id", table_name="workflows")
    op.drop_index("ix_workflows_account_id", table_name="workflows")
    op.drop_index("ix_workflows_id", table_name="workflows")
    op.drop_table("workflows")
