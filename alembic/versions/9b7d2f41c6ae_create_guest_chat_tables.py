"""create guest_chat_sessions and guest_chat_messages tables

Revision ID: 9b7d2f41c6ae
Revises: 5c1e8a9d3f20
Create Date: 2026-03-04

"""

from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "9b7d2f41c6ae"
down_revision: str | Sequence[str] | None = "5c1e8a9d3f20"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Create guest_chat_sessions and guest_chat_messages tables."""
    op.create_table(
        "guest_chat_sessions",
        sa.Column("id", sa.String(64), nullable=False),
        sa.Column("job_id", sa.Integer(), nullable=False),
        sa.Column("recruiter_id", sa.Integer(), nullable=False),
        sa.Column("guest_name", sa.String(100), nullable=True),
        sa.Column("guest_email", sa.String(255), nullable=True),
        sa.Column("max_messages", sa.Integer(), nullable=False),
        sa.Column("message_count", sa.Integer(), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("converted_user_id", sa.Integer(), nullable=True),
        sa.Column("converted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.CheckConstraint("max_messages > 0", name="ck_guest_chat_sessions_max_positive"),
        sa.CheckConstraint(
            "message_count >= 0 AND message_count <= max_messages",
            name="ck_guest_chat_sessions_count_in_quota",
        ),
        sa.ForeignKeyConstraint(["job_id"], ["jobs.id"]),
        sa.ForeignKeyConstraint(["recruiter_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["converted_user_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        op.f("ix_guest_chat_sessions_job_id"),
        "guest_chat_sessions",
        ["job_id"],
        unique=False,
    )
    op.create_index(
        "ix_guest_chat_sessions_recruiter_id_created_at",
        "guest_chat_sessions",
        ["recruiter_id", "created_at"],
        unique=False,
    )

    op.create_table(
        "guest_chat_messages",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("session_id", sa.String(64), nullable=False),
        sa.Column("sender_party", sa.String(20), nullable=False),
        sa.Column("sender_name", sa.String(100), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("is_read", sa.Boolean(), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.ForeignKeyConstraint(["session_id"], ["guest_chat_sessions.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_guest_chat_messages_session_id_created_at_id",
        "guest_chat_messages",
        ["session_id", "created_at", "id"],
        unique=False,
    )


def downgrade() -> None:
    """Drop guest_chat_messages and guest_chat_sessions tables."""
    op.drop_index(
        "ix_guest_chat_messages_session_id_created_at_id",
        table_name="guest_chat_messages",
    )
    op.drop_table("guest_chat_messages")
    op.drop_index(
        "ix_guest_chat_sessions_recruiter_id_created_at",
        table_name="guest_chat_sessions",
    )
    op.drop_index(op.f("ix_guest_chat_sessions_job_id"), table_name="guest_chat_sessions")
    op.drop_table("guest_chat_sessions")
