"""Create users and generation_logs tables

Revision ID: 001
Revises:
Create Date: 2026-10-05

"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.String(length=255), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("subscription_plan", sa.String(length=20), nullable=False, server_default="free"),
        sa.Column("credits_remaining", sa.Integer(), nullable=True),
        sa.Column("last_credits_reset", sa.DateTime(timezone=True), nullable=False),
        sa.Column("stripe_customer_id", sa.String(length=255), nullable=True),
        sa.Column("stripe_subscription_id", sa.String(length=255), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("stripe_customer_id"),
        sa.CheckConstraint(
            "credits_remaining IS NULL OR credits_remaining >= 0",
            name="ck_users_credits_non_negative",
        ),
        sa.CheckConstraint(
            "subscription_plan IN ('free', 'premium')",
            name="ck_users_subscription_plan",
        ),
    )

    op.create_table(
        "generation_logs",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("user_id", sa.String(length=255), nullable=False),
        sa.Column("content_type", sa.String(length=50), nullable=False),
        sa.Column("status", sa.String(length=50), nullable=False),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("ai_model", sa.String(length=100), nullable=True),
        sa.Column("duration_ms", sa.Integer(), nullable=True),
        sa.Column("input_metadata", sa.JSON(), nullable=True),
        sa.Column("cost_credits", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_generation_logs_user_id", "generation_logs", ["user_id"])
    op.create_index("ix_generation_logs_status", "generation_logs", ["status"])
    op.create_index("ix_generation_logs_user_type", "generation_logs", ["user_id", "content_type"])
    op.create_index("ix_generation_logs_created", "generation_logs", ["created_at"])


def downgrade() -> None:
    op.drop_index("ix_generation_logs_created", table_name="generation_logs")
    op.drop_index("ix_generation_logs_user_type", table_name="generation_logs")
    op.drop_index("ix_generation_logs_status", table_name="generation_logs")
    op.drop_index("ix_generation_logs_user_id", table_name="generation_logs")
    op.drop_table("generation_logs")
    op.drop_table("users")
