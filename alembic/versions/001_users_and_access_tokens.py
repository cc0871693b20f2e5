"""Users and access tokens

Revision ID: 001
Revises:
Create Date: 2026-10-19

Tables created:
  - users          Account records (email unique, bcrypt password hash)
  - access_tokens  SHA-256 hashes of issued bearer tokens
"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("password", sa.String(255), nullable=False),
        sa.Column("createdAt", sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updatedAt", sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_users_id", "users", ["id"])
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "access_tokens",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("userId", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("tokenHash", sa.String(64), nullable=False),
        sa.Column("createdAt", sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("lastUsedAt", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["userId"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_access_tokens_id", "access_tokens", ["id"])
    op.create_index("ix_access_tokens_userId", "access_tokens", ["userId"])
    op.create_index("ix_access_tokens_tokenHash", "access_tokens", ["tokenHash"], unique=True)


def downgrade() -> None:
    op.drop_index("ix_access_tokens_tokenHash", table_name="access_tokens")
    op.drop_index("ix_access_tokens_userId", table_name="access_tokens")
    op.drop_index("ix_access_tokens_id", table_name="access_tokens")
    op.drop_table("access_tokens")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_index("ix_users_id", table_name="users")
    op.drop_table("users")
