"""Initial schema - items, server_users, profiles, follows.

Revision ID: 001_initial
Revises: None
Create Date: 2026-10-18

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "items",
        sa.Column("user_id", sa.LargeBinary(32), primary_key=True),
        sa.Column("signature", sa.LargeBinary(64), primary_key=True),
        sa.Column("unix_utc_ms", sa.BigInteger, nullable=False),
        sa.Column("received_utc_ms", sa.BigInteger, nullable=False),
        sa.Column("item_type", sa.String(16), nullable=False),
        sa.Column("item_bytes", sa.LargeBinary, nullable=False),
    )
    op.create_index("ix_items_time_signature", "items", ["unix_utc_ms", "signature"])
    op.create_index("ix_items_user_time", "items", ["user_id", "unix_utc_ms"])

    op.create_table(
        "server_users",
        sa.Column("user_id", sa.LargeBinary(32), primary_key=True),
        sa.Column("notes", sa.Text, nullable=False, server_default=""),
        sa.Column("on_homepage", sa.Boolean, nullable=False, server_default=sa.true()),
    )

    op.create_table(
        "profiles",
        sa.Column("user_id", sa.LargeBinary(32), primary_key=True),
        sa.Column("signature", sa.LargeBinary(64), nullable=False),
        sa.Column("unix_utc_ms", sa.BigInteger, nullable=False),
        sa.Column("display_name", sa.Text, nullable=False, server_default=""),
    )

    op.create_table(
        "follows",
        sa.Column("source_user_id", sa.LargeBinary(32), primary_key=True),
        sa.Column("followed_user_id", sa.LargeBinary(32), primary_key=True),
        sa.Column("display_name", sa.Text, nullable=False, server_default=""),
    )
    op.create_index("ix_follows_followed_user_id", "follows", ["followed_user_id"])


def downgrade() -> None:
    op.drop_index("ix_follows_followed_user_id", table_name="follows")
    op.drop_table("follows")
    op.drop_table("profiles")
    op.drop_table("server_users")
    op.drop_index("ix_items_user_time", table_name="items")
    op.drop_index("ix_items_time_signature", table_name="items")
    op.drop_table("items")
