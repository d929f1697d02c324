"""create chat tables

Revision ID: 3f1c9a7e2b10
Revises:
Create Date: 2026-10-18 10:12:41.508211

"""
from __future__ import annotations

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "3f1c9a7e2b10"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create chat session and encrypted message tables."""
    op.create_table(
        "chat_session",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("participant_a", sa.String(length=128), nullable=False),
        sa.Column("participant_b", sa.String(length=128), nullable=False),
        sa.Column("listing_id", sa.String(length=128), nullable=True),
        sa.Column("listing_title", sa.Text(), nullable=True),
        sa.Column("listing_key", sa.String(length=128), nullable=False),
        sa.Column("key_fingerprint", sa.String(length=64), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("last_activity", sa.DateTime(timezone=True), nullable=False),
        sa.Column("last_message_preview", sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "participant_a",
            "participant_b",
            "listing_key",
            name="uq_chat_session_pair_listing",
        ),
    )
    op.create_index(
        "ix_chat_session_participant_a",
        "chat_session",
        ["participant_a", "last_activity"],
    )
    op.create_index(
        "ix_chat_session_participant_b",
        "chat_session",
        ["participant_b", "last_activity"],
    )

    message_type = sa.Enum("text", "image", "file", name="message_type")
    op.create_table(
        "encrypted_message",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("chat_id", sa.String(length=36), nullable=False),
        sa.Column("sender_id", sa.String(length=128), nullable=False),
        sa.Column("ciphertext", sa.Text(), nullable=False),
        sa.Column("iv", sa.String(length=64), nullable=False),
        sa.Column("auth_tag", sa.String(length=64), nullable=False),
        sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False),
        sa.Column("message_type", message_type, nullable=False),
        sa.Column("read", sa.Boolean(), nullable=False),
        sa.CheckConstraint(
            "length(ciphertext) > 0 AND length(iv) > 0 AND length(auth_tag) > 0",
            name="ck_encrypted_message_components",
        ),
        sa.ForeignKeyConstraint(["chat_id"], ["chat_session.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_encrypted_message_chat_timestamp",
        "encrypted_message",
        ["chat_id", "timestamp"],
    )


def downgrade() -> None:
    """Drop chat tables."""
    op.drop_index("ix_encrypted_message_chat_timestamp", table_name="encrypted_message")
    op.drop_table("encrypted_message")
    sa.Enum(name="message_type").drop(op.get_bind(), checkfirst=True)
    op.drop_index("ix_chat_session_participant_b", table_name="chat_session")
    op.drop_index("ix_chat_session_participant_a", table_name="chat_session")
    op.drop_table("chat_session")
