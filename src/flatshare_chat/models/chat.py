# src/flatshare_chat/models/chat.py
"""Models describing encrypted chat sessions and their messages."""

from __future__ import annotations

import enum
import uuid
from datetime import datetime

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from flatshare_chat.db.session import Base
from flatshare_chat.db.time import utcnow

# Stored in listing_key when a chat is not anchored to a listing.
NO_LISTING_KEY = ""


class MessageType(str, enum.Enum):
    """Kinds of payload a message can carry."""

    TEXT = "text"
    IMAGE = "image"
    FILE = "file"


def _new_chat_id() -> str:
    return str(uuid.uuid4())


def listing_key_for(listing_id: str | None) -> str:
    """Return the uniqueness key for a listing context."""
    return listing_id if listing_id else NO_LISTING_KEY


class ChatSession(Base):
    """Chat binding exactly two participants and an optional listing.

    Participants are stored sorted so that lookups do not depend on who
    opened the chat. The derived key itself is never stored, only its
    fingerprint.
    """

    __tablename__ = "chat_session"
    __table_args__ = (
        UniqueConstraint(
            "participant_a",
            "participant_b",
            "listing_key",
            name="uq_chat_session_pair_listing",
        ),
        Index("ix_chat_session_participant_a", "participant_a", "last_activity"),
        Index("ix_chat_session_participant_b", "participant_b", "last_activity"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_chat_id)

    participant_a: Mapped[str] = mapped_column(String(128), nullable=False)
    participant_b: Mapped[str] = mapped_column(String(128), nullable=False)

    listing_id: Mapped[str | None] = mapped_column(String(128), nullable=True)
    listing_title: Mapped[str | None] = mapped_column(Text, nullable=True)
    # Non-null mirror of listing_id; "" is the "no listing" context.
    listing_key: Mapped[str] = mapped_column(String(128), nullable=False, default=NO_LISTING_KEY)

    key_fingerprint: Mapped[str] = mapped_column(String(64), nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    last_activity: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    last_message_preview: Mapped[str | None] = mapped_column(Text, nullable=True)

    @property
    def participants(self) -> list[str]:
        """Return the participant pair in canonical order."""
        return [self.participant_a, self.participant_b]

    def has_participant(self, user_id: str) -> bool:
        """Return True if the user is one of the two participants."""
        return user_id in (self.participant_a, self.participant_b)


class EncryptedMessage(Base):
    """Ciphertext of a single chat message.

    The ciphertext, IV and authentication tag travel together; the
    plaintext is only ever reconstructed on read.
    """

    __tablename__ = "encrypted_message"
    __table_args__ = (
        CheckConstraint(
            "length(ciphertext) > 0 AND length(iv) > 0 AND length(auth_tag) > 0",
            name="ck_encrypted_message_components",
        ),
        Index("ix_encrypted_message_chat_timestamp", "chat_id", "timestamp"),
    )

    # Autoincrement id doubles as the store arrival order for timestamp ties.
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    chat_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("chat_session.id", ondelete="CASCADE"),
        nullable=False,
    )
    sender_id: Mapped[str] = mapped_column(String(128), nullable=False)

    ciphertext: Mapped[str] = mapped_column(Text, nullable=False)
    iv: Mapped[str] = mapped_column(String(64), nullable=False)
    auth_tag: Mapped[str] = mapped_column(String(64), nullable=False)

    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    message_type: Mapped[MessageType] = mapped_column(
        Enum(MessageType, name="message_type", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=MessageType.TEXT,
    )
    read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
