"""Data access helpers for chat sessions and encrypted messages."""
from __future__ import annotations

import logging
from collections.abc import Sequence

from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from flatshare_chat.models.chat import ChatSession, EncryptedMessage, listing_key_for

__all__ = ["ChatRepository", "canonical_pair"]

logger = logging.getLogger(__name__)


def canonical_pair(participant_ids: Sequence[str]) -> tuple[str, str]:
    """Return the participant pair in storage order."""
    first, second = sorted(participant_ids)
    return first, second


class ChatRepository:
    """Thin wrapper around database access for chats and their messages.

    Each mutating call commits its own transaction, so a message insert and
    the activity bump on its session become visible together.
    """

    def __init__(self, session: Session) -> None:
        """Initialize the repository with a SQLAlchemy session."""
        self.session = session

    def get_session_by_id(self, chat_id: str) -> ChatSession | None:
        """Return a chat session by identifier."""
        return self.session.get(ChatSession, chat_id)

    def find_session_by_participants(
        self,
        participant_ids: Sequence[str],
        listing_id: str | None = None,
    ) -> ChatSession | None:
        """Return the chat for an unordered pair within one listing context.

        ``listing_id=None`` matches only chats that have no listing.
        """
        participant_a, participant_b = canonical_pair(participant_ids)
        result = self.session.execute(
            select(ChatSession).where(
                ChatSession.participant_a == participant_a,
                ChatSession.participant_b == participant_b,
                ChatSession.listing_key == listing_key_for(listing_id),
            )
        )
        return result.scalars().first()

    def create_session(self, chat: ChatSession) -> ChatSession:
        """Persist a new chat, or return the one that won a concurrent insert.

        The unique constraint on (participant_a, participant_b, listing_key)
        rejects the losing insert; the winner is then re-read.
        """
        chat.participant_a, chat.participant_b = canonical_pair(
            (chat.participant_a, chat.participant_b)
        )
        chat.listing_key = listing_key_for(chat.listing_id)
        self.session.add(chat)
        try:
            self.session.commit()
        except IntegrityError:
            self.session.rollback()
            existing = self.find_session_by_participants(chat.participants, chat.listing_id)
            if existing is None:
                raise
            logger.info("Chat %s already created concurrently; reusing it", existing.id)
            return existing
        self.session.refresh(chat)
        return chat

    def get_sessions_by_participant(self, user_id: str) -> list[ChatSession]:
        """Return the user's chats, most recently active first."""
        result = self.session.execute(
            select(ChatSession)
            .where(
                or_(
                    ChatSession.participant_a == user_id,
                    ChatSession.participant_b == user_id,
                )
            )
            .order_by(ChatSession.last_activity.desc(), ChatSession.created_at.desc())
        )
        return list(result.scalars())

    def add_message(
        self,
        message: EncryptedMessage,
        preview: str | None = None,
    ) -> EncryptedMessage:
        """Insert a message and bump its chat's activity in one commit.

        Args:
            message: Message carrying ciphertext, IV and tag.
            preview: Optional opaque preview text stored on the chat.

        Raises:
            LookupError: If the owning chat does not exist.
        """
        chat = self.get_session_by_id(message.chat_id)
        if chat is None:
            raise LookupError(f"Chat {message.chat_id} does not exist")

        self.session.add(message)
        self.session.flush()
        chat.last_activity = message.timestamp
        if preview is not None:
            chat.last_message_preview = preview
        self.session.commit()
        self.session.refresh(message)
        return message

    def get_messages_by_chat_id(self, chat_id: str, limit: int = 50) -> list[EncryptedMessage]:
        """Return the newest ``limit`` messages, oldest first."""
        result = self.session.execute(
            select(EncryptedMessage)
            .where(EncryptedMessage.chat_id == chat_id)
            .order_by(EncryptedMessage.timestamp.desc(), EncryptedMessage.id.desc())
            .limit(limit)
        )
        messages = list(result.scalars())
        # Fetched newest-first so the limit keeps the latest messages.
        messages.reverse()
        return messages

    def get_message_by_id(self, message_id: int) -> EncryptedMessage | None:
        """Return a message by identifier."""
        return self.session.get(EncryptedMessage, message_id)

    def mark_message_read(self, message: EncryptedMessage) -> EncryptedMessage:
        """Set the read flag on a message."""
        message.read = True
        self.session.commit()
        self.session.refresh(message)
        return message
