"""Chat service orchestrating sessions, encryption and access control."""
from __future__ import annotations

import logging

from flatshare_chat.db.time import utcnow
from flatshare_chat.models.chat import ChatSession, EncryptedMessage, MessageType
from flatshare_chat.repositories.chat_repo import ChatRepository
from flatshare_chat.schemas.chat import ChatPreview, MessageView
from flatshare_chat.services.encryption import EncryptedPayload, EncryptionService
from flatshare_chat.services.errors import (
    ChatNotFound,
    DecryptionFailure,
    EmptyMessage,
    InvalidParticipants,
    MessageNotFound,
    Unauthorized,
)

__all__ = [
    "ChatService",
    "DECRYPTION_FAILED_TEXT",
    "ENCRYPTED_PREVIEW_TEXT",
]

logger = logging.getLogger(__name__)

DECRYPTION_FAILED_TEXT = "[Message could not be decrypted]"
ENCRYPTED_PREVIEW_TEXT = "[Encrypted]"


class ChatService:
    """Authorization boundary between a verified user and chat contents.

    The chat key is re-derived from the participants on every call and is
    never cached or stored.
    """

    def __init__(
        self,
        repository: ChatRepository,
        encryption: EncryptionService | None = None,
    ) -> None:
        self.repository = repository
        self.encryption = encryption or EncryptionService()

    def _load_chat(self, chat_id: str) -> ChatSession:
        chat = self.repository.get_session_by_id(chat_id)
        if chat is None:
            raise ChatNotFound("Chat not found")
        return chat

    def _authorize(self, chat: ChatSession, user_id: str, action: str) -> None:
        if not user_id or not chat.has_participant(user_id):
            logger.warning("Denied %s on chat %s for user %s", action, chat.id, user_id)
            raise Unauthorized("Unauthorized access to chat")

    def create_or_get_chat(
        self,
        requester_id: str,
        other_user_id: str,
        listing_id: str | None = None,
        listing_title: str | None = None,
    ) -> ChatSession:
        """Return the chat for the pair and listing, creating it on first use.

        Raises:
            InvalidParticipants: If either ID is blank or both are the same user.
        """
        if not requester_id or not other_user_id:
            raise InvalidParticipants("Other user ID is required")
        if requester_id == other_user_id:
            raise InvalidParticipants("Cannot create chat with yourself")

        participants = [requester_id, other_user_id]
        existing = self.repository.find_session_by_participants(participants, listing_id)
        if existing is not None:
            return existing

        key = self.encryption.derive_chat_key(participants)
        now = utcnow()
        participant_a, participant_b = sorted(participants)
        chat = ChatSession(
            participant_a=participant_a,
            participant_b=participant_b,
            listing_id=listing_id or None,
            listing_title=listing_title,
            key_fingerprint=self.encryption.key_fingerprint(key),
            created_at=now,
            last_activity=now,
        )
        chat = self.repository.create_session(chat)
        logger.info("Opened chat %s", chat.id)
        return chat

    def get_chat(self, chat_id: str, requester_id: str) -> ChatSession:
        """Return a single chat visible to the requester."""
        chat = self._load_chat(chat_id)
        self._authorize(chat, requester_id, "view chat")
        return chat

    def send_message(
        self,
        chat_id: str,
        sender_id: str,
        plaintext: str,
        message_type: MessageType = MessageType.TEXT,
    ) -> EncryptedMessage:
        """Encrypt and store a message from one of the chat's participants.

        Raises:
            EmptyMessage: If the text is blank after trimming.
            ChatNotFound: If the chat does not exist.
            Unauthorized: If the sender is not a participant.
            EncryptionFailure: If the cipher fails.
        """
        text = (plaintext or "").strip()
        if not text:
            raise EmptyMessage("Message content is required")

        chat = self._load_chat(chat_id)
        self._authorize(chat, sender_id, "send message")

        key = self.encryption.derive_chat_key(chat.participants)
        payload = self.encryption.encrypt(text, key)

        message = EncryptedMessage(
            chat_id=chat.id,
            sender_id=sender_id,
            ciphertext=payload.ciphertext,
            iv=payload.iv,
            auth_tag=payload.auth_tag,
            timestamp=utcnow(),
            message_type=MessageType(message_type),
            read=False,
        )
        return self.repository.add_message(message, preview=ENCRYPTED_PREVIEW_TEXT)

    def start_chat(
        self,
        requester_id: str,
        other_user_id: str,
        plaintext: str,
        listing_id: str | None = None,
        listing_title: str | None = None,
        message_type: MessageType = MessageType.TEXT,
    ) -> tuple[ChatSession, EncryptedMessage]:
        """Open (or reuse) a chat and send its first message."""
        if not (plaintext or "").strip():
            raise EmptyMessage("Message content is required")
        chat = self.create_or_get_chat(requester_id, other_user_id, listing_id, listing_title)
        message = self.send_message(chat.id, requester_id, plaintext, message_type)
        return chat, message

    def get_decrypted_messages(
        self,
        chat_id: str,
        requester_id: str,
        limit: int = 50,
    ) -> list[MessageView]:
        """Return the chat history, oldest first, decrypted for a participant.

        A message that fails to decrypt is returned with placeholder text and
        ``decryption_error`` set; the rest of the history is unaffected.
        """
        chat = self._load_chat(chat_id)
        self._authorize(chat, requester_id, "read messages")

        key = self.encryption.derive_chat_key(chat.participants)
        views: list[MessageView] = []
        for message in self.repository.get_messages_by_chat_id(chat.id, limit):
            payload = EncryptedPayload(
                ciphertext=message.ciphertext,
                iv=message.iv,
                auth_tag=message.auth_tag,
            )
            try:
                text = self.encryption.decrypt(payload, key)
            except DecryptionFailure:
                logger.warning("Failed to decrypt message %s in chat %s", message.id, chat.id)
                views.append(self._to_view(message, DECRYPTION_FAILED_TEXT, decryption_error=True))
                continue
            views.append(self._to_view(message, text))
        return views

    def get_user_chats(self, user_id: str) -> list[ChatPreview]:
        """Return the user's chats with an undecrypted last-message placeholder."""
        previews: list[ChatPreview] = []
        for chat in self.repository.get_sessions_by_participant(user_id):
            latest = self.repository.get_messages_by_chat_id(chat.id, 1)
            preview = ChatPreview.model_validate(chat)
            if latest:
                preview.last_message = self._to_view(latest[0], ENCRYPTED_PREVIEW_TEXT)
            previews.append(preview)
        return previews

    def mark_message_read(
        self,
        chat_id: str,
        message_id: int,
        requester_id: str,
    ) -> EncryptedMessage:
        """Mark a received message as read.

        Marking one's own message is accepted and leaves it unchanged.
        """
        chat = self._load_chat(chat_id)
        self._authorize(chat, requester_id, "mark read")

        message = self.repository.get_message_by_id(message_id)
        if message is None or message.chat_id != chat.id:
            raise MessageNotFound("Message not found")
        if message.sender_id == requester_id or message.read:
            return message
        return self.repository.mark_message_read(message)

    @staticmethod
    def _to_view(
        message: EncryptedMessage,
        text: str,
        *,
        decryption_error: bool | None = None,
    ) -> MessageView:
        return MessageView(
            id=message.id,
            chat_id=message.chat_id,
            sender_id=message.sender_id,
            text=text,
            timestamp=message.timestamp,
            message_type=message.message_type,
            read=message.read,
            encrypted=True,
            decryption_error=decryption_error,
        )
