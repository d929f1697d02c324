# src/flatshare_chat/services/__init__.py
"""Business logic services for the flatshare chat application."""

from .chat_service import ChatService
from .encryption import EncryptedPayload, EncryptionService
from .errors import (
    ChatError,
    ChatNotFound,
    DecryptionFailure,
    EmptyMessage,
    EncryptionFailure,
    InvalidParticipants,
    MessageNotFound,
    Unauthorized,
)

__all__ = [
    "ChatService",
    "EncryptedPayload",
    "EncryptionService",
    "ChatError", "ChatNotFound", "DecryptionFailure", "EmptyMessage",
    "EncryptionFailure", "InvalidParticipants", "MessageNotFound", "Unauthorized",
]
