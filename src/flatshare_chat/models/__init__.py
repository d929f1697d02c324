# src/flatshare_chat/models/__init__.py
"""SQLAlchemy models for the flatshare chat service."""

from .chat import ChatSession, EncryptedMessage, MessageType

__all__ = [
    "ChatSession",
    "EncryptedMessage",
    "MessageType",
]
