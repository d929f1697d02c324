"""Exceptions raised by the chat and encryption services."""

from __future__ import annotations


class ChatError(RuntimeError):
    """Base exception for chat-related failures.

    Messages carried by these exceptions are safe to show to clients;
    they never contain plaintext or key material.
    """


class InvalidParticipants(ChatError):
    """Raised for self-chats or malformed participant input."""


class EmptyMessage(ChatError):
    """Raised when message content is blank after trimming."""


class ChatNotFound(ChatError):
    """Raised when a referenced chat session does not exist."""


class MessageNotFound(ChatError):
    """Raised when a referenced message does not exist in the chat."""


class Unauthorized(ChatError):
    """Raised when the caller is not a participant of the chat."""


class EncryptionFailure(ChatError):
    """Raised when the cipher fails on the write path."""


class DecryptionFailure(ChatError):
    """Raised when a payload cannot be authenticated or decrypted."""
