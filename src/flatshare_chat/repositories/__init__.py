"""Data access layer for chat persistence."""

from .chat_repo import ChatRepository

__all__ = ["ChatRepository"]
