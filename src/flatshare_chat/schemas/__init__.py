"""
Pydantic schemas for API request/response models.

These schemas define the structure of API data for serialization and validation.
"""

from .chat import (
    ChatCreate,
    ChatPreview,
    ChatResponse,
    InitialMessageCreate,
    InitialMessageResponse,
    MessageCreate,
    MessageView,
    SentMessageResponse,
)

__all__ = [
    "ChatCreate", "ChatPreview", "ChatResponse",
    "InitialMessageCreate", "InitialMessageResponse",
    "MessageCreate", "MessageView", "SentMessageResponse",
]
