# src/flatshare_chat/schemas/chat.py
"""Chat and message Pydantic schemas.

Field names are snake_case in Python and camelCase on the wire.
"""

from datetime import datetime
from typing import Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    SerializerFunctionWrapHandler,
    model_serializer,
)
from pydantic.alias_generators import to_camel

from flatshare_chat.models.chat import MessageType


class CamelModel(BaseModel):
    """Base schema serializing to camelCase field names."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class ChatCreate(CamelModel):
    """Schema for opening (or reopening) a chat with another user."""

    other_user_id: str | None = Field(None, description="Identifier of the other participant")
    listing_id: str | None = Field(None, description="Listing the chat is about, if any")
    listing_title: str | None = Field(None, description="Listing title shown in chat lists")


class MessageCreate(CamelModel):
    """Schema for sending a message to an existing chat."""

    message: str | None = Field(None, description="Plaintext message content")
    message_type: MessageType = Field(MessageType.TEXT, description="Payload kind")


class InitialMessageCreate(CamelModel):
    """Schema for opening a chat and sending its first message in one call."""

    other_user_id: str | None = Field(None, description="Identifier of the other participant")
    message: str | None = Field(None, description="Plaintext message content")
    listing_id: str | None = None
    listing_title: str | None = None
    message_type: MessageType = MessageType.TEXT


class ChatResponse(CamelModel):
    """Chat session returned by the API; key material is never included."""

    id: str
    participants: list[str]
    listing_id: str | None
    listing_title: str | None
    created_at: datetime
    last_activity: datetime


class MessageView(CamelModel):
    """Decrypted message as rendered by clients."""

    id: int
    chat_id: str
    sender_id: str
    text: str
    timestamp: datetime
    message_type: MessageType
    read: bool = False
    encrypted: bool = True
    decryption_error: bool | None = None

    @model_serializer(mode="wrap")
    def _omit_missing_decryption_error(self, handler: SerializerFunctionWrapHandler) -> dict[str, Any]:
        """Only emit the decryption error flag for messages that failed."""
        data = handler(self)
        if self.decryption_error is None:
            data.pop("decryptionError", None)
            data.pop("decryption_error", None)
        return data


class ChatPreview(ChatResponse):
    """Chat list entry carrying an opaque last-message placeholder."""

    last_message: MessageView | None = None


class SentMessageResponse(CamelModel):
    """Stored message as returned right after sending; no plaintext."""

    id: int
    chat_id: str
    sender_id: str
    ciphertext: str
    iv: str
    auth_tag: str
    timestamp: datetime
    message_type: MessageType
    read: bool


class InitialMessageResponse(CamelModel):
    """Result of opening a chat together with its first message."""

    chat_id: str
    message: SentMessageResponse
