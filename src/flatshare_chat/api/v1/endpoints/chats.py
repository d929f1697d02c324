# src/flatshare_chat/api/v1/endpoints/chats.py
"""Encrypted chat endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, Query, status
from sqlalchemy.exc import SQLAlchemyError

from flatshare_chat.api.v1.dependencies import ChatServiceDep, CurrentUserIdDep
from flatshare_chat.core.settings import settings
from flatshare_chat.schemas.chat import (
    ChatCreate,
    ChatPreview,
    ChatResponse,
    InitialMessageCreate,
    InitialMessageResponse,
    MessageCreate,
    MessageView,
    SentMessageResponse,
)
from flatshare_chat.services.errors import (
    ChatError,
    ChatNotFound,
    EmptyMessage,
    EncryptionFailure,
    InvalidParticipants,
    MessageNotFound,
    Unauthorized,
)

router = APIRouter(prefix="/chats", tags=["chats"])

logger = logging.getLogger(__name__)

_STATUS_BY_ERROR: dict[type[ChatError], int] = {
    InvalidParticipants: status.HTTP_400_BAD_REQUEST,
    EmptyMessage: status.HTTP_400_BAD_REQUEST,
    ChatNotFound: status.HTTP_404_NOT_FOUND,
    MessageNotFound: status.HTTP_404_NOT_FOUND,
    Unauthorized: status.HTTP_403_FORBIDDEN,
}


def _http_error(exc: Exception, action: str) -> HTTPException:
    """Translate a service or store error into a client-safe HTTP error."""
    for error_type, status_code in _STATUS_BY_ERROR.items():
        if isinstance(exc, error_type):
            return HTTPException(status_code=status_code, detail=str(exc))

    if isinstance(exc, EncryptionFailure):
        logger.error("Encryption failed while trying to %s", action, exc_info=exc)
    else:
        logger.error("Unexpected error while trying to %s", action, exc_info=exc)
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=f"Failed to {action}",
    )


@router.post("", response_model=ChatResponse)
async def create_or_get_chat(
    payload: ChatCreate,
    current_user_id: CurrentUserIdDep,
    chat_service: ChatServiceDep,
) -> ChatResponse:
    """Open a chat with another user, or return the existing one."""
    if not payload.other_user_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Other user ID is required",
        )

    try:
        chat = chat_service.create_or_get_chat(
            current_user_id,
            payload.other_user_id,
            payload.listing_id,
            payload.listing_title,
        )
    except (ChatError, SQLAlchemyError) as exc:
        raise _http_error(exc, "create chat") from exc
    return ChatResponse.model_validate(chat)


@router.get("", response_model=list[ChatPreview])
async def get_user_chats(
    current_user_id: CurrentUserIdDep,
    chat_service: ChatServiceDep,
) -> list[ChatPreview]:
    """List the caller's chats, most recently active first."""
    try:
        return chat_service.get_user_chats(current_user_id)
    except SQLAlchemyError as exc:
        raise _http_error(exc, "load chats") from exc


@router.post(
    "/initial-message",
    response_model=InitialMessageResponse,
    status_code=status.HTTP_201_CREATED,
)
async def send_initial_message(
    payload: InitialMessageCreate,
    current_user_id: CurrentUserIdDep,
    chat_service: ChatServiceDep,
) -> InitialMessageResponse:
    """Open (or reuse) a chat and send its first message."""
    if not payload.other_user_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Other user ID is required",
        )

    try:
        chat, message = chat_service.start_chat(
            current_user_id,
            payload.other_user_id,
            payload.message or "",
            listing_id=payload.listing_id,
            listing_title=payload.listing_title,
            message_type=payload.message_type,
        )
    except (ChatError, SQLAlchemyError) as exc:
        raise _http_error(exc, "send message") from exc
    return InitialMessageResponse(
        chat_id=chat.id,
        message=SentMessageResponse.model_validate(message),
    )


@router.get("/{chat_id}", response_model=ChatResponse)
async def get_chat(
    chat_id: str,
    current_user_id: CurrentUserIdDep,
    chat_service: ChatServiceDep,
) -> ChatResponse:
    """Return a single chat the caller participates in."""
    try:
        chat = chat_service.get_chat(chat_id, current_user_id)
    except (ChatError, SQLAlchemyError) as exc:
        raise _http_error(exc, "load chat") from exc
    return ChatResponse.model_validate(chat)


@router.post(
    "/{chat_id}/messages",
    response_model=SentMessageResponse,
    status_code=status.HTTP_201_CREATED,
)
async def send_message(
    chat_id: str,
    payload: MessageCreate,
    current_user_id: CurrentUserIdDep,
    chat_service: ChatServiceDep,
) -> SentMessageResponse:
    """Encrypt and store a message; the response carries ciphertext only."""
    try:
        message = chat_service.send_message(
            chat_id,
            current_user_id,
            payload.message or "",
            payload.message_type,
        )
    except (ChatError, SQLAlchemyError) as exc:
        raise _http_error(exc, "send message") from exc
    return SentMessageResponse.model_validate(message)


@router.get("/{chat_id}/messages", response_model=list[MessageView])
async def get_messages(
    chat_id: str,
    current_user_id: CurrentUserIdDep,
    chat_service: ChatServiceDep,
    limit: int = Query(
        settings.chat_default_message_limit,
        ge=1,
        le=settings.chat_max_message_limit,
    ),
) -> list[MessageView]:
    """Return decrypted chat history in ascending time order."""
    try:
        return chat_service.get_decrypted_messages(chat_id, current_user_id, limit)
    except (ChatError, SQLAlchemyError) as exc:
        raise _http_error(exc, "get messages") from exc


@router.put("/{chat_id}/messages/{message_id}/read")
async def mark_message_read(
    chat_id: str,
    message_id: int,
    current_user_id: CurrentUserIdDep,
    chat_service: ChatServiceDep,
) -> dict[str, str]:
    """Mark a received message as read."""
    try:
        chat_service.mark_message_read(chat_id, message_id, current_user_id)
    except (ChatError, SQLAlchemyError) as exc:
        raise _http_error(exc, "mark message as read") from exc
    return {"status": "marked_as_read"}
