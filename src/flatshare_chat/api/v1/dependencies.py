"""Shared API dependencies for authentication and service wiring."""

from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from flatshare_chat.core.security import TokenError, decode_access_token
from flatshare_chat.db.session import get_db
from flatshare_chat.repositories.chat_repo import ChatRepository
from flatshare_chat.services.chat_service import ChatService

# HTTP Bearer scheme; missing credentials are reported as 401 below.
bearer_scheme = HTTPBearer(auto_error=False)

# Type alias for database session dependency
SessionDep = Annotated[Session, Depends(get_db)]


def get_current_user_id(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
) -> str:
    """Return the verified user identifier from the bearer token.

    Raises:
        HTTPException: 401 if the token is missing, malformed or expired.
    """
    if credentials is None or not credentials.credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Bearer"},
        )
    try:
        return decode_access_token(credentials.credentials)
    except TokenError as err:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        ) from err


def get_chat_service(db: SessionDep) -> ChatService:
    """Build a chat service bound to the request's database session."""
    return ChatService(ChatRepository(db))


# Type aliases for authenticated handlers
CurrentUserIdDep = Annotated[str, Depends(get_current_user_id)]
ChatServiceDep = Annotated[ChatService, Depends(get_chat_service)]
