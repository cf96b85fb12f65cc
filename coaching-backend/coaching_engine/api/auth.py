"""
Caller Identity

Resolves the bearer token to the calling user's id. Identity itself is an
external collaborator; the bundled resolver is the development one and
treats the token as the user id.
"""
import logging
from typing import Callable, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

logger = logging.getLogger(__name__)

# Security scheme
security = HTTPBearer(auto_error=False)

TokenResolver = Callable[[str], Optional[str]]


def development_resolver(token: str) -> Optional[str]:
    token = token.strip()
    return token or None


_resolver: TokenResolver = development_resolver


def set_token_resolver(resolver: TokenResolver) -> None:
    """Install the identity collaborator's token resolver"""
    global _resolver
    _resolver = resolver


def _unauthenticated(code: str, message: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail={"error": {"code": code, "message": message, "details": None, "retryable": False}},
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_actor(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> str:
    """
    FastAPI dependency returning the caller's user id.

    Raises:
        HTTPException 401: Missing or unresolvable token
    """
    if credentials is None:
        raise _unauthenticated("AUTH_001", "Authorization header missing")

    user_id = _resolver(credentials.credentials)
    if user_id is None:
        logger.warning("Rejected bearer token that resolved to no user")
        raise _unauthenticated("AUTH_002", "Invalid or expired token")

    return user_id
