"""
Authentication Middleware

FastAPI dependencies for authenticating requests via signed bearer tokens.

Usage:
    @router.post("/games/upload")
    async def upload(user: Principal = Depends(get_current_user)):
        ...
"""
import logging
from typing import Optional

from fastapi import Depends, Header, HTTPException, Request, status

from app.auth.tokens import Principal, verify_token

logger = logging.getLogger(__name__)


class AuthenticationError(HTTPException):
    """Authentication failed."""
    def __init__(self, detail: str = "Invalid or missing token"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"}
        )


def _parse_bearer(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    try:
        scheme, token = authorization.split(" ", 1)
    except ValueError:
        return None
    if scheme.lower() != "bearer":
        return None
    return token.strip()


async def get_current_user(
    request: Request,
    authorization: Optional[str] = Header(None),
) -> Principal:
    """FastAPI dependency returning the authenticated principal.

    Raises:
        AuthenticationError: If the header is missing or the token is invalid
    """
    token = _parse_bearer(authorization)
    if not token:
        raise AuthenticationError("Authentication required")

    principal = verify_token(token, request.app.state.settings.secret_key)
    if principal is None:
        logger.warning("[AUTH] Rejected invalid or expired token")
        raise AuthenticationError("Invalid or expired token")
    return principal


async def require_admin(user: Principal = Depends(get_current_user)) -> Principal:
    """FastAPI dependency that only lets admins through."""
    if not user.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    return user
