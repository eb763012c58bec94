"""Authentication: signed bearer tokens and FastAPI dependencies."""
from app.auth.middleware import AuthenticationError, get_current_user, require_admin
from app.auth.tokens import Principal, create_token, verify_token

__all__ = [
    "AuthenticationError",
    "Principal",
    "create_token",
    "get_current_user",
    "require_admin",
    "verify_token",
]
