"""
Signed bearer tokens.

TOKEN FORMAT: {principal_id}:{role}:{expires_at}:{hmac_sha256_hex}

User accounts live in an external service; it issues tokens with the shared
secret and this API only verifies them.
"""
import hashlib
import hmac
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

logger = logging.getLogger(__name__)

ROLES = ("user", "admin")


@dataclass(frozen=True)
class Principal:
    """The authenticated caller."""
    id: str
    role: str = "user"

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


def _sign(payload: str, secret_key: str) -> str:
    return hmac.new(secret_key.encode(), payload.encode(), hashlib.sha256).hexdigest()


def create_token(principal_id: str, role: str, secret_key: str, ttl_minutes: int) -> str:
    """Issue a token for principal_id valid for ttl_minutes."""
    if role not in ROLES:
        raise ValueError(f"Unknown role: {role}")
    if ":" in principal_id:
        raise ValueError("Principal id must not contain ':'")
    exp = int((datetime.now(timezone.utc) + timedelta(minutes=ttl_minutes)).timestamp())
    payload = f"{principal_id}:{role}:{exp}"
    return f"{payload}:{_sign(payload, secret_key)}"


def verify_token(token: str, secret_key: str) -> Optional[Principal]:
    """Return the principal for a valid token, None for anything else."""
    try:
        principal_id, role, exp_s, sig = token.split(":")
        exp = int(exp_s)
    except ValueError:
        return None

    payload = f"{principal_id}:{role}:{exp_s}"
    if not hmac.compare_digest(_sign(payload, secret_key), sig):
        return None
    if exp < int(datetime.now(timezone.utc).timestamp()):
        logger.debug("Expired token for %s", principal_id)
        return None
    if role not in ROLES or not principal_id:
        return None
    return Principal(id=principal_id, role=role)
