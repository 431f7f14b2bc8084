"""Security utilities: access tokens and signed file URLs."""

from datetime import datetime, timedelta, timezone
from uuid import UUID
import hashlib
import hmac
import logging

import jwt
from pydantic import BaseModel

from .config import get_settings

settings = get_settings()
logger = logging.getLogger(__name__)


# JWT Token handling
class TokenPayload(BaseModel):
    """JWT token payload."""

    sub: str  # User ID
    exp: datetime
    iat: datetime
    type: str = "access"


def create_access_token(
    user_id: UUID,
    expires_delta: timedelta | None = None,
) -> str:
    """Create a JWT access token."""
    now = datetime.now(timezone.utc)
    expire = now + (
        expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    )

    payload = {
        "sub": str(user_id),
        "exp": expire,
        "iat": now,
        "type": "access",
    }

    return jwt.encode(payload, settings.secret_key, algorithm="HS256")


def decode_token(token: str) -> TokenPayload | None:
    """Decode and validate a JWT token. Returns None when invalid or expired."""
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=["HS256"])
        return TokenPayload(**payload)
    except jwt.ExpiredSignatureError:
        logger.debug("Rejected expired access token")
        return None
    except jwt.InvalidTokenError:
        return None


def sign_file_reference(file_id: str, expires_at: int) -> str:
    """
    HMAC signature binding a stored file id to an expiry timestamp.

    Verification happens on the file host behind STORAGE_BASE_URL, which
    shares SECRET_KEY; the portal itself only signs.
    """
    message = f"{file_id}:{expires_at}".encode()
    return hmac.new(settings.secret_key.encode(), message, hashlib.sha256).hexdigest()
