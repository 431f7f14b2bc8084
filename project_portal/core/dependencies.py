"""FastAPI dependencies for database sessions and bearer-token identity."""

import logging
from typing import Annotated
from uuid import UUID

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from .database import get_session
from .security import decode_token

logger = logging.getLogger(__name__)

# Security scheme
bearer_scheme = HTTPBearer(auto_error=False)


async def get_current_user_id(
    credentials: Annotated[
        HTTPAuthorizationCredentials | None, Depends(bearer_scheme)
    ],
) -> UUID | None:
    """Identity of the caller, or None when the request carries no valid token.

    Rejection of anonymous callers happens in the identity resolver so that
    every entry point reports it the same way.
    """
    if not credentials:
        return None

    payload = decode_token(credentials.credentials)
    if not payload or payload.type != "access":
        logger.info("Rejected bearer token: invalid, expired or wrong type")
        return None

    try:
        return UUID(payload.sub)
    except ValueError:
        logger.warning(f"Token subject is not a user id: {payload.sub[:40]}")
        return None


# Type aliases for cleaner dependency injection
SessionDep = Annotated[AsyncSession, Depends(get_session)]
CurrentUserIdDep = Annotated[UUID | None, Depends(get_current_user_id)]
