"""Core application utilities."""

from .config import Settings, get_settings
from .database import (
    async_session_factory,
    build_engine,
    close_db,
    engine,
    get_session,
    get_session_context,
    init_db,
)
from .dependencies import (
    CurrentUserIdDep,
    SessionDep,
    get_current_user_id,
)
from .security import (
    create_access_token,
    decode_token,
    sign_file_reference,
)

__all__ = [
    # Config
    "Settings",
    "get_settings",
    # Database
    "engine",
    "build_engine",
    "async_session_factory",
    "get_session",
    "get_session_context",
    "init_db",
    "close_db",
    # Dependencies
    "get_current_user_id",
    "CurrentUserIdDep",
    "SessionDep",
    # Security
    "create_access_token",
    "decode_token",
    "sign_file_reference",
]
