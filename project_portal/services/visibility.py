"""
Visibility Filter and post-filter enrichment.

Clients only ever see artifacts flagged `is_visible`; admins see
everything. Enrichment (creator details, file URLs) is applied after
filtering, so hidden records never cost a lookup and their creators or
files never leak into a client response.
"""

import logging
from dataclasses import dataclass
from typing import Iterable, Protocol, Sequence, TypeVar
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models import User, UserProfile, UserRole
from .storage import StorageBackend

logger = logging.getLogger(__name__)


class Visible(Protocol):
    is_visible: bool


V = TypeVar("V", bound=Visible)


def filter_visible(records: Iterable[V], caller_role: UserRole) -> list[V]:
    """Records the caller may see, in their original order."""
    if caller_role == UserRole.ADMIN:
        return list(records)
    return [r for r in records if r.is_visible]


@dataclass
class CreatorRef:
    user_id: UUID
    name: str
    email: str | None = None


async def load_creators(
    session: AsyncSession,
    user_ids: Iterable[UUID],
) -> dict[UUID, CreatorRef]:
    """Batch lookup of user + profile for the given ids."""
    ids = set(user_ids)
    if not ids:
        return {}

    result = await session.execute(
        select(User, UserProfile)
        .outerjoin(UserProfile, UserProfile.user_id == User.id)
        .where(User.id.in_(ids))
    )

    creators: dict[UUID, CreatorRef] = {}
    for user, profile in result.all():
        name = profile.full_name if profile else user.email
        creators[user.id] = CreatorRef(user_id=user.id, name=name, email=user.email)
    return creators


async def resolve_file_urls(
    storage: StorageBackend,
    file_ids: Sequence[str | None],
) -> dict[str, str | None]:
    """Resolve download URLs; a storage failure yields None for that file."""
    urls: dict[str, str | None] = {}
    for file_id in file_ids:
        if not file_id or file_id in urls:
            continue
        try:
            urls[file_id] = await storage.get_url(file_id)
        except Exception as e:
            logger.warning(f"Could not resolve URL for file {file_id}: {e}")
            urls[file_id] = None
    return urls
