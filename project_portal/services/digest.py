"""
Digest Engine: one summary email per batch of client-visible changes.

The high-water mark is the `created_at` of the newest `project_updated`
notification for the project's client. A digest counts visible documents
and photos created after that mark, sends ONE email, and only then writes
the new mark. Consequences:

- Nothing new: no email, no row, the mark does not move
- Send fails: no row, the next run retries the same window
- Each digest covers the window (mark, cutoff], where cutoff is taken before
  counting and becomes the new mark, so uploads that land while the email is
  in flight are picked up by the next digest rather than skipped

Digests for one (client, project) pair are serialised twice: by an in-process
lock and by a row lock on the project. The new mark is committed before
either is released, so a second trigger always reads it.
"""

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import get_settings
from ..models import Document, Notification, NotificationType, Photo, Project, utcnow
from .access import Caller, OpClass, load_project_for, get_project_or_raise
from .audit import record_audit
from .email import EmailSender, build_digest_email, get_email_sender
from .identity import IdentityService
from .notifications import DEFAULT_PROJECT_NAME

logger = logging.getLogger(__name__)

DIGEST_TITLE = "Project updates summary"

# Serialises digests per (client, project) within this process.
# Entries live only while some task holds or waits for them.
_digest_locks: dict[tuple[UUID, UUID], asyncio.Lock] = {}
_digest_lock_users: dict[tuple[UUID, UUID], int] = {}

# Re-reads of the mark before giving up on a moving window
MAX_WINDOW_RETRIES = 3


@asynccontextmanager
async def digest_lock(client_id: UUID, project_id: UUID) -> AsyncIterator[None]:
    """Hold the in-process digest lock for one (client, project) pair."""
    key = (client_id, project_id)
    lock = _digest_locks.setdefault(key, asyncio.Lock())
    _digest_lock_users[key] = _digest_lock_users.get(key, 0) + 1
    try:
        async with lock:
            yield
    finally:
        _digest_lock_users[key] -= 1
        if _digest_lock_users[key] == 0:
            del _digest_lock_users[key]
            del _digest_locks[key]


@dataclass
class DigestResult:
    sent: bool
    summary: str | None = None
    new_documents: int = 0
    new_photos: int = 0
    error: str | None = None


def _plural(count: int, noun: str) -> str:
    return f"{count} new {noun}{'' if count == 1 else 's'}"


def summarize_counts(new_documents: int, new_photos: int) -> list[str]:
    """Summary parts in fixed order, zero categories omitted."""
    parts: list[str] = []
    if new_documents:
        parts.append(_plural(new_documents, "document"))
    if new_photos:
        parts.append(_plural(new_photos, "photo"))
    return parts


class DigestService:
    """Computes and sends project digests."""

    def __init__(self, session: AsyncSession, email_sender: EmailSender | None = None):
        self.session = session
        self._email_sender = email_sender
        self._identity = IdentityService(session)

    @property
    def email_sender(self) -> EmailSender:
        if self._email_sender is None:
            self._email_sender = get_email_sender()
        return self._email_sender

    async def trigger(self, caller: Caller, project_id: UUID) -> DigestResult:
        """Admin-initiated digest."""
        await load_project_for(self.session, caller, project_id, OpClass.WRITE_ADMIN_ONLY)
        result = await self.compute_and_send_digest(project_id)

        if result.sent:
            record_audit(
                self.session,
                actor_id=caller.user_id,
                action="digest_sent",
                entity_type="project",
                entity_id=project_id,
                project_id=project_id,
                details=result.summary,
            )
        return result

    async def compute_and_send_digest(self, project_id: UUID) -> DigestResult:
        """
        Send a digest for everything visible since the last one.

        On success the new mark is committed on this session before the
        locks are released, along with anything else pending on it.
        """
        # Step 1: project and client email
        project = await get_project_or_raise(self.session, project_id)
        to = await self._identity.get_user_email(project.client_id)
        if not to:
            logger.info(f"Digest skipped for project {project_id}: client has no email")
            return DigestResult(sent=False)

        async with digest_lock(project.client_id, project.id):
            # Other processes wait here until our commit (no-op on SQLite)
            await self.session.execute(
                select(Project.id).where(Project.id == project.id).with_for_update()
            )

            # Step 2: window since the last mark, counted up to a fixed cutoff
            since = await self.last_digest_at(project.client_id, project.id)
            for _ in range(MAX_WINDOW_RETRIES):
                cutoff = utcnow()
                new_documents = await self._count_new(Document, project.id, since, cutoff)
                new_photos = await self._count_new(Photo, project.id, since, cutoff)

                if new_documents + new_photos == 0:
                    logger.debug(f"Digest for project {project_id}: nothing new")
                    return DigestResult(sent=False)

                # Another worker may have sent a digest meanwhile
                current = await self.last_digest_at(project.client_id, project.id)
                if current == since:
                    break
                since = current
            else:
                logger.warning(f"Digest for project {project_id} abandoned: window kept moving")
                return DigestResult(sent=False)

            # Step 3: send first, record the mark only on success
            parts = summarize_counts(new_documents, new_photos)
            summary = ", ".join(parts)
            error = await self._send(project, to, parts, cutoff)
            if error is not None:
                return DigestResult(sent=False, error=error)

            self.session.add(Notification(
                user_id=project.client_id,
                project_id=project.id,
                type=NotificationType.PROJECT_UPDATED,
                title=DIGEST_TITLE,
                message=summary,
                is_read=False,
                email_sent=True,
                created_at=cutoff,
            ))
            await self.session.commit()

        logger.info(f"Digest sent for project {project_id}: {summary}")
        return DigestResult(
            sent=True,
            summary=summary,
            new_documents=new_documents,
            new_photos=new_photos,
        )

    async def last_digest_at(self, client_id: UUID, project_id: UUID) -> datetime | None:
        """The current high-water mark, or None if no digest was ever sent."""
        result = await self.session.execute(
            select(func.max(Notification.created_at)).where(
                Notification.user_id == client_id,
                Notification.project_id == project_id,
                Notification.type == NotificationType.PROJECT_UPDATED,
            )
        )
        return result.scalar_one_or_none()

    async def _count_new(
        self,
        model: type[Document] | type[Photo],
        project_id: UUID,
        since: datetime | None,
        cutoff: datetime,
    ) -> int:
        query = select(func.count()).select_from(model).where(
            model.project_id == project_id,
            model.is_visible.is_(True),
            model.created_at <= cutoff,
        )
        if since is not None:
            query = query.where(model.created_at > since)
        return (await self.session.execute(query)).scalar_one()

    async def _send(
        self,
        project: Project,
        to: str,
        parts: list[str],
        cutoff: datetime,
    ) -> str | None:
        """Send the digest email. Returns the error message, or None on success."""
        email = build_digest_email(project.name or DEFAULT_PROJECT_NAME, parts, project_id=project.id)
        try:
            sent, error = await self.email_sender.send(
                to=to,
                subject=email.subject,
                html_body=email.html_body,
                reply_to=get_settings().email_reply_to,
                idempotency_key=f"digest/{project.id}/{int(cutoff.timestamp() * 1_000_000)}",
            )
        except Exception as e:
            sent, error = False, str(e)

        if sent:
            return None
        logger.error(f"Digest email for project {project.id} failed: {error}")
        return error or "Email transport reported failure"
