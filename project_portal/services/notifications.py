"""
Notification Service: per-event notifications and the user inbox.

Every event produces exactly one Notification row. Email is an optional
side channel on top of the row:

1. Auto-emails must be enabled (AUTO_EMAILS_ENABLED, read only here)
2. The actor is never emailed about their own action
3. The recipient must have an email address

A failed send leaves `email_sent` false and is logged; it never undoes the
mutation that triggered it.
"""

import logging
from typing import Sequence
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import get_settings
from ..models import Notification, NotificationType, Project
from .access import Caller
from .email import EmailSender, build_update_email, get_email_sender
from .errors import AccessDeniedError, NotFoundError
from .identity import IdentityService

logger = logging.getLogger(__name__)


DEFAULT_TITLES = {
    NotificationType.DOCUMENT_UPLOADED: "New document",
    NotificationType.PHOTO_UPLOADED: "New photos",
    NotificationType.NOTE_ADDED: "New message",
    NotificationType.APPROVAL_REQUESTED: "Approval requested",
    NotificationType.APPROVAL_COMPLETED: "Approval completed",
    NotificationType.PROJECT_UPDATED: "Project updated",
    NotificationType.ADDITIONAL_WORK_REQUESTED: "Additional work proposed",
}

DEFAULT_PROJECT_NAME = "your project"


def default_message(project: Project | None) -> str:
    name = project.name if project is not None and project.name else DEFAULT_PROJECT_NAME
    return f"There is an update in {name}."


class NotificationService:
    """Records notifications and dispatches their optional emails."""

    def __init__(
        self,
        session: AsyncSession,
        email_sender: EmailSender | None = None,
        auto_emails_enabled: bool | None = None,
    ):
        self.session = session
        self._email_sender = email_sender
        settings = get_settings()
        self._auto_emails_enabled = (
            settings.auto_emails_enabled if auto_emails_enabled is None else auto_emails_enabled
        )
        self._reply_to = settings.email_reply_to
        self._identity = IdentityService(session)

    @property
    def email_sender(self) -> EmailSender:
        if self._email_sender is None:
            self._email_sender = get_email_sender()
        return self._email_sender

    # =========================================================================
    # EVENT NOTIFICATIONS
    # =========================================================================

    async def notify_event(
        self,
        recipient_id: UUID,
        project: Project | None,
        event_kind: NotificationType,
        actor_id: UUID | None = None,
        title: str | None = None,
        message: str | None = None,
    ) -> Notification:
        """Record one notification for `recipient_id` and maybe email it."""
        notification = Notification(
            user_id=recipient_id,
            project_id=project.id if project is not None else None,
            type=event_kind,
            title=title or DEFAULT_TITLES[event_kind],
            message=message or default_message(project),
            is_read=False,
            email_sent=False,
        )
        self.session.add(notification)
        await self.session.flush()

        if not self._auto_emails_enabled:
            return notification
        if actor_id is not None and actor_id == recipient_id:
            logger.debug(f"Skipping self-notification email for {recipient_id}")
            return notification

        await self._dispatch_email(notification, project)
        return notification

    async def broadcast_to_admins(
        self,
        project: Project | None,
        event_kind: NotificationType,
        title: str | None = None,
        message: str | None = None,
        actor_id: UUID | None = None,
    ) -> int:
        """
        Notify every admin. Each recipient is independent: a failure for one
        is logged and the rest still get theirs.

        Each recipient runs in its own savepoint, so a database error only
        rolls back that recipient's row and the session stays usable.

        Returns:
            Number of recipients notified
        """
        delivered = 0
        for admin_id in await self._identity.admin_recipients():
            try:
                async with self.session.begin_nested():
                    await self.notify_event(
                        admin_id, project, event_kind,
                        actor_id=actor_id, title=title, message=message,
                    )
                delivered += 1
            except Exception as e:
                logger.error(f"Failed to notify admin {admin_id} of {event_kind.value}: {e}")
        return delivered

    async def _dispatch_email(self, notification: Notification, project: Project | None) -> bool:
        to = await self._identity.get_user_email(notification.user_id)
        if not to:
            logger.info(f"Recipient {notification.user_id} has no email address")
            return False

        project_name = project.name if project is not None and project.name else DEFAULT_PROJECT_NAME
        email = build_update_email(
            project_name,
            notification.title,
            notification.message,
            project_id=project.id if project is not None else None,
        )

        try:
            sent, error = await self.email_sender.send(
                to=to,
                subject=email.subject,
                html_body=email.html_body,
                reply_to=self._reply_to,
                idempotency_key=f"notification/{notification.id}",
            )
        except Exception as e:
            sent, error = False, str(e)

        if not sent:
            logger.error(f"Email for notification {notification.id} failed: {error}")
            return False

        notification.email_sent = True
        await self.session.flush()
        return True

    # =========================================================================
    # INBOX
    # =========================================================================

    async def list_my_notifications(
        self,
        caller: Caller,
        limit: int = 50,
    ) -> Sequence[Notification]:
        result = await self.session.execute(
            select(Notification)
            .where(Notification.user_id == caller.user_id)
            .order_by(Notification.created_at.desc())
            .limit(limit)
        )
        return result.scalars().all()

    async def unread_count(self, caller: Caller) -> int:
        result = await self.session.execute(
            select(func.count()).where(
                Notification.user_id == caller.user_id,
                Notification.is_read.is_(False),
            )
        )
        return result.scalar_one()

    async def mark_as_read(self, caller: Caller, notification_id: UUID) -> Notification:
        notification = await self.session.get(Notification, notification_id)
        if notification is None:
            raise NotFoundError("Notification not found")
        if notification.user_id != caller.user_id:
            raise AccessDeniedError()

        notification.is_read = True
        await self.session.flush()
        return notification

    async def mark_all_as_read(self, caller: Caller) -> int:
        result = await self.session.execute(
            update(Notification)
            .where(
                Notification.user_id == caller.user_id,
                Notification.is_read.is_(False),
            )
            .values(is_read=True)
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount
