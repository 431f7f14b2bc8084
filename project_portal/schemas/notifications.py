"""Schemas for the notification inbox."""

from datetime import datetime
from uuid import UUID

from ..models import NotificationType
from .base import PortalBaseModel


class NotificationResponse(PortalBaseModel):
    id: UUID
    user_id: UUID
    project_id: UUID | None = None
    type: NotificationType
    title: str
    message: str
    is_read: bool
    email_sent: bool
    created_at: datetime


class UnreadCountResponse(PortalBaseModel):
    unread: int


class MarkAllReadResponse(PortalBaseModel):
    updated: int
