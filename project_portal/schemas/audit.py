"""Pydantic schemas for the audit log."""

from datetime import datetime
from uuid import UUID

from .base import PaginatedResponse, PortalBaseModel


class AuditLogEntry(PortalBaseModel):
    """A single audit log entry."""

    id: UUID
    user_id: UUID
    project_id: UUID | None = None
    action: str
    entity_type: str
    entity_id: str
    details: str | None = None
    created_at: datetime


class AuditLogResponse(PaginatedResponse):
    """Paginated audit log response."""

    items: list[AuditLogEntry]


class AuditSummaryResponse(PortalBaseModel):
    project_id: UUID | None = None
    actions_by_type: dict[str, int]
    total_events: int
