"""SQLAlchemy ORM Models for Project Portal."""

from .base import Base, CreatedAtMixin, TimestampMixin, UUIDMixin, utcnow
from .models import (
    # Enums
    ApprovalStatus,
    DocumentType,
    NotificationType,
    ProjectStatus,
    UserRole,
    # Users
    User,
    UserProfile,
    # Projects & artifacts
    AdditionalWork,
    Document,
    Milestone,
    Photo,
    Project,
    ProjectNote,
    # Notifications
    Notification,
    # Audit
    AuditLog,
    AuditLogImmutableError,
)

__all__ = [
    # Base
    "Base",
    "UUIDMixin",
    "CreatedAtMixin",
    "TimestampMixin",
    "utcnow",
    # Enums
    "UserRole",
    "ProjectStatus",
    "DocumentType",
    "ApprovalStatus",
    "NotificationType",
    # Users
    "User",
    "UserProfile",
    # Projects & artifacts
    "Project",
    "Document",
    "Photo",
    "ProjectNote",
    "Milestone",
    "AdditionalWork",
    # Notifications
    "Notification",
    # Audit
    "AuditLog",
    "AuditLogImmutableError",
]
