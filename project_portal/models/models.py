"""SQLAlchemy ORM Models for Project Portal.

Column types are kept portable (Uuid, DateTime(timezone=True), Text) so the
same metadata runs on PostgreSQL in production and SQLite in tests.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum as PyEnum
from uuid import UUID

from sqlalchemy import (
    Boolean,
    Enum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    event,
)
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, CreatedAtMixin, TimestampMixin, UUIDMixin


def _enum_values(enum_cls: type[PyEnum]) -> list[str]:
    return [e.value for e in enum_cls]


# =============================================================================
# ENUMS
# =============================================================================


class UserRole(str, PyEnum):
    ADMIN = "admin"
    CLIENT = "client"


class ProjectStatus(str, PyEnum):
    PLANNING = "planning"
    IN_PROGRESS = "in_progress"
    REVIEW = "review"
    COMPLETED = "completed"
    ON_HOLD = "on_hold"


class DocumentType(str, PyEnum):
    QUOTE = "quote"
    INVOICE = "invoice"
    CONTRACT = "contract"
    OTHER = "other"


class ApprovalStatus(str, PyEnum):
    """Approval lifecycle. APPROVED and DECLINED are terminal."""
    PENDING = "pending"
    APPROVED = "approved"
    DECLINED = "declined"


class NotificationType(str, PyEnum):
    DOCUMENT_UPLOADED = "document_uploaded"
    PHOTO_UPLOADED = "photo_uploaded"
    NOTE_ADDED = "note_added"
    APPROVAL_REQUESTED = "approval_requested"
    APPROVAL_COMPLETED = "approval_completed"
    PROJECT_UPDATED = "project_updated"  # Also the digest high-water mark
    ADDITIONAL_WORK_REQUESTED = "additional_work_requested"


# =============================================================================
# USERS & PROFILES
# =============================================================================


class User(Base, UUIDMixin, CreatedAtMixin):
    """Authenticated principal. Credentials live with the auth provider."""

    __tablename__ = "users"

    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    # True for users created through an admin invitation
    email_verified: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    def __repr__(self) -> str:
        return f"<User {self.email}>"


class UserProfile(Base, UUIDMixin, TimestampMixin):
    """Role-bearing profile, one per user."""

    __tablename__ = "user_profiles"

    user_id: Mapped[UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    role: Mapped[UserRole] = mapped_column(
        Enum(UserRole, name="user_role", values_callable=_enum_values),
        nullable=False,
    )
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    company: Mapped[str | None] = mapped_column(String(255))
    phone: Mapped[str | None] = mapped_column(String(50))
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    __table_args__ = (
        Index("idx_user_profiles_role", "role"),
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


# =============================================================================
# PROJECTS
# =============================================================================


class Project(Base, UUIDMixin, TimestampMixin):
    """A unit of work owned by exactly one client."""

    __tablename__ = "projects"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    client_id: Mapped[UUID] = mapped_column(
        ForeignKey("users.id", ondelete="RESTRICT"), nullable=False
    )
    status: Mapped[ProjectStatus] = mapped_column(
        Enum(ProjectStatus, name="project_status", values_callable=_enum_values),
        default=ProjectStatus.PLANNING,
        nullable=False,
    )
    created_by: Mapped[UUID] = mapped_column(ForeignKey("users.id"), nullable=False)
    budget: Mapped[Decimal | None] = mapped_column(Numeric(12, 2))
    start_date: Mapped[datetime | None] = mapped_column()
    end_date: Mapped[datetime | None] = mapped_column()

    __table_args__ = (
        Index("idx_projects_client", "client_id"),
        Index("idx_projects_status", "status"),
    )

    def __repr__(self) -> str:
        return f"<Project {self.name}>"


# =============================================================================
# ARTIFACTS
# =============================================================================


class Document(Base, UUIDMixin, CreatedAtMixin):
    """Uploaded file, optionally requiring client approval."""

    __tablename__ = "documents"

    project_id: Mapped[UUID] = mapped_column(
        ForeignKey("projects.id", ondelete="CASCADE"), nullable=False
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    doc_type: Mapped[DocumentType] = mapped_column(
        Enum(DocumentType, name="document_type", values_callable=_enum_values),
        nullable=False,
    )
    file_id: Mapped[str] = mapped_column(String(255), nullable=False)
    file_name: Mapped[str] = mapped_column(String(255), nullable=False)
    file_size: Mapped[int] = mapped_column(Integer, nullable=False)
    uploaded_by: Mapped[UUID] = mapped_column(ForeignKey("users.id"), nullable=False)
    is_visible: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # Approval (approval_status is set to pending iff approval was required at upload)
    requires_approval: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    approval_status: Mapped[ApprovalStatus | None] = mapped_column(
        Enum(ApprovalStatus, name="approval_status", values_callable=_enum_values),
    )
    approved_by: Mapped[UUID | None] = mapped_column(ForeignKey("users.id"))
    approved_at: Mapped[datetime | None] = mapped_column()
    approval_notes: Mapped[str | None] = mapped_column(Text)

    __table_args__ = (
        Index("idx_documents_project", "project_id"),
        Index("idx_documents_project_created", "project_id", "created_at"),
    )


class Photo(Base, UUIDMixin, CreatedAtMixin):
    __tablename__ = "photos"

    project_id: Mapped[UUID] = mapped_column(
        ForeignKey("projects.id", ondelete="CASCADE"), nullable=False
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    caption: Mapped[str | None] = mapped_column(Text)
    file_id: Mapped[str] = mapped_column(String(255), nullable=False)
    file_name: Mapped[str] = mapped_column(String(255), nullable=False)
    category: Mapped[str | None] = mapped_column(String(100))
    uploaded_by: Mapped[UUID] = mapped_column(ForeignKey("users.id"), nullable=False)
    is_visible: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    __table_args__ = (
        Index("idx_photos_project", "project_id"),
        Index("idx_photos_project_created", "project_id", "created_at"),
    )


class ProjectNote(Base, UUIDMixin, CreatedAtMixin):
    __tablename__ = "project_notes"

    project_id: Mapped[UUID] = mapped_column(
        ForeignKey("projects.id", ondelete="CASCADE"), nullable=False
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)
    created_by: Mapped[UUID] = mapped_column(ForeignKey("users.id"), nullable=False)
    is_visible: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    is_pinned: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    __table_args__ = (
        Index("idx_project_notes_project", "project_id"),
    )


class Milestone(Base, UUIDMixin, CreatedAtMixin):
    __tablename__ = "milestones"

    project_id: Mapped[UUID] = mapped_column(
        ForeignKey("projects.id", ondelete="CASCADE"), nullable=False
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    due_date: Mapped[datetime | None] = mapped_column()
    is_completed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    completed_at: Mapped[datetime | None] = mapped_column()
    order: Mapped[int] = mapped_column("sort_order", Integer, nullable=False)
    created_by: Mapped[UUID] = mapped_column(ForeignKey("users.id"), nullable=False)
    is_visible: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    __table_args__ = (
        Index("idx_milestones_project_order", "project_id", "sort_order"),
    )


class AdditionalWork(Base, UUIDMixin, CreatedAtMixin):
    """Priced proposal for work outside the original scope."""

    __tablename__ = "additional_work"

    project_id: Mapped[UUID] = mapped_column(
        ForeignKey("projects.id", ondelete="CASCADE"), nullable=False
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    file_id: Mapped[str | None] = mapped_column(String(255))
    file_name: Mapped[str | None] = mapped_column(String(255))
    created_by: Mapped[UUID] = mapped_column(ForeignKey("users.id"), nullable=False)
    is_visible: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    status: Mapped[ApprovalStatus] = mapped_column(
        Enum(ApprovalStatus, name="approval_status", values_callable=_enum_values),
        default=ApprovalStatus.PENDING,
        nullable=False,
    )
    approved_by: Mapped[UUID | None] = mapped_column(ForeignKey("users.id"))
    approved_at: Mapped[datetime | None] = mapped_column()
    client_notes: Mapped[str | None] = mapped_column(Text)

    __table_args__ = (
        Index("idx_additional_work_project", "project_id"),
    )


# =============================================================================
# NOTIFICATIONS
# =============================================================================


class Notification(Base, UUIDMixin, CreatedAtMixin):
    """In-app notification. Only is_read and email_sent change after insert."""

    __tablename__ = "notifications"

    user_id: Mapped[UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    project_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("projects.id", ondelete="CASCADE")
    )
    type: Mapped[NotificationType] = mapped_column(
        Enum(NotificationType, name="notification_type", values_callable=_enum_values),
        nullable=False,
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    is_read: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    email_sent: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    __table_args__ = (
        Index("idx_notifications_user_created", "user_id", "created_at"),
        Index(
            "idx_notifications_digest_mark",
            "user_id", "project_id", "type", "created_at",
        ),
    )


# =============================================================================
# AUDIT LOG (append-only)
# =============================================================================


class AuditLogImmutableError(Exception):
    """Raised when code attempts to modify or delete an audit entry."""
    pass


class AuditLog(Base, UUIDMixin, CreatedAtMixin):
    """
    Append-only audit trail.

    Rows are only ever inserted; the mapper listeners below reject UPDATE
    and DELETE issued through the ORM unit of work.
    """

    __tablename__ = "audit_logs"

    user_id: Mapped[UUID] = mapped_column(ForeignKey("users.id"), nullable=False)
    project_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("projects.id", ondelete="SET NULL")
    )
    action: Mapped[str] = mapped_column(String(100), nullable=False)
    entity_type: Mapped[str] = mapped_column(String(50), nullable=False)
    entity_id: Mapped[str] = mapped_column(String(64), nullable=False)
    details: Mapped[str | None] = mapped_column(Text)
    ip_address: Mapped[str | None] = mapped_column(String(64))

    __table_args__ = (
        Index("idx_audit_logs_project_created", "project_id", "created_at"),
        Index("idx_audit_logs_user_created", "user_id", "created_at"),
        Index("idx_audit_logs_entity", "entity_type", "entity_id"),
    )


@event.listens_for(AuditLog, "before_update")
def _reject_audit_update(mapper, connection, target: AuditLog) -> None:
    raise AuditLogImmutableError(f"Audit entry {target.id} cannot be modified")


@event.listens_for(AuditLog, "before_delete")
def _reject_audit_delete(mapper, connection, target: AuditLog) -> None:
    raise AuditLogImmutableError(f"Audit entry {target.id} cannot be deleted")
