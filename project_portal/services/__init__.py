"""Business logic services for Project Portal."""

from .access import Caller, OpClass, authorize, can_access, require_admin
from .approvals import ApprovalService
from .artifacts import (
    AdditionalWorkInput,
    ArtifactService,
    ArtifactView,
    DocumentInput,
    MilestoneInput,
    PhotoInput,
)
from .audit import AuditService, record_audit
from .digest import DigestResult, DigestService
from .email import EmailSender, LoggingEmailSender, ResendEmailSender, get_email_sender
from .errors import (
    AccessDeniedError,
    ConflictingStateError,
    ExternalFailureError,
    NotFoundError,
    PortalError,
    ProfileMissingError,
    UnauthenticatedError,
)
from .identity import IdentityService, ProfileInput
from .notifications import NotificationService
from .projects import ProjectInput, ProjectService
from .storage import StorageBackend, UploadHandle, get_storage_backend
from .visibility import filter_visible

__all__ = [
    # Authorization
    "Caller",
    "OpClass",
    "can_access",
    "authorize",
    "require_admin",
    "filter_visible",
    # Errors
    "PortalError",
    "UnauthenticatedError",
    "ProfileMissingError",
    "AccessDeniedError",
    "NotFoundError",
    "ConflictingStateError",
    "ExternalFailureError",
    # Services
    "IdentityService",
    "ProfileInput",
    "ProjectService",
    "ProjectInput",
    "ArtifactService",
    "ArtifactView",
    "DocumentInput",
    "PhotoInput",
    "MilestoneInput",
    "AdditionalWorkInput",
    "ApprovalService",
    "AuditService",
    "record_audit",
    "NotificationService",
    "DigestService",
    "DigestResult",
    # Collaborators
    "EmailSender",
    "ResendEmailSender",
    "LoggingEmailSender",
    "get_email_sender",
    "StorageBackend",
    "UploadHandle",
    "get_storage_backend",
]
