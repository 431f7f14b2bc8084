"""Pydantic schemas for the Project Portal API."""

from .artifacts import (
    AdditionalWorkResponse,
    ApprovalDecisionRequest,
    ArtifactResponse,
    CreateAdditionalWorkRequest,
    CreateDocumentRequest,
    CreateMilestoneRequest,
    CreateNoteRequest,
    CreatePhotoRequest,
    DocumentResponse,
    MilestoneResponse,
    NoteResponse,
    PhotoResponse,
    UpdateMilestoneRequest,
    UpdateNoteRequest,
    UploadUrlResponse,
    VisibilityRequest,
)
from .audit import AuditLogEntry, AuditLogResponse, AuditSummaryResponse
from .base import ErrorDetail, ErrorResponse, PaginatedResponse, PortalBaseModel, UserRef
from .notifications import MarkAllReadResponse, NotificationResponse, UnreadCountResponse
from .projects import CreateProjectRequest, DigestResponse, ProjectResponse, UpdateProjectRequest
from .users import (
    ClientResponse,
    CurrentUserResponse,
    InviteClientRequest,
    ProfileResponse,
    ProfileUpdateRequest,
    SetActiveRequest,
)

__all__ = [
    # Base
    "PortalBaseModel",
    "PaginatedResponse",
    "ErrorDetail",
    "ErrorResponse",
    "UserRef",
    # Users
    "CurrentUserResponse",
    "ProfileResponse",
    "ProfileUpdateRequest",
    "ClientResponse",
    "InviteClientRequest",
    "SetActiveRequest",
    # Projects
    "ProjectResponse",
    "CreateProjectRequest",
    "UpdateProjectRequest",
    "DigestResponse",
    # Artifacts
    "ArtifactResponse",
    "DocumentResponse",
    "PhotoResponse",
    "NoteResponse",
    "MilestoneResponse",
    "AdditionalWorkResponse",
    "CreateDocumentRequest",
    "CreatePhotoRequest",
    "CreateNoteRequest",
    "UpdateNoteRequest",
    "CreateMilestoneRequest",
    "UpdateMilestoneRequest",
    "CreateAdditionalWorkRequest",
    "VisibilityRequest",
    "ApprovalDecisionRequest",
    "UploadUrlResponse",
    # Notifications
    "NotificationResponse",
    "UnreadCountResponse",
    "MarkAllReadResponse",
    # Audit
    "AuditLogEntry",
    "AuditLogResponse",
    "AuditSummaryResponse",
]
