"""Schemas for documents, photos, notes, milestones and additional work."""

from datetime import datetime
from decimal import Decimal
from typing import Literal
from uuid import UUID

from pydantic import Field

from ..models import ApprovalStatus, DocumentType
from ..services.artifacts import ArtifactView
from .base import PortalBaseModel, UserRef


# =============================================================================
# RESPONSES
# =============================================================================


class ArtifactResponse(PortalBaseModel):
    """Fields shared by every artifact, plus post-filter enrichment."""

    id: UUID
    project_id: UUID
    is_visible: bool
    created_at: datetime
    creator: UserRef | None = None

    @classmethod
    def from_view(cls, view: ArtifactView) -> "ArtifactResponse":
        response = cls.model_validate(view.record)
        if view.creator is not None:
            response.creator = UserRef(
                id=view.creator.user_id,
                name=view.creator.name,
                email=view.creator.email,
            )
        if "file_url" in cls.model_fields:
            response.file_url = view.file_url
        return response


class DocumentResponse(ArtifactResponse):
    title: str
    description: str | None = None
    doc_type: DocumentType
    file_id: str
    file_name: str
    file_size: int
    file_url: str | None = None
    uploaded_by: UUID
    requires_approval: bool
    approval_status: ApprovalStatus | None = None
    approved_by: UUID | None = None
    approved_at: datetime | None = None
    approval_notes: str | None = None


class PhotoResponse(ArtifactResponse):
    title: str
    caption: str | None = None
    category: str | None = None
    file_id: str
    file_name: str
    file_url: str | None = None
    uploaded_by: UUID


class NoteResponse(ArtifactResponse):
    content: str
    created_by: UUID
    is_pinned: bool


class MilestoneResponse(ArtifactResponse):
    title: str
    description: str | None = None
    due_date: datetime | None = None
    is_completed: bool
    completed_at: datetime | None = None
    order: int
    created_by: UUID


class AdditionalWorkResponse(ArtifactResponse):
    title: str
    description: str
    price: Decimal
    file_id: str | None = None
    file_name: str | None = None
    file_url: str | None = None
    created_by: UUID
    status: ApprovalStatus
    approved_by: UUID | None = None
    approved_at: datetime | None = None
    client_notes: str | None = None


# =============================================================================
# REQUESTS
# =============================================================================


class CreateDocumentRequest(PortalBaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    doc_type: DocumentType = DocumentType.OTHER
    file_id: str = Field(..., min_length=1)
    file_name: str = Field(..., min_length=1, max_length=255)
    file_size: int = Field(..., ge=0)
    is_visible: bool = True
    requires_approval: bool = False


class CreatePhotoRequest(PortalBaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    caption: str | None = None
    category: str | None = Field(None, max_length=100)
    file_id: str = Field(..., min_length=1)
    file_name: str = Field(..., min_length=1, max_length=255)
    is_visible: bool = True


class CreateNoteRequest(PortalBaseModel):
    content: str = Field(..., min_length=1)
    is_visible: bool = True
    is_pinned: bool = False


class UpdateNoteRequest(PortalBaseModel):
    content: str | None = Field(None, min_length=1)
    is_visible: bool | None = None
    is_pinned: bool | None = None


class CreateMilestoneRequest(PortalBaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    due_date: datetime | None = None
    is_visible: bool = True


class UpdateMilestoneRequest(PortalBaseModel):
    title: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None
    due_date: datetime | None = None
    is_completed: bool | None = None
    is_visible: bool | None = None


class CreateAdditionalWorkRequest(PortalBaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: str = Field(..., min_length=1)
    price: Decimal = Field(..., ge=0)
    file_id: str | None = None
    file_name: str | None = None
    is_visible: bool = True


class VisibilityRequest(PortalBaseModel):
    is_visible: bool


class ApprovalDecisionRequest(PortalBaseModel):
    status: Literal["approved", "declined"]
    notes: str | None = Field(None, max_length=2000)


class UploadUrlResponse(PortalBaseModel):
    file_id: str
    upload_url: str
    expires_at: int
