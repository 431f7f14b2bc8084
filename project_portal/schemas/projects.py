"""Schemas for projects and digests."""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import Field

from ..models import ProjectStatus
from .base import PortalBaseModel


class ProjectResponse(PortalBaseModel):
    id: UUID
    name: str
    description: str | None = None
    client_id: UUID
    status: ProjectStatus
    created_by: UUID
    budget: Decimal | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None
    created_at: datetime
    updated_at: datetime | None = None


class CreateProjectRequest(PortalBaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    client_id: UUID
    description: str | None = None
    status: ProjectStatus = ProjectStatus.PLANNING
    budget: Decimal | None = Field(None, ge=0)
    start_date: datetime | None = None
    end_date: datetime | None = None


class UpdateProjectRequest(PortalBaseModel):
    """Partial update; omitted fields are left unchanged."""

    name: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None
    status: ProjectStatus | None = None
    budget: Decimal | None = Field(None, ge=0)
    start_date: datetime | None = None
    end_date: datetime | None = None


class DigestResponse(PortalBaseModel):
    sent: bool
    summary: str | None = None
