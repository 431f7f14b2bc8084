"""Schemas for users, profiles and client invitations."""

from datetime import datetime
from uuid import UUID

from pydantic import EmailStr, Field

from ..models import UserRole
from .base import PortalBaseModel


class ProfileResponse(PortalBaseModel):
    id: UUID
    user_id: UUID
    role: UserRole
    first_name: str
    last_name: str
    company: str | None = None
    phone: str | None = None
    is_active: bool
    created_at: datetime


class CurrentUserResponse(PortalBaseModel):
    """The caller's account, with the profile if onboarding is complete."""

    id: UUID
    email: str
    email_verified: bool
    profile: ProfileResponse | None = None


class ProfileUpdateRequest(PortalBaseModel):
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    role: UserRole | None = None
    company: str | None = Field(None, max_length=255)
    phone: str | None = Field(None, max_length=50)


class ClientResponse(PortalBaseModel):
    user_id: UUID
    email: str
    first_name: str
    last_name: str
    company: str | None = None
    phone: str | None = None
    is_active: bool


class InviteClientRequest(PortalBaseModel):
    email: EmailStr
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    company: str | None = Field(None, max_length=255)
    phone: str | None = Field(None, max_length=50)


class SetActiveRequest(PortalBaseModel):
    is_active: bool
