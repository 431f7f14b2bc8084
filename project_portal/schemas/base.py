"""Base schemas and common types for the Project Portal API."""

from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict


# =============================================================================
# BASE SCHEMAS
# =============================================================================


class PortalBaseModel(BaseModel):
    """Base model with common configuration."""

    model_config = ConfigDict(
        from_attributes=True,  # Enable ORM mode
        populate_by_name=True,
        use_enum_values=True,
    )


# =============================================================================
# PAGINATION
# =============================================================================


class PaginatedResponse(PortalBaseModel):
    """Wrapper for paginated responses."""

    items: list[Any]
    total: int
    page: int
    page_size: int
    total_pages: int


# =============================================================================
# ERROR RESPONSES
# =============================================================================


class ErrorDetail(PortalBaseModel):
    """Detailed error information."""

    field: str | None = None
    message: str
    code: str


class ErrorResponse(PortalBaseModel):
    """Standard error response format."""

    error: str
    message: str
    details: list[ErrorDetail] = []


# =============================================================================
# COMMON REFERENCE SCHEMAS
# =============================================================================


class UserRef(PortalBaseModel):
    """Minimal user reference for embedding in responses."""

    id: UUID
    name: str
    email: str | None = None
