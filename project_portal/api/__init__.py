"""API routes for Project Portal."""

from fastapi import APIRouter

from .artifacts import router as artifacts_router
from .audit import router as audit_router
from .clients import router as clients_router
from .projects import router as projects_router
from .users import router as users_router

# Main API router
api_router = APIRouter()

# Current user (/me/*)
api_router.include_router(users_router)

# Admin: client accounts
api_router.include_router(clients_router)

# Projects, then their artifacts
api_router.include_router(projects_router)
api_router.include_router(artifacts_router)

api_router.include_router(audit_router)

__all__ = ["api_router"]
