"""API routes for the current user: profile onboarding and notification inbox."""

from uuid import UUID

from fastapi import APIRouter, Query

from ..core import CurrentUserIdDep
from ..models import UserRole
from ..schemas import (
    CurrentUserResponse,
    MarkAllReadResponse,
    NotificationResponse,
    ProfileResponse,
    ProfileUpdateRequest,
    UnreadCountResponse,
)
from ..services import ProfileInput
from .deps import CallerDep, IdentityServiceDep, NotificationServiceDep

router = APIRouter(prefix="/me", tags=["me"])


@router.get("", response_model=CurrentUserResponse)
async def get_me(user_id: CurrentUserIdDep, identity: IdentityServiceDep):
    """The caller's account. `profile` is null until onboarding is complete."""
    user, profile = await identity.get_current_user(user_id)
    return CurrentUserResponse(
        id=user.id,
        email=user.email,
        email_verified=user.email_verified,
        profile=ProfileResponse.model_validate(profile) if profile else None,
    )


@router.put("/profile", response_model=ProfileResponse)
async def put_profile(
    request: ProfileUpdateRequest,
    user_id: CurrentUserIdDep,
    identity: IdentityServiceDep,
):
    """Create or update the caller's profile.

    Self-registered users always onboard as clients; only admins may change
    an existing role.
    """
    profile = await identity.create_or_update_profile(
        user_id,
        ProfileInput(
            first_name=request.first_name,
            last_name=request.last_name,
            role=UserRole(request.role) if request.role else None,
            company=request.company,
            phone=request.phone,
        ),
    )
    return ProfileResponse.model_validate(profile)


@router.get("/notifications", response_model=list[NotificationResponse])
async def list_notifications(
    caller: CallerDep,
    notifications: NotificationServiceDep,
    limit: int = Query(50, ge=1, le=200),
):
    items = await notifications.list_my_notifications(caller, limit=limit)
    return [NotificationResponse.model_validate(n) for n in items]


@router.get("/notifications/unread-count", response_model=UnreadCountResponse)
async def unread_count(caller: CallerDep, notifications: NotificationServiceDep):
    return UnreadCountResponse(unread=await notifications.unread_count(caller))


@router.post("/notifications/{notification_id}/read", response_model=NotificationResponse)
async def mark_read(
    notification_id: UUID,
    caller: CallerDep,
    notifications: NotificationServiceDep,
):
    notification = await notifications.mark_as_read(caller, notification_id)
    return NotificationResponse.model_validate(notification)


@router.post("/notifications/read-all", response_model=MarkAllReadResponse)
async def mark_all_read(caller: CallerDep, notifications: NotificationServiceDep):
    return MarkAllReadResponse(updated=await notifications.mark_all_as_read(caller))
