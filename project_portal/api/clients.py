"""API routes for client accounts (admin only)."""

from uuid import UUID

from fastapi import APIRouter, status

from ..schemas import ClientResponse, InviteClientRequest, ProfileResponse, SetActiveRequest
from .deps import CallerDep, IdentityServiceDep

router = APIRouter(prefix="/clients", tags=["clients"])


@router.get("", response_model=list[ClientResponse])
async def list_clients(caller: CallerDep, identity: IdentityServiceDep):
    rows = await identity.list_clients(caller)
    return [
        ClientResponse(
            user_id=user.id,
            email=user.email,
            first_name=profile.first_name,
            last_name=profile.last_name,
            company=profile.company,
            phone=profile.phone,
            is_active=profile.is_active,
        )
        for user, profile in rows
    ]


@router.post("/invite", response_model=ClientResponse, status_code=status.HTTP_201_CREATED)
async def invite_client(
    request: InviteClientRequest,
    caller: CallerDep,
    identity: IdentityServiceDep,
):
    """Create a client account and email an invitation (best effort)."""
    user, profile = await identity.invite_client(
        caller,
        email=request.email,
        first_name=request.first_name,
        last_name=request.last_name,
        company=request.company,
        phone=request.phone,
    )
    return ClientResponse(
        user_id=user.id,
        email=user.email,
        first_name=profile.first_name,
        last_name=profile.last_name,
        company=profile.company,
        phone=profile.phone,
        is_active=profile.is_active,
    )


@router.put("/{user_id}/active", response_model=ProfileResponse)
async def set_active(
    user_id: UUID,
    request: SetActiveRequest,
    caller: CallerDep,
    identity: IdentityServiceDep,
):
    profile = await identity.set_profile_active(caller, user_id, request.is_active)
    return ProfileResponse.model_validate(profile)
