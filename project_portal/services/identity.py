"""
Identity & Role Resolver.

Turns an authenticated user id into a `Caller` (id + role), manages the
onboarding profile, and answers the role lookups the rest of the engine
needs (admin recipients, client listing).

Role rules:
- A self-registered user always onboards as a client, whatever role the
  request asks for. Only invited users (email_verified) keep the requested
  role.
- Changing the role of an existing profile requires that profile to
  already be an admin.
"""

import logging
from dataclasses import dataclass
from typing import Sequence
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import get_settings
from ..models import User, UserProfile, UserRole
from .access import Caller, require_admin
from .audit import record_audit
from .email import EmailSender, build_invite_email, get_email_sender
from .errors import (
    AccessDeniedError,
    ConflictingStateError,
    NotFoundError,
    ProfileMissingError,
    UnauthenticatedError,
)

logger = logging.getLogger(__name__)


@dataclass
class ProfileInput:
    first_name: str
    last_name: str
    role: UserRole | None = None
    company: str | None = None
    phone: str | None = None


class IdentityService:
    """Resolves callers and manages user profiles."""

    def __init__(self, session: AsyncSession, email_sender: EmailSender | None = None):
        self.session = session
        self._email_sender = email_sender

    @property
    def email_sender(self) -> EmailSender:
        if self._email_sender is None:
            self._email_sender = get_email_sender()
        return self._email_sender

    # =========================================================================
    # CALLER RESOLUTION
    # =========================================================================

    async def resolve_caller(self, user_id: UUID | None) -> Caller:
        """Resolve the caller's role; raises before any write can happen."""
        if user_id is None:
            raise UnauthenticatedError()

        profile = await self._get_profile(user_id)
        if profile is None:
            raise ProfileMissingError()
        if not profile.is_active:
            raise AccessDeniedError("Account is deactivated")

        return Caller(user_id=user_id, role=profile.role, profile=profile)

    async def get_current_user(
        self,
        user_id: UUID | None,
    ) -> tuple[User, UserProfile | None]:
        """User and (possibly missing) profile, for onboarding screens."""
        if user_id is None:
            raise UnauthenticatedError()

        user = await self.session.get(User, user_id)
        if user is None:
            raise UnauthenticatedError("User not found")

        return user, await self._get_profile(user_id)

    # =========================================================================
    # PROFILE MANAGEMENT
    # =========================================================================

    async def create_or_update_profile(
        self,
        user_id: UUID | None,
        data: ProfileInput,
    ) -> UserProfile:
        user, profile = await self.get_current_user(user_id)

        if profile is None:
            # Step 1: new profile, role forced to client for self-registration
            requested = data.role or UserRole.CLIENT
            role = requested if user.email_verified else UserRole.CLIENT
            if role != requested:
                logger.warning(
                    f"Self-registered user {user.id} requested role {requested.value}, "
                    "assigned client"
                )

            profile = UserProfile(
                user_id=user.id,
                role=role,
                first_name=data.first_name,
                last_name=data.last_name,
                company=data.company,
                phone=data.phone,
                is_active=True,
            )
            self.session.add(profile)
            await self.session.flush()

            record_audit(
                self.session,
                actor_id=user.id,
                action="profile_created",
                entity_type="user_profile",
                entity_id=profile.id,
                details={"role": role.value},
            )
            return profile

        # Step 2: existing profile, deactivated accounts cannot edit it
        if not profile.is_active:
            raise AccessDeniedError("Account is deactivated")

        # Step 3: guard role changes
        if data.role is not None and data.role != profile.role:
            if profile.role != UserRole.ADMIN:
                raise AccessDeniedError("Only admins can change user roles")
            profile.role = data.role

        profile.first_name = data.first_name
        profile.last_name = data.last_name
        profile.company = data.company
        profile.phone = data.phone
        await self.session.flush()

        record_audit(
            self.session,
            actor_id=user.id,
            action="profile_updated",
            entity_type="user_profile",
            entity_id=profile.id,
        )
        return profile

    async def set_profile_active(
        self,
        caller: Caller,
        user_id: UUID,
        is_active: bool,
    ) -> UserProfile:
        """Activate or deactivate a user (admin only)."""
        require_admin(caller)
        if user_id == caller.user_id and not is_active:
            raise ConflictingStateError("Admins cannot deactivate themselves")

        profile = await self._get_profile(user_id)
        if profile is None:
            raise NotFoundError(f"User {user_id} has no profile")

        profile.is_active = is_active
        await self.session.flush()

        record_audit(
            self.session,
            actor_id=caller.user_id,
            action="user_activated" if is_active else "user_deactivated",
            entity_type="user_profile",
            entity_id=profile.id,
        )
        return profile

    # =========================================================================
    # ROLE LOOKUPS
    # =========================================================================

    async def admin_recipients(self) -> list[UUID]:
        """Ids of every active admin (indexed lookup on role)."""
        result = await self.session.execute(
            select(UserProfile.user_id).where(
                UserProfile.role == UserRole.ADMIN,
                UserProfile.is_active.is_(True),
            )
        )
        return list(result.scalars().all())

    async def list_clients(self, caller: Caller) -> Sequence[tuple[User, UserProfile]]:
        require_admin(caller)
        result = await self.session.execute(
            select(User, UserProfile)
            .join(UserProfile, UserProfile.user_id == User.id)
            .where(UserProfile.role == UserRole.CLIENT)
            .order_by(UserProfile.last_name, UserProfile.first_name)
        )
        return [(user, profile) for user, profile in result.all()]

    async def get_user_email(self, user_id: UUID) -> str | None:
        result = await self.session.execute(select(User.email).where(User.id == user_id))
        return result.scalar_one_or_none()

    # =========================================================================
    # INVITATIONS
    # =========================================================================

    async def invite_client(
        self,
        caller: Caller,
        email: str,
        first_name: str,
        last_name: str,
        company: str | None = None,
        phone: str | None = None,
    ) -> tuple[User, UserProfile]:
        """
        Create a client account on the admin's behalf.

        The account exists even if the invitation email cannot be delivered;
        the failure is logged and the admin can resend.
        """
        require_admin(caller)

        email = email.strip().lower()
        existing = await self.session.execute(select(User.id).where(User.email == email))
        if existing.scalar_one_or_none() is not None:
            raise ConflictingStateError("A user with this email already exists")

        user = User(email=email, email_verified=True)
        self.session.add(user)
        await self.session.flush()

        profile = UserProfile(
            user_id=user.id,
            role=UserRole.CLIENT,
            first_name=first_name,
            last_name=last_name,
            company=company,
            phone=phone,
            is_active=True,
        )
        self.session.add(profile)
        await self.session.flush()

        record_audit(
            self.session,
            actor_id=caller.user_id,
            action="client_invited",
            entity_type="user",
            entity_id=user.id,
            details={"email": email},
        )

        inviter = caller.profile.full_name if caller.profile else None
        message = build_invite_email(first_name, invited_by=inviter)
        try:
            sent, error = await self.email_sender.send(
                to=email,
                subject=message.subject,
                html_body=message.html_body,
                reply_to=get_settings().email_reply_to,
                idempotency_key=f"invite/{user.id}",
            )
            if not sent:
                logger.error(f"Invitation email to {email} failed: {error}")
        except Exception as e:
            logger.error(f"Invitation email to {email} failed: {e}")

        return user, profile

    async def _get_profile(self, user_id: UUID) -> UserProfile | None:
        result = await self.session.execute(
            select(UserProfile).where(UserProfile.user_id == user_id)
        )
        return result.scalar_one_or_none()
