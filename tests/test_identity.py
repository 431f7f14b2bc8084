"""
Tests for caller resolution, onboarding and invitations.

These tests verify:
1. Missing identity, missing profile and deactivated accounts are rejected
2. Self-registered users cannot choose the admin role
3. Only admins can change roles
4. Invitations create verified client accounts even when email fails
"""

from uuid import uuid4

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from project_portal.models import AuditLog, User, UserRole
from project_portal.services import (
    AccessDeniedError,
    Caller,
    ConflictingStateError,
    IdentityService,
    ProfileInput,
    ProfileMissingError,
    UnauthenticatedError,
)

from .conftest import create_user


@pytest.fixture
def identity(session: AsyncSession, email_sender) -> IdentityService:
    return IdentityService(session, email_sender=email_sender)


# =============================================================================
# CALLER RESOLUTION
# =============================================================================


class TestResolveCaller:
    """Tests for turning a user id into a Caller."""

    async def test_no_identity(self, identity: IdentityService):
        with pytest.raises(UnauthenticatedError):
            await identity.resolve_caller(None)

    async def test_missing_profile(self, session: AsyncSession, identity: IdentityService):
        """Authenticated users without a profile must onboard first."""
        user = await create_user(session, "new@example.test", role=None)

        with pytest.raises(ProfileMissingError) as exc_info:
            await identity.resolve_caller(user.id)

        assert exc_info.value.status_code == 428

    async def test_deactivated_account(self, session: AsyncSession, identity: IdentityService):
        user = await create_user(session, "gone@example.test", is_active=False)

        with pytest.raises(AccessDeniedError) as exc_info:
            await identity.resolve_caller(user.id)

        assert exc_info.value.message == "Account is deactivated"

    async def test_resolves_role(self, identity: IdentityService, admin: Caller):
        caller = await identity.resolve_caller(admin.user_id)

        assert caller.role == UserRole.ADMIN
        assert caller.is_admin
        assert caller.profile is not None


# =============================================================================
# PROFILES
# =============================================================================


class TestProfiles:
    """Tests for onboarding and profile updates."""

    async def test_self_registration_forced_to_client(
        self,
        session: AsyncSession,
        identity: IdentityService,
    ):
        """Test that a self-registered user asking for admin becomes a client."""
        user = await create_user(session, "eve@example.test", role=None, email_verified=False)

        profile = await identity.create_or_update_profile(
            user.id, ProfileInput(first_name="Eve", last_name="Sneaky", role=UserRole.ADMIN)
        )

        assert profile.role == UserRole.CLIENT

    async def test_invited_user_keeps_requested_role(
        self,
        session: AsyncSession,
        identity: IdentityService,
    ):
        user = await create_user(session, "staff@agency.test", role=None, email_verified=True)

        profile = await identity.create_or_update_profile(
            user.id, ProfileInput(first_name="Staff", last_name="Member", role=UserRole.ADMIN)
        )

        assert profile.role == UserRole.ADMIN

    async def test_profile_creation_audited(self, session: AsyncSession, identity: IdentityService):
        user = await create_user(session, "audit@example.test", role=None)

        profile = await identity.create_or_update_profile(
            user.id, ProfileInput(first_name="Ann", last_name="Audit")
        )
        await session.flush()

        result = await session.execute(
            select(AuditLog).where(AuditLog.entity_id == str(profile.id))
        )
        entry = result.scalar_one()
        assert entry.action == "profile_created"
        assert entry.user_id == user.id

    async def test_client_cannot_change_own_role(self, identity: IdentityService, client: Caller):
        with pytest.raises(AccessDeniedError) as exc_info:
            await identity.create_or_update_profile(
                client.user_id,
                ProfileInput(first_name="Casey", last_name="Client", role=UserRole.ADMIN),
            )

        assert exc_info.value.message == "Only admins can change user roles"

    async def test_update_without_role_change(self, identity: IdentityService, client: Caller):
        profile = await identity.create_or_update_profile(
            client.user_id,
            ProfileInput(first_name="Casey", last_name="Renamed", company="Acme"),
        )

        assert profile.last_name == "Renamed"
        assert profile.company == "Acme"
        assert profile.role == UserRole.CLIENT

    async def test_deactivated_account_cannot_edit_profile(
        self,
        session: AsyncSession,
        identity: IdentityService,
    ):
        """Test that a deactivated client's profile stays unchanged."""
        user = await create_user(session, "gone@example.test", is_active=False, last_name="Before")

        with pytest.raises(AccessDeniedError) as exc_info:
            await identity.create_or_update_profile(
                user.id, ProfileInput(first_name="Test", last_name="After")
            )

        assert exc_info.value.message == "Account is deactivated"
        _, profile = await identity.get_current_user(user.id)
        assert profile.last_name == "Before"

    async def test_deactivated_admin_cannot_change_own_role(
        self,
        session: AsyncSession,
        identity: IdentityService,
    ):
        """Test that a deactivated admin cannot demote or promote themselves."""
        user = await create_user(
            session, "retired@agency.test", role=UserRole.ADMIN, email_verified=True, is_active=False
        )

        with pytest.raises(AccessDeniedError) as exc_info:
            await identity.create_or_update_profile(
                user.id, ProfileInput(first_name="Rae", last_name="Retired", role=UserRole.CLIENT)
            )

        assert exc_info.value.message == "Account is deactivated"
        _, profile = await identity.get_current_user(user.id)
        assert profile.role == UserRole.ADMIN

    async def test_unknown_user(self, identity: IdentityService):
        with pytest.raises(UnauthenticatedError):
            await identity.create_or_update_profile(
                uuid4(), ProfileInput(first_name="No", last_name="One")
            )

    async def test_admin_cannot_deactivate_self(self, identity: IdentityService, admin: Caller):
        with pytest.raises(ConflictingStateError):
            await identity.set_profile_active(admin, admin.user_id, False)

    async def test_admin_deactivates_client(
        self,
        identity: IdentityService,
        admin: Caller,
        client: Caller,
    ):
        profile = await identity.set_profile_active(admin, client.user_id, False)

        assert profile.is_active is False
        with pytest.raises(AccessDeniedError):
            await identity.resolve_caller(client.user_id)


# =============================================================================
# ROLE LOOKUPS & INVITATIONS
# =============================================================================


class TestRoleLookups:
    async def test_admin_recipients_only_active_admins(
        self,
        session: AsyncSession,
        identity: IdentityService,
        admin: Caller,
        client: Caller,
    ):
        inactive = await create_user(
            session, "retired@agency.test", role=UserRole.ADMIN, is_active=False
        )

        recipients = await identity.admin_recipients()

        assert admin.user_id in recipients
        assert client.user_id not in recipients
        assert inactive.id not in recipients

    async def test_list_clients_requires_admin(self, identity: IdentityService, client: Caller):
        with pytest.raises(AccessDeniedError):
            await identity.list_clients(client)

    async def test_list_clients(
        self,
        identity: IdentityService,
        admin: Caller,
        client: Caller,
        other_client: Caller,
    ):
        clients = await identity.list_clients(admin)

        ids = {user.id for user, _ in clients}
        assert ids == {client.user_id, other_client.user_id}


class TestInviteClient:
    """Tests for admin-created client accounts."""

    async def test_invite_creates_verified_client(
        self,
        identity: IdentityService,
        admin: Caller,
        email_sender,
    ):
        user, profile = await identity.invite_client(
            admin, "  New.Client@Example.TEST ", "Nina", "New", company="Nina Ltd"
        )

        assert user.email == "new.client@example.test"
        assert user.email_verified is True
        assert profile.role == UserRole.CLIENT
        assert len(email_sender.sent) == 1
        assert email_sender.sent[0]["to"] == "new.client@example.test"

    async def test_duplicate_email_rejected(
        self,
        identity: IdentityService,
        admin: Caller,
        client: Caller,
    ):
        with pytest.raises(ConflictingStateError) as exc_info:
            await identity.invite_client(admin, "client@example.test", "Casey", "Again")

        assert exc_info.value.message == "A user with this email already exists"

    async def test_email_failure_keeps_account(
        self,
        session: AsyncSession,
        identity: IdentityService,
        admin: Caller,
        email_sender,
    ):
        """Test that an undeliverable invitation does not undo the account."""
        email_sender.fail = True

        user, _ = await identity.invite_client(admin, "offline@example.test", "Off", "Line")

        assert await session.get(User, user.id) is not None
        assert email_sender.sent == []

    async def test_client_cannot_invite(self, identity: IdentityService, client: Caller):
        with pytest.raises(AccessDeniedError):
            await identity.invite_client(client, "friend@example.test", "F", "R")
