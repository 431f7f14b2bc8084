"""
Tests for the approval state machine.

These tests verify:
1. Only the project's client can decide, exactly once
2. Decisions record who, when and the client's notes
3. Every admin is notified of the outcome
4. Artifacts without a pending approval cannot be decided
"""

from decimal import Decimal

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from project_portal.models import (
    ApprovalStatus,
    AuditLog,
    DocumentType,
    Notification,
    NotificationType,
)
from project_portal.services import (
    AccessDeniedError,
    AdditionalWorkInput,
    ApprovalService,
    ArtifactService,
    Caller,
    ConflictingStateError,
    DocumentInput,
    NotFoundError,
)
from project_portal.services.notifications import NotificationService


@pytest.fixture
def notifications(session: AsyncSession, email_sender) -> NotificationService:
    return NotificationService(session, email_sender=email_sender, auto_emails_enabled=False)


@pytest.fixture
def artifacts(session: AsyncSession, notifications, storage) -> ArtifactService:
    return ArtifactService(session, notifications=notifications, storage=storage)


@pytest.fixture
def approvals(session: AsyncSession, notifications) -> ApprovalService:
    return ApprovalService(session, notifications=notifications)


@pytest.fixture
async def quote(artifacts: ArtifactService, admin: Caller, project):
    return await artifacts.upload_document(
        admin,
        project.id,
        DocumentInput(
            title="Kitchen quote",
            doc_type=DocumentType.QUOTE,
            file_id="f-quote",
            file_name="quote.pdf",
            file_size=2048,
            requires_approval=True,
        ),
    )


@pytest.fixture
async def extra_work(artifacts: ArtifactService, admin: Caller, project):
    return await artifacts.create_additional_work(
        admin,
        project.id,
        AdditionalWorkInput(
            title="Extra socket",
            description="Double socket by the window",
            price=Decimal("85.00"),
        ),
    )


async def admin_notifications(session: AsyncSession, admin_id) -> list[Notification]:
    result = await session.execute(
        select(Notification).where(
            Notification.user_id == admin_id,
            Notification.type == NotificationType.APPROVAL_COMPLETED,
        )
    )
    return list(result.scalars().all())


# =============================================================================
# DOCUMENTS
# =============================================================================


class TestDocumentApproval:
    """Tests for deciding on documents."""

    async def test_client_approves_pending_document(
        self,
        session: AsyncSession,
        approvals: ApprovalService,
        client: Caller,
        quote,
    ):
        """Test that approval records status, decider, time and notes."""
        document = await approvals.decide_document(
            client, quote.id, ApprovalStatus.APPROVED, notes="Looks good"
        )

        assert document.approval_status == ApprovalStatus.APPROVED
        assert document.approved_by == client.user_id
        assert document.approved_at is not None
        assert document.approval_notes == "Looks good"

    async def test_second_decision_rejected(
        self,
        approvals: ApprovalService,
        client: Caller,
        quote,
    ):
        """Test that an approved document cannot then be declined."""
        await approvals.decide_document(client, quote.id, ApprovalStatus.APPROVED)

        with pytest.raises(ConflictingStateError) as exc_info:
            await approvals.decide_document(client, quote.id, ApprovalStatus.DECLINED)

        assert exc_info.value.message == "Document has already been approved"
        assert quote.approval_status == ApprovalStatus.APPROVED

    async def test_admin_cannot_decide(self, approvals: ApprovalService, admin: Caller, quote):
        with pytest.raises(AccessDeniedError):
            await approvals.decide_document(admin, quote.id, ApprovalStatus.APPROVED)

        assert quote.approval_status == ApprovalStatus.PENDING

    async def test_other_client_cannot_decide(
        self,
        approvals: ApprovalService,
        other_client: Caller,
        quote,
    ):
        with pytest.raises(AccessDeniedError):
            await approvals.decide_document(other_client, quote.id, ApprovalStatus.APPROVED)

    async def test_document_without_approval(
        self,
        artifacts: ArtifactService,
        approvals: ApprovalService,
        admin: Caller,
        client: Caller,
        project,
    ):
        document = await artifacts.upload_document(
            admin,
            project.id,
            DocumentInput(
                title="Invoice 12",
                doc_type=DocumentType.INVOICE,
                file_id="f-inv",
                file_name="invoice.pdf",
                file_size=100,
            ),
        )
        assert document.approval_status is None

        with pytest.raises(ConflictingStateError) as exc_info:
            await approvals.decide_document(client, document.id, ApprovalStatus.APPROVED)

        assert exc_info.value.message == "Document does not require approval"

    async def test_hidden_document_missing_for_client(
        self,
        artifacts: ArtifactService,
        approvals: ApprovalService,
        admin: Caller,
        client: Caller,
        quote,
    ):
        await artifacts.set_visibility(admin, type(quote), quote.id, False)

        with pytest.raises(NotFoundError):
            await approvals.decide_document(client, quote.id, ApprovalStatus.APPROVED)

    async def test_admins_notified_and_audited(
        self,
        session: AsyncSession,
        approvals: ApprovalService,
        admin: Caller,
        second_admin: Caller,
        client: Caller,
        quote,
    ):
        """Test that every admin hears about the decision and it is audited."""
        await approvals.decide_document(client, quote.id, ApprovalStatus.APPROVED)
        await session.flush()

        for admin_id in (admin.user_id, second_admin.user_id):
            [notification] = await admin_notifications(session, admin_id)
            assert notification.title == "Document approved"
            assert notification.message == 'Document "Kitchen quote" has been approved by the client.'

        result = await session.execute(
            select(AuditLog).where(AuditLog.action == "document_approved")
        )
        entry = result.scalar_one()
        assert entry.user_id == client.user_id
        assert entry.entity_id == str(quote.id)


# =============================================================================
# ADDITIONAL WORK
# =============================================================================


class TestAdditionalWorkApproval:
    async def test_client_declines(
        self,
        session: AsyncSession,
        approvals: ApprovalService,
        admin: Caller,
        client: Caller,
        extra_work,
    ):
        work = await approvals.decide_additional_work(
            client, extra_work.id, ApprovalStatus.DECLINED, notes="Not needed"
        )
        await session.flush()

        assert work.status == ApprovalStatus.DECLINED
        assert work.client_notes == "Not needed"

        [notification] = await admin_notifications(session, admin.user_id)
        assert notification.title == "Additional Work declined"
        assert notification.message == 'Additional work "Extra socket" has been declined by the client.'

        result = await session.execute(
            select(AuditLog).where(AuditLog.action == "additional_work_declined")
        )
        assert result.scalar_one().entity_id == str(extra_work.id)

    async def test_decided_work_is_final(
        self,
        approvals: ApprovalService,
        client: Caller,
        extra_work,
    ):
        await approvals.decide_additional_work(client, extra_work.id, ApprovalStatus.DECLINED)

        with pytest.raises(ConflictingStateError):
            await approvals.decide_additional_work(client, extra_work.id, ApprovalStatus.APPROVED)

    async def test_cannot_transition_back_to_pending(
        self,
        approvals: ApprovalService,
        client: Caller,
        extra_work,
    ):
        with pytest.raises(ConflictingStateError):
            await approvals.decide_additional_work(client, extra_work.id, ApprovalStatus.PENDING)
