"""
Approval State Machine.

    pending ──approve──▶ approved
       │
       └────decline───▶ declined

Both outcomes are terminal. A second decision on the same artifact is
rejected with ConflictingStateError and the recorded outcome is left
untouched. The transition itself is a conditional UPDATE guarded on
`status = 'pending'`, so of two concurrent decisions at most one matches.

Only the project's own client may decide. Every admin is told about the
outcome.
"""

import logging
from dataclasses import dataclass
from typing import Union
from uuid import UUID

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from ..models import AdditionalWork, ApprovalStatus, Document, NotificationType, utcnow
from .access import Caller, OpClass, authorize, get_project_or_raise
from .audit import record_audit
from .errors import ConflictingStateError, NotFoundError
from .notifications import NotificationService

logger = logging.getLogger(__name__)

Approvable = Union[Document, AdditionalWork]


@dataclass(frozen=True)
class ApprovalTarget:
    """Column layout of an approval-bearing entity."""
    label: str
    noun: str
    entity_type: str
    status_attr: str
    notes_attr: str


APPROVAL_TARGETS: dict[type, ApprovalTarget] = {
    Document: ApprovalTarget(
        label="Document",
        noun="Document",
        entity_type="document",
        status_attr="approval_status",
        notes_attr="approval_notes",
    ),
    AdditionalWork: ApprovalTarget(
        label="Additional Work",
        noun="Additional work",
        entity_type="additional_work",
        status_attr="status",
        notes_attr="client_notes",
    ),
}

TERMINAL_STATES = (ApprovalStatus.APPROVED, ApprovalStatus.DECLINED)


class ApprovalService:
    """Applies client decisions to approval-bearing artifacts."""

    def __init__(
        self,
        session: AsyncSession,
        notifications: NotificationService | None = None,
    ):
        self.session = session
        self.notifications = notifications or NotificationService(session)

    async def transition_approval(
        self,
        caller: Caller,
        model: type[Approvable],
        artifact_id: UUID,
        decision: ApprovalStatus,
        notes: str | None = None,
    ) -> Approvable:
        """
        Record the client's decision on a pending artifact.

        Raises:
            NotFoundError: artifact or its project is missing, or hidden from the client
            AccessDeniedError: caller is not the project's client
            ConflictingStateError: nothing pending to decide
        """
        target = APPROVAL_TARGETS[model]
        if decision not in TERMINAL_STATES:
            raise ConflictingStateError(f"Cannot transition to {decision.value}")

        # Step 1: resolve and authorize
        artifact = await self.session.get(model, artifact_id)
        if artifact is None:
            raise NotFoundError(f"{target.label} not found")

        project = await get_project_or_raise(self.session, artifact.project_id)
        authorize(caller, project, OpClass.WRITE_CLIENT_OF_OWN)

        if not artifact.is_visible:
            raise NotFoundError(f"{target.label} not found")

        # Step 2: state check
        current = getattr(artifact, target.status_attr)
        if current is None:
            raise ConflictingStateError(f"{target.label} does not require approval")
        if current != ApprovalStatus.PENDING:
            raise ConflictingStateError(
                f"{target.label} has already been {ApprovalStatus(current).value}"
            )

        # Step 3: one-shot transition
        status_col = getattr(model, target.status_attr)
        result = await self.session.execute(
            update(model)
            .where(model.id == artifact_id, status_col == ApprovalStatus.PENDING)
            .values({
                target.status_attr: decision,
                "approved_by": caller.user_id,
                "approved_at": utcnow(),
                target.notes_attr: notes,
            })
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise ConflictingStateError(f"{target.label} has already been decided")

        await self.session.refresh(artifact)

        # Step 4: audit
        record_audit(
            self.session,
            actor_id=caller.user_id,
            action=f"{target.entity_type}_{decision.value}",
            entity_type=target.entity_type,
            entity_id=artifact.id,
            project_id=project.id,
            details=notes,
        )

        # Step 5: tell every admin
        delivered = await self.notifications.broadcast_to_admins(
            project,
            NotificationType.APPROVAL_COMPLETED,
            title=f"{target.label} {decision.value}",
            message=f'{target.noun} "{artifact.title}" has been {decision.value} by the client.',
            actor_id=caller.user_id,
        )
        logger.info(
            f"{target.label} {artifact.id} {decision.value} by {caller.user_id}; "
            f"{delivered} admin(s) notified"
        )
        return artifact

    async def decide_document(
        self,
        caller: Caller,
        document_id: UUID,
        decision: ApprovalStatus,
        notes: str | None = None,
    ) -> Document:
        return await self.transition_approval(caller, Document, document_id, decision, notes)

    async def decide_additional_work(
        self,
        caller: Caller,
        work_id: UUID,
        decision: ApprovalStatus,
        notes: str | None = None,
    ) -> AdditionalWork:
        return await self.transition_approval(caller, AdditionalWork, work_id, decision, notes)
