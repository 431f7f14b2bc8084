"""Request-scoped dependencies: the resolved caller and service factories."""

from typing import Annotated

from fastapi import Depends

from ..core import CurrentUserIdDep, SessionDep
from ..services import (
    ApprovalService,
    ArtifactService,
    AuditService,
    Caller,
    DigestService,
    EmailSender,
    IdentityService,
    NotificationService,
    ProjectService,
    StorageBackend,
    get_email_sender,
    get_storage_backend,
)


def get_email_sender_dep() -> EmailSender:
    return get_email_sender()


def get_storage_dep() -> StorageBackend:
    return get_storage_backend()


EmailSenderDep = Annotated[EmailSender, Depends(get_email_sender_dep)]
StorageDep = Annotated[StorageBackend, Depends(get_storage_dep)]


def get_identity_service(session: SessionDep, email_sender: EmailSenderDep) -> IdentityService:
    return IdentityService(session, email_sender=email_sender)


IdentityServiceDep = Annotated[IdentityService, Depends(get_identity_service)]


async def get_caller(user_id: CurrentUserIdDep, identity: IdentityServiceDep) -> Caller:
    """Resolve the caller; raises Unauthenticated / ProfileMissing / AccessDenied."""
    return await identity.resolve_caller(user_id)


CallerDep = Annotated[Caller, Depends(get_caller)]


def get_notification_service(session: SessionDep, email_sender: EmailSenderDep) -> NotificationService:
    return NotificationService(session, email_sender=email_sender)


NotificationServiceDep = Annotated[NotificationService, Depends(get_notification_service)]


def get_project_service(session: SessionDep, notifications: NotificationServiceDep) -> ProjectService:
    return ProjectService(session, notifications=notifications)


def get_artifact_service(
    session: SessionDep,
    notifications: NotificationServiceDep,
    storage: StorageDep,
) -> ArtifactService:
    return ArtifactService(session, notifications=notifications, storage=storage)


def get_approval_service(session: SessionDep, notifications: NotificationServiceDep) -> ApprovalService:
    return ApprovalService(session, notifications=notifications)


def get_digest_service(session: SessionDep, email_sender: EmailSenderDep) -> DigestService:
    return DigestService(session, email_sender=email_sender)


def get_audit_service(session: SessionDep) -> AuditService:
    return AuditService(session)


ProjectServiceDep = Annotated[ProjectService, Depends(get_project_service)]
ArtifactServiceDep = Annotated[ArtifactService, Depends(get_artifact_service)]
ApprovalServiceDep = Annotated[ApprovalService, Depends(get_approval_service)]
DigestServiceDep = Annotated[DigestService, Depends(get_digest_service)]
AuditServiceDep = Annotated[AuditService, Depends(get_audit_service)]
