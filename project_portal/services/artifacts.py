"""
Artifact services: documents, photos, notes, milestones and additional work.

Every operation follows the same path:
    authorize -> write -> audit -> notify (optional)
and every listing:
    authorize -> fetch -> visibility filter -> enrich survivors
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Generic, TypeVar
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models import (
    AdditionalWork,
    ApprovalStatus,
    Document,
    DocumentType,
    Milestone,
    NotificationType,
    Photo,
    Project,
    ProjectNote,
    utcnow,
)
from .access import Caller, OpClass, authorize, get_project_or_raise, load_project_for
from .audit import record_audit
from .errors import NotFoundError
from .notifications import NotificationService
from .storage import StorageBackend, get_storage_backend
from .visibility import CreatorRef, filter_visible, load_creators, resolve_file_urls

logger = logging.getLogger(__name__)

T = TypeVar("T")


# =============================================================================
# DATA TRANSFER OBJECTS
# =============================================================================


@dataclass
class ArtifactView(Generic[T]):
    """A record that survived the visibility filter, with its enrichment."""
    record: T
    creator: CreatorRef | None = None
    file_url: str | None = None


@dataclass
class DocumentInput:
    title: str
    doc_type: DocumentType
    file_id: str
    file_name: str
    file_size: int
    description: str | None = None
    is_visible: bool = True
    requires_approval: bool = False


@dataclass
class PhotoInput:
    title: str
    file_id: str
    file_name: str
    caption: str | None = None
    category: str | None = None
    is_visible: bool = True


@dataclass
class MilestoneInput:
    title: str
    description: str | None = None
    due_date: datetime | None = None
    is_visible: bool = True


@dataclass
class AdditionalWorkInput:
    title: str
    description: str
    price: Decimal
    file_id: str | None = None
    file_name: str | None = None
    is_visible: bool = True


@dataclass
class ArtifactKind:
    """Per-model metadata used by the shared helpers."""
    label: str
    entity_type: str
    creator_attr: str
    order_by: list[Any] = field(default_factory=list)
    has_files: bool = False


ARTIFACT_KINDS: dict[type, ArtifactKind] = {
    Document: ArtifactKind(
        "Document", "document", "uploaded_by",
        [Document.created_at.desc()], has_files=True,
    ),
    Photo: ArtifactKind(
        "Photo", "photo", "uploaded_by",
        [Photo.created_at.desc()], has_files=True,
    ),
    ProjectNote: ArtifactKind(
        "Note", "note", "created_by",
        [ProjectNote.is_pinned.desc(), ProjectNote.created_at.desc()],
    ),
    Milestone: ArtifactKind(
        "Milestone", "milestone", "created_by",
        [Milestone.order.asc()],
    ),
    AdditionalWork: ArtifactKind(
        "Additional work", "additional_work", "created_by",
        [AdditionalWork.created_at.desc()], has_files=True,
    ),
}


class ArtifactService:
    """CRUD for every project artifact type."""

    def __init__(
        self,
        session: AsyncSession,
        notifications: NotificationService | None = None,
        storage: StorageBackend | None = None,
    ):
        self.session = session
        self.notifications = notifications or NotificationService(session)
        self.storage = storage or get_storage_backend()

    # =========================================================================
    # SHARED HELPERS
    # =========================================================================

    async def list_artifacts(
        self,
        caller: Caller,
        model: type[T],
        project_id: UUID,
        **filters: Any,
    ) -> list[ArtifactView[T]]:
        kind = ARTIFACT_KINDS[model]
        await load_project_for(self.session, caller, project_id, OpClass.READ_OWN)

        query = select(model).where(model.project_id == project_id)
        for name, value in filters.items():
            if value is not None:
                query = query.where(getattr(model, name) == value)
        result = await self.session.execute(query.order_by(*kind.order_by))

        visible = filter_visible(result.scalars().all(), caller.role)

        creators = await load_creators(
            self.session, [getattr(r, kind.creator_attr) for r in visible]
        )
        urls: dict[str, str | None] = {}
        if kind.has_files:
            urls = await resolve_file_urls(self.storage, [r.file_id for r in visible])

        return [
            ArtifactView(
                record=r,
                creator=creators.get(getattr(r, kind.creator_attr)),
                file_url=urls.get(r.file_id) if kind.has_files and r.file_id else None,
            )
            for r in visible
        ]

    async def get_artifact(
        self,
        caller: Caller,
        model: type[T],
        artifact_id: UUID,
        op_class: OpClass = OpClass.READ_OWN,
    ) -> tuple[T, Project]:
        """Load an artifact and its project, authorizing the caller.

        Hidden artifacts are reported as missing to clients.
        """
        kind = ARTIFACT_KINDS[model]
        artifact = await self.session.get(model, artifact_id)
        if artifact is None:
            raise NotFoundError(f"{kind.label} not found")

        project = await get_project_or_raise(self.session, artifact.project_id)
        authorize(caller, project, op_class)

        if not caller.is_admin and not artifact.is_visible:
            raise NotFoundError(f"{kind.label} not found")
        return artifact, project

    async def set_visibility(
        self,
        caller: Caller,
        model: type[T],
        artifact_id: UUID,
        is_visible: bool,
    ) -> T:
        """Show or hide an artifact from the client (admin only).

        Changing visibility never sends notifications.
        """
        kind = ARTIFACT_KINDS[model]
        artifact, project = await self.get_artifact(
            caller, model, artifact_id, OpClass.WRITE_ADMIN_ONLY
        )
        if artifact.is_visible == is_visible:
            return artifact

        artifact.is_visible = is_visible
        await self.session.flush()

        record_audit(
            self.session,
            actor_id=caller.user_id,
            action=f"{kind.entity_type}_{'shown' if is_visible else 'hidden'}",
            entity_type=kind.entity_type,
            entity_id=artifact.id,
            project_id=project.id,
        )
        return artifact

    async def _delete(
        self,
        caller: Caller,
        artifact: Any,
        project: Project,
        details: str,
    ) -> None:
        kind = ARTIFACT_KINDS[type(artifact)]
        file_id = getattr(artifact, "file_id", None)

        await self.session.delete(artifact)
        await self.session.flush()

        record_audit(
            self.session,
            actor_id=caller.user_id,
            action=f"{kind.entity_type}_deleted",
            entity_type=kind.entity_type,
            entity_id=artifact.id,
            project_id=project.id,
            details=details,
        )

        if file_id:
            try:
                await self.storage.delete(file_id)
            except Exception as e:
                logger.warning(f"Could not delete stored file {file_id}: {e}")

    # =========================================================================
    # DOCUMENTS
    # =========================================================================

    async def list_documents(self, caller: Caller, project_id: UUID) -> list[ArtifactView[Document]]:
        return await self.list_artifacts(caller, Document, project_id)

    async def upload_document(
        self,
        caller: Caller,
        project_id: UUID,
        data: DocumentInput,
    ) -> Document:
        project = await load_project_for(self.session, caller, project_id, OpClass.WRITE_ADMIN_ONLY)

        document = Document(
            project_id=project.id,
            title=data.title,
            description=data.description,
            doc_type=data.doc_type,
            file_id=data.file_id,
            file_name=data.file_name,
            file_size=data.file_size,
            uploaded_by=caller.user_id,
            is_visible=data.is_visible,
            requires_approval=data.requires_approval,
            approval_status=ApprovalStatus.PENDING if data.requires_approval else None,
        )
        self.session.add(document)
        await self.session.flush()

        record_audit(
            self.session,
            actor_id=caller.user_id,
            action="document_uploaded",
            entity_type="document",
            entity_id=document.id,
            project_id=project.id,
            details=f"Uploaded document: {document.title}",
        )

        if document.is_visible:
            if document.requires_approval:
                await self.notifications.notify_event(
                    project.client_id,
                    project,
                    NotificationType.APPROVAL_REQUESTED,
                    actor_id=caller.user_id,
                    title="Approval requested",
                    message=f'Document "{document.title}" is waiting for your approval.',
                )
            else:
                await self.notifications.notify_event(
                    project.client_id,
                    project,
                    NotificationType.DOCUMENT_UPLOADED,
                    actor_id=caller.user_id,
                    message=f'Document "{document.title}" has been added to {project.name}.',
                )

        return document

    async def delete_document(self, caller: Caller, document_id: UUID) -> None:
        document, project = await self.get_artifact(
            caller, Document, document_id, OpClass.WRITE_ADMIN_ONLY
        )
        await self._delete(caller, document, project, f"Deleted document: {document.title}")

    # =========================================================================
    # PHOTOS
    # =========================================================================

    async def list_photos(
        self,
        caller: Caller,
        project_id: UUID,
        category: str | None = None,
    ) -> list[ArtifactView[Photo]]:
        return await self.list_artifacts(caller, Photo, project_id, category=category)

    async def upload_photo(
        self,
        caller: Caller,
        project_id: UUID,
        data: PhotoInput,
    ) -> Photo:
        """Admins and the project's client may both upload photos."""
        project = await load_project_for(self.session, caller, project_id, OpClass.READ_OWN)

        photo = Photo(
            project_id=project.id,
            title=data.title,
            caption=data.caption,
            file_id=data.file_id,
            file_name=data.file_name,
            category=data.category,
            uploaded_by=caller.user_id,
            is_visible=data.is_visible,
        )
        self.session.add(photo)
        await self.session.flush()

        record_audit(
            self.session,
            actor_id=caller.user_id,
            action="photo_uploaded",
            entity_type="photo",
            entity_id=photo.id,
            project_id=project.id,
            details=f"Uploaded photo: {photo.title}",
        )

        if photo.is_visible:
            message = f'Photo "{photo.title}" has been added to {project.name}.'
            if caller.is_admin:
                await self.notifications.notify_event(
                    project.client_id,
                    project,
                    NotificationType.PHOTO_UPLOADED,
                    actor_id=caller.user_id,
                    message=message,
                )
            else:
                await self.notifications.broadcast_to_admins(
                    project,
                    NotificationType.PHOTO_UPLOADED,
                    message=message,
                    actor_id=caller.user_id,
                )

        return photo

    async def delete_photo(self, caller: Caller, photo_id: UUID) -> None:
        """Admins may delete any photo; anyone else only their own."""
        photo, project = await self.get_artifact(caller, Photo, photo_id, OpClass.READ_OWN)
        if not caller.is_admin:
            authorize(caller, project, OpClass.MUTATE_OWN_RESOURCE, resource_owner_id=photo.uploaded_by)
        await self._delete(caller, photo, project, f"Deleted photo: {photo.title}")

    # =========================================================================
    # NOTES
    # =========================================================================

    async def list_notes(self, caller: Caller, project_id: UUID) -> list[ArtifactView[ProjectNote]]:
        return await self.list_artifacts(caller, ProjectNote, project_id)

    async def add_note(
        self,
        caller: Caller,
        project_id: UUID,
        content: str,
        is_visible: bool = True,
        is_pinned: bool = False,
    ) -> ProjectNote:
        project = await load_project_for(self.session, caller, project_id, OpClass.WRITE_ADMIN_ONLY)

        note = ProjectNote(
            project_id=project.id,
            content=content,
            created_by=caller.user_id,
            is_visible=is_visible,
            is_pinned=is_pinned,
        )
        self.session.add(note)
        await self.session.flush()

        record_audit(
            self.session,
            actor_id=caller.user_id,
            action="note_added",
            entity_type="note",
            entity_id=note.id,
            project_id=project.id,
        )

        if note.is_visible:
            await self.notifications.notify_event(
                project.client_id,
                project,
                NotificationType.NOTE_ADDED,
                actor_id=caller.user_id,
                title="New Project Update",
                message="A new update has been added to your project.",
            )

        return note

    async def update_note(
        self,
        caller: Caller,
        note_id: UUID,
        content: str | None = None,
        is_visible: bool | None = None,
        is_pinned: bool | None = None,
    ) -> ProjectNote:
        note, project = await self.get_artifact(caller, ProjectNote, note_id, OpClass.WRITE_ADMIN_ONLY)

        if content is not None:
            note.content = content
        if is_visible is not None:
            note.is_visible = is_visible
        if is_pinned is not None:
            note.is_pinned = is_pinned
        await self.session.flush()

        record_audit(
            self.session,
            actor_id=caller.user_id,
            action="note_updated",
            entity_type="note",
            entity_id=note.id,
            project_id=project.id,
        )
        return note

    async def delete_note(self, caller: Caller, note_id: UUID) -> None:
        note, project = await self.get_artifact(caller, ProjectNote, note_id, OpClass.WRITE_ADMIN_ONLY)
        await self._delete(caller, note, project, f"Deleted note: {note.content[:100]}")

    # =========================================================================
    # MILESTONES
    # =========================================================================

    async def list_milestones(self, caller: Caller, project_id: UUID) -> list[ArtifactView[Milestone]]:
        return await self.list_artifacts(caller, Milestone, project_id)

    async def create_milestone(
        self,
        caller: Caller,
        project_id: UUID,
        data: MilestoneInput,
    ) -> Milestone:
        project = await load_project_for(self.session, caller, project_id, OpClass.WRITE_ADMIN_ONLY)

        # Orders are 1-based and appended after the current last milestone
        result = await self.session.execute(
            select(func.max(Milestone.order)).where(Milestone.project_id == project.id)
        )
        next_order = (result.scalar_one_or_none() or 0) + 1

        milestone = Milestone(
            project_id=project.id,
            title=data.title,
            description=data.description,
            due_date=data.due_date,
            is_completed=False,
            order=next_order,
            created_by=caller.user_id,
            is_visible=data.is_visible,
        )
        self.session.add(milestone)
        await self.session.flush()

        record_audit(
            self.session,
            actor_id=caller.user_id,
            action="milestone_created",
            entity_type="milestone",
            entity_id=milestone.id,
            project_id=project.id,
            details=f"Created milestone: {milestone.title}",
        )
        return milestone

    async def update_milestone(
        self,
        caller: Caller,
        milestone_id: UUID,
        changes: dict[str, Any],
    ) -> Milestone:
        milestone, project = await self.get_artifact(
            caller, Milestone, milestone_id, OpClass.WRITE_ADMIN_ONLY
        )

        for name in ("title", "description", "due_date", "is_visible"):
            if name in changes:
                setattr(milestone, name, changes[name])

        action = "milestone_updated"
        if "is_completed" in changes and changes["is_completed"] is not None:
            completed = bool(changes["is_completed"])
            if completed != milestone.is_completed:
                action = "milestone_completed" if completed else "milestone_reopened"
            milestone.is_completed = completed
            milestone.completed_at = utcnow() if completed else None

        await self.session.flush()

        record_audit(
            self.session,
            actor_id=caller.user_id,
            action=action,
            entity_type="milestone",
            entity_id=milestone.id,
            project_id=project.id,
        )
        return milestone

    async def delete_milestone(self, caller: Caller, milestone_id: UUID) -> None:
        milestone, project = await self.get_artifact(
            caller, Milestone, milestone_id, OpClass.WRITE_ADMIN_ONLY
        )
        await self._delete(caller, milestone, project, f"Deleted milestone: {milestone.title}")

    # =========================================================================
    # ADDITIONAL WORK
    # =========================================================================

    async def list_additional_work(
        self,
        caller: Caller,
        project_id: UUID,
    ) -> list[ArtifactView[AdditionalWork]]:
        return await self.list_artifacts(caller, AdditionalWork, project_id)

    async def create_additional_work(
        self,
        caller: Caller,
        project_id: UUID,
        data: AdditionalWorkInput,
    ) -> AdditionalWork:
        project = await load_project_for(self.session, caller, project_id, OpClass.WRITE_ADMIN_ONLY)

        work = AdditionalWork(
            project_id=project.id,
            title=data.title,
            description=data.description,
            price=data.price,
            file_id=data.file_id,
            file_name=data.file_name,
            created_by=caller.user_id,
            is_visible=data.is_visible,
            status=ApprovalStatus.PENDING,
        )
        self.session.add(work)
        await self.session.flush()

        record_audit(
            self.session,
            actor_id=caller.user_id,
            action="additional_work_created",
            entity_type="additional_work",
            entity_id=work.id,
            project_id=project.id,
            details=f"Created additional work: {work.title}",
        )

        if work.is_visible:
            await self.notifications.notify_event(
                project.client_id,
                project,
                NotificationType.ADDITIONAL_WORK_REQUESTED,
                actor_id=caller.user_id,
                title="Additional Work Requested",
                message=(
                    f'Additional work "{work.title}" (£{Decimal(work.price):.2f}) '
                    "has been proposed for your project."
                ),
            )

        return work

