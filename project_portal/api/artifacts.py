"""API routes for project artifacts.

Collection routes live under /projects/{project_id}/...; item routes are
addressed by artifact id and resolve the project themselves.
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Response, status

from ..models import (
    AdditionalWork,
    ApprovalStatus,
    Document,
    DocumentType,
    Milestone,
    Photo,
    ProjectNote,
)
from ..schemas import (
    AdditionalWorkResponse,
    ApprovalDecisionRequest,
    CreateAdditionalWorkRequest,
    CreateDocumentRequest,
    CreateMilestoneRequest,
    CreateNoteRequest,
    CreatePhotoRequest,
    DocumentResponse,
    MilestoneResponse,
    NoteResponse,
    PhotoResponse,
    UpdateMilestoneRequest,
    UpdateNoteRequest,
    UploadUrlResponse,
    VisibilityRequest,
)
from ..services import (
    AdditionalWorkInput,
    ArtifactView,
    DocumentInput,
    ExternalFailureError,
    MilestoneInput,
    PhotoInput,
)
from .deps import ApprovalServiceDep, ArtifactServiceDep, CallerDep, StorageDep

logger = logging.getLogger(__name__)

router = APIRouter(tags=["artifacts"])


# =============================================================================
# UPLOADS
# =============================================================================


@router.post("/uploads", response_model=UploadUrlResponse)
async def create_upload_url(caller: CallerDep, storage: StorageDep):
    """Issue a one-off upload target. The returned file_id is then attached
    to a document, photo or additional-work record."""
    try:
        handle = await storage.generate_upload_url()
    except Exception as e:
        logger.error(f"Upload URL generation failed for {caller.user_id}: {e}")
        raise ExternalFailureError("File storage is unavailable")
    return UploadUrlResponse(
        file_id=handle.file_id,
        upload_url=handle.upload_url,
        expires_at=handle.expires_at,
    )


# =============================================================================
# DOCUMENTS
# =============================================================================


@router.get("/projects/{project_id}/documents", response_model=list[DocumentResponse])
async def list_documents(project_id: UUID, caller: CallerDep, service: ArtifactServiceDep):
    views = await service.list_documents(caller, project_id)
    return [DocumentResponse.from_view(v) for v in views]


@router.post(
    "/projects/{project_id}/documents",
    response_model=DocumentResponse,
    status_code=status.HTTP_201_CREATED,
)
async def upload_document(
    project_id: UUID,
    request: CreateDocumentRequest,
    caller: CallerDep,
    service: ArtifactServiceDep,
):
    document = await service.upload_document(
        caller,
        project_id,
        DocumentInput(
            title=request.title,
            description=request.description,
            doc_type=DocumentType(request.doc_type),
            file_id=request.file_id,
            file_name=request.file_name,
            file_size=request.file_size,
            is_visible=request.is_visible,
            requires_approval=request.requires_approval,
        ),
    )
    return DocumentResponse.from_view(ArtifactView(record=document))


@router.put("/documents/{document_id}/visibility", response_model=DocumentResponse)
async def set_document_visibility(
    document_id: UUID,
    request: VisibilityRequest,
    caller: CallerDep,
    service: ArtifactServiceDep,
):
    document = await service.set_visibility(caller, Document, document_id, request.is_visible)
    return DocumentResponse.from_view(ArtifactView(record=document))


@router.post("/documents/{document_id}/approval", response_model=DocumentResponse)
async def decide_document(
    document_id: UUID,
    request: ApprovalDecisionRequest,
    caller: CallerDep,
    approvals: ApprovalServiceDep,
):
    """Approve or decline a pending document. Only the project's client may
    decide, and only once."""
    document = await approvals.decide_document(
        caller, document_id, ApprovalStatus(request.status), request.notes
    )
    return DocumentResponse.from_view(ArtifactView(record=document))


@router.delete("/documents/{document_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_document(document_id: UUID, caller: CallerDep, service: ArtifactServiceDep):
    await service.delete_document(caller, document_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# =============================================================================
# PHOTOS
# =============================================================================


@router.get("/projects/{project_id}/photos", response_model=list[PhotoResponse])
async def list_photos(
    project_id: UUID,
    caller: CallerDep,
    service: ArtifactServiceDep,
    category: str | None = None,
):
    views = await service.list_photos(caller, project_id, category=category)
    return [PhotoResponse.from_view(v) for v in views]


@router.post(
    "/projects/{project_id}/photos",
    response_model=PhotoResponse,
    status_code=status.HTTP_201_CREATED,
)
async def upload_photo(
    project_id: UUID,
    request: CreatePhotoRequest,
    caller: CallerDep,
    service: ArtifactServiceDep,
):
    photo = await service.upload_photo(
        caller,
        project_id,
        PhotoInput(
            title=request.title,
            caption=request.caption,
            category=request.category,
            file_id=request.file_id,
            file_name=request.file_name,
            is_visible=request.is_visible,
        ),
    )
    return PhotoResponse.from_view(ArtifactView(record=photo))


@router.put("/photos/{photo_id}/visibility", response_model=PhotoResponse)
async def set_photo_visibility(
    photo_id: UUID,
    request: VisibilityRequest,
    caller: CallerDep,
    service: ArtifactServiceDep,
):
    photo = await service.set_visibility(caller, Photo, photo_id, request.is_visible)
    return PhotoResponse.from_view(ArtifactView(record=photo))


@router.delete("/photos/{photo_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_photo(photo_id: UUID, caller: CallerDep, service: ArtifactServiceDep):
    await service.delete_photo(caller, photo_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# =============================================================================
# NOTES
# =============================================================================


@router.get("/projects/{project_id}/notes", response_model=list[NoteResponse])
async def list_notes(project_id: UUID, caller: CallerDep, service: ArtifactServiceDep):
    views = await service.list_notes(caller, project_id)
    return [NoteResponse.from_view(v) for v in views]


@router.post(
    "/projects/{project_id}/notes",
    response_model=NoteResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_note(
    project_id: UUID,
    request: CreateNoteRequest,
    caller: CallerDep,
    service: ArtifactServiceDep,
):
    note = await service.add_note(
        caller,
        project_id,
        request.content,
        is_visible=request.is_visible,
        is_pinned=request.is_pinned,
    )
    return NoteResponse.from_view(ArtifactView(record=note))


@router.patch("/notes/{note_id}", response_model=NoteResponse)
async def update_note(
    note_id: UUID,
    request: UpdateNoteRequest,
    caller: CallerDep,
    service: ArtifactServiceDep,
):
    note = await service.update_note(
        caller,
        note_id,
        content=request.content,
        is_visible=request.is_visible,
        is_pinned=request.is_pinned,
    )
    return NoteResponse.from_view(ArtifactView(record=note))


@router.delete("/notes/{note_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_note(note_id: UUID, caller: CallerDep, service: ArtifactServiceDep):
    await service.delete_note(caller, note_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# =============================================================================
# MILESTONES
# =============================================================================


@router.get("/projects/{project_id}/milestones", response_model=list[MilestoneResponse])
async def list_milestones(project_id: UUID, caller: CallerDep, service: ArtifactServiceDep):
    views = await service.list_milestones(caller, project_id)
    return [MilestoneResponse.from_view(v) for v in views]


@router.post(
    "/projects/{project_id}/milestones",
    response_model=MilestoneResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_milestone(
    project_id: UUID,
    request: CreateMilestoneRequest,
    caller: CallerDep,
    service: ArtifactServiceDep,
):
    milestone = await service.create_milestone(
        caller,
        project_id,
        MilestoneInput(
            title=request.title,
            description=request.description,
            due_date=request.due_date,
            is_visible=request.is_visible,
        ),
    )
    return MilestoneResponse.from_view(ArtifactView(record=milestone))


@router.patch("/milestones/{milestone_id}", response_model=MilestoneResponse)
async def update_milestone(
    milestone_id: UUID,
    request: UpdateMilestoneRequest,
    caller: CallerDep,
    service: ArtifactServiceDep,
):
    milestone = await service.update_milestone(
        caller, milestone_id, request.model_dump(exclude_unset=True)
    )
    return MilestoneResponse.from_view(ArtifactView(record=milestone))


@router.delete("/milestones/{milestone_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_milestone(milestone_id: UUID, caller: CallerDep, service: ArtifactServiceDep):
    await service.delete_milestone(caller, milestone_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# =============================================================================
# ADDITIONAL WORK
# =============================================================================


@router.get(
    "/projects/{project_id}/additional-work",
    response_model=list[AdditionalWorkResponse],
)
async def list_additional_work(project_id: UUID, caller: CallerDep, service: ArtifactServiceDep):
    views = await service.list_additional_work(caller, project_id)
    return [AdditionalWorkResponse.from_view(v) for v in views]


@router.post(
    "/projects/{project_id}/additional-work",
    response_model=AdditionalWorkResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_additional_work(
    project_id: UUID,
    request: CreateAdditionalWorkRequest,
    caller: CallerDep,
    service: ArtifactServiceDep,
):
    work = await service.create_additional_work(
        caller,
        project_id,
        AdditionalWorkInput(
            title=request.title,
            description=request.description,
            price=request.price,
            file_id=request.file_id,
            file_name=request.file_name,
            is_visible=request.is_visible,
        ),
    )
    return AdditionalWorkResponse.from_view(ArtifactView(record=work))


@router.put("/additional-work/{work_id}/visibility", response_model=AdditionalWorkResponse)
async def set_additional_work_visibility(
    work_id: UUID,
    request: VisibilityRequest,
    caller: CallerDep,
    service: ArtifactServiceDep,
):
    work = await service.set_visibility(caller, AdditionalWork, work_id, request.is_visible)
    return AdditionalWorkResponse.from_view(ArtifactView(record=work))


@router.post("/additional-work/{work_id}/approval", response_model=AdditionalWorkResponse)
async def decide_additional_work(
    work_id: UUID,
    request: ApprovalDecisionRequest,
    caller: CallerDep,
    approvals: ApprovalServiceDep,
):
    work = await approvals.decide_additional_work(
        caller, work_id, ApprovalStatus(request.status), request.notes
    )
    return AdditionalWorkResponse.from_view(ArtifactView(record=work))


# Visibility toggles for the remaining artifact types
@router.put("/notes/{note_id}/visibility", response_model=NoteResponse)
async def set_note_visibility(
    note_id: UUID,
    request: VisibilityRequest,
    caller: CallerDep,
    service: ArtifactServiceDep,
):
    note = await service.set_visibility(caller, ProjectNote, note_id, request.is_visible)
    return NoteResponse.from_view(ArtifactView(record=note))


@router.put("/milestones/{milestone_id}/visibility", response_model=MilestoneResponse)
async def set_milestone_visibility(
    milestone_id: UUID,
    request: VisibilityRequest,
    caller: CallerDep,
    service: ArtifactServiceDep,
):
    milestone = await service.set_visibility(caller, Milestone, milestone_id, request.is_visible)
    return MilestoneResponse.from_view(ArtifactView(record=milestone))
