"""API routes for projects and project digests."""

from uuid import UUID

from fastapi import APIRouter, Query, status

from ..models import ProjectStatus
from ..schemas import CreateProjectRequest, DigestResponse, ProjectResponse, UpdateProjectRequest
from ..services import ProjectInput
from .deps import CallerDep, DigestServiceDep, ProjectServiceDep

router = APIRouter(prefix="/projects", tags=["projects"])


@router.get("", response_model=list[ProjectResponse])
async def list_projects(
    caller: CallerDep,
    service: ProjectServiceDep,
    status_filter: ProjectStatus | None = Query(None, alias="status"),
):
    """Admins see every project, clients only their own."""
    projects = await service.list_projects(caller, status=status_filter)
    return [ProjectResponse.model_validate(p) for p in projects]


@router.post("", response_model=ProjectResponse, status_code=status.HTTP_201_CREATED)
async def create_project(
    request: CreateProjectRequest,
    caller: CallerDep,
    service: ProjectServiceDep,
):
    project = await service.create_project(
        caller,
        ProjectInput(
            name=request.name,
            client_id=request.client_id,
            description=request.description,
            status=ProjectStatus(request.status),
            budget=request.budget,
            start_date=request.start_date,
            end_date=request.end_date,
        ),
    )
    return ProjectResponse.model_validate(project)


@router.get("/{project_id}", response_model=ProjectResponse)
async def get_project(project_id: UUID, caller: CallerDep, service: ProjectServiceDep):
    return ProjectResponse.model_validate(await service.get_project(caller, project_id))


@router.patch("/{project_id}", response_model=ProjectResponse)
async def update_project(
    project_id: UUID,
    request: UpdateProjectRequest,
    caller: CallerDep,
    service: ProjectServiceDep,
):
    project = await service.update_project(
        caller, project_id, request.model_dump(exclude_unset=True)
    )
    return ProjectResponse.model_validate(project)


@router.post("/{project_id}/digest", response_model=DigestResponse)
async def send_digest(project_id: UUID, caller: CallerDep, service: DigestServiceDep):
    """Email the client one summary of visible documents and photos added
    since the previous digest. Returns `sent: false` when there is nothing new."""
    result = await service.trigger(caller, project_id)
    return DigestResponse(sent=result.sent, summary=result.summary)
