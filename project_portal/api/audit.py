"""API routes for the audit log (admin only)."""

from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Query

from ..schemas import AuditLogEntry, AuditLogResponse, AuditSummaryResponse
from .deps import AuditServiceDep, CallerDep

router = APIRouter(prefix="/audit", tags=["audit"])


@router.get("/log", response_model=AuditLogResponse)
async def get_audit_log(
    caller: CallerDep,
    service: AuditServiceDep,
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=200),
    project_id: UUID | None = None,
    user_id: UUID | None = None,
    action: str | None = None,
    entity_type: str | None = None,
    entity_id: str | None = None,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
):
    """Query the audit log with filters. Requires admin privileges."""
    offset = (page - 1) * page_size

    entries, total = await service.get_audit_log(
        caller,
        project_id=project_id,
        user_id=user_id,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        start_date=start_date,
        end_date=end_date,
        limit=page_size,
        offset=offset,
    )

    return AuditLogResponse(
        items=[AuditLogEntry.model_validate(e) for e in entries],
        total=total,
        page=page,
        page_size=page_size,
        total_pages=(total + page_size - 1) // page_size,
    )


@router.get("/summary", response_model=AuditSummaryResponse)
async def get_audit_summary(
    caller: CallerDep,
    service: AuditServiceDep,
    project_id: UUID | None = None,
):
    """Count of audit events per action."""
    summary = await service.get_action_summary(caller, project_id=project_id)
    return AuditSummaryResponse(
        project_id=project_id,
        actions_by_type=summary,
        total_events=sum(summary.values()),
    )
