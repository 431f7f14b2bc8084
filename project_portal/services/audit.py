"""Audit service: append-only activity log and admin queries."""

import json
import logging
from datetime import datetime
from typing import Any, Sequence
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models import AuditLog
from .access import Caller, require_admin

logger = logging.getLogger(__name__)


def record_audit(
    session: AsyncSession,
    actor_id: UUID,
    action: str,
    entity_type: str,
    entity_id: UUID | str,
    project_id: UUID | None = None,
    details: str | dict[str, Any] | None = None,
    ip_address: str | None = None,
) -> AuditLog:
    """Append one audit entry to the current unit of work.

    The entry commits or rolls back together with the mutation it describes.
    """
    if isinstance(details, dict):
        details = json.dumps(details, default=str)

    entry = AuditLog(
        user_id=actor_id,
        project_id=project_id,
        action=action,
        entity_type=entity_type,
        entity_id=str(entity_id),
        details=details,
        ip_address=ip_address,
    )
    session.add(entry)
    logger.debug(f"Audit: {action} {entity_type}/{entity_id} by {actor_id}")
    return entry


class AuditService:
    """Read side of the audit log. Admin only."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_audit_log(
        self,
        caller: Caller,
        project_id: UUID | None = None,
        user_id: UUID | None = None,
        action: str | None = None,
        entity_type: str | None = None,
        entity_id: str | None = None,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[Sequence[AuditLog], int]:
        """Query the audit log with filters, newest first."""
        require_admin(caller)

        query = select(AuditLog)

        if project_id:
            query = query.where(AuditLog.project_id == project_id)
        if user_id:
            query = query.where(AuditLog.user_id == user_id)
        if action:
            query = query.where(AuditLog.action == action)
        if entity_type:
            query = query.where(AuditLog.entity_type == entity_type)
        if entity_id:
            query = query.where(AuditLog.entity_id == entity_id)
        if start_date:
            query = query.where(AuditLog.created_at >= start_date)
        if end_date:
            query = query.where(AuditLog.created_at <= end_date)

        # Count total
        count_query = select(func.count()).select_from(query.subquery())
        total = (await self.session.execute(count_query)).scalar_one()

        query = query.order_by(AuditLog.created_at.desc()).limit(limit).offset(offset)
        result = await self.session.execute(query)

        return result.scalars().all(), total

    async def get_action_summary(
        self,
        caller: Caller,
        project_id: UUID | None = None,
    ) -> dict[str, int]:
        """Count audit entries per action."""
        require_admin(caller)

        query = select(AuditLog.action, func.count()).group_by(AuditLog.action)
        if project_id:
            query = query.where(AuditLog.project_id == project_id)

        result = await self.session.execute(query)
        return {action: count for action, count in result.all()}
