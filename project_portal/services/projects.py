"""Project service: listing, creation and updates."""

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, Sequence
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models import NotificationType, Project, ProjectStatus, UserProfile, UserRole
from .access import Caller, OpClass, load_project_for, require_admin
from .audit import record_audit
from .errors import ConflictingStateError, NotFoundError
from .notifications import NotificationService

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = ("name", "description", "status", "budget", "start_date", "end_date")


@dataclass
class ProjectInput:
    name: str
    client_id: UUID
    description: str | None = None
    status: ProjectStatus = ProjectStatus.PLANNING
    budget: Decimal | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None


class ProjectService:
    def __init__(
        self,
        session: AsyncSession,
        notifications: NotificationService | None = None,
    ):
        self.session = session
        self.notifications = notifications or NotificationService(session)

    async def list_projects(
        self,
        caller: Caller,
        status: ProjectStatus | None = None,
    ) -> Sequence[Project]:
        """Admins see every project; clients see only their own."""
        query = select(Project)
        if not caller.is_admin:
            query = query.where(Project.client_id == caller.user_id)
        if status:
            query = query.where(Project.status == status)

        result = await self.session.execute(query.order_by(Project.created_at.desc()))
        return result.scalars().all()

    async def get_project(self, caller: Caller, project_id: UUID) -> Project:
        return await load_project_for(self.session, caller, project_id, OpClass.READ_OWN)

    async def create_project(self, caller: Caller, data: ProjectInput) -> Project:
        require_admin(caller)

        client = await self.session.execute(
            select(UserProfile).where(UserProfile.user_id == data.client_id)
        )
        client_profile = client.scalar_one_or_none()
        if client_profile is None:
            raise NotFoundError("Client not found")
        if client_profile.role != UserRole.CLIENT:
            raise ConflictingStateError("Projects can only be assigned to client users")

        project = Project(
            name=data.name,
            description=data.description,
            client_id=data.client_id,
            status=data.status,
            created_by=caller.user_id,
            budget=data.budget,
            start_date=data.start_date,
            end_date=data.end_date,
        )
        self.session.add(project)
        await self.session.flush()

        record_audit(
            self.session,
            actor_id=caller.user_id,
            action="project_created",
            entity_type="project",
            entity_id=project.id,
            project_id=project.id,
            details=f"Created project: {project.name}",
        )

        await self.notifications.notify_event(
            project.client_id,
            project,
            NotificationType.PROJECT_UPDATED,
            actor_id=caller.user_id,
            title="New Project Created",
            message=f'A new project "{project.name}" has been created for you.',
        )

        logger.info(f"Project {project.id} created for client {project.client_id}")
        return project

    async def update_project(
        self,
        caller: Caller,
        project_id: UUID,
        changes: dict[str, Any],
    ) -> Project:
        """Apply a partial update. Only keys in UPDATABLE_FIELDS are honoured."""
        project = await load_project_for(self.session, caller, project_id, OpClass.WRITE_ADMIN_ONLY)

        previous_status = project.status
        applied: dict[str, Any] = {}
        for field in UPDATABLE_FIELDS:
            if field not in changes:
                continue
            value = changes[field]
            if field == "status":
                if value is None:
                    continue
                value = ProjectStatus(value)
            setattr(project, field, value)
            applied[field] = value

        if not applied:
            return project

        await self.session.flush()

        record_audit(
            self.session,
            actor_id=caller.user_id,
            action="project_updated",
            entity_type="project",
            entity_id=project.id,
            project_id=project.id,
            details=applied,
        )

        new_status = applied.get("status")
        if new_status is not None and new_status != previous_status:
            await self.notifications.notify_event(
                project.client_id,
                project,
                NotificationType.PROJECT_UPDATED,
                actor_id=caller.user_id,
                title="Project Status Updated",
                message=f'Project "{project.name}" status changed to {new_status.value}.',
            )

        return project

