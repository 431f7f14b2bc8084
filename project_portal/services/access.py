"""
Authorization Predicate Engine.

Every entity operation is classified into one of four operation classes and
checked through `can_access`. The predicate is pure: it looks only at the
caller's role and id, the project's client and, for owner-scoped mutations,
the resource's creator.

    READ_OWN             admin always; client iff caller is the project client
    WRITE_ADMIN_ONLY     admin only
    WRITE_CLIENT_OF_OWN  client iff caller is the project client; admins denied
    MUTATE_OWN_RESOURCE  caller created the resource, any role
"""

import logging
from dataclasses import dataclass
from enum import Enum
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models import Project, UserProfile, UserRole
from .errors import AccessDeniedError, NotFoundError

logger = logging.getLogger(__name__)


class OpClass(str, Enum):
    READ_OWN = "read_own"
    WRITE_ADMIN_ONLY = "write_admin_only"
    WRITE_CLIENT_OF_OWN = "write_client_of_own"
    MUTATE_OWN_RESOURCE = "mutate_own_resource"


DENIAL_MESSAGES = {
    OpClass.READ_OWN: "Access denied",
    OpClass.WRITE_ADMIN_ONLY: "Admin access required",
    OpClass.WRITE_CLIENT_OF_OWN: "Only the project's client can perform this action",
    OpClass.MUTATE_OWN_RESOURCE: "Only the creator of this item can modify it",
}


@dataclass(frozen=True)
class Caller:
    """Resolved identity of the user behind a request."""
    user_id: UUID
    role: UserRole
    profile: UserProfile | None = None

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @property
    def is_client(self) -> bool:
        return self.role == UserRole.CLIENT


def can_access(
    caller_role: UserRole,
    caller_id: UUID,
    project_client_id: UUID | None,
    op_class: OpClass,
    resource_owner_id: UUID | None = None,
) -> bool:
    """Pure authorization predicate. Never raises."""
    is_admin = caller_role == UserRole.ADMIN
    is_project_client = (
        caller_role == UserRole.CLIENT
        and project_client_id is not None
        and caller_id == project_client_id
    )

    if op_class == OpClass.READ_OWN:
        return is_admin or is_project_client
    if op_class == OpClass.WRITE_ADMIN_ONLY:
        return is_admin
    if op_class == OpClass.WRITE_CLIENT_OF_OWN:
        return is_project_client
    if op_class == OpClass.MUTATE_OWN_RESOURCE:
        return resource_owner_id is not None and caller_id == resource_owner_id
    return False


def authorize(
    caller: Caller,
    project: Project | None,
    op_class: OpClass,
    resource_owner_id: UUID | None = None,
    message: str | None = None,
) -> None:
    """Raise AccessDeniedError unless `can_access` allows the operation.

    `project` may be None only for project-less admin operations
    (listing clients, inviting users, querying the audit log).
    """
    allowed = can_access(
        caller.role,
        caller.user_id,
        project.client_id if project is not None else None,
        op_class,
        resource_owner_id,
    )
    if not allowed:
        logger.info(
            f"Denied {op_class.value} for user {caller.user_id}"
            + (f" on project {project.id}" if project is not None else "")
        )
        raise AccessDeniedError(message or DENIAL_MESSAGES[op_class])


def require_admin(caller: Caller, message: str | None = None) -> None:
    """Shorthand for project-less WRITE_ADMIN_ONLY checks."""
    authorize(caller, None, OpClass.WRITE_ADMIN_ONLY, message=message)


async def get_project_or_raise(session: AsyncSession, project_id: UUID) -> Project:
    result = await session.execute(select(Project).where(Project.id == project_id))
    project = result.scalar_one_or_none()
    if not project:
        raise NotFoundError(f"Project {project_id} not found")
    return project


async def load_project_for(
    session: AsyncSession,
    caller: Caller,
    project_id: UUID,
    op_class: OpClass = OpClass.READ_OWN,
) -> Project:
    """Resolve a project and authorize the caller against it in one step."""
    project = await get_project_or_raise(session, project_id)
    authorize(caller, project, op_class)
    return project
