"""
Shared fixtures: in-memory SQLite database, users, a project, and
recording fakes for the email and storage collaborators.
"""

import asyncio
import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("AUTO_EMAILS_ENABLED", "false")
os.environ.setdefault("RESEND_API_KEY", "")

from uuid import UUID

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from project_portal.models import Base, Project, User, UserProfile, UserRole
from project_portal.services import Caller, EmailSender, StorageBackend, UploadHandle


# =============================================================================
# FAKE COLLABORATORS
# =============================================================================


class RecordingEmailSender(EmailSender):
    """
    Email transport that records messages.

    Set `fail` to simulate an outage and `delay` (seconds) to keep a send
    in flight long enough for another task to run.
    """

    def __init__(self):
        self.sent: list[dict] = []
        self.fail = False
        self.delay = 0.0

    async def send(
        self,
        to: str,
        subject: str,
        html_body: str,
        reply_to: str | None = None,
        idempotency_key: str | None = None,
    ) -> tuple[bool, str | None]:
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail:
            return False, "simulated outage"
        self.sent.append({
            "to": to,
            "subject": subject,
            "html": html_body,
            "reply_to": reply_to,
            "idempotency_key": idempotency_key,
        })
        return True, None


class FakeStorage(StorageBackend):
    def __init__(self):
        self.broken: set[str] = set()
        self.deleted: list[str] = []
        self._counter = 0

    async def generate_upload_url(self) -> UploadHandle:
        self._counter += 1
        file_id = f"file-{self._counter}"
        return UploadHandle(file_id=file_id, upload_url=f"https://files.test/upload/{file_id}", expires_at=0)

    async def get_url(self, file_id: str) -> str | None:
        if file_id in self.broken:
            raise RuntimeError("storage unavailable")
        return f"https://files.test/{file_id}"

    async def delete(self, file_id: str) -> None:
        self.deleted.append(file_id)


# =============================================================================
# DATABASE
# =============================================================================


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def email_sender() -> RecordingEmailSender:
    return RecordingEmailSender()


@pytest.fixture
def storage() -> FakeStorage:
    return FakeStorage()


# =============================================================================
# USERS & PROJECTS
# =============================================================================


async def create_user(
    session: AsyncSession,
    email: str,
    role: UserRole | None = UserRole.CLIENT,
    email_verified: bool = False,
    is_active: bool = True,
    first_name: str = "Test",
    last_name: str = "User",
) -> User:
    """Insert a user and, unless role is None, a profile."""
    user = User(email=email, email_verified=email_verified)
    session.add(user)
    await session.flush()

    if role is not None:
        session.add(UserProfile(
            user_id=user.id,
            role=role,
            first_name=first_name,
            last_name=last_name,
            is_active=is_active,
        ))
        await session.flush()
    return user


async def create_caller(session: AsyncSession, email: str, role: UserRole, **kwargs) -> Caller:
    user = await create_user(session, email, role=role, **kwargs)
    return Caller(user_id=user.id, role=role)


@pytest.fixture
async def admin(session) -> Caller:
    return await create_caller(
        session, "admin@agency.test", UserRole.ADMIN,
        email_verified=True, first_name="Alex", last_name="Admin",
    )


@pytest.fixture
async def second_admin(session) -> Caller:
    return await create_caller(
        session, "ops@agency.test", UserRole.ADMIN,
        email_verified=True, first_name="Sam", last_name="Ops",
    )


@pytest.fixture
async def client(session) -> Caller:
    return await create_caller(
        session, "client@example.test", UserRole.CLIENT,
        email_verified=True, first_name="Casey", last_name="Client",
    )


@pytest.fixture
async def other_client(session) -> Caller:
    return await create_caller(
        session, "other@example.test", UserRole.CLIENT,
        email_verified=True, first_name="Olive", last_name="Other",
    )


async def create_project(session: AsyncSession, admin_id: UUID, client_id: UUID, name: str) -> Project:
    project = Project(name=name, client_id=client_id, created_by=admin_id)
    session.add(project)
    await session.flush()
    return project


@pytest.fixture
async def project(session, admin, client) -> Project:
    return await create_project(session, admin.user_id, client.user_id, "Garden Room")


@pytest.fixture
async def other_project(session, admin, other_client) -> Project:
    return await create_project(session, admin.user_id, other_client.user_id, "Loft Conversion")
