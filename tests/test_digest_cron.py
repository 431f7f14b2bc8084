"""
Tests for the scheduled digest job.

These tests verify:
1. Every in-flight project is checked, completed ones are skipped
2. Projects with nothing new are counted as skipped, not failed
3. A failed send is reported without stopping the run
"""

from sqlalchemy.ext.asyncio import AsyncSession

from project_portal.jobs import run_digest_job
from project_portal.models import Photo, ProjectStatus
from project_portal.services import Caller

from .conftest import create_project


def add_photo(session: AsyncSession, project, uploader: Caller, title: str) -> None:
    session.add(Photo(
        project_id=project.id,
        title=title,
        file_id=f"p-{title}",
        file_name=f"{title}.jpg",
        uploaded_by=uploader.user_id,
        is_visible=True,
    ))


class TestRunDigestJob:
    """Tests for run_digest_job with an injected session factory."""

    async def test_sends_and_skips(
        self,
        session: AsyncSession,
        session_factory,
        email_sender,
        admin: Caller,
        project,
        other_project,
    ):
        add_photo(session, project, admin, "site")
        await session.commit()

        results = await run_digest_job(session_factory=session_factory, email_sender=email_sender)

        assert results["projects_checked"] == 2
        assert results["digests_sent"] == 1
        assert results["digests_skipped"] == 1
        assert results["digests_failed"] == 0
        assert results["summaries"] == {str(project.id): "1 new photo"}
        assert [e["to"] for e in email_sender.sent] == ["client@example.test"]

    async def test_rerun_sends_nothing(
        self,
        session: AsyncSession,
        session_factory,
        email_sender,
        admin: Caller,
        project,
    ):
        add_photo(session, project, admin, "site")
        await session.commit()

        await run_digest_job(session_factory=session_factory, email_sender=email_sender)
        results = await run_digest_job(session_factory=session_factory, email_sender=email_sender)

        assert results["digests_sent"] == 0
        assert results["digests_skipped"] == 1
        assert len(email_sender.sent) == 1

    async def test_completed_projects_ignored(
        self,
        session: AsyncSession,
        session_factory,
        email_sender,
        admin: Caller,
        client: Caller,
    ):
        finished = await create_project(session, admin.user_id, client.user_id, "Finished")
        finished.status = ProjectStatus.COMPLETED
        add_photo(session, finished, admin, "handover")
        await session.commit()

        results = await run_digest_job(session_factory=session_factory, email_sender=email_sender)

        assert results["projects_checked"] == 0
        assert email_sender.sent == []

    async def test_failed_send_reported(
        self,
        session: AsyncSession,
        session_factory,
        email_sender,
        admin: Caller,
        project,
    ):
        add_photo(session, project, admin, "site")
        await session.commit()
        email_sender.fail = True

        results = await run_digest_job(session_factory=session_factory, email_sender=email_sender)

        assert results["digests_failed"] == 1
        assert results["digests_sent"] == 0
        assert results["errors"] == [f"Project {project.id}: simulated outage"]

    async def test_restrict_to_projects(
        self,
        session: AsyncSession,
        session_factory,
        email_sender,
        admin: Caller,
        project,
        other_project,
    ):
        add_photo(session, project, admin, "site")
        add_photo(session, other_project, admin, "loft")
        await session.commit()

        results = await run_digest_job(
            session_factory=session_factory,
            email_sender=email_sender,
            project_ids=[other_project.id],
        )

        assert results["projects_checked"] == 1
        assert results["summaries"] == {str(other_project.id): "1 new photo"}
        assert [e["to"] for e in email_sender.sent] == ["other@example.test"]
