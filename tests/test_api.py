"""
HTTP-level tests: error mapping, onboarding and the main workflows.

These tests verify:
1. Domain errors map to their status codes with a literal message
2. Onboarding works before a profile exists and forces self-registered users to client
3. Approvals and digests behave end to end through the API
"""

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from project_portal.api.deps import get_email_sender_dep, get_storage_dep
from project_portal.core import create_access_token, get_session
from project_portal.main import app
from project_portal.services import Caller

from .conftest import create_user

API = "/api/v1"


def auth(user_id) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user_id)}"}


@pytest.fixture
async def api(session: AsyncSession, session_factory, email_sender, storage, admin, client, other_client, project):
    """HTTP client against the app, sharing the test database.

    Fixture data is committed first so request sessions can see it.
    """
    await session.commit()

    async def override_session():
        async with session_factory() as request_session:
            try:
                yield request_session
                await request_session.commit()
            except Exception:
                await request_session.rollback()
                raise

    app.dependency_overrides[get_session] = override_session
    app.dependency_overrides[get_email_sender_dep] = lambda: email_sender
    app.dependency_overrides[get_storage_dep] = lambda: storage

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as http:
        yield http

    app.dependency_overrides.clear()


# =============================================================================
# ERROR MAPPING
# =============================================================================


class TestErrorMapping:
    async def test_health(self, api: AsyncClient):
        response = await api.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    async def test_missing_token(self, api: AsyncClient):
        response = await api.get(f"{API}/projects")

        assert response.status_code == 401
        assert response.json()["error"] == "unauthenticated"
        assert response.headers["www-authenticate"] == "Bearer"

    async def test_garbage_token(self, api: AsyncClient):
        response = await api.get(f"{API}/projects", headers={"Authorization": "Bearer not-a-jwt"})

        assert response.status_code == 401

    async def test_profile_missing(self, api: AsyncClient, session: AsyncSession):
        user = await create_user(session, "fresh@example.test", role=None)
        await session.commit()

        response = await api.get(f"{API}/projects", headers=auth(user.id))

        assert response.status_code == 428
        assert response.json()["message"] == "User profile not found"

    async def test_other_clients_project(self, api: AsyncClient, other_client: Caller, project):
        response = await api.get(f"{API}/projects/{project.id}", headers=auth(other_client.user_id))

        assert response.status_code == 403
        assert response.json() == {
            "error": "access_denied",
            "message": "Access denied",
            "details": [],
        }

    async def test_unknown_project(self, api: AsyncClient, admin: Caller):
        response = await api.get(
            f"{API}/projects/00000000-0000-0000-0000-000000000000", headers=auth(admin.user_id)
        )

        assert response.status_code == 404


# =============================================================================
# ONBOARDING
# =============================================================================


class TestOnboarding:
    async def test_me_before_profile(self, api: AsyncClient, session: AsyncSession):
        user = await create_user(session, "fresh@example.test", role=None)
        await session.commit()

        response = await api.get(f"{API}/me", headers=auth(user.id))

        assert response.status_code == 200
        assert response.json()["email"] == "fresh@example.test"
        assert response.json()["profile"] is None

    async def test_self_registered_admin_request_becomes_client(
        self,
        api: AsyncClient,
        session: AsyncSession,
    ):
        user = await create_user(session, "eve@example.test", role=None, email_verified=False)
        await session.commit()

        response = await api.put(
            f"{API}/me/profile",
            headers=auth(user.id),
            json={"first_name": "Eve", "last_name": "Sneaky", "role": "admin"},
        )

        assert response.status_code == 200
        assert response.json()["role"] == "client"


# =============================================================================
# WORKFLOWS
# =============================================================================


class TestWorkflows:
    async def test_document_approval_once(
        self,
        api: AsyncClient,
        admin: Caller,
        client: Caller,
        project,
    ):
        created = await api.post(
            f"{API}/projects/{project.id}/documents",
            headers=auth(admin.user_id),
            json={
                "title": "Kitchen quote",
                "doc_type": "quote",
                "file_id": "f-quote",
                "file_name": "quote.pdf",
                "file_size": 2048,
                "requires_approval": True,
            },
        )
        assert created.status_code == 201
        document_id = created.json()["id"]
        assert created.json()["approval_status"] == "pending"

        approved = await api.post(
            f"{API}/documents/{document_id}/approval",
            headers=auth(client.user_id),
            json={"status": "approved", "notes": "Go ahead"},
        )
        assert approved.status_code == 200
        assert approved.json()["approval_status"] == "approved"
        assert approved.json()["approved_by"] == str(client.user_id)

        again = await api.post(
            f"{API}/documents/{document_id}/approval",
            headers=auth(client.user_id),
            json={"status": "declined"},
        )
        assert again.status_code == 409
        assert again.json()["error"] == "conflicting_state"

    async def test_hidden_documents_not_listed_for_client(
        self,
        api: AsyncClient,
        admin: Caller,
        client: Caller,
        project,
    ):
        for title, visible in (("Plans", True), ("Costing", False)):
            response = await api.post(
                f"{API}/projects/{project.id}/documents",
                headers=auth(admin.user_id),
                json={
                    "title": title,
                    "file_id": f"f-{title}",
                    "file_name": f"{title}.pdf",
                    "file_size": 10,
                    "is_visible": visible,
                },
            )
            assert response.status_code == 201

        listed = await api.get(f"{API}/projects/{project.id}/documents", headers=auth(client.user_id))

        assert [d["title"] for d in listed.json()] == ["Plans"]
        assert listed.json()[0]["file_url"] == "https://files.test/f-Plans"

    async def test_digest_endpoint(
        self,
        api: AsyncClient,
        email_sender,
        admin: Caller,
        project,
    ):
        photo = await api.post(
            f"{API}/projects/{project.id}/photos",
            headers=auth(admin.user_id),
            json={"title": "Site", "file_id": "p-site", "file_name": "site.jpg"},
        )
        assert photo.status_code == 201

        first = await api.post(f"{API}/projects/{project.id}/digest", headers=auth(admin.user_id))
        second = await api.post(f"{API}/projects/{project.id}/digest", headers=auth(admin.user_id))

        assert first.json() == {"sent": True, "summary": "1 new photo"}
        assert second.json() == {"sent": False, "summary": None}
        assert len(email_sender.sent) == 1

    async def test_client_cannot_trigger_digest(self, api: AsyncClient, client: Caller, project):
        response = await api.post(f"{API}/projects/{project.id}/digest", headers=auth(client.user_id))

        assert response.status_code == 403
        assert response.json()["message"] == "Admin access required"

    async def test_audit_log_admin_only(
        self,
        api: AsyncClient,
        admin: Caller,
        client: Caller,
        project,
    ):
        await api.post(
            f"{API}/projects/{project.id}/notes",
            headers=auth(admin.user_id),
            json={"content": "Skip arrives Monday"},
        )

        denied = await api.get(f"{API}/audit/log", headers=auth(client.user_id))
        allowed = await api.get(
            f"{API}/audit/log", params={"project_id": str(project.id)}, headers=auth(admin.user_id)
        )

        assert denied.status_code == 403
        assert allowed.status_code == 200
        assert [e["action"] for e in allowed.json()["items"]] == ["note_added"]

    async def test_inbox(self, api: AsyncClient, admin: Caller, client: Caller, project):
        await api.post(
            f"{API}/projects/{project.id}/notes",
            headers=auth(admin.user_id),
            json={"content": "Scaffold goes up Tuesday"},
        )

        count = await api.get(f"{API}/me/notifications/unread-count", headers=auth(client.user_id))
        assert count.json() == {"unread": 1}

        marked = await api.post(f"{API}/me/notifications/read-all", headers=auth(client.user_id))
        assert marked.json() == {"updated": 1}
