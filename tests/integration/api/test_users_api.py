"""API tests for user management endpoints."""

import pytest
import pytest_asyncio
from httpx import AsyncClient
from sqlalchemy import select

from visionara.infrastructure.persistence.models import AuditLogModel, UserModel

PASSWORD = "correct-horse-1"


@pytest_asyncio.fixture
async def admin(make_user):
    return await make_user("admin@x.com", role="Admin", display_name="Admin")


@pytest_asyncio.fixture
async def superadmin(make_user):
    return await make_user("root@x.com", role="SuperAdmin", display_name="Root")


@pytest.mark.asyncio
async def test_create_user(client: AsyncClient, admin, auth_headers, roles, identity_provider):
    response = await client.post(
        "/api/users",
        json={
            "email": "  New.User@X.com ",
            "password": PASSWORD,
            "display_name": "New User",
            "role_id": roles["Editor"].id,
        },
        headers=auth_headers(admin),
    )

    assert response.status_code == 201
    data = response.json()
    assert data["email"] == "new.user@x.com"
    assert data["role"]["name"] == "Editor"
    assert "password" not in data
    assert data["id"] in identity_provider.identities


@pytest.mark.asyncio
async def test_create_user_duplicate_email(client: AsyncClient, admin, auth_headers, roles):
    response = await client.post(
        "/api/users",
        json={
            "email": "admin@x.com",
            "password": PASSWORD,
            "display_name": "Dup",
            "role_id": roles["Editor"].id,
        },
        headers=auth_headers(admin),
    )

    assert response.status_code == 409
    assert response.json() == {"error": "User with this email already exists", "details": []}


@pytest.mark.asyncio
async def test_create_user_unknown_role(client: AsyncClient, admin, auth_headers):
    response = await client.post(
        "/api/users",
        json={"email": "n@x.com", "password": PASSWORD, "display_name": "N", "role_id": "nope"},
        headers=auth_headers(admin),
    )

    assert response.status_code == 404
    assert response.json()["error"] == "Role not found"


@pytest.mark.asyncio
async def test_create_user_short_password(client: AsyncClient, admin, auth_headers, roles):
    response = await client.post(
        "/api/users",
        json={"email": "n@x.com", "password": "short", "display_name": "N", "role_id": roles["Editor"].id},
        headers=auth_headers(admin),
    )

    assert response.status_code == 400
    assert response.json()["details"][0]["field"] == "password"


@pytest.mark.asyncio
async def test_create_user_malformed_body(client: AsyncClient, admin, auth_headers, roles):
    response = await client.post(
        "/api/users",
        json={"email": "not-an-email", "password": PASSWORD, "role_id": roles["Editor"].id},
        headers=auth_headers(admin),
    )

    assert response.status_code == 400
    body = response.json()
    assert body["error"] == "Validation failed"
    assert {d["field"] for d in body["details"]} == {"email", "display_name"}


@pytest.mark.asyncio
async def test_provider_outage_is_reported_without_detail(
    client: AsyncClient, admin, auth_headers, roles, identity_provider, db_session
):
    identity_provider.fail("create_identity", status_code=502, message="upstream secret detail")

    response = await client.post(
        "/api/users",
        json={"email": "n@x.com", "password": PASSWORD, "display_name": "N", "role_id": roles["Editor"].id},
        headers=auth_headers(admin),
    )

    assert response.status_code == 500
    assert "upstream secret detail" not in response.text
    result = await db_session.execute(select(UserModel).where(UserModel.email == "n@x.com"))
    assert result.scalar_one_or_none() is None


@pytest.mark.asyncio
async def test_requires_authentication(client: AsyncClient):
    response = await client.get("/api/users")

    assert response.status_code == 401
    assert response.json()["error"] == "Not authenticated"


@pytest.mark.asyncio
async def test_requires_permission(client: AsyncClient, make_user, auth_headers, roles):
    editor = await make_user("editor@x.com", role="Editor")

    response = await client.post(
        "/api/users",
        json={"email": "n@x.com", "password": PASSWORD, "display_name": "N", "role_id": roles["Editor"].id},
        headers=auth_headers(editor),
    )

    assert response.status_code == 403


@pytest.mark.asyncio
async def test_list_and_get_users(client: AsyncClient, admin, make_user, auth_headers):
    other = await make_user("other@x.com", role="Viewer")

    listing = await client.get("/api/users", headers=auth_headers(admin))
    single = await client.get(f"/api/users/{other.id}", headers=auth_headers(admin))
    missing = await client.get("/api/users/ghost", headers=auth_headers(admin))

    assert listing.status_code == 200
    assert listing.json()["total"] == 2
    assert single.json()["role"]["name"] == "Viewer"
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_update_user(client: AsyncClient, admin, make_user, auth_headers, roles, identity_provider):
    other = await make_user("other@x.com", role="Viewer")

    response = await client.put(
        f"/api/users/{other.id}",
        json={"display_name": "Renamed", "role_id": roles["Editor"].id, "password": "rotated-pass-1"},
        headers=auth_headers(admin),
    )

    assert response.status_code == 200
    assert response.json()["display_name"] == "Renamed"
    assert response.json()["role"]["name"] == "Editor"
    assert identity_provider.identities[other.id]["password"] == "rotated-pass-1"


@pytest.mark.asyncio
async def test_update_user_email_conflict(client: AsyncClient, admin, make_user, auth_headers):
    other = await make_user("other@x.com")

    response = await client.put(
        f"/api/users/{other.id}", json={"email": "ADMIN@x.com"}, headers=auth_headers(admin)
    )

    assert response.status_code == 409


@pytest.mark.asyncio
async def test_update_user_empty_body(client: AsyncClient, admin, make_user, auth_headers):
    other = await make_user("other@x.com")

    response = await client.put(f"/api/users/{other.id}", json={}, headers=auth_headers(admin))

    assert response.status_code == 400
    assert response.json()["error"] == "No fields to update"


@pytest.mark.asyncio
async def test_delete_user(client: AsyncClient, superadmin, make_user, auth_headers, identity_provider, db_session):
    other = await make_user("other@x.com")

    response = await client.delete(f"/api/users/{other.id}", headers=auth_headers(superadmin))

    assert response.status_code == 204
    assert other.id not in identity_provider.identities
    audit = (
        await db_session.execute(select(AuditLogModel).where(AuditLogModel.action == "DELETE"))
    ).scalar_one()
    assert audit.actor_id == superadmin.id


@pytest.mark.asyncio
async def test_delete_self_is_rejected(client: AsyncClient, superadmin, auth_headers):
    response = await client.delete(f"/api/users/{superadmin.id}", headers=auth_headers(superadmin))

    assert response.status_code == 400
    assert response.json()["error"] == "You cannot delete your own account"


@pytest.mark.asyncio
async def test_admin_cannot_delete(client: AsyncClient, admin, make_user, auth_headers):
    other = await make_user("other@x.com")

    response = await client.delete(f"/api/users/{other.id}", headers=auth_headers(admin))

    assert response.status_code == 403
