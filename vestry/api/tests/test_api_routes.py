"""
API Route Tests

Guarded endpoints over HTTP: authentication, generic denial bodies,
tenant scoping and the audit events left behind.
"""

from datetime import datetime, timedelta, timezone

import pytest
from httpx import AsyncClient
from sqlalchemy import select

from vestry.api.access.roles import Role, get_role_permissions
from vestry.api.audit.events import AuditActor, AuditEvent
from vestry.api.audit.taxonomy import AuditAction
from vestry.api.db.models import AuditLog
from vestry.api.tests.conftest import OTHER_TENANT_ID, auth_headers


async def seed_event(recorder, user, action=AuditAction.PERSON_UPDATE):
    return await recorder.record(
        AuditEvent(
            actor=AuditActor(
                tenant_id=user.tenant_id,
                user_id=user.id,
                email=user.email,
                name=user.full_name,
                role=user.role,
            ),
            action=action,
            resource_type="person",
        )
    )


# ==================== Health ====================


@pytest.mark.asyncio
async def test_health(async_client: AsyncClient):
    response = await async_client.get("/api/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


# ==================== Authentication ====================


@pytest.mark.asyncio
async def test_missing_token_is_401(async_client: AsyncClient):
    response = await async_client.get("/api/v1/audit/logs")
    assert response.status_code == 401
    assert response.json() == {"detail": "Authentication required"}


@pytest.mark.asyncio
async def test_invalid_token_is_401(async_client: AsyncClient):
    response = await async_client.get(
        "/api/v1/audit/logs",
        headers={"Authorization": "Bearer not-a-jwt"},
    )
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_expired_token_is_401(async_client: AsyncClient, make_user):
    admin = await make_user(Role.ADMIN)
    expired = datetime.now(timezone.utc) - timedelta(minutes=1)
    response = await async_client.get("/api/v1/audit/logs", headers=auth_headers(admin, exp=expired))
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_inactive_account_is_401(async_client: AsyncClient, make_user):
    admin = await make_user(Role.ADMIN, is_active=False)
    response = await async_client.get("/api/v1/audit/logs", headers=auth_headers(admin))
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_token_for_wrong_tenant_is_401(async_client: AsyncClient, make_user):
    admin = await make_user(Role.ADMIN)
    response = await async_client.get(
        "/api/v1/audit/logs",
        headers=auth_headers(admin, tenant_id=str(OTHER_TENANT_ID)),
    )
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_privileges_follow_the_stored_account(async_client: AsyncClient, make_user, db_session):
    admin = await make_user(Role.ADMIN)
    headers = auth_headers(admin)

    admin.role = Role.VIEWER.value
    admin.permissions = sorted(p.value for p in get_role_permissions(Role.VIEWER))
    await db_session.commit()

    response = await async_client.get("/api/v1/accounts", headers=headers)
    assert response.status_code == 403

    response = await async_client.get("/api/v1/access/me", headers=headers)
    assert response.json()["role"] == "VIEWER"


@pytest.mark.asyncio
async def test_revoked_super_user_flag_applies_immediately(async_client: AsyncClient, make_user, db_session):
    super_user = await make_user(Role.ADMIN, is_super_user=True)
    viewer = await make_user(Role.VIEWER)
    headers = auth_headers(super_user)

    super_user.is_super_user = False
    await db_session.commit()

    response = await async_client.get("/api/v1/access/me", headers=headers)
    assert response.json()["is_super_user"] is False

    response = await async_client.put(
        f"/api/v1/accounts/{viewer.id}/permissions",
        json={"permissions": ["persons:view"]},
        headers=headers,
    )
    assert response.status_code == 403

# ==================== Authorization ====================


@pytest.mark.asyncio
async def test_denial_body_is_generic(async_client: AsyncClient, make_user):
    editor = await make_user(Role.EDITOR)
    response = await async_client.get("/api/v1/audit/logs", headers=auth_headers(editor))

    assert response.status_code == 403
    assert response.json() == {"detail": "Not authorized"}
    assert "audit" not in response.text


@pytest.mark.asyncio
async def test_custom_override_grants_access(async_client: AsyncClient, make_user):
    viewer = await make_user(Role.VIEWER, permissions=["audit:view"], use_custom_permissions=True)
    response = await async_client.get("/api/v1/audit/logs", headers=auth_headers(viewer))
    assert response.status_code == 200


# ==================== Audit Endpoints ====================


@pytest.mark.asyncio
async def test_list_logs_is_tenant_scoped(async_client: AsyncClient, make_user, recorder):
    admin = await make_user(Role.ADMIN)
    foreign = await make_user(Role.ADMIN, tenant_id=OTHER_TENANT_ID)
    await seed_event(recorder, admin)
    await seed_event(recorder, admin, AuditAction.PERSON_DELETE)
    await seed_event(recorder, foreign)

    response = await async_client.get("/api/v1/audit/logs", headers=auth_headers(admin))

    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 2
    assert data["total_pages"] == 1
    assert [item["action"] for item in data["items"]] == ["person.delete", "person.update"]
    assert data["items"][0]["severity"] == "warning"


@pytest.mark.asyncio
async def test_list_logs_filters_and_validates(async_client: AsyncClient, make_user, recorder):
    admin = await make_user(Role.ADMIN)
    await seed_event(recorder, admin)
    await seed_event(recorder, admin, AuditAction.PERSON_DELETE)

    response = await async_client.get(
        "/api/v1/audit/logs",
        params={"severity": "warning"},
        headers=auth_headers(admin),
    )
    assert response.json()["total"] == 1

    response = await async_client.get(
        "/api/v1/audit/logs",
        params={"category": "not-a-category"},
        headers=auth_headers(admin),
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_get_log_of_other_tenant_is_404(async_client: AsyncClient, make_user, recorder):
    admin = await make_user(Role.ADMIN)
    foreign = await make_user(Role.ADMIN, tenant_id=OTHER_TENANT_ID)
    event = await seed_event(recorder, foreign)

    response = await async_client.get(f"/api/v1/audit/logs/{event.event_id}", headers=auth_headers(admin))
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_stats(async_client: AsyncClient, make_user, recorder):
    owner = await make_user(Role.OWNER)
    await seed_event(recorder, owner)
    await seed_event(recorder, owner, AuditAction.LOGIN)

    response = await async_client.get("/api/v1/audit/stats", headers=auth_headers(owner))

    assert response.status_code == 200
    data = response.json()
    assert data["total_events"] == 2
    assert data["by_category"] == {"persons": 1, "auth": 1}
    assert data["by_user"][0]["count"] == 2
    assert data["period_days"] == 30


@pytest.mark.asyncio
async def test_export_requires_export_permission(async_client: AsyncClient, make_user):
    owner = await make_user(Role.OWNER)
    response = await async_client.get("/api/v1/audit/export", headers=auth_headers(owner))
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_export_is_audited(async_client: AsyncClient, make_user, recorder, db_session):
    super_admin = await make_user(Role.SUPER_ADMIN)
    await seed_event(recorder, super_admin)

    response = await async_client.get(
        "/api/v1/audit/export",
        headers={**auth_headers(super_admin), "User-Agent": "compliance-bot"},
    )

    assert response.status_code == 200
    data = response.json()
    assert data["event_count"] == 1
    assert len(data["integrity_hash"]) == 64

    row = await db_session.scalar(
        select(AuditLog).where(AuditLog.action == AuditAction.EXPORT_DATA.value)
    )
    assert row is not None
    assert row.severity == "warning"
    assert row.user_agent == "compliance-bot"
    assert row.endpoint == "/api/v1/audit/export"
    assert row.event_metadata["integrity_hash"] == data["integrity_hash"]


@pytest.mark.asyncio
async def test_naive_dates_are_read_as_utc(async_client: AsyncClient, make_user, recorder):
    super_admin = await make_user(Role.SUPER_ADMIN)
    await seed_event(recorder, super_admin)

    response = await async_client.get(
        "/api/v1/audit/export",
        params={"start_date": "2026-01-01T00:00:00"},
        headers=auth_headers(super_admin),
    )
    assert response.status_code == 200
    assert response.json()["period_start"] == "2026-01-01T00:00:00+00:00"

    response = await async_client.get(
        "/api/v1/audit/logs",
        params={"start_date": "2026-01-01T00:00:00"},
        headers=auth_headers(super_admin),
    )
    assert response.status_code == 200


# ==================== Access Endpoints ====================


@pytest.mark.asyncio
async def test_permission_catalog_for_tenant_admins(async_client: AsyncClient, make_user):
    admin = await make_user(Role.ADMIN)
    editor = await make_user(Role.EDITOR)

    response = await async_client.get("/api/v1/access/permissions", headers=auth_headers(admin))
    assert response.status_code == 200
    data = response.json()
    assert "users:delete" not in data["role_defaults"]["ADMIN"]
    assert [r["value"] for r in data["roles"]][0] == "SUPER_ADMIN"
    assert "Audit" in data["categories"]

    response = await async_client.get("/api/v1/access/permissions", headers=auth_headers(editor))
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_my_permissions(async_client: AsyncClient, make_user):
    editor = await make_user(Role.EDITOR)

    response = await async_client.get("/api/v1/access/me", headers=auth_headers(editor))

    assert response.status_code == 200
    data = response.json()
    assert "programs:view" in data["permissions"]
    assert "users:delete" not in data["permissions"]

    response = await async_client.get("/api/v1/access/me")
    assert response.status_code == 401


# ==================== Account Endpoints ====================


@pytest.mark.asyncio
async def test_create_and_list_accounts(async_client: AsyncClient, make_user):
    admin = await make_user(Role.ADMIN)

    response = await async_client.post(
        "/api/v1/accounts",
        json={"email": "deacon@vestry.org", "full_name": "Deacon", "role": "EDITOR"},
        headers=auth_headers(admin),
    )
    assert response.status_code == 201
    assert response.json()["role"] == "EDITOR"

    response = await async_client.get("/api/v1/accounts", headers=auth_headers(admin))
    assert response.status_code == 200
    assert response.json()["total"] == 2


@pytest.mark.asyncio
async def test_role_change_over_http(async_client: AsyncClient, make_user):
    super_admin = await make_user(Role.SUPER_ADMIN)
    admin = await make_user(Role.ADMIN)
    viewer = await make_user(Role.VIEWER)

    response = await async_client.patch(
        f"/api/v1/accounts/{viewer.id}",
        json={"role": "EDITOR"},
        headers=auth_headers(admin),
    )
    assert response.status_code == 403
    assert response.json() == {"detail": "Not authorized"}

    response = await async_client.patch(
        f"/api/v1/accounts/{viewer.id}",
        json={"role": "EDITOR"},
        headers=auth_headers(super_admin),
    )
    assert response.status_code == 200
    assert response.json()["role"] == "EDITOR"

    response = await async_client.patch(
        f"/api/v1/accounts/{super_admin.id}",
        json={"role": "VIEWER"},
        headers=auth_headers(super_admin),
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_self_deactivation_is_400(async_client: AsyncClient, make_user):
    super_admin = await make_user(Role.SUPER_ADMIN)
    response = await async_client.post(
        f"/api/v1/accounts/{super_admin.id}/deactivate",
        headers=auth_headers(super_admin),
    )
    assert response.status_code == 400
    assert response.json()["code"] == "self_removal"


@pytest.mark.asyncio
async def test_permissions_endpoint_is_super_user_only(async_client: AsyncClient, make_user):
    super_admin = await make_user(Role.SUPER_ADMIN)
    super_user = await make_user(Role.ADMIN, is_super_user=True)
    viewer = await make_user(Role.VIEWER)
    body = {"permissions": ["persons:view", "audit:view"]}

    response = await async_client.put(
        f"/api/v1/accounts/{viewer.id}/permissions", json=body, headers=auth_headers(super_admin)
    )
    assert response.status_code == 403

    response = await async_client.put(
        f"/api/v1/accounts/{viewer.id}/permissions", json=body, headers=auth_headers(super_user)
    )
    assert response.status_code == 200
    assert response.json()["use_custom_permissions"] is True


@pytest.mark.asyncio
async def test_unknown_account_is_404(async_client: AsyncClient, make_user):
    admin = await make_user(Role.ADMIN)
    response = await async_client.get(
        "/api/v1/accounts/00000000-0000-0000-0000-00000000dead",
        headers=auth_headers(admin),
    )
    assert response.status_code == 404
