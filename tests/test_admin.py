"""
Tests for administrator endpoints and their permission gates.

These tests verify:
  - Administrators approve, suspend and re-role users, and every change is audited
  - A status change takes effect on the user's very next request
  - Users without the gating permission get 403 unauthorized
  - Inactive administrators are blocked before permissions are considered
"""

import uuid

from jose import jwt

from theycare.models.user import AccountStatus, Role
from theycare.security import create_session_token


def auth(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


class TestUserManagement:

    async def test_list_pending_users(self, admin_client, make_user):
        await make_user("pending@example.com", [Role.VISITOR], status=AccountStatus.PENDING)
        await make_user("active@example.com", [Role.BHW])

        response = await admin_client.get("/admin/users/pending")
        assert response.status_code == 200
        assert [u["email"] for u in response.json()] == ["pending@example.com"]

    async def test_list_users_filters(self, admin_client, make_user):
        await make_user("bhw@example.com", [Role.BHW])
        await make_user("parent@example.com", [Role.PARENT_RESIDENT, Role.PATIENT])

        by_role = await admin_client.get("/admin/users", params={"role": "PATIENT"})
        assert [u["email"] for u in by_role.json()] == ["parent@example.com"]

        by_search = await admin_client.get("/admin/users", params={"search": "BHW"})
        assert [u["email"] for u in by_search.json()] == ["bhw@example.com"]

        by_status = await admin_client.get("/admin/users", params={"status": "ACTIVE"})
        assert len(by_status.json()) == 3  # admin included

    async def test_approve_user(self, admin_client, make_user, login):
        user = await make_user("pending@example.com", [Role.VISITOR], status=AccountStatus.PENDING)
        token = await login("pending@example.com")

        before = await admin_client.get("/auth/session", headers=auth(token))
        assert before.json()["outcome"] == "blocked"

        response = await admin_client.patch(
            f"/admin/users/{user.id}/status", json={"status": "ACTIVE"},
        )
        assert response.status_code == 200
        assert response.json()["status"] == "ACTIVE"

        # Same token, new status
        after = await admin_client.get("/auth/session", headers=auth(token))
        assert after.json()["outcome"] == "allow"

    async def test_suspend_user_blocks_existing_token(self, admin_client, make_user, login):
        user = await make_user("bhw@example.com", [Role.BHW])
        token = await login("bhw@example.com")

        await admin_client.patch(f"/admin/users/{user.id}/status", json={"status": "SUSPENDED"})

        response = await admin_client.get("/auth/navigation", headers=auth(token))
        assert response.status_code == 403
        assert response.json()["error_type"] == "account_not_active"

    async def test_admin_cannot_change_own_status(self, admin_client):
        me = (await admin_client.get("/auth/profile")).json()
        response = await admin_client.patch(
            f"/admin/users/{me['id']}/status", json={"status": "SUSPENDED"},
        )
        assert response.status_code == 403
        assert response.json()["error_type"] == "unauthorized"

    async def test_unknown_user(self, admin_client):
        response = await admin_client.get(f"/admin/users/{uuid.uuid4()}")
        assert response.status_code == 404
        assert response.json()["error_type"] == "user_not_found"

    async def test_invalid_status_value(self, admin_client, make_user):
        user = await make_user("bhw@example.com", [Role.BHW])
        response = await admin_client.patch(
            f"/admin/users/{user.id}/status", json={"status": "BANNED"},
        )
        assert response.status_code == 422


class TestRoleManagement:

    async def test_replace_roles(self, admin_client, make_user):
        user = await make_user("staff@example.com", [Role.VISITOR])
        response = await admin_client.put(
            f"/admin/users/{user.id}/roles",
            json={"roles": ["BHW", "PARENT_RESIDENT"]},
        )
        assert response.status_code == 200
        assert response.json()["roles"] == ["BHW", "PARENT_RESIDENT"]

        fetched = await admin_client.get(f"/admin/users/{user.id}")
        assert fetched.json()["roles"] == ["BHW", "PARENT_RESIDENT"]

    async def test_keep_existing_role(self, admin_client, make_user):
        user = await make_user("staff@example.com", [Role.BHW, Role.PATIENT])
        response = await admin_client.put(
            f"/admin/users/{user.id}/roles", json={"roles": ["BHW", "BHW_COORDINATOR"]},
        )
        assert response.status_code == 200
        assert response.json()["roles"] == ["BHW", "BHW_COORDINATOR"]

    async def test_empty_role_set_rejected(self, admin_client, make_user):
        user = await make_user("staff@example.com", [Role.BHW])
        response = await admin_client.put(f"/admin/users/{user.id}/roles", json={"roles": []})
        assert response.status_code == 422
        assert response.json()["error_type"] == "invalid_role_set"

    async def test_new_roles_apply_on_next_login(self, admin_client, make_user, login):
        user = await make_user("staff@example.com", [Role.VISITOR])
        old_token = await login("staff@example.com")

        await admin_client.put(f"/admin/users/{user.id}/roles", json={"roles": ["BHW"]})

        old = await admin_client.get("/auth/session", headers=auth(old_token))
        assert old.json()["roles"] == ["VISITOR"]

        new_token = await login("staff@example.com")
        new = await admin_client.get("/auth/session", headers=auth(new_token))
        assert new.json()["roles"] == ["BHW"]

    async def test_roles_catalogue(self, admin_client):
        response = await admin_client.get("/admin/roles")
        assert response.status_code == 200
        roles = {r["role"]: r for r in response.json()}
        assert len(roles) == len(Role)
        assert roles["BHW"]["display_name"] == "Barangay Health Worker"
        assert "VACCINATIONS" in roles["BHW"]["permissions"]
        assert roles["VISITOR"]["self_service"] is True
        assert roles["SYSTEM_ADMIN"]["self_service"] is False

    async def test_permissions_catalogue(self, admin_client):
        response = await admin_client.get("/admin/permissions")
        assert response.status_code == 200
        assert "AUDIT_LOGS" in response.json()


class TestAuditAndStats:

    async def test_changes_are_audited(self, admin_client, make_user):
        user = await make_user("pending@example.com", [Role.VISITOR], status=AccountStatus.PENDING)
        await admin_client.patch(f"/admin/users/{user.id}/status", json={"status": "ACTIVE"})
        await admin_client.put(f"/admin/users/{user.id}/roles", json={"roles": ["PATIENT"]})

        response = await admin_client.get("/admin/audit-logs")
        assert response.status_code == 200
        logs = response.json()
        assert len(logs) == 2
        assert {log["entity_id"] for log in logs} == {str(user.id)}

        status_log = next(log for log in logs if "status" in log["changes"])
        assert status_log["changes"]["status"] == {"from": "PENDING", "to": "ACTIVE"}
        roles_log = next(log for log in logs if "roles" in log["changes"])
        assert roles_log["changes"]["roles"] == {"from": ["VISITOR"], "to": ["PATIENT"]}

        filtered = await admin_client.get("/admin/audit-logs", params={"action": "roles"})
        assert len(filtered.json()) == 1

    async def test_stats(self, admin_client, make_user):
        await make_user("p1@example.com", [Role.VISITOR], status=AccountStatus.PENDING)
        await make_user("p2@example.com", [Role.VISITOR], status=AccountStatus.PENDING)
        await make_user("s@example.com", [Role.BHW], status=AccountStatus.SUSPENDED)

        response = await admin_client.get("/admin/stats")
        assert response.status_code == 200
        assert response.json() == {
            "PENDING": 2,
            "ACTIVE": 1,
            "SUSPENDED": 1,
            "INACTIVE": 0,
            "TOTAL": 4,
        }


class TestPermissionGates:

    async def test_bhw_cannot_manage_users(self, client, make_user, login):
        await make_user("bhw@example.com", [Role.BHW])
        token = await login("bhw@example.com")

        response = await client.get("/admin/users", headers=auth(token))
        assert response.status_code == 403
        body = response.json()
        assert body["error_type"] == "unauthorized"
        assert body["permission"] == "USER_MANAGEMENT"

    async def test_captain_manages_users_but_not_roles(self, client, make_user, login):
        target = await make_user("pending@example.com", [Role.VISITOR], status=AccountStatus.PENDING)
        await make_user("captain@example.com", [Role.BARANGAY_CAPTAIN])
        token = await login("captain@example.com")

        approve = await client.patch(
            f"/admin/users/{target.id}/status",
            json={"status": "ACTIVE"},
            headers=auth(token),
        )
        assert approve.status_code == 200

        roles = await client.put(
            f"/admin/users/{target.id}/roles",
            json={"roles": ["BHW"]},
            headers=auth(token),
        )
        assert roles.status_code == 403
        assert roles.json()["permission"] == "ROLE_MANAGEMENT"

    async def test_coordinator_cannot_suspend_admin(self, client, make_user, login):
        admin = await make_user("admin@example.com", [Role.SYSTEM_ADMIN])
        await make_user("coordinator@example.com", [Role.BHW_COORDINATOR])
        token = await login("coordinator@example.com")

        response = await client.patch(
            f"/admin/users/{admin.id}/status",
            json={"status": "SUSPENDED"},
            headers=auth(token),
        )
        assert response.status_code == 403
        assert response.json()["error_type"] == "unauthorized"

        admin_token = await login("admin@example.com")
        session = await client.get("/auth/session", headers=auth(admin_token))
        assert session.json()["outcome"] == "allow"

    async def test_coordinator_can_approve_health_worker(self, client, make_user, login):
        bhw = await make_user("bhw@example.com", [Role.BHW], status=AccountStatus.PENDING)
        await make_user("coordinator@example.com", [Role.BHW_COORDINATOR])
        token = await login("coordinator@example.com")

        response = await client.patch(
            f"/admin/users/{bhw.id}/status",
            json={"status": "ACTIVE"},
            headers=auth(token),
        )
        assert response.status_code == 200
        assert response.json()["status"] == "ACTIVE"

    async def test_captain_cannot_suspend_admin(self, client, make_user, login):
        admin = await make_user("admin@example.com", [Role.SYSTEM_ADMIN])
        await make_user("captain@example.com", [Role.BARANGAY_CAPTAIN])
        token = await login("captain@example.com")

        response = await client.patch(
            f"/admin/users/{admin.id}/status",
            json={"status": "INACTIVE"},
            headers=auth(token),
        )
        assert response.status_code == 403

    async def test_audit_logs_need_permission(self, client, make_user, login):
        await make_user("captain@example.com", [Role.BARANGAY_CAPTAIN])
        token = await login("captain@example.com")
        response = await client.get("/admin/audit-logs", headers=auth(token))
        assert response.status_code == 403

    async def test_pending_admin_is_blocked(self, client, make_user, login):
        await make_user("newadmin@example.com", [Role.SYSTEM_ADMIN], status=AccountStatus.PENDING)
        token = await login("newadmin@example.com")
        response = await client.get("/admin/users", headers=auth(token))
        assert response.status_code == 403
        assert response.json()["error_type"] == "account_not_active"

    async def test_requires_token(self, client):
        response = await client.get("/admin/users")
        assert response.status_code == 401

    async def test_forged_token(self, client, make_user):
        user = await make_user("bhw@example.com", [Role.BHW])
        forged = jwt.encode(
            {"sub": str(user.id), "email": user.email, "roles": ["SYSTEM_ADMIN"]},
            "wrong-secret",
            algorithm="HS256",
        )
        response = await client.get("/admin/users", headers=auth(forged))
        assert response.status_code == 401

        genuine = create_session_token(str(user.id), user.email, ["BHW"])
        response = await client.get("/auth/profile", headers=auth(genuine))
        assert response.status_code == 200
