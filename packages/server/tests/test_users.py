"""
API tests for the user directory endpoints.

Repositories are replaced with AsyncMocks through FastAPI dependency
overrides, so these tests cover routing, authorization, and error mapping.
"""

from __future__ import annotations

import uuid

import pytest

from app.repositories.errors import BackendUnavailableError, DuplicateRecordError
from app.repositories.users import UserPage, UserStatistics
from boardmates_shared.schemas.common import UserRole, UserStatus
from conftest import make_user


# ---------------------------------------------------------------------------
# Access control
# ---------------------------------------------------------------------------

class TestAccessControl:

    @pytest.mark.asyncio
    async def test_pending_account_is_rejected(self, client, act_as):
        me = act_as(role="pending", status="pending")
        response = await client.get(f"/api/v1/users/{me.id}")
        assert response.status_code == 403
        assert response.json()["detail"] == "Account is not approved"

    @pytest.mark.asyncio
    async def test_member_cannot_list(self, client, act_as):
        act_as(role="member")
        response = await client.get("/api/v1/users")
        assert response.status_code == 403
        assert response.json()["detail"] == "Administrator access required"

    @pytest.mark.asyncio
    async def test_member_reads_own_profile(self, client, act_as, users_repo):
        me = act_as(role="member")
        users_repo.find_by_id.return_value = me

        response = await client.get(f"/api/v1/users/{me.id}")

        assert response.status_code == 200
        assert response.json()["email"] == me.email

    @pytest.mark.asyncio
    async def test_member_cannot_read_others(self, client, act_as):
        act_as(role="member")
        response = await client.get(f"/api/v1/users/{uuid.uuid4()}")
        assert response.status_code == 403


# ---------------------------------------------------------------------------
# Listing and lookups
# ---------------------------------------------------------------------------

class TestListUsers:

    @pytest.mark.asyncio
    async def test_filters_and_pagination(self, client, users_repo):
        users_repo.list_users.return_value = UserPage(items=[make_user()], total=31)

        response = await client.get(
            "/api/v1/users",
            params={"role": ["member", "director"], "status": "approved", "limit": 10, "offset": 30},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["pagination"] == {"limit": 10, "offset": 30, "total": 31}
        assert len(body["data"]) == 1
        query = users_repo.list_users.call_args.args[0]
        assert query.roles == [UserRole.MEMBER, UserRole.DIRECTOR]
        assert query.statuses == [UserStatus.APPROVED]
        assert query.offset == 30

    @pytest.mark.asyncio
    async def test_limit_is_bounded(self, client):
        response = await client.get("/api/v1/users", params={"limit": 1000})
        assert response.status_code == 422


class TestLookups:

    @pytest.mark.asyncio
    async def test_get_missing_user(self, client, users_repo):
        users_repo.find_by_id.return_value = None
        response = await client.get(f"/api/v1/users/{uuid.uuid4()}")
        assert response.status_code == 404
        assert response.json()["detail"] == "User not found"

    @pytest.mark.asyncio
    async def test_by_email(self, client, users_repo):
        users_repo.find_by_email.return_value = make_user(email="grace@boardmates.io")
        response = await client.get("/api/v1/users/by-email", params={"email": "Grace@boardmates.io"})
        assert response.status_code == 200
        users_repo.find_by_email.assert_awaited_once_with("Grace@boardmates.io")

    @pytest.mark.asyncio
    async def test_search(self, client, act_as, users_repo):
        act_as(role="viewer")
        users_repo.search.return_value = [make_user(), make_user(email="adam@boardmates.io")]

        response = await client.get("/api/v1/users/search", params={"q": "ad", "limit": 5})

        assert response.status_code == 200
        assert len(response.json()["data"]) == 2
        users_repo.search.assert_awaited_once_with("ad", limit=5)

    @pytest.mark.asyncio
    async def test_stats(self, client, users_repo):
        users_repo.statistics.return_value = UserStatistics(
            total=3, by_status={"approved": 3}, by_role={"member": 3}
        )
        response = await client.get("/api/v1/users/stats")
        assert response.status_code == 200
        assert response.json()["total"] == 3


# ---------------------------------------------------------------------------
# Create / update / delete
# ---------------------------------------------------------------------------

class TestCreateUser:

    @pytest.mark.asyncio
    async def test_create(self, client, users_repo):
        created = make_user(email="new@boardmates.io", role="pending", status="pending")
        users_repo.create.return_value = created

        response = await client.post("/api/v1/users", json={"email": "new@boardmates.io"})

        assert response.status_code == 201
        assert response.json()["id"] == str(created.id)
        assert response.json()["status"] == "pending"

    @pytest.mark.asyncio
    async def test_duplicate_email_is_conflict(self, client, users_repo):
        users_repo.create.side_effect = DuplicateRecordError(
            "duplicate key value", code="23505", table="users", operation="create"
        )

        response = await client.post("/api/v1/users", json={"email": "ada@boardmates.io"})

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "DUPLICATE_RECORD"

    @pytest.mark.asyncio
    async def test_invalid_email(self, client):
        response = await client.post("/api/v1/users", json={"email": "not-an-email"})
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_backend_down_is_503(self, client, users_repo):
        users_repo.create.side_effect = BackendUnavailableError("unreachable")
        response = await client.post("/api/v1/users", json={"email": "ada@boardmates.io"})
        assert response.status_code == 503
        assert response.json()["error"]["code"] == "BACKEND_UNAVAILABLE"


class TestUpdateUser:

    @pytest.mark.asyncio
    async def test_member_updates_own_basic_fields(self, client, act_as, users_repo):
        me = act_as(role="member")
        users_repo.update.return_value = make_user(id=str(me.id), company="New Co")

        response = await client.patch(f"/api/v1/users/{me.id}", json={"company": "New Co"})

        assert response.status_code == 200
        assert response.json()["company"] == "New Co"

    @pytest.mark.asyncio
    async def test_member_cannot_change_own_role(self, client, act_as, users_repo):
        me = act_as(role="member")
        response = await client.patch(f"/api/v1/users/{me.id}", json={"role": "admin"})
        assert response.status_code == 403
        assert "role" in response.json()["detail"]
        users_repo.update.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_member_cannot_update_others(self, client, act_as):
        act_as(role="member")
        response = await client.patch(f"/api/v1/users/{uuid.uuid4()}", json={"company": "X"})
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_admin_update_missing_user(self, client, users_repo):
        users_repo.update.return_value = None
        response = await client.patch(f"/api/v1/users/{uuid.uuid4()}", json={"status": "suspended"})
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_email_taken_by_another_user_conflicts(self, client, users_repo):
        target = uuid.uuid4()
        users_repo.email_exists.return_value = True

        response = await client.patch(
            f"/api/v1/users/{target}", json={"email": "grace@boardmates.io"}
        )

        assert response.status_code == 409
        users_repo.email_exists.assert_awaited_once_with(
            "grace@boardmates.io", exclude_user_id=target
        )
        users_repo.update.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unchanged_email_is_allowed(self, client, users_repo):
        target = make_user()
        users_repo.email_exists.return_value = False
        users_repo.update.return_value = target

        response = await client.patch(f"/api/v1/users/{target.id}", json={"email": target.email})

        assert response.status_code == 200
        users_repo.update.assert_awaited_once()


class TestDeleteUser:

    @pytest.mark.asyncio
    async def test_delete(self, client, users_repo):
        target = make_user()
        users_repo.find_by_id.return_value = target

        response = await client.delete(f"/api/v1/users/{target.id}")

        assert response.status_code == 204
        users_repo.delete.assert_awaited_once_with(target.id)

    @pytest.mark.asyncio
    async def test_cannot_delete_self(self, client, caller, users_repo):
        response = await client.delete(f"/api/v1/users/{caller.user.id}")
        assert response.status_code == 400
        users_repo.delete.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_delete_missing(self, client, users_repo):
        users_repo.find_by_id.return_value = None
        response = await client.delete(f"/api/v1/users/{uuid.uuid4()}")
        assert response.status_code == 404


# ---------------------------------------------------------------------------
# Approval workflow
# ---------------------------------------------------------------------------

class TestApproval:

    @pytest.mark.asyncio
    async def test_approve_pending_user(self, client, caller, users_repo):
        pending = make_user(role="pending", status="pending")
        users_repo.find_by_id.return_value = pending
        users_repo.approve.return_value = make_user(
            id=str(pending.id), role="member", status="approved",
            approved_by=str(caller.user.id),
        )

        response = await client.post(f"/api/v1/users/{pending.id}/approve")

        assert response.status_code == 200
        assert response.json()["status"] == "approved"
        users_repo.approve.assert_awaited_once_with(
            pending.id, caller.user.id, role=UserRole.MEMBER
        )

    @pytest.mark.asyncio
    async def test_approve_keeps_assigned_role(self, client, caller, users_repo):
        pending = make_user(role="director", status="pending")
        users_repo.find_by_id.return_value = pending
        users_repo.approve.return_value = make_user(id=str(pending.id), role="director")

        await client.post(f"/api/v1/users/{pending.id}/approve")

        users_repo.approve.assert_awaited_once_with(pending.id, caller.user.id, role=None)

    @pytest.mark.asyncio
    async def test_approve_non_pending_conflicts(self, client, users_repo):
        users_repo.find_by_id.return_value = make_user(status="approved")
        response = await client.post(f"/api/v1/users/{uuid.uuid4()}/approve")
        assert response.status_code == 409

    @pytest.mark.asyncio
    async def test_reject(self, client, users_repo):
        pending = make_user(status="pending")
        users_repo.find_by_id.return_value = pending
        users_repo.reject.return_value = make_user(id=str(pending.id), status="rejected")

        response = await client.post(f"/api/v1/users/{pending.id}/reject")

        assert response.status_code == 200
        assert response.json()["status"] == "rejected"

    @pytest.mark.asyncio
    async def test_bulk_status(self, client, users_repo):
        known = [make_user(), make_user()]
        users_repo.find_by_ids.return_value = known
        users_repo.bulk_update_status.return_value = 2
        ids = [str(user.id) for user in known]

        response = await client.post(
            "/api/v1/users/bulk-status", json={"user_ids": ids, "status": "suspended"}
        )

        assert response.status_code == 200
        assert response.json() == {"updated": 2, "not_found": []}

    @pytest.mark.asyncio
    async def test_bulk_status_reports_unknown_ids(self, client, users_repo):
        known = make_user()
        missing = uuid.uuid4()
        users_repo.find_by_ids.return_value = [known]
        users_repo.bulk_update_status.return_value = 1

        response = await client.post(
            "/api/v1/users/bulk-status",
            json={"user_ids": [str(known.id), str(missing)], "status": "approved"},
        )

        assert response.status_code == 200
        assert response.json() == {"updated": 1, "not_found": [str(missing)]}
        users_repo.bulk_update_status.assert_awaited_once_with([known.id], UserStatus.APPROVED)

    @pytest.mark.asyncio
    async def test_bulk_status_all_unknown_skips_write(self, client, users_repo):
        users_repo.find_by_ids.return_value = []
        missing = str(uuid.uuid4())

        response = await client.post(
            "/api/v1/users/bulk-status", json={"user_ids": [missing], "status": "approved"}
        )

        assert response.json() == {"updated": 0, "not_found": [missing]}
        users_repo.bulk_update_status.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_bulk_status_requires_ids(self, client):
        response = await client.post(
            "/api/v1/users/bulk-status", json={"user_ids": [], "status": "approved"}
        )
        assert response.status_code == 422
