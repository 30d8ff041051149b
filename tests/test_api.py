from datetime import date, timedelta

import pytest
from fastapi import status

pytestmark = pytest.mark.anyio


def _task_payload(**overrides):
    payload = {
        "title": "Prepare quarterly report",
        "description": "Numbers for Q3",
        "assigned_to": "sam@company.com",
        "due_date": (date.today() + timedelta(days=5)).isoformat(),
    }
    payload.update(overrides)
    return payload


@pytest.fixture
async def created_task(client, auth_headers, roster):
    response = await client.post(
        "/api/tasks", json=_task_payload(), headers=auth_headers["admin"],
    )
    assert response.status_code == status.HTTP_201_CREATED
    return response.json()


async def test_health(client):
    response = await client.get("/api/health")
    assert response.status_code == status.HTTP_200_OK


# ---- auth ----
async def test_login_flow(client, credentials):
    response = await client.post(
        "/api/auth/lookup", json={"email": "sam@company.com", "role": "staff"},
    )
    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {
        "user_id": "STF-SAM-TEST",
        "name": "Sam Staff",
        "role": "staff",
    }

    response = await client.post(
        "/api/auth/token",
        json={"email": "sam@company.com", "role": "staff", "otp": "246810"},
    )
    assert response.status_code == status.HTTP_200_OK
    token = response.json()["access_token"]

    me = await client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert me.json() == {"name": "Sam Staff", "email": "sam@company.com", "role": "staff"}


async def test_lookup_unknown_account(client, credentials):
    response = await client.post(
        "/api/auth/lookup", json={"email": "sam@company.com", "role": "admin"},
    )
    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json()["detail"] == (
        "No account found with email sam@company.com and role admin. "
        "Contact your administrator."
    )


async def test_wrong_otp(client, credentials):
    response = await client.post(
        "/api/auth/token",
        json={"email": "sam@company.com", "role": "staff", "otp": "111111"},
    )
    assert response.status_code == status.HTTP_401_UNAUTHORIZED
    assert response.json()["detail"] == "Invalid OTP. Please check and try again."


async def test_logout_revokes_token(client, auth_headers):
    headers = auth_headers["staff"]
    assert (await client.get("/api/auth/me", headers=headers)).status_code == 200

    response = await client.post("/api/auth/logout", headers=headers)
    assert response.status_code == status.HTTP_204_NO_CONTENT

    response = await client.get("/api/auth/me", headers=headers)
    assert response.status_code == status.HTTP_401_UNAUTHORIZED


async def test_requests_without_token_are_unauthorized(client):
    response = await client.get("/api/tasks/mine")
    assert response.status_code == status.HTTP_401_UNAUTHORIZED

    response = await client.get(
        "/api/tasks/mine", headers={"Authorization": "Bearer garbage"},
    )
    assert response.status_code == status.HTTP_401_UNAUTHORIZED


async def test_superadmin_provisions_account(client, auth_headers):
    payload = {"name": "New Hire", "email": "new.hire@company.com", "job_role": "Support"}

    response = await client.post(
        "/api/auth/accounts", json=payload, headers=auth_headers["admin"],
    )
    assert response.status_code == status.HTTP_403_FORBIDDEN

    response = await client.post(
        "/api/auth/accounts", json=payload, headers=auth_headers["superadmin"],
    )
    assert response.status_code == status.HTTP_201_CREATED
    account = response.json()
    assert account["user_id"].startswith("STF-NEW.-")

    response = await client.post(
        "/api/auth/token",
        json={"email": "new.hire@company.com", "role": "staff", "otp": account["otp"]},
    )
    assert response.status_code == status.HTTP_200_OK

    response = await client.post(
        "/api/auth/accounts", json=payload, headers=auth_headers["superadmin"],
    )
    assert response.status_code == status.HTTP_409_CONFLICT


async def test_account_email_is_validated(client, auth_headers):
    response = await client.post(
        "/api/auth/accounts",
        json={"name": "X", "email": "nope", "job_role": "QA"},
        headers=auth_headers["superadmin"],
    )
    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY


# ---- tasks ----
async def test_staff_cannot_create_task(client, auth_headers, roster):
    response = await client.post(
        "/api/tasks", json=_task_payload(), headers=auth_headers["staff"],
    )
    assert response.status_code == status.HTTP_403_FORBIDDEN


async def test_create_task_validation(client, auth_headers, roster):
    past = (date.today() - timedelta(days=1)).isoformat()
    response = await client.post(
        "/api/tasks", json=_task_payload(due_date=past), headers=auth_headers["admin"],
    )
    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    response = await client.post(
        "/api/tasks",
        json=_task_payload(project_id="nope"),
        headers=auth_headers["admin"],
    )
    assert response.status_code == status.HTTP_404_NOT_FOUND


async def test_workflow_over_http(client, auth_headers, created_task):
    task_id = created_task["id"]
    assert created_task["approval_status"] == "assigned"
    assert created_task["status"] == "pending"
    assert created_task["assigned_by"] == "adam@company.com"

    response = await client.post(
        f"/api/tasks/{task_id}/complete",
        json={"notes": "Attached"},
        headers=auth_headers["other_staff"],
    )
    assert response.status_code == status.HTTP_403_FORBIDDEN

    response = await client.post(
        f"/api/tasks/{task_id}/complete",
        json={"notes": "Attached"},
        headers=auth_headers["staff"],
    )
    assert response.json()["approval_status"] == "in-review"

    pending = await client.get("/api/tasks/pending-review", headers=auth_headers["admin"])
    assert [t["id"] for t in pending.json()] == [task_id]

    response = await client.post(
        f"/api/tasks/{task_id}/admin-review",
        json={"approved": False, "comments": ""},
        headers=auth_headers["admin"],
    )
    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    response = await client.post(
        f"/api/tasks/{task_id}/admin-review",
        json={"approved": True, "comments": "Nice"},
        headers=auth_headers["admin"],
    )
    assert response.json()["approval_status"] == "admin-approved"

    response = await client.post(
        f"/api/tasks/{task_id}/admin-review",
        json={"approved": True},
        headers=auth_headers["admin"],
    )
    assert response.status_code == status.HTTP_409_CONFLICT

    approval = await client.get(
        "/api/tasks/pending-approval", headers=auth_headers["superadmin"],
    )
    assert [t["id"] for t in approval.json()] == [task_id]

    response = await client.post(
        f"/api/tasks/{task_id}/superadmin-review",
        json={"approved": True},
        headers=auth_headers["superadmin"],
    )
    body = response.json()
    assert body["approval_status"] == "superadmin-approved"
    assert body["superadmin_reviewed_by"] == "sue@company.com"


async def test_pending_approval_is_superadmin_only(client, auth_headers):
    for key in ("staff", "admin"):
        response = await client.get("/api/tasks/pending-approval", headers=auth_headers[key])
        assert response.status_code == status.HTTP_403_FORBIDDEN


async def test_pending_review_not_for_staff(client, auth_headers):
    response = await client.get("/api/tasks/pending-review", headers=auth_headers["staff"])
    assert response.status_code == status.HTTP_403_FORBIDDEN


async def test_task_detail_visibility(client, auth_headers, created_task):
    task_id = created_task["id"]

    response = await client.get(f"/api/tasks/{task_id}", headers=auth_headers["staff"])
    assert response.status_code == status.HTTP_200_OK
    detail = response.json()
    assert detail["assignee_name"] == "Sam Staff"
    assert detail["project_name"] == "No Project"
    assert detail["is_overdue"] is False

    response = await client.get(
        f"/api/tasks/{task_id}", headers=auth_headers["other_staff"],
    )
    assert response.status_code == status.HTTP_403_FORBIDDEN

    response = await client.get("/api/tasks/missing", headers=auth_headers["admin"])
    assert response.status_code == status.HTTP_404_NOT_FOUND


async def test_my_tasks_and_list(client, auth_headers, created_task):
    mine = await client.get("/api/tasks/mine", headers=auth_headers["staff"])
    assert [t["id"] for t in mine.json()] == [created_task["id"]]

    theirs = await client.get("/api/tasks/mine", headers=auth_headers["other_staff"])
    assert theirs.json() == []

    response = await client.get("/api/tasks", headers=auth_headers["staff"])
    assert response.status_code == status.HTTP_403_FORBIDDEN

    response = await client.get(
        "/api/tasks", params={"status": "pending"}, headers=auth_headers["admin"],
    )
    assert [t["id"] for t in response.json()] == [created_task["id"]]

    response = await client.get(
        "/api/tasks", params={"status": "completed"}, headers=auth_headers["admin"],
    )
    assert response.json() == []


async def test_patch_task(client, auth_headers, created_task):
    task_id = created_task["id"]

    response = await client.patch(
        f"/api/tasks/{task_id}",
        json={"status": "in-progress"},
        headers=auth_headers["staff"],
    )
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["status"] == "in-progress"

    response = await client.patch(
        f"/api/tasks/{task_id}", json={"title": "Mine now"}, headers=auth_headers["staff"],
    )
    assert response.status_code == status.HTTP_403_FORBIDDEN

    response = await client.patch(
        f"/api/tasks/{task_id}",
        json={"status": "completed"},
        headers=auth_headers["admin"],
    )
    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    response = await client.patch(
        f"/api/tasks/{task_id}",
        json={"priority": "high", "title": "Quarterly report v2"},
        headers=auth_headers["admin"],
    )
    assert response.json()["priority"] == "high"
    assert response.json()["title"] == "Quarterly report v2"


async def test_delete_task(client, auth_headers, created_task):
    task_id = created_task["id"]

    response = await client.delete(f"/api/tasks/{task_id}", headers=auth_headers["staff"])
    assert response.status_code == status.HTTP_403_FORBIDDEN

    response = await client.delete(f"/api/tasks/{task_id}", headers=auth_headers["admin"])
    assert response.status_code == status.HTTP_204_NO_CONTENT

    response = await client.get(f"/api/tasks/{task_id}", headers=auth_headers["admin"])
    assert response.status_code == status.HTTP_404_NOT_FOUND


async def test_stats_are_scoped_by_role(client, auth_headers, created_task):
    await client.post(
        "/api/tasks",
        json=_task_payload(assigned_to="olivia@company.com"),
        headers=auth_headers["admin"],
    )

    staff_stats = await client.get("/api/tasks/stats", headers=auth_headers["staff"])
    admin_stats = await client.get("/api/tasks/stats", headers=auth_headers["admin"])

    assert staff_stats.json()["total"] == 1
    assert admin_stats.json()["total"] == 2
    assert admin_stats.json()["by_approval_status"]["assigned"] == 2


async def test_overdue_is_manager_only(client, auth_headers):
    response = await client.get("/api/tasks/overdue", headers=auth_headers["staff"])
    assert response.status_code == status.HTTP_403_FORBIDDEN

    response = await client.get("/api/tasks/overdue", headers=auth_headers["admin"])
    assert response.json() == []


# ---- team and projects ----
async def test_team_endpoints(client, auth_headers, roster):
    response = await client.get(
        "/api/team", params={"doers_only": True}, headers=auth_headers["staff"],
    )
    assert [m["email"] for m in response.json()] == [
        "sam@company.com",
        "olivia@company.com",
    ]

    payload = {"name": "Tom", "email": "tom@company.com", "job_role": "Ops"}
    response = await client.post(
        "/api/team",
        json={"name": "Tom", "email": "not-an-email", "job_role": "Ops"},
        headers=auth_headers["superadmin"],
    )
    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    response = await client.post("/api/team", json=payload, headers=auth_headers["admin"])
    assert response.status_code == status.HTTP_403_FORBIDDEN

    response = await client.post(
        "/api/team", json=payload, headers=auth_headers["superadmin"],
    )
    assert response.status_code == status.HTTP_201_CREATED
    member_id = response.json()["id"]

    response = await client.post(
        "/api/team", json=payload, headers=auth_headers["superadmin"],
    )
    assert response.status_code == status.HTTP_409_CONFLICT

    response = await client.delete(
        f"/api/team/{member_id}", headers=auth_headers["superadmin"],
    )
    assert response.status_code == status.HTTP_204_NO_CONTENT

    response = await client.get(f"/api/team/{member_id}", headers=auth_headers["admin"])
    assert response.status_code == status.HTTP_404_NOT_FOUND


async def test_project_endpoints(client, auth_headers, created_task):
    response = await client.post(
        "/api/projects",
        json={"name": "Ops", "color": "blue"},
        headers=auth_headers["admin"],
    )
    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    response = await client.post(
        "/api/projects",
        json={"name": "Ops", "color": "#112233"},
        headers=auth_headers["admin"],
    )
    assert response.status_code == status.HTTP_201_CREATED
    project_id = response.json()["id"]

    await client.patch(
        f"/api/tasks/{created_task['id']}",
        json={"project_id": project_id},
        headers=auth_headers["admin"],
    )
    detail = await client.get(
        f"/api/tasks/{created_task['id']}", headers=auth_headers["admin"],
    )
    assert detail.json()["project_name"] == "Ops"

    response = await client.delete(
        f"/api/projects/{project_id}", headers=auth_headers["staff"],
    )
    assert response.status_code == status.HTTP_403_FORBIDDEN

    response = await client.delete(
        f"/api/projects/{project_id}", headers=auth_headers["admin"],
    )
    assert response.status_code == status.HTTP_204_NO_CONTENT

    detail = await client.get(
        f"/api/tasks/{created_task['id']}", headers=auth_headers["admin"],
    )
    assert detail.json()["project_id"] == project_id
    assert detail.json()["project_name"] == "Unknown Project"
