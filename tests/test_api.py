import pytest

from conftest import auth_headers
from college_erp.models.user import UserRole


def create_payload(recipient, request_type="leave", **extra):
    payload = {
        "to_user_id": recipient.id,
        "request_type": request_type,
        "subject": "Medical leave",
        "description": "Two days of leave for a medical appointment.",
    }
    payload.update(extra)
    return payload


# ------------------------------------------------------------------
# System
# ------------------------------------------------------------------
@pytest.mark.asyncio
async def test_root(client):
    res = await client.get("/")
    assert res.status_code == 200
    assert res.json()["status"] == "ok"


@pytest.mark.asyncio
async def test_metrics_endpoint(client):
    res = await client.get("/api/metrics")
    assert res.status_code == 200

    data = res.json()
    assert data["status"] == "Online"
    assert data["database"] == "Connected"
    assert "cpu" in data
    assert "ram" in data
    assert isinstance(data["uptime"], int)
    assert isinstance(data["version"], str)


# ------------------------------------------------------------------
# Auth
# ------------------------------------------------------------------
@pytest.mark.asyncio
async def test_login_and_me(client, make_user):
    clerk = await make_user(UserRole.Clerk, "Front Desk", password="s3cret-pass")

    res = await client.post("/api/auth/login", json={"email": clerk.email, "password": "s3cret-pass"})
    assert res.status_code == 200
    body = res.json()
    assert body["token_type"] == "bearer"
    assert body["user"]["role"] == "clerk"

    me = await client.get("/api/auth/me", headers={"Authorization": f"Bearer {body['access_token']}"})
    assert me.status_code == 200
    assert me.json()["id"] == clerk.id


@pytest.mark.asyncio
async def test_login_wrong_password(client, make_user):
    clerk = await make_user(UserRole.Clerk, password="right-pass")
    res = await client.post("/api/auth/login", json={"email": clerk.email, "password": "wrong-pass"})
    assert res.status_code == 401


@pytest.mark.asyncio
async def test_me_requires_token(client):
    assert (await client.get("/api/auth/me")).status_code == 401

    res = await client.get("/api/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert res.status_code == 401


# ------------------------------------------------------------------
# Users (admin only)
# ------------------------------------------------------------------
@pytest.mark.asyncio
async def test_admin_creates_and_lists_users(client, make_user):
    admin = await make_user(UserRole.Admin)
    headers = auth_headers(admin)

    payload = {
        "name": "New Electrician",
        "email": "sparky@college.edu",
        "password": "volts123",
        "role": "electrician",
        "department": "maintenance",
    }
    res = await client.post("/api/users/", json=payload, headers=headers)
    assert res.status_code == 201
    assert res.json()["role"] == "electrician"

    dup = await client.post("/api/users/", json=payload, headers=headers)
    assert dup.status_code == 400

    listed = await client.get("/api/users/", params={"role": "electrician"}, headers=headers)
    assert listed.status_code == 200
    assert [u["email"] for u in listed.json()] == ["sparky@college.edu"]


@pytest.mark.asyncio
async def test_non_admin_cannot_manage_users(client, make_user):
    teacher = await make_user(UserRole.Teacher)
    res = await client.get("/api/users/", headers=auth_headers(teacher))
    assert res.status_code == 403


# ------------------------------------------------------------------
# Hierarchy
# ------------------------------------------------------------------
@pytest.mark.asyncio
async def test_hierarchy_roles(client, make_user):
    student = await make_user(UserRole.Student)
    headers = auth_headers(student)

    roles = await client.get("/api/hierarchy/roles", headers=headers)
    assert roles.status_code == 200
    assert "admin" not in {r["role"] for r in roles.json()}

    registrar = await client.get("/api/hierarchy/roles/registrar", headers=headers)
    assert registrar.status_code == 200
    body = registrar.json()
    assert body["level"] == 3
    assert "all_non_teaching" in body["can_receive_from"]
    assert body["permissions"]["can_view_audit_logs"] is True

    missing = await client.get("/api/hierarchy/roles/dean", headers=headers)
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_hierarchy_requires_login(client):
    assert (await client.get("/api/hierarchy/roles")).status_code == 401


@pytest.mark.asyncio
async def test_request_types_and_next_approver(client, make_user):
    clerk = await make_user(UserRole.Clerk)
    headers = auth_headers(clerk)

    library = await client.get("/api/hierarchy/request-types", params={"category": "Library"}, headers=headers)
    assert library.status_code == 200
    assert {t["request_type"] for t in library.json()} == {"library_request", "library_timing"}

    nxt = await client.get(
        "/api/hierarchy/request-types/certificate/next", params={"role": "registrar"}, headers=headers
    )
    assert nxt.status_code == 200
    assert nxt.json()["next_role"] == "principal"

    last = await client.get(
        "/api/hierarchy/request-types/certificate/next", params={"role": "principal"}, headers=headers
    )
    assert last.json()["next_role"] is None

    unknown = await client.get(
        "/api/hierarchy/request-types/time_travel/next", params={"role": "clerk"}, headers=headers
    )
    assert unknown.status_code == 404

    mine = await client.get("/api/hierarchy/my-request-types", headers=headers)
    assert mine.status_code == 200
    assert "certificate" in mine.json()["request_types"]
    assert "Administrative" in mine.json()["categories"]


# ------------------------------------------------------------------
# Requests
# ------------------------------------------------------------------
@pytest.mark.asyncio
async def test_create_approve_flow(client, make_user):
    student = await make_user(UserRole.Student)
    teacher = await make_user(UserRole.Teacher)

    res = await client.post("/api/requests/", json=create_payload(teacher), headers=auth_headers(student))
    assert res.status_code == 201
    created = res.json()
    assert created["status"] == "pending"
    assert created["from_user_id"] == student.id
    request_id = created["id"]

    incoming = await client.get("/api/requests/incoming", headers=auth_headers(teacher))
    assert [r["id"] for r in incoming.json()] == [request_id]

    approved = await client.post(
        f"/api/requests/{request_id}/approve", json={"comment": "Get well soon"}, headers=auth_headers(teacher)
    )
    assert approved.status_code == 200
    assert approved.json()["status"] == "approved"
    assert approved.json()["comments"][0]["comment"] == "Approved: Get well soon"

    completed = await client.post(f"/api/requests/{request_id}/complete", headers=auth_headers(teacher))
    assert completed.status_code == 200
    assert completed.json()["status"] == "completed"

    stats = await client.get("/api/requests/stats", headers=auth_headers(student))
    assert stats.json()["total"] == 1
    assert stats.json()["completed"] == 1


@pytest.mark.asyncio
async def test_create_auto_forwards(client, make_user):
    clerk = await make_user(UserRole.Clerk)
    registrar = await make_user(UserRole.Registrar)
    principal = await make_user(UserRole.Principal)

    res = await client.post(
        "/api/requests/", json=create_payload(registrar, "certificate"), headers=auth_headers(clerk)
    )
    assert res.status_code == 201
    assert res.json()["status"] == "forwarded"
    assert res.json()["to_user_id"] == principal.id

    pending = await client.get("/api/requests/pending", headers=auth_headers(principal))
    assert [r["id"] for r in pending.json()] == [res.json()["id"]]


@pytest.mark.asyncio
async def test_create_rejects_disallowed_recipient(client, make_user):
    student = await make_user(UserRole.Student)
    principal = await make_user(UserRole.Principal)

    res = await client.post("/api/requests/", json=create_payload(principal), headers=auth_headers(student))
    assert res.status_code == 403


@pytest.mark.asyncio
async def test_create_validation(client, make_user):
    student = await make_user(UserRole.Student)
    teacher = await make_user(UserRole.Teacher)
    headers = auth_headers(student)

    unknown_type = await client.post(
        "/api/requests/", json=create_payload(teacher, "time_travel"), headers=headers
    )
    assert unknown_type.status_code == 422

    missing = await client.post("/api/requests/", json=create_payload(teacher, to_user_id="nobody"), headers=headers)
    assert missing.status_code == 404

    no_auth = await client.post("/api/requests/", json=create_payload(teacher))
    assert no_auth.status_code == 401


@pytest.mark.asyncio
async def test_approve_forbidden_and_missing(client, make_user):
    student = await make_user(UserRole.Student)
    teacher = await make_user(UserRole.Teacher)
    electrician = await make_user(UserRole.Electrician)

    created = await client.post("/api/requests/", json=create_payload(teacher), headers=auth_headers(student))
    request_id = created.json()["id"]

    forbidden = await client.post(f"/api/requests/{request_id}/approve", headers=auth_headers(electrician))
    assert forbidden.status_code == 403

    missing = await client.post("/api/requests/does-not-exist/approve", headers=auth_headers(teacher))
    assert missing.status_code == 404

    rejected = await client.post(f"/api/requests/{request_id}/reject", headers=auth_headers(teacher))
    assert rejected.json()["status"] == "rejected"

    again = await client.post(f"/api/requests/{request_id}/approve", headers=auth_headers(teacher))
    assert again.status_code == 400


@pytest.mark.asyncio
async def test_view_and_comment_permissions(client, make_user):
    student = await make_user(UserRole.Student)
    teacher = await make_user(UserRole.Teacher)
    plumber = await make_user(UserRole.Plumber)

    created = await client.post("/api/requests/", json=create_payload(teacher), headers=auth_headers(student))
    request_id = created.json()["id"]

    assert (await client.get(f"/api/requests/{request_id}", headers=auth_headers(plumber))).status_code == 403
    assert (await client.get("/api/requests/nope", headers=auth_headers(student))).status_code == 404

    comment = await client.post(
        f"/api/requests/{request_id}/comments", json={"comment": "Attached certificate"},
        headers=auth_headers(student),
    )
    assert comment.status_code == 201
    assert comment.json()["sequence"] == 1
    assert comment.json()["user_role"] == "student"

    blocked = await client.post(
        f"/api/requests/{request_id}/comments", json={"comment": "hi"}, headers=auth_headers(plumber)
    )
    assert blocked.status_code == 403


@pytest.mark.asyncio
async def test_all_requests_requires_audit_role(client, make_user):
    hod = await make_user(UserRole.HOD)
    registrar = await make_user(UserRole.Registrar)

    assert (await client.get("/api/requests/all", headers=auth_headers(hod))).status_code == 403
    assert (await client.get("/api/requests/all", headers=auth_headers(registrar))).status_code == 200


@pytest.mark.asyncio
async def test_recipients(client, make_user):
    student = await make_user(UserRole.Student)
    teacher = await make_user(UserRole.Teacher)
    await make_user(UserRole.Principal)

    res = await client.get("/api/requests/recipients", headers=auth_headers(student))
    assert res.status_code == 200
    assert [r["uid"] for r in res.json()] == [teacher.id]


# ------------------------------------------------------------------
# Jobs
# ------------------------------------------------------------------
@pytest.mark.asyncio
async def test_escalation_job_secret(client):
    res = await client.post("/api/jobs/escalate-overdue", params={"secret_key": "wrong"})
    assert res.status_code == 403


@pytest.mark.asyncio
async def test_escalation_job_nothing_overdue(client):
    res = await client.post("/api/jobs/escalate-overdue", params={"secret_key": "test-job-secret"})
    assert res.status_code == 200
    assert res.json() == {"status": "skipped", "message": "No overdue requests found.", "escalated": 0}
