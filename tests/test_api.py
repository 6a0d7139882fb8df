# tests/test_api.py
import pytest
from fastapi.testclient import TestClient

from placement_portal.main import app
from placement_portal.services.job_service import JobService
from placement_portal.services.notification_service import create_unsubscribe_token

PASSWORD = "s3cret-pass"


@pytest.fixture
def client():
    # no context manager: the lifespan would reach for the real databases
    return TestClient(app)


def register_and_login(client, email, role="student", profile=None):
    response = client.post("/api/auth/register", json={
        "email": email, "password": PASSWORD, "role": role, "profile": profile or {},
    })
    assert response.status_code == 201, response.text
    response = client.post("/api/auth/login", json={"email": email, "password": PASSWORD})
    assert response.status_code == 200, response.text
    body = response.json()
    return {"Authorization": f"Bearer {body['access_token']}"}, str(body["user_id"])


@pytest.fixture
def student(client):
    return register_and_login(client, "asha@college.edu", profile={"full_name": "Asha Rao", "batch": "2024"})


@pytest.fixture
def recruiter(client):
    return register_and_login(client, "hr@acme.co.in", role="recruiter")


def test_health(client):
    assert client.get("/").json()["status"] == "healthy"
    assert client.get("/health").status_code == 200


def test_register_creates_student_profile(client, student):
    headers, user_id = student

    response = client.get("/api/students/profile", headers=headers)

    assert response.status_code == 200
    profile = response.json()
    assert profile["id"] == user_id
    assert profile["full_name"] == "Asha Rao"
    assert profile["email"] == "asha@college.edu"
    assert profile["stats"] == {"applied": 0, "shortlisted": 0, "interviewed": 0, "offers": 0}


def test_duplicate_registration(client, student):
    response = client.post("/api/auth/register", json={"email": "Asha@college.edu", "password": PASSWORD})

    assert response.status_code == 400


def test_bad_login(client, student):
    response = client.post("/api/auth/login", json={"email": "asha@college.edu", "password": "wrong-pass"})

    assert response.status_code == 401


def test_requires_token(client):
    assert client.get("/api/auth/me").status_code in (401, 403)


def test_apply_and_status_pipeline(client, student, recruiter):
    headers, user_id = student
    recruiter_headers, _ = recruiter
    job_id = JobService().create_job("rec1", {"title": "Backend Developer", "company": {"name": "Acme Corp"}})

    response = client.post("/api/applications", json={"job_id": job_id}, headers=headers)
    assert response.status_code == 201
    application_id = response.json()["application_id"]
    assert application_id == f"{user_id}_{job_id}"

    again = client.post("/api/applications", json={"job_id": job_id}, headers=headers)
    assert again.status_code == 409

    [application] = client.get("/api/applications/me", headers=headers).json()
    assert application["job_title"] == "Backend Developer"
    assert application["company_name"] == "Acme Corp"

    # students cannot move their own application
    forbidden = client.put(f"/api/applications/{application_id}/status",
                           json={"status": "offered"}, headers=headers)
    assert forbidden.status_code == 403

    bad = client.put(f"/api/applications/{application_id}/status",
                     json={"status": "hired"}, headers=recruiter_headers)
    assert bad.status_code == 400

    ok = client.put(f"/api/applications/{application_id}/status",
                    json={"status": "shortlisted"}, headers=recruiter_headers)
    assert ok.status_code == 200

    stats = client.get("/api/students/stats", headers=headers).json()
    assert stats == {"applied": 1, "shortlisted": 1, "interviewed": 0, "offers": 0}

    [notification] = client.get("/api/notifications", headers=headers).json()
    assert notification["body"] == "Your application for Backend Developer at Acme Corp is now shortlisted."


def test_apply_to_missing_application_status(client, recruiter):
    recruiter_headers, _ = recruiter

    response = client.put("/api/applications/nobody_nothing/status",
                          json={"status": "shortlisted"}, headers=recruiter_headers)

    assert response.status_code == 404


def test_logout_revokes_token(client, student):
    headers, _ = student
    assert client.get("/api/auth/me", headers=headers).status_code == 200

    assert client.post("/api/auth/logout", headers=headers).status_code == 200

    assert client.get("/api/auth/me", headers=headers).status_code == 401


def test_password_reset_flow(client, student, mongo_db):
    response = client.post("/api/auth/password-reset", json={"email": "asha@college.edu"})
    assert response.status_code == 200
    unknown = client.post("/api/auth/password-reset", json={"email": "nobody@college.edu"})
    assert unknown.json()["message"] == response.json()["message"]

    record = mongo_db["emailNotifications"].find_one({"email_type": "password_reset"})
    confirm = client.post("/api/auth/password-reset/confirm",
                          json={"token": record["reset_token"], "new_password": "brand-new-pass"})
    assert confirm.status_code == 200

    login = client.post("/api/auth/login", json={"email": "asha@college.edu", "password": "brand-new-pass"})
    assert login.status_code == 200
    # a reset token is not an access token
    me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {record['reset_token']}"})
    assert me.status_code == 401


def test_reset_with_bad_token(client):
    response = client.post("/api/auth/password-reset/confirm",
                           json={"token": "not-a-token", "new_password": "brand-new-pass"})

    assert response.status_code == 400


def test_unsubscribe_link(client, mongo_db):
    token = create_unsubscribe_token("asha@college.edu")

    response = client.get("/api/notifications/unsubscribe",
                          params={"token": token, "email": "asha@college.edu"})

    assert response.status_code == 200
    assert response.json()["message"] == "Successfully unsubscribed from job notifications"
    assert mongo_db["unsubscribedUsers"].count_documents({"email": "asha@college.edu"}) == 1

    forged = client.get("/api/notifications/unsubscribe",
                        params={"token": token, "email": "ravi@college.edu"})
    assert forged.status_code == 400


def test_resubscribe_only_own_email(client, student):
    headers, _ = student

    other = client.post("/api/notifications/resubscribe", json={"email": "ravi@college.edu"}, headers=headers)
    own = client.post("/api/notifications/resubscribe", json={"email": "asha@college.edu"}, headers=headers)

    assert other.status_code == 403
    assert own.json()["message"] == "User was not unsubscribed"


def test_admin_reconcile(client, student, mongo_db):
    _, user_id = student
    admin_headers, _ = register_and_login(client, "admin@college.edu", role="admin")
    job_id = JobService().create_job("rec1", {"title": "Analyst"})
    mongo_db["applications"].insert_one({
        "_id": f"{user_id}_{job_id}", "student_id": user_id, "job_id": job_id, "status": "interviewed",
    })

    response = client.post(f"/api/admin/students/{user_id}/reconcile-stats", headers=admin_headers)

    assert response.status_code == 200
    body = response.json()
    assert body["changed"] is True
    assert body["after"] == {"applied": 1, "shortlisted": 0, "interviewed": 1, "offers": 0}


def test_admin_routes_reject_students(client, student):
    headers, user_id = student

    response = client.post(f"/api/admin/students/{user_id}/reconcile-stats", headers=headers)

    assert response.status_code == 403


@pytest.fixture
def admin(client):
    return register_and_login(client, "admin@college.edu", role="admin")


def test_job_moderation_flow(client, recruiter, admin):
    recruiter_headers, recruiter_id = recruiter
    admin_headers, _ = admin
    created = client.post("/api/jobs", json={"title": "Data Analyst", "status": "draft"},
                          headers=recruiter_headers)
    job_id = created.json()["job_id"]

    assert client.get("/api/admin/jobs/analytics", headers=admin_headers).json()["pending_approval"] == 1

    approved = client.put(f"/api/admin/jobs/{job_id}/approve", headers=admin_headers)
    assert approved.status_code == 200
    assert approved.json()["status"] == "open"

    rejected = client.put(f"/api/admin/jobs/{job_id}/reject", json={"reason": "Duplicate posting"},
                          headers=admin_headers)
    assert rejected.json()["rejection_reason"] == "Duplicate posting"

    [found] = client.get("/api/admin/jobs", params={"term": "analyst"}, headers=admin_headers).json()
    assert found["status"] == "rejected"

    assert client.get("/api/notifications/unread-count", headers=recruiter_headers).json() == {"unread": 2}
    assert client.put("/api/notifications/read-all", headers=recruiter_headers).status_code == 200
    assert client.get("/api/notifications/unread-count", headers=recruiter_headers).json() == {"unread": 0}


def test_blocked_recruiter_cannot_post(client, recruiter, admin):
    recruiter_headers, recruiter_id = recruiter
    admin_headers, _ = admin

    blocked = client.put(f"/api/admin/recruiters/{recruiter_id}/block",
                         json={"reason": "Fake company"}, headers=admin_headers)
    assert blocked.json()["action"] == "blocked"

    response = client.post("/api/jobs", json={"title": "Sales Associate"}, headers=recruiter_headers)
    assert response.status_code == 403

    client.put(f"/api/admin/recruiters/{recruiter_id}/block", json={"is_unblocking": True}, headers=admin_headers)
    response = client.post("/api/jobs", json={"title": "Sales Associate"}, headers=recruiter_headers)
    assert response.status_code == 201

    summary = client.get(f"/api/admin/recruiters/{recruiter_id}/summary", headers=admin_headers).json()
    assert summary["total_jobs"] == 1
    assert summary["status_changes"] == 2


def test_recruiter_admin_lookups(client, recruiter, admin):
    _, recruiter_id = recruiter
    admin_headers, _ = admin

    [found] = client.get("/api/admin/recruiters", params={"term": "acme"}, headers=admin_headers).json()
    assert found["id"] == recruiter_id

    status = client.put(f"/api/admin/recruiters/{recruiter_id}/status", json={"status": "pending"},
                        headers=admin_headers)
    assert status.json()["status"] == "pending"
    bad = client.put(f"/api/admin/recruiters/{recruiter_id}/status", json={"status": "sleeping"},
                     headers=admin_headers)
    assert bad.status_code == 422
    assert client.get("/api/admin/recruiters/nobody/jobs", headers=admin_headers).status_code == 404


def test_dashboard_and_csv_export(client, student, admin):
    admin_headers, _ = admin

    stats = client.get("/api/admin/dashboard", params={"batch": "2024"}, headers=admin_headers).json()
    assert stats["total_students"] == 1

    response = client.get("/api/admin/export/students", headers=admin_headers)
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert response.headers["content-disposition"] == "attachment; filename=students.csv"
    header, row = response.text.strip().splitlines()
    assert header == "Name,Email,School,Batch,Center,CGPA,Applied,Offers"
    assert row.startswith("Asha Rao,asha@college.edu,")

    assert client.get("/api/admin/export/salaries", headers=admin_headers).status_code == 400


def test_record_update_keeps_unsent_fields(client, student):
    headers, _ = student
    created = client.post("/api/students/records/projects", headers=headers, json={
        "project_name": "Placement bot", "project_url": "https://bot.college.edu",
    })
    record_id = created.json()["id"]

    response = client.put(f"/api/students/records/projects/{record_id}", headers=headers,
                          json={"description": "Discord bot"})

    assert response.status_code == 200
    [project] = client.get("/api/students/records/projects", headers=headers).json()
    assert project["project_url"] == "https://bot.college.edu"
    assert project["description"] == "Discord bot"
