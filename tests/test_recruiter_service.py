# tests/test_recruiter_service.py
import pytest

from placement_portal.core.errors import NotFoundError, ValidationError
from placement_portal.services.job_service import JobService
from placement_portal.services.notification_service import NotificationService
from placement_portal.services.recruiter_service import RecruiterService


@pytest.fixture
def recruiters(mongo_db):
    mongo_db["users"].insert_many([
        {"_id": "rec1", "email": "hr@acme.co.in", "role": "recruiter",
         "profile": {"name": "Priya Nair", "company": "Acme Corp", "location": "Pune"}},
        {"_id": "rec2", "email": "talent@globex.com", "role": "recruiter",
         "profile": {"name": "Arjun Mehta", "company": "Globex", "location": "Delhi"}},
        {"_id": "stu9", "email": "acme.fan@college.edu", "role": "student", "profile": {}},
    ])
    return ["rec1", "rec2"]


def inbox(user_id):
    return NotificationService().list_notifications_for_user(user_id)


def test_block_and_unblock(recruiters):
    service = RecruiterService()

    result = service.block_unblock_recruiter("rec1", {"reason": "Spam postings"}, "admin1")

    assert result["action"] == "blocked"
    assert result["recruiter"]["status"] == "blocked"
    assert result["recruiter"]["block_info"]["type"] == "permanent"
    assert "end_date" not in result["recruiter"]["block_info"]
    assert service.is_blocked("rec1")
    [notification] = inbox("rec1")
    assert notification["body"] == "Your recruiter account has been blocked. Reason: Spam postings"

    result = service.block_unblock_recruiter("rec1", {"is_unblocking": True}, "admin1")

    assert result["action"] == "unblocked"
    assert result["recruiter"]["status"] == "active"
    assert "block_info" not in result["recruiter"]
    assert not service.is_blocked("rec1")
    assert {n["title"] for n in inbox("rec1")} == {"Account Blocked", "Account Unblocked"}


def test_temporary_block_needs_end_date(recruiters):
    service = RecruiterService()

    with pytest.raises(ValidationError):
        service.block_unblock_recruiter("rec1", {"block_type": "temporary"}, "admin1")

    result = service.block_unblock_recruiter(
        "rec1", {"block_type": "temporary", "end_date": "2024-06-30", "notes": "Review in June"}, "admin1"
    )
    info = result["recruiter"]["block_info"]
    assert info["end_date"] == "2024-06-30"
    assert info["end_time"] == "23:59"
    assert info["reason"] == "No reason provided"


def test_only_recruiters_can_be_managed(recruiters):
    with pytest.raises(NotFoundError):
        RecruiterService().block_unblock_recruiter("stu9", {}, "admin1")


def test_update_recruiter_status(recruiters):
    service = RecruiterService()

    recruiter = service.update_recruiter_status("rec2", "inactive", "admin1")

    assert recruiter["status"] == "inactive"
    assert recruiter["updated_by"] == "admin1"
    [notification] = inbox("rec2")
    assert notification["title"] == "Status Updated to inactive"
    with pytest.raises(ValidationError):
        service.update_recruiter_status("rec2", "sleeping", "admin1")


def test_search_recruiters(recruiters):
    service = RecruiterService()
    service.block_unblock_recruiter("rec2", {}, "admin1")

    assert [r["id"] for r in service.search_recruiters("acme")] == ["rec1"]
    assert [r["id"] for r in service.search_recruiters("DELHI")] == ["rec2"]
    assert [r["id"] for r in service.search_recruiters("globex.com")] == ["rec2"]
    assert {r["id"] for r in service.search_recruiters("")} == {"rec1", "rec2"}
    assert [r["id"] for r in service.search_recruiters("", status="blocked")] == ["rec2"]


def test_recruiter_jobs_and_summary(recruiters):
    jobs = JobService()
    jobs.create_job("rec1", {"title": "Backend", "target_centers": ["Pune"], "target_schools": ["SOT"]})
    jobs.create_job("rec1", {"title": "Sales", "location": "Delhi NCR", "target_schools": ["SOM", "SOT"],
                             "status": "draft"})
    jobs.create_job("rec2", {"title": "Other", "target_centers": ["Pune"]})
    service = RecruiterService()
    service.update_recruiter_status("rec1", "active", "admin1")

    assert {j["title"] for j in service.get_recruiter_jobs("rec1")} == {"Backend", "Sales"}
    summary = service.get_recruiter_summary("rec1")

    assert summary["jobs_per_center"] == {"Lucknow": 0, "Pune": 1, "Bangalore": 0, "Delhi": 1}
    assert summary["jobs_per_school"] == {"SOT": 2, "SOH": 0, "SOM": 1}
    assert summary["total_jobs"] == 2
    assert summary["active_jobs"] == 1
    assert summary["status_changes"] == 1
