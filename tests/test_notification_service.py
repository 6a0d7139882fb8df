# tests/test_notification_service.py
import pytest

from placement_portal.core.config import get_settings
from placement_portal.core.errors import InvalidStatusError, InvalidTokenError, NotFoundError
from placement_portal.services.job_service import JobService
from placement_portal.services.notification_service import (
    EmailNotificationService, NotificationService, create_unsubscribe_token,
    verify_unsubscribe_token
)
from placement_portal.services.student_service import StudentService


@pytest.fixture
def cohort(student_id):
    students = StudentService()
    students.create_student_profile("stu2", {
        "full_name": "Ravi", "email": "ravi@college.edu", "center": "Delhi", "school": "SOT", "batch": "2024",
    })
    students.create_student_profile("stu3", {
        "full_name": "Meera", "email": "meera@college.edu", "center": "Pune", "school": "SOT", "batch": "2024",
        "email_notifications_disabled": True,
    })
    students.create_student_profile("stu4", {
        "full_name": "Kabir", "email": "kabir@college.edu", "center": "Pune", "school": "SOM", "batch": "2023",
    })
    return ["stu1", "stu2", "stu3", "stu4"]


@pytest.fixture
def job(job_id):
    return JobService().get_job(job_id)


def test_unsubscribe_token_is_bound_to_email():
    token = create_unsubscribe_token("Asha@College.edu")

    assert verify_unsubscribe_token("asha@college.edu", token)
    assert not verify_unsubscribe_token("ravi@college.edu", token)
    assert not verify_unsubscribe_token("asha@college.edu", "asha_1700000000")


def test_unsubscribe_is_idempotent(mongo_db):
    service = EmailNotificationService()
    token = create_unsubscribe_token("asha@college.edu")

    first = service.unsubscribe_user("Asha@College.edu", token)
    second = service.unsubscribe_user("asha@college.edu", token)

    assert first == {"success": True, "message": "Successfully unsubscribed from job notifications"}
    assert second == {"success": True, "message": "User was already unsubscribed"}
    assert mongo_db["unsubscribedUsers"].count_documents({}) == 1
    record = mongo_db["unsubscribedUsers"].find_one()
    assert record["email"] == "asha@college.edu"
    assert record["source"] == "job_posting_email"
    assert service.check_if_unsubscribed("ASHA@college.edu") is True


def test_unsubscribe_rejects_bad_tokens(mongo_db):
    service = EmailNotificationService()

    with pytest.raises(InvalidTokenError):
        service.unsubscribe_user("asha@college.edu", "")
    with pytest.raises(InvalidTokenError):
        service.unsubscribe_user("asha@college.edu", create_unsubscribe_token("ravi@college.edu"))
    assert mongo_db["unsubscribedUsers"].count_documents({}) == 0


def test_unsubscribe_accepts_any_token_when_verification_off(monkeypatch):
    monkeypatch.setattr(get_settings(), "unsubscribe_token_verification", False)

    result = EmailNotificationService().unsubscribe_user("asha@college.edu", "legacy_token")

    assert result["message"] == "Successfully unsubscribed from job notifications"


def test_resubscribe():
    service = EmailNotificationService()
    assert service.resubscribe_user("asha@college.edu")["message"] == "User was not unsubscribed"

    service.unsubscribe_user("asha@college.edu", create_unsubscribe_token("asha@college.edu"))
    result = service.resubscribe_user("Asha@college.edu")

    assert result["message"] == "Successfully re-subscribed to job notifications"
    assert service.check_if_unsubscribed("asha@college.edu") is False


def test_check_if_unsubscribed_defaults_to_false_on_errors(monkeypatch):
    from pymongo.errors import PyMongoError

    service = EmailNotificationService()

    def boom(*args, **kwargs):
        raise PyMongoError("down")

    monkeypatch.setattr(service.unsubscribed, "find_one", boom)
    assert service.check_if_unsubscribed("asha@college.edu") is False


def test_job_posting_emails_follow_targets(cohort, job, mongo_db):
    service = EmailNotificationService()
    service.unsubscribe_user("ravi@college.edu", create_unsubscribe_token("ravi@college.edu"))

    result = service.send_job_posting_notifications(job, target_batches=["2024"])

    # stu2 unsubscribed, stu3 disabled emails, stu4 other batch
    assert result == {"success": True, "emails_sent": 1, "message": "Queued 1 email notifications"}
    [record] = list(mongo_db["emailNotifications"].find())
    assert record["to"] == "asha@college.edu"
    assert record["student_id"] == "stu1"
    assert record["company"] == "Acme Corp"
    assert record["status"] == "pending"
    assert record["email_type"] == "job_posting"
    assert record["metadata"]["target_batches"] == ["2024"]
    assert verify_unsubscribe_token("asha@college.edu", record["unsubscribe_token"])


def test_job_posting_emails_without_targets_reach_everyone_subscribed(cohort, job):
    result = EmailNotificationService().send_job_posting_notifications(job)

    assert result["emails_sent"] == 3


def test_job_posting_emails_with_no_match(cohort, job, mongo_db):
    result = EmailNotificationService().send_job_posting_notifications(job, target_centers=["Mumbai"])

    assert result == {"success": True, "emails_sent": 0, "message": "No eligible students found"}
    assert mongo_db["emailNotifications"].count_documents({}) == 0


def test_delivery_status_and_stats(cohort, job, mongo_db):
    service = EmailNotificationService()
    service.send_job_posting_notifications(job)
    ids = [str(r["_id"]) for r in mongo_db["emailNotifications"].find()]

    service.update_email_notification_status(ids[0], "sent")
    service.update_email_notification_status(ids[1], "failed", {"error": "Mailbox full"})

    stats = service.get_email_notification_stats(job["id"])
    assert stats == {
        "total": 3, "pending": 1, "sent": 1, "delivered": 0, "opened": 0, "clicked": 0, "failed": 1,
    }
    failed = service.get_notification(ids[1])
    assert failed["error_message"] == "Mailbox full"
    assert failed["failed_at"] is not None
    assert service.get_notification(ids[0])["sent_at"] is not None


def test_failed_status_without_error_message(cohort, job, mongo_db):
    service = EmailNotificationService()
    service.send_job_posting_notifications(job)
    notification_id = str(mongo_db["emailNotifications"].find_one()["_id"])

    service.update_email_notification_status(notification_id, "failed")

    assert service.get_notification(notification_id)["error_message"] == "Unknown error"


def test_unknown_email_status_is_rejected(cohort, job, mongo_db):
    service = EmailNotificationService()
    service.send_job_posting_notifications(job)
    notification_id = str(mongo_db["emailNotifications"].find_one()["_id"])

    with pytest.raises(InvalidStatusError):
        service.update_email_notification_status(notification_id, "bounced")


def test_stats_for_job_without_emails():
    stats = EmailNotificationService().get_email_notification_stats("no-such-job")

    assert stats["total"] == 0 and stats["pending"] == 0


def test_render_queued_email(cohort, job, mongo_db):
    service = EmailNotificationService()
    service.send_job_posting_notifications(job, target_centers=["Pune"], target_schools=["SOT"])
    notification_id = str(mongo_db["emailNotifications"].find_one()["_id"])

    rendered = service.render_notification(notification_id)

    assert rendered["to"] == "asha@college.edu"
    assert rendered["subject"] == "New Job Opportunity - Backend Developer"
    assert "₹12.0 LPA" in rendered["html"]
    assert "Dear Asha Rao" in rendered["text"]


# ============================================================
# IN-APP NOTIFICATIONS
# ============================================================

def test_in_app_notifications():
    service = NotificationService()
    first = service.create_notification("u1", "Shortlisted", "You made the shortlist")
    service.create_notification("u1", "Interview", "Interview on Friday", {"job_id": "j1"})
    service.create_notification("u2", "Other", "Not yours")

    listed = service.list_notifications_for_user("u1")
    assert sorted(n["title"] for n in listed) == ["Interview", "Shortlisted"]
    assert all(n["read"] is False for n in listed)

    service.mark_read(first, "u1")
    read = {n["id"]: n["read"] for n in service.list_notifications_for_user("u1")}
    assert read[first] is True

    with pytest.raises(NotFoundError):
        service.mark_read(first, "u2")


def test_mark_all_read_and_unread_count():
    service = NotificationService()
    service.create_notification("u1", "Shortlisted", "You made the shortlist")
    second = service.create_notification("u1", "Interview", "Interview on Friday")
    service.create_notification("u2", "Other", "Not yours")
    service.mark_read(second, "u1")

    assert service.unread_count("u1") == 1
    assert service.mark_all_read("u1") == 1
    assert service.unread_count("u1") == 0
    assert service.mark_all_read("u1") == 0
    assert service.unread_count("u2") == 1
