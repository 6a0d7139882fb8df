# tests/test_cleanup_service.py
from placement_portal.services.application_service import ApplicationService
from placement_portal.services.cleanup_service import ApplicationCleanupService
from placement_portal.services.job_service import JobService
from placement_portal.services.student_service import StudentService


def make_orphan(student_id, mongo_db):
    job = JobService().create_job("rec1", {"title": "Gone soon"})
    ApplicationService().apply_to_job(student_id, job)
    JobService().delete_job(job)
    mongo_db["applications"].insert_one({"_id": "broken", "student_id": student_id, "status": "applied"})
    return job


def test_scan_splits_valid_and_orphaned(student_id, job_id, mongo_db):
    ApplicationService().apply_to_job(student_id, job_id)
    make_orphan(student_id, mongo_db)

    result = ApplicationCleanupService().find_orphaned_applications(student_id)

    assert result["summary"] == {"total": 3, "valid": 1, "orphaned": 2}
    reasons = sorted(app["reason"] for app in result["orphaned"])
    assert reasons == ["Job document not found", "Missing job_id field"]


def test_cleanup_marks_by_default(student_id, mongo_db):
    job = make_orphan(student_id, mongo_db)

    result = ApplicationCleanupService().cleanup_student_applications(student_id)

    assert result["action"] == "marked_orphaned"
    assert result["cleanup_result"] == {"marked": 2, "errors": []}
    doc = mongo_db["applications"].find_one({"_id": f"{student_id}_{job}"})
    assert doc["status"] == "job_removed"
    assert doc["marked_orphaned"] is True
    assert doc["original_job_id"] == job


def test_cleanup_can_delete(student_id, mongo_db):
    make_orphan(student_id, mongo_db)

    result = ApplicationCleanupService().cleanup_student_applications(student_id, mark_only=False)

    assert result["cleanup_result"]["deleted"] == 2
    assert mongo_db["applications"].count_documents({"student_id": student_id}) == 0


def test_nothing_to_clean(student_id, job_id):
    ApplicationService().apply_to_job(student_id, job_id)

    result = ApplicationCleanupService().cleanup_student_applications(student_id)

    assert result["action"] == "no_action_needed"


def test_integrity_report(student_id, mongo_db):
    make_orphan(student_id, mongo_db)

    report = ApplicationCleanupService().get_application_integrity_report(student_id)

    assert report["orphaned"] == 2
    assert len(report["issues"]) == 2
    assert report["recommendations"][0].startswith("Consider marking")


def shortlisted_orphan(student_id):
    job = JobService().create_job("rec1", {"title": "Closing down"})
    applications = ApplicationService()
    application_id = applications.apply_to_job(student_id, job)
    applications.update_application_status(application_id, "shortlisted")
    JobService().delete_job(job)
    return application_id


def test_marking_keeps_stats_in_step(student_id):
    shortlisted_orphan(student_id)

    ApplicationCleanupService().cleanup_student_applications(student_id)

    stored = StudentService().get_stats(student_id)
    assert stored == ApplicationService().compute_stats(student_id)
    assert stored == {"applied": 1, "shortlisted": 0, "interviewed": 0, "offers": 0}


def test_deleting_drops_the_bucket_but_not_applied(student_id):
    shortlisted_orphan(student_id)

    ApplicationCleanupService().cleanup_student_applications(student_id, mark_only=False)

    assert StudentService().get_stats(student_id) == {
        "applied": 1, "shortlisted": 0, "interviewed": 0, "offers": 0,
    }


def test_reconcile_after_delete_keeps_applied(student_id, job_id):
    ApplicationService().apply_to_job(student_id, job_id)
    shortlisted_orphan(student_id)
    ApplicationCleanupService().cleanup_student_applications(student_id, mark_only=False)

    result = ApplicationService().reconcile_student_stats(student_id)

    assert result["changed"] is False
    assert StudentService().get_stats(student_id)["applied"] == 2


def test_reconcile_raises_applied_to_the_live_count(student_id, job_id, mongo_db):
    ApplicationService().apply_to_job(student_id, job_id)
    mongo_db["students"].update_one({"_id": student_id}, {"$set": {"stats.applied": 0}})

    result = ApplicationService().reconcile_student_stats(student_id)

    assert result["after"]["applied"] == 1
