"""
Admin Routes (admin role only)

GET /admin/dashboard - Placement stats (filters: center, school, batch)
GET /admin/export/{dataset} - CSV download of applications, jobs or students
POST /admin/students/{student_id}/reconcile-stats - Recompute counters from applications
GET /admin/students/{student_id}/integrity - Orphaned application report
POST /admin/students/{student_id}/cleanup - Mark (default) or delete orphans
GET /admin/orphaned-applications - Scan every application
GET /admin/jobs - Search jobs by title or company
GET /admin/jobs/analytics - Job counts per status
PUT /admin/jobs/{job_id}/approve - Publish a draft job
PUT /admin/jobs/{job_id}/reject - Reject a job with a reason
PUT /admin/jobs/{job_id}/archive - Archive a job
POST /admin/jobs/auto-archive - Archive open jobs past their deadline
GET /admin/recruiters - Search recruiters
GET /admin/recruiters/{user_id}/jobs - A recruiter's postings
GET /admin/recruiters/{user_id}/summary - Posting counts per center and school
PUT /admin/recruiters/{user_id}/block - Block or unblock a recruiter
PUT /admin/recruiters/{user_id}/status - Set a recruiter's account status
PUT /admin/recruiters/{user_id}/verify - Approve a recruiter account
"""

from typing import Optional

from fastapi import APIRouter, HTTPException, Depends
from fastapi.responses import StreamingResponse

from placement_portal.core.auth import require_roles
from placement_portal.db.mongodb import get_collection, COLLECTIONS
from placement_portal.services.admin_dashboard_service import get_admin_dashboard_service
from placement_portal.services.application_service import get_application_service
from placement_portal.services.cleanup_service import ApplicationCleanupService
from placement_portal.services.moderation_service import get_moderation_service
from placement_portal.services.recruiter_service import get_recruiter_service
from placement_portal.schemas.schemas import (
    MessageResponse, RecruiterBlockRequest, RecruiterStatusUpdate, RejectJobRequest
)

admin_only = require_roles("admin")

router = APIRouter(prefix="/admin", tags=["Admin"], dependencies=[Depends(admin_only)])


# ============================================================
# DASHBOARD
# ============================================================

@router.get("/dashboard")
async def dashboard_stats(center: Optional[str] = None, school: Optional[str] = None, batch: Optional[str] = None):
    return get_admin_dashboard_service().get_dashboard_stats(center, school, batch)


@router.get("/export/{dataset}")
async def export_csv(dataset: str, center: Optional[str] = None, school: Optional[str] = None,
                     batch: Optional[str] = None):
    content = get_admin_dashboard_service().export_csv(dataset, center, school, batch)
    return StreamingResponse(
        iter([content]),
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename={dataset}.csv"}
    )


# ============================================================
# STATS AND CLEANUP
# ============================================================

@router.post("/students/{student_id}/reconcile-stats")
async def reconcile_stats(student_id: str):
    return get_application_service().reconcile_student_stats(student_id)


@router.get("/students/{student_id}/integrity")
async def integrity_report(student_id: str):
    return ApplicationCleanupService().get_application_integrity_report(student_id)


@router.post("/students/{student_id}/cleanup")
async def cleanup_applications(student_id: str, mark_only: bool = True):
    return ApplicationCleanupService().cleanup_student_applications(student_id, mark_only=mark_only)


@router.get("/orphaned-applications")
async def orphaned_applications():
    result = ApplicationCleanupService().find_orphaned_applications()
    return {"summary": result["summary"], "orphaned": result["orphaned"]}


# ============================================================
# JOB MODERATION
# ============================================================

@router.get("/jobs")
async def search_jobs(term: str = "", status: Optional[str] = None):
    return get_moderation_service().search_jobs(term, status)


@router.get("/jobs/analytics")
async def job_analytics():
    return get_moderation_service().get_job_analytics()


@router.put("/jobs/{job_id}/approve")
async def approve_job(job_id: str, admin: dict = Depends(admin_only)):
    return get_moderation_service().approve_job(job_id, admin["user_id"])


@router.put("/jobs/{job_id}/reject")
async def reject_job(job_id: str, data: RejectJobRequest, admin: dict = Depends(admin_only)):
    return get_moderation_service().reject_job(job_id, admin["user_id"], data.reason)


@router.put("/jobs/{job_id}/archive")
async def archive_job(job_id: str, admin: dict = Depends(admin_only)):
    return get_moderation_service().archive_job(job_id, admin["user_id"])


@router.post("/jobs/auto-archive")
async def auto_archive_jobs(admin: dict = Depends(admin_only)):
    return get_moderation_service().auto_archive_expired_jobs(admin["user_id"])


# ============================================================
# RECRUITERS
# ============================================================

@router.get("/recruiters")
async def search_recruiters(term: str = "", status: Optional[str] = None):
    return get_recruiter_service().search_recruiters(term, status)


@router.get("/recruiters/{user_id}/jobs")
async def recruiter_jobs(user_id: str):
    service = get_recruiter_service()
    service.get_recruiter(user_id)
    return service.get_recruiter_jobs(user_id)


@router.get("/recruiters/{user_id}/summary")
async def recruiter_summary(user_id: str):
    return get_recruiter_service().get_recruiter_summary(user_id)


@router.put("/recruiters/{user_id}/block")
async def block_recruiter(user_id: str, data: RecruiterBlockRequest, admin: dict = Depends(admin_only)):
    return get_recruiter_service().block_unblock_recruiter(user_id, data.model_dump(), admin["user_id"])


@router.put("/recruiters/{user_id}/status")
async def update_recruiter_status(user_id: str, data: RecruiterStatusUpdate, admin: dict = Depends(admin_only)):
    return get_recruiter_service().update_recruiter_status(user_id, data.status.value, admin["user_id"])


@router.put("/recruiters/{user_id}/verify", response_model=MessageResponse)
async def verify_recruiter(user_id: str):
    result = get_collection(COLLECTIONS["users"]).update_one(
        {"_id": user_id, "role": "recruiter"},
        {"$set": {"recruiter_verified": True}}
    )
    if result.matched_count == 0:
        raise HTTPException(status_code=404, detail="Recruiter not found")
    return MessageResponse(message="Recruiter verified")
