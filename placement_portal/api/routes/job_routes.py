"""
Job Routes

POST /jobs - Create job posting (recruiter, admin); optionally queue emails
GET /jobs - List jobs, newest first
GET /jobs/{job_id} - Get job details
PUT /jobs/{job_id} - Update job (owner recruiter, admin)
DELETE /jobs/{job_id} - Delete job (owner recruiter, admin)
GET /jobs/{job_id}/applications - Applications for a job
POST /jobs/parse-jd - Pre-fill a job posting from a JD file
GET /jobs/parse-jd/formats - Supported JD file formats
"""

from typing import Optional

from fastapi import APIRouter, HTTPException, Depends, Query, UploadFile, File

from placement_portal.core.auth import get_current_user, require_roles
from placement_portal.services.jd_parser import (
    format_for_job_posting, parse_job_description, validate_job_data
)
from placement_portal.services.job_service import get_job_service
from placement_portal.services.notification_service import get_email_notification_service
from placement_portal.services.recruiter_service import get_recruiter_service
from placement_portal.utils.file_upload import extract_text_from_file, get_supported_formats
from placement_portal.schemas.schemas import JobCreate, JobStatus, JobUpdate, MessageResponse

router = APIRouter(prefix="/jobs", tags=["Jobs"])

staff_only = require_roles("recruiter", "admin")


def _owned_job(job_id: str, user: dict) -> dict:
    job = get_job_service().get_job(job_id)
    if not job:
        raise HTTPException(status_code=404, detail="Job not found")
    if user["role"] != "admin" and job.get("recruiter_id") != user["user_id"]:
        raise HTTPException(status_code=403, detail="Not your job posting")
    return job


@router.post("", status_code=201)
async def create_job(job: JobCreate, user: dict = Depends(staff_only)):
    """
    Create a new job posting.

    With `notify_students`, one email per targeted and subscribed student is
    queued for the mail worker.
    """
    if user["role"] == "recruiter" and get_recruiter_service().is_blocked(user["user_id"]):
        raise HTTPException(status_code=403, detail="Your recruiter account is blocked")
    service = get_job_service()
    data = job.model_dump(exclude={"notify_students"}, exclude_none=True, mode="json")
    job_id = service.create_job(user["user_id"], data)

    result = {"job_id": job_id, "message": "Job created successfully"}
    if job.notify_students:
        result["notifications"] = get_email_notification_service().send_job_posting_notifications(
            service.get_job(job_id), job.target_centers, job.target_schools, job.target_batches
        )
    return result


@router.get("")
async def list_jobs(
    status: Optional[JobStatus] = None,
    mine: bool = False,
    limit: int = Query(50, ge=1, le=200),
    user: dict = Depends(get_current_user)
):
    recruiter_id = user["user_id"] if mine else None
    return get_job_service().list_jobs(
        limit=limit, recruiter_id=recruiter_id, status=status.value if status else None
    )


@router.get("/parse-jd/formats")
async def jd_formats():
    return get_supported_formats()


@router.post("/parse-jd", dependencies=[Depends(staff_only)])
async def parse_jd(file: UploadFile = File(..., description="Job description (PDF, DOCX, or TXT)")):
    """Extract a job posting draft from a JD file. Nothing is stored."""
    jd_text, filename = await extract_text_from_file(file)
    parsed = parse_job_description(jd_text)
    return {
        "filename": filename,
        "parsed": parsed,
        "validation": validate_job_data(parsed),
        "job_posting": format_for_job_posting(parsed),
    }


@router.get("/{job_id}")
async def get_job(job_id: str, user: dict = Depends(get_current_user)):
    job = get_job_service().get_job(job_id)
    if not job:
        raise HTTPException(status_code=404, detail="Job not found")
    return job


@router.put("/{job_id}", response_model=MessageResponse)
async def update_job(job_id: str, data: JobUpdate, user: dict = Depends(staff_only)):
    _owned_job(job_id, user)
    updates = data.model_dump(exclude_unset=True, mode="json")
    if not updates:
        raise HTTPException(status_code=400, detail="No fields to update")
    get_job_service().update_job(job_id, updates)
    return MessageResponse(message="Job updated successfully")


@router.delete("/{job_id}", response_model=MessageResponse)
async def delete_job(job_id: str, user: dict = Depends(staff_only)):
    """Applications of a deleted job are left for the orphan cleanup."""
    _owned_job(job_id, user)
    get_job_service().delete_job(job_id)
    return MessageResponse(message="Job deleted")


@router.get("/{job_id}/applications")
async def job_applications(job_id: str, user: dict = Depends(staff_only)):
    _owned_job(job_id, user)
    return get_job_service().list_applications_for_job(job_id)
