"""
Application Routes

POST /applications - Apply to a job (student)
GET /applications/me - My applications with job and company details
GET /applications/stream - Same list, pushed as server-sent events on change
GET /applications/{application_id} - One application
PUT /applications/{application_id}/status - Move along the pipeline (recruiter, admin)
"""

import json

from fastapi import APIRouter, HTTPException, Depends
from fastapi.encoders import jsonable_encoder
from fastapi.responses import StreamingResponse

from placement_portal.core.auth import get_current_user, get_current_student, require_roles
from placement_portal.services.application_service import ApplicationFeed, get_application_service
from placement_portal.services.notification_service import get_notification_service
from placement_portal.schemas.schemas import (
    ApplicationCreate, ApplicationCreatedResponse, ApplicationStatusUpdate, MessageResponse
)

router = APIRouter(prefix="/applications", tags=["Applications"])


@router.post("", response_model=ApplicationCreatedResponse, status_code=201)
async def apply(data: ApplicationCreate, student: dict = Depends(get_current_student)):
    """Apply to a job. A second application to the same job answers 409."""
    application_id = get_application_service().apply_to_job(
        student["student_id"], data.job_id, data.company_id
    )
    return ApplicationCreatedResponse(application_id=application_id)


@router.get("/me")
async def my_applications(student: dict = Depends(get_current_student)):
    return get_application_service().get_student_applications(student["student_id"])


@router.get("/stream")
def stream_applications(student: dict = Depends(get_current_student)):
    """
    Server-sent events: the full list first, then again after every change.

    The generator is synchronous, so Starlette iterates it in its threadpool
    and the blocking change stream never holds the event loop.
    """
    feed = ApplicationFeed()

    def events():
        for snapshot in feed.stream(student["student_id"]):
            yield f"data: {json.dumps(jsonable_encoder(snapshot))}\n\n"

    return StreamingResponse(
        events(),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )


@router.get("/{application_id}")
async def get_application(application_id: str, user: dict = Depends(get_current_user)):
    service = get_application_service()
    application = service.get_application(application_id)
    if not application:
        raise HTTPException(status_code=404, detail="Application not found")
    if user["role"] == "student" and application.get("student_id") != user["user_id"]:
        raise HTTPException(status_code=404, detail="Application not found")
    return service.enrich(application)


@router.put(
    "/{application_id}/status",
    response_model=MessageResponse,
    dependencies=[Depends(require_roles("recruiter", "admin"))]
)
async def update_status(application_id: str, data: ApplicationStatusUpdate):
    service = get_application_service()
    service.update_application_status(application_id, data.status, data.interview_date)

    application = service.enrich(service.get_application(application_id))
    get_notification_service().create_notification(
        application["student_id"],
        "Application update",
        f"Your application for {application['job_title']} at {application['company_name']} "
        f"is now {data.status}.",
        {"application_id": application_id, "status": data.status},
    )
    return MessageResponse(message=f"Application status updated to {data.status}")
