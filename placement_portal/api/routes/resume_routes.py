"""
Resume Routes

Resume builder (state of the in-browser editor):
GET|PUT|DELETE /resumes/builder
GET /resumes/builder/metadata
GET /resumes/builder/completion
GET /resumes/builder/export
POST /resumes/builder/import
POST /resumes/builder/duplicate - Copy another user's resume as a template (admin)

Uploaded resume PDF:
POST /resumes/file - Upload (PDF, 1KB-5MB)
GET /resumes/file - Info
GET /resumes/file/url - Download URL
DELETE /resumes/file
"""

from typing import Any, Dict

from fastapi import APIRouter, HTTPException, Depends, UploadFile, File
from fastapi.responses import Response

from placement_portal.core.auth import get_current_user, require_roles
from placement_portal.services.resume_service import (
    format_file_size, get_completion_percentage, get_resume_data_service,
    get_resume_storage_service, validate_resume_data
)
from placement_portal.schemas.schemas import (
    ResumeDuplicateRequest, ResumeImportRequest, ResumeInfo, MessageResponse
)

router = APIRouter(prefix="/resumes", tags=["Resumes"])


# ---------------- builder ----------------

@router.get("/builder")
async def get_builder(user: dict = Depends(get_current_user)):
    data = get_resume_data_service().get(user["user_id"])
    if data is None:
        raise HTTPException(status_code=404, detail="No resume data found")
    return data


@router.put("/builder")
async def save_builder(data: Dict[str, Any], user: dict = Depends(get_current_user)):
    """Saves even incomplete resumes; the validation result is returned alongside."""
    get_resume_data_service().save(user["user_id"], data)
    return {
        "message": "Resume saved",
        "validation": validate_resume_data(data),
        "completion": get_completion_percentage(data),
    }


@router.delete("/builder", response_model=MessageResponse)
async def delete_builder(user: dict = Depends(get_current_user)):
    get_resume_data_service().delete(user["user_id"])
    return MessageResponse(message="Resume data deleted")


@router.get("/builder/metadata")
async def builder_metadata(user: dict = Depends(get_current_user)):
    return get_resume_data_service().get_metadata(user["user_id"])


@router.get("/builder/completion")
async def builder_completion(user: dict = Depends(get_current_user)):
    data = get_resume_data_service().get(user["user_id"])
    return {"completion": get_completion_percentage(data)}


@router.get("/builder/export")
async def export_builder(user: dict = Depends(get_current_user)):
    payload = get_resume_data_service().export_json(user["user_id"])
    return Response(
        content=payload,
        media_type="application/json",
        headers={"Content-Disposition": 'attachment; filename="resume.json"'},
    )


@router.post("/builder/import", response_model=MessageResponse)
async def import_builder(data: ResumeImportRequest, user: dict = Depends(get_current_user)):
    get_resume_data_service().import_json(user["user_id"], data.payload)
    return MessageResponse(message="Resume imported")


@router.post("/builder/duplicate", response_model=MessageResponse)
async def duplicate_builder(data: ResumeDuplicateRequest, user: dict = Depends(require_roles("admin"))):
    get_resume_data_service().duplicate(data.source_user_id, user["user_id"], data.overrides)
    return MessageResponse(message="Resume duplicated")


# ---------------- uploaded file ----------------

@router.post("/file", status_code=201)
async def upload_resume(
    file: UploadFile = File(..., description="Resume PDF"),
    user: dict = Depends(get_current_user)
):
    content = await file.read()
    result = get_resume_storage_service().upload_resume_file(
        user["user_id"], file.filename, file.content_type, content
    )
    return {**result, "size_display": format_file_size(result["size"])}


@router.get("/file", response_model=ResumeInfo)
async def resume_info(user: dict = Depends(get_current_user)):
    return get_resume_storage_service().get_resume_info(user["user_id"])


@router.get("/file/url")
async def resume_url(user: dict = Depends(get_current_user)):
    url = get_resume_storage_service().get_download_url(user["user_id"])
    if not url:
        raise HTTPException(status_code=404, detail="No resume uploaded")
    return {"url": url}


@router.delete("/file", response_model=MessageResponse)
async def delete_resume(user: dict = Depends(get_current_user)):
    get_resume_storage_service().delete_resume_file(user["user_id"])
    return MessageResponse(message="Resume deleted")
