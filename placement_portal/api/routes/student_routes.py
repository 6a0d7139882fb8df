"""
Student Routes

POST /students/profile - Create student profile
GET /students/profile - Get own profile
PUT /students/profile - Update profile
GET /students/stats - Application counters
GET /students/eligible-jobs - Open jobs matching my CGPA
GET|POST /students/sections/{field} - Embedded profile sections
PUT|DELETE /students/sections/{field}/{entry_id}
GET|POST /students/records/{kind} - Skills, achievements, projects, education
PUT|DELETE /students/records/{kind}/{record_id}
GET /students - Directory with center/school/batch filters (recruiter, admin)
"""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, HTTPException, Depends, Query
from pydantic import ValidationError as SchemaValidationError

from placement_portal.core.auth import get_current_student, require_roles
from placement_portal.services.job_service import get_job_service
from placement_portal.services.mongo_service import get_record_services
from placement_portal.services.student_service import get_student_service
from placement_portal.schemas.schemas import (
    StudentCreate, StudentUpdate, StudentStats, StudentEntryField, SkillCreate,
    AchievementCreate, ProjectCreate, EducationCreate, MessageResponse
)

router = APIRouter(prefix="/students", tags=["Students"])

RECORD_SCHEMAS = {
    "skills": SkillCreate,
    "achievements": AchievementCreate,
    "projects": ProjectCreate,
    "education": EducationCreate,
}


def _validated_record(kind: str, data: Dict[str, Any]) -> Dict[str, Any]:
    schema = RECORD_SCHEMAS.get(kind)
    if not schema:
        raise HTTPException(status_code=404, detail=f"Unknown record type '{kind}'")
    try:
        return schema.model_validate(data).model_dump()
    except SchemaValidationError as e:
        raise HTTPException(status_code=422, detail=e.errors())


def _own_record(kind: str, record_id: str, student_id: str):
    if kind not in RECORD_SCHEMAS:
        raise HTTPException(status_code=404, detail=f"Unknown record type '{kind}'")
    service = get_record_services()[kind]
    record = service.get(record_id)
    if not record or record.get("student_id") != student_id:
        raise HTTPException(status_code=404, detail="Record not found")
    return service


@router.get("", dependencies=[Depends(require_roles("recruiter", "admin"))])
async def list_students(
    center: Optional[List[str]] = Query(None),
    school: Optional[List[str]] = Query(None),
    batch: Optional[List[str]] = Query(None),
):
    service = get_student_service()
    if center or school or batch:
        return service.filter_students(center, school, batch)
    return service.get_all_students()


@router.post("/profile", response_model=MessageResponse, status_code=201)
async def create_profile(data: StudentCreate, student: dict = Depends(get_current_student)):
    """Create student profile. Registration normally does this already."""
    service = get_student_service()
    if service.get_student_profile(student["student_id"]):
        raise HTTPException(status_code=400, detail="Profile already exists. Use PUT to update.")
    service.create_student_profile(student["student_id"], data.model_dump(exclude_none=True))
    return MessageResponse(message="Student profile created successfully")


@router.get("/profile")
async def get_profile(student: dict = Depends(get_current_student)):
    profile = get_student_service().get_student_profile(student["student_id"])
    if not profile:
        raise HTTPException(status_code=404, detail="Student profile not found")
    return profile


@router.put("/profile", response_model=MessageResponse)
async def update_profile(data: StudentUpdate, student: dict = Depends(get_current_student)):
    """Update student profile. Only provided fields are updated."""
    get_student_service().update_student_profile(student["student_id"], data.model_dump(exclude_unset=True))
    return MessageResponse(message="Profile updated successfully")


@router.get("/stats", response_model=StudentStats)
async def get_stats(student: dict = Depends(get_current_student)):
    return get_student_service().get_stats(student["student_id"])


@router.get("/eligible-jobs")
async def eligible_jobs(student: dict = Depends(get_current_student)):
    profile = get_student_service().get_student_profile(student["student_id"]) or {}
    return get_job_service().list_eligible_jobs(profile)


# ---------------- embedded sections ----------------

@router.get("/sections/{field}")
async def list_section(field: StudentEntryField, student: dict = Depends(get_current_student)):
    return get_student_service().list_entries(student["student_id"], field.value)


@router.post("/sections/{field}", status_code=201)
async def add_section_entry(
    field: StudentEntryField,
    data: Dict[str, Any],
    student: dict = Depends(get_current_student)
):
    entry_id = get_student_service().add_entry(student["student_id"], field.value, data)
    return {"id": entry_id}


@router.put("/sections/{field}/{entry_id}", response_model=MessageResponse)
async def update_section_entry(
    field: StudentEntryField,
    entry_id: str,
    data: Dict[str, Any],
    student: dict = Depends(get_current_student)
):
    get_student_service().update_entry(student["student_id"], field.value, entry_id, data)
    return MessageResponse(message="Entry updated")


@router.delete("/sections/{field}/{entry_id}", response_model=MessageResponse)
async def remove_section_entry(
    field: StudentEntryField,
    entry_id: str,
    student: dict = Depends(get_current_student)
):
    if not get_student_service().remove_entry(student["student_id"], field.value, entry_id):
        raise HTTPException(status_code=404, detail="Entry not found")
    return MessageResponse(message="Entry removed")


# ---------------- stand-alone records ----------------

@router.get("/records/{kind}")
async def list_records(kind: str, student: dict = Depends(get_current_student)):
    if kind not in RECORD_SCHEMAS:
        raise HTTPException(status_code=404, detail=f"Unknown record type '{kind}'")
    return get_record_services()[kind].list(student["student_id"])


@router.post("/records/{kind}", status_code=201)
async def add_record(kind: str, data: Dict[str, Any], student: dict = Depends(get_current_student)):
    payload = _validated_record(kind, data)
    service = get_record_services()[kind]
    if kind == "skills":
        record_id = service.add_or_update(student["student_id"], payload)
    else:
        record_id = service.add(student["student_id"], payload)
    return {"id": record_id}


@router.put("/records/{kind}/{record_id}", response_model=MessageResponse)
async def update_record(
    kind: str,
    record_id: str,
    data: Dict[str, Any],
    student: dict = Depends(get_current_student)
):
    service = _own_record(kind, record_id, student["student_id"])
    # Validate the record as it will look, then write only the fields sent
    payload = _validated_record(kind, {**service.get(record_id), **data})
    service.update(record_id, {k: v for k, v in payload.items() if k in data})
    return MessageResponse(message="Record updated")


@router.delete("/records/{kind}/{record_id}", response_model=MessageResponse)
async def delete_record(kind: str, record_id: str, student: dict = Depends(get_current_student)):
    if kind not in RECORD_SCHEMAS:
        raise HTTPException(status_code=404, detail=f"Unknown record type '{kind}'")
    _own_record(kind, record_id, student["student_id"]).delete(record_id)
    return MessageResponse(message="Record deleted")
