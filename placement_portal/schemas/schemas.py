"""
Pydantic Schemas - Request/Response Validation

All API request and response schemas in one file for simplicity.
"""

from pydantic import BaseModel, EmailStr, Field
from typing import Optional, List, Any, Dict
from datetime import datetime
from enum import Enum


# ============================================================
# ENUMS
# ============================================================

class UserRole(str, Enum):
    student = "student"
    recruiter = "recruiter"
    admin = "admin"


class JobStatus(str, Enum):
    draft = "draft"  # awaiting admin approval
    open = "open"
    closed = "closed"
    rejected = "rejected"
    archived = "archived"


class ApplicationStatus(str, Enum):
    applied = "applied"
    shortlisted = "shortlisted"
    interviewed = "interviewed"
    offered = "offered"
    rejected = "rejected"
    job_removed = "job_removed"  # set by orphan cleanup only


class RecruiterStatus(str, Enum):
    active = "active"
    pending = "pending"
    inactive = "inactive"
    blocked = "blocked"


class BlockType(str, Enum):
    permanent = "permanent"
    temporary = "temporary"


class EmailStatus(str, Enum):
    pending = "pending"
    sent = "sent"
    delivered = "delivered"
    opened = "opened"
    clicked = "clicked"
    failed = "failed"


class EmailType(str, Enum):
    job_posting = "job_posting"
    password_reset = "password_reset"


class StudentEntryField(str, Enum):
    education = "education"
    skills = "skills"
    projects = "projects"
    achievements = "achievements"


# ============================================================
# AUTH SCHEMAS
# ============================================================

class RegisterRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=8)
    role: UserRole = UserRole.student
    profile: Dict[str, Any] = {}

class LoginRequest(BaseModel):
    email: EmailStr
    password: str

class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user_id: int
    role: str

class PasswordResetRequest(BaseModel):
    email: EmailStr

class PasswordResetConfirm(BaseModel):
    token: str
    new_password: str = Field(..., min_length=8)


# ============================================================
# STUDENT SCHEMAS
# ============================================================

class StudentStats(BaseModel):
    applied: int = 0
    shortlisted: int = 0
    interviewed: int = 0
    offers: int = 0

class StudentCreate(BaseModel):
    full_name: str = Field(..., min_length=2, max_length=100)
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    center: Optional[str] = None
    school: Optional[str] = None
    batch: Optional[str] = None
    cgpa: Optional[float] = Field(None, ge=0, le=10)
    bio: Optional[str] = None
    website: Optional[str] = None
    linkedin: Optional[str] = None
    github: Optional[str] = None

class StudentUpdate(BaseModel):
    full_name: Optional[str] = Field(None, min_length=2, max_length=100)
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    center: Optional[str] = None
    school: Optional[str] = None
    batch: Optional[str] = None
    cgpa: Optional[float] = Field(None, ge=0, le=10)
    bio: Optional[str] = None
    website: Optional[str] = None
    linkedin: Optional[str] = None
    github: Optional[str] = None
    email_notifications_disabled: Optional[bool] = None

class SkillCreate(BaseModel):
    skill_name: str = Field(..., min_length=1)
    rating: int = Field(3, ge=1, le=5)

class AchievementCreate(BaseModel):
    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    has_certificate: bool = False
    certificate_url: Optional[str] = None

class ProjectCreate(BaseModel):
    project_name: str = Field(..., min_length=1)
    description: Optional[str] = None
    project_url: Optional[str] = None

class EducationCreate(BaseModel):
    institute_name: str = Field(..., min_length=1)
    degree: Optional[str] = None
    field_of_study: Optional[str] = None
    start_year: Optional[int] = None
    end_year: Optional[int] = None
    percentage: Optional[float] = None
    cgpa: Optional[float] = Field(None, ge=0, le=10)


# ============================================================
# JOB SCHEMAS
# ============================================================

class CompanyInfo(BaseModel):
    name: str
    website: Optional[str] = None
    description: Optional[str] = None

class JobCreate(BaseModel):
    title: str = Field(..., min_length=3, max_length=200)
    company_id: Optional[str] = None
    company: Optional[CompanyInfo] = None
    description: Optional[str] = None
    location: Optional[str] = None
    salary: Optional[Any] = None
    drive_date: Optional[str] = None
    interview_date: Optional[str] = None
    application_deadline: Optional[str] = None
    eligibility_criteria: Optional[str] = None
    status: JobStatus = JobStatus.open
    target_centers: List[str] = []
    target_schools: List[str] = []
    target_batches: List[str] = []
    notify_students: bool = False

class JobUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    location: Optional[str] = None
    salary: Optional[Any] = None
    drive_date: Optional[str] = None
    interview_date: Optional[str] = None
    application_deadline: Optional[str] = None
    eligibility_criteria: Optional[str] = None
    status: Optional[JobStatus] = None


# ============================================================
# APPLICATION SCHEMAS
# ============================================================

class ApplicationCreate(BaseModel):
    job_id: str
    company_id: Optional[str] = None

class ApplicationStatusUpdate(BaseModel):
    status: str
    interview_date: Optional[str] = None

class ApplicationCreatedResponse(BaseModel):
    application_id: str
    message: str = "Application submitted successfully"


# ============================================================
# NOTIFICATION SCHEMAS
# ============================================================

class UnsubscribeRequest(BaseModel):
    email: EmailStr
    token: str

class ResubscribeRequest(BaseModel):
    email: EmailStr

class EmailStatusUpdate(BaseModel):
    status: str
    metadata: Dict[str, Any] = {}

class NotificationCreate(BaseModel):
    user_id: str
    title: str
    body: str
    data: Dict[str, Any] = {}


# ============================================================
# RESUME SCHEMAS
# ============================================================

class ResumeInfo(BaseModel):
    url: Optional[str] = None
    file_name: Optional[str] = None
    uploaded_at: Optional[datetime] = None
    has_resume: bool = False

class ResumeImportRequest(BaseModel):
    payload: str

class ResumeDuplicateRequest(BaseModel):
    source_user_id: str
    overrides: Dict[str, Any] = {}


# ============================================================
# ADMIN SCHEMAS
# ============================================================

class RejectJobRequest(BaseModel):
    reason: Optional[str] = None

class RecruiterBlockRequest(BaseModel):
    is_unblocking: bool = False
    block_type: BlockType = BlockType.permanent
    end_date: Optional[str] = None
    end_time: Optional[str] = None
    reason: Optional[str] = None
    notes: Optional[str] = None

class RecruiterStatusUpdate(BaseModel):
    status: RecruiterStatus


# ============================================================
# GENERIC SCHEMAS
# ============================================================

class MessageResponse(BaseModel):
    message: str
    success: bool = True
