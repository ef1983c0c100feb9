"""
Pydantic Schemas - Request/Response Validation

All API request and response schemas in one file for simplicity.
Request schemas are applied by the pipeline's Validate stage, so field
declaration order is the order validation failures are reported in.
"""

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator, model_validator
from typing import Optional, List
from datetime import datetime
from enum import Enum

from ku_connect.models.identity import Role


# ============================================================
# ENUMS
# ============================================================

class JobType(str, Enum):
    full_time = "full-time"
    part_time = "part-time"
    internship = "internship"
    contract = "contract"


class JobStatus(str, Enum):
    open = "open"
    closed = "closed"


class ApplicationStatus(str, Enum):
    pending = "pending"
    qualified = "qualified"
    rejected = "rejected"


class Industry(str, Enum):
    IT_HARDWARE_AND_DEVICES = "IT_HARDWARE_AND_DEVICES"
    IT_SOFTWARE = "IT_SOFTWARE"
    IT_SERVICES = "IT_SERVICES"
    NETWORK_SERVICES = "NETWORK_SERVICES"
    EMERGING_TECH = "EMERGING_TECH"
    E_COMMERCE = "E_COMMERCE"
    OTHER = "OTHER"


class Audience(str, Enum):
    ALL = "ALL"
    STUDENT = "STUDENT"
    EMPLOYER = "EMPLOYER"
    PROFESSOR = "PROFESSOR"
    ADMIN = "ADMIN"


# ============================================================
# AUTH SCHEMAS
# ============================================================

class RegisterRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=8)
    role: Role
    name: str = Field(..., min_length=2, max_length=200)

    @field_validator("role")
    @classmethod
    def no_self_service_admin(cls, v: Role) -> Role:
        if v == Role.ADMIN:
            raise ValueError("Admin accounts cannot be self-registered")
        return v

class LoginRequest(BaseModel):
    email: EmailStr
    password: str

class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user_id: str
    role: str

class UserResponse(BaseModel):
    id: str
    email: str
    role: str
    verified: bool
    name: Optional[str] = None
    phone: Optional[str] = None
    created_at: datetime


# ============================================================
# PROFILE SCHEMAS
# ============================================================

class ProfileUpdate(BaseModel):
    user_id: str
    name: Optional[str] = Field(None, min_length=2, max_length=200)
    phone: Optional[str] = Field(None, max_length=40)


# ============================================================
# JOB SCHEMAS
# ============================================================

class JobCreate(BaseModel):
    title: str = Field(..., min_length=3, max_length=200)
    description: Optional[str] = None
    location: Optional[str] = None
    job_type: JobType = JobType.full_time
    min_salary: Optional[int] = Field(None, ge=0)
    max_salary: Optional[int] = Field(None, ge=0)

    @model_validator(mode="after")
    def salary_range(self) -> "JobCreate":
        if self.min_salary is not None and self.max_salary is not None and self.max_salary < self.min_salary:
            raise ValueError("max_salary must not be below min_salary")
        return self

class JobUpdate(BaseModel):
    """Partial update; only fields present in the body change."""
    model_config = ConfigDict(extra="forbid")

    job_id: str
    title: Optional[str] = Field(None, min_length=3, max_length=200)
    description: Optional[str] = None
    location: Optional[str] = None
    job_type: Optional[JobType] = None
    min_salary: Optional[int] = Field(None, ge=0)
    max_salary: Optional[int] = Field(None, ge=0)
    status: Optional[JobStatus] = None

    @model_validator(mode="after")
    def salary_range(self) -> "JobUpdate":
        if self.min_salary is not None and self.max_salary is not None and self.max_salary < self.min_salary:
            raise ValueError("max_salary must not be below min_salary")
        return self

class JobListQuery(BaseModel):
    page: int = Field(1, ge=1)
    page_size: int = Field(10, ge=1, le=50)
    search: Optional[str] = None
    location: Optional[str] = None
    job_type: Optional[JobType] = None

class JobResponse(BaseModel):
    id: str
    employer_id: str
    employer_name: Optional[str] = None
    title: str
    description: Optional[str] = None
    location: Optional[str] = None
    job_type: str
    min_salary: Optional[int] = None
    max_salary: Optional[int] = None
    status: str
    created_at: datetime
    is_saved: Optional[bool] = None

class JobListResponse(BaseModel):
    jobs: List[JobResponse]
    total: int
    page: int
    page_size: int


# ============================================================
# APPLICATION SCHEMAS
# ============================================================

class ApplicationCreate(BaseModel):
    job_id: str
    cover_letter: Optional[str] = Field(None, max_length=5000)

class ApplicationResponse(BaseModel):
    id: str
    job_id: str
    student_id: str
    status: str
    cover_letter: Optional[str] = None
    created_at: datetime

class MyApplicationResponse(ApplicationResponse):
    job_title: str
    employer_name: Optional[str] = None

class ApplicationDecision(BaseModel):
    job_id: str
    application_id: str
    status: ApplicationStatus

    @field_validator("status", mode="before")
    @classmethod
    def normalize_status(cls, v):
        return v.strip().lower() if isinstance(v, str) else v

    @field_validator("status")
    @classmethod
    def decided(cls, v: ApplicationStatus) -> ApplicationStatus:
        if v == ApplicationStatus.pending:
            raise ValueError("status must be qualified or rejected")
        return v


# ============================================================
# JOB REPORT SCHEMAS
# ============================================================

class ReportCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    job_id: str
    reason: str = Field(..., min_length=10, max_length=300)

class ReportResponse(BaseModel):
    id: str
    job_id: str
    job_title: Optional[str] = None
    user_id: str
    reporter_email: Optional[str] = None
    reason: str
    created_at: datetime


# ============================================================
# SAVED JOB SCHEMAS
# ============================================================

class SavedJobsPath(BaseModel):
    user_id: str

class SavedJobRequest(BaseModel):
    user_id: str
    job_id: str

class SavedJobListResponse(BaseModel):
    user_id: str
    jobs: List[JobResponse]


# ============================================================
# STUDENT PREFERENCE SCHEMAS
# ============================================================

class PreferenceUpdate(BaseModel):
    # ids and timestamps are not client-writable
    model_config = ConfigDict(extra="forbid")

    desired_location: Optional[str] = Field(None, max_length=255)
    min_salary: Optional[int] = Field(None, ge=0)
    industry: Optional[Industry] = None
    job_type: Optional[JobType] = None
    remote_only: bool = False

    @field_validator("industry", mode="before")
    @classmethod
    def normalize_industry(cls, v):
        if isinstance(v, str):
            v = v.strip().upper()
            return v or None
        return v

class PreferenceResponse(BaseModel):
    user_id: str
    desired_location: Optional[str] = None
    min_salary: Optional[int] = None
    industry: Optional[str] = None
    job_type: Optional[str] = None
    remote_only: bool = False
    updated_at: Optional[datetime] = None


# ============================================================
# ANNOUNCEMENT / NOTIFICATION SCHEMAS
# ============================================================

class AnnouncementCreate(BaseModel):
    title: str = Field(..., min_length=3, max_length=200)
    content: str = Field(..., min_length=1)
    audience: Audience = Audience.ALL

class AnnouncementResponse(BaseModel):
    id: str
    title: str
    content: str
    audience: str
    created_by: Optional[str] = None
    created_at: datetime

class NotificationResponse(BaseModel):
    id: str
    type: str
    title: str
    message: str
    is_read: bool
    created_at: datetime

class NotificationListResponse(BaseModel):
    notifications: List[NotificationResponse]
    unread: int


# ============================================================
# ADMIN / REFERENCE SCHEMAS
# ============================================================

class VerifyUserRequest(BaseModel):
    user_id: str
    verified: bool = True

class DegreeTypeResponse(BaseModel):
    id: str
    name: str


# ============================================================
# GENERIC SCHEMAS
# ============================================================

class MessageResponse(BaseModel):
    message: str
    success: bool = True
