import re
from pydantic import BaseModel, EmailStr, Field, field_validator
from typing import List, Literal, Optional
from datetime import datetime

MOBILE_PATTERN = re.compile(r"^\d{10}$")
BCRYPT_MAX_BYTES = 72


def check_password_bytes(value: str) -> str:
    if len(value.encode("utf-8")) > BCRYPT_MAX_BYTES:
        raise ValueError(f"Password must be at most {BCRYPT_MAX_BYTES} bytes")
    return value


# ---------- Auth ----------

class StudentLogin(BaseModel):
    registration_number: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1, max_length=72)

class AdminLogin(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1, max_length=72)

class StudentSummary(BaseModel):
    id: str
    registration_number: str
    email: str
    full_name: str
    must_change_password: bool

    class Config:
        from_attributes = True

class LoginResponse(BaseModel):
    success: bool = True
    student: StudentSummary
    access_token: str
    token_type: str = "bearer"

class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"

class PasswordResetRequest(BaseModel):
    registration_number: str = Field(..., min_length=1)
    site_url: str = Field(..., min_length=1)

class PasswordReset(BaseModel):
    token: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=8, max_length=72)

    @field_validator("new_password")
    @classmethod
    def check_password(cls, value):
        return check_password_bytes(value)

class FirstPasswordChange(BaseModel):
    student_id: str
    new_password: str = Field(..., min_length=8, max_length=72)

    @field_validator("new_password")
    @classmethod
    def check_password(cls, value):
        return check_password_bytes(value)

class MessageResponse(BaseModel):
    success: bool
    message: str


# ---------- Students ----------

class StudentCreate(BaseModel):
    full_name: str = Field(..., min_length=1)
    registration_number: str = Field(..., min_length=1)
    email: EmailStr
    mobile_number: Optional[str] = None
    exam_types: List[str] = []
    category: str = "Open"
    temp_password: str = Field(..., min_length=6, max_length=72)

    @field_validator("temp_password")
    @classmethod
    def check_password(cls, value):
        return check_password_bytes(value)

class StudentCreateResponse(BaseModel):
    success: bool = True
    student_id: str
    registration_number: str

class StudentResponse(BaseModel):
    id: str
    full_name: str
    registration_number: str
    email: str
    mobile_number: Optional[str] = None
    alternate_contact_number: Optional[str] = None
    exam_types: List[str] = []
    category: Optional[str] = None
    home_state: Optional[str] = None
    preferred_branches: List[str] = []
    preferred_colleges: List[str] = []
    admission_stage: Optional[str] = None
    payment_status: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

    @field_validator("exam_types", "preferred_branches", "preferred_colleges", mode="before")
    @classmethod
    def none_as_empty(cls, value):
        return value or []

class StudentDetailResponse(BaseModel):
    success: bool = True
    student: StudentResponse
    current_stage_index: int

class StageUpdate(BaseModel):
    admission_stage: str = Field(..., min_length=1)

class StageUpdateResponse(BaseModel):
    success: bool = True
    message: str
    id: str
    admission_stage: str

class BulkStageUpdate(BaseModel):
    student_ids: List[str] = Field(..., min_length=1)
    admission_stage: str = Field(..., min_length=1)

class BulkStageUpdateResponse(BaseModel):
    success: bool = True
    updated_count: int
    message: str

class CSVUploadResponse(BaseModel):
    total_processed: int
    newly_added: int
    skipped: int
    newly_added_students: List[StudentResponse]

class ProfileUpdate(BaseModel):
    full_name: Optional[str] = None
    mobile_number: Optional[str] = None
    alternate_contact_number: Optional[str] = None
    exam_types: Optional[List[str]] = None
    category: Optional[str] = None
    home_state: Optional[str] = None
    preferred_branches: Optional[List[str]] = None
    preferred_colleges: Optional[List[str]] = None

    @field_validator("mobile_number")
    @classmethod
    def check_mobile(cls, value):
        if value and not MOBILE_PATTERN.match(value):
            raise ValueError("Mobile number must be 10 digits")
        return value

    @field_validator("alternate_contact_number")
    @classmethod
    def check_alternate(cls, value):
        if value and not MOBILE_PATTERN.match(value):
            raise ValueError("Alternate contact number must be 10 digits")
        return value


# ---------- Alerts ----------

class AlertCreate(BaseModel):
    title: str = Field(..., min_length=1)
    message: Optional[str] = None
    alert_type: str = "info"

class AlertResponse(BaseModel):
    id: str
    title: str
    message: Optional[str] = None
    alert_type: str
    is_resolved: bool
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# ---------- Notices ----------

class NoticeCreate(BaseModel):
    title: str = Field(..., min_length=1)
    content: Optional[str] = None
    is_important: bool = False
    status: Literal["draft", "published"] = "draft"

class NoticeUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1)
    content: Optional[str] = None
    is_important: Optional[bool] = None
    status: Optional[Literal["draft", "published"]] = None

class NoticeResponse(BaseModel):
    id: str
    title: str
    content: Optional[str] = None
    is_important: bool
    status: str
    published_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# ---------- Dashboard ----------

class DashboardStudent(BaseModel):
    id: str
    full_name: str
    email: str
    registration_number: str
    admission_stage: str

class Progress(BaseModel):
    stages: List[str]
    current_stage_index: int
    is_profile_complete: bool

class DashboardResponse(BaseModel):
    student: DashboardStudent
    progress: Progress
    whats_next: str
    alerts: List[AlertResponse]
    notices: List[NoticeResponse]


# ---------- Documents ----------

class DocumentResponse(BaseModel):
    id: str
    student_id: str
    document_type: str
    file_path: str
    file_name: str
    file_size: int
    status: str
    admin_note: Optional[str] = None
    reviewed_by: Optional[str] = None
    reviewed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class DocumentUploadResponse(BaseModel):
    document: DocumentResponse
    message: str

class DocumentReview(BaseModel):
    status: Literal["approved", "re-upload"]
    admin_note: Optional[str] = None

class SignedUrlRequest(BaseModel):
    file_path: str = Field(..., min_length=1)

class SignedUrlResponse(BaseModel):
    signed_url: str


# ---------- Forms ----------

class FormResponse(BaseModel):
    id: str
    student_id: str
    form_name: str
    exam_type: Optional[str] = None
    round: Optional[str] = None
    file_name: str
    file_size: int
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class FormUploadResponse(BaseModel):
    form: FormResponse
    message: str

class FormDownloadResponse(BaseModel):
    download_url: str
    file_name: str
