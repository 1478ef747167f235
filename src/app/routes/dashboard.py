import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from src.models.database import get_db
from src.models.student import Student, StudentAlert
from src.models.schemas import (
    DashboardResponse, DashboardStudent, Progress, StudentResponse, ProfileUpdate,
    AlertResponse, NoticeResponse
)
from src.utils.stages import ADMISSION_STAGES, get_stage, whats_next
from src.app.dependencies import Caller, caller_dependency, ensure_student_access
from src.app.routes.notices import latest_published

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/students", tags=["students"])


def is_profile_complete(student: Student) -> bool:
    return bool(
        student.full_name
        and student.mobile_number
        and student.exam_types
        and student.category
        and student.home_state
    )


def get_student_or_404(db: Session, student_id: str) -> Student:
    student = db.query(Student).filter(Student.id == student_id).first()
    if not student:
        raise HTTPException(status_code=404, detail="Student not found")
    return student


@router.get("/{student_id}/dashboard", response_model=DashboardResponse)
async def get_dashboard(
    student_id: str,
    db: Session = Depends(get_db),
    caller: Caller = caller_dependency
):
    """Snapshot of a student's progress, open alerts and the latest notices"""
    ensure_student_access(caller, student_id)
    student = get_student_or_404(db, student_id)

    stage_name, stage_index = get_stage(student.admission_stage)

    alerts = db.query(StudentAlert).filter(
        StudentAlert.student_id == student_id,
        StudentAlert.is_resolved == False
    ).order_by(StudentAlert.created_at.desc()).all()

    return DashboardResponse(
        student=DashboardStudent(
            id=student.id,
            full_name=student.full_name,
            email=student.email,
            registration_number=student.registration_number,
            admission_stage=stage_name,
        ),
        progress=Progress(
            stages=ADMISSION_STAGES,
            current_stage_index=stage_index,
            is_profile_complete=is_profile_complete(student),
        ),
        whats_next=whats_next(student.admission_stage),
        alerts=[AlertResponse.model_validate(alert) for alert in alerts],
        notices=[NoticeResponse.model_validate(notice) for notice in latest_published(db)],
    )


@router.get("/{student_id}/profile", response_model=StudentResponse)
async def get_profile(
    student_id: str,
    db: Session = Depends(get_db),
    caller: Caller = caller_dependency
):
    ensure_student_access(caller, student_id)
    return get_student_or_404(db, student_id)


@router.put("/{student_id}/profile", response_model=StudentResponse)
async def update_profile(
    student_id: str,
    request: ProfileUpdate,
    db: Session = Depends(get_db),
    caller: Caller = caller_dependency
):
    """Update the student's own profile fields"""
    if caller.user_id != student_id:
        raise HTTPException(status_code=403, detail="Forbidden")
    student = get_student_or_404(db, student_id)

    for field, value in request.model_dump(exclude_unset=True).items():
        if isinstance(value, str) and value == "":
            value = None
        if field == "full_name" and not value:
            raise HTTPException(status_code=400, detail="Full name cannot be empty")
        setattr(student, field, value)

    db.commit()
    db.refresh(student)
    logger.info("Profile updated for student %s", student_id)
    return student
