import io
import logging
from typing import List

import pandas as pd
from fastapi import APIRouter, Depends, HTTPException, UploadFile, File
from pydantic import ValidationError
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from src.models.database import get_db
from src.models.student import Student, UserRole, StudentAlert
from src.models.schemas import (
    StudentCreate, StudentCreateResponse, StudentResponse, StudentDetailResponse,
    StageUpdate, StageUpdateResponse, BulkStageUpdate, BulkStageUpdateResponse,
    CSVUploadResponse, AlertCreate, AlertResponse
)
from src.utils.security import hash_password
from src.utils.stages import ADMISSION_STAGES, get_stage, is_valid_stage
from src.utils.helpers import utcnow
from src.app.dependencies import Caller, admin_dependency

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin-students"])

REQUIRED_CSV_COLUMNS = ['full_name', 'registration_number', 'email', 'temp_password']


def check_stage(stage: str) -> None:
    if not is_valid_stage(stage):
        raise HTTPException(
            status_code=400,
            detail=f"Unknown admission stage. Expected one of: {ADMISSION_STAGES}"
        )


def build_student(
    full_name: str,
    registration_number: str,
    email: str,
    temp_password: str,
    mobile_number=None,
    exam_types=None,
    category=None
) -> Student:
    """New student with a temporary password that must be changed on first login"""
    return Student(
        full_name=full_name,
        registration_number=registration_number,
        email=email.lower(),
        mobile_number=mobile_number,
        exam_types=exam_types or [],
        category=category or "Open",
        password_hash=hash_password(temp_password),
        must_change_password=True,
        payment_status="paid",
    )


@router.post("/students", response_model=StudentCreateResponse, status_code=201)
async def create_student(
    request: StudentCreate,
    db: Session = Depends(get_db),
    admin: Caller = admin_dependency
):
    """Create a student account"""
    logger.info("Creating student %s", request.registration_number)

    if db.query(Student).filter(Student.registration_number == request.registration_number).first():
        raise HTTPException(status_code=400, detail="Registration number already exists")

    if db.query(Student).filter(Student.email == request.email.lower()).first():
        raise HTTPException(status_code=400, detail="Email address already exists")

    student = build_student(
        request.full_name,
        request.registration_number,
        request.email,
        request.temp_password,
        mobile_number=request.mobile_number,
        exam_types=request.exam_types,
        category=request.category,
    )
    try:
        db.add(student)
        db.flush()
        db.add(UserRole(user_id=student.id, role="student"))
        db.commit()
    except IntegrityError:
        # Lost a race with a concurrent create for the same number or email
        db.rollback()
        raise HTTPException(status_code=400, detail="Registration number or email address already exists")

    logger.info("Student created: %s", student.id)
    return StudentCreateResponse(student_id=student.id, registration_number=student.registration_number)


@router.get("/students", response_model=List[StudentResponse])
async def list_students(
    db: Session = Depends(get_db),
    admin: Caller = admin_dependency
):
    """Get all students, newest first"""
    return db.query(Student).order_by(Student.created_at.desc()).all()


@router.put("/students", response_model=BulkStageUpdateResponse)
async def bulk_update_stage(
    request: BulkStageUpdate,
    db: Session = Depends(get_db),
    admin: Caller = admin_dependency
):
    """Move several students to the same admission stage; unknown ids are skipped"""
    check_stage(request.admission_stage)

    updated_count = db.query(Student).filter(
        Student.id.in_(request.student_ids)
    ).update(
        {Student.admission_stage: request.admission_stage, Student.updated_at: utcnow()},
        synchronize_session=False
    )
    db.commit()

    logger.info(
        "Bulk stage update to %r: %d of %d students updated",
        request.admission_stage, updated_count, len(request.student_ids)
    )
    return BulkStageUpdateResponse(
        updated_count=updated_count,
        message=f"Successfully updated {updated_count} students"
    )


@router.post("/students/upload-csv", response_model=CSVUploadResponse)
async def upload_csv(
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    admin: Caller = admin_dependency
):
    """Bulk-create students from a CSV file"""
    if not file.filename.endswith('.csv'):
        raise HTTPException(status_code=400, detail="File must be a CSV")

    content = await file.read()
    try:
        df = pd.read_csv(io.StringIO(content.decode('utf-8')), dtype=str).fillna('')
    except (UnicodeDecodeError, pd.errors.ParserError, pd.errors.EmptyDataError):
        raise HTTPException(status_code=400, detail="Could not parse CSV file")

    missing_columns = [col for col in REQUIRED_CSV_COLUMNS if col not in df.columns]
    if missing_columns:
        raise HTTPException(
            status_code=400,
            detail=f"Missing required columns: {missing_columns}"
        )

    newly_added_students = []
    skipped = 0
    seen = set()

    for index, row in df.iterrows():
        fields = {
            'full_name': row['full_name'].strip(),
            'registration_number': row['registration_number'].strip(),
            'email': row['email'].strip().lower(),
            'temp_password': row['temp_password'].strip(),
            'mobile_number': row.get('mobile_number', '').strip() or None,
            'exam_types': [t.strip() for t in row.get('exam_types', '').split(';') if t.strip()],
        }
        if row.get('category', '').strip():
            fields['category'] = row['category'].strip()

        try:
            entry = StudentCreate.model_validate(fields)
        except ValidationError as e:
            logger.info("CSV row %s skipped: %d invalid fields", index, e.error_count())
            skipped += 1
            continue

        registration_number = entry.registration_number
        email = entry.email.lower()

        if registration_number in seen or email in seen:
            skipped += 1
            continue

        existing = db.query(Student).filter(
            or_(Student.registration_number == registration_number, Student.email == email)
        ).first()
        if existing:
            skipped += 1
            continue

        student = build_student(
            entry.full_name,
            registration_number,
            email,
            entry.temp_password,
            mobile_number=entry.mobile_number,
            exam_types=entry.exam_types,
            category=entry.category,
        )
        db.add(student)
        db.flush()
        db.add(UserRole(user_id=student.id, role="student"))
        seen.update([registration_number, email])
        newly_added_students.append(student)

    db.commit()

    logger.info("CSV import: %d added, %d skipped", len(newly_added_students), skipped)
    return CSVUploadResponse(
        total_processed=len(df),
        newly_added=len(newly_added_students),
        skipped=skipped,
        newly_added_students=[StudentResponse.model_validate(s) for s in newly_added_students]
    )


@router.get("/students/{student_id}", response_model=StudentDetailResponse)
async def get_student(
    student_id: str,
    db: Session = Depends(get_db),
    admin: Caller = admin_dependency
):
    """Get one student with their resolved stage index"""
    student = db.query(Student).filter(Student.id == student_id).first()
    if not student:
        raise HTTPException(status_code=404, detail="Student not found")

    _, index = get_stage(student.admission_stage)
    return StudentDetailResponse(
        student=StudentResponse.model_validate(student),
        current_stage_index=index
    )


@router.put("/students/{student_id}", response_model=StageUpdateResponse)
async def update_student_stage(
    student_id: str,
    request: StageUpdate,
    db: Session = Depends(get_db),
    admin: Caller = admin_dependency
):
    """Set a student's admission stage; any stage may follow any other"""
    check_stage(request.admission_stage)

    student = db.query(Student).filter(Student.id == student_id).first()
    if not student:
        raise HTTPException(status_code=404, detail="Student not found")

    previous = student.admission_stage
    student.admission_stage = request.admission_stage
    db.commit()

    logger.info(
        "Admin %s moved student %s from %r to %r",
        admin.user_id, student_id, previous, request.admission_stage
    )
    return StageUpdateResponse(
        message="Progress updated successfully",
        id=student.id,
        admission_stage=student.admission_stage
    )


@router.post("/students/{student_id}/alerts", response_model=AlertResponse, status_code=201)
async def create_alert(
    student_id: str,
    request: AlertCreate,
    db: Session = Depends(get_db),
    admin: Caller = admin_dependency
):
    """Raise an alert shown on the student's dashboard until resolved"""
    if not db.query(Student).filter(Student.id == student_id).first():
        raise HTTPException(status_code=404, detail="Student not found")

    alert = StudentAlert(
        student_id=student_id,
        title=request.title,
        message=request.message,
        alert_type=request.alert_type,
    )
    db.add(alert)
    db.commit()
    db.refresh(alert)
    return alert


@router.patch("/alerts/{alert_id}", response_model=AlertResponse)
async def resolve_alert(
    alert_id: str,
    db: Session = Depends(get_db),
    admin: Caller = admin_dependency
):
    alert = db.query(StudentAlert).filter(StudentAlert.id == alert_id).first()
    if not alert:
        raise HTTPException(status_code=404, detail="Alert not found")

    alert.is_resolved = True
    db.commit()
    db.refresh(alert)
    return alert
