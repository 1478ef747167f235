import logging
import os
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, UploadFile, File, Form
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from src.models.database import get_db
from src.models.student import Student
from src.models.document import StudentForm
from src.models.schemas import FormResponse, FormUploadResponse, FormDownloadResponse
from src.utils.config import FORMS_BUCKET, FORM_URL_EXPIRES_SECONDS, ADMIN_ALLOWED_TYPES, ADMIN_UPLOAD_MAX_BYTES
from src.utils.helpers import timestamp_millis
from src.utils.storage import LocalObjectStorage, StorageError, get_storage, remove_quietly
from src.app.dependencies import Caller, caller_dependency, admin_dependency, ensure_student_access
from src.app.routes.documents import read_upload, validate_upload

logger = logging.getLogger(__name__)

router = APIRouter(tags=["forms"])


@router.post("/admin/students/{student_id}/forms", response_model=FormUploadResponse, status_code=201)
async def upload_form(
    student_id: str,
    form_name: str = Form(...),
    exam_type: Optional[str] = Form(None),
    cap_round: Optional[str] = Form(None),
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    storage: LocalObjectStorage = Depends(get_storage),
    admin: Caller = admin_dependency
):
    """Upload a filled admission form for a student"""
    if not form_name.strip():
        raise HTTPException(status_code=400, detail="Form name is required")

    if not db.query(Student).filter(Student.id == student_id).first():
        raise HTTPException(status_code=404, detail="Student not found")

    content = await read_upload(file, ADMIN_UPLOAD_MAX_BYTES)
    validate_upload(file.content_type, len(content), ADMIN_ALLOWED_TYPES, ADMIN_UPLOAD_MAX_BYTES)

    file_name = os.path.basename(file.filename or "") or "form"
    file_path = f"{student_id}/{timestamp_millis()}_{file_name}"

    try:
        storage.upload(FORMS_BUCKET, file_path, content)
    except StorageError:
        logger.exception("Storage upload failed for form %s", file_path)
        raise HTTPException(status_code=500, detail="Failed to upload file to storage")

    form = StudentForm(
        student_id=student_id,
        form_name=form_name.strip(),
        exam_type=exam_type or None,
        round=cap_round or None,
        file_path=file_path,
        file_name=file_name,
        file_size=len(content),
    )
    try:
        db.add(form)
        db.commit()
        db.refresh(form)
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Form record insert failed for %s", file_path)
        remove_quietly(storage, FORMS_BUCKET, file_path)
        raise HTTPException(status_code=500, detail="Failed to create form record")

    logger.info("Form %s uploaded for student %s", form.id, student_id)
    return FormUploadResponse(form=FormResponse.model_validate(form), message="Form uploaded successfully")


@router.get("/students/{student_id}/forms", response_model=List[FormResponse])
async def list_forms(
    student_id: str,
    db: Session = Depends(get_db),
    caller: Caller = caller_dependency
):
    ensure_student_access(caller, student_id)
    return db.query(StudentForm).filter(
        StudentForm.student_id == student_id
    ).order_by(StudentForm.created_at.desc()).all()


@router.get("/students/{student_id}/forms/{form_id}/download", response_model=FormDownloadResponse)
async def download_form(
    student_id: str,
    form_id: str,
    db: Session = Depends(get_db),
    storage: LocalObjectStorage = Depends(get_storage),
    caller: Caller = caller_dependency
):
    """Short-lived download link for one of the student's forms"""
    ensure_student_access(caller, student_id)

    form = db.query(StudentForm).filter(
        StudentForm.id == form_id,
        StudentForm.student_id == student_id
    ).first()
    if not form:
        raise HTTPException(status_code=404, detail="Form not found")

    download_url = storage.create_signed_url(FORMS_BUCKET, form.file_path, FORM_URL_EXPIRES_SECONDS)
    return FormDownloadResponse(download_url=download_url, file_name=form.file_name)
