import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, UploadFile, File, Form, Response
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from src.models.database import get_db
from src.models.student import Student
from src.models.document import StudentDocument
from src.models.schemas import (
    DocumentResponse, DocumentUploadResponse, DocumentReview, SignedUrlRequest, SignedUrlResponse
)
from src.utils.config import (
    DOCUMENTS_BUCKET, DOCUMENT_URL_EXPIRES_SECONDS,
    STUDENT_ALLOWED_TYPES, STUDENT_UPLOAD_MAX_BYTES,
    ADMIN_ALLOWED_TYPES, ADMIN_UPLOAD_MAX_BYTES,
)
from src.utils.helpers import file_extension, timestamp_millis, utcnow
from src.utils.stages import DOCUMENT_TYPES
from src.utils.storage import LocalObjectStorage, StorageError, get_storage, remove_quietly
from src.app.dependencies import Caller, caller_dependency, admin_dependency, ensure_student_access

logger = logging.getLogger(__name__)

router = APIRouter(tags=["documents"])


def upload_limits(caller: Caller):
    """Admins may upload PDFs and larger files than students"""
    if caller.is_admin:
        return ADMIN_ALLOWED_TYPES, ADMIN_UPLOAD_MAX_BYTES
    return STUDENT_ALLOWED_TYPES, STUDENT_UPLOAD_MAX_BYTES


async def read_upload(file, max_bytes: int) -> bytes:
    """Read at most one byte past the size ceiling"""
    return await file.read(max_bytes + 1)


def validate_upload(content_type: Optional[str], size: int, allowed_types, max_bytes: int) -> None:
    if content_type not in allowed_types:
        raise HTTPException(
            status_code=400,
            detail=f"File type not allowed. Allowed types: {', '.join(allowed_types)}"
        )
    if size == 0:
        raise HTTPException(status_code=400, detail="File is empty")
    if size > max_bytes:
        raise HTTPException(
            status_code=400,
            detail=f"File too large. Maximum size is {max_bytes // (1024 * 1024)}MB"
        )


def swap_document(
    db: Session,
    student_id: str,
    document_type: str,
    file_path: str,
    file_name: str,
    file_size: int
):
    """
    Point the (student, document type) record at a new file.

    Returns the record, whether it was newly created, and the file path it
    replaced. Losing an insert race to a concurrent upload falls back to
    updating the winner's row, so the last write wins.
    """
    for attempt in range(2):
        existing = db.query(StudentDocument).filter(
            StudentDocument.student_id == student_id,
            StudentDocument.document_type == document_type
        ).first()

        if existing:
            old_path = existing.file_path
            existing.file_path = file_path
            existing.file_name = file_name
            existing.file_size = file_size
            existing.status = "pending"
            existing.admin_note = None
            existing.reviewed_by = None
            existing.reviewed_at = None
            existing.updated_at = utcnow()
            db.commit()
            return existing, False, old_path

        document = StudentDocument(
            student_id=student_id,
            document_type=document_type,
            file_path=file_path,
            file_name=file_name,
            file_size=file_size,
            status="pending",
        )
        db.add(document)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            if attempt:
                raise
            continue
        return document, True, None


@router.get("/students/{student_id}/documents", response_model=List[DocumentResponse])
async def list_documents(
    student_id: str,
    db: Session = Depends(get_db),
    caller: Caller = caller_dependency
):
    """Get a student's documents, newest first"""
    ensure_student_access(caller, student_id)
    return db.query(StudentDocument).filter(
        StudentDocument.student_id == student_id
    ).order_by(StudentDocument.created_at.desc()).all()


@router.post("/students/{student_id}/documents", response_model=DocumentUploadResponse)
async def upload_document(
    student_id: str,
    response: Response,
    document_type: str = Form(...),
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    storage: LocalObjectStorage = Depends(get_storage),
    caller: Caller = caller_dependency
):
    """Upload a document, replacing any earlier file of the same type"""
    ensure_student_access(caller, student_id)

    if document_type not in DOCUMENT_TYPES:
        raise HTTPException(status_code=400, detail=f"Unknown document type: {document_type}")

    if not db.query(Student).filter(Student.id == student_id).first():
        raise HTTPException(status_code=404, detail="Student not found")

    # Validate before anything is written so rejected files never reach storage
    allowed_types, max_bytes = upload_limits(caller)
    content = await read_upload(file, max_bytes)
    validate_upload(file.content_type, len(content), allowed_types, max_bytes)

    file_name = file.filename or document_type
    file_path = f"{student_id}/{document_type}-{timestamp_millis()}.{file_extension(file_name)}"

    # Phase 1: write the new object
    try:
        storage.upload(DOCUMENTS_BUCKET, file_path, content, upsert=True)
    except StorageError:
        logger.exception("Storage upload failed for %s", file_path)
        raise HTTPException(status_code=500, detail="Failed to upload file to storage")

    # Phase 2: swap the record; on failure remove the object written in phase 1
    try:
        document, created, old_path = swap_document(
            db, student_id, document_type, file_path, file_name, len(content)
        )
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Document record update failed for %s", file_path)
        remove_quietly(storage, DOCUMENTS_BUCKET, file_path)
        raise HTTPException(status_code=500, detail="Failed to save document record")

    if old_path and old_path != file_path:
        remove_quietly(storage, DOCUMENTS_BUCKET, old_path)

    logger.info(
        "Document %s (%s) %s for student %s by %s",
        document.id, document_type, "uploaded" if created else "replaced", student_id, caller.role
    )
    response.status_code = 201 if created else 200
    return DocumentUploadResponse(
        document=DocumentResponse.model_validate(document),
        message="Document uploaded successfully" if created else "Document updated successfully"
    )


@router.patch("/documents/{document_id}", response_model=DocumentResponse)
async def review_document(
    document_id: str,
    request: DocumentReview,
    db: Session = Depends(get_db),
    admin: Caller = admin_dependency
):
    """Approve a document or ask for it to be uploaded again"""
    document = db.query(StudentDocument).filter(StudentDocument.id == document_id).first()
    if not document:
        raise HTTPException(status_code=404, detail="Document not found")

    document.status = request.status
    document.admin_note = request.admin_note or None
    document.reviewed_by = admin.user_id
    document.reviewed_at = utcnow()
    db.commit()
    db.refresh(document)

    logger.info("Admin %s marked document %s as %s", admin.user_id, document_id, request.status)
    return document


@router.post("/documents/signed-url", response_model=SignedUrlResponse)
async def create_document_url(
    request: SignedUrlRequest,
    db: Session = Depends(get_db),
    storage: LocalObjectStorage = Depends(get_storage),
    caller: Caller = caller_dependency
):
    """Issue a time-boxed URL for a document the caller may see"""
    if not caller.is_admin:
        document = db.query(StudentDocument).filter(
            StudentDocument.file_path == request.file_path
        ).first()
        if not document or document.student_id != caller.user_id:
            raise HTTPException(status_code=403, detail="Forbidden")

    try:
        signed_url = storage.create_signed_url(
            DOCUMENTS_BUCKET, request.file_path, DOCUMENT_URL_EXPIRES_SECONDS
        )
    except StorageError:
        raise HTTPException(status_code=400, detail="Invalid file path")

    return SignedUrlResponse(signed_url=signed_url)
