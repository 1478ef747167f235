import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from src.models.database import get_db
from src.models.student import Student, AdminUser, PasswordResetToken
from src.models.schemas import (
    StudentLogin, AdminLogin, LoginResponse, StudentSummary, Token,
    PasswordResetRequest, PasswordReset, FirstPasswordChange, MessageResponse
)
from src.utils.helpers import (
    generate_token, reset_token_expiry, is_token_expired, send_password_reset_email, utcnow
)
from src.utils.security import hash_password, verify_password, create_access_token
from src.app.dependencies import Caller, caller_dependency, ensure_student_access

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])

INVALID_CREDENTIALS = "Invalid registration number or password"
RESET_REQUESTED = "If this registration number exists, a password reset email has been sent."
RESET_INVALID = "Invalid or expired reset link"
RESET_EXPIRED = "This reset link has expired. Please request a new one."
RESET_USED = "This reset link has already been used"


@router.post("/login", response_model=LoginResponse)
async def login(credentials: StudentLogin, db: Session = Depends(get_db)):
    """Log a student in by registration number and password"""
    logger.info("Login attempt for %s", credentials.registration_number)
    try:
        student = db.query(Student).filter(
            Student.registration_number == credentials.registration_number
        ).first()
    except SQLAlchemyError:
        # Same answer as a credential mismatch
        logger.exception("Database error during login")
        raise HTTPException(status_code=401, detail=INVALID_CREDENTIALS)

    if not student or not verify_password(credentials.password, student.password_hash):
        logger.info("Login failed for %s", credentials.registration_number)
        raise HTTPException(status_code=401, detail=INVALID_CREDENTIALS)

    logger.info("Login successful for %s", credentials.registration_number)
    return LoginResponse(
        student=StudentSummary.model_validate(student),
        access_token=create_access_token(student.id)
    )


@router.post("/admin/login", response_model=Token)
async def admin_login(credentials: AdminLogin, db: Session = Depends(get_db)):
    """Issue a bearer token for an active admin account"""
    admin = db.query(AdminUser).filter(
        AdminUser.email == credentials.email.lower(),
        AdminUser.is_active == True
    ).first()
    if not admin or not verify_password(credentials.password, admin.password_hash):
        raise HTTPException(status_code=401, detail="Invalid credentials")

    return Token(access_token=create_access_token(admin.id))


@router.post("/request-password-reset", response_model=MessageResponse)
async def request_password_reset(request: PasswordResetRequest, db: Session = Depends(get_db)):
    """Mail a single-use reset link; the response never reveals whether the student exists"""
    logger.info("Password reset requested for %s", request.registration_number)
    student = db.query(Student).filter(
        Student.registration_number == request.registration_number
    ).first()

    if not student:
        logger.info("Password reset for unknown registration number %s", request.registration_number)
        return MessageResponse(success=True, message=RESET_REQUESTED)

    token = generate_token()
    db.add(PasswordResetToken(
        student_id=student.id,
        token=token,
        expires_at=reset_token_expiry()
    ))
    db.commit()

    reset_url = f"{request.site_url.rstrip('/')}/reset-password?token={token}"
    if not send_password_reset_email(student.email, student.full_name or "Student", reset_url):
        logger.error("Password reset email could not be sent for student %s", student.id)

    return MessageResponse(success=True, message=RESET_REQUESTED)


@router.post("/reset-password", response_model=MessageResponse)
async def reset_password(request: PasswordReset, db: Session = Depends(get_db)):
    """Consume a reset token and store the new password"""
    reset_token = db.query(PasswordResetToken).filter(
        PasswordResetToken.token == request.token
    ).first()

    if not reset_token:
        raise HTTPException(status_code=400, detail=RESET_INVALID)

    if is_token_expired(reset_token.expires_at):
        raise HTTPException(status_code=400, detail=RESET_EXPIRED)

    if reset_token.used_at is not None:
        raise HTTPException(status_code=400, detail=RESET_USED)

    # Claim the token with a conditional update so two concurrent
    # consumptions cannot both succeed
    claimed = db.query(PasswordResetToken).filter(
        PasswordResetToken.id == reset_token.id,
        PasswordResetToken.used_at.is_(None)
    ).update({PasswordResetToken.used_at: utcnow()}, synchronize_session=False)

    if claimed != 1:
        db.rollback()
        raise HTTPException(status_code=400, detail=RESET_USED)

    db.query(Student).filter(Student.id == reset_token.student_id).update(
        {Student.password_hash: hash_password(request.new_password)},
        synchronize_session=False
    )
    db.commit()

    logger.info("Password reset successful for student %s", reset_token.student_id)
    return MessageResponse(success=True, message="Password has been reset successfully")


@router.post("/first-password", response_model=MessageResponse)
async def update_first_password(
    request: FirstPasswordChange,
    db: Session = Depends(get_db),
    caller: Caller = caller_dependency
):
    """Replace the temporary password handed out at account creation"""
    ensure_student_access(caller, request.student_id)

    student = db.query(Student).filter(Student.id == request.student_id).first()
    if not student:
        raise HTTPException(status_code=404, detail="Student not found")

    student.password_hash = hash_password(request.new_password)
    student.must_change_password = False
    db.commit()

    logger.info("First password set for student %s", student.id)
    return MessageResponse(success=True, message="Password updated successfully")
