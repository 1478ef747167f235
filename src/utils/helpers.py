import logging
import secrets
import string
from datetime import datetime, timedelta, timezone
from typing import Optional
from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import Mail

from src.utils.config import RESET_TOKEN_EXPIRY_MINUTES, SENDGRID_API_KEY, SENDGRID_FROM_EMAIL

logger = logging.getLogger(__name__)


def generate_token(length: int = 64) -> str:
    """Generate a random alphanumeric token of specified length"""
    characters = string.ascii_letters + string.digits
    return ''.join(secrets.choice(characters) for _ in range(length))


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """SQLite hands back naive datetimes; treat them as UTC"""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def reset_token_expiry(now: Optional[datetime] = None) -> datetime:
    return (now or utcnow()) + timedelta(minutes=RESET_TOKEN_EXPIRY_MINUTES)


def is_token_expired(expires_at: datetime, now: Optional[datetime] = None) -> bool:
    """Check if a token is past its expiry time"""
    return (now or utcnow()) > as_utc(expires_at)


def send_password_reset_email(email: str, name: str, reset_url: str) -> bool:
    """Send password reset email using SendGrid"""
    try:
        sg = SendGridAPIClient(api_key=SENDGRID_API_KEY)

        subject = "Reset Your Password - Student Counselling Portal"
        html_content = f"""
        <html>
        <body>
            <h2>Hello {name},</h2>
            <p>We received a request to reset your password for the Student Counselling Portal.</p>
            <p>Click the link below to create a new password:</p>
            <p style="text-align: center; padding: 20px;"><a href="{reset_url}">Reset Password</a></p>
            <p>This link will expire in {RESET_TOKEN_EXPIRY_MINUTES} minutes.</p>
            <p>If you didn't request this, you can safely ignore this email. Your password will remain unchanged.</p>
            <br>
            <p>Student Counselling Portal<br>For assistance, contact your counsellor.</p>
        </body>
        </html>
        """

        message = Mail(
            from_email=SENDGRID_FROM_EMAIL,
            to_emails=email,
            subject=subject,
            html_content=html_content
        )

        response = sg.send(message)
        return response.status_code == 202

    except Exception:
        logger.exception("Error sending password reset email")
        return False


def file_extension(filename: str) -> str:
    if "." not in filename:
        return "bin"
    return filename.rsplit(".", 1)[-1].lower()


def timestamp_millis() -> int:
    return int(utcnow().timestamp() * 1000)
