import os
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# Get SECRET_KEY from environment
SECRET_KEY = os.getenv("SECRET_KEY")
if not SECRET_KEY:
    raise ValueError("SECRET_KEY environment variable is required")

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./portal.db")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Tokens
JWT_ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", 60 * 12))
RESET_TOKEN_EXPIRY_MINUTES = int(os.getenv("RESET_TOKEN_EXPIRY_MINUTES", 60))

# Object storage
STORAGE_ROOT = os.getenv("STORAGE_ROOT", "./storage")
PUBLIC_BASE_URL = os.getenv("PUBLIC_BASE_URL", "http://localhost:8000").rstrip("/")
DOCUMENTS_BUCKET = "student-documents"
FORMS_BUCKET = "student-forms"
DOCUMENT_URL_EXPIRES_SECONDS = int(os.getenv("DOCUMENT_URL_EXPIRES_SECONDS", 3600))
FORM_URL_EXPIRES_SECONDS = int(os.getenv("FORM_URL_EXPIRES_SECONDS", 300))

# Upload limits differ by upload path
STUDENT_UPLOAD_MAX_BYTES = int(os.getenv("STUDENT_UPLOAD_MAX_BYTES", 5 * 1024 * 1024))
ADMIN_UPLOAD_MAX_BYTES = int(os.getenv("ADMIN_UPLOAD_MAX_BYTES", 10 * 1024 * 1024))
STUDENT_ALLOWED_TYPES = ("image/png", "image/jpeg", "image/jpg")
ADMIN_ALLOWED_TYPES = ("application/pdf", "image/png", "image/jpeg", "image/jpg")

# Mail
SENDGRID_API_KEY = os.getenv("SENDGRID_API_KEY")
SENDGRID_FROM_EMAIL = os.getenv("SENDGRID_FROM_EMAIL")

# Optional first admin account
DEFAULT_ADMIN_EMAIL = os.getenv("DEFAULT_ADMIN_EMAIL")
DEFAULT_ADMIN_PASSWORD = os.getenv("DEFAULT_ADMIN_PASSWORD")
