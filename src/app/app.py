import logging

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from src.models.database import engine, Base, SessionLocal
from src.models import student, document, notice  # noqa: F401  register tables
from src.models.student import AdminUser, UserRole
from src.utils.config import LOG_LEVEL, DEFAULT_ADMIN_EMAIL, DEFAULT_ADMIN_PASSWORD
from src.utils.security import hash_password
from src.utils.storage import StorageError
from .routes import auth, students, dashboard, documents, forms, notices, storage

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s"
)
logger = logging.getLogger(__name__)

# Create database tables
Base.metadata.create_all(bind=engine)

app = FastAPI(title="Student Counselling Portal API", version="1.0.0")

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
for module in (auth, students, dashboard, documents, forms, notices, storage):
    app.include_router(module.router, prefix="/api")


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(status_code=400, content={"detail": jsonable_encoder(exc.errors())})


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError):
    logger.error("Database error on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


@app.exception_handler(StorageError)
async def storage_error_handler(request: Request, exc: StorageError):
    logger.error("Storage error on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


def ensure_default_admin() -> None:
    """Create the first admin account from the environment when none exists"""
    if not DEFAULT_ADMIN_EMAIL or not DEFAULT_ADMIN_PASSWORD:
        return
    db = SessionLocal()
    try:
        if db.query(UserRole).filter(UserRole.role == "admin").first():
            return
        admin = AdminUser(
            email=DEFAULT_ADMIN_EMAIL.lower(),
            full_name="Default Admin",
            password_hash=hash_password(DEFAULT_ADMIN_PASSWORD),
        )
        db.add(admin)
        db.flush()
        db.add(UserRole(user_id=admin.id, role="admin"))
        db.commit()
        logger.info("Default admin account created for %s", admin.email)
    finally:
        db.close()


@app.on_event("startup")
async def startup_event():
    ensure_default_admin()


@app.get("/")
async def root():
    return {
        "message": "Student Counselling Portal API",
        "endpoints": {
            "api": "/api",
            "api_docs": "/docs",
            "health": "/health"
        }
    }


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "service": "Student Counselling Portal API"}
