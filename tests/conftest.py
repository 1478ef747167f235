import os

os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ["DATABASE_URL"] = "sqlite://"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from src.app.app import app
from src.models.database import Base, get_db
from src.models.student import AdminUser, UserRole
from src.utils.security import hash_password, create_access_token
from src.utils.storage import LocalObjectStorage, get_storage


@pytest.fixture
def session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(bind=engine, autoflush=False, autocommit=False)
    engine.dispose()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def storage(tmp_path) -> LocalObjectStorage:
    return LocalObjectStorage(str(tmp_path / "storage"), base_url="http://testserver")


@pytest.fixture
def client(session_factory, storage):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_storage] = lambda: storage
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def admin_headers(db) -> dict:
    admin = AdminUser(
        email="admin@futureedge.in",
        full_name="Portal Admin",
        password_hash=hash_password("admin-pass-123"),
    )
    db.add(admin)
    db.flush()
    db.add(UserRole(user_id=admin.id, role="admin"))
    db.commit()
    return {"Authorization": f"Bearer {create_access_token(admin.id)}"}


@pytest.fixture
def create_student(client, admin_headers):
    def _create(registration_number: str = "FE-010", temp_password: str = "Welcome@123", **fields) -> str:
        payload = {
            "full_name": fields.pop("full_name", f"Student {registration_number}"),
            "registration_number": registration_number,
            "email": fields.pop("email", f"{registration_number.lower()}@futureedge.in"),
            "temp_password": temp_password,
        }
        payload.update(fields)
        response = client.post("/api/admin/students", json=payload, headers=admin_headers)
        assert response.status_code == 201, response.text
        return response.json()["student_id"]

    return _create


@pytest.fixture
def login_student(client):
    def _login(registration_number: str = "FE-010", password: str = "Welcome@123") -> dict:
        response = client.post(
            "/api/auth/login",
            json={"registration_number": registration_number, "password": password},
        )
        assert response.status_code == 200, response.text
        return {"Authorization": f"Bearer {response.json()['access_token']}"}

    return _login
