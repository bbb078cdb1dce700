'''
Pytest configuration for the FastAPI application.

This file sets up fixtures for:
1. Forcing the application into TEST_MODE, on an in-memory SQLite database,
   before any application code is imported.
2. Providing a FastAPI TestClient whose lifespan builds a fresh database per test.
3. Providing an isolated AsyncSession and pre-injected services for service tests.
4. Providing seeded users and auth headers for endpoint tests.
'''
import os
import tempfile

from tests.constants import TEST_DATABASE_URL, TEST_SECRET_KEY, TEST_PASSWORD_STUDENT

# Must happen before the application settings are imported.
os.environ["DATABASE_URL"] = TEST_DATABASE_URL
os.environ["SECRET_KEY"] = TEST_SECRET_KEY
os.environ["TEST_MODE"] = "True"
os.environ["AUTO_CREATE_TABLES"] = "True"
os.environ["UPLOAD_DIR"] = tempfile.mkdtemp(prefix="class-admin-uploads-")

import pytest
from pathlib import Path
from typing import AsyncGenerator

# --- FastAPI & Testing Imports ---
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncSession

# --- Application Imports ---
from tutoring_admin_backend.main import app
from tutoring_admin_backend.common.config import settings
from tutoring_admin_backend.common.storage import FileStorage
from tutoring_admin_backend.database.engine import Database
from tutoring_admin_backend.database.db_enums import UserRole
from tutoring_admin_backend.database import models as db_models
from tutoring_admin_backend.services.security import JWTHandler
from tutoring_admin_backend.services.auth_service import AuthService
from tutoring_admin_backend.services.class_service import ClassService
from tutoring_admin_backend.services.student_service import StudentService
from tutoring_admin_backend.services.tuition_service import TuitionService
from tutoring_admin_backend.services.grade_service import GradeService
from tutoring_admin_backend.services.material_service import MaterialService
from tutoring_admin_backend.services.dashboard_service import DashboardService
from tutoring_admin_backend.services.student_portal_service import StudentPortalService

from tests.database.factories import AdminFactory


@pytest.fixture(scope="session")
def anyio_backend():
    """
    Override the default 'anyio_backend' fixture.
    1. Forces the backend to 'asyncio'.
    2. Promotes the scope to 'session'.
    """
    return "asyncio"


# --- 1. Endpoint Fixtures ---

@pytest.fixture(scope="function")
def client() -> TestClient:
    """
    Runs the app's lifespan, which creates a brand-new in-memory database
    and its tables, so every test starts from an empty store.
    """
    assert settings.TEST_MODE is True, \
        "TEST_MODE was not set to True! Check the environment."

    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture(scope="function")
def admin_user(client: TestClient) -> db_models.Users:
    """
    Inserts an admin directly into the app's database, on the app's event loop.
    """
    async def _create_admin() -> db_models.Users:
        database: Database = app.state.database
        async with database.session_factory() as session:
            admin = AdminFactory.build()
            session.add(admin)
            await session.commit()
            return admin

    return client.portal.call(_create_admin)


def auth_headers(user_id, role: UserRole) -> dict:
    """Creates a JWT token for the given identity and returns auth headers."""
    token = JWTHandler.create_access_token(subject=user_id, role=role)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture(scope="function")
def admin_headers(admin_user: db_models.Users) -> dict:
    return auth_headers(admin_user.id, UserRole.ADMIN)


# --- 2. Function-Scoped Session Fixture (For Service Tests) ---

@pytest.fixture(scope="function")
async def database() -> AsyncGenerator[Database, None]:
    database = Database(TEST_DATABASE_URL)
    await database.create_all()
    yield database
    await database.dispose()


@pytest.fixture(scope="function")
async def db_session(database: Database) -> AsyncGenerator[AsyncSession, None]:
    """
    Provides a single, isolated database session for service-level tests.
    The database itself is thrown away after each test.
    """
    session = database.session_factory()
    try:
        yield session
    finally:
        await session.rollback()
        await session.close()


# --- 3. SERVICE FIXTURES ---

@pytest.fixture(scope="function")
def upload_dir(tmp_path: Path) -> Path:
    return tmp_path / "uploads"


@pytest.fixture(scope="function")
def file_storage(upload_dir: Path) -> FileStorage:
    return FileStorage(directory=upload_dir, max_size_bytes=1024)


@pytest.fixture(scope="function")
def auth_service(db_session: AsyncSession) -> AuthService:
    return AuthService(db=db_session)

@pytest.fixture(scope="function")
def class_service(db_session: AsyncSession) -> ClassService:
    return ClassService(db=db_session)

@pytest.fixture(scope="function")
def student_service(db_session: AsyncSession) -> StudentService:
    return StudentService(db=db_session)

@pytest.fixture(scope="function")
def tuition_service(db_session: AsyncSession) -> TuitionService:
    return TuitionService(db=db_session)

@pytest.fixture(scope="function")
def grade_service(db_session: AsyncSession) -> GradeService:
    return GradeService(db=db_session)

@pytest.fixture(scope="function")
def material_service(db_session: AsyncSession, file_storage: FileStorage) -> MaterialService:
    return MaterialService(db=db_session, storage=file_storage)

@pytest.fixture(scope="function")
def dashboard_service(db_session: AsyncSession) -> DashboardService:
    return DashboardService(db=db_session)

@pytest.fixture(scope="function")
def portal_service(db_session: AsyncSession) -> StudentPortalService:
    return StudentPortalService(db=db_session)


# --- 4. API Builders ---
# Small callables for endpoint tests that need classes and logged-in students.

@pytest.fixture(scope="function")
def make_class(client: TestClient, admin_headers: dict):
    def _make_class(name: str = "Chemistry 12A", fee: str = "500000", **extra) -> dict:
        response = client.post(
            "/api/admin/classes",
            json={"name": name, "fee": fee, **extra},
            headers=admin_headers,
        )
        assert response.status_code == 201, response.json()
        return response.json()
    return _make_class


@pytest.fixture(scope="function")
def make_student(client: TestClient, admin_headers: dict):
    """
    Creates a student through the admin API, logs them in and returns
    {"id", "email", "headers"}.
    """
    counter = iter(range(1, 10_000))

    def _make_student(class_ids: list, full_name: str | None = None) -> dict:
        n = next(counter)
        email = f"student{n}@chemclass.com"
        response = client.post(
            "/api/admin/students",
            json={
                "full_name": full_name or f"Student {n:02d}",
                "email": email,
                "password": TEST_PASSWORD_STUDENT,
                "class_ids": [str(c) for c in class_ids],
            },
            headers=admin_headers,
        )
        assert response.status_code == 201, response.json()
        student_id = response.json()["id"]

        login = client.post("/api/auth/login", json={"email": email, "password": TEST_PASSWORD_STUDENT})
        assert login.status_code == 200, login.json()
        return {
            "id": student_id,
            "email": email,
            "headers": {"Authorization": f"Bearer {login.json()['token']}"},
        }
    return _make_student
