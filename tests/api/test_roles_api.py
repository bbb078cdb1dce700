import pytest
from datetime import timedelta
from uuid import uuid4
from fastapi.testclient import TestClient

from tutoring_admin_backend.database.db_enums import UserRole
from tutoring_admin_backend.services.security import JWTHandler


ADMIN_ONLY_GETS = [
    "/api/admin/classes",
    "/api/admin/students",
    "/api/students",
    "/api/admin/documents",
    "/api/materials/admin",
    "/api/admin/dashboard",
]

STUDENT_ONLY_GETS = [
    "/api/students/me/classes",
    "/api/students/dashboard",
    "/api/student/tuitions",
    "/api/student/grades",
    "/api/student/documents",
    "/api/materials",
]


@pytest.mark.anyio
class TestAuthenticationGuard:

    @pytest.mark.parametrize("path", ADMIN_ONLY_GETS + STUDENT_ONLY_GETS)
    async def test_missing_token_is_unauthorized(self, client: TestClient, path: str):
        response = client.get(path)
        assert response.status_code == 401
        assert response.json()["detail"] == "Access denied: no token provided."

    async def test_garbage_token_is_invalid(self, client: TestClient):
        response = client.get("/api/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid token."

    async def test_expired_token_is_invalid(self, client: TestClient):
        token = JWTHandler.create_access_token(uuid4(), UserRole.ADMIN, expires_delta=timedelta(seconds=-1))
        response = client.get("/api/admin/classes", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401


@pytest.mark.anyio
class TestRoleChecks:

    @pytest.mark.parametrize("path", ADMIN_ONLY_GETS)
    async def test_student_cannot_use_admin_routes(
        self,
        client: TestClient,
        make_class,
        make_student,
        path: str
    ):
        student = make_student([make_class()["id"]])
        response = client.get(path, headers=student["headers"])
        assert response.status_code == 403

    @pytest.mark.parametrize("path", STUDENT_ONLY_GETS)
    async def test_admin_cannot_use_student_routes(
        self,
        client: TestClient,
        admin_headers: dict,
        path: str
    ):
        response = client.get(path, headers=admin_headers)
        assert response.status_code == 403

    async def test_subjects_open_to_any_authenticated_user(
        self,
        client: TestClient,
        admin_headers: dict,
        make_class,
        make_student
    ):
        student = make_student([make_class()["id"]])
        assert client.get("/api/subjects", headers=admin_headers).status_code == 200
        assert client.get("/api/subjects", headers=student["headers"]).status_code == 200


@pytest.mark.anyio
class TestHealth:

    async def test_health(self, client: TestClient):
        assert client.get("/api/health").json() == {"status": "ok"}
        assert client.get("/").status_code == 200
