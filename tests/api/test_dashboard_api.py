import pytest
from decimal import Decimal
from fastapi.testclient import TestClient


@pytest.mark.anyio
class TestAdminDashboardAPI:

    async def test_empty_dashboard(self, client: TestClient, admin_headers: dict):
        response = client.get("/api/admin/dashboard", headers=admin_headers)

        assert response.status_code == 200
        body = response.json()
        assert body["total_students"] == 0
        assert body["total_classes"] == 0
        assert body["total_materials"] == 0
        assert Decimal(body["financials"]["total_paid"]) == 0
        assert Decimal(body["financials"]["total_unpaid"]) == 0

    async def test_totals_follow_payments(
        self,
        client: TestClient,
        admin_headers: dict,
        make_class,
        make_student
    ):
        class_ = make_class()
        make_student([class_["id"]])
        make_student([class_["id"]])
        batch = client.post(
            "/api/admin/tuition-batches",
            json={"title": "October", "class_id": class_["id"], "amount": "300000"},
            headers=admin_headers,
        ).json()
        roster = client.get(f"/api/admin/tuitions/{batch['batch']['id']}", headers=admin_headers).json()
        client.put(f"/api/admin/tuitions/{roster[0]['id']}/pay", headers=admin_headers)

        body = client.get("/api/admin/dashboard", headers=admin_headers).json()

        assert body["total_students"] == 2
        assert body["total_classes"] == 1
        assert Decimal(body["financials"]["total_paid"]) == Decimal("300000")
        assert Decimal(body["financials"]["total_unpaid"]) == Decimal("300000")

        student_view = client.get("/api/students/dashboard", headers=make_student([class_["id"]])["headers"])
        assert Decimal(student_view.json()["summary"]["unpaid_tuition"]) == 0
