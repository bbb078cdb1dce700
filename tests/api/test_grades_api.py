import pytest
from decimal import Decimal
from fastapi.testclient import TestClient

from tutoring_admin_backend.services.grade_service import GradeService

from tests.constants import UNKNOWN_ID


def create_exam(client: TestClient, admin_headers: dict, class_ids: list, title: str = "Quiz 1", date: str = "2026-10-01"):
    response = client.post(
        "/api/admin/grades/exams",
        json={"class_ids": class_ids, "title": title, "date": date},
        headers=admin_headers,
    )
    assert response.status_code == 201, response.json()
    return response.json()


@pytest.mark.anyio
class TestExamsAPI:

    async def test_create_list_update_delete(
        self,
        client: TestClient,
        admin_headers: dict,
        make_class
    ):
        a = make_class(name="Chemistry A")
        b = make_class(name="Chemistry B")

        exam = create_exam(client, admin_headers, [a["id"]])
        assert Decimal(exam["max_score"]) == Decimal("10")
        assert [c["id"] for c in exam["classes"]] == [a["id"]]

        updated = client.put(
            f"/api/admin/grades/exams/{exam['id']}",
            json={"title": "Quiz 1b", "date": "2026-10-02", "max_score": "20", "class_ids": [b["id"]]},
            headers=admin_headers,
        )
        assert updated.status_code == 200, updated.json()
        assert [c["id"] for c in updated.json()["classes"]] == [b["id"]]

        assert client.get(f"/api/admin/grades/classes/{a['id']}/exams", headers=admin_headers).json() == []
        listed = client.get(f"/api/admin/grades/classes/{b['id']}/exams", headers=admin_headers).json()
        assert [e["title"] for e in listed] == ["Quiz 1b"]

        assert client.delete(f"/api/admin/grades/exams/{exam['id']}", headers=admin_headers).status_code == 200
        assert client.delete(f"/api/admin/grades/exams/{exam['id']}", headers=admin_headers).status_code == 404

    async def test_create_without_classes_is_400(self, client: TestClient, admin_headers: dict):
        response = client.post(
            "/api/admin/grades/exams",
            json={"class_ids": [], "title": "Lonely", "date": "2026-10-01"},
            headers=admin_headers,
        )
        assert response.status_code == 400

    async def test_create_with_unknown_class_is_400(self, client: TestClient, admin_headers: dict):
        response = client.post(
            "/api/admin/grades/exams",
            json={"class_ids": [str(UNKNOWN_ID)], "title": "Ghost", "date": "2026-10-01"},
            headers=admin_headers,
        )
        assert response.status_code == 400


@pytest.mark.anyio
class TestGradesAPI:

    async def test_save_and_read_grades(
        self,
        client: TestClient,
        admin_headers: dict,
        make_class,
        make_student
    ):
        class_ = make_class(name="Chemistry A")
        an = make_student([class_["id"]], full_name="An")
        binh = make_student([class_["id"]], full_name="Binh")
        exam = create_exam(client, admin_headers, [class_["id"]])

        roster = client.get(f"/api/admin/grades/exams/{exam['id']}/grades", headers=admin_headers).json()
        assert [(r["full_name"], r["score"]) for r in roster] == [("An", None), ("Binh", None)]

        saved = client.post(
            f"/api/admin/grades/exams/{exam['id']}/grades",
            json={"grades": [
                {"student_id": an["id"], "score": "8.5", "comment": "Good"},
                {"student_id": binh["id"], "score": ""},
            ]},
            headers=admin_headers,
        )
        assert saved.status_code == 200, saved.json()

        roster = client.get(f"/api/admin/grades/exams/{exam['id']}/grades", headers=admin_headers).json()
        assert Decimal(roster[0]["score"]) == Decimal("8.5")
        assert roster[0]["comment"] == "Good"
        assert roster[1]["grade_id"] is None

        mine = client.get("/api/student/grades", headers=an["headers"]).json()
        assert len(mine) == 1
        assert mine[0]["class_name"] == "Chemistry A"
        assert Decimal(mine[0]["score"]) == Decimal("8.5")

    async def test_negative_score_is_400(
        self,
        client: TestClient,
        admin_headers: dict,
        make_class,
        make_student
    ):
        class_ = make_class()
        student = make_student([class_["id"]])
        exam = create_exam(client, admin_headers, [class_["id"]])

        response = client.post(
            f"/api/admin/grades/exams/{exam['id']}/grades",
            json={"grades": [{"student_id": student["id"], "score": "-2"}]},
            headers=admin_headers,
        )
        assert response.status_code == 400

    async def test_batch_with_unknown_student_saves_nothing(
        self,
        client: TestClient,
        admin_headers: dict,
        make_class,
        make_student
    ):
        class_ = make_class()
        an = make_student([class_["id"]], full_name="An")
        exam = create_exam(client, admin_headers, [class_["id"]])
        url = f"/api/admin/grades/exams/{exam['id']}/grades"
        client.post(url, json={"grades": [{"student_id": an["id"], "score": "7"}]}, headers=admin_headers)

        response = client.post(
            url,
            json={"grades": [
                {"student_id": an["id"], "score": "8.5"},
                {"student_id": str(UNKNOWN_ID), "score": "5"},
            ]},
            headers=admin_headers,
        )

        assert response.status_code == 400
        roster = client.get(url, headers=admin_headers).json()
        assert [(r["full_name"], Decimal(r["score"])) for r in roster] == [("An", Decimal("7"))]

    async def test_write_failing_midway_is_rolled_back(
        self,
        client: TestClient,
        admin_headers: dict,
        make_class,
        make_student,
        monkeypatch
    ):
        class_ = make_class()
        an = make_student([class_["id"]], full_name="An")
        exam = create_exam(client, admin_headers, [class_["id"]])
        url = f"/api/admin/grades/exams/{exam['id']}/grades"

        # let the unknown student through to the database, where the foreign key rejects it
        async def skip_check(self, student_ids):
            return None

        monkeypatch.setattr(GradeService, "_ensure_students_exist", skip_check)
        response = client.post(
            url,
            json={"grades": [
                {"student_id": an["id"], "score": "8.5"},
                {"student_id": str(UNKNOWN_ID), "score": "5"},
            ]},
            headers=admin_headers,
        )

        assert response.status_code == 500
        roster = client.get(url, headers=admin_headers).json()
        assert [(r["full_name"], r["score"]) for r in roster] == [("An", None)]

    async def test_roster_of_unknown_exam_is_404(self, client: TestClient, admin_headers: dict):
        response = client.get(f"/api/admin/grades/exams/{UNKNOWN_ID}/grades", headers=admin_headers)
        assert response.status_code == 404
