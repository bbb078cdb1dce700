import pytest
from fastapi.testclient import TestClient

from tests.constants import UNKNOWN_ID

PDF_BYTES = b"%PDF-1.4 chemistry notes"


def pdf_file(name: str = "notes.pdf"):
    return {"file": (name, PDF_BYTES, "application/pdf")}


@pytest.mark.anyio
class TestDocumentsAPI:

    async def test_upload_is_served_and_listed(
        self,
        client: TestClient,
        admin_headers: dict,
        make_class,
        make_student
    ):
        class_ = make_class(name="Chemistry 11")
        student = make_student([class_["id"]])

        response = client.post(
            "/api/admin/documents",
            data={"title": "Week 1 notes", "description": "", "class_id": class_["id"], "subject_id": ""},
            files=pdf_file(),
            headers=admin_headers,
        )

        assert response.status_code == 201, response.json()
        document = response.json()["document"]
        assert document["file_url"].startswith("/uploads/file-")
        assert document["file_type"] == "application/pdf"
        assert document["description"] is None

        served = client.get(document["file_url"])
        assert served.status_code == 200
        assert served.content == PDF_BYTES

        listed = client.get("/api/admin/documents", headers=admin_headers).json()
        assert [(d["id"], d["class_name"]) for d in listed] == [(document["id"], "Chemistry 11")]

        mine = client.get("/api/student/documents", headers=student["headers"]).json()
        assert [d["id"] for d in mine] == [document["id"]]

    async def test_text_only_document(self, client: TestClient, admin_headers: dict):
        response = client.post("/api/admin/documents", data={"title": "Read chapter 2"}, headers=admin_headers)

        assert response.status_code == 201, response.json()
        assert response.json()["document"]["file_url"] is None
        assert response.json()["document"]["file_type"] == "link/text"

    async def test_missing_title_is_400(self, client: TestClient, admin_headers: dict):
        response = client.post("/api/admin/documents", data={"title": ""}, files=pdf_file(), headers=admin_headers)
        assert response.status_code == 400
        assert response.json()["detail"].startswith("title:")

    async def test_disallowed_file_type_is_400(self, client: TestClient, admin_headers: dict):
        response = client.post(
            "/api/admin/documents",
            data={"title": "Script"},
            files={"file": ("run.sh", b"echo hi", "text/x-sh")},
            headers=admin_headers,
        )
        assert response.status_code == 400

    async def test_unknown_class_is_404(self, client: TestClient, admin_headers: dict):
        response = client.post(
            "/api/admin/documents",
            data={"title": "Lost", "class_id": str(UNKNOWN_ID)},
            headers=admin_headers,
        )
        assert response.status_code == 404

    async def test_update_replaces_file_and_delete_removes_it(self, client: TestClient, admin_headers: dict):
        created = client.post(
            "/api/admin/documents", data={"title": "v1"}, files=pdf_file("v1.pdf"), headers=admin_headers
        ).json()["document"]

        updated = client.put(
            f"/api/admin/documents/{created['id']}",
            data={"title": "v2"},
            files=pdf_file("v2.pdf"),
            headers=admin_headers,
        )
        assert updated.status_code == 200, updated.json()
        new_url = updated.json()["document"]["file_url"]
        assert new_url != created["file_url"]
        assert client.get(created["file_url"]).status_code == 404
        assert client.get(new_url).status_code == 200

        deleted = client.delete(f"/api/admin/documents/{created['id']}", headers=admin_headers)
        assert deleted.status_code == 200
        assert client.get(new_url).status_code == 404
        assert client.delete(f"/api/admin/documents/{created['id']}", headers=admin_headers).status_code == 404


@pytest.mark.anyio
class TestMaterialsAPI:

    async def test_upload_requires_file(self, client: TestClient, admin_headers: dict):
        response = client.post("/api/materials", data={"title": "Nothing attached"}, headers=admin_headers)
        assert response.status_code == 400

    async def test_group_material_reaches_group_members(
        self,
        client: TestClient,
        admin_headers: dict,
        make_class,
        make_student
    ):
        class_ = make_class()
        member = make_student([class_["id"]])
        outsider = make_student([class_["id"]])
        group = client.post(
            f"/api/admin/classes/{class_['id']}/groups", json={"name": "A"}, headers=admin_headers
        ).json()
        client.post(f"/api/students/{member['id']}/groups/{group['id']}", headers=admin_headers)

        uploaded = client.post(
            "/api/materials",
            data={"title": "Group worksheet", "group_id": group["id"]},
            files=pdf_file(),
            headers=admin_headers,
        )
        assert uploaded.status_code == 201, uploaded.json()
        material_id = uploaded.json()["material"]["id"]

        assert [m["id"] for m in client.get("/api/materials", headers=member["headers"]).json()] == [material_id]
        assert client.get("/api/materials", headers=outsider["headers"]).json() == []
        assert [m["id"] for m in client.get("/api/materials/admin", headers=admin_headers).json()] == [material_id]

        assert client.delete(f"/api/materials/{material_id}", headers=admin_headers).status_code == 200
        assert client.get("/api/materials/admin", headers=admin_headers).json() == []
