"""
Tests for enrollment endpoints.
"""
import uuid
from datetime import date

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import inspect
from sqlalchemy.orm import Session

from healthinfo.core.crypto import FieldCipher
from healthinfo.models.client import Client
from healthinfo.models.enrollment import Enrollment
from healthinfo.models.program import Program


@pytest.fixture
def enrollment_payload(stored_client: Client, stored_program: Program) -> dict:
    return {
        "client_id": str(stored_client.id),
        "program_id": str(stored_program.id),
        "enrollment_date": "2026-02-14",
        "notes": "Started on first-line regimen",
    }


class TestCreateEnrollment:
    """Tests for POST /api/enrollments."""

    def test_create(self, client: TestClient, db: Session, cipher: FieldCipher,
                    auth_headers: dict, enrollment_payload: dict):
        response = client.post("/api/enrollments", json=enrollment_payload, headers=auth_headers)

        assert response.status_code == 201
        data = response.json()
        assert data["status"] == "active"
        assert data["notes"] == "Started on first-line regimen"
        assert data["client"]["first_name"] == "Jane"
        assert data["program"]["name"] == "Tuberculosis"

        # Notes are encrypted at rest
        db.expire_all()
        row = db.get(Enrollment, uuid.UUID(data["id"]))
        assert row.notes != "Started on first-line regimen"
        assert cipher.decrypt(row.notes) == "Started on first-line regimen"

    def test_create_without_notes(self, client: TestClient, auth_headers: dict, enrollment_payload: dict):
        payload = dict(enrollment_payload)
        del payload["notes"]

        response = client.post("/api/enrollments", json=payload, headers=auth_headers)

        assert response.status_code == 201
        assert response.json()["notes"] is None

    def test_already_enrolled(self, client: TestClient, auth_headers: dict, enrollment_payload: dict):
        client.post("/api/enrollments", json=enrollment_payload, headers=auth_headers)

        response = client.post("/api/enrollments", json=enrollment_payload, headers=auth_headers)

        assert response.status_code == 409
        assert response.json()["detail"] == "Client is already enrolled in this program."

    @pytest.mark.parametrize("field", ["client_id", "program_id"])
    def test_unknown_reference(self, client: TestClient, auth_headers: dict, enrollment_payload: dict, field: str):
        payload = dict(enrollment_payload, **{field: str(uuid.uuid4())})

        response = client.post("/api/enrollments", json=payload, headers=auth_headers)

        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid Client or Program ID provided."

    def test_invalid_status(self, client: TestClient, auth_headers: dict, enrollment_payload: dict):
        payload = dict(enrollment_payload, status="paused")

        response = client.post("/api/enrollments", json=payload, headers=auth_headers)

        assert response.status_code == 400
        assert "status" in response.json()["errors"]

    def test_requires_auth(self, client: TestClient, enrollment_payload: dict):
        response = client.post("/api/enrollments", json=enrollment_payload)

        assert response.status_code == 401


class TestListEnrollments:
    """Tests for GET /api/enrollments."""

    def test_newest_enrollment_date_first(self, client: TestClient, db: Session, auth_headers: dict,
                                          stored_client: Client, stored_program: Program):
        malaria = Program(name="Malaria")
        db.add(malaria)
        db.commit()
        db.add_all([
            Enrollment(client_id=stored_client.id, program_id=stored_program.id,
                       enrollment_date=date(2024, 6, 1), status="completed"),
            Enrollment(client_id=stored_client.id, program_id=malaria.id,
                       enrollment_date=date(2026, 6, 1), status="active"),
        ])
        db.commit()

        response = client.get("/api/enrollments", headers=auth_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 2
        assert [e["enrollment_date"] for e in data["items"]] == ["2026-06-01", "2024-06-01"]


class TestUpdateEnrollment:
    """Tests for PUT /api/enrollments/{id}."""

    def test_update_status(self, client: TestClient, auth_headers: dict, enrollment_payload: dict):
        created = client.post("/api/enrollments", json=enrollment_payload, headers=auth_headers).json()

        response = client.put(
            f"/api/enrollments/{created['id']}",
            json={"status": "completed"},
            headers=auth_headers,
        )

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "completed"
        assert data["notes"] == "Started on first-line regimen"

    def test_clear_notes(self, client: TestClient, db: Session, auth_headers: dict, enrollment_payload: dict):
        created = client.post("/api/enrollments", json=enrollment_payload, headers=auth_headers).json()

        response = client.put(f"/api/enrollments/{created['id']}", json={"notes": None}, headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["notes"] is None
        db.expire_all()
        assert db.get(Enrollment, uuid.UUID(created["id"])).notes is None

    def test_null_status(self, client: TestClient, auth_headers: dict, enrollment_payload: dict):
        created = client.post("/api/enrollments", json=enrollment_payload, headers=auth_headers).json()

        response = client.put(f"/api/enrollments/{created['id']}", json={"status": None}, headers=auth_headers)

        assert response.status_code == 400

    def test_update_not_found(self, client: TestClient, auth_headers: dict):
        response = client.put(f"/api/enrollments/{uuid.uuid4()}", json={"status": "withdrawn"}, headers=auth_headers)

        assert response.status_code == 404
        assert response.json()["detail"] == "Enrollment not found."


class TestDeleteEnrollment:
    """Tests for GET and DELETE /api/enrollments/{id}."""

    def test_get_then_delete(self, client: TestClient, db: Session, auth_headers: dict, enrollment_payload: dict):
        created = client.post("/api/enrollments", json=enrollment_payload, headers=auth_headers).json()

        fetched = client.get(f"/api/enrollments/{created['id']}", headers=auth_headers)
        assert fetched.status_code == 200
        assert fetched.json()["id"] == created["id"]

        response = client.delete(f"/api/enrollments/{created['id']}", headers=auth_headers)

        assert response.status_code == 204
        db.expire_all()
        assert db.query(Enrollment).count() == 0
        assert db.query(Client).count() == 1

    def test_delete_not_found(self, client: TestClient, auth_headers: dict):
        response = client.delete(f"/api/enrollments/{uuid.uuid4()}", headers=auth_headers)

        assert response.status_code == 404


class TestEnrollmentSchema:
    """The ORM schema carries the same indexes as the initial migration."""

    def test_indexes(self, db: Session):
        indexes = {ix["name"]: ix for ix in inspect(db.get_bind()).get_indexes("enrollments")}

        assert indexes["idx_enrollments_client_program"]["unique"]
        assert indexes["ix_enrollments_program_id"]["column_names"] == ["program_id"]
