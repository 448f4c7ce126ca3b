"""
Tests for the /api endpoints and domain-error mapping.

Database setup is handled by the ``client`` fixture in conftest.py.
"""

from datetime import timedelta

import pytest
from sqlalchemy.orm.exc import StaleDataError

from aircraft_maintenance.fleet import services as services_module
from aircraft_maintenance.fleet.primitives import utc_now

from conftest import ISSUE_DESCRIPTION


def register_user(client, email: str, role: str = "engineer") -> dict:
    response = client.post(
        "/api/users",
        json={"name": "Alex Doe", "email": email, "password": "secret123", "role": role},
    )
    assert response.status_code == 201
    return response.json()["user"]


def register_aircraft(client, tail_number: str = "N123AB", health: int = 100) -> dict:
    response = client.post(
        "/api/aircraft",
        json={
            "tailNumber": tail_number,
            "model": "A320",
            "manufacturer": "Airbus",
            "currentHealth": health,
            "nextInspectionDue": (utc_now() + timedelta(days=30)).isoformat(),
        },
    )
    assert response.status_code == 201
    return response.json()["aircraft"]


def setup_task(client) -> dict:
    """Register a pilot, engineer, manager, aircraft, issue and task."""
    pilot = register_user(client, "pilot@example.com", role="pilot")
    engineer = register_user(client, "engineer@example.com")
    manager = register_user(client, "manager@example.com", role="manager")
    aircraft = register_aircraft(client)

    issue = client.post(
        "/api/issues",
        json={"tailNumber": "n123ab", "description": ISSUE_DESCRIPTION, "severity": "high"},
        headers={"X-User-Id": pilot["id"]},
    ).json()["issue"]

    response = client.post(
        "/api/tasks",
        json={
            "aircraft": aircraft["id"],
            "issue": issue["id"],
            "assignedTo": engineer["id"],
            "title": "Replace actuator seal",
            "description": "Replace the leaking seal",
            "priority": 1,
            "dueDate": (utc_now() + timedelta(days=5)).isoformat(),
            "checklist": [{"item": "Drain reservoir"}, {"item": "Replace seal"}],
        },
        headers={"X-User-Id": manager["id"]},
    )
    assert response.status_code == 201
    return {
        "pilot": pilot,
        "engineer": engineer,
        "manager": manager,
        "aircraft": aircraft,
        "issue": issue,
        "task": response.json()["task"],
    }


class TestAircraftEndpoints:
    """Tests for /api/aircraft endpoints."""

    def test_register_aircraft(self, client):
        aircraft = register_aircraft(client, tail_number=" n42xy ", health=45)

        assert aircraft["tailNumber"] == "N42XY"
        assert aircraft["status"] == "maintenance"
        assert aircraft["daysUntilInspection"] == 30
        assert aircraft["inspectionDueSoon"] is False

    def test_status_cannot_be_set_by_client(self, client):
        response = client.post(
            "/api/aircraft",
            json={
                "tailNumber": "N1",
                "model": "A320",
                "manufacturer": "Airbus",
                "status": "active",
                "nextInspectionDue": utc_now().isoformat(),
            },
        )
        assert response.status_code == 422

    def test_duplicate_tail_number_is_409(self, client):
        register_aircraft(client, tail_number="N123AB")

        response = client.post(
            "/api/aircraft",
            json={
                "tailNumber": "n123ab",
                "model": "A320",
                "manufacturer": "Airbus",
                "nextInspectionDue": utc_now().isoformat(),
            },
        )

        assert response.status_code == 409
        body = response.json()
        assert body["error"] == "duplicate_key"
        assert body["code"] == "DUPLICATE_KEY"
        assert body["field"] == "tailNumber"

    def test_health_update(self, client):
        aircraft = register_aircraft(client)

        response = client.put(
            f"/api/aircraft/{aircraft['id']}/health",
            json={"healthScore": 15, "expectedVersion": 1},
        )

        assert response.status_code == 200
        assert response.json()["aircraft"]["status"] == "grounded"

    def test_out_of_range_health_is_422(self, client):
        aircraft = register_aircraft(client)

        response = client.put(
            f"/api/aircraft/{aircraft['id']}/health", json={"healthScore": 150}
        )

        assert response.status_code == 422
        assert response.json()["error"] == "validation_error"
        assert response.json()["field"] == "currentHealth"

    @pytest.mark.parametrize("health", [True, "45", 45.0])
    def test_non_integer_health_is_422(self, client, health):
        aircraft = register_aircraft(client, health=80)

        response = client.put(
            f"/api/aircraft/{aircraft['id']}/health", json={"healthScore": health}
        )

        assert response.status_code == 422
        stored = client.get(f"/api/aircraft/{aircraft['id']}").json()
        assert stored["currentHealth"] == 80
        assert stored["status"] == "active"
        assert stored["version"] == aircraft["version"]

    def test_non_integer_health_in_maintenance_entry_is_422(self, client):
        aircraft = register_aircraft(client, health=80)

        response = client.post(
            f"/api/aircraft/{aircraft['id']}/maintenance",
            json={"type": "scheduled", "performedBy": "anyone", "healthScore": True},
        )

        assert response.status_code == 422
        stored = client.get(f"/api/aircraft/{aircraft['id']}").json()
        assert stored["currentHealth"] == 80
        assert stored["maintenanceHistory"] == []

    def test_version_conflict_is_409(self, client):
        aircraft = register_aircraft(client)
        url = f"/api/aircraft/{aircraft['id']}/health"
        client.put(url, json={"healthScore": 60, "expectedVersion": 1})

        response = client.put(url, json={"healthScore": 70, "expectedVersion": 1})

        assert response.status_code == 409
        assert response.json()["error"] == "concurrent_update"

    def test_unknown_aircraft_is_404(self, client):
        assert client.get("/api/aircraft/missing").status_code == 404

        response = client.put("/api/aircraft/missing/health", json={"healthScore": 50})
        assert response.status_code == 404
        assert response.json()["error"] == "not_found"

    def test_lookup_by_tail_number(self, client):
        aircraft = register_aircraft(client, tail_number="G-ABCD")
        response = client.get("/api/aircraft/tail/g-abcd")
        assert response.json()["id"] == aircraft["id"]


class TestUserEndpoints:
    """Tests for /api/users endpoints."""

    def test_register_user(self, client):
        user = register_user(client, "Sam@Example.com")

        assert user["email"] == "sam@example.com"
        assert user["employeeId"].isdigit()
        assert "passwordHash" not in user

    def test_short_password_rejected(self, client):
        response = client.post(
            "/api/users",
            json={"name": "Sam", "email": "sam@example.com", "password": "abc"},
        )
        assert response.status_code == 422

    def test_duplicate_email_is_409(self, client):
        register_user(client, "sam@example.com")

        response = client.post(
            "/api/users",
            json={"name": "Sam", "email": "SAM@example.com", "password": "secret123"},
        )

        assert response.status_code == 409
        assert response.json()["field"] == "email"


class TestIssueEndpoints:
    """Tests for /api/issues endpoints."""

    def test_report_requires_identity(self, client):
        response = client.post(
            "/api/issues",
            json={"tailNumber": "N1", "description": ISSUE_DESCRIPTION, "severity": "low"},
        )
        assert response.status_code == 401

    def test_unknown_reporter_is_422(self, client):
        response = client.post(
            "/api/issues",
            json={"tailNumber": "N1", "description": ISSUE_DESCRIPTION, "severity": "low"},
            headers={"X-User-Id": "nobody"},
        )
        assert response.status_code == 422
        assert response.json()["error"] == "broken_reference"

    def test_short_description_rejected(self, client):
        pilot = register_user(client, "pilot@example.com", role="pilot")
        response = client.post(
            "/api/issues",
            json={"tailNumber": "N1", "description": "Too short", "severity": "low"},
            headers={"X-User-Id": pilot["id"]},
        )
        assert response.status_code == 422

    def test_manual_resolution_refused(self, client):
        ctx = setup_task(client)
        response = client.patch(
            f"/api/issues/{ctx['issue']['id']}/status", json={"status": "resolved"}
        )
        assert response.status_code == 422
        assert response.json()["code"] == "INVALID_TRANSITION"


class TestTaskEndpoints:
    """Tests for /api/tasks endpoints."""

    def test_full_workflow(self, client):
        ctx = setup_task(client)
        task_id = ctx["task"]["id"]
        engineer = {"X-User-Id": ctx["engineer"]["id"]}
        assert ctx["task"]["status"] == "pending"
        assert ctx["task"]["taskId"] >= 1

        response = client.post(f"/api/tasks/{task_id}/start", headers=engineer)
        assert response.json()["task"]["status"] == "in_progress"

        for index in (0, 1):
            response = client.patch(
                f"/api/tasks/{task_id}/checklist/{index}",
                json={"completed": True},
                headers=engineer,
            )
        task = response.json()["task"]
        assert task["status"] == "completed"
        assert task["completionPercentage"] == 100
        assert task["completedAt"] is not None

        response = client.post(
            f"/api/tasks/{task_id}/verify",
            json={"notes": "Leak check passed"},
            headers={"X-User-Id": ctx["manager"]["id"]},
        )
        assert response.status_code == 200
        body = response.json()
        assert body["newlyVerified"] is True
        assert body["task"]["status"] == "verified"
        assert len(body["task"]["verificationDetails"]["hash"]) == 64
        assert body["issue"]["status"] == "resolved"

        response = client.get(f"/api/tasks/{task_id}/verification")
        assert response.json()["valid"] is True

    def test_verify_requires_identity(self, client):
        ctx = setup_task(client)
        response = client.post(f"/api/tasks/{ctx['task']['id']}/verify", json={})
        assert response.status_code == 401

    def test_past_due_date_is_422(self, client):
        ctx = setup_task(client)
        response = client.post(
            "/api/tasks",
            json={
                "aircraft": ctx["aircraft"]["id"],
                "issue": ctx["issue"]["id"],
                "assignedTo": ctx["engineer"]["id"],
                "title": "Late",
                "description": "Already overdue",
                "priority": 3,
                "dueDate": (utc_now() - timedelta(days=1)).isoformat(),
            },
        )
        assert response.status_code == 422
        assert response.json()["field"] == "dueDate"

    def test_priority_out_of_range(self, client):
        ctx = setup_task(client)
        response = client.post(
            "/api/tasks",
            json={
                "aircraft": ctx["aircraft"]["id"],
                "issue": ctx["issue"]["id"],
                "assignedTo": ctx["engineer"]["id"],
                "title": "Bad priority",
                "description": "Priority must be 1-5",
                "priority": 6,
                "dueDate": (utc_now() + timedelta(days=1)).isoformat(),
            },
        )
        assert response.status_code == 422

    def test_attachment(self, client):
        ctx = setup_task(client)
        response = client.post(
            f"/api/tasks/{ctx['task']['id']}/attachments",
            json={"type": "after", "filename": "seal.jpg", "path": "/uploads/seal.jpg"},
        )
        assert response.status_code == 201
        assert response.json()["task"]["attachments"][0]["type"] == "after"

    def test_propagation_failure_is_503_then_retry(self, client, monkeypatch):
        ctx = setup_task(client)
        task_id = ctx["task"]["id"]

        def failing_resolve(issue):
            raise StaleDataError("issue row changed underneath")

        monkeypatch.setattr(services_module, "resolve_issue", failing_resolve)
        response = client.post(
            f"/api/tasks/{task_id}/verify",
            json={},
            headers={"X-User-Id": ctx["manager"]["id"]},
        )
        assert response.status_code == 503
        assert response.json()["error"] == "retryable_inconsistency"
        assert client.get(f"/api/tasks/{task_id}").json()["status"] == "verified"

        monkeypatch.undo()
        response = client.post(f"/api/tasks/{task_id}/propagation")
        assert response.status_code == 200
        assert response.json()["issue"]["status"] == "resolved"

    def test_unknown_task_is_404(self, client):
        assert client.get("/api/tasks/missing").status_code == 404
        assert client.post("/api/tasks/missing/start").status_code == 404
