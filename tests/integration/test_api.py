"""Integration tests for the API endpoints.

The app runs with its real lifespan, so requests travel through the offload
channel (thread mode in tests) and the in-memory rate program store.
"""

from collections.abc import Generator
from typing import Any

import pytest
from fastapi.testclient import TestClient

from ratebook.main import create_app

pytestmark = pytest.mark.integration


@pytest.fixture
def client() -> Generator[TestClient, None, None]:
    """Test client with startup and shutdown handlers run."""
    with TestClient(create_app()) as test_client:
        yield test_client


def _create_program(client: TestClient) -> str:
    response = client.post(
        "/api/v1/rate-programs",
        json={"orgId": "org-1", "name": "General Liability", "userId": "user-1"},
    )
    assert response.status_code == 201
    return response.json()["id"]


def _create_version(client: TestClient, program_id: str) -> str:
    response = client.post(
        f"/api/v1/rate-programs/{program_id}/versions", json={"userId": "user-1"}
    )
    assert response.status_code == 201
    return response.json()["id"]


class TestHealth:
    def test_health_reports_offload_mode(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["offloadMode"] == "thread"
        assert data["environment"] == "development"


class TestRatingMessages:
    def test_calculate_rating(self, client, gl_payload):
        response = client.post(
            "/api/v1/rating/messages",
            json={"type": "CALCULATE_RATING", "payload": gl_payload, "requestId": "r-1"},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["type"] == "SUCCESS"
        assert data["requestId"] == "r-1"
        assert data["result"]["premium"] == 150.0

    def test_computation_errors_are_response_messages(self, client):
        response = client.post(
            "/api/v1/rating/messages",
            json={"type": "CALCULATE_MAGIC", "payload": {}, "requestId": "r-2"},
        )

        assert response.status_code == 200
        assert response.json() == {
            "type": "ERROR",
            "requestId": "r-2",
            "error": "Unknown calculation type: CALCULATE_MAGIC",
        }

    def test_body_must_be_an_object(self, client):
        response = client.post("/api/v1/rating/messages", json=["not", "an", "object"])

        assert response.status_code == 422


class TestRateProgramLifecycle:
    step: dict[str, Any] = {
        "id": "s1",
        "type": "Multiply",
        "config": {"factorKey": "territory"},
        "order": 1,
    }

    def test_draft_to_published(self, client):
        program_id = _create_program(client)
        version_id = _create_version(client, program_id)
        base = f"/api/v1/rate-programs/{program_id}/versions/{version_id}"

        added = client.post(f"{base}/steps", json=self.step)
        assert added.status_code == 201
        assert added.json()["config"]["factorKey"] == "territory"

        validation = client.post(f"{base}/validate", json={"availableFieldCodes": []})
        assert validation.status_code == 200
        assert validation.json()["isValid"] is False
        assert validation.json()["errors"][0]["code"] == "UNDEFINED_FIELD"

        refused = client.post(
            f"{base}/publish",
            json={"userId": "user-2", "effectiveStart": "2025-01-01"},
        )
        assert refused.status_code == 422
        assert refused.json()["detail"]["message"].startswith("Cannot publish")

        published = client.post(
            f"{base}/publish",
            json={
                "userId": "user-2",
                "effectiveStart": "2025-01-01",
                "effectiveEnd": "2025-12-31",
                "availableFieldCodes": ["territory"],
            },
        )
        assert published.status_code == 200
        assert published.json()["status"] == "published"
        assert len(published.json()["stepsHash"]) == 64

        resolved = client.get(
            f"/api/v1/rate-programs/{program_id}/published-version",
            params={"effective_date": "2025-07-01"},
        )
        assert resolved.status_code == 200
        assert resolved.json()["id"] == version_id

        edit = client.post(f"{base}/steps", json=dict(self.step, id="s2"))
        assert edit.status_code == 409

    def test_no_published_version(self, client):
        program_id = _create_program(client)
        _create_version(client, program_id)

        response = client.get(
            f"/api/v1/rate-programs/{program_id}/published-version",
            params={"effective_date": "2025-07-01"},
        )

        assert response.status_code == 404
        assert response.json()["detail"].endswith("on 2025-07-01")

    def test_unknown_program(self, client):
        response = client.post(
            "/api/v1/rate-programs/missing/versions", json={"userId": "user-1"}
        )

        assert response.status_code == 404

    def test_invalid_step(self, client):
        program_id = _create_program(client)
        version_id = _create_version(client, program_id)

        response = client.post(
            f"/api/v1/rate-programs/{program_id}/versions/{version_id}/steps",
            json={"id": "x", "type": "Divide", "config": {}, "order": 1},
        )

        assert response.status_code == 422
