"""
HTTP API tests using FastAPI's TestClient against a controller with fake
collaborators.
"""

import csv
import io
import json

import pytest
from fastapi.testclient import TestClient

from bulk_outreach.main import create_app

from conftest import FakeGenerator, make_records

pytestmark = [pytest.mark.db]

FORM = {
    "sender_url": "https://sender.example.com",
    "what_we_do": "We automate invoice matching",
    "intent": "Book a short demo",
    "style_slug": "the-one-liner",
}


@pytest.fixture
def client(make_controller):
    controller = make_controller(generator=FakeGenerator(fail_companies={"Company2"}), chunk_size=2)
    with TestClient(create_app(controller)) as test_client:
        yield test_client


def start_job(client, count=3, **overrides):
    data = dict(FORM, prospects=json.dumps(make_records(count)), **overrides)
    response = client.post("/bulk/start", data=data)
    assert response.status_code == 200, response.text
    return response.json()["jobId"]


def test_root_and_health(client):
    assert "endpoints" in client.get("/").json()

    health = client.get("/health").json()
    assert health["status"] == "healthy"
    assert health["capabilities"]["ai_generation"] == "custom"
    assert health["config"]["chunk_size"] == 2


def test_styles_endpoint(client):
    data = client.get("/styles").json()
    assert data["default_style"] == "show-me-you-know-me"
    assert data["total_styles"] == len(data["styles"])


def test_full_job_flow(client):
    response = client.post("/bulk/start", data=dict(FORM, prospects=json.dumps(make_records(3))))
    body = response.json()
    assert body["status"] == "pending"
    assert body["totalProspects"] == 3
    job_id = body["jobId"]

    first = client.post("/bulk/process", json={"jobId": job_id}).json()
    assert first["processedCount"] == 2
    assert first["remainingCount"] == 1
    assert first["isComplete"] is False
    assert "integrityWarning" not in first

    second = client.post("/bulk/process", json={"jobId": job_id}).json()
    assert second["isComplete"] is True
    assert (second["successCount"], second["failedCount"]) == (2, 1)

    status = client.get("/bulk/status", params={"jobId": job_id}).json()
    assert status["status"] == "completed"
    for key in ("processedCount", "successCount", "failedCount", "totalProspects", "remainingCount", "isComplete"):
        assert status[key] == second[key]
    assert status["completedAt"] is not None

    download = client.get("/bulk/download", params={"jobId": job_id})
    assert download.status_code == 200
    assert download.headers["content-type"].startswith("text/csv")
    assert f"bulk-outreach-{job_id[:8]}.csv" in download.headers["content-disposition"]
    rows = list(csv.DictReader(io.StringIO(download.text)))
    assert [row["Status"] for row in rows] == ["completed", "failed", "completed"]


def test_start_validation_errors(client):
    response = client.post("/bulk/start", data=dict(FORM, prospects=""))
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "validation_error"

    response = client.post("/bulk/start", data=dict(FORM, prospects="{not json"))
    assert response.json()["error"]["message"] == "Invalid prospects data"

    response = client.post("/bulk/start", data=dict(FORM, prospects="[]"))
    assert response.json()["error"]["message"] == "No prospects provided"

    response = client.post("/bulk/start", data=dict(FORM, intent="", prospects=json.dumps(make_records(1))))
    assert response.status_code == 400
    assert "intent" in response.json()["error"]["message"]


def test_start_with_attachment(client):
    response = client.post(
        "/bulk/start",
        data=dict(FORM, prospects=json.dumps(make_records(1))),
        files={"attached_file": ("notes.txt", b"We cut close time in half for Acme", "text/plain")},
    )
    assert response.status_code == 200


def test_unknown_job_returns_404(client):
    response = client.post("/bulk/process", json={"jobId": "nope"})
    assert response.status_code == 404
    assert response.json()["error"]["code"] == "job_not_found"

    assert client.get("/bulk/status", params={"jobId": "nope"}).status_code == 404
    assert client.get("/bulk/download", params={"jobId": "nope"}).status_code == 404


def test_missing_job_id_is_rejected(client):
    assert client.post("/bulk/process", json={}).status_code == 422


def test_regenerate_and_cancel(client):
    job_id = start_job(client)
    client.post("/bulk/process", json={"jobId": job_id})

    job = client.post("/bulk/regenerate", json={"jobId": job_id, "styleSlug": "poke-the-bear"}).json()["job"]
    assert job["status"] == "pending"
    assert job["styleSlug"] == "poke-the-bear"
    assert job["processedCount"] == 0

    bad = client.post("/bulk/regenerate", json={"jobId": job_id, "styleSlug": "nope"})
    assert bad.status_code == 400

    cancelled = client.post("/bulk/cancel", json={"jobId": job_id}).json()["job"]
    assert cancelled["status"] == "cancelled"
    assert cancelled["isComplete"] is True

    again = client.post("/bulk/cancel", json={"jobId": job_id})
    assert again.status_code == 409
    assert again.json()["error"]["code"] == "invalid_job_state"


def test_list_jobs(client):
    start_job(client)
    start_job(client)

    data = client.get("/bulk/jobs", params={"limit": 1}).json()
    assert data["count"] == 1

    assert client.get("/bulk/jobs", params={"status": "archived"}).status_code == 400


def test_generate_for_single_prospect(client):
    data = dict(
        FORM,
        target_url="https://company7.com",
        target_first_name="Ada",
        target_company="Company7",
    )
    response = client.post(
        "/generate",
        data=data,
        files={"attached_file": ("notes.txt", b"We cut close time in half for Acme", "text/plain")},
    )

    assert response.status_code == 200, response.text
    body = response.json()
    assert len(body["emails"]) == 3
    assert "Company7" in body["emails"][0]["body"]
    assert body["warnings"] == []
    assert client.get("/bulk/jobs").json()["count"] == 0


def test_generate_errors(client):
    missing = client.post("/generate", data=FORM)
    assert missing.status_code == 400
    assert "website" in missing.json()["error"]["message"]

    failed = client.post("/generate", data=dict(FORM, target_url="https://company2.com", target_company="Company2"))
    assert failed.status_code == 502
    assert failed.json()["error"]["code"] == "generation_failed"
