from fastapi.testclient import TestClient
import pytest

from formdoc.api.handlers.deps import ApiDeps
from formdoc.api.http_app import build_app
from formdoc.clients.stub import StubStorageBackend
from formdoc.config import parse_config
from formdoc.services.bootstrap import build_runtime_container

CONFIG = {
    "template_id": "residency-form",
    "document_title": "Submitted Residency Form",
    "base_folder": "/Residency Applications",
    "key_fields": {"name": "Name", "email": "Email Address", "lor_contact": "LOR Contact"},
}

SUBMISSION = {
    "named_values": {
        "Timestamp": ["3/5/2024 10:15:00"],
        "Name": ["Jane Doe"],
        "Email Address": ["j@x.com"],
        "LOR Contact": ["Dr. A, a@x.com, 555-1234"],
        "Portfolio": ["https://example.com/jane"],
        "Anything else?": [None],
    }
}


def _client(**config_overrides: object):
    container = build_runtime_container(parse_config({**CONFIG, **config_overrides}))
    app = build_app(
        role="api",
        run_id="integration-api",
        api_deps=ApiDeps(config=container.config, pipeline=container.pipeline),
    )
    return TestClient(app), container


@pytest.mark.integration
def test_health_and_ready_report_configured_backends() -> None:
    client, _ = _client()

    with client:
        health = client.get("/health")
        ready = client.get("/ready")

    assert health.status_code == 200
    assert health.json() == {"status": "ok", "role": "api", "mode": "configured"}
    assert ready.json()["template_id"] == "residency-form"
    assert ready.json()["storage_backend"] == "memory"


@pytest.mark.integration
def test_ready_is_unavailable_without_dependencies() -> None:
    with TestClient(build_app(role="api", run_id="integration-api")) as client:
        assert client.get("/health").json()["mode"] == "empty"
        assert client.get("/ready").status_code == 503
        assert client.post("/submissions", json=SUBMISSION).status_code == 503


@pytest.mark.integration
def test_submission_is_published_to_submitter_folder() -> None:
    client, container = _client()

    with client:
        response = client.post("/submissions", json=SUBMISSION)

    assert response.status_code == 200
    body = response.json()
    file_name = "Submitted Residency Form - Jane Doe - 2024-03-05_1015.pdf"
    assert body["state"] == "cleaned"
    assert body["run_id"].startswith("run_")
    assert body["file_name"] == file_name
    assert body["remote_path"] == f"/Residency Applications/Jane Doe/{file_name}"

    storage = container.storage
    assert isinstance(storage, StubStorageBackend)
    assert storage.calls == [
        ("create_folder", "/Residency Applications/Jane Doe"),
        ("upload", f"/Residency Applications/Jane Doe/{file_name}"),
    ]
    payload = storage.files[body["remote_path"]].decode("utf-8")
    assert "The applicant did not provide an answer to this question." in payload
    assert '[0, 23, "https://example.com/jane"]' in payload


@pytest.mark.integration
def test_empty_submission_is_rejected_by_validation() -> None:
    client, _ = _client()

    with client:
        response = client.post("/submissions", json={"named_values": {}})

    assert response.status_code == 422


@pytest.mark.integration
def test_upload_failure_maps_to_bad_gateway_with_error_code() -> None:
    client, container = _client()
    container.storage.upload_error_status = 507

    with client:
        response = client.post("/submissions", json=SUBMISSION)

    assert response.status_code == 502
    detail = response.json()["detail"]
    assert detail["error_code"] == "upload_failed"
    assert detail["failed_stage"] == "folder_ensured"
    assert "507" in detail["message"]
    assert container.documents.live_handles == []
