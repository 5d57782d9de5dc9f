"""Unit tests for the upstream workflow HTTP client."""

import json

import httpx
import pytest

from img2prompt.core.config import settings
from img2prompt.core.exceptions import (
    ConfigurationError,
    UploadError,
    WorkflowError,
)
from img2prompt.services.workflow_client import WorkflowClient
from tests.upstream import SUCCESS_STREAM, UPSTREAM_FILE_ID, FakeUpstream


@pytest.fixture
def fake():
    return FakeUpstream()


@pytest.fixture
def client(fake):
    with WorkflowClient.from_settings(transport=fake.transport) as client:
        yield client


class TestUpload:
    def test_returns_file_id(self, client, fake):
        file_id = client.upload(b"\xff\xd8jpeg", "photo.jpg", "image/jpeg")

        assert file_id == UPSTREAM_FILE_ID
        request = fake.requests_to("/v1/files/upload")[0]
        assert request.method == "POST"
        assert request.headers["Authorization"] == "Bearer test-coze-token"
        assert request.headers["Content-Type"].startswith("multipart/form-data")
        assert b'name="file"; filename="photo.jpg"' in request.content
        assert b"Content-Type: image/jpeg" in request.content

    def test_numeric_file_id_is_stringified(self, client, fake):
        fake.upload = (200, {"json": {"data": {"id": 42}}})

        assert client.upload(b"x", "a.png", "image/png") == "42"

    def test_rejected_upload_keeps_upstream_body(self, client, fake):
        body = '{"code":4100,"msg":"authentication is invalid"}'
        fake.upload = (401, {"text": body})

        with pytest.raises(UploadError) as exc_info:
            client.upload(b"x", "a.png", "image/png")

        error = exc_info.value
        assert error.message == f"File upload failed: {body}"
        assert error.upstream_status == 401
        assert error.body == body
        assert error.status_code == 502
        assert fake.requests_to("/v1/workflow/stream_run") == []

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"json": {"code": 0, "data": {}}},
            {"json": {"code": 0}},
            {"json": {"code": 0, "data": None}},
            {"text": "not json"},
        ],
    )
    def test_missing_file_id(self, client, fake, kwargs):
        fake.upload = (200, kwargs)

        with pytest.raises(UploadError) as exc_info:
            client.upload(b"x", "a.png", "image/png")

        assert exc_info.value.message == "No file ID returned from upload"

    def test_transport_error(self, fake):
        def fail(request):
            raise httpx.ConnectError("connection refused", request=request)

        client = WorkflowClient("token", "wf", transport=httpx.MockTransport(fail))

        with pytest.raises(UploadError) as exc_info:
            client.upload(b"x", "a.png", "image/png")

        assert "connection refused" in exc_info.value.message
        assert exc_info.value.upstream_status is None


class TestRunWorkflow:
    def test_payload_shape(self, client, fake):
        body = client.run_workflow(UPSTREAM_FILE_ID, "flux")

        assert body == SUCCESS_STREAM
        request = fake.requests_to("/v1/workflow/stream_run")[0]
        payload = json.loads(request.content)
        assert payload == {
            "workflow_id": settings.COZE_WORKFLOW_ID,
            "parameters": {
                "image": json.dumps({"file_id": UPSTREAM_FILE_ID}),
                "style_preferenc": "flux",
                "user_query": "",
            },
        }
        assert json.loads(payload["parameters"]["image"]) == {
            "file_id": UPSTREAM_FILE_ID
        }

    def test_rejected_run(self, client, fake):
        fake.workflow = (500, {"text": "internal error"})

        with pytest.raises(WorkflowError) as exc_info:
            client.run_workflow("1", "detailed")

        assert exc_info.value.message == "Workflow execution failed: internal error"
        assert exc_info.value.upstream_status == 500

    def test_timeout(self):
        def slow(request):
            raise httpx.ReadTimeout("timed out", request=request)

        client = WorkflowClient("token", "wf", transport=httpx.MockTransport(slow))

        with pytest.raises(WorkflowError) as exc_info:
            client.run_workflow("1", "detailed")

        assert "timed out" in exc_info.value.message

    def test_timeout_is_configured(self):
        client = WorkflowClient("token", "wf", timeout=7.5)

        assert client._client.timeout == httpx.Timeout(7.5)
        client.close()


class TestConnectivity:
    def test_available(self, client):
        assert client.check_connectivity() == {"available": True, "error": None}

    def test_unauthorized(self, client, fake):
        fake.workspace = (401, {"text": "bad token"})

        result = client.check_connectivity()

        assert result == {"available": False, "error": "HTTP 401: bad token"}

    def test_network_failure_does_not_raise(self):
        def fail(request):
            raise httpx.ConnectError("dns failure", request=request)

        client = WorkflowClient("token", "wf", transport=httpx.MockTransport(fail))

        assert client.check_connectivity() == {
            "available": False,
            "error": "dns failure",
        }


def test_from_settings_requires_token(monkeypatch):
    monkeypatch.setattr(settings, "COZE_API_TOKEN", None)

    with pytest.raises(ConfigurationError):
        WorkflowClient.from_settings()
