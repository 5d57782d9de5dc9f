"""HTTP client for the upstream AI workflow service.

Turning an image into a prompt takes two calls: a multipart upload that
returns a file id, then a streaming workflow run that references that id.
Neither call is retried; both are bounded by an explicit timeout.

Usage:
    with WorkflowClient.from_settings() as client:
        file_id = client.upload(content, "photo.jpg", "image/jpeg")
        body = client.run_workflow(file_id, "detailed")
"""

import json
import logging
from typing import Any, Dict, Optional

import httpx

from img2prompt.core.config import settings
from img2prompt.core.exceptions import UploadError, WorkflowError

logger = logging.getLogger(__name__)

UPLOAD_PATH = "/v1/files/upload"
WORKFLOW_PATH = "/v1/workflow/stream_run"
WORKSPACE_PATH = "/v1/workspace/list"

# Parameter names expected by the published workflow. "style_preferenc" is
# misspelled upstream and must be sent exactly like this.
IMAGE_PARAM = "image"
STYLE_PARAM = "style_preferenc"
QUERY_PARAM = "user_query"


class WorkflowClient:
    """Synchronous client for the upload and workflow-run endpoints."""

    def __init__(
        self,
        api_token: str,
        workflow_id: str,
        base_url: str = "https://api.coze.cn",
        timeout: float = 120.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.workflow_id = workflow_id
        self._client = httpx.Client(
            base_url=base_url,
            headers={"Authorization": f"Bearer {api_token}"},
            timeout=httpx.Timeout(timeout),
            transport=transport,
        )

    @classmethod
    def from_settings(
        cls, transport: Optional[httpx.BaseTransport] = None
    ) -> "WorkflowClient":
        """Create a client from application settings.

        Raises:
            ConfigurationError: If the token or workflow id is not configured
        """
        settings.validate_upstream()
        return cls(
            api_token=settings.COZE_API_TOKEN,
            workflow_id=settings.COZE_WORKFLOW_ID,
            base_url=settings.COZE_API_BASE,
            timeout=settings.UPSTREAM_TIMEOUT_SECONDS,
            transport=transport,
        )

    def __enter__(self) -> "WorkflowClient":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    def close(self) -> None:
        self._client.close()

    def upload(self, content: bytes, filename: str, content_type: str) -> str:
        """Upload binary content and return the upstream file id.

        Raises:
            UploadError: On transport failure, non-2xx status or a response
                without a file id
        """
        logger.info("Uploading %s (%d bytes) to upstream", filename, len(content))
        try:
            response = self._client.post(
                UPLOAD_PATH, files={"file": (filename, content, content_type)}
            )
        except httpx.HTTPError as exc:
            logger.error("Upload request failed: %s", str(exc))
            raise UploadError(f"File upload failed: {str(exc)}") from exc

        if not response.is_success:
            logger.error(
                "Upload rejected with status %d: %.500s",
                response.status_code,
                response.text,
            )
            raise UploadError(
                f"File upload failed: {response.text}",
                upstream_status=response.status_code,
                body=response.text,
            )

        try:
            file_id = (response.json().get("data") or {}).get("id")
        except (ValueError, AttributeError):
            file_id = None
        if not file_id:
            logger.error("No file id in upload response: %.500s", response.text)
            raise UploadError(
                "No file ID returned from upload",
                upstream_status=response.status_code,
                body=response.text,
            )

        logger.info("Upload succeeded, file id %s", file_id)
        return str(file_id)

    def build_workflow_payload(
        self, file_id: str, style_preference: str
    ) -> Dict[str, Any]:
        return {
            "workflow_id": self.workflow_id,
            "parameters": {
                # The workflow expects a JSON string, not the bare id
                IMAGE_PARAM: json.dumps({"file_id": file_id}),
                STYLE_PARAM: style_preference,
                QUERY_PARAM: "",
            },
        }

    def run_workflow(self, file_id: str, style_preference: str) -> str:
        """Run the workflow on an uploaded file and return the raw SSE body.

        Raises:
            WorkflowError: On transport failure or non-2xx status
        """
        payload = self.build_workflow_payload(file_id, style_preference)
        logger.info(
            "Running workflow for file %s (style=%s)", file_id, style_preference
        )
        try:
            response = self._client.post(WORKFLOW_PATH, json=payload)
        except httpx.HTTPError as exc:
            logger.error("Workflow request failed: %s", str(exc))
            raise WorkflowError(
                f"Workflow execution failed: {str(exc)}"
            ) from exc

        if not response.is_success:
            logger.error(
                "Workflow rejected with status %d: %.500s",
                response.status_code,
                response.text,
            )
            raise WorkflowError(
                f"Workflow execution failed: {response.text}",
                upstream_status=response.status_code,
                body=response.text,
            )
        return response.text

    def check_connectivity(self) -> Dict[str, Any]:
        """Check the upstream with a cheap authenticated call. Never raises."""
        try:
            response = self._client.get(WORKSPACE_PATH)
        except httpx.HTTPError as exc:
            return {"available": False, "error": str(exc)}
        if response.is_success:
            return {"available": True, "error": None}
        return {
            "available": False,
            "error": f"HTTP {response.status_code}: {response.text}",
        }
