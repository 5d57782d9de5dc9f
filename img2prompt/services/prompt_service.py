"""Service layer for the upload → workflow → extraction pipeline."""

import logging
from typing import Callable, Optional

from img2prompt.core.event_stream import extract_prompt
from img2prompt.schemas.tasks import PromptResult
from img2prompt.services.workflow_client import WorkflowClient

logger = logging.getLogger(__name__)


class PromptService:
    """Generate a prompt for an image through the upstream workflow."""

    def __init__(
        self,
        client_factory: Optional[Callable[[], WorkflowClient]] = None,
    ) -> None:
        self._client_factory = client_factory or WorkflowClient.from_settings

    def generate(
        self,
        content: bytes,
        filename: str,
        content_type: str,
        style_preference: str,
    ) -> PromptResult:
        """Upload an image, run the workflow and extract the prompt.

        Raises:
            ConfigurationError: If upstream credentials are missing
            UploadError: If the upload fails
            WorkflowError: If the workflow call fails
            ExtractionError: If the workflow reports an error event
        """
        with self._client_factory() as client:
            file_id = client.upload(content, filename, content_type)
            body = client.run_workflow(file_id, style_preference)
        prompt = extract_prompt(body)
        logger.info("Prompt generated for file %s (%d chars)", file_id, len(prompt))
        return PromptResult(prompt=prompt, file_id=file_id)

    def generate_for_file(self, file_id: str, style_preference: str) -> str:
        """Run the workflow on a file the upstream already holds."""
        with self._client_factory() as client:
            body = client.run_workflow(file_id, style_preference)
        prompt = extract_prompt(body)
        logger.info("Prompt generated for file %s (%d chars)", file_id, len(prompt))
        return prompt


prompt_service = PromptService()
