"""Accepting image-to-prompt requests and handing them to the worker."""

import logging
from typing import Optional

from fastapi import UploadFile

from img2prompt.core.config import settings
from img2prompt.core.exceptions import AppError, ValidationError
from img2prompt.schemas.tasks import (
    FileWorkflowRequest,
    FileWorkflowResponse,
    PromptResponse,
    TaskCreatedResponse,
)
from img2prompt.services.file_service import FileService, file_service
from img2prompt.services.prompt_service import PromptService, prompt_service
from img2prompt.services.task_service import TaskService, task_service
from img2prompt.tasks import process_image_to_prompt

logger = logging.getLogger(__name__)

INLINE_MODE = "inline"


class SubmissionService:
    def __init__(
        self,
        tasks: Optional[TaskService] = None,
        files: Optional[FileService] = None,
        prompts: Optional[PromptService] = None,
    ) -> None:
        self.tasks = tasks or task_service
        self.files = files or file_service
        self.prompts = prompts or prompt_service

    @property
    def runs_inline(self) -> bool:
        """Whether tasks are processed before the creating request returns.

        The stateless store has to run inline: only the identifier produced
        by the final update carries the result back to the caller.
        """
        return (
            settings.TASK_EXECUTION_MODE.lower() == INLINE_MODE
            or self.tasks.store.is_stateless
        )

    def status_url(self, task_id: str) -> str:
        path = f"{settings.API_V1_STR}/tasks/{task_id}"
        if settings.APP_URL:
            return settings.APP_URL.rstrip("/") + path
        return path

    def submit(
        self, image: Optional[UploadFile], style_preference: Optional[str]
    ) -> TaskCreatedResponse:
        """Validate a request, create a pending task and start processing.

        Args:
            image: Uploaded image file
            style_preference: Style hint for the workflow; defaults to
                ``settings.DEFAULT_STYLE_PREFERENCE``

        Returns:
            TaskCreatedResponse: Identifier and status URL of the new task

        Raises:
            ConfigurationError: If upstream credentials are missing
            ValidationError: If no valid image was provided
            AppError: If the task could not be handed to the worker
        """
        settings.validate_upstream()
        content = self.files.read_image(image)
        style = style_preference or settings.DEFAULT_STYLE_PREFERENCE
        content_type = image.content_type or "application/octet-stream"

        filepath = self.files.stage(content, image.filename)
        try:
            task_id = self.tasks.create_task()
        except Exception:
            self.files.discard(filepath)
            raise

        if self.runs_inline:
            task_id = self.tasks.process(
                task_id, str(filepath), image.filename, content_type, style
            )
            message = "Task finished. Use the taskId to read the result."
        else:
            self._dispatch(task_id, str(filepath), image.filename, content_type, style)
            message = "Task started. Use the taskId to check status."

        return TaskCreatedResponse(
            task_id=task_id,
            message=message,
            status_url=self.status_url(task_id),
        )

    def _dispatch(
        self,
        task_id: str,
        filepath: str,
        filename: str,
        content_type: str,
        style: str,
    ) -> None:
        try:
            job = process_image_to_prompt.delay(
                task_id, filepath, filename, content_type, style
            )
        except Exception as e:
            logger.error(
                "Error dispatching task %s: %s", task_id, e, exc_info=True
            )
            self.tasks.store.delete(task_id)
            self.files.discard(filepath)
            raise AppError("Failed to start image-to-prompt task") from e
        logger.info("Dispatched task %s to worker job %s", task_id, job.id)

    def generate_now(
        self, image: Optional[UploadFile], style_preference: Optional[str]
    ) -> PromptResponse:
        """Run the whole pipeline within the request and return the prompt.

        Raises:
            ConfigurationError: If upstream credentials are missing
            ValidationError: If no valid image was provided
            UpstreamError: If the upstream rejects a call or reports an error
        """
        settings.validate_upstream()
        content = self.files.read_image(image)
        style = style_preference or settings.DEFAULT_STYLE_PREFERENCE
        result = self.prompts.generate(
            content,
            image.filename,
            image.content_type or "application/octet-stream",
            style,
        )
        return PromptResponse(prompt=result.prompt, file_id=result.file_id)

    def generate_for_file(
        self, request: FileWorkflowRequest
    ) -> FileWorkflowResponse:
        """Run the workflow on a file id returned by an earlier upload.

        Raises:
            ValidationError: If the task id, file id or style is missing
            ConfigurationError: If upstream credentials are missing
            UpstreamError: If the workflow call fails or reports an error
        """
        if not (
            request.task_id and request.file_id and request.style_preference
        ):
            raise ValidationError("Missing required parameters")
        settings.validate_upstream()
        logger.info(
            "Running workflow for task %s on file %s",
            request.task_id,
            request.file_id,
        )
        prompt = self.prompts.generate_for_file(
            request.file_id, request.style_preference
        )
        return FileWorkflowResponse(task_id=request.task_id, prompt=prompt)


submission_service = SubmissionService()
