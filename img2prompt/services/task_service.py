"""
Service layer responsible for the task lifecycle.

Drives a task through pending → processing → completed/failed and answers
status polls. Works against whichever task store is configured.
"""

import logging
from pathlib import Path
from typing import List, Optional

from img2prompt.core.exceptions import (
    AppError,
    NotFoundError,
    TaskExpiredError,
    ValidationError,
)
from img2prompt.interfaces.task_store_interface import (
    TaskStoreInterface,
    generate_task_id,
)
from img2prompt.repositories import get_task_store
from img2prompt.schemas.tasks import (
    TaskData,
    TaskStatus,
    TaskStatusResponse,
    now_ms,
)
from img2prompt.services.file_service import FileService, file_service
from img2prompt.services.prompt_service import PromptService, prompt_service

logger = logging.getLogger(__name__)


class TaskService:
    """Service class for task lifecycle operations."""

    def __init__(
        self,
        store: Optional[TaskStoreInterface] = None,
        prompts: Optional[PromptService] = None,
        files: Optional[FileService] = None,
    ) -> None:
        self._store = store
        self.prompts = prompts or prompt_service
        self.files = files or file_service

    @property
    def store(self) -> TaskStoreInterface:
        return self._store or get_task_store()

    def create_task(self) -> str:
        """Store a new pending task and return its identifier."""
        task_id = self.store.create(generate_task_id(), TaskData())
        logger.info("Created task %s", task_id)
        return task_id

    def process(
        self,
        task_id: str,
        image_path: str,
        filename: str,
        content_type: str,
        style_preference: str,
    ) -> str:
        """Run the upstream pipeline for a task and record the outcome.

        Every failure ends in the ``failed`` state; nothing is raised. The
        staged image is removed in all cases.

        Returns:
            str: The newest task identifier (changes with the stateless store)
        """
        current_id = task_id
        try:
            current_id = self.store.update(
                current_id, status=TaskStatus.PROCESSING
            )
            logger.info("Processing task %s", task_id)
            content = self.files.load(Path(image_path))
            result = self.prompts.generate(
                content, filename, content_type, style_preference
            )
            current_id = self.store.update(
                current_id, status=TaskStatus.COMPLETED, result=result
            )
            logger.info("Task %s completed successfully", task_id)
        except Exception as exc:
            logger.error("Task %s failed: %s", task_id, str(exc), exc_info=True)
            current_id = self._mark_failed(current_id, str(exc) or repr(exc))
        finally:
            self.files.discard(Path(image_path))
        return current_id

    def _mark_failed(self, task_id: str, message: str) -> str:
        try:
            task = self.store.lookup(task_id)
            if task is not None and task.status == TaskStatus.PENDING:
                # The move to processing never landed; pending cannot fail
                task_id = self.store.update(
                    task_id, status=TaskStatus.PROCESSING
                )
            return self.store.update(
                task_id, status=TaskStatus.FAILED, error=message
            )
        except AppError as exc:
            logger.error(
                "Could not record failure for task %s: %s", task_id, str(exc)
            )
            return task_id

    def get_status(self, task_id: Optional[str]) -> TaskStatusResponse:
        """Return the current state of a task.

        Raises:
            ValidationError: If no task id was given
            NotFoundError: If the task is unknown
            TaskExpiredError: If the task expired (it is deleted first)
        """
        if not task_id or not task_id.strip():
            raise ValidationError("Task ID is required")

        task = self.store.lookup(task_id)
        if task is None:
            known = self.store.list_ids()
            logger.warning(
                "Task %s not found (%d known tasks)", task_id, len(known)
            )
            raise NotFoundError(
                "Task not found or expired", known_task_ids=known
            )

        if self.store.is_expired(task):
            self.store.delete(task_id)
            logger.info("Task %s expired and was removed", task_id)
            raise TaskExpiredError("Task expired")

        return TaskStatusResponse(
            task_id=task_id,
            status=task.status,
            result=task.result,
            error=task.error,
            elapsed_time=now_ms() - task.start_time,
        )

    def list_task_ids(self) -> List[str]:
        return self.store.list_ids()

    def cleanup_expired(self) -> int:
        removed = self.store.cleanup()
        logger.info("Removed %d expired tasks", removed)
        return removed


# Singleton instance
task_service = TaskService()
