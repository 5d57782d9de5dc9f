"""
Celery tasks for background processing.

These tasks act as stateless wrappers over the service layer logic. The
upstream calls are not retried: a failed attempt fails the task.
"""

import logging
from typing import Any, Dict

from img2prompt.services.task_service import task_service
from img2prompt.worker import celery_app

logger = logging.getLogger(__name__)


def _handle_task_failure(
    task_id: str, exc: Exception, operation_name: str
) -> Dict[str, Any]:
    """Log an unexpected failure and build the task's return value."""
    logger.error(
        "Task %s failed: %s", operation_name, str(exc), exc_info=True
    )
    return {"status": "error", "task_id": task_id, "error": str(exc)}


@celery_app.task(
    name="process_image_to_prompt",
    soft_time_limit=300,
    time_limit=330,
)
def process_image_to_prompt(
    task_id: str,
    image_path: str,
    filename: str,
    content_type: str,
    style_preference: str,
) -> Dict[str, Any]:
    """
    Celery task to turn a staged image into a prompt.

    Args:
        task_id: Identifier of the pending task to drive
        image_path: Path of the staged upload
        filename: Original filename of the upload
        content_type: MIME type of the upload
        style_preference: Style hint passed to the workflow

    Returns:
        Dict containing the final status and the newest task identifier
    """
    operation_name = f"Image to prompt for task {task_id}"
    logger.info("Starting %s", operation_name)

    try:
        final_id = task_service.process(
            task_id, image_path, filename, content_type, style_preference
        )
        task = task_service.store.lookup(final_id)
        status = task.status.value if task else "unknown"
        logger.info("Finished %s with status %s", operation_name, status)
        return {"status": status, "task_id": final_id}
    except Exception as exc:
        return _handle_task_failure(task_id, exc, operation_name)


@celery_app.task(name="cleanup_expired_tasks")
def cleanup_expired_tasks() -> Dict[str, Any]:
    """
    Periodic task removing terminal tasks past their expiry window.

    Returns:
        Dict with the number of removed tasks
    """
    try:
        removed = task_service.cleanup_expired()
    except Exception as exc:
        return _handle_task_failure("*", exc, "Expired task cleanup")
    return {"status": "success", "removed": removed}
