import logging
from typing import Optional

from fastapi import APIRouter, File, Form, UploadFile

from img2prompt.schemas.tasks import (
    TaskCreatedResponse,
    TaskListResponse,
    TaskStatusResponse,
)
from img2prompt.services.submission_service import submission_service
from img2prompt.services.task_service import task_service

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post(
    "",
    response_model=TaskCreatedResponse,
    responses={
        200: {"description": "Task accepted"},
        400: {"description": "Bad Request - Missing or invalid image"},
        500: {"description": "Upstream configuration missing"},
    },
)
def create_task(
    image: Optional[UploadFile] = File(None),
    style_preference: Optional[str] = Form(None),
):
    """
    Upload an image and start generating a prompt for it.

    Returns immediately with a task id; poll the status URL for the result.
    """
    return submission_service.submit(image, style_preference)


@router.get("", response_model=TaskListResponse)
def list_tasks():
    """
    List identifiers of tasks that have not expired (diagnostic aid).
    """
    return TaskListResponse(task_ids=task_service.list_task_ids())


@router.get(
    "/{task_id}",
    response_model=TaskStatusResponse,
    response_model_exclude_none=True,
    responses={
        200: {"description": "Task status retrieved successfully"},
        404: {"description": "Not Found - Task not found"},
        410: {"description": "Gone - Task expired and was removed"},
    },
)
def get_task_status(task_id: str):
    """
    Check the status of an image-to-prompt task.

    Terminal tasks older than the expiry window are removed on read.
    """
    return task_service.get_status(task_id)
