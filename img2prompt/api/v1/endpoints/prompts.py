from typing import Optional

from fastapi import APIRouter, File, Form, UploadFile

from img2prompt.schemas.tasks import (
    FileWorkflowRequest,
    FileWorkflowResponse,
    PromptResponse,
)
from img2prompt.services.submission_service import submission_service

router = APIRouter()


@router.post(
    "",
    response_model=PromptResponse,
    responses={
        200: {"description": "Prompt generated"},
        400: {"description": "Bad Request - Missing or invalid image"},
        500: {"description": "Upstream configuration missing"},
        502: {"description": "Upstream upload or workflow failed"},
    },
)
def generate_prompt(
    image: Optional[UploadFile] = File(None),
    style_preference: Optional[str] = Form(None),
):
    """
    Generate a prompt for an image within this request.

    Blocks until the upstream workflow finishes; prefer the task API for
    clients that cannot hold a request open that long.
    """
    return submission_service.generate_now(image, style_preference)


@router.post(
    "/from-file",
    response_model=FileWorkflowResponse,
    responses={
        200: {"description": "Prompt generated"},
        400: {"description": "Bad Request - Missing required parameters"},
        500: {"description": "Upstream configuration missing"},
        502: {"description": "Upstream workflow failed"},
    },
)
def generate_prompt_from_file(request: FileWorkflowRequest):
    """
    Generate a prompt for an image the upstream already holds.

    Takes the file id returned by an earlier upload, so callers that upload
    directly can skip sending the image again.
    """
    return submission_service.generate_for_file(request)
