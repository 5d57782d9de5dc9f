"""Pydantic schemas for task state and task-related API payloads.

Field names are snake_case in Python and camelCase on the wire, which is what
polling clients of the task API expect.
"""

import time
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from img2prompt.core.exceptions import InvalidTransitionError


def now_ms() -> int:
    """Current time in epoch milliseconds."""
    return int(time.time() * 1000)


class TaskStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (TaskStatus.COMPLETED, TaskStatus.FAILED)


# Allowed forward moves; terminal states have none.
TRANSITIONS: Dict[TaskStatus, tuple] = {
    TaskStatus.PENDING: (TaskStatus.PROCESSING,),
    TaskStatus.PROCESSING: (TaskStatus.COMPLETED, TaskStatus.FAILED),
    TaskStatus.COMPLETED: (),
    TaskStatus.FAILED: (),
}


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PromptResult(CamelModel):
    """Outcome of a successful image-to-prompt run."""

    prompt: str
    file_id: str


class TaskData(CamelModel):
    """State of one asynchronous image-to-prompt task.

    Attributes:
        status: Current position in the task state machine
        result: Prompt and upstream file id, only when completed
        error: Human-readable failure reason, only when failed
        start_time: Creation time in epoch milliseconds
    """

    status: TaskStatus = TaskStatus.PENDING
    result: Optional[PromptResult] = None
    error: Optional[str] = None
    start_time: int = Field(default_factory=now_ms)

    @model_validator(mode="after")
    def check_outcome(self) -> "TaskData":
        if self.result is not None and self.status != TaskStatus.COMPLETED:
            raise ValueError("result is only allowed on completed tasks")
        if self.error is not None and self.status != TaskStatus.FAILED:
            raise ValueError("error is only allowed on failed tasks")
        if self.status == TaskStatus.COMPLETED and self.result is None:
            raise ValueError("completed tasks require a result")
        if self.status == TaskStatus.FAILED and self.error is None:
            raise ValueError("failed tasks require an error")
        return self

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    def expires_at(self, window_seconds: int) -> int:
        return self.start_time + window_seconds * 1000

    def is_expired(
        self, window_seconds: int, now: Optional[int] = None
    ) -> bool:
        """Only terminal tasks expire; running tasks are never time-boxed."""
        if not self.is_terminal:
            return False
        current = now_ms() if now is None else now
        return current >= self.expires_at(window_seconds)

    def merged(self, **fields: Any) -> "TaskData":
        """Return a copy with ``fields`` applied.

        ``start_time`` is immutable and ignored if passed.

        Raises:
            InvalidTransitionError: If the status would not move forward
        """
        fields.pop("start_time", None)
        new_status = fields.get("status")
        if new_status is not None:
            new_status = TaskStatus(new_status)
            fields["status"] = new_status
            if (
                new_status != self.status
                and new_status not in TRANSITIONS[self.status]
            ):
                raise InvalidTransitionError(
                    f"Cannot move task from {self.status.value} "
                    f"to {new_status.value}"
                )
            if new_status == self.status and self.is_terminal:
                raise InvalidTransitionError(
                    f"Task is already {self.status.value}"
                )
        data = self.model_dump()
        data.update(fields)
        return TaskData.model_validate(data)


class TaskCreatedResponse(CamelModel):
    """Response returned when a task has been accepted."""

    success: bool = True
    task_id: str
    message: str
    status_url: str


class TaskStatusResponse(CamelModel):
    """Response model for task status polls."""

    task_id: str
    status: TaskStatus
    result: Optional[PromptResult] = None
    error: Optional[str] = None
    elapsed_time: int


class TaskListResponse(CamelModel):
    task_ids: List[str]


class PromptResponse(CamelModel):
    """Response of the synchronous image-to-prompt endpoint."""

    success: bool = True
    prompt: str
    file_id: str


class FileWorkflowRequest(CamelModel):
    """Body of the endpoint that runs the workflow on an uploaded file.

    Fields are optional; the service rejects a request missing any of them.
    """

    task_id: Optional[str] = None
    file_id: Optional[str] = None
    style_preference: Optional[str] = None


class FileWorkflowResponse(CamelModel):
    success: bool = True
    task_id: str
    prompt: str
