"""Interface shared by all task store backends."""

import logging
import secrets
import string
import time
from abc import ABC, abstractmethod
from typing import Any, List, Optional

from img2prompt.core.config import settings
from img2prompt.core.exceptions import InvalidTransitionError
from img2prompt.schemas.tasks import TaskData, TaskStatus

logger = logging.getLogger(__name__)

_ID_ALPHABET = string.digits + string.ascii_lowercase


def generate_task_id() -> str:
    """Build an identifier of the form ``task_<epochMillis>_<random>``."""
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(9))
    return f"task_{int(time.time() * 1000)}_{suffix}"


class TaskStoreInterface(ABC):
    """Mapping from task identifier to task state.

    Backends differ in durability, but all of them treat a terminal task
    whose expiry window has passed as absent.
    """

    # True when state lives inside the identifier instead of the backend
    is_stateless: bool = False

    def __init__(self, expiry_seconds: Optional[int] = None) -> None:
        self.expiry_seconds = (
            expiry_seconds
            if expiry_seconds is not None
            else settings.TASK_EXPIRY_SECONDS
        )

    @abstractmethod
    def create(self, task_id: str, data: TaskData) -> str:
        """Store a new task and return the identifier callers must use."""
        pass

    @abstractmethod
    def lookup(self, task_id: str) -> Optional[TaskData]:
        """Read a task as stored, without applying expiry."""
        pass

    @abstractmethod
    def update(self, task_id: str, **fields: Any) -> str:
        """Merge ``fields`` into a task and return the identifier to use next."""
        pass

    @abstractmethod
    def delete(self, task_id: str) -> bool:
        """Remove a task; return False if it was not there."""
        pass

    @abstractmethod
    def list_ids(self) -> List[str]:
        """Identifiers of all tasks that have not expired."""
        pass

    @abstractmethod
    def cleanup(self) -> int:
        """Remove expired tasks and return how many were removed."""
        pass

    def is_expired(self, task: TaskData) -> bool:
        return task.is_expired(self.expiry_seconds)

    @staticmethod
    def ensure_pending(data: TaskData) -> None:
        """New tasks always enter the state machine at ``pending``."""
        if data.status != TaskStatus.PENDING:
            raise InvalidTransitionError(
                f"New tasks must be pending, got {data.status.value}"
            )

    def get(self, task_id: str) -> Optional[TaskData]:
        """Read a task, deleting it and returning None once it has expired."""
        task = self.lookup(task_id)
        if task is None:
            return None
        if self.is_expired(task):
            logger.info("Task %s has expired, deleting", task_id)
            self.delete(task_id)
            return None
        return task
