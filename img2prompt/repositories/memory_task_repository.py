"""Process-local task store.

State is lost on restart and is not shared between processes, so this store
only suits a single long-lived server process (or tests).
"""

import logging
import threading
from typing import Any, Dict, List, Optional

from img2prompt.core.exceptions import NotFoundError
from img2prompt.interfaces.task_store_interface import TaskStoreInterface
from img2prompt.schemas.tasks import TaskData

logger = logging.getLogger(__name__)


class MemoryTaskStore(TaskStoreInterface):
    """Dictionary-backed task store."""

    def __init__(self, expiry_seconds: Optional[int] = None) -> None:
        super().__init__(expiry_seconds)
        self._tasks: Dict[str, TaskData] = {}
        # Request handlers may run in a thread pool
        self._lock = threading.Lock()

    def create(self, task_id: str, data: TaskData) -> str:
        self.ensure_pending(data)
        with self._lock:
            self._tasks[task_id] = data
        logger.debug("Task %s created in memory", task_id)
        return task_id

    def lookup(self, task_id: str) -> Optional[TaskData]:
        with self._lock:
            return self._tasks.get(task_id)

    def update(self, task_id: str, **fields: Any) -> str:
        with self._lock:
            current = self._tasks.get(task_id)
            if current is None:
                raise NotFoundError(f"Task {task_id} not found")
            self._tasks[task_id] = current.merged(**fields)
        return task_id

    def delete(self, task_id: str) -> bool:
        with self._lock:
            return self._tasks.pop(task_id, None) is not None

    def list_ids(self) -> List[str]:
        with self._lock:
            return [
                task_id
                for task_id, task in self._tasks.items()
                if not self.is_expired(task)
            ]

    def cleanup(self) -> int:
        with self._lock:
            expired = [
                task_id
                for task_id, task in self._tasks.items()
                if self.is_expired(task)
            ]
            for task_id in expired:
                del self._tasks[task_id]
        if expired:
            logger.info("Cleaned up %d expired tasks", len(expired))
        return len(expired)
