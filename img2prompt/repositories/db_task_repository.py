"""Task store backed by the relational database.

Rows survive restarts and are visible to every API and worker process, which
makes this the store to use behind more than one process.
"""

import json
import logging
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Generator, List, Optional

from sqlalchemy import delete, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from img2prompt.core.exceptions import NotFoundError, StoreError
from img2prompt.db.session import get_session
from img2prompt.interfaces.task_store_interface import TaskStoreInterface
from img2prompt.models.async_task import AsyncTask
from img2prompt.schemas.tasks import TaskData, TaskStatus

logger = logging.getLogger(__name__)

TERMINAL_STATUSES = [
    TaskStatus.COMPLETED.value.upper(),
    TaskStatus.FAILED.value.upper(),
]


def _row_to_task(row: AsyncTask) -> TaskData:
    meta = json.loads(row.meta) if row.meta else {}
    return TaskData(
        status=TaskStatus(row.status.lower()),
        result=json.loads(row.result) if row.result else None,
        error=row.error,
        start_time=meta.get("startTime", 0),
    )


class DatabaseTaskStore(TaskStoreInterface):
    """SQLAlchemy-backed task store using the ``async_tasks`` table."""

    def __init__(
        self,
        session_factory: Callable[[], Session] = get_session,
        expiry_seconds: Optional[int] = None,
    ) -> None:
        super().__init__(expiry_seconds)
        self._session_factory = session_factory

    @contextmanager
    def session(self) -> Generator[Session, None, None]:
        """Session scope that commits on success and maps DB errors."""
        db = self._session_factory()
        try:
            yield db
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error("Task store database error: %s", str(e), exc_info=True)
            raise StoreError(f"Task store unavailable: {str(e)}") from e
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def _expires_at(self, data: TaskData) -> datetime:
        started = datetime.fromtimestamp(data.start_time / 1000, tz=timezone.utc)
        return started + timedelta(seconds=self.expiry_seconds)

    def create(self, task_id: str, data: TaskData) -> str:
        self.ensure_pending(data)
        row = AsyncTask(
            task_id=task_id,
            status=data.status.value.upper(),
            result=data.result.model_dump_json(by_alias=True) if data.result else None,
            error=data.error,
            meta=json.dumps({"startTime": data.start_time}),
            expires_at=self._expires_at(data),
        )
        with self.session() as db:
            db.add(row)
        logger.info("Task %s created in database", task_id)
        return task_id

    def lookup(self, task_id: str) -> Optional[TaskData]:
        with self.session() as db:
            row = db.get(AsyncTask, task_id)
            if row is None:
                logger.debug("Task %s not found in database", task_id)
                return None
            return _row_to_task(row)

    def update(self, task_id: str, **fields: Any) -> str:
        with self.session() as db:
            row = db.get(AsyncTask, task_id)
            if row is None:
                raise NotFoundError(f"Task {task_id} not found")
            task = _row_to_task(row).merged(**fields)
            row.status = task.status.value.upper()
            row.result = (
                task.result.model_dump_json(by_alias=True) if task.result else None
            )
            row.error = task.error
        logger.info("Task %s updated in database (%s)", task_id, task.status.value)
        return task_id

    def delete(self, task_id: str) -> bool:
        with self.session() as db:
            result = db.execute(delete(AsyncTask).where(AsyncTask.task_id == task_id))
            removed = result.rowcount > 0
        if removed:
            logger.info("Task %s deleted from database", task_id)
        return removed

    def list_ids(self) -> List[str]:
        now = datetime.now(timezone.utc)
        with self.session() as db:
            rows = db.execute(
                select(AsyncTask.task_id).where(
                    or_(
                        AsyncTask.status.not_in(TERMINAL_STATUSES),
                        AsyncTask.expires_at > now,
                    )
                )
            )
            return list(rows.scalars().all())

    def cleanup(self) -> int:
        now = datetime.now(timezone.utc)
        with self.session() as db:
            result = db.execute(
                delete(AsyncTask).where(
                    AsyncTask.status.in_(TERMINAL_STATUSES),
                    AsyncTask.expires_at <= now,
                )
            )
            removed = result.rowcount or 0
        logger.info("Cleaned up %d expired tasks", removed)
        return removed
