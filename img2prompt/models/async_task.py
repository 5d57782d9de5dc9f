"""Database model for persisted asynchronous tasks."""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import DateTime, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from img2prompt.db.base import Base


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


class AsyncTask(Base):
    """Database model for an image-to-prompt task.

    Attributes:
        task_id: Opaque task identifier handed to clients
        status: Upper-case task status (PENDING, PROCESSING, ...)
        result: JSON-encoded result, set once the task completed
        error: Failure reason, set once the task failed
        meta: JSON-encoded metadata, holds ``{"startTime": <epoch ms>}``
        expires_at: Time after which a terminal task is discarded
        created_at: Row creation time
        updated_at: Time of the last status change
    """

    __tablename__ = "async_tasks"

    task_id: Mapped[str] = mapped_column(String(255), primary_key=True)
    status: Mapped[str] = mapped_column(
        String(20), index=True, nullable=False, comment="Upper-case status"
    )
    result: Mapped[Optional[str]] = mapped_column(
        Text, nullable=True, comment="JSON-encoded task result"
    )
    error: Mapped[Optional[str]] = mapped_column(
        Text, nullable=True, comment="Failure reason"
    )
    # "metadata" is reserved on declarative classes
    meta: Mapped[Optional[str]] = mapped_column(
        "metadata", Text, nullable=True, comment="JSON-encoded metadata"
    )
    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        index=True,
        nullable=False,
        comment="Expiry time for terminal tasks",
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=now_utc, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=now_utc,
        onupdate=now_utc,
        server_default=func.now(),
    )

    def __repr__(self) -> str:
        return f"<AsyncTask {self.task_id} ({self.status})>"
