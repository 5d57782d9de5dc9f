"""Celery application for the image-to-prompt worker.

The API process only enqueues work here; a separate worker process runs the
upstream pipeline and writes the outcome to the shared task store. Beat runs
the periodic cleanup of expired tasks.

Start with:
    celery -A img2prompt.worker.celery_app worker --beat --loglevel=info
"""

from typing import Any

from celery import Celery
from celery.signals import setup_logging as celery_setup_logging

from img2prompt.core.config import settings
from img2prompt.core.logging_config import setup_logging as setup_app_logging


def configure_celery_logging(**kwargs: Any) -> None:
    """Handler for Celery's setup_logging signal.

    Connecting to the signal stops Celery from installing its own handlers,
    so worker output uses the same format as the API process.
    """
    del kwargs  # Unused
    setup_app_logging()


def create_celery_app() -> Celery:
    """Build the Celery app from settings."""
    app = Celery(
        "worker",
        broker=settings.CELERY_BROKER_URL,
        backend=settings.CELERY_RESULT_BACKEND,
        include=["img2prompt.tasks"],
    )

    app.conf.update(
        task_serializer="json",
        accept_content=["json"],
        result_serializer="json",
        timezone="UTC",
        enable_utc=True,
        task_track_started=True,
        # Jobs spend minutes waiting on the upstream; take one at a time
        worker_prefetch_multiplier=1,
        task_always_eager=settings.CELERY_TASK_ALWAYS_EAGER,
        task_eager_propagates=settings.CELERY_TASK_EAGER_PROPAGATES,
        beat_schedule={
            "cleanup-expired-tasks": {
                "task": "cleanup_expired_tasks",
                "schedule": float(settings.TASK_CLEANUP_INTERVAL_SECONDS),
            },
        },
    )

    celery_setup_logging.connect(configure_celery_logging, weak=False)

    return app


celery_app = create_celery_app()
