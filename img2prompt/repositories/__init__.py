"""Task store backends.

All backends implement TaskStoreInterface; ``get_task_store`` returns the one
selected by ``settings.TASK_STORE_BACKEND``.
"""

import logging
from typing import Optional

from img2prompt.core.config import settings
from img2prompt.core.exceptions import ConfigurationError
from img2prompt.interfaces.task_store_interface import TaskStoreInterface
from img2prompt.repositories.db_task_repository import DatabaseTaskStore
from img2prompt.repositories.memory_task_repository import MemoryTaskStore
from img2prompt.repositories.stateless_task_repository import StatelessTaskStore

logger = logging.getLogger(__name__)

BACKENDS = {
    "database": DatabaseTaskStore,
    "memory": MemoryTaskStore,
    "stateless": StatelessTaskStore,
}

_store: Optional[TaskStoreInterface] = None


def build_task_store(backend: str) -> TaskStoreInterface:
    """Instantiate the task store registered under ``backend``."""
    try:
        store_cls = BACKENDS[backend.lower()]
    except KeyError:
        raise ConfigurationError(
            f"Unknown task store backend: {backend}",
            details=f"TASK_STORE_BACKEND must be one of {sorted(BACKENDS)}",
        ) from None
    logger.info("Using %s task store", backend.lower())
    return store_cls()


def get_task_store() -> TaskStoreInterface:
    """Get or create the process-wide task store."""
    global _store
    if _store is None:
        _store = build_task_store(settings.TASK_STORE_BACKEND)
    return _store


def set_task_store(store: Optional[TaskStoreInterface]) -> None:
    """Replace the process-wide task store (None resets it)."""
    global _store
    _store = store


__all__ = [
    "BACKENDS",
    "DatabaseTaskStore",
    "MemoryTaskStore",
    "StatelessTaskStore",
    "build_task_store",
    "get_task_store",
    "set_task_store",
]
