"""Task store that keeps the whole task state inside the identifier.

Identifiers look like ``task_<epochMillis>_<random>_<payload>`` where the
payload is the base64url-encoded JSON task state. Nothing is stored on the
server, so any instance can answer a status poll, but:

* the caller must always resubmit the newest identifier, because every
  update produces a new one;
* an older identifier still decodes to its own, older snapshot;
* anyone holding an identifier can read the full task state, result included.
"""

import base64
import binascii
import json
import logging
from typing import Any, List, Optional

from pydantic import ValidationError as PydanticValidationError

from img2prompt.core.exceptions import NotFoundError
from img2prompt.interfaces.task_store_interface import TaskStoreInterface
from img2prompt.schemas.tasks import TaskData

logger = logging.getLogger(__name__)

TASK_PREFIX = "task"


def encode_task_data(data: TaskData) -> str:
    raw = data.model_dump_json(by_alias=True, exclude_none=True)
    return base64.urlsafe_b64encode(raw.encode("utf-8")).decode("ascii").rstrip("=")


def decode_task_data(encoded: str) -> Optional[TaskData]:
    padded = encoded + "=" * (-len(encoded) % 4)
    try:
        raw = base64.urlsafe_b64decode(padded.encode("ascii"))
        return TaskData.model_validate(json.loads(raw.decode("utf-8")))
    except (
        binascii.Error,
        UnicodeError,
        ValueError,
        PydanticValidationError,
    ):
        return None


def split_task_id(task_id: str) -> Optional[tuple]:
    """Split an identifier into ``(prefix, payload)``.

    The base64url payload may itself contain ``_``, so only the first three
    separators are significant.
    """
    parts = task_id.split("_", 3)
    if len(parts) != 4 or parts[0] != TASK_PREFIX or not parts[3]:
        return None
    return "_".join(parts[:3]), parts[3]


class StatelessTaskStore(TaskStoreInterface):
    """Self-describing identifiers instead of server-side storage."""

    is_stateless = True

    def create(self, task_id: str, data: TaskData) -> str:
        self.ensure_pending(data)
        # Accept either a bare ``task_<ts>_<rand>`` or a full identifier
        split = split_task_id(task_id)
        prefix = split[0] if split else task_id
        return f"{prefix}_{encode_task_data(data)}"

    def lookup(self, task_id: str) -> Optional[TaskData]:
        split = split_task_id(task_id)
        if split is None:
            return None
        return decode_task_data(split[1])

    def update(self, task_id: str, **fields: Any) -> str:
        current = self.lookup(task_id)
        if current is None:
            raise NotFoundError(f"Task {task_id} not found")
        prefix = split_task_id(task_id)[0]
        return f"{prefix}_{encode_task_data(current.merged(**fields))}"

    def delete(self, task_id: str) -> bool:
        # There is nothing held server-side to remove
        return False

    def list_ids(self) -> List[str]:
        return []

    def cleanup(self) -> int:
        return 0
