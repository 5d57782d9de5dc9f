"""Tests for the stateless task store, where the id carries the state."""

import base64
import json

import pytest

from img2prompt.core.exceptions import NotFoundError
from img2prompt.repositories.stateless_task_repository import (
    StatelessTaskStore,
    decode_task_data,
    encode_task_data,
    split_task_id,
)
from img2prompt.schemas.tasks import PromptResult, TaskData, TaskStatus


@pytest.fixture
def store():
    return StatelessTaskStore()


def test_identifier_embeds_state(store):
    task_id = store.create("task_1700000000000_abc123xyz", TaskData(start_time=9))

    prefix, payload = split_task_id(task_id)
    padded = payload + "=" * (-len(payload) % 4)

    assert prefix == "task_1700000000000_abc123xyz"
    assert json.loads(base64.urlsafe_b64decode(padded)) == {
        "status": "pending",
        "startTime": 9,
    }
    assert "=" not in payload


def test_update_returns_new_identifier(store):
    first = store.create("task_1_abc", TaskData())

    second = store.update(first, status=TaskStatus.PROCESSING)

    assert second != first
    assert second.startswith("task_1_abc_")
    assert store.lookup(second).status == TaskStatus.PROCESSING


def test_old_identifier_keeps_its_snapshot(store):
    first = store.create("task_1_abc", TaskData())
    store.update(first, status=TaskStatus.PROCESSING)

    assert store.lookup(first).status == TaskStatus.PENDING


def test_payload_containing_underscores(store):
    # Runs of "?" (0x3F) encode to "Pz8_" in base64url
    prompt = "?" * 30
    task = TaskData(
        status="completed",
        result=PromptResult(prompt=prompt, file_id="1"),
        start_time=1,
    )
    payload = encode_task_data(task)
    assert "_" in payload

    task_id = f"task_1_abc_{payload}"

    assert store.lookup(task_id).result.prompt == prompt


@pytest.mark.parametrize(
    "task_id",
    [
        "task_1_abc",
        "job_1_abc_eyJzdGF0dXMiOiJwZW5kaW5nIn0",
        "task_1_abc_",
        "task_1_abc_!!!not-base64!!!",
        "task_1_abc_" + base64.urlsafe_b64encode(b"[1, 2]").decode(),
        "task_1_abc_" + base64.urlsafe_b64encode(b'{"status": "x"}').decode(),
    ],
)
def test_undecodable_identifiers_are_unknown(store, task_id):
    assert store.lookup(task_id) is None


def test_update_of_unknown_identifier(store):
    with pytest.raises(NotFoundError):
        store.update("task_1_abc_garbage", status=TaskStatus.PROCESSING)


def test_nothing_is_held_server_side(store):
    task_id = store.create("task_1_abc", TaskData())

    assert store.delete(task_id) is False
    assert store.list_ids() == []
    assert store.cleanup() == 0
    assert store.lookup(task_id) is not None


def test_encode_decode_helpers():
    task = TaskData(status="failed", error="boom", start_time=3)

    assert decode_task_data(encode_task_data(task)) == task
    assert decode_task_data("%%%") is None
