"""Parsing of the upstream workflow's Server-Sent-Events response body.

The workflow service streams its progress as ``id:``/``event:``/``data:``
lines. Its payload shape is not stable across workflow versions, so prompt
extraction scans a prioritised table of known fields instead of relying on
one schema.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Callable, Iterator, List, Optional, Tuple

from img2prompt.core.exceptions import ExtractionError

logger = logging.getLogger(__name__)

PROMPT_NOT_FOUND = "Generated prompt not found in response"
ERROR_EVENT = "Error"


@dataclass
class StreamEvent:
    """One ``data:`` line together with the event it belongs to."""

    id: str
    event: str
    data: str
    payload: Any = None
    valid: bool = False


def iter_events(text: str) -> Iterator[StreamEvent]:
    """Yield a StreamEvent for every ``data:`` line of an SSE body.

    An ``id:`` line starts a new logical event and resets the current event
    name. Data that is not valid JSON is yielded with ``valid=False``.
    """
    current_id = ""
    current_event = ""
    # Lines end at "\n" only; data may carry U+2028 and other separators
    for raw_line in text.split("\n"):
        line = raw_line.rstrip("\r")
        if line.startswith("id:"):
            current_id = line[3:].strip()
            current_event = ""
        elif line.startswith("event:"):
            current_event = line[6:].strip()
        elif line.startswith("data:"):
            data = line[5:].strip()
            try:
                payload = json.loads(data)
            except ValueError:
                yield StreamEvent(current_id, current_event, data)
                continue
            yield StreamEvent(current_id, current_event, data, payload, True)


def _as_text(value: Any) -> Optional[str]:
    """Normalise a candidate value; empty values count as missing."""
    if value is None or value == "" or value is False:
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, (dict, list)) and not value:
        return None
    return json.dumps(value, ensure_ascii=False)


def _field(name: str) -> Callable[[dict], Optional[str]]:
    def lookup(payload: dict) -> Optional[str]:
        return _as_text(payload.get(name))

    return lookup


def _content(payload: dict) -> Optional[str]:
    content = payload.get("content")
    if not content:
        return None
    if not isinstance(content, str):
        return _as_text(content)
    try:
        nested = json.loads(content)
    except ValueError:
        return content
    # Content that parses as JSON only counts through an "output" field
    if isinstance(nested, dict):
        return _as_text(nested.get("output"))
    return None


def _last_in_list(
    name: str, keys: Tuple[str, ...]
) -> Callable[[dict], Optional[str]]:
    """Scan a list of objects; the last element with a usable key wins."""

    def lookup(payload: dict) -> Optional[str]:
        items = payload.get(name)
        if not isinstance(items, list):
            return None
        found = None
        for item in items:
            if not isinstance(item, dict):
                continue
            for key in keys:
                value = _as_text(item.get(key))
                if value is not None:
                    found = value
                    break
        return found

    return lookup


# Highest priority first.
PROMPT_FIELDS: List[Tuple[str, Callable[[dict], Optional[str]]]] = [
    ("output", _field("output")),
    ("result", _field("result")),
    ("workflow_result", _field("workflow_result")),
    ("content", _content),
    ("node_outputs[].output|result",
     _last_in_list("node_outputs", ("output", "result"))),
    ("outputs[].value|content|text",
     _last_in_list("outputs", ("value", "content", "text"))),
]


def find_candidate(payload: Any) -> Optional[str]:
    """Return the highest-priority prompt candidate found in one payload."""
    if isinstance(payload, str):
        return payload if payload.strip() else None
    if not isinstance(payload, dict):
        return None
    for path, lookup in PROMPT_FIELDS:
        value = lookup(payload)
        if value is not None:
            logger.debug("Prompt candidate found in %s", path)
            return value
    return None


def extract_prompt(text: str) -> str:
    """Extract the generated prompt from a workflow event-stream body.

    Later events overwrite earlier candidates. An ``Error`` event carrying an
    ``error_message`` stops the scan.

    Args:
        text: Raw response body of the workflow call

    Returns:
        The prompt, or PROMPT_NOT_FOUND when no known field was present

    Raises:
        ExtractionError: If the stream contains an explicit error event
    """
    best: Optional[str] = None
    for event in iter_events(text):
        if not event.valid:
            logger.debug("Skipping malformed data line: %.200s", event.data)
            continue
        payload = event.payload
        if (
            event.event == ERROR_EVENT
            and isinstance(payload, dict)
            and payload.get("error_message")
        ):
            message = str(payload["error_message"])
            logger.warning("Workflow reported an error event: %s", message)
            raise ExtractionError(
                f"Workflow execution failed: {message}", body=event.data
            )
        candidate = find_candidate(payload)
        if candidate is not None:
            best = candidate

    if best is None:
        logger.warning("No prompt field found in workflow response")
        return PROMPT_NOT_FOUND
    return best
