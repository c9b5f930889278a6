#
# src/testadapter/events.py
#
"""
Decodes the line-oriented JSON events written by the interpreter's test runner.

Each line of runner output is either one JSON object describing a test event,
or noise (console output from the tests, stack traces, runner logging).
Noise is expected and is never treated as an error.
"""

import json
from collections.abc import Mapping
from enum import Enum
from typing import Any

import structlog
from attrs import define

from testadapter.telemetry import StructLogger

log: StructLogger = structlog.get_logger("events")


class EventType(Enum):
    TEST_START = "test start"
    RESULT = "result"
    PENDING = "pending"
    SUITE_END = "suite end"


# Event types that must carry a result object.
_RESULT_EVENTS = frozenset({EventType.RESULT, EventType.PENDING, EventType.SUITE_END})
# Event types that refer to a single test by title.
_TITLED_EVENTS = frozenset({EventType.TEST_START, EventType.RESULT, EventType.PENDING})


@define(frozen=True, slots=True)
class ResultObject:
    """Final state of one test, or the suite summary for a "suite end" event."""

    title: str = ""
    passed: bool = False
    # None when the runner did not say; only True marks the test as skipped.
    pending: bool | None = None
    stdout: str = ""
    stderr: str = ""

    @classmethod
    def from_payload(cls, payload: Any) -> "ResultObject | None":
        if not isinstance(payload, Mapping):
            return None

        title = payload.get("title")
        passed = payload.get("passed", False)
        pending = payload.get("pending")
        stdout = payload.get("stdout")
        stderr = payload.get("stderr")

        if title is not None and not isinstance(title, str):
            return None
        if passed is None:
            passed = False
        if not isinstance(passed, bool):
            return None
        if pending is not None and not isinstance(pending, bool):
            return None
        if stdout is not None and not isinstance(stdout, str):
            return None
        if stderr is not None and not isinstance(stderr, str):
            return None

        return cls(
            title=title or "",
            passed=passed,
            pending=pending,
            stdout=stdout or "",
            stderr=stderr or "",
        )


@define(frozen=True, slots=True)
class TestEvent:
    __test__ = False

    type: EventType
    title: str | None = None
    result: ResultObject | None = None


def decode_event(line: str) -> TestEvent | None:
    """
    Parses one line of interpreter output.

    Returns:
        The decoded event, or None if the line is not a well-formed test event.
    """
    text = line.strip()
    if not text.startswith("{"):
        return None

    try:
        payload = json.loads(text)
    except (ValueError, RecursionError):
        log.debug("Ignoring malformed event line", line=text[:200])
        return None

    if not isinstance(payload, dict):
        return None

    try:
        event_type = EventType(payload.get("type"))
    except ValueError:
        log.debug("Ignoring JSON line with unknown event type", event_type=payload.get("type"))
        return None

    title = payload.get("title")
    if event_type in _TITLED_EVENTS and not isinstance(title, str):
        return None
    if title is not None and not isinstance(title, str):
        title = None

    result = None
    if event_type in _RESULT_EVENTS:
        result = ResultObject.from_payload(payload.get("result"))
        if result is None:
            log.debug("Ignoring event without a usable result object", event_type=event_type.value)
            return None

    return TestEvent(type=event_type, title=title, result=result)
