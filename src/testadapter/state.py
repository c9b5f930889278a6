# src/testadapter/state.py
#
"""
Defines the mutable per-test state tracked while a group of tests is running.
"""

import os
from datetime import UTC, datetime, timedelta

import structlog
from attrs import field, mutable

from testadapter.protocols import (
    MessageCategory,
    TestCase,
    TestOutcome,
    TestResult,
    TestResultMessage,
)
from testadapter.telemetry import StructLogger

log: StructLogger = structlog.get_logger("state")


def normalize_newlines(text: str) -> str:
    """Rejoins interpreter output lines with the platform line separator."""
    return os.linesep.join(text.split("\n"))


@mutable(slots=True)
class InFlightResult:
    """
    Holds the evolving result of one requested test.

    Created when the interpreter reports that the test started (or lazily when
    a terminal event arrives first), mutated by the correlator, and sealed into
    an immutable TestResult once a terminal outcome is known.
    """

    test_case: TestCase = field()
    outcome: TestOutcome = field(default=TestOutcome.UNSET)
    start_time: datetime | None = field(default=None)
    end_time: datetime | None = field(default=None)
    messages: list[TestResultMessage] = field(factory=list)

    def mark_running(self) -> None:
        self.outcome = TestOutcome.RUNNING
        self.start_time = datetime.now(UTC)
        self.end_time = None
        self.messages.clear()
        log.debug("Test started", test=self.test_case.display_name)

    def complete(self, outcome: TestOutcome) -> None:
        """Moves the result into a terminal outcome."""
        if not outcome.is_terminal:
            raise ValueError(f"Cannot complete a result with non-terminal outcome {outcome.name}")
        if self.outcome.is_terminal:
            log.warning(
                "Result already completed, ignoring new outcome",
                test=self.test_case.display_name,
                old_outcome=self.outcome.name,
                new_outcome=outcome.name,
            )
            return

        self.outcome = outcome
        # Skipped tests never ran, so they carry no timing.
        if outcome is not TestOutcome.SKIPPED:
            self.end_time = datetime.now(UTC)
        log.debug("Test completed", test=self.test_case.display_name, outcome=outcome.name)

    def attach_output(self, stdout: str, stderr: str, include_additional_info: bool = True) -> None:
        """Attaches captured interpreter output as result messages."""
        stdout_text = normalize_newlines(stdout)
        stderr_text = normalize_newlines(stderr)
        self.messages.append(TestResultMessage(MessageCategory.STANDARD_OUT, stdout_text))
        self.messages.append(TestResultMessage(MessageCategory.STANDARD_ERROR, stderr_text))
        if include_additional_info:
            self.messages.append(TestResultMessage(MessageCategory.ADDITIONAL_INFO, stderr_text))

    @property
    def duration(self) -> timedelta | None:
        if self.start_time is None or self.end_time is None:
            return None
        return self.end_time - self.start_time

    def seal(self) -> TestResult:
        if not self.outcome.is_terminal:
            raise ValueError(
                f"Cannot seal result for '{self.test_case.display_name}' in state {self.outcome.name}"
            )
        return TestResult(
            test_case=self.test_case,
            outcome=self.outcome,
            start_time=self.start_time,
            end_time=self.end_time,
            duration=self.duration,
            messages=tuple(self.messages),
        )
