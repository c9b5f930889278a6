# src/testadapter/runtime/correlator.py

"""
Maps decoded runner events onto the tests requested for one group and reports
their outcomes to the host.
"""

from collections.abc import Iterable

import structlog

from testadapter.events import EventType, ResultObject, TestEvent, decode_event
from testadapter.protocols import (
    FrameworkHandle,
    TestCase,
    TestIdentity,
    TestOutcome,
)
from testadapter.state import InFlightResult
from testadapter.telemetry import StructLogger

log: StructLogger = structlog.get_logger("runtime.correlator")


class ResultCorrelator:
    """
    Tracks the pending tests of one group.

    The runner only reports test titles, so events are matched on each test's
    display name. Titles are expected to be unique within a group; when they
    are not, every matching test receives the same update.
    """

    def __init__(self, tests: Iterable[TestCase], handle: FrameworkHandle):
        self._handle = handle
        self._pending: dict[TestIdentity, TestCase] = {}
        for test in tests:
            self._pending.setdefault(test.identity, test)
        self._in_flight: dict[TestIdentity, InFlightResult] = {}
        self.outcomes: dict[TestIdentity, TestOutcome] = {}
        self.suite_result: ResultObject | None = None

    @property
    def pending_tests(self) -> list[TestCase]:
        return list(self._pending.values())

    def handle_line(self, line: str) -> None:
        """Output callback for the process supervisor."""
        event = decode_event(line)
        if event is not None:
            self.dispatch(event)

    def dispatch(self, event: TestEvent) -> None:
        log.debug("Dispatching runner event", event_type=event.type.value, title=event.title, emoji_key="event")
        if event.type is EventType.TEST_START:
            self.on_test_start(event.title or "")
        elif event.type is EventType.RESULT and event.result is not None:
            self.on_result(event.title or "", event.result)
        elif event.type is EventType.PENDING and event.result is not None:
            self.on_pending(event.title or "", event.result)
        elif event.type is EventType.SUITE_END and event.result is not None:
            self.on_suite_end(event.result)

    def _match(self, title: str) -> list[TestCase]:
        matches = [test for test in self._pending.values() if test.display_name == title]
        if not matches:
            log.debug("No pending test matches event title", title=title)
        elif len(matches) > 1:
            log.warning("Event title matches several pending tests", title=title, count=len(matches))
        return matches

    def on_test_start(self, title: str) -> None:
        for test in self._match(title):
            result = InFlightResult(test)
            result.mark_running()
            self._in_flight[test.identity] = result
            self._handle.record_start(test)

    def on_result(self, title: str, result_object: ResultObject) -> None:
        for test in self._match(title):
            result = self._in_flight.get(test.identity) or InFlightResult(test)
            if result_object.pending is True:
                outcome = TestOutcome.SKIPPED
            else:
                outcome = TestOutcome.PASSED if result_object.passed else TestOutcome.FAILED
            self._finish(result, outcome, result_object)

    def on_pending(self, title: str, result_object: ResultObject) -> None:
        # Runners may report pending tests without a preceding "test start".
        for test in self._match(title):
            self._finish(InFlightResult(test), TestOutcome.SKIPPED, result_object)

    def on_suite_end(self, result_object: ResultObject) -> None:
        log.debug("Captured suite summary", stdout_len=len(result_object.stdout), stderr_len=len(result_object.stderr))
        self.suite_result = result_object

    def _finish(self, result: InFlightResult, outcome: TestOutcome, result_object: ResultObject) -> None:
        result.complete(outcome)
        result.attach_output(result_object.stdout, result_object.stderr)
        self._report(result)

    def _report(self, result: InFlightResult) -> None:
        test = result.test_case
        identity = test.identity
        if identity not in self._pending:
            return

        # Remove first so a failing host callback can never cause a second report.
        del self._pending[identity]
        self._in_flight.pop(identity, None)
        self.outcomes[identity] = result.outcome

        log.info("Test finished", test=test.display_name, outcome=result.outcome.name, emoji_key="result")
        self._handle.record_result(result.seal())
        self._handle.record_end(test, result.outcome)

    def finalize_unreported(self) -> list[TestCase]:
        """
        Forces every test still pending to Failed.

        The suite summary's output, if one was captured, is attached to each
        forced failure.

        Returns:
            The tests that were forced to fail.
        """
        unreported = self.pending_tests
        if unreported:
            log.warning(
                "Failing tests with no reported result",
                count=len(unreported),
                tests=[t.display_name for t in unreported],
                has_suite_output=self.suite_result is not None,
            )

        for test in unreported:
            result = self._in_flight.get(test.identity) or InFlightResult(test)
            result.complete(TestOutcome.FAILED)
            if self.suite_result is not None:
                result.attach_output(
                    self.suite_result.stdout,
                    self.suite_result.stderr,
                    include_additional_info=False,
                )
            self._report(result)
        return unreported
