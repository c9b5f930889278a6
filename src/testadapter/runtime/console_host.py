# src/testadapter/runtime/console_host.py

"""
A FrameworkHandle for command-line runs: collects results and renders a summary.
"""

import threading
from collections import Counter

import structlog
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from testadapter.protocols import (
    MessageCategory,
    TestCase,
    TestIdentity,
    TestMessageLevel,
    TestOutcome,
    TestResult,
)
from testadapter.telemetry import StructLogger

log: StructLogger = structlog.get_logger("runtime.console_host")

OUTCOME_STYLES = {
    TestOutcome.PASSED: ("✅", "green"),
    TestOutcome.FAILED: ("❌", "red"),
    TestOutcome.SKIPPED: ("⏭️", "yellow"),
}

MESSAGE_LOG_LEVELS = {
    TestMessageLevel.INFORMATIONAL: "info",
    TestMessageLevel.WARNING: "warning",
    TestMessageLevel.ERROR: "error",
}


class ConsoleFrameworkHandle:
    """Implements the FrameworkHandle protocol by recording everything it receives."""

    def __init__(self, console: Console | None = None):
        self.console = console or Console()
        self._lock = threading.Lock()
        self.started: list[TestCase] = []
        self.results: list[TestResult] = []
        self.outcomes: dict[TestIdentity, TestOutcome] = {}
        self.messages: list[tuple[TestMessageLevel, str]] = []

    def record_start(self, test_case: TestCase) -> None:
        with self._lock:
            self.started.append(test_case)
        log.debug("Test started", test=test_case.fully_qualified_name)

    def record_result(self, result: TestResult) -> None:
        with self._lock:
            self.results.append(result)

    def record_end(self, test_case: TestCase, outcome: TestOutcome) -> None:
        with self._lock:
            self.outcomes[test_case.identity] = outcome
        log.info("Test ended", test=test_case.fully_qualified_name, outcome=outcome.name)

    def send_message(self, level: TestMessageLevel, message: str) -> None:
        with self._lock:
            self.messages.append((level, message))
        getattr(log, MESSAGE_LOG_LEVELS[level])("Message from test run", message=message)

    @property
    def has_failures(self) -> bool:
        return any(outcome is TestOutcome.FAILED for outcome in self.outcomes.values())

    def counts(self) -> Counter:
        return Counter(outcome.name.lower() for outcome in self.outcomes.values())

    def render_summary(self, show_output: bool = False) -> None:
        table = Table(title="Test Results", show_lines=show_output)
        table.add_column("", no_wrap=True)
        table.add_column("Test")
        table.add_column("Outcome", no_wrap=True)
        table.add_column("Duration", justify="right", no_wrap=True)
        if show_output:
            table.add_column("Output")

        for result in self.results:
            symbol, style = OUTCOME_STYLES.get(result.outcome, ("?", "white"))
            duration = f"{result.duration.total_seconds():.2f}s" if result.duration else "-"
            row = [symbol, escape(result.test_case.display_name), f"[{style}]{result.outcome.name}[/]", duration]
            if show_output:
                output = result.messages_for(MessageCategory.STANDARD_OUT)
                errors = result.messages_for(MessageCategory.STANDARD_ERROR)
                row.append(escape("\n".join(t for t in (*output, *errors) if t.strip())))
            table.add_row(*row)

        self.console.print(table)
        for level, message in self.messages:
            if level is TestMessageLevel.ERROR:
                self.console.print(f"[bold red]Error:[/] {escape(message)}")

        counts = self.counts()
        self.console.print(
            f"{counts.get('passed', 0)} passed, {counts.get('failed', 0)} failed, "
            f"{counts.get('skipped', 0)} skipped"
        )
