#
# tests/unit/test_state.py
#
"""
Tests for the per-test in-flight result state.
"""

import os

import pytest

from testadapter.protocols import MessageCategory, TestCase, TestInfo, TestOutcome
from testadapter.state import InFlightResult, normalize_newlines


@pytest.fixture
def result(make_test) -> InFlightResult:
    return InFlightResult(make_test("adds"))


class TestInFlightResult:
    def test_starts_unset(self, result: InFlightResult) -> None:
        assert result.outcome is TestOutcome.UNSET
        assert result.duration is None

    def test_running_then_passed_has_duration(self, result: InFlightResult) -> None:
        result.mark_running()
        result.complete(TestOutcome.PASSED)

        sealed = result.seal()
        assert sealed.outcome is TestOutcome.PASSED
        assert sealed.duration is not None
        assert sealed.duration.total_seconds() >= 0

    def test_skipped_has_no_end_time(self, result: InFlightResult) -> None:
        result.complete(TestOutcome.SKIPPED)

        assert result.end_time is None

    def test_terminal_outcome_is_final(self, result: InFlightResult) -> None:
        result.complete(TestOutcome.FAILED)
        result.complete(TestOutcome.PASSED)

        assert result.outcome is TestOutcome.FAILED

    def test_non_terminal_completion_rejected(self, result: InFlightResult) -> None:
        with pytest.raises(ValueError):
            result.complete(TestOutcome.RUNNING)

    def test_cannot_seal_running_result(self, result: InFlightResult) -> None:
        result.mark_running()

        with pytest.raises(ValueError):
            result.seal()

    def test_output_without_additional_info(self, result: InFlightResult) -> None:
        result.attach_output("out", "err", include_additional_info=False)
        result.complete(TestOutcome.FAILED)

        sealed = result.seal()
        assert sealed.messages_for(MessageCategory.STANDARD_OUT) == ["out"]
        assert sealed.messages_for(MessageCategory.STANDARD_ERROR) == ["err"]
        assert sealed.messages_for(MessageCategory.ADDITIONAL_INFO) == []


class TestHelpers:
    def test_normalize_newlines(self) -> None:
        assert normalize_newlines("a\nb\n") == f"a{os.linesep}b{os.linesep}"

    def test_fully_qualified_name_round_trip(self, tmp_path) -> None:
        test = TestCase.from_fully_qualified_name("a.js::outer::inner::mocha", tmp_path / "a.js", tmp_path)

        assert test.info == TestInfo("a.js", "outer::inner", "mocha")
        assert test.info.to_fully_qualified_name() == test.fully_qualified_name
