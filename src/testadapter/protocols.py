# src/testadapter/protocols.py

"""
Defines the data structures exchanged with the host and the protocols of the
host-side collaborators (result reporting, debugger, settings, discovery).
"""

from collections.abc import Iterable, Sequence
from datetime import datetime, timedelta
from enum import Enum, auto
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from attrs import define, field

from testadapter.exceptions import InvalidTestIdError

FQN_SEPARATOR = "::"


class TestOutcome(Enum):
    """Outcome of a single test, from the host's point of view."""

    __test__ = False

    UNSET = auto()
    RUNNING = auto()
    PASSED = auto()
    FAILED = auto()
    SKIPPED = auto()

    @property
    def is_terminal(self) -> bool:
        return self in (TestOutcome.PASSED, TestOutcome.FAILED, TestOutcome.SKIPPED)


class TestMessageLevel(Enum):
    __test__ = False

    INFORMATIONAL = "informational"
    WARNING = "warning"
    ERROR = "error"


class MessageCategory(Enum):
    STANDARD_OUT = "StdOutMsgs"
    STANDARD_ERROR = "StdErrMsgs"
    ADDITIONAL_INFO = "AdditionalInfo"


@define(frozen=True, slots=True)
class TestInfo:
    """
    The parts of a fully-qualified test name.

    Fully-qualified names have the form ``<module path>::<test name>::<framework>``.
    The test name may itself contain the separator.
    """

    __test__ = False

    module_path: str
    test_name: str
    framework: str

    @classmethod
    def parse(cls, fully_qualified_name: str) -> "TestInfo":
        module_path, sep, rest = fully_qualified_name.partition(FQN_SEPARATOR)
        test_name, sep2, framework = rest.rpartition(FQN_SEPARATOR)
        if not sep or not sep2 or not module_path or not test_name or not framework:
            raise InvalidTestIdError(
                f"Invalid fully-qualified test name '{fully_qualified_name}'. "
                f"Expected '<module>{FQN_SEPARATOR}<test name>{FQN_SEPARATOR}<framework>'."
            )
        return cls(module_path=module_path, test_name=test_name, framework=framework)

    def to_fully_qualified_name(self) -> str:
        return FQN_SEPARATOR.join((self.module_path, self.test_name, self.framework))


@define(frozen=True, slots=True)
class TestIdentity:
    """Stable key of a requested test."""

    __test__ = False

    code_file_path: Path
    fully_qualified_name: str


@define(frozen=True, slots=True)
class TestCase:
    """A discovered test the host asked us to run."""

    __test__ = False

    fully_qualified_name: str
    display_name: str
    code_file_path: Path
    # Project file the test was discovered from; used to resolve settings.
    source: Path
    info: TestInfo = field(init=False, eq=False, repr=False)

    @info.default
    def _parse_info(self) -> TestInfo:
        return TestInfo.parse(self.fully_qualified_name)

    @classmethod
    def from_fully_qualified_name(
        cls,
        fully_qualified_name: str,
        code_file_path: Path,
        source: Path,
    ) -> "TestCase":
        info = TestInfo.parse(fully_qualified_name)
        return cls(
            fully_qualified_name=fully_qualified_name,
            display_name=info.test_name,
            code_file_path=code_file_path,
            source=source,
        )

    @property
    def identity(self) -> TestIdentity:
        return TestIdentity(self.code_file_path, self.fully_qualified_name)


@define(frozen=True, slots=True)
class TestResultMessage:
    __test__ = False

    category: MessageCategory
    text: str


@define(frozen=True, slots=True)
class TestResult:
    """Sealed result of one test, handed to the host."""

    __test__ = False

    test_case: TestCase
    outcome: TestOutcome
    start_time: datetime | None = None
    end_time: datetime | None = None
    duration: timedelta | None = None
    messages: tuple[TestResultMessage, ...] = ()

    def messages_for(self, category: MessageCategory) -> list[str]:
        return [m.text for m in self.messages if m.category is category]


@define(frozen=True, slots=True)
class ProjectSettings:
    """Interpreter and directory settings for one project file."""

    interpreter_path: Path
    working_dir: Path
    project_root_dir: Path


@runtime_checkable
class FrameworkHandle(Protocol):
    """Host interface receiving run progress and results."""

    def record_start(self, test_case: TestCase) -> None:
        ...

    def record_result(self, result: TestResult) -> None:
        ...

    def record_end(self, test_case: TestCase, outcome: TestOutcome) -> None:
        ...

    def send_message(self, level: TestMessageLevel, message: str) -> None:
        ...


@runtime_checkable
class Debugger(Protocol):
    """Host debugger that can attach to a launched interpreter."""

    def attach(self, process: Any, transport_id: str, connection_string: str) -> bool:
        """
        Attempts to attach to the given process.

        Returns:
            True when attached, False when the debuggee is not ready yet.

        Raises:
            Exception: Any failure to talk to the debugger is fatal for the group.
        """
        ...

    def detach_all(self) -> None:
        ...


@define(frozen=True, slots=True)
class RunContext:
    """Per-run settings supplied by the host."""

    is_being_debugged: bool = False
    debugger: Debugger | None = None


@runtime_checkable
class SettingsResolver(Protocol):
    def resolve(self, project_file: Path) -> ProjectSettings:
        """
        Loads project settings for a project file.

        Raises:
            SettingsError: If the project file cannot be loaded.
        """
        ...


@runtime_checkable
class TestDiscoverer(Protocol):
    def discover_tests(self, sources: Iterable[Path]) -> Sequence[TestCase]:
        ...

# 🔼⚙️
