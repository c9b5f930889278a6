import sys
import textwrap
from collections.abc import Callable
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from testadapter.config import RunnerConfig
from testadapter.protocols import FrameworkHandle, ProjectSettings, TestCase
from testadapter.runtime import TestExecutor

# Prepended to every fake runner script: reads the test list from stdin like
# the real runner script and offers `emit` for writing events.
RUNNER_PRELUDE = """\
import json
import sys
import time
from pathlib import Path


def emit(obj):
    print(json.dumps(obj), flush=True)


tests = json.loads(sys.stdin.readline() or "[]")
"""


@pytest.fixture
def project_file(tmp_path: Path) -> Path:
    path = tmp_path / "project.toml"
    path.write_text("[project]\n")
    return path


@pytest.fixture
def make_test(tmp_path: Path, project_file: Path) -> Callable[..., TestCase]:
    def _make(
        name: str,
        module: str = "suite.js",
        framework: str = "mocha",
        source: Path | None = None,
    ) -> TestCase:
        return TestCase.from_fully_qualified_name(
            f"{module}::{name}::{framework}",
            code_file_path=tmp_path / module,
            source=source or project_file,
        )

    return _make


@pytest.fixture
def write_runner(tmp_path: Path) -> Callable[..., Path]:
    def _write(body: str, name: str = "runner.py") -> Path:
        path = tmp_path / name
        path.write_text(RUNNER_PRELUDE + textwrap.dedent(body))
        return path

    return _write


@pytest.fixture
def python_settings(tmp_path: Path) -> ProjectSettings:
    return ProjectSettings(
        interpreter_path=Path(sys.executable),
        working_dir=tmp_path,
        project_root_dir=tmp_path,
    )


@pytest.fixture
def settings_resolver(python_settings: ProjectSettings) -> MagicMock:
    resolver = MagicMock()
    resolver.resolve.return_value = python_settings
    return resolver


@pytest.fixture
def handle() -> MagicMock:
    return MagicMock(spec=FrameworkHandle)


@pytest.fixture
def make_executor(settings_resolver: MagicMock) -> Callable[..., TestExecutor]:
    def _make(runner: Path, **runner_options) -> TestExecutor:
        runner_options.setdefault("attach_poll_interval", 0.05)
        config = RunnerConfig(runner_script=str(runner), **runner_options)
        return TestExecutor(settings_resolver, config=config)

    return _make

