#
# src/testadapter/frameworks/base.py
#
"""
Argument builders for the supported scripting-language test frameworks.
"""
from pathlib import Path
from typing import Any

from attrs import define


@define(frozen=True, slots=True)
class TestCaseObject:
    """
    One entry of the JSON array written to the runner's standard input.
    """
    __test__ = False

    framework: str
    test_name: str
    test_file: str
    working_folder: str
    project_folder: str

    @classmethod
    def from_arguments(cls, arguments: list[str]) -> "TestCaseObject":
        """Builds the entry from `TestFramework.arguments_to_run_tests` output."""
        _runner, framework, test_name, test_file, working_folder, project_folder = arguments
        return cls(framework, test_name, test_file, working_folder, project_folder)

    def to_payload(self) -> dict[str, Any]:
        return {
            "framework": self.framework,
            "testName": self.test_name,
            "testFile": self.test_file,
            "workingFolder": self.working_folder,
            "projectFolder": self.project_folder,
        }


@define(frozen=True, slots=True)
class TestFramework:
    """
    A test framework the runner script knows how to drive.

    Every framework shares the same runner script; the framework name travels
    in the stdin payload so the script can pick its adapter.
    """
    __test__ = False

    name: str
    runner_script: Path

    def arguments_to_run_tests(
        self,
        test_name: str,
        test_file: Path,
        project_root: Path,
    ) -> list[str]:
        """
        Returns the runner invocation for one test.

        `test_file` must already be resolved; the working folder is its
        directory. The list is ``[runner script, framework, test name, test
        file, working folder, project folder]``; only the first element is
        passed on the interpreter command line.
        """
        return [
            str(self.runner_script),
            self.name,
            test_name,
            str(test_file),
            str(test_file.parent),
            str(project_root.resolve()),
        ]
