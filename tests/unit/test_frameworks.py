#
# tests/unit/test_frameworks.py
#
"""
Tests for framework argument building and the framework registry.
"""

from pathlib import Path

import pytest

from testadapter.config import RunnerConfig
from testadapter.exceptions import ConfigurationError, UnsupportedFrameworkError
from testadapter.frameworks import (
    BUILTIN_FRAMEWORKS,
    FrameworkRegistry,
    TestCaseObject,
    TestFramework,
    discover_frameworks,
    get_framework_registry,
)


class TestTestFramework:
    def test_working_folder_is_test_file_directory(self, tmp_path: Path) -> None:
        framework = TestFramework(name="mocha", runner_script=tmp_path / "run_tests.js")
        test_file = tmp_path / "src" / "test" / "math.js"

        args = framework.arguments_to_run_tests("adds", test_file, tmp_path)

        assert args == [
            str(tmp_path / "run_tests.js"),
            "mocha",
            "adds",
            str(test_file),
            str(tmp_path / "src" / "test"),
            str(tmp_path.resolve()),
        ]

    def test_project_folder_is_normalised(self, tmp_path: Path) -> None:
        (tmp_path / "src").mkdir()
        framework = TestFramework(name="tape", runner_script=Path("run_tests.js"))

        args = framework.arguments_to_run_tests("adds", tmp_path / "a.js", tmp_path / "src" / "..")

        assert args[5] == str(tmp_path.resolve())

    def test_payload_uses_runner_field_names(self) -> None:
        obj = TestCaseObject.from_arguments(["run_tests.js", "jest", "adds", "/p/a.js", "/p", "/p"])

        assert obj.to_payload() == {
            "framework": "jest",
            "testName": "adds",
            "testFile": "/p/a.js",
            "workingFolder": "/p",
            "projectFolder": "/p",
        }


class TestFrameworkRegistry:
    def test_lookup_is_case_insensitive(self) -> None:
        registry = FrameworkRegistry.from_names(["Mocha"], Path("run_tests.js"))

        assert registry.get("MOCHA").name == "Mocha"
        assert "mocha" in registry
        assert registry.names == ["mocha"]

    def test_unknown_framework_raises(self) -> None:
        registry = FrameworkRegistry.from_names(BUILTIN_FRAMEWORKS, Path("run_tests.js"))

        with pytest.raises(UnsupportedFrameworkError, match="qunit"):
            registry.get("qunit")

    def test_discovers_framework_directories(self, tmp_path: Path) -> None:
        for name in ("mocha", "jasmine", ".cache"):
            (tmp_path / name).mkdir()
        (tmp_path / "run_tests.js").write_text("")

        registry = discover_frameworks(tmp_path, tmp_path / "run_tests.js")

        assert registry.names == ["jasmine", "mocha"]

    def test_missing_frameworks_dir_raises(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigurationError, match="does not exist"):
            discover_frameworks(tmp_path / "missing", tmp_path / "run_tests.js")


class TestGetFrameworkRegistry:
    def test_builtins_without_frameworks_dir(self) -> None:
        registry = get_framework_registry(RunnerConfig())

        assert registry.names == sorted(BUILTIN_FRAMEWORKS)
        assert registry.get("mocha").runner_script == Path("run_tests.js")

    def test_runner_script_lives_in_frameworks_dir(self, tmp_path: Path) -> None:
        (tmp_path / "vitest").mkdir()

        registry = get_framework_registry(RunnerConfig(frameworks_dir=tmp_path))

        assert registry.names == ["vitest"]
        assert registry.get("vitest").runner_script == tmp_path / "run_tests.js"

    def test_empty_frameworks_dir_falls_back_to_builtins(self, tmp_path: Path) -> None:
        registry = get_framework_registry(RunnerConfig(frameworks_dir=tmp_path))

        assert registry.names == sorted(BUILTIN_FRAMEWORKS)
