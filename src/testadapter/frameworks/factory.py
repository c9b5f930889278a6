#
# src/testadapter/frameworks/factory.py
#
"""
Registry and factory for TestFramework instances.
"""
from collections.abc import Iterable, Mapping
from pathlib import Path

import structlog

from testadapter.config.models import RunnerConfig
from testadapter.exceptions import ConfigurationError, UnsupportedFrameworkError
from testadapter.frameworks.base import TestFramework

log = structlog.get_logger("frameworks.factory")

BUILTIN_FRAMEWORKS = ("export", "jasmine", "jest", "mocha", "tape")


class FrameworkRegistry:
    """Looks up the TestFramework for a test's declared framework name."""

    def __init__(self, frameworks: Mapping[str, TestFramework]):
        self._frameworks = {name.lower(): fw for name, fw in frameworks.items()}

    @classmethod
    def from_names(cls, names: Iterable[str], runner_script: Path) -> "FrameworkRegistry":
        return cls({name: TestFramework(name=name, runner_script=runner_script) for name in names})

    @property
    def names(self) -> list[str]:
        return sorted(self._frameworks)

    def get(self, framework_name: str) -> TestFramework:
        framework = self._frameworks.get(framework_name.lower())
        if framework is None:
            log.error("Unsupported test framework requested", framework=framework_name)
            raise UnsupportedFrameworkError(
                f"Unsupported test framework: '{framework_name}'. "
                f"Available frameworks: {self.names}"
            )
        return framework

    def __contains__(self, framework_name: str) -> bool:
        return framework_name.lower() in self._frameworks


def discover_frameworks(frameworks_dir: Path, runner_script: Path) -> FrameworkRegistry:
    """
    Builds a registry from a frameworks directory.

    Every sub-directory is a framework adapter named after the directory.
    """
    if not frameworks_dir.is_dir():
        raise ConfigurationError(f"Frameworks directory does not exist: {frameworks_dir}")

    names = sorted(
        entry.name for entry in frameworks_dir.iterdir()
        if entry.is_dir() and not entry.name.startswith(".")
    )
    log.debug("Discovered test frameworks", frameworks_dir=str(frameworks_dir), frameworks=names)
    return FrameworkRegistry.from_names(names, runner_script)


def get_framework_registry(config: RunnerConfig) -> FrameworkRegistry:
    """
    Factory function returning the framework registry for a runner config.

    Uses the configured frameworks directory when there is one, otherwise
    the built-in framework set.
    """
    runner_script = config.runner_script_path
    if config.frameworks_dir is not None:
        registry = discover_frameworks(config.frameworks_dir, runner_script)
        if registry.names:
            return registry
        log.warning(
            "No frameworks found in frameworks directory, using built-in set",
            frameworks_dir=str(config.frameworks_dir),
        )
    return FrameworkRegistry.from_names(BUILTIN_FRAMEWORKS, runner_script)

# 🔼⚙️
