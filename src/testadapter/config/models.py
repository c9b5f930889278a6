#
# config/models.py
#
"""
Attrs-based data models for testadapter configuration structure.
"""

import logging
from pathlib import Path
from typing import Any

from attrs import define, field


def _validate_log_level(inst: Any, attr: Any, value: str) -> None:
    """Validator for standard logging level names."""
    valid = logging._nameToLevel.keys()
    if value.upper() not in valid:
        raise ValueError(f"Invalid log_level '{value}'. Must be one of {list(valid)}.")


def _validate_positive_int(inst: Any, attr: Any, value: int) -> None:
    """Validator ensures integer is positive."""
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ValueError(f"Field '{attr.name}' must be positive integer, got {value}")


def _validate_positive_number(inst: Any, attr: Any, value: float) -> None:
    if isinstance(value, bool) or not isinstance(value, int | float) or value <= 0:
        raise ValueError(f"Field '{attr.name}' must be a positive number, got {value}")


def _validate_debug_flag(inst: Any, attr: Any, value: str) -> None:
    if "{port}" not in value:
        raise ValueError(f"Field '{attr.name}' must contain a '{{port}}' placeholder, got '{value}'")


@define(frozen=True, slots=True)
class RunnerConfig:
    """Settings controlling how interpreter processes are launched."""
    # Directory holding one sub-directory per test framework plus the runner script.
    frameworks_dir: Path | None = field(default=None)
    runner_script: str = field(default="run_tests.js")
    default_interpreter: str = field(default="node")
    debug_break_flag: str = field(default="--debug-brk={port}", validator=_validate_debug_flag)
    attach_poll_interval: float = field(default=0.5, validator=_validate_positive_number)
    port_search_attempts: int = field(default=100, validator=_validate_positive_int)
    kill_process_tree: bool = field(default=True)

    @property
    def runner_script_path(self) -> Path:
        script = Path(self.runner_script)
        if self.frameworks_dir is not None and not script.is_absolute():
            return self.frameworks_dir / script
        return script


@define(frozen=True, slots=True)
class GlobalConfig:
    """Global default settings for testadapter."""
    log_level: str = field(default="INFO", validator=_validate_log_level)

    @property
    def numeric_log_level(self) -> int:
        return logging.getLevelName(self.log_level.upper())


@define(frozen=True, slots=True)
class AdapterConfig:
    """Root configuration object for the testadapter application."""
    global_config: GlobalConfig = field(factory=GlobalConfig, metadata={"toml_name": "global"})
    runner: RunnerConfig = field(factory=RunnerConfig)
    config_file_path: Path | None = field(default=None)


# 🔼⚙️
