#
# config/loader.py
#
"""
Loads and validates the testadapter TOML configuration file.
"""

import os
import tomllib
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import attrs
import structlog

from testadapter.config.models import AdapterConfig, GlobalConfig, RunnerConfig
from testadapter.exceptions import ConfigurationError
from testadapter.telemetry import StructLogger

log: StructLogger = structlog.get_logger("config.loader")

ENV_LOG_LEVEL = "TESTADAPTER_LOG_LEVEL"


def _build_section(cls: type, data: Any, section: str, config_path: Path) -> Any:
    """Instantiates an attrs section model, rejecting unknown keys."""
    if not isinstance(data, Mapping):
        raise ConfigurationError(f"Section [{section}] must be a table", config_path)

    known = {a.name for a in attrs.fields(cls)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigurationError(f"Unknown key(s) in [{section}]: {', '.join(unknown)}", config_path)

    try:
        return cls(**data)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid value in [{section}]: {e}", config_path) from e


def _resolve_runner_paths(data: dict[str, Any], config_path: Path) -> dict[str, Any]:
    resolved = dict(data)
    frameworks_dir = resolved.get("frameworks_dir")
    if frameworks_dir is not None:
        path = Path(frameworks_dir).expanduser()
        if not path.is_absolute():
            path = config_path.parent / path
        resolved["frameworks_dir"] = path.resolve()
    return resolved


def load_config(config_path: Path) -> AdapterConfig:
    """
    Loads, parses and validates a testadapter configuration file.

    Environment variables take precedence over values in the file for the
    global log level.

    Raises:
        ConfigurationError: If the file cannot be read, is not valid TOML,
            or contains invalid values.
    """
    config_log = log.bind(config_path=str(config_path))
    config_log.debug("Loading configuration", emoji_key="settings")

    try:
        raw_text = config_path.read_text(encoding="utf-8")
    except FileNotFoundError as e:
        raise ConfigurationError("Configuration file not found", config_path) from e
    except OSError as e:
        raise ConfigurationError(f"Unable to read configuration file: {e}", config_path) from e

    try:
        data = tomllib.loads(raw_text)
    except tomllib.TOMLDecodeError as e:
        raise ConfigurationError(f"Invalid TOML syntax: {e}", config_path) from e

    unknown_sections = sorted(set(data) - {"global", "runner"})
    if unknown_sections:
        raise ConfigurationError(f"Unknown section(s): {', '.join(unknown_sections)}", config_path)

    global_data = dict(data.get("global", {}))
    env_level = os.environ.get(ENV_LOG_LEVEL)
    if env_level:
        config_log.debug("Overriding log level from environment", env_var=ENV_LOG_LEVEL, value=env_level)
        global_data["log_level"] = env_level

    global_config = _build_section(GlobalConfig, global_data, "global", config_path)
    runner_data = data.get("runner", {})
    if isinstance(runner_data, Mapping):
        runner_data = _resolve_runner_paths(dict(runner_data), config_path)
    runner_config = _build_section(RunnerConfig, runner_data, "runner", config_path)

    config = AdapterConfig(
        global_config=global_config,
        runner=runner_config,
        config_file_path=config_path,
    )
    config_log.info("Configuration loaded", log_level=global_config.log_level, emoji_key="settings")
    return config


# 🔼⚙️
