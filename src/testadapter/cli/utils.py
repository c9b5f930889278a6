# src/testadapter/cli/utils.py

import logging
from pathlib import Path

import click
import structlog

from testadapter.config import AdapterConfig, load_config
from testadapter.telemetry.logger import setup_logging as core_setup_logging

log = structlog.get_logger("cli.utils")

ENV_PREFIX = "TESTADAPTER"
LOG_LEVEL_CHOICES = click.Choice(list(logging._nameToLevel.keys()), case_sensitive=False)

# Applied bottom-up, so they appear in --help in this order.
_LOGGING_OPTIONS = (
    click.option(
        "--json-logs",
        is_flag=True,
        default=None,
        envvar=f"{ENV_PREFIX}_JSON_LOGS",
        help="Output console logs as JSON.",
    ),
    click.option(
        "--log-file",
        type=click.Path(dir_okay=False, writable=True, resolve_path=True),
        default=None,
        envvar=f"{ENV_PREFIX}_LOG_FILE",
        help="Also write logs to this file (JSON format).",
    ),
    click.option(
        "-l",
        "--log-level",
        type=LOG_LEVEL_CHOICES,
        default=None,
        envvar=f"{ENV_PREFIX}_LOG_LEVEL",
        help="Set the logging level (overrides config file).",
    ),
)


def logging_options(f):
    """Decorator adding --log-level, --log-file and --json-logs to a command."""
    for option in _LOGGING_OPTIONS:
        f = option(f)
    return f


def config_path_option(required: bool):
    """Decorator adding the shared --config-path option."""
    return click.option(
        "-c",
        "--config-path",
        type=click.Path(exists=True, file_okay=True, dir_okay=False, readable=True, path_type=Path),
        default=Path("testadapter.conf") if required else None,
        show_default=required,
        envvar=f"{ENV_PREFIX}_CONF",
        help="Path to the testadapter configuration file.",
        show_envvar=True,
    )


def load_optional_config(config_path: Path | None) -> AdapterConfig:
    """Loads the config file if one was given, otherwise returns the defaults."""
    if config_path is None:
        log.debug("No configuration file given, using defaults")
        return AdapterConfig()
    return load_config(config_path)


def _level_number(level_name: str) -> int:
    level = logging.getLevelName(level_name.upper())
    return level if isinstance(level, int) else logging.INFO


def setup_logging_from_context(
    ctx: click.Context,
    local_log_level: str | None = None,
    local_log_file: str | None = None,
    local_json_logs: bool | None = None,
    default_log_level: str = "INFO",
) -> None:
    """
    Configures logging from the group's options, letting a subcommand's own
    options win.
    """
    group_options = ctx.obj or {}
    level = _level_number(local_log_level or group_options.get("LOG_LEVEL") or default_log_level)
    log_file = local_log_file or group_options.get("LOG_FILE")
    json_logs = local_json_logs if local_json_logs is not None else group_options.get("JSON_LOGS", False)

    core_setup_logging(level=level, json_logs=bool(json_logs), log_file=log_file)
    log.debug(
        "CLI logging initialized",
        command=ctx.info_name,
        level=logging.getLevelName(level),
        file=log_file or "console",
        json=json_logs,
    )

# ⚙️🛠️
