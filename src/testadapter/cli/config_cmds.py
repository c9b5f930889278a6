# src/testadapter/cli/config_cmds.py

from pathlib import Path

import click
import structlog
from rich.pretty import pretty_repr

from testadapter.cli.utils import config_path_option, logging_options, setup_logging_from_context
from testadapter.config import load_config
from testadapter.exceptions import ConfigurationError
from testadapter.frameworks import get_framework_registry
from testadapter.telemetry import StructLogger

log: StructLogger = structlog.get_logger("cli.config")


@click.group(name="config")
def config_cli():
    """Commands for inspecting and validating configuration."""
    pass


@config_cli.command(name="show")
@config_path_option(required=True)
@logging_options
@click.pass_context
def show_config(ctx: click.Context, config_path: Path, **kwargs):
    """Load, validate, and display the configuration."""
    setup_logging_from_context(
        ctx,
        local_log_level=kwargs.get("log_level"),
        local_log_file=kwargs.get("log_file"),
        local_json_logs=kwargs.get("json_logs"),
    )
    log.info("Executing 'config show' command", config_path=str(config_path))

    try:
        config = load_config(config_path)
        registry = get_framework_registry(config.runner)
        log.debug("Configuration loaded successfully by 'show' command.")

        click.echo(pretty_repr(config, expand_all=True))
        click.echo(f"Frameworks: {', '.join(registry.names)}")
    except ConfigurationError as e:
        log.error("Failed to load or validate configuration", error=str(e), exc_info=True)
        click.echo(f"Error: Configuration problem in '{config_path}':\n{e}", err=True)
        ctx.exit(1)

# 🔼⚙️
