# src/testadapter/cli/main.py

"""
Command line entry point for testadapter.

The group only wires up logging; `run` executes tests and `config` inspects
the adapter configuration.
"""

from importlib.metadata import PackageNotFoundError, version

import click
import structlog

from testadapter.cli.config_cmds import config_cli
from testadapter.cli.run_cmds import run_cli
from testadapter.cli.utils import logging_options, setup_logging_from_context
from testadapter.telemetry import StructLogger

try:
    __version__ = version("testadapter")
except PackageNotFoundError:
    __version__ = "0.0.0-dev"

log: StructLogger = structlog.get_logger("cli.main")


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(__version__, "-V", "--version", package_name="testadapter")
@logging_options
@click.pass_context
def cli(ctx: click.Context, log_level: str | None, log_file: str | None, json_logs: bool | None):
    """
    Testadapter: run script-framework unit tests and report per-test outcomes.

    Tests are addressed as '<module>::<test name>::<framework>' and run in the
    interpreter named by the project file.

    Configuration precedence: CLI options > Environment Variables > Config File > Defaults.
    """
    ctx.ensure_object(dict)
    ctx.obj.update(LOG_LEVEL=log_level, LOG_FILE=log_file, JSON_LOGS=bool(json_logs))

    # Quiet by default: the run summary is the primary output.
    setup_logging_from_context(ctx, default_log_level="WARNING")
    log.debug("CLI group initialized", subcommand=ctx.invoked_subcommand)


cli.add_command(config_cli)
cli.add_command(run_cli)

if __name__ == "__main__":
    cli()

# 🖥️⚙️
