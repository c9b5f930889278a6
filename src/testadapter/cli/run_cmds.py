# src/testadapter/cli/run_cmds.py

import asyncio
import sys
from pathlib import Path

import click
import structlog

from testadapter.cli.utils import (
    config_path_option,
    load_optional_config,
    logging_options,
    setup_logging_from_context,
)
from testadapter.exceptions import ConfigurationError, InvalidTestIdError, SettingsError
from testadapter.protocols import RunContext, TestCase, TestInfo
from testadapter.runtime import ConsoleFrameworkHandle, TestExecutor
from testadapter.runtime.scheduler import resolve_module_path
from testadapter.settings import TomlProjectSettingsResolver
from testadapter.telemetry import StructLogger

log: StructLogger = structlog.get_logger("cli.run")


def build_test_cases(project_file: Path, test_ids: tuple[str, ...], working_dir: Path) -> list[TestCase]:
    """
    Turns fully-qualified test ids into TestCases belonging to `project_file`.

    Relative module paths are resolved against the project's working directory,
    the same base the executor uses for the runner payload.
    """
    project_file = project_file.resolve()
    tests = []
    for test_id in test_ids:
        info = TestInfo.parse(test_id)
        tests.append(
            TestCase(
                fully_qualified_name=test_id,
                display_name=info.test_name,
                code_file_path=resolve_module_path(working_dir, info.module_path),
                source=project_file,
            )
        )
    return tests



def _run_executor(executor: TestExecutor, tests: list[TestCase], handle: ConsoleFrameworkHandle) -> int:
    """
    Runs the executor to completion. CTRL-C cancels the run; the in-flight
    interpreter is killed when the run task is cancelled.
    """
    try:
        asyncio.run(executor.run_tests(tests, RunContext(), handle))
    except KeyboardInterrupt:
        executor.cancel()
        log.warning("Test run interrupted by KeyboardInterrupt (CTRL-C).")
        return 130
    return 1 if handle.has_failures else 0


@click.command(name="run")
@click.argument(
    "project_file",
    type=click.Path(exists=True, file_okay=True, dir_okay=False, readable=True, path_type=Path),
)
@click.argument("test_ids", nargs=-1, required=True)
@config_path_option(required=False)
@click.option("--show-output", is_flag=True, default=False, help="Include captured test output in the summary.")
@logging_options
@click.pass_context
def run_cli(
    ctx: click.Context,
    project_file: Path,
    test_ids: tuple[str, ...],
    config_path: Path | None,
    show_output: bool,
    **kwargs,
):
    """Run tests by fully-qualified id ('<module>::<test name>::<framework>')."""
    setup_logging_from_context(
        ctx,
        local_log_level=kwargs.get("log_level"),
        local_log_file=kwargs.get("log_file"),
        local_json_logs=kwargs.get("json_logs"),
        default_log_level="WARNING",
    )

    try:
        config = load_optional_config(config_path)
        resolver = TomlProjectSettingsResolver(config.runner.default_interpreter)
        settings = resolver.resolve(project_file)
        tests = build_test_cases(project_file, test_ids, settings.working_dir)
        executor = TestExecutor(resolver, config=config.runner)
    except ConfigurationError as e:
        click.echo(f"Error: Configuration problem:\n{e}", err=True)
        ctx.exit(1)
    except SettingsError as e:
        click.echo(f"Error: Project settings problem:\n{e}", err=True)
        ctx.exit(1)
    except InvalidTestIdError as e:
        click.echo(f"Error: {e}", err=True)
        ctx.exit(2)

    log.info("Initializing run command...", project_file=str(project_file), tests=len(tests))
    handle = ConsoleFrameworkHandle()

    exit_code = _run_executor(executor, tests, handle)
    if exit_code != 130:
        handle.render_summary(show_output=show_output)

    log.info("'run' command finished.", exit_code=exit_code)
    if exit_code != 0:
        sys.exit(exit_code)

# 🔼⚙️
