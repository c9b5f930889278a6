# src/testadapter/runtime/scheduler.py

"""
Groups requested tests by source file and drives one supervised interpreter
run per group.
"""

import asyncio
import json
import threading
from collections.abc import Iterable
from pathlib import Path

import structlog
from attrs import define, field

from testadapter.config.models import RunnerConfig
from testadapter.exceptions import (
    DebuggerAttachError,
    InterpreterNotFoundError,
    TestAdapterError,
)
from testadapter.frameworks import FrameworkRegistry, TestCaseObject, get_framework_registry
from testadapter.protocols import (
    FrameworkHandle,
    ProjectSettings,
    RunContext,
    SettingsResolver,
    TestCase,
    TestDiscoverer,
    TestMessageLevel,
)
from testadapter.runtime.correlator import ResultCorrelator
from testadapter.runtime.debugging import attach_debugger, debug_break_args, find_free_port
from testadapter.runtime.supervisor import ProcessSupervisor
from testadapter.telemetry import StructLogger

log: StructLogger = structlog.get_logger("runtime.scheduler")


@define(slots=True)
class RunGroup:
    """Tests sharing one code file, run by a single interpreter invocation."""

    code_file_path: Path
    tests: list[TestCase] = field(factory=list)

    @property
    def source(self) -> Path:
        return self.tests[0].source


def partition_tests(tests: Iterable[TestCase]) -> list[RunGroup]:
    """Splits tests into groups by code file, keeping first-seen order."""
    groups: dict[Path, RunGroup] = {}
    for test in tests:
        group = groups.get(test.code_file_path)
        if group is None:
            group = groups[test.code_file_path] = RunGroup(test.code_file_path)
        group.tests.append(test)
    return list(groups.values())


def resolve_module_path(working_dir: Path, module_path: str) -> Path:
    """Absolute path of a test module; relative paths are taken from the project working dir."""
    path = Path(module_path)
    if not path.is_absolute():
        path = working_dir / path
    return path.resolve()


class TestExecutor:
    """
    Runs requested tests and reports an outcome for each of them exactly once.

    One executor owns the state of one run session: the process in flight and
    the cancel flag. Groups run sequentially.
    """

    __test__ = False

    def __init__(
        self,
        settings_resolver: SettingsResolver,
        config: RunnerConfig | None = None,
        frameworks: FrameworkRegistry | None = None,
    ):
        self._settings_resolver = settings_resolver
        self._config = config or RunnerConfig()
        self._frameworks = frameworks or get_framework_registry(self._config)
        self._cancel_requested = threading.Event()
        self._sync = threading.Lock()
        self._supervisor: ProcessSupervisor | None = None

    @property
    def cancel_requested(self) -> bool:
        return self._cancel_requested.is_set()

    def cancel(self) -> None:
        """
        Cancels the run. Safe to call from any thread.

        The running interpreter is killed right away so it cannot outlive the
        host's run session; groups not yet started are skipped.
        """
        log.warning("Test run cancellation requested")
        # Flag first: a group launching concurrently re-checks it after publishing its process.
        self._cancel_requested.set()
        self._kill_process()

    def _kill_process(self) -> None:
        with self._sync:
            if self._supervisor is not None:
                self._supervisor.kill()

    async def run_sources(
        self,
        sources: Iterable[Path],
        run_context: RunContext,
        handle: FrameworkHandle,
        discoverer: TestDiscoverer,
    ) -> None:
        """Discovers every test in `sources` and runs them."""
        self._cancel_requested.clear()
        source_list = list(sources)
        log.info("Discovering tests", sources=[str(s) for s in source_list])
        tests = await asyncio.to_thread(discoverer.discover_tests, source_list)

        if self._cancel_requested.is_set():
            log.info("Run cancelled during discovery")
            return

        await self.run_tests(tests, run_context, handle)

    async def run_tests(
        self,
        tests: Iterable[TestCase],
        run_context: RunContext,
        handle: FrameworkHandle,
    ) -> None:
        self._cancel_requested.clear()
        groups = partition_tests(tests)
        settings_cache: dict[Path, ProjectSettings] = {}
        log.info(
            "Starting test run",
            groups=len(groups),
            tests=sum(len(g.tests) for g in groups),
            debugging=run_context.is_being_debugged,
        )

        for group in groups:
            if self._cancel_requested.is_set():
                log.info("Run cancelled, skipping remaining groups", code_file=str(group.code_file_path))
                break
            await self._run_group(group, run_context, handle, settings_cache)

        log.info("Test run complete", cancelled=self._cancel_requested.is_set())

    async def _run_group(
        self,
        group: RunGroup,
        run_context: RunContext,
        handle: FrameworkHandle,
        settings_cache: dict[Path, ProjectSettings],
    ) -> None:
        group_log = log.bind(code_file=str(group.code_file_path), tests=len(group.tests))
        correlator = ResultCorrelator(group.tests, handle)
        try:
            settings = await self._resolve_settings(group.source, settings_cache)
            await self._execute_group(group, settings, correlator, run_context, handle)
        except TestAdapterError as e:
            group_log.error("Test group failed", error=str(e))
            handle.send_message(TestMessageLevel.ERROR, str(e))
        except Exception as e:
            group_log.exception("Unexpected error while running test group")
            handle.send_message(
                TestMessageLevel.ERROR,
                f"Unexpected error running tests in {group.code_file_path}: {e}",
            )
        finally:
            correlator.finalize_unreported()

    async def _resolve_settings(self, source: Path, cache: dict[Path, ProjectSettings]) -> ProjectSettings:
        settings = cache.get(source)
        if settings is None:
            settings = await asyncio.to_thread(self._settings_resolver.resolve, source)
            cache[source] = settings
        return settings

    def _build_invocation(
        self,
        group: RunGroup,
        settings: ProjectSettings,
        handle: FrameworkHandle,
    ) -> tuple[list[str], list[TestCaseObject]]:
        """Returns the interpreter arguments and the stdin payload entries for a group."""
        interpreter_args: list[str] = []
        test_objects: list[TestCaseObject] = []

        for test in group.tests:
            try:
                framework = self._frameworks.get(test.info.framework)
            except TestAdapterError as e:
                # Left pending; the closing rule fails it.
                handle.send_message(TestMessageLevel.ERROR, f"{test.display_name}: {e}")
                continue

            arguments = framework.arguments_to_run_tests(
                test.info.test_name,
                resolve_module_path(settings.working_dir, test.info.module_path),
                settings.project_root_dir,
            )
            if not interpreter_args:
                interpreter_args.append(arguments[0])
            test_objects.append(TestCaseObject.from_arguments(arguments))

        return interpreter_args, test_objects

    async def _execute_group(
        self,
        group: RunGroup,
        settings: ProjectSettings,
        correlator: ResultCorrelator,
        run_context: RunContext,
        handle: FrameworkHandle,
    ) -> None:
        if not settings.interpreter_path.is_file():
            raise InterpreterNotFoundError(settings.interpreter_path)

        interpreter_args, test_objects = self._build_invocation(group, settings, handle)
        if not test_objects:
            log.warning("No runnable tests in group", code_file=str(group.code_file_path))
            return

        debugger = run_context.debugger if run_context.is_being_debugged else None
        port = 0
        if debugger is not None:
            await asyncio.to_thread(debugger.detach_all)
            port = find_free_port(self._config.port_search_attempts)
            interpreter_args = debug_break_args(port, self._config.debug_break_flag) + interpreter_args

        supervisor = ProcessSupervisor(kill_tree=self._config.kill_process_tree)

        async def after_launch(process: asyncio.subprocess.Process) -> None:
            with self._sync:
                self._supervisor = supervisor
            # A cancel that raced with the launch found no process to kill.
            if self._cancel_requested.is_set():
                supervisor.kill()
                return
            if debugger is None:
                return
            try:
                await attach_debugger(debugger, process, port, self._config.attach_poll_interval)
            except DebuggerAttachError as e:
                handle.send_message(TestMessageLevel.ERROR, str(e))
                supervisor.kill()

        payload = json.dumps([obj.to_payload() for obj in test_objects])
        try:
            exit_code = await supervisor.run(
                settings.interpreter_path,
                interpreter_args,
                settings.working_dir,
                correlator.handle_line,
                input_line=payload,
                after_launch=after_launch,
            )
        finally:
            with self._sync:
                self._supervisor = None

        log.debug(
            "Group process finished",
            code_file=str(group.code_file_path),
            exit_code=exit_code,
            unreported=len(correlator.pending_tests),
        )
