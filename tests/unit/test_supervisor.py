# tests/unit/test_supervisor.py

"""Tests for ProcessSupervisor using real Python child processes."""

import asyncio
import sys
import textwrap
import threading
from pathlib import Path
from unittest.mock import MagicMock, patch

import psutil
import pytest

from testadapter.events import decode_event
from testadapter.exceptions import ProcessLaunchError
from testadapter.runtime.supervisor import ProcessSupervisor, kill_process_tree

PYTHON = Path(sys.executable)


def _code(source: str) -> list[str]:
    return ["-c", textwrap.dedent(source)]


@pytest.mark.asyncio
class TestProcessSupervisor:
    """Lifecycle tests for ProcessSupervisor."""

    async def test_streams_stdout_and_stderr_lines(self, tmp_path: Path):
        lines: list[str] = []
        supervisor = ProcessSupervisor()

        exit_code = await supervisor.run(
            PYTHON,
            _code("""
                import sys
                print("out one", flush=True)
                sys.stderr.write("err one\\n")
                sys.stderr.flush()
                print("out two", flush=True)
                sys.exit(3)
            """),
            tmp_path,
            lines.append,
        )

        assert exit_code == 3
        assert sorted(lines) == ["err one", "out one", "out two"]
        assert supervisor.process is None

    async def test_input_line_is_delivered(self, tmp_path: Path):
        lines: list[str] = []
        supervisor = ProcessSupervisor()

        await supervisor.run(
            PYTHON,
            _code("""
                import sys
                line = sys.stdin.readline()
                print("got:" + line.strip(), flush=True)
            """),
            tmp_path,
            lines.append,
            input_line='[{"testName": "a"}]',
        )

        assert lines == ['got:[{"testName": "a"}]']

    async def test_runs_in_working_directory(self, tmp_path: Path):
        lines: list[str] = []
        work = tmp_path / "work"
        work.mkdir()

        await ProcessSupervisor().run(PYTHON, _code("import os; print(os.getcwd())"), work, lines.append)

        assert Path(lines[0]).resolve() == work.resolve()

    async def test_callback_errors_do_not_stop_streaming(self, tmp_path: Path):
        seen: list[str] = []

        def on_line(line: str) -> None:
            seen.append(line)
            if line == "bad":
                raise ValueError("handler bug")

        exit_code = await ProcessSupervisor().run(
            PYTHON, _code("print('bad'); print('good')"), tmp_path, on_line
        )

        assert exit_code == 0
        assert seen == ["bad", "good"]

    async def test_over_long_line_is_dropped_whole(self, tmp_path: Path):
        lines: list[str] = []
        supervisor = ProcessSupervisor(stream_limit=1024)

        exit_code = await supervisor.run(
            PYTHON,
            _code("""
                import json
                print("before", flush=True)
                print(json.dumps({"type": "result", "title": "big", "result": {"stdout": "x" * 5000}}), flush=True)
                print(json.dumps({"type": "result", "title": "small", "result": {"passed": True}}), flush=True)
            """),
            tmp_path,
            lines.append,
        )

        assert exit_code == 0
        assert lines[0] == "before"
        assert len(lines) == 2
        event = decode_event(lines[1])
        assert event is not None
        assert event.title == "small"

    async def test_over_long_final_line_without_newline(self, tmp_path: Path):
        lines: list[str] = []

        await ProcessSupervisor(stream_limit=1024).run(
            PYTHON,
            _code("""
                import sys
                print("first", flush=True)
                sys.stdout.write("y" * 5000)
            """),
            tmp_path,
            lines.append,
        )

        assert lines == ["first"]

    async def test_after_launch_runs_before_input(self, tmp_path: Path):
        order: list[str] = []

        async def after_launch(process):
            order.append(f"launched:{process.pid > 0}")

        await ProcessSupervisor().run(
            PYTHON,
            _code("import sys; print(sys.stdin.readline().strip(), flush=True)"),
            tmp_path,
            order.append,
            input_line="payload",
            after_launch=after_launch,
        )

        assert order == ["launched:True", "payload"]

    async def test_kill_from_another_thread(self, tmp_path: Path):
        supervisor = ProcessSupervisor()
        started = asyncio.Event()
        loop = asyncio.get_running_loop()

        def on_line(line: str) -> None:
            if line == "ready":
                loop.call_soon(started.set)

        run_task = asyncio.create_task(
            supervisor.run(
                PYTHON,
                _code("import time; print('ready', flush=True); time.sleep(60)"),
                tmp_path,
                on_line,
            )
        )
        await asyncio.wait_for(started.wait(), timeout=10)

        killer = threading.Thread(target=supervisor.kill)
        killer.start()
        killer.join()
        exit_code = await asyncio.wait_for(run_task, timeout=10)

        assert exit_code != 0
        assert supervisor.was_killed is True

    async def test_task_cancellation_kills_process(self, tmp_path: Path):
        supervisor = ProcessSupervisor()
        pids: list[int] = []

        async def after_launch(process):
            pids.append(process.pid)

        run_task = asyncio.create_task(
            supervisor.run(
                PYTHON,
                _code("import time; time.sleep(60)"),
                tmp_path,
                lambda line: None,
                after_launch=after_launch,
            )
        )
        while not pids:
            await asyncio.sleep(0.01)

        run_task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await run_task

        assert supervisor.was_killed is True
        assert supervisor.process is None
        assert not psutil.pid_exists(pids[0]) or psutil.Process(pids[0]).status() == psutil.STATUS_ZOMBIE

    async def test_kill_after_exit_is_a_no_op(self, tmp_path: Path):
        supervisor = ProcessSupervisor()
        await supervisor.run(PYTHON, _code("pass"), tmp_path, lambda line: None)

        supervisor.kill()

        assert supervisor.was_killed is False

    async def test_input_to_exited_process_is_tolerated(self, tmp_path: Path):
        exit_code = await ProcessSupervisor().run(
            PYTHON,
            _code("import sys; sys.stdin.close(); sys.exit(0)"),
            tmp_path,
            lambda line: None,
            input_line="x" * 1_000_000,
        )

        assert exit_code == 0

    async def test_missing_executable_raises_launch_error(self, tmp_path: Path):
        supervisor = ProcessSupervisor()

        with pytest.raises(ProcessLaunchError):
            await supervisor.run(tmp_path / "no-such-interpreter", [], tmp_path, lambda line: None)

        assert supervisor.process is None


class TestKillProcessTree:
    """Tests for kill_process_tree."""

    def test_vanished_process_is_ignored(self):
        with patch("testadapter.runtime.supervisor.psutil.Process", side_effect=psutil.NoSuchProcess(1)):
            kill_process_tree(1)

    def test_kills_children_before_parent(self):
        order: list[str] = []
        child = MagicMock()
        child.kill.side_effect = lambda: order.append("child")
        gone = MagicMock()
        gone.kill.side_effect = psutil.NoSuchProcess(4321)

        with patch("testadapter.runtime.supervisor.psutil.Process") as mock_process_cls:
            parent = mock_process_cls.return_value
            parent.children.return_value = [child, gone]
            parent.kill.side_effect = lambda: order.append("parent")
            kill_process_tree(1234)

        parent.children.assert_called_once_with(recursive=True)
        assert order == ["child", "parent"]

    def test_children_left_alone_when_disabled(self):
        with patch("testadapter.runtime.supervisor.psutil.Process") as mock_process_cls:
            parent = mock_process_cls.return_value
            kill_process_tree(1234, include_children=False)

        parent.children.assert_not_called()
        parent.kill.assert_called_once()
