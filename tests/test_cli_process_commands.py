"""Tests for typer process commands and built-in console applications."""

import io
import tempfile
import unittest
from contextlib import redirect_stdout
from pathlib import Path
from unittest import mock

import typer

from procwarden.cli import _exit_code, kill, list_processes, run, spawn, status
from procwarden.console.commands import KillCommand, SpawnCommand, StatusCommand
from procwarden.console.context import ConsoleContext
from procwarden.process.pidfile import write_pid
from procwarden.process.platform import PlatformInfo
from procwarden.process.spawner import ProcessSpawner


class _Spawner:
    """Scriptable stand-in for ProcessSpawner."""

    def __init__(self, pid: int = 4821, failure: dict | None = None) -> None:
        self.pid = pid
        self.failure = failure
        self.platform_info = PlatformInfo("linux")
        self.last_failure = None
        self.spawned: list[tuple[str, str, str]] = []
        self.killed: list[str] = []

    def spawn(self, uid: str, executable: str, args: str = "") -> int:
        self.spawned.append((uid, executable, args))
        self.last_failure = self.failure
        return -1 if self.failure else self.pid

    def kill(self, uid: str) -> bool:
        self.killed.append(uid)
        return True


class CliProcessCommandTests(unittest.TestCase):
    """Validate user-facing output and exit codes of the process commands."""

    def test_spawn_prints_pid_and_quotes_args(self) -> None:
        fake = _Spawner()
        output = io.StringIO()
        with mock.patch("procwarden.cli._build_spawner", return_value=fake), redirect_stdout(output):
            spawn("worker1", "/usr/bin/myd", ["--flag", "two words"])
        self.assertIn("worker1 started (PID: 4821)", output.getvalue())
        self.assertEqual(fake.spawned, [("worker1", "/usr/bin/myd", "--flag 'two words'")])

    def test_spawn_already_running_is_not_an_error(self) -> None:
        fake = _Spawner(
            failure={"error_class": "already_running", "message": "worker1 is already running (PID 4821)"}
        )
        output = io.StringIO()
        with mock.patch("procwarden.cli._build_spawner", return_value=fake), redirect_stdout(output):
            spawn("worker1", "/usr/bin/myd", None)
        self.assertIn("already running (PID 4821)", output.getvalue())

    def test_spawn_failure_exits_nonzero(self) -> None:
        fake = _Spawner(failure={"error_class": "launch_failed", "message": "failed to launch"})
        with mock.patch("procwarden.cli._build_spawner", return_value=fake):
            with self.assertRaises(typer.Exit) as cm:
                with redirect_stdout(io.StringIO()):
                    spawn("worker1", "/usr/bin/myd", None)
        self.assertEqual(cm.exception.exit_code, 1)

    def test_kill_reports_stopped(self) -> None:
        fake = _Spawner()
        output = io.StringIO()
        with mock.patch("procwarden.cli._build_spawner", return_value=fake), redirect_stdout(output):
            kill("worker1")
        self.assertEqual(fake.killed, ["worker1"])
        self.assertIn("worker1 stopped", output.getvalue())

    def test_status_and_list_for_stale_record(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            spawner = ProcessSpawner(tmpdir, platform_info=PlatformInfo("linux"))
            write_pid(spawner.pid_file("worker1"), 4821)
            with mock.patch.object(spawner, "is_alive", return_value=False), mock.patch(
                "procwarden.cli._build_spawner", return_value=spawner
            ):
                output = io.StringIO()
                with self.assertRaises(typer.Exit) as cm:
                    with redirect_stdout(output):
                        status("worker1", "myd")
                self.assertEqual(cm.exception.exit_code, 3)
                self.assertIn("NOT RUNNING (stale PID: 4821)", output.getvalue())

                output = io.StringIO()
                with redirect_stdout(output):
                    list_processes(executable="myd")
                self.assertIn(" - worker1 (PID: 4821) [not_running]", output.getvalue())

    def test_run_maps_unknown_app_to_exit_code(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            with mock.patch.dict("procwarden.cli._settings", {"root": Path(tmpdir)}):
                with self.assertRaises(typer.Exit) as cm:
                    with redirect_stdout(io.StringIO()):
                        run("nope", [])
        self.assertEqual(cm.exception.exit_code, 127)

    def test_exit_code_clamps_out_of_range(self) -> None:
        self.assertEqual(_exit_code(0), 0)
        self.assertEqual(_exit_code(3), 3)
        self.assertEqual(_exit_code(-1), 1)
        self.assertEqual(_exit_code(-(2**63)), 1)


class BuiltinConsoleCommandTests(unittest.TestCase):
    """Validate argv handling of the built-in console applications."""

    def _ctx(self, root: str, *params: str) -> ConsoleContext:
        argv = ["procwarden", *params]
        return ConsoleContext(len(argv), argv, root=root)

    def test_spawn_command_usage_on_missing_args(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            ctx = self._ctx(tmpdir, "spawn", "worker1")
            with mock.patch("sys.stderr", new_callable=io.StringIO):
                self.assertEqual(ctx.execute(SpawnCommand()), 2)

    def test_spawn_command_passes_arguments(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            ctx = self._ctx(tmpdir, "spawn", "worker1", "/usr/bin/myd", "--flag")
            command = SpawnCommand()
            fake = _Spawner()
            command.on_init = lambda _ctx: setattr(command, "spawner", fake)
            with redirect_stdout(io.StringIO()):
                self.assertEqual(ctx.execute(command), 0)
            self.assertEqual(fake.spawned, [("worker1", "/usr/bin/myd", "--flag")])

    def test_kill_command_without_record(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            ctx = self._ctx(tmpdir, "kill", "worker1")
            with redirect_stdout(io.StringIO()):
                self.assertEqual(ctx.run(), 0)

    def test_status_command_unknown_uid(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            ctx = self._ctx(tmpdir, "status", "worker1", "myd")
            output = io.StringIO()
            with redirect_stdout(output):
                self.assertEqual(ctx.execute(StatusCommand()), 3)
            self.assertIn("worker1: UNKNOWN", output.getvalue())

    def test_kill_command_holds_spawner_bound_to_root(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            ctx = self._ctx(tmpdir, "kill", "worker1")
            command = KillCommand()
            command.on_init(ctx)
            self.assertEqual(command.spawner.root, Path(tmpdir))


if __name__ == "__main__":
    unittest.main()
