"""Built-in console applications that drive the process lifecycle service."""

from __future__ import annotations

import typer

from procwarden.process.models import ProcessState
from procwarden.process.platform import join_args
from procwarden.process.spawner import ProcessSpawner

from .command import Command
from .context import ConsoleContext

STATUS_USAGE = 2
STATUS_NOT_RUNNING = 3


class _ProcessCommand(Command):
    """Holds a ProcessSpawner bound to the context root."""

    usage = ""

    def __init__(self) -> None:
        self.spawner: ProcessSpawner | None = None

    def on_init(self, ctx: ConsoleContext) -> None:
        self.spawner = ProcessSpawner.from_context(ctx)

    def params(self, ctx: ConsoleContext) -> list[str]:
        return ctx.get_arguments()[2:]

    def print_usage(self, ctx: ConsoleContext) -> int:
        program = ctx.get_arguments()[0] if ctx.get_arguments() else "procwarden"
        typer.echo(f"Usage: {program} {self.usage}", err=True)
        return STATUS_USAGE


class SpawnCommand(_ProcessCommand):
    usage = "spawn <uid> <executable> [args...]"

    def run(self, ctx: ConsoleContext) -> int:
        params = self.params(ctx)
        if len(params) < 2:
            return self.print_usage(ctx)
        uid, executable = params[0], params[1]
        pid = self.spawner.spawn(uid, executable, join_args(self.spawner.platform_info, params[2:]))
        if pid > 0:
            typer.echo(f"{uid} started (PID: {pid})")
            return 0
        failure = self.spawner.last_failure or {}
        typer.echo(failure.get("message", f"{uid} failed to start"), err=True)
        return 1


class KillCommand(_ProcessCommand):
    usage = "kill <uid>"

    def run(self, ctx: ConsoleContext) -> int:
        params = self.params(ctx)
        if len(params) < 1:
            return self.print_usage(ctx)
        if not self.spawner.kill(params[0]):
            typer.echo(f"Unable to kill {params[0]}", err=True)
            return 1
        typer.echo(f"{params[0]} stopped")
        return 0


class StatusCommand(_ProcessCommand):
    usage = "status <uid> <executable>"

    def run(self, ctx: ConsoleContext) -> int:
        params = self.params(ctx)
        if len(params) < 2:
            return self.print_usage(ctx)
        uid, executable = params[0], params[1]
        state = self.spawner.state(uid, executable)
        pid = self.spawner.get_pid(uid)
        suffix = f" (PID: {pid})" if pid > 0 else ""
        typer.echo(f"{uid}: {state.value.upper()}{suffix}")
        return 0 if state == ProcessState.RUNNING else STATUS_NOT_RUNNING
