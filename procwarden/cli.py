import logging
import sys
from pathlib import Path
from typing import List, Optional

import typer
from platformdirs import user_log_dir

from procwarden.console.config import resolve_root
from procwarden.console.context import ConsoleContext
from procwarden.console.errors import ConsoleError
from procwarden.process.models import ProcessState
from procwarden.process.platform import join_args
from procwarden.process.spawner import ProcessSpawner

app = typer.Typer()

LOG_DIR = Path(user_log_dir("procwarden"))
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

_settings: dict[str, object] = {"root": None}


def _configure_logging(verbose: bool, log_to_file: bool) -> None:
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if log_to_file:
        LOG_DIR.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(LOG_DIR / "procwarden.log", encoding="utf-8"))
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format=LOG_FORMAT,
        handlers=handlers,
    )


def _exit_code(status: int) -> int:
    """Map a command status onto a process exit status."""
    return status if 0 <= status <= 255 else 1


def _build_spawner() -> ProcessSpawner:
    return ProcessSpawner(resolve_root(_settings["root"]))


@app.callback()
def main(
    root: Optional[Path] = typer.Option(None, "--root", help="Project root holding the .tmp directory."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
    no_log_file: bool = typer.Option(False, "--no-log-file", help="Log to stderr only."),
):
    """Launch, track and kill detached background processes by uid."""
    _settings["root"] = root
    _configure_logging(verbose, not no_log_file)


@app.command(context_settings={"ignore_unknown_options": True})
def spawn(
    uid: str,
    executable: str,
    args: Optional[List[str]] = typer.Argument(None, help="Arguments passed to the executable."),
):
    """Start EXECUTABLE in the background under UID."""
    spawner = _build_spawner()
    pid = spawner.spawn(uid, executable, join_args(spawner.platform_info, args or []))
    if pid > 0:
        typer.echo(f"{uid} started (PID: {pid})")
        return
    failure = spawner.last_failure or {}
    if failure.get("error_class") == "already_running":
        typer.echo(failure["message"])
        return
    typer.echo(f"Error: {failure.get('message', f'{uid} failed to start')}")
    raise typer.Exit(code=1)


@app.command()
def kill(uid: str):
    """Force-stop the process recorded for UID and forget it."""
    spawner = _build_spawner()
    if not spawner.kill(uid):
        typer.echo(f"Error: invalid uid {uid!r}")
        raise typer.Exit(code=1)
    typer.echo(f"{uid} stopped")


@app.command()
def status(uid: str, executable: str):
    """Check whether UID is still running EXECUTABLE."""
    spawner = _build_spawner()
    state = spawner.state(uid, executable)
    pid = spawner.get_pid(uid)
    if state == ProcessState.RUNNING:
        typer.echo(f"{uid}: RUNNING (PID: {pid})")
        return
    if state == ProcessState.NOT_RUNNING:
        typer.echo(f"{uid}: NOT RUNNING (stale PID: {pid})")
    else:
        typer.echo(f"{uid}: UNKNOWN (no PID recorded)")
    raise typer.Exit(code=3)


@app.command("list")
def list_processes(
    executable: Optional[str] = typer.Option(
        None, "--executable", "-e", help="Also check liveness against this executable."
    ),
):
    """List every uid with a temp directory and its recorded PID."""
    spawner = _build_spawner()
    uids = spawner.known_uids()
    if not uids:
        typer.echo("No tracked processes.")
        return
    for uid in uids:
        pid = spawner.get_pid(uid)
        line = f" - {uid} (PID: {pid if pid > 0 else '-'})"
        if executable:
            line += f" [{spawner.state(uid, executable).value}]"
        typer.echo(line)


@app.command(context_settings={"allow_extra_args": True, "ignore_unknown_options": True})
def run(
    app_name: Optional[str] = typer.Argument(None, help="Console application to run."),
    args: Optional[List[str]] = typer.Argument(None),
):
    """Dispatch to a console application registered in config/console.json."""
    argv = [Path(sys.argv[0]).name or "procwarden"]
    if app_name:
        argv.append(app_name)
        argv.extend(args or [])
    ctx = ConsoleContext(len(argv), argv, root=_settings["root"])
    try:
        status_code = ctx.run()
    except ConsoleError as exc:
        typer.echo(f"Error: {exc}")
        raise typer.Exit(code=_exit_code(exc.code))
    if status_code != 0:
        raise typer.Exit(code=_exit_code(status_code))


if __name__ == "__main__":
    app()
