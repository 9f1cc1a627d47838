"""Shared console context: path resolution, arguments and app dispatch."""

from __future__ import annotations

import importlib
import logging
import sys
from pathlib import Path
from typing import Any

import typer

from .command import ICommand
from .config import config_path_for, load_console_config, resolve_root
from .errors import CommandLoadError, CommandNotFoundError

logger = logging.getLogger("procwarden.console.context")

# Status reported when a command fails without an integer exit code.
MIN_STATUS = -sys.maxsize - 1


class ConsoleContext:
    """Resolve the requested console application and run its lifecycle."""

    def __init__(
        self,
        argc: int,
        argv: list[str],
        *,
        root: Path | str | None = None,
        config: dict[str, Any] | None = None,
    ) -> None:
        self.argc = argc
        self.argv = list(argv)
        self.root = resolve_root(root)
        self.config = config if config is not None else load_console_config(config_path_for(self.root))
        self.apps: dict[str, Any] = dict(self.config.get("bin") or {})
        self.default_app: str | None = self.config.get("default")

    def get_root_directory(self) -> str:
        return str(self.root)

    def to_local_path(self, path: str) -> str:
        return str(self.root / path.lstrip("/\\"))

    def get_arguments_count(self) -> int:
        return self.argc

    def get_arguments(self) -> list[str]:
        return list(self.argv)

    def register(self, app_name: str, target: Any, default: bool = False) -> None:
        """Register a command class (or 'module:Class' string) under app_name."""
        self.apps[app_name] = target
        if default:
            self.default_app = app_name

    def run(self) -> int:
        if self.argc <= 1:
            if not self.default_app:
                program = self.argv[0] if self.argv else "procwarden"
                typer.echo(f"Usage: {program} ({'|'.join(self.apps)})")
                return -1
            app_name = self.default_app
        else:
            app_name = self.argv[1]

        app = self.resolve(app_name)
        return self.execute(app)

    def resolve(self, app_name: str) -> ICommand:
        if app_name not in self.apps:
            raise CommandNotFoundError(app_name)
        target = self.apps[app_name]
        if isinstance(target, str):
            target = _import_target(target)
        try:
            return target()
        except Exception as exc:
            raise CommandLoadError(f"{app_name}: unable to build command: {exc}") from exc

    def execute(self, app: ICommand) -> int:
        status = -1
        try:
            app.on_init(self)
            status = app.run(self)
        except Exception as exc:
            code = getattr(exc, "code", None)
            status = code if isinstance(code, int) and not isinstance(code, bool) else MIN_STATUS
            logger.error("Command %s failed: %s", type(app).__name__, exc)
        finally:
            app.on_finish(self)
        return status


def _import_target(target: str) -> Any:
    module_name, _, attr = target.partition(":")
    try:
        module = importlib.import_module(module_name)
        return getattr(module, attr)
    except (ImportError, AttributeError) as exc:
        raise CommandLoadError(f"unable to import {target}: {exc}") from exc
