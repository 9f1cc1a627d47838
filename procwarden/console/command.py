"""Lifecycle contract for console applications."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from .context import ConsoleContext


class ICommand(Protocol):
    def on_init(self, ctx: "ConsoleContext") -> None: ...

    def run(self, ctx: "ConsoleContext") -> int: ...

    def on_finish(self, ctx: "ConsoleContext") -> None: ...


class Command:
    """No-op base for console applications; override the hooks you need."""

    def on_init(self, ctx: "ConsoleContext") -> None:
        pass

    def run(self, ctx: "ConsoleContext") -> int:
        return 0

    def on_finish(self, ctx: "ConsoleContext") -> None:
        pass
