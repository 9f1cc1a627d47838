"""OS-specific launch, discovery, liveness and termination strategies."""

from __future__ import annotations

import csv
import logging
import os
import shlex
import signal
import subprocess
import sys
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path, PureWindowsPath
from typing import Any, Callable

from .models import ProcessHandle
from .pidfile import read_pid, write_pid

logger = logging.getLogger("procwarden.process.platform")

FAMILY_WINDOWS = "windows"
FAMILY_POSIX = "posix"
POSIX_PLATFORM_PREFIXES = ("linux", "darwin", "freebsd", "openbsd", "netbsd", "sunos", "aix")
WINDOWS_NO_TASKS_MARKER = "INFO: No tasks"

CommandRunner = Callable[..., subprocess.CompletedProcess]


def run_command(args: list[str] | str, **kwargs: Any) -> subprocess.CompletedProcess:
    """Run an OS command synchronously through subprocess.run."""
    logger.debug("Running command: %s", args if isinstance(args, str) else " ".join(args))
    return subprocess.run(args, **kwargs)


@dataclass(frozen=True)
class PlatformInfo:
    """Immutable description of the host OS, computed once at startup."""

    platform: str

    @classmethod
    def detect(cls) -> "PlatformInfo":
        return cls(platform=sys.platform)

    @property
    def family(self) -> str | None:
        name = self.platform.lower()
        if name == "win32":
            return FAMILY_WINDOWS
        if name.startswith(POSIX_PLATFORM_PREFIXES):
            return FAMILY_POSIX
        return None

    @property
    def is_windows(self) -> bool:
        return self.family == FAMILY_WINDOWS

    @property
    def is_posix(self) -> bool:
        return self.family == FAMILY_POSIX


class SpawnStrategy(ABC):
    """Launch/discover/liveness/terminate capabilities for one OS family."""

    family: str = ""

    def __init__(self, runner: CommandRunner | None = None) -> None:
        self._runner = runner or run_command

    def _query(self, args: list[str]) -> str:
        """Run a read-only OS query and return stdout, or "" when it cannot run."""
        try:
            result = self._runner(args, capture_output=True, text=True)
        except OSError as exc:
            logger.warning("Process query %s failed: %s", args[0], exc)
            return ""
        return result.stdout or ""

    @abstractmethod
    def launch(self, handle: ProcessHandle, pid_file: Path) -> bool:
        """Start the executable detached. Return False when the launch failed."""

    @abstractmethod
    def enumerate_by_identity(self, handle: ProcessHandle, pid_file: Path) -> list[int]:
        """Return the PIDs currently associated with the handle's uid."""

    @abstractmethod
    def is_alive(self, executable: str, pid: int) -> bool:
        """Return True when pid exists and looks like an instance of executable."""

    @abstractmethod
    def terminate(self, pid: int) -> None:
        """Forcibly terminate pid. Never re-verified by callers."""


def parse_tasklist_csv(output: str) -> list[list[str]]:
    """Parse `tasklist /fo CSV /nh` output into rows of at least two columns."""
    rows: list[list[str]] = []
    for row in csv.reader(line for line in output.splitlines() if line.strip()):
        if len(row) >= 2:
            rows.append(row)
    return rows


class WindowsStrategy(SpawnStrategy):
    """Titled, minimized `start` launch with window-title PID discovery."""

    family = FAMILY_WINDOWS

    def launch(self, handle: ProcessHandle, pid_file: Path) -> bool:
        executable = subprocess.list2cmdline([handle.executable])
        command = f'start "{handle.uid}" /MIN {executable} {handle.arguments}'.rstrip()
        try:
            self._runner(
                command,
                shell=True,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
            )
        except OSError as exc:
            logger.error("Unable to launch %s for %s: %s", handle.executable, handle.uid, exc)
            return False

        pids = self.enumerate_by_identity(handle, pid_file)
        if len(pids) != 1:
            logger.warning(
                "Expected exactly one process titled %s, found %d", handle.uid, len(pids)
            )
            return False
        write_pid(pid_file, pids[0])
        return True

    def enumerate_by_identity(self, handle: ProcessHandle, pid_file: Path) -> list[int]:
        output = self._query(
            ["tasklist", "/fi", f"WindowTitle eq {handle.uid}", "/fo", "CSV", "/nh"]
        )
        pids: list[int] = []
        for row in parse_tasklist_csv(output):
            value = row[1].strip()
            if value.isdigit() and int(value) > 0:
                pids.append(int(value))
        return pids

    def is_alive(self, executable: str, pid: int) -> bool:
        if pid <= 0 or not executable.strip():
            return False
        output = self._query(["tasklist", "/fi", f"PID eq {pid}", "/fo", "CSV", "/nh"])
        if not output.strip() or WINDOWS_NO_TASKS_MARKER in output:
            return False
        image_name = PureWindowsPath(executable).name
        return bool(image_name) and any(
            image_name in row[0] for row in parse_tasklist_csv(output)
        )

    def terminate(self, pid: int) -> None:
        try:
            result = self._runner(
                ["taskkill", "/F", "/pid", str(pid)], capture_output=True, text=True
            )
        except OSError as exc:
            logger.warning("taskkill failed for PID %s: %s", pid, exc)
            return
        if result.returncode != 0:
            logger.info(
                "taskkill returned %s for PID %s: %s",
                result.returncode,
                pid,
                (result.stderr or "").strip(),
            )


class PosixStrategy(SpawnStrategy):
    """Shell wrapper that records its own PID and then exec's the target."""

    family = FAMILY_POSIX

    def build_launch_command(self, handle: ProcessHandle, pid_file: Path) -> str:
        inner = f"echo $$ > {shlex.quote(str(pid_file))}; exec {shlex.quote(handle.executable)} {handle.arguments}"
        # Backgrounding from an outer shell re-parents the wrapper to init.
        return f"sh -c {shlex.quote(inner.rstrip())} </dev/null >/dev/null 2>&1 &"

    def launch(self, handle: ProcessHandle, pid_file: Path) -> bool:
        command = self.build_launch_command(handle, pid_file)
        try:
            result = self._runner(
                command,
                shell=True,
                start_new_session=True,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
            )
        except OSError as exc:
            logger.error("Unable to launch %s for %s: %s", handle.executable, handle.uid, exc)
            return False
        if result.returncode != 0:
            logger.error("Launch shell for %s exited with %s", handle.uid, result.returncode)
            return False
        return True

    def enumerate_by_identity(self, handle: ProcessHandle, pid_file: Path) -> list[int]:
        pid = read_pid(pid_file)
        return [pid] if pid > 0 else []

    def is_alive(self, executable: str, pid: int) -> bool:
        if pid <= 0 or not executable.strip():
            return False
        pid_output = self._query(["ps", "-p", str(pid), "-o", "pid="]).strip().replace("\n", "")
        if pid_output != str(pid):
            return False
        cmd_output = self._query(["ps", "-p", str(pid), "-o", "args="])
        return executable in cmd_output

    def terminate(self, pid: int) -> None:
        try:
            os.kill(pid, signal.SIGKILL)
        except ProcessLookupError:
            logger.info("PID %s was already gone", pid)
        except OSError as exc:
            logger.warning("Unable to kill PID %s: %s", pid, exc)


def join_args(platform_info: PlatformInfo, args: list[str]) -> str:
    """Quote an argument vector into the string form the launch shell expects."""
    if platform_info.is_windows:
        return subprocess.list2cmdline(args)
    return shlex.join(args)


def select_strategy(
    platform_info: PlatformInfo, runner: CommandRunner | None = None
) -> SpawnStrategy | None:
    """Return the strategy for the host OS family, or None when unsupported."""
    if platform_info.is_windows:
        return WindowsStrategy(runner)
    if platform_info.is_posix:
        return PosixStrategy(runner)
    logger.warning("No spawn strategy for platform %s", platform_info.platform)
    return None
