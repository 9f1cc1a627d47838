"""Spawn, check and kill detached processes tracked by a caller-chosen uid."""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Callable, Protocol

from pydantic import ValidationError

from procwarden.failures import (
    ALREADY_RUNNING,
    DISCOVERY_TIMEOUT,
    INVALID_HANDLE,
    LAUNCH_FAILED,
    LIVENESS_MISMATCH,
    UNSUPPORTED_PLATFORM,
    failure_from,
)

from .models import ProcessHandle, ProcessState, is_valid_uid
from .pidfile import NO_PID, TEMP_DIR_NAME, delete_pid, read_pid, resolve_paths
from .platform import CommandRunner, PlatformInfo, SpawnStrategy, select_strategy

logger = logging.getLogger("procwarden.process.spawner")

DISCOVERY_ATTEMPTS = 10
DISCOVERY_INTERVAL_SECONDS = 0.5

_DETECT = object()


class RootResolver(Protocol):
    def get_root_directory(self) -> str: ...


class ProcessSpawner:
    """Process lifecycle service that commands hold rather than inherit.

    Every operation reports its outcome through its return value: spawn
    returns a positive PID or -1, kill and is_alive return booleans. The
    reason for the last unsuccessful spawn is kept in ``last_failure``.
    """

    def __init__(
        self,
        root: Path | str,
        *,
        platform_info: PlatformInfo | None = None,
        strategy: SpawnStrategy | None | object = _DETECT,
        runner: CommandRunner | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.root = Path(root)
        self.platform_info = platform_info or PlatformInfo.detect()
        if strategy is _DETECT:
            strategy = select_strategy(self.platform_info, runner)
        self.strategy: SpawnStrategy | None = strategy  # type: ignore[assignment]
        self._sleep = sleep
        self.last_failure: dict[str, str] | None = None

    @classmethod
    def from_context(cls, ctx: RootResolver, **kwargs) -> "ProcessSpawner":
        return cls(ctx.get_root_directory(), **kwargs)

    def temp_dir(self, uid: str) -> Path:
        return resolve_paths(self.root, uid)[0]

    def pid_file(self, uid: str) -> Path:
        return resolve_paths(self.root, uid)[1]

    def get_pid(self, uid: str) -> int:
        if not is_valid_uid(uid):
            return NO_PID
        return read_pid(self.pid_file(uid))

    def known_uids(self) -> list[str]:
        """List uids that have a temp directory under <root>/.tmp."""
        base = self.root / TEMP_DIR_NAME
        if not base.is_dir():
            return []
        return sorted(
            entry.name for entry in base.iterdir() if entry.is_dir() and is_valid_uid(entry.name)
        )

    def is_alive(self, executable: str, pid: int) -> bool:
        if self.strategy is None or pid <= 0:
            return False
        return self.strategy.is_alive(executable, pid)

    def state(self, uid: str, executable: str) -> ProcessState:
        pid = self.get_pid(uid)
        if pid <= 0:
            return ProcessState.UNKNOWN
        if self.is_alive(executable, pid):
            return ProcessState.RUNNING
        return ProcessState.NOT_RUNNING

    def _fail(self, kind: tuple[str, str], uid: str, message: str) -> int:
        self.last_failure = failure_from(kind, uid=uid, message=message)
        return NO_PID

    def spawn(self, uid: str, executable: str, args: str = "") -> int:
        """Launch executable under uid. Returns the PID, or -1 on failure/no-op."""
        self.last_failure = None
        try:
            handle = ProcessHandle(uid=uid, executable=executable, arguments=args)
        except ValidationError as exc:
            reason = exc.errors()[0]["msg"]
            logger.warning("Refusing to spawn %r: %s", uid, reason)
            return self._fail(INVALID_HANDLE, uid, f"invalid process handle for {uid!r}: {reason}")

        if self.strategy is None:
            logger.error("Cannot spawn %s: unsupported platform %s", uid, self.platform_info.platform)
            return self._fail(
                UNSUPPORTED_PLATFORM,
                uid,
                f"spawning is not supported on {self.platform_info.platform}",
            )

        temp_dir, pid_file = resolve_paths(self.root, handle.uid)
        temp_dir.mkdir(parents=True, exist_ok=True)

        pid = read_pid(pid_file)
        if pid > 0:
            if self.strategy.is_alive(executable, pid):
                logger.info("%s is already running (PID %s)", uid, pid)
                return self._fail(ALREADY_RUNNING, uid, f"{uid} is already running (PID {pid})")
            logger.info("Discarding stale PID %s recorded for %s", pid, uid)
            delete_pid(pid_file)

        if not self.strategy.launch(handle, pid_file):
            return self._fail(LAUNCH_FAILED, uid, f"failed to launch {executable} for {uid}")

        pid = self._discover_pid(pid_file)
        if pid <= 0:
            logger.warning("Couldn't find the process PID, the PID file does not exist")
            self._fail(
                DISCOVERY_TIMEOUT,
                uid,
                f"no PID recorded in {pid_file} after {DISCOVERY_ATTEMPTS} attempts",
            )

        if not self.is_alive(executable, pid):
            if self.last_failure is not None:
                return NO_PID
            logger.warning("PID %s for %s is not a live %s process", pid, uid, executable)
            return self._fail(
                LIVENESS_MISMATCH, uid, f"PID {pid} is not a running instance of {executable}"
            )

        logger.info("Spawned %s as PID %s", uid, pid)
        return pid

    def _discover_pid(self, pid_file: Path) -> int:
        pid = NO_PID
        for attempt in range(1, DISCOVERY_ATTEMPTS + 1):
            pid = read_pid(pid_file)
            if pid > 0:
                break
            if attempt < DISCOVERY_ATTEMPTS:
                self._sleep(DISCOVERY_INTERVAL_SECONDS)
        return pid

    def kill(self, uid: str) -> bool:
        """De-register uid and force-terminate its last known PID."""
        if not is_valid_uid(uid):
            logger.warning("Refusing to kill invalid uid %r", uid)
            return False
        pid_file = self.pid_file(uid)
        pid = read_pid(pid_file)
        delete_pid(pid_file)

        if pid <= 0:
            return True
        if self.strategy is None:
            logger.warning("Cannot terminate PID %s on unsupported platform", pid)
            return True

        logger.info("Killing %s (PID %s)", uid, pid)
        self.strategy.terminate(pid)
        return True
