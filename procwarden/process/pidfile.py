"""Durable uid -> PID records stored as plain text under <root>/.tmp/<uid>/."""

from __future__ import annotations

import logging
import os
from pathlib import Path

logger = logging.getLogger("procwarden.process.pidfile")

TEMP_DIR_NAME = ".tmp"
NO_PID = -1


def resolve_paths(root: Path | str, uid: str) -> tuple[Path, Path]:
    """Return (temp_dir, pid_file) for a uid. Pure, no I/O."""
    temp_dir = Path(root) / TEMP_DIR_NAME / uid
    return temp_dir, temp_dir / f"{uid}.pid"


def read_pid(path: Path) -> int:
    """Return the PID stored in *path*, or -1 when there is no usable value."""
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return NO_PID
    except (OSError, UnicodeDecodeError) as exc:
        logger.warning("Unable to read PID file %s: %s", path, exc)
        return NO_PID
    value = raw.replace("\r", "").replace("\n", "").strip()
    if not (value.isascii() and value.isdigit()):
        return NO_PID
    return int(value)


def write_pid(path: Path, pid: int) -> None:
    """Overwrite the PID record atomically, creating its directory if needed."""
    path.parent.mkdir(parents=True, exist_ok=True)
    temp_path = path.with_name(f"{path.name}.{os.getpid()}.tmp")
    temp_path.write_text(str(int(pid)), encoding="utf-8")
    temp_path.replace(path)
    logger.debug("Recorded PID %s in %s", pid, path)


def delete_pid(path: Path) -> None:
    path.unlink(missing_ok=True)
