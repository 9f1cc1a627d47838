"""Deterministic failure taxonomy and fingerprint utilities."""

from __future__ import annotations

import hashlib

from procwarden.contracts import ERROR_SCHEMA_V1

UNSUPPORTED_PLATFORM = ("unsupported_platform", "SPAWN_UNSUPPORTED_PLATFORM")
ALREADY_RUNNING = ("already_running", "SPAWN_ALREADY_RUNNING")
LAUNCH_FAILED = ("launch_failed", "SPAWN_LAUNCH_FAILED")
DISCOVERY_TIMEOUT = ("discovery_timeout", "SPAWN_DISCOVERY_TIMEOUT")
LIVENESS_MISMATCH = ("liveness_mismatch", "SPAWN_LIVENESS_MISMATCH")
INVALID_HANDLE = ("invalid_handle", "SPAWN_INVALID_HANDLE")


def build_failure(
    *,
    error_class: str,
    error_code: str,
    uid: str,
    message: str,
) -> dict[str, str]:
    """Build a stable failure payload for lifecycle outcomes."""
    fingerprint_input = "|".join([error_class, error_code, uid or ""])
    fingerprint = hashlib.sha256(fingerprint_input.encode("utf-8")).hexdigest()
    return {
        "error_schema_version": ERROR_SCHEMA_V1,
        "error_class": error_class,
        "error_code": error_code,
        "uid": uid or "",
        "message": message,
        "fingerprint": fingerprint,
    }


def failure_from(kind: tuple[str, str], *, uid: str, message: str) -> dict[str, str]:
    """Build a failure payload from one of the taxonomy tuples above."""
    error_class, error_code = kind
    return build_failure(
        error_class=error_class,
        error_code=error_code,
        uid=uid,
        message=message,
    )
