"""Persistent console application registry configuration helpers."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any

from procwarden.contracts import CONSOLE_CONFIG_SCHEMA_V1, SUPPORTED_CONSOLE_CONFIG_SCHEMAS

logger = logging.getLogger("procwarden.console.config")

ROOT_ENV_VAR = "PROCWARDEN_ROOT"
CONFIG_PATH_ENV_VAR = "PROCWARDEN_CONFIG_PATH"
DEFAULT_CONFIG_DIR = "config"
CONFIG_FILE_NAME = "console.json"

BUILTIN_APPS = {
    "spawn": "procwarden.console.commands:SpawnCommand",
    "kill": "procwarden.console.commands:KillCommand",
    "status": "procwarden.console.commands:StatusCommand",
}


def resolve_root(root: Path | str | None = None) -> Path:
    """Return the explicit root, else $PROCWARDEN_ROOT, else the working directory."""
    if root is not None:
        return Path(root)
    env_root = os.environ.get(ROOT_ENV_VAR, "").strip()
    return Path(env_root) if env_root else Path.cwd()


def config_path_for(root: Path) -> Path:
    config_dir = os.environ.get(CONFIG_PATH_ENV_VAR, "").strip() or DEFAULT_CONFIG_DIR
    return root / config_dir.lstrip("/\\") / CONFIG_FILE_NAME


def default_console_config() -> dict[str, Any]:
    return {
        "schema_version": CONSOLE_CONFIG_SCHEMA_V1,
        "bin": dict(BUILTIN_APPS),
        "default": None,
    }


def validate_console_config(config: dict[str, Any]) -> dict[str, Any]:
    """Validate the app registry and default app name."""
    if not isinstance(config, dict):
        raise ValueError("console config must be object")
    schema_version = config.get("schema_version", CONSOLE_CONFIG_SCHEMA_V1)
    if schema_version not in SUPPORTED_CONSOLE_CONFIG_SCHEMAS:
        raise ValueError("unsupported console config schema_version")
    apps_raw = config.get("bin", {})
    if apps_raw is None:
        apps_raw = {}
    if not isinstance(apps_raw, dict):
        raise ValueError("bin must be object")
    apps: dict[str, str] = {}
    for app_name, target in apps_raw.items():
        name = str(app_name).strip()
        if not name:
            raise ValueError("app name must be non-empty")
        target_str = str(target).strip()
        module_name, _, class_name = target_str.partition(":")
        if not module_name or not class_name:
            raise ValueError(f"app target must look like 'module:Class': {target_str}")
        apps[name] = target_str
    default = config.get("default")
    if default is not None:
        default = str(default).strip() or None
    if default is not None and default not in apps:
        raise ValueError(f"default app not registered: {default}")
    return {
        "schema_version": CONSOLE_CONFIG_SCHEMA_V1,
        "bin": apps,
        "default": default,
    }


def load_console_config(path: Path) -> dict[str, Any]:
    """Load console config from disk or return defaults."""
    if not path.exists():
        return default_console_config()
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except Exception as exc:
        logger.warning("Ignoring unreadable console config %s: %s", path, exc)
        return default_console_config()
    try:
        return validate_console_config(raw)
    except ValueError as exc:
        logger.warning("Ignoring invalid console config %s: %s", path, exc)
        return default_console_config()


def save_console_config(config: dict[str, Any], path: Path) -> dict[str, Any]:
    """Validate and persist console config to disk."""
    validated = validate_console_config(config)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(validated, indent=2), encoding="utf-8")
    return validated
