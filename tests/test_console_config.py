"""Tests for console app registry configuration."""

import os
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from procwarden.console.config import (
    BUILTIN_APPS,
    config_path_for,
    load_console_config,
    resolve_root,
    save_console_config,
    validate_console_config,
)


class ConsoleConfigTests(unittest.TestCase):
    """Validate schema checks, fallbacks and root/config path resolution."""

    def test_validate_rejects_bad_target(self) -> None:
        with self.assertRaises(ValueError):
            validate_console_config({"bin": {"web": "procwarden.web"}})

    def test_validate_rejects_unregistered_default(self) -> None:
        with self.assertRaises(ValueError):
            validate_console_config({"bin": {"a": "m:A"}, "default": "b"})

    def test_validate_rejects_unknown_schema(self) -> None:
        with self.assertRaises(ValueError):
            validate_console_config({"schema_version": "console.v99", "bin": {}})

    def test_save_and_load(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "config" / "console.json"
            saved = save_console_config({"bin": {"serve": "app.serve:Serve"}, "default": "serve"}, path)
            loaded = load_console_config(path)
            self.assertEqual(saved, loaded)
            self.assertEqual(loaded["default"], "serve")

    def test_load_falls_back_to_builtins(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "console.json"
            self.assertEqual(load_console_config(path)["bin"], BUILTIN_APPS)
            path.write_text("{not json", encoding="utf-8")
            with self.assertLogs("procwarden.console.config", level="WARNING"):
                self.assertEqual(load_console_config(path)["bin"], BUILTIN_APPS)

    def test_root_and_config_path_resolution(self) -> None:
        with mock.patch.dict(os.environ, {"PROCWARDEN_ROOT": "/srv/app"}, clear=False):
            self.assertEqual(resolve_root(), Path("/srv/app"))
            self.assertEqual(resolve_root("/other"), Path("/other"))
        with mock.patch.dict(os.environ, {"PROCWARDEN_CONFIG_PATH": "/etc/pw"}, clear=False):
            self.assertEqual(config_path_for(Path("/srv/app")), Path("/srv/app/etc/pw/console.json"))
        env = {k: v for k, v in os.environ.items() if k not in {"PROCWARDEN_ROOT", "PROCWARDEN_CONFIG_PATH"}}
        with mock.patch.dict(os.environ, env, clear=True):
            self.assertEqual(resolve_root(), Path.cwd())
            self.assertEqual(config_path_for(Path("/srv/app")), Path("/srv/app/config/console.json"))


if __name__ == "__main__":
    unittest.main()
