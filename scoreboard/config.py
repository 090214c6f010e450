"""
Configuration loader.

Reads config.yaml for server tuning, then applies the three environment
options (PORT, ADMIN_PASS, SESSION_SECRET), optionally sourced from a
.env file. Falls back to sensible defaults if the config file is missing.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from scoreboard.models import ServerSettings

# Default path: config.yaml next to the project root
_DEFAULT_CONFIG_PATH = Path(__file__).resolve().parent.parent / "config.yaml"

_TRUE = {"true", "yes", "on", "1"}
_FALSE = {"false", "no", "off", "0"}


def _as_bool(value: Any, key: str) -> bool:
    """Read a YAML flag, accepting quoted spellings like ``"false"``."""
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    raise ValueError(f"{key!r} must be true or false, got {value!r}")


def load_config(path: str | Path | None = None) -> ServerSettings:
    """
    Build the server settings.

    Precedence, lowest to highest: built-in defaults, config.yaml,
    environment variables (a .env file never overrides the real
    environment).
    """
    load_dotenv(override=False)

    config_path = Path(path) if path else _DEFAULT_CONFIG_PATH
    settings = ServerSettings()

    if config_path.exists():
        with open(config_path, "r") as fh:
            raw = yaml.safe_load(fh) or {}

        server = raw.get("server") or {}
        tuning = raw.get("settings") or {}
        settings = ServerSettings(
            host=server.get("host", settings.host),
            port=int(server.get("port", settings.port)),
            session_max_age=int(server.get("session_max_age", settings.session_max_age)),
            state_file=server.get("state_file", settings.state_file),
            static_dir=server.get("static_dir", settings.static_dir),
            tick_interval=float(server.get("tick_interval", settings.tick_interval)),
            require_admin=_as_bool(
                server.get("require_admin", settings.require_admin), "require_admin"
            ),
            log_level=str(tuning.get("log_level", settings.log_level)).upper(),
            max_retries=int(tuning.get("max_retries", settings.max_retries)),
            base_backoff=float(tuning.get("base_backoff", settings.base_backoff)),
        )
    else:
        print(f"⚠  Config file not found at {config_path}, using defaults.")

    if os.environ.get("PORT"):
        settings.port = int(os.environ["PORT"])
    if os.environ.get("ADMIN_PASS"):
        settings.admin_password = os.environ["ADMIN_PASS"]
    if os.environ.get("SESSION_SECRET"):
        settings.session_secret = os.environ["SESSION_SECRET"]

    return settings
