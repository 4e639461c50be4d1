"""Settings persistence for the OpenVoice backend peer.

Stores and retrieves the backend configuration so that it persists across
app launches.
"""

from __future__ import annotations

import json
import os
import sys
from pathlib import Path
from typing import Any

from .models import Config


APP_NAME = "OpenVoice"


def resolve_settings_path(path: Path | str) -> Path:
    p = Path(path).expanduser()
    # If it looks like a file path, use it directly
    if p.suffix:
        return p
    # Else treat as directory and append filename
    return p / "config.json"


def _default_config_dir() -> Path:
    # Allow tests or callers to override location
    override = os.environ.get("OPENVOICE_SETTINGS_PATH")
    if override:
        return resolve_settings_path(override)

    if sys.platform == "darwin":
        base = Path.home() / "Library" / "Application Support" / APP_NAME
    elif sys.platform.startswith("win"):
        base = (
            Path(os.environ.get("APPDATA", Path.home() / "AppData" / "Roaming"))
            / APP_NAME
        )
    else:
        base = (
            Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))
            / APP_NAME.lower()
        )
    return base / "config.json"


def get_settings_path() -> Path:
    return _default_config_dir()


def load_settings(path: Path | None = None) -> Config:
    path = path or get_settings_path()
    try:
        if path.exists():
            raw = json.loads(path.read_text(encoding="utf-8"))
        else:
            raw = {}
    except (OSError, ValueError):
        raw = {}
    if not isinstance(raw, dict):
        raw = {}

    # Only keep known keys; anything that is not a string falls back to null
    data: dict[str, Any] = {}
    for k in Config().to_dict():
        v = raw.get(k)
        data[k] = v if isinstance(v, str) else None
    return Config(**data)


def save_settings(config: Config, path: Path | None = None) -> None:
    """Write `config` to disk; OSError propagates so callers can report it."""
    path = path or get_settings_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(config.to_dict(), indent=2), encoding="utf-8")
