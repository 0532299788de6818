from __future__ import annotations

import json
import os
import tomllib
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict

APP_ROOT = Path(__file__).resolve().parent

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def _default_secrets_path() -> Path:
    return APP_ROOT.parent / ".streamlit" / "secrets.toml"


def get_secrets_path() -> Path:
    override = os.getenv("STREAMLIT_SECRETS_PATH")
    if override:
        return Path(override).expanduser()
    return _default_secrets_path()


class ConfigNotFoundError(FileNotFoundError):
    """Raised when the expected secrets file is missing."""


@lru_cache(maxsize=1)
def load_secrets() -> Dict[str, Any]:
    secrets_path = get_secrets_path()

    if not secrets_path.exists():
        raise ConfigNotFoundError(
            f"Secrets file not found: {secrets_path}. Copy .streamlit/secrets.example.toml to create it."
        )

    with secrets_path.open("rb") as f:
        data = tomllib.load(f)

    if not isinstance(data, dict):
        raise ValueError(f"Secrets file is malformed: {secrets_path}")

    return data


def load_secret(key: str, default: str | None = None) -> str | None:
    settings = load_secrets()
    value = settings.get(key)
    if value is None:
        return default
    if isinstance(value, str):
        return value.strip()
    return json.dumps(value)


def load_flag(key: str, default: bool = False) -> bool:
    """Read a boolean setting. A missing secrets file or key yields ``default``."""
    try:
        value = load_secrets().get(key)
    except ConfigNotFoundError:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_VALUES:
            return True
        if lowered in _FALSE_VALUES:
            return False
    return default


def load_setting(key: str, default: str) -> str:
    """Read a string setting, tolerating a missing secrets file."""
    try:
        value = load_secret(key)
    except ConfigNotFoundError:
        return default
    return value or default
