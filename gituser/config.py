from __future__ import annotations

import json
import os
import warnings
from dataclasses import dataclass
from pathlib import Path
from typing import Any

DEFAULT_CONFIG_DIR = Path("~/.config/git-user").expanduser()
DEFAULT_CONFIG_PATH = DEFAULT_CONFIG_DIR / "config.json"
DEFAULT_DB_PATH = DEFAULT_CONFIG_DIR / "users.sqlite3"

CONFIG_ENV_OVERRIDES = {
    "db_path": "GIT_USER_DB",
    "store_timeout_s": "GIT_USER_STORE_TIMEOUT",
    "git_binary": "GIT_USER_GIT",
    "git_timeout_s": "GIT_USER_GIT_TIMEOUT",
    "log_path": "GIT_USER_LOG",
    "log_level": "GIT_USER_LOG_LEVEL",
}


def get_config_path(path: Path | None = None) -> Path:
    candidate = path or Path(os.getenv("GIT_USER_CONFIG", DEFAULT_CONFIG_PATH))
    return candidate.expanduser()


def read_config_file(path: Path | None = None) -> dict[str, Any]:
    config_path = get_config_path(path)
    if not config_path.exists():
        return {}
    raw = config_path.read_text()
    if not raw.strip():
        return {}
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValueError("invalid config json") from exc
    if not isinstance(data, dict):
        raise ValueError("config must be an object")
    return data


def get_env_overrides() -> dict[str, str]:
    overrides: dict[str, str] = {}
    for key, env_var in CONFIG_ENV_OVERRIDES.items():
        value = os.getenv(env_var)
        if value is not None:
            overrides[key] = value
    return overrides


@dataclass
class GitUserConfig:
    db_path: str = str(DEFAULT_DB_PATH)
    # Upper bound for a single store call; the action is abandoned after this.
    store_timeout_s: float = 2.0
    git_binary: str = "git"
    git_timeout_s: float = 2.0
    # The terminal belongs to the UI, so logs only go to a file when asked.
    log_path: str | None = None
    log_level: str = "WARNING"


def _parse_float(value: object, default: float, *, key: str) -> float:
    if value is None:
        return default
    try:
        parsed = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        warnings.warn(f"Invalid number for {key}: {value!r}", RuntimeWarning, stacklevel=2)
        return default
    if parsed <= 0:
        warnings.warn(f"Invalid number for {key}: {value!r}", RuntimeWarning, stacklevel=2)
        return default
    return parsed


def load_config(path: Path | None = None) -> GitUserConfig:
    cfg = GitUserConfig()
    try:
        data = read_config_file(path)
    except ValueError as exc:
        warnings.warn(f"Ignoring config file: {exc}", RuntimeWarning, stacklevel=2)
        data = {}
    cfg = _apply_dict(cfg, data)
    cfg = _apply_dict(cfg, get_env_overrides())
    return cfg


def _apply_dict(cfg: GitUserConfig, data: dict[str, Any]) -> GitUserConfig:
    for key, value in data.items():
        if not hasattr(cfg, key):
            continue
        if key in {"store_timeout_s", "git_timeout_s"}:
            setattr(cfg, key, _parse_float(value, getattr(cfg, key), key=key))
            continue
        if key == "log_path":
            text = str(value).strip() if value else ""
            cfg.log_path = text or None
            continue
        if value is None:
            continue
        setattr(cfg, key, str(value))
    return cfg
