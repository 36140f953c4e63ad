from __future__ import annotations

import json
import logging
import os
import warnings
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any

DEFAULT_CONFIG_PATH = Path("~/.config/tasksync/config.json").expanduser()

CONFIG_ENV_OVERRIDES = {
    "api_url": "TASKSYNC_API_URL",
    "session_path": "TASKSYNC_SESSION_PATH",
    "request_timeout_s": "TASKSYNC_REQUEST_TIMEOUT_S",
    "refresh_skew_s": "TASKSYNC_REFRESH_SKEW_S",
    "refresh_interval_s": "TASKSYNC_REFRESH_INTERVAL_S",
    "weekly_bucket_limit": "TASKSYNC_WEEKLY_BUCKET_LIMIT",
    "max_upload_bytes": "TASKSYNC_MAX_UPLOAD_BYTES",
    "pulse_ms": "TASKSYNC_PULSE_MS",
    "log_level": "TASKSYNC_LOG_LEVEL",
}

CONFIG_KEYS = tuple(CONFIG_ENV_OVERRIDES)

_INT_KEYS = {
    "refresh_skew_s",
    "refresh_interval_s",
    "weekly_bucket_limit",
    "max_upload_bytes",
    "pulse_ms",
}
_FLOAT_KEYS = {"request_timeout_s"}


def get_config_path(path: Path | None = None) -> Path:
    candidate = path or Path(os.getenv("TASKSYNC_CONFIG", DEFAULT_CONFIG_PATH))
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


def write_config_file(data: dict[str, Any], path: Path | None = None) -> Path:
    config_path = get_config_path(path)
    config_path.parent.mkdir(parents=True, exist_ok=True)
    config_path.write_text(json.dumps(data, ensure_ascii=False, indent=2) + "\n")
    return config_path


def get_env_overrides() -> dict[str, str]:
    overrides: dict[str, str] = {}
    for key, env_var in CONFIG_ENV_OVERRIDES.items():
        value = os.getenv(env_var)
        if value is not None:
            overrides[key] = value
    return overrides


@dataclass
class TaskSyncConfig:
    api_url: str = "http://localhost:4000"
    session_path: str = "~/.tasksync/session.json"
    request_timeout_s: float = 10.0
    # Access tokens closer than this to expiry are refreshed before use.
    refresh_skew_s: int = 60
    refresh_interval_s: int = 20
    weekly_bucket_limit: int = 8
    max_upload_bytes: int = 25 * 1024 * 1024
    pulse_ms: int = 420
    log_level: str = "WARNING"

    @property
    def resolved_session_path(self) -> Path:
        return Path(self.session_path).expanduser()

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def _parse_int(value: object, default: int, *, key: str) -> int:
    if value is None:
        return default
    try:
        return int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        warnings.warn(f"Invalid int for {key}: {value!r}", RuntimeWarning, stacklevel=2)
        return default


def _parse_float(value: object, default: float, *, key: str) -> float:
    if value is None:
        return default
    try:
        return float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        warnings.warn(f"Invalid float for {key}: {value!r}", RuntimeWarning, stacklevel=2)
        return default


def _parse_log_level(value: object, default: str, *, key: str) -> str:
    if value is None:
        return default
    name = str(value).strip().upper()
    if name in logging.getLevelNamesMapping():
        return name
    warnings.warn(f"Invalid log level for {key}: {value!r}", RuntimeWarning, stacklevel=2)
    return default


def load_config(path: Path | None = None) -> TaskSyncConfig:
    cfg = TaskSyncConfig()
    config_path = get_config_path(path)
    if config_path.exists():
        try:
            data = read_config_file(config_path)
        except ValueError:
            warnings.warn(f"Invalid config file: {config_path}", RuntimeWarning, stacklevel=2)
            data = {}
        cfg = _apply_dict(cfg, data)
    return _apply_dict(cfg, get_env_overrides())


def _apply_dict(cfg: TaskSyncConfig, data: dict[str, Any]) -> TaskSyncConfig:
    for key, value in data.items():
        if not hasattr(cfg, key):
            continue
        if key in _INT_KEYS:
            setattr(cfg, key, _parse_int(value, getattr(cfg, key), key=key))
            continue
        if key in _FLOAT_KEYS:
            setattr(cfg, key, _parse_float(value, getattr(cfg, key), key=key))
            continue
        if key == "log_level":
            cfg.log_level = _parse_log_level(value, cfg.log_level, key=key)
            continue
        if value is None:
            continue
        setattr(cfg, key, str(value))
    cfg.api_url = cfg.api_url.strip().rstrip("/")
    return cfg
