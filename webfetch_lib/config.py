from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping

DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 3000
DEFAULT_FETCH_TIMEOUT = 10.0
DEFAULT_USER_AGENT = "webfetch/1.0"
DEFAULT_KEEPALIVE_INTERVAL = 10.0
DEFAULT_MESSAGE_PATH = "/message"
DEFAULT_LOG_LEVEL = "INFO"


def _is_truthy(value: str) -> bool:
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _float_env(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be a number, got {raw!r}") from exc
    if value <= 0:
        raise ValueError(f"{name} must be positive, got {raw!r}")
    return value


def _int_env(env: Mapping[str, str], names: tuple[str, ...], default: int) -> int:
    for name in names:
        raw = env.get(name)
        if raw is None or not raw.strip():
            continue
        try:
            return int(raw)
        except ValueError as exc:
            raise ValueError(f"{name} must be an integer, got {raw!r}") from exc
    return default


@dataclass(frozen=True)
class Settings:
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    fetch_timeout: float = DEFAULT_FETCH_TIMEOUT
    user_agent: str = DEFAULT_USER_AGENT
    keepalive_interval: float = DEFAULT_KEEPALIVE_INTERVAL
    sole_session_fallback: bool = False
    message_path: str = DEFAULT_MESSAGE_PATH
    log_path: str | None = None
    log_level: str = DEFAULT_LOG_LEVEL


def load_settings(env: Mapping[str, str] | None = None) -> Settings:
    """Read ``WEBFETCH_*`` variables (``PORT`` is honoured as a fallback)."""

    source = os.environ if env is None else env
    message_path = source.get("WEBFETCH_MESSAGE_PATH", DEFAULT_MESSAGE_PATH).strip() or DEFAULT_MESSAGE_PATH
    if not message_path.startswith("/"):
        message_path = f"/{message_path}"
    return Settings(
        host=source.get("WEBFETCH_HOST", DEFAULT_HOST),
        port=_int_env(source, ("WEBFETCH_PORT", "PORT"), DEFAULT_PORT),
        fetch_timeout=_float_env(source, "WEBFETCH_FETCH_TIMEOUT", DEFAULT_FETCH_TIMEOUT),
        user_agent=source.get("WEBFETCH_USER_AGENT", DEFAULT_USER_AGENT),
        keepalive_interval=_float_env(source, "WEBFETCH_KEEPALIVE_INTERVAL", DEFAULT_KEEPALIVE_INTERVAL),
        sole_session_fallback=_is_truthy(source.get("WEBFETCH_SOLE_SESSION_FALLBACK", "")),
        message_path=message_path,
        log_path=source.get("WEBFETCH_LOG_PATH") or None,
        log_level=source.get("WEBFETCH_LOG_LEVEL", DEFAULT_LOG_LEVEL).upper(),
    )
