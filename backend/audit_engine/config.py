import os
from dataclasses import dataclass
from typing import Optional
from dotenv import load_dotenv
load_dotenv()

DEFAULT_HISTORY_KEY = "watchdog_scan_history"
DEFAULT_IGNORED_KEY = "watchdog_ignored_issues"
DEFAULT_MAX_HISTORY_PER_ORIGIN = 10
DEFAULT_BRIDGE_URL = "http://127.0.0.1:9222/bridge"


@dataclass(frozen=True)
class Settings:
    storage_path: Optional[str] = None       # None -> in-memory history
    history_key: str = DEFAULT_HISTORY_KEY
    ignored_key: str = DEFAULT_IGNORED_KEY
    max_history_per_origin: int = DEFAULT_MAX_HISTORY_PER_ORIGIN
    bridge_url: str = DEFAULT_BRIDGE_URL
    bridge_timeout: float = 30.0


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        raise RuntimeError(f"{name} must be an integer, got {raw!r}")
    if value < 1:
        raise RuntimeError(f"{name} must be at least 1, got {value}")
    return value


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        raise RuntimeError(f"{name} must be a number of seconds, got {raw!r}")


def load_settings() -> Settings:
    """Read settings from the environment (and backend/.env when present)."""
    return Settings(
        storage_path=os.getenv("AUDIT_STORAGE_PATH") or None,
        history_key=os.getenv("AUDIT_HISTORY_KEY") or DEFAULT_HISTORY_KEY,
        ignored_key=os.getenv("AUDIT_IGNORED_KEY") or DEFAULT_IGNORED_KEY,
        max_history_per_origin=_int_env("AUDIT_MAX_HISTORY_PER_ORIGIN", DEFAULT_MAX_HISTORY_PER_ORIGIN),
        bridge_url=os.getenv("AUDIT_BRIDGE_URL") or DEFAULT_BRIDGE_URL,
        bridge_timeout=_float_env("AUDIT_BRIDGE_TIMEOUT", 30.0),
    )
