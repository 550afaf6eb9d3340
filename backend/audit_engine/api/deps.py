from functools import lru_cache
from typing import Optional

import httpx

from audit_engine.config import Settings, load_settings
from audit_engine.core.storage import (
    HistoryStore,
    IgnoredFindingsStore,
    JsonFileBackend,
    KeyValueBackend,
    MemoryBackend,
)


@lru_cache()
def get_settings() -> Settings:
    return load_settings()


@lru_cache()
def _backend_for(storage_path: Optional[str]) -> KeyValueBackend:
    if storage_path:
        return JsonFileBackend(storage_path)
    return MemoryBackend()


def get_backend() -> KeyValueBackend:
    return _backend_for(get_settings().storage_path)


def get_history_store() -> HistoryStore:
    settings = get_settings()
    return HistoryStore(
        get_backend(),
        key=settings.history_key,
        max_per_origin=settings.max_history_per_origin,
    )


def get_ignored_store() -> IgnoredFindingsStore:
    return IgnoredFindingsStore(get_backend(), key=get_settings().ignored_key)


def get_bridge_transport() -> Optional[httpx.AsyncBaseTransport]:
    # None -> real network; tests override with httpx.MockTransport
    return None
