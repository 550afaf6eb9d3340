"""
Scan history and ignored-finding persistence.

Each store keeps its whole collection as one JSON array under a single key of
a :class:`KeyValueBackend`, and every mutation is a read-modify-write of that
array. Nothing serializes concurrent writers: if two mutations overlap, the
later write replaces the earlier one (last writer wins on the whole
collection). Callers are expected to issue one mutation at a time; a
deployment with several writers needs a versioned write on top of this.

Read problems (missing key, unreadable file, corrupt JSON) degrade to an empty
collection so scoring and diffing keep working without storage. Write
problems raise :class:`PersistenceWriteFailure`.
"""
import asyncio
import logging
import os
import tempfile
import uuid
from pathlib import Path
from typing import Dict, Generic, Iterable, List, Optional, Protocol, TypeVar
from urllib.parse import urlsplit

from pydantic import TypeAdapter, ValidationError

from audit_engine.config import (
    DEFAULT_HISTORY_KEY,
    DEFAULT_IGNORED_KEY,
    DEFAULT_MAX_HISTORY_PER_ORIGIN,
)
from audit_engine.core.errors import PersistenceReadFailure, PersistenceWriteFailure
from audit_engine.core.identity import finding_identity
from audit_engine.core.timeutil import now_ms
from audit_engine.models.schemas import HistoryEntry, IgnoredFinding, ScanResult

logger = logging.getLogger(__name__)

T = TypeVar("T")


class KeyValueBackend(Protocol):
    async def get(self, key: str) -> Optional[bytes]: ...

    async def set(self, key: str, value: bytes) -> None: ...

    async def remove(self, key: str) -> None: ...


class MemoryBackend:
    """Process-local backend; contents vanish with the process."""

    def __init__(self, initial: Optional[Dict[str, bytes]] = None):
        self.data: Dict[str, bytes] = dict(initial or {})

    async def get(self, key: str) -> Optional[bytes]:
        return self.data.get(key)

    async def set(self, key: str, value: bytes) -> None:
        self.data[key] = value

    async def remove(self, key: str) -> None:
        self.data.pop(key, None)


class JsonFileBackend:
    """One ``<key>.json`` file per key under ``root``."""

    def __init__(self, root: str | Path):
        self.root = Path(root)

    def _path(self, key: str) -> Path:
        return self.root / f"{key}.json"

    def _read(self, key: str) -> Optional[bytes]:
        path = self._path(key)
        if not path.exists():
            return None
        return path.read_bytes()

    def _write(self, key: str, value: bytes) -> None:
        self.root.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=self.root, prefix=f".{key}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "wb") as fh:
                fh.write(value)
            os.replace(tmp, self._path(key))
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise

    async def get(self, key: str) -> Optional[bytes]:
        try:
            return await asyncio.to_thread(self._read, key)
        except OSError as e:
            raise PersistenceReadFailure(f"Could not read {key}: {e}") from e

    async def set(self, key: str, value: bytes) -> None:
        try:
            await asyncio.to_thread(self._write, key, value)
        except OSError as e:
            raise PersistenceWriteFailure(f"Could not write {key}: {e}") from e

    async def remove(self, key: str) -> None:
        try:
            await asyncio.to_thread(self._path(key).unlink, missing_ok=True)
        except OSError as e:
            raise PersistenceWriteFailure(f"Could not remove {key}: {e}") from e


def origin_key(url: str) -> str:
    """Hostname of ``url``; the raw string when there is none to extract."""
    try:
        host = urlsplit(url).hostname
    except ValueError:
        return url
    return host or url


def new_entry_id() -> str:
    return f"scan_{now_ms()}_{uuid.uuid4().hex[:7]}"


class _CollectionStore(Generic[T]):
    def __init__(self, backend: KeyValueBackend, key: str, item_type: type):
        self.backend = backend
        self.key = key
        self._adapter: TypeAdapter = TypeAdapter(List[item_type])

    async def _read(self) -> List[T]:
        try:
            raw = await self.backend.get(self.key)
        except (PersistenceReadFailure, OSError) as e:
            logger.warning("Reading %s failed, treating it as empty: %s", self.key, e)
            return []
        if raw is None:
            return []
        try:
            return self._adapter.validate_json(raw)
        except ValidationError as e:
            logger.warning("Discarding corrupt %s (%d errors)", self.key, e.error_count())
            return []

    async def _write(self, items: Iterable[T]) -> None:
        payload = self._adapter.dump_json(list(items))
        try:
            await self.backend.set(self.key, payload)
        except PersistenceWriteFailure:
            logger.error("Writing %s failed", self.key)
            raise
        except OSError as e:
            logger.error("Writing %s failed: %s", self.key, e)
            raise PersistenceWriteFailure(f"Could not write {self.key}: {e}") from e

    async def _remove(self) -> None:
        try:
            await self.backend.remove(self.key)
        except PersistenceWriteFailure:
            logger.error("Removing %s failed", self.key)
            raise
        except OSError as e:
            logger.error("Removing %s failed: %s", self.key, e)
            raise PersistenceWriteFailure(f"Could not remove {self.key}: {e}") from e


class HistoryStore(_CollectionStore[HistoryEntry]):
    """Bounded per-origin scan history."""

    def __init__(
        self,
        backend: KeyValueBackend,
        *,
        key: str = DEFAULT_HISTORY_KEY,
        max_per_origin: int = DEFAULT_MAX_HISTORY_PER_ORIGIN,
    ):
        if max_per_origin < 1:
            raise ValueError("max_per_origin must be at least 1")
        super().__init__(backend, key, HistoryEntry)
        self.max_per_origin = max_per_origin

    async def save(self, result: ScanResult, audit_types: Iterable[str] = ("accessibility",)) -> HistoryEntry:
        origin = origin_key(result.url)
        entry = HistoryEntry(
            id=new_entry_id(),
            url=result.url,
            origin=origin,
            audit_types=list(audit_types),
            timestamp=result.timestamp,
            duration=result.duration,
            summary=result.summary,
            finding_count=len(result.findings),
            findings=result.findings,
        )

        entries = await self._read()
        others = [e for e in entries if e.origin != origin]
        mine = sorted((e for e in entries if e.origin == origin), key=lambda e: e.timestamp, reverse=True)
        kept = mine[: self.max_per_origin - 1]
        if len(kept) < len(mine):
            logger.info("Evicting %d old scan(s) for %s", len(mine) - len(kept), origin)

        await self._write(others + kept + [entry])
        logger.info("Saved scan %s for %s (%d findings)", entry.id, origin, entry.finding_count)
        return entry

    async def list_all(self) -> List[HistoryEntry]:
        return await self._read()

    async def list_for_origin(self, url: str) -> List[HistoryEntry]:
        origin = origin_key(url)
        entries = [e for e in await self._read() if e.origin == origin]
        return sorted(entries, key=lambda e: e.timestamp, reverse=True)

    async def previous(self, url: str, exclude_timestamp: Optional[int] = None) -> Optional[HistoryEntry]:
        for entry in await self.list_for_origin(url):
            if exclude_timestamp is None or entry.timestamp != exclude_timestamp:
                return entry
        return None

    async def delete_by_id(self, entry_id: str) -> None:
        entries = await self._read()
        await self._write(e for e in entries if e.id != entry_id)

    async def clear_origin(self, url: str) -> None:
        origin = origin_key(url)
        entries = await self._read()
        await self._write(e for e in entries if e.origin != origin)

    async def clear_all(self) -> None:
        await self._remove()


class IgnoredFindingsStore(_CollectionStore[IgnoredFinding]):
    """Findings a user marked as known, per origin, keyed by finding identity."""

    def __init__(self, backend: KeyValueBackend, *, key: str = DEFAULT_IGNORED_KEY):
        super().__init__(backend, key, IgnoredFinding)

    async def list_all(self) -> List[IgnoredFinding]:
        return await self._read()

    async def list_for_origin(self, url: str) -> List[IgnoredFinding]:
        origin = origin_key(url)
        return [i for i in await self._read() if i.origin == origin]

    async def identities_for_origin(self, url: str) -> set:
        return {i.identity for i in await self.list_for_origin(url)}

    async def is_ignored(self, url: str, selector: str, rule_id: str) -> bool:
        return finding_identity(selector, rule_id) in await self.identities_for_origin(url)

    async def ignore(
        self,
        url: str,
        selector: str,
        rule_id: str,
        message: str,
        reason: str,
        custom_note: Optional[str] = None,
    ) -> IgnoredFinding:
        origin = origin_key(url)
        identity = finding_identity(selector, rule_id)
        item = IgnoredFinding(
            identity=identity,
            selector=selector,
            rule_id=rule_id,
            message=message,
            reason=reason,
            custom_note=custom_note,
            ignored_at=now_ms(),
            origin=origin,
        )
        items = await self._read()
        kept = [i for i in items if not (i.identity == identity and i.origin == origin)]
        await self._write(kept + [item])
        return item

    async def unignore(self, url: str, selector: str, rule_id: str) -> None:
        origin = origin_key(url)
        identity = finding_identity(selector, rule_id)
        items = await self._read()
        await self._write(i for i in items if not (i.identity == identity and i.origin == origin))

    async def clear_origin(self, url: str) -> None:
        origin = origin_key(url)
        items = await self._read()
        await self._write(i for i in items if i.origin != origin)

    async def clear_all(self) -> None:
        await self._remove()
