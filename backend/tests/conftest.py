from __future__ import annotations

from typing import Any

import pytest

from audit_engine.core.errors import PersistenceReadFailure, PersistenceWriteFailure
from audit_engine.core.remediation import category_for, remediation_for
from audit_engine.core.storage import HistoryStore, IgnoredFindingsStore, MemoryBackend
from audit_engine.core.summary import summarize
from audit_engine.models.schemas import ElementLocation, Finding, ScanResult


def make_finding(
    id: str = "issue-1",
    rule_id: str = "image-alt",
    severity: str = "serious",
    selector: str = "img.hero",
    **overrides: Any,
) -> Finding:
    location = ElementLocation(selector=selector, html=f'<img class="{selector}">')
    fields: dict[str, Any] = {
        "id": id,
        "rule_id": rule_id,
        "severity": severity,
        "category": category_for(rule_id),
        "message": f"{rule_id} violation",
        "description": "",
        "location": location,
        "remediation": remediation_for(rule_id, location),
    }
    fields.update(overrides)
    return Finding(**fields)


def make_result(
    findings: list[Finding] | None = None,
    url: str = "https://example.com/page",
    timestamp: int = 1_700_000_000_000,
    duration: int = 120,
    incomplete: list[Finding] | None = None,
) -> ScanResult:
    findings = findings or []
    return ScanResult(
        url=url,
        timestamp=timestamp,
        duration=duration,
        findings=findings,
        incomplete=incomplete or [],
        summary=summarize(findings),
    )


class FailingBackend(MemoryBackend):
    def __init__(self, fail_reads: bool = False, fail_writes: bool = False) -> None:
        super().__init__()
        self.fail_reads = fail_reads
        self.fail_writes = fail_writes

    async def get(self, key: str):
        if self.fail_reads:
            raise PersistenceReadFailure("storage unavailable")
        return await super().get(key)

    async def set(self, key: str, value: bytes) -> None:
        if self.fail_writes:
            raise PersistenceWriteFailure("quota exceeded")
        await super().set(key, value)


@pytest.fixture
def backend() -> MemoryBackend:
    return MemoryBackend()


@pytest.fixture
def history(backend: MemoryBackend) -> HistoryStore:
    return HistoryStore(backend, key="history", max_per_origin=10)


@pytest.fixture
def ignored(backend: MemoryBackend) -> IgnoredFindingsStore:
    return IgnoredFindingsStore(backend, key="ignored")
