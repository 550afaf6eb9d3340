from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from types import SimpleNamespace
from typing import Any

import pytest

from audit_engine.core.engine import BatchOutcome, renamespace, run_batch
from audit_engine.core.errors import (
    AuditExecutionFailed,
    BatchFailed,
    ContentScriptNotLoaded,
    NoExecutionContext,
    RestrictedPage,
)
from audit_engine.core.executor import PageContext
from audit_engine.models.schemas import ScanResult

from conftest import make_finding, make_result

CONTEXT = PageContext(url="https://example.com", tab_id=1)


@dataclass
class FakeExecutor:
    results: dict[str, ScanResult | Exception]
    calls: list[str] = field(default_factory=list)
    running: int = 0
    max_running: int = 0

    async def __call__(self, audit_type: str, context: Any) -> ScanResult:
        self.calls.append(audit_type)
        self.running += 1
        self.max_running = max(self.max_running, self.running)
        try:
            await asyncio.sleep(0)
            outcome = self.results[audit_type]
            if isinstance(outcome, Exception):
                raise outcome
            return outcome
        finally:
            self.running -= 1


def _run(audit_types, executor, context=CONTEXT, **kwargs) -> BatchOutcome:
    return asyncio.run(run_batch(audit_types, executor, context, **kwargs))


def test_empty_batch_is_a_no_op() -> None:
    executor = FakeExecutor({})

    outcome = _run([], executor)

    assert outcome.result is None
    assert outcome.error is None
    assert executor.calls == []


def test_single_audit_is_passed_through_unchanged() -> None:
    result = make_result([make_finding(id="issue-1")], duration=42)
    executor = FakeExecutor({"a": result})

    outcome = _run(["a"], executor)

    assert outcome.result == result
    assert outcome.result.findings[0].id == "issue-1"
    assert outcome.error is None


def test_single_audit_failure_propagates_unchanged() -> None:
    boom = ValueError("page crashed")
    executor = FakeExecutor({"a": boom})

    with pytest.raises(ValueError) as excinfo:
        _run(["a"], executor)
    assert excinfo.value is boom


def test_multi_audit_merges_and_renamespaces() -> None:
    a = make_result(
        [make_finding(id="issue-1", severity="critical")],
        incomplete=[make_finding(id="maybe-1", selector="p")],
        duration=100,
    )
    b = make_result([make_finding(id="issue-1", severity="minor", selector="a.x", rule_id="link-name")], duration=50)
    executor = FakeExecutor({"accessibility": a, "seo": b})

    outcome = _run(["accessibility", "seo"], executor)
    merged = outcome.result

    assert outcome.ok
    assert executor.calls == ["accessibility", "seo"]
    assert [f.id for f in merged.findings] == ["accessibility-issue-1", "seo-issue-1"]
    assert [f.id for f in merged.incomplete] == ["accessibility-maybe-1"]
    assert merged.duration == 150
    assert merged.url == a.url
    assert merged.summary.total == 2
    assert merged.summary.by_severity["critical"] == 1
    assert merged.summary.by_severity["minor"] == 1
    assert sum(merged.summary.by_category.values()) == 2


def test_merged_summary_is_recounted_not_copied() -> None:
    stale = make_result([make_finding()]).model_copy(update={"summary": make_result().summary})
    executor = FakeExecutor({"a": stale, "b": make_result()})

    merged = _run(["a", "b"], executor).result

    assert merged.summary.total == 1


def test_partial_failure_keeps_successful_findings() -> None:
    executor = FakeExecutor({
        "a": make_result([make_finding(id="1"), make_finding(id="2", selector="img.b")]),
        "b": RuntimeError("Performance audit failed"),
    })

    outcome = _run(["a", "b"], executor)

    assert outcome.result is not None
    assert [f.id for f in outcome.result.findings] == ["a-1", "a-2"]
    assert str(outcome.error) == "Some audits failed: b: Performance audit failed"
    assert outcome.error.audit_types == ["b"]
    assert not outcome.ok


def test_failure_does_not_abort_later_audits() -> None:
    executor = FakeExecutor({
        "seo": AuditExecutionFailed("seo", "timed out"),
        "security": RuntimeError("no CSP data"),
        "pwa": make_result([make_finding(id="7")]),
    })

    outcome = _run(["seo", "security", "pwa"], executor)

    assert executor.calls == ["seo", "security", "pwa"]
    assert str(outcome.error) == "Some audits failed: seo: timed out; security: no CSP data"
    assert [f.id for f in outcome.result.findings] == ["pwa-7"]


def test_all_audits_failing_raises() -> None:
    executor = FakeExecutor({"a": RuntimeError("x"), "b": RuntimeError("y")})

    with pytest.raises(BatchFailed) as excinfo:
        _run(["a", "b"], executor)
    assert str(excinfo.value) == "Some audits failed: a: x; b: y"


def test_audits_never_overlap() -> None:
    executor = FakeExecutor({t: make_result() for t in ("a", "b", "c")})

    _run(["a", "b", "c"], executor)

    assert executor.max_running == 1


def test_missing_context_is_fatal() -> None:
    executor = FakeExecutor({"a": make_result()})

    with pytest.raises(NoExecutionContext):
        _run(["a", "b"], executor, context=None)
    assert executor.calls == []


@pytest.mark.parametrize("url", ["chrome://settings", "chrome-extension://abc/panel.html", "about:blank"])
def test_restricted_pages_are_fatal(url: str) -> None:
    executor = FakeExecutor({"a": make_result()})

    with pytest.raises(RestrictedPage):
        _run(["a"], executor, context=PageContext(url=url))
    assert executor.calls == []


@pytest.mark.parametrize("url", [None, 123])
def test_context_without_string_url_still_runs(url: Any) -> None:
    executor = FakeExecutor({"a": make_result()})

    outcome = _run(["a"], executor, context=SimpleNamespace(url=url))

    assert outcome.ok
    assert executor.calls == ["a"]


def test_prepare_runs_once_before_the_loop() -> None:
    prepared: list[Any] = []

    async def prepare(context: Any) -> None:
        prepared.append(context)

    executor = FakeExecutor({"a": make_result(), "b": make_result()})
    _run(["a", "b"], executor, prepare=prepare)

    assert prepared == [CONTEXT]


def test_prepare_failure_is_fatal() -> None:
    async def prepare(context: Any) -> None:
        raise ContentScriptNotLoaded()

    executor = FakeExecutor({"a": make_result(), "b": make_result()})

    with pytest.raises(ContentScriptNotLoaded):
        _run(["a", "b"], executor, prepare=prepare)
    assert executor.calls == []


def test_progress_is_reported_per_audit() -> None:
    progress: list[tuple[int, int, str]] = []
    executor = FakeExecutor({"a": make_result(), "b": RuntimeError("nope")})

    _run(["a", "b"], executor, on_progress=lambda i, n, t: progress.append((i, n, t)))

    assert progress == [(0, 2, "a"), (1, 2, "b")]


def test_renamespace_keeps_everything_but_id() -> None:
    finding = make_finding(id="issue-3")

    renamed = renamespace(finding, "security")

    assert renamed.id == "security-issue-3"
    assert renamed.model_dump(exclude={"id"}) == finding.model_dump(exclude={"id"})
    assert finding.id == "issue-3"
