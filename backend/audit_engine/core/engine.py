import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, List, Optional, Sequence

import httpx

from audit_engine.config import Settings
from audit_engine.core.errors import (
    AuditExecutionFailed,
    BatchFailed,
    NoExecutionContext,
    PartialBatchFailure,
    RestrictedPage,
)
from audit_engine.core.executor import HttpAuditExecutor, PageContext
from audit_engine.core.http import client_for
from audit_engine.core.summary import summarize
from audit_engine.core.timeutil import now_ms
from audit_engine.models.schemas import Finding, ScanResult

logger = logging.getLogger(__name__)

ExecuteOne = Callable[[str, Any], Awaitable[ScanResult]]
Prepare = Callable[[Any], Awaitable[None]]
ProgressCallback = Callable[[int, int, str], None]

RESTRICTED_PREFIXES = ("chrome://", "chrome-extension://", "about:")


@dataclass
class BatchOutcome:
    result: Optional[ScanResult] = None
    error: Optional[PartialBatchFailure] = None

    @property
    def ok(self) -> bool:
        return self.result is not None and self.error is None


def check_context(context: Any) -> None:
    if context is None:
        raise NoExecutionContext()
    url = getattr(context, "url", None)
    if isinstance(url, str) and url.startswith(RESTRICTED_PREFIXES):
        raise RestrictedPage(url)


def renamespace(finding: Finding, audit_type: str) -> Finding:
    return finding.model_copy(update={"id": f"{audit_type}-{finding.id}"})


async def run_batch(
    audit_types: Sequence[str],
    execute_one: ExecuteOne,
    context: Any,
    *,
    prepare: Optional[Prepare] = None,
    on_progress: Optional[ProgressCallback] = None,
) -> BatchOutcome:
    """
    Run each audit type through ``execute_one`` and merge the results.

    Audits run one after another: they share the page's single messaging
    channel and replies cannot be interleaved. A failing audit is recorded
    and the batch moves on; the merged result comes back together with a
    :class:`PartialBatchFailure`. Only context problems (checked once, up
    front) and a batch where nothing succeeded raise.
    """
    if not audit_types:
        return BatchOutcome()

    check_context(context)
    if prepare is not None:
        await prepare(context)

    if len(audit_types) == 1:
        return BatchOutcome(result=await execute_one(audit_types[0], context))

    findings: List[Finding] = []
    incomplete: List[Finding] = []
    failures: List[AuditExecutionFailed] = []
    duration = 0
    url: Optional[str] = None
    total = len(audit_types)

    for index, audit_type in enumerate(audit_types):
        if on_progress is not None:
            on_progress(index, total, audit_type)
        logger.info("Running %s audit (%d/%d)", audit_type, index + 1, total)
        try:
            result = await execute_one(audit_type, context)
        except Exception as e:
            message = e.message if isinstance(e, AuditExecutionFailed) else (str(e) or type(e).__name__)
            logger.warning("%s audit failed: %s", audit_type, message)
            failures.append(AuditExecutionFailed(audit_type, message))
            continue

        findings.extend(renamespace(f, audit_type) for f in result.findings)
        incomplete.extend(renamespace(f, audit_type) for f in result.incomplete)
        duration += result.duration
        if url is None:
            url = result.url

    if url is None:
        raise BatchFailed(failures)

    merged = ScanResult(
        url=url,
        timestamp=now_ms(),
        duration=duration,
        findings=findings,
        incomplete=incomplete,
        summary=summarize(findings),
    )
    logger.info("Batch finished: %d findings, %d failed audits", merged.summary.total, len(failures))
    return BatchOutcome(result=merged, error=PartialBatchFailure(failures) if failures else None)


async def scan_page(
    context: PageContext,
    audit_types: Sequence[str],
    *,
    settings: Optional[Settings] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    on_progress: Optional[ProgressCallback] = None,
) -> BatchOutcome:
    """Scan a live page through the bridge, pinging it once before the batch."""
    async with client_for(settings, transport) as client:
        executor = HttpAuditExecutor(client)
        return await run_batch(
            audit_types, executor, context,
            prepare=executor.ensure_ready,
            on_progress=on_progress,
        )
