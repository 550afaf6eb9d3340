from typing import Iterable, Union
from audit_engine.core.identity import identity_of
from audit_engine.core.storage import origin_key
from audit_engine.models.schemas import Comparison, HistoryEntry, ScanResult, SeverityDelta, SEVERITIES


def as_entry(result: ScanResult, audit_types: Iterable[str] = ()) -> HistoryEntry:
    """Lift an unsaved result into the history-entry shape used for comparison."""
    return HistoryEntry(
        id="current",
        url=result.url,
        origin=origin_key(result.url),
        audit_types=list(audit_types),
        timestamp=result.timestamp,
        duration=result.duration,
        summary=result.summary,
        finding_count=len(result.findings),
        findings=result.findings,
    )


def compare(current: Union[ScanResult, HistoryEntry], previous: HistoryEntry) -> Comparison:
    """
    Diff two scans by finding identity (selector + rule id).

    ``fixed`` and ``introduced`` keep the order of the list they come from.
    Duplicate identities within one scan are counted individually on the
    current side, so ``unchanged_count + len(introduced) == len(current.findings)``.
    """
    if isinstance(current, ScanResult):
        current = as_entry(current)

    current_ids = {identity_of(f) for f in current.findings}
    previous_ids = {identity_of(f) for f in previous.findings}

    fixed = [f for f in previous.findings if identity_of(f) not in current_ids]
    introduced = [f for f in current.findings if identity_of(f) not in previous_ids]
    unchanged = len(current.findings) - len(introduced)

    delta = SeverityDelta(**{
        s: current.summary.by_severity.get(s, 0) - previous.summary.by_severity.get(s, 0)
        for s in SEVERITIES
    })

    return Comparison(
        current=current,
        previous=previous,
        severity_delta=delta,
        total_delta=current.finding_count - previous.finding_count,
        fixed=fixed,
        introduced=introduced,
        unchanged_count=unchanged,
    )
