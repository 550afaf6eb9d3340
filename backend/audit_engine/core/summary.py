from typing import Iterable
from audit_engine.models.schemas import Finding, Summary


def summarize(findings: Iterable[Finding]) -> Summary:
    """Recount totals from the findings themselves, never from a prior summary."""
    summary = Summary()
    for f in findings:
        summary.total += 1
        summary.by_severity[f.severity] += 1
        summary.by_category[f.category] += 1
    return summary
