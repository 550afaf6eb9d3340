"""
Health score for a set of findings.

Both entry points reduce their input to per-severity counts and feed them
through ``weighted_total`` so the findings-based and summary-based scores
cannot drift apart.
"""
import math
from collections import Counter, defaultdict
from typing import Dict, Iterable, List, Mapping
from audit_engine.models.schemas import Category, Finding, ScoreResult, Summary, SEVERITIES

SEVERITY_WEIGHTS: Dict[str, int] = {
    "critical": 10,
    "serious": 5,
    "moderate": 2,
    "minor": 1,
}

# weighted count at which the log curve reaches 0
MAX_WEIGHTED = 100

# (lower bound, grade, color, label), highest band first
GRADE_BANDS = (
    (90, "A", "#00C853", "Excellent"),
    (75, "B", "#64DD17", "Good"),
    (50, "C", "#FFD600", "Needs Work"),
    (25, "D", "#FF9100", "Poor"),
    (0, "F", "#FF3D00", "Critical"),
)


def weighted_total(counts: Mapping[str, int]) -> int:
    return sum(SEVERITY_WEIGHTS[s] * (counts.get(s) or 0) for s in SEVERITIES)


def grade_for(score: int) -> ScoreResult:
    for floor, grade, color, label in GRADE_BANDS:
        if score >= floor:
            return ScoreResult(score=score, grade=grade, color=color, label=label)
    # negative scores are clamped before they get here
    raise ValueError(f"score out of range: {score}")


def score_weighted(weighted: int) -> ScoreResult:
    if weighted == 0:
        return grade_for(100)
    raw = 100 * (1 - math.log(1 + weighted) / math.log(1 + MAX_WEIGHTED))
    # half-up; round() would be half-even
    rounded = math.floor(raw + 0.5)
    return grade_for(max(0, min(100, rounded)))


def score(findings: Iterable[Finding]) -> ScoreResult:
    counts = Counter(f.severity for f in findings)
    return score_weighted(weighted_total(counts))


def score_from_summary(summary: Summary) -> ScoreResult:
    return score_weighted(weighted_total(summary.by_severity))


def score_breakdown(findings: Iterable[Finding]) -> Dict[Category, ScoreResult]:
    by_category: Dict[str, List[Finding]] = defaultdict(list)
    for f in findings:
        by_category[f.category].append(f)
    return {category: score(items) for category, items in by_category.items()}
