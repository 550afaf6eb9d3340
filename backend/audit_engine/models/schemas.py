from typing import Literal, List, Dict, Optional, Union
from pydantic import BaseModel, Field

Severity = Literal["critical", "serious", "moderate", "minor"]
Category = Literal[
    "images", "interactive", "forms", "color",
    "document", "structure", "aria", "technical",
]
AuditType = Literal[
    "accessibility", "performance", "seo", "security", "best-practices",
    "pwa", "mobile", "links", "i18n", "privacy",
]
Grade = Literal["A", "B", "C", "D", "F"]
WcagLevel = Literal["A", "AA", "AAA"]
IgnoreReason = Literal["false-positive", "third-party", "intentional", "will-fix-later", "other"]

# rank order, most severe first
SEVERITIES: tuple = ("critical", "serious", "moderate", "minor")
CATEGORIES: tuple = (
    "images", "interactive", "forms", "color",
    "document", "structure", "aria", "technical",
)


def _zero_severity() -> Dict[str, int]:
    return {s: 0 for s in SEVERITIES}


def _zero_category() -> Dict[str, int]:
    return {c: 0 for c in CATEGORIES}


# page payloads are rejected rather than half-read when their shape is off
_WIRE = {"frozen": True, "extra": "forbid"}


class ElementLocation(BaseModel):
    model_config = _WIRE

    selector: str
    html: str = ""
    failure_summary: Optional[str] = None


class Remediation(BaseModel):
    model_config = _WIRE

    description: str
    code: str = ""
    learn_more_url: str = ""


class WcagCriterion(BaseModel):
    model_config = _WIRE

    id: str                         # e.g. "1.1.1"
    level: WcagLevel
    name: str
    description: str = ""


class Finding(BaseModel):
    model_config = _WIRE

    id: str
    rule_id: str
    severity: Severity
    category: Category
    message: str
    description: str = ""
    help_url: str = ""
    wcag: Optional[WcagCriterion] = None
    location: ElementLocation
    remediation: Remediation


class Summary(BaseModel):
    model_config = {"extra": "forbid"}

    total: int = 0
    by_severity: Dict[Severity, int] = Field(default_factory=_zero_severity)
    by_category: Dict[Category, int] = Field(default_factory=_zero_category)


class ScanResult(BaseModel):
    model_config = {"extra": "forbid"}

    url: str
    timestamp: int                  # epoch ms
    duration: int = 0               # ms
    findings: List[Finding] = Field(default_factory=list)
    incomplete: List[Finding] = Field(default_factory=list)
    summary: Summary = Field(default_factory=Summary)


class HistoryEntry(BaseModel):
    id: str
    url: str
    origin: str
    audit_types: List[str] = Field(default_factory=list)
    timestamp: int
    duration: int = 0
    summary: Summary = Field(default_factory=Summary)
    finding_count: int = 0
    findings: List[Finding] = Field(default_factory=list)


class HistoryItem(HistoryEntry):
    captured: str                   # "3h ago", "Yesterday", ...


class SeverityDelta(BaseModel):
    critical: int = 0
    serious: int = 0
    moderate: int = 0
    minor: int = 0


class Comparison(BaseModel):
    current: HistoryEntry
    previous: HistoryEntry
    severity_delta: SeverityDelta
    total_delta: int
    fixed: List[Finding] = Field(default_factory=list)
    introduced: List[Finding] = Field(default_factory=list)
    unchanged_count: int = 0


class ScoreResult(BaseModel):
    score: int = Field(ge=0, le=100)
    grade: Grade
    color: str
    label: str


class IgnoredFinding(BaseModel):
    identity: str
    selector: str
    rule_id: str
    message: str = ""
    reason: IgnoreReason
    custom_note: Optional[str] = None
    ignored_at: int                 # epoch ms
    origin: str


# ---- request bodies for the HTTP surface

class ScanRequest(BaseModel):
    url: str
    tab_id: Optional[int] = None
    audit_types: List[AuditType] = Field(default_factory=lambda: ["accessibility"])
    save: bool = True


class ScanResponse(BaseModel):
    result: Optional[ScanResult] = None
    score: Optional[ScoreResult] = None
    entry: Optional[HistoryEntry] = None
    warning: Optional[str] = None


class SaveRequest(BaseModel):
    result: ScanResult
    audit_types: List[str] = Field(default_factory=lambda: ["accessibility"])


class CompareRequest(BaseModel):
    current: Union[HistoryEntry, ScanResult]
    previous: HistoryEntry


class IgnoreRequest(BaseModel):
    url: str
    selector: str
    rule_id: str
    message: str = ""
    reason: IgnoreReason
    custom_note: Optional[str] = None
