"""
Error taxonomy for batch scans and history persistence, plus the catalogue
of user-facing error codes the panel shows next to a failed scan.
"""
from typing import Dict, List, Optional, Union
from pydantic import BaseModel


class AuditEngineError(RuntimeError):
    """Base class for every error raised by the engine."""


# ---- fatal, raised before any audit runs

class NoExecutionContext(AuditEngineError):
    def __init__(self, message: str = "No active tab found"):
        super().__init__(message)


class RestrictedPage(AuditEngineError):
    def __init__(self, url: str):
        self.url = url
        super().__init__(f"Cannot scan browser internal pages: {url}")


class ContentScriptNotLoaded(AuditEngineError):
    def __init__(self, message: str = "Please refresh the page and try again"):
        super().__init__(message)


# ---- per-audit and aggregate

class AuditExecutionFailed(AuditEngineError):
    def __init__(self, audit_type: str, message: str):
        self.audit_type = audit_type
        self.message = message
        super().__init__(f"{audit_type}: {message}")


class PartialBatchFailure(AuditEngineError):
    """Some audits in a batch failed; the merged result is still usable."""

    prefix = "Some audits failed: "

    def __init__(self, failures: List[AuditExecutionFailed]):
        self.failures = list(failures)
        super().__init__(self.prefix + "; ".join(str(f) for f in self.failures))

    @property
    def audit_types(self) -> List[str]:
        return [f.audit_type for f in self.failures]


class BatchFailed(PartialBatchFailure):
    """Every audit in a batch failed; there is no result."""


# ---- persistence

class PersistenceReadFailure(AuditEngineError):
    pass


class PersistenceWriteFailure(AuditEngineError):
    pass


# ---- user-facing catalogue

class ErrorDetails(BaseModel):
    code: str
    title: str
    message: str
    suggestion: str
    help_url: Optional[str] = None


ERROR_CODES: Dict[str, ErrorDetails] = {
    "E001": ErrorDetails(
        code="E001", title="No Active Tab",
        message="Could not find an active browser tab to scan.",
        suggestion="Make sure you have a webpage open and try again.",
    ),
    "E002": ErrorDetails(
        code="E002", title="Restricted Page",
        message="Cannot scan browser internal pages (chrome://, about:, etc.)",
        suggestion="Navigate to a regular webpage (http:// or https://) to scan.",
    ),
    "E003": ErrorDetails(
        code="E003", title="Content Script Not Loaded",
        message="The scanner is not loaded on this page.",
        suggestion="Refresh the page and try again. If the problem persists, try reloading the extension.",
    ),
    "E004": ErrorDetails(
        code="E004", title="Scan Timeout",
        message="The scan took too long to complete.",
        suggestion="The page may be too large or complex. Try refreshing and scanning again.",
    ),
    "E005": ErrorDetails(
        code="E005", title="Scan Failed",
        message="An unexpected error occurred during the scan.",
        suggestion="Try refreshing the page. If the problem continues, check the logs for details.",
    ),
    "E006": ErrorDetails(
        code="E006", title="Audit Not Supported",
        message="This audit type is not yet fully implemented.",
        suggestion="Try a different audit type for now.",
    ),
    "E007": ErrorDetails(
        code="E007", title="Partial Scan Failure",
        message="Some audit types failed while others succeeded.",
        suggestion="Check the results for successful audits. Try running failed audits individually.",
    ),
    "E008": ErrorDetails(
        code="E008", title="Network Error",
        message="Could not communicate with the page.",
        suggestion="Check your connection and refresh the page.",
    ),
}

# first match wins
_PATTERNS = (
    (("no active tab",), "E001"),
    (("internal pages", "restricted"), "E002"),
    (("refresh the page", "content script"), "E003"),
    (("timeout", "timed out", "too long"), "E004"),
    (("not yet implemented", "not supported"), "E006"),
    (("some audits failed", "partial"), "E007"),
    (("network", "connection"), "E008"),
)


def describe_error(error: Union[BaseException, str]) -> ErrorDetails:
    if isinstance(error, PartialBatchFailure):
        return ERROR_CODES["E007"].model_copy(update={"message": str(error)})
    if isinstance(error, NoExecutionContext):
        return ERROR_CODES["E001"]
    if isinstance(error, RestrictedPage):
        return ERROR_CODES["E002"]
    if isinstance(error, ContentScriptNotLoaded):
        return ERROR_CODES["E003"]

    message = error if isinstance(error, str) else str(error)
    lower = message.lower()
    for needles, code in _PATTERNS:
        if any(n in lower for n in needles):
            if code == "E007":
                return ERROR_CODES[code].model_copy(update={"message": message})
            return ERROR_CODES[code]
    return ERROR_CODES["E005"].model_copy(update={"message": message or ERROR_CODES["E005"].message})


def format_error(error: Union[BaseException, str]) -> str:
    details = describe_error(error)
    return f"{details.title}: {details.message}"
