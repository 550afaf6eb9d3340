from audit_engine.models.schemas import Finding

# "::" does not occur in CSS selectors or rule ids
SEPARATOR = "::"


def finding_identity(selector: str, rule_id: str) -> str:
    """Stable key for "the same issue" across scans of one origin."""
    return f"{selector}{SEPARATOR}{rule_id}"


def identity_of(finding: Finding) -> str:
    return finding_identity(finding.location.selector, finding.rule_id)
