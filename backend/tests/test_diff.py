from __future__ import annotations

import asyncio

from audit_engine.core.diff import as_entry, compare
from audit_engine.core.storage import HistoryStore

from conftest import make_finding, make_result


def _entry(history: HistoryStore, findings, timestamp: int):
    return asyncio.run(history.save(make_result(findings, timestamp=timestamp)))


def test_compare_with_itself_is_unchanged(history: HistoryStore) -> None:
    findings = [
        make_finding(id="1", selector="img.a", severity="critical"),
        make_finding(id="2", selector="img.b", severity="minor"),
    ]
    entry = _entry(history, findings, 1)

    comparison = compare(entry, entry)

    assert comparison.fixed == []
    assert comparison.introduced == []
    assert comparison.unchanged_count == 2
    assert comparison.total_delta == 0
    assert comparison.severity_delta.model_dump() == {"critical": 0, "serious": 0, "moderate": 0, "minor": 0}


def test_compare_disjoint_scans(history: HistoryStore) -> None:
    old = [make_finding(id="1", selector="img.old", severity="critical")]
    new = [
        make_finding(id="1", selector="img.new", severity="minor"),
        make_finding(id="2", selector="img.newer", severity="minor"),
    ]
    previous = _entry(history, old, 1)
    current = _entry(history, new, 2)

    comparison = compare(current, previous)

    assert comparison.unchanged_count == 0
    assert comparison.fixed == previous.findings
    assert comparison.introduced == current.findings
    assert comparison.total_delta == 1
    assert comparison.severity_delta.critical == -1
    assert comparison.severity_delta.minor == 2


def test_compare_matches_by_selector_and_rule_not_id(history: HistoryStore) -> None:
    kept = make_finding(id="old-id", selector="#logo", rule_id="image-alt")
    fixed = make_finding(id="x", selector="#nav", rule_id="link-name")
    previous = _entry(history, [kept, fixed], 1)

    same_issue_new_id = kept.model_copy(update={"id": "new-id"})
    moved_rule = make_finding(id="y", selector="#logo", rule_id="region")
    current = make_result([same_issue_new_id, moved_rule], timestamp=2)

    comparison = compare(current, previous)

    assert comparison.unchanged_count == 1
    assert [f.id for f in comparison.fixed] == ["x"]
    assert [f.id for f in comparison.introduced] == ["y"]


def test_unsaved_result_is_lifted_to_entry_shape(history: HistoryStore) -> None:
    previous = _entry(history, [], 1)
    current = make_result([make_finding()], timestamp=2)

    comparison = compare(current, previous)

    assert comparison.current.id == "current"
    assert comparison.current.origin == "example.com"
    assert comparison.current.finding_count == 1
    assert comparison.introduced == current.findings


def test_as_entry_keeps_audit_types() -> None:
    entry = as_entry(make_result(), ["seo"])

    assert entry.audit_types == ["seo"]
    assert entry.findings == []
