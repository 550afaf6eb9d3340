from __future__ import annotations

import pytest

from audit_engine.core.errors import (
    ERROR_CODES,
    AuditExecutionFailed,
    ContentScriptNotLoaded,
    NoExecutionContext,
    PartialBatchFailure,
    RestrictedPage,
    describe_error,
    format_error,
)
from audit_engine.core.remediation import (
    REMEDIATIONS,
    RULE_CATEGORIES,
    category_for,
    default_remediation,
    remediation_for,
    supported_rules,
)
from audit_engine.models.schemas import ElementLocation


def test_every_categorized_rule_has_a_remediation() -> None:
    assert set(RULE_CATEGORIES) <= set(REMEDIATIONS)
    assert supported_rules() == sorted(REMEDIATIONS)


def test_image_alt_patches_the_element() -> None:
    fix = remediation_for("image-alt", ElementLocation(selector="img", html='<img src="a.png">'))

    assert fix.code == '<img alt="[Describe what the image shows]" src="a.png">'
    assert fix.learn_more_url.startswith("https://")


def test_tabindex_rewrites_positive_values() -> None:
    fix = remediation_for("tabindex", ElementLocation(selector="div", html='<div tabindex="5">x</div>'))

    assert 'tabindex="0"' in fix.code


def test_button_with_aria_label_is_left_alone() -> None:
    html = '<button aria-label="Close"></button>'

    assert remediation_for("button-name", ElementLocation(selector="button", html=html)).code == html


def test_unknown_rule_uses_default_entry() -> None:
    location = ElementLocation(selector="marquee", html="<marquee>hi</marquee>")

    fix = remediation_for("totally-new-rule", location)

    assert fix == default_remediation("totally-new-rule", location)
    assert fix.code == ""
    assert fix.learn_more_url.endswith("/totally-new-rule")


def test_category_defaults_to_technical() -> None:
    assert category_for("label") == "forms"
    assert category_for("unknown") == "technical"


@pytest.mark.parametrize(
    "error, code",
    [
        (NoExecutionContext(), "E001"),
        (RestrictedPage("chrome://settings"), "E002"),
        (ContentScriptNotLoaded(), "E003"),
        ("Scan timed out", "E004"),
        ("This audit is not supported yet", "E006"),
        ("Network unreachable", "E008"),
        ("something odd", "E005"),
    ],
)
def test_describe_error_codes(error, code: str) -> None:
    assert describe_error(error).code == code


def test_partial_failure_keeps_its_message() -> None:
    error = PartialBatchFailure([AuditExecutionFailed("seo", "boom")])

    details = describe_error(error)

    assert details.code == "E007"
    assert details.message == "Some audits failed: seo: boom"
    assert format_error(error) == "Partial Scan Failure: Some audits failed: seo: boom"


def test_generic_error_keeps_raw_message() -> None:
    assert describe_error(ValueError("weird")).message == "weird"
    assert describe_error("").message == ERROR_CODES["E005"].message
