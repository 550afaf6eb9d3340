"""
Rule id -> remediation registry.

Every supported rule maps to a pure function that builds a
:class:`Remediation` from the offending element. Unknown rule ids fall back
to :func:`default_remediation`, which only links to the rule documentation.
"""
import re
from typing import Callable, Dict, List
from audit_engine.models.schemas import Category, ElementLocation, Remediation

Generator = Callable[[ElementLocation], Remediation]

DOCS_BASE = "https://dequeuniversity.com/rules/axe/4.4/"

REMEDIATIONS: Dict[str, Generator] = {}

RULE_CATEGORIES: Dict[str, Category] = {
    "image-alt": "images",
    "button-name": "interactive",
    "link-name": "interactive",
    "color-contrast": "color",
    "label": "forms",
    "html-has-lang": "document",
    "document-title": "document",
    "heading-order": "structure",
    "region": "structure",
    "aria-valid-attr": "aria",
    "aria-required-attr": "aria",
    "aria-roles": "aria",
    "meta-viewport": "document",
    "tabindex": "technical",
    "duplicate-id": "technical",
}


def category_for(rule_id: str) -> Category:
    return RULE_CATEGORIES.get(rule_id, "technical")


def rule(rule_id: str) -> Callable[[Generator], Generator]:
    def register(fn: Generator) -> Generator:
        REMEDIATIONS[rule_id] = fn
        return fn
    return register


def docs(rule_id: str) -> str:
    return DOCS_BASE + rule_id


def default_remediation(rule_id: str, location: ElementLocation) -> Remediation:
    return Remediation(
        description="See documentation for fix guidance",
        code="",
        learn_more_url=docs(rule_id),
    )


def remediation_for(rule_id: str, location: ElementLocation) -> Remediation:
    generator = REMEDIATIONS.get(rule_id)
    if generator is None:
        return default_remediation(rule_id, location)
    return generator(location)


def supported_rules() -> List[str]:
    return sorted(REMEDIATIONS)


# ---------- Images & media

@rule("image-alt")
def _image_alt(el: ElementLocation) -> Remediation:
    return Remediation(
        description="Add descriptive alt text that conveys the image content",
        code=el.html.replace("<img", '<img alt="[Describe what the image shows]"', 1),
        learn_more_url="https://webaim.org/techniques/alttext/",
    )


@rule("svg-img-alt")
def _svg_img_alt(el: ElementLocation) -> Remediation:
    code = el.html
    if "aria-label" not in code:
        code = code.replace("<svg", '<svg role="img" aria-label="[Description of SVG]"', 1)
    return Remediation(
        description='Add an accessible name to SVG with role="img"',
        code=code,
        learn_more_url=docs("svg-img-alt"),
    )


@rule("video-caption")
def _video_caption(el: ElementLocation) -> Remediation:
    return Remediation(
        description="Add captions to video content",
        code=(
            "<video controls>\n"
            '  <source src="video.mp4" type="video/mp4">\n'
            '  <track kind="captions" src="captions.vtt" srclang="en" label="English" default>\n'
            "</video>"
        ),
        learn_more_url=docs("video-caption"),
    )


@rule("no-autoplay-audio")
def _no_autoplay_audio(el: ElementLocation) -> Remediation:
    return Remediation(
        description="Remove autoplay or provide controls to pause audio",
        code=el.html.replace("autoplay", "").replace("muted", "controls"),
        learn_more_url=docs("no-autoplay-audio"),
    )


# ---------- Interactive

@rule("button-name")
def _button_name(el: ElementLocation) -> Remediation:
    code = el.html
    if "aria-label" not in code:
        code = code.replace(">", ' aria-label="[Button purpose]">', 1)
    return Remediation(
        description="Add text content or aria-label to the button",
        code=code,
        learn_more_url=docs("button-name"),
    )


@rule("link-name")
def _link_name(el: ElementLocation) -> Remediation:
    code = el.html
    if "aria-label" not in code:
        code = code.replace("</a>", "[Link text]</a>", 1)
    return Remediation(
        description="Add descriptive text content to the link",
        code=code,
        learn_more_url=docs("link-name"),
    )


@rule("nested-interactive")
def _nested_interactive(el: ElementLocation) -> Remediation:
    return Remediation(
        description="Remove nested interactive elements",
        code=(
            f"/* Current: {el.html} */\n"
            "/* Bad: <a href=\"#\"><button>Click</button></a> */\n"
            "/* Good: <a href=\"#\">Click</a> or <button>Click</button> */"
        ),
        learn_more_url=docs("nested-interactive"),
    )


# ---------- Color

@rule("color-contrast")
def _color_contrast(el: ElementLocation) -> Remediation:
    return Remediation(
        description="Increase contrast ratio to at least 4.5:1 for normal text",
        code=(
            "/* Darken the text color, lighten the background,\n"
            "   or use 18px+ text (large text needs 3:1) */"
        ),
        learn_more_url="https://webaim.org/resources/contrastchecker/",
    )


# ---------- Forms

@rule("label")
def _label(el: ElementLocation) -> Remediation:
    return Remediation(
        description="Associate a label with the input using for/id or wrapping",
        code='<label for="input-id">Label text</label>\n' + el.html.replace("<input", '<input id="input-id"', 1),
        learn_more_url="https://webaim.org/techniques/forms/controls",
    )


@rule("select-name")
def _select_name(el: ElementLocation) -> Remediation:
    return Remediation(
        description="Add an accessible name to the select element",
        code='<label for="select-id">Label text</label>\n' + el.html.replace("<select", '<select id="select-id"', 1),
        learn_more_url=docs("select-name"),
    )


@rule("autocomplete-valid")
def _autocomplete_valid(el: ElementLocation) -> Remediation:
    return Remediation(
        description="Use valid autocomplete attribute values",
        code=re.sub(r"""autocomplete=["'][^"']*["']""", 'autocomplete="email"', el.html, count=1),
        learn_more_url=docs("autocomplete-valid"),
    )


# ---------- Document

@rule("html-has-lang")
def _html_has_lang(el: ElementLocation) -> Remediation:
    return Remediation(
        description="Add a lang attribute to the html element",
        code='<html lang="en">',
        learn_more_url=docs("html-has-lang"),
    )


@rule("document-title")
def _document_title(el: ElementLocation) -> Remediation:
    return Remediation(
        description="Add a descriptive title to the page",
        code="<title>Page Title - Site Name</title>",
        learn_more_url=docs("document-title"),
    )


@rule("meta-viewport")
def _meta_viewport(el: ElementLocation) -> Remediation:
    return Remediation(
        description="Allow users to zoom by removing maximum-scale and user-scalable=no",
        code='<meta name="viewport" content="width=device-width, initial-scale=1">',
        learn_more_url=docs("meta-viewport"),
    )


@rule("frame-title")
def _frame_title(el: ElementLocation) -> Remediation:
    return Remediation(
        description="Add a title attribute to the iframe",
        code=el.html.replace("<iframe", '<iframe title="[Description of frame content]"', 1),
        learn_more_url=docs("frame-title"),
    )


# ---------- Structure

@rule("heading-order")
def _heading_order(el: ElementLocation) -> Remediation:
    return Remediation(
        description="Ensure headings follow a logical order without skipping levels",
        code=f"/* Current: {el.html} */\n/* Headings go h1 -> h2 -> h3; don't skip from h1 to h3 */",
        learn_more_url=docs("heading-order"),
    )


@rule("region")
def _region(el: ElementLocation) -> Remediation:
    return Remediation(
        description="Wrap content in landmark regions (main, nav, header, footer)",
        code=f"<main>\n  {el.html}\n</main>",
        learn_more_url=docs("region"),
    )


@rule("bypass")
def _bypass(el: ElementLocation) -> Remediation:
    return Remediation(
        description="Add a skip link to bypass repetitive content",
        code=(
            '<a href="#main-content" class="skip-link">Skip to main content</a>\n'
            '<main id="main-content">...</main>'
        ),
        learn_more_url=docs("bypass"),
    )


@rule("listitem")
def _listitem(el: ElementLocation) -> Remediation:
    return Remediation(
        description="Ensure list items are inside ul or ol elements",
        code=f"<ul>\n  {el.html}\n</ul>",
        learn_more_url=docs("listitem"),
    )


# ---------- ARIA

@rule("aria-valid-attr")
def _aria_valid_attr(el: ElementLocation) -> Remediation:
    return Remediation(
        description="Fix or remove invalid ARIA attributes",
        code=f"/* Review and fix ARIA attributes in: */\n{el.html}",
        learn_more_url=docs("aria-valid-attr"),
    )


@rule("aria-required-attr")
def _aria_required_attr(el: ElementLocation) -> Remediation:
    return Remediation(
        description="Add required ARIA attributes for the element role",
        code=f"/* Add missing required ARIA attributes: */\n{el.html}",
        learn_more_url=docs("aria-required-attr"),
    )


@rule("aria-roles")
def _aria_roles(el: ElementLocation) -> Remediation:
    return Remediation(
        description="Use a valid ARIA role value",
        code=f"/* Current: {el.html} */\n/* Valid roles: button, link, navigation, main, ... */",
        learn_more_url=docs("aria-roles"),
    )


# ---------- Technical

@rule("tabindex")
def _tabindex(el: ElementLocation) -> Remediation:
    return Remediation(
        description='Use tabindex="0" or "-1" instead of positive values',
        code=re.sub(r"""tabindex=["']\d+["']""", 'tabindex="0"', el.html, count=1),
        learn_more_url=docs("tabindex"),
    )


@rule("duplicate-id")
def _duplicate_id(el: ElementLocation) -> Remediation:
    return Remediation(
        description="Ensure all id attributes are unique on the page",
        code=f'/* Current: {el.html} */\n/* Change the id to be unique: id="unique-identifier" */',
        learn_more_url=docs("duplicate-id"),
    )


@rule("scrollable-region-focusable")
def _scrollable_region(el: ElementLocation) -> Remediation:
    return Remediation(
        description="Make scrollable regions keyboard accessible with tabindex",
        code=el.html.replace(">", ' tabindex="0" role="region" aria-label="Scrollable content">', 1),
        learn_more_url=docs("scrollable-region-focusable"),
    )
