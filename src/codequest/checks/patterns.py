"""Text heuristics behind the rule checkers.

These are deliberately regex and substring checks, not an HTML/CSS parser or a
JavaScript analyzer.
"""

from __future__ import annotations

import re

_TAG_RE = re.compile(r"<[^>]*+>")


def normalize_selector(selector: str) -> str:
    """Drop every ``#`` and ``.`` so ``#title`` and ``.title`` both become ``title``."""
    return selector.replace("#", "").replace(".", "")


def strip_tags(text: str) -> str:
    return _TAG_RE.sub("", text)


def has_opening_tag(html: str, selector: str) -> bool:
    # The tag name is not delimited, so "h" also matches "<html>".
    name = re.escape(normalize_selector(selector))
    return re.search(rf"<{name}[^>]*+>", html, re.IGNORECASE) is not None


def find_element_text(html: str, selector: str) -> str | None:
    """Return the tag-stripped inner text of the first ``<selector>`` element.

    The capture is non-greedy, so a nested element with the same name ends the
    match at the first closing tag. Returns None when no element matches.
    """
    name = re.escape(selector)
    match = re.search(
        rf"<{name}[^>]*+>(.*?)</{name}>", html, re.IGNORECASE | re.DOTALL
    )
    if match is None:
        return None
    return strip_tags(match.group(1))


def find_css_declaration(
    css: str, selector: str, prop: str
) -> tuple[bool, str | None]:
    """Look up ``prop`` inside the first ``selector { ... }`` block.

    Returns ``(block_found, value)``; ``value`` is the trimmed declaration
    value, or None when the block has no such property. Property names are
    matched as substrings, so ``color`` also matches ``background-color``.
    """
    block = re.search(
        rf"{re.escape(selector)}\s*+\{{([^}}]*+)\}}", css, re.IGNORECASE | re.DOTALL
    )
    if block is None:
        return False, None

    declaration = re.search(
        rf"{re.escape(prop)}\s*+:\s*([^;]++)", block.group(1), re.IGNORECASE
    )
    if declaration is None:
        return True, None
    return True, declaration.group(1).strip()


def has_js_function(js: str, name: str) -> bool:
    candidates = (
        f"function {name}",
        f"{name} = function",
        f"const {name}",
        f"let {name}",
    )
    return any(candidate in js for candidate in candidates)


def contains_pattern(code: str, pattern: str) -> bool:
    return pattern.lower() in code.lower()
