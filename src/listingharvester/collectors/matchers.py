"""Ordered selector fallbacks for HTML extraction.

Portals change markup often, so every field is located through an ordered
tuple of matchers. Matching stops at the first matcher that finds
something; later matchers are only consulted when earlier ones come up
empty.
"""

import re
from typing import Callable, Iterable, Optional, Sequence

from bs4 import BeautifulSoup, Tag

Matcher = Callable[[Tag], list[Tag]]

NEXT_PAGE_TEXT = re.compile(r"^\s*(?:next|επόμενη|επομενη|›|»|>)\s*$", re.IGNORECASE)

NO_RESULTS_PHRASES = (
    "δεν βρέθηκαν αποτελέσματα",
    "δεν βρεθηκαν αποτελεσματα",
    "no results found",
    "no properties found",
    "no listings found",
)

GENERIC_NEXT_PAGE_SELECTORS = (
    'a[rel="next"]',
    'link[rel="next"]',
    '[aria-label="Next"]',
    '[aria-label="Next page"]',
    '[aria-label="Επόμενη"]',
    ".pagination .next a",
    ".pagination a.next",
)


def css(selector: str) -> Matcher:
    """Matcher for a CSS selector."""

    def match(root: Tag) -> list[Tag]:
        return root.select(selector)

    match.__name__ = f"css({selector})"
    return match


def link_text(pattern: re.Pattern) -> Matcher:
    """Matcher for anchors and buttons whose visible text matches a pattern."""

    def match(root: Tag) -> list[Tag]:
        return [
            el
            for el in root.find_all(["a", "button"])
            if pattern.match(el.get_text(" ", strip=True))
        ]

    match.__name__ = f"link_text({pattern.pattern})"
    return match


def matchers_for(selectors: Iterable[str]) -> tuple[Matcher, ...]:
    """Build CSS matchers from selector strings, preserving order."""
    return tuple(css(s) for s in selectors)


def first_match(root: Tag, matchers: Sequence[Matcher]) -> list[Tag]:
    """Return the elements found by the first matcher that finds any."""
    for matcher in matchers:
        found = matcher(root)
        if found:
            return found
    return []


def first_element(root: Tag, selectors: Iterable[str]) -> Optional[Tag]:
    """First element for the first selector that matches anything."""
    found = first_match(root, matchers_for(selectors))
    return found[0] if found else None


def first_text(root: Tag, selectors: Iterable[str]) -> Optional[str]:
    """Text of the first non-empty element found by ordered selectors."""
    for selector in selectors:
        for el in root.select(selector):
            text = el.get_text(" ", strip=True)
            if text:
                return text
    return None


def _is_disabled(el: Tag) -> bool:
    if el.has_attr("disabled") or el.get("aria-disabled") == "true":
        return True
    classes = el.get("class") or []
    return any("disabled" in c for c in classes)


def has_next_page(soup: BeautifulSoup, selectors: Iterable[str] = ()) -> bool:
    """Detect an enabled "next page" affordance.

    Source-specific selectors are tried first, then generic ones, then
    anchors or buttons labelled "Next" / "Επόμενη".
    """
    matchers = (
        *matchers_for(selectors),
        *matchers_for(GENERIC_NEXT_PAGE_SELECTORS),
        link_text(NEXT_PAGE_TEXT),
    )
    found = first_match(soup, matchers)
    return any(not _is_disabled(el) for el in found)


def has_no_results(soup: BeautifulSoup, selectors: Iterable[str] = ()) -> bool:
    """Detect the portal's empty-results marker."""
    if first_match(soup, matchers_for(selectors)):
        return True
    text = soup.get_text(" ", strip=True).lower()
    return any(phrase in text for phrase in NO_RESULTS_PHRASES)
