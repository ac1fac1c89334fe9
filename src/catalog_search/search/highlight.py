"""Highlight spans for matched query terms.

Offsets always index into the original field text, so
``text[match.start:match.end]`` is exactly the matched substring even when the
field uses mixed case.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
import re

from catalog_search.domain.model import Product
from catalog_search.domain.search import Highlight, HighlightMatch
from catalog_search.search.analyzers import get_analyzer


HIGHLIGHT_FIELDS: tuple[str, ...] = ("name", "description", "category", "brand")

_term_analyzer = get_analyzer("highlight")


def highlight_terms(query: str) -> list[str]:
    """Return the lower-cased, whitespace-separated query terms worth highlighting.

    Single-character terms are skipped; they would light up half of every
    description. Duplicates are dropped, order is kept.

    >>> highlight_terms("USB c  Cable cable")
    ['usb', 'cable']
    """
    return list(dict.fromkeys(token.text for token in _term_analyzer(query or "")))


def find_matches(text: str, terms: Sequence[str]) -> list[HighlightMatch]:
    """Return every case-insensitive occurrence of ``terms`` in ``text``.

    Occurrences of one term never overlap each other; occurrences of different
    terms may. Matches are ordered by start offset.
    """
    if not text or not terms:
        return []

    matches: list[HighlightMatch] = []
    for term in terms:
        if not term:
            continue
        pattern = re.compile(re.escape(term), re.IGNORECASE)
        matches.extend(
            HighlightMatch(start=match.start(), end=match.end(), text=match.group(0))
            for match in pattern.finditer(text)
        )

    matches.sort(key=lambda match: (match.start, match.end))
    return matches


def build_highlights(
    product: Product,
    query: str,
    fields: Iterable[str] = HIGHLIGHT_FIELDS,
) -> list[Highlight]:
    """Compute highlight spans for ``product``; fields without matches are omitted."""
    terms = highlight_terms(query)
    if not terms:
        return []

    highlights: list[Highlight] = []
    for field_name in fields:
        text = getattr(product, field_name, None) or ""
        matches = find_matches(text, terms)
        if matches:
            highlights.append(Highlight(field=field_name, text=text, matches=matches))
    return highlights


def highlight_text(text: str, query: str, *, style: str = "html") -> str:
    """Wrap matched query terms in ``text`` with markup.

    Args:
        text: Field text to decorate.
        query: Raw user query.
        style: "html" for ``<mark>term</mark>`` or "plain" for ``[[term]]``.

    Returns:
        Text with highlighted terms; overlapping matches keep the earliest,
        longest span.
    """
    matches = find_matches(text, highlight_terms(query))
    if not matches:
        return text

    # Prefer the longer match when two start at the same offset
    matches.sort(key=lambda match: (match.start, -(match.end - match.start)))
    selected: list[HighlightMatch] = []
    last_end = -1
    for match in matches:
        if match.start < last_end:
            continue
        selected.append(match)
        last_end = match.end

    parts: list[str] = []
    cursor = 0
    for match in selected:
        parts.append(text[cursor : match.start])
        parts.append(f"<mark>{match.text}</mark>" if style == "html" else f"[[{match.text}]]")
        cursor = match.end
    parts.append(text[cursor:])
    return "".join(parts)
