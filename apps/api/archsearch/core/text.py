"""Text normalization and match highlighting.

Client-side matching (suggestions, highlighting) and the data store's
canonical city lookup both go through ``normalize_text`` so that they
agree on whether two strings match.
"""

import re
import unicodedata
from typing import List, Tuple

DEFAULT_MARK = ("<mark>", "</mark>")


def _fold(text: str) -> str:
    decomposed = unicodedata.normalize("NFKD", text.casefold())
    return "".join(c for c in decomposed if not unicodedata.combining(c))


def fold(text: str) -> str:
    """
    Case-fold and strip diacritics without touching whitespace.

    Casefolding and compatibility decomposition can each expose characters
    the other maps (e.g. "ℌ" -> "H"), so two passes are needed to reach a
    fixed point.
    """
    return _fold(_fold(text))


def normalize_text(text: str) -> str:
    """
    Normalize text for matching purposes.

    Case-insensitive, diacritic-insensitive and idempotent:
    ``normalize_text("São Paulo") == normalize_text("sao paulo")``.

    Args:
        text: Input text to normalize

    Returns:
        Folded string with runs of whitespace collapsed to single spaces
    """
    if not text:
        return ""
    return re.sub(r"\s+", " ", fold(text)).strip()


def matches(text: str, query: str) -> bool:
    """Whether the normalized query occurs inside the normalized text."""
    needle = normalize_text(query)
    return bool(needle) and needle in normalize_text(text or "")


def _folded_with_owners(text: str) -> Tuple[str, List[int]]:
    folded: List[str] = []
    owners: List[int] = []
    for index, char in enumerate(text):
        for piece in fold(char):
            folded.append(piece)
            owners.append(index)
    return "".join(folded), owners


def highlight(text: str, query: str, marks: Tuple[str, str] = DEFAULT_MARK) -> str:
    """
    Wrap the first occurrence of ``query`` inside ``text`` with ``marks``.

    Matching is case- and diacritic-insensitive, but the wrapped span keeps
    the original characters of ``text``. Returns ``text`` unchanged when the
    query is blank or does not match.
    """
    if not query or not query.strip() or not matches(text, query):
        return text

    haystack, owners = _folded_with_owners(text)
    needle = fold(query.strip())
    start = haystack.find(needle)
    if start < 0:
        return text

    first = owners[start]
    last = owners[start + len(needle) - 1] + 1
    # keep trailing combining marks with their base character
    while last < len(text) and unicodedata.combining(text[last]):
        last += 1

    opening, closing = marks
    return f"{text[:first]}{opening}{text[first:last]}{closing}{text[last:]}"
