from __future__ import annotations

"""
Identifier normalization used across the cross-reference resolver.

Stored part/reference numbers and user input go through the same
function, so two spellings such as ``AB-123``, ``ab 123`` and
``AB/123`` land on the same graph vertex.  Keeping this logic in one
place means comparisons are exact once both sides are normalized.
"""

import re
from typing import FrozenSet

# whitespace, hyphen and slash
_IDENTIFIER_STRIP_RE = re.compile(r"[\s\-/]+")


def normalize_identifier(raw) -> str:
    """
    Canonicalise a raw identifier: drop whitespace, ``-`` and ``/``,
    then uppercase.  Total: ``None`` becomes the empty string and other
    non-strings are stringified first.
    """
    if raw is None:
        return ""
    if not isinstance(raw, str):
        raw = str(raw)
    return _IDENTIFIER_STRIP_RE.sub("", raw).upper()


def trigrams(text: str) -> FrozenSet[str]:
    """
    3-character shingles of ``text`` the way pg_trgm builds them:
    lowercased, padded with two leading blanks and one trailing blank.
    """
    if not text:
        return frozenset()
    padded = f"  {text.lower()} "
    return frozenset(padded[i:i + 3] for i in range(len(padded) - 2))


if __name__ == "__main__":
    for sample in ("AB-123", "ab 123", "AB/123", " x-9 "):
        print(repr(sample), "->", normalize_identifier(sample))
