"""Text folding and keyword matching shared by schema inference and normalization.

Sheet cells mix Vietnamese and English, with or without diacritics, in any
case and with stray whitespace. Everything is compared in *folded* form:
lowercased, diacritics stripped (đ → d), runs of whitespace collapsed.

Usage
-----
    from plansync.utils.text import fold, matches_any

    fold("  Hoàn   Thành ")                 # "hoan thanh"
    matches_any("PM phụ trách", ("pm",))    # True (whole word)
    matches_any("Development", ("pm",))     # False
"""

from __future__ import annotations

import re
import unicodedata
from functools import lru_cache
from typing import Iterable

# Keywords this short only match as whole words ("pm" must not hit "development").
SHORT_KEYWORD_LEN = 3

_WS = re.compile(r"\s+")


def fold(value: str | None) -> str:
    """Lowercase, strip diacritics and normalize whitespace."""
    if not value:
        return ""
    text = value.replace("đ", "d").replace("Đ", "D")
    text = unicodedata.normalize("NFD", text)
    text = "".join(ch for ch in text if not unicodedata.combining(ch))
    return _WS.sub(" ", text).strip().lower()


@lru_cache(maxsize=512)
def _keyword_pattern(folded_keyword: str) -> re.Pattern:
    escaped = re.escape(folded_keyword)
    if len(folded_keyword) <= SHORT_KEYWORD_LEN:
        return re.compile(rf"(?<![0-9a-z]){escaped}(?![0-9a-z])")
    return re.compile(escaped)


def keyword_in(folded_text: str, keyword: str) -> bool:
    """Match one keyword against already-folded text."""
    folded_keyword = fold(keyword)
    if not folded_keyword or not folded_text:
        return False
    return _keyword_pattern(folded_keyword).search(folded_text) is not None


def matches_any(text: str | None, keywords: Iterable[str]) -> bool:
    folded = fold(text)
    return any(keyword_in(folded, kw) for kw in keywords)
