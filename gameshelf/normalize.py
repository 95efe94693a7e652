from __future__ import annotations

import re
import unicodedata
from typing import Iterable

NON_WORD_RE = re.compile(r"[^\w\s]+")
WHITESPACE_RE = re.compile(r"\s+")
PARENTHETICAL_RE = re.compile(r"\s*\([^)]*\)\s*")


def normalize(raw: str) -> str:
    """Canonical form used for every title and category comparison.

    Diacritics are dropped ("Pokémon" -> "pokemon"), text is lowercased,
    punctuation runs become a single space and whitespace is collapsed.
    The function is idempotent.
    """
    value = _fold(raw)
    value = NON_WORD_RE.sub(" ", value)
    value = WHITESPACE_RE.sub(" ", value)
    return value.strip()


def normalize_all(values: Iterable[str]) -> str:
    return normalize(" ".join(values))


def strip_parenthetical(raw: str) -> str:
    """Drop "(...)" groups such as "(video game)" or "(2004 video game)"."""
    value = PARENTHETICAL_RE.sub(" ", raw)
    return WHITESPACE_RE.sub(" ", value).strip()


def _fold(value: str) -> str:
    # lower() can itself emit combining marks ("İ" -> "i̇")
    decomposed = unicodedata.normalize("NFD", unicodedata.normalize("NFD", value).lower())
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))
