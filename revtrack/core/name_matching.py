"""
Fuzzy entity-name matching for extracted drafts.

Drafts coming from the text/voice extraction service name their venture,
work, discipline and designer in free text. ``best_match`` scores every
candidate on a 0–100 scale and returns an id only for a unique winner at or
above the threshold; anything ambiguous is left for manual selection.

Score:
    100 when the normalized names are equal, otherwise
    token Jaccard overlap (0–100)
    + 20 when the acronyms match or one prefixes the other
    + 10 when one name starts with the other
    +  5 when one name contains the other
    capped at 100.
"""

from __future__ import annotations

import re
import unicodedata
from typing import Iterable

MATCH_THRESHOLD = 55

_PUNCTUATION_RE = re.compile(r"[.,;:()\[\]\-_/]")
_SPACES_RE = re.compile(r"\s+")


def normalize_name(value: str | None) -> str:
    """Case- and diacritic-insensitive form with punctuation turned into spaces."""
    text = unicodedata.normalize("NFD", value or "")
    text = "".join(ch for ch in text if not unicodedata.combining(ch))
    text = _PUNCTUATION_RE.sub(" ", text).lower()
    return _SPACES_RE.sub(" ", text).strip()


def tokens(value: str) -> list[str]:
    return [t for t in normalize_name(value).split(" ") if t]


def acronym(value: str) -> str:
    return "".join(t[0] for t in tokens(value))


def overlap_score(a: Iterable[str], b: Iterable[str]) -> int:
    set_a, set_b = set(a), set(b)
    union = len(set_a | set_b)
    if union == 0:
        return 0
    # JS-style rounding: halves go up.
    return int(len(set_a & set_b) * 100 / union + 0.5)


def match_score(query: str, candidate: str) -> int:
    q = normalize_name(query)
    c = normalize_name(candidate)
    if not q or not c:
        return 0
    if q == c:
        return 100

    score = overlap_score(tokens(q), tokens(c))
    q_acr, c_acr = acronym(q), acronym(c)
    if q_acr and c_acr and (q_acr == c_acr or c_acr.startswith(q_acr) or q_acr.startswith(c_acr)):
        score += 20
    if c.startswith(q) or q.startswith(c):
        score += 10
    if q in c or c in q:
        score += 5
    return min(100, score)


def best_match(name: str | None, candidates: Iterable, threshold: int = MATCH_THRESHOLD):
    """Return the id of the single best-scoring candidate, or None.

    ``candidates`` are objects exposing ``id`` and ``name``. Ties at the top
    score and scores below ``threshold`` yield None.
    """
    if not normalize_name(name):
        return None

    best_id = None
    best_score = -1
    tied = False
    for item in candidates:
        score = match_score(name, item.name)
        if score > best_score:
            best_id, best_score, tied = item.id, score, False
        elif score == best_score:
            tied = True

    if best_id is None or tied or best_score < threshold:
        return None
    return best_id
