"""Detection of overlapping transcriptions from the two audio channels."""

from __future__ import annotations

import re
from collections import Counter

_NON_WORD_RE = re.compile(r"[^0-9A-Za-z_\t\n\f\r ]")
_MULTI_SPACE_RE = re.compile(r"[\t\n\f\r ]+")


def normalize(text: str) -> str:
    """Lower-case text, replace punctuation with spaces and collapse whitespace."""
    s = text.lower()
    s = _NON_WORD_RE.sub(" ", s)
    s = _MULTI_SPACE_RE.sub(" ", s)
    return s.strip()


def texts_overlap(text_a: str, text_b: str, threshold: float) -> bool:
    """Whether the normalized token overlap of two texts meets threshold."""
    a = normalize(text_a)
    b = normalize(text_b)
    if not a or not b:
        return False
    if a == b or b in a or a in b:
        return True

    tokens_a = a.split()
    tokens_b = b.split()
    shorter = min(len(tokens_a), len(tokens_b))
    if shorter < 3:
        return False

    counts = Counter(tokens_a)
    common = 0
    for token in tokens_b:
        if counts[token] > 0:
            counts[token] -= 1
            common += 1
    return common / shorter >= threshold