"""Title similarity scoring.

Scores are in [0, 1]. Titles are normalized first so punctuation, casing and
spacing differences do not count as edits:

    >>> similarity("Alps: Overview!", "alps overview")
    1.0
    >>> round(similarity("Alps", "Alps Overview"), 3)  # containment: 4 / 13
    0.308
"""

import re

_NON_WORD = re.compile(r"[^\w\s]|_")
_WHITESPACE = re.compile(r"\s+")


def normalize_title(text: str) -> str:
    """Lowercase, drop everything but letters/digits/whitespace, collapse spaces."""
    text = _NON_WORD.sub("", text.lower())
    return _WHITESPACE.sub(" ", text).strip()


def levenshtein_distance(a: str, b: str) -> int:
    """Edit distance with unit cost for insertion, deletion and substitution."""
    if a == b:
        return 0
    if not a:
        return len(b)
    if not b:
        return len(a)

    # Keep the row over the shorter string
    if len(a) < len(b):
        a, b = b, a

    previous = list(range(len(b) + 1))
    for i, char_a in enumerate(a, start=1):
        current = [i]
        for j, char_b in enumerate(b, start=1):
            cost = 0 if char_a == char_b else 1
            current.append(
                min(
                    previous[j] + 1,  # deletion
                    current[j - 1] + 1,  # insertion
                    previous[j - 1] + cost,  # substitution
                )
            )
        previous = current
    return previous[-1]


def similarity(a: str, b: str) -> float:
    """Normalized similarity of two titles.

    Identical titles (after normalization) score 1.0 and an empty title scores
    0.0 against anything else. When one title contains the other the score is
    the length ratio; otherwise it is one minus the edit distance divided by
    the longer length.
    """
    norm_a = normalize_title(a)
    norm_b = normalize_title(b)

    if norm_a == norm_b:
        return 1.0
    if not norm_a or not norm_b:
        return 0.0

    shorter, longer = sorted((norm_a, norm_b), key=len)
    if shorter in longer:
        return len(shorter) / len(longer)

    distance = levenshtein_distance(norm_a, norm_b)
    return 1.0 - distance / max(len(norm_a), len(norm_b))
