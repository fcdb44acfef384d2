"""Fuzzy matching of artist names.

Used to fold near-duplicate local credits ("Nora En Pure" / "Nora en Pure.")
so a batch reconciles each artist once.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence

_LEADING_ARTICLE = re.compile(r"^(?:the|a|an)\s+")
_PUNCTUATION = re.compile(r"[^\w\s]")


def normalize_music_text(text: str) -> str:
    """Lowercase, drop a leading article and punctuation, collapse whitespace."""
    text = _LEADING_ARTICLE.sub("", text.strip().lower())
    return " ".join(_PUNCTUATION.sub("", text).split())


def levenshtein_distance(a: str, b: str) -> int:
    """Minimum number of single-character insertions, deletions and substitutions."""
    if len(a) < len(b):
        a, b = b, a
    row = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        diagonal, row[0] = row[0], i
        for j, cb in enumerate(b, start=1):
            above = row[j]
            row[j] = min(above + 1, row[j - 1] + 1, diagonal + (ca != cb))
            diagonal = above
    return row[-1]


def levenshtein_similarity(a: str, b: str) -> float:
    longest = max(len(a), len(b))
    if longest == 0:
        return 1.0
    return 1.0 - levenshtein_distance(a, b) / longest


def jaro_similarity(a: str, b: str) -> float:
    if a == b:
        return 1.0
    if not a or not b:
        return 0.0

    reach = max(0, max(len(a), len(b)) // 2 - 1)
    taken = [False] * len(b)
    matched_a = []
    for i, ch in enumerate(a):
        for j in range(max(0, i - reach), min(len(b), i + reach + 1)):
            if not taken[j] and b[j] == ch:
                taken[j] = True
                matched_a.append(ch)
                break

    m = len(matched_a)
    if m == 0:
        return 0.0
    matched_b = [ch for ch, used in zip(b, taken) if used]
    half_transpositions = sum(x != y for x, y in zip(matched_a, matched_b))
    t = half_transpositions // 2
    return (m / len(a) + m / len(b) + (m - t) / m) / 3


def jaro_winkler_similarity(a: str, b: str, prefix_weight: float = 0.1) -> float:
    """Jaro similarity boosted by a shared prefix of up to four characters."""
    jaro = jaro_similarity(a, b)
    prefix = 0
    for x, y in zip(a[:4], b[:4]):
        if x != y:
            break
        prefix += 1
    return jaro + prefix * prefix_weight * (1 - jaro)


def dice_similarity(a: str, b: str) -> float:
    """Sorensen-Dice coefficient over character bigrams."""
    if len(a) < 2 or len(b) < 2:
        return float(a == b)
    grams_a = {a[i:i + 2] for i in range(len(a) - 1)}
    grams_b = {b[i:i + 2] for i in range(len(b) - 1)}
    return 2 * len(grams_a & grams_b) / (len(grams_a) + len(grams_b))


def music_metadata_similarity(a: str, b: str) -> float:
    """Blend of edit distance, Jaro-Winkler and bigram overlap on normalized names."""
    a, b = normalize_music_text(a), normalize_music_text(b)
    if a == b:
        return 1.0
    return (
        0.3 * levenshtein_similarity(a, b)
        + 0.5 * jaro_winkler_similarity(a, b)
        + 0.2 * dice_similarity(a, b)
    )


def group_similar(names: Sequence[str], threshold: float) -> list[int]:
    """Index of the earliest similar name for every name.

    ``result[i] == i`` marks a name that starts its own group; later names
    join the first group whose leader scores at least ``threshold``.
    """
    leaders: list[int] = []
    owners: list[int] = []
    for i, name in enumerate(names):
        owner = next(
            (k for k in leaders if music_metadata_similarity(names[k], name) >= threshold),
            i,
        )
        if owner == i:
            leaders.append(i)
        owners.append(owner)
    return owners
