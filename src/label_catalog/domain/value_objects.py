"""
Value objects for local catalog credits.

Local release and track rows carry free-text credits such as
``"Artist A feat. Artist B"``; these helpers reduce them to the single name
the catalog search should use.
"""

import re
from typing import Any, List, Optional

_MARKERS = r"(?:feat|ft|featuring|vs|x)"

# Whole-word markers need whitespace on both sides and a following word that
# is not itself a marker, so "DJ X vs DJ Y" splits on "vs" and not on "X".
_CREDIT_SEPARATOR = re.compile(
    rf"\s*[,&]\s*"
    rf"|\s+[(\[]?{_MARKERS}\b\.?\s+(?!{_MARKERS}\b)(?=\S)",
    re.IGNORECASE,
)

_MIX_SUFFIXES = r"(?:original mix|remix)"

_TITLE_SUFFIX_PATTERNS = [
    # "Tears - Original Mix", "Tears - Someone Remix"
    re.compile(rf"\s+-\s+(?:[^-]*\s)?{_MIX_SUFFIXES}\s*$", re.IGNORECASE),
    # "Tears (Original Mix)", "Tears [Someone Remix]"
    re.compile(rf"\s*[(\[][^()\[\]]*?\b{_MIX_SUFFIXES}\s*[)\]]\s*$", re.IGNORECASE),
    # "Tears Remix"
    re.compile(rf"\s+{_MIX_SUFFIXES}\s*$", re.IGNORECASE),
]


def split_credit(credit: str) -> List[str]:
    """Split a credit string into its individual artist names."""
    if not credit:
        return []
    parts = _CREDIT_SEPARATOR.split(credit)
    return [" ".join(part.split()) for part in parts if part and part.strip()]


def clean_name(credit: str) -> str:
    """Primary artist of a credit string, trimmed. Idempotent."""
    return ArtistCredit(credit).primary


def clean_track_title(title: Optional[str]) -> str:
    """Strip trailing "Original Mix" / "Remix" suffixes from a track title."""
    if not title:
        return ""
    cleaned = " ".join(title.split())
    for pattern in _TITLE_SUFFIX_PATTERNS:
        stripped = pattern.sub("", cleaned)
        if stripped and stripped != cleaned:
            cleaned = stripped.strip()
    return cleaned


def normalize_key(text: str) -> str:
    """Whitespace-collapsed, case-folded form used in cache keys."""
    return " ".join(text.split()).casefold()


class ArtistCredit:
    """
    Value object representing a local artist credit with normalization.
    """

    __slots__ = ("_raw", "_names")

    def __init__(self, credit: str) -> None:
        """Create an ArtistCredit from a raw credit string."""
        if not isinstance(credit, str):
            raise TypeError(f"ArtistCredit must be str, got {type(credit)}")

        object.__setattr__(self, "_raw", credit)
        object.__setattr__(self, "_names", tuple(split_credit(credit)))

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError("ArtistCredit is immutable")

    @property
    def raw(self) -> str:
        return self._raw

    @property
    def names(self) -> tuple:
        return self._names

    @property
    def primary(self) -> str:
        """The first credited artist, or an empty string."""
        return self._names[0] if self._names else ""

    @property
    def is_collaboration(self) -> bool:
        return len(self._names) > 1

    def __str__(self) -> str:
        return self._raw

    def __repr__(self) -> str:
        return f"ArtistCredit({self._raw!r})"

    def __eq__(self, other: Any) -> bool:
        """Equality based on the normalized primary name."""
        if not isinstance(other, ArtistCredit):
            return False
        return normalize_key(self.primary) == normalize_key(other.primary)

    def __hash__(self) -> int:
        return hash(normalize_key(self.primary))
