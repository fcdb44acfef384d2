"""Parsing helpers for catalog share URLs.

Pure string handling, no network access. Share links look like
``https://open.spotify.com/track/<id>?si=...``; URIs like
``spotify:track:<id>`` are accepted as well.
"""

import re
from typing import Iterable, Optional, Tuple

ENTITY_KINDS = ("track", "album", "artist", "playlist")

_ID_PATTERN = r"([A-Za-z0-9]+)"

_SHARE_URL = re.compile(
    r"^https://open\.spotify\.com/(?:intl-[a-z]{2}/)?(track|album|artist|playlist)/[A-Za-z0-9]+(?:\?.*)?$"
)


def extract_id_from_url(url: Optional[str], kind: str) -> Optional[str]:
    """Entity id found right after the ``kind`` path segment, if any.

    >>> extract_id_from_url("https://open.spotify.com/track/4uLU6hMCjMI75M1A2tKUQC?si=x", "track")
    '4uLU6hMCjMI75M1A2tKUQC'
    """
    if not url or not kind:
        return None
    match = re.search(rf"(?:/|:){re.escape(kind)}(?:/|:){_ID_PATTERN}", url)
    return match.group(1) if match else None


def extract_entity(url: Optional[str]) -> Optional[Tuple[str, str]]:
    """``(kind, id)`` for the first entity kind present in the URL."""
    for kind in ENTITY_KINDS:
        entity_id = extract_id_from_url(url, kind)
        if entity_id:
            return kind, entity_id
    return None


def is_valid_catalog_url(url: Optional[str], kinds: Iterable[str] = ("track", "album")) -> bool:
    """Check that ``url`` is a share link for one of ``kinds``."""
    if not url:
        return False
    match = _SHARE_URL.match(url.strip())
    return bool(match) and match.group(1) in set(kinds)


def normalize_track_url(url: str) -> str:
    """Canonical track share URL; input without a recognizable id is returned as is."""
    entity = extract_entity(url)
    if entity is None:
        return url
    return f"https://open.spotify.com/track/{entity[1]}"
