"""Catalog entities shared by the client, the reconciler and the classifier.

Upstream payloads are narrowed into these types at the client boundary, so
nothing past the client handles raw JSON.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, FrozenSet, List, Optional, Tuple


@dataclass(frozen=True)
class ImageRef:
    """Artwork reference as served by the catalog."""
    url: str
    width: Optional[int] = None
    height: Optional[int] = None


@dataclass(frozen=True)
class ArtistCandidate:
    """Artist record returned by a catalog lookup or search."""
    id: str
    name: str
    popularity: int = 0
    images: Tuple[ImageRef, ...] = ()
    genres: FrozenSet[str] = frozenset()
    external_links: Dict[str, str] = field(default_factory=dict, hash=False, compare=False)
    uri: Optional[str] = None
    followers: Optional[int] = None

    @property
    def has_image(self) -> bool:
        return bool(self.images)

    @property
    def image_url(self) -> Optional[str]:
        """The first (largest) image, which the catalog lists first."""
        return self.images[0].url if self.images else None

    def matches_name(self, name: str) -> bool:
        """Case-insensitive exact name comparison."""
        return self.name.casefold() == name.strip().casefold()


@dataclass(frozen=True)
class TrackArtist:
    """Simplified artist as embedded in track and album payloads."""
    id: str
    name: str
    external_links: Dict[str, str] = field(default_factory=dict, hash=False, compare=False)


@dataclass
class Album:
    """Album (release) data."""
    id: str
    name: str
    images: List[ImageRef] = field(default_factory=list)
    artists: List[TrackArtist] = field(default_factory=list)
    release_date: Optional[str] = None
    album_type: Optional[str] = None
    label: Optional[str] = None
    external_links: Dict[str, str] = field(default_factory=dict)

    @property
    def cover_url(self) -> Optional[str]:
        return self.images[0].url if self.images else None


@dataclass
class Track:
    """Track data."""
    id: str
    name: str
    artists: List[TrackArtist]
    album: Optional[Album] = None
    duration_ms: int = 0
    popularity: Optional[int] = None
    preview_url: Optional[str] = None
    isrc: Optional[str] = None
    explicit: bool = False
    track_number: Optional[int] = None
    disc_number: Optional[int] = None
    uri: Optional[str] = None
    external_links: Dict[str, str] = field(default_factory=dict)

    @property
    def artist_credit(self) -> str:
        """Artists joined the way the label site displays them."""
        return ", ".join(artist.name for artist in self.artists)


@dataclass(frozen=True)
class AudioFeatures:
    """Audio features from the catalog."""
    danceability: float
    energy: float
    key: int
    loudness: float
    mode: int
    speechiness: float
    acousticness: float
    instrumentalness: float
    liveness: float
    valence: float
    tempo: float
    time_signature: int


class MatchStatus(Enum):
    """Terminal outcome of an artist reconciliation."""
    FOUND_WITH_IMAGE = "found_with_image"
    FOUND_NO_IMAGE = "found_no_image"
    NOT_FOUND = "not_found"


class ReconcileState(Enum):
    """States visited while reconciling one artist."""
    START = "start"
    PRIMARY_SEARCH = "primary_search"
    TRACK_SEARCH = "track_search"
    FOUND_WITH_IMAGE = "found_with_image"
    FOUND_NO_IMAGE = "found_no_image"
    NOT_FOUND = "not_found"


@dataclass(frozen=True)
class ArtistQuery:
    """One local artist credit to reconcile, with an optional track title."""
    credit: str
    track_title: Optional[str] = None


@dataclass(frozen=True)
class ResolvedArtist:
    """Reconciliation result bound to the original local credit string."""
    credit: str
    primary_name: str
    status: MatchStatus
    candidate: Optional[ArtistCandidate] = None
    trail: Tuple[ReconcileState, ...] = ()
    error: Optional[str] = None

    @property
    def found(self) -> bool:
        return self.status is not MatchStatus.NOT_FOUND

    @property
    def has_image(self) -> bool:
        return self.status is MatchStatus.FOUND_WITH_IMAGE

    @property
    def image_url(self) -> Optional[str]:
        return self.candidate.image_url if self.candidate else None

    @property
    def genres(self) -> FrozenSet[str]:
        return self.candidate.genres if self.candidate else frozenset()

    def rebind(self, credit: str) -> "ResolvedArtist":
        """Same resolution attached to another credit string."""
        return ResolvedArtist(
            credit=credit,
            primary_name=self.primary_name,
            status=self.status,
            candidate=self.candidate,
            trail=self.trail,
            error=self.error,
        )
