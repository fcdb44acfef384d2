"""Metadata reconciliation of local artist credits against the catalog.

A local credit such as ``"Nora En Pure feat. Someone"`` is reduced to its
primary artist, searched upstream, and resolved to one catalog artist with a
three-way outcome: found with an image, found without one, or not found.
"""

import asyncio
import logging
from typing import Iterable, List, Optional, Sequence, Tuple, Union

from ..domain.entities import (
    ArtistCandidate,
    ArtistQuery,
    MatchStatus,
    ReconcileState,
    ResolvedArtist,
)
from ..domain.value_objects import clean_name, clean_track_title
from ..events.domain_events import ArtistReconciled
from ..events.event_bus import EventBus
from ..exceptions import AuthError, TransportError
from ..infrastructure.external.catalog_client import CatalogClient
from ..utils.string_similarity import group_similar

logger = logging.getLogger(__name__)

PLACEHOLDER_ARTIST_IMAGE = "/images/placeholder-artist.jpg"

QueryLike = Union[str, Tuple[str, Optional[str]], ArtistQuery]

_TERMINAL_STATES = {
    MatchStatus.FOUND_WITH_IMAGE: ReconcileState.FOUND_WITH_IMAGE,
    MatchStatus.FOUND_NO_IMAGE: ReconcileState.FOUND_NO_IMAGE,
    MatchStatus.NOT_FOUND: ReconcileState.NOT_FOUND,
}


def rank_candidates(
    candidates: Sequence[ArtistCandidate],
    name: str,
    require_image: bool = True,
) -> List[ArtistCandidate]:
    """Order candidates for ``name``: exact match first, then by popularity.

    Ties keep the upstream relevance order.
    """
    pool = [c for c in candidates if c.has_image] if require_image else list(candidates)
    return sorted(pool, key=lambda c: (not c.matches_name(name), -c.popularity))


def choose_artwork(
    resolved: Optional[ResolvedArtist],
    fallback_url: Optional[str] = None,
    placeholder: str = PLACEHOLDER_ARTIST_IMAGE,
) -> str:
    """Image to display for an artist: catalog image, then local artwork, then placeholder."""
    if resolved is not None and resolved.image_url:
        return resolved.image_url
    return fallback_url or placeholder


def _as_query(item: QueryLike) -> ArtistQuery:
    if isinstance(item, ArtistQuery):
        return item
    if isinstance(item, str):
        return ArtistQuery(item)
    if isinstance(item, tuple) and len(item) == 2:
        return ArtistQuery(item[0], item[1])
    raise TypeError(f"Cannot reconcile {item!r}: expected a credit string, (credit, title) or ArtistQuery")


class MetadataReconciler:
    """Resolve local artist credits to catalog artists."""

    def __init__(
        self,
        client: CatalogClient,
        event_bus: Optional[EventBus] = None,
        fuzzy_dedupe_threshold: Optional[float] = None,
    ):
        """Initialize the reconciler.

        Args:
            client: Catalog client; every network call goes through its cache and queue
            event_bus: Optional bus that receives an ``ArtistReconciled`` per artist
            fuzzy_dedupe_threshold: Similarity (0-1) above which credits in a batch
                share one reconciliation; ``None`` disables folding
        """
        if fuzzy_dedupe_threshold is not None and not 0 < fuzzy_dedupe_threshold <= 1:
            raise ValueError("fuzzy_dedupe_threshold must be in (0, 1]")
        self.client = client
        self.event_bus = event_bus
        self.fuzzy_dedupe_threshold = fuzzy_dedupe_threshold

    async def reconcile_artist(self, credit: str, track_title: Optional[str] = None) -> ResolvedArtist:
        """Resolve one credit string.

        Transport and auth failures are contained: they produce a
        ``NOT_FOUND`` result carrying the error message.
        """
        primary = clean_name(credit or "")
        trail = [ReconcileState.START]

        if not primary:
            trail.append(ReconcileState.NOT_FOUND)
            return ResolvedArtist(
                credit=credit, primary_name="", status=MatchStatus.NOT_FOUND, trail=tuple(trail)
            )

        try:
            status, candidate = await self._resolve(primary, track_title, trail)
            error = None
        except (TransportError, AuthError) as e:
            logger.warning(f"Reconciliation failed for {credit!r}: {e}")
            status, candidate, error = MatchStatus.NOT_FOUND, None, str(e)

        trail.append(_TERMINAL_STATES[status])
        resolved = ResolvedArtist(
            credit=credit,
            primary_name=primary,
            status=status,
            candidate=candidate,
            trail=tuple(trail),
            error=error,
        )
        logger.debug(f"Reconciled {credit!r} -> {status.value}")

        if self.event_bus is not None:
            await self.event_bus.publish(ArtistReconciled(
                credit=credit,
                primary_name=primary,
                status=status.value,
                artist_id=candidate.id if candidate else None,
                image_url=resolved.image_url,
            ))
        return resolved

    async def _resolve(
        self,
        primary: str,
        track_title: Optional[str],
        trail: List[ReconcileState],
    ) -> Tuple[MatchStatus, Optional[ArtistCandidate]]:
        trail.append(ReconcileState.PRIMARY_SEARCH)
        results = await self.client.search_artists(primary)
        ranked = rank_candidates(results, primary)
        if ranked:
            return MatchStatus.FOUND_WITH_IMAGE, ranked[0]

        imageless = rank_candidates(results, primary, require_image=False)

        title = clean_track_title(track_title)
        if title:
            trail.append(ReconcileState.TRACK_SEARCH)
            results = await self.client.search_artists(f"{primary} {title}")
            ranked = rank_candidates(results, primary)
            if ranked:
                return MatchStatus.FOUND_WITH_IMAGE, ranked[0]
            imageless.extend(rank_candidates(results, primary, require_image=False))

        if imageless:
            return MatchStatus.FOUND_NO_IMAGE, imageless[0]
        return MatchStatus.NOT_FOUND, None

    async def reconcile_artists(self, items: Iterable[QueryLike]) -> List[ResolvedArtist]:
        """Resolve a batch concurrently; output order matches input order.

        One artist's failure never affects the others.
        """
        queries = [_as_query(item) for item in items]
        if not queries:
            return []

        owners = self._fold_duplicates(queries)
        leaders = sorted(set(owners))
        results = await asyncio.gather(*(
            self.reconcile_artist(queries[i].credit, queries[i].track_title) for i in leaders
        ))
        by_leader = dict(zip(leaders, results))

        resolved = [
            by_leader[owner] if owner == i else by_leader[owner].rebind(queries[i].credit)
            for i, owner in enumerate(owners)
        ]

        found = sum(1 for r in resolved if r.found)
        with_image = sum(1 for r in resolved if r.has_image)
        logger.info(
            f"Reconciled {len(resolved)} credits ({len(leaders)} lookups): "
            f"{found} found, {with_image} with image"
        )
        return resolved

    def _fold_duplicates(self, queries: List[ArtistQuery]) -> List[int]:
        """Index of the query whose reconciliation each query reuses."""
        if self.fuzzy_dedupe_threshold is None:
            return list(range(len(queries)))

        names = [clean_name(q.credit or "") for q in queries]
        titles = [clean_track_title(q.track_title).casefold() for q in queries]
        owners = group_similar(names, self.fuzzy_dedupe_threshold)

        # Only fold credits searched with the same track title.
        return [
            owner if names[i] and titles[owner] == titles[i] else i
            for i, owner in enumerate(owners)
        ]
