"""Catalog Web API client - Anti-Corruption Layer for the upstream music catalog.

Every network-bearing lookup goes cache -> request queue -> cache, and every
payload is narrowed into the entities of ``label_catalog.domain.entities``
before it leaves this module. "Not found" is returned as ``None`` or an empty
list; transport and auth failures raise.
"""

import asyncio
import base64
import functools
import logging
import time
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

import aiohttp

from ...core.cache import CACHE_MISS, TTLCache, make_cache_key
from ...core.request_queue import RequestQueue
from ...domain.entities import (
    Album,
    ArtistCandidate,
    AudioFeatures,
    ImageRef,
    Track,
    TrackArtist,
)
from ...exceptions import (
    AuthError,
    CatalogError,
    ConfigurationError,
    RateLimitError,
    TransportError,
)
from ...utils.catalog_urls import extract_id_from_url

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.spotify.com/v1"
DEFAULT_TOKEN_URL = "https://accounts.spotify.com/api/token"

# Tokens are refreshed this many seconds before the upstream expiry.
TOKEN_EXPIRY_MARGIN = 60

PLAYLIST_PAGE_SIZE = 100


def _payload(kind: str):
    """Turn missing fields or wrong types in a payload into ``TransportError``."""
    def decorator(fn):
        @functools.wraps(fn)
        def wrapper(data, *args, **kwargs):
            if not isinstance(data, dict):
                raise TransportError(f"Malformed {kind} payload: expected an object")
            try:
                return fn(data, *args, **kwargs)
            except (AttributeError, KeyError, TypeError, ValueError) as e:
                raise TransportError(f"Malformed {kind} payload: {e!r}")
        return wrapper
    return decorator


def _object(value: Any, what: str) -> Dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise TypeError(f"{what} is not an object")
    return value


def _array(value: Any, what: str) -> List[Any]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise TypeError(f"{what} is not a list")
    return value


def _parse_images(items: Optional[List[Dict[str, Any]]]) -> List[ImageRef]:
    return [
        ImageRef(url=image["url"], width=image.get("width"), height=image.get("height"))
        for image in items or []
        if image and image.get("url")
    ]


@_payload("artist")
def parse_artist(data: Dict[str, Any]) -> ArtistCandidate:
    followers = data.get("followers") or {}
    return ArtistCandidate(
        id=data["id"],
        name=data["name"],
        popularity=int(data.get("popularity") or 0),
        images=tuple(_parse_images(data.get("images"))),
        genres=frozenset(data.get("genres") or ()),
        external_links=dict(data.get("external_urls") or {}),
        uri=data.get("uri"),
        followers=followers.get("total"),
    )


@_payload("artist")
def parse_track_artist(data: Dict[str, Any]) -> TrackArtist:
    return TrackArtist(
        id=data.get("id") or "",
        name=data["name"],
        external_links=dict(data.get("external_urls") or {}),
    )


@_payload("album")
def parse_album(data: Dict[str, Any]) -> Album:
    return Album(
        id=data["id"],
        name=data["name"],
        images=_parse_images(data.get("images")),
        artists=[parse_track_artist(a) for a in data.get("artists") or []],
        release_date=data.get("release_date"),
        album_type=data.get("album_type"),
        label=data.get("label"),
        external_links=dict(data.get("external_urls") or {}),
    )


@_payload("track")
def parse_track(data: Dict[str, Any]) -> Track:
    album = data.get("album")
    return Track(
        id=data["id"],
        name=data["name"],
        artists=[parse_track_artist(a) for a in data.get("artists") or []],
        album=parse_album(album) if album else None,
        duration_ms=int(data.get("duration_ms") or 0),
        popularity=data.get("popularity"),
        preview_url=data.get("preview_url"),
        isrc=(data.get("external_ids") or {}).get("isrc"),
        explicit=bool(data.get("explicit", False)),
        track_number=data.get("track_number"),
        disc_number=data.get("disc_number"),
        uri=data.get("uri"),
        external_links=dict(data.get("external_urls") or {}),
    )


@_payload("audio features")
def parse_audio_features(data: Dict[str, Any]) -> AudioFeatures:
    return AudioFeatures(
        danceability=float(data["danceability"]),
        energy=float(data["energy"]),
        key=int(data["key"]),
        loudness=float(data["loudness"]),
        mode=int(data["mode"]),
        speechiness=float(data["speechiness"]),
        acousticness=float(data["acousticness"]),
        instrumentalness=float(data["instrumentalness"]),
        liveness=float(data["liveness"]),
        valence=float(data["valence"]),
        tempo=float(data["tempo"]),
        time_signature=int(data["time_signature"]),
    )


@_payload("search")
def parse_search_page(data: Dict[str, Any], section: str, parse_item: Callable[[Any], Any]) -> List[Any]:
    """Items of one result section of a search response, e.g. ``"artists"``."""
    page = _object(data.get(section), f"'{section}'")
    return [parse_item(item) for item in _array(page.get("items"), "'items'") if item]


@_payload("top tracks")
def parse_track_list(data: Dict[str, Any]) -> List[Track]:
    return [parse_track(item) for item in _array(data.get("tracks"), "'tracks'") if item]


@_payload("playlist page")
def parse_playlist_page(data: Dict[str, Any]) -> Tuple[List[Track], bool]:
    """Tracks of one playlist page and whether another page follows.

    Removed tracks, local files and tracks without an id are skipped.
    """
    tracks: List[Track] = []
    for item in _array(data.get("items"), "'items'"):
        item = _object(item, "playlist item")
        track = _object(item.get("track"), "playlist track")
        if not track or item.get("is_local") or not track.get("id"):
            continue
        tracks.append(parse_track(track))
    return tracks, bool(data.get("next"))


def _parse_retry_after(value: Optional[str]) -> Optional[float]:
    if not value:
        return None
    try:
        return float(value)
    except ValueError:
        return None


class CatalogClient:
    """Client for the catalog Web API with token management, caching and queueing."""

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        cache: TTLCache,
        queue: RequestQueue,
        *,
        api_url: str = DEFAULT_API_URL,
        token_url: str = DEFAULT_TOKEN_URL,
        market: str = "US",
        timeout: float = 10.0,
        search_limit: int = 10,
        cache_ttl: Optional[float] = None,
        session: Optional[aiohttp.ClientSession] = None,
        clock: Callable[[], float] = time.time,
    ):
        if not client_id or not client_secret:
            raise ConfigurationError("Catalog API credentials are not configured")

        self.client_id = client_id
        self.client_secret = client_secret
        self.cache = cache
        self.queue = queue
        self.api_url = api_url.rstrip("/")
        self.token_url = token_url
        self.market = market
        self.timeout = timeout
        self.search_limit = search_limit
        self.cache_ttl = cache_ttl
        self._session = session
        self._owns_session = session is None
        self._clock = clock
        self._access_token: Optional[str] = None
        self._token_expires_at = 0.0
        self._inflight: Dict[str, asyncio.Future] = {}
        self.api_calls = 0

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout)
            )
        return self._session

    @property
    def is_authenticated(self) -> bool:
        return bool(self._access_token) and self._clock() < self._token_expires_at

    async def authenticate(self, force: bool = False) -> str:
        """Return a valid bearer token, fetching a new one when needed.

        Uses the client credentials grant. The token is tracked with a local
        expiry timestamp only; it is not validated client-side.

        Raises:
            AuthError: If the token endpoint fails or answers without a token
        """
        if not force and self.is_authenticated:
            return self._access_token

        auth_str = base64.b64encode(
            f"{self.client_id}:{self.client_secret}".encode()
        ).decode()
        headers = {"Authorization": f"Basic {auth_str}"}
        data = {"grant_type": "client_credentials"}

        try:
            session = await self._get_session()
            async with session.post(self.token_url, data=data, headers=headers) as response:
                if response.status != 200:
                    raise AuthError(f"Token request failed with HTTP {response.status}")
                payload = await response.json()
        except aiohttp.ClientError as e:
            raise AuthError(f"Token request failed: {e}")
        except asyncio.TimeoutError:
            raise AuthError("Token request timed out")
        except ValueError as e:
            raise AuthError(f"Malformed token response: {e}")

        token = payload.get("access_token") if isinstance(payload, dict) else None
        if not token:
            raise AuthError("Token response did not contain an access token")

        try:
            expires_in = float(payload.get("expires_in") or 3600)
        except (TypeError, ValueError) as e:
            raise AuthError(f"Malformed token response: {e}")

        self._access_token = token
        self._token_expires_at = self._clock() + expires_in - TOKEN_EXPIRY_MARGIN
        logger.info(f"Obtained catalog access token (expires in {expires_in:.0f}s)")
        return token

    async def _send(
        self,
        path: str,
        params: Optional[Dict[str, Any]],
        token: str,
    ) -> Tuple[int, Any, Optional[str]]:
        url = f"{self.api_url}{path}"
        headers = {"Authorization": f"Bearer {token}"}
        self.api_calls += 1

        try:
            session = await self._get_session()
            async with session.get(url, params=params, headers=headers) as response:
                status = response.status
                if 200 <= status < 300:
                    return status, await response.json(), None
                return status, None, response.headers.get("Retry-After")
        except aiohttp.ClientError as e:
            raise TransportError(f"Catalog request failed: {e}")
        except asyncio.TimeoutError:
            raise TransportError("Catalog request timed out")
        except ValueError as e:
            raise TransportError(f"Malformed catalog response: {e}")

    async def _get_json(
        self,
        path: str,
        params: Optional[Dict[str, Any]] = None,
    ) -> Optional[Dict[str, Any]]:
        """GET an API path. Returns ``None`` when the entity does not exist."""
        if params:
            params = {k: v for k, v in params.items() if v is not None}

        token = await self.authenticate()
        status, data, retry_after = await self._send(path, params, token)

        if status == 401:
            logger.info("Catalog rejected the access token, refreshing")
            self._access_token = None
            token = await self.authenticate(force=True)
            status, data, retry_after = await self._send(path, params, token)
            if status == 401:
                raise AuthError("Catalog rejected a freshly issued access token")

        if status == 404:
            return None
        if status == 429:
            raise RateLimitError(_parse_retry_after(retry_after))
        if not 200 <= status < 300:
            raise TransportError(f"Catalog API error: HTTP {status}", status=status)
        if data is not None and not isinstance(data, dict):
            raise TransportError("Malformed catalog response: expected an object")
        return data

    async def _cached(
        self,
        key: str,
        fetch: Callable[[], Awaitable[Any]],
        queued: bool = True,
    ) -> Any:
        """Serve from cache, else run ``fetch`` (through the queue) and cache it.

        Concurrent callers asking for the same key share one upstream call.
        """
        cached = self.cache.get(key)
        if cached is not CACHE_MISS:
            logger.debug(f"Cache hit: {key}")
            return cached

        inflight = self._inflight.get(key)
        if inflight is None:
            logger.debug(f"Cache miss: {key}")
            inflight = asyncio.ensure_future(self._fetch_and_store(key, fetch, queued))
            self._inflight[key] = inflight
            inflight.add_done_callback(lambda _: self._inflight.pop(key, None))

        return await asyncio.shield(inflight)

    async def _fetch_and_store(
        self,
        key: str,
        fetch: Callable[[], Awaitable[Any]],
        queued: bool,
    ) -> Any:
        generation = self.cache.generation
        value = await (self.queue.enqueue(fetch) if queued else fetch())
        if self.cache.generation != generation:
            logger.debug(f"Cache cleared while fetching {key}, not storing result")
            return value
        self.cache.set(key, value, self.cache_ttl)
        return value

    async def search_artists(self, name: str, limit: Optional[int] = None) -> List[ArtistCandidate]:
        """Search artists by name, in upstream relevance order."""
        name = " ".join((name or "").split())
        if not name:
            return []
        limit = min(limit or self.search_limit, 50)

        async def fetch() -> List[ArtistCandidate]:
            data = await self._get_json("/search", {
                "q": name,
                "type": "artist",
                "limit": limit,
                "market": self.market,
            })
            return parse_search_page(data or {}, "artists", parse_artist)

        return await self._cached(make_cache_key("search_artists", name, limit), fetch)

    async def search_tracks(self, query: str, limit: Optional[int] = None) -> List[Track]:
        """Search tracks with a free-text or field-filtered query."""
        query = " ".join((query or "").split())
        if not query:
            return []
        limit = min(limit or self.search_limit, 50)

        async def fetch() -> List[Track]:
            data = await self._get_json("/search", {
                "q": query,
                "type": "track",
                "limit": limit,
                "market": self.market,
            })
            return parse_search_page(data or {}, "tracks", parse_track)

        return await self._cached(make_cache_key("search_tracks", query, limit), fetch)

    async def get_artist_by_id(self, artist_id: str) -> Optional[ArtistCandidate]:
        """Get an artist by catalog id."""
        if not artist_id:
            return None

        async def fetch() -> Optional[ArtistCandidate]:
            data = await self._get_json(f"/artists/{artist_id}")
            return parse_artist(data) if data else None

        return await self._cached(make_cache_key("artist", artist_id), fetch)

    async def get_artist_top_tracks(self, artist_id: str, market: Optional[str] = None) -> List[Track]:
        """Get an artist's most popular tracks in a market."""
        if not artist_id:
            return []
        market = market or self.market

        async def fetch() -> List[Track]:
            data = await self._get_json(f"/artists/{artist_id}/top-tracks", {"market": market})
            return parse_track_list(data or {})

        return await self._cached(make_cache_key("top_tracks", artist_id, market), fetch)

    async def get_track(self, track_id: str) -> Optional[Track]:
        """Get detailed track metadata by ID."""
        if not track_id:
            return None

        async def fetch() -> Optional[Track]:
            data = await self._get_json(f"/tracks/{track_id}", {"market": self.market})
            return parse_track(data) if data else None

        return await self._cached(make_cache_key("track", track_id), fetch)

    async def get_track_by_url(self, url: str) -> Optional[Track]:
        """Get a track from its share URL; ``None`` for unrecognized URLs."""
        track_id = extract_id_from_url(url, "track")
        if not track_id:
            logger.debug(f"Not a track share URL: {url}")
            return None
        return await self.get_track(track_id)

    async def get_album(self, album_id: str) -> Optional[Album]:
        """Get an album, including its record label."""
        if not album_id:
            return None

        async def fetch() -> Optional[Album]:
            data = await self._get_json(f"/albums/{album_id}", {"market": self.market})
            return parse_album(data) if data else None

        return await self._cached(make_cache_key("album", album_id), fetch)

    async def get_audio_features(self, track_id: str) -> Optional[AudioFeatures]:
        """Get audio features for a track."""
        if not track_id:
            return None

        async def fetch() -> Optional[AudioFeatures]:
            data = await self._get_json(f"/audio-features/{track_id}")
            return parse_audio_features(data) if data else None

        return await self._cached(make_cache_key("audio_features", track_id), fetch)

    async def get_playlist_tracks(self, playlist_id: str) -> List[Track]:
        """Get every track of a playlist, following pagination.

        Each page is a separate queued call; local files and removed tracks
        are skipped.
        """
        if not playlist_id:
            return []

        async def fetch() -> List[Track]:
            tracks: List[Track] = []
            offset = 0
            while True:
                page = await self.queue.enqueue(functools.partial(
                    self._get_json,
                    f"/playlists/{playlist_id}/tracks",
                    {"limit": PLAYLIST_PAGE_SIZE, "offset": offset, "market": self.market},
                ))
                if page is None:
                    break
                page_tracks, has_next = parse_playlist_page(page)
                tracks.extend(page_tracks)
                if not has_next:
                    break
                offset += PLAYLIST_PAGE_SIZE
            return tracks

        return await self._cached(make_cache_key("playlist_tracks", playlist_id), fetch, queued=False)

    async def get_label_releases(self, playlist_id: str) -> List[Track]:
        """Playlist tracks with each album's record label filled in.

        A failed album lookup leaves that album's label unset rather than
        failing the listing.
        """
        tracks = await self.get_playlist_tracks(playlist_id)
        albums: Dict[str, Optional[Album]] = {}

        for track in tracks:
            if track.album is None or not track.album.id:
                continue
            if track.album.id not in albums:
                try:
                    albums[track.album.id] = await self.get_album(track.album.id)
                except CatalogError as e:
                    logger.warning(f"Could not fetch album {track.album.id}: {e}")
                    albums[track.album.id] = None
            album = albums[track.album.id]
            if album is not None and album.label:
                track.album.label = album.label

        return tracks

    @staticmethod
    def extract_id_from_url(url: str, kind: str) -> Optional[str]:
        """Entity id after the ``kind`` path segment of a share URL."""
        return extract_id_from_url(url, kind)

    async def close(self) -> None:
        """Close the HTTP session if this client created it."""
        if self._session is not None and self._owns_session:
            await self._session.close()
        self._session = None
