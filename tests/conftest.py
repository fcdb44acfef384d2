"""Shared fixtures for catalog client and reconciler tests."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from label_catalog.core.cache import TTLCache
from label_catalog.core.request_queue import RequestQueue
from label_catalog.infrastructure.external.catalog_client import CatalogClient


class MockAsyncContextManager:
    """Helper class for mocking async context managers."""
    def __init__(self, return_value):
        self.return_value = return_value

    async def __aenter__(self):
        return self.return_value

    async def __aexit__(self, *args):
        pass


def make_response(status=200, payload=None, headers=None):
    """Mock aiohttp response usable inside ``async with``."""
    response = MagicMock()
    response.status = status
    response.json = AsyncMock(return_value=payload)
    response.headers = headers or {}
    return MockAsyncContextManager(response)


def artist_payload(artist_id="a1", name="Nora En Pure", popularity=60, image=True, genres=("deep house",)):
    return {
        "id": artist_id,
        "name": name,
        "popularity": popularity,
        "images": [
            {"url": f"https://i.scdn.co/image/{artist_id}", "width": 640, "height": 640}
        ] if image else [],
        "genres": list(genres),
        "external_urls": {"spotify": f"https://open.spotify.com/artist/{artist_id}"},
        "uri": f"spotify:artist:{artist_id}",
        "followers": {"total": 1000},
    }


def search_payload(*artists):
    return {"artists": {"items": list(artists), "total": len(artists)}}


def track_payload(track_id="t1", name="Tears", album_id="al1", explicit=False):
    return {
        "id": track_id,
        "name": name,
        "artists": [{"id": "a1", "name": "Nora En Pure"}],
        "album": {
            "id": album_id,
            "name": "Tears EP",
            "images": [{"url": f"https://i.scdn.co/image/{album_id}", "width": 300, "height": 300}],
            "release_date": "2024-05-01",
            "album_type": "single",
        },
        "duration_ms": 412000,
        "popularity": 41,
        "preview_url": None,
        "external_ids": {"isrc": "CH1234567890"},
        "explicit": explicit,
        "track_number": 1,
        "disc_number": 1,
        "uri": f"spotify:track:{track_id}",
        "external_urls": {"spotify": f"https://open.spotify.com/track/{track_id}"},
    }


TOKEN_PAYLOAD = {"access_token": "test_token", "token_type": "Bearer", "expires_in": 3600}


@pytest.fixture
def session():
    """Mock aiohttp session with a working token endpoint."""
    session = MagicMock()
    session.post = MagicMock(return_value=make_response(200, TOKEN_PAYLOAD))
    session.get = MagicMock(return_value=make_response(200, search_payload()))
    session.close = AsyncMock()
    return session


@pytest.fixture
def cache():
    return TTLCache(default_ttl=3600.0)


@pytest.fixture
def queue():
    return RequestQueue(inter_task_delay=0)


@pytest.fixture
def client(session, cache, queue):
    return CatalogClient("test_id", "test_secret", cache, queue, session=session)
