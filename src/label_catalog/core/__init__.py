"""Core enrichment modules."""

from .cache import CACHE_MISS, TTLCache, make_cache_key
from .request_queue import RequestQueue

__all__ = [
    'CACHE_MISS',
    'TTLCache',
    'make_cache_key',
    'RequestQueue',
]
