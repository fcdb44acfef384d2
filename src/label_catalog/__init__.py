"""Label Catalog - artist metadata reconciliation and caching for a music label site."""

__version__ = "0.1.0"

from .core.cache import CACHE_MISS, TTLCache
from .core.classifier import LabelClassification, LabelClassifier
from .core.reconciler import MetadataReconciler, choose_artwork
from .core.request_queue import RequestQueue
from .domain.entities import ArtistCandidate, MatchStatus, ResolvedArtist
from .exceptions import (
    AuthError,
    CatalogError,
    ConfigurationError,
    LabelCatalogError,
    RateLimitError,
    TransportError,
)
from .infrastructure.external.catalog_client import CatalogClient
from .models.config import Config, config_from_env, load_config
from .services import CatalogServices, build_services

__all__ = [
    "CACHE_MISS",
    "TTLCache",
    "RequestQueue",
    "CatalogClient",
    "MetadataReconciler",
    "choose_artwork",
    "LabelClassifier",
    "LabelClassification",
    "ArtistCandidate",
    "MatchStatus",
    "ResolvedArtist",
    "Config",
    "config_from_env",
    "load_config",
    "CatalogServices",
    "build_services",
    "LabelCatalogError",
    "ConfigurationError",
    "CatalogError",
    "TransportError",
    "RateLimitError",
    "AuthError",
]
