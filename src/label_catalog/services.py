"""Composition root: builds the enrichment services from a ``Config``.

There are no module-level singletons; every collaborator is created here and
passed explicitly.
"""

import logging
from dataclasses import dataclass
from typing import Optional

import aiohttp

from .core.cache import TTLCache
from .core.classifier import LabelClassifier
from .core.reconciler import MetadataReconciler
from .core.request_queue import RequestQueue
from .events.domain_events import LocalCatalogChanged
from .events.event_bus import EventBus
from .infrastructure.external.catalog_client import CatalogClient
from .models.config import Config

logger = logging.getLogger(__name__)


@dataclass
class CatalogServices:
    """The wired-up cache, queue, client, reconciler and classifier."""
    config: Config
    cache: TTLCache
    queue: RequestQueue
    client: CatalogClient
    reconciler: MetadataReconciler
    classifier: LabelClassifier
    event_bus: EventBus

    def __post_init__(self):
        self.event_bus.subscribe(LocalCatalogChanged, self.on_local_catalog_changed)

    def on_local_catalog_changed(self, event: LocalCatalogChanged) -> None:
        """Drop every cached lookup after a local catalog write."""
        logger.info(
            f"Local {event.entity_type} {event.entity_id} {event.action}, clearing catalog cache"
        )
        self.cache.clear()

    async def close(self) -> None:
        """Stop the queue worker and close the HTTP session."""
        self.event_bus.unsubscribe(LocalCatalogChanged, self.on_local_catalog_changed)
        await self.queue.close()
        await self.client.close()

    async def __aenter__(self) -> "CatalogServices":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()


def build_services(
    config: Config,
    session: Optional[aiohttp.ClientSession] = None,
    event_bus: Optional[EventBus] = None,
) -> CatalogServices:
    """Create all services for ``config``.

    Raises:
        ConfigurationError: If the configuration is invalid or lacks credentials
    """
    config.validate()

    cache = TTLCache(default_ttl=config.cache.ttl_seconds)
    queue = RequestQueue(
        max_calls_per_window=config.queue.max_calls_per_window,
        window_seconds=config.queue.window_seconds,
        inter_task_delay=config.queue.inter_task_delay,
        max_retries=config.queue.max_retries,
        task_timeout=config.queue.task_timeout,
    )
    client = CatalogClient(
        config.credentials.client_id,
        config.credentials.client_secret,
        cache,
        queue,
        api_url=config.api.api_url,
        token_url=config.api.token_url,
        market=config.api.market,
        timeout=config.api.timeout,
        search_limit=config.api.search_limit,
        cache_ttl=config.cache.ttl_seconds,
        session=session,
    )
    event_bus = event_bus if event_bus is not None else EventBus()
    reconciler = MetadataReconciler(
        client,
        event_bus=event_bus,
        fuzzy_dedupe_threshold=config.reconciler.fuzzy_dedupe_threshold,
    )
    classifier = LabelClassifier(genre_mappings=config.labels.genre_mappings)

    logger.debug(
        f"Built catalog services (cap {config.queue.max_calls_per_window} calls / "
        f"{config.queue.window_seconds}s, cache ttl {config.cache.ttl_seconds}s)"
    )
    return CatalogServices(
        config=config,
        cache=cache,
        queue=queue,
        client=client,
        reconciler=reconciler,
        classifier=classifier,
        event_bus=event_bus,
    )
