"""Tests for the composition root."""

import pytest

from label_catalog.core.cache import CACHE_MISS
from label_catalog.domain.entities import MatchStatus
from label_catalog.events import EventPriority, LocalCatalogChanged
from label_catalog.exceptions import ConfigurationError
from label_catalog.models.config import Config
from label_catalog.services import build_services

from conftest import artist_payload, make_response, search_payload


@pytest.fixture
def config():
    config = Config()
    config.credentials.client_id = "test_id"
    config.credentials.client_secret = "test_secret"
    config.queue.inter_task_delay = 0
    config.queue.max_calls_per_window = 7
    config.cache.ttl_seconds = 120.0
    config.reconciler.fuzzy_dedupe_threshold = 0.9
    return config


class TestBuildServices:

    def test_requires_credentials(self, session):
        with pytest.raises(ConfigurationError):
            build_services(Config(), session=session)

    def test_wires_config(self, config, session):
        services = build_services(config, session=session)

        assert services.queue.max_calls_per_window == 7
        assert services.cache.default_ttl == 120.0
        assert services.client.cache is services.cache
        assert services.client.queue is services.queue
        assert services.reconciler.client is services.client
        assert services.reconciler.event_bus is services.event_bus
        assert services.reconciler.fuzzy_dedupe_threshold == 0.9
        assert services.classifier.labels == ["deep", "tech", "records"]

    @pytest.mark.asyncio
    async def test_local_catalog_change_clears_cache(self, config, session):
        services = build_services(config, session=session)
        services.cache.set("search_artists:nora en pure:10", [])

        await services.event_bus.publish(
            LocalCatalogChanged(entity_type="artist", entity_id="42", action="updated"),
            priority=EventPriority.CRITICAL,
        )

        assert services.cache.get("search_artists:nora en pure:10") is CACHE_MISS

    @pytest.mark.asyncio
    async def test_reconcile_after_invalidation_refetches(self, config, session):
        session.get.return_value = make_response(200, search_payload(artist_payload()))

        async with build_services(config, session=session) as services:
            first = await services.reconciler.reconcile_artist("Nora En Pure")
            await services.event_bus.publish(
                LocalCatalogChanged(entity_type="release", entity_id="7")
            )
            second = await services.reconciler.reconcile_artist("Nora En Pure")

        assert first.status is MatchStatus.FOUND_WITH_IMAGE
        assert second == first
        assert session.get.call_count == 2

    @pytest.mark.asyncio
    async def test_close_leaves_injected_session_open(self, config, session):
        services = build_services(config, session=session)

        await services.close()

        session.close.assert_not_called()
