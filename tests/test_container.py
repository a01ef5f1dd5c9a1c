"""Tests for container wiring."""

import asyncio

import pytest

from anime_match.adapters.jikan_catalog_client import HttpxJikanCatalogClient
from anime_match.adapters.static_catalog import StaticCatalog
from anime_match.config import Settings
from anime_match.containers import build_container
from anime_match.services.notifications import FanoutNotifier, InMemoryEventLog
from anime_match.services.store import InMemorySessionStore


def test_build_container_creates_services(settings: Settings) -> None:
    container = build_container(settings)

    assert container.session_service is not None
    assert isinstance(container.session_store, InMemorySessionStore)
    assert isinstance(container.catalog_service.provider, StaticCatalog)
    assert container.session_service.notifier is container.event_log
    asyncio.run(container.close_resources())


def test_build_container_with_remote_adapters() -> None:
    settings = Settings(
        admin_token="admin-token",
        catalog_backend="jikan",
        notify_webhook_url="https://hooks.test/session",
        session_ttl_hours=2,
    )

    container = build_container(settings)

    assert isinstance(container.catalog_service.provider, HttpxJikanCatalogClient)
    notifier = container.session_service.notifier
    assert isinstance(notifier, FanoutNotifier)
    assert isinstance(notifier.notifiers[0], InMemoryEventLog)
    assert container.session_store.ttl.total_seconds() == 7200
    asyncio.run(container.close_resources())


def test_supabase_backend_requires_credentials() -> None:
    settings = Settings(
        admin_token="admin-token", storage_backend="supabase", supabase_url=None
    )

    with pytest.raises(ValueError):
        build_container(settings)
