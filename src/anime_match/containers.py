"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import timedelta

from supabase import create_client

from anime_match.adapters.jikan_catalog_client import HttpxJikanCatalogClient
from anime_match.adapters.static_catalog import StaticCatalog
from anime_match.adapters.supabase_session_store import SupabaseSessionStore
from anime_match.adapters.webhook_notifier import HttpxWebhookNotifier
from anime_match.config import Settings
from anime_match.services.cache import InMemoryCache
from anime_match.services.catalog import CatalogProvider, CatalogService
from anime_match.services.matching import MatchCoordinator
from anime_match.services.notifications import (
    FanoutNotifier,
    InMemoryEventLog,
    SessionNotifier,
)
from anime_match.services.sessions import SessionService
from anime_match.services.store import InMemorySessionStore, SessionStore


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    session_store: SessionStore
    catalog_service: CatalogService
    event_log: InMemoryEventLog
    session_service: SessionService
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    ttl = timedelta(hours=resolved_settings.session_ttl_hours)
    closers: list[Callable[[], Awaitable[None]]] = []

    store: SessionStore
    if resolved_settings.storage_backend == "supabase":
        if not (
            resolved_settings.supabase_url and resolved_settings.supabase_service_key
        ):
            raise ValueError("Supabase storage requires SUPABASE_URL and key")
        supabase_client = create_client(
            resolved_settings.supabase_url, resolved_settings.supabase_service_key
        )
        store = SupabaseSessionStore(supabase_client, ttl=ttl)
    else:
        store = InMemorySessionStore(ttl=ttl)

    provider: CatalogProvider
    if resolved_settings.catalog_backend == "jikan":
        jikan_client = HttpxJikanCatalogClient.create(
            resolved_settings.catalog_base_url
        )
        closers.append(jikan_client.close)
        provider = jikan_client
    else:
        provider = StaticCatalog()
    catalog_service = CatalogService(
        provider=provider,
        cache=InMemoryCache(),
        search_ttl_seconds=resolved_settings.catalog_cache_ttl_seconds,
        debug=resolved_settings.debug,
    )

    event_log = InMemoryEventLog()
    notifier: SessionNotifier = event_log
    if resolved_settings.notify_webhook_url:
        webhook = HttpxWebhookNotifier.create(resolved_settings.notify_webhook_url)
        closers.append(webhook.close)
        notifier = FanoutNotifier([event_log, webhook])

    session_service = SessionService(
        store=store,
        coordinator=MatchCoordinator(store),
        catalog=catalog_service,
        notifier=notifier,
    )

    async def close_resources() -> None:
        for close in closers:
            await close()

    return AppContainer(
        settings=resolved_settings,
        session_store=store,
        catalog_service=catalog_service,
        event_log=event_log,
        session_service=session_service,
        close_resources=close_resources,
    )
