"""Catalog lookups with caching and a short retry."""

import asyncio
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, TypeVar

from anime_match.domain.catalog import ItemSummary
from anime_match.domain.errors import NotFound
from anime_match.services.cache import Cache

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

T = TypeVar("T")

_logger = logging.getLogger(__name__)


class CatalogProvider(Protocol):
    """Source of selectable titles."""

    async def search(self, query: str, limit: int = 10) -> list[ItemSummary]:
        """Return titles matching a free-text query."""

    async def popular(self, limit: int = 10) -> list[ItemSummary]:
        """Return popular titles."""

    async def get_item(self, item_id: str) -> ItemSummary | None:
        """Return a title by id, if it exists."""


@dataclass
class CatalogService:
    """Service for catalog lookups with caching."""

    provider: CatalogProvider
    cache: Cache
    search_ttl_seconds: int = 3600
    item_ttl_seconds: int = 86400
    debug: bool = False
    retry_attempts: int = 1
    retry_delay_seconds: float = 0.3

    async def search(self, query: str, limit: int = 10) -> list[ItemSummary]:
        """Search titles with caching."""
        cache_key = f"catalog:search:{query.strip().lower()}:{limit}"
        cached = self.cache.get(cache_key)
        if isinstance(cached, list):
            return cached

        items = await self._call_with_retry(
            lambda: self.provider.search(query.strip(), limit), action="search"
        )
        self.cache.set(cache_key, items, ttl_seconds=self.search_ttl_seconds)
        if self.debug:
            _logger.info("Catalog search: query=%s results=%s", query, len(items))
        return items

    async def popular(self, limit: int = 10) -> list[ItemSummary]:
        """Return popular titles with caching."""
        cache_key = f"catalog:popular:{limit}"
        cached = self.cache.get(cache_key)
        if isinstance(cached, list):
            return cached

        items = await self._call_with_retry(
            lambda: self.provider.popular(limit), action="popular"
        )
        self.cache.set(cache_key, items, ttl_seconds=self.search_ttl_seconds)
        return items

    async def get_item(self, item_id: str) -> ItemSummary | None:
        """Return a title by id; misses are not cached."""
        cache_key = f"catalog:item:{item_id}"
        cached = self.cache.get(cache_key)
        if isinstance(cached, ItemSummary):
            return cached

        item = await self._call_with_retry(
            lambda: self.provider.get_item(item_id), action=f"get_item:{item_id}"
        )
        if item is not None:
            self.cache.set(cache_key, item, ttl_seconds=self.item_ttl_seconds)
        return item

    async def require_items(self, item_ids: list[str]) -> list[ItemSummary]:
        """Resolve every id or raise NotFound for the first unknown one."""
        items = []
        for item_id in item_ids:
            item = await self.get_item(item_id)
            if item is None:
                raise NotFound(f"Unknown item {item_id}")
            items.append(item)
        return items

    async def _call_with_retry(
        self, func: "Callable[[], Awaitable[T]]", *, action: str
    ) -> T:
        """Call an async function with a short retry."""
        attempt = 0
        while True:
            try:
                return await func()
            except Exception as exc:
                attempt += 1
                _logger.warning(
                    "Catalog %s failed (attempt %s/%s): %s",
                    action,
                    attempt,
                    self.retry_attempts + 1,
                    exc,
                )
                if attempt > self.retry_attempts:
                    raise
                await asyncio.sleep(self.retry_delay_seconds)
