"""Jikan (MyAnimeList) catalog client."""

from dataclasses import dataclass

import httpx

from anime_match.domain.catalog import ItemSummary
from anime_match.services.catalog import CatalogProvider

JIKAN_MAX_PAGE_SIZE = 25


@dataclass
class HttpxJikanCatalogClient(CatalogProvider):
    """HTTPX-backed catalog provider for the public Jikan v4 API."""

    base_url: str
    http_client: httpx.AsyncClient

    @classmethod
    def create(cls, base_url: str) -> "HttpxJikanCatalogClient":
        """Create a Jikan client with a managed httpx session."""
        return cls(base_url=base_url.rstrip("/"), http_client=httpx.AsyncClient())

    async def search(self, query: str, limit: int = 10) -> list[ItemSummary]:
        """Search anime by title."""
        response = await self.http_client.get(
            f"{self.base_url}/anime",
            params={"q": query, "limit": _page_size(limit), "sfw": "true"},
            timeout=15,
        )
        response.raise_for_status()
        return [_parse_item(row) for row in response.json().get("data", [])]

    async def popular(self, limit: int = 10) -> list[ItemSummary]:
        """Return the top anime list."""
        response = await self.http_client.get(
            f"{self.base_url}/top/anime",
            params={"limit": _page_size(limit)},
            timeout=15,
        )
        response.raise_for_status()
        return [_parse_item(row) for row in response.json().get("data", [])]

    async def get_item(self, item_id: str) -> ItemSummary | None:
        """Fetch one anime by MyAnimeList id."""
        if not item_id.isdigit():
            return None
        response = await self.http_client.get(
            f"{self.base_url}/anime/{item_id}", timeout=15
        )
        if response.status_code == httpx.codes.NOT_FOUND:
            return None
        response.raise_for_status()
        data = response.json().get("data")
        return _parse_item(data) if data else None

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()


def _page_size(limit: int) -> int:
    return max(1, min(limit, JIKAN_MAX_PAGE_SIZE))


def _parse_item(row: dict[str, object]) -> ItemSummary:
    genres = row.get("genres") or []
    images = row.get("images")
    jpg = images.get("jpg") if isinstance(images, dict) else None
    return ItemSummary(
        id=str(row["mal_id"]),
        title=str(row.get("title_english") or row.get("title") or ""),
        synopsis=str(row.get("synopsis") or ""),
        genres=tuple(
            str(genre["name"])
            for genre in genres
            if isinstance(genre, dict) and genre.get("name")
        ),
        year=row.get("year") if isinstance(row.get("year"), int) else None,
        image_url=jpg.get("image_url") if isinstance(jpg, dict) else None,
    )
