"""Webhook delivery of session events."""

import logging
from dataclasses import dataclass

import httpx

from anime_match.domain.sessions import SessionEvent
from anime_match.services.notifications import SessionNotifier

_logger = logging.getLogger(__name__)


@dataclass
class HttpxWebhookNotifier(SessionNotifier):
    """Posts session snapshots to a configured URL."""

    url: str
    http_client: httpx.AsyncClient

    @classmethod
    def create(cls, url: str) -> "HttpxWebhookNotifier":
        """Create a notifier with a managed httpx session."""
        return cls(url=url, http_client=httpx.AsyncClient())

    async def publish(self, event: SessionEvent) -> None:
        """POST the snapshot; failures are logged since clients can poll."""
        try:
            response = await self.http_client.post(
                self.url, json=event.to_payload(), timeout=5
            )
            response.raise_for_status()
        except httpx.HTTPError:
            _logger.exception(
                "Failed to deliver event for session %s v%s",
                event.session_id,
                event.version,
            )

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()
