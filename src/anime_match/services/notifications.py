"""Session change notifications."""

from collections import defaultdict, deque
from dataclasses import dataclass, field
from typing import Protocol
from uuid import UUID

from anime_match.domain.sessions import SessionEvent


class SessionNotifier(Protocol):
    """Channel for session-state-changed snapshots.

    Delivery is at-least-once; consumers treat events as idempotent
    snapshots keyed by session id and version.
    """

    async def publish(self, event: SessionEvent) -> None:
        """Emit a snapshot for a changed session."""


@dataclass
class InMemoryEventLog(SessionNotifier):
    """Keeps the latest events per session for polling consumers."""

    max_events_per_session: int = 50
    _events: dict[UUID, deque[SessionEvent]] = field(
        default_factory=dict, init=False
    )

    def __post_init__(self) -> None:
        self._events = defaultdict(
            lambda: deque(maxlen=self.max_events_per_session)
        )

    async def publish(self, event: SessionEvent) -> None:
        """Record the event."""
        self._events[event.session_id].append(event)

    def events_for(
        self, session_id: UUID, after_version: int = -1
    ) -> list[SessionEvent]:
        """Return recorded events newer than ``after_version``."""
        return [
            event
            for event in self._events.get(session_id, ())
            if event.version > after_version
        ]

    def forget(self, session_id: UUID) -> None:
        """Drop everything recorded for a session that no longer exists."""
        self._events.pop(session_id, None)


@dataclass
class FanoutNotifier(SessionNotifier):
    """Publishes every event to several channels in order."""

    notifiers: list[SessionNotifier]

    async def publish(self, event: SessionEvent) -> None:
        """Forward the event to each channel."""
        for notifier in self.notifiers:
            await notifier.publish(event)
