"""Test fixtures and in-memory fakes."""

import asyncio
import logging
from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from uuid import UUID

import pytest

from anime_match.adapters.static_catalog import StaticCatalog
from anime_match.config import Settings
from anime_match.containers import AppContainer
from anime_match.domain.sessions import SessionEvent, SessionState
from anime_match.services.cache import InMemoryCache
from anime_match.services.catalog import CatalogService
from anime_match.services.matching import MatchCoordinator
from anime_match.services.notifications import FanoutNotifier, InMemoryEventLog
from anime_match.services.sessions import RatingInput, SessionService, SessionTicket
from anime_match.services.store import InMemorySessionStore

START = datetime(2026, 3, 14, 18, 0, tzinfo=UTC)

WORKED_SELF = (4, 4, 3)
WORKED_CROSS = (4, 3, 4)


@dataclass
class FakeClock:
    """Manually advanced clock."""

    now: datetime = START

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


@dataclass
class RecordingNotifier:
    """Notifier that keeps every published event."""

    events: list[SessionEvent] = field(default_factory=list)

    async def publish(self, event: SessionEvent) -> None:
        self.events.append(event)


def code_sequence(codes: Iterable[str]) -> Callable[[], str]:
    """Return a code generator that yields the given codes in order."""
    iterator: Iterator[str] = iter(codes)
    return lambda: next(iterator)


@pytest.fixture
def settings() -> Settings:
    return Settings(admin_token="admin-token")


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(clock: FakeClock) -> InMemorySessionStore:
    return InMemorySessionStore(clock=clock)


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def event_log() -> InMemoryEventLog:
    return InMemoryEventLog()


@pytest.fixture
def catalog_service(clock: FakeClock) -> CatalogService:
    return CatalogService(provider=StaticCatalog(), cache=InMemoryCache(clock=clock))


@pytest.fixture
def session_service(
    store: InMemorySessionStore,
    clock: FakeClock,
    catalog_service: CatalogService,
    notifier: RecordingNotifier,
    event_log: InMemoryEventLog,
) -> SessionService:
    return SessionService(
        store=store,
        coordinator=MatchCoordinator(store, clock=clock),
        catalog=catalog_service,
        notifier=FanoutNotifier([event_log, notifier]),
        clock=clock,
    )


@pytest.fixture
def container(
    settings: Settings,
    store: InMemorySessionStore,
    catalog_service: CatalogService,
    event_log: InMemoryEventLog,
    session_service: SessionService,
) -> AppContainer:
    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        session_store=store,
        catalog_service=catalog_service,
        event_log=event_log,
        session_service=session_service,
        close_resources=close_resources,
    )


def start_session(
    service: SessionService, host: str = "Alice", guest: str = "Bob"
) -> tuple[SessionTicket, SessionTicket]:
    """Create a session and fill it with a second participant."""
    created = asyncio.run(service.create_session(host))
    joined = asyncio.run(service.join_session(created.state.session.code, guest))
    return created, joined


def select_items(
    service: SessionService,
    session_id: UUID,
    participant_id: UUID,
    item_ids: list[str],
) -> SessionState:
    return asyncio.run(service.submit_selections(session_id, participant_id, item_ids))


def build_ratings(
    own_items: Iterable[str],
    partner_items: Iterable[str],
    self_scores: tuple[int, int, int] = WORKED_SELF,
    cross_scores: tuple[int, int, int] = WORKED_CROSS,
) -> list[RatingInput]:
    ratings = [
        RatingInput(item, *self_scores, is_self_rating=True) for item in own_items
    ]
    ratings.extend(
        RatingInput(item, *cross_scores, is_self_rating=False)
        for item in partner_items
    )
    return ratings


def rate_items(
    service: SessionService,
    session_id: UUID,
    participant_id: UUID,
    ratings: list[RatingInput],
) -> SessionState:
    return asyncio.run(service.submit_ratings(session_id, participant_id, ratings))


@pytest.fixture
def app_logs(
    caplog: pytest.LogCaptureFixture, monkeypatch: pytest.MonkeyPatch
) -> pytest.LogCaptureFixture:
    """Capture package logs even after configure_logging stopped propagation."""
    monkeypatch.setattr(logging.getLogger("anime_match"), "propagate", True)
    caplog.set_level(logging.DEBUG, logger="anime_match")
    return caplog
