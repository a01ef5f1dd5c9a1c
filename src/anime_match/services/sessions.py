"""Application service for the two-participant match protocol."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass, replace
from uuid import UUID

from anime_match.domain.errors import (
    AlreadySubmitted,
    InvalidInput,
    NotFound,
    SessionExpired,
    VersionConflict,
    WrongPhase,
)
from anime_match.domain.scoring import ScoringReport
from anime_match.domain.sessions import (
    Participant,
    Rating,
    RatingScores,
    Selection,
    SessionEvent,
    SessionPhase,
    SessionState,
)
from anime_match.services.catalog import CatalogService
from anime_match.services.lifecycle import expire, require_phase
from anime_match.services.matching import MatchCoordinator
from anime_match.services.notifications import SessionNotifier
from anime_match.services.store import Clock, SessionStore, utc_now
from anime_match.services.validation import (
    normalize_code,
    normalize_nickname,
    validate_scores,
    validate_selection,
)

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RatingInput:
    """Raw rating values as received from a caller."""

    item_id: str
    q1: object
    q2: object
    q3: object
    is_self_rating: bool


@dataclass(frozen=True)
class SessionTicket:
    """A session together with the participant who created or joined it."""

    state: SessionState
    participant: Participant


@dataclass
class SessionService:
    """Entry point for every session operation.

    Input is validated before the store is touched. Writes go through the
    coordinator, which advances phases in the same versioned write.
    """

    store: SessionStore
    coordinator: MatchCoordinator
    catalog: CatalogService
    notifier: SessionNotifier
    clock: Clock = utc_now
    join_retry_attempts: int = 1

    async def create_session(self, nickname: str) -> SessionTicket:
        """Create a session and return it with its creator."""
        cleaned = normalize_nickname(nickname)
        session, participant = self.store.create(cleaned)
        state = self.store.get(session.id)
        await self._publish(state)
        return SessionTicket(state=state, participant=participant)

    async def join_session(self, code: str, nickname: str) -> SessionTicket:
        """Join a waiting session by its code."""
        normalized_code = normalize_code(code)
        cleaned = normalize_nickname(nickname)
        attempt = 0
        while True:
            try:
                async with self._announcing_expiry():
                    session, participant = self.store.join(normalized_code, cleaned)
                break
            except VersionConflict:
                attempt += 1
                if attempt > self.join_retry_attempts:
                    raise
                _logger.info("Join race on code %s, retrying", normalized_code)
        async with self._announcing_expiry():
            state, _ = self.coordinator.apply(session.id)
        await self._publish(state)
        return SessionTicket(state=state, participant=participant)

    async def get_session(self, session_id: UUID) -> SessionState:
        """Return current state, applying any pending transition first."""
        async with self._announcing_expiry():
            state, changed = self.coordinator.apply(session_id)
        if changed:
            await self._publish(state)
        return state

    async def get_session_by_code(self, code: str) -> SessionState:
        """Return the live session for a join code."""
        async with self._announcing_expiry():
            state = self.store.get_by_code(normalize_code(code))
        return await self.get_session(state.id)

    async def submit_selections(
        self, session_id: UUID, participant_id: UUID, item_ids: list[str]
    ) -> SessionState:
        """Record a participant's three picks."""
        cleaned = validate_selection(item_ids)
        await self.catalog.require_items(cleaned)

        def mutation(state: SessionState) -> SessionState:
            return _record_selections(state, participant_id, cleaned)

        async with self._announcing_expiry():
            state, changed = self.coordinator.apply(session_id, mutation)
        if changed:
            _logger.info(
                "Session %s selections from %s: %s",
                session_id,
                participant_id,
                ", ".join(cleaned),
            )
            await self._publish(state)
        return state

    async def submit_ratings(
        self, session_id: UUID, participant_id: UUID, ratings: list[RatingInput]
    ) -> SessionState:
        """Record self and cross ratings for a participant."""
        if not ratings:
            raise InvalidInput("At least one rating is required")
        entries: dict[tuple[str, bool], RatingScores] = {}
        for rating in ratings:
            key = (rating.item_id.strip(), bool(rating.is_self_rating))
            if key in entries:
                raise InvalidInput(f"Item {key[0]} rated twice in one request")
            entries[key] = validate_scores(rating.q1, rating.q2, rating.q3)

        def mutation(state: SessionState) -> SessionState:
            return _record_ratings(state, participant_id, entries)

        async with self._announcing_expiry():
            state, changed = self.coordinator.apply(session_id, mutation)
        if changed:
            _logger.info(
                "Session %s ratings from %s: %s entries",
                session_id,
                participant_id,
                len(entries),
            )
            await self._publish(state)
        return state

    async def get_results(self, session_id: UUID) -> ScoringReport:
        """Return the scoring report of a completed session."""
        state = await self.get_session(session_id)
        if state.result is None:
            raise WrongPhase("Results are not available yet")
        return state.result

    async def expire_session(self, session_id: UUID) -> SessionState:
        """Tear a session down before its TTL runs out."""

        def mutation(state: SessionState) -> SessionState:
            return expire(state, self.clock())

        async with self._announcing_expiry():
            state, changed = self.coordinator.apply(session_id, mutation)
        if changed:
            _logger.info("Session %s expired on request", session_id)
            await self._publish(state)
        return state

    async def _publish(self, state: SessionState) -> None:
        await self.notifier.publish(SessionEvent.from_state(state, self.clock()))

    @asynccontextmanager
    async def _announcing_expiry(self) -> AsyncIterator[None]:
        """Publish the EXPIRED snapshot when a read is what marked the session."""
        try:
            yield
        except SessionExpired as error:
            if error.state is not None:
                await self._publish(error.state)
            raise


def _require_participant(state: SessionState, participant_id: UUID) -> Participant:
    participant = state.participant(participant_id)
    if participant is None:
        raise NotFound("Participant is not part of this session")
    return participant


def _record_selections(
    state: SessionState, participant_id: UUID, item_ids: list[str]
) -> SessionState:
    _require_participant(state, participant_id)
    existing = state.item_ids_for(participant_id)
    if existing and set(existing) == set(item_ids):
        return state
    if existing:
        raise AlreadySubmitted("Selections were already submitted")
    require_phase(state, SessionPhase.SELECTION)
    picks = tuple(
        Selection(
            session_id=state.id,
            participant_id=participant_id,
            item_id=item_id,
            order_num=index,
        )
        for index, item_id in enumerate(item_ids)
    )
    return replace(state, selections=state.selections + picks)


def _record_ratings(
    state: SessionState,
    participant_id: UUID,
    entries: dict[tuple[str, bool], RatingScores],
) -> SessionState:
    _require_participant(state, participant_id)
    stored = {
        (r.item_id, r.is_self_rating): r.scores
        for r in state.ratings
        if r.participant_id == participant_id
    }
    pending = {}
    for key, scores in entries.items():
        previous = stored.get(key)
        if previous is None:
            pending[key] = scores
        elif previous != scores:
            raise AlreadySubmitted(f"Item {key[0]} was already rated")
    if not pending:
        return state

    require_phase(state, SessionPhase.RATING)
    partner = state.partner_of(participant_id)
    own_items = set(state.item_ids_for(participant_id))
    partner_items = set(state.item_ids_for(partner.id)) if partner else set()
    new_ratings = []
    for (item_id, is_self_rating), scores in sorted(pending.items()):
        allowed = own_items if is_self_rating else partner_items
        if item_id not in allowed:
            role = "your own" if is_self_rating else "your partner's"
            raise InvalidInput(f"Item {item_id} is not among {role} selections")
        new_ratings.append(
            Rating(
                session_id=state.id,
                participant_id=participant_id,
                item_id=item_id,
                scores=scores,
                is_self_rating=is_self_rating,
            )
        )
    return replace(state, ratings=state.ratings + tuple(new_ratings))
