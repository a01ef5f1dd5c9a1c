"""Phase completion detection and transition driving."""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from uuid import UUID

from anime_match.domain.errors import VersionConflict
from anime_match.domain.scoring import ItemRatings
from anime_match.domain.sessions import (
    SELECTION_COUNT,
    SessionPhase,
    SessionState,
    SessionStatus,
)
from anime_match.services.lifecycle import (
    advance_phase,
    complete,
    record_direct_matches,
)
from anime_match.services.scoring import score_items
from anime_match.services.store import Clock, SessionStore, utc_now

Mutation = Callable[[SessionState], SessionState]

_logger = logging.getLogger(__name__)


def has_complete_selection(state: SessionState, participant_id: UUID) -> bool:
    """Return True once the participant picked all their items."""
    return len(state.selections_for(participant_id)) == SELECTION_COUNT


def selections_ready(state: SessionState) -> bool:
    """Return True when every participant of a full session has picked."""
    return state.is_full and all(
        has_complete_selection(state, p.id) for p in state.participants
    )


def has_complete_ratings(state: SessionState, participant_id: UUID) -> bool:
    """Return True once the participant rated own and partner picks."""
    partner = state.partner_of(participant_id)
    if partner is None:
        return False
    own_items = set(state.item_ids_for(participant_id))
    partner_items = set(state.item_ids_for(partner.id))
    self_rated = {
        r.item_id for r in state.ratings_for(participant_id, is_self_rating=True)
    }
    cross_rated = {
        r.item_id for r in state.ratings_for(participant_id, is_self_rating=False)
    }
    return (
        len(own_items) == SELECTION_COUNT
        and len(partner_items) == SELECTION_COUNT
        and self_rated == own_items
        and cross_rated == partner_items
    )


def ratings_ready(state: SessionState) -> bool:
    """Return True when both participants finished rating."""
    return state.is_full and all(
        has_complete_ratings(state, p.id) for p in state.participants
    )


def find_direct_matches(state: SessionState) -> list[str]:
    """Return items picked by every participant."""
    if not state.participants:
        return []
    picks = [set(state.item_ids_for(p.id)) for p in state.participants]
    return sorted(set.intersection(*picks))


def collect_item_ratings(state: SessionState) -> list[ItemRatings]:
    """Group stored ratings per distinct selected item."""
    matches = set(find_direct_matches(state))
    item_ids = sorted({s.item_id for s in state.selections})
    entries = []
    for item_id in item_ids:
        self_ratings = []
        cross_ratings = []
        for rating in state.ratings:
            if rating.item_id != item_id:
                continue
            scores = (rating.scores.q1, rating.scores.q2, rating.scores.q3)
            if rating.is_self_rating:
                self_ratings.append(scores)
            else:
                cross_ratings.append(scores)
        entries.append(
            ItemRatings(
                item_id=item_id,
                self_ratings=tuple(sorted(self_ratings)),
                cross_ratings=tuple(sorted(cross_ratings)),
                is_direct_match=item_id in matches,
            )
        )
    return entries


@dataclass
class MatchCoordinator:
    """Advances sessions as soon as both participants finish a phase.

    Readiness is recomputed from the stored records on every call, so a
    retried write can never double-count.
    """

    store: SessionStore
    clock: Clock = utc_now
    retry_attempts: int = 1

    def evaluate(self, state: SessionState) -> SessionState:
        """Apply every transition whose completion condition holds."""
        if state.session.status != SessionStatus.ACTIVE:
            return state
        now = self.clock()
        if state.session.phase == SessionPhase.SELECTION and selections_ready(state):
            state = advance_phase(state, SessionPhase.MATCHING, now)
        if state.session.phase == SessionPhase.MATCHING:
            matches = find_direct_matches(state)
            state = record_direct_matches(state, matches, now)
            state = advance_phase(state, SessionPhase.RATING, now)
            if matches:
                _logger.info(
                    "Session %s direct matches: %s", state.id, ", ".join(matches)
                )
        if state.session.phase == SessionPhase.RATING and ratings_ready(state):
            state = advance_phase(state, SessionPhase.RESULTS, now)
        if state.session.phase == SessionPhase.RESULTS:
            report = score_items(collect_item_ratings(state))
            state = complete(state, report, now)
        return state

    def apply(
        self, session_id: UUID, mutation: Mutation | None = None
    ) -> tuple[SessionState, bool]:
        """Run a mutation and readiness check as one versioned write.

        Returns the resulting state and whether anything was written. A lost
        version race is retried against a fresh read.
        """
        attempt = 0
        while True:
            state = self.store.get(session_id)
            changed = mutation(state) if mutation is not None else state
            changed = self.evaluate(changed)
            if changed is state:
                return state, False
            try:
                return self.store.save(changed), True
            except VersionConflict:
                attempt += 1
                _logger.info(
                    "Session %s write lost a race (attempt %s/%s)",
                    session_id,
                    attempt,
                    self.retry_attempts + 1,
                )
                if attempt > self.retry_attempts:
                    raise
