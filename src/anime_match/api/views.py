"""JSON views of sessions and results.

Ratings never leave the server before results exist, and a partner's
picks stay hidden until the rating phase.
"""

from uuid import UUID

from anime_match.domain.scoring import ItemScore, RatingBreakdown, ScoringReport
from anime_match.domain.sessions import (
    PHASE_ORDER,
    Participant,
    SessionPhase,
    SessionState,
)
from anime_match.services.matching import has_complete_ratings, has_complete_selection

_REVEAL_INDEX = PHASE_ORDER.index(SessionPhase.RATING)


def session_payload(
    state: SessionState, viewer_id: UUID | None = None
) -> dict[str, object]:
    """Serialize a session for a participant or an anonymous poller."""
    session = state.session
    revealed = PHASE_ORDER.index(session.phase) >= _REVEAL_INDEX
    payload: dict[str, object] = {
        "id": str(session.id),
        "code": session.code,
        "status": session.status.value,
        "phase": session.phase.value,
        "max_participants": session.max_participants,
        "version": session.version,
        "created_at": session.created_at.isoformat(),
        "updated_at": session.updated_at.isoformat(),
        "expires_at": session.expires_at.isoformat(),
        "participants": [_participant_payload(state, p) for p in state.participants],
        "direct_matches": list(state.direct_matches) if revealed else [],
        "has_results": state.result is not None,
    }
    viewer = state.participant(viewer_id) if viewer_id else None
    if viewer is not None:
        partner = state.partner_of(viewer.id)
        payload["my_selections"] = state.item_ids_for(viewer.id)
        payload["partner_selections"] = (
            state.item_ids_for(partner.id) if partner and revealed else []
        )
    return payload


def participant_ticket(participant: Participant) -> dict[str, object]:
    """Serialize the caller's participant; its ids form the session token."""
    return {
        "id": str(participant.id),
        "session_id": str(participant.session_id),
        "nickname": participant.nickname,
        "is_creator": participant.is_creator,
        "joined_at": participant.joined_at.isoformat(),
    }


def report_payload(report: ScoringReport) -> dict[str, object]:
    """Serialize a scoring report."""
    winner = report.winner
    return {
        "has_winner": winner is not None,
        "winner": winner.item_id if winner else None,
        "items": [_item_payload(item) for item in report.items],
        "excluded_item_ids": list(report.excluded_item_ids),
        "stats": {
            "items_evaluated": report.stats.items_evaluated,
            "items_passing_filter": report.stats.items_passing_filter,
            "mean_score": report.stats.mean_score,
            "direct_match_count": report.stats.direct_match_count,
            "items_excluded": report.stats.items_excluded,
        },
    }


def _participant_payload(
    state: SessionState, participant: Participant
) -> dict[str, object]:
    return {
        "id": str(participant.id),
        "nickname": participant.nickname,
        "is_creator": participant.is_creator,
        "joined_at": participant.joined_at.isoformat(),
        "has_selected": has_complete_selection(state, participant.id),
        "has_rated": has_complete_ratings(state, participant.id),
    }


def _item_payload(item: ItemScore) -> dict[str, object]:
    return {
        "item_id": item.item_id,
        "position": item.position,
        "total_score": item.total_score,
        "passed_gold_filter": item.passed_gold_filter,
        "verdict": item.verdict,
        "is_direct_match": item.is_direct_match,
        "self_rating": _breakdown_payload(item.self_rating),
        "cross_rating": _breakdown_payload(item.cross_rating),
    }


def _breakdown_payload(breakdown: RatingBreakdown) -> dict[str, float]:
    return {
        "q1": breakdown.q1,
        "q2": breakdown.q2,
        "q3": breakdown.q3,
        "total": breakdown.total,
    }
