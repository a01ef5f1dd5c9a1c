"""Session lifecycle state machine.

Transitions are pure functions from one ``SessionState`` to the next. A
transition whose target is already reached returns the state unchanged, so
replaying a trigger is harmless. Stores persist the returned state in one
write, which keeps every transition all-or-nothing.
"""

from dataclasses import replace
from datetime import datetime, timedelta
from uuid import UUID

from anime_match.domain.errors import WrongPhase
from anime_match.domain.scoring import ScoringReport
from anime_match.domain.sessions import (
    MAX_PARTICIPANTS,
    PHASE_ORDER,
    TERMINAL_STATUSES,
    Participant,
    Session,
    SessionPhase,
    SessionState,
    SessionStatus,
)


def new_session(
    session_id: UUID,
    code: str,
    creator: Participant,
    now: datetime,
    ttl: timedelta,
) -> SessionState:
    """Build the initial WAITING/SELECTION state for a new session."""
    session = Session(
        id=session_id,
        code=code,
        status=SessionStatus.WAITING,
        phase=SessionPhase.SELECTION,
        created_at=now,
        updated_at=now,
        expires_at=now + ttl,
        max_participants=MAX_PARTICIPANTS,
    )
    return SessionState(session=session, participants=(creator,))


def add_participant(
    state: SessionState, participant: Participant, now: datetime
) -> SessionState:
    """Append a participant and activate the session once it is full."""
    if state.session.status != SessionStatus.WAITING:
        raise WrongPhase("Session is no longer accepting participants")
    participants = (*state.participants, participant)
    status = state.session.status
    if len(participants) >= state.session.max_participants:
        status = SessionStatus.ACTIVE
    session = replace(state.session, status=status, updated_at=now)
    return replace(state, session=session, participants=participants)


def advance_phase(
    state: SessionState, target: SessionPhase, now: datetime
) -> SessionState:
    """Move an active session one phase forward to ``target``."""
    current_index = PHASE_ORDER.index(state.session.phase)
    target_index = PHASE_ORDER.index(target)
    if target_index <= current_index:
        return state
    if state.session.status != SessionStatus.ACTIVE:
        raise WrongPhase(
            f"Cannot enter {target} while session is {state.session.status}"
        )
    if target_index != current_index + 1:
        raise WrongPhase(f"Cannot skip from {state.session.phase} to {target}")
    session = replace(state.session, phase=target, updated_at=now)
    return replace(state, session=session)


def record_direct_matches(
    state: SessionState, item_ids: list[str], now: datetime
) -> SessionState:
    """Store matching analysis output while in MATCHING."""
    require_phase(state, SessionPhase.MATCHING)
    session = replace(state.session, updated_at=now)
    return replace(state, session=session, direct_matches=tuple(sorted(item_ids)))


def complete(state: SessionState, report: ScoringReport, now: datetime) -> SessionState:
    """Store the scoring report and close the session."""
    if state.session.status == SessionStatus.COMPLETED:
        return state
    require_phase(state, SessionPhase.RESULTS)
    session = replace(state.session, status=SessionStatus.COMPLETED, updated_at=now)
    return replace(state, session=session, result=report)


def expire(state: SessionState, now: datetime) -> SessionState:
    """Mark a non-terminal session as expired."""
    if state.session.status in TERMINAL_STATUSES:
        return state
    session = replace(state.session, status=SessionStatus.EXPIRED, updated_at=now)
    return replace(state, session=session)


def is_expired(state: SessionState, now: datetime) -> bool:
    """Return True once the session is past its expiry time."""
    return now > state.session.expires_at


def refresh_expiry(state: SessionState, now: datetime) -> SessionState:
    """Apply the lazy expiry check."""
    if is_expired(state, now):
        return expire(state, now)
    return state


def require_phase(state: SessionState, phase: SessionPhase) -> None:
    """Raise unless the session is ACTIVE in ``phase``."""
    session = state.session
    if session.status != SessionStatus.ACTIVE or session.phase != phase:
        raise WrongPhase(
            f"Session is {session.status}/{session.phase}, expected ACTIVE/{phase}"
        )
