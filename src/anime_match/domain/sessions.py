"""Domain models for two-participant match sessions."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from uuid import UUID

from anime_match.domain.scoring import ScoringReport

MAX_PARTICIPANTS = 2
SELECTION_COUNT = 3
RATING_MIN = 1
RATING_MAX = 4
CODE_LENGTH = 6
CODE_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"
NICKNAME_MIN_LENGTH = 2
NICKNAME_MAX_LENGTH = 20


class SessionStatus(StrEnum):
    """Coarse session status."""

    WAITING = "WAITING"
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"
    EXPIRED = "EXPIRED"


class SessionPhase(StrEnum):
    """Game phase inside an active session."""

    SELECTION = "SELECTION"
    MATCHING = "MATCHING"
    RATING = "RATING"
    RESULTS = "RESULTS"


PHASE_ORDER: tuple[SessionPhase, ...] = (
    SessionPhase.SELECTION,
    SessionPhase.MATCHING,
    SessionPhase.RATING,
    SessionPhase.RESULTS,
)
TERMINAL_STATUSES = frozenset({SessionStatus.COMPLETED, SessionStatus.EXPIRED})


@dataclass(frozen=True)
class Session:
    """Session header owned by the session store."""

    id: UUID
    code: str
    status: SessionStatus
    phase: SessionPhase
    created_at: datetime
    updated_at: datetime
    expires_at: datetime
    max_participants: int = MAX_PARTICIPANTS
    version: int = 0


@dataclass(frozen=True)
class Participant:
    """One of the two people in a session."""

    id: UUID
    session_id: UUID
    nickname: str
    joined_at: datetime
    is_creator: bool = False


@dataclass(frozen=True)
class Selection:
    """An item picked by a participant during selection."""

    session_id: UUID
    participant_id: UUID
    item_id: str
    order_num: int


@dataclass(frozen=True)
class RatingScores:
    """Answers to the three rating questions, each in [1, 4].

    q1 is story potential, q2 mood alignment and q3 the immediate
    viewing impulse.
    """

    q1: int
    q2: int
    q3: int

    @property
    def total(self) -> int:
        return self.q1 + self.q2 + self.q3


@dataclass(frozen=True)
class Rating:
    """A participant's rating of one item, either self or cross."""

    session_id: UUID
    participant_id: UUID
    item_id: str
    scores: RatingScores
    is_self_rating: bool


@dataclass(frozen=True)
class SessionState:
    """Everything the store keeps for one session."""

    session: Session
    participants: tuple[Participant, ...] = ()
    selections: tuple[Selection, ...] = ()
    ratings: tuple[Rating, ...] = ()
    direct_matches: tuple[str, ...] = ()
    result: ScoringReport | None = None

    @property
    def id(self) -> UUID:
        return self.session.id

    @property
    def is_full(self) -> bool:
        return len(self.participants) >= self.session.max_participants

    def participant(self, participant_id: UUID) -> Participant | None:
        for participant in self.participants:
            if participant.id == participant_id:
                return participant
        return None

    def partner_of(self, participant_id: UUID) -> Participant | None:
        for participant in self.participants:
            if participant.id != participant_id:
                return participant
        return None

    def selections_for(self, participant_id: UUID) -> list[Selection]:
        picks = [s for s in self.selections if s.participant_id == participant_id]
        return sorted(picks, key=lambda s: s.order_num)

    def item_ids_for(self, participant_id: UUID) -> list[str]:
        return [s.item_id for s in self.selections_for(participant_id)]

    def ratings_for(
        self, participant_id: UUID, *, is_self_rating: bool
    ) -> list[Rating]:
        return [
            r
            for r in self.ratings
            if r.participant_id == participant_id
            and r.is_self_rating == is_self_rating
        ]


@dataclass(frozen=True)
class SessionEvent:
    """Snapshot emitted whenever a session changes."""

    session_id: UUID
    code: str
    status: SessionStatus
    phase: SessionPhase
    version: int
    participant_count: int
    occurred_at: datetime
    direct_matches: tuple[str, ...] = field(default_factory=tuple)

    @classmethod
    def from_state(cls, state: SessionState, occurred_at: datetime) -> "SessionEvent":
        """Build an event snapshot from a session state."""
        return cls(
            session_id=state.session.id,
            code=state.session.code,
            status=state.session.status,
            phase=state.session.phase,
            version=state.session.version,
            participant_count=len(state.participants),
            occurred_at=occurred_at,
            direct_matches=state.direct_matches,
        )

    def to_payload(self) -> dict[str, object]:
        """Serialize the event for JSON transports."""
        return {
            "session_id": str(self.session_id),
            "code": self.code,
            "status": self.status.value,
            "phase": self.phase.value,
            "version": self.version,
            "participant_count": self.participant_count,
            "direct_matches": list(self.direct_matches),
            "occurred_at": self.occurred_at.isoformat(),
        }
