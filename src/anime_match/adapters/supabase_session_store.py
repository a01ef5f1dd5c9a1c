"""Supabase-backed session store.

Each session is one row. Writes are conditional updates filtered on the
``version`` column, so two writers racing on a session cannot both win.
The table is expected to carry a unique index on ``code``.
"""

import logging
from collections.abc import Callable
from dataclasses import asdict, dataclass
from datetime import datetime, timedelta
from uuid import UUID, uuid4

from postgrest.exceptions import APIError
from supabase import Client

from anime_match.domain.errors import (
    Conflict,
    DuplicateNickname,
    Full,
    NotFound,
    SessionExpired,
    VersionConflict,
)
from anime_match.domain.scoring import (
    ItemScore,
    RatingBreakdown,
    ScoringReport,
    ScoringStats,
)
from anime_match.domain.sessions import (
    Participant,
    Rating,
    RatingScores,
    Selection,
    Session,
    SessionPhase,
    SessionState,
    SessionStatus,
)
from anime_match.services.lifecycle import (
    add_participant,
    expire,
    is_expired,
    new_session,
)
from anime_match.services.store import (
    DEFAULT_SESSION_TTL,
    MAX_CODE_ATTEMPTS,
    Clock,
    SessionStore,
    bump_version,
    generate_code,
    is_live,
    nickname_taken,
    utc_now,
)

_TABLE = "match_sessions"
_COLUMNS = (
    "id, code, status, phase, max_participants, version, "
    "created_at, updated_at, expires_at, state_json"
)
_UNIQUE_VIOLATION = "23505"

_logger = logging.getLogger(__name__)


@dataclass
class SupabaseSessionStore(SessionStore):
    """Supabase implementation of the session store."""

    client: Client
    ttl: timedelta = DEFAULT_SESSION_TTL
    clock: Clock = utc_now
    code_generator: Callable[[], str] = generate_code
    max_code_attempts: int = MAX_CODE_ATTEMPTS

    def create(self, nickname: str) -> tuple[Session, Participant]:
        """Insert a session row under a code no live session holds."""
        now = self.clock()
        session_id = uuid4()
        creator = Participant(
            id=uuid4(),
            session_id=session_id,
            nickname=nickname,
            joined_at=now,
            is_creator=True,
        )
        for _ in range(self.max_code_attempts):
            code = self.code_generator()
            holder = self._fetch_one("code", code)
            if holder is not None and is_live(holder, now):
                _logger.debug("Join code collision on %s, regenerating", code)
                continue
            if holder is not None:
                self.client.table(_TABLE).delete().eq("id", str(holder.id)).execute()
            state = new_session(session_id, code, creator, now, self.ttl)
            try:
                self.client.table(_TABLE).insert(_state_to_row(state)).execute()
            except APIError as exc:
                if exc.code != _UNIQUE_VIOLATION:
                    raise
                _logger.info("Join code %s taken concurrently, regenerating", code)
                continue
            _logger.info("Created session %s code=%s", session_id, code)
            return state.session, creator
        raise Conflict("Could not allocate a unique session code")

    def join(self, code: str, nickname: str) -> tuple[Session, Participant]:
        """Append a participant with a version-guarded update."""
        state = self._fetch_one("code", code.upper())
        if state is None:
            raise NotFound("No session with that code")
        state = self._ensure_live(state)
        if state.is_full:
            raise Full("Session is full")
        if nickname_taken(state, nickname):
            raise DuplicateNickname("Nickname already in use in this session")
        now = self.clock()
        participant = Participant(
            id=uuid4(), session_id=state.id, nickname=nickname, joined_at=now
        )
        stored = self._compare_and_swap(add_participant(state, participant, now))
        _logger.info(
            "Participant %s joined session %s status=%s",
            participant.id,
            state.id,
            stored.session.status,
        )
        return stored.session, participant

    def get(self, session_id: UUID) -> SessionState:
        """Return a live session by id."""
        state = self._fetch_one("id", str(session_id))
        if state is None:
            raise NotFound("Session not found")
        return self._ensure_live(state)

    def get_by_code(self, code: str) -> SessionState:
        """Return the live session for a code."""
        state = self._fetch_one("code", code.upper())
        if state is None:
            raise NotFound("No session with that code")
        return self._ensure_live(state)

    def save(self, state: SessionState) -> SessionState:
        """Write a state if the stored version still matches."""
        if is_expired(state, self.clock()):
            self._ensure_live(state)
        return self._compare_and_swap(state)

    def list_sessions(self, limit: int) -> list[SessionState]:
        """Return the most recently created sessions."""
        response = (
            self.client.table(_TABLE)
            .select(_COLUMNS)
            .order("created_at", desc=True)
            .limit(limit)
            .execute()
        )
        return [_row_to_state(row) for row in response.data or []]

    def purge_expired(self) -> list[UUID]:
        """Delete rows past their expiry time."""
        response = (
            self.client.table(_TABLE)
            .delete()
            .lt("expires_at", self.clock().isoformat())
            .execute()
        )
        removed = [UUID(str(row["id"])) for row in response.data or []]
        if removed:
            _logger.info("Purged %s expired sessions", len(removed))
        return removed

    def _fetch_one(self, column: str, value: str) -> SessionState | None:
        response = (
            self.client.table(_TABLE)
            .select(_COLUMNS)
            .eq(column, value)
            .order("created_at", desc=True)
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return _row_to_state(response.data[0])

    def _ensure_live(self, state: SessionState) -> SessionState:
        now = self.clock()
        if is_live(state, now):
            return state
        expired = expire(state, now)
        if expired is state:
            raise SessionExpired("Session has expired")
        try:
            stored = self._compare_and_swap(expired)
        except VersionConflict:
            # A concurrent writer moved the row; it is past expiry either way.
            _logger.debug("Session %s expiry write lost a race", state.id)
            raise SessionExpired("Session has expired") from None
        _logger.info("Session %s expired", state.id)
        raise SessionExpired("Session has expired", state=stored)

    def _compare_and_swap(self, state: SessionState) -> SessionState:
        stored = bump_version(state, self.clock())
        response = (
            self.client.table(_TABLE)
            .update(_state_to_row(stored))
            .eq("id", str(state.id))
            .eq("version", state.session.version)
            .execute()
        )
        if not response.data:
            raise VersionConflict(
                f"Session {state.id} changed (expected v{state.session.version})"
            )
        return stored


def _state_to_row(state: SessionState) -> dict[str, object]:
    session = state.session
    return {
        "id": str(session.id),
        "code": session.code,
        "status": session.status.value,
        "phase": session.phase.value,
        "max_participants": session.max_participants,
        "version": session.version,
        "created_at": session.created_at.isoformat(),
        "updated_at": session.updated_at.isoformat(),
        "expires_at": session.expires_at.isoformat(),
        "state_json": {
            "participants": [
                {
                    "id": str(p.id),
                    "nickname": p.nickname,
                    "joined_at": p.joined_at.isoformat(),
                    "is_creator": p.is_creator,
                }
                for p in state.participants
            ],
            "selections": [
                {
                    "participant_id": str(s.participant_id),
                    "item_id": s.item_id,
                    "order_num": s.order_num,
                }
                for s in state.selections
            ],
            "ratings": [
                {
                    "participant_id": str(r.participant_id),
                    "item_id": r.item_id,
                    "q1": r.scores.q1,
                    "q2": r.scores.q2,
                    "q3": r.scores.q3,
                    "is_self_rating": r.is_self_rating,
                }
                for r in state.ratings
            ],
            "direct_matches": list(state.direct_matches),
            "result": asdict(state.result) if state.result else None,
        },
    }


def _row_to_state(row: dict[str, object]) -> SessionState:
    session_id = UUID(str(row["id"]))
    context = row.get("state_json") or {}
    session = Session(
        id=session_id,
        code=str(row["code"]),
        status=SessionStatus(row["status"]),
        phase=SessionPhase(row["phase"]),
        created_at=_parse_datetime(row["created_at"]),
        updated_at=_parse_datetime(row["updated_at"]),
        expires_at=_parse_datetime(row["expires_at"]),
        max_participants=int(row["max_participants"]),
        version=int(row["version"]),
    )
    participants = tuple(
        Participant(
            id=UUID(p["id"]),
            session_id=session_id,
            nickname=p["nickname"],
            joined_at=_parse_datetime(p["joined_at"]),
            is_creator=bool(p.get("is_creator", False)),
        )
        for p in context.get("participants", [])
    )
    selections = tuple(
        Selection(
            session_id=session_id,
            participant_id=UUID(s["participant_id"]),
            item_id=s["item_id"],
            order_num=int(s["order_num"]),
        )
        for s in context.get("selections", [])
    )
    ratings = tuple(
        Rating(
            session_id=session_id,
            participant_id=UUID(r["participant_id"]),
            item_id=r["item_id"],
            scores=RatingScores(q1=int(r["q1"]), q2=int(r["q2"]), q3=int(r["q3"])),
            is_self_rating=bool(r["is_self_rating"]),
        )
        for r in context.get("ratings", [])
    )
    result = context.get("result")
    return SessionState(
        session=session,
        participants=participants,
        selections=selections,
        ratings=ratings,
        direct_matches=tuple(context.get("direct_matches", [])),
        result=_parse_report(result) if result else None,
    )


def _parse_report(data: dict[str, object]) -> ScoringReport:
    return ScoringReport(
        items=tuple(
            ItemScore(
                item_id=item["item_id"],
                self_rating=RatingBreakdown(**item["self_rating"]),
                cross_rating=RatingBreakdown(**item["cross_rating"]),
                total_score=item["total_score"],
                passed_gold_filter=item["passed_gold_filter"],
                position=item["position"],
                verdict=item["verdict"],
                is_direct_match=item.get("is_direct_match", False),
            )
            for item in data["items"]
        ),
        stats=ScoringStats(**data["stats"]),
        excluded_item_ids=tuple(data.get("excluded_item_ids", [])),
    )


def _parse_datetime(value: object) -> datetime:
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value))
