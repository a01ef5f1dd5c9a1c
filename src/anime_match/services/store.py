"""Session store interface and the in-memory implementation."""

import logging
import secrets
import threading
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime, timedelta
from typing import Protocol
from uuid import UUID, uuid4

from anime_match.domain.errors import (
    Conflict,
    DuplicateNickname,
    Full,
    NotFound,
    SessionExpired,
    VersionConflict,
)
from anime_match.domain.sessions import (
    CODE_ALPHABET,
    CODE_LENGTH,
    Participant,
    Session,
    SessionState,
    SessionStatus,
)
from anime_match.services.lifecycle import (
    add_participant,
    expire,
    is_expired,
    new_session,
)

DEFAULT_SESSION_TTL = timedelta(hours=24)
MAX_CODE_ATTEMPTS = 20

Clock = Callable[[], datetime]

_logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    """Return the current time in UTC."""
    return datetime.now(tz=UTC)


def generate_code() -> str:
    """Return a random join code."""
    return "".join(secrets.choice(CODE_ALPHABET) for _ in range(CODE_LENGTH))


def nickname_taken(state: SessionState, nickname: str) -> bool:
    """Return True if the nickname collides case-insensitively."""
    folded = nickname.casefold()
    return any(p.nickname.casefold() == folded for p in state.participants)


def is_live(state: SessionState, now: datetime) -> bool:
    """Return True while a session can still be read."""
    return state.session.status != SessionStatus.EXPIRED and not is_expired(
        state, now
    )


def bump_version(state: SessionState, now: datetime) -> SessionState:
    """Return the state as it is stored after a successful write."""
    session = replace(
        state.session, version=state.session.version + 1, updated_at=now
    )
    return replace(state, session=session)


class SessionStore(Protocol):
    """Authoritative storage for session state."""

    def create(self, nickname: str) -> tuple[Session, Participant]:
        """Create a WAITING session with its creator and a unique code."""

    def join(self, code: str, nickname: str) -> tuple[Session, Participant]:
        """Add a participant, activating the session when it becomes full."""

    def get(self, session_id: UUID) -> SessionState:
        """Return a live session or raise NotFound."""

    def get_by_code(self, code: str) -> SessionState:
        """Return the live session holding a join code or raise NotFound."""

    def save(self, state: SessionState) -> SessionState:
        """Persist a state if its version is still current."""

    def list_sessions(self, limit: int) -> list[SessionState]:
        """Return recent sessions, including expired ones."""

    def purge_expired(self) -> list[UUID]:
        """Drop sessions past their expiry and return their ids."""


@dataclass
class InMemorySessionStore(SessionStore):
    """Process-local store guarded by one lock per session.

    The registry lock only protects the code index while a session is
    created or evicted; reads and writes of different sessions never
    contend with each other.
    """

    ttl: timedelta = DEFAULT_SESSION_TTL
    clock: Clock = utc_now
    code_generator: Callable[[], str] = generate_code
    max_code_attempts: int = MAX_CODE_ATTEMPTS
    _states: dict[UUID, SessionState] = field(default_factory=dict, init=False)
    _codes: dict[str, UUID] = field(default_factory=dict, init=False)
    _locks: dict[UUID, threading.Lock] = field(default_factory=dict, init=False)
    _registry_lock: threading.Lock = field(
        default_factory=threading.Lock, init=False
    )

    def create(self, nickname: str) -> tuple[Session, Participant]:
        """Create a session and register its code."""
        now = self.clock()
        session_id = uuid4()
        creator = Participant(
            id=uuid4(),
            session_id=session_id,
            nickname=nickname,
            joined_at=now,
            is_creator=True,
        )
        with self._registry_lock:
            code = self._allocate_code(now)
            state = new_session(session_id, code, creator, now, self.ttl)
            self._locks[session_id] = threading.Lock()
            self._states[session_id] = state
            self._codes[code] = session_id
        _logger.info("Created session %s code=%s", session_id, code)
        return state.session, creator

    def join(self, code: str, nickname: str) -> tuple[Session, Participant]:
        """Join by code; the capacity check and append share one lock."""
        session_id = self._codes.get(code.upper())
        if session_id is None:
            raise NotFound("No session with that code")
        with self._lock_for(session_id):
            state = self._load_live(session_id)
            if state.is_full:
                raise Full("Session is full")
            if nickname_taken(state, nickname):
                raise DuplicateNickname("Nickname already in use in this session")
            now = self.clock()
            participant = Participant(
                id=uuid4(), session_id=session_id, nickname=nickname, joined_at=now
            )
            stored = bump_version(add_participant(state, participant, now), now)
            self._states[session_id] = stored
        _logger.info(
            "Participant %s joined session %s status=%s",
            participant.id,
            session_id,
            stored.session.status,
        )
        return stored.session, participant

    def get(self, session_id: UUID) -> SessionState:
        """Return a live session."""
        with self._lock_for(session_id):
            return self._load_live(session_id)

    def get_by_code(self, code: str) -> SessionState:
        """Return the live session for a code."""
        session_id = self._codes.get(code.upper())
        if session_id is None:
            raise NotFound("No session with that code")
        return self.get(session_id)

    def save(self, state: SessionState) -> SessionState:
        """Compare-and-swap on the session version."""
        session_id = state.session.id
        with self._lock_for(session_id):
            current = self._load_live(session_id)
            if current.session.version != state.session.version:
                raise VersionConflict(
                    f"Session {session_id} changed "
                    f"(expected v{state.session.version}, "
                    f"found v{current.session.version})"
                )
            stored = bump_version(state, self.clock())
            self._states[session_id] = stored
            return stored

    def list_sessions(self, limit: int) -> list[SessionState]:
        """Return the most recently created sessions."""
        with self._registry_lock:
            snapshot = list(self._states.values())
        states = sorted(
            snapshot,
            key=lambda s: s.session.created_at,
            reverse=True,
        )
        return states[:limit]

    def purge_expired(self) -> list[UUID]:
        """Evict every session past its expiry time."""
        now = self.clock()
        with self._registry_lock:
            stale = [
                session_id
                for session_id, state in self._states.items()
                if is_expired(state, now)
            ]
            for session_id in stale:
                self._evict(session_id)
        if stale:
            _logger.info("Purged %s expired sessions", len(stale))
        return stale

    def _lock_for(self, session_id: UUID) -> threading.Lock:
        lock = self._locks.get(session_id)
        if lock is None:
            raise NotFound("Session not found")
        return lock

    def _load_live(self, session_id: UUID) -> SessionState:
        # Caller holds the session lock.
        state = self._states.get(session_id)
        if state is None:
            raise NotFound("Session not found")
        now = self.clock()
        if is_live(state, now):
            return state
        expired = expire(state, now)
        if expired is state:
            raise SessionExpired("Session has expired")
        stored = bump_version(expired, now)
        self._states[session_id] = stored
        _logger.info("Session %s expired", session_id)
        raise SessionExpired("Session has expired", state=stored)

    def _allocate_code(self, now: datetime) -> str:
        # Caller holds the registry lock.
        for _ in range(self.max_code_attempts):
            code = self.code_generator()
            holder_id = self._codes.get(code)
            if holder_id is None:
                return code
            holder = self._states.get(holder_id)
            if holder is None or not is_live(holder, now):
                self._evict(holder_id)
                return code
            _logger.debug("Join code collision on %s, regenerating", code)
        raise Conflict("Could not allocate a unique session code")

    def _evict(self, session_id: UUID) -> None:
        # Caller holds the registry lock. Taking the session lock as well
        # keeps an in-flight join or save from writing the state back.
        lock = self._locks.get(session_id)
        if lock is None:
            state = self._states.pop(session_id, None)
        else:
            with lock:
                state = self._states.pop(session_id, None)
                self._locks.pop(session_id, None)
        if state is not None and self._codes.get(state.session.code) == session_id:
            self._codes.pop(state.session.code, None)
