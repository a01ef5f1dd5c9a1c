"""Error taxonomy for session coordination."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from anime_match.domain.sessions import SessionState


class MatchError(Exception):
    """Base class for errors surfaced to callers."""

    kind = "error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFound(MatchError):
    """Session, participant or item is absent."""

    kind = "not_found"


class SessionExpired(NotFound):
    """Session exists but is past its expiry time."""

    kind = "expired"

    def __init__(self, message: str, state: SessionState | None = None) -> None:
        super().__init__(message)
        # Set only by the call that marked the session EXPIRED.
        self.state = state


class Full(MatchError):
    """Session already holds its maximum number of participants."""

    kind = "full"


class DuplicateNickname(MatchError):
    """Nickname is already taken inside the session."""

    kind = "duplicate_nickname"


class InvalidInput(MatchError):
    """Malformed caller input; retrying the same request cannot succeed."""

    kind = "invalid_input"


class AlreadySubmitted(InvalidInput):
    """A different value was already recorded for a write-once key."""

    kind = "already_submitted"


class Conflict(MatchError):
    """Request lost a race or does not fit the current session state."""

    kind = "conflict"


class VersionConflict(Conflict):
    """Stored session version moved since it was read."""

    kind = "version_conflict"


class WrongPhase(Conflict):
    """Operation is not allowed in the session's current status or phase."""

    kind = "wrong_phase"
