"""Boundary validation for caller input."""

import re

from anime_match.domain.errors import InvalidInput
from anime_match.domain.sessions import (
    CODE_LENGTH,
    NICKNAME_MAX_LENGTH,
    NICKNAME_MIN_LENGTH,
    RATING_MAX,
    RATING_MIN,
    SELECTION_COUNT,
    RatingScores,
)

_CODE_PATTERN = re.compile(rf"^[A-Z0-9]{{{CODE_LENGTH}}}$")
_NICKNAME_PATTERN = re.compile(r"^[\w .\-]+$")


def normalize_code(raw: str) -> str:
    """Uppercase a join code and check its shape."""
    code = raw.strip().upper()
    if not _CODE_PATTERN.match(code):
        raise InvalidInput(f"Join code must be {CODE_LENGTH} letters or digits")
    return code


def normalize_nickname(raw: str) -> str:
    """Trim a nickname and check its length and characters."""
    nickname = raw.strip()
    if not NICKNAME_MIN_LENGTH <= len(nickname) <= NICKNAME_MAX_LENGTH:
        raise InvalidInput(
            f"Nickname must be {NICKNAME_MIN_LENGTH}-{NICKNAME_MAX_LENGTH} characters"
        )
    if not _NICKNAME_PATTERN.match(nickname):
        raise InvalidInput(
            "Nickname may only contain letters, digits, spaces, '.', '_' and '-'"
        )
    return nickname


def validate_selection(item_ids: list[str]) -> list[str]:
    """Return cleaned item ids for a selection of exactly three distinct items."""
    cleaned = [item_id.strip() for item_id in item_ids]
    if any(not item_id for item_id in cleaned):
        raise InvalidInput("Item ids must not be empty")
    if len(cleaned) != SELECTION_COUNT:
        raise InvalidInput(f"Select exactly {SELECTION_COUNT} items")
    if len(set(cleaned)) != len(cleaned):
        raise InvalidInput("Selected items must be distinct")
    return cleaned


def validate_scores(q1: object, q2: object, q3: object) -> RatingScores:
    """Check that each answer is an integer in the rating scale."""
    values = (q1, q2, q3)
    for value in values:
        # bool is an int subclass but never a valid answer
        if isinstance(value, bool) or not isinstance(value, int):
            raise InvalidInput("Ratings must be integers")
        if not RATING_MIN <= value <= RATING_MAX:
            raise InvalidInput(f"Ratings must be between {RATING_MIN} and {RATING_MAX}")
    return RatingScores(q1=q1, q2=q2, q3=q3)  # type: ignore[arg-type]
