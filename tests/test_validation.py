"""Tests for input validation."""

import pytest

from anime_match.domain.errors import InvalidInput
from anime_match.domain.sessions import RatingScores
from anime_match.services.validation import (
    normalize_code,
    normalize_nickname,
    validate_scores,
    validate_selection,
)


def test_normalize_code_uppercases() -> None:
    assert normalize_code(" ab12cd ") == "AB12CD"


@pytest.mark.parametrize("raw", ["", "ABC12", "ABC1234", "ABC-12"])
def test_normalize_code_rejects_bad_shapes(raw: str) -> None:
    with pytest.raises(InvalidInput):
        normalize_code(raw)


def test_normalize_nickname_trims() -> None:
    assert normalize_nickname("  Sakura_99 ") == "Sakura_99"


@pytest.mark.parametrize("raw", ["A", " ", "x" * 21, "<script>"])
def test_normalize_nickname_rejects(raw: str) -> None:
    with pytest.raises(InvalidInput):
        normalize_nickname(raw)


def test_validate_selection_strips_ids() -> None:
    assert validate_selection([" 1", "2 ", "3"]) == ["1", "2", "3"]


@pytest.mark.parametrize(
    "item_ids",
    [[], ["1", "2"], ["1", "2", "3", "4"], ["1", "1", "2"], ["1", "", "2"]],
)
def test_validate_selection_rejects(item_ids: list[str]) -> None:
    with pytest.raises(InvalidInput):
        validate_selection(item_ids)


def test_validate_scores_returns_scores() -> None:
    scores = validate_scores(4, 4, 3)

    assert scores == RatingScores(q1=4, q2=4, q3=3)
    assert scores.total == 11


@pytest.mark.parametrize(
    "values", [(0, 2, 2), (2, 5, 2), (2, 2, "3"), (2, 2.5, 2), (True, 2, 2)]
)
def test_validate_scores_rejects(values: tuple[object, object, object]) -> None:
    with pytest.raises(InvalidInput):
        validate_scores(*values)
