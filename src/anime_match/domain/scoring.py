"""Domain models for scoring results."""

from dataclasses import dataclass


@dataclass(frozen=True)
class RatingBreakdown:
    """Per-question scores for one side of an item.

    Direct matches are rated by both participants from both sides, so the
    values are means and may be fractional.
    """

    q1: float
    q2: float
    q3: float
    total: float
    min_q3: int


@dataclass(frozen=True)
class ItemRatings:
    """Scoring input for a single item."""

    item_id: str
    self_ratings: tuple[tuple[int, int, int], ...]
    cross_ratings: tuple[tuple[int, int, int], ...]
    is_direct_match: bool = False


@dataclass(frozen=True)
class ItemScore:
    """Scored item in a results report."""

    item_id: str
    self_rating: RatingBreakdown
    cross_rating: RatingBreakdown
    total_score: float
    passed_gold_filter: bool
    position: int | None
    verdict: str
    is_direct_match: bool = False


@dataclass(frozen=True)
class ScoringStats:
    """Aggregate numbers for a results report."""

    items_evaluated: int
    items_passing_filter: int
    mean_score: float
    direct_match_count: int
    items_excluded: int = 0


@dataclass(frozen=True)
class ScoringReport:
    """Ranked outcome of a session."""

    items: tuple[ItemScore, ...]
    stats: ScoringStats
    excluded_item_ids: tuple[str, ...] = ()

    @property
    def winner(self) -> ItemScore | None:
        for item in self.items:
            if item.position == 1:
                return item
        return None

    @property
    def has_winner(self) -> bool:
        return self.winner is not None
