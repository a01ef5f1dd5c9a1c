"""Deterministic multi-criteria scoring with the gold filter veto."""

import logging
from collections.abc import Iterable
from dataclasses import dataclass

from anime_match.domain.scoring import (
    ItemRatings,
    ItemScore,
    RatingBreakdown,
    ScoringReport,
    ScoringStats,
)

GOLD_FILTER_VETO_Q3 = 1
EXCELLENT_SCORE = 20
GOOD_SCORE = 15

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _Candidate:
    item_id: str
    self_rating: RatingBreakdown
    cross_rating: RatingBreakdown
    total_score: float
    passed_gold_filter: bool
    is_direct_match: bool


def score_items(items: Iterable[ItemRatings]) -> ScoringReport:
    """Rank items by combined self and cross ratings.

    Items where any rater answered the immediate-impulse question with the
    minimum value fail the gold filter: they stay in the report without a
    position and can never win. When every item fails, the report has no
    winner. Items missing either side are excluded and logged.

    The result depends only on the input values, never on input order.
    """
    candidates: list[_Candidate] = []
    excluded: list[str] = []
    for entry in _merge_duplicates(items):
        if not entry.self_ratings or not entry.cross_ratings:
            _logger.warning(
                "Inconsistent ratings for item %s: self=%s cross=%s; excluded",
                entry.item_id,
                len(entry.self_ratings),
                len(entry.cross_ratings),
            )
            excluded.append(entry.item_id)
            continue
        self_rating = _breakdown(entry.self_ratings)
        cross_rating = _breakdown(entry.cross_ratings)
        candidates.append(
            _Candidate(
                item_id=entry.item_id,
                self_rating=self_rating,
                cross_rating=cross_rating,
                total_score=self_rating.total + cross_rating.total,
                passed_gold_filter=min(self_rating.min_q3, cross_rating.min_q3)
                > GOLD_FILTER_VETO_Q3,
                is_direct_match=entry.is_direct_match,
            )
        )

    survivors = sorted((c for c in candidates if c.passed_gold_filter), key=_rank_key)
    vetoed = sorted((c for c in candidates if not c.passed_gold_filter), key=_rank_key)

    ranked = [_to_item_score(c, position) for position, c in enumerate(survivors, 1)]
    ranked.extend(_to_item_score(c, None) for c in vetoed)

    totals = [c.total_score for c in candidates]
    stats = ScoringStats(
        items_evaluated=len(candidates),
        items_passing_filter=len(survivors),
        mean_score=round(sum(totals) / len(totals), 2) if totals else 0.0,
        direct_match_count=sum(1 for c in candidates if c.is_direct_match),
        items_excluded=len(excluded),
    )
    if not survivors:
        _logger.info("No winner: all %s items vetoed by gold filter", len(candidates))
    return ScoringReport(
        items=tuple(ranked), stats=stats, excluded_item_ids=tuple(sorted(excluded))
    )


def verdict_for(total_score: float) -> str:
    """Return the display label for a combined score."""
    if total_score >= EXCELLENT_SCORE:
        return "excellent"
    if total_score >= GOOD_SCORE:
        return "good"
    return "fair"


def _merge_duplicates(items: Iterable[ItemRatings]) -> list[ItemRatings]:
    merged: dict[str, ItemRatings] = {}
    for entry in items:
        existing = merged.get(entry.item_id)
        if existing is None:
            merged[entry.item_id] = entry
            continue
        merged[entry.item_id] = ItemRatings(
            item_id=entry.item_id,
            self_ratings=existing.self_ratings + entry.self_ratings,
            cross_ratings=existing.cross_ratings + entry.cross_ratings,
            is_direct_match=existing.is_direct_match or entry.is_direct_match,
        )
    return [merged[item_id] for item_id in sorted(merged)]


def _breakdown(ratings: tuple[tuple[int, int, int], ...]) -> RatingBreakdown:
    count = len(ratings)
    q1 = sum(r[0] for r in ratings) / count
    q2 = sum(r[1] for r in ratings) / count
    q3 = sum(r[2] for r in ratings) / count
    return RatingBreakdown(
        q1=q1,
        q2=q2,
        q3=q3,
        total=q1 + q2 + q3,
        min_q3=min(r[2] for r in ratings),
    )


def _rank_key(candidate: _Candidate) -> tuple[float, float, float, str]:
    q1_sum = candidate.self_rating.q1 + candidate.cross_rating.q1
    q3_sum = candidate.self_rating.q3 + candidate.cross_rating.q3
    return (-candidate.total_score, -q1_sum, -q3_sum, candidate.item_id)


def _to_item_score(candidate: _Candidate, position: int | None) -> ItemScore:
    return ItemScore(
        item_id=candidate.item_id,
        self_rating=candidate.self_rating,
        cross_rating=candidate.cross_rating,
        total_score=candidate.total_score,
        passed_gold_filter=candidate.passed_gold_filter,
        position=position,
        verdict=verdict_for(candidate.total_score),
        is_direct_match=candidate.is_direct_match,
    )
