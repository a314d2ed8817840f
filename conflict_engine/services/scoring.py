"""Combine competing events, overlap and date multipliers into one score."""

from __future__ import annotations

import logging
from datetime import date
from typing import Dict, List, Optional, Sequence, Tuple

from ..config import MAX_COMPARISONS
from ..models import (
    RISK_LEVELS,
    ConflictScore,
    Event,
    EventContribution,
    HolidayImpact,
    OverlapPrediction,
    SeasonalMultiplier,
)
from ..taxonomy import category_conflict_level
from ..utils.datetime_utils import days_between_spans

logger = logging.getLogger(__name__)

SCORE_CAP: float = 20.0

BASE_EVENT_POINTS: float = 3.0
CATEGORY_CONFLICT_POINTS: Dict[str, float] = {
    "exact": 10.0,
    "high": 8.0,
    "medium": 4.0,
    "low": 1.0,
    "none": 0.0,
}
VENUE_POINTS: float = 4.0
IMAGE_POINTS: float = 2.0
DESCRIPTION_POINTS: float = 1.0
LARGE_EVENT_POINTS: float = 2.0
LARGE_EVENT_ATTENDEES: int = 500
OVERFLOW_EVENT_POINTS: float = 2.0

# (max days between, weight); first matching row wins
PROXIMITY_WEIGHTS: Tuple[Tuple[int, float], ...] = (
    (0, 1.0),
    (3, 0.6),
    (7, 0.3),
)
FAR_EVENT_WEIGHT: float = 0.1

LOW_RISK_MAX: float = 5.0
MEDIUM_RISK_MAX: float = 12.0
DOMINANT_SHARE: float = 0.25


def significance(event: Event) -> float:
    """Proxy for how real and promoted a competing event is."""
    value = 10.0
    if event.venue:
        value += 20
    if event.has_image:
        value += 15
    if event.has_description:
        value += 10
    if event.expected_attendees and event.expected_attendees > 100:
        value += min(event.expected_attendees / 10, 25)
    return value


def attendee_multiplier(expected_attendees: Optional[int]) -> float:
    if expected_attendees and expected_attendees > 10_000:
        return 1.1
    if expected_attendees and expected_attendees > 1_000:
        return 1.05
    return 1.0


def proximity_weight(planned: Event, competing: Event) -> float:
    """Scale for how far a competitor sits from the planned dates; undated events count fully."""
    if planned.date is None or competing.date is None:
        return 1.0
    gap = days_between_spans(planned.date, planned.end_date, competing.date, competing.end_date)
    for limit, weight in PROXIMITY_WEIGHTS:
        if gap <= limit:
            return weight
    return FAR_EVENT_WEIGHT


def classify_risk(score: float) -> str:
    """Monotonic Low/Medium/High ladder on the final score."""
    low, medium, high = RISK_LEVELS
    if score <= LOW_RISK_MAX:
        return low
    if score <= MEDIUM_RISK_MAX:
        return medium
    return high


def rank_by_significance(events: Sequence[Event]) -> List[Event]:
    """Stable descending sort; ties keep their input order."""
    return sorted(events, key=significance, reverse=True)


class ConflictScorer:
    """Score one candidate date.

    Parameters
    ----------
    max_comparisons
        Competing events beyond this many (by significance) add a flat
        amount instead of being fully scored.
    advanced
        Deep mode: large competing events earn an extra bonus.
    """

    def __init__(self, max_comparisons: int = MAX_COMPARISONS, *, advanced: bool = False) -> None:
        self.max_comparisons = max_comparisons
        self.advanced = advanced

    def event_points(self, planned: Event, competing: Event, overlap: Optional[OverlapPrediction]) -> float:
        points = BASE_EVENT_POINTS
        points += CATEGORY_CONFLICT_POINTS[category_conflict_level(planned.category, competing.category)]
        if competing.venue:
            points += VENUE_POINTS
        if competing.has_image:
            points += IMAGE_POINTS
        if competing.has_description:
            points += DESCRIPTION_POINTS
        if self.advanced and (competing.expected_attendees or 0) > LARGE_EVENT_ATTENDEES:
            points += LARGE_EVENT_POINTS
        if overlap is not None:
            points *= 0.5 + overlap.overlap_score
        points *= proximity_weight(planned, competing)
        return min(SCORE_CAP, points)

    def score(
        self,
        day: date,
        planned: Event,
        competing: Sequence[Event],
        overlap_predictions: Dict[str, OverlapPrediction],
        seasonal: SeasonalMultiplier,
        holiday: HolidayImpact,
    ) -> ConflictScore:
        if not competing:
            return ConflictScore(
                score=0.0,
                risk_level=classify_risk(0.0),
                reasons=("No significant conflicts detected",),
            )

        ranked = rank_by_significance(competing)
        contributions: List[EventContribution] = []
        for index, event in enumerate(ranked):
            weight = significance(event)
            if index < self.max_comparisons:
                points = self.event_points(planned, event, overlap_predictions.get(event.id))
                contributions.append(EventContribution(event.id, event.title, round(points, 3), weight))
            else:
                contributions.append(
                    EventContribution(event.id, event.title, OVERFLOW_EVENT_POINTS, weight, fully_scored=False)
                )

        raw_total = sum(c.points for c in contributions)
        total = min(SCORE_CAP, raw_total * attendee_multiplier(planned.expected_attendees))
        final = min(SCORE_CAP, total * seasonal.multiplier * holiday.multiplier)
        final = round(max(0.0, final), 2)
        risk = classify_risk(final)

        reasons = self._reasons(ranked, contributions, raw_total, seasonal, holiday)
        logger.debug(
            "Scored %s: %d competitors, base %.2f, seasonal %.2f, holiday %.2f → %.2f (%s)",
            day,
            len(competing),
            total,
            seasonal.multiplier,
            holiday.multiplier,
            final,
            risk,
        )
        return ConflictScore(score=final, risk_level=risk, reasons=tuple(reasons), contributions=tuple(contributions))

    def _reasons(
        self,
        ranked: List[Event],
        contributions: List[EventContribution],
        raw_total: float,
        seasonal: SeasonalMultiplier,
        holiday: HolidayImpact,
    ) -> List[str]:
        reasons: List[str] = []
        for event, contribution in zip(ranked, contributions):
            share = contribution.points / raw_total if raw_total else 0.0
            if contribution.fully_scored and share >= DOMINANT_SHARE:
                reasons.append(_dominant_reason(event, share))

        for conflict in holiday.affected_holidays:
            if conflict.severity in ("high", "critical"):
                reasons.append(
                    f"{conflict.holiday_name} ({conflict.holiday_type}) - "
                    f"{conflict.impact_multiplier:.1f}x {conflict.severity} holiday impact"
                )

        if seasonal.demand_level in ("high", "very_high"):
            detail = f": {seasonal.reasoning[0]}" if seasonal.reasoning else ""
            reasons.append(
                f"{seasonal.demand_level.replace('_', ' ').capitalize()} seasonal demand "
                f"({seasonal.multiplier:.1f}x){detail}"
            )

        if not reasons:
            reasons.append(f"Low competition from {len(ranked)} competing event(s)")
        return reasons


def _dominant_reason(event: Event, share: float) -> str:
    when = event.date.isoformat() if event.date else "unknown date"
    venue = f" at {event.venue}" if event.venue else ""
    attendees = f", {event.expected_attendees:,} expected attendees" if event.expected_attendees else ""
    return f"{event.title} ({event.category}) on {when}{venue}{attendees} - {share:.0%} of conflict"


def overlap_summary_stats(predictions: Dict[str, OverlapPrediction]) -> Tuple[float, float, int]:
    scores = [p.overlap_score for p in predictions.values()]
    if not scores:
        return 0.0, 0.0, 0
    return round(sum(scores) / len(scores), 3), max(scores), sum(1 for s in scores if s >= 0.7)


__all__ = [
    "SCORE_CAP",
    "ConflictScorer",
    "significance",
    "attendee_multiplier",
    "proximity_weight",
    "classify_risk",
    "rank_by_significance",
    "overlap_summary_stats",
]
