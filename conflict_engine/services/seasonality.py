"""Seasonal demand multipliers and holiday impact for a date and category.

Lookups go through an injected :class:`RuleTableReader` and are cached
per ``(category, subcategory, region, month-or-date)``.  A missing rule
yields a neutral default; a failing rule backend yields the same neutral
default wrapped in a degraded :class:`~conflict_engine.errors.Result`.
"""

from __future__ import annotations

import logging
from datetime import date, timedelta
from statistics import mean
from typing import List, Optional, Tuple

from ..cache import CacheStore, InMemoryCache
from ..config import DEFAULT_REGION, SEASONAL_CACHE_MAX_ENTRIES, SEASONAL_CACHE_TTL_SECONDS
from ..errors import Result
from ..models import (
    DEMAND_LEVELS,
    IMPACT_LEVELS,
    HolidayConflict,
    HolidayImpact,
    MonthlyDemand,
    SeasonalDemandCurve,
    SeasonalMultiplier,
)
from ..taxonomy import same_label
from ..utils.datetime_utils import month_name
from .rule_tables import RuleTableReader, SeasonalRule

logger = logging.getLogger(__name__)

MIN_MULTIPLIER: float = 0.1
MAX_MULTIPLIER: float = 3.0
MAX_HOLIDAY_MULTIPLIER: float = 5.0
NEUTRAL_CONFIDENCE: float = 0.3

OPTIMAL_MONTH_THRESHOLD: float = 1.3
AVOID_MONTH_THRESHOLD: float = 0.7

_SEASONS = {
    "winter": (12, 1, 2),
    "spring": (3, 4, 5),
    "summer": (6, 7, 8),
    "fall": (9, 10, 11),
}


def classify_demand(multiplier: float) -> str:
    very_low, low, medium, high, very_high = DEMAND_LEVELS
    if multiplier >= 2.0:
        return very_high
    if multiplier >= 1.5:
        return high
    if multiplier >= 1.0:
        return medium
    if multiplier >= 0.7:
        return low
    return very_low


def classify_holiday_severity(multiplier: float) -> str:
    none, low, moderate, high, critical = IMPACT_LEVELS
    if multiplier >= 4.0:
        return critical
    if multiplier >= 2.5:
        return high
    if multiplier >= 1.8:
        return moderate
    if multiplier >= 1.2:
        return low
    return none


def neutral_seasonal(category: str, subcategory: Optional[str] = None) -> SeasonalMultiplier:
    label = f"{category} ({subcategory})" if subcategory else category
    return SeasonalMultiplier(
        multiplier=1.0,
        demand_level="medium",
        confidence=NEUTRAL_CONFIDENCE,
        reasoning=(f"No seasonal data available for {label}",),
        data_source="expert_rules",
    )


def _pick_rule(rules: List[SeasonalRule], subcategory: Optional[str]) -> Tuple[Optional[SeasonalRule], bool]:
    """Prefer an exact subcategory rule over a category-level one."""
    if subcategory:
        specific = [r for r in rules if r.subcategory and same_label(r.subcategory, subcategory)]
        if specific:
            return max(specific, key=lambda r: r.confidence), True
    general = [r for r in rules if not r.subcategory]
    if general:
        return max(general, key=lambda r: r.confidence), False
    return None, False


class SeasonalityEngine:
    """Seasonal and holiday multipliers backed by rule tables.

    Parameters
    ----------
    rules
        Rule-table reader (Mongo-backed in production, static in tests).
    cache
        Cache for lookups; defaults to a process-local TTL cache.
    """

    def __init__(
        self,
        rules: RuleTableReader,
        cache: Optional[CacheStore] = None,
        *,
        cache_ttl: float = SEASONAL_CACHE_TTL_SECONDS,
        default_region: str = DEFAULT_REGION,
    ) -> None:
        self._rules = rules
        self._cache = cache if cache is not None else InMemoryCache(
            max_entries=SEASONAL_CACHE_MAX_ENTRIES, default_ttl=cache_ttl
        )
        self._cache_ttl = cache_ttl
        self.default_region = default_region

    # ------------------------------------------------------------------
    # Seasonal multiplier
    # ------------------------------------------------------------------
    def get_seasonal_multiplier(
        self,
        day: date,
        category: str,
        subcategory: Optional[str] = None,
        region: Optional[str] = None,
    ) -> SeasonalMultiplier:
        return self.seasonal_multiplier_result(day, category, subcategory, region).value  # type: ignore[return-value]

    def seasonal_multiplier_result(
        self,
        day: date,
        category: str,
        subcategory: Optional[str] = None,
        region: Optional[str] = None,
    ) -> Result[SeasonalMultiplier]:
        region = region or self.default_region
        key = f"seasonal:{category}:{subcategory or 'null'}:{region}:{day.month}"
        cached = self._cache.get(key)
        if cached is not None:
            return Result.success(SeasonalMultiplier.from_dict(cached))

        outcome = Result.capture(lambda: self._rules.seasonal_rules(category, region, day.month))
        if not outcome.ok:
            logger.warning(
                "Seasonal lookup failed for %s/%s – using neutral multiplier: %s",
                category,
                day.month,
                outcome.error,
            )
            return Result.failure(outcome.error or "", outcome.error_kind, neutral_seasonal(category, subcategory))  # type: ignore[arg-type]

        multiplier = self._build_multiplier(outcome.value or [], category, subcategory)
        self._cache.set(key, multiplier.to_dict(), self._cache_ttl)
        return Result.success(multiplier)

    def _build_multiplier(
        self,
        rules: List[SeasonalRule],
        category: str,
        subcategory: Optional[str],
    ) -> SeasonalMultiplier:
        rule, specific = _pick_rule(rules, subcategory)
        if rule is None:
            return neutral_seasonal(category, subcategory)

        value = round(min(MAX_MULTIPLIER, max(MIN_MULTIPLIER, rule.demand_multiplier)), 3)
        reasoning = [rule.reasoning] if rule.reasoning else []
        if value >= 1.5:
            reasoning.append(f"High demand period for {category} events")
        elif value >= 1.2:
            reasoning.append(f"Above-average demand for {category} events")
        elif value <= 0.7:
            reasoning.append(f"Lower demand period for {category} events")
        if specific:
            reasoning.append(f"Specific patterns for {subcategory} subcategory")

        return SeasonalMultiplier(
            multiplier=value,
            demand_level=classify_demand(value),
            confidence=rule.confidence,
            reasoning=tuple(reasoning),
            data_source=rule.data_source,
        )

    # ------------------------------------------------------------------
    # Holiday impact
    # ------------------------------------------------------------------
    def get_holiday_impact(
        self,
        day: date,
        category: str,
        subcategory: Optional[str] = None,
        region: Optional[str] = None,
    ) -> HolidayImpact:
        return self.holiday_impact_result(day, category, subcategory, region).value  # type: ignore[return-value]

    def holiday_impact_result(
        self,
        day: date,
        category: str,
        subcategory: Optional[str] = None,
        region: Optional[str] = None,
    ) -> Result[HolidayImpact]:
        region = region or self.default_region
        key = f"holiday:{category}:{subcategory or 'null'}:{region}:{day.isoformat()}"
        cached = self._cache.get(key)
        if cached is not None:
            return Result.success(HolidayImpact.from_dict(cached))

        outcome = Result.capture(lambda: self._compute_holiday_impact(day, category, subcategory, region))
        if not outcome.ok:
            logger.warning(
                "Holiday lookup failed for %s on %s – assuming no impact: %s",
                category,
                day,
                outcome.error,
            )
            return Result.failure(outcome.error or "", outcome.error_kind, HolidayImpact.neutral())  # type: ignore[arg-type]

        impact: HolidayImpact = outcome.value  # type: ignore[assignment]
        self._cache.set(key, impact.to_dict(), self._cache_ttl)
        return Result.success(impact)

    def _compute_holiday_impact(
        self,
        day: date,
        category: str,
        subcategory: Optional[str],
        region: str,
    ) -> HolidayImpact:
        rules = [
            r
            for r in self._rules.holiday_impact_rules(category, region)
            if not r.event_subcategory or same_label(r.event_subcategory, subcategory)
        ]
        if not rules:
            return HolidayImpact.neutral()

        reach = max(max(r.days_before, r.days_after) for r in rules)
        holidays = self._rules.holidays_between(region, day - timedelta(days=reach), day + timedelta(days=reach))

        conflicts: List[HolidayConflict] = []
        days_before = days_after = 0
        for holiday in holidays:
            for rule in rules:
                if not rule.covers(holiday, day):
                    continue
                conflicts.append(
                    HolidayConflict(
                        holiday_name=holiday.name,
                        holiday_type=holiday.holiday_type,
                        date=holiday.date,
                        days_from_event=(day - holiday.date).days,
                        impact_multiplier=rule.impact_multiplier,
                        severity=classify_holiday_severity(rule.impact_multiplier),
                        reasoning=rule.reasoning,
                        venue_closure_expected=holiday.venue_closure_expected,
                    )
                )
                days_before = max(days_before, rule.days_before)
                days_after = max(days_after, rule.days_after)

        if not conflicts:
            return HolidayImpact.neutral()

        combined = 1.0
        for conflict in conflicts:
            combined *= conflict.impact_multiplier
        combined = round(min(MAX_HOLIDAY_MULTIPLIER, max(1.0, combined)), 3)

        reasoning = [f"{len(conflicts)} holiday conflict(s) detected"]
        reasoning.extend(
            f"{c.holiday_name} ({c.holiday_type}) - {c.impact_multiplier:.1f}x impact" for c in conflicts
        )
        if combined >= 2.0:
            reasoning.append("High combined holiday impact expected")
        elif combined >= 1.5:
            reasoning.append("Moderate combined holiday impact expected")
        else:
            reasoning.append("Low combined holiday impact expected")

        return HolidayImpact(
            multiplier=combined,
            affected_holidays=tuple(conflicts),
            total_impact=max((c.severity for c in conflicts), key=IMPACT_LEVELS.index),
            days_before=days_before,
            days_after=days_after,
            reasoning=tuple(reasoning),
        )

    # ------------------------------------------------------------------
    # Demand curve
    # ------------------------------------------------------------------
    def get_seasonal_demand_curve(
        self,
        category: str,
        subcategory: Optional[str] = None,
        region: Optional[str] = None,
    ) -> SeasonalDemandCurve:
        """Twelve-month demand curve with peak pattern and month advice."""
        region = region or self.default_region
        rules = self._rules.seasonal_rules(category, region)

        monthly: List[MonthlyDemand] = []
        confidences: List[float] = []
        for month in range(1, 13):
            rule, _ = _pick_rule([r for r in rules if r.month == month], subcategory)
            if rule is None:
                monthly.append(
                    MonthlyDemand(month, month_name(month), 1.0, "medium", 0.8, ("No seasonal data available",))
                )
                continue
            value = round(min(MAX_MULTIPLIER, max(MIN_MULTIPLIER, rule.demand_multiplier)), 3)
            confidences.append(rule.confidence)
            monthly.append(
                MonthlyDemand(
                    month,
                    month_name(month),
                    value,
                    classify_demand(value),
                    rule.venue_availability,
                    (rule.reasoning,) if rule.reasoning else (),
                )
            )

        coverage = len(confidences)
        confidence = round(mean(confidences) * coverage / 12, 3) if confidences else NEUTRAL_CONFIDENCE
        return SeasonalDemandCurve(
            category=category,
            subcategory=subcategory,
            region=region,
            monthly=tuple(monthly),
            pattern=_pattern(monthly),
            optimal_months=tuple(m.month for m in monthly if m.multiplier >= OPTIMAL_MONTH_THRESHOLD),
            avoid_months=tuple(m.month for m in monthly if m.multiplier <= AVOID_MONTH_THRESHOLD),
            confidence=confidence,
        )

    def suggest_optimal_months(
        self,
        category: str,
        subcategory: Optional[str] = None,
        region: Optional[str] = None,
        limit: int = 3,
    ) -> List[int]:
        curve = self.get_seasonal_demand_curve(category, subcategory, region)
        ranked = sorted(curve.monthly, key=lambda m: (-m.multiplier, m.month))
        return [m.month for m in ranked[:limit]]


def _pattern(monthly: List[MonthlyDemand]) -> str:
    values = [m.multiplier for m in monthly]
    if max(values) - min(values) < 0.2:
        return "year_round"
    peak = max(monthly, key=lambda m: m.multiplier).month
    season = next(name for name, months in _SEASONS.items() if peak in months)
    return f"{season}_peak"


__all__ = [
    "SeasonalityEngine",
    "classify_demand",
    "classify_holiday_severity",
    "neutral_seasonal",
]
