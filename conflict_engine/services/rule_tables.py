"""Seasonal-rule and holiday-impact-rule readers.

Rule rows are plain value objects.  A missing row is a normal outcome,
never an error; only a failing backend raises
:class:`~conflict_engine.errors.ExternalServiceError`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Any, Callable, Dict, Iterable, List, Optional, Protocol

from pymongo.database import Database
from pymongo.errors import PyMongoError

from ..config import (
    HOLIDAY_IMPACT_RULES_COLLECTION,
    HOLIDAYS_COLLECTION,
    SEASONAL_RULES_COLLECTION,
)
from ..errors import ErrorKind, ExternalServiceError
from ..taxonomy import same_label
from ..utils.datetime_utils import parse_date

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class SeasonalRule:
    category: str
    region: str
    month: int
    demand_multiplier: float
    confidence: float
    reasoning: str
    subcategory: Optional[str] = None
    venue_availability: float = 0.8
    data_source: str = "expert_rules"
    expert_source: Optional[str] = None


@dataclass(slots=True, frozen=True)
class Holiday:
    name: str
    date: date
    holiday_type: str
    region: str
    business_impact: str = "full"
    venue_closure_expected: bool = False


@dataclass(slots=True, frozen=True)
class HolidayImpactRule:
    holiday_type: str
    event_category: str
    region: str
    days_before: int
    days_after: int
    impact_multiplier: float
    confidence: float
    reasoning: str
    holiday_name: Optional[str] = None
    event_subcategory: Optional[str] = None

    def covers(self, holiday: Holiday, day: date) -> bool:
        """True when *day* falls inside this rule's window around *holiday*."""
        if holiday.holiday_type != self.holiday_type:
            return False
        if self.holiday_name and not same_label(self.holiday_name, holiday.name):
            return False
        offset = (day - holiday.date).days
        return -self.days_before <= offset <= self.days_after


class RuleTableReader(Protocol):
    def seasonal_rules(self, category: str, region: str, month: Optional[int] = None) -> List[SeasonalRule]:
        ...

    def holidays_between(self, region: str, start: date, end: date) -> List[Holiday]:
        ...

    def holiday_impact_rules(self, category: str, region: str) -> List[HolidayImpactRule]:
        ...


class StaticRuleTables:
    """In-process rule tables.

    ``holiday_calendar`` generates the holidays of a given year and region
    on demand, so movable feasts (Easter) are correct for any year.
    """

    def __init__(
        self,
        seasonal_rules: Iterable[SeasonalRule] = (),
        holidays: Iterable[Holiday] = (),
        impact_rules: Iterable[HolidayImpactRule] = (),
        holiday_calendar: Optional[Callable[[int, str], List[Holiday]]] = None,
    ) -> None:
        self._seasonal = list(seasonal_rules)
        self._holidays = list(holidays)
        self._impact = list(impact_rules)
        self._calendar = holiday_calendar

    @classmethod
    def with_defaults(cls) -> "StaticRuleTables":
        from .seed_data import DEFAULT_HOLIDAY_IMPACT_RULES, DEFAULT_SEASONAL_RULES, holidays_for_year

        return cls(
            seasonal_rules=DEFAULT_SEASONAL_RULES,
            impact_rules=DEFAULT_HOLIDAY_IMPACT_RULES,
            holiday_calendar=holidays_for_year,
        )

    def seasonal_rules(self, category: str, region: str, month: Optional[int] = None) -> List[SeasonalRule]:
        return [
            r
            for r in self._seasonal
            if same_label(r.category, category)
            and same_label(r.region, region)
            and (month is None or r.month == month)
        ]

    def holidays_between(self, region: str, start: date, end: date) -> List[Holiday]:
        candidates = list(self._holidays)
        if self._calendar is not None:
            for year in range(start.year, end.year + 1):
                candidates.extend(self._calendar(year, region))
        found = [h for h in candidates if same_label(h.region, region) and start <= h.date <= end]
        return sorted(found, key=lambda h: (h.date, h.name))

    def holiday_impact_rules(self, category: str, region: str) -> List[HolidayImpactRule]:
        return [
            r
            for r in self._impact
            if same_label(r.event_category, category) and same_label(r.region, region)
        ]


def _seasonal_from_doc(doc: Dict[str, Any]) -> SeasonalRule:
    return SeasonalRule(
        category=doc["category"],
        subcategory=doc.get("subcategory"),
        region=doc["region"],
        month=int(doc["month"]),
        demand_multiplier=float(doc["demand_multiplier"]),
        confidence=float(doc.get("confidence", 0.5)),
        reasoning=doc.get("reasoning") or "",
        venue_availability=float(doc.get("venue_availability", 0.8)),
        data_source=doc.get("data_source") or "expert_rules",
        expert_source=doc.get("expert_source"),
    )


def _holiday_from_doc(doc: Dict[str, Any]) -> Holiday:
    day = parse_date(doc.get("date"))
    if day is None:
        raise ValueError(f"holiday {doc.get('name')!r} has no valid date")
    return Holiday(
        name=doc["name"],
        date=day,
        holiday_type=doc.get("holiday_type") or "public_holiday",
        region=doc["region"],
        business_impact=doc.get("business_impact") or "full",
        venue_closure_expected=bool(doc.get("venue_closure_expected", False)),
    )


def _impact_rule_from_doc(doc: Dict[str, Any]) -> HolidayImpactRule:
    return HolidayImpactRule(
        holiday_type=doc["holiday_type"],
        holiday_name=doc.get("holiday_name"),
        event_category=doc["event_category"],
        event_subcategory=doc.get("event_subcategory"),
        region=doc["region"],
        days_before=int(doc.get("days_before", 0)),
        days_after=int(doc.get("days_after", 0)),
        impact_multiplier=float(doc["impact_multiplier"]),
        confidence=float(doc.get("confidence", 0.5)),
        reasoning=doc.get("reasoning") or "",
    )


class MongoRuleTables:
    """Rule tables stored in MongoDB collections."""

    def __init__(self, database: Database, *, timeout_ms: int = 5000) -> None:
        self._seasonal = database[SEASONAL_RULES_COLLECTION]
        self._holidays = database[HOLIDAYS_COLLECTION]
        self._impact = database[HOLIDAY_IMPACT_RULES_COLLECTION]
        self._timeout_ms = timeout_ms

    def _find(self, collection: Any, query: Dict[str, Any], convert: Callable[[Dict[str, Any]], Any]) -> List[Any]:
        try:
            docs = list(collection.find(query).max_time_ms(self._timeout_ms))
        except PyMongoError as exc:
            kind = ErrorKind.TIMEOUT if "timed out" in str(exc).lower() else ErrorKind.UPSTREAM
            raise ExternalServiceError(f"Rule table query failed: {exc}", kind) from exc

        rows = []
        for doc in docs:
            try:
                rows.append(convert(doc))
            except (KeyError, TypeError, ValueError) as exc:
                logger.warning("Skipping malformed rule row %s: %s", doc.get("_id"), exc)
        return rows

    def seasonal_rules(self, category: str, region: str, month: Optional[int] = None) -> List[SeasonalRule]:
        query: Dict[str, Any] = {"category": category, "region": region}
        if month is not None:
            query["month"] = month
        return self._find(self._seasonal, query, _seasonal_from_doc)

    def holidays_between(self, region: str, start: date, end: date) -> List[Holiday]:
        query = {"region": region, "date": {"$gte": start.isoformat(), "$lte": end.isoformat()}}
        return self._find(self._holidays, query, _holiday_from_doc)

    def holiday_impact_rules(self, category: str, region: str) -> List[HolidayImpactRule]:
        return self._find(self._impact, {"event_category": category, "region": region}, _impact_rule_from_doc)


__all__ = [
    "SeasonalRule",
    "Holiday",
    "HolidayImpactRule",
    "RuleTableReader",
    "StaticRuleTables",
    "MongoRuleTables",
]
