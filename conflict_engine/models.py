"""Domain models used across the engine.

All entities are value objects constructed fresh per analysis request.
Dates are :class:`datetime.date` instances; text fields are kept exactly
as the source reported them and normalised only for comparison.
"""

from __future__ import annotations

import datetime as dt
from dataclasses import asdict, dataclass, field, replace
from typing import Any, Dict, List, Optional, Tuple, Union

from .config import DEFAULT_EXPECTED_ATTENDEES
from .errors import AnalysisValidationError

# ---------------------------------------------------------------------------
# Enumerated string values
# ---------------------------------------------------------------------------
RISK_LEVELS: Tuple[str, ...] = ("Low", "Medium", "High")
DEMAND_LEVELS: Tuple[str, ...] = ("very_low", "low", "medium", "high", "very_high")
IMPACT_LEVELS: Tuple[str, ...] = ("none", "low", "moderate", "high", "critical")

# A description needs more than this many characters to count as promotion.
MEANINGFUL_DESCRIPTION_LENGTH: int = 50


def _check_span(start: Optional[dt.date], end: Optional[dt.date]) -> None:
    if start is not None and end is not None and end < start:
        raise ValueError(f"end date {end} precedes start date {start}")


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------
@dataclass(slots=True, frozen=True)
class RawEventRecord:
    """One event exactly as reported by a single source, after normalisation."""

    id: str
    source: str
    title: str
    category: str
    city: str
    date: Optional[dt.date]
    end_date: Optional[dt.date] = None
    subcategory: Optional[str] = None
    venue: Optional[str] = None
    expected_attendees: Optional[int] = None
    description: Optional[str] = None
    image_url: Optional[str] = None
    url: Optional[str] = None
    created_at: Optional[dt.datetime] = None

    def __post_init__(self) -> None:
        _check_span(self.date, self.end_date)

    def to_event(self) -> "Event":
        """Promote this record to a single-sourced :class:`Event`."""
        return Event(
            id=self.id,
            title=self.title,
            category=self.category,
            city=self.city,
            date=self.date,
            end_date=self.end_date,
            subcategory=self.subcategory,
            venue=self.venue,
            expected_attendees=self.expected_attendees,
            sources=(self.source,),
            description=self.description,
            image_url=self.image_url,
            url=self.url,
            created_at=self.created_at,
        )


@dataclass(slots=True, frozen=True)
class Event:
    """A canonical event: one or more source records merged together."""

    id: str
    title: str
    category: str
    city: str
    date: Optional[dt.date]
    end_date: Optional[dt.date] = None
    subcategory: Optional[str] = None
    venue: Optional[str] = None
    expected_attendees: Optional[int] = None
    sources: Tuple[str, ...] = ()
    description: Optional[str] = None
    image_url: Optional[str] = None
    url: Optional[str] = None
    created_at: Optional[dt.datetime] = None
    low_confidence: bool = False

    def __post_init__(self) -> None:
        _check_span(self.date, self.end_date)

    @property
    def has_image(self) -> bool:
        return bool(self.image_url)

    @property
    def has_description(self) -> bool:
        return bool(self.description) and len(self.description) > MEANINGFUL_DESCRIPTION_LENGTH

    @property
    def is_well_formed(self) -> bool:
        """True when the event carries both a title and a date."""
        return bool(self.title and self.title.strip()) and self.date is not None

    @property
    def last_day(self) -> Optional[dt.date]:
        return self.end_date or self.date

    def with_changes(self, **changes: Any) -> "Event":
        return replace(self, **changes)


EventLike = Union[Event, RawEventRecord]


def as_event(record: EventLike) -> Event:
    """Return *record* as an :class:`Event`, promoting raw records."""
    return record if isinstance(record, Event) else record.to_event()


# ---------------------------------------------------------------------------
# Deduplication
# ---------------------------------------------------------------------------
@dataclass(slots=True, frozen=True)
class DuplicateGroup:
    """A canonical event and the records judged duplicates of its primary."""

    primary: Event
    duplicates: Tuple[Tuple[EventLike, float], ...] = ()

    @property
    def size(self) -> int:
        return 1 + len(self.duplicates)


@dataclass(slots=True, frozen=True)
class DeduplicationResult:
    unique_events: List[Event]
    duplicates_removed: int
    duplicate_groups: List[DuplicateGroup]
    cache_hits: int = 0
    cache_misses: int = 0
    processing_time_ms: float = 0.0


# ---------------------------------------------------------------------------
# Audience overlap
# ---------------------------------------------------------------------------
@dataclass(slots=True, frozen=True)
class OverlapFactors:
    demographic_similarity: float
    interest_alignment: float
    behavior_patterns: float
    historical_preference: float

    @classmethod
    def uniform(cls, value: float) -> "OverlapFactors":
        return cls(value, value, value, value)


@dataclass(slots=True, frozen=True)
class OverlapPrediction:
    overlap_score: float
    confidence: float
    factors: OverlapFactors
    reasoning: Tuple[str, ...] = ()
    calculation_method: str = "rule_based"

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["reasoning"] = list(self.reasoning)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "OverlapPrediction":
        return cls(
            overlap_score=float(data["overlap_score"]),
            confidence=float(data["confidence"]),
            factors=OverlapFactors(**data["factors"]),
            reasoning=tuple(data.get("reasoning", ())),
            calculation_method=data.get("calculation_method", "rule_based"),
        )


# ---------------------------------------------------------------------------
# Seasonality and holidays
# ---------------------------------------------------------------------------
@dataclass(slots=True, frozen=True)
class SeasonalMultiplier:
    multiplier: float
    demand_level: str
    confidence: float
    reasoning: Tuple[str, ...] = ()
    data_source: str = "expert_rules"

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["reasoning"] = list(self.reasoning)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SeasonalMultiplier":
        return cls(
            multiplier=float(data["multiplier"]),
            demand_level=data["demand_level"],
            confidence=float(data["confidence"]),
            reasoning=tuple(data.get("reasoning", ())),
            data_source=data.get("data_source", "expert_rules"),
        )


@dataclass(slots=True, frozen=True)
class HolidayConflict:
    holiday_name: str
    holiday_type: str
    date: dt.date
    days_from_event: int
    impact_multiplier: float
    severity: str
    reasoning: str = ""
    venue_closure_expected: bool = False


@dataclass(slots=True, frozen=True)
class HolidayImpact:
    multiplier: float
    affected_holidays: Tuple[HolidayConflict, ...] = ()
    total_impact: str = "none"
    days_before: int = 0
    days_after: int = 0
    reasoning: Tuple[str, ...] = ()

    @classmethod
    def neutral(cls) -> "HolidayImpact":
        return cls(multiplier=1.0)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["reasoning"] = list(self.reasoning)
        data["affected_holidays"] = [
            {**asdict(h), "date": h.date.isoformat()} for h in self.affected_holidays
        ]
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "HolidayImpact":
        holidays = tuple(
            HolidayConflict(**{**h, "date": dt.date.fromisoformat(h["date"])})
            for h in data.get("affected_holidays", ())
        )
        return cls(
            multiplier=float(data["multiplier"]),
            affected_holidays=holidays,
            total_impact=data.get("total_impact", "none"),
            days_before=int(data.get("days_before", 0)),
            days_after=int(data.get("days_after", 0)),
            reasoning=tuple(data.get("reasoning", ())),
        )


@dataclass(slots=True, frozen=True)
class MonthlyDemand:
    month: int
    month_name: str
    multiplier: float
    demand_level: str
    venue_availability: float
    reasoning: Tuple[str, ...] = ()


@dataclass(slots=True, frozen=True)
class SeasonalDemandCurve:
    category: str
    subcategory: Optional[str]
    region: str
    monthly: Tuple[MonthlyDemand, ...]
    pattern: str
    optimal_months: Tuple[int, ...]
    avoid_months: Tuple[int, ...]
    confidence: float


# ---------------------------------------------------------------------------
# Scoring and results
# ---------------------------------------------------------------------------
@dataclass(slots=True, frozen=True)
class EventContribution:
    """How much one competing event added to a candidate date's score."""

    event_id: str
    title: str
    points: float
    significance: float
    fully_scored: bool = True


@dataclass(slots=True, frozen=True)
class ConflictScore:
    score: float
    risk_level: str
    reasons: Tuple[str, ...] = ()
    contributions: Tuple[EventContribution, ...] = ()


@dataclass(slots=True, frozen=True)
class SeasonalFactors:
    seasonal: SeasonalMultiplier
    holiday: HolidayImpact


@dataclass(slots=True, frozen=True)
class AudienceOverlapSummary:
    average_overlap: float = 0.0
    max_overlap: float = 0.0
    high_overlap_events: int = 0
    methods: Tuple[str, ...] = ()


@dataclass(slots=True, frozen=True)
class CandidateDateResult:
    date: dt.date
    end_date: dt.date
    conflict_score: float
    risk_level: str
    competing_events: Tuple[Event, ...]
    reasons: Tuple[str, ...]
    seasonal_factors: SeasonalFactors
    audience_overlap_summary: AudienceOverlapSummary
    recommendation: str = ""
    degraded: Tuple[str, ...] = ()


@dataclass(slots=True, frozen=True)
class Recommendations:
    recommended_dates: List[CandidateDateResult]
    high_risk_dates: List[CandidateDateResult]


@dataclass(slots=True, frozen=True)
class AnalysisSummary:
    average_score: float
    max_score: float
    overall_risk: str
    recommendations: Tuple[str, ...] = ()
    duplicates_removed: int = 0
    degraded_operations: int = 0


MAX_WINDOW_DAYS: int = 366
MAX_EXPLICIT_CANDIDATES: int = 31
MAX_EVENT_DURATION_DAYS: int = 14
MAX_EXPECTED_ATTENDEES: int = 1_000_000


def _parse_iso_date(value: Union[str, dt.date, None], name: str) -> dt.date:
    if isinstance(value, dt.datetime):
        return value.date()
    if isinstance(value, dt.date):
        return value
    if not value:
        raise AnalysisValidationError(f"{name} is required")
    try:
        return dt.date.fromisoformat(str(value)[:10])
    except ValueError as exc:
        raise AnalysisValidationError(f"{name} must be an ISO date (YYYY-MM-DD), got {value!r}") from exc


@dataclass(slots=True)
class AnalysisParams:
    """Caller-facing parameters of one conflict analysis.

    Dates may be given as ISO strings or :class:`datetime.date` objects;
    :meth:`validate` converts them in place and rejects anything that
    would make the analysis meaningless.
    """

    city: str
    category: str
    start_date: Union[str, dt.date]
    end_date: Union[str, dt.date]
    subcategory: Optional[str] = None
    expected_attendees: int = DEFAULT_EXPECTED_ATTENDEES
    candidate_dates: Optional[List[Union[str, dt.date]]] = None
    event_duration_days: int = 1
    region: Optional[str] = None
    title: Optional[str] = None
    venue: Optional[str] = None
    enable_advanced_analysis: bool = False
    enable_perplexity_research: bool = False
    enable_llm_relevance_filter: bool = False
    _validated: bool = field(default=False, repr=False, compare=False)

    def validate(self) -> "AnalysisParams":
        if self._validated:
            return self
        if not self.city or not str(self.city).strip():
            raise AnalysisValidationError("city is required")
        if not self.category or not str(self.category).strip():
            raise AnalysisValidationError("category is required")

        self.start_date = _parse_iso_date(self.start_date, "start_date")
        self.end_date = _parse_iso_date(self.end_date, "end_date")
        if self.start_date > self.end_date:
            raise AnalysisValidationError(
                f"start_date {self.start_date} is after end_date {self.end_date}"
            )
        if (self.end_date - self.start_date).days + 1 > MAX_WINDOW_DAYS:
            raise AnalysisValidationError(f"date window exceeds {MAX_WINDOW_DAYS} days")

        if isinstance(self.expected_attendees, bool) or not isinstance(self.expected_attendees, int):
            raise AnalysisValidationError("expected_attendees must be an integer")
        if not 1 <= self.expected_attendees <= MAX_EXPECTED_ATTENDEES:
            raise AnalysisValidationError(
                f"expected_attendees must be between 1 and {MAX_EXPECTED_ATTENDEES}"
            )
        if not 1 <= self.event_duration_days <= MAX_EVENT_DURATION_DAYS:
            raise AnalysisValidationError(
                f"event_duration_days must be between 1 and {MAX_EVENT_DURATION_DAYS}"
            )

        if self.candidate_dates is not None:
            if not self.candidate_dates:
                raise AnalysisValidationError("candidate_dates must not be empty when given")
            if len(self.candidate_dates) > MAX_EXPLICIT_CANDIDATES:
                raise AnalysisValidationError(
                    f"at most {MAX_EXPLICIT_CANDIDATES} candidate dates may be supplied"
                )
            parsed = [_parse_iso_date(d, "candidate_dates") for d in self.candidate_dates]
            outside = [d for d in parsed if not self.start_date <= d <= self.end_date]
            if outside:
                raise AnalysisValidationError(
                    f"candidate date {outside[0]} falls outside {self.start_date}..{self.end_date}"
                )
            self.candidate_dates = parsed

        self.city = self.city.strip()
        self.category = self.category.strip()
        self._validated = True
        return self

    def candidate_days(self) -> List[dt.date]:
        """Return the dates to score, in caller order."""
        self.validate()
        if self.candidate_dates is not None:
            return list(self.candidate_dates)  # type: ignore[arg-type]
        span = (self.end_date - self.start_date).days  # type: ignore[operator]
        return [self.start_date + dt.timedelta(days=i) for i in range(span + 1)]  # type: ignore[operator]


@dataclass(slots=True, frozen=True)
class AnalysisResult:
    recommended_dates: List[CandidateDateResult]
    high_risk_dates: List[CandidateDateResult]
    all_events: List[Event]
    analysis_date: dt.datetime
    summary: Optional[AnalysisSummary] = None


__all__ = [
    "RISK_LEVELS",
    "DEMAND_LEVELS",
    "IMPACT_LEVELS",
    "MEANINGFUL_DESCRIPTION_LENGTH",
    "RawEventRecord",
    "Event",
    "EventLike",
    "as_event",
    "DuplicateGroup",
    "DeduplicationResult",
    "OverlapFactors",
    "OverlapPrediction",
    "SeasonalMultiplier",
    "HolidayConflict",
    "HolidayImpact",
    "MonthlyDemand",
    "SeasonalDemandCurve",
    "EventContribution",
    "ConflictScore",
    "SeasonalFactors",
    "AudienceOverlapSummary",
    "CandidateDateResult",
    "Recommendations",
    "AnalysisSummary",
    "AnalysisParams",
    "AnalysisResult",
]
