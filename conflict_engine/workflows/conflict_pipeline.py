"""End-to-end conflict analysis: fetch, deduplicate, score and rank dates."""

from __future__ import annotations

import concurrent.futures
import logging
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Callable, Dict, List, Optional, Sequence, Tuple, TypeVar

from pymongo.errors import PyMongoError

from ..logging_config import logging as _  # noqa: F401  # ensure config applied early
from ..cache import MongoCache
from ..clients.mongodb_client import get_database
from ..clients.openai_client import openai_available
from ..clients.perplexity_client import perplexity_available
from ..config import (
    ADVANCED_MAX_COMPARISONS,
    AI_TIMEOUT_SECONDS,
    EVENTS_COLLECTION,
    MAX_COMPARISONS,
    MAX_PARALLEL_DATES,
    OVERLAP_CACHE_COLLECTION,
    OVERLAP_CACHE_TTL_SECONDS,
    PROXIMITY_WINDOW_DAYS,
    RULE_TIMEOUT_SECONDS,
    STORE_TIMEOUT_SECONDS,
)
from ..errors import ErrorKind, Result
from ..models import (
    AnalysisParams,
    AnalysisResult,
    AudienceOverlapSummary,
    CandidateDateResult,
    Event,
    HolidayImpact,
    OverlapPrediction,
    RawEventRecord,
    SeasonalFactors,
    SeasonalMultiplier,
)
from ..services.audience_overlap import AudienceOverlapEstimator, OpenAIOverlapStrategy
from ..services.deduplication import EventDeduplicator
from ..services.event_store import EventStore, MongoEventStore
from ..services.recommendations import assemble, build_summary, recommendation_text
from ..services.relevance import EventRelevanceFilter
from ..services.research import PerplexityResearchService
from ..services.rule_tables import MongoRuleTables
from ..services.scoring import ConflictScorer, overlap_summary_stats, significance
from ..services.seasonality import SeasonalityEngine, neutral_seasonal
from ..utils.datetime_utils import get_current_timestamp

logger = logging.getLogger(__name__)

T = TypeVar("T")

PLANNED_EVENT_ID = "planned"
MIN_STORE_ATTENDEES = 50
MAJOR_EVENT_SIGNIFICANCE = 50.0


@dataclass(slots=True)
class _RunStats:
    dates: int = 0
    raw_events: int = 0
    researched_events: int = 0
    unique_events: int = 0
    duplicates_removed: int = 0
    filtered_out: int = 0
    degraded: int = 0


def planned_event(params: AnalysisParams) -> Event:
    """The caller's event, dated at the window start until a date is scored."""
    params.validate()
    return Event(
        id=PLANNED_EVENT_ID,
        title=params.title or f"Planned {params.category} event",
        category=params.category,
        subcategory=params.subcategory,
        city=params.city,
        date=params.start_date,  # type: ignore[arg-type]
        venue=params.venue,
        expected_attendees=params.expected_attendees,
        sources=("planner",),
    )


def min_store_attendees(expected_attendees: int) -> int:
    return max(MIN_STORE_ATTENDEES, expected_attendees // 10)


def _near(event: Event, first: date, last: date, margin: int) -> bool:
    if event.date is None:
        return False
    return event.date <= last + timedelta(days=margin) and (event.last_day or event.date) >= first - timedelta(
        days=margin
    )


def _await(
    future: "concurrent.futures.Future[Result[T]]",
    timeout: float,
    fallback: Callable[[], T],
    operation: str,
) -> Result[T]:
    """Collect *future* within *timeout*; a timeout or crash yields *fallback*."""
    try:
        return future.result(timeout=timeout)
    except concurrent.futures.TimeoutError:
        future.cancel()
        logger.warning("%s timed out after %.1fs – using fallback", operation, timeout)
        return Result.failure(f"timed out after {timeout}s", ErrorKind.TIMEOUT, fallback())
    except Exception as exc:  # noqa: BLE001 – a failed lookup degrades, never aborts the date
        logger.error("%s failed: %s", operation, exc)
        return Result.failure(str(exc), ErrorKind.UPSTREAM, fallback())


class ConflictAnalyzer:
    """Wire the engine components together and score candidate dates.

    Every collaborator is injected; :meth:`from_config` builds the
    production wiring (MongoDB store, rule tables and overlap cache, OpenAI
    and Perplexity when their keys are configured).
    """

    def __init__(
        self,
        event_store: EventStore,
        seasonality: SeasonalityEngine,
        overlap_estimator: AudienceOverlapEstimator,
        deduplicator: Optional[EventDeduplicator] = None,
        research: Optional[PerplexityResearchService] = None,
        relevance_filter: Optional[EventRelevanceFilter] = None,
        *,
        max_parallel_dates: int = MAX_PARALLEL_DATES,
        ai_timeout: float = AI_TIMEOUT_SECONDS,
        rule_timeout: float = RULE_TIMEOUT_SECONDS,
    ) -> None:
        self.event_store = event_store
        self.seasonality = seasonality
        self.overlap_estimator = overlap_estimator
        self.deduplicator = deduplicator or EventDeduplicator()
        self.research = research
        self.relevance_filter = relevance_filter
        self.max_parallel_dates = max(1, max_parallel_dates)
        self.ai_timeout = ai_timeout
        self.rule_timeout = rule_timeout

    @classmethod
    def from_config(cls) -> "ConflictAnalyzer":
        database = get_database()
        timeout_ms = int(STORE_TIMEOUT_SECONDS * 1000)
        overlap_cache = MongoCache(
            database[OVERLAP_CACHE_COLLECTION],
            default_ttl=OVERLAP_CACHE_TTL_SECONDS,
            timeout_ms=timeout_ms,
        )
        try:
            overlap_cache.ensure_indexes()
        except PyMongoError as exc:
            logger.warning(
                "Could not create the overlap cache TTL index – expired entries are only skipped on read: %s", exc
            )
        ai = OpenAIOverlapStrategy() if openai_available() else None
        if ai is None:
            logger.info("OPENAI_API_KEY not set – overlap estimation is rule-based only")
        return cls(
            event_store=MongoEventStore(database[EVENTS_COLLECTION], timeout_ms=timeout_ms),
            seasonality=SeasonalityEngine(MongoRuleTables(database, timeout_ms=timeout_ms)),
            overlap_estimator=AudienceOverlapEstimator(overlap_cache, ai_strategy=ai),
            research=PerplexityResearchService() if perplexity_available() else None,
            relevance_filter=EventRelevanceFilter() if openai_available() else None,
        )

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------
    def analyze(self, params: AnalysisParams) -> AnalysisResult:
        """Score every candidate date of *params*.

        Raises
        ------
        AnalysisValidationError
            If *params* fail validation; raised before any external call.
        """
        params.validate()
        days = params.candidate_days()
        planned = planned_event(params)
        duration = params.event_duration_days
        stats = _RunStats(dates=len(days))
        degraded: List[str] = []

        logger.info(
            "Analysing %d candidate date(s) for %s/%s in %s",
            len(days),
            params.category,
            params.subcategory or "-",
            params.city,
        )

        first, last = min(days), max(days) + timedelta(days=duration - 1)
        records = self._collect_records(params, first, last, stats, degraded)

        dedup = self.deduplicator.deduplicate(records)
        stats.unique_events = len(dedup.unique_events)
        stats.duplicates_removed = dedup.duplicates_removed
        events = dedup.unique_events

        if params.enable_llm_relevance_filter and self.relevance_filter is not None and events:
            filtered = self.relevance_filter.filter_relevant_result(planned, events)
            if not filtered.ok:
                degraded.append(filtered.describe("relevance_filter"))
            kept = filtered.value if filtered.value is not None else events
            stats.filtered_out = len(events) - len(kept)
            scoring_events = kept
        else:
            scoring_events = events

        scorer = ConflictScorer(
            ADVANCED_MAX_COMPARISONS if params.enable_advanced_analysis else MAX_COMPARISONS,
            advanced=params.enable_advanced_analysis,
        )

        workers = min(self.max_parallel_dates, len(days))
        # Timed-out lookups are abandoned, not awaited, when the pool shuts down.
        lookup_pool = concurrent.futures.ThreadPoolExecutor(
            max_workers=workers * 3, thread_name_prefix="conflict-lookup"
        )
        try:
            with concurrent.futures.ThreadPoolExecutor(
                max_workers=workers, thread_name_prefix="conflict-date"
            ) as date_pool:
                futures = [
                    date_pool.submit(self._score_date, day, planned, scoring_events, params, scorer, lookup_pool)
                    for day in days
                ]
                results = [f.result() for f in futures]
        finally:
            lookup_pool.shutdown(wait=False, cancel_futures=True)

        stats.degraded = len(degraded) + sum(len(r.degraded) for r in results)
        split = assemble(results)
        summary = build_summary(results, dedup.duplicates_removed, extra_degraded=len(degraded))
        self._log_stats(stats)

        return AnalysisResult(
            recommended_dates=split.recommended_dates,
            high_risk_dates=split.high_risk_dates,
            all_events=list(events),
            analysis_date=get_current_timestamp(),
            summary=summary,
        )

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------
    def _collect_records(
        self,
        params: AnalysisParams,
        first: date,
        last: date,
        stats: _RunStats,
        degraded: List[str],
    ) -> List[RawEventRecord]:
        window_start = first - timedelta(days=PROXIMITY_WINDOW_DAYS)
        window_end = last + timedelta(days=PROXIMITY_WINDOW_DAYS)

        fetched = Result.capture(
            lambda: self.event_store.fetch_competing_events(
                params.city,
                window_start,
                window_end,
                None,
                min_store_attendees(params.expected_attendees),
            ),
            fallback=[],
        )
        if not fetched.ok:
            logger.error("Event store query failed – scoring without stored events: %s", fetched.error)
            degraded.append(fetched.describe("event_store"))
        records: List[RawEventRecord] = list(fetched.unwrap_or([]))
        stats.raw_events = len(records)

        if params.enable_perplexity_research and self.research is not None:
            researched = self.research.research_conflicts_result(params.city, first, last, params.category)
            if not researched.ok:
                degraded.append(researched.describe("research"))
            extra = researched.unwrap_or([])
            stats.researched_events = len(extra)
            records.extend(extra)
        return records

    def _score_date(
        self,
        day: date,
        planned: Event,
        events: Sequence[Event],
        params: AnalysisParams,
        scorer: ConflictScorer,
        lookup_pool: concurrent.futures.ThreadPoolExecutor,
    ) -> CandidateDateResult:
        duration = params.event_duration_days
        end = day + timedelta(days=duration - 1)
        dated = planned.with_changes(date=day, end_date=end if duration > 1 else None)
        # records without a title or date stay in all_events but are never scored
        competing = [e for e in events if e.is_well_formed and _near(e, day, end, PROXIMITY_WINDOW_DAYS)]

        overlap_future = lookup_pool.submit(self.overlap_estimator.predict_overlap_batch_result, dated, competing)
        seasonal_future = lookup_pool.submit(
            self.seasonality.seasonal_multiplier_result, day, params.category, params.subcategory, params.region
        )
        holiday_future = lookup_pool.submit(
            self.seasonality.holiday_impact_result, day, params.category, params.subcategory, params.region
        )

        overlap = _await(
            overlap_future,
            self.ai_timeout,
            lambda: self.overlap_estimator.rule_based_batch(dated, competing),
            f"Overlap batch for {day}",
        )
        seasonal = _await(
            seasonal_future,
            self.rule_timeout,
            lambda: neutral_seasonal(params.category, params.subcategory),
            f"Seasonal lookup for {day}",
        )
        holiday = _await(holiday_future, self.rule_timeout, HolidayImpact.neutral, f"Holiday lookup for {day}")

        predictions: Dict[str, OverlapPrediction] = overlap.unwrap_or({})
        seasonal_value: SeasonalMultiplier = seasonal.unwrap_or(neutral_seasonal(params.category, params.subcategory))
        holiday_value: HolidayImpact = holiday.unwrap_or(HolidayImpact.neutral())

        result = scorer.score(day, dated, competing, predictions, seasonal_value, holiday_value)
        major = sum(1 for e in competing if significance(e) >= MAJOR_EVENT_SIGNIFICANCE)
        average, peak, high_overlap = overlap_summary_stats(predictions)

        issues: List[Tuple[str, Result]] = [("overlap", overlap), ("seasonal", seasonal), ("holiday", holiday)]
        return CandidateDateResult(
            date=day,
            end_date=end,
            conflict_score=result.score,
            risk_level=result.risk_level,
            competing_events=tuple(competing),
            reasons=result.reasons,
            seasonal_factors=SeasonalFactors(seasonal=seasonal_value, holiday=holiday_value),
            audience_overlap_summary=AudienceOverlapSummary(
                average_overlap=average,
                max_overlap=peak,
                high_overlap_events=high_overlap,
                methods=tuple(sorted({p.calculation_method for p in predictions.values()})),
            ),
            recommendation=recommendation_text(result.score, result.risk_level, major),
            degraded=tuple(r.describe(name) for name, r in issues if not r.ok),
        )

    def _log_stats(self, stats: _RunStats) -> None:
        logger.info("=== Conflict Analysis Statistics ===")
        logger.info("Candidate dates analysed: %d", stats.dates)
        logger.info("Events fetched from store: %d", stats.raw_events)
        logger.info("Events found by research: %d", stats.researched_events)
        logger.info("Duplicate events removed: %d", stats.duplicates_removed)
        logger.info("Unique competing events: %d", stats.unique_events)
        logger.info("Events dropped as irrelevant: %d", stats.filtered_out)
        logger.info("Degraded sub-operations: %d", stats.degraded)
        logger.info("====================================")


def analyze_conflicts(params: AnalysisParams, analyzer: Optional[ConflictAnalyzer] = None) -> AnalysisResult:
    """Run one conflict analysis, building the production wiring when needed."""
    params.validate()
    return (analyzer or ConflictAnalyzer.from_config()).analyze(params)


__all__ = [
    "ConflictAnalyzer",
    "analyze_conflicts",
    "planned_event",
    "min_store_attendees",
]
