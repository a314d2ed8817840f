"""Audience overlap estimation between a planned event and its competitors.

A *base* overlap is derived per category pairing, either from the static
taxonomy (rule-based) or from one batched OpenAI call (AI-assisted), and
cached by ``(category, subcategory)`` pair only.  Date-specific
adjustments (temporal proximity and competitor significance) are applied
after every cache read and never stored.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from openai import OpenAI

from ..cache import CacheStore
from ..clients.openai_client import get_openai
from ..config import AI_TIMEOUT_SECONDS, OPENAI_OVERLAP_MODEL, OVERLAP_CACHE_TTL_SECONDS
from ..errors import ErrorKind, ExternalServiceError, Result
from ..models import Event, OverlapFactors, OverlapPrediction
from ..taxonomy import base_overlap
from ..utils.datetime_utils import days_between_spans
from ..utils.llm_parsing import extract_structured_json

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Adjustment tables
# ---------------------------------------------------------------------------
OVERLAP_CEILING: float = 0.95

# (max days between, boost); first matching row wins
TEMPORAL_BOOSTS: List[Tuple[int, float]] = [(0, 0.18), (3, 0.13), (7, 0.08), (30, 0.04), (90, 0.01)]
# (min expected attendees, boost)
SIGNIFICANCE_BOOSTS: List[Tuple[int, float]] = [(10_000, 0.13), (1_000, 0.08), (100, 0.03)]

FACTOR_WEIGHTS: Dict[str, float] = {
    "demographic_similarity": 0.3,
    "interest_alignment": 0.4,
    "behavior_patterns": 0.2,
    "historical_preference": 0.1,
}

TIMING_WORDS = ("day", "week", "temporal", "proximity", "close", "timing")

DEFAULT_PREDICTION = OverlapPrediction(
    overlap_score=0.1,
    confidence=0.1,
    factors=OverlapFactors.uniform(0.1),
    reasoning=("Analysis failed - using default low overlap",),
    calculation_method="default",
)


def temporal_boost(days_between: Optional[int]) -> float:
    if days_between is None:
        return 0.0
    for limit, boost in TEMPORAL_BOOSTS:
        if days_between <= limit:
            return boost
    return 0.0


def significance_boost(expected_attendees: Optional[int]) -> float:
    if not expected_attendees:
        return 0.0
    for minimum, boost in SIGNIFICANCE_BOOSTS:
        if expected_attendees >= minimum:
            return boost
    return 0.0


def temporal_reason(days_between: int) -> str:
    if days_between == 0:
        return "Events occur on the same day, creating maximum competition for the same audience."
    if days_between <= 3:
        unit = "day" if days_between == 1 else "days"
        return f"Events occur within {days_between} {unit}, creating very high competition for the same audience."
    return f"Events occur within {days_between} days, creating high competition for the same audience."


def days_between_events(planned: Event, competing: Event) -> Optional[int]:
    if planned.date is None or competing.date is None:
        return None
    return days_between_spans(planned.date, planned.end_date, competing.date, competing.end_date)


def overlap_cache_key(
    category_a: str,
    subcategory_a: Optional[str],
    category_b: str,
    subcategory_b: Optional[str],
) -> str:
    """``overlap:cat1:sub1|cat2:sub2`` with ``null`` for a missing subcategory."""
    return f"overlap:{category_a}:{subcategory_a or 'null'}|{category_b}:{subcategory_b or 'null'}"


def factors_from_base(base: float) -> OverlapFactors:
    values = {name: round(min(1.0, base * weight / 0.25), 3) for name, weight in FACTOR_WEIGHTS.items()}
    return OverlapFactors(**values)


def apply_adjustments(planned: Event, competing: Event, base: OverlapPrediction) -> OverlapPrediction:
    """Add temporal and significance boosts to a base prediction, capped at the ceiling."""
    days = days_between_events(planned, competing)
    score = base.overlap_score + temporal_boost(days) + significance_boost(competing.expected_attendees)
    reasoning = list(base.reasoning)
    if days is not None and days <= 7:
        mentions_timing = any(word in line.lower() for line in reasoning for word in TIMING_WORDS)
        if not mentions_timing:
            reasoning.append(temporal_reason(days))
    return OverlapPrediction(
        overlap_score=round(max(0.0, min(OVERLAP_CEILING, score)), 3),
        confidence=base.confidence,
        factors=base.factors,
        reasoning=tuple(reasoning),
        calculation_method=base.calculation_method,
    )


def estimate_batch_cost(event_count: int) -> float:
    """Approximate USD cost of one AI batch covering *event_count* events."""
    tokens = 2000 + event_count * 100
    return round(tokens / 1000 * 0.002, 4)


# ---------------------------------------------------------------------------
# Strategies
# ---------------------------------------------------------------------------
class RuleBasedOverlapStrategy:
    """Base overlap from the static category/subcategory taxonomy."""

    calculation_method = "rule_based"

    def predict(self, planned: Event, competing: Event) -> OverlapPrediction:
        score, reasoning = base_overlap(
            planned.category, planned.subcategory, competing.category, competing.subcategory
        )
        confidence = 0.5
        confidence += 0.1 * sum(1 for e in (planned, competing) if e.subcategory)
        confidence += 0.05 * sum(1 for e in (planned, competing) if e.venue)
        return OverlapPrediction(
            overlap_score=score,
            confidence=round(min(1.0, confidence), 3),
            factors=factors_from_base(score),
            reasoning=tuple(reasoning),
            calculation_method=self.calculation_method,
        )


def _describe(event: Event, planned: Optional[Event] = None) -> Dict[str, Any]:
    data: Dict[str, Any] = {
        "id": event.id,
        "title": event.title,
        "category": event.category,
        "subcategory": event.subcategory,
        "venue": event.venue,
        "expectedAttendees": event.expected_attendees,
        "date": event.date.isoformat() if event.date else None,
        "endDate": event.end_date.isoformat() if event.end_date else None,
    }
    if planned is not None:
        data["daysFromPlanned"] = days_between_events(planned, event)
    return data


def _unit(value: Any, default: Optional[float] = None) -> Optional[float]:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    return round(max(0.0, min(1.0, number)), 3)


class OpenAIOverlapStrategy:
    """One batched chat-completion call covering every competing event."""

    calculation_method = "ai_powered"

    def __init__(
        self,
        client: Optional[OpenAI] = None,
        *,
        model: str = OPENAI_OVERLAP_MODEL,
        timeout: float = AI_TIMEOUT_SECONDS,
        client_factory: Callable[[], OpenAI] = get_openai,
    ) -> None:
        self._client = client
        self._client_factory = client_factory
        self.model = model
        self.timeout = timeout

    @property
    def client(self) -> OpenAI:
        if self._client is None:
            self._client = self._client_factory()
        return self._client

    def build_prompt(self, planned: Event, competing: Sequence[Event]) -> str:
        payload = {
            "plannedEvent": _describe(planned),
            "competingEvents": [_describe(e, planned) for e in competing],
        }
        return (
            "Estimate the audience overlap between the planned event and each competing event.\n"
            "Judge only the BASE overlap implied by category, subcategory, venue and audience size; "
            "timing and event size adjustments are applied separately.\n"
            "Return a JSON object of the form "
            '{"results": {"<competing event id>": {"overlapScore": 0-1, "confidence": 0-1, '
            '"factors": {"demographicSimilarity": 0-1, "interestAlignment": 0-1, '
            '"behaviorPatterns": 0-1, "historicalPreference": 0-1}, '
            '"reasoning": ["short sentence", ...]}}} '
            "with one entry for every competing event id.\n\n"
            f"{json.dumps(payload, ensure_ascii=False)}"
        )

    def analyze_batch(self, planned: Event, competing: Sequence[Event]) -> Dict[str, OverlapPrediction]:
        """Return base predictions for the ids the model answered validly.

        Raises
        ------
        ExternalServiceError
            If the call fails or the response cannot be parsed at all.
        """
        if not competing:
            return {}
        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {
                        "role": "system",
                        "content": (
                            "You are an event-industry analyst estimating how much two events "
                            "compete for the same audience. Respond with JSON only."
                        ),
                    },
                    {"role": "user", "content": self.build_prompt(planned, competing)},
                ],
                temperature=0.2,
                max_tokens=2000,
                response_format={"type": "json_object"},
                timeout=self.timeout,
            )
            content: str = response.choices[0].message.content or ""
        except Exception as exc:  # pragma: no cover – network failure
            raise ExternalServiceError(f"OpenAI overlap call failed: {exc}") from exc

        logger.debug("Raw overlap response: %s", content)
        try:
            data = extract_structured_json(content, list_key="results")
        except ValueError as exc:
            raise ExternalServiceError(str(exc), ErrorKind.MALFORMED_RESPONSE) from exc

        return self.parse_results(data, [e.id for e in competing])

    def parse_results(self, data: Dict[str, Any], ids: Sequence[str]) -> Dict[str, OverlapPrediction]:
        results = data.get("results", data)
        if isinstance(results, list):
            results = {str(item.get("eventId") or item.get("id")): item for item in results if isinstance(item, dict)}
        if not isinstance(results, dict):
            raise ExternalServiceError("Overlap response has no results mapping", ErrorKind.MALFORMED_RESPONSE)

        predictions: Dict[str, OverlapPrediction] = {}
        for event_id in ids:
            entry = results.get(event_id)
            prediction = self._parse_entry(entry) if isinstance(entry, dict) else None
            if prediction is None:
                logger.info("AI response missing or invalid for %s", event_id)
                continue
            predictions[event_id] = prediction
        return predictions

    def _parse_entry(self, entry: Dict[str, Any]) -> Optional[OverlapPrediction]:
        score = _unit(entry.get("overlapScore"))
        if score is None:
            return None
        raw_factors = entry.get("factors") if isinstance(entry.get("factors"), dict) else {}
        defaults = factors_from_base(score)
        factors = OverlapFactors(
            demographic_similarity=_unit(raw_factors.get("demographicSimilarity"), defaults.demographic_similarity),
            interest_alignment=_unit(raw_factors.get("interestAlignment"), defaults.interest_alignment),
            behavior_patterns=_unit(raw_factors.get("behaviorPatterns"), defaults.behavior_patterns),
            historical_preference=_unit(raw_factors.get("historicalPreference"), defaults.historical_preference),
        )
        reasoning = entry.get("reasoning") or []
        if isinstance(reasoning, str):
            reasoning = [reasoning]
        return OverlapPrediction(
            overlap_score=score,
            confidence=_unit(entry.get("confidence"), 0.5),
            factors=factors,
            reasoning=tuple(str(line).strip() for line in reasoning if str(line).strip()),
            calculation_method=self.calculation_method,
        )


# ---------------------------------------------------------------------------
# Estimator
# ---------------------------------------------------------------------------
class AudienceOverlapEstimator:
    """Cache-backed overlap predictions with AI-first, rule-based fallback."""

    def __init__(
        self,
        cache: CacheStore,
        ai_strategy: Optional[OpenAIOverlapStrategy] = None,
        rule_strategy: Optional[RuleBasedOverlapStrategy] = None,
        *,
        cache_ttl: float = OVERLAP_CACHE_TTL_SECONDS,
    ) -> None:
        self._cache = cache
        self._ai = ai_strategy
        self._rules = rule_strategy or RuleBasedOverlapStrategy()
        self._cache_ttl = cache_ttl

    def predict_overlap(self, planned: Event, competing: Event) -> OverlapPrediction:
        return self.predict_overlap_batch(planned, [competing])[competing.id]

    def predict_overlap_batch(self, planned: Event, competing: Sequence[Event]) -> Dict[str, OverlapPrediction]:
        return self.predict_overlap_batch_result(planned, competing).value or {}

    def predict_overlap_batch_result(
        self,
        planned: Event,
        competing: Sequence[Event],
    ) -> Result[Dict[str, OverlapPrediction]]:
        """Predict overlap for every competing event.

        The result always holds a prediction for every input id.  It is
        marked degraded when the AI batch failed and rule-based predictions
        were substituted.
        """
        bases: Dict[str, OverlapPrediction] = {}
        pending: Dict[str, List[Event]] = {}
        for event in competing:
            key = overlap_cache_key(planned.category, planned.subcategory, event.category, event.subcategory)
            cached = self._read_cache(key)
            if cached is not None:
                bases[event.id] = cached
            else:
                pending.setdefault(key, []).append(event)

        ai_results: Dict[str, OverlapPrediction] = {}
        failure: Optional[Result[Dict[str, OverlapPrediction]]] = None
        if pending and self._ai is not None:
            representatives = [events[0] for events in pending.values()]
            outcome = Result.capture(lambda: self._ai.analyze_batch(planned, representatives), fallback={})
            if outcome.ok:
                ai_results = outcome.value or {}
            else:
                failure = outcome
                logger.warning("AI overlap batch failed (%s) – using rule-based strategy", outcome.error)

        for key, events in pending.items():
            prediction = ai_results.get(events[0].id) or self._rule_based(planned, events[0])
            if prediction.calculation_method != DEFAULT_PREDICTION.calculation_method:
                self._write_cache(key, prediction)
            for event in events:
                bases[event.id] = prediction

        predictions = {
            event.id: self._finalize(planned, event, bases.get(event.id, DEFAULT_PREDICTION))
            for event in competing
        }
        logger.info(
            "Overlap predictions: %d events, %d from cache, %d via AI",
            len(competing),
            len(competing) - sum(len(v) for v in pending.values()),
            sum(len(pending[k]) for k in pending if pending[k][0].id in ai_results),
        )
        if failure is not None:
            return Result.failure(failure.error or "AI batch failed", failure.error_kind or ErrorKind.UPSTREAM, predictions)
        return Result.success(predictions)

    def rule_based_batch(self, planned: Event, competing: Sequence[Event]) -> Dict[str, OverlapPrediction]:
        """Rule-based predictions for every event, bypassing cache and AI."""
        return {e.id: self._finalize(planned, e, self._rule_based(planned, e)) for e in competing}

    def _rule_based(self, planned: Event, competing: Event) -> OverlapPrediction:
        try:
            return self._rules.predict(planned, competing)
        except Exception as exc:  # noqa: BLE001 – per-pair fallback keeps the batch complete
            logger.warning("Rule-based overlap failed for %s: %s", competing.id, exc)
            return DEFAULT_PREDICTION

    def _finalize(self, planned: Event, competing: Event, base: OverlapPrediction) -> OverlapPrediction:
        try:
            return apply_adjustments(planned, competing, base)
        except Exception as exc:  # noqa: BLE001 – per-pair fallback keeps the batch complete
            logger.warning("Overlap adjustment failed for %s: %s", competing.id, exc)
            return DEFAULT_PREDICTION

    def _read_cache(self, key: str) -> Optional[OverlapPrediction]:
        try:
            cached = self._cache.get(key)
            if cached is None:
                return None
            logger.debug("Overlap cache hit for %s", key)
            return OverlapPrediction.from_dict(cached)
        except Exception as exc:  # noqa: BLE001 – cache outage is a miss
            logger.warning("Overlap cache read failed for %s: %s", key, exc)
            return None

    def _write_cache(self, key: str, prediction: OverlapPrediction) -> None:
        try:
            self._cache.set(key, prediction.to_dict(), self._cache_ttl)
        except Exception as exc:  # noqa: BLE001 – cache outage only costs a recomputation
            logger.warning("Overlap cache write failed for %s: %s", key, exc)


__all__ = [
    "OVERLAP_CEILING",
    "DEFAULT_PREDICTION",
    "temporal_boost",
    "significance_boost",
    "temporal_reason",
    "days_between_events",
    "overlap_cache_key",
    "factors_from_base",
    "apply_adjustments",
    "estimate_batch_cost",
    "RuleBasedOverlapStrategy",
    "OpenAIOverlapStrategy",
    "AudienceOverlapEstimator",
]
