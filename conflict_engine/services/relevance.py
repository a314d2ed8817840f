"""LLM-based relevance filtering of competing events."""

from __future__ import annotations

import json
import logging
from typing import Any, Callable, Dict, List, Optional, Sequence

from openai import OpenAI

from ..clients.openai_client import get_openai
from ..config import AI_TIMEOUT_SECONDS, OPENAI_OVERLAP_MODEL
from ..errors import ErrorKind, ExternalServiceError, Result
from ..models import Event
from ..taxonomy import category_conflict_level
from ..utils.llm_parsing import extract_structured_json

logger = logging.getLogger(__name__)

MIN_DROP_CONFIDENCE: float = 0.6
RELATED_LEVELS = ("exact", "high", "medium")


def rule_relevant(planned: Event, competing: Event) -> bool:
    """Relevant when the categories match or sit in a related tier."""
    return category_conflict_level(planned.category, competing.category) in RELATED_LEVELS


class EventRelevanceFilter:
    """Drop competing events an LLM judges irrelevant to the planned one."""

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

    def filter_relevant(self, planned: Event, events: Sequence[Event]) -> List[Event]:
        return self.filter_relevant_result(planned, events).value or []

    def filter_relevant_result(self, planned: Event, events: Sequence[Event]) -> Result[List[Event]]:
        """Return the relevant subset of *events*, keeping input order.

        A failed call returns *events* unchanged in a degraded result.
        """
        if not events:
            return Result.success([])

        outcome = Result.capture(lambda: self._judge(planned, events))
        if not outcome.ok:
            logger.warning("Relevance filter failed (%s) – keeping all %d events", outcome.error, len(events))
            return Result.failure(outcome.error or "", outcome.error_kind or ErrorKind.UPSTREAM, list(events))

        verdicts: Dict[str, Dict[str, Any]] = outcome.value or {}
        kept: List[Event] = []
        for event in events:
            verdict = verdicts.get(event.id)
            if verdict is None:
                if rule_relevant(planned, event):
                    kept.append(event)
                else:
                    logger.debug("Dropping %s by category rule (no LLM verdict)", event.id)
                continue
            if verdict["is_relevant"] or verdict["confidence"] < MIN_DROP_CONFIDENCE:
                kept.append(event)
            else:
                logger.debug("Dropping %s as irrelevant: %s", event.id, verdict["reasoning"])

        logger.info("Relevance filter kept %d of %d events", len(kept), len(events))
        return Result.success(kept)

    def build_prompt(self, planned: Event, events: Sequence[Event]) -> str:
        payload = {
            "plannedEvent": {
                "title": planned.title,
                "category": planned.category,
                "subcategory": planned.subcategory,
                "expectedAttendees": planned.expected_attendees,
            },
            "events": [
                {
                    "eventId": e.id,
                    "title": e.title,
                    "category": e.category,
                    "subcategory": e.subcategory,
                    "venue": e.venue,
                    "description": (e.description or "")[:300],
                }
                for e in events
            ],
        }
        return (
            "Decide for each listed event whether it competes for the same audience as the planned event.\n"
            'Return a JSON object {"results": [{"eventId": "...", "isRelevant": true|false, '
            '"confidence": 0-1, "reasoning": "short sentence"}]} with one entry per event.\n\n'
            f"{json.dumps(payload, ensure_ascii=False)}"
        )

    def _judge(self, planned: Event, events: Sequence[Event]) -> Dict[str, Dict[str, Any]]:
        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {
                        "role": "system",
                        "content": "You are an event-industry analyst. Respond with JSON only.",
                    },
                    {"role": "user", "content": self.build_prompt(planned, events)},
                ],
                temperature=0.1,
                max_tokens=1500,
                response_format={"type": "json_object"},
                timeout=self.timeout,
            )
            content: str = response.choices[0].message.content or ""
        except Exception as exc:  # pragma: no cover – network failure
            raise ExternalServiceError(f"OpenAI relevance call failed: {exc}") from exc

        logger.debug("Raw relevance response: %s", content)
        try:
            data = extract_structured_json(content, list_key="results")
        except ValueError as exc:
            raise ExternalServiceError(str(exc), ErrorKind.MALFORMED_RESPONSE) from exc

        verdicts: Dict[str, Dict[str, Any]] = {}
        for item in data.get("results") or []:
            if not isinstance(item, dict) or not isinstance(item.get("isRelevant"), bool):
                continue
            try:
                confidence = float(item.get("confidence", 0.0))
            except (TypeError, ValueError):
                confidence = 0.0
            verdicts[str(item.get("eventId"))] = {
                "is_relevant": item["isRelevant"],
                "confidence": max(0.0, min(1.0, confidence)),
                "reasoning": str(item.get("reasoning") or ""),
            }
        return verdicts


__all__ = ["EventRelevanceFilter", "rule_relevant", "MIN_DROP_CONFIDENCE"]
