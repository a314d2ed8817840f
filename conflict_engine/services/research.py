"""Competing-event research via the Perplexity API."""

from __future__ import annotations

import logging
from datetime import date
from typing import Any, Callable, Dict, List, Optional

import requests

from ..cache import CacheStore, InMemoryCache
from ..clients.perplexity_client import get_perplexity_session
from ..config import (
    AI_TIMEOUT_SECONDS,
    PERPLEXITY_API_URL,
    PERPLEXITY_MODEL,
    RESEARCH_CACHE_TTL_SECONDS,
)
from ..errors import ErrorKind, ExternalServiceError, Result
from ..models import RawEventRecord
from ..providers import ScrapedPayload, normalize
from ..utils.llm_parsing import extract_structured_json
from ..utils.text_cleaning import sanitize_llm_text

logger = logging.getLogger(__name__)

# accepted values: "low", "medium", "high"
PERPLEXITY_CONTEXT_SIZE: str = "medium"

RESPONSE_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "conflictingEvents": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "name": {"type": "string"},
                    "date": {"type": "string"},
                    "location": {"type": "string"},
                    "type": {"type": "string"},
                    "expectedAttendance": {"type": "number"},
                    "description": {"type": "string"},
                },
                "required": ["name", "date", "location", "type"],
            },
        }
    },
    "required": ["conflictingEvents"],
}


class PerplexityResearchService:
    """Ask Perplexity for events that may compete with a planned one.

    Results are cached per ``(city, start, end, category)``.  Any failure
    yields an empty list; research only ever adds competitors.
    """

    source = "perplexity"

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        cache: Optional[CacheStore] = None,
        *,
        model: str = PERPLEXITY_MODEL,
        timeout: float = AI_TIMEOUT_SECONDS,
        cache_ttl: float = RESEARCH_CACHE_TTL_SECONDS,
        session_factory: Callable[[], requests.Session] = get_perplexity_session,
    ) -> None:
        self._session = session
        self._session_factory = session_factory
        self._cache = cache if cache is not None else InMemoryCache(max_entries=200, default_ttl=cache_ttl)
        self._cache_ttl = cache_ttl
        self.model = model
        self.timeout = timeout

    @property
    def session(self) -> requests.Session:
        if self._session is None:
            self._session = self._session_factory()
        return self._session

    def research_conflicts(self, city: str, start: date, end: date, category: str) -> List[RawEventRecord]:
        return self.research_conflicts_result(city, start, end, category).value or []

    def research_conflicts_result(
        self,
        city: str,
        start: date,
        end: date,
        category: str,
    ) -> Result[List[RawEventRecord]]:
        key = f"research:{city.lower()}:{start.isoformat()}:{end.isoformat()}:{category.lower()}"
        cached = self._cache.get(key)
        if cached is not None:
            logger.debug("Research cache hit for %s", key)
            return Result.success(self._to_records(cached, city))

        outcome = Result.capture(lambda: self._search(city, start, end, category), fallback=[])
        if not outcome.ok:
            logger.warning("Perplexity research failed for %s (%s..%s): %s", city, start, end, outcome.error)
            return Result.failure(outcome.error or "", outcome.error_kind or ErrorKind.UPSTREAM, [])

        items: List[Dict[str, Any]] = outcome.value or []
        self._cache.set(key, items, self._cache_ttl)
        records = self._to_records(items, city)
        logger.info("Perplexity research found %d potential conflicts in %s", len(records), city)
        return Result.success(records)

    def build_request(self, city: str, start: date, end: date, category: str) -> Dict[str, Any]:
        return {
            "model": self.model,
            "messages": [
                {
                    "role": "system",
                    "content": (
                        "You are a precise research assistant for event planners. Strictly follow"
                        " the user instructions and output EXACTLY the JSON that matches the"
                        " provided schema, no markdown, no fences, no commentary, no citations."
                    ),
                },
                {
                    "role": "user",
                    "content": (
                        f"List public events in {city} between {start.isoformat()} and {end.isoformat()} "
                        f"that could compete for the audience of a {category} event.\n"
                        "Requirements:\n"
                        "1) Include conferences, festivals, concerts, sports matches and trade fairs.\n"
                        "2) Only include events with a confirmed date inside the range.\n"
                        "3) Return an array named 'conflictingEvents', where each item contains:\n"
                        "   • name – the official event name.\n"
                        "   • date – start date as YYYY-MM-DD.\n"
                        "   • location – venue name or district.\n"
                        "   • type – event category (e.g. Technology, Music, Sports).\n"
                        "   • expectedAttendance – estimated attendance, if known.\n"
                        "   • description – one or two sentences, if known.\n"
                    ),
                },
            ],
            "web_search_options": {"search_context_size": PERPLEXITY_CONTEXT_SIZE},
            "response_format": {"type": "json_schema", "json_schema": {"schema": RESPONSE_SCHEMA}},
        }

    def _search(self, city: str, start: date, end: date, category: str) -> List[Dict[str, Any]]:
        logger.info("Researching competing events in %s with Perplexity API…", city)
        try:
            response = self.session.post(
                PERPLEXITY_API_URL,
                json=self.build_request(city, start, end, category),
                timeout=self.timeout,
            )
        except requests.Timeout as exc:
            raise ExternalServiceError(f"Perplexity request timed out: {exc}", ErrorKind.TIMEOUT) from exc
        except requests.RequestException as exc:  # pragma: no cover – network failure
            raise ExternalServiceError(f"Perplexity request failed: {exc}") from exc

        if response.status_code != 200:
            logger.error("Error from Perplexity API: %s - %s", response.status_code, response.text)
            raise ExternalServiceError(f"Perplexity API error: {response.status_code}")

        response_text: str = response.json()["choices"][0]["message"]["content"]
        logger.debug("Raw Perplexity response: %s", response_text)

        try:
            data = extract_structured_json(response_text, list_key="conflictingEvents")
        except ValueError as exc:
            raise ExternalServiceError(str(exc), ErrorKind.MALFORMED_RESPONSE) from exc
        items = data.get("conflictingEvents") or []
        return [item for item in items if isinstance(item, dict) and item.get("name") and item.get("date")]

    def _to_records(self, items: List[Dict[str, Any]], city: str) -> List[RawEventRecord]:
        records: List[RawEventRecord] = []
        for item in items:
            description = item.get("description")
            payload = ScrapedPayload(
                source=self.source,
                id=None,
                title=str(item["name"]),
                date=item.get("date"),
                city=city,
                venue=item.get("location") or None,
                category=str(item.get("type") or "Other"),
                expected_attendees=_attendance(item.get("expectedAttendance")),
                description=sanitize_llm_text(description) if description else None,
            )
            try:
                record = normalize(payload)
            except ValueError as exc:
                logger.warning("Skipping researched event %r: %s", item.get("name"), exc)
                continue
            if record.date is None:
                logger.warning("Skipping researched event %r without a parseable date", record.title)
                continue
            records.append(record)
        return records


def _attendance(value: Any) -> Optional[int]:
    try:
        number = int(float(value))
    except (TypeError, ValueError):
        return None
    return number if number > 0 else None


__all__ = ["PerplexityResearchService", "RESPONSE_SCHEMA"]
