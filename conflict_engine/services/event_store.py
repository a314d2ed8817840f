"""Event store adapters: fetch raw competing events for a city and window."""

from __future__ import annotations

import logging
import re
from datetime import date
from typing import Any, Dict, Iterable, List, Optional, Protocol

from pymongo.collection import Collection
from pymongo.errors import PyMongoError

from ..errors import ErrorKind, ExternalServiceError
from ..models import RawEventRecord
from ..providers.normalization import ProviderPayload, normalize, payload_from_document
from ..taxonomy import same_label
from ..utils.text_cleaning import normalize_text

logger = logging.getLogger(__name__)


class EventStore(Protocol):
    def fetch_competing_events(
        self,
        city: str,
        start: date,
        end: date,
        category: Optional[str] = None,
        min_attendees: Optional[int] = None,
    ) -> List[RawEventRecord]:
        ...


def _overlaps_window(record: RawEventRecord, start: date, end: date) -> bool:
    if record.date is None:
        return False
    return record.date <= end and (record.end_date or record.date) >= start


class MongoEventStore:
    """Read events from a MongoDB collection.

    Documents carry normalised top-level index fields (``city``, ``date``
    and ``end_date`` as ISO strings, ``category``, ``expected_attendees``)
    plus a ``source`` tag; API providers keep their native body under
    ``payload``.  Records whose attendance is unknown always pass the
    ``min_attendees`` filter.
    """

    def __init__(self, collection: Collection, *, timeout_ms: int = 10000) -> None:
        self._collection = collection
        self._timeout_ms = timeout_ms

    def build_query(
        self,
        city: str,
        start: date,
        end: date,
        category: Optional[str] = None,
        min_attendees: Optional[int] = None,
    ) -> Dict[str, Any]:
        clauses: List[Dict[str, Any]] = [
            {"city": {"$regex": f"^{re.escape(city.strip())}$", "$options": "i"}},
            {"date": {"$lte": end.isoformat()}},
            {
                "$or": [
                    {"end_date": {"$gte": start.isoformat()}},
                    {"end_date": None, "date": {"$gte": start.isoformat()}},
                ]
            },
        ]
        if category:
            clauses.append({"category": category})
        if min_attendees:
            clauses.append(
                {
                    "$or": [
                        {"expected_attendees": {"$gte": min_attendees}},
                        {"expected_attendees": None},
                    ]
                }
            )
        return {"$and": clauses}

    def fetch_competing_events(
        self,
        city: str,
        start: date,
        end: date,
        category: Optional[str] = None,
        min_attendees: Optional[int] = None,
    ) -> List[RawEventRecord]:
        query = self.build_query(city, start, end, category, min_attendees)
        try:
            docs = list(
                self._collection.find(query).sort("date", 1).max_time_ms(self._timeout_ms)
            )
        except PyMongoError as exc:
            kind = ErrorKind.TIMEOUT if "timed out" in str(exc).lower() else ErrorKind.UPSTREAM
            raise ExternalServiceError(f"Event store query failed: {exc}", kind) from exc

        records = list(_normalize_documents(docs))
        logger.info(
            "Fetched %d events for %s between %s and %s", len(records), city, start, end
        )
        return records


def _normalize_documents(docs: Iterable[Dict[str, Any]]) -> Iterable[RawEventRecord]:
    for doc in docs:
        try:
            yield normalize(payload_from_document(doc))
        except (ValueError, TypeError, KeyError) as exc:
            logger.warning("Skipping malformed event document %s: %s", doc.get("_id"), exc)


class InMemoryEventStore:
    """List-backed store applying the same filters as :class:`MongoEventStore`."""

    def __init__(self, records: Iterable[RawEventRecord] = ()) -> None:
        self._records: List[RawEventRecord] = list(records)
        self.calls = 0

    @classmethod
    def from_payloads(cls, payloads: Iterable[ProviderPayload]) -> "InMemoryEventStore":
        return cls(normalize(p) for p in payloads)

    def add(self, record: RawEventRecord) -> None:
        self._records.append(record)

    def fetch_competing_events(
        self,
        city: str,
        start: date,
        end: date,
        category: Optional[str] = None,
        min_attendees: Optional[int] = None,
    ) -> List[RawEventRecord]:
        self.calls += 1
        wanted_city = normalize_text(city)
        matches = []
        for record in self._records:
            if normalize_text(record.city) != wanted_city:
                continue
            if not _overlaps_window(record, start, end):
                continue
            if category and not same_label(record.category, category):
                continue
            if (
                min_attendees
                and record.expected_attendees is not None
                and record.expected_attendees < min_attendees
            ):
                continue
            matches.append(record)
        return matches


__all__ = ["EventStore", "MongoEventStore", "InMemoryEventStore"]
