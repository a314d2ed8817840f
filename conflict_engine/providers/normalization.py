"""Provider-specific raw event shapes and their normalisers.

Each event source reports a differently-shaped record.  The shapes are
modelled as a tagged union of small dataclasses (the ``provider`` field is
the tag), each with exactly one normalisation function producing the
canonical :class:`~conflict_engine.models.RawEventRecord`.
"""

from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Callable, Dict, List, Literal, Optional, Tuple, Union

from ..models import RawEventRecord
from ..utils.datetime_utils import parse_date, parse_datetime

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Provider category vocabularies → (category, subcategory)
# ---------------------------------------------------------------------------
TICKETMASTER_SEGMENTS: Dict[str, Tuple[str, Optional[str]]] = {
    "music": ("Entertainment", "Music"),
    "sports": ("Sports", None),
    "arts & theatre": ("Entertainment", "Theater"),
    "film": ("Arts & Culture", "Film"),
    "miscellaneous": ("Other", None),
}

PREDICTHQ_CATEGORIES: Dict[str, Tuple[str, Optional[str]]] = {
    "conferences": ("Business", "Conferences"),
    "expos": ("Business", "Expos"),
    "concerts": ("Entertainment", "Music"),
    "performing-arts": ("Entertainment", "Theater"),
    "festivals": ("Entertainment", "Cultural"),
    "community": ("Other", "Community"),
    "sports": ("Sports", None),
}

EVENTBRITE_CATEGORIES: Dict[str, Tuple[str, Optional[str]]] = {
    "science & technology": ("Technology", None),
    "business & professional": ("Business", None),
    "music": ("Entertainment", "Music"),
    "performing & visual arts": ("Arts & Culture", None),
    "film, media & entertainment": ("Entertainment", None),
    "sports & fitness": ("Sports", None),
    "family & education": ("Education", None),
}


def _map_category(
    table: Dict[str, Tuple[str, Optional[str]]],
    label: Optional[str],
    subcategory: Optional[str] = None,
) -> Tuple[str, Optional[str]]:
    category, default_sub = table.get((label or "").strip().lower(), ("Other", None))
    return category, subcategory or default_sub


def _synthetic_id(provider: str, title: str, when: Any) -> str:
    digest = hashlib.sha1(f"{provider}|{title}|{when}".encode("utf-8")).hexdigest()[:16]
    return f"{provider}:{digest}"


def _as_int(value: Any) -> Optional[int]:
    try:
        return int(value) if value not in (None, "") else None
    except (TypeError, ValueError):
        return None


def _span(start: Optional[date], end: Optional[date], record_id: str) -> Tuple[Optional[date], Optional[date]]:
    if start is not None and end is not None and end < start:
        logger.warning("Dropping end date %s before start %s for %s", end, start, record_id)
        return start, None
    return start, end


# ---------------------------------------------------------------------------
# Raw shapes
# ---------------------------------------------------------------------------
@dataclass(slots=True)
class TicketmasterPayload:
    """Subset of a Ticketmaster Discovery API event."""

    id: Optional[str]
    name: str
    local_date: Optional[str]
    city_name: str = ""
    venue_name: Optional[str] = None
    end_local_date: Optional[str] = None
    segment: Optional[str] = None
    genre: Optional[str] = None
    image_urls: List[str] = field(default_factory=list)
    info: Optional[str] = None
    url: Optional[str] = None
    provider: Literal["ticketmaster"] = "ticketmaster"

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "TicketmasterPayload":
        venues = (data.get("_embedded") or {}).get("venues") or [{}]
        classification = (data.get("classifications") or [{}])[0]
        dates = data.get("dates") or {}
        return cls(
            id=data.get("id"),
            name=data.get("name") or "",
            local_date=(dates.get("start") or {}).get("localDate"),
            end_local_date=(dates.get("end") or {}).get("localDate"),
            city_name=((venues[0].get("city") or {}).get("name")) or "",
            venue_name=venues[0].get("name"),
            segment=(classification.get("segment") or {}).get("name"),
            genre=(classification.get("genre") or {}).get("name"),
            image_urls=[img.get("url") for img in data.get("images") or [] if img.get("url")],
            info=data.get("info") or data.get("pleaseNote"),
            url=data.get("url"),
        )


@dataclass(slots=True)
class PredictHQPayload:
    """Subset of a PredictHQ Events API result."""

    id: Optional[str]
    title: str
    start: Optional[str]
    end: Optional[str] = None
    category: Optional[str] = None
    phq_attendance: Optional[int] = None
    venue_name: Optional[str] = None
    locality: str = ""
    description: Optional[str] = None
    provider: Literal["predicthq"] = "predicthq"

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "PredictHQPayload":
        venue = next(
            (e for e in data.get("entities") or [] if e.get("type") == "venue"),
            {},
        )
        address = (data.get("geo") or {}).get("address") or {}
        return cls(
            id=data.get("id"),
            title=data.get("title") or "",
            start=data.get("start"),
            end=data.get("end"),
            category=data.get("category"),
            phq_attendance=_as_int(data.get("phq_attendance")),
            venue_name=venue.get("name"),
            locality=address.get("locality") or "",
            description=data.get("description"),
        )


@dataclass(slots=True)
class EventbritePayload:
    """Subset of an Eventbrite event with ``venue`` and ``category`` expanded."""

    id: Optional[str]
    name: str
    start_local: Optional[str]
    end_local: Optional[str] = None
    city: str = ""
    venue_name: Optional[str] = None
    category_name: Optional[str] = None
    subcategory_name: Optional[str] = None
    capacity: Optional[int] = None
    logo_url: Optional[str] = None
    description: Optional[str] = None
    url: Optional[str] = None
    created: Optional[str] = None
    provider: Literal["eventbrite"] = "eventbrite"

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "EventbritePayload":
        venue = data.get("venue") or {}
        return cls(
            id=data.get("id"),
            name=(data.get("name") or {}).get("text") or "",
            start_local=(data.get("start") or {}).get("local"),
            end_local=(data.get("end") or {}).get("local"),
            city=(venue.get("address") or {}).get("city") or "",
            venue_name=venue.get("name"),
            category_name=(data.get("category") or {}).get("name"),
            subcategory_name=(data.get("subcategory") or {}).get("name"),
            capacity=_as_int(data.get("capacity")),
            logo_url=(data.get("logo") or {}).get("url"),
            description=(data.get("description") or {}).get("text"),
            url=data.get("url"),
            created=data.get("created"),
        )


@dataclass(slots=True)
class ScrapedPayload:
    """Flat record produced by scrapers, manual entry or external research."""

    source: str
    id: Optional[str]
    title: str
    date: Any
    city: str = ""
    end_date: Any = None
    venue: Optional[str] = None
    category: str = "Other"
    subcategory: Optional[str] = None
    expected_attendees: Optional[int] = None
    description: Optional[str] = None
    image_url: Optional[str] = None
    url: Optional[str] = None
    created_at: Any = None
    provider: Literal["scraped"] = "scraped"

    @classmethod
    def from_document(cls, doc: Dict[str, Any], source: Optional[str] = None) -> "ScrapedPayload":
        raw_id = doc.get("id") or doc.get("_id")
        return cls(
            source=(source or doc.get("source") or "scraper").lower(),
            id=str(raw_id) if raw_id is not None else None,
            title=doc.get("title") or "",
            date=doc.get("date"),
            end_date=doc.get("end_date"),
            city=doc.get("city") or "",
            venue=doc.get("venue"),
            category=doc.get("category") or "Other",
            subcategory=doc.get("subcategory"),
            expected_attendees=_as_int(doc.get("expected_attendees")),
            description=doc.get("description"),
            image_url=doc.get("image_url"),
            url=doc.get("url"),
            created_at=doc.get("created_at"),
        )


ProviderPayload = Union[TicketmasterPayload, PredictHQPayload, EventbritePayload, ScrapedPayload]


# ---------------------------------------------------------------------------
# Normalisers
# ---------------------------------------------------------------------------
def normalize_ticketmaster(payload: TicketmasterPayload) -> RawEventRecord:
    record_id = f"ticketmaster:{payload.id}" if payload.id else _synthetic_id(
        "ticketmaster", payload.name, payload.local_date
    )
    category, subcategory = _map_category(TICKETMASTER_SEGMENTS, payload.segment, None)
    if category == "Entertainment" and payload.genre and payload.genre.lower() != "undefined":
        subcategory = payload.genre
    start, end = _span(parse_date(payload.local_date), parse_date(payload.end_local_date), record_id)
    return RawEventRecord(
        id=record_id,
        source="ticketmaster",
        title=payload.name.strip(),
        category=category,
        subcategory=subcategory,
        city=payload.city_name,
        date=start,
        end_date=end,
        venue=payload.venue_name,
        description=payload.info,
        image_url=payload.image_urls[0] if payload.image_urls else None,
        url=payload.url,
    )


def normalize_predicthq(payload: PredictHQPayload) -> RawEventRecord:
    record_id = f"predicthq:{payload.id}" if payload.id else _synthetic_id(
        "predicthq", payload.title, payload.start
    )
    category, subcategory = _map_category(PREDICTHQ_CATEGORIES, payload.category)
    start, end = _span(parse_date(payload.start), parse_date(payload.end), record_id)
    return RawEventRecord(
        id=record_id,
        source="predicthq",
        title=payload.title.strip(),
        category=category,
        subcategory=subcategory,
        city=payload.locality,
        date=start,
        end_date=end,
        venue=payload.venue_name,
        expected_attendees=payload.phq_attendance,
        description=payload.description,
    )


def normalize_eventbrite(payload: EventbritePayload) -> RawEventRecord:
    record_id = f"eventbrite:{payload.id}" if payload.id else _synthetic_id(
        "eventbrite", payload.name, payload.start_local
    )
    category, subcategory = _map_category(
        EVENTBRITE_CATEGORIES, payload.category_name, payload.subcategory_name
    )
    start, end = _span(parse_date(payload.start_local), parse_date(payload.end_local), record_id)
    return RawEventRecord(
        id=record_id,
        source="eventbrite",
        title=payload.name.strip(),
        category=category,
        subcategory=subcategory,
        city=payload.city,
        date=start,
        end_date=end,
        venue=payload.venue_name,
        expected_attendees=payload.capacity,
        description=payload.description,
        image_url=payload.logo_url,
        url=payload.url,
        created_at=parse_datetime(payload.created),
    )


def normalize_scraped(payload: ScrapedPayload) -> RawEventRecord:
    record_id = f"{payload.source}:{payload.id}" if payload.id else _synthetic_id(
        payload.source, payload.title, payload.date
    )
    start, end = _span(parse_date(payload.date), parse_date(payload.end_date), record_id)
    created = payload.created_at if isinstance(payload.created_at, datetime) else parse_datetime(payload.created_at)
    return RawEventRecord(
        id=record_id,
        source=payload.source,
        title=payload.title.strip(),
        category=payload.category,
        subcategory=payload.subcategory,
        city=payload.city,
        date=start,
        end_date=end,
        venue=payload.venue,
        expected_attendees=payload.expected_attendees,
        description=payload.description,
        image_url=payload.image_url,
        url=payload.url,
        created_at=created,
    )


_NORMALIZERS: Dict[str, Callable[[Any], RawEventRecord]] = {
    "ticketmaster": normalize_ticketmaster,
    "predicthq": normalize_predicthq,
    "eventbrite": normalize_eventbrite,
    "scraped": normalize_scraped,
}


def normalize(payload: ProviderPayload) -> RawEventRecord:
    """Dispatch *payload* to its provider's normaliser by its tag."""
    return _NORMALIZERS[payload.provider](payload)


_API_SHAPES: Dict[str, Callable[[Dict[str, Any]], ProviderPayload]] = {
    "ticketmaster": TicketmasterPayload.from_api,
    "predicthq": PredictHQPayload.from_api,
    "eventbrite": EventbritePayload.from_api,
}


def payload_from_document(doc: Dict[str, Any]) -> ProviderPayload:
    """Build the tagged payload for a stored event document.

    Documents from API providers keep the provider-native body under
    ``payload``; every other source (scrapers, manual entry) is stored flat.
    Unknown sources fall back to the flat scraped shape.
    """
    source = (doc.get("source") or "scraper").lower()
    native = doc.get("payload")
    if source in _API_SHAPES and isinstance(native, dict):
        return _API_SHAPES[source](native)
    return ScrapedPayload.from_document(doc, source=source)


__all__ = [
    "TicketmasterPayload",
    "PredictHQPayload",
    "EventbritePayload",
    "ScrapedPayload",
    "ProviderPayload",
    "normalize_ticketmaster",
    "normalize_predicthq",
    "normalize_eventbrite",
    "normalize_scraped",
    "normalize",
    "payload_from_document",
]
