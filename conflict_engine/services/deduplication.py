"""Collapse near-duplicate events reported by several sources.

Events are fingerprinted from ``(title, date, city)``; exact fingerprint
matches are compared first, then remaining candidates on the same or an
adjacent day are compared pairwise with a weighted fuzzy similarity.
Pairwise scores are kept in a bounded LRU cache so repeated analyses of
the same window stay cheap.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from difflib import SequenceMatcher
from typing import Any, Dict, List, Optional, Sequence, Tuple

from ..cache import InMemoryCache
from ..config import DEDUP_CACHE_SIZE, DEDUP_SIMILARITY_THRESHOLD
from ..models import DeduplicationResult, DuplicateGroup, Event, EventLike, as_event
from ..utils.datetime_utils import days_between_spans
from ..utils.text_cleaning import normalize_text

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Similarity weights
# ---------------------------------------------------------------------------
TITLE_WEIGHT: float = 0.60
DATE_WEIGHT: float = 0.15
CITY_WEIGHT: float = 0.10
VENUE_WEIGHT: float = 0.15
# Titles less similar than this never describe the same event.
TITLE_FLOOR: float = 0.50
# Candidates further apart than this are never compared.
MAX_DAY_GAP: int = 1

SOURCE_PRIORITY: Dict[str, int] = {
    "ticketmaster": 3,
    "predicthq": 2,
    "eventbrite": 1,
    "goout": 1,
    "brnoexpat": 1,
    "firecrawl": 1,
    "scraper": 1,
    "perplexity": 1,
    "manual": 0,
}


def fingerprint(event: Event) -> str:
    return "|".join(
        (
            normalize_text(event.title),
            event.date.isoformat() if event.date else "",
            normalize_text(event.city),
        )
    )


def _signature(event: Event) -> str:
    return "\x1f".join(
        (
            fingerprint(event),
            event.end_date.isoformat() if event.end_date else "",
            normalize_text(event.venue),
        )
    )


def completeness_score(event: Event) -> float:
    """Rank how complete a record is: venue, image and description dominate."""
    score = 0.0
    if event.venue:
        score += 100
    if event.image_url:
        score += 50
    if event.description:
        score += len(event.description) * 0.1
    if event.url:
        score += 25
    if event.expected_attendees is not None:
        score += 10
    return score


def _source_priority(event: Event) -> int:
    return max((SOURCE_PRIORITY.get(s.lower(), 1) for s in event.sources), default=0)


def _date_score(a: Event, b: Event) -> float:
    gap = days_between_spans(a.date, a.end_date, b.date, b.end_date)  # type: ignore[arg-type]
    if gap == 0:
        return 1.0
    return 0.5 if gap <= MAX_DAY_GAP else 0.0


def _within_comparison_window(a: Event, b: Event) -> bool:
    return _date_score(a, b) > 0.0


def _ratio(a: str, b: str) -> float:
    if not a or not b:
        return 0.0
    if a == b:
        return 1.0
    return SequenceMatcher(None, a, b).ratio()


@dataclass(eq=False)
class _Group:
    """A canonical event and the input records folded into it so far."""

    primary: Event
    index: int
    record: EventLike
    members: List[Tuple[EventLike, float]] = field(default_factory=list)

    def absorb(self, other: "_Group", score: float) -> None:
        self.primary = _merge(self.primary, [other.primary])
        self.members.append((other.record, score))
        self.members.extend(other.members)
        self.index = min(self.index, other.index)


class EventDeduplicator:
    """Fuzzy duplicate detection across event sources.

    Parameters
    ----------
    threshold
        Minimum weighted similarity for two records to be merged.
    cache_size
        Capacity of the pairwise similarity LRU cache.
    """

    def __init__(
        self,
        threshold: float = DEDUP_SIMILARITY_THRESHOLD,
        cache_size: int = DEDUP_CACHE_SIZE,
    ) -> None:
        if not 0.0 < threshold <= 1.0:
            raise ValueError("threshold must be in (0, 1]")
        self.threshold = threshold
        self._pair_cache = InMemoryCache(max_entries=cache_size, lru=True)

    # ------------------------------------------------------------------
    # Pairwise similarity
    # ------------------------------------------------------------------
    def similarity(self, a: Event, b: Event) -> float:
        """Weighted similarity of two well-formed events in [0, 1]."""
        key_a, key_b = sorted((_signature(a), _signature(b)))
        cache_key = f"{key_a}\x1e{key_b}"
        cached = self._pair_cache.get(cache_key)
        if cached is not None:
            return cached
        value = self._compute_similarity(a, b)
        self._pair_cache.set(cache_key, value)
        return value

    def _compute_similarity(self, a: Event, b: Event) -> float:
        title = _ratio(normalize_text(a.title), normalize_text(b.title))
        if title < TITLE_FLOOR:
            return round(title * TITLE_WEIGHT, 4)

        components = [
            (title, TITLE_WEIGHT),
            (_date_score(a, b), DATE_WEIGHT),
            (1.0 if normalize_text(a.city) == normalize_text(b.city) else 0.0, CITY_WEIGHT),
        ]
        if a.venue and b.venue:
            components.append((_ratio(normalize_text(a.venue), normalize_text(b.venue)), VENUE_WEIGHT))

        total_weight = sum(w for _, w in components)
        return round(sum(s * w for s, w in components) / total_weight, 4)

    def _safe_similarity(self, a: Event, b: Event) -> float:
        try:
            return self.similarity(a, b)
        except Exception as exc:  # noqa: BLE001 – a failed comparison means "no merge"
            logger.warning("Similarity check failed for %s / %s: %s", a.id, b.id, exc)
            return 0.0

    # ------------------------------------------------------------------
    # Grouping
    # ------------------------------------------------------------------
    @staticmethod
    def _ordering_key(group: _Group) -> Tuple[Any, ...]:
        event = group.primary
        created = event.created_at.timestamp() if event.created_at else float("inf")
        return (-completeness_score(event), -_source_priority(event), created, group.index)

    def deduplicate(self, events: Sequence[EventLike]) -> DeduplicationResult:
        """Group duplicates and return one canonical event per group.

        Each candidate is compared against the merged canonical of a group,
        and grouping repeats over the canonicals until a pass merges nothing,
        so deduplicating the output again removes no further events.

        Malformed records (no title or no date) are never compared; they are
        passed through unmerged and flagged ``low_confidence``.  Output order
        follows the first input position of each group.
        """
        started = time.perf_counter()
        hits_before, misses_before = self._pair_cache.hits, self._pair_cache.misses

        passthrough: List[Tuple[int, Event]] = []
        candidates: List[Tuple[int, Event, EventLike]] = []
        for index, record in enumerate(events):
            event = as_event(record)
            if event.is_well_formed:
                candidates.append((index, event, record))
            else:
                logger.warning("Event %s lacks a title or date – passing through unmerged", event.id)
                passthrough.append((index, event.with_changes(low_confidence=True)))

        groups = [_Group(primary=event, index=index, record=record) for index, event, record in candidates]
        while True:
            count = len(groups)
            groups = self._group_pass(groups)
            if len(groups) == count:
                break

        canonical: List[Tuple[int, Event]] = [(g.index, g.primary) for g in groups]
        unique = [e for _, e in sorted(canonical + passthrough, key=lambda item: item[0])]

        duplicate_groups = [
            DuplicateGroup(primary=g.primary, duplicates=tuple(g.members)) for g in groups if g.members
        ]
        removed = sum(len(g.members) for g in groups)
        elapsed_ms = (time.perf_counter() - started) * 1000

        result = DeduplicationResult(
            unique_events=unique,
            duplicates_removed=removed,
            duplicate_groups=duplicate_groups,
            cache_hits=self._pair_cache.hits - hits_before,
            cache_misses=self._pair_cache.misses - misses_before,
            processing_time_ms=round(elapsed_ms, 3),
        )
        logger.info(
            "Deduplicated %d events → %d unique (%d removed) in %.1f ms",
            len(events),
            len(unique),
            removed,
            elapsed_ms,
        )
        return result

    def _group_pass(self, entries: List[_Group]) -> List[_Group]:
        groups: List[_Group] = []
        by_fingerprint: Dict[str, List[_Group]] = {}
        for entry in sorted(entries, key=self._ordering_key):
            key = fingerprint(entry.primary)
            match = self._find_group(entry.primary, groups, by_fingerprint.get(key, []))
            if match is None:
                groups.append(entry)
                by_fingerprint.setdefault(key, []).append(entry)
                continue
            group, score = match
            group.absorb(entry, score)
        return sorted(groups, key=lambda g: g.index)

    def _find_group(
        self,
        event: Event,
        groups: List[_Group],
        same_fingerprint: List[_Group],
    ) -> Optional[Tuple[_Group, float]]:
        # exact fingerprint buckets first, then everything on an adjacent day
        for group in same_fingerprint:
            score = self._safe_similarity(group.primary, event)
            if score >= self.threshold:
                return group, score
        for group in groups:
            if group in same_fingerprint or not _within_comparison_window(group.primary, event):
                continue
            score = self._safe_similarity(group.primary, event)
            if score >= self.threshold:
                return group, score
        return None


def _merge(primary: Event, duplicates: List[Event]) -> Event:
    """Fold the duplicates' sources and missing details into the primary."""
    if not duplicates:
        return primary

    sources: List[str] = list(primary.sources)
    for dup in duplicates:
        sources.extend(s for s in dup.sources if s not in sources)

    def first(attr: str) -> Optional[Any]:
        value = getattr(primary, attr)
        if value:
            return value
        return next((getattr(d, attr) for d in duplicates if getattr(d, attr)), None)

    attendance = [e.expected_attendees for e in [primary, *duplicates] if e.expected_attendees is not None]
    return primary.with_changes(
        sources=tuple(sources),
        venue=first("venue"),
        description=first("description"),
        image_url=first("image_url"),
        url=first("url"),
        subcategory=first("subcategory"),
        expected_attendees=max(attendance) if attendance else None,
    )


def dedup_metrics(result: DeduplicationResult) -> Dict[str, Any]:
    """Summarise a deduplication run for logging and reporting."""
    total = len(result.unique_events) + result.duplicates_removed
    lookups = result.cache_hits + result.cache_misses
    sources = sorted(
        {s for g in result.duplicate_groups for s in g.primary.sources}
    )
    return {
        "total_events": total,
        "unique_events": len(result.unique_events),
        "duplicates_removed": result.duplicates_removed,
        "duplicate_groups": len(result.duplicate_groups),
        "deduplication_rate": round(result.duplicates_removed / total, 4) if total else 0.0,
        "sources_with_duplicates": sources,
        "cache_hit_rate": round(result.cache_hits / lookups, 4) if lookups else 0.0,
        "processing_time_ms": result.processing_time_ms,
    }


__all__ = [
    "EventDeduplicator",
    "fingerprint",
    "completeness_score",
    "dedup_metrics",
    "SOURCE_PRIORITY",
]
