import unittest
from unittest.mock import patch
from datetime import date, datetime
import os
import sys

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from conflict_engine.models import Event, RawEventRecord
from conflict_engine.services.deduplication import (
    EventDeduplicator,
    completeness_score,
    dedup_metrics,
    fingerprint,
)


def raw(id, source, title="Tech Conference 2025", day=date(2025, 11, 15), **extra):
    return RawEventRecord(
        id=id,
        source=source,
        title=title,
        category="Technology",
        city="Prague",
        date=day,
        **extra,
    )


class TestDeduplication(unittest.TestCase):

    def setUp(self):
        self.dedup = EventDeduplicator(threshold=0.8, cache_size=100)
        self.prague = [
            raw("tm:1", "ticketmaster", venue="Prague Congress Centre"),
            raw("phq:1", "predicthq", venue="Prague Congress Centre", expected_attendees=3000),
            raw("eb:1", "eventbrite", venue="Prague Congress Centre", image_url="https://img.example/x.jpg"),
        ]

    def test_three_sources_collapse_to_one_event(self):
        result = self.dedup.deduplicate(self.prague)
        self.assertEqual(len(result.unique_events), 1)
        self.assertEqual(result.duplicates_removed, 2)
        self.assertEqual(len(result.duplicate_groups), 1)

        canonical = result.unique_events[0]
        self.assertEqual(set(canonical.sources), {"ticketmaster", "predicthq", "eventbrite"})
        self.assertEqual(canonical.expected_attendees, 3000)
        self.assertEqual(canonical.image_url, "https://img.example/x.jpg")

    def test_every_duplicate_meets_threshold(self):
        result = self.dedup.deduplicate(self.prague)
        for group in result.duplicate_groups:
            for _, similarity in group.duplicates:
                self.assertGreaterEqual(similarity, 0.8)
                self.assertLessEqual(similarity, 1.0)

    def test_most_complete_record_becomes_primary(self):
        result = self.dedup.deduplicate(self.prague)
        # the image gives the Eventbrite record the highest completeness score
        self.assertEqual(result.unique_events[0].id, "eb:1")

    def test_source_priority_breaks_completeness_ties(self):
        events = [
            raw("eb:2", "eventbrite", venue="Forum Karlín"),
            raw("tm:2", "ticketmaster", venue="Forum Karlín"),
        ]
        result = self.dedup.deduplicate(events)
        self.assertEqual(result.unique_events[0].id, "tm:2")

    def test_earliest_created_breaks_remaining_ties(self):
        events = [
            raw("g:1", "goout", created_at=datetime(2025, 6, 2)),
            raw("g:2", "goout", created_at=datetime(2025, 6, 1)),
        ]
        self.assertEqual(self.dedup.deduplicate(events).unique_events[0].id, "g:2")

    def test_idempotent_on_deduplicated_output(self):
        events = self.prague + [
            raw("tm:9", "ticketmaster", title="Jazz Night at Reduta", venue="Reduta"),
            raw("go:9", "goout", title="Jazz night - Reduta", venue="Reduta Jazz Club"),
            raw("x:1", "manual", title="Prague Marathon", day=date(2025, 11, 16)),
        ]
        first = self.dedup.deduplicate(events)
        second = self.dedup.deduplicate(first.unique_events)
        self.assertEqual(second.duplicates_removed, 0)
        self.assertEqual(second.unique_events, first.unique_events)

    def test_idempotent_when_merge_fills_in_a_venue(self):
        # the long description outranks the venue, so the primary borrows its venue from a duplicate
        events = [
            raw("a", "manual", description="x" * 2000),
            raw("b", "manual", venue="Hall X"),
            raw("c", "manual", title="Tech Conference 2025 in Prague", day=date(2025, 11, 16), venue="Hall X"),
        ]
        first = self.dedup.deduplicate(events)
        self.assertEqual(first.unique_events[0].id, "a")
        self.assertEqual(first.unique_events[0].venue, "Hall X")

        second = self.dedup.deduplicate(first.unique_events)
        self.assertEqual(second.duplicates_removed, 0)
        self.assertEqual(second.unique_events, first.unique_events)

    def test_merged_groups_report_every_absorbed_record(self):
        result = self.dedup.deduplicate(self.prague)
        absorbed = {record.id for group in result.duplicate_groups for record, _ in group.duplicates}
        self.assertEqual(absorbed, {"tm:1", "phq:1"})

    def test_different_events_stay_separate(self):
        events = [
            raw("a", "manual", title="Tech Conference 2025"),
            raw("b", "manual", title="Prague Food Festival"),
            raw("c", "manual", title="Tech Conference 2025", day=date(2025, 12, 20)),
        ]
        result = self.dedup.deduplicate(events)
        self.assertEqual(len(result.unique_events), 3)
        self.assertEqual(result.duplicates_removed, 0)

    def test_malformed_records_pass_through_with_low_confidence(self):
        events = [raw("ok", "manual"), raw("no-date", "manual", day=None), raw("no-title", "manual", title="  ")]
        result = self.dedup.deduplicate(events)
        self.assertEqual([e.id for e in result.unique_events], ["ok", "no-date", "no-title"])
        flags = {e.id: e.low_confidence for e in result.unique_events}
        self.assertEqual(flags, {"ok": False, "no-date": True, "no-title": True})

    def test_comparison_error_degrades_to_no_merge(self):
        with patch.object(EventDeduplicator, "_compute_similarity", side_effect=RuntimeError("boom")):
            result = EventDeduplicator().deduplicate(self.prague)
        self.assertEqual(len(result.unique_events), 3)
        self.assertEqual(result.duplicates_removed, 0)

    def test_pairwise_cache_hits_on_repeat_run(self):
        self.dedup.deduplicate(self.prague)
        second = self.dedup.deduplicate(self.prague)
        self.assertGreater(second.cache_hits, 0)
        self.assertEqual(second.cache_misses, 0)

    def test_rejects_invalid_threshold(self):
        with self.assertRaises(ValueError):
            EventDeduplicator(threshold=0)


class TestDeduplicationHelpers(unittest.TestCase):

    def test_fingerprint_normalises_title_and_city(self):
        a = Event(id="a", title="Tech Conference: 2025!", category="Technology", city="PRAGUE", date=date(2025, 11, 15))
        b = Event(id="b", title="tech conference 2025", category="Technology", city="prague", date=date(2025, 11, 15))
        self.assertEqual(fingerprint(a), fingerprint(b))

    def test_completeness_prefers_venue_and_image(self):
        bare = Event(id="a", title="t", category="c", city="x", date=date(2025, 1, 1))
        rich = bare.with_changes(venue="Hall", image_url="https://i", description="d" * 100)
        self.assertEqual(completeness_score(bare), 0.0)
        self.assertAlmostEqual(completeness_score(rich), 160.0)

    def test_dedup_metrics(self):
        dedup = EventDeduplicator()
        result = dedup.deduplicate(
            [raw("tm:1", "ticketmaster", venue="Hall"), raw("eb:1", "eventbrite", venue="Hall")]
        )
        metrics = dedup_metrics(result)
        self.assertEqual(metrics["total_events"], 2)
        self.assertEqual(metrics["unique_events"], 1)
        self.assertEqual(metrics["deduplication_rate"], 0.5)
        self.assertEqual(metrics["sources_with_duplicates"], ["eventbrite", "ticketmaster"])


if __name__ == '__main__':
    unittest.main()
