import unittest
from unittest.mock import MagicMock
from datetime import date
import os
import sys

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from pymongo.errors import ExecutionTimeout, ServerSelectionTimeoutError

from conflict_engine.errors import ErrorKind, ExternalServiceError
from conflict_engine.models import RawEventRecord
from conflict_engine.providers.normalization import ScrapedPayload
from conflict_engine.services.event_store import InMemoryEventStore, MongoEventStore


def record(id, day, city="Prague", category="Technology", attendees=None, end=None):
    return RawEventRecord(
        id=id,
        source="manual",
        title=f"Event {id}",
        category=category,
        city=city,
        date=day,
        end_date=end,
        expected_attendees=attendees,
    )


class TestInMemoryEventStore(unittest.TestCase):

    def setUp(self):
        self.store = InMemoryEventStore(
            [
                record("a", date(2025, 11, 15)),
                record("b", date(2025, 11, 15), city="Brno"),
                record("c", date(2025, 12, 1)),
                record("d", date(2025, 11, 10), end=date(2025, 11, 14)),
                record("e", date(2025, 11, 16), category="Sports"),
                record("f", date(2025, 11, 16), attendees=20),
            ]
        )

    def test_filters_city_case_insensitively_and_window(self):
        found = self.store.fetch_competing_events("prague", date(2025, 11, 14), date(2025, 11, 16))
        self.assertEqual(sorted(r.id for r in found), ["a", "d", "e", "f"])
        self.assertEqual(self.store.calls, 1)

    def test_optional_category_filter(self):
        found = self.store.fetch_competing_events("Prague", date(2025, 11, 14), date(2025, 11, 16), "sports")
        self.assertEqual([r.id for r in found], ["e"])

    def test_unknown_attendance_passes_min_attendees(self):
        found = self.store.fetch_competing_events("Prague", date(2025, 11, 15), date(2025, 11, 16), None, 50)
        self.assertEqual(sorted(r.id for r in found), ["a", "e"])

    def test_builds_from_provider_payloads(self):
        store = InMemoryEventStore.from_payloads(
            [
                ScrapedPayload(source="goout", id="7", title=" Jazz Night ", date="2025-11-15", city="Prague"),
                ScrapedPayload(source="goout", id="8", title="Brno Jazz", date="2025-11-15", city="Brno"),
            ]
        )
        found = store.fetch_competing_events("Prague", date(2025, 11, 15), date(2025, 11, 15))
        self.assertEqual([(r.id, r.title) for r in found], [("goout:7", "Jazz Night")])


class TestMongoEventStore(unittest.TestCase):

    def setUp(self):
        self.collection = MagicMock()
        self.store = MongoEventStore(self.collection, timeout_ms=250)

    def test_query_shape(self):
        query = self.store.build_query("Prague", date(2025, 11, 1), date(2025, 11, 30), "Technology", 50)
        clauses = query["$and"]
        self.assertEqual(clauses[0]["city"]["$options"], "i")
        self.assertEqual(clauses[1], {"date": {"$lte": "2025-11-30"}})
        self.assertIn({"category": "Technology"}, clauses)
        self.assertIn({"expected_attendees": None}, clauses[-1]["$or"])

    def test_fetch_normalises_documents(self):
        cursor = self.collection.find.return_value.sort.return_value.max_time_ms.return_value
        cursor.__iter__.return_value = iter(
            [
                {"_id": "1", "source": "goout", "title": "Jazz", "date": "2025-11-15", "city": "Prague"},
                {"_id": "2", "source": "goout", "title": "Blues", "date": "2025-11-15", "city": "Prague",
                 "end_date": "not-a-date", "expected_attendees": "many"},
            ]
        )
        records = self.store.fetch_competing_events("Prague", date(2025, 11, 1), date(2025, 11, 30))
        self.assertEqual([r.id for r in records], ["goout:1", "goout:2"])
        self.assertIsNone(records[1].end_date)
        self.assertIsNone(records[1].expected_attendees)
        self.collection.find.return_value.sort.return_value.max_time_ms.assert_called_once_with(250)

    def test_timeout_is_reported_as_external_error(self):
        self.collection.find.return_value.sort.return_value.max_time_ms.side_effect = ExecutionTimeout(
            "operation exceeded time limit, timed out"
        )
        with self.assertRaises(ExternalServiceError) as ctx:
            self.store.fetch_competing_events("Prague", date(2025, 11, 1), date(2025, 11, 30))
        self.assertEqual(ctx.exception.kind, ErrorKind.TIMEOUT)

    def test_unreachable_server_is_upstream_error(self):
        self.collection.find.side_effect = ServerSelectionTimeoutError("No servers available")
        with self.assertRaises(ExternalServiceError) as ctx:
            self.store.fetch_competing_events("Prague", date(2025, 11, 1), date(2025, 11, 30))
        self.assertEqual(ctx.exception.kind, ErrorKind.UPSTREAM)


if __name__ == '__main__':
    unittest.main()
