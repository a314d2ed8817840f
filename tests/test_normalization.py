import unittest
from datetime import date
import os
import sys

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from conflict_engine.providers import (
    EventbritePayload,
    PredictHQPayload,
    ScrapedPayload,
    TicketmasterPayload,
    normalize,
    payload_from_document,
)


class TestProviderNormalization(unittest.TestCase):

    def test_ticketmaster_api_event(self):
        payload = TicketmasterPayload.from_api(
            {
                "id": "G5v0Z9",
                "name": " Rock Night ",
                "dates": {"start": {"localDate": "2025-11-15"}},
                "_embedded": {"venues": [{"name": "O2 Arena", "city": {"name": "Prague"}}]},
                "classifications": [{"segment": {"name": "Music"}, "genre": {"name": "Rock"}}],
                "images": [{"url": "https://img.example/1.jpg"}],
                "url": "https://tm.example/e/1",
            }
        )
        record = normalize(payload)
        self.assertEqual(record.id, "ticketmaster:G5v0Z9")
        self.assertEqual(record.source, "ticketmaster")
        self.assertEqual(record.title, "Rock Night")
        self.assertEqual((record.category, record.subcategory), ("Entertainment", "Rock"))
        self.assertEqual(record.city, "Prague")
        self.assertEqual(record.venue, "O2 Arena")
        self.assertEqual(record.date, date(2025, 11, 15))
        self.assertEqual(record.image_url, "https://img.example/1.jpg")

    def test_predicthq_api_event(self):
        payload = PredictHQPayload.from_api(
            {
                "id": "abc",
                "title": "Prague Tech Summit",
                "start": "2025-11-15T09:00:00Z",
                "end": "2025-11-16T18:00:00Z",
                "category": "conferences",
                "phq_attendance": "2500",
                "entities": [{"type": "venue", "name": "Prague Congress Centre"}],
                "geo": {"address": {"locality": "Prague"}},
            }
        )
        record = normalize(payload)
        self.assertEqual(record.id, "predicthq:abc")
        self.assertEqual((record.category, record.subcategory), ("Business", "Conferences"))
        self.assertEqual(record.expected_attendees, 2500)
        self.assertEqual(record.end_date, date(2025, 11, 16))
        self.assertEqual(record.venue, "Prague Congress Centre")

    def test_eventbrite_api_event(self):
        payload = EventbritePayload.from_api(
            {
                "id": "77",
                "name": {"text": "AI Meetup"},
                "start": {"local": "2025-11-15T18:00:00"},
                "venue": {"name": "Impact Hub", "address": {"city": "Prague"}},
                "category": {"name": "Science & Technology"},
                "subcategory": {"name": "AI/ML"},
                "capacity": 120,
                "created": "2025-09-01T10:00:00Z",
            }
        )
        record = normalize(payload)
        self.assertEqual((record.category, record.subcategory), ("Technology", "AI/ML"))
        self.assertEqual(record.expected_attendees, 120)
        self.assertIsNotNone(record.created_at)

    def test_end_date_before_start_is_dropped(self):
        record = normalize(
            ScrapedPayload(source="goout", id="1", title="Odd", date="2025-11-15", end_date="2025-11-10", city="Prague")
        )
        self.assertEqual(record.date, date(2025, 11, 15))
        self.assertIsNone(record.end_date)

    def test_missing_id_gets_stable_synthetic_id(self):
        first = normalize(ScrapedPayload(source="goout", id=None, title="Jazz", date="2025-11-15"))
        second = normalize(ScrapedPayload(source="goout", id=None, title="Jazz", date="2025-11-15"))
        self.assertEqual(first.id, second.id)
        self.assertTrue(first.id.startswith("goout:"))

    def test_payload_from_document_dispatches_on_source(self):
        api_doc = {
            "source": "PredictHQ",
            "payload": {"id": "x1", "title": "Expo", "start": "2025-05-01", "category": "expos"},
        }
        flat_doc = {"source": "brnoexpat", "_id": "d1", "title": "Pub Quiz", "date": "2025-05-01", "city": "Brno"}
        unknown_doc = {"source": "mystery", "title": "Thing", "date": "2025-05-01"}

        self.assertIsInstance(payload_from_document(api_doc), PredictHQPayload)
        flat = payload_from_document(flat_doc)
        self.assertIsInstance(flat, ScrapedPayload)
        self.assertEqual(normalize(flat).id, "brnoexpat:d1")
        self.assertEqual(normalize(payload_from_document(unknown_doc)).source, "mystery")


if __name__ == '__main__':
    unittest.main()
