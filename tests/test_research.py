import unittest
from unittest.mock import MagicMock
from datetime import date
import json
import os
import sys

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

import requests

from conflict_engine.cache import InMemoryCache
from conflict_engine.errors import ErrorKind
from conflict_engine.services.research import PerplexityResearchService

START = date(2025, 11, 1)
END = date(2025, 11, 30)


def perplexity_response(payload, status_code=200):
    response = MagicMock()
    response.status_code = status_code
    response.text = "error body"
    response.json.return_value = {"choices": [{"message": {"content": payload}}]}
    return response


class TestPerplexityResearchService(unittest.TestCase):

    def setUp(self):
        self.session = MagicMock()
        self.service = PerplexityResearchService(self.session, InMemoryCache(), timeout=2)

    def test_normalises_researched_events(self):
        content = json.dumps(
            {
                "conflictingEvents": [
                    {
                        "name": "Web Summit Prague",
                        "date": "2025-11-12",
                        "location": "O2 Universum",
                        "type": "Technology",
                        "expectedAttendance": "4500",
                        "description": "<think>checking</think>Annual tech gathering.",
                    },
                    {"name": "Mystery Gig", "date": "sometime soon", "location": "Lucerna", "type": "Music"},
                    {"name": "", "date": "2025-11-20", "location": "x", "type": "Music"},
                ]
            }
        )
        self.session.post.return_value = perplexity_response(content)

        records = self.service.research_conflicts("Prague", START, END, "Technology")

        self.assertEqual(len(records), 1)
        record = records[0]
        self.assertEqual(record.source, "perplexity")
        self.assertTrue(record.id.startswith("perplexity:"))
        self.assertEqual(record.date, date(2025, 11, 12))
        self.assertEqual(record.venue, "O2 Universum")
        self.assertEqual(record.city, "Prague")
        self.assertEqual(record.expected_attendees, 4500)
        self.assertNotIn("think", record.description)
        _, kwargs = self.session.post.call_args
        self.assertEqual(kwargs["timeout"], 2)

    def test_fenced_json_is_accepted(self):
        content = '```json\n{"conflictingEvents": [{"name": "Signal Festival", "date": "2025-11-05", "location": "Old Town", "type": "Arts"}]}\n```'
        self.session.post.return_value = perplexity_response(content)
        records = self.service.research_conflicts("Prague", START, END, "Technology")
        self.assertEqual([r.title for r in records], ["Signal Festival"])

    def test_http_error_yields_empty_list(self):
        self.session.post.return_value = perplexity_response("", status_code=500)
        result = self.service.research_conflicts_result("Prague", START, END, "Technology")
        self.assertFalse(result.ok)
        self.assertEqual(result.error_kind, ErrorKind.UPSTREAM)
        self.assertEqual(result.value, [])

    def test_timeout_is_classified(self):
        self.session.post.side_effect = requests.Timeout("read timed out")
        result = self.service.research_conflicts_result("Prague", START, END, "Technology")
        self.assertEqual(result.error_kind, ErrorKind.TIMEOUT)
        self.assertEqual(self.service.research_conflicts("Prague", START, END, "Technology"), [])

    def test_unparseable_answer_is_malformed(self):
        self.session.post.return_value = perplexity_response("I could not find anything.")
        result = self.service.research_conflicts_result("Prague", START, END, "Technology")
        self.assertEqual(result.error_kind, ErrorKind.MALFORMED_RESPONSE)

    def test_results_are_cached(self):
        content = json.dumps(
            {"conflictingEvents": [{"name": "Hockey Derby", "date": "2025-11-08", "location": "O2 Arena", "type": "Sports"}]}
        )
        self.session.post.return_value = perplexity_response(content)
        first = self.service.research_conflicts("Prague", START, END, "Technology")
        second = self.service.research_conflicts("PRAGUE", START, END, "technology")
        self.assertEqual(first, second)
        self.assertEqual(self.session.post.call_count, 1)

    def test_request_carries_schema_and_dates(self):
        body = self.service.build_request("Prague", START, END, "Technology")
        prompt = body["messages"][1]["content"]
        self.assertIn("2025-11-01", prompt)
        self.assertIn("2025-11-30", prompt)
        self.assertEqual(body["response_format"]["type"], "json_schema")


if __name__ == '__main__':
    unittest.main()
