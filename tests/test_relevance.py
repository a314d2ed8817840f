import unittest
from unittest.mock import MagicMock
from datetime import date
import json
import os
import sys

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from conflict_engine.errors import ErrorKind
from conflict_engine.models import Event
from conflict_engine.services.relevance import EventRelevanceFilter, rule_relevant

DAY = date(2025, 11, 15)
PLANNED = Event(id="planned", title="Prague AI Summit", category="Technology", city="Prague", date=DAY)


def event(id, category):
    return Event(id=id, title=f"Event {id}", category=category, city="Prague", date=DAY)


def openai_response(results):
    response = MagicMock()
    response.choices = [MagicMock()]
    response.choices[0].message.content = json.dumps({"results": results})
    return response


class TestEventRelevanceFilter(unittest.TestCase):

    def setUp(self):
        self.client = MagicMock()
        self.filter = EventRelevanceFilter(self.client, model="test-model", timeout=1)
        self.events = [event("conf", "Technology"), event("food", "Food"), event("biz", "Business")]

    def test_drops_confidently_irrelevant_events(self):
        self.client.chat.completions.create.return_value = openai_response(
            [
                {"eventId": "conf", "isRelevant": True, "confidence": 0.9},
                {"eventId": "food", "isRelevant": False, "confidence": 0.8, "reasoning": "Different audience"},
                {"eventId": "biz", "isRelevant": True, "confidence": 0.7},
            ]
        )
        kept = self.filter.filter_relevant(PLANNED, self.events)
        self.assertEqual([e.id for e in kept], ["conf", "biz"])

    def test_low_confidence_verdict_keeps_event(self):
        self.client.chat.completions.create.return_value = openai_response(
            [{"eventId": "food", "isRelevant": False, "confidence": 0.4}]
        )
        kept = self.filter.filter_relevant(PLANNED, [self.events[1]])
        self.assertEqual([e.id for e in kept], ["food"])

    def test_missing_verdict_uses_category_rule(self):
        self.client.chat.completions.create.return_value = openai_response([])
        kept = self.filter.filter_relevant(PLANNED, self.events)
        self.assertEqual([e.id for e in kept], ["conf", "biz"])

    def test_failure_keeps_every_event(self):
        self.client.chat.completions.create.side_effect = RuntimeError("service unavailable")
        result = self.filter.filter_relevant_result(PLANNED, self.events)
        self.assertFalse(result.ok)
        self.assertEqual(result.error_kind, ErrorKind.UPSTREAM)
        self.assertEqual(result.value, self.events)

    def test_empty_input_skips_the_call(self):
        self.assertEqual(self.filter.filter_relevant(PLANNED, []), [])
        self.client.chat.completions.create.assert_not_called()

    def test_prompt_lists_event_ids(self):
        prompt = self.filter.build_prompt(PLANNED, self.events)
        for e in self.events:
            self.assertIn(f'"eventId": "{e.id}"', prompt)

    def test_rule_relevance(self):
        self.assertTrue(rule_relevant(PLANNED, event("a", "Business")))
        self.assertTrue(rule_relevant(PLANNED, event("b", "Education")))
        self.assertFalse(rule_relevant(PLANNED, event("c", "Sports")))


if __name__ == '__main__':
    unittest.main()
