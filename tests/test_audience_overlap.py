import unittest
from unittest.mock import MagicMock
from datetime import date, timedelta
import json
import os
import sys

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from conflict_engine.cache import InMemoryCache
from conflict_engine.errors import ErrorKind, ExternalServiceError
from conflict_engine.models import Event
from conflict_engine.services.audience_overlap import (
    OVERLAP_CEILING,
    AudienceOverlapEstimator,
    OpenAIOverlapStrategy,
    RuleBasedOverlapStrategy,
    estimate_batch_cost,
    overlap_cache_key,
    significance_boost,
    temporal_boost,
)

PLANNED = Event(
    id="planned",
    title="Prague AI Summit",
    category="Technology",
    subcategory="AI-ML",
    city="Prague",
    date=date(2025, 11, 15),
    expected_attendees=400,
)


def competitor(id, days=0, category="Technology", subcategory="AI-ML", attendees=None, venue=None):
    return Event(
        id=id,
        title=f"Competitor {id}",
        category=category,
        subcategory=subcategory,
        city="Prague",
        date=PLANNED.date + timedelta(days=days),
        expected_attendees=attendees,
        venue=venue,
    )


def openai_response(content):
    response = MagicMock()
    response.choices = [MagicMock()]
    response.choices[0].message.content = content
    return response


class TestAdjustments(unittest.TestCase):

    def test_temporal_boost_table(self):
        self.assertEqual(temporal_boost(0), 0.18)
        self.assertEqual(temporal_boost(3), 0.13)
        self.assertEqual(temporal_boost(7), 0.08)
        self.assertEqual(temporal_boost(30), 0.04)
        self.assertEqual(temporal_boost(90), 0.01)
        self.assertEqual(temporal_boost(91), 0.0)

    def test_significance_boost_table(self):
        self.assertEqual(significance_boost(15000), 0.13)
        self.assertEqual(significance_boost(1000), 0.08)
        self.assertEqual(significance_boost(100), 0.03)
        self.assertEqual(significance_boost(99), 0.0)
        self.assertEqual(significance_boost(None), 0.0)

    def test_cache_key_ignores_dates(self):
        self.assertEqual(
            overlap_cache_key("Technology", "AI-ML", "Music", None),
            "overlap:Technology:AI-ML|Music:null",
        )

    def test_batch_cost_estimate(self):
        self.assertEqual(estimate_batch_cost(10), 0.006)


class TestRuleBasedEstimation(unittest.TestCase):

    def setUp(self):
        self.estimator = AudienceOverlapEstimator(InMemoryCache())

    def test_same_subcategory_same_day_major_event(self):
        prediction = self.estimator.predict_overlap(PLANNED, competitor("big", attendees=15000))
        self.assertGreaterEqual(prediction.overlap_score, 0.90)
        self.assertLessEqual(prediction.overlap_score, 0.95)
        self.assertEqual(prediction.calculation_method, "rule_based")

    def test_same_day_reason_is_added_once(self):
        prediction = self.estimator.predict_overlap(PLANNED, competitor("x"))
        timing = [line for line in prediction.reasoning if "same day" in line]
        self.assertEqual(len(timing), 1)

    def test_unrelated_categories_score_low(self):
        prediction = self.estimator.predict_overlap(
            PLANNED, competitor("y", days=40, category="Sports", subcategory=None)
        )
        self.assertAlmostEqual(prediction.overlap_score, 0.11)

    def test_overlap_never_exceeds_ceiling(self):
        for days in (0, 1, 5, 20, 60, 200):
            for attendees in (None, 50, 500, 5000, 50000):
                for category, sub in (("Technology", "AI-ML"), ("Technology", None), ("Business", None), ("Music", "Rock")):
                    event = competitor(f"{days}-{attendees}-{category}", days, category, sub, attendees)
                    score = self.estimator.predict_overlap(PLANNED, event).overlap_score
                    self.assertLessEqual(score, OVERLAP_CEILING)
                    self.assertGreaterEqual(score, 0.0)

    def test_overlap_is_non_increasing_with_distance(self):
        scores = [
            self.estimator.predict_overlap(PLANNED, competitor(f"d{d}", days=d, subcategory="Data Science", attendees=200)).overlap_score
            for d in (0, 1, 3, 4, 7, 8, 30, 31, 90, 91, 365)
        ]
        self.assertEqual(scores, sorted(scores, reverse=True))

    def test_rule_confidence_grows_with_detail(self):
        strategy = RuleBasedOverlapStrategy()
        bare = strategy.predict(PLANNED.with_changes(subcategory=None), competitor("a", subcategory=None))
        rich = strategy.predict(PLANNED.with_changes(venue="Hall"), competitor("b", venue="Arena"))
        self.assertEqual(bare.confidence, 0.5)
        self.assertEqual(rich.confidence, 0.8)

    def test_cache_stores_base_prediction_only(self):
        cache = InMemoryCache()
        estimator = AudienceOverlapEstimator(cache)
        near = estimator.predict_overlap(PLANNED, competitor("near", days=0, attendees=5000))
        far = estimator.predict_overlap(PLANNED, competitor("far", days=200))
        stored = cache.get(overlap_cache_key("Technology", "AI-ML", "Technology", "AI-ML"))
        self.assertEqual(stored["overlap_score"], 0.92)
        self.assertGreater(near.overlap_score, far.overlap_score)
        self.assertEqual(far.overlap_score, 0.92)

    def test_batch_returns_every_id(self):
        events = [competitor(str(i), days=i) for i in range(5)]
        predictions = self.estimator.predict_overlap_batch(PLANNED, events)
        self.assertEqual(set(predictions), {e.id for e in events})


class TestAIEstimation(unittest.TestCase):

    def setUp(self):
        self.client = MagicMock()
        self.strategy = OpenAIOverlapStrategy(self.client, model="test-model", timeout=1)
        self.cache = InMemoryCache()
        self.estimator = AudienceOverlapEstimator(self.cache, ai_strategy=self.strategy)
        self.events = [
            competitor("a", category="Music", subcategory="Rock"),
            competitor("b", category="Business", subcategory=None),
        ]

    def test_missing_id_falls_back_per_event(self):
        self.client.chat.completions.create.return_value = openai_response(
            json.dumps({"results": {"a": {"overlapScore": 0.3, "confidence": 0.7, "reasoning": ["Different interests"]}}})
        )
        result = self.estimator.predict_overlap_batch_result(PLANNED, self.events)
        self.assertTrue(result.ok)
        self.assertEqual(result.value["a"].calculation_method, "ai_powered")
        self.assertEqual(result.value["b"].calculation_method, "rule_based")
        self.assertEqual(self.client.chat.completions.create.call_count, 1)

    def test_failed_call_degrades_whole_batch_to_rules(self):
        self.client.chat.completions.create.side_effect = RuntimeError("rate limited")
        result = self.estimator.predict_overlap_batch_result(PLANNED, self.events)
        self.assertFalse(result.ok)
        self.assertEqual(result.error_kind, ErrorKind.UPSTREAM)
        self.assertEqual({p.calculation_method for p in result.value.values()}, {"rule_based"})
        self.assertEqual(set(result.value), {"a", "b"})

    def test_unparseable_response_is_malformed(self):
        self.client.chat.completions.create.return_value = openai_response("Sorry, I cannot help with that.")
        with self.assertRaises(ExternalServiceError) as ctx:
            self.strategy.analyze_batch(PLANNED, self.events)
        self.assertEqual(ctx.exception.kind, ErrorKind.MALFORMED_RESPONSE)

    def test_ai_values_are_clamped_and_cached(self):
        self.client.chat.completions.create.return_value = openai_response(
            json.dumps({"results": {"a": {"overlapScore": 1.7, "confidence": "high"}, "b": {"overlapScore": 0.2}}})
        )
        predictions = self.estimator.predict_overlap_batch(PLANNED, self.events)
        self.assertLessEqual(predictions["a"].overlap_score, OVERLAP_CEILING)
        cached = self.cache.get(overlap_cache_key("Technology", "AI-ML", "Music", "Rock"))
        self.assertEqual(cached["overlap_score"], 1.0)
        self.assertEqual(cached["confidence"], 0.5)
        self.assertEqual(cached["calculation_method"], "ai_powered")

    def test_cached_pairs_skip_the_ai_call(self):
        self.client.chat.completions.create.return_value = openai_response(
            json.dumps({"results": {"a": {"overlapScore": 0.3}, "b": {"overlapScore": 0.2}}})
        )
        self.estimator.predict_overlap_batch(PLANNED, self.events)
        self.estimator.predict_overlap_batch(PLANNED, self.events)
        self.assertEqual(self.client.chat.completions.create.call_count, 1)

    def test_prompt_lists_every_competing_event(self):
        prompt = self.strategy.build_prompt(PLANNED, self.events)
        self.assertIn('"id": "a"', prompt)
        self.assertIn('"id": "b"', prompt)
        self.assertIn("BASE overlap", prompt)


if __name__ == '__main__':
    unittest.main()
