import unittest
from datetime import date
import os
import random
import sys

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from conflict_engine.models import (
    RISK_LEVELS,
    Event,
    HolidayConflict,
    HolidayImpact,
    OverlapFactors,
    OverlapPrediction,
    SeasonalMultiplier,
)
from conflict_engine.services.scoring import (
    SCORE_CAP,
    ConflictScorer,
    attendee_multiplier,
    classify_risk,
    proximity_weight,
    rank_by_significance,
    significance,
)

DAY = date(2025, 11, 15)
NEUTRAL_SEASON = SeasonalMultiplier(1.0, "medium", 0.3)
NEUTRAL_HOLIDAY = HolidayImpact.neutral()

PLANNED = Event(
    id="planned",
    title="Prague AI Summit",
    category="Technology",
    subcategory="AI-ML",
    city="Prague",
    date=DAY,
    expected_attendees=300,
)


def event(id, category="Technology", venue=None, image=None, description=None, attendees=None):
    return Event(
        id=id,
        title=f"Event {id}",
        category=category,
        city="Prague",
        date=DAY,
        venue=venue,
        image_url=image,
        description=description,
        expected_attendees=attendees,
    )


def prediction(score):
    return OverlapPrediction(score, 0.8, OverlapFactors.uniform(score))


class TestConflictScorer(unittest.TestCase):

    def setUp(self):
        self.scorer = ConflictScorer(max_comparisons=50)

    def test_no_competitors_scores_zero_and_low(self):
        result = self.scorer.score(DAY, PLANNED, [], {}, NEUTRAL_SEASON, NEUTRAL_HOLIDAY)
        self.assertEqual(result.score, 0)
        self.assertEqual(result.risk_level, "Low")
        self.assertEqual(result.reasons, ("No significant conflicts detected",))

    def test_single_exact_category_event(self):
        competing = [event("a", venue="Hall", image="https://i", description="x" * 60)]
        result = self.scorer.score(DAY, PLANNED, competing, {}, NEUTRAL_SEASON, NEUTRAL_HOLIDAY)
        # base 3 + exact 10 + venue 4 + image 2 + description 1
        self.assertEqual(result.score, 20.0)
        self.assertEqual(result.risk_level, "High")

    def test_same_day_competitor_outweighs_one_a_week_away(self):
        near = [event("a", venue="Hall")]
        far = [event("a", venue="Hall").with_changes(date=date(2025, 11, 21))]
        same_day = self.scorer.score(DAY, PLANNED, near, {}, NEUTRAL_SEASON, NEUTRAL_HOLIDAY)
        week_off = self.scorer.score(DAY, PLANNED, far, {}, NEUTRAL_SEASON, NEUTRAL_HOLIDAY)
        # base 3 + exact 10 + venue 4, then 0.3 for a six day gap
        self.assertEqual(same_day.score, 17.0)
        self.assertEqual(week_off.score, 5.1)
        self.assertEqual(week_off.risk_level, "Low")

    def test_unrelated_event_scores_low(self):
        result = self.scorer.score(DAY, PLANNED, [event("a", category="Food")], {}, NEUTRAL_SEASON, NEUTRAL_HOLIDAY)
        self.assertEqual(result.score, 3.0)
        self.assertEqual(result.risk_level, "Low")

    def test_overlap_weights_contribution(self):
        competing = [event("a")]
        low = self.scorer.score(DAY, PLANNED, competing, {"a": prediction(0.1)}, NEUTRAL_SEASON, NEUTRAL_HOLIDAY)
        high = self.scorer.score(DAY, PLANNED, competing, {"a": prediction(0.9)}, NEUTRAL_SEASON, NEUTRAL_HOLIDAY)
        self.assertAlmostEqual(low.score, 7.8)
        self.assertAlmostEqual(high.score, 18.2)

    def test_events_beyond_cutoff_add_flat_points(self):
        scorer = ConflictScorer(max_comparisons=1)
        competing = [event("big", venue="Hall"), event("small", category="Food")]
        result = scorer.score(DAY, PLANNED, competing, {}, NEUTRAL_SEASON, NEUTRAL_HOLIDAY)
        self.assertEqual(result.contributions[0].event_id, "big")
        self.assertTrue(result.contributions[0].fully_scored)
        self.assertFalse(result.contributions[1].fully_scored)
        self.assertEqual(result.contributions[1].points, 2.0)

    def test_seasonal_and_holiday_multipliers_apply_after_cap(self):
        competing = [event("a", category="Food")]
        season = SeasonalMultiplier(1.5, "high", 0.9, ("Peak season",))
        holiday = HolidayImpact(2.0)
        result = self.scorer.score(DAY, PLANNED, competing, {}, season, holiday)
        self.assertEqual(result.score, 9.0)
        self.assertIn("High seasonal demand (1.5x): Peak season", result.reasons)

    def test_large_planned_event_scales_total(self):
        competing = [event("a", category="Food")]
        mid = self.scorer.score(DAY, PLANNED.with_changes(expected_attendees=5000), competing, {}, NEUTRAL_SEASON, NEUTRAL_HOLIDAY)
        big = self.scorer.score(DAY, PLANNED.with_changes(expected_attendees=50000), competing, {}, NEUTRAL_SEASON, NEUTRAL_HOLIDAY)
        self.assertAlmostEqual(mid.score, 3.15)
        self.assertAlmostEqual(big.score, 3.3)

    def test_advanced_mode_rewards_large_competitors(self):
        competing = [event("a", category="Food", attendees=800)]
        basic = self.scorer.score(DAY, PLANNED, competing, {}, NEUTRAL_SEASON, NEUTRAL_HOLIDAY)
        deep = ConflictScorer(advanced=True).score(DAY, PLANNED, competing, {}, NEUTRAL_SEASON, NEUTRAL_HOLIDAY)
        self.assertEqual(deep.score - basic.score, 2.0)

    def test_reason_order_dominant_then_holiday_then_season(self):
        competing = [event("a", venue="Hall"), event("b", category="Food")]
        holiday = HolidayImpact(
            3.5,
            (HolidayConflict("Christmas Eve", "public_holiday", date(2025, 12, 24), 0, 3.5, "high"),),
            "high",
        )
        season = SeasonalMultiplier(2.0, "very_high", 0.9)
        result = self.scorer.score(DAY, PLANNED, competing, {}, season, holiday)
        self.assertTrue(result.reasons[0].startswith("Event a (Technology)"))
        self.assertTrue(result.reasons[1].startswith("Christmas Eve"))
        self.assertTrue(result.reasons[2].startswith("Very high seasonal demand"))

    def test_many_small_events_report_low_competition(self):
        competing = [event(str(i), category="Food") for i in range(5)]
        result = self.scorer.score(DAY, PLANNED, competing, {}, NEUTRAL_SEASON, NEUTRAL_HOLIDAY)
        self.assertEqual(result.reasons, ("Low competition from 5 competing event(s)",))

    def test_score_is_always_bounded(self):
        rng = random.Random(7)
        categories = ["Technology", "Business", "Music", "Sports", "Food"]
        for _ in range(200):
            competing = [
                event(
                    str(i),
                    category=rng.choice(categories),
                    venue=rng.choice([None, "Hall"]),
                    image=rng.choice([None, "https://i"]),
                    attendees=rng.choice([None, 50, 5000, 50000]),
                )
                for i in range(rng.randint(0, 30))
            ]
            predictions = {e.id: prediction(rng.random() * 0.95) for e in competing if rng.random() < 0.7}
            season = SeasonalMultiplier(rng.uniform(0.1, 3.0), "medium", 0.5)
            holiday = HolidayImpact(rng.uniform(1.0, 5.0))
            result = self.scorer.score(DAY, PLANNED, competing, predictions, season, holiday)
            self.assertGreaterEqual(result.score, 0)
            self.assertLessEqual(result.score, SCORE_CAP)
            self.assertEqual(result.risk_level, classify_risk(result.score))

    def test_repeated_runs_give_identical_reasons(self):
        competing = [event(str(i), venue="Hall" if i % 2 else None) for i in range(6)]
        first = self.scorer.score(DAY, PLANNED, competing, {}, NEUTRAL_SEASON, NEUTRAL_HOLIDAY)
        second = self.scorer.score(DAY, PLANNED, competing, {}, NEUTRAL_SEASON, NEUTRAL_HOLIDAY)
        self.assertEqual(first.reasons, second.reasons)
        self.assertEqual(first.contributions, second.contributions)


class TestScoringHelpers(unittest.TestCase):

    def test_risk_ladder_is_monotonic(self):
        order = {"Low": 0, "Medium": 1, "High": 2}
        scores = [x / 4 for x in range(0, 4 * int(SCORE_CAP) + 1)]
        tiers = [order[classify_risk(s)] for s in scores]
        self.assertEqual(tiers, sorted(tiers))
        self.assertEqual(classify_risk(5), "Low")
        self.assertEqual(classify_risk(5.01), "Medium")
        self.assertEqual(classify_risk(12), "Medium")
        self.assertEqual(classify_risk(12.01), "High")

    def test_significance_heuristic(self):
        self.assertEqual(significance(event("a")), 10)
        full = event("b", venue="Hall", image="https://i", description="x" * 51, attendees=5000)
        self.assertEqual(significance(full), 80)

    def test_rank_is_stable_for_ties(self):
        events = [event("first"), event("second"), event("third", venue="Hall")]
        self.assertEqual([e.id for e in rank_by_significance(events)], ["third", "first", "second"])

    def test_attendee_multiplier_larger_threshold_wins(self):
        self.assertEqual(attendee_multiplier(500), 1.0)
        self.assertEqual(attendee_multiplier(1001), 1.05)
        self.assertEqual(attendee_multiplier(10001), 1.1)
        self.assertEqual(attendee_multiplier(None), 1.0)

    def test_proximity_weight_falls_off_with_distance(self):
        weights = [
            proximity_weight(PLANNED, event("a").with_changes(date=date(2025, 11, 15 + gap)))
            for gap in (0, 2, 5, 10)
        ]
        self.assertEqual(weights, [1.0, 0.6, 0.3, 0.1])
        self.assertEqual(proximity_weight(PLANNED, event("b").with_changes(date=None)), 1.0)

    def test_multi_day_planned_event_covers_its_whole_span(self):
        festival = PLANNED.with_changes(end_date=date(2025, 11, 18))
        self.assertEqual(proximity_weight(festival, event("a").with_changes(date=date(2025, 11, 17))), 1.0)

    def test_risk_levels_come_from_the_declared_ladder(self):
        self.assertEqual({classify_risk(s) for s in (0, 8, 20)}, set(RISK_LEVELS))


if __name__ == '__main__':
    unittest.main()
