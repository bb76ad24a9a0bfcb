import unittest
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from controllers.score_calculator import (
    percentage,
    points_for_item,
    recalculate_scorecard,
    round_half_up,
    sum_points,
)
from models.scorecard_data import ParsedScorecard, ParsedSystem, ResolvedItem


def _item(number, max_points, met, sample, points=0.0):
    return ResolvedItem(
        item_number=number,
        criteria_text=f"Item {number}",
        max_points=max_points,
        charts_met=met,
        sample_size=sample,
        points_earned=points,
        match_confidence=1.0,
    )


class TestPointsForItem(unittest.TestCase):
    def test_partial_sample(self):
        self.assertEqual(points_for_item(20, 2, 3), 13.33)
        self.assertEqual(points_for_item(10, 1, 3), 3.33)
        self.assertEqual(points_for_item(10, 2, 3), 6.67)

    def test_full_and_empty_sample(self):
        self.assertEqual(points_for_item(10, 3, 3), 10.0)
        self.assertEqual(points_for_item(10, 0, 3), 0.0)

    def test_binary_item(self):
        self.assertEqual(points_for_item(5, 1, 1), 5.0)
        self.assertEqual(points_for_item(5, 0, 1), 0.0)

    def test_zero_or_missing_sample_scores_zero(self):
        self.assertEqual(points_for_item(10, 2, 0), 0.0)
        self.assertEqual(points_for_item(10, 2, None), 0.0)

    def test_charts_met_is_clamped(self):
        self.assertEqual(points_for_item(10, 5, 3), 10.0)
        self.assertEqual(points_for_item(10, -1, 3), 0.0)
        self.assertEqual(points_for_item(10, None, 3), 0.0)

    def test_points_never_exceed_max(self):
        for max_points in (1, 2.5, 7, 10, 20):
            for sample in (1, 2, 3, 7):
                for met in range(-1, sample + 3):
                    points = points_for_item(max_points, met, sample)
                    self.assertGreaterEqual(points, 0)
                    self.assertLessEqual(points, max_points)


class TestRounding(unittest.TestCase):
    def test_half_up(self):
        self.assertEqual(round_half_up(2.675), 2.68)
        self.assertEqual(round_half_up(0.125), 0.13)
        self.assertEqual(round_half_up(13.335), 13.34)
        self.assertEqual(round_half_up(33.35, 1), 33.4)

    def test_sum_points(self):
        self.assertEqual(sum_points([0.1, 0.2]), 0.3)
        self.assertEqual(sum_points([]), 0.0)

    def test_percentage(self):
        self.assertEqual(percentage(45, 60), 75.0)
        self.assertEqual(percentage(1, 3), 33.3)
        self.assertEqual(percentage(5, 0), 0.0)


class TestRecalculateScorecard(unittest.TestCase):
    def _scorecard(self):
        return ParsedScorecard(
            facility_name_raw="Colville",
            systems=[
                ParsedSystem(
                    system_number=1,
                    system_name="Change of Condition",
                    items=[_item("1", 10, 1, 1, points=99), _item("2", 20, 2, 3)],
                    total_points_earned=500,
                ),
                ParsedSystem(
                    system_number=2,
                    system_name="Accidents, Falls, Incidents",
                    items=[_item("1", 10, 2, 3)],
                ),
            ],
            total_score=1.0,
        )

    def test_totals_are_recomputed(self):
        scorecard = recalculate_scorecard(self._scorecard())
        system1 = scorecard.get_system(1)
        self.assertEqual([item.points_earned for item in system1.items], [10.0, 13.33])
        self.assertEqual(system1.total_points_earned, 23.33)
        self.assertEqual(scorecard.get_system(2).total_points_earned, 6.67)
        self.assertEqual(scorecard.total_score, 30.0)

    def test_is_idempotent(self):
        scorecard = recalculate_scorecard(self._scorecard())
        first = scorecard.to_dict()
        self.assertEqual(recalculate_scorecard(scorecard).to_dict(), first)

    def test_systems_without_items_keep_their_total(self):
        scorecard = ParsedScorecard(
            facility_name_raw="Colville",
            systems=[
                ParsedSystem(system_number=1, system_name="A", total_points_earned=85),
                ParsedSystem(system_number=2, system_name="B", total_points_earned=90.456),
            ],
        )
        recalculate_scorecard(scorecard)
        self.assertEqual(scorecard.get_system(1).total_points_earned, 85.0)
        self.assertEqual(scorecard.get_system(2).total_points_earned, 90.46)
        self.assertEqual(scorecard.total_score, 175.46)


if __name__ == "__main__":
    unittest.main()
