"""
Score computation for items, systems and scorecards

Rounding is half-up to 2 decimals at every level, so 13.335 becomes 13.34
regardless of binary float representation.
"""
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional

from models.scorecard_data import ParsedScorecard, ParsedSystem


def round_half_up(value: float, places: int = 2) -> float:
    quantum = Decimal(1).scaleb(-places)
    return float(Decimal(repr(float(value))).quantize(quantum, rounding=ROUND_HALF_UP))


def points_for_item(max_points: float, charts_met: Optional[float],
                    sample_size: Optional[float]) -> float:
    """
    Points earned by a criteria item.

    Args:
        max_points: Maximum points of the item
        charts_met: Charts (or binary answers) that met the criteria
        sample_size: Charts reviewed

    Returns:
        (max_points / sample_size) * charts_met rounded to 2 decimals, with
        charts_met clamped to [0, sample_size]; 0 when sample_size is 0 or None
    """
    if not sample_size or sample_size <= 0:
        return 0.0

    met = min(max(charts_met or 0, 0), sample_size)
    points = round_half_up((max_points / sample_size) * met)
    return min(points, max_points)


def sum_points(values: Iterable[float]) -> float:
    return round_half_up(sum(Decimal(repr(float(v))) for v in values))


def system_total(system: ParsedSystem) -> float:
    return sum_points(item.points_earned for item in system.items)


def scorecard_total(scorecard: ParsedScorecard) -> float:
    return sum_points(system.total_points_earned for system in scorecard.systems)


def percentage(earned: float, possible: float) -> float:
    """Percentage rounded to one decimal; 0 when nothing is possible."""
    if not possible:
        return 0.0
    return round_half_up(earned / possible * 100, 1)


def recalculate_scorecard(scorecard: ParsedScorecard) -> ParsedScorecard:
    """
    Recompute item, system and scorecard totals in place.

    Stored values are not trusted. Systems without items (summary rows)
    keep their supplied total, which is only re-rounded.
    """
    for system in scorecard.systems:
        if system.items:
            for item in system.items:
                item.points_earned = points_for_item(item.max_points, item.charts_met,
                                                     item.sample_size)
            system.total_points_earned = system_total(system)
        else:
            system.total_points_earned = round_half_up(system.total_points_earned)

    scorecard.total_score = scorecard_total(scorecard)
    return scorecard
