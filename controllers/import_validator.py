"""
Business-rule validation of candidate scorecards

Validation is pure: it reads the registry, the catalog and the existing
keys but never writes, so it is safe for dry runs.
"""
import logging
from dataclasses import dataclass, field
from datetime import date
from typing import AbstractSet, Any, List, Mapping, Optional, Tuple

from config.settings import BATCH_SYSTEM_NAMES
from controllers.facility_resolver import FacilityResolver
from controllers.score_calculator import points_for_item, sum_points
from models.errors import AmbiguousMatchError, ErrorCode, FacilityNotFoundError
from models.inputs import ValidationConfig
from models.reference_data import CriteriaCatalog
from models.scorecard_data import (
    MATCH_SIMILARITY,
    MatchCandidate,
    ParsedScorecard,
    ValidationResult,
)
from utils.text_utils import format_number, month_from_text
from utils.validation import cell_text, is_missing, parse_float, parse_int

logger = logging.getLogger(__name__)

Key = Tuple[Any, int, int]

BATCH_SYSTEMS = sorted(BATCH_SYSTEM_NAMES)


def row_value(row: Mapping[str, Any], name: str) -> Any:
    """
    Read a batch row field by its camelCase name, accepting snake_case.

    "system1Score" is also found as "system1_score" or "system_1_score".
    """
    if name in row:
        return row[name]

    snake = ''.join('_' + c.lower() if c.isupper() else c for c in name)
    for candidate in (snake, snake.replace('system', 'system_', 1)):
        if candidate in row:
            return row[candidate]
    return None


@dataclass
class BatchRowValues:
    """Coerced values of a batch row."""
    facility_name: str
    month_raw: Any
    year_raw: Any
    scores_raw: List[Any] = field(default_factory=list)
    scores: List[Optional[float]] = field(default_factory=list)
    total_raw: Any = None
    total: Optional[float] = None

    @property
    def score_values(self) -> List[float]:
        """Scores with missing or non-numeric values counted as 0."""
        return [score if score is not None else 0.0 for score in self.scores]


def read_batch_row(row: Mapping[str, Any]) -> BatchRowValues:
    scores_raw = [row_value(row, f"system{number}Score") for number in BATCH_SYSTEMS]
    total_raw = row_value(row, "totalScore")
    return BatchRowValues(
        facility_name=cell_text(row_value(row, "facilityName")),
        month_raw=row_value(row, "month"),
        year_raw=row_value(row, "year"),
        scores_raw=scores_raw,
        scores=[parse_float(value) for value in scores_raw],
        total_raw=total_raw,
        total=parse_float(total_raw),
    )


def parse_month(value: Any) -> Optional[int]:
    """Month number from 5, "5", "05", "May" or "may"."""
    if isinstance(value, str) and not value.strip()[:1].isdigit():
        return month_from_text(value)
    return parse_int(value)


class ImportValidator:
    """
    Validates batch rows and extracted workbooks.

    Args:
        resolver: Facility resolver over the batch registry snapshot
        catalog: Criteria catalog snapshot
        existing_keys: (facility_id, year, month) of persisted scorecards
        config: Validation tunables
        today: Reference date for date checks (defaults to date.today())
    """

    def __init__(
        self,
        resolver: FacilityResolver,
        catalog: CriteriaCatalog,
        existing_keys: AbstractSet[Key] = frozenset(),
        config: Optional[ValidationConfig] = None,
        today: Optional[date] = None,
    ):
        self.resolver = resolver
        self.catalog = catalog
        self.existing_keys = frozenset(existing_keys)
        self.config = config or ValidationConfig()
        self.today = today or date.today()

    def validate_row(self, row: Mapping[str, Any]) -> ValidationResult:
        """
        Validate a summary row (facility, month, year, 8 system scores, total).

        Args:
            row: Row as read from the batch file

        Returns:
            ValidationResult with the facility match when one was found
        """
        values = read_batch_row(row)
        result = ValidationResult()

        match = self._check_facility(values.facility_name, result)
        month, year = self._check_date(values.month_raw, values.year_raw, result)
        self._check_duplicate(match, month, year, result)

        for number, raw, score in zip(BATCH_SYSTEMS, values.scores_raw, values.scores):
            if score is None:
                if is_missing(raw):
                    result.add_warning(ErrorCode.INVALID_SCORE_VALUE,
                                       f"System {number} score is blank, treated as 0")
                else:
                    result.add_warning(ErrorCode.INVALID_SCORE_VALUE,
                                       f"System {number} score is not a number ({raw}), treated as 0")
            elif not self._score_in_range(score):
                result.add_error(ErrorCode.SCORE_OUT_OF_RANGE, self._range_message(number))

        if values.total is not None:
            calculated = sum_points(values.score_values)
            if abs(calculated - values.total) > self.config.total_tolerance:
                result.add_error(
                    ErrorCode.TOTAL_MISMATCH,
                    f"Total mismatch: provided {format_number(values.total)}, "
                    f"calculated {format_number(calculated)}",
                )
        elif not is_missing(values.total_raw):
            result.add_warning(ErrorCode.INVALID_SCORE_VALUE,
                               f"Total score is not a number ({values.total_raw}), not checked")

        return result

    def validate_scorecard(self, scorecard: ParsedScorecard) -> ValidationResult:
        """
        Validate a scorecard assembled from a workbook.

        Checks the facility, date and duplicate rules of batch rows, the
        system score bounds and the arithmetic of items, systems and total.
        Extraction warnings of the scorecard are carried over.
        """
        result = ValidationResult()
        for message, code in zip(scorecard.warnings, scorecard.warning_codes):
            result.add_warning(code, message)

        if scorecard.facility_name_raw:
            match = self._check_facility(scorecard.facility_name_raw, result)
        else:
            match = None
            result.add_error(ErrorCode.FACILITY_NOT_FOUND,
                             "Facility name could not be determined from the file")

        if scorecard.month is None:
            result.add_error(ErrorCode.INVALID_MONTH, "Month could not be determined")
        if scorecard.year is None:
            result.add_error(ErrorCode.INVALID_YEAR, "Year could not be determined")

        month, year = None, None
        if scorecard.month is not None and scorecard.year is not None:
            month, year = self._check_date(scorecard.month, scorecard.year, result)
        if scorecard.year_inferred and year is not None:
            result.add_warning(ErrorCode.YEAR_INFERRED,
                               f"Year not found in file, inferred as {year}")

        self._check_duplicate(match, month, year, result)
        self._check_systems(scorecard, result)
        self._check_arithmetic(scorecard, result)

        return result

    def _check_facility(self, name: str, result: ValidationResult) -> Optional[MatchCandidate]:
        try:
            resolution = self.resolver.resolve_detailed(name)
        except (FacilityNotFoundError, AmbiguousMatchError) as e:
            result.add_error(e.code, str(e))
            return None

        result.facility_match = resolution.candidate
        if resolution.is_ambiguous:
            others = ', '.join(c.target_name for c in resolution.competitors)
            result.add_warning(
                ErrorCode.AMBIGUOUS_MATCH,
                f"Facility name '{name}' also matches {others}; "
                f"using {resolution.candidate.target_name}",
            )
        return resolution.candidate

    def _check_date(self, month_raw: Any, year_raw: Any,
                    result: ValidationResult) -> Tuple[Optional[int], Optional[int]]:
        month = parse_month(month_raw)
        if month is None or not 1 <= month <= 12:
            result.add_error(ErrorCode.INVALID_MONTH, f"Invalid month: {cell_text(month_raw)}")
            month = None

        year = parse_int(year_raw)
        if year is None or not self.config.min_year <= year <= self.today.year:
            result.add_error(ErrorCode.INVALID_YEAR, f"Invalid year: {cell_text(year_raw)}")
            year = None

        if month is not None and year is not None:
            if date(year, month, 1) >= self.today.replace(day=1):
                result.add_error(ErrorCode.DATE_NOT_IN_PAST, "Date must be in the past")

        return month, year

    def _check_duplicate(self, match: Optional[MatchCandidate], month: Optional[int],
                         year: Optional[int], result: ValidationResult) -> None:
        if match is None or month is None or year is None:
            return
        if (match.target_id, year, month) in self.existing_keys:
            result.add_error(
                ErrorCode.DUPLICATE_SCORECARD,
                f"Scorecard already exists for {match.target_name} - {month}/{year}",
            )

    def _score_in_range(self, score: float) -> bool:
        return self.config.min_score <= score <= self.config.max_score

    def _range_message(self, number: int) -> str:
        return (f"System {number} score must be between "
                f"{format_number(self.config.min_score)} and {format_number(self.config.max_score)}")

    def _check_systems(self, scorecard: ParsedScorecard, result: ValidationResult) -> None:
        expected = self.config.expected_systems
        if len(scorecard.systems) < expected:
            result.add_warning(ErrorCode.SHEET_NOT_FOUND,
                               f"Only {len(scorecard.systems)} of {expected} systems found")

        for system in scorecard.systems:
            if not self._score_in_range(system.total_points_earned):
                result.add_error(ErrorCode.SCORE_OUT_OF_RANGE,
                                 self._range_message(system.system_number))

            if system.system_number in self.catalog:
                expected_items = self.catalog.item_count(system.system_number)
                if len(system.items) != expected_items:
                    result.add_warning(
                        ErrorCode.ITEM_COUNT_MISMATCH,
                        f"System {system.system_number}: found {len(system.items)} items, "
                        f"expected {expected_items}",
                    )

            low_confidence = [item for item in system.items if item.match_method != MATCH_SIMILARITY]
            if low_confidence:
                result.add_warning(
                    ErrorCode.LOW_CONFIDENCE_ITEM_MATCH,
                    f"System {system.system_number}: {len(low_confidence)} items "
                    f"with low match confidence",
                )

    def _check_arithmetic(self, scorecard: ParsedScorecard, result: ValidationResult) -> None:
        tolerance = self.config.arithmetic_tolerance

        for system in scorecard.systems:
            if not system.items:
                continue

            for item in system.items:
                label = f"System {system.system_number} item {item.item_number}"
                if item.sample_size and item.charts_met > item.sample_size:
                    result.add_warning(
                        ErrorCode.INVALID_SCORE_VALUE,
                        f"{label}: {item.charts_met} met out of {item.sample_size} sampled, "
                        f"capped at {item.sample_size}",
                    )

                expected = points_for_item(item.max_points, item.charts_met, item.sample_size)
                if abs(item.points_earned - expected) > tolerance:
                    result.add_error(
                        ErrorCode.TOTAL_MISMATCH,
                        f"{label}: points "
                        f"{format_number(item.points_earned)}, calculated {format_number(expected)}",
                    )
                # the sheet's own Points column
                if item.points_provided is not None and abs(item.points_provided - expected) > tolerance:
                    result.add_warning(
                        ErrorCode.TOTAL_MISMATCH,
                        f"{label}: sheet shows {format_number(item.points_provided)} points, "
                        f"calculated {format_number(expected)}",
                    )

            calculated = sum_points(item.points_earned for item in system.items)
            if abs(system.total_points_earned - calculated) > tolerance:
                result.add_error(
                    ErrorCode.TOTAL_MISMATCH,
                    f"System {system.system_number} total mismatch: provided "
                    f"{format_number(system.total_points_earned)}, calculated {format_number(calculated)}",
                )

        calculated = sum_points(system.total_points_earned for system in scorecard.systems)
        if abs(scorecard.total_score - calculated) > tolerance:
            result.add_error(
                ErrorCode.TOTAL_MISMATCH,
                f"Total mismatch: provided {format_number(scorecard.total_score)}, "
                f"calculated {format_number(calculated)}",
            )
