"""
Data models for extracted and resolved scorecards
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

INPUT_TYPE_BINARY = "binary"
INPUT_TYPE_SAMPLE = "sample"

MATCH_SIMILARITY = "similarity"
MATCH_POSITION = "position"
MATCH_SEQUENCE = "sequence"

SOURCE_WORKBOOK = "workbook"
SOURCE_ROW = "row"


@dataclass(frozen=True)
class CanonicalFacility:
    """Facility as registered in the canonical registry."""
    id: Any
    name: str
    state: Optional[str] = None
    city: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'name': self.name,
            'state': self.state,
            'city': self.city,
        }


@dataclass(frozen=True)
class CriteriaItem:
    """One audit criteria item of a clinical system."""
    system_number: int
    item_number: str
    text: str
    max_points: float
    sample_size: int = 3
    multiplier: float = 0.0
    input_type: str = INPUT_TYPE_SAMPLE

    def to_dict(self) -> Dict[str, Any]:
        return {
            'system_number': self.system_number,
            'item_number': self.item_number,
            'text': self.text,
            'max_points': self.max_points,
            'sample_size': self.sample_size,
            'multiplier': self.multiplier,
            'input_type': self.input_type,
        }


@dataclass
class RawExtractedRow:
    """A data row read from a system sheet, before item matching."""

    # Raw cells
    category_text: str
    max_points_raw: Any = None
    charts_met_raw: Any = None
    sample_size_raw: Any = None
    points_raw: Any = None
    notes: str = ""

    # Classification
    max_points: float = 0.0
    charts_met: int = 0
    sample_size: int = 3
    input_type: str = INPUT_TYPE_SAMPLE

    row_index: int = -1  # 0-based row in the sheet grid


@dataclass(frozen=True)
class MatchCandidate:
    """Best registry match for a free-text facility name."""
    target_id: Any
    target_name: str
    score: float
    method: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            'target_id': self.target_id,
            'target_name': self.target_name,
            'score': self.score,
            'method': self.method,
        }


@dataclass
class ExtractedSystem:
    """Raw rows of one system sheet."""
    system_number: int
    sheet_name: str
    rows: List[RawExtractedRow] = field(default_factory=list)
    header_row: int = -1
    header_found: bool = False
    columns: Dict[str, int] = field(default_factory=dict)


@dataclass
class ExtractedWorkbook:
    """Structural extraction of a workbook, before matching and scoring."""
    facility_name: Optional[str] = None
    month: Optional[int] = None
    year: Optional[int] = None
    systems: List[ExtractedSystem] = field(default_factory=list)
    sheet_names: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    warning_codes: List[str] = field(default_factory=list)

    def add_warning(self, code: Any, message: str) -> None:
        self.warnings.append(message)
        self.warning_codes.append(getattr(code, 'value', code))


@dataclass
class ResolvedItem:
    """An extracted row mapped onto a criteria item, with its points."""
    item_number: str
    criteria_text: str
    max_points: float
    charts_met: int
    sample_size: int
    points_earned: float
    match_confidence: float
    matched_to: Optional[str] = None  # None when resolved by position
    match_method: str = MATCH_SIMILARITY
    notes: str = ""
    points_provided: Optional[float] = None  # Points column of the sheet

    def to_dict(self) -> Dict[str, Any]:
        return {
            'item_number': self.item_number,
            'criteria_text': self.criteria_text,
            'max_points': self.max_points,
            'charts_met': self.charts_met,
            'sample_size': self.sample_size,
            'points_earned': self.points_earned,
            'match_confidence': round(self.match_confidence, 3),
            'matched_to': self.matched_to,
            'match_method': self.match_method,
            'notes': self.notes,
            'points_provided': self.points_provided,
        }


@dataclass
class ParsedSystem:
    system_number: int
    system_name: str
    items: List[ResolvedItem] = field(default_factory=list)
    total_points_earned: float = 0.0
    sheet_name: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'system_number': self.system_number,
            'system_name': self.system_name,
            'sheet_name': self.sheet_name,
            'total_points_earned': self.total_points_earned,
            'items': [item.to_dict() for item in self.items],
        }


@dataclass
class ParsedScorecard:
    """
    A scorecard reconstructed from a workbook or a summary row.

    Summary rows produce systems without items; their system totals are the
    scores supplied on the row.
    """
    facility_name_raw: str
    resolved_facility_id: Any = None
    resolved_facility_name: Optional[str] = None
    month: Optional[int] = None
    year: Optional[int] = None
    systems: List[ParsedSystem] = field(default_factory=list)
    total_score: float = 0.0
    provided_total: Optional[float] = None

    # Provenance
    source: str = SOURCE_WORKBOOK
    filename: Optional[str] = None
    date_source: Optional[str] = None
    year_inferred: bool = False
    warnings: List[str] = field(default_factory=list)
    warning_codes: List[str] = field(default_factory=list)

    def add_warning(self, code: Any, message: str) -> None:
        self.warnings.append(message)
        self.warning_codes.append(getattr(code, 'value', code))

    @property
    def key(self) -> Optional[Tuple[Any, int, int]]:
        """Duplicate-detection key (facility_id, year, month)."""
        if self.resolved_facility_id is None or self.year is None or self.month is None:
            return None
        return (self.resolved_facility_id, self.year, self.month)

    def get_system(self, system_number: int) -> Optional[ParsedSystem]:
        for system in self.systems:
            if system.system_number == system_number:
                return system
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'facility_name_raw': self.facility_name_raw,
            'facility_id': self.resolved_facility_id,
            'facility_name': self.resolved_facility_name,
            'month': self.month,
            'year': self.year,
            'total_score': self.total_score,
            'source': self.source,
            'filename': self.filename,
            'date_source': self.date_source,
            'year_inferred': self.year_inferred,
            'systems': [system.to_dict() for system in self.systems],
        }


@dataclass
class ValidationResult:
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    error_codes: List[str] = field(default_factory=list)
    warning_codes: List[str] = field(default_factory=list)
    facility_match: Optional[MatchCandidate] = None

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def add_error(self, code: Any, message: str) -> None:
        self.errors.append(message)
        self.error_codes.append(getattr(code, 'value', code))

    def add_warning(self, code: Any, message: str) -> None:
        self.warnings.append(message)
        self.warning_codes.append(getattr(code, 'value', code))

    def to_dict(self) -> Dict[str, Any]:
        return {
            'is_valid': self.is_valid,
            'errors': list(self.errors),
            'warnings': list(self.warnings),
            'error_codes': list(self.error_codes),
            'warning_codes': list(self.warning_codes),
            'facility_match': self.facility_match.to_dict() if self.facility_match else None,
        }


@dataclass
class WorkbookUpload:
    """A workbook file submitted for import."""
    filename: str
    content: Any  # bytes, path or {sheet name: DataFrame}
    overrides: Optional[Any] = None  # WorkbookOverrides


@dataclass
class RowOutcome:
    """Result of processing one row or workbook of a batch."""
    row: int  # 1-based position in the batch
    scorecard: Optional[ParsedScorecard]
    validation: ValidationResult
    facility_name: str = ""
    month: Any = None
    year: Any = None
    total_score: Any = None
    filename: Optional[str] = None

    @property
    def is_valid(self) -> bool:
        return self.scorecard is not None and self.validation.is_valid

    def to_dict(self) -> Dict[str, Any]:
        """Validate-only view of the row."""
        result = {
            'row': self.row,
            'facilityName': self.facility_name,
            'month': self.month,
            'year': self.year,
            'totalScore': self.total_score,
            'isValid': self.is_valid,
            'errors': list(self.validation.errors),
            'warnings': list(self.validation.warnings),
        }

        if self.filename is not None:
            match = self.validation.facility_match
            result['filename'] = self.filename
            result['matchedFacility'] = match.target_name if match else None
            result['matchScore'] = round(match.score, 3) if match else None
            result['facilityId'] = match.target_id if match else None
            if self.scorecard is not None:
                result['systems'] = [
                    {
                        'systemNumber': system.system_number,
                        'systemName': system.system_name,
                        'itemCount': len(system.items),
                        'totalPointsEarned': system.total_points_earned,
                    }
                    for system in self.scorecard.systems
                ]

        return result


@dataclass
class ImportBatchResult:
    success_count: int = 0
    failed_count: int = 0
    errors: List[Dict[str, Any]] = field(default_factory=list)
    warnings: List[Dict[str, Any]] = field(default_factory=list)
    outcomes: List[RowOutcome] = field(default_factory=list)
    committed: bool = False

    @property
    def valid_scorecards(self) -> List[ParsedScorecard]:
        return [outcome.scorecard for outcome in self.outcomes if outcome.is_valid]

    def to_dict(self) -> Dict[str, Any]:
        """Commit view of the batch."""
        return {
            'success': self.success_count,
            'failed': self.failed_count,
            'errors': list(self.errors),
            'warnings': list(self.warnings),
        }

    def to_validation_dict(self) -> Dict[str, Any]:
        """Validate-only view of the batch."""
        valid = sum(1 for outcome in self.outcomes if outcome.is_valid)
        return {
            'total': len(self.outcomes),
            'valid': valid,
            'invalid': len(self.outcomes) - valid,
            'rows': [outcome.to_dict() for outcome in self.outcomes],
        }
