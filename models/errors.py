"""
Error taxonomy for the scorecard import
"""
from enum import Enum
from typing import Any, List, Optional


class ErrorCode(Enum):
    """Machine readable codes for row errors and warnings."""
    FACILITY_NOT_FOUND = "FacilityNotFound"
    AMBIGUOUS_MATCH = "AmbiguousMatch"
    INVALID_MONTH = "InvalidMonth"
    INVALID_YEAR = "InvalidYear"
    DATE_NOT_IN_PAST = "DateNotInPast"
    DUPLICATE_SCORECARD = "DuplicateScorecard"
    SCORE_OUT_OF_RANGE = "ScoreOutOfRange"
    TOTAL_MISMATCH = "TotalMismatch"
    SHEET_NOT_FOUND = "SheetNotFound"
    HEADER_NOT_FOUND = "HeaderNotFound"
    LOW_CONFIDENCE_ITEM_MATCH = "LowConfidenceItemMatch"
    UNKNOWN_WORKBOOK_FORMAT = "UnknownWorkbookFormat"
    YEAR_INFERRED = "YearInferred"
    ITEM_COUNT_MISMATCH = "ItemCountMismatch"
    INVALID_SCORE_VALUE = "InvalidScoreValue"
    PROCESSING_ERROR = "ProcessingError"
    COMMIT_FAILED = "CommitFailed"


class ScorecardImportError(Exception):
    """Base class for import errors."""
    code: Optional[ErrorCode] = None


class FacilityNotFoundError(ScorecardImportError):
    code = ErrorCode.FACILITY_NOT_FOUND

    def __init__(self, name: Any):
        self.name = name
        super().__init__(f"Facility not found: {name}")


class AmbiguousMatchError(ScorecardImportError):
    code = ErrorCode.AMBIGUOUS_MATCH

    def __init__(self, name: Any, candidates: List[Any]):
        self.name = name
        self.candidates = candidates
        names = ', '.join(candidate.target_name for candidate in candidates)
        super().__init__(f"Ambiguous facility name: {name} (candidates: {names})")


class UnknownWorkbookFormatError(ScorecardImportError):
    code = ErrorCode.UNKNOWN_WORKBOOK_FORMAT

    def __init__(self, sheet_names: List[str]):
        self.sheet_names = sheet_names
        super().__init__(
            "Unknown workbook format: no clinical system sheets found "
            f"(sheets: {', '.join(sheet_names) or 'none'})"
        )


class RegistryLoadError(ScorecardImportError):
    """Facility registry could not be loaded. Aborts the batch."""


class CatalogLoadError(ScorecardImportError):
    """Criteria catalog could not be loaded. Aborts the batch."""


class PersistenceError(ScorecardImportError):
    """Raised by persistence collaborators when a read or commit fails."""


class BatchCommitError(ScorecardImportError):
    """
    Commit of a validated batch failed and nothing was written.

    Attributes:
        result: The batch result computed before the commit attempt
    """

    def __init__(self, message: str, result: Any = None):
        super().__init__(message)
        self.result = result
