"""
Data models package
"""
from .scorecard_data import (
    CanonicalFacility,
    CriteriaItem,
    RawExtractedRow,
    ExtractedSystem,
    ExtractedWorkbook,
    MatchCandidate,
    ResolvedItem,
    ParsedSystem,
    ParsedScorecard,
    ValidationResult,
    WorkbookUpload,
    RowOutcome,
    ImportBatchResult,
)

from .reference_data import (
    FacilityRegistry,
    CriteriaCatalog,
)

from .errors import (
    ErrorCode,
    ScorecardImportError,
    FacilityNotFoundError,
    AmbiguousMatchError,
    UnknownWorkbookFormatError,
    RegistryLoadError,
    CatalogLoadError,
    PersistenceError,
    BatchCommitError,
)

__all__ = [
    'CanonicalFacility',
    'CriteriaItem',
    'RawExtractedRow',
    'ExtractedSystem',
    'ExtractedWorkbook',
    'MatchCandidate',
    'ResolvedItem',
    'ParsedSystem',
    'ParsedScorecard',
    'ValidationResult',
    'WorkbookUpload',
    'RowOutcome',
    'ImportBatchResult',
    'FacilityRegistry',
    'CriteriaCatalog',
    'ErrorCode',
    'ScorecardImportError',
    'FacilityNotFoundError',
    'AmbiguousMatchError',
    'UnknownWorkbookFormatError',
    'RegistryLoadError',
    'CatalogLoadError',
    'PersistenceError',
    'BatchCommitError',
]
