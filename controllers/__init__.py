"""
Controllers package
"""
from .facility_resolver import FacilityResolver
from .workbook_extractor import WorkbookExtractor
from .item_matcher import ItemMatcher
from .import_validator import ImportValidator
from .import_orchestrator import ImportOrchestrator
from .collaborators import (
    FacilityRegistryProvider,
    CriteriaCatalogProvider,
    ScorecardPersistence,
    InMemoryFacilityRegistryProvider,
    JsonFacilityRegistryProvider,
    YamlCriteriaCatalogProvider,
    StaticCriteriaCatalogProvider,
    JsonScorecardStore,
)
from .ccn_matcher import CcnMatcher
from .report_generator import ReportGenerator, export_ccn_matches

__all__ = [
    'FacilityResolver',
    'WorkbookExtractor',
    'ItemMatcher',
    'ImportValidator',
    'ImportOrchestrator',
    'FacilityRegistryProvider',
    'CriteriaCatalogProvider',
    'ScorecardPersistence',
    'InMemoryFacilityRegistryProvider',
    'JsonFacilityRegistryProvider',
    'YamlCriteriaCatalogProvider',
    'StaticCriteriaCatalogProvider',
    'JsonScorecardStore',
    'CcnMatcher',
    'ReportGenerator',
    'export_ccn_matches',
]
