"""
Clinical Systems Scorecard - Historical Import

Converts legacy clinical systems review spreadsheets into normalized
scorecards ready to be stored.

Main modules:
- models: Data models (scorecards, reference snapshots, errors)
- controllers: Import logic (facility resolution, extraction, matching, validation)
- utils: Helpers (text normalization, similarity, value coercion, dates)
- config: System configuration
"""
from .config import SYSTEM_NAME, SYSTEM_VERSION

__version__ = SYSTEM_VERSION
__all__ = ['SYSTEM_NAME', 'SYSTEM_VERSION']
