"""
Configuration for the historical scorecard import
"""
from pathlib import Path
from typing import Dict, List

# Base directories
BASE_DIR = Path(__file__).parent.parent
DATA_DIR = BASE_DIR / "data"
OUTPUT_DIR = DATA_DIR / "output"
LOGS_DIR = BASE_DIR / "logs"

DEFAULT_CATALOG_PATH = Path(__file__).parent / "audit_criteria.yaml"

# Scored systems extracted from workbooks (system 8 is a reference-only sheet)
SCORED_SYSTEMS = [1, 2, 3, 4, 5, 6, 7]

# Batch row imports carry one score per system, including system 8
BATCH_SYSTEM_NAMES = {
    1: "Change of Condition",
    2: "Accidents, Falls, Incidents",
    3: "Skin",
    4: "Medication Management & Weight Loss",
    5: "Infection Control",
    6: "Transfer/Discharge",
    7: "Abuse Self-Report Grievances",
    8: "Observations & Interviews",
}

SYSTEM_MAX_POINTS = 100

# Sheet name patterns for each system (substring, case-insensitive)
SYSTEM_SHEET_PATTERNS: Dict[int, List[str]] = {
    1: ["change of condition", "1.", "system 1"],
    2: ["accidents", "falls", "incidents", "2.", "system 2"],
    3: ["skin", "3.", "system 3"],
    4: ["med", "medication", "weight", "4.", "system 4"],
    5: ["infection", "5.", "system 5"],
    6: ["transfer", "discharge", "6.", "system 6"],
    7: ["abuse", "grievance", "self-report", "7.", "system 7"],
}

OVERVIEW_SHEET_NAMES = ["Clinical Systems Overview", "Overview", "Summary", "Cover"]

# Scan windows for metadata and header discovery
FACILITY_SCAN_ROWS = 10
MONTH_SCAN_ROWS = 5
HEADER_SCAN_ROWS = 10

# Column layout used when no header row is found
DEFAULT_COLUMN_LAYOUT = {
    "category": 0,
    "max_points": 1,
    "charts_met": 2,
    "sample_size": 3,
    "points": 4,
    "notes": 5,
}
DEFAULT_HEADER_ROW = 2
DEFAULT_SAMPLE_SIZE = 3

MONTH_MAP = {
    "jan": 1, "january": 1,
    "feb": 2, "february": 2,
    "mar": 3, "march": 3,
    "apr": 4, "april": 4,
    "may": 5,
    "jun": 6, "june": 6,
    "jul": 7, "july": 7,
    "aug": 8, "august": 8,
    "sep": 9, "sept": 9, "september": 9,
    "oct": 10, "october": 10,
    "nov": 11, "november": 11,
    "dec": 12, "december": 12,
}

# Quarter references resolve to the middle month of the quarter
QUARTER_MAP = {
    "1": 2, "q1": 2, "1st": 2, "first": 2,
    "2": 5, "q2": 5, "2nd": 5, "second": 5,
    "3": 8, "q3": 8, "3rd": 8, "third": 8,
    "4": 11, "q4": 11, "4th": 11, "fourth": 11,
}

# Facility name normalization. Bump the version whenever the lists below
# change, the registry matching results depend on them.
NORMALIZATION_VERSION = "2"

NAME_ABBREVIATIONS = {
    "mt": "mount",
    "st": "saint",
    "cda": "coeur dalene",
}

BOILERPLATE_PHRASES = [
    "health and rehabilitation",
    "health rehabilitation",
    "of cascadia",
    "transitional care",
    "care center",
    "retirement living",
]

BOILERPLATE_TOKENS = [
    "health",
    "rehabilitation",
    "of",
    "cascadia",
    "center",
    "snf",
    "alf",
    "ilf",
]

# Words dropped before CCN edit-distance matching
CCN_STOP_WORDS = [
    "of", "the", "and", "at", "in", "on", "for",
    "health", "healthcare", "care", "center", "facility", "nursing",
    "skilled", "rehabilitation", "rehab", "transitional", "post", "acute",
    "postacute",
]

CCN_MATCH_THRESHOLD = 70
CCN_REVIEW_THRESHOLD = 50

# Descriptions of error/warning codes, used in reports
ISSUE_DESCRIPTIONS = {
    "FacilityNotFound": "Facility name could not be resolved against the registry",
    "AmbiguousMatch": "More than one registry facility matches the name",
    "InvalidMonth": "Month is missing or outside 1-12",
    "InvalidYear": "Year is missing or outside the accepted range",
    "DateNotInPast": "Scorecard month is not before the current month",
    "DuplicateScorecard": "A scorecard already exists for this facility and month",
    "ScoreOutOfRange": "System score outside 0-100",
    "TotalMismatch": "Totals do not add up",
    "SheetNotFound": "System sheet not found in workbook",
    "HeaderNotFound": "Header row not found, default layout used",
    "LowConfidenceItemMatch": "Items matched by position instead of text",
    "UnknownWorkbookFormat": "Workbook does not look like a clinical systems review",
    "YearInferred": "Year not found in file and inferred from the month",
    "ItemCountMismatch": "Item count differs from the criteria catalog",
    "InvalidScoreValue": "Score cell is blank or not a number",
    "ProcessingError": "Unexpected error while processing the row",
    "CommitFailed": "Batch commit failed and the row was not saved",
}

LOGGING_CONFIG = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "default": {
            "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            "datefmt": "%Y-%m-%d %H:%M:%S",
        },
        "detailed": {
            "format": "%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s",
            "datefmt": "%Y-%m-%d %H:%M:%S",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "level": "INFO",
            "formatter": "default",
            "stream": "ext://sys.stdout",
        },
        "file": {
            "class": "logging.handlers.RotatingFileHandler",
            "level": "INFO",
            "formatter": "detailed",
            "filename": str(LOGS_DIR / "import.log"),
            "maxBytes": 104857600,  # 100MB
            "backupCount": 5,
        },
    },
    "loggers": {
        "openpyxl": {"level": "WARNING", "propagate": True},
    },
    "root": {
        "level": "INFO",
        "handlers": ["console", "file"],
    },
}

SYSTEM_VERSION = "1.0.0"
SYSTEM_NAME = "Clinical Systems Scorecard - Historical Import"
