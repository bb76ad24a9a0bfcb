"""
Structural extraction of clinical systems review workbooks

Locates the sheet of each scored system, the metadata block (facility name,
month) and the header row of each sheet, and reads the raw data rows.
"""
import logging
from dataclasses import dataclass
from enum import Enum
from io import BytesIO
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

import pandas as pd

from config.settings import (
    DEFAULT_COLUMN_LAYOUT,
    DEFAULT_HEADER_ROW,
    DEFAULT_SAMPLE_SIZE,
    FACILITY_SCAN_ROWS,
    HEADER_SCAN_ROWS,
    MONTH_SCAN_ROWS,
    OVERVIEW_SHEET_NAMES,
    SCORED_SYSTEMS,
    SYSTEM_SHEET_PATTERNS,
)
from models.errors import ErrorCode, UnknownWorkbookFormatError
from models.scorecard_data import (
    INPUT_TYPE_BINARY,
    INPUT_TYPE_SAMPLE,
    ExtractedSystem,
    ExtractedWorkbook,
    RawExtractedRow,
)
from utils.text_utils import month_from_text
from utils.validation import as_date, cell_text, is_missing, is_yes, parse_float, parse_int

logger = logging.getLogger(__name__)

WorkbookSource = Union[bytes, bytearray, str, Path, Mapping[str, pd.DataFrame]]
Grid = List[List[Any]]

# A data row needs at least category, max points and charts met
MIN_ROW_WIDTH = 3
BINARY_MIN_MAX_POINTS = 5


class DiscoveryState(Enum):
    SEARCHING = "searching"
    FOUND = "found"
    FALLBACK = "fallback"


@dataclass
class Discovery:
    """State of one discovery task (facility name, month, header row)."""
    state: DiscoveryState = DiscoveryState.SEARCHING
    value: Any = None

    @property
    def searching(self) -> bool:
        return self.state is DiscoveryState.SEARCHING

    def found(self, value: Any) -> None:
        self.state = DiscoveryState.FOUND
        self.value = value

    def fall_back(self, value: Any = None) -> None:
        self.state = DiscoveryState.FALLBACK
        self.value = value


def read_workbook(workbook: WorkbookSource) -> Dict[str, pd.DataFrame]:
    """
    Read every sheet of a workbook as a raw cell grid (no header row).

    Args:
        workbook: File bytes, a path, or an already loaded {sheet: DataFrame}

    Returns:
        Ordered mapping of sheet name to DataFrame
    """
    if isinstance(workbook, Mapping):
        return dict(workbook)

    source = BytesIO(bytes(workbook)) if isinstance(workbook, (bytes, bytearray)) else workbook
    return pd.read_excel(source, sheet_name=None, header=None, engine="openpyxl")


def _to_grid(df: pd.DataFrame) -> Grid:
    return df.astype(object).values.tolist()


def _cell(row: Sequence[Any], col: Optional[int]) -> Any:
    if col is None or col < 0 or col >= len(row):
        return None
    return row[col]


def _row_width(row: Sequence[Any]) -> int:
    """Index of the last non-empty cell plus one."""
    for index in range(len(row) - 1, -1, -1):
        if not is_missing(row[index]):
            return index + 1
    return 0


class WorkbookExtractor:
    """
    Extracts facility name, month and raw system rows from a workbook.
    """

    def extract(self, workbook: WorkbookSource) -> ExtractedWorkbook:
        """
        Extract the structure of a workbook.

        Args:
            workbook: File bytes, a path, or a mapping of sheet name to raw grid

        Returns:
            ExtractedWorkbook with one ExtractedSystem per sheet found

        Raises:
            UnknownWorkbookFormatError: If no system sheet is found at all
        """
        sheets = read_workbook(workbook)
        sheet_names = [str(name) for name in sheets]
        grids = {str(name): _to_grid(df) for name, df in sheets.items()}

        result = ExtractedWorkbook(sheet_names=sheet_names)

        located: List[Tuple[int, str]] = []
        missing: List[int] = []
        for system_number in SCORED_SYSTEMS:
            sheet_name = self.find_system_sheet(sheet_names, system_number)
            if sheet_name is None:
                missing.append(system_number)
            else:
                located.append((system_number, sheet_name))

        if not located:
            raise UnknownWorkbookFormatError(sheet_names)

        for system_number in missing:
            logger.warning(f"Sheet for system {system_number} not found")
            result.add_warning(
                ErrorCode.SHEET_NOT_FOUND,
                f"Sheet for system {system_number} not found",
            )

        result.facility_name = self.extract_facility_name(grids)

        month_discovery = Discovery()
        for system_number, sheet_name in located:
            grid = grids[sheet_name]

            if month_discovery.searching:
                month, year = self.extract_month_year(grid)
                if month:
                    month_discovery.found((month, year))

            result.systems.append(self.extract_system(grid, system_number, sheet_name, result))

        if month_discovery.searching:
            month_discovery.fall_back((None, None))
        result.month, result.year = month_discovery.value

        logger.info(
            f"Workbook extracted: {len(result.systems)} systems, "
            f"facility={result.facility_name!r}, month={result.month}, year={result.year}"
        )
        return result

    @staticmethod
    def find_system_sheet(sheet_names: Sequence[str], system_number: int) -> Optional[str]:
        """
        First sheet (in workbook order) whose name contains one of the
        system's patterns, case-insensitively.
        """
        patterns = SYSTEM_SHEET_PATTERNS.get(system_number, [])
        for sheet_name in sheet_names:
            lower = sheet_name.lower()
            if any(pattern in lower for pattern in patterns):
                return sheet_name
        return None

    def extract_facility_name(self, grids: Mapping[str, Grid]) -> Optional[str]:
        """
        Look for a "Facility Name" label in the first rows of the overview
        sheet and return the text next to it.
        """
        by_lower = {name.strip().lower(): name for name in grids}
        discovery = Discovery()

        candidates = [by_lower[name.lower()] for name in OVERVIEW_SHEET_NAMES if name.lower() in by_lower]
        for sheet_name in candidates:
            grid = grids[sheet_name]
            row_index = 0
            limit = min(FACILITY_SCAN_ROWS, len(grid))
            while discovery.searching and row_index < limit:
                value = self._facility_in_row(grid[row_index])
                if value:
                    discovery.found(value)
                row_index += 1
            if not discovery.searching:
                break

        if discovery.searching:
            discovery.fall_back(None)
        return discovery.value

    @staticmethod
    def _facility_in_row(row: Sequence[Any]) -> Optional[str]:
        for col, value in enumerate(row):
            label = cell_text(value)
            lower = label.lower()
            if 'facility' not in lower or 'name' not in lower:
                continue

            adjacent = _cell(row, col + 1)
            if isinstance(adjacent, str) and adjacent.strip():
                return adjacent.strip()

            # "Facility Name: Colville" in a single cell
            if ':' in label:
                remainder = label.split(':', 1)[1].strip()
                if remainder:
                    return remainder
        return None

    def extract_month_year(self, grid: Grid) -> Tuple[Optional[int], Optional[int]]:
        """
        Look for a "Month" label in the first rows of a system sheet.

        The value is the adjacent cell (month name, abbreviation or a date) or
        the rest of the label cell ("Month: October").

        Returns:
            Tuple (month, year); year is only known from date cells
        """
        discovery = Discovery()
        row_index = 0
        limit = min(MONTH_SCAN_ROWS, len(grid))

        while discovery.searching:
            if row_index >= limit:
                discovery.fall_back((None, None))
                continue

            row = grid[row_index]
            for col, value in enumerate(row):
                label = cell_text(value).lower()
                if 'month' not in label:
                    continue
                found = self._month_value(_cell(row, col + 1), label)
                if found[0]:
                    discovery.found(found)
                    break
            row_index += 1

        return discovery.value

    @staticmethod
    def _month_value(adjacent: Any, label: str) -> Tuple[Optional[int], Optional[int]]:
        adjacent_date = as_date(adjacent)
        if adjacent_date is not None:
            return adjacent_date.month, adjacent_date.year

        month = month_from_text(adjacent)
        if month:
            return month, None

        number = parse_int(adjacent) if isinstance(adjacent, (int, float)) else None
        if number is not None and 1 <= number <= 12:
            return number, None

        remainder = label.split('month', 1)[1].strip(' :-')
        if remainder:
            return month_from_text(remainder), None
        return None, None

    def discover_header(self, grid: Grid) -> Discovery:
        """
        Find the header row in the first rows of a sheet.

        The header row holds a cell containing "category", or "max" and
        "point" together. Found: value is (row_index, column map). Otherwise
        the default layout starting at DEFAULT_HEADER_ROW is used (FALLBACK).
        """
        discovery = Discovery()
        row_index = 0
        limit = min(HEADER_SCAN_ROWS, len(grid))

        while discovery.searching:
            if row_index >= limit:
                discovery.fall_back((DEFAULT_HEADER_ROW, dict(DEFAULT_COLUMN_LAYOUT)))
            elif any(self._is_header_cell(value) for value in grid[row_index]):
                discovery.found((row_index, self._map_columns(grid[row_index])))
            row_index += 1

        return discovery

    @staticmethod
    def _is_header_cell(value: Any) -> bool:
        text = cell_text(value).lower()
        return 'category' in text or ('max' in text and 'point' in text)

    @staticmethod
    def _map_columns(row: Sequence[Any]) -> Dict[str, int]:
        columns: Dict[str, int] = {}
        for col, value in enumerate(row):
            header = cell_text(value).lower()
            if not header:
                continue
            if 'category' in header:
                role = 'category'
            elif 'max' in header and 'point' in header:
                role = 'max_points'
            elif 'met' in header:
                role = 'charts_met'
            elif 'sample' in header:
                role = 'sample_size'
            elif 'point' in header:
                role = 'points'
            elif 'note' in header:
                role = 'notes'
            else:
                continue
            columns.setdefault(role, col)

        columns.setdefault('category', DEFAULT_COLUMN_LAYOUT['category'])
        return columns

    def extract_system(self, grid: Grid, system_number: int, sheet_name: str,
                       workbook: Optional[ExtractedWorkbook] = None) -> ExtractedSystem:
        """
        Read the data rows of one system sheet.

        Args:
            grid: Raw cell grid of the sheet
            system_number: System the sheet belongs to
            sheet_name: Sheet name (for messages)
            workbook: Extraction result that collects warnings

        Returns:
            ExtractedSystem with the classified rows
        """
        header = self.discover_header(grid)
        header_row, columns = header.value

        if header.state is DiscoveryState.FALLBACK:
            message = (f"System {system_number} ({sheet_name}): header row not found, "
                       f"using default column layout")
            logger.warning(message)
            if workbook is not None:
                workbook.add_warning(ErrorCode.HEADER_NOT_FOUND, message)

        system = ExtractedSystem(
            system_number=system_number,
            sheet_name=sheet_name,
            header_row=header_row,
            header_found=header.state is DiscoveryState.FOUND,
            columns=columns,
        )

        for row_index in range(header_row + 1, len(grid)):
            row = self.parse_row(grid[row_index], columns, row_index)
            if row is not None:
                system.rows.append(row)

        logger.debug(f"System {system_number} ({sheet_name}): {len(system.rows)} rows")
        return system

    @staticmethod
    def parse_row(row: Sequence[Any], columns: Mapping[str, int],
                  row_index: int = -1) -> Optional[RawExtractedRow]:
        """
        Classify one data row.

        Rows without a category or with a non-numeric or zero max points are
        section dividers and return None. A row is binary when its sample
        size cell contains "y=1"/"n=0", or is exactly "1" with max points of
        at least 5.
        """
        if _row_width(row) < MIN_ROW_WIDTH:
            return None

        category = cell_text(_cell(row, columns.get('category')))
        if not category:
            return None

        max_points_raw = _cell(row, columns.get('max_points'))
        max_points = parse_float(max_points_raw)
        if max_points is None or max_points <= 0:
            return None

        charts_met_raw = _cell(row, columns.get('charts_met'))
        sample_size_raw = _cell(row, columns.get('sample_size'))
        sample_text = cell_text(sample_size_raw).lower()

        is_binary = (
            'y=1' in sample_text
            or 'n=0' in sample_text
            or (sample_text == '1' and max_points >= BINARY_MIN_MAX_POINTS)
        )

        if is_binary:
            charts_met = 1 if is_yes(charts_met_raw) else 0
            sample_size = 1
            input_type = INPUT_TYPE_BINARY
        else:
            charts_met = parse_int(charts_met_raw) or 0
            sample_size = parse_int(sample_size_raw)
            if sample_size is None:
                sample_size = DEFAULT_SAMPLE_SIZE
            input_type = INPUT_TYPE_SAMPLE

        return RawExtractedRow(
            category_text=category,
            max_points_raw=max_points_raw,
            charts_met_raw=charts_met_raw,
            sample_size_raw=sample_size_raw,
            points_raw=_cell(row, columns.get('points')),
            notes=cell_text(_cell(row, columns.get('notes'))),
            max_points=max_points,
            charts_met=charts_met,
            sample_size=sample_size,
            input_type=input_type,
            row_index=row_index,
        )
