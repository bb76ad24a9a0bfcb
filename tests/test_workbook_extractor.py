import unittest
import sys
from io import BytesIO
from pathlib import Path

import pandas as pd

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from controllers.workbook_extractor import DiscoveryState, WorkbookExtractor
from config.settings import DEFAULT_COLUMN_LAYOUT
from models.errors import ErrorCode, UnknownWorkbookFormatError
from models.scorecard_data import INPUT_TYPE_BINARY, INPUT_TYPE_SAMPLE


def _sheet(rows, width=6):
    return pd.DataFrame([list(row) + [None] * (width - len(row)) for row in rows])


def build_workbook():
    overview = _sheet([
        ["Clinical Systems Review"],
        ["Facility Name", "Colville Health and Rehabilitation of Cascadia"],
    ], width=2)

    change_of_condition = _sheet([
        ["Month", "October"],
        [],
        ["Category", "Max Points", "# Met", "Sample", "Points", "Notes"],
        ["Timely identification system in place", 20, "Y", "Y=1/N=0", 20],
        ["Notification section", None, None, None, None, "see below"],
        ["Physician notified", 10, 2, 3, 6.67],
        ["Resident representative notification", 10, "abc", "three", 0],
        ["Vital sign alerts set", 10, 1, "1", 10, "ok"],
        ["Zero max item", 0, 1, 3, 0],
    ])

    falls = _sheet([
        ["Falls review"],
        [],
        ["-"],
        ["Fall risk assessment", 5, 3, 3],
        ["Neuro checks", 5, 2, 3],
    ])

    return {
        "Clinical Systems Overview": overview,
        "1. Change of Condition": change_of_condition,
        "2. Falls": falls,
    }


class TestWorkbookExtractor(unittest.TestCase):
    def setUp(self):
        self.extractor = WorkbookExtractor()
        self.result = self.extractor.extract(build_workbook())

    def test_metadata(self):
        self.assertEqual(self.result.facility_name, "Colville Health and Rehabilitation of Cascadia")
        self.assertEqual(self.result.month, 10)
        self.assertIsNone(self.result.year)

    def test_systems_found(self):
        self.assertEqual([s.system_number for s in self.result.systems], [1, 2])
        self.assertEqual(self.result.warning_codes.count(ErrorCode.SHEET_NOT_FOUND.value), 5)
        self.assertIn("Sheet for system 3 not found", self.result.warnings)

    def test_header_columns(self):
        system = self.result.systems[0]
        self.assertTrue(system.header_found)
        self.assertEqual(system.header_row, 2)
        self.assertEqual(system.columns, {
            "category": 0, "max_points": 1, "charts_met": 2,
            "sample_size": 3, "points": 4, "notes": 5,
        })

    def test_row_classification(self):
        rows = self.result.systems[0].rows
        self.assertEqual(
            [row.category_text for row in rows],
            ["Timely identification system in place", "Physician notified",
             "Resident representative notification", "Vital sign alerts set"],
        )

        binary = rows[0]
        self.assertEqual(binary.input_type, INPUT_TYPE_BINARY)
        self.assertEqual((binary.charts_met, binary.sample_size), (1, 1))

        physician = rows[1]
        self.assertEqual(physician.input_type, INPUT_TYPE_SAMPLE)
        self.assertEqual((physician.max_points, physician.charts_met, physician.sample_size), (10.0, 2, 3))
        self.assertEqual(physician.row_index, 5)

    def test_unparsable_counts_default(self):
        row = self.result.systems[0].rows[2]
        self.assertEqual(row.charts_met, 0)
        self.assertEqual(row.sample_size, 3)
        self.assertEqual(row.charts_met_raw, "abc")

    def test_sample_of_one_with_large_max_is_binary(self):
        row = self.result.systems[0].rows[3]
        self.assertEqual(row.input_type, INPUT_TYPE_BINARY)
        self.assertEqual(row.charts_met, 1)
        self.assertEqual(row.notes, "ok")

    def test_missing_header_uses_default_layout(self):
        falls = self.result.systems[1]
        self.assertFalse(falls.header_found)
        self.assertEqual(falls.columns, DEFAULT_COLUMN_LAYOUT)
        self.assertEqual([row.category_text for row in falls.rows], ["Fall risk assessment", "Neuro checks"])
        self.assertIn(ErrorCode.HEADER_NOT_FOUND.value, self.result.warning_codes)
        self.assertIn(
            "System 2 (2. Falls): header row not found, using default column layout",
            self.result.warnings,
        )

    def test_no_system_sheets(self):
        with self.assertRaises(UnknownWorkbookFormatError):
            self.extractor.extract({"Sheet1": _sheet([["hello"]])})


class TestMetadataDiscovery(unittest.TestCase):
    def setUp(self):
        self.extractor = WorkbookExtractor()

    def test_month_from_date_cell(self):
        grid = [["Month", pd.Timestamp("2024-05-01")]]
        self.assertEqual(self.extractor.extract_month_year(grid), (5, 2024))

    def test_month_in_label_cell(self):
        grid = [["Review"], ["Month: Sept"]]
        self.assertEqual(self.extractor.extract_month_year(grid), (9, None))

    def test_numeric_month(self):
        grid = [["Month", 7]]
        self.assertEqual(self.extractor.extract_month_year(grid), (7, None))

    def test_month_not_found(self):
        grid = [["Category"], ["a"], ["b"], ["c"], ["d"], ["Month", "May"]]
        self.assertEqual(self.extractor.extract_month_year(grid), (None, None))

    def test_facility_name_in_single_cell(self):
        grids = {"Overview": [["Facility Name: Mt. Spokane"]]}
        self.assertEqual(self.extractor.extract_facility_name(grids), "Mt. Spokane")

    def test_facility_name_without_overview(self):
        grids = {"1. Change of Condition": [["Facility Name", "Colville"]]}
        self.assertIsNone(self.extractor.extract_facility_name(grids))

    def test_header_discovery_states(self):
        found = self.extractor.discover_header([["x"], ["Category", "Max Points"]])
        self.assertIs(found.state, DiscoveryState.FOUND)
        self.assertEqual(found.value[0], 1)

        fallback = self.extractor.discover_header([["x"], ["y"]])
        self.assertIs(fallback.state, DiscoveryState.FALLBACK)


class TestExcelRoundTrip(unittest.TestCase):
    def test_extract_from_xlsx_bytes(self):
        buffer = BytesIO()
        with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
            for name, df in build_workbook().items():
                df.to_excel(writer, sheet_name=name, header=False, index=False)

        result = WorkbookExtractor().extract(buffer.getvalue())

        self.assertEqual(result.facility_name, "Colville Health and Rehabilitation of Cascadia")
        self.assertEqual(result.month, 10)
        self.assertEqual(len(result.systems), 2)
        categories = [row.category_text for row in result.systems[0].rows]
        self.assertIn("Physician notified", categories)
        self.assertNotIn("Zero max item", categories)


if __name__ == "__main__":
    unittest.main()
