import unittest
import json
import sys
import tempfile
from pathlib import Path

import pandas as pd

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from controllers.report_generator import ReportGenerator
from models.errors import ErrorCode
from models.scorecard_data import (
    ImportBatchResult,
    MatchCandidate,
    ParsedScorecard,
    RowOutcome,
    ValidationResult,
)


def make_result():
    valid = ValidationResult(facility_match=MatchCandidate(
        target_id=1,
        target_name="Colville Health and Rehabilitation of Cascadia",
        score=0.95,
        method="core_exact",
    ))
    valid.add_warning(ErrorCode.INVALID_SCORE_VALUE, "System 8 score is blank, treated as 0")

    invalid = ValidationResult()
    invalid.add_error(ErrorCode.FACILITY_NOT_FOUND, "Facility not found: Unknown Place")
    invalid.add_error(ErrorCode.INVALID_MONTH, "Invalid month: 13")

    outcomes = [
        RowOutcome(row=1, scorecard=ParsedScorecard(facility_name_raw="Colville"),
                   validation=valid, facility_name="Colville", month=5, year=2024,
                   total_score=637),
        RowOutcome(row=2, scorecard=None, validation=invalid,
                   facility_name="Unknown Place", month=13, year=2024, total_score=728),
    ]
    return ImportBatchResult(
        success_count=1,
        failed_count=1,
        errors=[{"row": 2, "error": "Facility not found: Unknown Place; Invalid month: 13"}],
        warnings=[{"row": 1, "warning": "System 8 score is blank, treated as 0"}],
        outcomes=outcomes,
    )


class TestReportGenerator(unittest.TestCase):
    def test_dataframe(self):
        df = ReportGenerator(make_result()).prepare_dataframe()
        self.assertEqual(len(df), 2)
        self.assertEqual(list(df["is_valid"]), [True, False])
        self.assertEqual(df["matched_facility"].iloc[0], "Colville Health and Rehabilitation of Cascadia")
        self.assertEqual(df["errors"].iloc[1], "Facility not found: Unknown Place; Invalid month: 13")
        self.assertEqual(df["error_codes"].iloc[1], "FacilityNotFound, InvalidMonth")

    def test_validate_only_payload(self):
        payload = ReportGenerator(make_result(), validate_only=True).to_payload()
        self.assertEqual((payload["total"], payload["valid"], payload["invalid"]), (2, 1, 1))
        self.assertEqual(payload["rows"][0]["facilityName"], "Colville")
        self.assertEqual(payload["rows"][1]["errors"],
                         ["Facility not found: Unknown Place", "Invalid month: 13"])

    def test_commit_payload(self):
        payload = ReportGenerator(make_result()).to_payload()
        self.assertEqual(payload["success"], 1)
        self.assertEqual(payload["failed"], 1)
        self.assertEqual(payload["errors"][0]["row"], 2)

    def test_summary_report(self):
        summary = ReportGenerator(make_result(), validate_only=True).export_summary_report()
        self.assertIn("Rows processed: 2", summary)
        self.assertIn("Valid:      1 ( 50.0%)", summary)
        self.assertIn("FacilityNotFound", summary)
        self.assertIn("Row 2: Facility not found: Unknown Place; Invalid month: 13", summary)
        self.assertNotIn("Committed", summary)

    def test_file_exports(self):
        report = ReportGenerator(make_result())
        with tempfile.TemporaryDirectory() as tmp:
            tmp = Path(tmp)
            report.export_excel(tmp / "result.xlsx")
            report.export_csv(tmp / "result.csv")
            report.export_json(tmp / "result.json")
            report.export_summary_report(tmp / "summary.txt")

            sheets = pd.read_excel(tmp / "result.xlsx", sheet_name=None, engine="openpyxl")
            self.assertEqual(list(sheets), ["All Rows", "Failed Rows", "Statistics"])
            self.assertEqual(len(sheets["Failed Rows"]), 1)
            stats = sheets["Statistics"].set_index("Metric")
            self.assertEqual(stats.loc["Valid", "Description"], "50.0% of rows")

            csv = pd.read_csv(tmp / "result.csv", encoding="utf-8-sig")
            self.assertEqual(list(csv["row"]), [1, 2])

            with open(tmp / "result.json", encoding="utf-8") as f:
                self.assertEqual(json.load(f)["failed"], 1)

            self.assertTrue((tmp / "summary.txt").read_text(encoding="utf-8").startswith("=" * 70))


if __name__ == "__main__":
    unittest.main()
