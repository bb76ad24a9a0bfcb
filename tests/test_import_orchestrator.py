import unittest
import json
import sys
import tempfile
from datetime import date
from pathlib import Path
from unittest.mock import patch

import pandas as pd

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from controllers.collaborators import (
    FacilityRegistryProvider,
    InMemoryFacilityRegistryProvider,
    JsonScorecardStore,
    ScorecardPersistence,
    StaticCriteriaCatalogProvider,
)
from controllers.import_orchestrator import ImportOrchestrator
from controllers.import_validator import ImportValidator
from models.errors import BatchCommitError, ErrorCode, PersistenceError, RegistryLoadError
from models.inputs import WorkbookOverrides
from models.scorecard_data import SOURCE_ROW, WorkbookUpload
from utils.input_loader import load_catalog


REGISTRY_RECORDS = [
    {"id": 1, "name": "Colville Health and Rehabilitation of Cascadia", "state": "WA"},
    {"id": 2, "name": "Mt. Spokane Transitional Care", "state": "WA"},
]

SCORES = [85, 90, 88, 92, 95, 87, 100, 91]


def make_row(facility="Colville", month=5, year=2024, total=728):
    row = {"facilityName": facility, "month": month, "year": year, "totalScore": total}
    for number, score in enumerate(SCORES, start=1):
        row[f"system{number}Score"] = score
    return row


def _sheet(rows, width=6):
    return pd.DataFrame([list(row) + [None] * (width - len(row)) for row in rows])


def make_workbook():
    return {
        "Overview": _sheet([
            ["Facility Name", "Colville Health and Rehabilitation of Cascadia"],
        ], width=2),
        "1. Change of Condition": _sheet([
            ["Month", "October"],
            [],
            ["Category", "Max Points", "# Met", "Sample", "Points", "Notes"],
            ["Timely identification of changes", 20, "Y", "Y=1/N=0", 20],
            ["Physician notified", 10, 2, 3, 6.67],
            ["Resident representative notification", 10, 3, 3, 10],
        ]),
    }


class FakeStore(ScorecardPersistence):
    def __init__(self, keys=None, fail=False):
        self.keys = set(keys or [])
        self.fail = fail
        self.commits = []

    def existing_keys(self):
        return set(self.keys)

    def commit(self, scorecards):
        if self.fail:
            raise PersistenceError("database unavailable")
        self.commits.append(list(scorecards))


class BrokenRegistry(FacilityRegistryProvider):
    def list(self):
        raise OSError("registry service down")


class OrchestratorTestCase(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.catalog = load_catalog()

    def make_orchestrator(self, store=None, registry=None, max_workers=4):
        return ImportOrchestrator(
            registry_provider=registry or InMemoryFacilityRegistryProvider(REGISTRY_RECORDS),
            catalog_provider=StaticCriteriaCatalogProvider(self.catalog),
            persistence=store if store is not None else FakeStore(),
            max_workers=max_workers,
            today=date(2025, 6, 15),
        )


class TestImportRows(OrchestratorTestCase):
    def test_validate_only_preserves_order_and_commits_nothing(self):
        store = FakeStore()
        rows = [make_row(month=month) for month in range(1, 11)]
        rows[3] = make_row(facility="Unknown Place", month=4)

        result = self.make_orchestrator(store).import_rows(rows, validate_only=True)

        self.assertEqual([o.row for o in result.outcomes], list(range(1, 11)))
        self.assertEqual([o.month for o in result.outcomes], list(range(1, 11)))
        self.assertEqual(result.success_count, 9)
        self.assertEqual(result.failed_count, 1)
        self.assertEqual(store.commits, [])
        self.assertFalse(result.committed)

        payload = result.to_validation_dict()
        self.assertEqual((payload["total"], payload["valid"], payload["invalid"]), (10, 9, 1))
        self.assertEqual(payload["rows"][3]["errors"], ["Facility not found: Unknown Place"])
        self.assertFalse(payload["rows"][3]["isValid"])

    def test_commit_valid_rows(self):
        store = FakeStore()
        rows = [make_row(month=5), make_row(month=6), make_row(total=1)]

        result = self.make_orchestrator(store).import_rows(rows)

        self.assertEqual(result.to_dict()["success"], 2)
        self.assertEqual(result.to_dict()["failed"], 1)
        self.assertEqual(result.errors, [{"row": 3, "error": "Total mismatch: provided 1, calculated 728"}])
        self.assertTrue(result.committed)
        self.assertEqual(len(store.commits), 1)

        committed = store.commits[0]
        self.assertEqual([s.month for s in committed], [5, 6])
        self.assertEqual(committed[0].resolved_facility_id, 1)
        self.assertEqual(committed[0].source, SOURCE_ROW)
        self.assertEqual(committed[0].total_score, 728.0)
        self.assertEqual(len(committed[0].systems), 8)

    def test_duplicate_inside_batch(self):
        store = FakeStore()
        result = self.make_orchestrator(store).import_rows([make_row(), make_row()])

        self.assertTrue(result.outcomes[0].is_valid)
        self.assertFalse(result.outcomes[1].is_valid)
        self.assertEqual(
            result.outcomes[1].validation.errors,
            ["Duplicate of row 1 in this batch: Colville Health and Rehabilitation of Cascadia - 5/2024"],
        )
        self.assertIn(ErrorCode.DUPLICATE_SCORECARD.value, result.outcomes[1].validation.error_codes)
        self.assertEqual(len(store.commits[0]), 1)

    def test_existing_scorecard_is_rejected(self):
        store = FakeStore(keys={(1, 2024, 5)})
        result = self.make_orchestrator(store).import_rows([make_row()])
        self.assertEqual(result.failed_count, 1)
        self.assertEqual(store.commits, [])

    def test_commit_failure_rolls_back(self):
        store = FakeStore(fail=True)
        with self.assertRaises(BatchCommitError) as ctx:
            self.make_orchestrator(store).import_rows([make_row()])
        self.assertIsNotNone(ctx.exception.result)
        result = ctx.exception.result
        self.assertFalse(result.committed)
        self.assertEqual((result.success_count, result.failed_count), (0, 1))
        self.assertEqual(result.errors, [
            {"row": 1, "error": "Not saved, batch commit failed: database unavailable"},
        ])
        self.assertEqual(result.outcomes[0].validation.error_codes, [ErrorCode.COMMIT_FAILED.value])
        self.assertEqual(result.valid_scorecards, [])
        self.assertEqual(store.commits, [])

    def test_registry_failure_aborts_batch(self):
        with self.assertRaises(RegistryLoadError):
            self.make_orchestrator(registry=BrokenRegistry()).import_rows([make_row()])

    def test_row_exception_does_not_stop_batch(self):
        with patch.object(ImportValidator, "validate_row", side_effect=RuntimeError("boom")):
            result = self.make_orchestrator().import_rows([make_row(), make_row(month=6)],
                                                          validate_only=True)
        self.assertEqual(result.failed_count, 2)
        self.assertEqual(result.outcomes[0].validation.errors, ["Row processing failed: boom"])
        self.assertEqual(result.outcomes[0].validation.error_codes, [ErrorCode.PROCESSING_ERROR.value])

    def test_malformed_row_fails_alone(self):
        rows = [make_row(), None, make_row(month=6)]
        result = self.make_orchestrator().import_rows(rows, validate_only=True)

        self.assertEqual((result.success_count, result.failed_count), (2, 1))
        self.assertEqual([outcome.row for outcome in result.outcomes], [1, 2, 3])
        self.assertEqual(result.outcomes[1].validation.error_codes, [ErrorCode.PROCESSING_ERROR.value])
        self.assertEqual(result.outcomes[1].facility_name, "")
        self.assertEqual(result.errors[0]["row"], 2)

    def test_single_worker_gives_same_result(self):
        rows = [make_row(month=month) for month in (1, 2, 3)]
        parallel = self.make_orchestrator().import_rows(rows, validate_only=True)
        serial = self.make_orchestrator(max_workers=1).import_rows(rows, validate_only=True)
        self.assertEqual(parallel.to_validation_dict(), serial.to_validation_dict())


class TestImportWorkbooks(OrchestratorTestCase):
    def test_month_from_sheet_year_from_filename(self):
        upload = WorkbookUpload(filename="Colville October 2024.xlsx", content=make_workbook())
        result = self.make_orchestrator().import_workbooks([upload], validate_only=True)

        outcome = result.outcomes[0]
        self.assertTrue(outcome.is_valid, outcome.validation.errors)
        scorecard = outcome.scorecard
        self.assertEqual((scorecard.month, scorecard.year), (10, 2024))
        self.assertEqual(scorecard.date_source, "month=sheet, year=filename")
        self.assertEqual(scorecard.resolved_facility_id, 1)

        system = scorecard.get_system(1)
        self.assertEqual([item.item_number for item in system.items][1:], ["2a", "2b"])
        self.assertEqual(system.total_points_earned, 36.67)
        self.assertEqual(scorecard.total_score, 36.67)

        payload = outcome.to_dict()
        self.assertEqual(payload["filename"], "Colville October 2024.xlsx")
        self.assertEqual(payload["facilityId"], 1)
        self.assertEqual(payload["systems"][0]["itemCount"], 3)

    def test_sheet_transcription_errors_are_reported(self):
        workbook = make_workbook()
        workbook["1. Change of Condition"] = _sheet([
            ["Month", "October"],
            [],
            ["Category", "Max Points", "# Met", "Sample", "Points", "Notes"],
            ["Timely identification of changes", 20, "Y", "Y=1/N=0", 20],
            ["Physician notified", 10, 5, 3, 6.67],
        ])
        upload = WorkbookUpload(filename="Colville October 2024.xlsx", content=workbook)
        outcome = self.make_orchestrator().import_workbooks([upload], validate_only=True).outcomes[0]

        self.assertTrue(outcome.is_valid, outcome.validation.errors)
        item = outcome.scorecard.get_system(1).items[1]
        self.assertEqual((item.item_number, item.points_earned, item.points_provided), ("2a", 10.0, 6.67))
        self.assertIn("System 1 item 2a: 5 met out of 3 sampled, capped at 3", outcome.validation.warnings)
        self.assertIn("System 1 item 2a: sheet shows 6.67 points, calculated 10", outcome.validation.warnings)

    def test_overrides_take_precedence(self):
        upload = WorkbookUpload(
            filename="Colville October 2024.xlsx",
            content=make_workbook(),
            overrides=WorkbookOverrides(month=3),
        )
        result = self.make_orchestrator().import_workbooks([upload], validate_only=True)
        scorecard = result.outcomes[0].scorecard
        self.assertEqual((scorecard.month, scorecard.year), (3, 2024))
        self.assertEqual(scorecard.date_source, "month=overrides, year=filename")

    def test_year_is_inferred(self):
        upload = WorkbookUpload(filename="Colville.xlsx", content=make_workbook())
        result = self.make_orchestrator().import_workbooks([upload], validate_only=True)

        outcome = result.outcomes[0]
        self.assertTrue(outcome.is_valid, outcome.validation.errors)
        self.assertEqual(outcome.scorecard.year, 2024)
        self.assertTrue(outcome.scorecard.year_inferred)
        self.assertIn(ErrorCode.YEAR_INFERRED.value, outcome.validation.warning_codes)

    def test_unknown_format_fails_only_that_workbook(self):
        uploads = [
            WorkbookUpload(filename="notes.xlsx", content={"Sheet1": _sheet([["hello"]])}),
            WorkbookUpload(filename="Colville October 2024.xlsx", content=make_workbook()),
        ]
        store = FakeStore()
        result = self.make_orchestrator(store).import_workbooks(uploads)

        self.assertEqual(result.outcomes[0].validation.error_codes,
                         [ErrorCode.UNKNOWN_WORKBOOK_FORMAT.value])
        self.assertTrue(result.outcomes[1].is_valid)
        self.assertEqual(len(store.commits[0]), 1)


class TestJsonScorecardStore(OrchestratorTestCase):
    def test_commit_and_reload_keys(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "scorecards.json"
            store = JsonScorecardStore(path)
            self.assertEqual(store.existing_keys(), set())

            result = self.make_orchestrator(store).import_rows([make_row()])
            self.assertTrue(result.committed)
            self.assertEqual(store.existing_keys(), {(1, 2024, 5)})

            with open(path, encoding="utf-8") as f:
                data = json.load(f)
            self.assertEqual(data["scorecards"][0]["facility_name"],
                             "Colville Health and Rehabilitation of Cascadia")

            again = self.make_orchestrator(store).import_rows([make_row()])
            self.assertEqual(again.failed_count, 1)
            self.assertEqual(len(store.existing_keys()), 1)

    def test_corrupt_store_raises(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "scorecards.json"
            path.write_text("{not json", encoding="utf-8")
            with self.assertRaises(PersistenceError):
                JsonScorecardStore(path).existing_keys()


if __name__ == "__main__":
    unittest.main()
