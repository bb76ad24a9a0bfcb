"""
Batch import of summary rows and scorecard workbooks

Reference data is loaded once per batch into immutable snapshots. Rows are
then processed on a thread pool, results come back in input order, and
duplicates inside the batch are flagged in a sequential pass before the
valid scorecards are committed together.
"""
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Any, Callable, Dict, FrozenSet, List, Mapping, Optional, Sequence, Tuple

from config.settings import BATCH_SYSTEM_NAMES
from controllers.collaborators import (
    CriteriaCatalogProvider,
    FacilityRegistryProvider,
    ScorecardPersistence,
)
from controllers.facility_resolver import FacilityResolver
from controllers.import_validator import ImportValidator, parse_month, read_batch_row
from controllers.item_matcher import ItemMatcher
from controllers.score_calculator import points_for_item, round_half_up, scorecard_total, system_total
from controllers.workbook_extractor import WorkbookExtractor
from models.errors import (
    BatchCommitError,
    CatalogLoadError,
    ErrorCode,
    PersistenceError,
    RegistryLoadError,
    ScorecardImportError,
)
from models.inputs import MatchingConfig, ValidationConfig, WorkbookOverrides
from models.reference_data import CriteriaCatalog, FacilityRegistry
from models.scorecard_data import (
    SOURCE_ROW,
    SOURCE_WORKBOOK,
    ExtractedWorkbook,
    ImportBatchResult,
    ParsedScorecard,
    ParsedSystem,
    ResolvedItem,
    RowOutcome,
    ValidationResult,
    WorkbookUpload,
)
from utils.date_extractor import extract_date, infer_missing_year
from utils.text_utils import join_messages
from utils.validation import parse_float, parse_int

logger = logging.getLogger(__name__)

DATE_FROM_OVERRIDES = "overrides"
DATE_FROM_SHEET = "sheet"
DATE_FROM_FILENAME = "filename"
DATE_INFERRED = "inferred"


@dataclass(frozen=True)
class BatchContext:
    """Read-only snapshots and services shared by every row of a batch."""
    registry: FacilityRegistry
    catalog: CriteriaCatalog
    existing_keys: FrozenSet[Tuple[Any, int, int]]
    resolver: FacilityResolver
    matcher: ItemMatcher
    validator: ImportValidator
    extractor: WorkbookExtractor


class ImportOrchestrator:
    """
    Runs extraction, matching, scoring and validation over a batch.

    Args:
        registry_provider: Source of canonical facilities
        catalog_provider: Source of the criteria catalog
        persistence: Scorecard store (existing keys and commit)
        matching: Facility and item matching tunables
        validation: Validation tunables
        max_workers: Threads used for per-row processing
        today: Reference date for date checks and year inference
    """

    def __init__(
        self,
        registry_provider: FacilityRegistryProvider,
        catalog_provider: CriteriaCatalogProvider,
        persistence: ScorecardPersistence,
        matching: Optional[MatchingConfig] = None,
        validation: Optional[ValidationConfig] = None,
        max_workers: int = 4,
        today: Optional[date] = None,
    ):
        self.registry_provider = registry_provider
        self.catalog_provider = catalog_provider
        self.persistence = persistence
        self.matching = matching or MatchingConfig()
        self.validation = validation or ValidationConfig()
        self.max_workers = max(1, max_workers)
        self.today = today

    def prepare(self) -> BatchContext:
        """
        Load the registry, the catalog and the existing keys once.

        Raises:
            RegistryLoadError, CatalogLoadError, PersistenceError: Batch-fatal
        """
        try:
            registry = FacilityRegistry.from_records(self.registry_provider.list())
        except RegistryLoadError:
            raise
        except (OSError, ValueError, TypeError, KeyError) as e:
            raise RegistryLoadError(f"Could not load facility registry: {e}") from e

        try:
            catalog = self.catalog_provider.catalog()
        except CatalogLoadError:
            raise
        except (OSError, ValueError, TypeError, KeyError) as e:
            raise CatalogLoadError(f"Could not load criteria catalog: {e}") from e

        existing_keys = frozenset(self.persistence.existing_keys())
        logger.info(f"Existing scorecards: {len(existing_keys)}")

        today = self.today or date.today()
        resolver = FacilityResolver(registry, self.matching)
        return BatchContext(
            registry=registry,
            catalog=catalog,
            existing_keys=existing_keys,
            resolver=resolver,
            matcher=ItemMatcher(catalog, self.matching),
            validator=ImportValidator(resolver, catalog, existing_keys, self.validation, today),
            extractor=WorkbookExtractor(),
        )

    def import_rows(self, rows: Sequence[Mapping[str, Any]],
                    validate_only: bool = False) -> ImportBatchResult:
        """
        Import summary rows (facility, month, year, 8 system scores, total).

        Args:
            rows: Rows in batch order
            validate_only: Validate without committing

        Returns:
            ImportBatchResult with one outcome per row

        Raises:
            BatchCommitError: The commit failed; nothing was written
        """
        context = self.prepare()
        logger.info(f"Processing {len(rows)} rows (validate_only={validate_only})")
        outcomes = self._run(context, self._process_row, rows)
        return self._finish(outcomes, validate_only)

    def import_workbooks(self, uploads: Sequence[WorkbookUpload],
                         validate_only: bool = False) -> ImportBatchResult:
        """
        Import scorecard workbooks, one facility-month each.

        Args:
            uploads: Workbooks with optional facility/month/year overrides
            validate_only: Validate without committing

        Returns:
            ImportBatchResult with one outcome per workbook

        Raises:
            BatchCommitError: The commit failed; nothing was written
        """
        context = self.prepare()
        logger.info(f"Processing {len(uploads)} workbooks (validate_only={validate_only})")
        outcomes = self._run(context, self._process_workbook, uploads)
        return self._finish(outcomes, validate_only)

    def _run(self, context: BatchContext, worker: Callable[..., RowOutcome],
             items: Sequence[Any]) -> List[RowOutcome]:
        # map() yields in submission order
        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            return list(executor.map(
                lambda numbered: worker(context, numbered[0], numbered[1]),
                enumerate(items, start=1),
            ))

    def _finish(self, outcomes: List[RowOutcome], validate_only: bool) -> ImportBatchResult:
        self._flag_batch_duplicates(outcomes)
        result = self._summarize(outcomes)

        logger.info(f"Batch validated: {result.success_count} valid, {result.failed_count} failed")

        if not validate_only:
            self._commit(result)
        return result

    def _process_row(self, context: BatchContext, index: int,
                     row: Mapping[str, Any]) -> RowOutcome:
        outcome = RowOutcome(row=index, scorecard=None, validation=ValidationResult())

        try:
            values = read_batch_row(row)
            outcome.facility_name = values.facility_name
            outcome.month = values.month_raw
            outcome.year = values.year_raw
            outcome.total_score = values.total_raw

            validation = context.validator.validate_row(row)
            outcome.validation = validation
            if validation.is_valid:
                outcome.scorecard = self.build_row_scorecard(row, validation)
        except Exception as e:
            logger.error(f"Error processing row {index}: {e}", exc_info=True)
            outcome.validation.add_error(ErrorCode.PROCESSING_ERROR, f"Row processing failed: {e}")

        return outcome

    @staticmethod
    def build_row_scorecard(row: Mapping[str, Any], validation: ValidationResult) -> ParsedScorecard:
        """Scorecard of a validated summary row; systems carry no items."""
        values = read_batch_row(row)
        match = validation.facility_match

        systems = [
            ParsedSystem(
                system_number=number,
                system_name=BATCH_SYSTEM_NAMES[number],
                total_points_earned=round_half_up(score),
            )
            for number, score in zip(sorted(BATCH_SYSTEM_NAMES), values.score_values)
        ]

        scorecard = ParsedScorecard(
            facility_name_raw=values.facility_name,
            resolved_facility_id=match.target_id if match else None,
            resolved_facility_name=match.target_name if match else None,
            month=parse_month(values.month_raw),
            year=parse_int(values.year_raw),
            systems=systems,
            provided_total=values.total,
            source=SOURCE_ROW,
            date_source=SOURCE_ROW,
        )
        scorecard.total_score = scorecard_total(scorecard)
        return scorecard

    def _process_workbook(self, context: BatchContext, index: int,
                          upload: WorkbookUpload) -> RowOutcome:
        outcome = RowOutcome(row=index, scorecard=None, validation=ValidationResult(),
                             filename=upload.filename)

        try:
            extracted = context.extractor.extract(upload.content)
            scorecard = self.build_workbook_scorecard(context, extracted, upload)

            outcome.facility_name = scorecard.facility_name_raw
            outcome.month = scorecard.month
            outcome.year = scorecard.year
            outcome.total_score = scorecard.total_score

            validation = context.validator.validate_scorecard(scorecard)
            outcome.validation = validation
            if validation.facility_match is not None:
                scorecard.resolved_facility_id = validation.facility_match.target_id
                scorecard.resolved_facility_name = validation.facility_match.target_name
            outcome.scorecard = scorecard
        except ScorecardImportError as e:
            logger.warning(f"{upload.filename}: {e}")
            outcome.validation.add_error(e.code or ErrorCode.PROCESSING_ERROR, str(e))
        except Exception as e:
            logger.error(f"Error processing {upload.filename}: {e}", exc_info=True)
            outcome.validation.add_error(ErrorCode.PROCESSING_ERROR,
                                         f"Failed to process {upload.filename}: {e}")

        return outcome

    def build_workbook_scorecard(self, context: BatchContext, extracted: ExtractedWorkbook,
                                 upload: WorkbookUpload) -> ParsedScorecard:
        """
        Match and score the extracted rows of a workbook.

        Facility, month and year come from the overrides first, then the
        sheets, then the file name; a missing year is inferred from the month.
        """
        overrides = upload.overrides or WorkbookOverrides()
        facility_name = overrides.facility_name or extracted.facility_name or ""
        month, year, date_source, year_inferred = self._resolve_date(
            overrides, extracted, upload.filename,
        )

        systems = []
        for extracted_system in extracted.systems:
            number = extracted_system.system_number
            items = []
            for position, raw in enumerate(extracted_system.rows):
                resolution = context.matcher.resolve(raw.category_text, number, position)
                items.append(ResolvedItem(
                    item_number=resolution.item_number,
                    criteria_text=raw.category_text,
                    max_points=raw.max_points,
                    charts_met=raw.charts_met,
                    sample_size=raw.sample_size,
                    points_earned=points_for_item(raw.max_points, raw.charts_met, raw.sample_size),
                    match_confidence=resolution.confidence,
                    matched_to=resolution.matched_item.item_number if resolution.matched_item else None,
                    match_method=resolution.method,
                    notes=raw.notes,
                    points_provided=parse_float(raw.points_raw),
                ))

            system = ParsedSystem(
                system_number=number,
                system_name=context.catalog.system_name(number) or extracted_system.sheet_name,
                items=items,
                sheet_name=extracted_system.sheet_name,
            )
            system.total_points_earned = system_total(system)
            systems.append(system)

        scorecard = ParsedScorecard(
            facility_name_raw=facility_name,
            month=month,
            year=year,
            systems=systems,
            source=SOURCE_WORKBOOK,
            filename=upload.filename,
            date_source=date_source,
            year_inferred=year_inferred,
        )
        for message, code in zip(extracted.warnings, extracted.warning_codes):
            scorecard.add_warning(code, message)
        scorecard.total_score = scorecard_total(scorecard)
        return scorecard

    def _resolve_date(self, overrides: WorkbookOverrides, extracted: ExtractedWorkbook,
                      filename: str) -> Tuple[Optional[int], Optional[int], Optional[str], bool]:
        file_month, file_year = extract_date(Path(filename).stem if filename else None)
        sources = []

        month = None
        for value, source in ((overrides.month, DATE_FROM_OVERRIDES),
                              (extracted.month, DATE_FROM_SHEET),
                              (file_month, DATE_FROM_FILENAME)):
            if value:
                month = value
                sources.append(f"month={source}")
                break

        year = None
        for value, source in ((overrides.year, DATE_FROM_OVERRIDES),
                              (extracted.year, DATE_FROM_SHEET),
                              (file_year, DATE_FROM_FILENAME)):
            if value:
                year = value
                sources.append(f"year={source}")
                break

        year, inferred = infer_missing_year(month, year, self.today)
        if inferred:
            sources.append(f"year={DATE_INFERRED}")

        return month, year, ', '.join(sources) or None, inferred

    @staticmethod
    def _flag_batch_duplicates(outcomes: List[RowOutcome]) -> None:
        first_seen: Dict[Tuple[Any, int, int], int] = {}
        for outcome in outcomes:
            if not outcome.is_valid:
                continue
            scorecard = outcome.scorecard
            key = scorecard.key
            if key is None:
                continue
            if key in first_seen:
                outcome.validation.add_error(
                    ErrorCode.DUPLICATE_SCORECARD,
                    f"Duplicate of row {first_seen[key]} in this batch: "
                    f"{scorecard.resolved_facility_name} - {scorecard.month}/{scorecard.year}",
                )
            else:
                first_seen[key] = outcome.row

    @staticmethod
    def _summarize(outcomes: List[RowOutcome]) -> ImportBatchResult:
        result = ImportBatchResult(outcomes=outcomes)
        for outcome in outcomes:
            if outcome.is_valid:
                result.success_count += 1
            else:
                result.failed_count += 1
                result.errors.append({
                    'row': outcome.row,
                    'error': join_messages(outcome.validation.errors),
                })
            for warning in outcome.validation.warnings:
                result.warnings.append({'row': outcome.row, 'warning': warning})
        return result

    def _commit(self, result: ImportBatchResult) -> None:
        scorecards = result.valid_scorecards
        if not scorecards:
            logger.info("Nothing to commit")
            return

        try:
            self.persistence.commit(scorecards)
        except (PersistenceError, OSError) as e:
            logger.error(f"Commit failed, batch rolled back: {e}")
            for outcome in result.outcomes:
                if outcome.is_valid:
                    outcome.validation.add_error(ErrorCode.COMMIT_FAILED,
                                                 f"Not saved, batch commit failed: {e}")
            raise BatchCommitError(f"Commit failed, no scorecards were saved: {e}",
                                   self._summarize(result.outcomes)) from e

        result.committed = True
        logger.info(f"Committed {len(scorecards)} scorecards")
