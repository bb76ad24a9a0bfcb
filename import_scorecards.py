#!/usr/bin/env python3
"""
Historical scorecard import.

Usage:
    python import_scorecards.py rows <rows.csv|xlsx|json> --registry <facilities.json> --store <scorecards.json>
    python import_scorecards.py workbooks <file.xlsx> [...] --registry ... --store ... [--month 5 --year 2024]
    python import_scorecards.py match-ccn <cms_listing.csv> --registry <facilities.json>

Add --validate-only to check a batch without saving anything.
"""
import argparse
import logging
from logging.config import dictConfig
from pathlib import Path
import sys
from typing import Optional

# Adds the project root to the path
sys.path.insert(0, str(Path(__file__).parent))

from config import LOGGING_CONFIG, LOGS_DIR, OUTPUT_DIR, SYSTEM_NAME, SYSTEM_VERSION
from controllers import (
    CcnMatcher,
    ImportOrchestrator,
    JsonFacilityRegistryProvider,
    JsonScorecardStore,
    ReportGenerator,
    YamlCriteriaCatalogProvider,
    export_ccn_matches,
)
from models import BatchCommitError, ImportBatchResult, ScorecardImportError, WorkbookUpload
from models.inputs import ImportJobConfig
from utils.input_loader import load_batch_rows, load_import_job, load_overrides, load_registry

# Configures logging
LOGS_DIR.mkdir(parents=True, exist_ok=True)
dictConfig(LOGGING_CONFIG)
logger = logging.getLogger(__name__)


def _build_job(args: argparse.Namespace) -> ImportJobConfig:
    """Job configuration from --config, with command line values taking precedence."""
    data = load_import_job(args.config).model_dump() if args.config else {}

    if args.registry:
        data["registry_path"] = args.registry
    if args.store:
        data["store_path"] = args.store
    if args.catalog:
        data["catalog_path"] = args.catalog
    if args.output:
        data["output_dir"] = args.output
    if args.workers:
        data["max_workers"] = args.workers

    data.setdefault("output_dir", str(OUTPUT_DIR))
    return ImportJobConfig.model_validate(data)


def _build_orchestrator(job: ImportJobConfig) -> ImportOrchestrator:
    return ImportOrchestrator(
        registry_provider=JsonFacilityRegistryProvider(job.registry_path),
        catalog_provider=YamlCriteriaCatalogProvider(job.catalog_path),
        persistence=JsonScorecardStore(job.store_path),
        matching=job.matching,
        validation=job.validation,
        max_workers=job.max_workers,
    )


def _write_reports(result: ImportBatchResult, output_dir: Path, validate_only: bool) -> None:
    output_dir.mkdir(parents=True, exist_ok=True)
    prefix = "validation" if validate_only else "import"

    report_gen = ReportGenerator(result, validate_only=validate_only)

    excel_output = output_dir / f"{prefix}_result.xlsx"
    report_gen.export_excel(excel_output)
    logger.info(f"  OK Excel: {excel_output.name}")

    csv_output = output_dir / f"{prefix}_result.csv"
    report_gen.export_csv(csv_output)
    logger.info(f"  OK CSV: {csv_output.name}")

    json_output = output_dir / f"{prefix}_result.json"
    report_gen.export_json(json_output)
    logger.info(f"  OK JSON: {json_output.name}")

    summary_output = output_dir / f"{prefix}_summary.txt"
    summary = report_gen.export_summary_report(summary_output)
    logger.info(f"  OK Summary: {summary_output.name}")
    logger.info("")

    for line in summary.splitlines():
        logger.info(line)


def _run_rows(args: argparse.Namespace) -> int:
    rows_path = Path(args.rows_path)
    if not rows_path.exists():
        logger.error(f"Row file not found: {rows_path}")
        return 1

    job = _build_job(args)
    rows = load_batch_rows(rows_path, sheet_name=args.sheet)

    orchestrator = _build_orchestrator(job)
    try:
        result = orchestrator.import_rows(rows, validate_only=args.validate_only)
    except BatchCommitError as e:
        logger.error(f"{e}")
        if e.result is not None:
            _write_reports(e.result, Path(job.output_dir), validate_only=False)
        return 1

    _write_reports(result, Path(job.output_dir), args.validate_only)
    return 0


def _run_workbooks(args: argparse.Namespace) -> int:
    overrides = load_overrides(args.facility_name, args.month, args.year)

    uploads = []
    for name in args.workbook_paths:
        path = Path(name)
        if not path.exists():
            logger.error(f"Workbook not found: {path}")
            return 1
        uploads.append(WorkbookUpload(filename=path.name, content=path.read_bytes(),
                                      overrides=overrides))

    job = _build_job(args)
    orchestrator = _build_orchestrator(job)
    try:
        result = orchestrator.import_workbooks(uploads, validate_only=args.validate_only)
    except BatchCommitError as e:
        logger.error(f"{e}")
        if e.result is not None:
            _write_reports(e.result, Path(job.output_dir), validate_only=False)
        return 1

    _write_reports(result, Path(job.output_dir), args.validate_only)
    return 0


def _run_match_ccn(args: argparse.Namespace) -> int:
    listing_path = Path(args.listing_path)
    if not listing_path.exists():
        logger.error(f"CMS listing not found: {listing_path}")
        return 1
    if not args.registry:
        logger.error("--registry is required")
        return 1

    registry = load_registry(args.registry)
    matcher = CcnMatcher.from_records(load_batch_rows(listing_path))
    results = matcher.match_all(registry)

    output_dir = Path(args.output or OUTPUT_DIR)
    output_dir.mkdir(parents=True, exist_ok=True)
    output_path = output_dir / "ccn_matches.csv"
    export_ccn_matches(results, output_path)

    summary = CcnMatcher.summarize(results)
    logger.info(f"Matched: {summary['matched']}")
    logger.info(f"Multiple matches (review): {summary['multiple']}")
    logger.info(f"Low confidence (review): {summary['low_confidence']}")
    logger.info(f"No match: {summary['no_match']}")
    logger.info(f"Results saved to: {output_path}")
    return 0


def _add_common_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--config", "-c", type=str, default=None,
                        help="YAML job configuration")
    parser.add_argument("--registry", "-r", type=str, default=None,
                        help="JSON facility registry")
    parser.add_argument("--store", type=str, default=None,
                        help="JSON scorecard store")
    parser.add_argument("--catalog", type=str, default=None,
                        help="YAML criteria catalog (default: bundled catalog)")
    parser.add_argument("--output", "-o", type=str, default=None,
                        help="Output directory for reports")
    parser.add_argument("--workers", type=int, default=None,
                        help="Worker threads")
    parser.add_argument("--validate-only", action="store_true",
                        help="Validate without saving")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Imports historical clinical systems scorecards"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    rows = subparsers.add_parser("rows", help="Import summary rows (one scorecard per row)")
    rows.add_argument("rows_path", type=str, help="CSV, Excel or JSON file with the rows")
    rows.add_argument("--sheet", "-s", type=str, default=None,
                      help="Excel sheet name (default: first sheet)")
    _add_common_options(rows)

    workbooks = subparsers.add_parser("workbooks", help="Import scorecard workbooks")
    workbooks.add_argument("workbook_paths", nargs="+", type=str, help="Workbook files")
    workbooks.add_argument("--facility-name", type=str, default=None,
                           help="Facility name (overrides the workbook)")
    workbooks.add_argument("--month", type=int, default=None, help="Month (1-12)")
    workbooks.add_argument("--year", type=int, default=None, help="Year")
    _add_common_options(workbooks)

    ccn = subparsers.add_parser("match-ccn", help="Match registry facilities to CMS CCNs")
    ccn.add_argument("listing_path", type=str, help="CMS provider listing (CSV, Excel or JSON)")
    ccn.add_argument("--registry", "-r", type=str, default=None, help="JSON facility registry")
    ccn.add_argument("--output", "-o", type=str, default=None, help="Output directory")

    return parser


def main(argv: Optional[list] = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    logger.info("=" * 70)
    logger.info(f"{SYSTEM_NAME} v{SYSTEM_VERSION}")
    logger.info("=" * 70)

    try:
        if args.command == "rows":
            return _run_rows(args)
        if args.command == "workbooks":
            return _run_workbooks(args)
        return _run_match_ccn(args)

    except ScorecardImportError as e:
        logger.error(f"Import aborted: {e}", exc_info=True)
        return 1
    except Exception as e:
        logger.error(f"Error during import: {e}", exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
