"""
Batch import reports
"""
import json
import logging
from collections import Counter
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

import pandas as pd

from config.settings import ISSUE_DESCRIPTIONS
from controllers.score_calculator import percentage
from models.ccn_data import CcnMatchResult
from models.scorecard_data import ImportBatchResult
from utils.text_utils import join_messages

logger = logging.getLogger(__name__)


class ReportGenerator:
    """Writes the result of an import batch in several formats."""

    def __init__(self, result: ImportBatchResult, validate_only: bool = False):
        """
        Args:
            result: Batch result
            validate_only: Whether the batch was a dry run
        """
        self.result = result
        self.validate_only = validate_only
        self.df_rows: Optional[pd.DataFrame] = None

    def prepare_dataframe(self) -> pd.DataFrame:
        """
        One line per row/workbook of the batch.

        Returns:
            DataFrame with the outcome of every row
        """
        if self.df_rows is not None:
            return self.df_rows

        data = []
        for outcome in self.result.outcomes:
            match = outcome.validation.facility_match
            data.append({
                'row': outcome.row,
                'filename': outcome.filename or '',
                'facility_name': outcome.facility_name,
                'matched_facility': match.target_name if match else '',
                'facility_id': match.target_id if match else None,
                'match_score': match.score if match else 0.0,
                'match_method': match.method if match else '',
                'month': outcome.month,
                'year': outcome.year,
                'total_score': outcome.total_score,
                'is_valid': outcome.is_valid,
                'errors': join_messages(outcome.validation.errors),
                'warnings': join_messages(outcome.validation.warnings),
                'error_codes': ', '.join(outcome.validation.error_codes),
            })

        columns = ['row', 'filename', 'facility_name', 'matched_facility', 'facility_id',
                   'match_score', 'match_method', 'month', 'year', 'total_score',
                   'is_valid', 'errors', 'warnings', 'error_codes']
        self.df_rows = pd.DataFrame(data, columns=columns)
        return self.df_rows

    def export_excel(self, output_path: Path) -> None:
        """
        Export the report as an Excel workbook.

        Sheets: "All Rows", "Failed Rows" (when any row failed) and
        "Statistics".

        Args:
            output_path: Output file
        """
        logger.info(f"Writing Excel report: {output_path}")

        df = self.prepare_dataframe()

        with pd.ExcelWriter(output_path, engine='openpyxl') as writer:
            df.to_excel(writer, sheet_name='All Rows', index=False)

            df_failed = df[~df['is_valid'].astype(bool)]
            if len(df_failed) > 0:
                df_failed.to_excel(writer, sheet_name='Failed Rows', index=False)

            self._create_statistics_df(df).to_excel(writer, sheet_name='Statistics', index=False)

        logger.info(f"Excel report written: {output_path}")

    def _error_code_counts(self) -> Counter:
        return Counter(
            code
            for outcome in self.result.outcomes
            for code in outcome.validation.error_codes
        )

    def _create_statistics_df(self, df: pd.DataFrame) -> pd.DataFrame:
        total = len(df)
        valid = int(df['is_valid'].astype(bool).sum()) if total else 0

        stats_data = [
            ['SUMMARY', '', ''],
            ['Rows', total, ''],
            ['Valid', valid, f"{percentage(valid, total)}% of rows"],
            ['Failed', total - valid, ''],
            ['Committed', 'no (validate only)' if self.validate_only else
             ('yes' if self.result.committed else 'no'), ''],
            ['', '', ''],
            ['ERRORS BY TYPE', '', ''],
        ]
        for code, count in self._error_code_counts().most_common():
            stats_data.append([code, count, ISSUE_DESCRIPTIONS.get(code, '')])

        return pd.DataFrame(stats_data, columns=['Metric', 'Value', 'Description'])

    def export_csv(self, output_path: Path) -> None:
        """
        Export the row outcomes as CSV.

        Args:
            output_path: Output file
        """
        logger.info(f"Writing CSV report: {output_path}")

        df = self.prepare_dataframe()
        df.to_csv(output_path, index=False, encoding='utf-8-sig')

        logger.info(f"CSV report written: {output_path}")

    def to_payload(self) -> Dict[str, Any]:
        """Validate-only or commit view of the batch."""
        if self.validate_only:
            return self.result.to_validation_dict()
        return self.result.to_dict()

    def export_json(self, output_path: Path) -> None:
        """
        Export the batch result as JSON.

        Args:
            output_path: Output file
        """
        logger.info(f"Writing JSON report: {output_path}")

        with open(output_path, 'w', encoding='utf-8') as f:
            json.dump(self.to_payload(), f, ensure_ascii=False, indent=2, default=str)

        logger.info(f"JSON report written: {output_path}")

    def export_summary_report(self, output_path: Optional[Path] = None) -> str:
        """
        Build a plain-text summary, optionally written to a file.

        Args:
            output_path: Output file (not written when None)

        Returns:
            Summary text
        """
        outcomes = self.result.outcomes
        total = len(outcomes)
        valid = sum(1 for outcome in outcomes if outcome.is_valid)

        lines = []
        lines.append("=" * 70)
        lines.append("HISTORICAL SCORECARD IMPORT")
        lines.append("=" * 70)
        lines.append("")
        lines.append(f"Report date: {datetime.now().strftime('%Y-%m-%d %H:%M')}")
        lines.append(f"Mode: {'validate only' if self.validate_only else 'import'}")
        lines.append(f"Rows processed: {total}")
        lines.append("")

        lines.append("-" * 70)
        lines.append("RESULT")
        lines.append("-" * 70)
        pct_valid = percentage(valid, total)
        lines.append(f"  Valid:   {valid:4d} ({pct_valid:5.1f}%)")
        lines.append(f"  Failed:  {total - valid:4d}")
        if not self.validate_only:
            lines.append(f"  Committed: {'yes' if self.result.committed else 'no'}")
        lines.append("")

        codes = self._error_code_counts()
        if codes:
            lines.append("-" * 70)
            lines.append("ERRORS BY TYPE")
            lines.append("-" * 70)
            for code, count in codes.most_common():
                lines.append(f"  {code:<28} {count:4d}  {ISSUE_DESCRIPTIONS.get(code, '')}")
            lines.append("")

        failed = [error for error in self.result.errors]
        if failed:
            lines.append("-" * 70)
            lines.append("FAILED ROWS")
            lines.append("-" * 70)
            for error in failed:
                lines.append(f"  Row {error['row']}: {error['error']}")
            lines.append("")

        if self.result.warnings:
            lines.append(f"Warnings: {len(self.result.warnings)} (see detailed report)")
            lines.append("")

        lines.append("=" * 70)
        text = '\n'.join(lines)

        if output_path is not None:
            with open(output_path, 'w', encoding='utf-8') as f:
                f.write(text)
            logger.info(f"Summary report written: {output_path}")

        return text


def export_ccn_matches(results: List[CcnMatchResult], output_path: Path) -> None:
    """
    Write CCN match results; the format follows the file suffix
    (.xlsx, .json, anything else as CSV).
    """
    output_path = Path(output_path)
    records = [result.to_dict() for result in results]

    if output_path.suffix.lower() == '.json':
        with open(output_path, 'w', encoding='utf-8') as f:
            json.dump(records, f, ensure_ascii=False, indent=2, default=str)
    else:
        rows = []
        for record in records:
            candidates = record.pop('candidates')
            record['candidates'] = '; '.join(
                f"{c['ccn']} {c['name']} ({c['city']}) {c['score']}%" for c in candidates
            )
            rows.append(record)
        df = pd.DataFrame(rows)
        if output_path.suffix.lower() == '.xlsx':
            df.to_excel(output_path, sheet_name='CCN Matches', index=False, engine='openpyxl')
        else:
            df.to_csv(output_path, index=False, encoding='utf-8-sig')

    logger.info(f"CCN matches written: {output_path}")
