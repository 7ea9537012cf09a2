"""
Report generator for import results.
"""
import json
from pathlib import Path
from typing import Dict, Optional
from datetime import datetime

from album_chain_importer.reporting.import_report import ImportReport, Outcome, OutcomeStatus


class ReportGenerator:
    """Generates text and JSON reports for one import run."""

    def __init__(self, report: ImportReport, output_dir: Path,
                 chain_statistics: Optional[Dict] = None,
                 log_file: Optional[Path] = None):
        """
        Initialize report generator.

        Args:
            report: Outcome report of the run
            output_dir: Directory reports are written to (usually the job directory)
            chain_statistics: Optional ``ChainStateStore.get_statistics`` output
            log_file: Path to log file
        """
        self.report = report
        self.output_dir = Path(output_dir)
        self.chain_statistics = chain_statistics
        self.log_file = log_file

    def _format_duration(self, seconds: Optional[float]) -> str:
        """Format duration to human-readable string."""
        if seconds is None:
            return "N/A"

        hours = int(seconds // 3600)
        minutes = int((seconds % 3600) // 60)
        secs = int(seconds % 60)

        if hours > 0:
            return f"{hours}h {minutes}m {secs}s"
        elif minutes > 0:
            return f"{minutes}m {secs}s"
        else:
            return f"{secs}s"

    def _calculate_success_rate(self, successful: int, total: int) -> float:
        if total == 0:
            return 0.0
        return (successful / total) * 100.0

    def _failure_lines(self, outcomes: Dict[str, Outcome]):
        for key, outcome in sorted(outcomes.items()):
            if outcome.status is OutcomeStatus.FAILED:
                yield f"  {key} ({outcome.label}): {outcome.error_type}: {outcome.error}"

    def generate_text_report(self) -> str:
        """Generate a text-formatted report."""
        report = self.report
        lines = []

        lines.append("=" * 80)
        lines.append(f"ALBUM IMPORT REPORT - JOB {report.job_id}")
        lines.append("=" * 80)
        lines.append("")

        if report.start_time and report.end_time:
            lines.append(f"Start Time:     {report.start_time.strftime('%Y-%m-%d %H:%M:%S')}")
            lines.append(f"End Time:       {report.end_time.strftime('%Y-%m-%d %H:%M:%S')}")
            lines.append(f"Duration:       {self._format_duration(report.get_duration())}")
        if report.cancelled:
            lines.append("Status:         CANCELLED (remaining items were skipped)")
        lines.append("")

        total_albums = len(report.album_outcomes)
        lines.append("Albums:")
        lines.append(f"  Created or Cached:         {report.albums_succeeded}/{total_albums}")
        if report.albums_failed > 0:
            lines.append(f"  Failed:                    {report.albums_failed}/{total_albums}")
        lines.append("")

        total_items = len(report.item_outcomes)
        attempted = report.items_succeeded + report.items_failed
        lines.append("Items:")
        lines.append(f"  Imported:                  {report.items_succeeded}/{total_items}")
        if report.items_failed > 0:
            lines.append(f"  Failed:                    {report.items_failed}")
        if report.items_skipped > 0:
            lines.append(f"  Skipped:                   {report.items_skipped}")
        rate = self._calculate_success_rate(report.items_succeeded, attempted)
        lines.append(f"  Success Rate:              {rate:.1f}%")
        lines.append("")

        if self.chain_statistics:
            lines.append("Album Chains:")
            lines.append(f"  Destination Albums:        {self.chain_statistics['total_records']}")
            lines.append(f"  Overflow Albums:           {self.chain_statistics['overflow_albums']}")
            for root, chain in sorted(self.chain_statistics['chains'].items()):
                if chain['albums'] > 1:
                    lines.append(f"  {root}: {chain['items']} items across {chain['albums']} albums")
            lines.append("")

        if report.has_failures:
            lines.append("=" * 80)
            lines.append("FAILURES")
            lines.append("=" * 80)
            album_failures = list(self._failure_lines(report.album_outcomes))
            if album_failures:
                lines.append("Albums:")
                lines.extend(album_failures)
            item_failures = list(self._failure_lines(report.item_outcomes))
            if item_failures:
                lines.append("Items:")
                lines.extend(item_failures)
            lines.append("")
            lines.append("Re-run the same job to retry; completed albums and items are skipped.")
            lines.append("")
        else:
            lines.append("✓ Import completed without failures.")
            lines.append("")

        if self.log_file and self.log_file.exists():
            lines.append(f"Detailed Log File:            {self.log_file.absolute()}")
            lines.append("")

        lines.append("=" * 80)
        lines.append(f"Report generated: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
        lines.append("=" * 80)

        return "\n".join(lines)

    def save_report(self, output_path: Optional[Path] = None, format: str = 'text') -> Path:
        """
        Save report to file.

        Args:
            output_path: Optional output path (defaults to output_dir/import_report.txt or .json)
            format: Report format ('text' or 'json')

        Returns:
            Path to saved report file
        """
        if format not in ('text', 'json'):
            raise ValueError(f"Unknown report format: {format}")

        if output_path is None:
            suffix = 'json' if format == 'json' else 'txt'
            output_path = self.output_dir / f'import_report.{suffix}'

        with open(output_path, 'w', encoding='utf-8') as f:
            if format == 'json':
                data = self.report.to_dict()
                if self.chain_statistics is not None:
                    data['chains'] = self.chain_statistics
                json.dump(data, f, indent=2, default=str)
            else:
                f.write(self.generate_text_report())

        return output_path
