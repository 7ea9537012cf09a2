"""
Import orchestrator: wires configuration, logging, storage and reporting
around the import coordinator for command line runs.
"""
import logging
import signal
from pathlib import Path
from typing import Dict, List, Tuple

import yaml

from album_chain_importer.config import ImporterConfig
from album_chain_importer.exceptions import ConfigurationError
from album_chain_importer.importer.coordinator import ImportCoordinator
from album_chain_importer.models import SourceAlbum, SourceItem
from album_chain_importer.reporting.import_report import ImportReport
from album_chain_importer.reporting.report_generator import ReportGenerator
from album_chain_importer.utils.logging_config import setup_logging

logger = logging.getLogger(__name__)


def load_manifest(manifest_path: Path) -> Tuple[List[SourceAlbum], List[SourceItem]]:
    """
    Load a job manifest.

    The manifest is a JSON or YAML document with ``albums`` and ``items``
    lists; see ``SourceAlbum.from_dict`` and ``SourceItem.from_dict`` for the
    fields of each entry.

    Raises:
        ConfigurationError: If the manifest cannot be read or is malformed
    """
    try:
        with open(manifest_path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f)
    except (yaml.YAMLError, IOError, OSError) as e:
        raise ConfigurationError(f"Failed to load manifest '{manifest_path}': {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"Manifest '{manifest_path}' must be a mapping with albums and items")

    try:
        albums = [SourceAlbum.from_dict(a) for a in data.get('albums') or []]
        items = [SourceItem.from_dict(i) for i in data.get('items') or []]
    except (KeyError, TypeError, AttributeError) as e:
        raise ConfigurationError(f"Malformed manifest entry in '{manifest_path}': {e}") from e

    return albums, items


class ImportOrchestrator:
    """Runs and inspects import jobs described by a configuration file."""

    def __init__(self, config_path: str):
        """
        Initialize the orchestrator.

        Args:
            config_path: Path to configuration YAML file
        """
        self.config_path = config_path
        try:
            self.config = ImporterConfig.from_yaml(config_path, validate=True)
        except ValueError as e:
            raise ConfigurationError(str(e)) from e

        self.base_dir = self.config.storage.base_path
        self.base_dir.mkdir(parents=True, exist_ok=True)

        self.log_file_path = Path(self.config.logging.file)
        if not self.log_file_path.is_absolute():
            self.log_file_path = self.base_dir / self.log_file_path
        setup_logging(
            log_file=str(self.log_file_path),
            level=self.config.logging.level,
            enable_json=self.config.logging.json,
        )

        self.coordinator = ImportCoordinator.from_config(self.config)
        self.store = self.coordinator.store

    def run_import(self, job_id: str, manifest_path: Path) -> ImportReport:
        """
        Import a job from a manifest and save its reports.

        Ctrl+C stops new items from starting; the report still lists every
        album and item, with unstarted items marked as skipped.
        """
        albums, items = load_manifest(manifest_path)
        logger.info(f"Loaded manifest {manifest_path}: {len(albums)} albums, {len(items)} items")

        self.coordinator.reset_cancellation()

        def handle_interrupt(signum, frame):
            logger.warning("Interrupt received, finishing running items before stopping...")
            self.coordinator.cancel()

        previous_handler = signal.signal(signal.SIGINT, handle_interrupt)
        try:
            report = self.coordinator.import_job(job_id, albums, items)
        finally:
            signal.signal(signal.SIGINT, previous_handler)

        self._generate_final_report(report)
        return report

    def _generate_final_report(self, report: ImportReport) -> None:
        logger.info("")
        logger.info("=" * 80)
        logger.info("GENERATING IMPORT REPORT")
        logger.info("=" * 80)

        generator = ReportGenerator(
            report=report,
            output_dir=self.store.job_dir(report.job_id),
            chain_statistics=self.store.get_statistics(report.job_id),
            log_file=self.log_file_path,
        )
        text_path = generator.save_report(format='text')
        json_path = generator.save_report(format='json')
        logger.info(f"✓ Import report saved to: {text_path.absolute()}")
        logger.info(f"✓ JSON report saved to: {json_path.absolute()}")

    def job_status(self, job_id: str) -> Dict:
        """Get chain statistics and recorded failures for a job."""
        executor = self.coordinator.executor_for_job(job_id)
        status = self.store.get_statistics(job_id)
        status['failures'] = executor.errors
        return status

    def clear_job(self, job_id: str) -> None:
        self.store.clear_job(job_id)
