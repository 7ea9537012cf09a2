"""
Per-job import loop.

Creates every base album, then places each item into the first album of its
chain with spare capacity, uploads it and counts it. Album and item steps run
through the job's ``IdempotentExecutor`` so a re-run skips whatever already
succeeded. One album's or item's failure is recorded in the report and never
stops its siblings.
"""
import logging
import threading
from typing import BinaryIO, List, Optional

from tqdm import tqdm

from album_chain_importer.config import DEFAULT_ALBUM_MAX_SIZE, ImporterConfig
from album_chain_importer.importer.chain_resolver import ChainResolver
from album_chain_importer.models import SourceAlbum, SourceItem
from album_chain_importer.processor.transmogrifier import Transmogrifier
from album_chain_importer.reporting.import_report import ImportReport, Outcome, OutcomeStatus
from album_chain_importer.uploader.remote_client import RemoteAlbumService
from album_chain_importer.utils.idempotent_executor import FailurePolicy, IdempotentExecutor
from album_chain_importer.utils.parallel import run_cancellable
from album_chain_importer.utils.state_manager import ChainStateStore

logger = logging.getLogger(__name__)


class ImportCoordinator:
    """Imports jobs of albums and items into a capacity-limited destination."""

    def __init__(self, store: ChainStateStore, remote: RemoteAlbumService,
                 capacity: int = DEFAULT_ALBUM_MAX_SIZE,
                 transmogrifier: Optional[Transmogrifier] = None,
                 max_workers: Optional[int] = 1,
                 show_progress: bool = False):
        """
        Initialize the coordinator.

        Args:
            store: Chain state store shared by all jobs
            remote: Destination service adapter
            capacity: Maximum number of items per destination album
            transmogrifier: Field cleanup applied before import
            max_workers: Item workers; None auto-detects, 1 runs sequentially
            show_progress: Show a tqdm progress bar for items
        """
        self.store = store
        self.remote = remote
        self.capacity = capacity
        self.transmogrifier = transmogrifier or Transmogrifier()
        self.max_workers = max_workers
        self.show_progress = show_progress

        self._stop_event = threading.Event()
        self._report_lock = threading.Lock()

    @classmethod
    def from_config(cls, config: ImporterConfig,
                    remote: Optional[RemoteAlbumService] = None) -> 'ImportCoordinator':
        """Build a coordinator and its collaborators from configuration."""
        if remote is None:
            remote = RemoteAlbumService(
                api_base_url=config.destination.api_base_url,
                access_token=config.destination.access_token,
                upload_url=config.destination.upload_url,
                timeout_seconds=config.destination.timeout_seconds,
                max_retries=config.destination.max_retries,
            )
        return cls(
            store=ChainStateStore(config.storage.base_path),
            remote=remote,
            capacity=config.importing.album_max_size,
            transmogrifier=Transmogrifier(config.transmogrification),
            max_workers=config.importing.worker_count,
            show_progress=config.importing.show_progress,
        )

    def executor_for_job(self, job_id: str) -> IdempotentExecutor:
        return IdempotentExecutor(self.store.job_dir(job_id))

    def cancel(self) -> None:
        """Stop starting new items in the running job. Finished work is kept."""
        logger.info("Cancellation requested; no new items will be started")
        self._stop_event.set()

    def reset_cancellation(self) -> None:
        """Clear an earlier cancel() so the next import_job runs every item."""
        self._stop_event.clear()

    def import_job(self, job_id: str, albums: List[SourceAlbum], items: List[SourceItem],
                   executor: Optional[IdempotentExecutor] = None) -> ImportReport:
        """
        Import one job.

        Args:
            job_id: Job identifier; scopes all persisted state
            albums: Source albums
            items: Source items, each referencing an album by id
            executor: Optional executor (defaults to the job's persisted one)

        Returns:
            ImportReport with one outcome per album id and per item key

        A cancel() issued before this call is honoured: no items are started.
        Call reset_cancellation() first to run a coordinator again after a cancel.

        Raises:
            InvariantViolation: On a programming fault. Nothing else escapes.
        """
        report = ImportReport(job_id=job_id)
        report.start()

        executor = executor or self.executor_for_job(job_id)
        resolver = ChainResolver(self.store, self.remote, executor, self.capacity)
        albums, items = self.transmogrifier.transmogrify(albums, items)

        logger.info(
            f"Starting import of job {job_id}: {len(albums)} albums, {len(items)} items "
            f"(album capacity {self.capacity})",
            extra={'job_id': job_id}
        )

        for album in albums:
            uri = executor.run_cached(
                album.id,
                album.name,
                lambda album=album: resolver.create_album(job_id, album),
                on_failure=FailurePolicy.SWALLOW,
            )
            outcome = self._outcome(executor, album.id, album.name, uri)
            if not outcome.succeeded:
                logger.error(f"Problem creating album {album.id} ({album.name}): {outcome.error}",
                             extra={'job_id': job_id})
            report.record_album(outcome)

        def import_one(item: SourceItem) -> None:
            handle_uri = executor.run_cached(
                item.key,
                item.title,
                lambda: self._import_item(job_id, item, resolver, executor),
                on_failure=FailurePolicy.SWALLOW,
            )
            with self._report_lock:
                report.record_item(self._outcome(executor, item.key, item.title, handle_uri))

        progress = tqdm(total=len(items), desc="Importing items", unit="item",
                        disable=not self.show_progress)
        try:
            not_started = run_cancellable(
                import_one,
                items,
                max_workers=self.max_workers,
                stop_event=self._stop_event,
                on_done=lambda _: progress.update(1),
            )
        finally:
            progress.close()

        for item in not_started:
            report.record_item(Outcome(
                key=item.key,
                label=item.title,
                status=OutcomeStatus.SKIPPED,
                error="Import cancelled before this item started",
            ))
        report.cancelled = self._stop_event.is_set()
        report.finish()

        logger.info(
            f"Finished job {job_id}: albums {report.albums_succeeded} ok / {report.albums_failed} failed, "
            f"items {report.items_succeeded} ok / {report.items_failed} failed / "
            f"{report.items_skipped} skipped",
            extra={'job_id': job_id}
        )
        return report

    def _import_item(self, job_id: str, item: SourceItem, resolver: ChainResolver,
                     executor: IdempotentExecutor) -> str:
        """
        Resolve, load, upload and count one item.

        The chain lock is held throughout so that the capacity check and the
        increment happen atomically for this chain.

        Returns:
            The upload handle's URI, cached as the item's success marker
        """
        with resolver.chain_lock(item.album_id):
            record = resolver.resolve(job_id, item.album_id)
            destination_uri = executor.cached_result(record.source_album_id) or record.destination_uri

            content = self._load_content(job_id, item)
            try:
                handle = self.remote.upload_item(item, destination_uri, content)
            finally:
                content.close()

            resolver.record_upload(job_id, record)

        logger.debug(f"Imported {item.key} into {record.source_album_id} ({record.item_count}/{self.capacity})")
        return handle.uri

    def _load_content(self, job_id: str, item: SourceItem) -> BinaryIO:
        if item.is_staged:
            return self.store.open_staged_content(job_id, item.content_locator)
        return self.remote.fetch_content(item.content_locator)

    @staticmethod
    def _outcome(executor: IdempotentExecutor, key: str, label: str, value) -> Outcome:
        if value is not None:
            return Outcome(key=key, label=label, status=OutcomeStatus.SUCCESS, value=value)

        error = executor.get_error(key) or {}
        return Outcome(
            key=key,
            label=label,
            status=OutcomeStatus.FAILED,
            error=error.get('error', 'unknown error'),
            error_type=error.get('error_type'),
        )
