"""
Per-job chain state persistence and staged content access.
"""
import io
import json
import logging
import os
import shutil
import threading
from pathlib import Path
from typing import BinaryIO, Dict, Optional

from album_chain_importer.exceptions import ContentFetchFailure, MissingChainState
from album_chain_importer.models import ChainStateRecord
from album_chain_importer.utils.security import validate_file_path

logger = logging.getLogger(__name__)

CHAIN_STATE_FILENAME = 'chain_state.json'
STAGING_DIRNAME = 'staging'


def write_json_atomic(path: Path, data) -> None:
    """Write JSON through a temporary file so a crash never leaves half a file."""
    tmp_path = path.with_suffix(path.suffix + '.tmp')
    with open(tmp_path, 'w') as f:
        json.dump(data, f, indent=2)
    os.replace(tmp_path, path)


class ChainStateStore:
    """
    Durable mapping from destination album key to ``ChainStateRecord``.

    State is scoped by job id: each job gets its own directory under
    ``<base_dir>/jobs/<job_id>`` holding the chain state file and the staging
    area for temporary item content. Records are kept in memory and written
    through to disk on every change.
    """

    def __init__(self, base_dir: Path):
        """
        Initialize the chain state store.

        Args:
            base_dir: Root directory for all job state
        """
        self.base_dir = Path(base_dir)
        self.jobs_dir = self.base_dir / 'jobs'
        self.jobs_dir.mkdir(parents=True, exist_ok=True)

        self._records: Dict[str, Dict[str, dict]] = {}
        self._lock = threading.RLock()

    def job_dir(self, job_id: str) -> Path:
        """Get (and create) the directory holding a job's state."""
        path = self.jobs_dir / str(job_id)
        path.mkdir(parents=True, exist_ok=True)
        return path

    def staging_dir(self, job_id: str) -> Path:
        path = self.job_dir(job_id) / STAGING_DIRNAME
        path.mkdir(parents=True, exist_ok=True)
        return path

    def _state_file(self, job_id: str) -> Path:
        return self.job_dir(job_id) / CHAIN_STATE_FILENAME

    def _load_job(self, job_id: str) -> Dict[str, dict]:
        """Load a job's records, reading the state file on first access."""
        if job_id in self._records:
            return self._records[job_id]

        state_file = self._state_file(job_id)
        records: Dict[str, dict] = {}
        if state_file.exists():
            try:
                with open(state_file, 'r') as f:
                    records = json.load(f)
                logger.info(f"📂 Loaded chain state for job {job_id}: {len(records)} records")
            except (json.JSONDecodeError, IOError) as e:
                logger.warning(f"⚠️  Could not load chain state from {state_file}: {e}")
                logger.warning("   Starting with empty chain state for this job")
                records = {}
        else:
            logger.debug(f"No chain state file for job {job_id}, starting fresh")

        self._records[job_id] = records
        return records

    def _save_job(self, job_id: str) -> None:
        state_file = self._state_file(job_id)
        try:
            write_json_atomic(state_file, self._records.get(job_id, {}))
        except IOError as e:
            logger.error(f"❌ Could not save chain state to {state_file}: {e}")
            raise

    def get(self, job_id: str, key: str) -> Optional[ChainStateRecord]:
        """Get the record stored under ``key``, or None."""
        with self._lock:
            data = self._load_job(job_id).get(key)
            if data is None:
                return None
            return ChainStateRecord.from_dict(data)

    def put(self, job_id: str, key: str, record: ChainStateRecord) -> None:
        """Store a new record under ``key``."""
        with self._lock:
            records = self._load_job(job_id)
            if key in records:
                logger.warning(f"Overwriting existing chain state for {key} (job {job_id})")
            records[key] = record.to_dict()
            self._save_job(job_id)
        logger.debug(f"Stored chain state: {key} -> {record.destination_uri}")

    def update(self, job_id: str, key: str, record: ChainStateRecord) -> None:
        """
        Overwrite the record stored under ``key``.

        Raises:
            MissingChainState: If nothing was put under ``key`` before
        """
        with self._lock:
            records = self._load_job(job_id)
            if key not in records:
                raise MissingChainState(
                    f"Cannot update chain state for {key}: no record exists", album_id=key
                )
            records[key] = record.to_dict()
            self._save_job(job_id)
        logger.debug(
            f"Updated chain state: {key} (items: {record.item_count}, "
            f"overflow: {record.overflow_album_id})"
        )

    def records(self, job_id: str) -> Dict[str, ChainStateRecord]:
        """Get a snapshot of every record for a job."""
        with self._lock:
            return {
                key: ChainStateRecord.from_dict(data)
                for key, data in self._load_job(job_id).items()
            }

    def stage_content(self, job_id: str, locator: str, data: bytes) -> Path:
        """Write temporary item content into the job's staging area."""
        path = validate_file_path(locator, self.staging_dir(job_id))
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
        return path

    def open_staged_content(self, job_id: str, locator: str) -> BinaryIO:
        """
        Open staged content for reading.

        Raises:
            ContentFetchFailure: If the locator is invalid or the content is missing
        """
        try:
            path = validate_file_path(locator, self.staging_dir(job_id))
        except ValueError as e:
            raise ContentFetchFailure(str(e), locator=locator) from e

        try:
            with open(path, 'rb') as f:
                return io.BytesIO(f.read())
        except (IOError, OSError) as e:
            raise ContentFetchFailure(
                f"Could not read staged content {locator}: {e}", locator=locator
            ) from e

    def clear_job(self, job_id: str) -> None:
        """Remove all state for a job."""
        with self._lock:
            self._records.pop(job_id, None)
            path = self.jobs_dir / str(job_id)
            if path.exists():
                shutil.rmtree(path)
        logger.info(f"Cleared all state for job {job_id}")

    def get_statistics(self, job_id: str) -> Dict:
        """Get statistics about a job's chains."""
        records = self.records(job_id)
        linked = {r.overflow_album_id for r in records.values() if r.overflow_album_id}
        roots = [key for key in records if key not in linked]

        chains = {}
        for root in roots:
            length = 0
            items = 0
            current = records.get(root)
            while current is not None and length <= len(records):
                length += 1
                items += current.item_count
                current = records.get(current.overflow_album_id) if current.overflow_album_id else None
            chains[root] = {'albums': length, 'items': items}

        return {
            'total_records': len(records),
            'total_chains': len(roots),
            'total_items': sum(r.item_count for r in records.values()),
            'overflow_albums': len(linked),
            'chains': chains,
        }
