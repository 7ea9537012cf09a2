"""
Keyed once-only execution for import steps.

Every album creation and item upload runs through an ``IdempotentExecutor``
under a stable key. Successful results are persisted per job, so a re-run of
the same job returns the cached result instead of repeating the side effect.
"""
import json
import logging
import threading
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, Optional, TypeVar

from album_chain_importer.exceptions import MigrationError
from album_chain_importer.utils.state_manager import write_json_atomic

logger = logging.getLogger(__name__)

T = TypeVar('T')

RESULTS_FILENAME = 'idempotent_results.json'

# Failures the SWALLOW policy records instead of raising. Anything else
# (including InvariantViolation) always propagates.
SWALLOWED_EXCEPTIONS = (MigrationError, OSError)


class FailurePolicy(Enum):
    """What ``run_cached`` does when the operation fails."""
    THROW = "throw"
    SWALLOW = "swallow"


class IdempotentExecutor:
    """Runs each keyed operation at most once per job."""

    def __init__(self, job_dir: Path):
        """
        Initialize the executor for one job.

        Args:
            job_dir: Job state directory; results are stored in it
        """
        self.job_dir = Path(job_dir)
        self.job_dir.mkdir(parents=True, exist_ok=True)
        self.results_file = self.job_dir / RESULTS_FILENAME

        self._results: Dict[str, Dict[str, Any]] = {}
        self._errors: Dict[str, Dict[str, Any]] = {}
        self._lock = threading.RLock()
        self._key_locks: Dict[str, threading.Lock] = {}

        self._load()

    def _load(self):
        if not self.results_file.exists():
            return
        try:
            with open(self.results_file, 'r') as f:
                data = json.load(f)
            self._results = data.get('results', {})
            self._errors = data.get('errors', {})
            logger.info(
                f"📂 Loaded {len(self._results)} cached results "
                f"({len(self._errors)} recorded failures) from {self.results_file}"
            )
        except (json.JSONDecodeError, IOError) as e:
            logger.warning(f"⚠️  Could not load cached results from {self.results_file}: {e}")
            self._results = {}
            self._errors = {}

    def _save(self):
        with self._lock:
            write_json_atomic(self.results_file, {
                'results': self._results,
                'errors': self._errors,
            })

    def _key_lock(self, key: str) -> threading.Lock:
        with self._lock:
            if key not in self._key_locks:
                self._key_locks[key] = threading.Lock()
            return self._key_locks[key]

    def is_key_cached(self, key: str) -> bool:
        with self._lock:
            return key in self._results

    def cached_result(self, key: str) -> Optional[Any]:
        """Get the cached result for ``key`` without running anything."""
        with self._lock:
            entry = self._results.get(key)
            return entry['value'] if entry else None

    def get_error(self, key: str) -> Optional[Dict[str, Any]]:
        """Get the most recent recorded failure for ``key``."""
        with self._lock:
            return self._errors.get(key)

    @property
    def errors(self) -> Dict[str, Dict[str, Any]]:
        with self._lock:
            return dict(self._errors)

    def run_cached(
        self,
        key: str,
        label: str,
        op: Callable[[], T],
        on_failure: FailurePolicy = FailurePolicy.SWALLOW
    ) -> Optional[T]:
        """
        Run ``op`` unless a result for ``key`` is already cached.

        Args:
            key: Stable idempotency key
            label: Human-readable name used in logs and failure records
            op: Operation to run; its result must be JSON-serializable
            on_failure: THROW re-raises the failure, SWALLOW records it and
                returns None

        Returns:
            The cached or freshly computed result, or None if the operation
            failed under the SWALLOW policy
        """
        with self._key_lock(key):
            with self._lock:
                if key in self._results:
                    logger.debug(f"Using cached result for {key} ({label})")
                    return self._results[key]['value']

            try:
                value = op()
            except SWALLOWED_EXCEPTIONS as e:
                self._record_failure(key, label, e)
                if on_failure is FailurePolicy.THROW:
                    raise
                logger.warning(f"Failed {label} ({key}): {e}")
                return None

            with self._lock:
                self._results[key] = {
                    'label': label,
                    'value': value,
                    'completed_at': datetime.now().isoformat(),
                }
                self._errors.pop(key, None)
                self._save()
            return value

    def _record_failure(self, key: str, label: str, error: Exception):
        with self._lock:
            self._errors[key] = {
                'label': label,
                'error': str(error),
                'error_type': type(error).__name__,
                'failed_at': datetime.now().isoformat(),
            }
            self._save()
