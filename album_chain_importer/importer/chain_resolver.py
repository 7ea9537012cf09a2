"""
Resolve which destination album in a chain still has room for an item.

A source album maps to a chain of destination albums: the base album plus
any overflow albums created once it filled up. Each album has a
``ChainStateRecord`` in the job's store holding its fill count and the id of
the next album in the chain.
"""
import logging
import threading
from contextlib import contextmanager
from typing import Dict, Iterator

from album_chain_importer.exceptions import MissingChainState
from album_chain_importer.importer.overflow import create_overflow_album
from album_chain_importer.models import ChainStateRecord, SourceAlbum
from album_chain_importer.uploader.remote_client import RemoteAlbumService
from album_chain_importer.utils.idempotent_executor import FailurePolicy, IdempotentExecutor
from album_chain_importer.utils.state_manager import ChainStateStore

logger = logging.getLogger(__name__)


class ChainResolver:
    """
    Walks and extends album chains for one job.

    Resolution for a base album runs under that chain's lock. Callers that
    go on to upload and count an item should hold ``chain_lock`` across the
    whole resolve-upload-increment sequence so the capacity check and the
    increment are atomic with respect to other items in the same chain.
    """

    def __init__(self, store: ChainStateStore, remote: RemoteAlbumService,
                 executor: IdempotentExecutor, capacity: int):
        """
        Initialize the resolver.

        Args:
            store: Chain state store
            remote: Destination service adapter
            executor: Idempotent executor for the job being imported
            capacity: Maximum number of items per destination album
        """
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self.store = store
        self.remote = remote
        self.executor = executor
        self.capacity = capacity

        self._locks: Dict[str, threading.RLock] = {}
        self._locks_guard = threading.Lock()

    @contextmanager
    def chain_lock(self, base_album_id: str) -> Iterator[None]:
        """Hold the exclusive section for one album chain."""
        with self._locks_guard:
            lock = self._locks.setdefault(base_album_id, threading.RLock())
        with lock:
            yield

    def create_album(self, job_id: str, album: SourceAlbum) -> str:
        """
        Create a destination album and write its initial chain state.

        The record is only written after the remote creation succeeded, so a
        failure leaves nothing behind. If a record already exists (the
        previous attempt wrote it but crashed before its result was cached)
        it is reused as is.

        Returns:
            The destination album URI
        """
        existing = self.store.get(job_id, album.id)
        if existing is not None:
            logger.info(f"Album {album.id} already has chain state, reusing {existing.destination_uri}")
            return existing.destination_uri

        creation = self.remote.create_album(album.name, album.description)
        record = ChainStateRecord(
            source_album_id=album.id,
            destination_uri=creation.remote_uri,
            destination_album=creation.album_descriptor,
            item_count=0,
        )
        self.store.put(job_id, album.id, record)
        return creation.remote_uri

    def _load(self, job_id: str, album_id: str) -> ChainStateRecord:
        record = self.store.get(job_id, album_id)
        if record is None:
            raise MissingChainState(
                f"There is no chain state for the album with id {album_id}", album_id=album_id
            )
        return record

    def resolve(self, job_id: str, base_album_id: str) -> ChainStateRecord:
        """
        Get the record of the first album in the chain with spare capacity.

        Follows existing overflow links and creates the next overflow album
        when the last one is full. Creation goes through the executor with
        the THROW policy, so a failure aborts the item that needed the room.

        Raises:
            MissingChainState: If the base album (or a linked album) has no record
            RemoteCreationFailure: If a needed overflow album could not be created
        """
        with self.chain_lock(base_album_id):
            base = self._load(job_id, base_album_id)
            current = base
            depth = 0
            visited = {current.source_album_id}

            while current.is_full(self.capacity):
                if current.overflow_album_id:
                    next_id = current.overflow_album_id
                else:
                    next_id = self._extend_chain(job_id, base, current, depth + 1)

                if next_id in visited:
                    raise MissingChainState(
                        f"Chain state for {base_album_id} loops back to {next_id}",
                        album_id=next_id
                    )
                visited.add(next_id)
                current = self._load(job_id, next_id)
                depth += 1

            logger.debug(
                f"Resolved {base_album_id} -> {current.source_album_id} "
                f"({current.item_count}/{self.capacity})"
            )
            return current

    def _extend_chain(self, job_id: str, base: ChainStateRecord,
                      current: ChainStateRecord, depth: int) -> str:
        album = create_overflow_album(base.source_album_id, base.destination_album, depth)
        logger.info(
            f"Album {current.source_album_id} is full ({current.item_count}/{self.capacity}), "
            f"linking overflow album {album.id}"
        )
        self.executor.run_cached(
            album.id,
            album.name,
            lambda: self.create_album(job_id, album),
            on_failure=FailurePolicy.THROW,
        )
        current.overflow_album_id = album.id
        self.store.update(job_id, current.source_album_id, current)
        return album.id

    def record_upload(self, job_id: str, record: ChainStateRecord) -> None:
        """Count one successfully uploaded item against ``record``."""
        record.increment_item_count()
        self.store.update(job_id, record.source_album_id, record)
