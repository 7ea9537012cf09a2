"""
Tests for the chain state store.
"""
import json

import pytest

from album_chain_importer.exceptions import ContentFetchFailure, MissingChainState
from album_chain_importer.models import ChainStateRecord
from album_chain_importer.utils.state_manager import CHAIN_STATE_FILENAME, ChainStateStore


def make_record(key, item_count=0, overflow=None):
    return ChainStateRecord(
        source_album_id=key,
        destination_uri=f"/album/{key}",
        destination_album={'name': key},
        item_count=item_count,
        overflow_album_id=overflow,
    )


class TestChainStateStore:
    """Tests for ChainStateStore class."""

    def test_initialization_creates_jobs_dir(self, tmp_path):
        store = ChainStateStore(tmp_path / 'state')

        assert (tmp_path / 'state' / 'jobs').is_dir()

    def test_get_missing_returns_none(self, store):
        assert store.get('job-1', 'A') is None

    def test_put_and_get(self, store):
        store.put('job-1', 'A', make_record('A', item_count=1))

        record = store.get('job-1', 'A')
        assert record == make_record('A', item_count=1)

    def test_get_returns_a_copy(self, store):
        store.put('job-1', 'A', make_record('A'))

        record = store.get('job-1', 'A')
        record.item_count = 99

        assert store.get('job-1', 'A').item_count == 0

    def test_jobs_are_isolated(self, store):
        store.put('job-1', 'A', make_record('A'))

        assert store.get('job-2', 'A') is None

    def test_update_requires_prior_put(self, store):
        with pytest.raises(MissingChainState):
            store.update('job-1', 'A', make_record('A'))

    def test_update_overwrites(self, store):
        store.put('job-1', 'A', make_record('A'))
        store.update('job-1', 'A', make_record('A', item_count=2, overflow='A-overflow-1'))

        record = store.get('job-1', 'A')
        assert record.item_count == 2
        assert record.overflow_album_id == 'A-overflow-1'

    def test_state_persists_across_instances(self, tmp_path):
        ChainStateStore(tmp_path).put('job-1', 'A', make_record('A', item_count=3))

        reloaded = ChainStateStore(tmp_path)

        assert reloaded.get('job-1', 'A').item_count == 3

    def test_state_file_is_json(self, store):
        store.put('job-1', 'A', make_record('A'))

        with open(store.job_dir('job-1') / CHAIN_STATE_FILENAME) as f:
            data = json.load(f)
        assert data['A']['destination_uri'] == '/album/A'

    def test_corrupted_state_file_starts_empty(self, tmp_path):
        store = ChainStateStore(tmp_path)
        (store.job_dir('job-1') / CHAIN_STATE_FILENAME).write_text('{not json')

        assert store.get('job-1', 'A') is None

    def test_staged_content_round_trip(self, store):
        store.stage_content('job-1', 'album/p1.jpg', b'bytes')

        with store.open_staged_content('job-1', 'album/p1.jpg') as content:
            assert content.read() == b'bytes'

    def test_missing_staged_content(self, store):
        with pytest.raises(ContentFetchFailure) as exc_info:
            store.open_staged_content('job-1', 'nope.jpg')
        assert exc_info.value.locator == 'nope.jpg'

    def test_staged_locator_cannot_escape(self, store):
        with pytest.raises(ContentFetchFailure):
            store.open_staged_content('job-1', '../../etc/passwd')

    def test_clear_job(self, store):
        store.put('job-1', 'A', make_record('A'))
        store.put('job-2', 'A', make_record('A'))

        store.clear_job('job-1')

        assert store.get('job-1', 'A') is None
        assert store.get('job-2', 'A') is not None

    def test_get_statistics(self, store):
        store.put('job-1', 'A', make_record('A', 2, 'A-overflow-1'))
        store.put('job-1', 'A-overflow-1', make_record('A-overflow-1', 1))
        store.put('job-1', 'B', make_record('B', 1))

        stats = store.get_statistics('job-1')

        assert stats['total_records'] == 3
        assert stats['total_chains'] == 2
        assert stats['total_items'] == 4
        assert stats['overflow_albums'] == 1
        assert stats['chains']['A'] == {'albums': 2, 'items': 3}
        assert stats['chains']['B'] == {'albums': 1, 'items': 1}
