"""
Pytest configuration and shared fixtures.
"""
import io
import threading
from pathlib import Path
from typing import Dict, List, Set

import pytest
import yaml

from album_chain_importer.exceptions import (
    ContentFetchFailure,
    RemoteCreationFailure,
    UploadFailure,
)
from album_chain_importer.models import AlbumCreation, SourceAlbum, SourceItem, UploadHandle
from album_chain_importer.utils.idempotent_executor import IdempotentExecutor
from album_chain_importer.utils.state_manager import ChainStateStore


class FakeRemoteService:
    """In-memory stand-in for RemoteAlbumService."""

    def __init__(self):
        self.created_albums: List[Dict] = []
        self.uploads: List[Dict] = []
        self.fail_album_names: Set[str] = set()
        self.fail_upload_keys: Set[str] = set()
        self.fail_fetch_locators: Set[str] = set()
        self.create_delay = 0.0
        self._lock = threading.Lock()

    def create_album(self, name, description=None):
        if name in self.fail_album_names:
            raise RemoteCreationFailure(f"Failed to create album '{name}'", album_name=name)
        if self.create_delay:
            threading.Event().wait(self.create_delay)
        with self._lock:
            number = len(self.created_albums) + 1
            uri = f"/api/v2/album/{number}"
            self.created_albums.append({'name': name, 'description': description, 'uri': uri})
        return AlbumCreation(
            remote_uri=uri,
            album_descriptor={'name': name, 'description': description, 'uri': uri},
        )

    def fetch_content(self, locator):
        if locator in self.fail_fetch_locators:
            raise ContentFetchFailure(f"Failed to fetch {locator}", locator=locator)
        return io.BytesIO(f"content of {locator}".encode())

    def upload_item(self, item, destination_uri, content):
        if item.key in self.fail_upload_keys:
            raise UploadFailure(f"Failed to upload {item.key}", destination_uri=destination_uri)
        data = content.read()
        with self._lock:
            number = len(self.uploads) + 1
            self.uploads.append({'key': item.key, 'album_uri': destination_uri, 'size': len(data)})
        return UploadHandle(uri=f"/api/v2/image/{number}", album_uri=destination_uri)

    def uploads_to(self, album_uri: str) -> List[str]:
        return [u['key'] for u in self.uploads if u['album_uri'] == album_uri]

    def album_names(self) -> List[str]:
        return [a['name'] for a in self.created_albums]


@pytest.fixture
def remote() -> FakeRemoteService:
    return FakeRemoteService()


@pytest.fixture
def store(tmp_path) -> ChainStateStore:
    return ChainStateStore(tmp_path / 'state')


@pytest.fixture
def job_id() -> str:
    return 'job-1'


@pytest.fixture
def executor(store, job_id) -> IdempotentExecutor:
    return IdempotentExecutor(store.job_dir(job_id))


@pytest.fixture
def album_a() -> SourceAlbum:
    return SourceAlbum(id='A', name='Holiday', description='Summer trip')


def make_items(album_id: str, *data_ids: str) -> List[SourceItem]:
    """Build remote (not staged) items for an album."""
    return [
        SourceItem(
            album_id=album_id,
            data_id=data_id,
            title=f"{data_id}.jpg",
            content_locator=f"https://source.example.com/{data_id}.jpg",
        )
        for data_id in data_ids
    ]


@pytest.fixture
def sample_config(tmp_path) -> Dict:
    """Fixture providing a sample configuration dictionary."""
    return {
        'destination': {
            'api_base_url': 'https://api.example.com/v2',
            'access_token': 'test-token',
            'timeout_seconds': 30,
            'max_retries': 2,
        },
        'storage': {
            'base_dir': str(tmp_path / 'import'),
        },
        'import': {
            'album_max_size': 2,
            'max_workers': 1,
            'enable_parallel_processing': False,
            'show_progress': False,
        },
        'transmogrification': {
            'album_name_max_length': 50,
            'title_max_length': 40,
        },
        'logging': {
            'level': 'INFO',
            'file': 'import.log',
        },
    }


@pytest.fixture
def config_file(tmp_path, sample_config) -> Path:
    """Create a temporary config.yaml file."""
    config_path = tmp_path / 'config.yaml'
    with open(config_path, 'w') as f:
        yaml.dump(sample_config, f)
    return config_path
