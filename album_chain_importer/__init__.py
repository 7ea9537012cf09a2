"""
Album Chain Importer

Imports albums of photos into a destination service whose albums hold a
limited number of items, chaining overflow albums as they fill and
checkpointing progress so interrupted jobs can be re-run safely.
"""
__version__ = "1.0.0"

# Import main classes for easy access
from album_chain_importer.config import ImporterConfig
from album_chain_importer.exceptions import (
    MigrationError,
    ConfigurationError,
    AlbumError,
    MissingChainState,
    RemoteCreationFailure,
    DownloadError,
    ContentFetchFailure,
    UploadError,
    UploadFailure,
    InvariantViolation,
)
from album_chain_importer.models import SourceAlbum, SourceItem, ChainStateRecord

__all__ = [
    '__version__',
    'ImporterConfig',
    'MigrationError',
    'ConfigurationError',
    'AlbumError',
    'MissingChainState',
    'RemoteCreationFailure',
    'DownloadError',
    'ContentFetchFailure',
    'UploadError',
    'UploadFailure',
    'InvariantViolation',
    'SourceAlbum',
    'SourceItem',
    'ChainStateRecord',
]
