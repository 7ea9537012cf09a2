"""Album chain resolution and the per-job import loop."""

from album_chain_importer.importer.chain_resolver import ChainResolver
from album_chain_importer.importer.coordinator import ImportCoordinator
from album_chain_importer.importer.overflow import create_overflow_album

__all__ = ['ChainResolver', 'ImportCoordinator', 'create_overflow_album']
