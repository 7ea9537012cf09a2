"""Destination service adapters."""

from album_chain_importer.uploader.remote_client import RemoteAlbumService

__all__ = ['RemoteAlbumService']
