"""Record processing applied before import."""

from album_chain_importer.processor.transmogrifier import Transmogrifier

__all__ = ['Transmogrifier']
