"""
Make incoming albums and items fit the destination service's constraints.

The destination rejects names and titles that are too long or contain
certain characters, and every item has to belong to an album. Records are
cleaned up before the import starts so those rejections never happen
mid-job.
"""
import logging
import re
from dataclasses import replace
from typing import List, Optional, Tuple

from album_chain_importer.config import TransmogrificationConfig
from album_chain_importer.models import SourceAlbum, SourceItem

logger = logging.getLogger(__name__)

DEFAULT_ALBUM_NAME = "Untitled Album"

# Item keys share the executor key space with overflow album ids
OVERFLOW_DATA_ID = re.compile(r"^overflow-\d+$")


class Transmogrifier:
    """Cleans album names, item titles and orphaned items."""

    def __init__(self, config: Optional[TransmogrificationConfig] = None):
        self.config = config or TransmogrificationConfig()

    def _clean_text(self, text: Optional[str], max_length: int) -> str:
        text = (text or '').strip()
        for char in self.config.forbidden_characters:
            text = text.replace(char, self.config.replacement_character)
        if len(text) > max_length:
            text = text[:max_length].rstrip()
        return text

    def clean_album_name(self, name: Optional[str]) -> str:
        """
        Clean an album name.

        Args:
            name: Raw album name

        Returns:
            Name without forbidden characters, truncated, never empty
        """
        cleaned = self._clean_text(name, self.config.album_name_max_length)
        return cleaned or DEFAULT_ALBUM_NAME

    def clean_title(self, title: Optional[str]) -> str:
        return self._clean_text(title, self.config.title_max_length)

    def clean_description(self, description: Optional[str]) -> Optional[str]:
        if description is None:
            return None
        return self._clean_text(description, self.config.description_max_length)

    def transmogrify(self, albums: List[SourceAlbum],
                     items: List[SourceItem]) -> Tuple[List[SourceAlbum], List[SourceItem]]:
        """
        Return cleaned copies of ``albums`` and ``items``.

        Items without an album are moved into the root album, which is added
        to the album list if any item needs it. Ids are never changed, so
        idempotency keys stay stable across retries.
        """
        clean_albums = [
            replace(album,
                    name=self.clean_album_name(album.name),
                    description=self.clean_description(album.description))
            for album in albums
        ]

        root_id = self.config.root_album_id
        clean_items = []
        orphans = 0
        for item in items:
            album_id = item.album_id
            if not album_id:
                album_id = root_id
                orphans += 1
            if OVERFLOW_DATA_ID.match(item.data_id):
                logger.warning(
                    f"Item key '{album_id}-{item.data_id}' has the form of an overflow album id "
                    f"and may be confused with that album's creation"
                )
            clean_items.append(replace(
                item,
                album_id=album_id,
                title=self.clean_title(item.title),
                description=self.clean_description(item.description),
            ))

        if orphans:
            logger.info(f"Assigning {orphans} items without an album to '{self.config.root_album_name}'")
            if not any(album.id == root_id for album in clean_albums):
                clean_albums.append(SourceAlbum(
                    id=root_id,
                    name=self.clean_album_name(self.config.root_album_name),
                ))

        return clean_albums, clean_items
