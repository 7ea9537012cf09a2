"""
Data models shared by the importer, the state store and the remote adapter.
"""
from dataclasses import dataclass, field, asdict
from typing import Any, Dict, Optional


@dataclass
class SourceAlbum:
    """An album as it exists in the source. ``id`` is stable across retries."""
    id: str
    name: str
    description: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SourceAlbum':
        return cls(
            id=str(data['id']),
            name=data.get('name') or '',
            description=data.get('description'),
        )


@dataclass
class SourceItem:
    """
    A media item to import.

    ``content_locator`` is a key into the job's staging area when
    ``is_staged`` is True, otherwise a URL fetched from the remote service.
    """
    album_id: str
    data_id: str
    title: str
    content_locator: str
    is_staged: bool = False
    description: Optional[str] = None
    media_type: Optional[str] = None

    @property
    def key(self) -> str:
        """Idempotency key for this item within a job."""
        return f"{self.album_id}-{self.data_id}"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SourceItem':
        return cls(
            album_id=str(data.get('album_id') or ''),
            data_id=str(data['data_id']),
            title=data.get('title') or '',
            content_locator=data['content_locator'],
            is_staged=bool(data.get('is_staged', False)),
            description=data.get('description'),
            media_type=data.get('media_type'),
        )


@dataclass
class ChainStateRecord:
    """Fill count and linkage for one destination album."""
    source_album_id: str
    destination_uri: str
    destination_album: Dict[str, Any] = field(default_factory=dict)
    item_count: int = 0
    overflow_album_id: Optional[str] = None

    def increment_item_count(self) -> None:
        self.item_count += 1

    def is_full(self, capacity: int) -> bool:
        return self.item_count >= capacity

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ChainStateRecord':
        return cls(
            source_album_id=data['source_album_id'],
            destination_uri=data['destination_uri'],
            destination_album=data.get('destination_album') or {},
            item_count=int(data.get('item_count', 0)),
            overflow_album_id=data.get('overflow_album_id'),
        )


@dataclass
class AlbumCreation:
    """Result of creating an album on the destination service."""
    remote_uri: str
    album_descriptor: Dict[str, Any] = field(default_factory=dict)


@dataclass
class UploadHandle:
    """Result of uploading one item."""
    uri: str
    album_uri: Optional[str] = None
    raw: Dict[str, Any] = field(default_factory=dict)
