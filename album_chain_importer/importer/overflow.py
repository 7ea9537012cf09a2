"""
Deterministic overflow album synthesis.
"""
from typing import Any, Dict

from album_chain_importer.exceptions import InvariantViolation
from album_chain_importer.models import SourceAlbum


def overflow_album_id(base_album_id: str, depth: int) -> str:
    return f"{base_album_id}-overflow-{depth}"


def create_overflow_album(base_album_id: str, base_album_descriptor: Dict[str, Any],
                          depth: int) -> SourceAlbum:
    """
    Build the album that absorbs items once a chain is ``depth - 1`` links long.

        id          -> {base_album_id}-overflow-{depth}
        name        -> {base album name} ({depth})
        description -> {base album description}

    The same inputs always produce the same id, which is what lets a retried
    chain extension hit the idempotency cache instead of creating a duplicate.

    Raises:
        InvariantViolation: If ``depth`` is less than 1
    """
    if depth < 1:
        raise InvariantViolation(f"Overflow depth must be >= 1, got {depth}")

    descriptor = base_album_descriptor or {}
    return SourceAlbum(
        id=overflow_album_id(base_album_id, depth),
        name=f"{descriptor.get('name', '')} ({depth})",
        description=descriptor.get('description'),
    )
