"""Document state resolution.

Maps a tracked document's stored metadata plus the current checksum of its
source file to the remote operation it needs.  Rules are evaluated in
order and the first match wins:

1. ``deletedOn`` set                  -> ``DELETED`` (terminal)
2. no ``remoteURI``                   -> ``CREATE``
3. ``delete`` extra property present  -> ``DELETE``
4. source file missing                -> ``DELETE``
5. ``sourceChecksum`` == current      -> ``CURRENT``
6. otherwise                          -> ``UPDATE``

A document with no stored checksum resolves to ``UPDATE``: there is no
evidence the remote copy matches the file.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

from ..file_handler import checksum_if_exists
from .models import DELETE_MARKER, DocumentMetadata, DocumentState

if TYPE_CHECKING:
    from ..context import Context

logger = logging.getLogger(__name__)


def determine_state(
    metadata: DocumentMetadata, current_checksum: int | None
) -> DocumentState:
    """Resolve the state of one document.

    Args:
        metadata: The tracked document.
        current_checksum: CRC-32 of the source file now, or ``None`` if the
            file no longer exists.

    Returns:
        The ``DocumentState`` the orchestrator should act on.
    """
    if metadata.deleted_on is not None:
        return DocumentState.DELETED
    if metadata.remote_uri is None:
        return DocumentState.CREATE
    if metadata.has_extra_property(DELETE_MARKER):
        return DocumentState.DELETE
    if current_checksum is None:
        logger.info(
            "Source file for %s is gone, removing remote copy",
            metadata.source_path,
        )
        return DocumentState.DELETE
    if (
        metadata.source_checksum is not None
        and metadata.source_checksum == current_checksum
    ):
        return DocumentState.CURRENT
    return DocumentState.UPDATE


def current_checksum(context: Context, metadata: DocumentMetadata) -> int | None:
    """Checksum of the document's source file, or ``None`` if it is missing."""
    path: Path = context.source_path(metadata)
    return checksum_if_exists(path)


def document_state(context: Context, metadata: DocumentMetadata) -> DocumentState:
    """Resolve the state of *metadata* against the file on disk."""
    return determine_state(metadata, current_checksum(context, metadata))
