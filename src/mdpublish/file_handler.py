"""File handler module: checksums and encoding-aware read/write.

Provides the file I/O used by the index, convert and sync phases.
All functions are pure apart from file I/O.
"""

import zlib
from pathlib import Path

from charset_normalizer import from_bytes

_CHUNK_SIZE = 64 * 1024


# =============================================================================
# Checksums
# =============================================================================


def file_checksum(path: Path) -> int:
    """Compute the CRC-32 checksum of a file's raw bytes.

    Args:
        path: File to checksum.

    Returns:
        Unsigned 32-bit checksum.

    Raises:
        FileNotFoundError: If *path* does not exist.
    """
    crc = 0
    with open(path, "rb") as fh:
        while chunk := fh.read(_CHUNK_SIZE):
            crc = zlib.crc32(chunk, crc)
    return crc & 0xFFFFFFFF


def checksum_if_exists(path: Path) -> int | None:
    """Return the file checksum, or ``None`` if the file is missing."""
    if not path.is_file():
        return None
    return file_checksum(path)


# =============================================================================
# File Read/Write
# =============================================================================


def read_file_with_encoding(path: Path) -> tuple[str, str]:
    """Read a file with automatic encoding detection.

    Reads raw bytes first, then uses charset-normalizer to detect encoding.
    Defaults to UTF-8 for empty files or when detection fails.

    Args:
        path: Path to the file to read.

    Returns:
        Tuple of (content_string, detected_encoding).
    """
    raw = path.read_bytes()
    if not raw:
        return ("", "utf-8")

    result = from_bytes(raw).best()
    if result is None:
        # Detection failed, fall back to utf-8
        encoding = "utf-8"
        content = raw.decode(encoding, errors="replace")
    else:
        encoding = result.encoding
        # Normalize ascii to utf-8 (ascii is a strict subset of utf-8)
        if encoding == "ascii":
            encoding = "utf-8"
        content = str(result)
    return (content, encoding)


def write_file(
    path: Path, content: str, encoding: str = "utf-8"
) -> int:
    """Write content to a file, creating parent directories as needed.

    Args:
        path: Path to the output file.
        content: String content to write.
        encoding: Encoding to use (default: utf-8).

    Returns:
        Number of bytes written.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    encoded = content.encode(encoding)
    path.write_bytes(encoded)
    return len(encoded)
