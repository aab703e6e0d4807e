"""Hashing utilities for stencil."""

import hashlib
from pathlib import Path

_CHUNK_SIZE = 64 * 1024


def sha256_hash_bytes(content: bytes) -> str:
    """Calculate SHA256 hash of bytes.

    Args:
        content: Binary content to hash.

    Returns:
        Hexadecimal SHA256 hash string.
    """
    return hashlib.sha256(content).hexdigest()


def sha256_file(path: Path) -> str:
    """Calculate SHA256 hash of a file's bytes, reading it in chunks.

    Args:
        path: File to hash.

    Returns:
        Hexadecimal SHA256 hash string.
    """
    digest = hashlib.sha256()
    with open(path, "rb") as handle:
        while chunk := handle.read(_CHUNK_SIZE):
            digest.update(chunk)
    return digest.hexdigest()
