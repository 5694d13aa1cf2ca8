"""Content hashing for evidence fingerprints."""

from __future__ import annotations

import hashlib
from pathlib import Path

CHUNK_SIZE = 64 * 1024


def hash_file(path: str | Path) -> str:
    """Return the full SHA-256 hex digest of a file's bytes.

    Exact byte equality is the only thing this detects; a re-encoded or
    cropped copy of the same photo hashes differently.
    """
    digest = hashlib.sha256()
    with Path(path).open("rb") as handle:
        for chunk in iter(lambda: handle.read(CHUNK_SIZE), b""):
            digest.update(chunk)
    return digest.hexdigest()
