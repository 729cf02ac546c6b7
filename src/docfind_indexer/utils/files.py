"""Utility helpers for working with files."""

from __future__ import annotations

import hashlib
import shutil
from pathlib import Path

BINARY_SNIFF_BYTES = 8000


def compute_sha256(path: Path) -> str:
    """Compute SHA256 hash for a file without loading it into memory."""
    sha = hashlib.sha256()
    with path.open("rb") as handle:
        for chunk in iter(lambda: handle.read(1 << 20), b""):
            sha.update(chunk)
    return sha.hexdigest()


def is_binary_content(data: bytes) -> bool:
    """Treat content as binary when a NUL byte appears in its leading sample."""
    return b"\x00" in data[:BINARY_SNIFF_BYTES]


def ensure_empty_dir(path: Path) -> None:
    """Remove ``path`` if present and recreate it empty."""
    shutil.rmtree(path, ignore_errors=True)
    path.mkdir(parents=True, exist_ok=True)
