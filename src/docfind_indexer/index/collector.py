"""Turn the tracked files of a checked-out branch into document records."""

from __future__ import annotations

import logging
import stat
from dataclasses import dataclass, field
from pathlib import Path
from typing import AbstractSet, Iterable, List

from docfind_indexer.models import DocumentRecord
from docfind_indexer.repo.mirror import checkout, list_tracked_files
from docfind_indexer.utils.files import is_binary_content
from docfind_indexer.utils.text import resolve_extension, to_posix_path

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class CollectResult:
    documents: List[DocumentRecord] = field(default_factory=list)
    skipped: int = 0

    @property
    def document_count(self) -> int:
        return len(self.documents)


def _read_text(path: Path) -> str | None:
    """Return decoded content, or ``None`` when the bytes look binary."""
    data = path.read_bytes()
    if is_binary_content(data):
        return None
    return data.decode("utf-8", errors="replace")


def build_documents(
    root: Path,
    file_paths: Iterable[str],
    branch_name: str,
    whitelist: AbstractSet[str],
    max_size: int,
) -> CollectResult:
    """Create one record per file; content is embedded only for small text files."""
    result = CollectResult()

    for file_path in file_paths:
        normalized = to_posix_path(file_path)
        absolute = root / file_path
        try:
            info = absolute.stat()
        except OSError as exc:
            LOGGER.warning("Failed to stat %s:%s: %s", branch_name, normalized, exc)
            result.skipped += 1
            continue
        if not stat.S_ISREG(info.st_mode):
            LOGGER.warning("Skipping non-regular file %s:%s", branch_name, normalized)
            result.skipped += 1
            continue

        extension = resolve_extension(normalized)
        content = None
        if extension in whitelist and info.st_size <= max_size:
            try:
                content = _read_text(absolute)
            except OSError as exc:
                LOGGER.warning("Failed to read %s:%s: %s", branch_name, normalized, exc)

        result.documents.append(
            DocumentRecord.for_path(normalized, branch_name, extension, content)
        )

    return result


def collect(
    workspace: Path,
    branch_ref: str,
    branch_name: str,
    whitelist: AbstractSet[str],
    max_size: int,
) -> CollectResult:
    """Check out ``branch_ref`` and build documents for every tracked file."""
    LOGGER.info("Checking out %s...", branch_name)
    checkout(workspace, branch_ref)

    file_paths = list_tracked_files(workspace)
    LOGGER.info("%s: %d tracked files", branch_name, len(file_paths))
    return build_documents(workspace, file_paths, branch_name, whitelist, max_size)
