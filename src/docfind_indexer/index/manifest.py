"""Manifest assembly and persistence."""

from __future__ import annotations

import json
import logging
from dataclasses import replace
from pathlib import Path
from urllib.parse import quote

from docfind_indexer.config import AppConfig
from docfind_indexer.errors import IndexBuildError
from docfind_indexer.index.builder import ARTIFACT_FILENAME, LOADER_FILENAME
from docfind_indexer.models import BranchEntry, Manifest
from docfind_indexer.utils.files import compute_sha256
from docfind_indexer.utils.text import branch_segments

LOGGER = logging.getLogger(__name__)


def branch_output_dir(config: AppConfig, branch: str) -> Path:
    return config.output_dir.joinpath(*branch_segments(branch))


def branch_index_path(config: AppConfig, branch: str) -> str:
    """Public URL path of the branch's loader script."""
    encoded = "/".join(quote(segment, safe="") for segment in branch_segments(branch))
    return f"{config.base_path.rstrip('/')}/{encoded}/{LOADER_FILENAME}"


def build_branch_entry(config: AppConfig, branch: str, output_dir: Path, file_count: int) -> BranchEntry:
    artifact = output_dir / ARTIFACT_FILENAME
    if not artifact.is_file():
        raise IndexBuildError(f"{ARTIFACT_FILENAME} not found in {output_dir}")
    return BranchEntry(
        index_path=branch_index_path(config, branch),
        hash=compute_sha256(artifact),
        file_count=file_count,
    )


def record_branch(manifest: Manifest, branch: str, entry: BranchEntry) -> Manifest:
    """Return a copy of ``manifest`` with ``entry`` recorded under ``branch``."""
    return replace(manifest, branches={**manifest.branches, branch: entry})


def finalize(manifest: Manifest, output_path: Path) -> Path:
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(json.dumps(manifest.to_dict(), indent=2) + "\n", encoding="utf-8")
    LOGGER.info("Manifest written to %s", output_path.as_posix())
    return output_path
