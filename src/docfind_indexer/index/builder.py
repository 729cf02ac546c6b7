"""Run the docfind binary over a branch's documents."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Sequence

from docfind_indexer.errors import LoaderPatchError
from docfind_indexer.models import DocumentRecord
from docfind_indexer.utils.files import ensure_empty_dir
from docfind_indexer.utils.process import run_command

LOGGER = logging.getLogger(__name__)

LOADER_FILENAME = "docfind.js"
ARTIFACT_FILENAME = "docfind_bg.wasm"

# The published loader drops the argument passed to init(), so a custom
# wasm URL never reaches the module initialiser.
LOADER_INIT_ORIGINAL = "function U(){return y()}"
LOADER_INIT_PATCHED = "function U(e){return y(e)}"


def write_payload(documents: Sequence[DocumentRecord], payload_path: Path) -> Path:
    payload_path.parent.mkdir(parents=True, exist_ok=True)
    with payload_path.open("w", encoding="utf-8") as handle:
        json.dump([doc.to_dict() for doc in documents], handle, ensure_ascii=False)
        handle.write("\n")
    return payload_path


def patch_loader(output_dir: Path) -> Path:
    """Fix the init() signature of the generated loader script.

    Raises:
        LoaderPatchError: the loader is missing or its init signature does
            not match the known minified form.
    """
    loader = output_dir / LOADER_FILENAME
    if not loader.is_file():
        raise LoaderPatchError(f"{LOADER_FILENAME} not found in {output_dir}")

    content = loader.read_text(encoding="utf-8")
    if LOADER_INIT_ORIGINAL not in content:
        if LOADER_INIT_PATCHED in content:
            LOGGER.debug("%s already patched", loader)
            return loader
        raise LoaderPatchError(
            f"Unexpected init signature in {loader}; the docfind output format may have changed"
        )

    loader.write_text(content.replace(LOADER_INIT_ORIGINAL, LOADER_INIT_PATCHED, 1), encoding="utf-8")
    return loader


def build(
    binary: Path,
    documents: Sequence[DocumentRecord],
    output_dir: Path,
    payload_path: Path,
) -> Path:
    """Produce the loader and compiled artifact for one branch in ``output_dir``."""
    ensure_empty_dir(output_dir)
    write_payload(documents, payload_path)

    LOGGER.info("Running docfind on %d documents...", len(documents))
    run_command([binary, payload_path, output_dir], capture=False)
    patch_loader(output_dir)
    return output_dir / ARTIFACT_FILENAME
