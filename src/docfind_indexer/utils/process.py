"""Single entry point for running external commands."""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path
from typing import Sequence

from docfind_indexer.errors import CommandError
from docfind_indexer.utils.text import redact_url

LOGGER = logging.getLogger(__name__)


def run_command(
    args: Sequence[str | Path],
    cwd: Path | None = None,
    *,
    capture: bool = True,
) -> bytes:
    """Run ``args`` to completion and return its raw stdout.

    With ``capture`` disabled the child inherits stdout and ``b""`` is
    returned. stderr is always buffered and attached to ``CommandError``.
    """
    argv = [str(part) for part in args]
    LOGGER.debug("Running: %s", redact_url(" ".join(argv)))
    try:
        completed = subprocess.run(
            argv,
            cwd=str(cwd) if cwd is not None else None,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE if capture else None,
            stderr=subprocess.PIPE,
            check=False,
        )
    except OSError as exc:
        raise CommandError(argv, -1, str(exc)) from exc

    if completed.returncode != 0:
        stderr = completed.stderr.decode("utf-8", errors="replace") if completed.stderr else ""
        raise CommandError(argv, completed.returncode, stderr)
    return completed.stdout or b""


def run_command_text(args: Sequence[str | Path], cwd: Path | None = None) -> str:
    """Run ``args`` and return its stdout decoded and stripped."""
    return run_command(args, cwd).decode("utf-8", errors="replace").strip()
