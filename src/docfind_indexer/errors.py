"""Exception hierarchy for index generation."""

from __future__ import annotations

from typing import Sequence

from docfind_indexer.utils.text import redact_url


class DocfindError(Exception):
    """Base class for all generation failures."""


class CommandError(DocfindError):
    """An external process exited with a non-zero status.

    The command line and stderr are stored with URL credentials redacted,
    so the error can be logged as-is.
    """

    def __init__(self, args: Sequence[str], returncode: int, stderr: str = "") -> None:
        self.command = [redact_url(str(part)) for part in args]
        self.returncode = returncode
        self.stderr = redact_url(stderr.strip())
        detail = self.stderr or f"{self.command[0]} exited with code {returncode}"
        super().__init__(detail)


class ProvisioningError(DocfindError):
    """The indexer binary could not be provisioned."""


class IndexBuildError(DocfindError):
    """The indexer output for a branch is unusable."""


class LoaderPatchError(IndexBuildError):
    """The generated loader script could not be patched."""
