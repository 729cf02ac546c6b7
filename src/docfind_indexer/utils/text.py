"""Text helpers for paths, extensions and log-safe URLs."""

from __future__ import annotations

import posixpath
import re

_CREDENTIALS_RE = re.compile(r"(?P<scheme>[a-zA-Z][a-zA-Z0-9+.-]*://)[^/@\s]+@")


def redact_url(text: str) -> str:
    """Replace basic-auth credentials embedded in any URL with ``***``."""
    return _CREDENTIALS_RE.sub(r"\g<scheme>***@", text)


def to_posix_path(value: str) -> str:
    """Normalise a relative path to forward slashes."""
    return value.replace("\\", "/")


def resolve_extension(path: str) -> str:
    """Return the lower-case extension of ``path`` without the leading dot."""
    _, ext = posixpath.splitext(path)
    return ext[1:].lower() if ext.startswith(".") else ext.lower()


def branch_segments(branch: str) -> list[str]:
    """Split a branch name such as ``release/1.x`` into its path segments."""
    return [segment for segment in branch.split("/") if segment] or ["default"]
