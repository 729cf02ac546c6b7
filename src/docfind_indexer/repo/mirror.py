"""Shallow, per-branch git mirror of the target repository."""

from __future__ import annotations

import logging
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, Optional, Sequence
from urllib.parse import quote

from docfind_indexer.config import AppConfig
from docfind_indexer.errors import CommandError
from docfind_indexer.utils.process import run_command, run_command_text
from docfind_indexer.utils.text import redact_url

LOGGER = logging.getLogger(__name__)

TOKEN_USERNAME = "x-access-token"


def build_remote_url(owner: str, name: str, token: str | None = None) -> str:
    safe_owner = quote(owner, safe="")
    safe_name = quote(name, safe="")
    if token and token.strip():
        credentials = f"{quote(TOKEN_USERNAME, safe='')}:{quote(token.strip(), safe='')}"
        return f"https://{credentials}@github.com/{safe_owner}/{safe_name}.git"
    return f"https://github.com/{safe_owner}/{safe_name}.git"


def build_remote_candidates(owner: str, name: str, tokens: Sequence[str]) -> List[str]:
    """One URL per distinct token, followed by the anonymous URL."""
    unique = dict.fromkeys(token.strip() for token in tokens if token.strip())
    candidates = [build_remote_url(owner, name, token) for token in unique]
    anonymous = build_remote_url(owner, name)
    if anonymous not in candidates:
        candidates.append(anonymous)
    return candidates


def remote_ref(branch: str) -> str:
    return f"refs/remotes/origin/{branch}"


@contextmanager
def workspace(config: AppConfig, repo_path: str | None = None) -> Iterator[Path]:
    """Yield the working directory shared by all branches of a run.

    An explicit ``repo_path`` is used in place and left untouched on exit.
    Otherwise a fresh directory is created under ``.docfind/tmp`` and removed
    when the block exits.
    """
    if repo_path:
        yield config.resolve_path(repo_path).resolve()
        return

    config.tmp_dir.mkdir(parents=True, exist_ok=True)
    with tempfile.TemporaryDirectory(
        prefix="repo-", dir=config.tmp_dir, ignore_cleanup_errors=True
    ) as tmp:
        LOGGER.info("Temporary repo at %s", tmp)
        yield Path(tmp)


def prepare_workspace(path: Path, owner: str, name: str, token: str | None = None) -> Path:
    """Initialise an empty repository with a single ``origin`` remote."""
    run_command(["git", "init", "--quiet", path])
    run_command(["git", "remote", "add", "origin", build_remote_url(owner, name, token)], path)
    return path


def fetch_branch(path: Path, branch: str, remote_urls: Sequence[str] = ()) -> Optional[str]:
    """Shallow-fetch ``branch`` into its own remote-tracking ref.

    Each remote URL is tried in turn. Returns the ref on success and ``None``
    when every candidate failed.
    """
    ref = remote_ref(branch)
    last_error: CommandError | None = None
    for url in remote_urls or [None]:
        try:
            if url is not None:
                run_command(["git", "remote", "set-url", "origin", url], path)
            LOGGER.info("Fetching %s...", branch)
            run_command(
                ["git", "fetch", "--depth", "1", "--no-tags", "origin", f"{branch}:{ref}"],
                path,
            )
        except CommandError as exc:
            LOGGER.debug("Fetch of %s via %s failed: %s", branch, redact_url(url or "origin"), exc)
            last_error = exc
            continue
        LOGGER.info("Fetched %s", branch)
        return ref

    LOGGER.warning("Failed to fetch branch %s: %s", branch, last_error)
    return None


def resolve_branch_ref(path: Path, branch: str) -> Optional[str]:
    """Return the first local spelling of ``branch`` that git can resolve."""
    for candidate in (branch, f"refs/heads/{branch}", remote_ref(branch)):
        try:
            run_command(["git", "rev-parse", "--verify", "--quiet", candidate], path)
        except CommandError:
            continue
        return candidate
    return None


def checkout(path: Path, ref: str) -> None:
    run_command(["git", "checkout", "--force", "--detach", ref], path)


def list_tracked_files(path: Path) -> List[str]:
    output = run_command(["git", "ls-files", "-z"], path)
    return [entry for entry in output.decode("utf-8", errors="replace").split("\0") if entry]


def current_commit(path: Path) -> str:
    return run_command_text(["git", "rev-parse", "HEAD"], path)
