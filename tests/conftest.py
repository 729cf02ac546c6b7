"""Shared fixtures for docfind-index tests."""

from __future__ import annotations

import os
import shutil
import stat
import subprocess
import sys
from pathlib import Path
from typing import Callable, Dict

import pytest

from docfind_indexer.config import TOKEN_PREFIXES

ENV_KEYS = (
    "ENABLED_SEARCH_INDEX",
    "VITE_ENABLED_SEARCH_INDEX",
    "SEARCH_INDEX_GENERATION_MODE",
    "GITHUB_ACTIONS",
    "GITHUB_REPO_OWNER",
    "VITE_GITHUB_REPO_OWNER",
    "GITHUB_REPO_NAME",
    "VITE_GITHUB_REPO_NAME",
    "GITHUB_REPO_BRANCH",
    "VITE_GITHUB_REPO_BRANCH",
    "SEARCH_INDEX_BRANCHES",
    "SEARCH_INDEX_EXTENSIONS",
    "DOCFIND_BIN",
    "DOCFIND_REPO_PATH",
)

requires_git = pytest.mark.skipif(shutil.which("git") is None, reason="git not installed")
requires_posix = pytest.mark.skipif(sys.platform == "win32", reason="POSIX shell script")

FAKE_DOCFIND = """#!/bin/sh
set -e
cp "$1" "$2/docfind_bg.wasm"
printf 'let y;export function U(){return y()}\\n' > "$2/docfind.js"
"""


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Isolate tests from the developer's or CI's environment."""
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    for key in list(os.environ):
        if key.startswith(TOKEN_PREFIXES):
            monkeypatch.delenv(key, raising=False)


def git(cwd: Path, *args: str) -> str:
    completed = subprocess.run(
        ["git", *args], cwd=cwd, check=True, capture_output=True, text=True
    )
    return completed.stdout.strip()


def init_repo(path: Path) -> Path:
    path.mkdir(parents=True, exist_ok=True)
    git(path, "init", "--quiet")
    git(path, "symbolic-ref", "HEAD", "refs/heads/main")
    git(path, "config", "user.email", "tests@example.com")
    git(path, "config", "user.name", "Tests")
    git(path, "config", "commit.gpgsign", "false")
    return path


def commit_files(repo: Path, files: Dict[str, bytes | str], message: str = "update") -> str:
    for relative, content in files.items():
        target = repo / relative
        target.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(content, bytes):
            target.write_bytes(content)
        else:
            target.write_text(content, encoding="utf-8")
    git(repo, "add", "--all")
    git(repo, "commit", "--quiet", "--allow-empty", "-m", message)
    return git(repo, "rev-parse", "HEAD")


@pytest.fixture
def make_repo(tmp_path: Path) -> Callable[..., Path]:
    """Factory creating a committed repository on branch ``main``."""

    def factory(files: Dict[str, bytes | str], name: str = "repo") -> Path:
        repo = init_repo(tmp_path / name)
        commit_files(repo, files, "initial")
        return repo

    return factory


@pytest.fixture
def fake_docfind(tmp_path: Path) -> Path:
    """Executable standing in for docfind: copies the payload as the artifact."""
    script = tmp_path / "bin" / "docfind"
    script.parent.mkdir(parents=True, exist_ok=True)
    script.write_text(FAKE_DOCFIND, encoding="utf-8")
    script.chmod(script.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return script
