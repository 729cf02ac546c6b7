"""End-to-end tests for the generation pipeline."""

from __future__ import annotations

import hashlib
import json
import logging
from pathlib import Path
from unittest.mock import patch

import pytest

from docfind_indexer.config import AppConfig, resolve_plan
from docfind_indexer.errors import CommandError, LoaderPatchError
from docfind_indexer.index.builder import ARTIFACT_FILENAME, LOADER_FILENAME
from docfind_indexer.models import Manifest
from docfind_indexer.pipeline import Pipeline, generate

from conftest import commit_files, git, requires_git, requires_posix

pytestmark = [requires_git, requires_posix]

FILES = {
    "README.md": "# Repo\n",
    "src/index.ts": "export const a = 1;\n",
    "notes.txt": "notes\n",
    "image.png": b"\x89PNG\r\n\x1a\n\x00\x00",
    "big.md": "z" * 4096,
}


def _plan(repo: Path | None, branches: str = "main", **extra: str):
    env = {
        "ENABLED_SEARCH_INDEX": "true",
        "GITHUB_REPO_OWNER": "octo",
        "GITHUB_REPO_NAME": "viewer",
        "SEARCH_INDEX_BRANCHES": branches,
        **extra,
    }
    if repo is not None:
        env["DOCFIND_REPO_PATH"] = str(repo)
    return resolve_plan(env, max_file_size=1024)


def _read_manifest(config: AppConfig) -> dict:
    return json.loads(config.manifest_path.read_text(encoding="utf-8"))


class TestLocalRepository:
    """Generation against an existing checkout (DOCFIND_REPO_PATH)."""

    def test_builds_branch_and_manifest(self, tmp_path: Path, make_repo, fake_docfind: Path) -> None:
        repo = make_repo(FILES)
        config = AppConfig(root_dir=tmp_path / "site")

        manifest = Pipeline(config, _plan(repo), fake_docfind).run()

        output_dir = config.output_dir / "main"
        artifact = output_dir / ARTIFACT_FILENAME
        entry = manifest.branches["main"]
        assert entry.hash == hashlib.sha256(artifact.read_bytes()).hexdigest()
        assert entry.file_count == 5
        assert entry.index_path == "/search-index/main/docfind.js"
        assert "function U(e){return y(e)}" in (output_dir / LOADER_FILENAME).read_text()

        payload = json.loads(artifact.read_text(encoding="utf-8"))
        bodies = {doc["path"]: doc["body"] for doc in payload}
        assert bodies["image.png"] == "image.png"
        assert bodies["big.md"] == "big.md"
        assert bodies["README.md"] == "README.md\n# Repo\n"

        on_disk = _read_manifest(config)
        assert on_disk["schemaVersion"] == "docfind-1"
        assert on_disk["branches"]["main"]["hash"] == entry.hash
        # Explicit repositories are used in place, never cloned into the cache.
        assert not config.tmp_dir.exists() or list(config.tmp_dir.iterdir()) == []

    def test_hash_is_stable_across_runs(self, tmp_path: Path, make_repo, fake_docfind: Path) -> None:
        repo = make_repo(FILES)
        config = AppConfig(root_dir=tmp_path / "site")

        first = Pipeline(config, _plan(repo), fake_docfind).run()
        second = Pipeline(config, _plan(repo), fake_docfind).run()

        assert first.branches["main"].hash == second.branches["main"].hash

    def test_missing_and_empty_branches_are_skipped(
        self, tmp_path: Path, make_repo, fake_docfind: Path, caplog
    ) -> None:
        repo = make_repo({"a.md": "alpha"})
        git(repo, "checkout", "--quiet", "--orphan", "empty")
        git(repo, "rm", "-r", "-f", "--quiet", ".")
        commit_files(repo, {}, "empty branch")
        git(repo, "checkout", "--quiet", "--force", "main")
        config = AppConfig(root_dir=tmp_path / "site")

        with caplog.at_level(logging.WARNING):
            manifest = Pipeline(config, _plan(repo, "ghost empty main"), fake_docfind).run()

        assert list(manifest.branches) == ["main"]
        assert "Skip missing branch: ghost" in caplog.text
        assert "Skip branch with no documents: empty" in caplog.text
        assert list(_read_manifest(config)["branches"]) == ["main"]

    def test_nested_branch_name(self, tmp_path: Path, make_repo, fake_docfind: Path) -> None:
        repo = make_repo({"a.md": "alpha"})
        git(repo, "branch", "release/1.x")
        config = AppConfig(root_dir=tmp_path / "site")

        manifest = Pipeline(config, _plan(repo, "release/1.x"), fake_docfind).run()

        assert manifest.branches["release/1.x"].index_path == "/search-index/release/1.x/docfind.js"
        assert (config.output_dir / "release" / "1.x" / ARTIFACT_FILENAME).is_file()
        assert (config.payloads_dir / "release-1.x.json").is_file()

    def test_indexer_failure_aborts(self, tmp_path: Path, make_repo) -> None:
        repo = make_repo({"a.md": "alpha"})
        failing = tmp_path / "failing-docfind"
        failing.write_text("#!/bin/sh\necho 'payload rejected' >&2\nexit 4\n")
        failing.chmod(0o755)
        config = AppConfig(root_dir=tmp_path / "site")

        with pytest.raises(CommandError, match="payload rejected"):
            Pipeline(config, _plan(repo), failing).run()
        assert not config.manifest_path.exists()

    def test_unpatchable_loader_aborts(self, tmp_path: Path, make_repo) -> None:
        repo = make_repo({"a.md": "alpha"})
        odd = tmp_path / "odd-docfind"
        odd.write_text('#!/bin/sh\ncp "$1" "$2/docfind_bg.wasm"\necho "function V(){}" > "$2/docfind.js"\n')
        odd.chmod(0o755)
        config = AppConfig(root_dir=tmp_path / "site")

        with pytest.raises(LoaderPatchError):
            Pipeline(config, _plan(repo), odd).run()


class TestRemoteFetch:
    """Generation through the temporary shallow mirror."""

    def test_fetches_each_branch(self, tmp_path: Path, make_repo, fake_docfind: Path) -> None:
        origin = make_repo({"a.md": "alpha", "b.py": "x = 1\n"}, name="origin")
        git(origin, "checkout", "--quiet", "-b", "dev")
        commit_files(origin, {"c.txt": "dev only"}, "dev")
        git(origin, "checkout", "--quiet", "main")
        config = AppConfig(root_dir=tmp_path / "site")

        with patch(
            "docfind_indexer.repo.mirror.build_remote_candidates",
            return_value=[origin.as_uri()],
        ):
            manifest = Pipeline(config, _plan(None, "main dev gone"), fake_docfind).run()

        assert manifest.branches["main"].file_count == 2
        assert manifest.branches["dev"].file_count == 3
        assert "gone" not in manifest.branches
        # The scoped workspace is removed after the run.
        assert list(config.tmp_dir.iterdir()) == []

    def test_process_branch_returns_accumulated_manifest(
        self, tmp_path: Path, make_repo, fake_docfind: Path
    ) -> None:
        repo = make_repo({"a.md": "alpha"})
        config = AppConfig(root_dir=tmp_path / "site")
        pipeline = Pipeline(config, _plan(repo), fake_docfind)
        start = Manifest()

        updated = pipeline.process_branch(repo, start, "main")
        unchanged = pipeline.process_branch(repo, updated, "ghost")

        assert start.branches == {}
        assert list(updated.branches) == ["main"]
        assert unchanged is updated


class TestGenerate:
    def test_skips_without_side_effects(self, tmp_path: Path) -> None:
        config = AppConfig(root_dir=tmp_path)
        plan = _plan(None, SEARCH_INDEX_GENERATION_MODE="action")

        with patch("docfind_indexer.pipeline.ensure_binary") as mock_ensure, patch(
            "docfind_indexer.provision.binary.requests.get"
        ) as mock_get:
            assert generate(config, plan) is None

        mock_ensure.assert_not_called()
        mock_get.assert_not_called()
        assert list(tmp_path.iterdir()) == []

    def test_uses_explicit_binary(self, tmp_path: Path, make_repo, fake_docfind: Path) -> None:
        repo = make_repo({"a.md": "alpha"})
        config = AppConfig(root_dir=tmp_path / "site")
        plan = _plan(repo, DOCFIND_BIN=str(fake_docfind))

        with patch("docfind_indexer.provision.binary.requests.get") as mock_get:
            manifest = generate(config, plan)

        mock_get.assert_not_called()
        assert manifest is not None
        assert "main" in manifest.branches
        assert not config.bin_dir.exists()
