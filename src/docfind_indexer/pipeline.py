"""Sequential, per-branch index generation pipeline."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from docfind_indexer.config import AppConfig, RunPlan
from docfind_indexer.index import builder, collector, manifest as manifest_writer
from docfind_indexer.models import Manifest
from docfind_indexer.provision.binary import ensure_binary
from docfind_indexer.repo import mirror
from docfind_indexer.utils.text import branch_segments

LOGGER = logging.getLogger(__name__)


class Pipeline:
    """Builds one index per branch in a shared, sequentially reused workspace."""

    def __init__(self, config: AppConfig, plan: RunPlan, binary: Path) -> None:
        self.config = config
        self.plan = plan
        self.binary = binary

    @property
    def uses_local_repo(self) -> bool:
        return bool(self.plan.repo_path)

    def payload_path(self, branch: str) -> Path:
        return self.config.payloads_dir / f"{'-'.join(branch_segments(branch))}.json"

    def resolve_ref(self, workspace: Path, branch: str) -> Optional[str]:
        if self.uses_local_repo:
            return mirror.resolve_branch_ref(workspace, branch)
        remotes = mirror.build_remote_candidates(
            self.plan.repo_owner, self.plan.repo_name, self.plan.tokens
        )
        return mirror.fetch_branch(workspace, branch, remotes)

    def process_branch(self, workspace: Path, manifest: Manifest, branch: str) -> Manifest:
        """Build ``branch`` and return the manifest with its entry recorded.

        Branches that cannot be resolved or contain no documents leave the
        manifest unchanged.
        """
        ref = self.resolve_ref(workspace, branch)
        if ref is None:
            LOGGER.warning("Skip missing branch: %s", branch)
            return manifest

        result = collector.collect(
            workspace,
            ref,
            branch,
            self.plan.extension_whitelist,
            self.plan.max_file_size,
        )
        if result.document_count == 0:
            LOGGER.warning(
                "Skip branch with no documents: %s (skipped %d)", branch, result.skipped
            )
            return manifest

        output_dir = manifest_writer.branch_output_dir(self.config, branch)
        builder.build(self.binary, result.documents, output_dir, self.payload_path(branch))
        entry = manifest_writer.build_branch_entry(
            self.config, branch, output_dir, result.document_count
        )

        LOGGER.info(
            "Built %s @ %s: %d documents (%d skipped)",
            branch,
            mirror.current_commit(workspace)[:12],
            result.document_count,
            result.skipped,
        )
        return manifest_writer.record_branch(manifest, branch, entry)

    def run(self) -> Manifest:
        manifest = Manifest()
        with mirror.workspace(self.config, self.plan.repo_path) as workspace:
            if not self.uses_local_repo:
                mirror.prepare_workspace(workspace, self.plan.repo_owner, self.plan.repo_name)
            for branch in self.plan.branches:
                manifest = self.process_branch(workspace, manifest, branch)

        manifest_writer.finalize(manifest, self.config.manifest_path)
        return manifest


def generate(config: AppConfig, plan: RunPlan) -> Optional[Manifest]:
    """Run the whole pipeline if the plan allows it; return the written manifest."""
    if not plan.should_run:
        LOGGER.info("%s, skip generation.", plan.reason)
        return None

    binary = ensure_binary(config, plan.docfind_bin)
    return Pipeline(config, plan, binary).run()
