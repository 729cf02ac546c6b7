"""Command line interface for docfind index generation."""

from __future__ import annotations

import logging
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from docfind_indexer.config import DEFAULT_MAX_FILE_SIZE, AppConfig, load_env_files, resolve_plan
from docfind_indexer.errors import DocfindError
from docfind_indexer.pipeline import generate as run_generation

LOGGER = logging.getLogger(__name__)

console = Console()
app = typer.Typer(help="docfind-index - per-branch static search index generator")


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="[%(levelname)s] %(message)s")


def _load_config(root: Path | None, env_file: bool) -> AppConfig:
    config = AppConfig(root_dir=(root or Path.cwd()).resolve())
    if env_file:
        load_env_files(config.root_dir)
    return config


@app.command()
def generate(
    root: Path = typer.Option(None, "--root", help="Project root holding public/ and .docfind/"),
    max_file_size: int = typer.Option(
        DEFAULT_MAX_FILE_SIZE, help="Largest file (bytes) whose content is indexed"
    ),
    env_file: bool = typer.Option(True, "--env-file/--no-env-file", help="Load .env files from root"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """Generate search indexes and the manifest for the configured branches."""
    _setup_logging(verbose)
    config = _load_config(root, env_file)
    plan = resolve_plan(max_file_size=max_file_size)

    if not plan.should_run:
        console.print(f"[yellow]{plan.reason}, skip generation.[/yellow]")
        return

    try:
        manifest = run_generation(config, plan)
    except DocfindError as exc:
        LOGGER.error("Generation failed: %s", exc)
        raise typer.Exit(code=1) from exc
    except Exception as exc:
        LOGGER.exception("Generation failed: %s", exc)
        raise typer.Exit(code=1) from exc

    built = len(manifest.branches) if manifest is not None else 0
    console.print(
        f"Built {built} of {len(plan.branches)} branch(es). "
        f"Manifest: [bold]{config.manifest_path}[/bold]"
    )


@app.command()
def plan(
    root: Path = typer.Option(None, "--root", help="Project root holding public/ and .docfind/"),
    env_file: bool = typer.Option(True, "--env-file/--no-env-file", help="Load .env files from root"),
) -> None:
    """Show what a generation run would do without touching the network."""
    config = _load_config(root, env_file)
    run_plan = resolve_plan()

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Setting")
    table.add_column("Value")

    table.add_row("Should run", "yes" if run_plan.should_run else "no")
    table.add_row("Reason", run_plan.reason)
    table.add_row("Mode / context", f"{run_plan.mode} / {run_plan.context}")
    table.add_row("Repository", f"{run_plan.repo_owner or '-'}/{run_plan.repo_name or '-'}")
    table.add_row("Branches", ", ".join(run_plan.branches))
    table.add_row("Extensions", str(len(run_plan.extension_whitelist)))
    table.add_row("Binary", run_plan.docfind_bin or str(config.bin_dir))
    table.add_row("Local repo", run_plan.repo_path or "-")
    table.add_row("Tokens", str(len(run_plan.tokens)))
    table.add_row("Manifest", str(config.manifest_path))

    console.print(table)
