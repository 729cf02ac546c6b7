"""Application configuration and environment-driven run planning."""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Literal, Mapping, Sequence

from dotenv import load_dotenv

LOGGER = logging.getLogger(__name__)

GenerationMode = Literal["build", "action", "off"]
GenerationContext = Literal["build", "action"]

DEFAULT_ENV_FILES = (".env", ".env.local", ".env.production", ".env.production.local")
DEFAULT_BRANCH = "main"
DEFAULT_MAX_FILE_SIZE = 512 * 1024
TOKEN_PREFIXES = ("GITHUB_PAT", "VITE_GITHUB_PAT", "GITHUB_TOKEN")

DEFAULT_EXTENSION_WHITELIST: tuple[str, ...] = (
    "md", "markdown", "mdx", "txt",
    "js", "jsx", "ts", "tsx", "json", "jsonc",
    "css", "scss", "less", "html", "htm", "xml",
    "yaml", "yml", "toml", "ini", "cfg", "conf", "properties",
    "sql", "sh", "bash", "zsh", "ps1",
    "py", "go", "java", "kt", "kts", "cs",
    "c", "h", "cpp", "hpp", "rs", "rb", "php", "swift",
    "m", "mm", "scala", "lua",
)

_LIST_SPLIT_RE = re.compile(r"[\s,]+")


@dataclass(slots=True)
class AppConfig:
    """Filesystem layout of a generation run, rooted at ``root_dir``."""

    root_dir: Path = field(default_factory=Path.cwd)
    cache_dirname: str = ".docfind"
    public_dirname: str = "public"
    base_path: str = "/search-index"

    @property
    def cache_dir(self) -> Path:
        return self.root_dir / self.cache_dirname

    @property
    def bin_dir(self) -> Path:
        return self.cache_dir / "bin"

    @property
    def downloads_dir(self) -> Path:
        return self.cache_dir / "downloads"

    @property
    def tmp_dir(self) -> Path:
        return self.cache_dir / "tmp"

    @property
    def payloads_dir(self) -> Path:
        return self.cache_dir / "payloads"

    @property
    def output_dir(self) -> Path:
        return self.root_dir / self.public_dirname / self.base_path.strip("/")

    @property
    def manifest_path(self) -> Path:
        return self.output_dir / "manifest.json"

    def resolve_path(self, value: str | Path) -> Path:
        path = Path(value)
        if path.is_absolute():
            return path
        return self.root_dir / path


@dataclass(slots=True)
class RunPlan:
    """Validated decision about whether and what to generate."""

    should_run: bool
    reason: str
    mode: GenerationMode
    context: GenerationContext
    repo_owner: str = ""
    repo_name: str = ""
    default_branch: str = DEFAULT_BRANCH
    branches: list[str] = field(default_factory=list)
    extension_whitelist: frozenset[str] = frozenset(DEFAULT_EXTENSION_WHITELIST)
    max_file_size: int = DEFAULT_MAX_FILE_SIZE
    docfind_bin: str | None = None
    repo_path: str | None = None
    tokens: list[str] = field(default_factory=list)


def load_env_files(root_dir: Path, files: Sequence[str] = DEFAULT_ENV_FILES) -> list[Path]:
    """Load dotenv files from ``root_dir``; later files override earlier ones."""
    loaded: list[Path] = []
    for name in files:
        path = root_dir / name
        if path.is_file():
            load_dotenv(dotenv_path=path, override=True)
            loaded.append(path)
    if loaded:
        LOGGER.debug("Loaded env files: %s", ", ".join(p.name for p in loaded))
    return loaded


def resolve_env_value(
    keys: Sequence[str], fallback: str = "", env: Mapping[str, str] | None = None
) -> str:
    source = os.environ if env is None else env
    for key in keys:
        value = source.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return fallback


def parse_boolean(value: str | None, fallback: bool = False) -> bool:
    if value is None:
        return fallback
    normalized = value.strip().lower()
    if normalized == "true":
        return True
    if normalized == "false":
        return False
    return fallback


def parse_list(value: str | None) -> list[str]:
    """Split a comma/whitespace separated list, dropping blanks and duplicates."""
    if value is None or not value.strip():
        return []
    items = [item for item in _LIST_SPLIT_RE.split(value.strip()) if item]
    return list(dict.fromkeys(items))


def normalize_extensions(values: Iterable[str]) -> frozenset[str]:
    normalized = (value.strip().lower().lstrip(".") for value in values)
    return frozenset(value for value in normalized if value)


def collect_tokens(
    prefixes: Sequence[str] = TOKEN_PREFIXES, env: Mapping[str, str] | None = None
) -> list[str]:
    """Collect non-blank token values from keys matching any prefix, sorted by key."""
    source = os.environ if env is None else env
    keys = sorted(key for key in source if any(key.startswith(prefix) for prefix in prefixes))
    tokens: list[str] = []
    for key in keys:
        value = source.get(key)
        if isinstance(value, str) and value.strip():
            tokens.append(value.strip())
    return tokens


def normalize_generation_mode(value: str) -> GenerationMode:
    normalized = value.strip().lower()
    if normalized in ("build", "action", "off"):
        return normalized  # type: ignore[return-value]
    return "build"


def resolve_generation_context(env: Mapping[str, str] | None = None) -> GenerationContext:
    is_actions = parse_boolean(resolve_env_value(["GITHUB_ACTIONS"], "false", env))
    return "action" if is_actions else "build"


def should_generate(enabled: bool, mode: GenerationMode, context: GenerationContext) -> bool:
    """Generate only when enabled and the configured mode matches the context."""
    if not enabled or mode == "off":
        return False
    return mode == context


def resolve_plan(
    env: Mapping[str, str] | None = None, *, max_file_size: int = DEFAULT_MAX_FILE_SIZE
) -> RunPlan:
    """Build a :class:`RunPlan` from environment values without side effects."""
    mode = normalize_generation_mode(
        resolve_env_value(["SEARCH_INDEX_GENERATION_MODE"], "build", env)
    )
    context = resolve_generation_context(env)
    enabled = parse_boolean(
        resolve_env_value(["ENABLED_SEARCH_INDEX", "VITE_ENABLED_SEARCH_INDEX"], "false", env)
    )

    owner = resolve_env_value(["GITHUB_REPO_OWNER", "VITE_GITHUB_REPO_OWNER"], "", env)
    name = resolve_env_value(["GITHUB_REPO_NAME", "VITE_GITHUB_REPO_NAME"], "", env)
    default_branch = resolve_env_value(
        ["GITHUB_REPO_BRANCH", "VITE_GITHUB_REPO_BRANCH"], DEFAULT_BRANCH, env
    )
    branches = parse_list(resolve_env_value(["SEARCH_INDEX_BRANCHES"], "", env)) or [default_branch]

    override = parse_list(resolve_env_value(["SEARCH_INDEX_EXTENSIONS"], "", env))
    whitelist = normalize_extensions(override or DEFAULT_EXTENSION_WHITELIST)

    plan = RunPlan(
        should_run=False,
        reason="",
        mode=mode,
        context=context,
        repo_owner=owner,
        repo_name=name,
        default_branch=default_branch,
        branches=branches,
        extension_whitelist=whitelist,
        max_file_size=max_file_size,
        docfind_bin=resolve_env_value(["DOCFIND_BIN"], "", env) or None,
        repo_path=resolve_env_value(["DOCFIND_REPO_PATH"], "", env) or None,
        tokens=collect_tokens(env=env),
    )

    if not enabled:
        plan.reason = "Search index disabled"
    elif not should_generate(enabled, mode, context):
        plan.reason = f"Generation mode is {mode}, skip in {context} context"
    elif not owner or not name:
        plan.reason = "Missing repo owner/name"
    else:
        plan.should_run = True
        plan.reason = f"Generating {len(branches)} branch(es) in {context} context"
    return plan
