"""Core data models for index generation."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict

SCHEMA_VERSION = "docfind-1"


def utc_timestamp() -> str:
    """ISO-8601 UTC timestamp with millisecond precision."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass(slots=True, frozen=True)
class DocumentRecord:
    """One tracked file as seen by the indexer."""

    title: str
    category: str
    href: str
    path: str
    branch: str
    extension: str
    body: str

    @classmethod
    def for_path(cls, path: str, branch: str, extension: str, content: str | None = None) -> DocumentRecord:
        body = path if content is None else f"{path}\n{content}"
        return cls(
            title=path.rsplit("/", 1)[-1],
            category=extension,
            href=path,
            path=path,
            branch=branch,
            extension=extension,
            body=body,
        )

    @property
    def has_content(self) -> bool:
        return self.body != self.path

    def to_dict(self) -> Dict[str, str]:
        return {
            "title": self.title,
            "category": self.category,
            "href": self.href,
            "path": self.path,
            "branch": self.branch,
            "extension": self.extension,
            "body": self.body,
        }


@dataclass(slots=True, frozen=True)
class BranchEntry:
    """Manifest entry describing one branch's compiled index."""

    index_path: str
    hash: str
    file_count: int
    generated_at: str = field(default_factory=utc_timestamp)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "indexPath": self.index_path,
            "hash": self.hash,
            "fileCount": self.file_count,
            "generatedAt": self.generated_at,
        }


@dataclass(slots=True, frozen=True)
class Manifest:
    """Global description of every branch built in a run."""

    generated_at: str = field(default_factory=utc_timestamp)
    branches: Dict[str, BranchEntry] = field(default_factory=dict)
    schema_version: str = SCHEMA_VERSION

    def to_dict(self) -> Dict[str, Any]:
        return {
            "schemaVersion": self.schema_version,
            "generatedAt": self.generated_at,
            "branches": {name: entry.to_dict() for name, entry in self.branches.items()},
        }
