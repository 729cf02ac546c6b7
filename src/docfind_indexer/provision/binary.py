"""Download and cache the platform-specific docfind binary."""

from __future__ import annotations

import enum
import logging
import platform
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, Optional, Tuple

import requests

from docfind_indexer.config import AppConfig
from docfind_indexer.errors import ProvisioningError
from docfind_indexer.utils.process import run_command
from docfind_indexer.utils.text import to_posix_path

logger = logging.getLogger(__name__)

RELEASE_BASE_URL = "https://github.com/microsoft/docfind/releases/latest/download"
BINARY_NAME = "docfind"
DOWNLOAD_TIMEOUT = (10, 300)
DOWNLOAD_CHUNK_SIZE = 1 << 16


class ArchiveFormat(enum.Enum):
    ZIP = "zip"
    TAR_GZ = "tar.gz"


@dataclass(slots=True, frozen=True)
class ReleaseAsset:
    name: str
    archive_format: ArchiveFormat
    windows: bool = False

    @property
    def binary_filename(self) -> str:
        return f"{BINARY_NAME}.exe" if self.windows else BINARY_NAME

    @property
    def url(self) -> str:
        return f"{RELEASE_BASE_URL}/{self.name}"


MACHINE_ALIASES: Dict[str, str] = {
    "x86_64": "x86_64",
    "amd64": "x86_64",
    "aarch64": "aarch64",
    "arm64": "aarch64",
}

RELEASE_ASSETS: Dict[Tuple[str, str], ReleaseAsset] = {
    ("Windows", "x86_64"): ReleaseAsset("docfind-x86_64-pc-windows-msvc.zip", ArchiveFormat.ZIP, True),
    ("Windows", "aarch64"): ReleaseAsset("docfind-aarch64-pc-windows-msvc.zip", ArchiveFormat.ZIP, True),
    ("Darwin", "x86_64"): ReleaseAsset("docfind-x86_64-apple-darwin.tar.gz", ArchiveFormat.TAR_GZ),
    ("Darwin", "aarch64"): ReleaseAsset("docfind-aarch64-apple-darwin.tar.gz", ArchiveFormat.TAR_GZ),
    ("Linux", "x86_64"): ReleaseAsset("docfind-x86_64-unknown-linux-musl.tar.gz", ArchiveFormat.TAR_GZ),
    ("Linux", "aarch64"): ReleaseAsset("docfind-aarch64-unknown-linux-musl.tar.gz", ArchiveFormat.TAR_GZ),
}


def select_asset(system: str | None = None, machine: str | None = None) -> ReleaseAsset:
    """Look up the release asset for a platform, defaulting to the current one."""
    system = system or platform.system()
    raw_machine = (machine or platform.machine()).lower()
    arch = MACHINE_ALIASES.get(raw_machine)
    asset = RELEASE_ASSETS.get((system, arch)) if arch else None
    if asset is None:
        raise ProvisioningError(f"Unsupported platform: {system} ({raw_machine})")
    return asset


def _extract_zip(archive: Path, dest: Path) -> None:
    command = (
        f'Expand-Archive -Path "{to_posix_path(str(archive))}" '
        f'-DestinationPath "{to_posix_path(str(dest))}" -Force'
    )
    run_command(["powershell", "-NoProfile", "-Command", command])


def _extract_tar_gz(archive: Path, dest: Path) -> None:
    run_command(["tar", "-xzf", archive, "-C", dest])


EXTRACTORS: Dict[ArchiveFormat, Callable[[Path, Path], None]] = {
    ArchiveFormat.ZIP: _extract_zip,
    ArchiveFormat.TAR_GZ: _extract_tar_gz,
}


def extract_archive(archive: Path, dest: Path, archive_format: ArchiveFormat) -> None:
    logger.info("Extracting %s", archive.name)
    EXTRACTORS[archive_format](archive, dest)


def _is_binary_name(name: str, windows: bool) -> bool:
    lowered = name.lower()
    if windows:
        return lowered.startswith(BINARY_NAME) and lowered.endswith(".exe")
    return lowered == BINARY_NAME or lowered.startswith(f"{BINARY_NAME}-")


def find_binary(root: Path, windows: bool) -> Optional[Path]:
    """Depth-first search for the extracted executable under ``root``."""
    for entry in sorted(root.iterdir()):
        if entry.is_file() and _is_binary_name(entry.name, windows):
            return entry
    for entry in sorted(root.iterdir()):
        if entry.is_dir():
            nested = find_binary(entry, windows)
            if nested is not None:
                return nested
    return None


def download_asset(asset: ReleaseAsset, dest: Path) -> Path:
    """Stream the release asset to ``dest``."""
    logger.info("Downloading %s...", asset.name)
    try:
        response = requests.get(asset.url, stream=True, timeout=DOWNLOAD_TIMEOUT)
    except requests.RequestException as exc:
        raise ProvisioningError(f"docfind download failed: {exc}") from exc

    with response:
        if not response.ok:
            raise ProvisioningError(
                f"docfind download failed: {response.status_code} {response.reason}"
            )
        dest.parent.mkdir(parents=True, exist_ok=True)
        with dest.open("wb") as handle:
            for chunk in response.iter_content(chunk_size=DOWNLOAD_CHUNK_SIZE):
                if chunk:
                    handle.write(chunk)
    return dest


def ensure_binary(config: AppConfig, explicit_path: str | None = None) -> Path:
    """Return a usable docfind executable, downloading it on first use.

    An explicit path is trusted as-is. Otherwise the binary is cached under
    ``.docfind/bin`` and reused by later runs.
    """
    if explicit_path and explicit_path.strip():
        return Path(explicit_path.strip())

    asset = select_asset()
    binary_path = config.bin_dir / asset.binary_filename
    if binary_path.exists():
        logger.debug("Using cached docfind binary at %s", binary_path)
        return binary_path

    config.bin_dir.mkdir(parents=True, exist_ok=True)
    archive = download_asset(asset, config.downloads_dir / asset.name)
    extract_archive(archive, config.bin_dir, asset.archive_format)

    extracted = find_binary(config.bin_dir, asset.windows)
    if extracted is None:
        raise ProvisioningError("docfind binary not found after extraction")

    if extracted != binary_path:
        shutil.copyfile(extracted, binary_path)
    if not asset.windows:
        binary_path.chmod(0o755)

    logger.info("Installed docfind binary at %s", binary_path)
    return binary_path
