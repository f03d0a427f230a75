"""
L4 Execution — Release registry client.

Resolves a version tag, downloads the release archive for the host
architecture and unpacks it into a temporary directory that is removed
on every exit path.

The registry is a black box: ``GET /repos/{repo}/releases/latest``
returns a ``tag_name``; the archive lives at a URL derived from the
tag and architecture.
"""

from __future__ import annotations

import json
import logging
import shutil
import tempfile
import urllib.error
import urllib.request
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Iterator

from provisioner import __version__
from provisioner.core.errors import (
    PrerequisiteMissingError,
    ReleaseDownloadError,
    VersionResolutionError,
)
from provisioner.core.models import ProvisionWarning
from provisioner.core.services.provision.data.constants import (
    GITHUB_API,
    GITHUB_DOWNLOAD,
    RELEASE_ARCHIVE_NAME,
    RELEASE_ROOT_GLOB,
)
from provisioner.core.services.provision.execution.subprocess_runner import (
    command_output,
    run_command,
)

logger = logging.getLogger(__name__)

_HEADERS = {
    "Accept": "application/vnd.github.v3+json",
    "User-Agent": f"masmide-provision/{__version__}",
}


@dataclass
class StagedRelease:
    """An unpacked release, valid inside ``stage_release``'s block."""

    root: Path
    version: str
    archive_url: str
    warnings: list[ProvisionWarning] = field(default_factory=list)


def fetch_latest_tag(repo: str, *, timeout: float = 30) -> str:
    """Tag of the newest release of ``repo``.

    Raises:
        VersionResolutionError: On any network/API failure or an
            empty tag.
    """
    url = f"{GITHUB_API}/repos/{repo}/releases/latest"
    req = urllib.request.Request(url, headers=_HEADERS)
    try:
        with urllib.request.urlopen(req, timeout=timeout) as resp:
            data = json.loads(resp.read())
    except (urllib.error.URLError, OSError, ValueError) as e:
        raise VersionResolutionError(
            f"Could not determine the latest version of {repo}: {e}. Specify one with --tag."
        ) from e

    tag = (data.get("tag_name") or "").strip() if isinstance(data, dict) else ""
    if not tag:
        raise VersionResolutionError(
            f"Could not determine the latest version of {repo}. Specify one with --tag."
        )
    return tag


def resolve_version(pinned: str | None, repo: str, *, timeout: float = 30) -> str:
    """The pinned version if given, else the registry's latest tag."""
    if pinned and pinned.strip():
        return pinned.strip()
    tag = fetch_latest_tag(repo, timeout=timeout)
    logger.info("Latest release of %s is %s", repo, tag)
    return tag


def release_archive_url(repo: str, version: str, arch: str) -> str:
    name = RELEASE_ARCHIVE_NAME.format(version=version, arch=arch)
    return f"{GITHUB_DOWNLOAD}/{repo}/releases/download/{version}/{name}"


def download_archive(url: str, dest: Path, *, timeout: float = 30) -> Path:
    """Stream ``url`` to ``dest``.

    Raises:
        ReleaseDownloadError: On any HTTP or I/O failure.
    """
    req = urllib.request.Request(url, headers={"User-Agent": _HEADERS["User-Agent"]})
    logger.info("Downloading %s", url)
    try:
        with urllib.request.urlopen(req, timeout=timeout) as resp, dest.open("wb") as f:
            shutil.copyfileobj(resp, f)
    except (urllib.error.URLError, OSError) as e:
        raise ReleaseDownloadError(f"Download failed for {url}: {e}") from e
    return dest


def extract_archive(
    archive: Path,
    dest: Path,
    *,
    runner: Callable[..., dict[str, Any]] = run_command,
    which: Callable[[str], str | None] = shutil.which,
) -> None:
    """Unpack a .tar.gz with the system ``tar``.

    Raises:
        PrerequisiteMissingError: If ``tar`` is not on PATH.
        ReleaseDownloadError: If extraction fails.
    """
    if not which("tar"):
        raise PrerequisiteMissingError("tar", "unpacking the release archive")
    dest.mkdir(parents=True, exist_ok=True)
    result = runner(["tar", "-xzf", str(archive), "-C", str(dest)])
    if not result.get("ok"):
        raise ReleaseDownloadError(f"Cannot extract {archive.name}: {command_output(result)}")


def locate_release_root(extract_dir: Path) -> tuple[Path, ProvisionWarning | None]:
    """The versioned top-level directory, else the extraction root.

    Falling back to the root keeps flat archives installable; the
    fallback is reported as a warning.
    """
    candidates = sorted(p for p in extract_dir.glob(RELEASE_ROOT_GLOB) if p.is_dir())
    if candidates:
        return candidates[0], None
    warning = ProvisionWarning(
        stage="release",
        message=f"No {RELEASE_ROOT_GLOB} directory in archive; using the archive root",
    )
    logger.warning(warning.message)
    return extract_dir, warning


@contextmanager
def stage_release(
    version: str,
    arch: str,
    *,
    repo: str,
    timeout: float = 30,
    runner: Callable[..., dict[str, Any]] = run_command,
    which: Callable[[str], str | None] = shutil.which,
) -> Iterator[StagedRelease]:
    """Download and unpack a release for the duration of the block."""
    url = release_archive_url(repo, version, arch)
    with tempfile.TemporaryDirectory(prefix="masmide-release-") as tmp:
        tmp_dir = Path(tmp)
        archive = download_archive(url, tmp_dir / url.rsplit("/", 1)[-1], timeout=timeout)
        extract_dir = tmp_dir / "extract"
        extract_archive(archive, extract_dir, runner=runner, which=which)
        root, warning = locate_release_root(extract_dir)
        staged = StagedRelease(root=root, version=version, archive_url=url)
        if warning is not None:
            staged.warnings.append(warning)
        yield staged
