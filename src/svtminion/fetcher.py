"""
Fetch the Salt single-binary minion from the Salt repository.

Downloads the release archive and its SHA3-512 checksum file,
verifies the archive, and unpacks it into the salt directory.
Always downloads, so a stale binary is never reused.
"""

from __future__ import annotations

import hashlib
import logging
import tarfile
from pathlib import Path

import requests

from .errors import FetchFailed
from .models import MinionSettings

logger = logging.getLogger("svtminion.fetcher")

CHUNK_SIZE = 64 * 1024


def _download(url: str, dest: Path) -> None:
    """Stream ``url`` into ``dest``.

    Raises:
        FetchFailed: On any HTTP or connection error.
    """
    logger.info("Downloading %s", url)
    try:
        with requests.get(url, stream=True) as resp:
            resp.raise_for_status()
            with dest.open("wb") as fh:
                for chunk in resp.iter_content(chunk_size=CHUNK_SIZE):
                    if chunk:
                        fh.write(chunk)
    except requests.RequestException as exc:
        raise FetchFailed(f"download of {url} failed: {exc}") from exc
    except OSError as exc:
        raise FetchFailed(f"cannot write {dest}: {exc}") from exc


def _sha3_512_file(path: Path) -> str:
    h = hashlib.sha3_512()
    with path.open("rb") as fh:
        for chunk in iter(lambda: fh.read(CHUNK_SIZE), b""):
            h.update(chunk)
    return h.hexdigest()


def parse_checksum(text: str, package_name: str) -> str:
    """Pick the digest for ``package_name`` out of a checksum file.

    Lines look like ``<hexdigest>  <filename>``. A line naming the
    package wins; otherwise the first token of the file is used.

    Raises:
        FetchFailed: If the file holds no digest at all.
    """
    first = ""
    for line in text.splitlines():
        parts = line.split()
        if not parts:
            continue
        if not first:
            first = parts[0]
        if len(parts) > 1 and parts[-1].lstrip("*") == package_name:
            return parts[0].lower()
    if not first:
        raise FetchFailed("checksum file is empty")
    return first.lower()


def _safe_extract(archive: Path, dest: Path) -> None:
    """Extract ``archive`` into ``dest``, refusing members that escape it."""
    dest_resolved = dest.resolve()
    with tarfile.open(archive, "r:gz") as tar:
        for member in tar.getmembers():
            target = (dest / member.name).resolve()
            if target != dest_resolved and dest_resolved not in target.parents:
                raise FetchFailed(f"archive member escapes target: {member.name}")
            if member.issym() or member.islnk():
                base = target.parent if member.issym() else dest
                link_target = (base / member.linkname).resolve()
                if dest_resolved not in link_target.parents:
                    raise FetchFailed(f"archive link escapes target: {member.name}")
        if hasattr(tarfile, "data_filter"):
            tar.extractall(dest, filter="data")
        else:
            tar.extractall(dest)


def fetch_minion(settings: MinionSettings) -> Path:
    """Download, verify, and unpack the minion into the salt directory.

    Args:
        settings: Minion settings with repository and layout details.

    Returns:
        Path to the unpacked minion executable.

    Raises:
        FetchFailed: If any step fails or the executable is missing afterwards.
    """
    layout = settings.layout
    salt_dir = layout.salt_dir
    try:
        salt_dir.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise FetchFailed(f"cannot create {salt_dir}: {exc}") from exc

    archive = salt_dir / settings.package_name
    _download(settings.package_url, archive)

    if settings.verify_checksum:
        checksum_file = salt_dir / settings.checksum_name
        _download(settings.checksum_url, checksum_file)
        expected = parse_checksum(
            checksum_file.read_text(encoding="utf-8", errors="replace"),
            settings.package_name,
        )
        actual = _sha3_512_file(archive)
        if actual != expected:
            raise FetchFailed(
                f"checksum mismatch for {archive.name}: expected {expected[:16]}..., "
                f"got {actual[:16]}..."
            )
        logger.debug("Checksum verified for %s", archive.name)

    try:
        _safe_extract(archive, salt_dir)
    except (tarfile.TarError, OSError) as exc:
        raise FetchFailed(f"cannot extract {archive}: {exc}") from exc

    marker = layout.marker
    if not marker.is_file():
        raise FetchFailed(f"{marker} not present after extracting {archive.name}")

    marker.chmod(marker.stat().st_mode | 0o111)
    logger.info("Unpacked salt-minion to %s", marker)
    return marker
