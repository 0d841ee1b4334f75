"""Toolchain archive download and extraction.

Archives are streamed to disk with httpx and the tool binary is pulled
out of the tarball by name. Callers own the destination directory and
its cleanup.
"""

from __future__ import annotations

import logging
import shutil
import tarfile
from pathlib import Path, PurePosixPath

import httpx

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = httpx.Timeout(30.0, read=300.0)


class BinaryNotFoundError(LookupError):
    """The archive does not contain exactly one file with the tool's name."""

    def __init__(self, archive: Path, name: str, matches: int) -> None:
        super().__init__(f"Expected one {name!r} in {archive.name}, found {matches}")
        self.archive = archive
        self.name = name
        self.matches = matches


def create_client() -> httpx.Client:
    """An httpx client that follows release-asset redirects."""
    return httpx.Client(follow_redirects=True, timeout=DEFAULT_TIMEOUT)


def download(url: str, dest: Path, *, client: httpx.Client) -> Path:
    """Stream *url* into the file *dest*.

    Raises:
        httpx.HTTPStatusError: on a non-2xx response.
        httpx.TransportError: on network failure.
    """
    logger.debug("Downloading %s -> %s", url, dest)
    with client.stream("GET", url) as response:
        response.raise_for_status()
        with dest.open("wb") as fh:
            for chunk in response.iter_bytes():
                fh.write(chunk)
    return dest


def extract_binary(archive: Path, name: str, dest_dir: Path) -> Path:
    """Extract the single regular file called *name* from a gzipped tarball.

    Only the file contents are copied out; member paths and permissions
    from the archive are ignored.

    Raises:
        tarfile.TarError: if the archive is unreadable.
        BinaryNotFoundError: if zero or several members match *name*.
    """
    with tarfile.open(archive, "r:gz") as tar:
        members = [
            m for m in tar.getmembers() if m.isfile() and PurePosixPath(m.name).name == name
        ]
        if len(members) != 1:
            raise BinaryNotFoundError(archive, name, len(members))
        source = tar.extractfile(members[0])
        if source is None:
            raise BinaryNotFoundError(archive, name, 0)
        target = dest_dir / name
        with source, target.open("wb") as fh:
            shutil.copyfileobj(source, fh)
    return target
