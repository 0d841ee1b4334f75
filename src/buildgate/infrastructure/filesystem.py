"""Filesystem operations for staging, installing, and reclaiming.

INVARIANT: every helper here works on explicit paths handed in by the
caller. Nothing depends on the process working directory.
"""

from __future__ import annotations

import logging
import os
import shutil
import time
from pathlib import Path

logger = logging.getLogger(__name__)

EXECUTABLE_MODE = 0o755


# ---------------------------------------------------------------------------
# Staging
# ---------------------------------------------------------------------------


def copy_tree(source: Path, dest: Path) -> Path:
    """Copy *source* to *dest* wholesale, replacing any previous copy."""
    if dest.exists():
        shutil.rmtree(dest)
    dest.parent.mkdir(parents=True, exist_ok=True)
    shutil.copytree(source, dest, symlinks=True)
    return dest


def touch_tree(root: Path, when: float | None = None) -> int:
    """Set atime/mtime of *root* and everything beneath it to *when*.

    Uses one timestamp for the whole tree (default: now) so no source
    looks older than any other. Symlinks are touched themselves, not
    their targets. Returns the number of regular files touched.
    """
    stamp = time.time() if when is None else when
    times = (stamp, stamp)
    files = 0
    for dirpath, dirnames, filenames in os.walk(root):
        for name in (*dirnames, *filenames):
            path = os.path.join(dirpath, name)
            os.utime(path, times, follow_symlinks=False)
        files += len(filenames)
    os.utime(root, times)
    return files


# ---------------------------------------------------------------------------
# Installation
# ---------------------------------------------------------------------------


def install_executable(binary: Path, bin_dir: Path) -> Path:
    """Install *binary* into *bin_dir* under its own name with mode 0755.

    The copy lands next to the destination first and is moved into place
    with :func:`os.replace`, so a concurrent reader never sees a partial file.
    """
    bin_dir.mkdir(parents=True, exist_ok=True)
    target = bin_dir / binary.name
    staging = bin_dir / f".{binary.name}.partial"
    shutil.copyfile(binary, staging)
    staging.chmod(EXECUTABLE_MODE)
    os.replace(staging, target)
    return target


# ---------------------------------------------------------------------------
# Reclamation
# ---------------------------------------------------------------------------


def remove_path(path: Path) -> bool:
    """Delete a file or directory tree. Returns False if nothing was there."""
    if path.is_symlink() or path.is_file():
        path.unlink()
        return True
    if path.is_dir():
        shutil.rmtree(path)
        return True
    return False
