"""Locating and reading ``buildgate.toml``.

Lookup order: ``BUILDGATE_CONFIG`` if set, otherwise the nearest
``buildgate.toml`` in the start directory or any of its ancestors. A
recipe can therefore call buildgate from any subdirectory of the project.
"""

from __future__ import annotations

import os
import tomllib
from collections.abc import Iterator
from pathlib import Path
from typing import Any

import click

from buildgate.config.models import BuildgateConfig

CONFIG_FILENAME = "buildgate.toml"
CONFIG_ENV_VAR = "BUILDGATE_CONFIG"


def _search_dirs(start: Path) -> Iterator[Path]:
    here = start.resolve()
    yield here
    yield from here.parents


def find_config(start: Path | None = None) -> Path | None:
    """Return the config file that applies to *start* (default: cwd), or None.

    An env override that names a missing file yields None rather than
    falling back to the walk-up search.
    """
    override = os.environ.get(CONFIG_ENV_VAR)
    if override:
        explicit = Path(override)
        return explicit if explicit.is_file() else None

    for directory in _search_dirs(start or Path.cwd()):
        candidate = directory / CONFIG_FILENAME
        if candidate.is_file():
            return candidate
    return None


def read_toml(path: Path) -> dict[str, Any]:
    """Parse *path*; a syntax error becomes a one-line ClickException."""
    try:
        return tomllib.loads(path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as exc:
        raise click.ClickException(f"Invalid TOML in {path}: {exc}") from exc


def load_config(path: Path | None = None, cwd: Path | None = None) -> BuildgateConfig:
    """Validate the sections of *path* (discovered from *cwd* when omitted).

    Missing sections and keys keep their defaults; no file at all gives
    a fully default config.
    """
    source = path or find_config(cwd)
    if source is None:
        return BuildgateConfig()
    return BuildgateConfig.model_validate(read_toml(source))
