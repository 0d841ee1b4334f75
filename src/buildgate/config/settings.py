"""BuildgateSettings: one frozen object built from every config layer.

Highest priority first:

1. keyword arguments (the root group's CLI flags)
2. ``BUILDGATE_*`` environment variables, ``__`` between nested keys,
   e.g. ``BUILDGATE_BUILD__KEEP_GOING=true``
3. ``buildgate.toml`` (see :mod:`buildgate.config.discovery`)
4. defaults baked into :mod:`buildgate.config.models`

Env vars are the natural override inside a container recipe; the TOML
file carries the project's pinned defaults.
"""

from __future__ import annotations

from contextvars import ContextVar
from pathlib import Path
from typing import Any

import click
from pydantic import Field
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource

from buildgate.config.discovery import find_config, read_toml
from buildgate.config.models import (
    BuildConfig,
    PluginsConfig,
    RunConfig,
    SourceConfig,
    ToolchainConfig,
)

# pydantic-settings builds sources inside the model constructor, so the
# file chosen by from_cli() reaches settings_customise_sources() this way.
_active_toml: ContextVar[Path | None] = ContextVar("_active_toml", default=None)


class TomlSettingsSource(PydanticBaseSettingsSource):
    """Settings source backed by a single parsed TOML document."""

    def __init__(self, settings_cls: type[BaseSettings], toml_path: Path | None) -> None:
        super().__init__(settings_cls)
        self._doc: dict[str, Any] = read_toml(toml_path) if toml_path else {}

    def get_field_value(self, field: Any, field_name: str) -> tuple[Any, str, bool]:
        return self._doc.get(field_name), field_name, field_name in self._doc

    def __call__(self) -> dict[str, Any]:
        return self._doc


class BuildgateSettings(BaseSettings):
    """Everything a pipeline command needs to know, resolved once per run.

    Attributes:
        project_root: Base for relative paths in the config. The config
            file's directory, or the CWD when there is no file.
        config_path: The TOML file that was read, if any.
    """

    model_config = {
        "frozen": True,
        "env_prefix": "BUILDGATE_",
        "env_nested_delimiter": "__",
    }

    project_root: Path = Field(default_factory=Path.cwd)
    config_path: Path | None = None

    json_output: bool = False
    quiet: bool = False
    verbose: bool = False
    log_json: bool = False

    toolchain: ToolchainConfig = Field(default_factory=ToolchainConfig)
    source: SourceConfig = Field(default_factory=SourceConfig)
    build: BuildConfig = Field(default_factory=BuildConfig)
    run: RunConfig = Field(default_factory=RunConfig)
    plugins: PluginsConfig = Field(default_factory=PluginsConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # No dotenv or secrets dir: a build container gets env vars directly.
        return (
            init_settings,
            env_settings,
            TomlSettingsSource(settings_cls, _active_toml.get()),
        )

    @classmethod
    def from_cli(
        cls,
        *,
        config_path: str | None = None,
        project_root: Path | None = None,
        **cli_flags: Any,
    ) -> BuildgateSettings:
        """Build settings for one CLI invocation.

        An explicit *config_path* must exist; otherwise the file is
        discovered by walking up from *project_root* (or the CWD).
        """
        if config_path:
            toml_path: Path | None = Path(config_path)
            if not toml_path.is_file():
                raise click.ClickException(f"Config file not found: {config_path}")
        else:
            toml_path = find_config(project_root)

        if project_root is None:
            project_root = toml_path.parent if toml_path else Path.cwd()

        token = _active_toml.set(toml_path)
        try:
            return cls(project_root=project_root, config_path=toml_path, **cli_flags)
        finally:
            _active_toml.reset(token)

    def resolve(self, path: Path) -> Path:
        """Anchor a relative config path at :attr:`project_root`."""
        return path if path.is_absolute() else self.project_root / path
