"""Pydantic configuration models with code-baked defaults.

Sparse TOML contract: defaults baked here, buildgate.toml only contains
overrides. The defaults reproduce the networking library's container
recipe: premake5 alpha14, ``dotnet build -c Release``, ``test`` then
``server``.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, Field

# --- buildgate.toml sections ---


class ToolchainConfig(BaseModel):
    """[toolchain] section — the pinned build-system generator."""

    model_config = {"frozen": True}

    name: str = "premake5"
    version: str = "5.0.0-alpha14"
    url: str = (
        "https://github.com/premake/premake-core/releases/download/"
        "v{version}/premake-{version}-linux.tar.gz"
    )
    bin_dir: Path = Path("/usr/local/bin")

    @property
    def download_url(self) -> str:
        """The archive URL with the pinned version substituted."""
        return self.url.format(version=self.version)


class SourceConfig(BaseModel):
    """[source] section — where the external project comes from and goes to."""

    model_config = {"frozen": True}

    path: Path = Path("yojimbo.net")
    workdir: Path = Path("/app")
    name: str | None = None

    @property
    def staged_name(self) -> str:
        """Directory name of the staged copy under *workdir*."""
        return self.name or self.path.name


class BuildConfig(BaseModel):
    """[build] section — generator action and per-target compile command."""

    model_config = {"frozen": True}

    generator_action: str = "solution"
    compiler: list[str] = Field(default_factory=lambda: ["dotnet", "build"])
    configuration: str = "Release"
    targets: list[str] = Field(default_factory=lambda: ["test", "server"])
    project_prefix: str = "_"
    output_dir: str = "../.."
    keep_going: bool = False
    cleanup_on_failure: bool = True
    scrub_paths: list[Path] = Field(default_factory=list)


class RunConfig(BaseModel):
    """[run] section — how compiled artifacts are launched."""

    model_config = {"frozen": True}

    launcher: list[str] = Field(default_factory=lambda: ["dotnet"])
    test_target: str = "test"
    server_target: str = "server"
    artifact_suffix: str = ".dll"
    output_dir: Path | None = None


class PluginsConfig(BaseModel):
    """[plugins] section."""

    model_config = {"frozen": True}

    enabled: bool = True
    disabled: list[str] = Field(default_factory=list)


class BuildgateConfig(BaseModel):
    """Root configuration composing all sections."""

    model_config = {"frozen": True}

    toolchain: ToolchainConfig = Field(default_factory=ToolchainConfig)
    source: SourceConfig = Field(default_factory=SourceConfig)
    build: BuildConfig = Field(default_factory=BuildConfig)
    run: RunConfig = Field(default_factory=RunConfig)
    plugins: PluginsConfig = Field(default_factory=PluginsConfig)
