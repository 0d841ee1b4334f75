"""Workspace — the single dependency injected into every service.

Owns the resolved settings, the process runner, the HTTP client
factory, and the plugin manager. All filesystem locations the pipeline
touches are resolved here once, as absolute paths, so stages never rely
on the process working directory.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from pathlib import Path
from typing import TYPE_CHECKING

from buildgate.infrastructure.download import create_client
from buildgate.infrastructure.process import ProcessRunner, SubprocessRunner

if TYPE_CHECKING:
    import httpx

    from buildgate.config.settings import BuildgateSettings
    from buildgate.plugins.manager import PluginManager

logger = logging.getLogger(__name__)


class Workspace:
    """Resolved paths plus the collaborators stages run against.

    Tests swap in a recording runner or an ``httpx.MockTransport``
    client factory through the constructor.
    """

    def __init__(
        self,
        settings: BuildgateSettings,
        *,
        runner: ProcessRunner | None = None,
        client_factory: Callable[[], httpx.Client] | None = None,
    ) -> None:
        self.settings = settings
        self.runner: ProcessRunner = runner or SubprocessRunner()
        self.client_factory = client_factory or create_client
        self._plugins: PluginManager | None = None

    # ------------------------------------------------------------------
    # Paths
    # ------------------------------------------------------------------

    @property
    def bin_dir(self) -> Path:
        """System-wide executable directory the toolchain is installed into."""
        return self.settings.resolve(self.settings.toolchain.bin_dir)

    @property
    def source_path(self) -> Path:
        """The external project's source tree, as introduced to the build."""
        return self.settings.resolve(self.settings.source.path)

    @property
    def workdir(self) -> Path:
        """Build working directory that receives the staged copy."""
        return self.settings.resolve(self.settings.source.workdir)

    @property
    def staged_root(self) -> Path:
        """Where the staged source tree lives."""
        return self.workdir / self.settings.source.staged_name

    def output_dir_for(self, project_dir: str) -> Path:
        """Shared output directory, resolved from a target's project directory."""
        rel = Path(self.settings.build.output_dir)
        if rel.is_absolute():
            return rel
        return (self.staged_root / project_dir / rel).resolve()

    @property
    def run_output_dir(self) -> Path:
        """Directory the run sequencer looks for compiled artifacts in."""
        configured = self.settings.run.output_dir
        if configured is not None:
            return self.settings.resolve(configured)
        test_project = f"{self.settings.build.project_prefix}{self.settings.run.test_target}"
        return self.output_dir_for(test_project)

    # ------------------------------------------------------------------
    # Plugins
    # ------------------------------------------------------------------

    @property
    def plugins(self) -> PluginManager | None:
        """Lazily loaded plugin manager, or None when plugins are disabled."""
        if not self.settings.plugins.enabled:
            return None
        if self._plugins is None:
            from buildgate.plugins.manager import PluginManager

            self._plugins = PluginManager()
            names = self._plugins.discover_and_load(disabled=self.settings.plugins.disabled)
            logger.debug("Loaded plugins: %s", names)
        return self._plugins

    def use_plugins(self, manager: PluginManager) -> None:
        """Replace the plugin manager (used to register plugins directly)."""
        self._plugins = manager
