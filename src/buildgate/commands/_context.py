"""AppContext: the object every subcommand receives via ``@click.pass_obj``.

It owns logging setup, the lazily built Workspace, and the rule that
turns a ServiceResult into output plus a process exit status.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from buildgate.config.logging import configure_logging
from buildgate.output.formatters import OutputSettings, format_result
from buildgate.services.telemetry import enable_telemetry

if TYPE_CHECKING:
    from buildgate.config.settings import BuildgateSettings
    from buildgate.infrastructure.workspace import Workspace
    from buildgate.services.result import ServiceResult


class AppContext:
    """Per-invocation state shared by the root group and its commands.

    ``--help``, ``--version`` and ``--examples`` exit before any command
    body runs, so they never touch the workspace or load plugins.
    """

    def __init__(self, settings: BuildgateSettings) -> None:
        self.settings = settings
        self._workspace: Workspace | None = None

        configure_logging(verbose=settings.verbose, log_json=settings.log_json)
        if settings.verbose:
            enable_telemetry()

    @property
    def workspace(self) -> Workspace:
        if self._workspace is None:
            from buildgate.infrastructure.workspace import Workspace

            self._workspace = Workspace(self.settings)
        return self._workspace

    @property
    def output_settings(self) -> OutputSettings:
        return OutputSettings(
            json_output=self.settings.json_output,
            quiet=self.settings.quiet,
            verbose=self.settings.verbose,
        )

    def emit(self, result: ServiceResult) -> None:
        """Print *result* and, on failure, exit with its status.

        Successful output goes to stdout with warnings on stderr (JSON
        mode carries them in the payload instead). A failure is printed
        to stderr and the command exits with ``result.exit_code``: the
        child's own status when a child process failed, else 1.
        """
        out = self.output_settings
        text = format_result(result, settings=out)
        if not result.ok:
            click.echo(text, err=True)
            raise SystemExit(result.exit_code)

        click.echo(text)
        if out.json_output:
            return
        for warning in result.warnings:
            click.echo(f"WARNING: {warning}", err=True)
