"""Command: copy the source tree into the build directory."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from buildgate.commands._base import BuildgateCommand

if TYPE_CHECKING:
    from buildgate.commands._context import AppContext


@click.command(
    cls=BuildgateCommand,
    examples="""\
  buildgate stage
  BUILDGATE_SOURCE__PATH=../yojimbo.net buildgate stage""",
)
@click.pass_obj
def stage(app: AppContext) -> None:
    """Stage the source tree and refresh every timestamp."""
    from buildgate.services.stage import StageService

    app.emit(StageService(app.workspace).stage())
