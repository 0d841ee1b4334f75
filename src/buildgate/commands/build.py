"""Command: generate, compile targets, reclaim the staged tree."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from buildgate.commands._base import BuildgateCommand

if TYPE_CHECKING:
    from buildgate.commands._context import AppContext


@click.command(
    cls=BuildgateCommand,
    examples="""\
  buildgate build
  buildgate -v build
  BUILDGATE_BUILD__KEEP_GOING=true buildgate build""",
)
@click.pass_obj
def build(app: AppContext) -> None:
    """Run the generator once, then compile each target in order."""
    from buildgate.services.build import BuildService

    app.emit(BuildService(app.workspace).build())
