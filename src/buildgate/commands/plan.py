"""Command: list the pipeline steps without running them."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from buildgate.commands._base import BuildgateCommand

if TYPE_CHECKING:
    from buildgate.commands._context import AppContext


@click.command(
    cls=BuildgateCommand,
    examples="""\
  buildgate plan
  buildgate --json plan""",
)
@click.pass_obj
def plan(app: AppContext) -> None:
    """Show every stage in execution order with the command it runs."""
    from buildgate.services.pipeline import PipelineService

    app.emit(PipelineService(app.workspace).plan())
