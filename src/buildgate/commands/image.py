"""Command: the full image build (provision → stage → build)."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from buildgate.commands._base import BuildgateCommand

if TYPE_CHECKING:
    from buildgate.commands._context import AppContext


@click.command(
    cls=BuildgateCommand,
    examples="""\
  buildgate image
  buildgate --log-json -v image
  buildgate -c docker/buildgate.toml image""",
)
@click.pass_obj
def image(app: AppContext) -> None:
    """Provision the toolchain, stage sources, and build every target."""
    from buildgate.services.pipeline import PipelineService

    app.emit(PipelineService(app.workspace).image())
