"""Command: install the pinned build-system generator."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from buildgate.commands._base import BuildgateCommand

if TYPE_CHECKING:
    from buildgate.commands._context import AppContext


@click.command(
    cls=BuildgateCommand,
    examples="""\
  buildgate provision
  BUILDGATE_TOOLCHAIN__BIN_DIR=./bin buildgate provision
  buildgate --json provision""",
)
@click.pass_obj
def provision(app: AppContext) -> None:
    """Download and install the pinned toolchain binary."""
    from buildgate.services.provision import ProvisionService

    app.emit(ProvisionService(app.workspace).provision())
