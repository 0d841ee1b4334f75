"""Command: container entry. Test harness, then the server if it passed."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from buildgate.commands._base import BuildgateCommand

if TYPE_CHECKING:
    from buildgate.commands._context import AppContext


@click.command(
    "run",
    cls=BuildgateCommand,
    examples="""\
  buildgate run
  buildgate --quiet run""",
)
@click.pass_obj
def run_cmd(app: AppContext) -> None:
    """Run the test harness; start the server only if every test passed.

    Exits with the test harness's status when it fails, otherwise with
    the server's.
    """
    from buildgate.services.run import RunService

    app.emit(RunService(app.workspace).run())
