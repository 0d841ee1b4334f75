"""The ``buildgate`` entry point: global output flags plus the pipeline commands."""

from __future__ import annotations

import click

from buildgate import __version__
from buildgate.commands import register_commands
from buildgate.commands._base import BuildgateGroup
from buildgate.commands._context import AppContext
from buildgate.config.settings import BuildgateSettings


@click.group(
    cls=BuildgateGroup,
    invoke_without_command=True,
    examples="""\
  buildgate plan
  buildgate image                # in the image recipe
  buildgate run                  # as the container command
  buildgate --json -c ci/buildgate.toml image""",
)
@click.version_option(version=__version__, prog_name="buildgate")
@click.option("--json", "json_output", is_flag=True, help="Print results as JSON.")
@click.option("-q", "--quiet", is_flag=True, help="Print one OK/ERROR line per result.")
@click.option("-v", "--verbose", is_flag=True, help="Debug logs, error detail and stage timings.")
@click.option("--log-json", is_flag=True, help="Write logs to stderr as JSON lines.")
@click.option(
    "-c", "--config", "config_path", default=None, help="Use this file instead of searching."
)
@click.pass_context
def cli(
    ctx: click.Context,
    json_output: bool,
    quiet: bool,
    verbose: bool,
    log_json: bool,
    config_path: str | None,
) -> None:
    """buildgate: build the image, then start the server only if its tests pass."""
    settings = BuildgateSettings.from_cli(
        config_path=config_path,
        json_output=json_output,
        quiet=quiet,
        verbose=verbose,
        log_json=log_json,
    )
    ctx.obj = AppContext(settings)
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


register_commands(cli)
