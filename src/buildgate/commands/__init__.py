"""Subcommand modules for buildgate.

Provides register_commands() which uses deferred imports to keep
``buildgate --help`` fast.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import click


def register_commands(cli: click.Group) -> None:
    """Register every pipeline command on the root CLI group.

    Stage commands run one stage; ``image`` and ``run`` are the two
    entry points a container recipe uses.
    """
    from buildgate.commands.build import build
    from buildgate.commands.image import image
    from buildgate.commands.plan import plan
    from buildgate.commands.provision import provision
    from buildgate.commands.run import run_cmd
    from buildgate.commands.stage import stage

    cli.add_command(provision)
    cli.add_command(stage)
    cli.add_command(build)
    cli.add_command(image)
    cli.add_command(run_cmd)
    cli.add_command(plan)
