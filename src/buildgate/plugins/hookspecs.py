"""Pluggy hook specifications for buildgate pipeline events.

Hooks are called synchronously, in stage order, on the thread running
the pipeline.
"""

from __future__ import annotations

from typing import Any

import pluggy

hookspec = pluggy.HookspecMarker("buildgate")


class BuildgateHookSpec:
    """Hook specifications for the buildgate plugin system."""

    @hookspec
    def post_stage(self, stage: str, ok: bool, data: dict[str, Any]) -> None:
        """Called after every stage (provision, stage, generate, compile, ...)."""

    @hookspec
    def pre_server_start(self, command: list[str]) -> None:
        """Called once the test harness has passed, right before the server starts."""
