"""RunService — the container entry: test harness, then (maybe) the server.

State machine (see :mod:`buildgate.domain.lifecycle`)::

    idle → test_running → test_passed → server_running → server_exited
                        ↘ test_failed → aborted

The server is started only from ``test_passed``. The sequencer's exit
status is the test harness's when it failed, otherwise the server's.
No retries and no timeout.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from buildgate.domain.lifecycle import RunGate, SequencerState, outcome_for_exit
from buildgate.domain.types import BuildTarget, RunResult, Stage
from buildgate.infrastructure.process import LAUNCH_FAILED_EXIT, ProcessLaunchError
from buildgate.services.base import BaseService
from buildgate.services.result import ServiceResult
from buildgate.services.telemetry import trace_span, traced

logger = logging.getLogger(__name__)

OP = "run"


class RunService(BaseService):
    """Runs the compiled test harness and gates the server on its success."""

    def artifact_paths(self, targets: list[BuildTarget] | None = None) -> tuple[Path, Path]:
        """Return ``(test_artifact, server_artifact)``.

        With *targets* (fresh from a build) their output directories are
        used; otherwise the configured run output directory.
        """
        cfg = self._workspace.settings.run
        by_name = {t.name: t for t in targets or []}
        default_dir = self._workspace.run_output_dir

        def locate(name: str) -> Path:
            target = by_name.get(name)
            if target is not None:
                return target.artifact(cfg.artifact_suffix)
            return default_dir / f"{name}{cfg.artifact_suffix}"

        return locate(cfg.test_target), locate(cfg.server_target)

    def command_for(self, artifact: Path) -> list[str]:
        """``<launcher…> <artifact>``, e.g. ``dotnet /app/test.dll``."""
        return [*self._workspace.settings.run.launcher, str(artifact)]

    @traced
    def run(self, targets: list[BuildTarget] | None = None) -> ServiceResult:
        """Run the test harness; run the server only if it exited 0."""
        cfg = self._workspace.settings.run
        gate = RunGate()
        warnings: list[str] = []
        test_artifact, server_artifact = self.artifact_paths(targets)
        data: dict[str, Any] = {
            "test": str(test_artifact),
            "server": str(server_artifact),
            "server_started": False,
        }

        missing = [str(p) for p in (test_artifact, server_artifact) if not p.is_file()]
        if missing:
            gate.advance(SequencerState.ABORTED)
            return self._failure(
                OP,
                "ARTIFACT_MISSING",
                f"Build artifacts not found: {', '.join(missing)}",
                data=self._with_state(data, gate),
                missing=missing,
            )

        # Test harness
        gate.advance(SequencerState.TEST_RUNNING)
        with trace_span("run:test"):
            test = self._launch(cfg.test_target, test_artifact)
        gate.advance(outcome_for_exit(test.exit_code))
        data["test_exit_code"] = test.exit_code
        self._dispatch_event(
            "post_stage",
            warnings,
            stage=str(Stage.RUN_TEST),
            ok=test.ok,
            data={"exit_code": test.exit_code},
        )

        if not gate.server_allowed:
            gate.advance(SequencerState.ABORTED)
            logger.debug("Test harness failed (%d); server not started", test.exit_code)
            return self._failure(
                OP,
                "TEST_FAILED",
                f"Test harness exited with status {test.exit_code}; server not started",
                data=self._with_state(data, gate),
                warnings=warnings,
                exit_code=test.exit_code,
            )

        # Server
        server_cmd = self.command_for(server_artifact)
        self._dispatch_event("pre_server_start", warnings, command=server_cmd)
        gate.advance(SequencerState.SERVER_RUNNING)
        data["server_started"] = True
        with trace_span("run:server"):
            server = self._launch(cfg.server_target, server_artifact)
        gate.advance(SequencerState.SERVER_EXITED)
        data["server_exit_code"] = server.exit_code
        self._dispatch_event(
            "post_stage",
            warnings,
            stage=str(Stage.RUN_SERVER),
            ok=server.ok,
            data={"exit_code": server.exit_code},
        )

        if not server.ok:
            return self._failure(
                OP,
                "SERVER_FAILED",
                f"Server exited with status {server.exit_code}",
                data=self._with_state(data, gate),
                warnings=warnings,
                exit_code=server.exit_code,
            )
        return ServiceResult(ok=True, op=OP, data=self._with_state(data, gate), warnings=warnings)

    def _launch(self, name: str, artifact: Path) -> RunResult:
        argv = self.command_for(artifact)
        try:
            code = self._workspace.runner.run(argv, cwd=artifact.parent, forward_signals=True)
        except ProcessLaunchError as exc:
            logger.warning("%s", exc)
            code = LAUNCH_FAILED_EXIT
        return RunResult(name=name, exit_code=code)

    @staticmethod
    def _with_state(data: dict[str, Any], gate: RunGate) -> dict[str, Any]:
        return {**data, "state": str(gate.state), "history": [str(s) for s in gate.history]}
