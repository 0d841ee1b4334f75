"""PipelineService — the image build (provision → stage → build) and plan.

Each stage's artifact is handed explicitly to the next. The first
failing stage ends the image build; its error code and exit status
become the pipeline's.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import Any

from buildgate.domain.types import IMAGE_STAGES, Stage, StageRecord
from buildgate.services.base import BaseService
from buildgate.services.build import BuildService
from buildgate.services.provision import ProvisionService
from buildgate.services.result import ServiceError, ServiceResult
from buildgate.services.run import RunService
from buildgate.services.stage import StageService
from buildgate.services.telemetry import traced

logger = logging.getLogger(__name__)


class PipelineService(BaseService):
    """Sequences the image-build stages and describes the whole pipeline."""

    @traced
    def image(self) -> ServiceResult:
        """Run provision → stage → build, stopping at the first failure."""
        op = "image"
        stages: list[dict[str, Any]] = []
        warnings: list[str] = []

        provision, elapsed = _timed(ProvisionService(self._workspace).provision)
        stages.append(_summary(provision, elapsed))
        warnings.extend(provision.warnings)
        if not provision.ok:
            return _abort(op, provision, stages, warnings)
        tool = ProvisionService.tool_from(provision)

        staged, elapsed = _timed(StageService(self._workspace).stage)
        stages.append(_summary(staged, elapsed))
        warnings.extend(staged.warnings)
        if not staged.ok:
            return _abort(op, staged, stages, warnings)
        tree = StageService.tree_from(staged)

        built, elapsed = _timed(lambda: BuildService(self._workspace).build(tree, tool))
        stages.append(_summary(built, elapsed))
        warnings.extend(built.warnings)
        if not built.ok:
            return _abort(op, built, stages, warnings)

        targets = BuildService.targets_from(built)
        return ServiceResult(
            ok=True,
            op=op,
            data={
                "stages": stages,
                "tool": provision.data,
                "targets": [t.model_dump(mode="json") for t in targets],
            },
            warnings=warnings,
        )

    def plan(self) -> ServiceResult:
        """List every step in execution order with its command. Runs nothing."""
        ws = self._workspace
        settings = ws.settings
        builder = BuildService(ws)
        runner = RunService(ws)
        tool_path = ws.bin_dir / settings.toolchain.name

        steps: list[dict[str, Any]] = [
            {
                "stage": str(Stage.PROVISION),
                "detail": f"{settings.toolchain.download_url} -> {tool_path}",
            },
            {"stage": str(Stage.STAGE), "detail": f"{ws.source_path} -> {ws.staged_root}"},
            {"stage": str(Stage.GENERATE), "detail": " ".join(builder.generator_command())},
        ]
        for target in builder.targets():
            steps.append(
                {"stage": str(Stage.COMPILE), "detail": " ".join(builder.compile_command(target))}
            )
        steps.append({"stage": str(Stage.CLEANUP), "detail": f"rm -rf {ws.staged_root}"})

        test_artifact, server_artifact = runner.artifact_paths()
        steps.append(
            {
                "stage": str(Stage.RUN_TEST),
                "detail": " ".join(runner.command_for(test_artifact)),
            }
        )
        steps.append(
            {
                "stage": str(Stage.RUN_SERVER),
                "detail": " ".join(runner.command_for(server_artifact)) + "  (if tests pass)",
            }
        )

        for index, step in enumerate(steps, start=1):
            step["id"] = index
            step["phase"] = "image" if step["stage"] in IMAGE_STAGES else "run"
        return ServiceResult(ok=True, op="plan", data={"count": len(steps), "items": steps})


def _timed(call: Callable[[], ServiceResult]) -> tuple[ServiceResult, float]:
    start = time.perf_counter()
    result = call()
    return result, (time.perf_counter() - start) * 1000


def _summary(result: ServiceResult, elapsed_ms: float) -> dict[str, Any]:
    record = StageRecord(
        stage=result.op,
        ok=result.ok,
        exit_code=result.exit_code,
        duration_ms=round(elapsed_ms, 2),
    )
    return record.model_dump(mode="json")


def _abort(
    op: str,
    failed: ServiceResult,
    stages: list[dict[str, Any]],
    warnings: list[str],
) -> ServiceResult:
    """Turn a stage failure into the pipeline's failure."""
    error = failed.error or ServiceError(code="STAGE_FAILED", message=f"{failed.op} failed")
    logger.debug("Image build stopped at %s: %s", failed.op, error.code)
    return ServiceResult(
        ok=False,
        op=op,
        data={**failed.data, "stages": stages, "failed_stage": failed.op},
        warnings=warnings,
        error=ServiceError(
            code=error.code,
            message=error.message,
            detail={**error.detail, "failed_stage": failed.op},
        ),
    )
