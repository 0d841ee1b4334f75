"""BuildService — generate once, compile each target, reclaim the sources.

Pipeline: GENERATE → COMPILE(target)… → CLEANUP

The generator must succeed before any compile is attempted. Targets are
compiled one at a time in configured order into the shared output
directory. On success the staged tree is deleted; on failure it is
deleted only when ``build.cleanup_on_failure`` is set.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from buildgate.domain.types import BuildTarget, SourceTree, Stage, ToolBinary
from buildgate.infrastructure.filesystem import remove_path
from buildgate.infrastructure.process import LAUNCH_FAILED_EXIT, ProcessLaunchError
from buildgate.services.base import BaseService
from buildgate.services.result import ServiceResult
from buildgate.services.telemetry import trace_span, traced

logger = logging.getLogger(__name__)

OP = "build"


class BuildService(BaseService):
    """Runs the external build system against the staged source tree."""

    # ------------------------------------------------------------------
    # Command construction
    # ------------------------------------------------------------------

    def generator_command(self, tool: ToolBinary | None = None) -> list[str]:
        """``<generator> <action>``, e.g. ``premake5 solution``."""
        settings = self._workspace.settings
        program = str(tool.path) if tool else settings.toolchain.name
        return [program, settings.build.generator_action]

    def targets(self) -> list[BuildTarget]:
        """The configured build targets, in compile order."""
        cfg = self._workspace.settings.build
        targets: list[BuildTarget] = []
        for name in cfg.targets:
            project_dir = f"{cfg.project_prefix}{name}"
            targets.append(
                BuildTarget(
                    name=name,
                    project_dir=project_dir,
                    output_dir=self._workspace.output_dir_for(project_dir),
                    configuration=cfg.configuration,
                )
            )
        return targets

    def compile_command(self, target: BuildTarget) -> list[str]:
        """``<compiler…> -c <configuration> -o <output> <project>``."""
        cfg = self._workspace.settings.build
        return [
            *cfg.compiler,
            "-c",
            target.configuration,
            "-o",
            str(target.output_dir),
            target.project_dir,
        ]

    # ------------------------------------------------------------------
    # Stage
    # ------------------------------------------------------------------

    @traced
    def build(
        self,
        tree: SourceTree | None = None,
        tool: ToolBinary | None = None,
    ) -> ServiceResult:
        """Generate, compile every target, then reclaim the staged tree."""
        cfg = self._workspace.settings.build
        root = tree.root if tree else self._workspace.staged_root
        warnings: list[str] = []
        data: dict[str, Any] = {"root": str(root), "configuration": cfg.configuration}

        if not root.is_dir():
            return self._failure(
                OP,
                "SOURCE_NOT_STAGED",
                f"No staged source tree at {root}",
                data=data,
            )

        # GENERATE
        gen_cmd = self.generator_command(tool)
        with trace_span("generate"):
            gen_exit = self._invoke(gen_cmd, root)
        self._dispatch_event(
            "post_stage",
            warnings,
            stage=str(Stage.GENERATE),
            ok=gen_exit == 0,
            data={"command": gen_cmd, "exit_code": gen_exit},
        )
        if gen_exit != 0:
            data["cleaned"] = self._cleanup_after_failure(root, warnings)
            return self._failure(
                OP,
                "GENERATE_FAILED",
                f"{' '.join(gen_cmd)} exited with status {gen_exit}",
                data=data,
                warnings=warnings,
                exit_code=gen_exit,
                stage=str(Stage.GENERATE),
            )

        # COMPILE
        outcomes = self._compile_all(root, warnings)
        data["targets"] = outcomes
        failed = [o for o in outcomes if o["status"] == "failed"]
        if failed:
            first = failed[0]
            data["cleaned"] = self._cleanup_after_failure(root, warnings)
            return self._failure(
                OP,
                "COMPILE_FAILED",
                f"Compiling {first['name']!r} exited with status {first['exit_code']}",
                data=data,
                warnings=warnings,
                exit_code=first["exit_code"],
                stage=str(Stage.COMPILE),
                target=first["name"],
            )

        # CLEANUP
        try:
            with trace_span("cleanup"):
                removed = self._reclaim(root)
        except OSError as exc:
            self._dispatch_event(
                "post_stage", warnings, stage=str(Stage.CLEANUP), ok=False, data={}
            )
            return self._failure(
                OP,
                "CLEANUP_FAILED",
                f"Could not remove {root}: {exc}",
                data=data,
                warnings=warnings,
                stage=str(Stage.CLEANUP),
            )
        self._dispatch_event(
            "post_stage", warnings, stage=str(Stage.CLEANUP), ok=True, data={"removed": removed}
        )

        data["cleaned"] = True
        data["removed"] = removed
        return ServiceResult(ok=True, op=OP, data=data, warnings=warnings)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _invoke(self, argv: list[str], cwd: Path) -> int:
        """Run *argv* and return its status, mapping launch errors to 127."""
        try:
            return self._workspace.runner.run(argv, cwd=cwd)
        except ProcessLaunchError as exc:
            logger.warning("%s", exc)
            return LAUNCH_FAILED_EXIT

    def _compile_all(self, root: Path, warnings: list[str]) -> list[dict[str, Any]]:
        """Compile targets in order; stop at the first failure unless keep_going."""
        keep_going = self._workspace.settings.build.keep_going
        outcomes: list[dict[str, Any]] = []
        halted = False
        for target in self.targets():
            entry: dict[str, Any] = {
                "name": target.name,
                "project_dir": target.project_dir,
                "output_dir": str(target.output_dir),
                "configuration": target.configuration,
            }
            if halted:
                outcomes.append({**entry, "status": "skipped", "exit_code": None})
                continue

            cmd = self.compile_command(target)
            with trace_span(f"compile:{target.name}"):
                exit_code = self._invoke(cmd, root)
            ok = exit_code == 0
            status = "built" if ok else "failed"
            outcomes.append({**entry, "status": status, "exit_code": exit_code})
            self._dispatch_event(
                "post_stage",
                warnings,
                stage=str(Stage.COMPILE),
                ok=ok,
                data={"target": target.name, "command": cmd, "exit_code": exit_code},
            )
            if not ok and not keep_going:
                halted = True
        return outcomes

    def _reclaim(self, root: Path) -> list[str]:
        """Delete the staged tree plus any configured scrub paths."""
        settings = self._workspace.settings
        removed: list[str] = []
        for path in (root, *(settings.resolve(p) for p in settings.build.scrub_paths)):
            if remove_path(path):
                removed.append(str(path))
        return removed

    def _cleanup_after_failure(self, root: Path, warnings: list[str]) -> bool:
        """Remove the staged tree after a failure if configured to. Never raises."""
        if not self._workspace.settings.build.cleanup_on_failure:
            return False
        try:
            remove_path(root)
        except OSError as exc:
            logger.warning("Could not remove %s after failure: %s", root, exc)
            warnings.append(f"Staged tree left behind at {root}")
            return False
        return True

    @staticmethod
    def targets_from(result: ServiceResult) -> list[BuildTarget]:
        """Rebuild the successfully built targets from a build result."""
        return [
            BuildTarget(
                name=o["name"],
                project_dir=o["project_dir"],
                output_dir=Path(o["output_dir"]),
                configuration=o["configuration"],
            )
            for o in result.data.get("targets", [])
            if o["status"] == "built"
        ]
