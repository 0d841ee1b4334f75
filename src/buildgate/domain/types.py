"""Pipeline stages and the artifacts they hand to each other.

Each stage consumes the previous stage's artifact and produces its own:
ToolBinary -> SourceTree -> BuildTarget list -> RunResult.
Artifacts are frozen; nothing mutates them after a stage reports them.
"""

from __future__ import annotations

from enum import StrEnum
from pathlib import Path

from pydantic import BaseModel


class Stage(StrEnum):
    """Pipeline stages in execution order."""

    PROVISION = "provision"
    STAGE = "stage"
    GENERATE = "generate"
    COMPILE = "compile"
    CLEANUP = "cleanup"
    RUN_TEST = "run_test"
    RUN_SERVER = "run_server"


# Stages executed while building the image; the rest run at container start.
IMAGE_STAGES: tuple[Stage, ...] = (
    Stage.PROVISION,
    Stage.STAGE,
    Stage.GENERATE,
    Stage.COMPILE,
    Stage.CLEANUP,
)
RUNTIME_STAGES: tuple[Stage, ...] = (Stage.RUN_TEST, Stage.RUN_SERVER)


class ToolBinary(BaseModel):
    """An installed build tool on the executable search path."""

    model_config = {"frozen": True}

    name: str
    version: str
    path: Path


class SourceTree(BaseModel):
    """A staged, freshly-touched copy of the external project's sources."""

    model_config = {"frozen": True}

    root: Path
    file_count: int
    touched_at: float


class BuildTarget(BaseModel):
    """A compiled unit, e.g. the ``test`` harness or the ``server``."""

    model_config = {"frozen": True}

    name: str
    project_dir: str
    output_dir: Path
    configuration: str = "Release"

    def artifact(self, suffix: str) -> Path:
        """Path of the compiled artifact inside the shared output directory."""
        return self.output_dir / f"{self.name}{suffix}"


class RunResult(BaseModel):
    """Exit status of one launched process."""

    model_config = {"frozen": True}

    name: str
    exit_code: int

    @property
    def ok(self) -> bool:
        return self.exit_code == 0


class StageRecord(BaseModel):
    """One line of the image-build report."""

    model_config = {"frozen": True}

    stage: str
    ok: bool
    exit_code: int
    duration_ms: float
