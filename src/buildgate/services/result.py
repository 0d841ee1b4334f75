"""What every pipeline service returns.

Services never raise for an expected failure (a download that 404s, a
compile that exits non-zero). They return ``ServiceResult(ok=False)``
with a ServiceError; when a child process decided the outcome, its
status travels in ``error.detail["exit_code"]`` so the CLI can exit
with it.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class ServiceError(BaseModel):
    """Machine-readable code (``COMPILE_FAILED``), message, and context."""

    model_config = {"frozen": True}

    code: str
    message: str
    detail: dict[str, Any] = Field(default_factory=dict)


class ServiceResult(BaseModel):
    """Outcome of one pipeline operation.

    Attributes:
        ok: False when the stage failed.
        op: Operation name: ``provision``, ``stage``, ``build``,
            ``image``, ``run`` or ``plan``.
        data: Operation payload. Failed results keep whatever was
            produced before the failure (target table, state history).
        warnings: Problems that did not fail the stage, such as a
            plugin hook that raised.
        error: Set exactly when ``ok`` is False.
        meta: Extras outside the payload; the telemetry span tree in
            verbose mode.
    """

    model_config = {"frozen": True}

    ok: bool
    op: str
    data: dict[str, Any] = Field(default_factory=dict)
    warnings: list[str] = Field(default_factory=list)
    error: ServiceError | None = None
    meta: dict[str, Any] | None = None

    @property
    def exit_code(self) -> int:
        """0 on success, the failing child's status, or 1 when there was none."""
        if self.ok:
            return 0
        status = self.error.detail.get("exit_code") if self.error else None
        if isinstance(status, int) and status != 0:
            return status
        return 1
