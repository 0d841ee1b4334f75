"""BaseService — abstract foundation for all pipeline stage services.

Every service receives a :class:`Workspace` at construction time. The
Workspace provides resolved paths, the process runner, the HTTP client
factory, and the plugin manager.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from buildgate.services.result import ServiceError, ServiceResult

if TYPE_CHECKING:
    from buildgate.infrastructure.workspace import Workspace

logger = logging.getLogger(__name__)


class BaseService:
    """Abstract base for all service-layer classes.

    Usage::

        class StageService(BaseService):
            def stage(self) -> ServiceResult:
                source = self._workspace.source_path
                ...
    """

    def __init__(self, workspace: Workspace) -> None:
        self._workspace = workspace

    def _dispatch_event(self, hook_name: str, warnings: list[str], **payload: Any) -> None:
        """Dispatch a pipeline event to plugins. No-op if plugins are disabled.

        INVARIANT: Plugin failures are warnings, never errors.
        """
        plugins = self._workspace.plugins
        if plugins is None:
            return
        try:
            plugins.dispatch(hook_name, **payload)
        except Exception:
            logger.debug("Event dispatch failed for %s", hook_name, exc_info=True)
            warnings.append(f"Event dispatch failed for {hook_name}")

    def _report(self, result: ServiceResult) -> ServiceResult:
        """Announce a finished stage to plugins and return *result*.

        Dispatch warnings are appended to the returned copy.
        """
        warnings = list(result.warnings)
        self._dispatch_event(
            "post_stage", warnings, stage=result.op, ok=result.ok, data=result.data
        )
        if len(warnings) == len(result.warnings):
            return result
        return result.model_copy(update={"warnings": warnings})

    @staticmethod
    def _failure(
        op: str,
        code: str,
        message: str,
        *,
        data: dict[str, Any] | None = None,
        warnings: list[str] | None = None,
        **detail: Any,
    ) -> ServiceResult:
        """Build a failed ServiceResult; *detail* lands in ``error.detail``."""
        logger.debug("%s failed [%s]: %s", op, code, message)
        return ServiceResult(
            ok=False,
            op=op,
            data=data or {},
            warnings=warnings or [],
            error=ServiceError(code=code, message=message, detail=detail),
        )
