"""StageService — materialize the source tree and force it fresh.

The copy keeps the sources' historical timestamps, so every file and
directory is then touched with a single "now" timestamp. Generators and
incremental builders that skip "unchanged" inputs then rebuild everything.
"""

from __future__ import annotations

import logging
import time
from pathlib import Path

from buildgate.domain.types import SourceTree, Stage
from buildgate.infrastructure.filesystem import copy_tree, touch_tree
from buildgate.services.base import BaseService
from buildgate.services.result import ServiceResult
from buildgate.services.telemetry import trace_span, traced

logger = logging.getLogger(__name__)


class StageService(BaseService):
    """Copies the external project into the build working directory."""

    @traced
    def stage(self) -> ServiceResult:
        """Copy ``source.path`` to ``workdir/<name>`` and touch every entry.

        When the source already sits at the staged location (the recipe
        ADDed it there) it is refreshed in place and never deleted.
        """
        op = str(Stage.STAGE)
        source = self._workspace.source_path
        dest = self._workspace.staged_root
        data = {"source": str(source), "root": str(dest)}

        if not source.is_dir():
            return self._report(
                self._failure(
                    op,
                    "SOURCE_NOT_FOUND",
                    f"Source tree not found: {source}",
                    data=data,
                )
            )

        in_place = source.resolve() == dest.resolve()
        if not in_place and _overlaps(source.resolve(), dest.resolve()):
            return self._report(
                self._failure(
                    op,
                    "STAGE_FAILED",
                    f"Cannot stage {source} into {dest}: one contains the other",
                    data=data,
                )
            )

        try:
            if in_place:
                logger.debug("Source already at %s; refreshing in place", dest)
            else:
                with trace_span("copy"):
                    copy_tree(source, dest)
            touched_at = time.time()
            with trace_span("touch") as span:
                file_count = touch_tree(dest, touched_at)
                if span:
                    span.annotate("files", file_count)
        except OSError as exc:
            return self._report(
                self._failure(op, "STAGE_FAILED", f"Could not stage {source}: {exc}", data=data)
            )

        tree = SourceTree(root=dest, file_count=file_count, touched_at=touched_at)
        logger.debug("Staged %d files into %s", tree.file_count, tree.root)
        return self._report(
            ServiceResult(
                ok=True,
                op=op,
                data={
                    **data,
                    "file_count": tree.file_count,
                    "touched_at": tree.touched_at,
                    "in_place": in_place,
                },
            )
        )

    @staticmethod
    def tree_from(result: ServiceResult) -> SourceTree:
        """Rebuild the SourceTree artifact from a successful stage result."""
        return SourceTree(
            root=Path(result.data["root"]),
            file_count=result.data["file_count"],
            touched_at=result.data["touched_at"],
        )


def _overlaps(a: Path, b: Path) -> bool:
    return a in b.parents or b in a.parents
