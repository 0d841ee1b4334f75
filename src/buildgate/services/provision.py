"""ProvisionService — install the pinned build-system generator.

Pipeline: DOWNLOAD → EXTRACT → INSTALL → CLEAN UP

The archive lives in a private temporary directory that is removed on
every exit path. There is no retry: any network, archive, or install
failure fails the stage.
"""

from __future__ import annotations

import logging
import tarfile
import tempfile
from pathlib import Path

import httpx

from buildgate.domain.types import Stage, ToolBinary
from buildgate.infrastructure.download import BinaryNotFoundError, download, extract_binary
from buildgate.infrastructure.filesystem import install_executable
from buildgate.services.base import BaseService
from buildgate.services.result import ServiceResult
from buildgate.services.telemetry import trace_span, traced

logger = logging.getLogger(__name__)


class ProvisionService(BaseService):
    """Downloads, extracts, and installs the toolchain binary."""

    @traced
    def provision(self) -> ServiceResult:
        """Install ``toolchain.name`` at the pinned version into ``bin_dir``.

        Re-running with the same pinned version overwrites the binary
        with an identical copy.
        """
        op = str(Stage.PROVISION)
        cfg = self._workspace.settings.toolchain
        url = cfg.download_url
        data = {"name": cfg.name, "version": cfg.version, "url": url}

        with tempfile.TemporaryDirectory(prefix="buildgate-") as tmp:
            tmp_dir = Path(tmp)
            archive = tmp_dir / (Path(httpx.URL(url).path).name or "toolchain.tar.gz")

            try:
                with trace_span("download"), self._workspace.client_factory() as client:
                    download(url, archive, client=client)
            except httpx.HTTPStatusError as exc:
                status = exc.response.status_code
                return self._report(
                    self._failure(
                        op,
                        "DOWNLOAD_FAILED",
                        f"Download of {url} returned HTTP {status}",
                        data=data,
                        status_code=status,
                    )
                )
            except (httpx.HTTPError, OSError) as exc:
                return self._report(
                    self._failure(
                        op, "DOWNLOAD_FAILED", f"Download of {url} failed: {exc}", data=data
                    )
                )

            try:
                with trace_span("extract"):
                    binary = extract_binary(archive, cfg.name, tmp_dir)
            except BinaryNotFoundError as exc:
                return self._report(
                    self._failure(op, "BINARY_NOT_FOUND", str(exc), data=data, matches=exc.matches)
                )
            except (tarfile.TarError, OSError, EOFError) as exc:
                return self._report(
                    self._failure(
                        op,
                        "EXTRACT_FAILED",
                        f"Could not extract {archive.name}: {exc}",
                        data=data,
                    )
                )

            bin_dir = self._workspace.bin_dir
            try:
                with trace_span("install"):
                    installed = install_executable(binary, bin_dir)
            except OSError as exc:
                return self._report(
                    self._failure(
                        op,
                        "INSTALL_FAILED",
                        f"Could not install {cfg.name} into {bin_dir}: {exc}",
                        data=data,
                    )
                )

        tool = ToolBinary(name=cfg.name, version=cfg.version, path=installed)
        logger.debug("Installed %s %s at %s", tool.name, tool.version, tool.path)
        return self._report(
            ServiceResult(ok=True, op=op, data={**data, "path": str(tool.path)})
        )

    @staticmethod
    def tool_from(result: ServiceResult) -> ToolBinary:
        """Rebuild the ToolBinary artifact from a successful provision result."""
        return ToolBinary(
            name=result.data["name"],
            version=result.data["version"],
            path=Path(result.data["path"]),
        )
