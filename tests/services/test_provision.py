"""Tests for ProvisionService — download, extract, install."""

from __future__ import annotations

import stat
import tempfile
from collections.abc import Callable
from pathlib import Path

import httpx

from buildgate.infrastructure.workspace import Workspace
from buildgate.services.provision import ProvisionService


class TestProvisionSuccess:
    def test_installs_executable(
        self, workspace: Workspace, fake_server, tmp_path: Path, tool_bytes: bytes
    ) -> None:
        result = ProvisionService(workspace).provision()
        assert result.ok, result.error
        installed = tmp_path / "bin" / "premake5"
        assert result.data["path"] == str(installed)
        assert result.data["version"] == "5.0.0-alpha14"
        assert installed.read_bytes() == tool_bytes
        assert stat.S_IMODE(installed.stat().st_mode) == 0o755

    def test_requests_pinned_version(self, workspace: Workspace, fake_server) -> None:
        ProvisionService(workspace).provision()
        assert fake_server.requests == [
            "https://downloads.example.test/v5.0.0-alpha14/premake-5.0.0-alpha14-linux.tar.gz"
        ]

    def test_rerun_is_idempotent(self, workspace: Workspace, tmp_path: Path) -> None:
        service = ProvisionService(workspace)
        first = service.provision()
        before = (tmp_path / "bin" / "premake5").read_bytes()
        second = service.provision()
        assert first.ok and second.ok
        assert (tmp_path / "bin" / "premake5").read_bytes() == before
        assert sorted(p.name for p in (tmp_path / "bin").iterdir()) == ["premake5"]

    def test_tool_from_result(self, workspace: Workspace, tmp_path: Path) -> None:
        tool = ProvisionService.tool_from(ProvisionService(workspace).provision())
        assert tool.name == "premake5"
        assert tool.path == tmp_path / "bin" / "premake5"


class TestProvisionFailures:
    def test_http_error(self, workspace: Workspace, fake_server, tmp_path: Path) -> None:
        fake_server.status_code = 404
        result = ProvisionService(workspace).provision()
        assert not result.ok
        assert result.error.code == "DOWNLOAD_FAILED"
        assert result.error.detail["status_code"] == 404
        assert not (tmp_path / "bin" / "premake5").exists()

    def test_network_error(self, workspace: Workspace, fake_server, tmp_path: Path) -> None:
        fake_server.error = httpx.ConnectError("name resolution failed")
        result = ProvisionService(workspace).provision()
        assert result.error.code == "DOWNLOAD_FAILED"
        assert result.exit_code == 1
        assert not (tmp_path / "bin").exists()

    def test_binary_missing_from_archive(
        self,
        workspace: Workspace,
        fake_server,
        archive_factory: Callable[[dict[str, bytes]], bytes],
    ) -> None:
        fake_server.body = archive_factory({"README.txt": b"docs only"})
        result = ProvisionService(workspace).provision()
        assert result.error.code == "BINARY_NOT_FOUND"
        assert result.error.detail["matches"] == 0

    def test_corrupt_archive(self, workspace: Workspace, fake_server) -> None:
        fake_server.body = b"this is not a tarball"
        result = ProvisionService(workspace).provision()
        assert result.error.code == "EXTRACT_FAILED"

    def test_unwritable_bin_dir(self, workspace: Workspace, tmp_path: Path) -> None:
        (tmp_path / "bin").write_text("a file where a directory should be")
        result = ProvisionService(workspace).provision()
        assert result.error.code == "INSTALL_FAILED"

    def test_temporary_archive_removed(
        self, workspace: Workspace, fake_server, tmp_path: Path, monkeypatch
    ) -> None:
        scratch = tmp_path / "scratch"
        scratch.mkdir()
        monkeypatch.setenv("TMPDIR", str(scratch))
        monkeypatch.setattr(tempfile, "tempdir", None)
        fake_server.status_code = 500
        assert not ProvisionService(workspace).provision().ok
        fake_server.status_code = 200
        assert ProvisionService(workspace).provision().ok
        assert list(scratch.iterdir()) == []
