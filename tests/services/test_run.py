"""Tests for RunService — the test-gated server launch."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

from buildgate.config.settings import BuildgateSettings
from buildgate.domain.types import BuildTarget
from buildgate.infrastructure.workspace import Workspace
from buildgate.services.run import RunService

Artifacts = Callable[..., None]


class TestArtifacts:
    def test_default_paths(self, workspace: Workspace, output_dir: Path) -> None:
        assert RunService(workspace).artifact_paths() == (
            output_dir / "test.dll",
            output_dir / "server.dll",
        )

    def test_paths_from_built_targets(self, workspace: Workspace, tmp_path: Path) -> None:
        targets = [
            BuildTarget(name="test", project_dir="_test", output_dir=tmp_path / "a"),
            BuildTarget(name="server", project_dir="_server", output_dir=tmp_path / "b"),
        ]
        assert RunService(workspace).artifact_paths(targets) == (
            tmp_path / "a" / "test.dll",
            tmp_path / "b" / "server.dll",
        )

    def test_command_uses_launcher(self, workspace: Workspace, output_dir: Path) -> None:
        cmd = RunService(workspace).command_for(output_dir / "server.dll")
        assert cmd == ["dotnet", str(output_dir / "server.dll")]


class TestRunGate:
    def test_passing_tests_start_server_once(
        self, workspace: Workspace, runner, write_artifacts: Artifacts
    ) -> None:
        write_artifacts("test", "server")
        result = RunService(workspace).run()
        assert result.ok, result.error
        assert runner.labels == ["run:test", "run:server"]
        assert result.data["server_started"] is True
        assert result.data["history"] == [
            "idle",
            "test_running",
            "test_passed",
            "server_running",
            "server_exited",
        ]

    def test_failing_tests_block_server(
        self, workspace: Workspace, runner, write_artifacts: Artifacts
    ) -> None:
        write_artifacts("test", "server")
        runner.exit_codes["run:test"] = 1
        result = RunService(workspace).run()
        assert not result.ok
        assert result.error.code == "TEST_FAILED"
        assert result.exit_code == 1
        assert runner.labels == ["run:test"]
        assert result.data["server_started"] is False
        assert result.data["state"] == "aborted"

    def test_test_exit_status_propagates(
        self, workspace: Workspace, runner, write_artifacts: Artifacts
    ) -> None:
        write_artifacts("test", "server")
        runner.exit_codes["run:test"] = 42
        assert RunService(workspace).run().exit_code == 42

    def test_server_exit_status_propagates(
        self, workspace: Workspace, runner, write_artifacts: Artifacts
    ) -> None:
        write_artifacts("test", "server")
        runner.exit_codes["run:server"] = 137
        result = RunService(workspace).run()
        assert result.error.code == "SERVER_FAILED"
        assert result.exit_code == 137
        assert result.data["test_exit_code"] == 0

    def test_missing_artifact_runs_nothing(
        self, workspace: Workspace, runner, write_artifacts: Artifacts
    ) -> None:
        write_artifacts("test")
        result = RunService(workspace).run()
        assert result.error.code == "ARTIFACT_MISSING"
        assert result.error.detail["missing"][0].endswith("server.dll")
        assert result.data["history"] == ["idle", "aborted"]
        assert runner.calls == []

    def test_children_run_in_artifact_dir_with_signal_forwarding(
        self, workspace: Workspace, runner, write_artifacts: Artifacts, output_dir: Path
    ) -> None:
        write_artifacts("test", "server")
        RunService(workspace).run()
        assert all(call.cwd == output_dir for call in runner.calls)
        assert all(call.forward_signals for call in runner.calls)

    def test_custom_launcher(
        self,
        make_settings: Callable[..., BuildgateSettings],
        make_workspace: Callable[[BuildgateSettings], Workspace],
        runner,
        write_artifacts: Artifacts,
    ) -> None:
        write_artifacts("test", "server")
        ws = make_workspace(make_settings(run={"launcher": ["mono", "--debug"]}))
        RunService(ws).run()
        assert [c.argv[:2] for c in runner.calls] == [["mono", "--debug"]] * 2
