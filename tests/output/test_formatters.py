"""Tests for the format_result dispatcher and OutputSettings."""

import json

from buildgate.output.formatters import OutputSettings, format_result
from buildgate.services.result import ServiceError, ServiceResult


def _ok(op: str = "stage", **data: object) -> ServiceResult:
    return ServiceResult(ok=True, op=op, data=dict(data))


def _err(op: str = "run", msg: str = "fail", **data: object) -> ServiceResult:
    return ServiceResult(
        ok=False,
        op=op,
        data=dict(data),
        error=ServiceError(code="TEST_FAILED", message=msg, detail={"exit_code": 1}),
    )


class TestOutputSettings:
    def test_defaults(self) -> None:
        s = OutputSettings()
        assert s.json_output is False
        assert s.quiet is False
        assert s.verbose is False


class TestFormatResultJSON:
    def test_json_mode_returns_valid_json(self) -> None:
        output = format_result(_ok("provision", name="premake5"), settings=OutputSettings(True))
        data = json.loads(output)
        assert data["ok"] is True
        assert data["data"]["name"] == "premake5"

    def test_json_mode_error(self) -> None:
        output = format_result(_err(msg="Bad"), settings=OutputSettings(json_output=True))
        data = json.loads(output)
        assert data["ok"] is False
        assert data["error"]["code"] == "TEST_FAILED"
        assert data["error"]["detail"]["exit_code"] == 1

    def test_json_wins_over_quiet(self) -> None:
        output = format_result(_ok(), settings=OutputSettings(json_output=True, quiet=True))
        assert json.loads(output)["op"] == "stage"


class TestFormatResultQuiet:
    def test_success(self) -> None:
        assert format_result(_ok("build"), settings=OutputSettings(quiet=True)) == "OK: build"

    def test_error(self) -> None:
        output = format_result(_err(msg="exit 1"), settings=OutputSettings(quiet=True))
        assert output.startswith("ERROR: run")
        assert "exit 1" in output


class TestFormatResultRich:
    def test_stage_fields(self) -> None:
        result = _ok(source="/src/yojimbo.net", root="/app/yojimbo.net", file_count=6)
        output = format_result(result)
        assert "OK" in output
        assert "/app/yojimbo.net" in output
        assert "file_count: 6" in output

    def test_build_targets_table(self) -> None:
        result = _ok(
            "build",
            configuration="Release",
            cleaned=True,
            targets=[
                {"name": "test", "project_dir": "_test", "status": "built", "exit_code": 0},
                {"name": "server", "project_dir": "_server", "status": "built", "exit_code": 0},
            ],
        )
        output = format_result(result)
        assert "_server" in output
        assert "built" in output
        assert "cleaned: True" in output

    def test_run_states(self) -> None:
        result = _ok("run", history=["idle", "test_running", "test_passed"], test_exit_code=0)
        assert "idle → test_running → test_passed" in format_result(result)

    def test_error_shows_code_and_states(self) -> None:
        result = _err(history=["idle", "test_running", "test_failed", "aborted"])
        output = format_result(result)
        assert "ERROR" in output
        assert "TEST_FAILED" in output
        assert "test_failed → aborted" in output

    def test_verbose_error_shows_detail(self) -> None:
        output = format_result(_err(), settings=OutputSettings(verbose=True))
        assert "exit_code: 1" in output

    def test_plan_table(self) -> None:
        result = _ok(
            "plan",
            count=1,
            items=[{"id": 1, "stage": "generate", "phase": "image", "detail": "premake5 solution"}],
        )
        output = format_result(result)
        assert "premake5 solution" in output
        assert "generate" in output

    def test_unknown_op_falls_back_to_generic(self) -> None:
        output = format_result(_ok("custom", answer=42))
        assert "answer: 42" in output

    def test_verbose_renders_telemetry(self) -> None:
        result = ServiceResult(
            ok=True,
            op="build",
            data={"configuration": "Release"},
            meta={"telemetry": {"name": "BuildService.build", "duration_ms": 12.5}},
        )
        output = format_result(result, settings=OutputSettings(verbose=True))
        assert "BuildService.build" in output
