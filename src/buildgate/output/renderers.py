"""Human-readable rendering of ServiceResult, one renderer per op.

Renderers register themselves with :func:`_renders`; an op without one
gets every data key printed as ``key: value``. Failures of any op share
:func:`_render_error`, which still shows the stage/target tables and
sequencer states so the reader can see how far the pipeline got.
"""

from __future__ import annotations

import json as _json
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from rich.table import Table
from rich.text import Text

from buildgate.output.console import capture, status_style

if TYPE_CHECKING:
    from rich.console import Console

    from buildgate.services.result import ServiceResult

Renderer = Callable[["ServiceResult", "Console", bool], None]

_RENDERERS: dict[str, Renderer] = {}

_PATH_KEYS = frozenset({"path", "root", "source", "test", "server"})
_ARROW = " → "


def _renders(op: str) -> Callable[[Renderer], Renderer]:
    def register(fn: Renderer) -> Renderer:
        _RENDERERS[op] = fn
        return fn

    return register


# ── Public API ────────────────────────────────────────────────────────


def render_result(result: ServiceResult, *, verbose: bool = False) -> str:
    """Render *result* with Rich and return the text."""
    with capture() as (console, buffer):
        if not result.ok:
            _render_error(result, console, verbose)
        else:
            _RENDERERS.get(result.op, _render_generic)(result, console, verbose)
    return buffer.getvalue().rstrip("\n")


def render_quiet(result: ServiceResult) -> str:
    """One line: ``OK: <op>`` or ``ERROR: <op> — <message>``."""
    if result.ok:
        return f"OK: {result.op}"
    message = result.error.message if result.error else "Unknown error"
    return f"ERROR: {result.op} — {message}"


# ── Building blocks ───────────────────────────────────────────────────


def _headline(console: Console, result: ServiceResult) -> None:
    console.print(Text("OK", style="bg.ok"), Text(f"  {result.op}", style="bg.op"))


def _kv(console: Console, key: str, value: Any) -> None:
    if key in _PATH_KEYS:
        shown = Text(str(value), style="bg.path")
    elif isinstance(value, (dict, list)):
        shown = Text(_json.dumps(value, separators=(",", ":")))
    else:
        shown = Text(str(value))
    console.print(Text(f"  {key}: ", style="bg.key"), shown, sep="")


def _kv_present(console: Console, data: dict[str, Any], *keys: str) -> None:
    for key in keys:
        if key in data:
            _kv(console, key, data[key])


def _table(*columns: str | tuple[str, dict[str, Any]]) -> Table:
    table = Table(show_header=True, show_lines=False, pad_edge=False, expand=False)
    for column in columns:
        if isinstance(column, tuple):
            table.add_column(column[0], **column[1])
        else:
            table.add_column(column)
    return table


def _targets_table(targets: list[dict[str, Any]]) -> Table:
    table = _table(
        ("Target", {"style": "bg.stage", "no_wrap": True}),
        "Project",
        "Status",
        ("Exit", {"justify": "right"}),
        ("Output", {"style": "bg.path"}),
    )
    for target in targets:
        status = str(target.get("status", "built"))
        code = target.get("exit_code")
        table.add_row(
            str(target.get("name", "")),
            str(target.get("project_dir", "")),
            Text(status, style=status_style(status)),
            "" if code is None else str(code),
            str(target.get("output_dir", "")),
        )
    return table


def _stages_table(stages: list[dict[str, Any]]) -> Table:
    table = _table(
        ("Stage", {"style": "bg.stage", "no_wrap": True}),
        "Result",
        ("Exit", {"justify": "right"}),
        ("Time", {"justify": "right"}),
    )
    for record in stages:
        outcome = "ok" if record.get("ok") else "failed"
        table.add_row(
            str(record.get("stage", "")),
            Text(outcome, style=status_style(outcome)),
            str(record.get("exit_code", "")),
            f"{record.get('duration_ms', 0.0):.0f}ms",
        )
    return table


def _span_lines(span: dict[str, Any], depth: int = 0) -> list[str]:
    """Flatten a telemetry span tree into indented, colour-coded lines."""
    ms = span.get("duration_ms", 0.0)
    style = "bold red" if ms > 60_000 else "yellow" if ms > 5_000 else "dim"
    line = f"{' ' * (4 + 4 * depth)}[{style}]{ms:>10.2f}ms[/{style}]  {span.get('name', '?')}"
    notes = span.get("notes")
    if notes:
        line += "  (" + ", ".join(f"{k}={v}" for k, v in notes.items()) + ")"
    lines = [line]
    for child in span.get("steps", []):
        lines.extend(_span_lines(child, depth + 1))
    return lines


def _meta(console: Console, result: ServiceResult) -> None:
    if not result.meta:
        return
    console.print()
    console.print(Text("  meta:", style="dim"))
    for key, value in result.meta.items():
        if key == "telemetry":
            for line in _span_lines(value):
                console.print(line)
        else:
            console.print(f"    {key}: {value}")


# ── Failures ──────────────────────────────────────────────────────────


def _render_error(result: ServiceResult, console: Console, verbose: bool) -> None:
    err = result.error
    console.print(
        Text("ERROR", style="bg.error"),
        Text(f"  {result.op}", style="bg.op"),
        Text(" — "),
        err.message if err else "Unknown error",
    )
    data = result.data
    if err is not None:
        _kv(console, "code", err.code)
    if data.get("stages"):
        console.print(_stages_table(data["stages"]))
    if data.get("targets"):
        console.print(_targets_table(data["targets"]))
    if "history" in data:
        _kv(console, "states", _ARROW.join(data["history"]))

    if not verbose:
        return
    if err and err.detail:
        console.print(Text("  detail:", style="dim"))
        for key, value in err.detail.items():
            console.print(f"    {key}: {value}")
    _meta(console, result)


# ── Per-op renderers ──────────────────────────────────────────────────


@_renders("provision")
def _render_provision(result: ServiceResult, console: Console, verbose: bool) -> None:
    _headline(console, result)
    _kv_present(console, result.data, "name", "version", "path")
    if verbose:
        _kv(console, "url", result.data.get("url", ""))
        _meta(console, result)


@_renders("stage")
def _render_stage(result: ServiceResult, console: Console, verbose: bool) -> None:
    _headline(console, result)
    _kv_present(console, result.data, "source", "root", "file_count")
    if verbose:
        _meta(console, result)


@_renders("build")
def _render_build(result: ServiceResult, console: Console, verbose: bool) -> None:
    data = result.data
    _headline(console, result)
    _kv(console, "configuration", data.get("configuration", ""))
    if data.get("targets"):
        console.print(_targets_table(data["targets"]))
    _kv(console, "cleaned", data.get("cleaned", False))
    if verbose:
        for path in data.get("removed", []):
            console.print(f"  [bg.skipped]removed[/bg.skipped] {path}")
        _meta(console, result)


@_renders("image")
def _render_image(result: ServiceResult, console: Console, verbose: bool) -> None:
    data = result.data
    _headline(console, result)
    console.print(_stages_table(data.get("stages", [])))
    tool = data.get("tool")
    if tool:
        _kv(console, "tool", f"{tool.get('name')} {tool.get('version')}")
    for target in data.get("targets", []):
        _kv(console, "target", f"{target['name']} ({target['configuration']})")
    if verbose:
        _meta(console, result)


@_renders("run")
def _render_run(result: ServiceResult, console: Console, verbose: bool) -> None:
    _headline(console, result)
    _kv(console, "states", _ARROW.join(result.data.get("history", [])))
    _kv_present(console, result.data, "test_exit_code", "server_exit_code")
    if verbose:
        _meta(console, result)


@_renders("plan")
def _render_plan(result: ServiceResult, console: Console, verbose: bool) -> None:
    _headline(console, result)
    table = _table(
        ("#", {"justify": "right"}),
        "Phase",
        ("Stage", {"style": "bg.stage", "no_wrap": True}),
        ("Command", {"style": "bg.command"}),
    )
    for step in result.data.get("items", []):
        table.add_row(str(step["id"]), step["phase"], step["stage"], step["detail"])
    console.print(table)


def _render_generic(result: ServiceResult, console: Console, verbose: bool) -> None:
    _headline(console, result)
    for key, value in result.data.items():
        _kv(console, key, value)
    if verbose:
        _meta(console, result)
