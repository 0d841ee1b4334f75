"""Shared pytest fixtures and test doubles for buildgate tests."""

from __future__ import annotations

import io
import logging
import os
import tarfile
from collections.abc import Callable, Generator
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import httpx
import pytest
from click.testing import CliRunner

from buildgate.config.models import BuildConfig, RunConfig, SourceConfig, ToolchainConfig
from buildgate.config.settings import BuildgateSettings
from buildgate.infrastructure.workspace import Workspace

ARCHIVE_URL = "https://downloads.example.test/v{version}/premake-{version}-linux.tar.gz"
TOOL_BYTES = b"#!/bin/sh\necho premake5\n"
OLD_MTIME = 1_000_000_000.0  # 2001-09-09


# ---------------------------------------------------------------------------
# Environment isolation
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep a developer's BUILDGATE_* variables out of the tests."""
    for key in list(os.environ):
        if key.startswith("BUILDGATE_"):
            monkeypatch.delenv(key, raising=False)


@pytest.fixture(autouse=True)
def _restore_logging() -> Generator[None]:
    """Undo the handlers and levels a CLI invocation installs."""
    root = logging.getLogger()
    original_handlers = root.handlers[:]
    original_level = root.level
    bg = logging.getLogger("buildgate")
    bg_level = bg.level
    yield
    root.handlers = original_handlers
    root.setLevel(original_level)
    bg.setLevel(bg_level)


@pytest.fixture
def cli_runner() -> CliRunner:
    """Provide a Click CLI test runner."""
    return CliRunner()


# ---------------------------------------------------------------------------
# Process runner double
# ---------------------------------------------------------------------------


def label_for(argv: list[str]) -> str:
    """Classify a command line into a pipeline step label.

    ``premake5 solution`` → ``generate``; ``dotnet build … _test`` →
    ``compile:test``; ``dotnet …/server.dll`` → ``run:server``.
    """
    if len(argv) == 2 and argv[1] == "solution":
        return "generate"
    if argv[:2] == ["dotnet", "build"]:
        return f"compile:{argv[-1].lstrip('_')}"
    if argv[0] == "dotnet" and argv[-1].endswith(".dll"):
        return f"run:{Path(argv[-1]).stem}"
    return " ".join(argv)


@dataclass
class RecordedCall:
    label: str
    argv: list[str]
    cwd: Path | None
    forward_signals: bool


@dataclass
class RecordingRunner:
    """ProcessRunner that records every call and returns scripted exit codes.

    Compile steps write a placeholder artifact into their ``-o`` directory
    so a later run stage finds it, unless ``produce_artifacts`` is False.
    """

    exit_codes: dict[str, int] = field(default_factory=dict)
    produce_artifacts: bool = True
    calls: list[RecordedCall] = field(default_factory=list)

    def run(
        self,
        argv: list[str],
        *,
        cwd: Path | None = None,
        forward_signals: bool = False,
    ) -> int:
        argv = list(argv)
        label = label_for(argv)
        self.calls.append(RecordedCall(label, argv, cwd, forward_signals))
        code = self.exit_codes.get(label, 0)
        if code == 0 and self.produce_artifacts and label.startswith("compile:"):
            out_dir = Path(argv[argv.index("-o") + 1])
            out_dir.mkdir(parents=True, exist_ok=True)
            (out_dir / f"{label.split(':', 1)[1]}.dll").write_bytes(b"MZ")
        return code

    @property
    def labels(self) -> list[str]:
        return [c.label for c in self.calls]


@pytest.fixture
def runner() -> RecordingRunner:
    return RecordingRunner()


# ---------------------------------------------------------------------------
# Toolchain archive + HTTP
# ---------------------------------------------------------------------------


def make_archive(members: dict[str, bytes]) -> bytes:
    """Build an in-memory .tar.gz holding *members* (path → contents)."""
    buf = io.BytesIO()
    with tarfile.open(fileobj=buf, mode="w:gz") as tar:
        for name, payload in members.items():
            info = tarfile.TarInfo(name)
            info.size = len(payload)
            info.mode = 0o644
            tar.addfile(info, io.BytesIO(payload))
    return buf.getvalue()


@dataclass
class FakeServer:
    """Serves one archive body; records every requested URL."""

    body: bytes = field(default_factory=lambda: make_archive({"premake5": TOOL_BYTES}))
    status_code: int = 200
    error: Exception | None = None
    requests: list[str] = field(default_factory=list)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(str(request.url))
        if self.error is not None:
            raise self.error
        return httpx.Response(self.status_code, content=self.body)

    def client_factory(self) -> Callable[[], httpx.Client]:
        transport = httpx.MockTransport(self.handler)
        return lambda: httpx.Client(transport=transport, follow_redirects=True)


@pytest.fixture
def fake_server() -> FakeServer:
    return FakeServer()


# ---------------------------------------------------------------------------
# Project layout
# ---------------------------------------------------------------------------


@pytest.fixture
def source_tree(tmp_path: Path) -> Path:
    """A small external project whose files all carry an old mtime."""
    root = tmp_path / "yojimbo.net"
    files = {
        "premake5.lua": "solution 'yojimbo'\n",
        "test.cs": "public static class test {}\n",
        "server.cs": "public static class server {}\n",
        "shared_h.cs": "// shared\n",
        "netcode.io.net/netcode.cs": "// netcode\n",
        "reliable.io.net/reliable.cs": "// reliable\n",
    }
    for rel, text in files.items():
        path = root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
    for dirpath, dirnames, filenames in os.walk(root):
        for name in (*dirnames, *filenames):
            os.utime(os.path.join(dirpath, name), (OLD_MTIME, OLD_MTIME))
    os.utime(root, (OLD_MTIME, OLD_MTIME))
    return root


SettingsFactory = Callable[..., BuildgateSettings]


@pytest.fixture
def make_settings(tmp_path: Path, source_tree: Path) -> SettingsFactory:
    """Build settings rooted at ``tmp_path`` with every location inside it.

    ``build`` and ``run`` accept dicts of overrides, ``source`` and
    ``workdir`` replace the staging locations; any other keyword is
    passed straight to ``BuildgateSettings.from_cli``.
    """

    def _factory(**sections: Any) -> BuildgateSettings:
        build = sections.pop("build", {})
        run = sections.pop("run", {})
        source = sections.pop("source", source_tree)
        workdir = sections.pop("workdir", tmp_path / "app")
        sections.setdefault("plugins", {"enabled": False})
        return BuildgateSettings.from_cli(
            project_root=tmp_path,
            toolchain=ToolchainConfig(url=ARCHIVE_URL, bin_dir=tmp_path / "bin"),
            source=SourceConfig(path=source, workdir=workdir),
            build=BuildConfig(**build),
            run=RunConfig(**run),
            **sections,
        )

    return _factory


@pytest.fixture
def settings(make_settings: SettingsFactory) -> BuildgateSettings:
    return make_settings()


@pytest.fixture
def make_workspace(
    runner: RecordingRunner, fake_server: FakeServer
) -> Callable[[BuildgateSettings], Workspace]:
    """Wrap custom settings in a workspace using the shared test doubles."""

    def _factory(settings: BuildgateSettings) -> Workspace:
        return Workspace(settings, runner=runner, client_factory=fake_server.client_factory())

    return _factory


@pytest.fixture
def workspace(
    settings: BuildgateSettings,
    runner: RecordingRunner,
    fake_server: FakeServer,
) -> Workspace:
    """Workspace wired to the recording runner and the fake download server."""
    return Workspace(settings, runner=runner, client_factory=fake_server.client_factory())


@pytest.fixture
def output_dir(tmp_path: Path) -> Path:
    """Where compiled artifacts land for the default layout (the workdir)."""
    return (tmp_path / "app").resolve()


@pytest.fixture
def write_artifacts(output_dir: Path) -> Callable[..., None]:
    """Drop placeholder ``<name>.dll`` files into the artifact directory."""

    def _write(*names: str) -> None:
        output_dir.mkdir(parents=True, exist_ok=True)
        for name in names:
            (output_dir / f"{name}.dll").write_bytes(b"MZ")

    return _write


@pytest.fixture
def archive_factory() -> Callable[[dict[str, bytes]], bytes]:
    return make_archive


@pytest.fixture
def tool_bytes() -> bytes:
    return TOOL_BYTES
