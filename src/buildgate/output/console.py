"""Rich theme and an in-memory Console for rendering results to text.

Renderers never write to the real terminal: they draw into a buffer
and the caller decides which stream the text goes to. Without a TTY
(pipes, CliRunner) Rich drops the colour codes on its own.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from io import StringIO

from rich.console import Console
from rich.theme import Theme

BUILDGATE_THEME = Theme(
    {
        "bg.ok": "bold green",
        "bg.error": "bold red",
        "bg.warning": "bold yellow",
        "bg.op": "bold cyan",
        "bg.key": "dim",
        "bg.stage": "bold blue",
        "bg.path": "dim",
        "bg.skipped": "dim",
        "bg.command": "italic",
    }
)

# Styles for BuildTarget.status and StageRecord.ok.
STATUS_STYLES: dict[str, str] = {
    "built": "bg.ok",
    "ok": "bg.ok",
    "failed": "bg.error",
    "skipped": "bg.skipped",
}

DEFAULT_WIDTH = 120


@contextmanager
def capture(width: int = DEFAULT_WIDTH) -> Iterator[tuple[Console, StringIO]]:
    """Yield a themed Console and the buffer it writes into."""
    buffer = StringIO()
    yield Console(file=buffer, theme=BUILDGATE_THEME, highlight=False, width=width), buffer


def status_style(status: str) -> str:
    return STATUS_STYLES.get(status, "")
