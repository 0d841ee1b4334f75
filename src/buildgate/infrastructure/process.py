"""Blocking child-process execution.

Every stage is a synchronous process invocation: the runner starts the
child with inherited stdio, waits for it, and returns its exit status.
There is no timeout and no backgrounding.

When ``forward_signals`` is set the runner behaves like a small
container init: SIGINT and SIGTERM delivered to buildgate are passed on
to the child, and the child is always waited for (reaped) before the
runner returns. Children killed by a signal report ``128 + signum``.
"""

from __future__ import annotations

import logging
import signal
import subprocess
import threading
from collections.abc import Sequence
from pathlib import Path
from typing import Any, Protocol

logger = logging.getLogger(__name__)

FORWARDED_SIGNALS: tuple[signal.Signals, ...] = (signal.SIGINT, signal.SIGTERM)

# Exit status reported when a command could not be started (shell convention).
LAUNCH_FAILED_EXIT = 127

# A child killed by signal N exits with SIGNAL_EXIT_BASE + N (shell convention).
SIGNAL_EXIT_BASE = 128


class ProcessLaunchError(RuntimeError):
    """The child process could not be started at all (missing binary, bad cwd)."""

    def __init__(self, argv: Sequence[str], cause: OSError) -> None:
        super().__init__(f"Failed to launch {' '.join(argv)!r}: {cause}")
        self.argv = list(argv)
        self.cause = cause


class ProcessRunner(Protocol):
    """Anything that can run a command to completion and report its status."""

    def run(
        self,
        argv: Sequence[str],
        *,
        cwd: Path | None = None,
        forward_signals: bool = False,
    ) -> int: ...


class SubprocessRunner:
    """Run commands with :mod:`subprocess`, inheriting stdin/stdout/stderr."""

    def run(
        self,
        argv: Sequence[str],
        *,
        cwd: Path | None = None,
        forward_signals: bool = False,
    ) -> int:
        """Start *argv* in *cwd*, block until it exits, return the exit status.

        A child killed by signal N reports ``128 + N``, as a shell would.

        Raises:
            ProcessLaunchError: if the process cannot be spawned.
        """
        logger.debug("Running %s (cwd=%s)", " ".join(argv), cwd)
        if forward_signals:
            with _SignalRelay() as relay:
                proc = _spawn(argv, cwd)
                relay.attach(proc)
                returncode = proc.wait()
        else:
            returncode = _spawn(argv, cwd).wait()

        status = exit_status(returncode)
        logger.debug("%s exited with %d", argv[0], status)
        return status


def exit_status(returncode: int) -> int:
    """Map a Popen returncode to a shell exit status (-15 becomes 143)."""
    return SIGNAL_EXIT_BASE - returncode if returncode < 0 else returncode


def _spawn(argv: Sequence[str], cwd: Path | None) -> subprocess.Popen[bytes]:
    try:
        return subprocess.Popen(list(argv), cwd=cwd)
    except OSError as exc:
        raise ProcessLaunchError(argv, exc) from exc


class _SignalRelay:
    """Pass SIGINT/SIGTERM on to the attached child while active.

    The handlers go in before the child is spawned; a signal that
    arrives before :meth:`attach` is held and delivered on attach.
    Handlers can only be installed from the main thread; elsewhere the
    child shares our process group and receives terminal signals itself.
    """

    def __init__(self) -> None:
        self._proc: subprocess.Popen[bytes] | None = None
        self._pending: list[int] = []
        self._previous: dict[signal.Signals, Any] = {}

    def __enter__(self) -> _SignalRelay:
        if threading.current_thread() is threading.main_thread():
            self._previous = {sig: signal.signal(sig, self._relay) for sig in FORWARDED_SIGNALS}
        return self

    def __exit__(self, *exc_info: object) -> None:
        for sig, handler in self._previous.items():
            signal.signal(sig, handler)

    def attach(self, proc: subprocess.Popen[bytes]) -> None:
        self._proc = proc
        while self._pending:
            self._send(self._pending.pop(0))

    def _relay(self, signum: int, _frame: object) -> None:
        if self._proc is None:
            self._pending.append(signum)
        else:
            self._send(signum)

    def _send(self, signum: int) -> None:
        assert self._proc is not None
        # Runs inside a signal handler: no logging here.
        if self._proc.poll() is None:
            self._proc.send_signal(signum)
