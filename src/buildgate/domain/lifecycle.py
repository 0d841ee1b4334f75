"""Run sequencer lifecycle: the test-gated server launch.

The server is only ever started from ``test_passed``, and
``test_passed`` is only reachable from ``test_running`` with an exit
status of zero.
"""

from __future__ import annotations

from enum import StrEnum


class SequencerState(StrEnum):
    """States of the run sequencer."""

    IDLE = "idle"
    TEST_RUNNING = "test_running"
    TEST_PASSED = "test_passed"
    TEST_FAILED = "test_failed"
    SERVER_RUNNING = "server_running"
    SERVER_EXITED = "server_exited"
    ABORTED = "aborted"


SEQUENCER_TRANSITIONS: dict[str, list[str]] = {
    "idle": ["test_running", "aborted"],
    "test_running": ["test_passed", "test_failed"],
    "test_passed": ["server_running"],
    "test_failed": ["aborted"],
    "server_running": ["server_exited"],
    "server_exited": [],
    "aborted": [],
}

TERMINAL_STATES = frozenset({SequencerState.ABORTED, SequencerState.SERVER_EXITED})


class InvalidTransitionError(RuntimeError):
    """Raised when the sequencer is asked to make a disallowed move."""

    def __init__(self, current: str, target: str) -> None:
        super().__init__(f"Cannot move run sequencer from {current!r} to {target!r}")
        self.current = current
        self.target = target


def is_valid_transition(
    current: str,
    target: str,
    transitions: dict[str, list[str]],
) -> bool:
    """Check if transitioning from *current* to *target* is allowed."""
    allowed = transitions.get(current, [])
    return target in allowed


def outcome_for_exit(exit_code: int) -> SequencerState:
    """The state a finished test harness moves the sequencer to."""
    return SequencerState.TEST_PASSED if exit_code == 0 else SequencerState.TEST_FAILED


class RunGate:
    """Tracks the sequencer state and refuses illegal transitions.

    ``history`` records every state visited, starting with ``idle``.
    """

    def __init__(self) -> None:
        self.state = SequencerState.IDLE
        self.history: list[SequencerState] = [SequencerState.IDLE]

    def advance(self, target: SequencerState) -> SequencerState:
        if not is_valid_transition(self.state, target, SEQUENCER_TRANSITIONS):
            raise InvalidTransitionError(self.state, target)
        self.state = target
        self.history.append(target)
        return target

    @property
    def server_allowed(self) -> bool:
        return self.state == SequencerState.TEST_PASSED

    @property
    def finished(self) -> bool:
        return self.state in TERMINAL_STATES
