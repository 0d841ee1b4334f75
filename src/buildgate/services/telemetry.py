"""Per-stage timing for ``--verbose`` runs.

``@traced`` wraps a service method; ``trace_span("compile:server")``
times one step inside it. The outermost traced call returns its tree in
``ServiceResult.meta["telemetry"]``::

    {"name": "BuildService.build", "duration_ms": 8123.4, "ok": true,
     "steps": [{"name": "generate", ...}, {"name": "compile:test", ...}]}

When telemetry is off (the default) both are pass-throughs.
"""

from __future__ import annotations

import functools
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from typing import Any, ParamSpec, TypeVar

import structlog

from buildgate.services.result import ServiceResult

log = structlog.get_logger("buildgate.telemetry")

_enabled: ContextVar[bool] = ContextVar("buildgate_telemetry", default=False)
_active_span: ContextVar[Span | None] = ContextVar("buildgate_span", default=None)


@dataclass
class Span:
    """One timed unit of work and the steps timed inside it."""

    name: str
    steps: list[Span] = field(default_factory=list)
    notes: dict[str, Any] = field(default_factory=dict)
    ok: bool | None = None
    _started_ns: int = field(default_factory=time.perf_counter_ns, repr=False)
    _elapsed_ns: int | None = field(default=None, repr=False)

    @property
    def duration_ms(self) -> float:
        return 0.0 if self._elapsed_ns is None else self._elapsed_ns / 1_000_000

    def end(self) -> None:
        self._elapsed_ns = time.perf_counter_ns() - self._started_ns

    def annotate(self, key: str, value: Any) -> None:
        self.notes[key] = value

    def to_dict(self) -> dict[str, Any]:
        tree: dict[str, Any] = {"name": self.name, "duration_ms": round(self.duration_ms, 2)}
        if self.ok is not None:
            tree["ok"] = self.ok
        if self.notes:
            tree["notes"] = dict(self.notes)
        if self.steps:
            tree["steps"] = [step.to_dict() for step in self.steps]
        return tree


@contextmanager
def _activate(span: Span, parent: Span | None) -> Iterator[Span]:
    if parent is not None:
        parent.steps.append(span)
    token = _active_span.set(span)
    try:
        yield span
    finally:
        span.end()
        _active_span.reset(token)


@contextmanager
def trace_span(name: str) -> Iterator[Span | None]:
    """Time a step of the enclosing ``@traced`` call.

    Yields None outside a traced call or with telemetry off; guard
    ``span.annotate`` with ``if span:``.
    """
    parent = get_current_span()
    if parent is None:
        yield None
        return
    with _activate(Span(name), parent) as span:
        yield span


_P = ParamSpec("_P")
_R = TypeVar("_R")


def traced(func: Callable[_P, _R]) -> Callable[_P, _R]:  # noqa: UP047
    """Record a span for each call of a ServiceResult-returning method."""
    label = func.__qualname__

    @functools.wraps(func)
    def wrapper(*args: _P.args, **kwargs: _P.kwargs) -> _R:
        if not _enabled.get():
            return func(*args, **kwargs)

        parent = _active_span.get()
        span = Span(label)
        try:
            with _activate(span, parent):
                outcome = func(*args, **kwargs)
        except Exception:
            log.debug("span.complete", span_name=label, ok=False)
            raise

        is_result = isinstance(outcome, ServiceResult)
        span.ok = outcome.ok if is_result else True
        log.debug(
            "span.complete",
            span_name=label,
            duration_ms=round(span.duration_ms, 2),
            ok=span.ok,
            steps=len(span.steps),
        )
        if parent is not None or not is_result:
            return outcome
        meta = {**(outcome.meta or {}), "telemetry": span.to_dict()}
        return outcome.model_copy(update={"meta": meta})  # type: ignore[return-value]

    return wrapper


def enable_telemetry() -> None:
    """Start collecting spans in this context (``--verbose``)."""
    _enabled.set(True)


def disable_telemetry() -> None:
    _enabled.set(False)


def get_current_span() -> Span | None:
    """The innermost open span; None when telemetry is off."""
    return _active_span.get() if _enabled.get() else None
