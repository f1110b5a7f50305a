"""Per-task capture of ``print()`` output.

``contextlib.redirect_stdout`` swaps ``sys.stdout`` for every coroutine in
the process, so anything printed by an unrelated task while a captured
workflow is suspended would land in the capture. Here the process streams
are replaced by routers that look up the current capture buffer in a
``ContextVar``; tasks outside a :func:`capture_output` block keep writing to
the original streams.
"""

from __future__ import annotations

import io
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from typing import TextIO

from jixoflow.context import AsyncContext

OutputCapture: AsyncContext[io.StringIO] = AsyncContext("OutputCapture")


class _RoutedStream(io.TextIOBase):
    """Writes to the current task's capture buffer, else to ``fallback``."""

    def __init__(self, fallback: TextIO) -> None:
        self.fallback = fallback

    def _target(self) -> TextIO:
        return OutputCapture.get_or_default(self.fallback)  # type: ignore[arg-type]

    def write(self, text: str) -> int:
        return self._target().write(text)

    def flush(self) -> None:
        self._target().flush()

    def writable(self) -> bool:
        return True

    @property
    def encoding(self) -> str:  # type: ignore[override]
        return getattr(self.fallback, "encoding", None) or "utf-8"


_installed = 0


@contextmanager
def _routed_streams() -> Iterator[None]:
    global _installed
    if _installed == 0:
        sys.stdout = _RoutedStream(sys.stdout)  # type: ignore[assignment]
        sys.stderr = _RoutedStream(sys.stderr)  # type: ignore[assignment]
    _installed += 1
    try:
        yield
    finally:
        _installed -= 1
        if _installed == 0:
            if isinstance(sys.stdout, _RoutedStream):
                sys.stdout = sys.stdout.fallback
            if isinstance(sys.stderr, _RoutedStream):
                sys.stderr = sys.stderr.fallback


@contextmanager
def capture_output() -> Iterator[io.StringIO]:
    """Collect stdout and stderr written by the current task and its children."""

    buffer = io.StringIO()
    with _routed_streams(), OutputCapture.scope(buffer):
        yield buffer
