"""Interrupt masking for non-interruptible sections.

While an InterruptGuard is held, SIGINT is recorded and reported through a
callback but never raises KeyboardInterrupt. The previous handler is put
back when the guard is released.

Usage:
    with InterruptGuard(on_interrupt=lambda: console.warning("ignored")) as guard:
        mutate_repository()
    if guard.interrupts:
        console.info(f"{guard.interrupts} interrupt(s) were ignored")
"""

from __future__ import annotations

import signal
import threading
from collections.abc import Callable
from types import FrameType, TracebackType
from typing import Any

__all__ = ["InterruptGuard"]


class InterruptGuard:
    """Context manager that ignores (but counts) interrupt signals.

    Signal handlers can only be installed from the main thread; anywhere
    else the guard is inert and just counts nothing.
    """

    def __init__(
        self,
        on_interrupt: Callable[[], None] | None = None,
        signals: tuple[signal.Signals, ...] = (signal.SIGINT,),
    ) -> None:
        self._on_interrupt = on_interrupt
        self._signals = signals
        self._previous: dict[signal.Signals, Any] = {}
        self.interrupts = 0

    @property
    def active(self) -> bool:
        return bool(self._previous)

    def __enter__(self) -> InterruptGuard:
        if threading.current_thread() is not threading.main_thread():
            return self
        for sig in self._signals:
            self._previous[sig] = signal.getsignal(sig)
            signal.signal(sig, self._handle)
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        for sig, handler in self._previous.items():
            signal.signal(sig, handler)
        self._previous.clear()

    def _handle(self, signum: int, frame: FrameType | None) -> None:
        del signum, frame
        self.interrupts += 1
        if self._on_interrupt is not None:
            self._on_interrupt()
