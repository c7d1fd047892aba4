"""Qt timer backed :class:`~erpforge.core.signals.Scheduler`."""

from __future__ import annotations

import time
from typing import Callable, Optional, Set

from PyQt5 import QtCore

from erpforge.core.signals import Scheduler, TimerHandle


class QtTimerHandle(TimerHandle):
    """Timer handle that also stops its QTimer when cancelled."""

    def __init__(
        self,
        callback: Callable[[], None],
        timer: QtCore.QTimer,
        release: Callable[[QtCore.QTimer], None],
    ) -> None:
        super().__init__(callback)
        self._timer = timer
        self._release = release

    def cancel(self) -> None:
        super().cancel()
        self._timer.stop()
        self._release(self._timer)


class QtScheduler(Scheduler):
    """Schedules callbacks on the Qt event loop of the calling thread.

    Callbacks run on the thread that owns the timers (the GUI thread), so
    throttled and debounced signals never touch widgets from elsewhere.
    """

    def __init__(self, parent: Optional[QtCore.QObject] = None) -> None:
        self._parent = parent
        self._timers: Set[QtCore.QTimer] = set()

    def now(self) -> float:
        return time.monotonic()

    @property
    def pending(self) -> int:
        return len(self._timers)

    def _release(self, timer: QtCore.QTimer) -> None:
        if timer in self._timers:
            self._timers.discard(timer)
            timer.deleteLater()

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        timer = QtCore.QTimer(self._parent)
        timer.setSingleShot(True)
        handle = QtTimerHandle(callback, timer, self._release)

        def _fire() -> None:
            self._release(timer)
            handle.fire()

        timer.timeout.connect(_fire)
        # Held until fired or cancelled so the timer is not garbage collected
        self._timers.add(timer)
        timer.start(max(int(round(float(delay) * 1000.0)), 0))
        return handle
