"""Reactive value primitives and timer scheduling.

A :class:`Signal` holds one value and notifies subscribers when it changes.
Derived signals are built with :meth:`Signal.map`, :func:`combine`,
:meth:`Signal.throttle` and :meth:`Signal.debounce`. Throttling and
debouncing never block: they defer delivery through a :class:`Scheduler`,
either the virtual-clock :class:`ManualScheduler` (tests, headless runs) or
a Qt timer based scheduler (see :mod:`erpforge.gui.qt_scheduler`).

Example:
    >>> scheduler = ManualScheduler()
    >>> beta = Signal(0, name="beta")
    >>> settled = beta.debounce(0.5, scheduler)
    >>> beta.set(1)
    True
    >>> beta.set(2)
    True
    >>> scheduler.advance(0.5)
    >>> settled.value
    2
"""

from __future__ import annotations

import heapq
import itertools
from abc import ABC, abstractmethod
from typing import Any, Callable, Generic, List, Optional, Sequence, Tuple, TypeVar

T = TypeVar("T")
U = TypeVar("U")

Callback = Callable[[Any], None]
Equality = Callable[[Any, Any], bool]


def safe_equal(a: Any, b: Any) -> bool:
    """Equality that tolerates values whose ``==`` is ambiguous (arrays)."""
    if a is b:
        return True
    try:
        return bool(a == b)
    except (TypeError, ValueError):
        return False


# ----------------------------------------------------------------------
# Scheduling
# ----------------------------------------------------------------------
class TimerHandle:
    """Handle returned by :meth:`Scheduler.call_later`."""

    def __init__(self, callback: Callable[[], None]) -> None:
        self._callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True

    def fire(self) -> None:
        if not self.cancelled:
            self.cancelled = True
            self._callback()


class Scheduler(ABC):
    """Deferred-callback source used by time based combinators."""

    @abstractmethod
    def now(self) -> float:
        """Current time in seconds."""

    @abstractmethod
    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        """Run ``callback`` once, ``delay`` seconds from now."""


class ManualScheduler(Scheduler):
    """Scheduler driven by an explicit virtual clock.

    Nothing fires until :meth:`advance` (or :meth:`run_pending`) is called,
    which makes timing behaviour fully deterministic.
    """

    def __init__(self, start: float = 0.0) -> None:
        self._now = float(start)
        self._queue: List[Tuple[float, int, TimerHandle]] = []
        self._counter = itertools.count()

    def now(self) -> float:
        return self._now

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        handle = TimerHandle(callback)
        due = self._now + max(float(delay), 0.0)
        heapq.heappush(self._queue, (due, next(self._counter), handle))
        return handle

    @property
    def pending(self) -> int:
        """Number of timers that are scheduled and not cancelled."""
        return sum(1 for _, _, handle in self._queue if not handle.cancelled)

    def advance(self, seconds: float) -> None:
        """Move the clock forward, firing due timers in order."""
        target = self._now + max(float(seconds), 0.0)
        while self._queue and self._queue[0][0] <= target:
            due, _, handle = heapq.heappop(self._queue)
            self._now = max(self._now, due)
            handle.fire()
        self._now = target

    def run_pending(self) -> None:
        """Fire every timer that is already due without moving the clock."""
        self.advance(0.0)


# ----------------------------------------------------------------------
# Signals
# ----------------------------------------------------------------------
class Subscription:
    """Registration of a callback on a :class:`Signal`."""

    def __init__(self, signal: "Signal", callback: Callback) -> None:
        self._signal: Optional[Signal] = signal
        self.callback = callback

    @property
    def active(self) -> bool:
        return self._signal is not None

    def cancel(self) -> None:
        if self._signal is not None:
            self._signal._unsubscribe(self)
            self._signal = None


class Signal(Generic[T]):
    """Observable value.

    Args:
        value: Initial value.
        name: Label used in logs and reprs.
        equality: Comparison used to suppress no-op updates. Defaults to
            :func:`safe_equal`.
    """

    def __init__(
        self,
        value: T,
        name: str = "",
        equality: Optional[Equality] = None,
    ) -> None:
        self._value = value
        self.name = name
        self._equality = equality or safe_equal
        self._subscriptions: List[Subscription] = []

    def __repr__(self) -> str:
        return f"Signal({self.name or '?'}={self._value!r})"

    @property
    def value(self) -> T:
        return self._value

    def set(self, value: T, force: bool = False) -> bool:
        """Store ``value`` and notify subscribers.

        Returns:
            True if subscribers were notified, False when the value was
            equal to the current one and ``force`` was not given.
        """
        if not force and self._equality(self._value, value):
            return False
        self._value = value
        self.notify()
        return True

    def notify(self) -> None:
        """Deliver the current value to every subscriber, in subscription order."""
        for subscription in list(self._subscriptions):
            if subscription.active:
                subscription.callback(self._value)

    def subscribe(self, callback: Callback, emit_current: bool = False) -> Subscription:
        subscription = Subscription(self, callback)
        self._subscriptions.append(subscription)
        if emit_current:
            callback(self._value)
        return subscription

    def _unsubscribe(self, subscription: Subscription) -> None:
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)

    # Combinators -------------------------------------------------------
    def map(self, fn: Callable[[T], U], name: str = "") -> "Signal[U]":
        """Derived signal holding ``fn(value)``."""
        derived: Signal[U] = Signal(fn(self._value), name=name or f"{self.name}.map")
        self.subscribe(lambda value: derived.set(fn(value)))
        return derived

    def throttle(self, window: float, scheduler: Scheduler) -> "ThrottledSignal[T]":
        """At most one value per ``window`` seconds, always the most recent."""
        return ThrottledSignal(self, window, scheduler)

    def debounce(self, window: float, scheduler: Scheduler) -> "DebouncedSignal[T]":
        """The latest value, once ``window`` seconds pass without a new one."""
        return DebouncedSignal(self, window, scheduler)


def combine(
    signals: Sequence[Signal],
    fn: Callable[..., T],
    name: str = "",
    equality: Optional[Equality] = None,
) -> Signal[T]:
    """Derived signal holding ``fn(*[s.value for s in signals])``."""
    sources = list(signals)

    def compute() -> T:
        return fn(*[source.value for source in sources])

    derived: Signal[T] = Signal(compute(), name=name or "combined", equality=equality)
    for source in sources:
        source.subscribe(lambda _value: derived.set(compute()))
    return derived


class ThrottledSignal(Signal[T]):
    """Leading and trailing edge throttle of a source signal.

    The first change after a quiet period is forwarded immediately and opens
    a window. Changes inside the window are held; when the window closes the
    latest held value is forwarded and a new window opens.
    """

    def __init__(self, source: Signal[T], window: float, scheduler: Scheduler) -> None:
        super().__init__(source.value, name=f"{source.name}.throttle")
        self.window = float(window)
        self._scheduler = scheduler
        self._timer: Optional[TimerHandle] = None
        self._has_pending = False
        self._pending: Any = None
        self.source_subscription = source.subscribe(self._on_source)

    @property
    def pending(self) -> bool:
        return self._has_pending

    def _on_source(self, value: T) -> None:
        if self._timer is None:
            self._open_window()
            self.set(value)
        else:
            self._pending = value
            self._has_pending = True

    def _open_window(self) -> None:
        self._timer = self._scheduler.call_later(self.window, self._on_window_end)

    def _on_window_end(self) -> None:
        self._timer = None
        if self._has_pending:
            value = self._pending
            self._has_pending = False
            self._pending = None
            self._open_window()
            self.set(value)

    def flush(self) -> None:
        """Forward a held value now and close the window."""
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        if self._has_pending:
            value = self._pending
            self._has_pending = False
            self._pending = None
            self.set(value)

    def dispose(self) -> None:
        self.source_subscription.cancel()
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        self._has_pending = False


class DebouncedSignal(Signal[T]):
    """Forwards the latest source value after a quiet period.

    Every source change restarts the window. Delivery is forced, so the
    debounced signal fires once per settled burst even when the settled value
    equals the previous delivery.
    """

    def __init__(self, source: Signal[T], window: float, scheduler: Scheduler) -> None:
        super().__init__(source.value, name=f"{source.name}.debounce")
        self.window = float(window)
        self._scheduler = scheduler
        self._timer: Optional[TimerHandle] = None
        self._latest: Any = source.value
        self.source_subscription = source.subscribe(self._on_source)

    @property
    def pending(self) -> bool:
        return self._timer is not None

    def _on_source(self, value: T) -> None:
        self._latest = value
        if self._timer is not None:
            self._timer.cancel()
        self._timer = self._scheduler.call_later(self.window, self._on_quiet)

    def _on_quiet(self) -> None:
        self._timer = None
        self.set(self._latest, force=True)

    def flush(self) -> None:
        """Deliver a pending value immediately."""
        if self._timer is not None:
            self._timer.cancel()
            self._on_quiet()

    def cancel(self) -> None:
        """Drop a pending delivery."""
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def dispose(self) -> None:
        self.source_subscription.cancel()
        self.cancel()
