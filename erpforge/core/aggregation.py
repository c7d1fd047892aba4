"""Cumulative view over all tabs' cached results.

:func:`aggregate_results` is pure: it picks a reference time base (the
longest successful result, lowest tab id on ties), sums clean and noisy
series sample-wise over every successful result, and derives approximate
subject separators. Results carrying an error are skipped, never fatal.
:class:`ResultAggregator` recomputes the view whenever the cache changes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Iterable, List, Optional, Tuple

import numpy as np
import pandas as pd
import structlog

from erpforge.constants import MAX_TABS
from erpforge.core.results import SimulationResult
from erpforge.core.signals import Signal

if TYPE_CHECKING:  # pragma: no cover - import for type checking only
    from erpforge.core.orchestrator import ResultCache

logger = structlog.get_logger(__name__)


@dataclass(frozen=True, eq=False)
class TabTrace:
    """One included tab's series for per-tab overlays."""

    tab_id: int
    time: np.ndarray
    clean: np.ndarray
    noisy: np.ndarray


@dataclass(frozen=True, eq=False)
class CumulativeView:
    """Sum of all successful cached results.

    Attributes:
        time: Reference time base.
        clean: Sample-wise sum of clean series.
        noisy: Sample-wise sum of noisy series.
        separators: Approximate subject boundaries (seconds).
        traces: Included per-tab series, ordered by tab id.
        events: Event table of the first result with subject information.
        n_contributors: Number of summed results.
        skipped: Tab ids excluded because their result carries an error.
    """

    time: np.ndarray
    clean: np.ndarray
    noisy: np.ndarray
    separators: Tuple[float, ...] = ()
    traces: Tuple[TabTrace, ...] = ()
    events: Optional[pd.DataFrame] = None
    n_contributors: int = 0
    skipped: Tuple[int, ...] = field(default_factory=tuple)

    @classmethod
    def empty(cls, skipped: Iterable[int] = ()) -> CumulativeView:
        """Placeholder view with the single point ``(0, 0)``."""
        return cls(
            time=np.zeros(1),
            clean=np.zeros(1),
            noisy=np.zeros(1),
            skipped=tuple(skipped),
        )

    @property
    def clean_points(self) -> np.ndarray:
        return np.column_stack([self.time, self.clean])

    @property
    def noisy_points(self) -> np.ndarray:
        return np.column_stack([self.time, self.noisy])


def subject_separators(time: np.ndarray, events: pd.DataFrame) -> Tuple[float, ...]:
    """Evenly spaced boundaries between subjects over ``time``.

    Returns an empty tuple unless ``events`` has a ``subject`` column with
    more than one distinct value.
    """
    if events is None or "subject" not in events.columns or len(time) == 0:
        return ()
    n_subjects = int(events["subject"].nunique())
    if n_subjects <= 1:
        return ()
    t0 = float(time[0])
    span = float(time[-1]) - t0
    return tuple(t0 + i * span / n_subjects for i in range(1, n_subjects))


def aggregate_results(
    items: Iterable[Tuple[int, SimulationResult]],
    max_traces: int = MAX_TABS,
) -> CumulativeView:
    """Combine ``(tab_id, result)`` pairs into a :class:`CumulativeView`."""
    included: List[Tuple[int, SimulationResult]] = []
    skipped: List[int] = []
    for tab_id, result in sorted(items, key=lambda item: item[0]):
        if result.err:
            logger.debug("Skipping failed result in aggregation", tab_id=tab_id, error=result.err)
            skipped.append(tab_id)
            continue
        included.append((tab_id, result))
    if not included:
        return CumulativeView.empty(skipped)

    # max() keeps the first maximum, i.e. the lowest tab id on ties
    _, reference = max(included, key=lambda item: item[1].n_samples)
    ref_len = reference.n_samples
    clean = np.zeros(ref_len)
    noisy = np.zeros(ref_len)
    for _, result in included:
        n = min(result.n_samples, ref_len)
        clean[:n] += result.clean[:n]
        noisy[:n] += result.noisy[:n]

    separators: Tuple[float, ...] = ()
    subject_events: Optional[pd.DataFrame] = None
    for _, result in included:
        separators = subject_separators(reference.time, result.events)
        if separators:
            subject_events = result.events
            break

    traces = tuple(
        TabTrace(tab_id, result.time, result.clean, result.noisy)
        for tab_id, result in included[:max_traces]
    )
    return CumulativeView(
        time=np.array(reference.time),
        clean=clean,
        noisy=noisy,
        separators=separators,
        traces=traces,
        events=subject_events,
        n_contributors=len(included),
        skipped=tuple(skipped),
    )


class ResultAggregator:
    """Keeps ``cumulative`` up to date with a :class:`ResultCache`."""

    def __init__(self, cache: ResultCache, max_traces: int = MAX_TABS) -> None:
        self.cache = cache
        self.max_traces = max_traces
        self.cumulative: Signal[CumulativeView] = Signal(
            self._compute(), name="cumulative", equality=lambda a, b: a is b
        )
        self._subscription = cache.changed.subscribe(lambda _revision: self.refresh())

    def _compute(self) -> CumulativeView:
        return aggregate_results(self.cache.items(), self.max_traces)

    def refresh(self) -> CumulativeView:
        view = self._compute()
        self.cumulative.set(view)
        return view

    def dispose(self) -> None:
        self._subscription.cancel()
