"""Per-channel amplitude metrics and peak picking for simulation results.

These are plain functions over arrays; they never touch the signal graph.
"""

from __future__ import annotations

from typing import Optional, Sequence

import numpy as np
import pandas as pd

from erpforge.core.results import SimulationResult

METRIC_COLUMNS = ("rms", "peak_amplitude", "mean_amplitude", "std")


def channel_metrics(data: np.ndarray, channel_names: Optional[Sequence[str]] = None) -> pd.DataFrame:
    """Amplitude statistics for each column of a ``(n_samples, n_channels)`` matrix.

    Args:
        data: Samples by channels. A 1-D array is treated as one channel.
        channel_names: Row labels; defaults to ``ch0``, ``ch1``, ...

    Returns:
        DataFrame indexed by channel with ``rms``, ``peak_amplitude``
        (max absolute value), ``mean_amplitude`` and ``std`` (sample
        standard deviation, ``ddof=1``).
    """
    matrix = np.asarray(data, dtype=np.float64)
    if matrix.ndim == 1:
        matrix = matrix[:, np.newaxis]
    if matrix.ndim != 2 or matrix.shape[0] == 0:
        raise ValueError(f"Expected a non-empty (n_samples, n_channels) array, got shape {matrix.shape}")
    n_channels = matrix.shape[1]
    if channel_names is None:
        channel_names = [f"ch{i}" for i in range(n_channels)]
    if len(channel_names) != n_channels:
        raise ValueError(f"Got {len(channel_names)} channel names for {n_channels} channels")

    std = matrix.std(axis=0, ddof=1) if matrix.shape[0] > 1 else np.zeros(n_channels)
    return pd.DataFrame(
        {
            "rms": np.sqrt(np.mean(matrix ** 2, axis=0)),
            "peak_amplitude": np.max(np.abs(matrix), axis=0),
            "mean_amplitude": matrix.mean(axis=0),
            "std": std,
        },
        index=pd.Index(list(channel_names), name="channel"),
    )


def result_metrics(
    result: SimulationResult, channel_names: Optional[Sequence[str]] = None
) -> pd.DataFrame:
    """Metrics of a result's noise-free data.

    Uses ``multichannel_clean`` when present, otherwise the display channel.
    """
    if not result.ok:
        raise ValueError(f"Cannot compute metrics of a failed result: {result.err}")
    if result.multichannel_clean is not None:
        return channel_metrics(result.multichannel_clean, channel_names)
    return channel_metrics(result.clean, channel_names)


def detect_peaks(signal: np.ndarray, threshold: float = 0.5) -> np.ndarray:
    """Indices of interior local maxima of ``|signal|`` above ``threshold``.

    A sample counts when its magnitude is strictly greater than both
    neighbours; plateaus and the two end samples never count.
    """
    magnitude = np.abs(np.asarray(signal, dtype=np.float64))
    if magnitude.ndim != 1:
        raise ValueError(f"Expected a 1-D signal, got shape {magnitude.shape}")
    if magnitude.size < 3:
        return np.array([], dtype=np.int64)
    middle = magnitude[1:-1]
    mask = (middle > threshold) & (middle > magnitude[:-2]) & (middle > magnitude[2:])
    return np.flatnonzero(mask) + 1
