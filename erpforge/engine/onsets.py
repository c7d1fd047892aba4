"""Event onset models.

An onset model draws the inter-event distances (in samples) used to place
event responses on a continuous time axis. :class:`NoOnset` means the
simulation is returned epoched instead.
"""

from __future__ import annotations

import numpy as np


class OnsetModel:
    """Base class; subclasses implement :meth:`distances`."""

    epoched = False

    def distances(self, rng: np.random.Generator, n_events: int) -> np.ndarray:
        raise NotImplementedError

    def latencies(self, rng: np.random.Generator, n_events: int) -> np.ndarray:
        """Cumulative onset latencies in samples, starting at the first distance."""
        distances = self.distances(rng, n_events)
        return np.cumsum(distances).astype(np.int64)


class UniformOnset(OnsetModel):
    """Distances uniform on ``[offset, offset + width]``."""

    def __init__(self, width: int = 50, offset: int = 0) -> None:
        if width < 0:
            raise ValueError("width must be non-negative")
        self.width = int(width)
        self.offset = int(offset)

    def distances(self, rng: np.random.Generator, n_events: int) -> np.ndarray:
        return self.offset + rng.integers(0, self.width + 1, size=n_events)


class LogNormalOnset(OnsetModel):
    """Log-normal distances truncated to ``[truncate_lower, truncate_upper]``, plus offset."""

    def __init__(
        self,
        mu: float = 0.0,
        sigma: float = 1.0,
        offset: int = 0,
        truncate_lower: int = 0,
        truncate_upper: int = 1000,
    ) -> None:
        if sigma <= 0:
            raise ValueError("sigma must be positive")
        if truncate_lower > truncate_upper:
            raise ValueError("truncate_lower must not exceed truncate_upper")
        self.mu = float(mu)
        self.sigma = float(sigma)
        self.offset = int(offset)
        self.truncate_lower = int(truncate_lower)
        self.truncate_upper = int(truncate_upper)

    def distances(self, rng: np.random.Generator, n_events: int) -> np.ndarray:
        raw = rng.lognormal(mean=self.mu, sigma=self.sigma, size=n_events)
        clipped = np.clip(np.round(raw), self.truncate_lower, self.truncate_upper)
        return self.offset + clipped.astype(np.int64)


class NoOnset(OnsetModel):
    """No continuous placement; the engine returns epochs."""

    epoched = True

    def distances(self, rng: np.random.Generator, n_events: int) -> np.ndarray:
        return np.zeros(n_events, dtype=np.int64)
