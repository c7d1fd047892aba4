"""Immutable simulation results."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Optional

import numpy as np
import pandas as pd


@dataclass(frozen=True)
class OnsetParams:
    """Onset-model settings (slider positions) a result was produced with."""

    choice: str = "No Onset"
    mu: float = 0.0
    sigma: float = 0.0
    offset: float = 0
    truncate_lower: float = 0
    truncate_upper: float = 0
    width: float = 0
    uniform_offset: float = 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _frozen_array(values: Any, ndim: int) -> np.ndarray:
    array = np.array(values, dtype=np.float64, copy=True)
    if array.ndim != ndim:
        raise ValueError(f"Expected a {ndim}-D array, got shape {array.shape}")
    array.setflags(write=False)
    return array


@dataclass(frozen=True, eq=False)
class SimulationResult:
    """Output of one recompute.

    Attributes:
        time: Sample times in seconds, shape ``(n,)``.
        noisy: Display channel with the configured noise, shape ``(n,)``.
        clean: Display channel without noise, shape ``(n,)``.
        events: Event / trial table returned by the engine.
        err: Error message; empty on success.
        onset_params: Onset settings used for the run.
        multichannel_noisy: Full ``(n, n_channels)`` matrix in multi-channel
            mode, else ``None``.
        multichannel_clean: Noise-free counterpart of ``multichannel_noisy``.
    """

    time: np.ndarray
    noisy: np.ndarray
    clean: np.ndarray
    events: pd.DataFrame = field(default_factory=pd.DataFrame)
    err: str = ""
    onset_params: OnsetParams = field(default_factory=OnsetParams)
    multichannel_noisy: Optional[np.ndarray] = None
    multichannel_clean: Optional[np.ndarray] = None

    def __post_init__(self) -> None:
        time = _frozen_array(self.time, 1)
        noisy = _frozen_array(self.noisy, 1)
        clean = _frozen_array(self.clean, 1)
        if not (len(time) == len(noisy) == len(clean)):
            raise ValueError(
                "time, noisy and clean must share one length, got "
                f"{len(time)}, {len(noisy)}, {len(clean)}"
            )
        object.__setattr__(self, "time", time)
        object.__setattr__(self, "noisy", noisy)
        object.__setattr__(self, "clean", clean)
        object.__setattr__(self, "events", self.events.copy())
        for name in ("multichannel_noisy", "multichannel_clean"):
            matrix = getattr(self, name)
            if matrix is not None:
                object.__setattr__(self, name, _frozen_array(matrix, 2))

    @classmethod
    def failure(cls, message: str) -> SimulationResult:
        """Error result with single-point placeholder series."""
        return cls(
            time=[0.0],
            noisy=[0.0],
            clean=[0.0],
            events=pd.DataFrame(),
            err=str(message),
            onset_params=OnsetParams(),
        )

    @property
    def ok(self) -> bool:
        return not self.err

    @property
    def n_samples(self) -> int:
        return int(self.time.shape[0])

    @property
    def noisy_points(self) -> np.ndarray:
        """``(n, 2)`` array of ``(time, value)`` pairs."""
        return np.column_stack([self.time, self.noisy])

    @property
    def clean_points(self) -> np.ndarray:
        return np.column_stack([self.time, self.clean])

    def summary(self) -> Dict[str, Any]:
        """Plain-dict digest for logs, YAML output and snapshots."""
        data: Dict[str, Any] = {
            "err": self.err,
            "n_samples": self.n_samples,
            "n_events": int(len(self.events)),
            "duration_s": float(self.time[-1] - self.time[0]) if self.n_samples else 0.0,
            "clean_peak": float(np.max(np.abs(self.clean))) if self.n_samples else 0.0,
            "onset_params": self.onset_params.to_dict(),
        }
        if self.multichannel_clean is not None:
            data["n_channels"] = int(self.multichannel_clean.shape[1])
        return data
