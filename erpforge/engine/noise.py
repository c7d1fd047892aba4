"""
engine/noise.py
---------------
Additive noise models for simulated EEG.

Every model is an ``nn.Module`` with a per-instance ``torch.Generator`` so a
simulation can be repeated bit-for-bit by reseeding, without touching the
global RNG state. Signals are processed with time on the last dimension.
"""

from typing import Optional

import numpy as np
import torch
import torch.nn as nn
from scipy.signal import lfilter


class NoiseModel(nn.Module):
    """Base class for additive noise.

    Args:
        noiselevel: Standard deviation scale of the added noise.
        seed: Optional seed for the local generator.
    """

    def __init__(self, noiselevel: float = 1.0, seed: Optional[int] = None) -> None:
        super().__init__()
        self.noiselevel = float(noiselevel)
        self.seed = seed
        self._generator = torch.Generator()
        if seed is not None:
            self._generator.manual_seed(seed)

    def manual_seed(self, seed: int) -> None:
        self.seed = int(seed)
        self._generator.manual_seed(self.seed)

    def reset_state(self) -> None:
        """Reset generator to initial seed for reproducibility."""
        if self.seed is not None:
            self._generator.manual_seed(self.seed)

    def sample(self, shape: torch.Size, dtype: torch.dtype) -> torch.Tensor:
        raise NotImplementedError

    def forward(self, signal: torch.Tensor) -> torch.Tensor:
        """Add noise to ``signal`` (``[..., time]``)."""
        if self.noiselevel == 0.0:
            return signal
        return signal + self.sample(signal.shape, signal.dtype) * self.noiselevel


class NoNoise(NoiseModel):
    """Pass-through model used for the clean series."""

    def __init__(self, noiselevel: float = 0.0, seed: Optional[int] = None) -> None:
        super().__init__(noiselevel=0.0, seed=seed)

    def forward(self, signal: torch.Tensor) -> torch.Tensor:
        return signal


class WhiteNoise(NoiseModel):
    """Independent Gaussian samples."""

    def sample(self, shape: torch.Size, dtype: torch.dtype) -> torch.Tensor:
        return torch.randn(shape, generator=self._generator, dtype=dtype)


class PinkNoise(NoiseModel):
    """1/f noise shaped in the frequency domain, unit variance per trace."""

    def sample(self, shape: torch.Size, dtype: torch.dtype) -> torch.Tensor:
        n = shape[-1]
        white = torch.randn(shape, generator=self._generator, dtype=torch.float64)
        if n < 2:
            return white.to(dtype)
        spectrum = torch.fft.rfft(white, dim=-1)
        freqs = torch.arange(spectrum.shape[-1], dtype=torch.float64)
        freqs[0] = 1.0
        pink = torch.fft.irfft(spectrum / torch.sqrt(freqs), n=n, dim=-1)
        std = pink.std(dim=-1, keepdim=True).clamp_min(1e-12)
        return ((pink - pink.mean(dim=-1, keepdim=True)) / std).to(dtype)


class RedNoise(NoiseModel):
    """Brown-ish AR(1) noise, unit variance per trace.

    Args:
        coefficient: AR(1) coefficient; closer to 1 gives redder noise.
    """

    def __init__(
        self,
        noiselevel: float = 1.0,
        seed: Optional[int] = None,
        coefficient: float = 0.95,
    ) -> None:
        super().__init__(noiselevel=noiselevel, seed=seed)
        self.coefficient = float(coefficient)

    def sample(self, shape: torch.Size, dtype: torch.dtype) -> torch.Tensor:
        white = torch.randn(shape, generator=self._generator, dtype=torch.float64).numpy()
        red = lfilter([1.0], [1.0, -self.coefficient], white, axis=-1)
        std = red.std(axis=-1, keepdims=True)
        red = (red - red.mean(axis=-1, keepdims=True)) / np.maximum(std, 1e-12)
        return torch.from_numpy(red).to(dtype)
