"""Spherical head model with a dipole leadfield.

The model is built once (:meth:`HeadModel.standard`) and passed to whatever
needs it. Electrodes sit on the unit sphere following the 10-20 positions
of a 32-channel cap; sources are points inside the sphere. The leadfield
holds the potential at each electrode of a unit dipole along x, y and z at
each source.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Sequence, Tuple

import numpy as np

from erpforge.errors import ComputeError

# channel -> (polar angle from vertex, azimuth from nose, positive to the left), degrees
STANDARD_CHANNELS: Dict[str, Tuple[float, float]] = {
    "Fp1": (90, 18), "Fp2": (90, -18), "AF3": (74, 23), "AF4": (74, -23),
    "F7": (90, 54), "F3": (60, 40), "Fz": (45, 0), "F4": (60, -40),
    "F8": (90, -54), "FC5": (72, 69), "FC1": (32, 45), "FC2": (32, -45),
    "FC6": (72, -69), "T7": (90, 90), "C3": (45, 90), "Cz": (0, 0),
    "C4": (45, -90), "T8": (90, -90), "CP5": (72, 111), "CP1": (32, 135),
    "CP2": (32, -135), "CP6": (72, -111), "P7": (90, 126), "P3": (60, 140),
    "Pz": (45, 180), "P4": (60, -140), "P8": (90, -126), "PO3": (74, 157),
    "PO4": (74, -157), "O1": (90, 162), "Oz": (90, 180), "O2": (90, -162),
}

# source -> (x, y, z); x to the right, y to the nose, z up
STANDARD_SOURCES: Dict[str, Tuple[float, float, float]] = {
    "Left Postcentral Gyrus": (-0.5, -0.1, 0.55),
    "Right Postcentral Gyrus": (0.5, -0.1, 0.55),
    "Left Occipital Pole": (-0.2, -0.75, 0.1),
    "Right Occipital Pole": (0.2, -0.75, 0.1),
}


def _sphere_positions(angles: Sequence[Tuple[float, float]]) -> np.ndarray:
    polar = np.deg2rad([a[0] for a in angles])
    azimuth = np.deg2rad([a[1] for a in angles])
    x = -np.sin(polar) * np.sin(azimuth)
    y = np.sin(polar) * np.cos(azimuth)
    z = np.cos(polar)
    return np.column_stack([x, y, z])


@dataclass(frozen=True, eq=False)
class HeadModel:
    """Electrode layout, source positions and leadfield.

    Attributes:
        channels: Electrode labels.
        electrode_positions: ``(n_channels, 3)``.
        sources: Source labels.
        source_positions: ``(n_sources, 3)``.
        leadfield: ``(n_channels, n_sources, 3)``.
    """

    channels: Tuple[str, ...]
    electrode_positions: np.ndarray
    sources: Tuple[str, ...]
    source_positions: np.ndarray
    leadfield: np.ndarray

    @classmethod
    def standard(cls) -> HeadModel:
        channels = tuple(STANDARD_CHANNELS)
        electrodes = _sphere_positions(list(STANDARD_CHANNELS.values()))
        sources = tuple(STANDARD_SOURCES)
        positions = np.array(list(STANDARD_SOURCES.values()), dtype=np.float64)
        delta = electrodes[:, None, :] - positions[None, :, :]
        distance = np.linalg.norm(delta, axis=-1, keepdims=True)
        leadfield = delta / distance ** 3
        for array in (electrodes, positions, leadfield):
            array.setflags(write=False)
        return cls(channels, electrodes, sources, positions, leadfield)

    @property
    def n_channels(self) -> int:
        return len(self.channels)

    def channel_index(self, name: str, default: int = 0) -> int:
        """Index of channel ``name``, or ``default`` when absent."""
        try:
            return self.channels.index(name)
        except ValueError:
            return default

    def source_index(self, label: str) -> int:
        try:
            return self.sources.index(label)
        except ValueError:
            raise ComputeError(
                f"Unknown source '{label}'. Available: {', '.join(self.sources)}"
            ) from None

    def projection(self, label: str, orientation: Sequence[float]) -> np.ndarray:
        """Channel weights of a dipole at source ``label``, peak-normalised.

        Args:
            label: Source label.
            orientation: Dipole moment ``(x, y, z)``.
        """
        moment = np.asarray(orientation, dtype=np.float64)
        if moment.shape != (3,):
            raise ComputeError(f"Dipole orientation needs 3 values, got {moment.size}")
        weights = self.leadfield[:, self.source_index(label), :] @ moment
        peak = np.max(np.abs(weights))
        return weights / peak if peak > 0 else weights
