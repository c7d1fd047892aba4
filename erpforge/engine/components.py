"""Simulation components.

A component turns a design's event table into per-event responses of shape
``(n_channels, n_events, n_basis)``: the basis function scaled by each
event's amplitude. Single-channel components report one channel;
:class:`MultichannelComponent` projects a component onto the electrodes of
a head model.
"""

from __future__ import annotations

import re
from typing import Dict, List, Mapping, Optional, Sequence

import numpy as np
import pandas as pd

from erpforge.engine.formula import FormulaSpec, design_matrix, random_design_matrices
from erpforge.engine.head_model import HeadModel
from erpforge.errors import ComputeError, ExpressionParseError

_FLOAT = r"[-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?"


def parse_projection(text: str, length: int = 3) -> np.ndarray:
    """Parse a bracketed list of float literals, e.g. ``[1.0, 0.5, -0.2]``.

    Raises:
        ExpressionParseError: If the text is not a list of ``length`` numbers.
    """
    if not isinstance(text, str):
        raise ExpressionParseError(f"Projection must be text, got {type(text).__name__}")
    stripped = text.strip()
    if not (stripped.startswith("[") and stripped.endswith("]")):
        raise ExpressionParseError(f"Projection must be a bracketed list, got {text!r}")
    body = stripped[1:-1].strip()
    items = [item.strip() for item in body.split(",")] if body else []
    for item in items:
        if not re.fullmatch(_FLOAT, item):
            raise ExpressionParseError(f"Projection entries must be numbers, got {item!r}")
    if len(items) != length:
        raise ExpressionParseError(
            f"Projection needs {length} values, got {len(items)}",
            details={"projection": text},
        )
    return np.array([float(item) for item in items], dtype=np.float64)


class LinearModelComponent:
    """Fixed-effects component: amplitude = ``X @ beta``.

    Args:
        basis: Response shape, ``(n_basis,)``.
        formula: Parsed formula (random effects ignored).
        beta: One weight per design-matrix column.
        contrasts: Variable -> coding name.
    """

    n_channels = 1

    def __init__(
        self,
        basis: np.ndarray,
        formula: FormulaSpec,
        beta: Sequence[float],
        contrasts: Optional[Mapping[str, str]] = None,
    ) -> None:
        self.basis = np.asarray(basis, dtype=np.float64)
        self.formula = formula
        self.beta = np.asarray(beta, dtype=np.float64)
        self.contrasts = dict(contrasts or {})

    def __len__(self) -> int:
        return int(self.basis.shape[0])

    def fixed_amplitudes(self, events: pd.DataFrame, levels: Mapping[str, Sequence[str]]) -> np.ndarray:
        labels, matrix = design_matrix(self.formula, events, levels, self.contrasts)
        if matrix.shape[1] != self.beta.shape[0]:
            raise ComputeError(
                f"beta has {self.beta.shape[0]} entries but the formula has "
                f"{matrix.shape[1]} columns ({', '.join(labels)})"
            )
        return matrix @ self.beta

    def amplitudes(
        self,
        events: pd.DataFrame,
        levels: Mapping[str, Sequence[str]],
        rng: np.random.Generator,
    ) -> np.ndarray:
        return self.fixed_amplitudes(events, levels)

    def simulate(
        self,
        events: pd.DataFrame,
        levels: Mapping[str, Sequence[str]],
        rng: np.random.Generator,
    ) -> np.ndarray:
        amplitudes = self.amplitudes(events, levels, rng)
        return (amplitudes[:, None] * self.basis[None, :])[None, :, :]


class MixedModelComponent(LinearModelComponent):
    """Fixed effects plus normally distributed per-group random effects.

    Args:
        sigmas: Grouping variable -> standard deviation per random column.
    """

    def __init__(
        self,
        basis: np.ndarray,
        formula: FormulaSpec,
        beta: Sequence[float],
        sigmas: Mapping[str, Sequence[float]],
        contrasts: Optional[Mapping[str, str]] = None,
    ) -> None:
        super().__init__(basis, formula, beta, contrasts)
        self.sigmas: Dict[str, np.ndarray] = {
            group: np.asarray(values, dtype=np.float64) for group, values in sigmas.items()
        }

    def amplitudes(
        self,
        events: pd.DataFrame,
        levels: Mapping[str, Sequence[str]],
        rng: np.random.Generator,
    ) -> np.ndarray:
        amplitudes = self.fixed_amplitudes(events, levels)
        for group, z in random_design_matrices(self.formula, events, levels, self.contrasts).items():
            if group not in self.sigmas:
                raise ComputeError(f"No random-effect widths given for '{group}'")
            sigma = self.sigmas[group]
            if sigma.shape[0] != z.shape[1]:
                raise ComputeError(
                    f"'{group}' has {z.shape[1]} random columns but {sigma.shape[0]} widths"
                )
            codes, uniques = pd.factorize(events[group], sort=True)
            effects = rng.normal(size=(len(uniques), z.shape[1])) * sigma[None, :]
            amplitudes = amplitudes + np.sum(z * effects[codes], axis=1)
        return amplitudes


class MultichannelComponent:
    """Projects a single-channel component through head-model sources.

    Args:
        component: Single-channel component.
        head_model: Head model providing the leadfield.
        sources: Source labels; their projections are summed.
        orientation: Dipole moment ``(x, y, z)`` used at every source.
    """

    def __init__(
        self,
        component: LinearModelComponent,
        head_model: HeadModel,
        sources: Sequence[str],
        orientation: Sequence[float],
    ) -> None:
        self.component = component
        self.head_model = head_model
        self.sources: List[str] = list(sources)
        self.weights = np.sum(
            [head_model.projection(label, orientation) for label in self.sources], axis=0
        )

    @property
    def n_channels(self) -> int:
        return self.head_model.n_channels

    def __len__(self) -> int:
        return len(self.component)

    def simulate(
        self,
        events: pd.DataFrame,
        levels: Mapping[str, Sequence[str]],
        rng: np.random.Generator,
    ) -> np.ndarray:
        single = self.component.simulate(events, levels, rng)[0]
        return self.weights[:, None, None] * single[None, :, :]
