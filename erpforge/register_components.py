"""Auto-registration of all ERPForge engine components.

Registers the onset models, noise models and model-category builders under
the labels the dashboard shows. Call :func:`register_all` before resolving
names; it is idempotent.

Example:
    >>> from erpforge.register_components import register_all
    >>> register_all()
    >>> from erpforge.registry import ONSET_REGISTRY
    >>> onset = ONSET_REGISTRY.create("Uniform", width=50, uniform_offset=20)
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Sequence

import numpy as np

from erpforge.constants import (
    LINEAR_MODEL,
    MIXED_MODEL,
    MIXED_MODEL_FORMULA,
    MULTICHANNEL_FORMULA,
    MULTICHANNEL_MODEL,
    MULTICHANNEL_SOURCES,
)
from erpforge.engine.components import (
    LinearModelComponent,
    MixedModelComponent,
    MultichannelComponent,
    parse_projection,
)
from erpforge.engine.design import Design
from erpforge.engine.formula import design_matrix, parse_formula
from erpforge.engine.head_model import HeadModel
from erpforge.engine.noise import NoNoise, PinkNoise, RedNoise, WhiteNoise
from erpforge.engine.onsets import LogNormalOnset, NoOnset, UniformOnset
from erpforge.registry import MODEL_REGISTRY, NOISE_REGISTRY, ONSET_REGISTRY


def linear_beta(n_columns: int, beta: float, contrast: float) -> List[float]:
    """``[beta, contrast, contrast/2, contrast/2, ...]`` with ``n_columns`` entries."""
    weights = [beta]
    for index in range(1, n_columns):
        weights.append(contrast if index == 1 else contrast * 0.5)
    return weights


def register_all() -> None:
    """Register all ERPForge components with their registries."""

    # Onset models
    def create_uniform_onset(width: int = 50, uniform_offset: int = 0, **_: Any) -> UniformOnset:
        return UniformOnset(width=width, offset=uniform_offset)

    def create_lognormal_onset(
        mu: float = 0.0,
        sigma: float = 1.0,
        offset: int = 0,
        truncate_lower: int = 0,
        truncate_upper: int = 1000,
        **_: Any,
    ) -> LogNormalOnset:
        return LogNormalOnset(
            mu=mu,
            sigma=sigma,
            offset=offset,
            truncate_lower=truncate_lower,
            truncate_upper=truncate_upper,
        )

    def create_no_onset(**_: Any) -> NoOnset:
        return NoOnset()

    ONSET_REGISTRY.register("Uniform", UniformOnset, create_uniform_onset)
    ONSET_REGISTRY.register("Log Normal", LogNormalOnset, create_lognormal_onset)
    ONSET_REGISTRY.register("No Onset", NoOnset, create_no_onset)

    # Noise models
    def noise_factory(cls):
        def create(noiselevel: float = 1.0, **_: Any):
            return cls(noiselevel=noiselevel)
        return create

    NOISE_REGISTRY.register("No Noise", NoNoise, noise_factory(NoNoise))
    NOISE_REGISTRY.register("White", WhiteNoise, noise_factory(WhiteNoise))
    NOISE_REGISTRY.register("Pink", PinkNoise, noise_factory(PinkNoise))
    NOISE_REGISTRY.register("Red", RedNoise, noise_factory(RedNoise))

    # Model categories -> component(s)
    def create_linear_model(
        basis: np.ndarray,
        formula: str,
        beta: float,
        contrast: float,
        contrasts: Mapping[str, str],
        design: Design,
        **_: Any,
    ) -> LinearModelComponent:
        spec = parse_formula(formula)
        _, matrix = design_matrix(spec, design.events, design.levels, contrasts)
        weights = linear_beta(matrix.shape[1], beta, contrast)
        return LinearModelComponent(basis, spec, weights, contrasts)

    def create_mixed_model(
        basis: np.ndarray,
        beta: float,
        contrast: float,
        sigma: float,
        contrasts: Mapping[str, str],
        **_: Any,
    ) -> MixedModelComponent:
        return MixedModelComponent(
            basis,
            parse_formula(MIXED_MODEL_FORMULA),
            [beta, contrast],
            sigmas={"subject": [sigma, sigma]},
            contrasts=contrasts,
        )

    def create_multichannel_model(
        basis: np.ndarray,
        beta: float,
        projection: str,
        head_model: HeadModel,
        sources: Sequence[str] = MULTICHANNEL_SOURCES,
        **_: Any,
    ) -> List[MultichannelComponent]:
        orientation = parse_projection(projection)
        base = LinearModelComponent(basis, parse_formula(MULTICHANNEL_FORMULA), [beta])
        return [
            MultichannelComponent(base, head_model, [label], orientation)
            for label in sources
        ]

    MODEL_REGISTRY.register(LINEAR_MODEL, LinearModelComponent, create_linear_model)
    MODEL_REGISTRY.register(MIXED_MODEL, MixedModelComponent, create_mixed_model)
    MODEL_REGISTRY.register(MULTICHANNEL_MODEL, MultichannelComponent, create_multichannel_model)


def registered_components() -> Dict[str, List[str]]:
    """Registry name -> registered labels, for listings."""
    return {
        "onset": ONSET_REGISTRY.list_registered(),
        "noise": NOISE_REGISTRY.list_registered(),
        "model": MODEL_REGISTRY.list_registered(),
    }
