"""Reference simulation engine.

The dashboard core only depends on :class:`SimulationEngineProtocol`; this
module provides a deterministic implementation of it:

1. Every component turns the design's events into per-event responses.
2. Responses are either returned epoched (``return_epoched=True``) or
   overlap-added onto a continuous time axis at latencies drawn from the
   onset model.
3. The noise model is applied along time.

All randomness comes from ``seed``: component and onset draws from a numpy
``Generator``, noise from the noise model's own torch generator reseeded
with ``seed``. Two calls with the same seed and different noise models
therefore share identical structure and differ only by the added noise.

Output shapes:
    single channel: ``(n_samples,)`` continuous, ``(n_basis, n_events)`` epoched.
    multichannel: ``(n_channels, n_samples)`` continuous,
    ``(n_channels, n_basis, n_events)`` epoched.
"""

from __future__ import annotations

from typing import Any, List, Protocol, Sequence, Tuple, Union

import numpy as np
import pandas as pd
import structlog
import torch

from erpforge.engine.design import Design
from erpforge.engine.noise import NoiseModel
from erpforge.engine.onsets import OnsetModel
from erpforge.errors import ComputeError

logger = structlog.get_logger(__name__)


class SimulationEngineProtocol(Protocol):
    """Collaborator contract consumed by the orchestrator."""

    def simulate(
        self,
        seed: int,
        design: Design,
        components: Any,
        onset: OnsetModel,
        noise: NoiseModel,
        return_epoched: bool = False,
    ) -> Tuple[np.ndarray, pd.DataFrame]:
        ...


def _component_list(components: Any) -> List[Any]:
    if isinstance(components, (list, tuple)):
        items = list(components)
    else:
        items = [components]
    if not items:
        raise ComputeError("At least one component is required")
    return items


class ReferenceSimulationEngine:
    """Deterministic ERP simulator."""

    def simulate(
        self,
        seed: int,
        design: Design,
        components: Union[Any, Sequence[Any]],
        onset: OnsetModel,
        noise: NoiseModel,
        return_epoched: bool = False,
    ) -> Tuple[np.ndarray, pd.DataFrame]:
        rng = np.random.default_rng(seed)
        items = _component_list(components)
        n_channels = {int(component.n_channels) for component in items}
        if len(n_channels) != 1:
            raise ComputeError("Components disagree on the number of channels")
        n_ch = n_channels.pop()
        events = design.events.copy()
        n_events = len(events)
        if n_events == 0:
            raise ComputeError("Design produced no events")

        length = max(len(component) for component in items)
        responses = np.zeros((n_ch, n_events, length))
        for component in items:
            part = component.simulate(events, design.levels, rng)
            responses[:, :, : part.shape[2]] += part

        if return_epoched:
            data = np.transpose(responses, (0, 2, 1))
        else:
            latencies = onset.latencies(rng, n_events)
            events["latency"] = latencies
            n_samples = int(latencies.max()) + length
            data = np.zeros((n_ch, n_samples))
            for index, latency in enumerate(latencies):
                data[:, latency : latency + length] += responses[:, index, :]

        noise.manual_seed(seed)
        with torch.no_grad():
            tensor = torch.from_numpy(np.moveaxis(data, 1, -1).copy())
            noisy = noise(tensor).numpy()
        data = np.moveaxis(noisy, -1, 1)

        logger.debug(
            "Simulated",
            seed=seed,
            n_events=n_events,
            n_channels=n_ch,
            shape=tuple(data.shape),
            noise=type(noise).__name__,
        )
        if n_ch == 1:
            data = data[0]
        return np.ascontiguousarray(data), events
