"""Single-in-flight simulation orchestration.

:class:`SimulationOrchestrator` owns the run state machine::

    IDLE --begin_run (valid)--> RUNNING --finish_run--> IDLE

A trigger arriving while a run is in flight is dropped (no queue). An
invalid model / design combination is rejected before the run state or the
engine is touched. Every other failure raised while simulating becomes an
error :class:`SimulationResult`; nothing unwinds past the orchestrator.

A run is split in three steps so the engine can run on a worker thread:

* :meth:`begin_run` on the coordinating thread (admission, validation).
* :meth:`compute` anywhere (pure with respect to shared state).
* :meth:`finish_run` on the coordinating thread (cache write, publication).

:meth:`run` chains the three synchronously.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Tuple

import numpy as np
import structlog

from erpforge.constants import (
    MULTICHANNEL_MODEL,
    REFERENCE_CHANNEL,
    SAMPLING_RATE_HZ,
    SIMULATION_SEED,
    STATUS_DONE,
    STATUS_INVALID,
    STATUS_READY,
    STATUS_RUNNING,
)
from erpforge.core import mappings
from erpforge.core.coalescer import ParameterSnapshot
from erpforge.core.results import OnsetParams, SimulationResult
from erpforge.core.signals import Signal
from erpforge.core.tabs import TabRegistry
from erpforge.core.validation import validate_combination
from erpforge.engine.basis import parse_basis
from erpforge.engine.design import DesignBuilder
from erpforge.engine.head_model import HeadModel
from erpforge.engine.noise import NoNoise
from erpforge.engine.simulation_engine import SimulationEngineProtocol
from erpforge.errors import ComputeError, ValidationError
from erpforge.register_components import register_all
from erpforge.registry import MODEL_REGISTRY, NOISE_REGISTRY, ONSET_REGISTRY

logger = structlog.get_logger(__name__)


class RunState(Enum):
    IDLE = "idle"
    RUNNING = "running"


class ResultCache:
    """Latest result per tab id.

    ``changed`` fires (with a revision counter) after every store or evict.
    """

    def __init__(self) -> None:
        self._results: Dict[int, SimulationResult] = {}
        self._revision = 0
        self.changed: Signal[int] = Signal(0, name="cache_changed")

    def __len__(self) -> int:
        return len(self._results)

    def __contains__(self, tab_id: object) -> bool:
        return tab_id in self._results

    def get(self, tab_id: int) -> Optional[SimulationResult]:
        return self._results.get(tab_id)

    def items(self) -> List[Tuple[int, SimulationResult]]:
        """``(tab_id, result)`` pairs ordered by tab id."""
        return sorted(self._results.items())

    def store(self, tab_id: int, result: SimulationResult, notify: bool = True) -> None:
        self._results[tab_id] = result
        if notify:
            self.notify_changed()

    def evict(self, tab_id: Optional[int], notify: bool = True) -> bool:
        if tab_id not in self._results:
            return False
        del self._results[tab_id]
        if notify:
            self.notify_changed()
        return True

    def clear(self) -> None:
        self._results.clear()
        self.notify_changed()

    def notify_changed(self) -> None:
        self._revision += 1
        self.changed.set(self._revision, force=True)


@dataclass(frozen=True)
class RunTicket:
    """Admission record of one run: the tab it belongs to and its inputs."""

    tab_id: Optional[int]
    snapshot: ParameterSnapshot
    started_at: float


def normalize_output(
    noisy: np.ndarray,
    clean: np.ndarray,
    multichannel: bool,
    reference_index: int = 0,
    n_channels: Optional[int] = None,
) -> Tuple[np.ndarray, np.ndarray, Optional[np.ndarray], Optional[np.ndarray]]:
    """Reduce engine output to a display channel (+ full matrix in multichannel mode).

    Accepted shapes:
        * ``(channels, time, epochs)``: epochs are concatenated per channel.
        * ``(channels, samples)`` or ``(samples, channels)`` in multichannel
          mode, recognised by ``n_channels``.
        * Anything else 1-D or 2-D is flattened column-major (epochs of a
          ``(time, epochs)`` matrix end up back to back).

    Returns:
        ``(noisy, clean, multichannel_noisy, multichannel_clean)``; the
        matrices are ``(samples, channels)`` or ``None``.
    """
    noisy = np.asarray(noisy, dtype=np.float64)
    clean = np.asarray(clean, dtype=np.float64)
    if noisy.shape != clean.shape:
        raise ComputeError(
            f"Noisy and clean outputs differ in shape: {noisy.shape} vs {clean.shape}"
        )
    if noisy.ndim == 3:
        n_ch, n_t, n_ep = noisy.shape
        flat_noisy = noisy.reshape(n_ch, n_t * n_ep, order="F")
        flat_clean = clean.reshape(n_ch, n_t * n_ep, order="F")
        if not multichannel:
            return flat_noisy[0], flat_clean[0], None, None
        index = reference_index if reference_index < n_ch else 0
        return flat_noisy[index], flat_clean[index], flat_noisy.T, flat_clean.T
    if noisy.ndim == 2 and multichannel and n_channels is not None:
        if noisy.shape[0] == n_channels:
            index = reference_index if reference_index < n_channels else 0
            return noisy[index], clean[index], noisy.T, clean.T
        if noisy.shape[1] == n_channels:
            index = reference_index if reference_index < n_channels else 0
            return noisy[:, index], clean[:, index], noisy, clean
    if noisy.ndim in (1, 2):
        flat_noisy = noisy.ravel(order="F")
        flat_clean = clean.ravel(order="F")
        if multichannel:
            return flat_noisy, flat_clean, flat_noisy[:, None], flat_clean[:, None]
        return flat_noisy, flat_clean, None, None
    raise ComputeError(f"Unsupported engine output with shape {noisy.shape}")


class SimulationOrchestrator:
    """Runs the engine for admitted parameter snapshots.

    Args:
        engine: Simulation collaborator.
        registry: Tab registry; the active tab at admission owns the result.
        cache: Per-tab result cache to update.
        head_model: Head model used by multichannel components.
        design_builder: Builds designs from event variables.
        seed: Seed passed to both engine calls of every run.
        reference_channel: Display channel in multichannel mode.
        sampling_rate: Samples per second of the engine output.

    Signals:
        current_result: Latest published result (success or error).
        status: Human-readable status line.
        run_state: :class:`RunState`.
    """

    def __init__(
        self,
        engine: SimulationEngineProtocol,
        registry: TabRegistry,
        cache: ResultCache,
        head_model: HeadModel,
        design_builder: Optional[DesignBuilder] = None,
        seed: int = SIMULATION_SEED,
        reference_channel: str = REFERENCE_CHANNEL,
        sampling_rate: float = SAMPLING_RATE_HZ,
    ) -> None:
        register_all()
        self.engine = engine
        self.registry = registry
        self.cache = cache
        self.head_model = head_model
        self.design_builder = design_builder or DesignBuilder()
        self.seed = int(seed)
        self.reference_channel = reference_channel
        self.sampling_rate = float(sampling_rate)
        self.current_result: Signal[Optional[SimulationResult]] = Signal(
            None, name="current_result", equality=lambda a, b: a is b
        )
        self.status: Signal[str] = Signal(STATUS_READY, name="status")
        self.run_state: Signal[RunState] = Signal(RunState.IDLE, name="run_state")
        self._state = RunState.IDLE
        self._lock = threading.Lock()
        self.dropped_triggers = 0

    @property
    def state(self) -> RunState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state is RunState.RUNNING

    # ------------------------------------------------------------------
    # Run steps
    # ------------------------------------------------------------------
    def begin_run(self, snapshot: ParameterSnapshot) -> Optional[RunTicket]:
        """Admit a run.

        Returns:
            A ticket when the run may proceed; ``None`` when a run is already
            in flight (trigger dropped) or the combination is invalid (an
            error result has been published).
        """
        rejection: Optional[ValidationError] = None
        with self._lock:
            if self._state is RunState.RUNNING:
                self.dropped_triggers += 1
                logger.info(
                    "Trigger dropped; simulation already running",
                    fingerprint=snapshot.fingerprint,
                    dropped=self.dropped_triggers,
                )
                return None
            try:
                validate_combination(snapshot.model_category, snapshot.design_category)
            except ValidationError as exc:
                rejection = exc
            else:
                self._state = RunState.RUNNING
                ticket = RunTicket(
                    tab_id=self.registry.active_id.value,
                    snapshot=snapshot,
                    started_at=time.monotonic(),
                )
        if rejection is not None:
            self.reject(rejection)
            return None
        self.run_state.set(RunState.RUNNING)
        self.status.set(STATUS_RUNNING)
        logger.info("Simulation started", tab_id=ticket.tab_id, fingerprint=snapshot.fingerprint)
        return ticket

    def reject(self, error: ValidationError) -> SimulationResult:
        """Publish an error result for an invalid combination; the cache is untouched."""
        result = SimulationResult.failure(error.message)
        logger.warning("Simulation blocked", reason=error.message, **error.details)
        self.current_result.set(result, force=True)
        self.status.set(STATUS_INVALID)
        return result

    def compute(self, ticket: RunTicket) -> SimulationResult:
        """Run the engine for ``ticket``. Never raises for simulation failures."""
        try:
            return self._simulate(ticket.snapshot)
        except Exception as exc:
            message = str(exc) or type(exc).__name__
            logger.exception("Simulation failed", tab_id=ticket.tab_id, error=message)
            return SimulationResult.failure(message)

    def finish_run(self, ticket: RunTicket, result: Optional[SimulationResult]) -> None:
        """Store and publish ``result`` and return to IDLE.

        ``result`` is ``None`` only when the run was interrupted; the state is
        reset without publishing anything.
        """
        stored = False
        with self._lock:
            if result is not None and ticket.tab_id is not None:
                tab = self.registry.get(ticket.tab_id)
                if tab is not None:
                    tab.last_result = result
                    self.cache.store(ticket.tab_id, result, notify=False)
                    stored = True
            self._state = RunState.IDLE
        self.run_state.set(RunState.IDLE)
        if stored:
            self.cache.notify_changed()
        if result is None:
            self.status.set(STATUS_READY)
            return
        self.current_result.set(result, force=True)
        self.status.set(STATUS_DONE if result.ok else f"Error: {result.err}")
        logger.info(
            "Simulation finished",
            tab_id=ticket.tab_id,
            ok=result.ok,
            n_samples=result.n_samples,
            elapsed_s=round(time.monotonic() - ticket.started_at, 4),
        )

    def run(self, snapshot: ParameterSnapshot) -> Optional[SimulationResult]:
        """Admit, compute and finish one run synchronously.

        Returns:
            The published result, or ``None`` if the trigger was dropped.
        """
        ticket = self.begin_run(snapshot)
        if ticket is None:
            return None if self.is_running else self.current_result.value
        result: Optional[SimulationResult] = None
        try:
            result = self.compute(ticket)
        finally:
            self.finish_run(ticket, result)
        return result

    # ------------------------------------------------------------------
    # Simulation
    # ------------------------------------------------------------------
    def _simulate(self, s: ParameterSnapshot) -> SimulationResult:
        beta = mappings.beta_value(s.beta)
        contrast = mappings.contrast_value(s.contrast)
        sigma = mappings.sigma_value(s.sigma)

        categorical = s.categorical_variables
        contrasts = {name: s.contrast_type for name, levels in categorical.items() if levels}
        if not contrasts:
            contrasts = {"condition": s.contrast_type}

        design = self.design_builder.build(
            categorical,
            s.continuous_variables,
            s.design_category,
            mappings.items_value(s.n_items),
            mappings.subjects_value(s.n_subjects),
        )
        basis = parse_basis(s.basis)
        components = MODEL_REGISTRY.create(
            s.model_category,
            basis=basis,
            formula=s.formula,
            beta=beta,
            contrast=contrast,
            sigma=sigma,
            contrasts=contrasts,
            design=design,
            projection=s.projection,
            head_model=self.head_model,
        )
        onset = ONSET_REGISTRY.create(
            s.onset_choice,
            width=mappings.uniform_width_value(s.uniform_width),
            uniform_offset=mappings.uniform_offset_value(s.uniform_offset),
            mu=mappings.onset_mu_value(s.onset_mu),
            sigma=mappings.onset_sigma_value(s.onset_sigma),
            offset=mappings.onset_offset_value(s.onset_offset),
            truncate_lower=mappings.truncate_lower_value(s.truncate_lower),
            truncate_upper=mappings.truncate_upper_value(s.truncate_upper),
        )
        noise = NOISE_REGISTRY.create(
            s.noise_choice, noiselevel=mappings.noise_level_value(s.noise_level)
        )
        epoched = bool(getattr(onset, "epoched", False))

        noisy, events = self.engine.simulate(
            self.seed, design, components, onset, noise, return_epoched=epoched
        )
        clean, _ = self.engine.simulate(
            self.seed, design, components, onset, NoNoise(), return_epoched=epoched
        )

        multichannel = s.model_category == MULTICHANNEL_MODEL
        reference = self.head_model.channel_index(self.reference_channel) if multichannel else 0
        y_noisy, y_clean, mc_noisy, mc_clean = normalize_output(
            noisy, clean, multichannel, reference, self.head_model.n_channels
        )
        return SimulationResult(
            time=np.arange(y_noisy.shape[0]) / self.sampling_rate,
            noisy=y_noisy,
            clean=y_clean,
            events=events,
            err="",
            onset_params=OnsetParams(
                choice=s.onset_choice,
                mu=s.onset_mu,
                sigma=s.onset_sigma,
                offset=s.onset_offset,
                truncate_lower=s.truncate_lower,
                truncate_upper=s.truncate_upper,
                width=s.uniform_width,
                uniform_offset=s.uniform_offset,
            ),
            multichannel_noisy=mc_noisy,
            multichannel_clean=mc_clean,
        )
