"""Dashboard session: the signal graph wired once.

:class:`DashboardSession` builds every core component and connects them in
a fixed order::

    tab edits -> TabRegistry / ActiveParameterProjector -> ActiveParameters
    ActiveParameters + GlobalControls + EventVariables -> TriggerCoalescer
    TriggerCoalescer.trigger -> runner (SimulationOrchestrator.run by default)
    SimulationOrchestrator -> ResultCache -> ResultAggregator

It is also the persistence surface: a flat key -> value snapshot of every
parameter signal, and a YAML-ready :class:`~erpforge.config.schema.SessionConfig`
with all tabs.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Optional, Tuple

import structlog

from erpforge.config.schema import SessionConfig, TabConfig
from erpforge.constants import (
    DEFAULT_PRESET,
    MAX_TABS,
    MIXED_MODEL,
    MULTI_SUBJECT_DESIGN,
    SIMULATION_DEBOUNCE_S,
    SIMULATION_SEED,
    SINGLE_SUBJECT_DESIGN,
    SLIDER_THROTTLE_S,
)
from erpforge.core.aggregation import ResultAggregator
from erpforge.core.coalescer import ParameterSnapshot, TriggerCoalescer
from erpforge.core.controls import CATEGORICAL_CONTROLS, CONTINUOUS_CONTROLS, GlobalControls
from erpforge.core.orchestrator import ResultCache, SimulationOrchestrator
from erpforge.core.projector import ActiveParameterProjector, ActiveParameters
from erpforge.core.results import SimulationResult
from erpforge.core.signals import ManualScheduler, Scheduler, Signal
from erpforge.core.tabs import MODEL_FIELDS, TabRegistry
from erpforge.core.variables import EventVariables, coerce_categorical, coerce_continuous
from erpforge.engine.head_model import HeadModel
from erpforge.engine.simulation_engine import ReferenceSimulationEngine, SimulationEngineProtocol

logger = structlog.get_logger(__name__)

# Import order matters: design_category must follow model_category so an
# explicit design survives the model-category auto-sync.
PARAMETER_KEYS: Tuple[str, ...] = (
    "model_category",
    "design_category",
    "contrast_type",
    "basis",
    "formula",
    "projection",
    "beta",
    "contrast",
    "sigma",
    "onset_choice",
    "noise_choice",
) + CONTINUOUS_CONTROLS + ("categorical_variables", "continuous_variables")

_NUMERIC_KEYS = frozenset(("beta", "contrast", "sigma") + CONTINUOUS_CONTROLS)

Runner = Callable[[ParameterSnapshot], Any]


def _coerce_number(value: Any) -> float:
    if isinstance(value, bool):
        raise TypeError("expected a number, got a bool")
    number = float(value)
    return int(number) if number.is_integer() else number


@dataclass(frozen=True, eq=False)
class SessionSnapshot:
    """Flat parameter values plus the latest published result."""

    parameters: Dict[str, Any]
    result: Optional[SimulationResult] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "parameters": dict(self.parameters),
            "result": self.result.summary() if self.result is not None else None,
        }


class DashboardSession:
    """Owns and wires every core component of one dashboard.

    Args:
        engine: Simulation collaborator (reference engine by default).
        scheduler: Timer source for throttling / debouncing. Defaults to a
            :class:`ManualScheduler`, so nothing fires until it is advanced.
        head_model: Head model, built once and shared.
        runner: Callable receiving each coalesced snapshot. Defaults to a
            synchronous :meth:`SimulationOrchestrator.run`.
        seed: Simulation seed.
        initial_preset: Preset of the first tab; ``None`` starts without tabs.
    """

    def __init__(
        self,
        engine: Optional[SimulationEngineProtocol] = None,
        scheduler: Optional[Scheduler] = None,
        head_model: Optional[HeadModel] = None,
        runner: Optional[Runner] = None,
        seed: int = SIMULATION_SEED,
        initial_preset: Optional[str] = DEFAULT_PRESET,
        slider_window: float = SLIDER_THROTTLE_S,
        debounce_window: float = SIMULATION_DEBOUNCE_S,
        max_tabs: int = MAX_TABS,
    ) -> None:
        self.scheduler = scheduler or ManualScheduler()
        self.head_model = head_model or HeadModel.standard()
        self.registry = TabRegistry(max_tabs=max_tabs)
        self.active = ActiveParameters()
        self.projector = ActiveParameterProjector(self.registry, self.active)
        self.controls = GlobalControls()
        self.variables = EventVariables()
        self.cache = ResultCache()
        self.orchestrator = SimulationOrchestrator(
            engine or ReferenceSimulationEngine(),
            self.registry,
            self.cache,
            self.head_model,
            seed=seed,
        )
        self.aggregator = ResultAggregator(self.cache, max_traces=max_tabs)

        self.active.model_category.subscribe(self._sync_design)
        self.registry.tab_removed.subscribe(self._evict_removed)
        self.coalescer = TriggerCoalescer(
            self.active,
            self.controls,
            self.variables,
            self.scheduler,
            slider_window=slider_window,
            debounce_window=debounce_window,
        )
        self._runner: Runner = runner or self.orchestrator.run
        self.coalescer.trigger.subscribe(self._dispatch)

        if initial_preset is not None:
            self.registry.create_tab(initial_preset)

    # ------------------------------------------------------------------
    # Wiring
    # ------------------------------------------------------------------
    def _sync_design(self, model_category: str) -> None:
        design = MULTI_SUBJECT_DESIGN if model_category == MIXED_MODEL else SINGLE_SUBJECT_DESIGN
        self.controls.design_category.set(design)

    def _evict_removed(self, tab_id: Optional[int]) -> None:
        if self.cache.evict(tab_id):
            logger.debug("Evicted cached result of removed tab", tab_id=tab_id)

    def _dispatch(self, snapshot: ParameterSnapshot) -> None:
        self._runner(snapshot)

    def set_runner(self, runner: Optional[Runner]) -> None:
        """Route coalesced triggers to ``runner`` (``None`` restores the default)."""
        self._runner = runner or self.orchestrator.run

    # ------------------------------------------------------------------
    # Convenience accessors
    # ------------------------------------------------------------------
    @property
    def current_result(self) -> Signal[Optional[SimulationResult]]:
        return self.orchestrator.current_result

    @property
    def status(self) -> Signal[str]:
        return self.orchestrator.status

    @property
    def cumulative(self):
        return self.aggregator.cumulative

    def request_run(self) -> None:
        """Re-arm the debounce window so the current state is simulated."""
        self.coalescer.request()

    def run_now(self) -> Optional[SimulationResult]:
        """Simulate the settled current state synchronously, bypassing the debounce."""
        return self.orchestrator.run(self.coalescer.settle())

    # ------------------------------------------------------------------
    # Flat snapshot persistence
    # ------------------------------------------------------------------
    def parameter_signals(self) -> Dict[str, Signal]:
        """Every persisted parameter signal keyed by its flat name."""
        signals: Dict[str, Signal] = {}
        for key in PARAMETER_KEYS:
            if key in MODEL_FIELDS:
                signals[key] = self.active.field(key)
            elif key in CATEGORICAL_CONTROLS or key in CONTINUOUS_CONTROLS:
                signals[key] = self.controls.signal(key)
            elif key == "categorical_variables":
                signals[key] = self.variables.categorical
            else:
                signals[key] = self.variables.continuous
        return signals

    def export_parameters(self) -> Dict[str, Any]:
        parameters: Dict[str, Any] = {}
        for key, signal in self.parameter_signals().items():
            value = signal.value
            if key == "continuous_variables":
                value = {name: spec.to_dict() for name, spec in value.items()}
            elif key == "categorical_variables":
                value = {name: list(levels) for name, levels in value.items()}
            parameters[key] = value
        return parameters

    def export_snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(self.export_parameters(), self.current_result.value)

    def import_parameters(self, mapping: Mapping[str, Any]) -> int:
        """Write recognised keys to their signals; unknown keys are ignored.

        Values go through the normal projection and coalescing pipeline.
        Malformed values are logged and skipped.

        Returns:
            Number of parameters restored.
        """
        signals = self.parameter_signals()
        unknown = sorted(set(mapping) - set(signals))
        if unknown:
            logger.debug("Ignoring unknown parameters", keys=unknown)
        restored = 0
        for key in PARAMETER_KEYS:
            if key not in mapping:
                continue
            raw = mapping[key]
            try:
                if key in _NUMERIC_KEYS:
                    value: Any = _coerce_number(raw)
                elif key == "categorical_variables":
                    value = coerce_categorical(raw)
                elif key == "continuous_variables":
                    value = coerce_continuous(raw)
                else:
                    value = str(raw)
            except (TypeError, ValueError, KeyError, AttributeError) as exc:
                logger.warning("Skipping malformed parameter", key=key, value=repr(raw), error=str(exc))
                continue
            signals[key].set(value)
            restored += 1
        return restored

    # ------------------------------------------------------------------
    # Full configuration (all tabs)
    # ------------------------------------------------------------------
    def to_config(self, metadata: Optional[Dict[str, Any]] = None) -> SessionConfig:
        tabs = [
            TabConfig.from_values(tab.name, tab.preset.value, tab.values())
            for tab in self.registry
        ]
        ids = self.registry.ids
        active_id = self.registry.active_id.value
        parameters = {
            key: value
            for key, value in self.export_parameters().items()
            if key not in MODEL_FIELDS
        }
        return SessionConfig(
            parameters=parameters,
            tabs=tabs,
            active_tab=ids.index(active_id) if active_id in ids else 0,
            metadata=dict(metadata or {}),
        )

    @classmethod
    def from_config(cls, config: SessionConfig, **kwargs: Any) -> DashboardSession:
        """Build a session with the tabs and parameters of ``config``."""
        kwargs.setdefault("initial_preset", None)
        session = cls(**kwargs)
        created = []
        for tab_config in config.tabs[: session.registry.max_tabs]:
            tab_id = session.registry.create_tab(tab_config.name)
            session.registry.get(tab_id).apply(tab_config.values())
            created.append(tab_id)
        if not created:
            created.append(session.registry.create_tab(DEFAULT_PRESET))
        index = config.active_tab if 0 <= config.active_tab < len(created) else 0
        session.registry.set_active(created[index])
        session.import_parameters(config.parameters)
        return session
