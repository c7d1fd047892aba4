"""Coalescing of parameter edits into one recompute trigger.

Drag-style numeric inputs are throttled first (``SLIDER_THROTTLE_S``); every
throttled stream, the active parameter set, the global dropdowns and the
event-variable maps are then combined into one :class:`ParameterSnapshot`
stream whose duplicates are suppressed by value equality. That stream is
debounced (``SIMULATION_DEBOUNCE_S``) into :attr:`TriggerCoalescer.trigger`,
which fires once per settled burst of edits with the latest snapshot.
"""

from __future__ import annotations

import hashlib
from dataclasses import asdict, dataclass, fields
from typing import Any, Dict, List, Mapping, Optional, Tuple

import structlog

from erpforge.constants import SIMULATION_DEBOUNCE_S, SLIDER_THROTTLE_S
from erpforge.core.controls import CATEGORICAL_CONTROLS, CONTINUOUS_CONTROLS, GlobalControls
from erpforge.core.projector import ActiveParameters
from erpforge.core.signals import DebouncedSignal, Scheduler, Signal, ThrottledSignal, combine
from erpforge.core.tabs import MODEL_FIELDS
from erpforge.core.variables import ContinuousRange, EventVariables, coerce_continuous

logger = structlog.get_logger(__name__)

CONTINUOUS_MODEL_FIELDS: Tuple[str, ...] = ("beta", "contrast", "sigma")


@dataclass(frozen=True)
class ParameterSnapshot:
    """Everything one recompute depends on.

    Numeric fields hold slider positions. Variable maps are stored as
    sorted tuples so the snapshot is hashable.
    """

    model_category: str
    contrast_type: str
    basis: str
    formula: str
    projection: str
    beta: float
    contrast: float
    sigma: float
    design_category: str
    onset_choice: str
    noise_choice: str
    n_subjects: float
    n_items: float
    onset_mu: float
    onset_sigma: float
    onset_offset: float
    truncate_lower: float
    truncate_upper: float
    uniform_width: float
    uniform_offset: float
    noise_level: float
    categorical: Tuple[Tuple[str, Tuple[str, ...]], ...] = ()
    continuous: Tuple[Tuple[str, ContinuousRange], ...] = ()

    @classmethod
    def build(
        cls,
        parameters: Mapping[str, Any],
        categorical: Mapping[str, Any],
        continuous: Mapping[str, Any],
    ) -> ParameterSnapshot:
        """Create a snapshot from flat parameter values and variable maps."""
        scalar_names = [f.name for f in fields(cls) if f.name not in ("categorical", "continuous")]
        missing = [name for name in scalar_names if name not in parameters]
        if missing:
            raise KeyError(f"Missing snapshot parameters: {', '.join(missing)}")
        return cls(
            **{name: parameters[name] for name in scalar_names},
            categorical=tuple(
                sorted((str(k), tuple(str(level) for level in v)) for k, v in categorical.items())
            ),
            continuous=tuple(sorted(coerce_continuous(continuous).items())),
        )

    @property
    def fingerprint(self) -> str:
        """Short SHA-1 digest of the canonical parameter tuple, for log lines."""
        canonical = repr(tuple(getattr(self, f.name) for f in fields(self)))
        return hashlib.sha1(canonical.encode("utf-8")).hexdigest()[:12]

    @property
    def categorical_variables(self) -> Dict[str, List[str]]:
        return {name: list(levels) for name, levels in self.categorical}

    @property
    def continuous_variables(self) -> Dict[str, ContinuousRange]:
        return dict(self.continuous)

    def replace(self, **changes: Any) -> ParameterSnapshot:
        data = {f.name: getattr(self, f.name) for f in fields(self)}
        data.update(changes)
        return ParameterSnapshot(**data)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["categorical"] = self.categorical_variables
        data["continuous"] = {name: spec.to_dict() for name, spec in self.continuous}
        return data


def _same_snapshot(a: Optional[ParameterSnapshot], b: Optional[ParameterSnapshot]) -> bool:
    if a is None or b is None:
        return a is b
    return a == b


class TriggerCoalescer:
    """Merges parameter signals into a single debounced recompute trigger.

    Attributes:
        snapshots: Deduplicated stream of parameter snapshots.
        trigger: Debounced ``snapshots``; subscribe the orchestrator here.
    """

    def __init__(
        self,
        active: ActiveParameters,
        controls: GlobalControls,
        variables: EventVariables,
        scheduler: Scheduler,
        slider_window: float = SLIDER_THROTTLE_S,
        debounce_window: float = SIMULATION_DEBOUNCE_S,
    ) -> None:
        self.scheduler = scheduler
        self._throttled: Dict[str, ThrottledSignal] = {}
        inputs: Dict[str, Signal] = {}
        for name in MODEL_FIELDS:
            source = active.field(name)
            if name in CONTINUOUS_MODEL_FIELDS:
                source = self._throttle(name, source, slider_window)
            inputs[name] = source
        for name in CATEGORICAL_CONTROLS:
            inputs[name] = controls.signal(name)
        for name in CONTINUOUS_CONTROLS:
            inputs[name] = self._throttle(name, controls.signal(name), slider_window)
        names = list(inputs)
        sources = [inputs[name] for name in names] + [variables.categorical, variables.continuous]

        def build(*values: Any) -> ParameterSnapshot:
            parameters = dict(zip(names, values[: len(names)]))
            return ParameterSnapshot.build(parameters, values[-2], values[-1])

        self.snapshots: Signal[ParameterSnapshot] = combine(
            sources, build, name="parameter_snapshot", equality=_same_snapshot
        )
        self.trigger: DebouncedSignal[ParameterSnapshot] = self.snapshots.debounce(
            debounce_window, scheduler
        )
        self.trigger.subscribe(
            lambda snapshot: logger.debug("Recompute trigger fired", fingerprint=snapshot.fingerprint)
        )

    def _throttle(self, name: str, source: Signal, window: float) -> ThrottledSignal:
        throttled = source.throttle(window, self.scheduler)
        self._throttled[name] = throttled
        return throttled

    @property
    def pending(self) -> bool:
        """True while a throttle or the debounce still holds an undelivered value."""
        return self.trigger.pending or any(t.pending for t in self._throttled.values())

    def current_snapshot(self) -> ParameterSnapshot:
        return self.snapshots.value

    def request(self) -> None:
        """Re-arm the debounce window with the current snapshot."""
        self.snapshots.notify()

    def settle(self) -> ParameterSnapshot:
        """Deliver held throttle values, drop a pending trigger, return the snapshot."""
        for throttled in self._throttled.values():
            throttled.flush()
        self.trigger.cancel()
        return self.snapshots.value

    def flush(self) -> None:
        """Fire the trigger now if anything is pending."""
        for throttled in self._throttled.values():
            throttled.flush()
        self.trigger.flush()

    def dispose(self) -> None:
        for throttled in self._throttled.values():
            throttled.dispose()
        self.trigger.dispose()
