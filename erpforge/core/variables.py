"""Event variable definitions (categorical levels and continuous ranges).

The variable maps are held in signals whose values are replaced, never
mutated, so every edit is observable. Operations report their outcome on the
``status`` signal instead of raising, mirroring how a form would surface them.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Sequence, Union

import numpy as np
import structlog

from erpforge.constants import CATEGORICAL_TEMPLATES, CONTINUOUS_TEMPLATES, DEFAULT_CATEGORICAL
from erpforge.core.signals import Signal

logger = structlog.get_logger(__name__)

Number = Union[int, float, str]


@dataclass(frozen=True)
class ContinuousRange:
    """Evenly spaced continuous predictor, ``steps`` values from min to max."""

    min: float
    max: float
    steps: int

    def values(self) -> np.ndarray:
        return np.linspace(self.min, self.max, self.steps)

    def to_dict(self) -> Dict[str, Any]:
        return {"min": self.min, "max": self.max, "steps": self.steps}

    @classmethod
    def from_value(cls, value: Any) -> ContinuousRange:
        """Accept a ContinuousRange, a ``{min, max, steps}`` mapping or a 3-sequence."""
        if isinstance(value, ContinuousRange):
            return value
        if isinstance(value, Mapping):
            return cls(float(value["min"]), float(value["max"]), int(value["steps"]))
        low, high, steps = value
        return cls(float(low), float(high), int(steps))


def coerce_categorical(mapping: Mapping[str, Sequence[Any]]) -> Dict[str, List[str]]:
    return {str(name): [str(level) for level in levels] for name, levels in mapping.items()}


def coerce_continuous(mapping: Mapping[str, Any]) -> Dict[str, ContinuousRange]:
    return {str(name): ContinuousRange.from_value(value) for name, value in mapping.items()}


class EventVariables:
    """Categorical and continuous event variables used to build designs."""

    def __init__(self) -> None:
        self.categorical: Signal[Dict[str, List[str]]] = Signal(
            coerce_categorical(DEFAULT_CATEGORICAL), name="categorical_variables"
        )
        self.continuous: Signal[Dict[str, ContinuousRange]] = Signal(
            {}, name="continuous_variables"
        )
        self.status: Signal[str] = Signal("Default: condition = [A, B]", name="event_status")

    def _report(self, message: str, ok: bool = True) -> bool:
        self.status.set(message, force=True)
        if not ok:
            logger.info("Event variable edit rejected", reason=message)
        return ok

    # Categorical -------------------------------------------------------
    def add_categorical_template(self, name: str) -> bool:
        if name not in CATEGORICAL_TEMPLATES:
            return self._report("Error: Variable template not found", ok=False)
        levels = list(CATEGORICAL_TEMPLATES[name])
        self.categorical.set({**self.categorical.value, name: levels})
        return self._report(f"Added template: {name} = {levels}")

    def add_categorical(self, name: str, levels_text: str) -> bool:
        """Add a variable from comma-separated level text."""
        name = name.strip()
        levels = [level.strip() for level in levels_text.split(",") if level.strip()]
        if not name:
            return self._report("Error: Variable name cannot be empty", ok=False)
        if not levels:
            return self._report("Error: Must provide at least one level", ok=False)
        self.categorical.set({**self.categorical.value, name: levels})
        if len(levels) < 2:
            return self._report("Warning: Categorical variables should have at least 2 levels")
        return self._report(f"Added custom: {name} = {levels}")

    def remove_categorical(self, name: str) -> bool:
        current = dict(self.categorical.value)
        if name not in current:
            return self._report(f"Error: Variable not found: {name}", ok=False)
        del current[name]
        self.categorical.set(current)
        return self._report(f"Removed categorical: {name}")

    # Continuous --------------------------------------------------------
    def add_continuous_template(self, name: str) -> bool:
        if name not in CONTINUOUS_TEMPLATES:
            return self._report("Error: Variable template not found", ok=False)
        spec = ContinuousRange.from_value(CONTINUOUS_TEMPLATES[name])
        self.continuous.set({**self.continuous.value, name: spec})
        return self._report(
            f"Added template: {name} = [{spec.min}:{spec.max}, {spec.steps} steps]"
        )

    def add_continuous(self, name: str, min_value: Number, max_value: Number, steps: Number) -> bool:
        name = name.strip()
        try:
            low = float(min_value)
            high = float(max_value)
            n_steps = int(steps)
        except (TypeError, ValueError) as exc:
            return self._report(f"Error adding custom variable: {exc}", ok=False)
        if not name:
            return self._report("Error: Variable name cannot be empty", ok=False)
        if n_steps < 2:
            return self._report("Error: Steps must be >= 2", ok=False)
        if low >= high:
            return self._report("Error: Min must be less than Max", ok=False)
        spec = ContinuousRange(low, high, n_steps)
        self.continuous.set({**self.continuous.value, name: spec})
        return self._report(f"Added custom: {name} = [{low}:{high}, {n_steps} steps]")

    def remove_continuous(self, name: str) -> bool:
        current = dict(self.continuous.value)
        if name not in current:
            return self._report(f"Error: Variable not found: {name}", ok=False)
        del current[name]
        self.continuous.set(current)
        return self._report(f"Removed continuous: {name}")
