"""Session-wide (not per-tab) simulation controls."""

from __future__ import annotations

from typing import Any, Dict, Tuple

from erpforge.constants import GLOBAL_DEFAULTS
from erpforge.core.signals import Signal

CATEGORICAL_CONTROLS: Tuple[str, ...] = ("design_category", "onset_choice", "noise_choice")
CONTINUOUS_CONTROLS: Tuple[str, ...] = (
    "n_subjects",
    "n_items",
    "onset_mu",
    "onset_sigma",
    "onset_offset",
    "truncate_lower",
    "truncate_upper",
    "uniform_width",
    "uniform_offset",
    "noise_level",
)
CONTROL_NAMES: Tuple[str, ...] = CATEGORICAL_CONTROLS + CONTINUOUS_CONTROLS


class GlobalControls:
    """Design, onset and noise controls shared by every tab.

    Dropdown choices are stored as their labels; numeric controls are stored
    as slider positions (0..100) and mapped by :mod:`erpforge.core.mappings`
    at run time.
    """

    def __init__(self, **overrides: Any) -> None:
        unknown = set(overrides) - set(CONTROL_NAMES)
        if unknown:
            raise KeyError(f"Unknown controls: {', '.join(sorted(unknown))}")
        for name in CONTROL_NAMES:
            value = overrides.get(name, GLOBAL_DEFAULTS[name])
            setattr(self, name, Signal(value, name=name))

    def signal(self, name: str) -> Signal:
        if name not in CONTROL_NAMES:
            raise KeyError(f"Unknown control '{name}'")
        return getattr(self, name)

    def values(self) -> Dict[str, Any]:
        return {name: getattr(self, name).value for name in CONTROL_NAMES}

    def continuous_signals(self) -> Dict[str, Signal]:
        return {name: getattr(self, name) for name in CONTINUOUS_CONTROLS}

    def categorical_signals(self) -> Dict[str, Signal]:
        return {name: getattr(self, name) for name in CATEGORICAL_CONTROLS}
