"""Reactive core of the dashboard.

Modules:
    signals: Observable values, throttling, debouncing and schedulers
    tabs: Tabs and the tab registry
    projector: Active parameter set and its two-way binding to the active tab
    controls: Global (tab-independent) controls
    variables: Categorical and continuous event variables
    coalescer: Parameter snapshots and the coalesced simulation trigger
    validation: Model / design compatibility rules
    orchestrator: Single-in-flight simulation runs and the result cache
    aggregation: Cumulative view over all cached results
    session: The wired signal graph and its persistence

Heavier modules (orchestrator, aggregation, session) are imported from
their own modules to keep this package import light.
"""

from .signals import (
    DebouncedSignal,
    ManualScheduler,
    Scheduler,
    Signal,
    ThrottledSignal,
    combine,
)
from .results import OnsetParams, SimulationResult
from .tabs import MODEL_FIELDS, Tab, TabRegistry
from .controls import GlobalControls
from .variables import ContinuousRange, EventVariables
from .validation import is_valid_combination, validate_combination

__all__ = [
    "DebouncedSignal",
    "ManualScheduler",
    "Scheduler",
    "Signal",
    "ThrottledSignal",
    "combine",
    "OnsetParams",
    "SimulationResult",
    "MODEL_FIELDS",
    "Tab",
    "TabRegistry",
    "GlobalControls",
    "ContinuousRange",
    "EventVariables",
    "is_valid_combination",
    "validate_combination",
]
