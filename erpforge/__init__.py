"""ERPForge: an interactive ERP simulation dashboard core.

ERPForge lets users compose event-related potential (ERP) components in
independent tabs, simulates the active tab on every parameter change, and
sums the cached results of all tabs into a cumulative waveform.

Key Components:
    - core: Signals, tab registry, active-parameter projection, trigger
      coalescing, simulation orchestration and aggregation
    - engine: Designs, formulas, basis functions, onsets, noise, head model
      and the reference simulation engine
    - config: YAML session schema
    - gui: PyQt5 bridge (scheduler, worker thread, controller)
    - cli: Command-line interface for batch runs of saved sessions

Example:
    >>> from erpforge import DashboardSession
    >>> session = DashboardSession()
    >>> result = session.run_now()
    >>> result.summary()["n_samples"] > 0
    True
"""

__version__ = "0.1.0"
__author__ = "ERPForge Contributors"
__license__ = "MIT"

from erpforge.core.session import DashboardSession, SessionSnapshot
from erpforge.core.orchestrator import ResultCache, SimulationOrchestrator
from erpforge.core.aggregation import CumulativeView, aggregate_results
from erpforge.core.results import SimulationResult
from erpforge.config.schema import SessionConfig, TabConfig
from erpforge.engine.simulation_engine import ReferenceSimulationEngine

__all__ = [
    "__version__",
    "__author__",
    "__license__",
    "DashboardSession",
    "SessionSnapshot",
    "ResultCache",
    "SimulationOrchestrator",
    "CumulativeView",
    "aggregate_results",
    "SimulationResult",
    "SessionConfig",
    "TabConfig",
    "ReferenceSimulationEngine",
]
