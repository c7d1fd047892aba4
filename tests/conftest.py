"""
Test configuration and fixtures for the ERPForge dashboard core.
"""
import os
import sys
from pathlib import Path

import pytest
import torch

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault("OMP_NUM_THREADS", "1")
os.environ.setdefault("MKL_NUM_THREADS", "1")
os.environ.setdefault("NUMEXPR_NUM_THREADS", "1")
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

torch.set_num_threads(1)

from erpforge.core.session import DashboardSession  # noqa: E402
from erpforge.core.signals import ManualScheduler  # noqa: E402
from erpforge.engine.simulation_engine import ReferenceSimulationEngine  # noqa: E402


class CountingEngine:
    """Reference engine that records every call.

    Args:
        fail_with: Exception raised on every call (after recording it).
        on_simulate: Hook called at the start of every call.
    """

    def __init__(self, fail_with=None, on_simulate=None):
        self.inner = ReferenceSimulationEngine()
        self.calls = []
        self.fail_with = fail_with
        self.on_simulate = on_simulate

    @property
    def call_count(self):
        return len(self.calls)

    def simulate(self, seed, design, components, onset, noise, return_epoched=False):
        self.calls.append(
            {
                "seed": seed,
                "design": design.kind,
                "noise": type(noise).__name__,
                "return_epoched": return_epoched,
            }
        )
        if self.on_simulate is not None:
            self.on_simulate()
        if self.fail_with is not None:
            raise self.fail_with
        return self.inner.simulate(seed, design, components, onset, noise, return_epoched)


@pytest.fixture
def scheduler():
    """Virtual-clock scheduler; nothing fires until it is advanced."""
    return ManualScheduler()


@pytest.fixture
def engine_factory():
    """The :class:`CountingEngine` class, for tests that need custom hooks."""
    return CountingEngine


@pytest.fixture
def counting_engine():
    return CountingEngine()


@pytest.fixture
def make_session(scheduler):
    """Factory for sessions on the shared manual scheduler."""

    def factory(**kwargs):
        kwargs.setdefault("scheduler", scheduler)
        kwargs.setdefault("engine", CountingEngine())
        return DashboardSession(**kwargs)

    return factory


@pytest.fixture
def session(make_session, counting_engine):
    """Session with one Custom tab, backed by ``counting_engine``."""
    return make_session(engine=counting_engine)
