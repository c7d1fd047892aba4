"""Integration tests for running a session through the Qt controller."""

import time

import pytest
from PyQt5 import QtCore
from PyQt5.QtWidgets import QApplication

from erpforge.constants import STATUS_DONE, STATUS_RUNNING
from erpforge.core.orchestrator import RunState
from erpforge.gui.session_controller import SessionController


@pytest.fixture(autouse=True)
def qapp():
    """Ensure QApplication exists for threaded runs."""
    return QApplication.instance() or QApplication([])


def _wait_until(predicate, timeout_s=10.0):
    deadline = time.monotonic() + timeout_s
    while not predicate() and time.monotonic() < deadline:
        QtCore.QCoreApplication.processEvents(QtCore.QEventLoop.AllEvents, 20)
        time.sleep(0.005)
    return predicate()


@pytest.fixture
def controller(session):
    controller = SessionController(session)
    yield controller
    controller.shutdown()


def _trigger(session):
    session.request_run()
    session.coalescer.flush()


def test_run_completes_on_gui_thread(session, controller):
    results = []
    statuses = []
    controller.result_ready.connect(results.append)
    controller.status_changed.connect(statuses.append)
    tab_id = session.registry.active_id.value

    _trigger(session)
    assert controller.busy
    assert session.status.value == STATUS_RUNNING

    assert _wait_until(lambda: session.status.value == STATUS_DONE)
    assert session.orchestrator.state is RunState.IDLE
    assert session.cache.get(tab_id) is session.current_result.value
    assert results and results[-1] is session.current_result.value
    assert statuses[-1] == STATUS_DONE


def test_trigger_during_worker_run_is_dropped(session, controller, counting_engine):
    _trigger(session)
    _trigger(session)

    assert session.orchestrator.dropped_triggers == 1
    assert _wait_until(lambda: session.orchestrator.state is RunState.IDLE)
    # linear model: one engine call for the noisy series and one for the clean
    assert counting_engine.call_count == 2


def test_cumulative_view_is_forwarded(session, controller):
    views = []
    controller.cumulative_changed.connect(views.append)

    _trigger(session)
    assert _wait_until(lambda: session.status.value == STATUS_DONE)

    assert views and views[-1].n_contributors == 1


def test_shutdown_restores_synchronous_runner(session, controller):
    controller.shutdown()
    _trigger(session)
    assert session.status.value == STATUS_DONE
    assert not controller.busy
