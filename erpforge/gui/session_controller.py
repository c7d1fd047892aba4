"""Controller linking a dashboard session to Qt widgets and worker threads."""

from __future__ import annotations

from typing import Optional

import structlog
from PyQt5 import QtCore

from erpforge.core.coalescer import ParameterSnapshot
from erpforge.core.orchestrator import RunTicket
from erpforge.core.results import SimulationResult
from erpforge.core.session import DashboardSession
from erpforge.gui.simulation_worker import SimulationWorker

logger = structlog.get_logger(__name__)


class SessionController(QtCore.QObject):
    """Bridge :class:`DashboardSession` signals to Qt and run simulations in a QThread.

    Installing the controller replaces the session's synchronous runner:
    coalesced triggers are admitted on the GUI thread, computed by a
    :class:`SimulationWorker` in its own thread, and finished (stored and
    published) back on the GUI thread.
    """

    result_ready = QtCore.pyqtSignal(object)
    status_changed = QtCore.pyqtSignal(str)
    cumulative_changed = QtCore.pyqtSignal(object)

    def __init__(self, session: DashboardSession, parent: Optional[QtCore.QObject] = None) -> None:
        super().__init__(parent)
        self._session = session
        self._worker: Optional[SimulationWorker] = None
        self._worker_thread: Optional[QtCore.QThread] = None
        self._subscriptions = [
            session.current_result.subscribe(self.result_ready.emit),
            session.status.subscribe(self.status_changed.emit),
            session.cumulative.subscribe(self.cumulative_changed.emit),
        ]
        session.set_runner(self.submit)

    @property
    def session(self) -> DashboardSession:
        return self._session

    @property
    def busy(self) -> bool:
        return self._worker is not None

    # ------------------------------------------------------------------
    # Public interface
    # ------------------------------------------------------------------
    def submit(self, snapshot: ParameterSnapshot) -> None:
        """Admit ``snapshot`` and compute it in a worker thread."""
        ticket = self._session.orchestrator.begin_run(snapshot)
        if ticket is None:
            return
        worker = SimulationWorker(self._session.orchestrator, ticket)
        thread = QtCore.QThread(self)
        worker.moveToThread(thread)
        thread.started.connect(worker.run)
        worker.finished.connect(self._handle_finished)
        worker.failed.connect(self._handle_failed)
        worker.finished.connect(thread.quit)
        worker.failed.connect(thread.quit)
        worker.finished.connect(worker.deleteLater)
        worker.failed.connect(worker.deleteLater)
        thread.finished.connect(thread.deleteLater)
        thread.finished.connect(lambda: self._cleanup_worker(thread))
        self._worker = worker
        self._worker_thread = thread
        thread.start()

    def request_run(self) -> None:
        self._session.request_run()

    def shutdown(self, timeout_ms: int = 5000) -> None:
        """Wait for an in-flight run and detach from the session."""
        thread = self._worker_thread
        if thread is not None:
            thread.quit()
            thread.wait(timeout_ms)
        for subscription in self._subscriptions:
            subscription.cancel()
        self._subscriptions = []
        self._session.set_runner(None)

    # ------------------------------------------------------------------
    # Worker orchestration
    # ------------------------------------------------------------------
    def _cleanup_worker(self, thread: QtCore.QThread) -> None:
        # A newer run may already own the slots
        if self._worker_thread is thread:
            self._worker = None
            self._worker_thread = None

    def _handle_finished(self, ticket: RunTicket, result: SimulationResult) -> None:
        self._session.orchestrator.finish_run(ticket, result)

    def _handle_failed(self, ticket: RunTicket, message: str) -> None:
        logger.error("Simulation worker failed", tab_id=ticket.tab_id, error=message)
        self._session.orchestrator.finish_run(ticket, SimulationResult.failure(message))
