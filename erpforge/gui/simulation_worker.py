"""Background worker that computes one admitted simulation run."""

from __future__ import annotations

from PyQt5 import QtCore

from erpforge.core.orchestrator import RunTicket, SimulationOrchestrator


class SimulationWorker(QtCore.QObject):
    """Runs :meth:`SimulationOrchestrator.compute` off the GUI thread.

    Both signals carry the ticket so the controller can finish the exact run
    that produced them.
    """

    finished = QtCore.pyqtSignal(object, object)
    failed = QtCore.pyqtSignal(object, str)

    def __init__(self, orchestrator: SimulationOrchestrator, ticket: RunTicket) -> None:
        super().__init__()
        self._orchestrator = orchestrator
        self._ticket = ticket

    @property
    def ticket(self) -> RunTicket:
        return self._ticket

    def run(self) -> None:
        try:
            result = self._orchestrator.compute(self._ticket)
        except Exception as exc:  # pragma: no cover - compute converts failures itself
            self.failed.emit(self._ticket, str(exc) or type(exc).__name__)
            return
        self.finished.emit(self._ticket, result)
