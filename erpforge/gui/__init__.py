"""ERPForge GUI bridge.

Qt glue for the dashboard core: a QTimer-backed scheduler, a worker that
runs simulations off the GUI thread, and the controller that connects a
:class:`~erpforge.core.session.DashboardSession` to widgets.
"""
