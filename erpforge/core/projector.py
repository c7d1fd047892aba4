"""Active-tab projection.

:class:`ActiveParameters` is the single shared view of the model-specific
fields that the next recompute will use. :class:`ActiveParameterProjector`
keeps it equal to whichever tab is active:

* Pull: when the active id changes, every field of the newly active tab is
  copied into the shared view, synchronously.
* Push: an edit on a tab's field is mirrored into the shared view only when
  that tab is active. Edits made on the shared view are written back to the
  active tab.

A re-entrancy guard keeps the two directions from feeding each other.
"""

from __future__ import annotations

from contextlib import contextmanager
from functools import partial
from typing import Any, Dict, Iterator, List, Optional

import structlog

from erpforge.constants import (
    DEFAULT_CONTRAST,
    DEFAULT_CONTRAST_TYPE,
    DEFAULT_FORMULA,
    DEFAULT_MODEL_CATEGORY,
    DEFAULT_PRESET,
    DEFAULT_PROJECTION,
    DEFAULT_SIGMA,
)
from erpforge.core.signals import Signal, Subscription
from erpforge.core.tabs import MODEL_FIELDS, TabRegistry, preset_defaults

logger = structlog.get_logger(__name__)


class ActiveParameters:
    """Shared mirror of the active tab's model-specific fields."""

    def __init__(self) -> None:
        beta, basis = preset_defaults(DEFAULT_PRESET)
        self.model_category: Signal[str] = Signal(DEFAULT_MODEL_CATEGORY, name="active_model_category")
        self.contrast_type: Signal[str] = Signal(DEFAULT_CONTRAST_TYPE, name="active_contrast_type")
        self.basis: Signal[str] = Signal(basis, name="active_basis")
        self.formula: Signal[str] = Signal(DEFAULT_FORMULA, name="active_formula")
        self.projection: Signal[str] = Signal(DEFAULT_PROJECTION, name="active_projection")
        self.beta: Signal[int] = Signal(beta, name="active_beta")
        self.contrast: Signal[int] = Signal(DEFAULT_CONTRAST, name="active_contrast")
        self.sigma: Signal[int] = Signal(DEFAULT_SIGMA, name="active_sigma")

    def field(self, name: str) -> Signal:
        if name not in MODEL_FIELDS:
            raise KeyError(f"Unknown active parameter '{name}'")
        return getattr(self, name)

    def fields(self) -> Dict[str, Signal]:
        return {name: getattr(self, name) for name in MODEL_FIELDS}

    def values(self) -> Dict[str, Any]:
        return {name: getattr(self, name).value for name in MODEL_FIELDS}


class ActiveParameterProjector:
    """Keeps :class:`ActiveParameters` synchronised with the active tab.

    Args:
        registry: Tab registry to follow. Tabs already present are attached.
        active: Shared parameter view to maintain.
    """

    def __init__(self, registry: TabRegistry, active: ActiveParameters) -> None:
        self.registry = registry
        self.active = active
        self._syncing = False
        self._tab_subscriptions: Dict[int, List[Subscription]] = {}
        self._subscriptions: List[Subscription] = [
            registry.tab_added.subscribe(self._attach),
            registry.tab_removed.subscribe(self._detach),
            registry.active_id.subscribe(self.pull),
        ]
        for name in MODEL_FIELDS:
            self._subscriptions.append(
                active.field(name).subscribe(partial(self._write_back, name))
            )
        for tab in registry:
            self._attach(tab.id)
        self.pull(registry.active_id.value)

    @contextmanager
    def _guard(self) -> Iterator[None]:
        previous = self._syncing
        self._syncing = True
        try:
            yield
        finally:
            self._syncing = previous

    # ------------------------------------------------------------------
    # Tab lifecycle
    # ------------------------------------------------------------------
    def _attach(self, tab_id: Optional[int]) -> None:
        tab = self.registry.get(tab_id)
        if tab is None or tab.id in self._tab_subscriptions:
            return
        self._tab_subscriptions[tab.id] = [
            signal.subscribe(partial(self._push, tab.id, name))
            for name, signal in tab.fields().items()
        ]

    def _detach(self, tab_id: Optional[int]) -> None:
        for subscription in self._tab_subscriptions.pop(tab_id, []):
            subscription.cancel()

    # ------------------------------------------------------------------
    # Projection rules
    # ------------------------------------------------------------------
    def pull(self, active_id: Optional[int]) -> None:
        """Copy every field of tab ``active_id`` into the shared view."""
        tab = self.registry.get(active_id)
        if tab is None:
            return
        with self._guard():
            for name, signal in tab.fields().items():
                self.active.field(name).set(signal.value)
        logger.debug("Pulled active tab", tab_id=tab.id)

    def _push(self, tab_id: int, name: str, value: Any) -> None:
        if self._syncing or self.registry.active_id.value != tab_id:
            return
        with self._guard():
            self.active.field(name).set(value)

    def _write_back(self, name: str, value: Any) -> None:
        if self._syncing:
            return
        tab = self.registry.active_tab
        if tab is None:
            return
        with self._guard():
            tab.field(name).set(value)

    def dispose(self) -> None:
        for subscription in self._subscriptions:
            subscription.cancel()
        for tab_id in list(self._tab_subscriptions):
            self._detach(tab_id)
