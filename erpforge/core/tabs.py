"""Configuration tabs and the registry that owns them.

Each :class:`Tab` is an isolated bundle of model-specific parameter signals.
The :class:`TabRegistry` allocates ids, tracks which tab is active and
announces structural changes (add / activate / remove) through signals so
that the projector, the result cache and any tab bar can follow along.
"""

from __future__ import annotations

import itertools
from typing import Any, Dict, Iterator, List, Optional, Tuple

import structlog

from erpforge.constants import (
    DEFAULT_CONTRAST,
    DEFAULT_CONTRAST_TYPE,
    DEFAULT_FORMULA,
    DEFAULT_MODEL_CATEGORY,
    DEFAULT_PRESET,
    DEFAULT_PROJECTION,
    DEFAULT_SIGMA,
    MAX_TABS,
    PRESET_DEFAULTS,
)
from erpforge.core.results import SimulationResult
from erpforge.core.signals import Signal
from erpforge.errors import TabLimitError

logger = structlog.get_logger(__name__)

# Fields mirrored into the active parameter set
MODEL_FIELDS: Tuple[str, ...] = (
    "model_category",
    "contrast_type",
    "basis",
    "formula",
    "projection",
    "beta",
    "contrast",
    "sigma",
)


def preset_defaults(preset_name: str) -> Tuple[int, str]:
    """Return ``(beta, basis)`` for a preset, falling back to Custom."""
    return PRESET_DEFAULTS.get(preset_name, PRESET_DEFAULTS[DEFAULT_PRESET])


class Tab:
    """One ERP component configuration.

    Attributes:
        id: Unique id assigned by the registry.
        name: Display label (the preset it was opened with, not unique).
        preset: Basis preset; changing it rewrites ``basis``.
        last_result: Result of the last run made while this tab was active.
    """

    def __init__(self, tab_id: int, name: str) -> None:
        beta, basis = preset_defaults(name)
        self.id = int(tab_id)
        self.name = name
        self.preset: Signal[str] = Signal(
            name if name in PRESET_DEFAULTS else DEFAULT_PRESET, name="preset"
        )
        self.model_category: Signal[str] = Signal(DEFAULT_MODEL_CATEGORY, name="model_category")
        self.contrast_type: Signal[str] = Signal(DEFAULT_CONTRAST_TYPE, name="contrast_type")
        self.basis: Signal[str] = Signal(basis, name="basis")
        self.formula: Signal[str] = Signal(DEFAULT_FORMULA, name="formula")
        self.projection: Signal[str] = Signal(DEFAULT_PROJECTION, name="projection")
        self.beta: Signal[int] = Signal(beta, name="beta")
        self.contrast: Signal[int] = Signal(DEFAULT_CONTRAST, name="contrast")
        self.sigma: Signal[int] = Signal(DEFAULT_SIGMA, name="sigma")
        self.last_result: Optional[SimulationResult] = None
        self.preset.subscribe(self._apply_preset)

    def __repr__(self) -> str:
        return f"Tab(id={self.id}, name={self.name!r})"

    def _apply_preset(self, preset_name: str) -> None:
        if preset_name in PRESET_DEFAULTS:
            self.basis.set(PRESET_DEFAULTS[preset_name][1])

    def field(self, name: str) -> Signal:
        if name not in MODEL_FIELDS:
            raise KeyError(f"Unknown tab field '{name}'. Available: {', '.join(MODEL_FIELDS)}")
        return getattr(self, name)

    def fields(self) -> Dict[str, Signal]:
        return {name: getattr(self, name) for name in MODEL_FIELDS}

    def values(self) -> Dict[str, Any]:
        """Current value of every model-specific field."""
        return {name: getattr(self, name).value for name in MODEL_FIELDS}

    def apply(self, values: Dict[str, Any]) -> None:
        """Write known fields from ``values``; ``preset`` is applied first."""
        if "preset" in values:
            self.preset.set(values["preset"])
        for name in MODEL_FIELDS:
            if name in values:
                getattr(self, name).set(values[name])


class TabRegistry:
    """Owns the tab sequence and the active tab id.

    Structural signals:
        active_id: Id of the active tab (``None`` before the first tab).
        tab_added / tab_removed: Id of the tab that was just added / removed.
        tabs_changed: Tuple of tab ids after every create, activate or remove.
    """

    def __init__(self, max_tabs: int = MAX_TABS) -> None:
        self.max_tabs = int(max_tabs)
        self._tabs: List[Tab] = []
        self._ids = itertools.count(1)
        self.active_id: Signal[Optional[int]] = Signal(None, name="active_id")
        self.tab_added: Signal[Optional[int]] = Signal(None, name="tab_added")
        self.tab_removed: Signal[Optional[int]] = Signal(None, name="tab_removed")
        self.tabs_changed: Signal[Tuple[int, ...]] = Signal((), name="tabs_changed")

    def __iter__(self) -> Iterator[Tab]:
        return iter(list(self._tabs))

    def __len__(self) -> int:
        return len(self._tabs)

    def __contains__(self, tab_id: object) -> bool:
        return any(tab.id == tab_id for tab in self._tabs)

    @property
    def ids(self) -> Tuple[int, ...]:
        return tuple(tab.id for tab in self._tabs)

    def get(self, tab_id: Optional[int]) -> Optional[Tab]:
        for tab in self._tabs:
            if tab.id == tab_id:
                return tab
        return None

    @property
    def active_tab(self) -> Optional[Tab]:
        return self.get(self.active_id.value)

    def find_by_name(self, name: str) -> Optional[Tab]:
        for tab in self._tabs:
            if tab.name == name:
                return tab
        return None

    # ------------------------------------------------------------------
    # Structural operations
    # ------------------------------------------------------------------
    def create_tab(self, preset_name: str = DEFAULT_PRESET) -> int:
        """Create a tab initialised from ``preset_name`` and make it active.

        Raises:
            TabLimitError: If the registry already holds ``max_tabs`` tabs.
        """
        if len(self._tabs) >= self.max_tabs:
            raise TabLimitError(
                f"Cannot open more than {self.max_tabs} tabs",
                details={"preset": preset_name},
            )
        tab = Tab(next(self._ids), preset_name)
        self._tabs.append(tab)
        logger.debug("Tab created", tab_id=tab.id, preset=preset_name)
        self.tab_added.set(tab.id, force=True)
        self.active_id.set(tab.id, force=True)
        self.tabs_changed.set(self.ids, force=True)
        return tab.id

    def set_active(self, tab_id: int) -> bool:
        """Activate ``tab_id``. Unknown ids are ignored.

        Returns:
            True if the id matched a tab.
        """
        if tab_id not in self:
            logger.debug("Ignoring activation of unknown tab", tab_id=tab_id)
            return False
        self.active_id.set(tab_id, force=True)
        self.tabs_changed.set(self.ids, force=True)
        return True

    def open_preset(self, preset_name: str) -> int:
        """Activate the first tab named ``preset_name``, creating it if needed."""
        existing = self.find_by_name(preset_name)
        if existing is not None:
            self.set_active(existing.id)
            return existing.id
        return self.create_tab(preset_name)

    def remove_tab(self, tab_id: int) -> bool:
        """Remove a tab.

        The last remaining tab cannot be removed. Removing the active tab
        activates its left neighbour (or the new first tab).

        Returns:
            True if the tab was removed.
        """
        index = next((i for i, tab in enumerate(self._tabs) if tab.id == tab_id), None)
        if index is None:
            return False
        if len(self._tabs) == 1:
            logger.warning("Refusing to remove the last tab", tab_id=tab_id)
            return False
        was_active = self.active_id.value == tab_id
        self._tabs.pop(index)
        logger.debug("Tab removed", tab_id=tab_id, was_active=was_active)
        self.tab_removed.set(tab_id, force=True)
        if was_active:
            neighbour = self._tabs[max(index - 1, 0)]
            self.active_id.set(neighbour.id, force=True)
        self.tabs_changed.set(self.ids, force=True)
        return True
