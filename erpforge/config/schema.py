"""Canonical configuration schema for ERPForge sessions.

A session file captures every tab (its preset and model-specific fields),
which tab is active, and the flat global parameters (design, onset, noise,
sliders and event variables). The GUI saves and the CLI loads the same
format, so a saved session reproduces the same simulation.

Example:
    >>> from erpforge.config.schema import SessionConfig
    >>> config = SessionConfig.from_yaml(open("session.yml").read())
    >>> yaml_str = config.to_yaml()
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Mapping

from erpforge.config.yaml_utils import dump_yaml, load_yaml
from erpforge.constants import (
    DEFAULT_CONTRAST,
    DEFAULT_CONTRAST_TYPE,
    DEFAULT_FORMULA,
    DEFAULT_MODEL_CATEGORY,
    DEFAULT_PRESET,
    DEFAULT_PROJECTION,
    DEFAULT_SIGMA,
    PRESET_DEFAULTS,
)
from erpforge.errors import ConfigError

SCHEMA_VERSION = 1
NUMERIC_TAB_FIELDS = ("beta", "contrast", "sigma")


def _tab_number(field_name: str, value: Any) -> float:
    if isinstance(value, bool):
        raise ConfigError(f"Tab field '{field_name}' must be a number", {"got": value})
    try:
        number = float(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Tab field '{field_name}' must be a number", {"got": value}) from exc
    return int(number) if number.is_integer() else number


@dataclass
class TabConfig:
    """Configuration of one tab.

    Attributes:
        name: Tab label (usually the preset it was opened with).
        preset: Basis preset name.
        model_category: Linear, Mixed or Multichannel model.
        contrast_type: Coding of categorical predictors.
        basis: Basis text, e.g. ``"hanning(40, 0, 100)"``.
        formula: Fixed-effects formula text.
        projection: Dipole orientation text, e.g. ``"[1.0, 0.5, -0.2]"``.
        beta: Beta slider position.
        contrast: Contrast slider position.
        sigma: Random-effect sigma slider position.
    """
    name: str = DEFAULT_PRESET
    preset: str = DEFAULT_PRESET
    model_category: str = DEFAULT_MODEL_CATEGORY
    contrast_type: str = DEFAULT_CONTRAST_TYPE
    basis: str = PRESET_DEFAULTS[DEFAULT_PRESET][1]
    formula: str = DEFAULT_FORMULA
    projection: str = DEFAULT_PROJECTION
    beta: float = PRESET_DEFAULTS[DEFAULT_PRESET][0]
    contrast: float = DEFAULT_CONTRAST
    sigma: float = DEFAULT_SIGMA

    def values(self) -> Dict[str, Any]:
        """Preset plus model fields, in the shape :meth:`Tab.apply` expects."""
        data = asdict(self)
        data.pop("name")
        return data

    def to_dict(self) -> Dict[str, Any]:
        """Convert to plain dict for YAML serialization."""
        return asdict(self)

    @classmethod
    def from_values(cls, name: str, preset: str, values: Mapping[str, Any]) -> TabConfig:
        """Build from a tab's name, preset and :meth:`Tab.values` output."""
        return cls.from_dict({**values, "name": name, "preset": preset})

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> TabConfig:
        """Create from dict (e.g., from YAML); unknown keys are ignored."""
        if not isinstance(data, Mapping):
            raise ConfigError("Tab entry must be a mapping", {"got": type(data).__name__})
        kwargs: Dict[str, Any] = {}
        for field_name in cls.__dataclass_fields__:
            raw = data.get(field_name)
            if raw is None:
                continue
            if field_name in NUMERIC_TAB_FIELDS:
                kwargs[field_name] = _tab_number(field_name, raw)
            else:
                kwargs[field_name] = str(raw)
        if "name" in kwargs and "preset" not in kwargs and kwargs["name"] in PRESET_DEFAULTS:
            kwargs["preset"] = kwargs["name"]
        return cls(**kwargs)


@dataclass
class SessionConfig:
    """Full dashboard session.

    Attributes:
        parameters: Flat global parameters (design, onset, noise, slider
            positions, ``categorical_variables``, ``continuous_variables``).
        tabs: Tab configurations in display order.
        active_tab: Index into ``tabs`` of the active tab.
        metadata: Optional metadata (version, notes, ...).
    """
    parameters: Dict[str, Any] = field(default_factory=dict)
    tabs: List[TabConfig] = field(default_factory=list)
    active_tab: int = 0
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to plain dict for YAML serialization.

        Returns:
            Dictionary suitable for yaml.dump().
        """
        metadata = {"schema_version": SCHEMA_VERSION, **self.metadata}
        return {
            "metadata": metadata,
            "active_tab": self.active_tab,
            "tabs": [tab.to_dict() for tab in self.tabs],
            "parameters": dict(self.parameters),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> SessionConfig:
        """Create from dict (e.g., from YAML).

        Raises:
            ConfigError: If a section has the wrong shape.
        """
        parameters = data.get("parameters") or {}
        if not isinstance(parameters, Mapping):
            raise ConfigError("'parameters' must be a mapping")
        tabs = data.get("tabs") or []
        if not isinstance(tabs, list):
            raise ConfigError("'tabs' must be a list")
        try:
            active_tab = int(data.get("active_tab", 0))
        except (TypeError, ValueError) as exc:
            raise ConfigError("'active_tab' must be an integer", {"got": data.get("active_tab")}) from exc
        return cls(
            parameters=dict(parameters),
            tabs=[TabConfig.from_dict(tab) for tab in tabs],
            active_tab=active_tab,
            metadata=dict(data.get("metadata") or {}),
        )

    def to_yaml(self) -> str:
        """Serialize to YAML string."""
        return dump_yaml(self.to_dict())

    @classmethod
    def from_yaml(cls, yaml_str: str) -> SessionConfig:
        """Load from YAML string.

        Raises:
            ConfigError: On malformed YAML, duplicate keys or a non-mapping
                document.
        """
        data = load_yaml(yaml_str)
        if not isinstance(data, dict):
            raise ConfigError("YAML did not produce a dict")
        return cls.from_dict(data)
