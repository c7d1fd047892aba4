"""Component registry system for ERPForge.

Dropdown labels from the dashboard (onset model, noise model, model
category) are resolved to engine objects through registries instead of
if/else chains. Components register themselves in
:mod:`erpforge.register_components` and are instantiated by name.

Example:
    >>> from erpforge.registry import NOISE_REGISTRY
    >>> NOISE_REGISTRY.register("White", WhiteNoise, make_white)
    >>> noise = NOISE_REGISTRY.create("White", noiselevel=1.5)
"""

from __future__ import annotations

import warnings
from typing import Any, Callable, Dict, List, Optional, Tuple, Type


class ComponentRegistry:
    """Generic registry for component classes.

    Attributes:
        _registry: Dict mapping component name -> (class, factory_func).
            factory_func is optional; if None, the class is instantiated
            directly with the keyword arguments.
    """

    def __init__(self, registry_name: str = "ComponentRegistry"):
        """Initialize empty registry.

        Args:
            registry_name: Name for error messages (e.g., "NOISE_REGISTRY").
        """
        self._registry: Dict[str, Tuple[Type, Optional[Callable]]] = {}
        self._name = registry_name

    def register(
        self,
        name: str,
        cls: Type,
        factory_func: Optional[Callable] = None,
    ) -> None:
        """Register a component class.

        Args:
            name: Identifier, usually the dashboard label (e.g., "Log Normal").
            cls: Component class produced for this name.
            factory_func: Optional factory called instead of ``cls(**kwargs)``.
                Factories receive every setting of their kind and pick the
                ones they need.

        Note:
            Registering the same class under the same name again is a no-op.
            Overwriting with a different class warns.
        """
        if name in self._registry:
            existing_cls, _ = self._registry[name]
            if existing_cls is cls:
                return
            warnings.warn(
                f"{self._name}: Component '{name}' already registered with "
                f"{existing_cls.__name__}, overwriting with {cls.__name__}",
                UserWarning,
            )
        self._registry[name] = (cls, factory_func)

    def _lookup(self, name: str) -> Tuple[Type, Optional[Callable]]:
        if name not in self._registry:
            available = ", ".join(sorted(self._registry.keys()))
            raise KeyError(
                f"{self._name}: Component '{name}' not registered. "
                f"Available: {available}"
            )
        return self._registry[name]

    def create(self, name: str, **kwargs: Any) -> Any:
        """Create a component instance by name.

        Raises:
            KeyError: If name is not registered.
        """
        cls, factory_func = self._lookup(name)
        if factory_func is not None:
            return factory_func(**kwargs)
        return cls(**kwargs)

    def list_registered(self) -> List[str]:
        """Sorted list of registered names."""
        return sorted(self._registry.keys())

    def is_registered(self, name: str) -> bool:
        return name in self._registry

    def get_class(self, name: str) -> Type:
        """Get the registered class for a component name.

        Raises:
            KeyError: If name is not registered.
        """
        cls, _ = self._lookup(name)
        return cls


# Global registries for each component type
ONSET_REGISTRY = ComponentRegistry("ONSET_REGISTRY")
NOISE_REGISTRY = ComponentRegistry("NOISE_REGISTRY")
MODEL_REGISTRY = ComponentRegistry("MODEL_REGISTRY")
