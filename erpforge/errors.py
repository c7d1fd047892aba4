"""Error definitions for ERPForge."""

from __future__ import annotations

from typing import Dict, Optional


class ERPForgeError(Exception):
    """Base exception for all ERPForge errors."""

    def __init__(self, message: str, details: Optional[Dict] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigError(ERPForgeError):
    """Configuration loading or schema errors."""
    pass


class ValidationError(ERPForgeError):
    """Invalid model / design combination; blocks a run before any engine call."""
    pass


class ComputeError(ERPForgeError):
    """Failure raised while building inputs for, or post-processing, a simulation."""
    pass


class ExpressionParseError(ComputeError):
    """Malformed basis, formula or projection text."""
    pass


class TabLimitError(ERPForgeError):
    """Raised when a tab would exceed the session's tab limit."""
    pass
