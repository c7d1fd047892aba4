"""Slider position (0..100) to model value conversions.

The dashboard exposes every numeric parameter as an integer slider. These
functions translate slider positions into the values the simulation engine
consumes. Rounding uses Python's ``round`` (half to even).
"""

from __future__ import annotations


def beta_value(v: float) -> float:
    """Intercept weight: 50 maps to 0, range -20..20."""
    return (v - 50) / 2.5


def contrast_value(v: float) -> float:
    """Contrast weight: 50 maps to 0, range -10..10."""
    return (v - 50) / 5


def sigma_value(v: float) -> float:
    """Random-effect width, 0..5."""
    return v / 20


def subjects_value(v: float) -> int:
    return max(1, round(v / 2))


def items_value(v: float) -> int:
    return max(2, round(v))


def noise_level_value(v: float) -> float:
    return v / 10


def onset_mu_value(v: float) -> float:
    """Log-normal location, -1..2."""
    return -1 + 3 * v / 100


def onset_sigma_value(v: float) -> float:
    """Log-normal scale, 0.1..1.0."""
    return 0.1 + 0.9 * v / 100


def onset_offset_value(v: float) -> int:
    return round(2 * v)


def truncate_upper_value(v: float) -> int:
    return round(100 + 9 * v)


def truncate_lower_value(v: float) -> int:
    return round(5 * v)


def uniform_width_value(v: float) -> int:
    return round(10 + 1.9 * v)


def uniform_offset_value(v: float) -> int:
    return round(2 * v)
