"""Basis-function catalog.

Basis text names one catalog function with numeric arguments, optionally
preceded by a sign and a scale factor::

    hanning(40, 0, 100)
    -hanning(20, 15, 100)
    0.5 * gaussian(30, 5, 100)

Catalog (arguments in samples):

* ``hanning(width, shift, sfreq)``: ``shift`` zeros followed by a
  symmetric Hann window of ``width`` samples.
* ``gaussian(center, sigma, length)``: Gaussian bump over ``length``
  samples.
"""

from __future__ import annotations

import re
from typing import Callable, Dict, List

import numpy as np
from scipy.signal.windows import hann

from erpforge.errors import ExpressionParseError

_NUMBER = r"[-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?"
_BASIS_RE = re.compile(
    rf"^\s*(?P<sign>[-+])?\s*(?:(?P<scale>{_NUMBER})\s*\*\s*)?"
    r"(?P<name>[A-Za-z_][A-Za-z0-9_]*)\s*\((?P<args>[^()]*)\)\s*$"
)

# Upper bound on the samples any catalog function may produce
MAX_BASIS_SAMPLES = 5000


def hanning(width: float, shift: float = 0, sfreq: float = 100) -> np.ndarray:
    width_i = int(round(width))
    shift_i = int(round(shift))
    if width_i < 1:
        raise ExpressionParseError(f"hanning width must be at least 1 sample, got {width}")
    if shift_i < 0:
        raise ExpressionParseError(f"hanning shift must be non-negative, got {shift}")
    if sfreq <= 0:
        raise ExpressionParseError(f"hanning sfreq must be positive, got {sfreq}")
    if width_i + shift_i > MAX_BASIS_SAMPLES:
        raise ExpressionParseError(
            f"hanning width + shift must be at most {MAX_BASIS_SAMPLES} samples, got {width_i + shift_i}"
        )
    return np.concatenate([np.zeros(shift_i), hann(width_i, sym=True)])


def gaussian(center: float, sigma: float, length: float = 100) -> np.ndarray:
    length_i = int(round(length))
    if length_i < 1:
        raise ExpressionParseError(f"gaussian length must be at least 1 sample, got {length}")
    if length_i > MAX_BASIS_SAMPLES:
        raise ExpressionParseError(
            f"gaussian length must be at most {MAX_BASIS_SAMPLES} samples, got {length_i}"
        )
    if sigma <= 0:
        raise ExpressionParseError(f"gaussian sigma must be positive, got {sigma}")
    n = np.arange(length_i, dtype=np.float64)
    return np.exp(-0.5 * ((n - center) / sigma) ** 2)


BASIS_CATALOG: Dict[str, Callable[..., np.ndarray]] = {
    "hanning": hanning,
    "gaussian": gaussian,
}


def _parse_args(text: str) -> List[float]:
    if not text.strip():
        return []
    values = []
    for raw in text.split(","):
        item = raw.strip()
        if not re.fullmatch(_NUMBER, item):
            raise ExpressionParseError(f"Basis arguments must be numbers, got {item!r}")
        value = float(item)
        if not np.isfinite(value):
            raise ExpressionParseError(f"Basis arguments must be finite, got {item!r}")
        values.append(value)
    return values


def parse_basis(text: str) -> np.ndarray:
    """Evaluate basis text against the catalog.

    Raises:
        ExpressionParseError: Unknown function, wrong arity or malformed text.
    """
    if not isinstance(text, str):
        raise ExpressionParseError(f"Basis must be text, got {type(text).__name__}")
    match = _BASIS_RE.match(text or "")
    if match is None:
        raise ExpressionParseError(
            f"Cannot parse basis {text!r}; expected e.g. 'hanning(40, 0, 100)'",
            details={"available": sorted(BASIS_CATALOG)},
        )
    name = match.group("name")
    if name not in BASIS_CATALOG:
        raise ExpressionParseError(
            f"Unknown basis function '{name}'. Available: {', '.join(sorted(BASIS_CATALOG))}"
        )
    args = _parse_args(match.group("args"))
    try:
        values = BASIS_CATALOG[name](*args)
    except TypeError as exc:
        raise ExpressionParseError(f"Wrong arguments for {name}: {exc}") from exc
    scale = float(match.group("scale")) if match.group("scale") else 1.0
    if not np.isfinite(scale):
        raise ExpressionParseError(f"Basis scale must be finite, got {match.group('scale')!r}")
    if match.group("sign") == "-":
        scale = -scale
    return scale * values
