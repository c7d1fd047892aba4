"""Experimental designs as pandas event tables.

:class:`DesignBuilder` turns the dashboard's event variables into one of
three design kinds:

* Single-subject: the full factorial of all variables, one row per cell.
* Repeat: the single-subject table repeated ``n_items`` times.
* Multi-subject: ``n_subjects`` x ``n_items`` rows; the first categorical
  variable is varied between items. ``n_items`` is rounded down to even.
"""

from __future__ import annotations

import itertools
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Sequence

import pandas as pd

from erpforge.constants import (
    DEFAULT_CATEGORICAL,
    MULTI_SUBJECT_DESIGN,
    REPEAT_DESIGN,
    SINGLE_SUBJECT_DESIGN,
)
from erpforge.core.variables import ContinuousRange
from erpforge.errors import ComputeError


@dataclass
class Design:
    """Event table plus the categorical levels it was built from.

    Attributes:
        kind: Design category label.
        events: One row per event.
        levels: Categorical variable name -> ordered levels.
    """

    kind: str
    events: pd.DataFrame
    levels: Dict[str, List[str]] = field(default_factory=dict)

    @property
    def n_events(self) -> int:
        return int(len(self.events))

    @property
    def n_subjects(self) -> int:
        if "subject" not in self.events:
            return 1
        return int(self.events["subject"].nunique())


def _factorial(conditions: Mapping[str, Sequence[Any]]) -> pd.DataFrame:
    names = list(conditions)
    rows = list(itertools.product(*[list(conditions[name]) for name in names]))
    return pd.DataFrame(rows, columns=names)


class DesignBuilder:
    """Builds :class:`Design` objects from event variable definitions."""

    def build(
        self,
        categorical: Mapping[str, Sequence[str]],
        continuous: Mapping[str, Any],
        design_kind: str,
        n_items: int,
        n_subjects: int,
    ) -> Design:
        levels = {name: list(values) for name, values in categorical.items() if len(values) > 0}
        conditions: Dict[str, Sequence[Any]] = dict(levels)
        for name, spec in continuous.items():
            conditions[name] = list(ContinuousRange.from_value(spec).values())
        if not conditions:
            levels = {name: list(values) for name, values in DEFAULT_CATEGORICAL.items()}
            conditions = dict(levels)

        if design_kind == SINGLE_SUBJECT_DESIGN:
            return Design(design_kind, _factorial(conditions), levels)
        if design_kind == REPEAT_DESIGN:
            if n_items < 1:
                raise ComputeError("Repeat design needs at least one repetition")
            base = _factorial(conditions)
            events = pd.concat([base] * int(n_items), ignore_index=True)
            return Design(design_kind, events, levels)
        if design_kind == MULTI_SUBJECT_DESIGN:
            return self._multi_subject(levels, int(n_items), int(n_subjects))
        raise ComputeError(f"Unknown design category '{design_kind}'")

    @staticmethod
    def _multi_subject(levels: Dict[str, List[str]], n_items: int, n_subjects: int) -> Design:
        if levels:
            between_name = next(iter(levels))
            between = {between_name: levels[between_name]}
        else:
            between_name = next(iter(DEFAULT_CATEGORICAL))
            between = {between_name: list(DEFAULT_CATEGORICAL[between_name])}
        n_items = n_items if n_items % 2 == 0 else n_items - 1
        if n_items < 2 or n_subjects < 1:
            raise ComputeError(
                "Multi-subject design needs at least 2 items and 1 subject",
                details={"n_items": n_items, "n_subjects": n_subjects},
            )
        between_levels = between[between_name]
        subject_width = len(str(n_subjects))
        item_width = len(str(n_items))
        rows = []
        for s in range(1, n_subjects + 1):
            for i in range(1, n_items + 1):
                rows.append(
                    {
                        "subject": f"S{s:0{subject_width}d}",
                        "item": f"I{i:0{item_width}d}",
                        between_name: between_levels[(i - 1) % len(between_levels)],
                    }
                )
        return Design(MULTI_SUBJECT_DESIGN, pd.DataFrame(rows), between)
