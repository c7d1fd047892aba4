"""Pre-run validation of parameter combinations."""

from __future__ import annotations

from erpforge.constants import (
    MIXED_MODEL,
    REPEAT_DESIGN,
    SINGLE_SUBJECT_DESIGN,
    VALIDATION_BLOCKED_MESSAGE,
)
from erpforge.errors import ValidationError

# Designs without a subject grouping factor
_SUBJECTLESS_DESIGNS = frozenset({SINGLE_SUBJECT_DESIGN, REPEAT_DESIGN})


def validate_combination(model_category: str, design_category: str) -> None:
    """Reject model / design pairs the engine cannot simulate.

    A mixed model needs a subject grouping factor, so it is only valid with
    a multi-subject design.

    Raises:
        ValidationError: For a Mixed Model on a single-subject or repeat design.
    """
    if model_category == MIXED_MODEL and design_category in _SUBJECTLESS_DESIGNS:
        raise ValidationError(
            VALIDATION_BLOCKED_MESSAGE,
            details={"model_category": model_category, "design_category": design_category},
        )


def is_valid_combination(model_category: str, design_category: str) -> bool:
    try:
        validate_combination(model_category, design_category)
    except ValidationError:
        return False
    return True
