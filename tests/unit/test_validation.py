"""Unit tests for the model / design validation gate."""

import pytest

from erpforge.constants import (
    LINEAR_MODEL,
    MIXED_MODEL,
    MULTI_SUBJECT_DESIGN,
    MULTICHANNEL_MODEL,
    REPEAT_DESIGN,
    SINGLE_SUBJECT_DESIGN,
    VALIDATION_BLOCKED_MESSAGE,
)
from erpforge.core.validation import is_valid_combination, validate_combination
from erpforge.errors import ValidationError


@pytest.mark.parametrize("design", [SINGLE_SUBJECT_DESIGN, REPEAT_DESIGN])
def test_mixed_model_needs_subjects(design):
    with pytest.raises(ValidationError) as excinfo:
        validate_combination(MIXED_MODEL, design)
    assert excinfo.value.message == VALIDATION_BLOCKED_MESSAGE
    assert excinfo.value.details["design_category"] == design
    assert not is_valid_combination(MIXED_MODEL, design)


@pytest.mark.parametrize(
    "model,design",
    [
        (MIXED_MODEL, MULTI_SUBJECT_DESIGN),
        (LINEAR_MODEL, SINGLE_SUBJECT_DESIGN),
        (LINEAR_MODEL, REPEAT_DESIGN),
        (LINEAR_MODEL, MULTI_SUBJECT_DESIGN),
        (MULTICHANNEL_MODEL, SINGLE_SUBJECT_DESIGN),
    ],
)
def test_other_combinations_pass(model, design):
    validate_combination(model, design)
    assert is_valid_combination(model, design)
