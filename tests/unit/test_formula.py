"""Unit tests for formula parsing and design matrices."""

import numpy as np
import pandas as pd
import pytest

from erpforge.engine.formula import (
    Factor,
    Term,
    MAX_EXPONENT,
    design_matrix,
    parse_formula,
    random_design_matrices,
)
from erpforge.errors import ExpressionParseError


@pytest.fixture
def events():
    return pd.DataFrame(
        {
            "condition": ["A", "B", "A", "B"],
            "intensity": [0.0, 1.0, 2.0, 3.0],
            "subject": ["S1", "S1", "S2", "S2"],
        }
    )


LEVELS = {"condition": ["A", "B"]}


class TestParseFormula:
    def test_wrapped_formula(self):
        spec = parse_formula("@formula(0 ~ 1 + condition)")
        assert spec.intercept is True
        assert spec.terms == (Term((Factor("condition"),)),)

    def test_zero_removes_intercept(self):
        assert parse_formula("0 ~ 0 + condition").intercept is False

    def test_star_expands_to_main_effects_and_interaction(self):
        spec = parse_formula("0 ~ 1 + a * b")
        assert [term.label for term in spec.terms] == ["a", "b", "a & b"]

    def test_power_and_interaction(self):
        spec = parse_formula("0 ~ 1 + x^2 + a & x")
        assert [term.label for term in spec.terms] == ["x^2", "a & x"]

    def test_random_effects(self):
        spec = parse_formula("0 ~ 1 + condition + (1 + condition | subject)")
        assert len(spec.random_effects) == 1
        effect = spec.random_effects[0]
        assert effect.group == "subject" and effect.intercept
        assert spec.variables == ("condition",)

    @pytest.mark.parametrize(
        "text",
        [
            "",
            "0 ~",
            "0 ~ 1 + ",
            "0 ~ 1 + condition)",
            "0 ~ 1 + __import__('os')",
            "0 ~ 1 + x^0",
            "0 ~ 2",
            "@formula(0 ~ 1",
            "0 ~ 1 + (1 | 2)",
            "0 ~ 1 + x^99999999",
        ],
    )
    def test_malformed_text_raises(self, text):
        with pytest.raises(ExpressionParseError):
            parse_formula(text)


    def test_exponent_cap(self):
        assert parse_formula(f"0 ~ 1 + x^{MAX_EXPONENT}").terms[0].label == f"x^{MAX_EXPONENT}"
        with pytest.raises(ExpressionParseError, match="too large"):
            parse_formula(f"0 ~ 1 + x^{MAX_EXPONENT + 1}")

    @pytest.mark.parametrize("value", [None, 5, 1.5])
    def test_non_text_raises(self, value):
        with pytest.raises(ExpressionParseError, match="must be text"):
            parse_formula(value)


class TestDesignMatrix:
    def test_dummy_coding(self, events):
        labels, matrix = design_matrix(parse_formula("0 ~ 1 + condition"), events, LEVELS)
        assert labels == ["(Intercept)", "condition: B"]
        assert matrix[:, 1].tolist() == [0.0, 1.0, 0.0, 1.0]

    def test_effects_coding(self, events):
        _, matrix = design_matrix(
            parse_formula("0 ~ 1 + condition"), events, LEVELS, {"condition": "EffectsCoding"}
        )
        assert matrix[:, 1].tolist() == [-1.0, 1.0, -1.0, 1.0]

    def test_continuous_power(self, events):
        labels, matrix = design_matrix(parse_formula("0 ~ 0 + intensity^2"), events)
        assert labels == ["intensity^2"]
        assert matrix[:, 0].tolist() == [0.0, 1.0, 4.0, 9.0]

    def test_interaction_columns(self, events):
        labels, matrix = design_matrix(parse_formula("0 ~ 1 + condition * intensity"), events, LEVELS)
        assert labels == ["(Intercept)", "condition: B", "intensity", "condition: B & intensity"]
        assert np.allclose(matrix[:, 3], [0.0, 1.0, 0.0, 3.0])

    def test_unknown_variable(self, events):
        with pytest.raises(ExpressionParseError, match="Unknown variable"):
            design_matrix(parse_formula("0 ~ 1 + colour"), events)

    def test_unknown_coding(self, events):
        with pytest.raises(ExpressionParseError):
            design_matrix(parse_formula("0 ~ 1 + condition"), events, LEVELS, {"condition": "Helmert"})

    def test_random_design_matrices(self, events):
        spec = parse_formula("0 ~ 1 + condition + (1 + condition | subject)")
        matrices = random_design_matrices(spec, events, LEVELS)
        assert set(matrices) == {"subject"}
        assert matrices["subject"].shape == (4, 2)

    def test_missing_grouping_variable(self, events):
        spec = parse_formula("0 ~ 1 + (1 | item)")
        with pytest.raises(ExpressionParseError, match="Grouping variable"):
            random_design_matrices(spec, events)
