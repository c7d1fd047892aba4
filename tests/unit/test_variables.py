"""Unit tests for event variables and global controls."""

import pytest

from erpforge.constants import CATEGORICAL_TEMPLATES, GLOBAL_DEFAULTS
from erpforge.core.controls import CONTROL_NAMES, GlobalControls
from erpforge.core.variables import (
    ContinuousRange,
    EventVariables,
    coerce_categorical,
    coerce_continuous,
)


class TestContinuousRange:
    def test_values(self):
        assert list(ContinuousRange(0.0, 1.0, 3).values()) == [0.0, 0.5, 1.0]

    @pytest.mark.parametrize(
        "value",
        [
            ContinuousRange(1.0, 2.0, 4),
            {"min": 1, "max": 2, "steps": 4},
            [1, 2, 4],
        ],
    )
    def test_from_value_accepts_several_shapes(self, value):
        assert ContinuousRange.from_value(value) == ContinuousRange(1.0, 2.0, 4)

    def test_coercion_helpers(self):
        assert coerce_categorical({"c": ["A", 1]}) == {"c": ["A", "1"]}
        assert coerce_continuous({"x": (0, 1, 2)}) == {"x": ContinuousRange(0.0, 1.0, 2)}


class TestEventVariables:
    def test_default_condition(self):
        assert EventVariables().categorical.value == {"condition": ["A", "B"]}

    def test_add_template(self):
        variables = EventVariables()
        assert variables.add_categorical_template("emotion")
        assert variables.categorical.value["emotion"] == CATEGORICAL_TEMPLATES["emotion"]
        assert variables.status.value.startswith("Added template")

    def test_unknown_template_reports_error(self):
        variables = EventVariables()
        assert variables.add_categorical_template("nope") is False
        assert variables.status.value == "Error: Variable template not found"

    def test_add_custom_parses_levels(self):
        variables = EventVariables()
        assert variables.add_categorical("size", " small, , large ")
        assert variables.categorical.value["size"] == ["small", "large"]

    def test_single_level_warns_but_adds(self):
        variables = EventVariables()
        assert variables.add_categorical("solo", "x")
        assert variables.status.value.startswith("Warning")
        assert "solo" in variables.categorical.value

    @pytest.mark.parametrize("name,levels", [("", "a,b"), ("x", " , ")])
    def test_invalid_custom_categorical(self, name, levels):
        variables = EventVariables()
        assert variables.add_categorical(name, levels) is False
        assert variables.status.value.startswith("Error")

    def test_remove_categorical(self):
        variables = EventVariables()
        assert variables.remove_categorical("condition")
        assert variables.categorical.value == {}
        assert variables.remove_categorical("condition") is False

    def test_continuous_operations(self):
        variables = EventVariables()
        assert variables.add_continuous_template("intensity")
        assert variables.add_continuous("rt", "100", 500, 5)
        assert variables.continuous.value["rt"] == ContinuousRange(100.0, 500.0, 5)
        assert variables.remove_continuous("intensity")
        assert set(variables.continuous.value) == {"rt"}

    @pytest.mark.parametrize(
        "low,high,steps",
        [(0, 1, 1), (2, 1, 3), ("a", 1, 3)],
    )
    def test_invalid_continuous(self, low, high, steps):
        variables = EventVariables()
        assert variables.add_continuous("x", low, high, steps) is False
        assert variables.continuous.value == {}

    def test_edits_replace_the_mapping(self):
        variables = EventVariables()
        before = variables.categorical.value
        variables.add_categorical("size", "s,l")
        assert "size" not in before


class TestGlobalControls:
    def test_defaults(self):
        controls = GlobalControls()
        assert controls.values() == {name: GLOBAL_DEFAULTS[name] for name in CONTROL_NAMES}

    def test_overrides_and_unknown_names(self):
        assert GlobalControls(n_items=40).n_items.value == 40
        with pytest.raises(KeyError):
            GlobalControls(bogus=1)
        with pytest.raises(KeyError):
            GlobalControls().signal("bogus")
