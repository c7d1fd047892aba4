"""Unit tests for tabs and the tab registry."""

import pytest

from erpforge.constants import PRESET_DEFAULTS
from erpforge.core.tabs import MODEL_FIELDS, Tab, TabRegistry, preset_defaults
from erpforge.errors import TabLimitError


class TestTab:
    def test_preset_initialises_beta_and_basis(self):
        tab = Tab(1, "N170 (Negative)")
        beta, basis = PRESET_DEFAULTS["N170 (Negative)"]
        assert tab.beta.value == beta
        assert tab.basis.value == basis
        assert tab.preset.value == "N170 (Negative)"

    def test_unknown_preset_falls_back_to_custom(self):
        tab = Tab(1, "Something else")
        assert tab.preset.value == "Custom"
        assert preset_defaults("Something else") == PRESET_DEFAULTS["Custom"]

    def test_changing_preset_rewrites_basis(self):
        tab = Tab(1, "Custom")
        tab.preset.set("P300 (Positive)")
        assert tab.basis.value == PRESET_DEFAULTS["P300 (Positive)"][1]

    def test_values_cover_model_fields(self):
        tab = Tab(1, "Custom")
        assert tuple(tab.values()) == MODEL_FIELDS

    def test_apply_sets_preset_before_basis(self):
        tab = Tab(1, "Custom")
        tab.apply({"preset": "N400 (Negative)", "basis": "hanning(10, 0, 100)", "beta": 12})
        assert tab.preset.value == "N400 (Negative)"
        assert tab.basis.value == "hanning(10, 0, 100)"
        assert tab.beta.value == 12

    def test_unknown_field_raises(self):
        with pytest.raises(KeyError):
            Tab(1, "Custom").field("nope")


class TestTabRegistry:
    def test_create_tab_activates_it(self):
        registry = TabRegistry()
        first = registry.create_tab("Custom")
        second = registry.create_tab("P100 (Positive)")
        assert first != second
        assert registry.active_id.value == second
        assert registry.ids == (first, second)

    def test_create_emits_added_before_activation(self):
        registry = TabRegistry()
        events = []
        registry.tab_added.subscribe(lambda tab_id: events.append(("added", tab_id)))
        registry.active_id.subscribe(lambda tab_id: events.append(("active", tab_id)))
        tab_id = registry.create_tab()
        assert events == [("added", tab_id), ("active", tab_id)]

    def test_tab_limit(self):
        registry = TabRegistry(max_tabs=2)
        registry.create_tab()
        registry.create_tab()
        with pytest.raises(TabLimitError):
            registry.create_tab()
        assert len(registry) == 2

    def test_set_active_unknown_is_noop(self):
        registry = TabRegistry()
        tab_id = registry.create_tab()
        assert registry.set_active(999) is False
        assert registry.active_id.value == tab_id

    def test_open_preset_reuses_existing_tab(self):
        registry = TabRegistry()
        p300 = registry.create_tab("P300 (Positive)")
        registry.create_tab("Custom")
        assert registry.open_preset("P300 (Positive)") == p300
        assert registry.active_id.value == p300
        assert len(registry) == 2

    def test_last_tab_cannot_be_removed(self):
        registry = TabRegistry()
        tab_id = registry.create_tab()
        assert registry.remove_tab(tab_id) is False
        assert registry.ids == (tab_id,)

    def test_removing_active_tab_activates_left_neighbour(self):
        registry = TabRegistry()
        a = registry.create_tab()
        b = registry.create_tab()
        c = registry.create_tab()
        registry.set_active(b)

        removed = []
        registry.tab_removed.subscribe(removed.append)
        assert registry.remove_tab(b) is True
        assert removed == [b]
        assert registry.active_id.value == a
        assert registry.ids == (a, c)

    def test_removing_first_active_tab_activates_new_first(self):
        registry = TabRegistry()
        a = registry.create_tab()
        b = registry.create_tab()
        registry.set_active(a)
        registry.remove_tab(a)
        assert registry.active_id.value == b

    def test_ids_are_never_reused(self):
        registry = TabRegistry()
        a = registry.create_tab()
        b = registry.create_tab()
        registry.remove_tab(b)
        c = registry.create_tab()
        assert c not in (a, b)
