"""Unit tests for active-tab projection and tab isolation."""

from erpforge.core.projector import ActiveParameterProjector, ActiveParameters
from erpforge.core.tabs import MODEL_FIELDS, TabRegistry


def _setup():
    registry = TabRegistry()
    active = ActiveParameters()
    projector = ActiveParameterProjector(registry, active)
    return registry, active, projector


def test_pull_copies_every_field_of_new_active_tab():
    registry, active, _ = _setup()
    registry.create_tab("Custom")
    second = registry.create_tab("N170 (Negative)")
    tab = registry.get(second)
    tab.formula.set("0 ~ 1")
    tab.sigma.set(77)

    first = registry.ids[0]
    registry.set_active(first)
    registry.set_active(second)

    assert active.values() == tab.values()


def test_edit_on_inactive_tab_does_not_reach_active_set():
    registry, active, _ = _setup()
    a = registry.create_tab("Custom")
    b = registry.create_tab("Custom")
    registry.set_active(a)
    before = active.values()

    registry.get(b).beta.set(99)

    assert active.values() == before
    assert registry.get(a).beta.value != 99


def test_edit_on_active_tab_is_pushed():
    registry, active, _ = _setup()
    tab_id = registry.create_tab("Custom")
    registry.get(tab_id).contrast.set(10)
    assert active.contrast.value == 10


def test_active_set_edits_write_back_to_active_tab_only():
    registry, active, _ = _setup()
    a = registry.create_tab("Custom")
    b = registry.create_tab("Custom")

    active.beta.set(5)

    assert registry.get(b).beta.value == 5
    assert registry.get(a).beta.value != 5


def test_tab_isolation_across_switches():
    registry, active, _ = _setup()
    a = registry.create_tab("Custom")
    b = registry.create_tab("Custom")

    registry.set_active(a)
    active.formula.set("0 ~ 1")
    registry.set_active(b)
    active.formula.set("0 ~ 1 + condition")

    assert registry.get(a).formula.value == "0 ~ 1"
    assert registry.get(b).formula.value == "0 ~ 1 + condition"
    registry.set_active(a)
    assert active.formula.value == "0 ~ 1"


def test_removed_tab_is_detached():
    registry, active, _ = _setup()
    a = registry.create_tab("Custom")
    b = registry.create_tab("Custom")
    removed = registry.get(b)
    registry.remove_tab(b)
    assert registry.active_id.value == a

    removed.beta.set(1)
    assert active.beta.value != 1


def test_projector_attaches_existing_tabs():
    registry = TabRegistry()
    tab_id = registry.create_tab("P300 (Positive)")
    active = ActiveParameters()
    ActiveParameterProjector(registry, active)

    assert active.values() == registry.get(tab_id).values()
    registry.get(tab_id).beta.set(3)
    assert active.beta.value == 3


def test_dispose_stops_projection():
    registry, active, projector = _setup()
    tab_id = registry.create_tab("Custom")
    projector.dispose()
    registry.get(tab_id).beta.set(1)
    assert active.beta.value != 1
    assert set(MODEL_FIELDS) == set(active.fields())
