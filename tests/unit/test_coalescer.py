"""Unit tests for parameter snapshots and trigger coalescing."""

import pytest

from erpforge.constants import SIMULATION_DEBOUNCE_S, SLIDER_THROTTLE_S
from erpforge.core.coalescer import ParameterSnapshot, TriggerCoalescer
from erpforge.core.controls import GlobalControls
from erpforge.core.projector import ActiveParameters
from erpforge.core.signals import ManualScheduler
from erpforge.core.variables import ContinuousRange, EventVariables


@pytest.fixture
def wiring():
    scheduler = ManualScheduler()
    active = ActiveParameters()
    controls = GlobalControls()
    variables = EventVariables()
    coalescer = TriggerCoalescer(active, controls, variables, scheduler)
    fired = []
    coalescer.trigger.subscribe(fired.append)
    return scheduler, active, controls, variables, coalescer, fired


class TestParameterSnapshot:
    def test_build_requires_every_scalar(self):
        with pytest.raises(KeyError, match="Missing snapshot parameters"):
            ParameterSnapshot.build({"beta": 1}, {}, {})

    def test_fingerprint_tracks_content(self, wiring):
        *_, coalescer, _ = wiring
        snapshot = coalescer.current_snapshot()
        assert snapshot.replace().fingerprint == snapshot.fingerprint
        assert snapshot.replace(beta=1).fingerprint != snapshot.fingerprint

    def test_hash_colliding_values_are_distinct(self, wiring):
        *_, coalescer, _ = wiring
        base = coalescer.current_snapshot()
        # hash(-1) == hash(-2) in CPython
        low = base.replace(continuous=(("x", ContinuousRange(-1.0, 5.0, 3)),))
        lower = base.replace(continuous=(("x", ContinuousRange(-2.0, 5.0, 3)),))
        assert low != lower
        assert low.fingerprint != lower.fingerprint

    def test_variable_maps_are_normalised(self, wiring):
        *_, coalescer, _ = wiring
        snapshot = coalescer.current_snapshot().replace(
            categorical=(("condition", ("A", "B")),),
            continuous=(("intensity", ContinuousRange(0.0, 1.0, 3)),),
        )
        assert snapshot.categorical_variables == {"condition": ["A", "B"]}
        assert snapshot.continuous_variables["intensity"].steps == 3
        assert snapshot.to_dict()["continuous"]["intensity"] == {"min": 0.0, "max": 1.0, "steps": 3}


class TestTriggerCoalescer:
    def test_burst_of_edits_fires_once_with_latest_values(self, wiring):
        scheduler, active, controls, _, _, fired = wiring
        active.formula.set("0 ~ 1")
        controls.noise_choice.set("White")
        active.basis.set("hanning(20, 0, 100)")

        scheduler.advance(SIMULATION_DEBOUNCE_S)

        assert len(fired) == 1
        assert fired[0].formula == "0 ~ 1"
        assert fired[0].noise_choice == "White"
        assert fired[0].basis == "hanning(20, 0, 100)"

    def test_edits_spread_within_window_still_coalesce(self, wiring):
        scheduler, active, _, _, _, fired = wiring
        for text in ("0 ~ 1", "0 ~ 1 + condition", "0 ~ condition"):
            active.formula.set(text)
            scheduler.advance(SIMULATION_DEBOUNCE_S / 2)
        assert fired == []

        scheduler.advance(SIMULATION_DEBOUNCE_S)
        assert [s.formula for s in fired] == ["0 ~ condition"]

    def test_slider_drag_is_throttled_then_settles_on_last_value(self, wiring):
        scheduler, active, _, _, coalescer, fired = wiring
        for position in range(51, 61):
            active.beta.set(position)
        assert coalescer.current_snapshot().beta == 51

        scheduler.advance(SLIDER_THROTTLE_S)
        assert coalescer.current_snapshot().beta == 60

        scheduler.advance(SIMULATION_DEBOUNCE_S)
        assert len(fired) == 1
        assert fired[0].beta == 60

    def test_no_op_edit_does_not_fire(self, wiring):
        scheduler, active, _, _, _, fired = wiring
        active.formula.set(active.formula.value)
        scheduler.advance(10.0)
        assert fired == []

    def test_variable_edits_trigger(self, wiring):
        scheduler, _, _, variables, _, fired = wiring
        variables.add_categorical_template("task")
        scheduler.advance(SIMULATION_DEBOUNCE_S)
        assert len(fired) == 1
        assert "task" in fired[0].categorical_variables

    def test_request_rearms_trigger(self, wiring):
        scheduler, _, _, _, coalescer, fired = wiring
        coalescer.request()
        assert coalescer.pending
        scheduler.advance(SIMULATION_DEBOUNCE_S)
        assert len(fired) == 1

    def test_settle_flushes_throttles_and_cancels_trigger(self, wiring):
        scheduler, active, _, _, coalescer, fired = wiring
        active.sigma.set(1)
        active.sigma.set(2)

        snapshot = coalescer.settle()

        assert snapshot.sigma == 2
        assert not coalescer.pending
        scheduler.advance(10.0)
        assert fired == []

    def test_flush_fires_immediately(self, wiring):
        _, active, _, _, coalescer, fired = wiring
        active.projection.set("[0.0, 0.0, 1.0]")
        coalescer.flush()
        assert [s.projection for s in fired] == ["[0.0, 0.0, 1.0]"]

    def test_edit_to_hash_colliding_value_fires(self, wiring):
        scheduler, _, _, variables, coalescer, fired = wiring
        variables.add_continuous("x", -1, 5, 3)
        scheduler.advance(SIMULATION_DEBOUNCE_S)
        variables.add_continuous("x", -2, 5, 3)
        scheduler.advance(SIMULATION_DEBOUNCE_S)

        assert len(fired) == 2
        assert fired[-1].continuous_variables["x"].min == -2.0
        assert coalescer.settle().continuous_variables["x"].min == -2.0
