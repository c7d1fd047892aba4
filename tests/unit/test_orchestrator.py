"""Unit tests for the simulation orchestrator and result cache."""

from unittest import mock

import numpy as np
import pytest

from erpforge.constants import (
    MIXED_MODEL,
    MULTI_SUBJECT_DESIGN,
    MULTICHANNEL_MODEL,
    REFERENCE_CHANNEL,
    SINGLE_SUBJECT_DESIGN,
    STATUS_DONE,
    STATUS_INVALID,
    STATUS_READY,
    VALIDATION_BLOCKED_MESSAGE,
)
from erpforge.core.orchestrator import ResultCache, RunState, normalize_output
from erpforge.core.results import SimulationResult
from erpforge.errors import ComputeError


class Abort(BaseException):
    """Interrupt that ``compute`` does not convert into a result."""


def _run(session):
    return session.orchestrator.run(session.coalescer.settle())


class TestResultCache:
    def test_store_evict_and_revision(self):
        cache = ResultCache()
        revisions = []
        cache.changed.subscribe(revisions.append)
        result = SimulationResult.failure("x")

        cache.store(2, result)
        cache.store(1, result)
        assert [tab_id for tab_id, _ in cache.items()] == [1, 2]
        assert cache.evict(2) is True
        assert cache.evict(2) is False
        assert 2 not in cache and len(cache) == 1
        assert revisions == [1, 2, 3]

    def test_store_without_notify(self):
        cache = ResultCache()
        revisions = []
        cache.changed.subscribe(revisions.append)
        cache.store(1, SimulationResult.failure("x"), notify=False)
        assert revisions == []
        cache.notify_changed()
        assert revisions == [1]


class TestNormalizeOutput:
    def test_one_dimensional(self):
        y = np.arange(5.0)
        noisy, clean, mc_noisy, mc_clean = normalize_output(y, y, multichannel=False)
        assert np.array_equal(noisy, y)
        assert mc_noisy is None and mc_clean is None

    def test_epoched_matrix_is_concatenated_column_major(self):
        epochs = np.array([[1.0, 10.0], [2.0, 20.0], [3.0, 30.0]])  # (time, epochs)
        noisy, _, _, _ = normalize_output(epochs, epochs, multichannel=False)
        assert list(noisy) == [1.0, 2.0, 3.0, 10.0, 20.0, 30.0]

    def test_three_dimensional_multichannel(self):
        data = np.arange(2 * 3 * 2, dtype=float).reshape(2, 3, 2)
        noisy, _, mc_noisy, _ = normalize_output(data, data, multichannel=True, reference_index=1)
        assert mc_noisy.shape == (6, 2)
        assert np.array_equal(noisy, mc_noisy[:, 1])

    @pytest.mark.parametrize("transpose", [False, True])
    def test_two_dimensional_multichannel_either_orientation(self, transpose):
        data = np.random.default_rng(0).normal(size=(4, 10))
        if transpose:
            data = data.T
        noisy, _, mc_noisy, mc_clean = normalize_output(
            data, data, multichannel=True, reference_index=2, n_channels=4
        )
        assert mc_noisy.shape == (10, 4)
        assert np.array_equal(noisy, mc_clean[:, 2])

    def test_single_channel_in_multichannel_mode(self):
        y = np.arange(4.0)
        _, _, mc_noisy, _ = normalize_output(y, y, multichannel=True, n_channels=32)
        assert mc_noisy.shape == (4, 1)

    def test_mismatched_shapes(self):
        with pytest.raises(ComputeError):
            normalize_output(np.zeros(3), np.zeros(4), multichannel=False)

    def test_unsupported_rank(self):
        data = np.zeros((1, 1, 1, 1))
        with pytest.raises(ComputeError):
            normalize_output(data, data, multichannel=False)


class TestSimulationOrchestrator:
    def test_successful_run_publishes_and_caches(self, session, counting_engine):
        tab_id = session.registry.active_id.value

        result = _run(session)

        assert result.ok and result.err == ""
        assert session.current_result.value is result
        assert session.status.value == STATUS_DONE
        assert session.cache.get(tab_id) is result
        assert session.registry.get(tab_id).last_result is result
        assert session.orchestrator.state is RunState.IDLE
        assert [call["noise"] for call in counting_engine.calls] == ["NoNoise", "NoNoise"]
        assert result.time[1] == pytest.approx(0.01)
        assert result.n_samples == len(result.noisy) == len(result.clean)
        assert result.multichannel_clean is None

    def test_invalid_combination_never_reaches_engine(self, session, counting_engine):
        session.active.model_category.set(MIXED_MODEL)
        session.controls.design_category.set(SINGLE_SUBJECT_DESIGN)

        result = _run(session)

        assert counting_engine.call_count == 0
        assert result.err == VALIDATION_BLOCKED_MESSAGE
        assert list(result.time) == [0.0] and list(result.clean) == [0.0]
        assert session.status.value == STATUS_INVALID
        assert len(session.cache) == 0
        assert session.orchestrator.state is RunState.IDLE

    def test_trigger_while_running_is_dropped(self, make_session, engine_factory):
        reentrant = []

        def trigger_again():
            if not reentrant:
                reentrant.append(session.orchestrator.run(session.coalescer.current_snapshot()))

        engine = engine_factory(on_simulate=trigger_again)
        session = make_session(engine=engine)

        result = _run(session)

        assert reentrant == [None]
        assert session.orchestrator.dropped_triggers == 1
        assert engine.call_count == 2
        assert result.ok

    def test_begin_run_admits_one_run_at_a_time(self, session):
        snapshot = session.coalescer.settle()
        ticket = session.orchestrator.begin_run(snapshot)
        assert ticket is not None
        assert session.orchestrator.run_state.value is RunState.RUNNING
        assert session.orchestrator.begin_run(snapshot) is None

        session.orchestrator.finish_run(ticket, SimulationResult.failure("boom"))
        assert session.orchestrator.begin_run(snapshot) is not None

    def test_engine_failure_becomes_error_result(self, make_session, engine_factory):
        engine = engine_factory(fail_with=RuntimeError("engine exploded"))
        session = make_session(engine=engine)
        tab_id = session.registry.active_id.value

        result = _run(session)

        assert result.err == "engine exploded"
        assert session.status.value == "Error: engine exploded"
        assert session.cache.get(tab_id) is result
        assert session.orchestrator.state is RunState.IDLE

    def test_malformed_basis_becomes_error_result(self, session, counting_engine):
        session.active.basis.set("eval('1')")
        result = _run(session)
        assert not result.ok
        assert "basis" in result.err
        assert counting_engine.call_count == 0

    def test_state_resets_when_compute_is_interrupted(self, session):
        with mock.patch.object(session.orchestrator, "compute", side_effect=Abort()):
            with pytest.raises(Abort):
                _run(session)
        assert session.orchestrator.state is RunState.IDLE
        assert session.status.value == STATUS_READY
        assert session.current_result.value is None

    def test_same_snapshot_is_deterministic(self, session):
        session.controls.noise_choice.set("White")
        snapshot = session.coalescer.settle()

        first = session.orchestrator.run(snapshot)
        second = session.orchestrator.run(snapshot)

        assert np.array_equal(first.noisy, second.noisy)
        assert np.array_equal(first.clean, second.clean)
        assert not np.array_equal(first.noisy, first.clean)

    def test_clean_series_ignores_noise_choice(self, session):
        baseline = _run(session)
        session.controls.noise_choice.set("Pink")
        noisy = _run(session)
        assert np.array_equal(baseline.clean, noisy.clean)

    def test_epoched_output_without_onsets(self, session, counting_engine):
        session.controls.onset_choice.set("No Onset")
        result = _run(session)
        assert all(call["return_epoched"] for call in counting_engine.calls)
        # 2 conditions x 40-sample hanning basis
        assert result.n_samples == 80

    def test_mixed_model_on_multi_subject_design(self, session):
        session.active.model_category.set(MIXED_MODEL)
        assert session.controls.design_category.value == MULTI_SUBJECT_DESIGN
        result = _run(session)
        assert result.ok
        assert result.events["subject"].nunique() == 5

    def test_multichannel_result_carries_matrices(self, session):
        session.active.model_category.set(MULTICHANNEL_MODEL)
        result = _run(session)

        assert result.ok
        n_channels = session.head_model.n_channels
        assert result.multichannel_clean.shape == (result.n_samples, n_channels)
        reference = session.head_model.channel_index(REFERENCE_CHANNEL)
        assert np.array_equal(result.clean, result.multichannel_clean[:, reference])

    def test_bad_projection_fails_only_in_multichannel_mode(self, session):
        session.active.projection.set("[1.0, 2.0]")
        assert _run(session).ok
        session.active.model_category.set(MULTICHANNEL_MODEL)
        assert "Projection" in _run(session).err

    def test_result_of_removed_tab_is_not_cached(self, make_session, engine_factory):
        def remove_active():
            registry = session.registry
            if len(registry) > 1:
                registry.remove_tab(registry.active_id.value)

        engine = engine_factory(on_simulate=remove_active)
        session = make_session(engine=engine)
        removed = session.registry.create_tab("P300 (Positive)")

        result = _run(session)

        assert result.ok
        assert removed not in session.cache
        assert len(session.cache) == 0
        assert session.current_result.value is result
