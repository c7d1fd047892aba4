"""Unit tests for per-channel metrics and peak detection."""

import numpy as np
import pandas as pd
import pytest

from erpforge.core.metrics import METRIC_COLUMNS, channel_metrics, detect_peaks, result_metrics
from erpforge.core.results import SimulationResult


class TestChannelMetrics:
    def test_statistics_per_column(self):
        data = np.array([[1.0, -2.0], [-1.0, 0.0], [1.0, 2.0], [-1.0, 4.0]])

        metrics = channel_metrics(data, ["Fz", "Cz"])

        assert list(metrics.columns) == list(METRIC_COLUMNS)
        assert list(metrics.index) == ["Fz", "Cz"]
        assert metrics.loc["Fz", "rms"] == pytest.approx(1.0)
        assert metrics.loc["Fz", "mean_amplitude"] == pytest.approx(0.0)
        assert metrics.loc["Cz", "peak_amplitude"] == pytest.approx(4.0)
        assert metrics.loc["Cz", "std"] == pytest.approx(np.std([-2.0, 0.0, 2.0, 4.0], ddof=1))

    def test_one_dimensional_input_is_one_channel(self):
        metrics = channel_metrics(np.array([3.0, -4.0]))
        assert list(metrics.index) == ["ch0"]
        assert metrics.loc["ch0", "rms"] == pytest.approx(np.sqrt(12.5))

    def test_single_sample_has_zero_std(self):
        assert channel_metrics(np.array([[2.0, 3.0]]))["std"].tolist() == [0.0, 0.0]

    @pytest.mark.parametrize(
        "data, names",
        [(np.zeros((0, 2)), None), (np.zeros((2, 2, 2)), None), (np.zeros((3, 2)), ["only"])],
    )
    def test_rejects_bad_shapes(self, data, names):
        with pytest.raises(ValueError):
            channel_metrics(data, names)


class TestResultMetrics:
    def test_uses_multichannel_matrix_when_present(self):
        matrix = np.array([[0.0, 1.0, -5.0], [0.0, 2.0, 0.0]])
        result = SimulationResult(
            time=[0.0, 0.01],
            noisy=matrix[:, 1],
            clean=matrix[:, 1],
            multichannel_noisy=matrix,
            multichannel_clean=matrix,
        )

        metrics = result_metrics(result, ["O1", "AF3", "Pz"])

        assert metrics["peak_amplitude"].idxmax() == "Pz"
        assert len(metrics) == 3

    def test_single_channel_result(self):
        result = SimulationResult(time=[0.0, 0.01, 0.02], noisy=[0, 0, 0], clean=[1.0, 3.0, 1.0])
        metrics = result_metrics(result)
        assert metrics.loc["ch0", "peak_amplitude"] == pytest.approx(3.0)
        assert isinstance(metrics, pd.DataFrame)

    def test_failed_result_is_rejected(self):
        with pytest.raises(ValueError, match="failed result"):
            result_metrics(SimulationResult.failure("boom"))


class TestDetectPeaks:
    def test_interior_peaks_above_threshold(self):
        signal = np.array([0.0, 1.0, 0.2, -2.0, 0.1, 0.3, 0.0])
        assert detect_peaks(signal, threshold=0.5).tolist() == [1, 3]

    def test_threshold_filters_small_peaks(self):
        signal = np.array([0.0, 0.3, 0.0, 0.9, 0.0])
        assert detect_peaks(signal, threshold=0.5).tolist() == [3]
        assert detect_peaks(signal, threshold=0.1).tolist() == [1, 3]

    def test_plateaus_and_edges_are_not_peaks(self):
        assert detect_peaks(np.array([5.0, 1.0, 1.0, 0.0, 5.0])).tolist() == []

    def test_short_signal(self):
        assert detect_peaks(np.array([1.0, 2.0])).tolist() == []

    def test_rejects_matrix(self):
        with pytest.raises(ValueError):
            detect_peaks(np.zeros((3, 3)))
