"""
Unit tests for idxbench.core.ml.benchmark module.
"""

import numpy as np
import pytest

from idxbench.core.exceptions import BackendInitError, ValidationError
from idxbench.core.ml.benchmark import BenchmarkRunner, accelerated_backend
from tests.mocks.mock_model import MockModel


class FakeClock:
    """Manually advanced clock."""

    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


class TimedModel(MockModel):
    """Mock model whose forward calls advance a fake clock."""

    def __init__(self, clock, reference_cost=0.002, accelerated_cost=0.0005, **kwargs):
        super().__init__(**kwargs)
        self.clock = clock
        self.reference_cost = reference_cost
        self.accelerated_cost = accelerated_cost

    def forward(self, sample):
        self.clock.now += self.accelerated_cost if self.accelerated else self.reference_cost
        return super().forward(sample)

    def enable_accelerated_backend(self):
        # Backend setup must not be timed
        self.clock.now += 100.0
        super().enable_accelerated_backend()

    def disable_accelerated_backend(self):
        self.clock.now += 100.0
        super().disable_accelerated_backend()


@pytest.fixture
def sample():
    return np.zeros((28, 28))


class TestAcceleratedBackend:
    """Tests for the accelerated_backend context manager."""

    def test_enables_and_disables(self):
        """Test that the backend is active only inside the block."""
        model = MockModel()

        with accelerated_backend(model):
            assert model.accelerated

        assert not model.accelerated
        assert model.enable_calls == 1
        assert model.disable_calls == 1

    def test_disables_on_error(self):
        """Test that teardown runs exactly once when the block raises."""
        model = MockModel()

        with pytest.raises(RuntimeError):
            with accelerated_backend(model):
                raise RuntimeError("boom")

        assert model.disable_calls == 1
        assert not model.accelerated

    def test_failed_enable_skips_teardown(self):
        """Test that nothing is torn down when acquisition failed."""
        model = MockModel(fail_enable=True)

        with pytest.raises(BackendInitError):
            with accelerated_backend(model):
                pass

        assert model.disable_calls == 0


class TestBenchmarkRunner:
    """Tests for BenchmarkRunner."""

    def test_protocol_and_speedup(self, sample):
        """Test N reference calls, one warm-up, N accelerated calls and the A/B ratio."""
        clock = FakeClock()
        model = TimedModel(clock)
        runner = BenchmarkRunner(iterations=1000, warmup=1, clock=clock)

        result = runner.run(model, sample)

        assert model.forward_calls == 2001
        assert model.accelerated_forward_calls == 1001
        assert result.iterations == 1000
        assert result.reference_seconds == pytest.approx(2.0)
        # Warm-up and setup/teardown are outside the timed window
        assert result.accelerated_seconds == pytest.approx(0.5)
        assert result.speedup == pytest.approx(4.0)
        assert result.reference_backend == "cpu"
        assert result.accelerated_backend == "mock-gpu"
        assert result.fallback_reason is None
        assert not result.fell_back
        assert model.disable_calls == 1

    def test_already_accelerated_model_is_timed_on_reference(self, sample):
        """Test that a model handed over on the accelerator is moved back before reference timing."""
        clock = FakeClock()
        model = TimedModel(clock)
        model.enable_accelerated_backend()
        runner = BenchmarkRunner(iterations=10, warmup=1, clock=clock)

        result = runner.run(model, sample)

        assert result.reference_seconds == pytest.approx(0.02)
        assert result.accelerated_seconds == pytest.approx(0.005)
        assert result.speedup == pytest.approx(4.0)
        assert model.accelerated_forward_calls == 11
        # One enable by the caller, one by the runner, each matched by a disable
        assert model.enable_calls == 2
        assert model.disable_calls == 2
        assert not model.accelerated

    def test_fallback_on_backend_init_error(self, sample, mocker):
        """Test that a failing accelerator yields a reference-only result and a warning."""
        mock_logger = mocker.patch("idxbench.core.ml.benchmark.logger")
        model = MockModel(fail_enable=True)
        runner = BenchmarkRunner(iterations=10)

        result = runner.run(model, sample)

        assert result.fell_back
        assert result.accelerated_seconds is None
        assert result.speedup is None
        assert "mock accelerator unavailable" in result.fallback_reason
        assert result.reference_seconds >= 0.0
        assert model.forward_calls == 10
        assert model.disable_calls == 0
        mock_logger.warning.assert_called_once()

    def test_same_sample_on_both_backends(self):
        """Test that both backends see the identical input."""
        seen = []
        model = MockModel(predict=lambda s: seen.append(s) or 0)
        sample = np.full((28, 28), 0.25)

        BenchmarkRunner(iterations=3, warmup=1).run(model, sample)

        assert len(seen) == 7
        assert all(s is sample for s in seen)

    def test_model_errors_propagate_and_release_backend(self, sample):
        """Test that an inference failure on the accelerator still tears it down."""
        model = MockModel()
        original = model.forward

        def failing_forward(s):
            if model.accelerated:
                raise RuntimeError("kernel crashed")
            return original(s)

        model.forward = failing_forward

        with pytest.raises(RuntimeError, match="kernel crashed"):
            BenchmarkRunner(iterations=2).run(model, sample)

        assert model.disable_calls == 1
        assert not model.accelerated

    def test_zero_accelerated_time(self, sample):
        """Test that an instantaneous accelerated run reports an infinite speedup."""
        clock = FakeClock()
        model = TimedModel(clock, accelerated_cost=0.0)

        result = BenchmarkRunner(iterations=5, clock=clock).run(model, sample)

        assert result.speedup == float("inf")

    @pytest.mark.parametrize("iterations,warmup", [(0, 1), (-1, 1), (10, -1)])
    def test_invalid_parameters(self, iterations, warmup):
        """Test parameter validation."""
        with pytest.raises(ValidationError):
            BenchmarkRunner(iterations=iterations, warmup=warmup)

    def test_result_to_dict(self, sample):
        """Test serialization including derived latencies."""
        clock = FakeClock()
        result = BenchmarkRunner(iterations=10, clock=clock).run(TimedModel(clock), sample)

        d = result.to_dict()

        assert d["reference_latency_ms"] == pytest.approx(2.0)
        assert d["accelerated_latency_ms"] == pytest.approx(0.5)
        assert d["fell_back"] is False


@pytest.mark.slow
def test_repeated_runs_are_comparable():
    """Test that two runs on the same model and workload take similar time."""
    from idxbench.core.ml.base import build_layer_specs
    from idxbench.core.ml.network import DenseNetwork

    layers = build_layer_specs([[28, 28], [32, 32], [10, 1]], ["linear", "relu", "softmax"], [True] * 3)
    model = DenseNetwork(layers, accelerated_device="cpu")
    sample = np.random.default_rng(0).random((28, 28))
    runner = BenchmarkRunner(iterations=200)

    first = runner.run(model, sample)
    second = runner.run(model, sample)

    # "cpu" is never an accelerated backend, so both runs are reference-only
    assert first.fell_back and second.fell_back
    ratio = first.reference_seconds / second.reference_seconds
    assert 0.1 < ratio < 10.0
