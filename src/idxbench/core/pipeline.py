"""
Run Orchestrator
================

Sequences a complete benchmark run:

    prepare_dataset -> load_model | (train_model -> save_model)
        -> evaluate_train -> evaluate_test -> benchmark

Each stage is timed independently. A failure in any stage halts the run
and is re-raised as StageError naming the stage, with the original error
chained as its cause.

Example:
    from idxbench.core.config import get_config
    from idxbench.core.pipeline import PipelineConfig, RunOrchestrator

    orchestrator = RunOrchestrator(PipelineConfig.from_config(get_config()))
    report = orchestrator.run()
    print(report.benchmark.speedup)
"""

import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional, Tuple

from idxbench.core.config import DEFAULT_CONFIG, Config
from idxbench.core.datasets import Dataset, load_mnist, split_dataset, truncate_dataset
from idxbench.core.exceptions import StageError, ValidationError
from idxbench.core.logger import get_logger
from idxbench.core.ml import create_model, load_model
from idxbench.core.ml.base import LayerSpec, ModelAdapter, build_layer_specs
from idxbench.core.ml.benchmark import BenchmarkRunner
from idxbench.core.ml.scoring import ScoringPolicy, evaluate_model
from idxbench.models.report import RunReport, StageTiming

logger = get_logger(__name__)

TEST_SOURCES = ("split", "t10k")


def _default(section: str, key: str):
    value = DEFAULT_CONFIG[section][key]
    return list(value) if isinstance(value, list) else value


@dataclass
class PipelineConfig:
    """Flat run configuration consumed by RunOrchestrator."""

    # Dataset
    data_root: str = _default("dataset", "root")
    num_classes: int = _default("dataset", "num_classes")
    strict_magic: bool = _default("dataset", "strict_magic")
    test_source: str = _default("dataset", "test_source")

    # Split
    limit: int = _default("split", "limit")
    split_ratio: float = _default("split", "ratio")
    train_count: int = _default("split", "train_count")

    # Model
    model_type: str = _default("model", "type")
    model_path: str = _default("model", "path")
    layers: List[List[int]] = field(default_factory=lambda: _default("model", "layers"))
    activations: List[str] = field(default_factory=lambda: _default("model", "activations"))
    fully_connected: List[bool] = field(default_factory=lambda: _default("model", "fully_connected"))
    accelerated_device: str = _default("model", "accelerated_device")
    force_retrain: bool = _default("model", "force_retrain")

    # Training
    epochs: int = _default("training", "epochs")
    learning_rate: float = _default("training", "learning_rate")
    batch_size: int = _default("training", "batch_size")
    early_stop: bool = _default("training", "early_stop")
    clip_upper: float = _default("training", "clip_upper")
    clip_lower: float = _default("training", "clip_lower")
    seed: Optional[int] = _default("training", "seed")

    # Scoring
    thresholds: List[float] = field(default_factory=lambda: _default("scoring", "thresholds"))

    # Benchmark
    benchmark_enabled: bool = _default("benchmark", "enabled")
    benchmark_iterations: int = _default("benchmark", "iterations")
    benchmark_warmup: int = _default("benchmark", "warmup")

    def __post_init__(self) -> None:
        if self.test_source not in TEST_SOURCES:
            raise ValidationError(f"test_source must be one of {TEST_SOURCES}, got '{self.test_source}'")

    @classmethod
    def from_config(cls, config: Config) -> "PipelineConfig":
        """Build a PipelineConfig from the sectioned TOML configuration."""
        return cls(
            data_root=str(config.get("dataset", "root", _default("dataset", "root"))),
            num_classes=int(config.get("dataset", "num_classes", _default("dataset", "num_classes"))),
            strict_magic=bool(config.get("dataset", "strict_magic", _default("dataset", "strict_magic"))),
            test_source=str(config.get("dataset", "test_source", _default("dataset", "test_source"))),
            limit=int(config.get("split", "limit", _default("split", "limit"))),
            split_ratio=float(config.get("split", "ratio", _default("split", "ratio"))),
            train_count=int(config.get("split", "train_count", _default("split", "train_count"))),
            model_type=str(config.get("model", "type", _default("model", "type"))),
            model_path=str(config.get("model", "path", _default("model", "path"))),
            layers=[list(shape) for shape in config.get("model", "layers", _default("model", "layers"))],
            activations=list(config.get("model", "activations", _default("model", "activations"))),
            fully_connected=list(config.get("model", "fully_connected", _default("model", "fully_connected"))),
            accelerated_device=str(
                config.get("model", "accelerated_device", _default("model", "accelerated_device"))
            ),
            force_retrain=bool(config.get("model", "force_retrain", _default("model", "force_retrain"))),
            epochs=int(config.get("training", "epochs", _default("training", "epochs"))),
            learning_rate=float(config.get("training", "learning_rate", _default("training", "learning_rate"))),
            batch_size=int(config.get("training", "batch_size", _default("training", "batch_size"))),
            early_stop=bool(config.get("training", "early_stop", _default("training", "early_stop"))),
            clip_upper=float(config.get("training", "clip_upper", _default("training", "clip_upper"))),
            clip_lower=float(config.get("training", "clip_lower", _default("training", "clip_lower"))),
            seed=config.get("training", "seed", _default("training", "seed")),
            thresholds=[float(t) for t in config.get("scoring", "thresholds", _default("scoring", "thresholds"))],
            benchmark_enabled=bool(config.get("benchmark", "enabled", _default("benchmark", "enabled"))),
            benchmark_iterations=int(config.get("benchmark", "iterations", _default("benchmark", "iterations"))),
            benchmark_warmup=int(config.get("benchmark", "warmup", _default("benchmark", "warmup"))),
        )

    def layer_specs(self) -> List[LayerSpec]:
        return build_layer_specs(self.layers, self.activations, self.fully_connected)


class RunOrchestrator:
    """
    Runs the dataset, model, evaluation and benchmark stages in order.

    Args:
        config: Run configuration.
        clock: Monotonic clock used for stage timings.
        on_stage: Optional callback(stage, event) with event "start" or "done".
    """

    def __init__(
        self,
        config: PipelineConfig,
        clock: Callable[[], float] = time.perf_counter,
        on_stage: Optional[Callable[[str, str], None]] = None,
    ):
        self.config = config
        self.clock = clock
        self.on_stage = on_stage
        self._timings: List[StageTiming] = []

    def _stage(self, name: str, func: Callable, *args, **kwargs):
        logger.info(f"Stage '{name}' started")
        if self.on_stage:
            self.on_stage(name, "start")
        start = self.clock()
        try:
            result = func(*args, **kwargs)
        except Exception as err:
            elapsed = self.clock() - start
            logger.error(f"Stage '{name}' failed after {elapsed:.3f}s: {type(err).__name__}: {err}")
            raise StageError(name, err) from err
        elapsed = self.clock() - start
        self._timings.append(StageTiming(stage=name, seconds=elapsed))
        logger.info(f"Stage '{name}' finished in {elapsed:.3f}s")
        if self.on_stage:
            self.on_stage(name, "done")
        return result

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    def prepare_dataset(self) -> Tuple[Dataset, Dataset]:
        """Load, truncate and split the data into (train, test)."""
        cfg = self.config
        dataset = load_mnist(
            cfg.data_root, training=True, num_classes=cfg.num_classes, strict_magic=cfg.strict_magic
        )
        if cfg.limit > 0:
            dataset = truncate_dataset(dataset, cfg.limit)

        if cfg.test_source == "t10k":
            test = load_mnist(
                cfg.data_root, training=False, num_classes=cfg.num_classes, strict_magic=cfg.strict_magic
            )
            if cfg.limit > 0:
                test = truncate_dataset(test, cfg.limit)
            return dataset, test

        if cfg.train_count > 0:
            return split_dataset(dataset, count=cfg.train_count)
        return split_dataset(dataset, ratio=cfg.split_ratio)

    def load_model(self) -> ModelAdapter:
        return load_model(
            self.config.model_type, self.config.model_path, accelerated_device=self.config.accelerated_device
        )

    def train_model(self, train: Dataset) -> Tuple[ModelAdapter, List[float]]:
        cfg = self.config
        model = create_model(
            cfg.model_type, cfg.layer_specs(), seed=cfg.seed, accelerated_device=cfg.accelerated_device
        )
        history = model.train(
            train.inputs,
            train.targets,
            epochs=cfg.epochs,
            learning_rate=cfg.learning_rate,
            batch_size=cfg.batch_size,
            early_stop=cfg.early_stop,
            clip_upper=cfg.clip_upper,
            clip_lower=cfg.clip_lower,
        )
        return model, list(history.epoch_losses)

    def save_model(self, model: ModelAdapter) -> str:
        return model.save_state(self.config.model_path)

    def evaluate(self, model: ModelAdapter, dataset: Dataset, split: str):
        return evaluate_model(model, dataset, ScoringPolicy(self.config.thresholds), split=split)

    def benchmark(self, model: ModelAdapter, train: Dataset, test: Dataset):
        source = train if len(train) else test
        if len(source) == 0:
            raise ValidationError("No sample available to benchmark: both splits are empty")
        runner = BenchmarkRunner(
            iterations=self.config.benchmark_iterations,
            warmup=self.config.benchmark_warmup,
            clock=self.clock,
        )
        return runner.run(model, source.inputs[0])

    # ------------------------------------------------------------------
    # Run
    # ------------------------------------------------------------------

    def run(self) -> RunReport:
        """
        Execute every stage and return the run report.

        Raises:
            StageError: If any stage fails
        """
        cfg = self.config
        self._timings = []
        report = RunReport(model_path=cfg.model_path, stage_timings=self._timings)

        train, test = self._stage("prepare_dataset", self.prepare_dataset)
        report.train_size = len(train)
        report.test_size = len(test)

        if Path(cfg.model_path).exists() and not cfg.force_retrain:
            model = self._stage("load_model", self.load_model)
            report.model_source = "loaded"
        else:
            model, losses = self._stage("train_model", self.train_model, train)
            report.training_losses = losses
            self._stage("save_model", self.save_model, model)
            report.model_source = "trained"

        report.train_report = self._stage("evaluate_train", self.evaluate, model, train, "train")
        report.test_report = self._stage("evaluate_test", self.evaluate, model, test, "test")

        if cfg.benchmark_enabled:
            report.benchmark = self._stage("benchmark", self.benchmark, model, train, test)
        else:
            logger.info("Benchmark disabled")

        logger.info(f"Run finished in {report.total_seconds:.3f}s")
        return report
