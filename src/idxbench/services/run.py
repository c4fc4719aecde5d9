# services/run.py
"""
Service for complete benchmark runs.
"""

import json
from dataclasses import replace
from typing import Optional

from idxbench.core.config import Config, get_config
from idxbench.core.exceptions import IdxBenchError, StageError
from idxbench.core.files import TextFile
from idxbench.core.logger import get_logger
from idxbench.core.pipeline import PipelineConfig, RunOrchestrator
from idxbench.models.report import RunReport

from .base import BaseService, ServiceResult

logger = get_logger(__name__)


class RunService(BaseService):
    """
    Service wrapping the run orchestrator.

    Converts stage failures into failed ServiceResults carrying the stage
    name in their metadata.
    """

    def run(
        self,
        config: Optional[Config] = None,
        output_path: Optional[str] = None,
        force_retrain: Optional[bool] = None,
        benchmark: Optional[bool] = None,
    ) -> ServiceResult[RunReport]:
        """
        Execute a complete run.

        Args:
            config: Configuration to use (default: global config)
            output_path: Write the report as JSON here (default: [output] report_path)
            force_retrain: Override [model] force_retrain
            benchmark: Override [benchmark] enabled

        Returns:
            ServiceResult containing the RunReport on success
        """
        config = config or get_config()

        try:
            pipeline_config = PipelineConfig.from_config(config)
        except (IdxBenchError, TypeError, ValueError) as e:
            return ServiceResult.fail(f"Invalid configuration: {e}")

        if force_retrain is not None:
            pipeline_config = replace(pipeline_config, force_retrain=force_retrain)
        if benchmark is not None:
            pipeline_config = replace(pipeline_config, benchmark_enabled=benchmark)

        orchestrator = RunOrchestrator(pipeline_config, on_stage=self._report_progress)

        try:
            report = orchestrator.run()
        except StageError as e:
            return ServiceResult.fail(str(e), stage=e.stage, error_type=type(e.cause).__name__)

        warnings = []
        if report.benchmark is not None and report.benchmark.fallback_reason:
            warnings.append(f"Accelerated backend unavailable: {report.benchmark.fallback_reason}")

        output_path = output_path or config.get("output", "report_path") or None
        if output_path:
            error = self._validate_output_path(output_path)
            if error:
                return ServiceResult.fail(error)
            try:
                self.save_report(report, output_path)
            except OSError as e:
                return ServiceResult.fail(f"Failed to write report: {e}")

        return ServiceResult.ok(
            data=report,
            message=f"Run finished in {report.total_seconds:.2f}s ({report.model_source} model)",
            warnings=warnings,
            output_path=output_path,
        )

    def save_report(self, report: RunReport, output_path: str) -> str:
        """Write a run report as JSON."""
        with TextFile(output_path, mode="w") as f:
            f.write(json.dumps(report.to_dict(), indent=2))
        logger.info(f"Saved run report to {output_path}")
        return output_path
