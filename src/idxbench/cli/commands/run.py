"""Benchmark run command."""

from typing import Optional

import click


def _print_report(report) -> None:
    from idxbench.cli.progress import console, print_summary, print_table, print_warning

    print_summary(
        "Run",
        {
            "Model": f"{report.model_path} ({report.model_source})",
            "Train samples": report.train_size,
            "Test samples": report.test_size,
            "Final loss": f"{report.training_losses[-1]:.5f}" if report.training_losses else "-",
        },
    )

    reports = [r for r in (report.train_report, report.test_report) if r is not None]
    if reports:
        rows = []
        for i, bucket in enumerate(reports[0].buckets):
            row = [bucket.name]
            for r in reports:
                b = r.buckets[i]
                row.append(f"{b.count} ({b.percentage:.1f}%)")
            rows.append(row)
        rows.append(["score"] + [f"{r.score:.2f}" for r in reports])
        rows.append(["failures"] + [str(r.failures) for r in reports])
        rows.append(["accuracy"] + [f"{r.accuracy:.1%}" for r in reports])
        print_table("Evaluation", ["Tier"] + [r.split or "" for r in reports], rows)

    bench = report.benchmark
    if bench is not None:
        stats = {
            f"{bench.reference_backend} ({bench.iterations} calls)": f"{bench.reference_seconds:.4f}s",
        }
        if bench.fell_back:
            print_summary("Benchmark", stats, style="yellow")
            print_warning(f"{bench.accelerated_backend} skipped: {bench.fallback_reason}")
        else:
            stats[f"{bench.accelerated_backend} ({bench.iterations} calls)"] = f"{bench.accelerated_seconds:.4f}s"
            stats["Speedup"] = f"{bench.speedup:.2f}x"
            print_summary("Benchmark", stats, style="green")

    print_table(
        "Stage timings",
        ["Stage", "Seconds"],
        [[t.stage, f"{t.seconds:.3f}"] for t in report.stage_timings] + [["total", f"{report.total_seconds:.3f}"]],
    )
    console.print()


@click.command("run")
@click.option("--data-root", default=None, help="Directory with the train-*/t10k-* IDX files")
@click.option("--model-path", default=None, help="Persisted model path")
@click.option("--epochs", type=int, default=None, help="Training epochs")
@click.option("--learning-rate", type=float, default=None, help="SGD learning rate")
@click.option("--limit", type=int, default=None, help="Use only the first N samples (0 = all)")
@click.option("--ratio", type=float, default=None, help="Training share of the split, in (0, 1)")
@click.option("--test-source", type=click.Choice(["split", "t10k"]), default=None, help="Where test samples come from")
@click.option("--iterations", type=int, default=None, help="Benchmark inference calls per backend")
@click.option("--device", default=None, help="Accelerated device (cuda, cuda:N, mps, auto)")
@click.option("--force-retrain", is_flag=True, help="Train even if a persisted model exists")
@click.option("--no-benchmark", is_flag=True, help="Skip the backend benchmark")
@click.option("--output", "-o", default=None, help="Write the run report as JSON")
@click.option("--json", "as_json", is_flag=True, help="Print the report as JSON instead of tables")
@click.option("--quiet", is_flag=True, help="Suppress progress output")
@click.pass_context
def run(
    ctx: click.Context,
    data_root: Optional[str],
    model_path: Optional[str],
    epochs: Optional[int],
    learning_rate: Optional[float],
    limit: Optional[int],
    ratio: Optional[float],
    test_source: Optional[str],
    iterations: Optional[int],
    device: Optional[str],
    force_retrain: bool,
    no_benchmark: bool,
    output: Optional[str],
    as_json: bool,
    quiet: bool,
) -> None:
    """Prepare the dataset, train or load the model, score it and benchmark inference."""
    import json

    from idxbench.cli.progress import StageStatus, print_success, print_warning
    from idxbench.cli.service_helpers import handle_result, load_cli_config, services

    config = load_cli_config(ctx)

    overrides = [
        ("dataset", "root", data_root),
        ("dataset", "test_source", test_source),
        ("model", "path", model_path),
        ("model", "accelerated_device", device),
        ("training", "epochs", epochs),
        ("training", "learning_rate", learning_rate),
        ("split", "limit", limit),
        ("split", "ratio", ratio),
        ("benchmark", "iterations", iterations),
    ]
    for section, key, value in overrides:
        if value is not None:
            config.set(section, key, value)

    service = services.run
    with StageStatus(disable=quiet or as_json) as on_stage:
        service.set_progress_callback(on_stage)
        result = service.run(
            config,
            output_path=output,
            force_retrain=True if force_retrain else None,
            benchmark=False if no_benchmark else None,
        )

    report = handle_result(result)

    if as_json:
        click.echo(json.dumps(report.to_dict(), indent=2))
        return

    if not quiet:
        _print_report(report)
    for warning in result.warnings:
        print_warning(warning)
    if result.metadata.get("output_path"):
        print_success(f"Report saved to {result.metadata['output_path']}")
    print_success(result.message)
