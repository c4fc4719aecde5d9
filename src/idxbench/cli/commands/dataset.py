"""Dataset inspection commands."""

from typing import Optional

import click


@click.group()
def dataset() -> None:
    """Dataset inspection commands."""
    pass


@dataset.command("info")
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
@click.option("--json", "as_json", is_flag=True, help="Print the header as JSON")
def dataset_info(path: str, as_json: bool) -> None:
    """Show the decoded header of an IDX file."""
    import json

    from idxbench.cli.progress import print_table, print_warning
    from idxbench.cli.service_helpers import handle_result, services

    result = services.dataset.inspect(path)
    header = handle_result(result)

    if as_json:
        click.echo(json.dumps(header.to_dict(), indent=2))
        return

    print_table(
        header.path,
        ["Field", "Value"],
        [
            ["magic", f"{header.magic} (0x{header.magic:08x})"],
            ["kind", header.kind],
            ["dims", " x ".join(str(d) for d in header.dims)],
            ["header bytes", header.header_bytes],
            ["payload bytes (declared)", header.expected_payload_bytes],
            ["payload bytes (actual)", header.actual_payload_bytes],
        ],
    )
    for warning in result.warnings:
        print_warning(warning)


@dataset.command("summary")
@click.option("--data-root", default=None, help="Directory with the IDX files (default: [dataset] root)")
@click.option("--t10k", is_flag=True, help="Summarize the t10k-* files instead of train-*")
@click.option("--json", "as_json", is_flag=True, help="Print the summary as JSON")
@click.pass_context
def dataset_summary(ctx: click.Context, data_root: Optional[str], t10k: bool, as_json: bool) -> None:
    """Load a dataset split and show sample count and class balance."""
    import json

    from idxbench.cli.progress import print_summary, print_table, status
    from idxbench.cli.service_helpers import handle_result, load_cli_config, services

    config = load_cli_config(ctx)
    root = data_root or config.get("dataset", "root")

    with status(f"Loading {root}..."):
        result = services.dataset.load_summary(
            root,
            training=not t10k,
            num_classes=int(config.get("dataset", "num_classes", 10)),
            strict_magic=bool(config.get("dataset", "strict_magic", True)),
        )
    summary = handle_result(result)

    if as_json:
        click.echo(json.dumps(summary.to_dict(), indent=2))
        return

    print_summary(
        f"{'t10k' if t10k else 'train'} split",
        {
            "Root": summary.data_root,
            "Samples": summary.num_samples,
            "Image shape": " x ".join(str(d) for d in summary.image_shape),
            "Pixel mean": summary.pixel_mean if summary.pixel_mean is not None else "-",
        },
    )
    print_table(
        "Class balance",
        ["Class", "Count"],
        [[label, count] for label, count in enumerate(summary.class_counts)],
    )
