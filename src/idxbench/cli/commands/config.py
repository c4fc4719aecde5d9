"""Configuration management commands."""

import click


@click.group()
def config() -> None:
    """Configuration commands."""
    pass


@config.command("show")
@click.option("--json", "as_json", is_flag=True, help="Print the configuration as JSON")
@click.pass_context
def config_show(ctx: click.Context, as_json: bool) -> None:
    """Show the effective configuration; values differing from the defaults are highlighted."""
    import json

    from rich.markup import escape

    from idxbench.cli.progress import console
    from idxbench.cli.service_helpers import load_cli_config
    from idxbench.core.config import DEFAULT_CONFIG

    config_obj = load_cli_config(ctx)

    if as_json:
        click.echo(json.dumps(config_obj.to_dict(), indent=2))
        return

    source = config_obj.source if config_obj.source != "defaults" else "defaults (no config file found)"
    console.print(f"\n[bold]Effective configuration[/bold] [dim]from {source}[/dim]\n")

    for section_name, section in config_obj.to_dict().items():
        if not section:
            continue
        console.print(f"[bold blue]\\[{section_name}][/bold blue]")
        defaults = DEFAULT_CONFIG.get(section_name, {})
        for key, value in section.items():
            changed = key not in defaults or defaults[key] != value
            marker = "[yellow]*[/yellow]" if changed else " "
            console.print(f" {marker} {key} = {escape(repr(value))}", highlight=False)
        console.print()


@config.command("init")
@click.option("--output", "-o", default="idxbench.toml", help="Output file path")
@click.option("--force", "-f", is_flag=True, help="Overwrite existing file")
def config_init(output: str, force: bool) -> None:
    """Create a default configuration file."""
    from idxbench.cli.progress import print_error, print_success
    from idxbench.cli.service_helpers import services

    result = services.config.create_default_config(output, force=force)

    if not result.success:
        print_error(result.error)
        if "already exists" in result.error:
            click.echo("Use --force to overwrite.")
        raise SystemExit(1)

    print_success(f"Created configuration file: {output}")


@config.command("path")
def config_path() -> None:
    """Show configuration file search paths."""
    from pathlib import Path

    from idxbench.cli.progress import console
    from idxbench.cli.service_helpers import services

    console.print("\n[bold]Configuration File Search Paths[/bold]\n")
    console.print("Files are merged from last to first (earlier entries win):\n")

    active_result = services.config.find_config_file()
    active_config = Path(active_result.data) if active_result.success and active_result.data else None

    locations_result = services.config.get_config_locations()
    if locations_result.success:
        for i, location in enumerate(Path(loc) for loc in locations_result.data):
            exists = location.exists()
            status = (
                "[green]✓ ACTIVE[/green]"
                if location == active_config
                else ("[dim]exists[/dim]" if exists else "[dim]not found[/dim]")
            )
            console.print(f"  {i + 1}. {location} {status}")

    console.print()


@config.command("devices")
def config_devices() -> None:
    """Show the accelerated devices available to the benchmark."""
    from idxbench.cli.progress import console
    from idxbench.core.device import get_device_info

    info = get_device_info()

    console.print("\n[bold]Available Compute Devices[/bold]\n")
    for device in info["devices"]:
        console.print(f"  [green]✓[/green] {device['name']}")
        console.print(f"    [dim]Device ID: cuda:{device['index']}[/dim]")
    if info["mps_available"]:
        console.print("  [green]✓[/green] Apple MPS")
        console.print("    [dim]Device ID: mps[/dim]")
    console.print("  [dim]• CPU (reference backend)[/dim]")
    console.print()

    if not info["cuda_available"] and not info["mps_available"]:
        console.print("[yellow]No accelerated device available - benchmarks will report CPU only[/yellow]\n")
