"""
idxbench CLI - IDX dataset ingestion and inference benchmark harness
"""

from typing import Optional

import click

from idxbench import __version__

from .commands import config, dataset, run

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]


@click.group()
@click.version_option(version=__version__, prog_name="idxbench")
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False),
    default=None,
    help="Configuration file (overrides the standard search locations)",
)
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    default=None,
    help="Logging level (default: [logging] level from config)",
)
@click.pass_context
def cli(ctx: click.Context, config_path: Optional[str], log_level: Optional[str]) -> None:
    """idxbench - train, score and benchmark a classifier on IDX datasets

    Use 'idxbench COMMAND --help' for more information on a command.
    """
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["log_level"] = log_level


# Register command groups
cli.add_command(run)
cli.add_command(dataset)
cli.add_command(config)


if __name__ == "__main__":
    cli()
