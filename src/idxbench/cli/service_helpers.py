"""
CLI Service Helpers
===================

CLI-specific utilities for working with services and the ServiceFactory.

Usage:
    from idxbench.cli.service_helpers import services, handle_result

    report = handle_result(services.run.run(config))  # Exits with error message if failed
"""

from typing import TYPE_CHECKING, Optional, TypeVar

import click

# ServiceFactory is imported on first access so that `--help` does not load torch
if TYPE_CHECKING:
    from idxbench.services import ServiceFactory
    from idxbench.services.base import ServiceResult
    from idxbench.services.config import ConfigService
    from idxbench.services.dataset import DatasetService
    from idxbench.services.run import RunService

T = TypeVar("T")


_factory: Optional["ServiceFactory"] = None


def get_factory() -> "ServiceFactory":
    """Get the singleton ServiceFactory instance for CLI."""
    global _factory
    if _factory is None:
        from idxbench.services import ServiceFactory

        _factory = ServiceFactory()
    return _factory


class _ServiceAccessor:
    """Lazy property access to the services of the singleton factory."""

    @property
    def run(self) -> "RunService":
        return get_factory().run

    @property
    def dataset(self) -> "DatasetService":
        return get_factory().dataset

    @property
    def config(self) -> "ConfigService":
        return get_factory().config


services = _ServiceAccessor()


def handle_result(result: "ServiceResult[T]") -> T:
    """
    Handle a service result, exiting with error if failed.

    Raises:
        SystemExit: If result indicates failure (exits with code 1)
    """
    if not result.success:
        exit_with_error(result.error or "Unknown error")
    return result.data


def exit_with_error(message: str, code: int = 1) -> None:
    """
    Print error message and exit.

    Raises:
        SystemExit: Always exits with specified code
    """
    from idxbench.cli.progress import print_error

    print_error(message)
    raise SystemExit(code)


def load_cli_config(ctx: click.Context):
    """
    Load the configuration for a command and apply its logging level.

    The result becomes the global configuration so services see the same
    settings as the command.
    """
    from idxbench.core.config import set_config
    from idxbench.core.logger import set_level

    obj = ctx.find_root().obj or {}
    config = handle_result(services.config.load_config(obj.get("config_path")))
    set_config(config)
    try:
        set_level(obj.get("log_level") or config.get("logging", "level", "INFO"))
    except ValueError as e:
        exit_with_error(str(e))
    return config
