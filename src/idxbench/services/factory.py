"""
Service Factory
===============

Factory for instantiating services, shared by the CLI and tests.

Usage:
    from idxbench.services.factory import ServiceFactory

    factory = ServiceFactory()
    run_svc = factory.create_run_service()
"""

from .config import ConfigService
from .dataset import DatasetService
from .run import RunService


class ServiceFactory:
    """Factory for creating service instances."""

    def create_run_service(self) -> RunService:
        """Create RunService."""
        return RunService()

    def create_dataset_service(self) -> DatasetService:
        """Create DatasetService."""
        return DatasetService()

    def create_config_service(self) -> ConfigService:
        """Create ConfigService."""
        return ConfigService()

    @property
    def run(self) -> RunService:
        """Convenience property for create_run_service()."""
        return self.create_run_service()

    @property
    def dataset(self) -> DatasetService:
        """Convenience property for create_dataset_service()."""
        return self.create_dataset_service()

    @property
    def config(self) -> ConfigService:
        """Convenience property for create_config_service()."""
        return self.create_config_service()
