# services/config.py
"""
Service for configuration management operations.
"""

from pathlib import Path
from typing import List, Optional

from idxbench.core import config as core_config
from idxbench.core.config import Config

from .base import BaseService, ServiceResult


class ConfigService(BaseService):
    """
    Service for configuration management operations.

    Provides ServiceResult-wrapped methods for configuration access
    and management.
    """

    def get_config(self) -> ServiceResult[Config]:
        """Get the current global configuration."""
        try:
            config = core_config.get_config()
        except Exception as e:
            return ServiceResult.fail(f"Failed to get config: {e}")

        return ServiceResult.ok(
            data=config,
            message=f"Loaded config from {config.source or 'defaults'}",
            source=config.source,
        )

    def load_config(self, config_path: Optional[str] = None) -> ServiceResult[Config]:
        """
        Load the configuration cascade, optionally topped by an explicit file.

        Args:
            config_path: Optional explicit path to config file
        """
        if config_path and not Path(config_path).exists():
            return ServiceResult.fail(f"Config file not found: {config_path}")

        try:
            config = core_config.load_config_cascade(config_path)
        except Exception as e:
            return ServiceResult.fail(f"Failed to load config: {e}")

        return ServiceResult.ok(
            data=config,
            message=f"Loaded config from {config.source or 'defaults'}",
            source=config.source,
        )

    def find_config_file(self, config_path: Optional[str] = None) -> ServiceResult[Optional[str]]:
        """Find the configuration file that would be used."""
        result = core_config.find_config_file(config_path)
        if result:
            return ServiceResult.ok(data=str(result), message=f"Found config file: {result}")
        return ServiceResult.ok(data=None, message="No config file found")

    def get_config_locations(self) -> ServiceResult[List[str]]:
        """Get configuration file search locations in priority order."""
        paths = [str(loc) for loc in core_config.get_config_locations()]
        return ServiceResult.ok(data=paths, message=f"Found {len(paths)} config locations")

    def create_default_config(
        self,
        filepath: Optional[str] = None,
        force: bool = False,
    ) -> ServiceResult[str]:
        """
        Create a default configuration file.

        Args:
            filepath: Path to create the file (default: ./idxbench.toml)
            force: Overwrite if file exists
        """
        path = Path(filepath) if filepath else Path("idxbench.toml")

        if path.exists() and not force:
            return ServiceResult.fail(f"File already exists: {path}. Use force=True to overwrite.")

        try:
            result_path = core_config.create_default_config_file(str(path))
        except OSError as e:
            return ServiceResult.fail(f"Failed to create config file: {e}")

        return ServiceResult.ok(data=result_path, message=f"Created config file: {result_path}")

    def get_default_config(self) -> ServiceResult[Config]:
        """Get the default configuration."""
        return ServiceResult.ok(data=core_config.get_default_config(), message="Loaded default config")
