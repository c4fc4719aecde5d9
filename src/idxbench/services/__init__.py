# services/__init__.py
"""
Service layer between the core library and the CLI.

Services return ServiceResult objects instead of raising, so views only
need to render success or failure.
"""

from .base import BaseService, ServiceResult
from .config import ConfigService
from .dataset import DatasetService
from .factory import ServiceFactory
from .run import RunService

__all__ = [
    "BaseService",
    "ServiceResult",
    "ConfigService",
    "DatasetService",
    "RunService",
    "ServiceFactory",
]
