"""
Configuration, logging and the registry context.

RegistryContext lives in .context and is imported from there; it depends on
the backend package, which itself uses the logger defined here.
"""

from .config import (
    BaseParams,
    DirectoryParams,
    LocatorParams,
    LoggingParams,
    RegistryConfig,
    load_config,
)
from .logger import RegistryLogger, default_logger

__all__ = [
    'BaseParams', 'DirectoryParams', 'LocatorParams', 'LoggingParams',
    'RegistryConfig', 'load_config',
    'RegistryLogger', 'default_logger',
]
