"""
SMP Registry - participant service metadata registry.

Stores which document types each participant can receive and where, keeps the
external locator service informed about participants, and persists all of it
in a pluggable storage backend (xml, sql, document).

Example:
    >>> from smpregistry import RegistryContext, RegistryAPI
    >>> context = RegistryContext.from_config_file('registry.yaml')
    >>> context.init_from_configuration()
    >>> api = RegistryAPI(context)
"""

__version__ = "1.0.0"

from .configuration.context import RegistryContext
from .configuration.config import RegistryConfig, load_config
from .coordinator import RegistrationCoordinator, Outcome, OperationState
from .api import RegistryAPI

__all__ = [
    'RegistryContext', 'RegistryConfig', 'load_config',
    'RegistrationCoordinator', 'Outcome', 'OperationState',
    'RegistryAPI',
    '__version__',
]
