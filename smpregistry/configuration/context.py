"""
Registry context: the explicit, constructed replacement for process-wide state.

One context is created at process startup and passed to every component that
needs managers (API layer, coordinator, CLI commands). Tests build a fresh
context per test instead of resetting shared globals.
"""

import threading
from pathlib import Path
from typing import Optional, Union

from ..backends.discovery import create_registry
from ..backends.provider import ManagerBundle, ManagerProvider
from ..backends.registry import BackendRegistry
from ..errors import ConfigurationError, NotInitialized
from ..locator.client import LocatorClient, create_locator_client
from .config import RegistryConfig, load_config
from .logger import RegistryLogger


class RegistryContext:
    """
    Holds the configuration, logger, backend registry, locator client and the
    single swappable reference to the active manager bundle.

    The active bundle is replaced by assigning one attribute, so readers see
    either the old or the new bundle, never a mix. Swapping is meant for
    startup and explicit reset only.

    Example:
        >>> context = RegistryContext.from_config_file('registry.yaml')
        >>> context.init_from_configuration()
        >>> context.service_group_manager.get_service_group_count()
        0
    """

    def __init__(self,
                 config: RegistryConfig,
                 backend_registry: Optional[BackendRegistry] = None,
                 logger: Optional[RegistryLogger] = None,
                 locator_client: Optional[LocatorClient] = None):
        """
        Initialize registry context.

        Args:
            config: Parsed registry configuration
            backend_registry: Registry of backend factories (built-in backends if omitted)
            logger: Registry logger (built from `config.logging` if omitted)
            locator_client: Locator client (built from `config.locator` if omitted)
        """
        self.config = config

        if logger is None:
            logger = RegistryLogger(
                name='smpregistry',
                log_file=config.logging.file,
                console_level=config.logging.level,
                file_level=config.logging.file_level,
                use_colors=config.logging.colors,
            )
        self.logger = logger

        self.backend_registry = backend_registry if backend_registry is not None else create_registry()
        self.locator_client = locator_client or create_locator_client(config.locator, logger=self.logger)

        self._bundle: Optional[ManagerBundle] = None
        self._swap_lock = threading.Lock()

    @classmethod
    def from_config_file(cls, config_path: Union[str, Path], **overrides) -> 'RegistryContext':
        return cls(load_config(config_path, **overrides))

    def log(self, message: str, level: str = 'INFO'):
        self.logger.log(level.lower(), 'CONTEXT', message)

    # ==================== Active backend ====================

    def init_from_configuration(self) -> ManagerBundle:
        """
        Resolve the configured backend and install its managers.

        Raises:
            ConfigurationError: If the backend id is unknown (names the id and
                                the known ids) or its parameters are invalid
        """
        backend_id = self.config.backend
        factory = self.backend_registry.resolve(backend_id)
        if factory is None:
            known = self.backend_registry.list_ids()
            self.log(f"Unknown backend '{backend_id}'. Known backends: {known}", 'CRITICAL')
            raise ConfigurationError(
                f"Unknown backend '{backend_id}'. Known backends: {', '.join(known) or 'none'}",
                extra={'backend_id': backend_id, 'known': known},
            )

        provider = factory(self.config.backend_params, self)
        self.set_manager_provider(provider, backend_id=backend_id)
        self.log(f"Using backend '{backend_id}'")
        return self._bundle

    def set_manager_provider(self, provider: Optional[ManagerProvider], backend_id: str = None) -> None:
        """
        Install `provider` as active, or clear the active bundle with None.

        Raises:
            ConfigurationError: If a provider is already installed (clear it first)
        """
        with self._swap_lock:
            if provider is None:
                old, self._bundle = self._bundle, None
                if old is not None:
                    old.close()
                    self.log(f"Cleared active backend '{old.backend_id}'", 'DEBUG')
                return
            if self._bundle is not None:
                raise ConfigurationError(
                    f"A manager provider is already installed ('{self._bundle.backend_id}'); "
                    f"clear it with set_manager_provider(None) first"
                )
            self._bundle = ManagerBundle(provider, backend_id=backend_id or type(provider).__name__)

    @property
    def is_initialized(self) -> bool:
        return self._bundle is not None

    @property
    def managers(self) -> ManagerBundle:
        """
        Snapshot of the active bundle.

        Raises:
            NotInitialized: If no provider is installed
        """
        bundle = self._bundle
        if bundle is None:
            raise NotInitialized("No manager provider installed; call init_from_configuration() first")
        return bundle

    # ==================== Manager accessors ====================

    @property
    def service_group_manager(self):
        return self.managers.service_group_manager

    @property
    def service_information_manager(self):
        return self.managers.service_information_manager

    @property
    def redirect_manager(self):
        return self.managers.redirect_manager

    @property
    def business_card_manager(self):
        return self.managers.business_card_manager

    @property
    def user_manager(self):
        return self.managers.user_manager

    @property
    def settings_manager(self):
        return self.managers.settings_manager

    @property
    def transport_profile_manager(self):
        return self.managers.transport_profile_manager

    @property
    def locator_info_manager(self):
        return self.managers.locator_info_manager

    # ==================== Lifecycle ====================

    def close(self) -> None:
        self.set_manager_provider(None)
        self.logger.close()

    def __enter__(self) -> 'RegistryContext':
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
