"""
Backend provider contract: one factory method per manager type.

A provider is produced by a registered backend factory. The ManagerBundle
wraps a provider and instantiates each manager on first use.
"""

import threading
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict

from .managers import (
    BusinessCardManager,
    LocatorInfoManager,
    RedirectManager,
    ServiceGroupManager,
    ServiceInformationManager,
    SettingsManager,
    TransportProfileManager,
    UserManager,
)


class ManagerProvider(ABC):
    """Factory for the managers of one storage engine."""

    @abstractmethod
    def create_service_group_manager(self) -> ServiceGroupManager: ...

    @abstractmethod
    def create_service_information_manager(self) -> ServiceInformationManager: ...

    @abstractmethod
    def create_redirect_manager(self) -> RedirectManager: ...

    @abstractmethod
    def create_business_card_manager(self) -> BusinessCardManager: ...

    @abstractmethod
    def create_user_manager(self) -> UserManager: ...

    @abstractmethod
    def create_settings_manager(self) -> SettingsManager: ...

    @abstractmethod
    def create_transport_profile_manager(self) -> TransportProfileManager: ...

    @abstractmethod
    def create_locator_info_manager(self) -> LocatorInfoManager: ...

    def close(self) -> None:
        """Release engine resources. Default: nothing to release."""


class ManagerBundle:
    """
    Lazily instantiated managers of one provider.

    Each manager is created at most once, on first access.
    """

    def __init__(self, provider: ManagerProvider, backend_id: str = None):
        self.provider = provider
        self.backend_id = backend_id
        self._managers: Dict[str, Any] = {}
        self._lock = threading.Lock()

    def _get(self, name: str, factory: Callable[[], Any]) -> Any:
        manager = self._managers.get(name)
        if manager is not None:
            return manager
        with self._lock:
            if name not in self._managers:
                self._managers[name] = factory()
            return self._managers[name]

    @property
    def service_group_manager(self) -> ServiceGroupManager:
        return self._get('service_group', self.provider.create_service_group_manager)

    @property
    def service_information_manager(self) -> ServiceInformationManager:
        return self._get('service_information', self.provider.create_service_information_manager)

    @property
    def redirect_manager(self) -> RedirectManager:
        return self._get('redirect', self.provider.create_redirect_manager)

    @property
    def business_card_manager(self) -> BusinessCardManager:
        return self._get('business_card', self.provider.create_business_card_manager)

    @property
    def user_manager(self) -> UserManager:
        return self._get('user', self.provider.create_user_manager)

    @property
    def settings_manager(self) -> SettingsManager:
        return self._get('settings', self.provider.create_settings_manager)

    @property
    def transport_profile_manager(self) -> TransportProfileManager:
        return self._get('transport_profile', self.provider.create_transport_profile_manager)

    @property
    def locator_info_manager(self) -> LocatorInfoManager:
        return self._get('locator_info', self.provider.create_locator_info_manager)

    def close(self) -> None:
        self.provider.close()
