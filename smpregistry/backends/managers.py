"""
Manager contract every storage backend implements.

Common rules across all managers:

- create fails with AlreadyExists on a present natural key, never overwrites
- get/list return None or an empty list for unknown keys
- delete of an absent entity returns Change.UNCHANGED
- backend-specific exceptions are wrapped in BackendError
"""

from abc import ABC, abstractmethod
from typing import List, Optional

from ..domain import (
    BusinessCard,
    BusinessCardEntity,
    Change,
    DocumentTypeIdentifier,
    Endpoint,
    LocatorInfo,
    ParticipantIdentifier,
    ProcessIdentifier,
    Redirect,
    RegistrySettings,
    ServiceGroup,
    ServiceInformation,
    TransportProfile,
    User,
)
from ..domain.extension import ExtensionInput


class ServiceGroupManager(ABC):

    @abstractmethod
    def create_service_group(self, owner_id: str, participant: ParticipantIdentifier,
                             extension: ExtensionInput = None) -> ServiceGroup:
        """
        Create a new service group.

        Raises:
            AlreadyExists: If a service group for `participant` exists
            ValidationError: On missing owner or malformed extension
        """

    @abstractmethod
    def update_service_group(self, participant: ParticipantIdentifier, owner_id: str,
                             extension: ExtensionInput = None) -> Change:
        """
        Change owner and replace the extension.

        Raises:
            NotFound: If no service group exists for `participant`
        """

    @abstractmethod
    def delete_service_group(self, participant: ParticipantIdentifier) -> Change:
        """Delete the service group and everything it owns."""

    @abstractmethod
    def get_all_service_groups(self) -> List[ServiceGroup]: ...

    @abstractmethod
    def get_all_service_groups_of_owner(self, owner_id: str) -> List[ServiceGroup]: ...

    def get_service_group_count_of_owner(self, owner_id: str) -> int:
        return len(self.get_all_service_groups_of_owner(owner_id))

    @abstractmethod
    def get_service_group_of_id(self, participant: Optional[ParticipantIdentifier]) -> Optional[ServiceGroup]: ...

    def contains_service_group_with_id(self, participant: Optional[ParticipantIdentifier]) -> bool:
        return self.get_service_group_of_id(participant) is not None

    def get_service_group_count(self) -> int:
        return len(self.get_all_service_groups())


class ServiceInformationManager(ABC):

    @abstractmethod
    def merge_service_information(self, si: ServiceInformation) -> Change:
        """
        Insert, or replace the processes and extension of the same
        (service group, document type) pair.

        Raises:
            NotFound: If the service group does not exist
            AlreadyExists: If a redirect exists for the same pair
        """

    def find_service_information(self, sg: ServiceGroup, document_type: DocumentTypeIdentifier,
                                 process_id: ProcessIdentifier, transport_profile: str) -> Optional[Endpoint]:
        """Endpoint of one transport profile in one process, or None."""
        si = self.get_service_information_of_service_group_and_document_type(sg, document_type)
        if si is None:
            return None
        process = si.get_process_of_id(process_id)
        if process is None:
            return None
        return process.get_endpoint_of_transport_profile(transport_profile)

    @abstractmethod
    def delete_service_information(self, si: Optional[ServiceInformation]) -> Change: ...

    @abstractmethod
    def delete_all_service_information_of_service_group(self, sg: Optional[ServiceGroup]) -> Change: ...

    @abstractmethod
    def get_all_service_information(self) -> List[ServiceInformation]: ...

    def get_service_information_count(self) -> int:
        return len(self.get_all_service_information())

    @abstractmethod
    def get_all_service_information_of_service_group(self, sg: Optional[ServiceGroup]) -> List[ServiceInformation]: ...

    def get_all_document_types_of_service_group(self, sg: Optional[ServiceGroup]) -> List[DocumentTypeIdentifier]:
        return [si.document_type for si in self.get_all_service_information_of_service_group(sg)]

    @abstractmethod
    def get_service_information_of_service_group_and_document_type(
            self, sg: Optional[ServiceGroup],
            document_type: Optional[DocumentTypeIdentifier]) -> Optional[ServiceInformation]: ...


class RedirectManager(ABC):

    @abstractmethod
    def create_or_update_redirect(self, sg: ServiceGroup, document_type: DocumentTypeIdentifier,
                                  target_href: str, subject_unique_identifier: str,
                                  certificate: Optional[str] = None,
                                  extension: ExtensionInput = None) -> Redirect:
        """
        Raises:
            NotFound: If the service group does not exist
            AlreadyExists: If service information exists for the same pair
        """

    @abstractmethod
    def delete_redirect(self, redirect: Optional[Redirect]) -> Change: ...

    @abstractmethod
    def delete_all_redirects_of_service_group(self, sg: Optional[ServiceGroup]) -> Change: ...

    @abstractmethod
    def get_all_redirects(self) -> List[Redirect]: ...

    @abstractmethod
    def get_all_redirects_of_service_group(self, sg: Optional[ServiceGroup]) -> List[Redirect]: ...

    def get_redirect_count(self) -> int:
        return len(self.get_all_redirects())

    @abstractmethod
    def get_redirect_of_service_group_and_document_type(
            self, sg: Optional[ServiceGroup],
            document_type: Optional[DocumentTypeIdentifier]) -> Optional[Redirect]: ...


class BusinessCardManager(ABC):

    @abstractmethod
    def create_or_update_business_card(self, sg: ServiceGroup,
                                       entities: List[BusinessCardEntity]) -> BusinessCard:
        """
        Raises:
            NotFound: If the service group does not exist
        """

    @abstractmethod
    def delete_business_card(self, bc: Optional[BusinessCard]) -> Change: ...

    @abstractmethod
    def get_all_business_cards(self) -> List[BusinessCard]: ...

    @abstractmethod
    def get_business_card_of_service_group(self, sg: Optional[ServiceGroup]) -> Optional[BusinessCard]: ...

    def get_business_card_count(self) -> int:
        return len(self.get_all_business_cards())


class UserManager(ABC):

    @abstractmethod
    def create_user(self, user_id: str, password: str) -> User: ...

    @abstractmethod
    def save_user(self, user: User) -> Change:
        """Store `user` with its existing password hash, replacing any user of the same ID."""

    @abstractmethod
    def delete_user(self, user_id: str) -> Change: ...

    @abstractmethod
    def get_user_of_id(self, user_id: Optional[str]) -> Optional[User]: ...

    @abstractmethod
    def get_all_users(self) -> List[User]: ...

    def get_user_count(self) -> int:
        return len(self.get_all_users())

    @abstractmethod
    def validate_user_credentials(self, user_id: str, password: str) -> User:
        """
        Raises:
            Unauthorized: On unknown user or wrong password
        """

    @abstractmethod
    def verify_ownership(self, participant: ParticipantIdentifier, user: User) -> ServiceGroup:
        """
        Raises:
            NotFound: If the service group does not exist
            Unauthorized: If the service group belongs to another user
        """


class SettingsManager(ABC):

    @abstractmethod
    def get_settings(self) -> RegistrySettings: ...

    @abstractmethod
    def update_settings(self, **changes) -> Change: ...


class TransportProfileManager(ABC):

    @abstractmethod
    def create_transport_profile(self, profile_id: str, name: str,
                                 deprecated: bool = False) -> TransportProfile: ...

    @abstractmethod
    def update_transport_profile(self, profile_id: str, name: str,
                                 deprecated: bool = False) -> Change: ...

    @abstractmethod
    def remove_transport_profile(self, profile_id: str) -> Change: ...

    @abstractmethod
    def get_all_transport_profiles(self) -> List[TransportProfile]: ...

    @abstractmethod
    def get_transport_profile_of_id(self, profile_id: Optional[str]) -> Optional[TransportProfile]: ...

    def contains_transport_profile_with_id(self, profile_id: Optional[str]) -> bool:
        return self.get_transport_profile_of_id(profile_id) is not None


class LocatorInfoManager(ABC):

    @abstractmethod
    def create_locator_info(self, display_name: str, dns_zone: str, management_service_url: str,
                            client_certificate_required: bool = True) -> LocatorInfo: ...

    @abstractmethod
    def update_locator_info(self, locator_id: str, display_name: str, dns_zone: str,
                            management_service_url: str,
                            client_certificate_required: bool = True) -> Change: ...

    @abstractmethod
    def remove_locator_info(self, locator_id: str) -> Change: ...

    @abstractmethod
    def get_all_locator_infos(self) -> List[LocatorInfo]: ...

    @abstractmethod
    def get_locator_info_of_id(self, locator_id: Optional[str]) -> Optional[LocatorInfo]: ...

    def contains_locator_info_with_id(self, locator_id: Optional[str]) -> bool:
        return self.get_locator_info_of_id(locator_id) is not None
