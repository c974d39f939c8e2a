"""
Manager contract implemented over a RecordStore.

Validation happens in the domain constructors before any store call, so a
ValidationError never leaves partial state behind.
"""

from abc import abstractmethod
from typing import Any, Dict, List, Optional

from ...domain import (
    BusinessCard,
    BusinessCardEntity,
    Change,
    DocumentTypeIdentifier,
    IdentifierPolicy,
    LocatorInfo,
    ParticipantIdentifier,
    Redirect,
    RegistrySettings,
    ServiceGroup,
    ServiceInformation,
    TransportProfile,
    User,
    default_transport_profiles,
)
from ...configuration.logger import default_logger
from ...domain.extension import ExtensionInput
from ...errors import AlreadyExists, NotFound, Unauthorized
from .. import codec
from ..managers import (
    BusinessCardManager,
    LocatorInfoManager,
    RedirectManager,
    ServiceGroupManager,
    ServiceInformationManager,
    SettingsManager,
    TransportProfileManager,
    UserManager,
)
from ..registry import Backend
from .base import (
    BUSINESS_CARD,
    LOCATOR_INFO,
    REDIRECT,
    SERVICE_GROUP,
    SERVICE_INFORMATION,
    SETTINGS,
    SETTINGS_KEY,
    TRANSPORT_PROFILE,
    USER,
    RecordStore,
)


class _StoreManager:
    """Shared plumbing: store access and service group lookup."""

    def __init__(self, store: RecordStore, policy: IdentifierPolicy = IdentifierPolicy.PEPPOL):
        self.store = store
        self.policy = policy

    def log(self, message: str, level: str = 'INFO'):
        self.store.log(message, level)

    def _load_service_group(self, sg_id: str) -> Optional[ServiceGroup]:
        record = self.store.get(SERVICE_GROUP, sg_id)
        if record is None:
            return None
        return codec.service_group_from_record(record, self.policy)

    def _require_service_group(self, sg: ServiceGroup) -> None:
        if self.store.get(SERVICE_GROUP, sg.id) is None:
            raise NotFound(
                f"Service group {sg.participant.uri_encoded} does not exist",
                extra={'service_group_id': sg.id},
            )

    def _service_groups_by_id(self, records: List[Dict[str, Any]]) -> Dict[str, ServiceGroup]:
        groups = {}
        for record in records:
            sg_id = record['service_group_id']
            if sg_id not in groups:
                groups[sg_id] = self._load_service_group(sg_id)
        return groups


# ==================== Service groups ====================

class StoreServiceGroupManager(_StoreManager, ServiceGroupManager):

    def create_service_group(self, owner_id: str, participant: ParticipantIdentifier,
                             extension: ExtensionInput = None) -> ServiceGroup:
        sg = ServiceGroup(owner_id, participant, extensions=extension, policy=self.policy)
        self.store.insert(SERVICE_GROUP, sg.id, codec.service_group_to_record(sg))
        self.log(f"Created service group {sg.id} (owner {owner_id})")
        return sg

    def update_service_group(self, participant: ParticipantIdentifier, owner_id: str,
                             extension: ExtensionInput = None) -> Change:
        with self.store.lock:
            sg = self.get_service_group_of_id(participant)
            if sg is None:
                raise NotFound(f"Service group {participant.uri_encoded} does not exist")
            change = sg.set_owner_id(owner_id).or_(sg.set_extensions(extension))
            if change.is_changed:
                self.store.save(SERVICE_GROUP, sg.id, codec.service_group_to_record(sg))
                self.log(f"Updated service group {sg.id}")
            return change

    def delete_service_group(self, participant: ParticipantIdentifier) -> Change:
        sg_id = self.policy.service_group_id(participant)
        with self.store.lock:
            if self.store.get(SERVICE_GROUP, sg_id) is None:
                return Change.UNCHANGED
            change = self.store.delete_service_group(sg_id)
        if change.is_changed:
            self.log(f"Deleted service group {sg_id} with all dependent entities")
        return change

    def get_all_service_groups(self) -> List[ServiceGroup]:
        return [codec.service_group_from_record(r, self.policy) for r in self.store.list(SERVICE_GROUP)]

    def get_all_service_groups_of_owner(self, owner_id: str) -> List[ServiceGroup]:
        return [sg for sg in self.get_all_service_groups() if sg.owner_id == owner_id]

    def get_service_group_of_id(self, participant: Optional[ParticipantIdentifier]) -> Optional[ServiceGroup]:
        if participant is None:
            return None
        return self._load_service_group(self.policy.service_group_id(participant))

    def get_service_group_count(self) -> int:
        return self.store.count(SERVICE_GROUP)


# ==================== Service information ====================

class StoreServiceInformationManager(_StoreManager, ServiceInformationManager):

    def merge_service_information(self, si: ServiceInformation) -> Change:
        key = (si.service_group_id, si.document_type.uri_encoded)
        with self.store.lock:
            self._require_service_group(si.service_group)
            if self.store.get(REDIRECT, key) is not None:
                raise AlreadyExists(
                    f"A redirect exists for {si.id}; remove it before adding service information",
                    extra={'service_group_id': si.service_group_id},
                )
            change = self.store.save(SERVICE_INFORMATION, key, codec.service_information_to_record(si))
        if change.is_changed:
            self.log(f"Merged service information {si.id}")
        return change

    def delete_service_information(self, si: Optional[ServiceInformation]) -> Change:
        if si is None:
            return Change.UNCHANGED
        change = self.store.delete(SERVICE_INFORMATION, (si.service_group_id, si.document_type.uri_encoded))
        if change.is_changed:
            self.log(f"Deleted service information {si.id}")
        return change

    def delete_all_service_information_of_service_group(self, sg: Optional[ServiceGroup]) -> Change:
        if sg is None:
            return Change.UNCHANGED
        return self.store.delete_children(SERVICE_INFORMATION, sg.id)

    def get_all_service_information(self) -> List[ServiceInformation]:
        records = self.store.list(SERVICE_INFORMATION)
        groups = self._service_groups_by_id(records)
        return [
            codec.service_information_from_record(r, groups[r['service_group_id']])
            for r in records if groups[r['service_group_id']] is not None
        ]

    def get_service_information_count(self) -> int:
        return self.store.count(SERVICE_INFORMATION)

    def get_all_service_information_of_service_group(self, sg: Optional[ServiceGroup]) -> List[ServiceInformation]:
        if sg is None:
            return []
        return [
            codec.service_information_from_record(r, sg)
            for r in self.store.list(SERVICE_INFORMATION, parent=sg.id)
        ]

    def get_service_information_of_service_group_and_document_type(
            self, sg: Optional[ServiceGroup],
            document_type: Optional[DocumentTypeIdentifier]) -> Optional[ServiceInformation]:
        if sg is None or document_type is None:
            return None
        record = self.store.get(SERVICE_INFORMATION, (sg.id, document_type.uri_encoded))
        if record is None:
            return None
        return codec.service_information_from_record(record, sg)


# ==================== Redirects ====================

class StoreRedirectManager(_StoreManager, RedirectManager):

    def create_or_update_redirect(self, sg: ServiceGroup, document_type: DocumentTypeIdentifier,
                                  target_href: str, subject_unique_identifier: str,
                                  certificate: Optional[str] = None,
                                  extension: ExtensionInput = None) -> Redirect:
        redirect = Redirect(sg, document_type, target_href, subject_unique_identifier,
                            certificate=certificate, extensions=extension)
        key = (redirect.service_group_id, document_type.uri_encoded)
        with self.store.lock:
            self._require_service_group(sg)
            if self.store.get(SERVICE_INFORMATION, key) is not None:
                raise AlreadyExists(
                    f"Service information exists for {redirect.id}; remove it before adding a redirect",
                    extra={'service_group_id': redirect.service_group_id},
                )
            change = self.store.save(REDIRECT, key, codec.redirect_to_record(redirect))
        if change.is_changed:
            self.log(f"Saved redirect {redirect.id} -> {target_href}")
        return redirect

    def delete_redirect(self, redirect: Optional[Redirect]) -> Change:
        if redirect is None:
            return Change.UNCHANGED
        change = self.store.delete(REDIRECT, (redirect.service_group_id, redirect.document_type.uri_encoded))
        if change.is_changed:
            self.log(f"Deleted redirect {redirect.id}")
        return change

    def delete_all_redirects_of_service_group(self, sg: Optional[ServiceGroup]) -> Change:
        if sg is None:
            return Change.UNCHANGED
        return self.store.delete_children(REDIRECT, sg.id)

    def get_all_redirects(self) -> List[Redirect]:
        records = self.store.list(REDIRECT)
        groups = self._service_groups_by_id(records)
        return [
            codec.redirect_from_record(r, groups[r['service_group_id']])
            for r in records if groups[r['service_group_id']] is not None
        ]

    def get_all_redirects_of_service_group(self, sg: Optional[ServiceGroup]) -> List[Redirect]:
        if sg is None:
            return []
        return [codec.redirect_from_record(r, sg) for r in self.store.list(REDIRECT, parent=sg.id)]

    def get_redirect_count(self) -> int:
        return self.store.count(REDIRECT)

    def get_redirect_of_service_group_and_document_type(
            self, sg: Optional[ServiceGroup],
            document_type: Optional[DocumentTypeIdentifier]) -> Optional[Redirect]:
        if sg is None or document_type is None:
            return None
        record = self.store.get(REDIRECT, (sg.id, document_type.uri_encoded))
        if record is None:
            return None
        return codec.redirect_from_record(record, sg)


# ==================== Business cards ====================

class StoreBusinessCardManager(_StoreManager, BusinessCardManager):

    def create_or_update_business_card(self, sg: ServiceGroup,
                                       entities: List[BusinessCardEntity]) -> BusinessCard:
        bc = BusinessCard(sg, entities)
        with self.store.lock:
            self._require_service_group(sg)
            change = self.store.save(BUSINESS_CARD, bc.id, codec.business_card_to_record(bc))
        if change.is_changed:
            self.log(f"Saved business card {bc.id} with {bc.entity_count} entities")
        return bc

    def delete_business_card(self, bc: Optional[BusinessCard]) -> Change:
        if bc is None:
            return Change.UNCHANGED
        change = self.store.delete(BUSINESS_CARD, bc.id)
        if change.is_changed:
            self.log(f"Deleted business card {bc.id}")
        return change

    def get_all_business_cards(self) -> List[BusinessCard]:
        records = self.store.list(BUSINESS_CARD)
        groups = self._service_groups_by_id(records)
        return [
            codec.business_card_from_record(r, groups[r['service_group_id']])
            for r in records if groups[r['service_group_id']] is not None
        ]

    def get_business_card_of_service_group(self, sg: Optional[ServiceGroup]) -> Optional[BusinessCard]:
        if sg is None:
            return None
        record = self.store.get(BUSINESS_CARD, sg.id)
        if record is None:
            return None
        return codec.business_card_from_record(record, sg)

    def get_business_card_count(self) -> int:
        return self.store.count(BUSINESS_CARD)


# ==================== Users ====================

class StoreUserManager(_StoreManager, UserManager):

    def create_user(self, user_id: str, password: str) -> User:
        user = User.create(user_id, password)
        self.store.insert(USER, user.user_id, codec.user_to_record(user))
        self.log(f"Created user {user_id}")
        return user

    def save_user(self, user: User) -> Change:
        return self.store.save(USER, user.user_id, codec.user_to_record(user))

    def delete_user(self, user_id: str) -> Change:
        change = self.store.delete(USER, user_id)
        if change.is_changed:
            self.log(f"Deleted user {user_id}")
        return change

    def get_user_of_id(self, user_id: Optional[str]) -> Optional[User]:
        if not user_id:
            return None
        record = self.store.get(USER, user_id)
        return codec.user_from_record(record) if record is not None else None

    def get_all_users(self) -> List[User]:
        return [codec.user_from_record(r) for r in self.store.list(USER)]

    def get_user_count(self) -> int:
        return self.store.count(USER)

    def validate_user_credentials(self, user_id: str, password: str) -> User:
        user = self.get_user_of_id(user_id)
        if user is None or not user.check_password(password):
            self.log(f"Rejected credentials for user {user_id!r}", 'WARNING')
            raise Unauthorized(f"Invalid credentials for user {user_id!r}")
        return user

    def verify_ownership(self, participant: ParticipantIdentifier, user: User) -> ServiceGroup:
        sg = self._load_service_group(self.policy.service_group_id(participant))
        if sg is None:
            raise NotFound(f"Service group {participant.uri_encoded} does not exist")
        if sg.owner_id != user.user_id:
            self.log(
                f"User {user.user_id} is not the owner of service group {sg.id} (owner {sg.owner_id})",
                'WARNING',
            )
            raise Unauthorized(
                f"User {user.user_id} does not own service group {participant.uri_encoded}",
                extra={'service_group_id': sg.id, 'user_id': user.user_id},
            )
        return sg


# ==================== Settings ====================

class StoreSettingsManager(SettingsManager):
    """Until the first update, settings are the configuration's defaults and are not stored."""

    def __init__(self, store: RecordStore, defaults: RegistrySettings = None):
        self.store = store
        self.defaults = defaults or RegistrySettings()

    def get_settings(self) -> RegistrySettings:
        record = self.store.get(SETTINGS, SETTINGS_KEY)
        if record is None:
            return self.defaults
        return codec.settings_from_record(record)

    def update_settings(self, **changes) -> Change:
        with self.store.lock:
            current = self.get_settings()
            updated = current.updated(**changes)
            change = current.diff(updated)
            if change.is_changed:
                self.store.save(SETTINGS, SETTINGS_KEY, codec.settings_to_record(updated))
                self.store.log(f"Updated settings: {sorted(changes)}")
        return change


# ==================== Transport profiles ====================

class StoreTransportProfileManager(TransportProfileManager):
    """Seeds the default profiles into an empty store on creation."""

    def __init__(self, store: RecordStore):
        self.store = store
        with self.store.lock:
            if self.store.count(TRANSPORT_PROFILE) == 0:
                for profile in default_transport_profiles():
                    self.store.insert(TRANSPORT_PROFILE, profile.profile_id,
                                      codec.transport_profile_to_record(profile))

    def create_transport_profile(self, profile_id: str, name: str,
                                 deprecated: bool = False) -> TransportProfile:
        profile = TransportProfile(profile_id, name, deprecated)
        self.store.insert(TRANSPORT_PROFILE, profile_id, codec.transport_profile_to_record(profile))
        self.store.log(f"Created transport profile {profile_id}")
        return profile

    def update_transport_profile(self, profile_id: str, name: str,
                                 deprecated: bool = False) -> Change:
        profile = TransportProfile(profile_id, name, deprecated)
        with self.store.lock:
            if self.store.get(TRANSPORT_PROFILE, profile_id) is None:
                raise NotFound(f"Transport profile {profile_id} does not exist")
            return self.store.save(TRANSPORT_PROFILE, profile_id, codec.transport_profile_to_record(profile))

    def remove_transport_profile(self, profile_id: str) -> Change:
        return self.store.delete(TRANSPORT_PROFILE, profile_id)

    def get_all_transport_profiles(self) -> List[TransportProfile]:
        return [codec.transport_profile_from_record(r) for r in self.store.list(TRANSPORT_PROFILE)]

    def get_transport_profile_of_id(self, profile_id: Optional[str]) -> Optional[TransportProfile]:
        if not profile_id:
            return None
        record = self.store.get(TRANSPORT_PROFILE, profile_id)
        return codec.transport_profile_from_record(record) if record is not None else None


# ==================== Locator infos ====================

class StoreLocatorInfoManager(LocatorInfoManager):

    def __init__(self, store: RecordStore):
        self.store = store

    def create_locator_info(self, display_name: str, dns_zone: str, management_service_url: str,
                            client_certificate_required: bool = True) -> LocatorInfo:
        info = LocatorInfo(display_name, dns_zone, management_service_url, client_certificate_required)
        self.store.insert(LOCATOR_INFO, info.locator_id, codec.locator_info_to_record(info))
        self.store.log(f"Created locator info {info.locator_id} ({display_name})")
        return info

    def update_locator_info(self, locator_id: str, display_name: str, dns_zone: str,
                            management_service_url: str,
                            client_certificate_required: bool = True) -> Change:
        info = LocatorInfo(display_name, dns_zone, management_service_url,
                           client_certificate_required, locator_id=locator_id)
        with self.store.lock:
            if self.store.get(LOCATOR_INFO, locator_id) is None:
                raise NotFound(f"Locator info {locator_id} does not exist")
            return self.store.save(LOCATOR_INFO, locator_id, codec.locator_info_to_record(info))

    def remove_locator_info(self, locator_id: str) -> Change:
        return self.store.delete(LOCATOR_INFO, locator_id)

    def get_all_locator_infos(self) -> List[LocatorInfo]:
        return [codec.locator_info_from_record(r) for r in self.store.list(LOCATOR_INFO)]

    def get_locator_info_of_id(self, locator_id: Optional[str]) -> Optional[LocatorInfo]:
        if not locator_id:
            return None
        record = self.store.get(LOCATOR_INFO, locator_id)
        return codec.locator_info_from_record(record) if record is not None else None


# ==================== Provider ====================

class StoreBackend(Backend):
    """
    Backend whose managers are views over one RecordStore.

    Subclasses implement `_create_store()`.
    """

    def __init__(self, params: Dict[str, Any], context=None):
        super().__init__(params, context)
        if context is not None:
            self.logger = context.logger
            self.policy = context.config.identifier_policy
            self.default_settings = context.config.default_settings()
        else:
            self.logger = default_logger()
            self.policy = IdentifierPolicy.PEPPOL
            self.default_settings = RegistrySettings()
        self.store = self._create_store()
        self.store.log(f"{self.description} ready")

    @abstractmethod
    def _create_store(self) -> RecordStore: ...

    def create_service_group_manager(self) -> ServiceGroupManager:
        return StoreServiceGroupManager(self.store, self.policy)

    def create_service_information_manager(self) -> ServiceInformationManager:
        return StoreServiceInformationManager(self.store, self.policy)

    def create_redirect_manager(self) -> RedirectManager:
        return StoreRedirectManager(self.store, self.policy)

    def create_business_card_manager(self) -> BusinessCardManager:
        return StoreBusinessCardManager(self.store, self.policy)

    def create_user_manager(self) -> UserManager:
        return StoreUserManager(self.store, self.policy)

    def create_settings_manager(self) -> SettingsManager:
        return StoreSettingsManager(self.store, self.default_settings)

    def create_transport_profile_manager(self) -> TransportProfileManager:
        return StoreTransportProfileManager(self.store)

    def create_locator_info_manager(self) -> LocatorInfoManager:
        return StoreLocatorInfoManager(self.store)

    def close(self) -> None:
        self.store.close()
