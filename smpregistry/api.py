"""
Owner-checked registry operations for a request-handling layer.

Wraps the registry context and the registration coordinator. Every write
checks that the authenticated user owns the affected service group and is
refused while the writable API is disabled in the registry settings.

Service group writes return the coordinator's PendingOperation so the caller
can resolve it once the response has (or has not) been delivered.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Union

from .configuration.context import RegistryContext
from .coordinator import PendingOperation, RegistrationCoordinator
from .domain import (
    BusinessCard,
    BusinessCardEntity,
    Change,
    DocumentTypeIdentifier,
    ParticipantIdentifier,
    Redirect,
    ServiceGroup,
    ServiceInformation,
    User,
)
from .domain.extension import ExtensionInput
from .errors import NotFound, Unauthorized


@dataclass
class CompleteServiceGroup:
    """A service group with everything registered under it."""
    service_group: ServiceGroup
    service_information: List[ServiceInformation] = field(default_factory=list)
    redirects: List[Redirect] = field(default_factory=list)
    business_card: Optional[BusinessCard] = None

    @property
    def document_types(self) -> List[DocumentTypeIdentifier]:
        types = [si.document_type for si in self.service_information]
        types.extend(r.document_type for r in self.redirects)
        return sorted(types, key=lambda d: d.uri_encoded)


class RegistryAPI:
    """
    Example:
        >>> api = RegistryAPI(context)
        >>> user = api.authenticate('alice', 'secret')
        >>> with api.save_service_group(pid, None, user) as op:
        ...     op.raise_for_error()
    """

    def __init__(self, context: RegistryContext, coordinator: Optional[RegistrationCoordinator] = None):
        self.context = context
        self.coordinator = coordinator or RegistrationCoordinator(context)

    def log(self, message: str, level: str = 'INFO'):
        self.context.logger.log(level.lower(), 'API', message)

    # ==================== Guards ====================

    def authenticate(self, user_id: str, password: str) -> User:
        return self.context.user_manager.validate_user_credentials(user_id, password)

    def _check_writable(self, operation: str) -> None:
        if self.context.settings_manager.get_settings().rest_writable_api_disabled:
            self.log(f"Refused {operation}: writable API is disabled", 'WARNING')
            raise Unauthorized(f"Writable API is disabled; {operation} refused",
                               extra={'operation': operation})

    def _owned_service_group(self, participant: ParticipantIdentifier, user: User) -> ServiceGroup:
        return self.context.user_manager.verify_ownership(participant, user)

    # ==================== Reads ====================

    def get_service_group(self, participant: ParticipantIdentifier) -> ServiceGroup:
        sg = self.context.service_group_manager.get_service_group_of_id(participant)
        if sg is None:
            raise NotFound(f"Service group {participant.uri_encoded} does not exist")
        return sg

    def get_complete_service_group(self, participant: ParticipantIdentifier) -> CompleteServiceGroup:
        sg = self.get_service_group(participant)
        return CompleteServiceGroup(
            service_group=sg,
            service_information=self.context.service_information_manager.get_all_service_information_of_service_group(sg),
            redirects=self.context.redirect_manager.get_all_redirects_of_service_group(sg),
            business_card=self.context.business_card_manager.get_business_card_of_service_group(sg),
        )

    def get_service_registration(self, participant: ParticipantIdentifier,
                                 document_type: DocumentTypeIdentifier) -> Union[Redirect, ServiceInformation]:
        """
        Redirect or service information for one document type, redirect first.

        Raises:
            NotFound: If the service group or both registrations are missing
        """
        sg = self.get_service_group(participant)
        redirect = self.context.redirect_manager.get_redirect_of_service_group_and_document_type(sg, document_type)
        if redirect is not None:
            return redirect
        si = self.context.service_information_manager.get_service_information_of_service_group_and_document_type(
            sg, document_type)
        if si is not None:
            return si
        raise NotFound(
            f"No registration for {document_type.uri_encoded} in service group {sg.id}",
            extra={'service_group_id': sg.id, 'document_type': document_type.uri_encoded},
        )

    def get_service_group_list(self, user: User) -> List[ServiceGroup]:
        return self.context.service_group_manager.get_all_service_groups_of_owner(user.user_id)

    # ==================== Service groups ====================

    def save_service_group(self, participant: ParticipantIdentifier, extension: ExtensionInput,
                           user: User, timeout: Optional[float] = None) -> PendingOperation:
        """
        Create the service group (locator first) or update its extension.

        Raises:
            Unauthorized: If writes are disabled or another user owns the group
        """
        self._check_writable('save service group')
        if not self.context.service_group_manager.contains_service_group_with_id(participant):
            return self.coordinator.create_service_group(user.user_id, participant, extension, timeout=timeout)

        self._owned_service_group(participant, user)
        return self.coordinator.update_service_group(user.user_id, participant, extension)

    def delete_service_group(self, participant: ParticipantIdentifier, user: User,
                             timeout: Optional[float] = None) -> PendingOperation:
        self._check_writable('delete service group')
        self._owned_service_group(participant, user)
        return self.coordinator.delete_service_group(participant, timeout=timeout)

    # ==================== Registrations ====================

    def save_service_information(self, si: ServiceInformation, user: User) -> Change:
        """
        Store `si`, replacing a redirect registered for the same document type.

        The redirect is removed first; if storing `si` then fails, the
        redirect is written back before the error is raised.
        """
        self._check_writable('save service information')
        sg = self._owned_service_group(si.service_group.participant, user)

        redirect = self.context.redirect_manager.get_redirect_of_service_group_and_document_type(
            sg, si.document_type)
        if redirect is None:
            return self.context.service_information_manager.merge_service_information(si)

        change = self.context.redirect_manager.delete_redirect(redirect)
        self.log(f"Replacing redirect of {si.id} with service information")
        try:
            return change.or_(self.context.service_information_manager.merge_service_information(si))
        except Exception as e:
            self.log(f"Storing service information {si.id} failed, restoring its redirect: {e}", 'ERROR')
            self.context.redirect_manager.create_or_update_redirect(
                sg, redirect.document_type, redirect.target_href, redirect.subject_unique_identifier,
                certificate=redirect.certificate, extension=redirect.extensions,
            )
            raise

    def save_redirect(self, participant: ParticipantIdentifier, document_type: DocumentTypeIdentifier,
                      target_href: str, subject_unique_identifier: str, user: User,
                      certificate: Optional[str] = None, extension: ExtensionInput = None) -> Redirect:
        """
        Store a redirect, replacing service information registered for the same document type.

        As with `save_service_information`, replaced service information is
        written back if storing the redirect fails.
        """
        self._check_writable('save redirect')
        sg = self._owned_service_group(participant, user)

        si = self.context.service_information_manager.get_service_information_of_service_group_and_document_type(
            sg, document_type)
        if si is not None:
            self.context.service_information_manager.delete_service_information(si)
            self.log(f"Replacing service information of {si.id} with a redirect")
        try:
            return self.context.redirect_manager.create_or_update_redirect(
                sg, document_type, target_href, subject_unique_identifier,
                certificate=certificate, extension=extension,
            )
        except Exception as e:
            if si is not None:
                self.log(f"Storing the redirect for {si.id} failed, restoring its service information: {e}",
                         'ERROR')
                self.context.service_information_manager.merge_service_information(si)
            raise

    def delete_service_registration(self, participant: ParticipantIdentifier,
                                    document_type: DocumentTypeIdentifier, user: User) -> Change:
        """
        Raises:
            NotFound: If neither a redirect nor service information exists
        """
        self._check_writable('delete service registration')
        sg = self._owned_service_group(participant, user)

        redirect = self.context.redirect_manager.get_redirect_of_service_group_and_document_type(sg, document_type)
        if redirect is not None:
            return self.context.redirect_manager.delete_redirect(redirect)

        si = self.context.service_information_manager.get_service_information_of_service_group_and_document_type(
            sg, document_type)
        if si is not None:
            return self.context.service_information_manager.delete_service_information(si)

        raise NotFound(f"No registration for {document_type.uri_encoded} in service group {sg.id}")

    # ==================== Business cards ====================

    def save_business_card(self, participant: ParticipantIdentifier,
                           entities: List[BusinessCardEntity], user: User) -> BusinessCard:
        self._check_writable('save business card')
        sg = self._owned_service_group(participant, user)
        return self.context.business_card_manager.create_or_update_business_card(sg, entities)

    def delete_business_card(self, participant: ParticipantIdentifier, user: User) -> Change:
        """
        Raises:
            NotFound: If the service group has no business card
        """
        self._check_writable('delete business card')
        sg = self._owned_service_group(participant, user)
        bc = self.context.business_card_manager.get_business_card_of_service_group(sg)
        if bc is None:
            raise NotFound(f"Service group {sg.id} has no business card")
        return self.context.business_card_manager.delete_business_card(bc)
