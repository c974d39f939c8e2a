"""
Entity <-> plain mapping conversion shared by all storage engines.

Records only hold str, bool, int, None, lists and dicts, so each engine can
persist them in its own format. Identifiers are stored in URI form,
extensions in the current JSON list form, timestamps as ISO 8601 strings.
"""

from datetime import date, datetime
from typing import Any, Dict, Optional

from ..domain import (
    BusinessCard,
    BusinessCardContact,
    BusinessCardEntity,
    BusinessCardIdentifier,
    BusinessCardName,
    DocumentTypeIdentifier,
    Endpoint,
    IdentifierPolicy,
    LocatorInfo,
    ParticipantIdentifier,
    Process,
    ProcessIdentifier,
    Redirect,
    RegistrySettings,
    ServiceGroup,
    ServiceInformation,
    TransportProfile,
    User,
)
from ..domain.extension import decode_extensions

Record = Dict[str, Any]


def _iso(value: Optional[date]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _datetime(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


def _date(value: Optional[str]) -> Optional[date]:
    return date.fromisoformat(value) if value else None


# ==================== Service groups ====================

def service_group_to_record(sg: ServiceGroup) -> Record:
    return {
        'id': sg.id,
        'owner_id': sg.owner_id,
        'participant': sg.participant.uri_encoded,
        'extension': sg.extension_as_string,
    }


def service_group_from_record(record: Record,
                              policy: IdentifierPolicy = IdentifierPolicy.PEPPOL) -> ServiceGroup:
    return ServiceGroup(
        owner_id=record['owner_id'],
        participant=ParticipantIdentifier.parse(record['participant']),
        extensions=decode_extensions(record.get('extension')),
        policy=policy,
    )


# ==================== Service information ====================

def endpoint_to_record(endpoint: Endpoint) -> Record:
    return {
        'transport_profile': endpoint.transport_profile,
        'endpoint_reference': endpoint.endpoint_reference,
        'require_business_level_signature': endpoint.require_business_level_signature,
        'minimum_authentication_level': endpoint.minimum_authentication_level,
        'service_activation': _iso(endpoint.service_activation),
        'service_expiration': _iso(endpoint.service_expiration),
        'certificate': endpoint.certificate,
        'service_description': endpoint.service_description,
        'technical_contact_url': endpoint.technical_contact_url,
        'technical_information_url': endpoint.technical_information_url,
        'extension': endpoint.extension_as_string,
    }


def endpoint_from_record(record: Record) -> Endpoint:
    return Endpoint(
        transport_profile=record['transport_profile'],
        endpoint_reference=record['endpoint_reference'],
        require_business_level_signature=bool(record.get('require_business_level_signature')),
        minimum_authentication_level=record.get('minimum_authentication_level'),
        service_activation=_datetime(record.get('service_activation')),
        service_expiration=_datetime(record.get('service_expiration')),
        certificate=record.get('certificate'),
        service_description=record.get('service_description'),
        technical_contact_url=record.get('technical_contact_url'),
        technical_information_url=record.get('technical_information_url'),
        extensions=decode_extensions(record.get('extension')),
    )


def process_to_record(process: Process) -> Record:
    return {
        'process_id': process.process_id.uri_encoded,
        'endpoints': [endpoint_to_record(e) for e in process.endpoints],
        'extension': process.extension_as_string,
    }


def process_from_record(record: Record) -> Process:
    return Process(
        process_id=ProcessIdentifier.parse(record['process_id']),
        endpoints=[endpoint_from_record(e) for e in record['endpoints']],
        extensions=decode_extensions(record.get('extension')),
    )


def service_information_to_record(si: ServiceInformation) -> Record:
    return {
        'service_group_id': si.service_group_id,
        'document_type': si.document_type.uri_encoded,
        'processes': [process_to_record(p) for p in si.processes],
        'extension': si.extension_as_string,
    }


def service_information_from_record(record: Record, sg: ServiceGroup) -> ServiceInformation:
    return ServiceInformation(
        service_group=sg,
        document_type=DocumentTypeIdentifier.parse(record['document_type']),
        processes=[process_from_record(p) for p in record['processes']],
        extensions=decode_extensions(record.get('extension')),
    )


# ==================== Redirects ====================

def redirect_to_record(redirect: Redirect) -> Record:
    return {
        'service_group_id': redirect.service_group_id,
        'document_type': redirect.document_type.uri_encoded,
        'target_href': redirect.target_href,
        'subject_unique_identifier': redirect.subject_unique_identifier,
        'certificate': redirect.certificate,
        'extension': redirect.extension_as_string,
    }


def redirect_from_record(record: Record, sg: ServiceGroup) -> Redirect:
    return Redirect(
        service_group=sg,
        document_type=DocumentTypeIdentifier.parse(record['document_type']),
        target_href=record['target_href'],
        subject_unique_identifier=record['subject_unique_identifier'],
        certificate=record.get('certificate'),
        extensions=decode_extensions(record.get('extension')),
    )


# ==================== Business cards ====================

def business_card_entity_to_record(entity: BusinessCardEntity) -> Record:
    return {
        'names': [{'name': n.name, 'language_code': n.language_code} for n in entity.names],
        'country_code': entity.country_code,
        'geographical_information': entity.geographical_information,
        'identifiers': [{'scheme': i.scheme, 'value': i.value} for i in entity.identifiers],
        'website_uris': list(entity.website_uris),
        'contacts': [
            {
                'contact_type': c.contact_type,
                'name': c.name,
                'phone_number': c.phone_number,
                'email': c.email,
            }
            for c in entity.contacts
        ],
        'additional_information': entity.additional_information,
        'registration_date': _iso(entity.registration_date),
    }


def business_card_entity_from_record(record: Record) -> BusinessCardEntity:
    return BusinessCardEntity(
        names=[BusinessCardName(n['name'], n.get('language_code')) for n in record['names']],
        country_code=record['country_code'],
        geographical_information=record.get('geographical_information'),
        identifiers=[BusinessCardIdentifier(i['scheme'], i['value']) for i in record.get('identifiers') or []],
        website_uris=list(record.get('website_uris') or []),
        contacts=[BusinessCardContact(**c) for c in record.get('contacts') or []],
        additional_information=record.get('additional_information'),
        registration_date=_date(record.get('registration_date')),
    )


def business_card_to_record(bc: BusinessCard) -> Record:
    return {
        'service_group_id': bc.id,
        'entities': [business_card_entity_to_record(e) for e in bc.entities],
    }


def business_card_from_record(record: Record, sg: ServiceGroup) -> BusinessCard:
    return BusinessCard(
        service_group=sg,
        entities=[business_card_entity_from_record(e) for e in record.get('entities') or []],
    )


# ==================== Auxiliary entities ====================

def user_to_record(user: User) -> Record:
    return {'user_id': user.user_id, 'password_hash': user.password_hash}


def user_from_record(record: Record) -> User:
    return User(record['user_id'], record['password_hash'])


def transport_profile_to_record(profile: TransportProfile) -> Record:
    return {'profile_id': profile.profile_id, 'name': profile.name, 'deprecated': profile.deprecated}


def transport_profile_from_record(record: Record) -> TransportProfile:
    return TransportProfile(record['profile_id'], record['name'], bool(record.get('deprecated')))


def locator_info_to_record(info: LocatorInfo) -> Record:
    return {
        'locator_id': info.locator_id,
        'display_name': info.display_name,
        'dns_zone': info.dns_zone,
        'management_service_url': info.management_service_url,
        'client_certificate_required': info.client_certificate_required,
    }


def locator_info_from_record(record: Record) -> LocatorInfo:
    return LocatorInfo(
        display_name=record['display_name'],
        dns_zone=record['dns_zone'],
        management_service_url=record['management_service_url'],
        client_certificate_required=bool(record.get('client_certificate_required')),
        locator_id=record['locator_id'],
    )


def settings_to_record(settings: RegistrySettings) -> Record:
    return settings.to_dict()


def settings_from_record(record: Record) -> RegistrySettings:
    return RegistrySettings.from_dict(record)

