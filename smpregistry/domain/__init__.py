"""
Domain model of the registry: entities, their invariants and extension handling.

Pure data plus validation; no I/O.
"""

from .change import Change
from .identifiers import (
    Identifier,
    ParticipantIdentifier,
    DocumentTypeIdentifier,
    ProcessIdentifier,
    IdentifierPolicy,
    DEFAULT_PARTICIPANT_SCHEME,
    DEFAULT_DOCUMENT_TYPE_SCHEME,
    DEFAULT_PROCESS_SCHEME,
)
from .servicegroup import ServiceGroup
from .serviceinfo import Endpoint, Process, ServiceInformation
from .redirect import Redirect
from .businesscard import (
    BusinessCard,
    BusinessCardEntity,
    BusinessCardName,
    BusinessCardIdentifier,
    BusinessCardContact,
)
from .users import User, hash_password, verify_password
from .settings import RegistrySettings
from .transportprofile import TransportProfile, default_transport_profiles
from .locatorinfo import LocatorInfo

__all__ = [
    'Change',
    'Identifier', 'ParticipantIdentifier', 'DocumentTypeIdentifier', 'ProcessIdentifier',
    'IdentifierPolicy',
    'DEFAULT_PARTICIPANT_SCHEME', 'DEFAULT_DOCUMENT_TYPE_SCHEME', 'DEFAULT_PROCESS_SCHEME',
    'ServiceGroup',
    'Endpoint', 'Process', 'ServiceInformation',
    'Redirect',
    'BusinessCard', 'BusinessCardEntity', 'BusinessCardName', 'BusinessCardIdentifier',
    'BusinessCardContact',
    'User', 'hash_password', 'verify_password',
    'RegistrySettings',
    'TransportProfile', 'default_transport_profiles',
    'LocatorInfo',
]
