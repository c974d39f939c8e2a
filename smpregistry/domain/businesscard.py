"""
Business card: directory-style descriptive metadata of a participant.

At most one business card exists per service group. It is created, updated
and deleted independently of the routing metadata but is removed together
with its service group.
"""

from dataclasses import dataclass, field
from datetime import date
from typing import List, Optional

from ..errors import ValidationError
from .identifiers import ParticipantIdentifier
from .servicegroup import ServiceGroup


@dataclass
class BusinessCardName:
    name: str
    language_code: Optional[str] = None

    def __post_init__(self):
        if not isinstance(self.name, str) or not self.name.strip():
            raise ValidationError("Business card name must not be empty")


@dataclass
class BusinessCardIdentifier:
    """External identifier of a business entity (e.g. a VAT number)."""

    scheme: str
    value: str

    def __post_init__(self):
        if not self.scheme or not self.value:
            raise ValidationError("Business card identifier requires scheme and value")


@dataclass
class BusinessCardContact:
    contact_type: Optional[str] = None
    name: Optional[str] = None
    phone_number: Optional[str] = None
    email: Optional[str] = None

    def __post_init__(self):
        if not any((self.contact_type, self.name, self.phone_number, self.email)):
            raise ValidationError("Business card contact must have at least one field set")


@dataclass
class BusinessCardEntity:
    """One legal entity listed on a business card."""

    names: List[BusinessCardName]
    country_code: str
    geographical_information: Optional[str] = None
    identifiers: List[BusinessCardIdentifier] = field(default_factory=list)
    website_uris: List[str] = field(default_factory=list)
    contacts: List[BusinessCardContact] = field(default_factory=list)
    additional_information: Optional[str] = None
    registration_date: Optional[date] = None

    def __post_init__(self):
        self.names = list(self.names or [])
        if not self.names:
            raise ValidationError("Business card entity requires at least one name")
        for name in self.names:
            if not isinstance(name, BusinessCardName):
                raise ValidationError(f"Not a business card name: {name!r}")
        if (not isinstance(self.country_code, str) or len(self.country_code) != 2
                or not self.country_code.isalpha()):
            raise ValidationError(
                f"Business card entity requires a 2-letter country code, got {self.country_code!r}"
            )
        self.country_code = self.country_code.upper()
        self.identifiers = list(self.identifiers)
        self.website_uris = list(self.website_uris)
        self.contacts = list(self.contacts)

    @property
    def first_name(self) -> str:
        return self.names[0].name


@dataclass(eq=False)
class BusinessCard:
    """Business card of a service group. Equality is by service group ID."""

    service_group: ServiceGroup
    entities: List[BusinessCardEntity] = field(default_factory=list)

    def __post_init__(self):
        if not isinstance(self.service_group, ServiceGroup):
            raise ValidationError("BusinessCard requires a service group")
        self.entities = list(self.entities)
        for entity in self.entities:
            if not isinstance(entity, BusinessCardEntity):
                raise ValidationError(f"Not a business card entity: {entity!r}")

    @property
    def id(self) -> str:
        return self.service_group.id

    @property
    def participant(self) -> ParticipantIdentifier:
        return self.service_group.participant

    @property
    def entity_count(self) -> int:
        return len(self.entities)

    def __eq__(self, other) -> bool:
        if not isinstance(other, BusinessCard):
            return NotImplemented
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)

    def __repr__(self) -> str:
        return f"BusinessCard(id={self.id!r}, entities={self.entity_count})"
