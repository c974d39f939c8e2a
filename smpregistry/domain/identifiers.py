"""
Scheme + value identifiers for participants, document types and processes.

All identifiers are immutable and compare by (type, scheme, value). The URI
form used in storage keys and log messages is 'scheme::value'.

Example:
    >>> pid = ParticipantIdentifier.parse('iso6523-actorid-upis::0088:5798000000001')
    >>> pid.scheme
    'iso6523-actorid-upis'
"""

from dataclasses import dataclass
from enum import Enum
from typing import FrozenSet, Optional, Type, TypeVar

from ..errors import ValidationError

URI_SEPARATOR = '::'

DEFAULT_PARTICIPANT_SCHEME = 'iso6523-actorid-upis'
DEFAULT_DOCUMENT_TYPE_SCHEME = 'busdox-docid-qns'
DEFAULT_PROCESS_SCHEME = 'cenbii-procid-ubl'

# Maximum lengths taken from the network's identifier policy
MAX_SCHEME_LENGTH = 25
MAX_PARTICIPANT_VALUE_LENGTH = 50
MAX_VALUE_LENGTH = 500

T = TypeVar('T', bound='Identifier')


@dataclass(frozen=True)
class Identifier:
    """Base for all scheme + value identifiers."""

    scheme: str
    value: str

    # Subclasses tighten this
    max_value_length = MAX_VALUE_LENGTH

    def __post_init__(self):
        name = type(self).__name__
        if not isinstance(self.scheme, str) or not self.scheme.strip():
            raise ValidationError(f"{name} requires a non-empty scheme")
        if not isinstance(self.value, str) or not self.value.strip():
            raise ValidationError(f"{name} requires a non-empty value")
        if URI_SEPARATOR in self.scheme:
            raise ValidationError(f"{name} scheme must not contain '{URI_SEPARATOR}': {self.scheme!r}")
        if len(self.scheme) > MAX_SCHEME_LENGTH:
            raise ValidationError(
                f"{name} scheme exceeds {MAX_SCHEME_LENGTH} characters: {self.scheme!r}"
            )
        if len(self.value) > self.max_value_length:
            raise ValidationError(
                f"{name} value exceeds {self.max_value_length} characters"
            )

    @property
    def uri_encoded(self) -> str:
        return f"{self.scheme}{URI_SEPARATOR}{self.value}"

    @classmethod
    def parse(cls: Type[T], uri: str) -> T:
        """
        Parse the 'scheme::value' form.

        Raises:
            ValidationError: If the string is not a valid identifier
        """
        if not isinstance(uri, str) or URI_SEPARATOR not in uri:
            raise ValidationError(f"Not a valid {cls.__name__}: {uri!r}")
        scheme, value = uri.split(URI_SEPARATOR, 1)
        return cls(scheme, value)

    @classmethod
    def parse_or_none(cls: Type[T], uri: Optional[str]) -> Optional[T]:
        if not uri:
            return None
        try:
            return cls.parse(uri)
        except ValidationError:
            return None

    def __str__(self) -> str:
        return self.uri_encoded


@dataclass(frozen=True)
class ParticipantIdentifier(Identifier):
    """Identifies a network participant (the natural key of a service group)."""

    max_value_length = MAX_PARTICIPANT_VALUE_LENGTH


@dataclass(frozen=True)
class DocumentTypeIdentifier(Identifier):
    """Identifies a document type a participant can receive."""


@dataclass(frozen=True)
class ProcessIdentifier(Identifier):
    """Identifies a business process."""


class IdentifierPolicy(Enum):
    """
    Normalisation applied when deriving storage IDs from participant identifiers.

    SIMPLE keeps identifiers as given. PEPPOL case-folds the schemes the
    network declares case-insensitive.
    """

    SIMPLE = 'simple'
    PEPPOL = 'peppol'

    @property
    def case_insensitive_schemes(self) -> FrozenSet[str]:
        if self is IdentifierPolicy.PEPPOL:
            return frozenset({DEFAULT_PARTICIPANT_SCHEME})
        return frozenset()

    def service_group_id(self, participant: ParticipantIdentifier) -> str:
        """Deterministic storage ID of the service group owning `participant`."""
        uri = participant.uri_encoded
        if participant.scheme.lower() in self.case_insensitive_schemes:
            return uri.casefold()
        return uri

    @classmethod
    def from_name(cls, name: str) -> 'IdentifierPolicy':
        try:
            return cls(str(name).lower())
        except ValueError:
            allowed = [p.value for p in cls]
            raise ValidationError(f"Invalid identifier_type={name!r}. Allowed values: {allowed}")
