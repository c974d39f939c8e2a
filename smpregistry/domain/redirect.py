"""Redirect: points lookups for one document type at another registry."""

from dataclasses import dataclass, field
from typing import List, Optional

from ..errors import ValidationError
from .extension import HasExtension, normalize_extensions
from .identifiers import DocumentTypeIdentifier
from .servicegroup import ServiceGroup


@dataclass(eq=False)
class Redirect(HasExtension):
    """
    Alternative to service information for a (service group, document type) pair.

    Equality is by (service group ID, document type identifier).
    """

    service_group: ServiceGroup
    document_type: DocumentTypeIdentifier
    target_href: str
    subject_unique_identifier: str
    certificate: Optional[str] = None
    extensions: List[str] = field(default_factory=list)

    def __post_init__(self):
        if not isinstance(self.service_group, ServiceGroup):
            raise ValidationError("Redirect requires a service group")
        if not isinstance(self.document_type, DocumentTypeIdentifier):
            raise ValidationError("Redirect requires a document type identifier")
        if not isinstance(self.target_href, str) or not self.target_href.strip():
            raise ValidationError("Redirect requires a target href")
        if not isinstance(self.subject_unique_identifier, str) or not self.subject_unique_identifier.strip():
            raise ValidationError("Redirect requires a subject unique identifier")
        self.extensions = normalize_extensions(self.extensions)

    @property
    def service_group_id(self) -> str:
        return self.service_group.id

    @property
    def key(self):
        return (self.service_group_id, self.document_type)

    @property
    def id(self) -> str:
        return f"{self.service_group_id}/{self.document_type.uri_encoded}"

    def __eq__(self, other) -> bool:
        if not isinstance(other, Redirect):
            return NotImplemented
        return self.key == other.key

    def __hash__(self) -> int:
        return hash(self.key)

    def __repr__(self) -> str:
        return f"Redirect(id={self.id!r}, target_href={self.target_href!r})"
