"""Service group: the root registry entity of one participant."""

from dataclasses import dataclass, field
from typing import List

from ..errors import ValidationError
from .change import Change
from .extension import HasExtension, normalize_extensions
from .identifiers import IdentifierPolicy, ParticipantIdentifier


@dataclass(eq=False)
class ServiceGroup(HasExtension):
    """
    One service group per participant per registry instance.

    The storage ID is derived from the participant identifier by the
    identifier policy and cannot be set independently. Equality is by ID.
    """

    owner_id: str
    participant: ParticipantIdentifier
    extensions: List[str] = field(default_factory=list)
    policy: IdentifierPolicy = IdentifierPolicy.PEPPOL

    def __post_init__(self):
        if not isinstance(self.participant, ParticipantIdentifier):
            raise ValidationError("ServiceGroup requires a participant identifier")
        if not isinstance(self.owner_id, str) or not self.owner_id.strip():
            raise ValidationError(
                f"ServiceGroup {self.participant.uri_encoded} requires an owner"
            )
        self.extensions = normalize_extensions(self.extensions)

    @property
    def id(self) -> str:
        return self.policy.service_group_id(self.participant)

    def set_owner_id(self, owner_id: str) -> Change:
        if not isinstance(owner_id, str) or not owner_id.strip():
            raise ValidationError("ServiceGroup owner must not be empty")
        if owner_id == self.owner_id:
            return Change.UNCHANGED
        self.owner_id = owner_id
        return Change.CHANGED

    def __eq__(self, other) -> bool:
        if not isinstance(other, ServiceGroup):
            return NotImplemented
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)

    def __repr__(self) -> str:
        return f"ServiceGroup(id={self.id!r}, owner_id={self.owner_id!r})"
