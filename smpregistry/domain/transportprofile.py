"""Transport profiles that endpoints may declare."""

from dataclasses import dataclass
from typing import List

from ..errors import ValidationError


@dataclass
class TransportProfile:
    profile_id: str
    name: str
    deprecated: bool = False

    def __post_init__(self):
        if not isinstance(self.profile_id, str) or not self.profile_id.strip():
            raise ValidationError("Transport profile requires an ID")
        if not isinstance(self.name, str) or not self.name.strip():
            raise ValidationError(f"Transport profile {self.profile_id} requires a name")


# Seeded into every empty store
DEFAULT_TRANSPORT_PROFILES: List[TransportProfile] = [
    TransportProfile('peppol-transport-as4-v2_0', 'Peppol AS4 v2'),
    TransportProfile('busdox-transport-as2-ver2p0', 'Peppol AS2 v2', deprecated=True),
    TransportProfile('bdxr-transport-ebms3-as4-v1p0', 'OASIS BDXR AS4 v1'),
]


def default_transport_profiles() -> List[TransportProfile]:
    return [TransportProfile(p.profile_id, p.name, p.deprecated) for p in DEFAULT_TRANSPORT_PROFILES]
