"""Known locator (SML) instances this registry can register with."""

import uuid
from dataclasses import dataclass, field

from ..errors import ValidationError


@dataclass
class LocatorInfo:
    display_name: str
    dns_zone: str
    management_service_url: str
    client_certificate_required: bool = True
    locator_id: str = field(default_factory=lambda: uuid.uuid4().hex)

    def __post_init__(self):
        for name in ('display_name', 'dns_zone', 'management_service_url'):
            value = getattr(self, name)
            if not isinstance(value, str) or not value.strip():
                raise ValidationError(f"Locator info requires a non-empty {name}")
        # The service URL is used as a base for the management endpoints
        self.management_service_url = self.management_service_url.rstrip('/')
        self.client_certificate_required = bool(self.client_certificate_required)

    @property
    def manage_participant_identifier_endpoint(self) -> str:
        return f"{self.management_service_url}/manageparticipantidentifier"

    @property
    def manage_service_metadata_endpoint(self) -> str:
        return f"{self.management_service_url}/manageservicemetadata"
