"""
Service information: document-type specific endpoint metadata.

A ServiceInformation belongs to one service group and one document type and
holds an ordered list of processes, each holding an ordered list of endpoints.
Endpoints within a process must have distinct transport profiles.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional

from ..errors import ValidationError
from .extension import HasExtension, normalize_extensions
from .identifiers import DocumentTypeIdentifier, ProcessIdentifier
from .servicegroup import ServiceGroup


def _require_text(value, name: str, owner: str) -> None:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{owner} requires a non-empty {name}")


@dataclass
class Endpoint(HasExtension):
    """A network endpoint for one transport profile."""

    transport_profile: str
    endpoint_reference: str
    require_business_level_signature: bool = False
    minimum_authentication_level: Optional[str] = None
    service_activation: Optional[datetime] = None
    service_expiration: Optional[datetime] = None
    certificate: Optional[str] = None
    service_description: Optional[str] = None
    technical_contact_url: Optional[str] = None
    technical_information_url: Optional[str] = None
    extensions: List[str] = field(default_factory=list)

    def __post_init__(self):
        _require_text(self.transport_profile, 'transport profile', 'Endpoint')
        _require_text(self.endpoint_reference, 'endpoint reference', 'Endpoint')
        if (self.service_activation is not None and self.service_expiration is not None
                and self.service_activation > self.service_expiration):
            raise ValidationError(
                f"Endpoint {self.endpoint_reference}: activation is after expiration"
            )
        self.require_business_level_signature = bool(self.require_business_level_signature)
        self.extensions = normalize_extensions(self.extensions)

    def is_active(self, at: Optional[datetime] = None) -> bool:
        """Whether the endpoint is within its activation window at `at` (default: now)."""
        at = at or datetime.now()
        if self.service_activation is not None and at < self.service_activation:
            return False
        if self.service_expiration is not None and at > self.service_expiration:
            return False
        return True


@dataclass
class Process(HasExtension):
    """A process with its endpoints keyed by transport profile."""

    process_id: ProcessIdentifier
    endpoints: List[Endpoint] = field(default_factory=list)
    extensions: List[str] = field(default_factory=list)

    def __post_init__(self):
        if not isinstance(self.process_id, ProcessIdentifier):
            raise ValidationError("Process requires a process identifier")
        endpoints, self.endpoints = list(self.endpoints), []
        if not endpoints:
            raise ValidationError(f"Process {self.process_id} requires at least one endpoint")
        for endpoint in endpoints:
            self.add_endpoint(endpoint)
        self.extensions = normalize_extensions(self.extensions)

    @property
    def endpoint_count(self) -> int:
        return len(self.endpoints)

    def get_endpoint_of_transport_profile(self, transport_profile: Optional[str]) -> Optional[Endpoint]:
        if not transport_profile:
            return None
        for endpoint in self.endpoints:
            if endpoint.transport_profile == transport_profile:
                return endpoint
        return None

    def add_endpoint(self, endpoint: Endpoint) -> None:
        if not isinstance(endpoint, Endpoint):
            raise ValidationError(f"Process {self.process_id}: not an endpoint: {endpoint!r}")
        if self.get_endpoint_of_transport_profile(endpoint.transport_profile) is not None:
            raise ValidationError(
                f"Process {self.process_id} already has an endpoint for transport profile "
                f"'{endpoint.transport_profile}'"
            )
        self.endpoints.append(endpoint)

    def set_endpoint(self, endpoint: Endpoint) -> None:
        """Replace the endpoint with the same transport profile."""
        for index, existing in enumerate(self.endpoints):
            if existing.transport_profile == endpoint.transport_profile:
                self.endpoints[index] = endpoint
                return
        raise ValidationError(
            f"Process {self.process_id} has no endpoint for transport profile "
            f"'{endpoint.transport_profile}'"
        )


@dataclass(eq=False)
class ServiceInformation(HasExtension):
    """
    Endpoint metadata of one service group for one document type.

    Equality is by (service group ID, document type identifier).
    """

    service_group: ServiceGroup
    document_type: DocumentTypeIdentifier
    processes: List[Process] = field(default_factory=list)
    extensions: List[str] = field(default_factory=list)

    def __post_init__(self):
        if not isinstance(self.service_group, ServiceGroup):
            raise ValidationError("ServiceInformation requires a service group")
        if not isinstance(self.document_type, DocumentTypeIdentifier):
            raise ValidationError("ServiceInformation requires a document type identifier")
        processes, self.processes = list(self.processes), []
        if not processes:
            raise ValidationError(
                f"ServiceInformation {self.id} requires at least one process"
            )
        for process in processes:
            self.add_process(process)
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

    @property
    def process_count(self) -> int:
        return len(self.processes)

    @property
    def total_endpoint_count(self) -> int:
        return sum(process.endpoint_count for process in self.processes)

    def get_process_of_id(self, process_id: Optional[ProcessIdentifier]) -> Optional[Process]:
        if process_id is None:
            return None
        for process in self.processes:
            if process.process_id == process_id:
                return process
        return None

    def add_process(self, process: Process) -> None:
        if not isinstance(process, Process):
            raise ValidationError(f"Not a process: {process!r}")
        if self.get_process_of_id(process.process_id) is not None:
            raise ValidationError(f"A process with ID '{process.process_id}' is already contained")
        self.processes.append(process)

    def set_processes(self, processes: List[Process]) -> None:
        """Replace all processes (used by merge)."""
        processes = list(processes)
        if not processes:
            raise ValidationError(f"ServiceInformation {self.id} requires at least one process")
        self.processes = []
        for process in processes:
            self.add_process(process)

    def processes_by_id(self) -> Dict[ProcessIdentifier, Process]:
        return {process.process_id: process for process in self.processes}

    def __eq__(self, other) -> bool:
        if not isinstance(other, ServiceInformation):
            return NotImplemented
        return self.key == other.key

    def __hash__(self) -> int:
        return hash(self.key)

    def __repr__(self) -> str:
        return f"ServiceInformation(id={self.id!r}, processes={self.process_count})"
