"""
Clients for the external locator service (SML).

The registry announces which participants it is authoritative for by calling
the locator's participant management service. Two operations are consumed:
register and deregister. Neither is retried here; a blind retry of a
registration could double-register.
"""

from abc import ABC, abstractmethod
from typing import Optional, Tuple, Union
from xml.etree import ElementTree as ET

import requests

from ..configuration.logger import RegistryLogger, default_logger
from ..domain import ParticipantIdentifier
from ..errors import LocatorError

SOAP_ENV_NS = 'http://schemas.xmlsoap.org/soap/envelope/'
MANAGE_NS = 'http://busdox.org/serviceMetadata/ManageBusinessIdentifierService/1.0/'
IDENTIFIERS_NS = 'http://busdox.org/transport/identifiers/1.0/'
LOCATOR_NS = 'http://busdox.org/serviceMetadata/locator/1.0/'

SOAP_ACTIONS = {
    'CreateParticipantIdentifier': 'createIn',
    'DeleteParticipantIdentifier': 'deleteIn',
}

# Fault treated as success on delete: the participant is already unknown
NOT_FOUND_FAULT = 'NotFoundFault'


class LocatorClient(ABC):
    """Register and deregister participants at the locator service."""

    # False for the stand-in used when no locator is configured
    connected = True

    @abstractmethod
    def register_participant(self, participant: ParticipantIdentifier,
                             timeout: Optional[float] = None) -> None:
        """
        Raises:
            LocatorError: If the locator rejects the call or is unreachable
        """

    @abstractmethod
    def deregister_participant(self, participant: ParticipantIdentifier,
                               timeout: Optional[float] = None) -> None:
        """
        Deregistering an unknown participant is not an error.

        Raises:
            LocatorError: If the locator rejects the call or is unreachable
        """


class NoopLocatorClient(LocatorClient):
    """Used when locator integration is disabled."""

    connected = False

    def register_participant(self, participant, timeout=None) -> None:
        pass

    def deregister_participant(self, participant, timeout=None) -> None:
        pass


class SOAPLocatorClient(LocatorClient):
    """
    SOAP 1.1 client for the locator's ManageBusinessIdentifierService.

    Example:
        >>> client = SOAPLocatorClient('https://sml.example.org', smp_id='SMP-1')
        >>> client.register_participant(ParticipantIdentifier.parse('iso6523-actorid-upis::0088:123'))
    """

    ENDPOINT_PATH = '/manageparticipantidentifier'

    def __init__(self,
                 url: str,
                 smp_id: str,
                 client_cert: Optional[str] = None,
                 client_key: Optional[str] = None,
                 verify: Union[bool, str] = True,
                 timeout: float = 30,
                 logger: Optional[RegistryLogger] = None,
                 session: Optional[requests.Session] = None):
        """
        Initialize locator client.

        Args:
            url: Base URL of the locator management service
            smp_id: ID under which this registry is known to the locator
            client_cert: Path to the TLS client certificate (PEM)
            client_key: Path to the matching private key, if not in client_cert
            verify: TLS verification flag or CA bundle path
            timeout: Default per-call timeout in seconds
            logger: Registry logger
            session: requests session (a new one is created if omitted)
        """
        self.url = url.rstrip('/')
        self.smp_id = smp_id
        self.verify = verify
        self.timeout = timeout
        self.logger = logger or default_logger()
        self.session = session or requests.Session()

        self.cert: Union[None, str, Tuple[str, str]] = None
        if client_cert and client_key:
            self.cert = (client_cert, client_key)
        elif client_cert:
            self.cert = client_cert

    @property
    def endpoint(self) -> str:
        if self.url.endswith(self.ENDPOINT_PATH):
            return self.url
        return self.url + self.ENDPOINT_PATH

    def log(self, message: str, level: str = 'INFO'):
        self.logger.log(level.lower(), 'LOCATOR', message)

    # ==================== Operations ====================

    def register_participant(self, participant: ParticipantIdentifier,
                             timeout: Optional[float] = None) -> None:
        self.log(f"Registering {participant.uri_encoded} for {self.smp_id}")
        self._call('CreateParticipantIdentifier', participant, timeout)
        self.log(f"Registered {participant.uri_encoded}")

    def deregister_participant(self, participant: ParticipantIdentifier,
                               timeout: Optional[float] = None) -> None:
        self.log(f"Deregistering {participant.uri_encoded} for {self.smp_id}")
        fault = self._call('DeleteParticipantIdentifier', participant, timeout,
                           tolerated_fault=NOT_FOUND_FAULT)
        if fault is not None:
            self.log(f"{participant.uri_encoded} was not registered; nothing to delete", 'WARNING')
        else:
            self.log(f"Deregistered {participant.uri_encoded}")

    # ==================== SOAP ====================

    def build_envelope(self, operation: str, participant: ParticipantIdentifier) -> bytes:
        ET.register_namespace('soap', SOAP_ENV_NS)
        ET.register_namespace('ids', IDENTIFIERS_NS)
        ET.register_namespace('loc', LOCATOR_NS)

        envelope = ET.Element(f'{{{SOAP_ENV_NS}}}Envelope')
        ET.SubElement(envelope, f'{{{SOAP_ENV_NS}}}Header')
        body = ET.SubElement(envelope, f'{{{SOAP_ENV_NS}}}Body')
        request = ET.SubElement(body, f'{{{LOCATOR_NS}}}{operation}')
        identifier = ET.SubElement(request, f'{{{IDENTIFIERS_NS}}}ParticipantIdentifier',
                                   scheme=participant.scheme)
        identifier.text = participant.value
        smp = ET.SubElement(request, f'{{{IDENTIFIERS_NS}}}ServiceMetadataPublisherID')
        smp.text = self.smp_id
        return ET.tostring(envelope, encoding='utf-8', xml_declaration=True)

    def _call(self, operation: str, participant: ParticipantIdentifier,
              timeout: Optional[float], tolerated_fault: Optional[str] = None) -> Optional[str]:
        """
        POST one SOAP request.

        Returns:
            The tolerated fault name if that fault was returned, else None

        Raises:
            LocatorError: On transport failure, HTTP error or any other fault
        """
        headers = {
            'Content-Type': 'text/xml; charset=utf-8',
            'SOAPAction': f'"{MANAGE_NS} :{SOAP_ACTIONS[operation]}"',
        }
        extra = {'participant': participant.uri_encoded, 'operation': operation}

        try:
            response = self.session.post(
                self.endpoint,
                data=self.build_envelope(operation, participant),
                headers=headers,
                cert=self.cert,
                verify=self.verify,
                timeout=timeout if timeout is not None else self.timeout,
            )
        except (requests.RequestException, OSError, ValueError) as e:
            self.log(f"{operation} for {participant.uri_encoded} failed: {e}", 'ERROR')
            raise LocatorError(f"{operation} failed: {e}", extra=extra) from e

        fault = self._parse_fault(response.content)
        if fault is not None:
            fault_name, fault_message = fault
            if fault_name == tolerated_fault:
                return fault_name
            self.log(f"{operation} for {participant.uri_encoded} rejected: {fault_name}: {fault_message}", 'ERROR')
            raise LocatorError(f"{operation} rejected with {fault_name}: {fault_message}",
                               extra={**extra, 'fault': fault_name})

        try:
            response.raise_for_status()
        except requests.HTTPError as e:
            self.log(f"{operation} for {participant.uri_encoded} failed: {e}", 'ERROR')
            raise LocatorError(f"{operation} failed: {e}",
                               extra={**extra, 'status': response.status_code}) from e
        return None

    @staticmethod
    def _parse_fault(content: bytes) -> Optional[Tuple[str, str]]:
        """(fault detail name, fault string) of a SOAP fault response, else None."""
        if not content:
            return None
        try:
            root = ET.fromstring(content)
        except ET.ParseError:
            return None
        fault = root.find(f'.//{{{SOAP_ENV_NS}}}Fault')
        if fault is None:
            return None
        message = fault.findtext('faultstring', default='')
        name = 'Fault'
        detail = fault.find('detail')
        if detail is not None and len(detail):
            name = detail[0].tag.split('}')[-1]
        return name, message.strip()


def create_locator_client(locator_params, logger: Optional[RegistryLogger] = None) -> LocatorClient:
    """Locator client for the `locator` configuration section."""
    if not locator_params.active:
        return NoopLocatorClient()
    return SOAPLocatorClient(
        url=locator_params.url,
        smp_id=locator_params.smp_id,
        client_cert=locator_params.client_cert,
        client_key=locator_params.client_key,
        verify=locator_params.verify,
        timeout=locator_params.timeout,
        logger=logger,
    )
