# pytest configuration and fixtures

from datetime import date
from unittest.mock import Mock

import pytest

from smpregistry.configuration.config import RegistryConfig
from smpregistry.configuration.context import RegistryContext
from smpregistry.domain import (
    BusinessCardEntity,
    BusinessCardName,
    DocumentTypeIdentifier,
    Endpoint,
    ParticipantIdentifier,
    Process,
    ProcessIdentifier,
    ServiceInformation,
)
from smpregistry.locator.client import LocatorClient

BACKEND_PARAMS = {
    'xml': lambda root: {'root_dir': str(root / 'xml')},
    'sql': lambda root: {'db_path': str(root / 'registry.db')},
    'document': lambda root: {'root_dir': str(root / 'documents')},
}

LOCATOR_SECTION = {'active': True, 'url': 'https://sml.test', 'smp_id': 'SMP-TEST'}


@pytest.fixture
def make_config(tmp_path):
    """Factory for a RegistryConfig writing below tmp_path."""
    def _make(backend='xml', **overrides):
        overrides.setdefault('logging', {'level': 'WARNING', 'colors': False})
        return RegistryConfig(backend=backend, backend_params=BACKEND_PARAMS[backend](tmp_path), **overrides)
    return _make


@pytest.fixture(params=sorted(BACKEND_PARAMS))
def backend_id(request):
    """Every built-in backend."""
    return request.param


@pytest.fixture
def context(make_config, backend_id):
    """Initialized context on each backend, locator disabled."""
    ctx = RegistryContext(make_config(backend_id))
    ctx.init_from_configuration()
    yield ctx
    ctx.close()


@pytest.fixture
def locator():
    """Locator client double recording register/deregister calls."""
    return Mock(spec=LocatorClient)


@pytest.fixture
def locator_context(make_config, locator):
    """XML-backed context with locator writes enabled and a mocked locator client."""
    ctx = RegistryContext(make_config('xml', locator=dict(LOCATOR_SECTION)), locator_client=locator)
    ctx.init_from_configuration()
    yield ctx
    ctx.close()


@pytest.fixture
def participant():
    return ParticipantIdentifier('iso6523-actorid-upis', '0088:5798000000001')


@pytest.fixture
def document_type():
    return DocumentTypeIdentifier(
        'busdox-docid-qns',
        'urn:oasis:names:specification:ubl:schema:xsd:Invoice-2::Invoice##UBL-2.1',
    )


@pytest.fixture
def make_service_information(document_type):
    """Factory for a one-process, one-endpoint ServiceInformation."""
    def _make(sg, endpoint_reference='https://ap.example.org/as4', doc_type=None):
        endpoint = Endpoint(
            transport_profile='peppol-transport-as4-v2_0',
            endpoint_reference=endpoint_reference,
            certificate='MIIC...',
        )
        process = Process(ProcessIdentifier('cenbii-procid-ubl', 'urn:fdc:peppol.eu:2017:poacc:billing:01:1.0'),
                          [endpoint])
        return ServiceInformation(sg, doc_type or document_type, [process])
    return _make


@pytest.fixture
def sample_entities():
    return [
        BusinessCardEntity(
            names=[BusinessCardName('Example Corp', 'en')],
            country_code='dk',
            registration_date=date(2020, 1, 2),
        )
    ]
