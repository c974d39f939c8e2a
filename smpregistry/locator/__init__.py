from .client import LocatorClient, NoopLocatorClient, SOAPLocatorClient, create_locator_client

__all__ = ['LocatorClient', 'NoopLocatorClient', 'SOAPLocatorClient', 'create_locator_client']
