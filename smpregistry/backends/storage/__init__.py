"""
Built-in storage backends.

The modules are listed in ..discovery.BACKEND_MODULES and registered by
`discover_backends()`; importing this package registers nothing.
"""

from .base import RecordStore
from .managers import StoreBackend
from .xml import XMLBackend
from .sql import SQLBackend
from .document import DocumentBackend

__all__ = ['RecordStore', 'StoreBackend', 'XMLBackend', 'SQLBackend', 'DocumentBackend']
