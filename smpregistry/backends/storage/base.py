"""
Base classes for the built-in storage backends.

Each engine implements RecordStore: a small set of keyed record primitives
over eight collections. The manager contract itself is implemented once, in
storage/managers.py, on top of that interface, so the same invariants hold
for every engine. Engines differ in their file formats, their locking and
in whether a cascading delete is atomic.
"""

import os
import tempfile
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Type, Union

from ...configuration.logger import RegistryLogger, default_logger
from ...domain import Change
from ...errors import BackendError, RegistryError

Record = Dict[str, Any]
Key = Union[str, Tuple[str, str]]

# Collections
SERVICE_GROUP = 'service_group'
SERVICE_INFORMATION = 'service_information'
REDIRECT = 'redirect'
BUSINESS_CARD = 'business_card'
USER = 'user'
TRANSPORT_PROFILE = 'transport_profile'
LOCATOR_INFO = 'locator_info'
SETTINGS = 'settings'

KINDS = (
    SERVICE_GROUP, SERVICE_INFORMATION, REDIRECT, BUSINESS_CARD,
    USER, TRANSPORT_PROFILE, LOCATOR_INFO, SETTINGS,
)

# Keyed by (service group ID, document type URI)
PAIR_KINDS = (SERVICE_INFORMATION, REDIRECT)

# Removed before the service group itself, in this order
CASCADE_KINDS = (SERVICE_INFORMATION, REDIRECT, BUSINESS_CARD)

SETTINGS_KEY = 'settings'


def parent_of(kind: str, key: Key) -> Optional[str]:
    """Service group ID owning the record, or None for top-level kinds."""
    if kind in PAIR_KINDS:
        return key[0]
    if kind == BUSINESS_CARD:
        return key
    return None


@contextmanager
def wrap_errors(operation: str, error_types: Tuple[Type[BaseException], ...]):
    """Re-raise engine exceptions as BackendError; registry errors pass through."""
    try:
        yield
    except RegistryError:
        raise
    except error_types as e:
        raise BackendError(f"{operation} failed: {e}") from e


class RecordStore(ABC):
    """
    Keyed record storage for one engine.

    Keys are strings, except for PAIR_KINDS which use
    (service group ID, document type URI) tuples.
    """

    tag = 'STORE'

    def __init__(self, logger: Optional[RegistryLogger] = None):
        self.logger = logger or default_logger()
        # Guards check-then-act sequences in the managers
        self.lock = threading.RLock()

    def log(self, message: str, level: str = 'INFO'):
        self.logger.log(level.lower(), self.tag, message)

    @abstractmethod
    def get(self, kind: str, key: Key) -> Optional[Record]: ...

    @abstractmethod
    def list(self, kind: str, parent: Optional[str] = None) -> List[Record]:
        """All records of `kind`, optionally only those owned by service group `parent`."""

    @abstractmethod
    def insert(self, kind: str, key: Key, record: Record) -> None:
        """
        Raises:
            AlreadyExists: If `key` is present
        """

    @abstractmethod
    def save(self, kind: str, key: Key, record: Record) -> Change:
        """Insert or replace; UNCHANGED if an equal record is stored."""

    @abstractmethod
    def delete(self, kind: str, key: Key) -> Change: ...

    @abstractmethod
    def delete_children(self, kind: str, parent: str) -> Change:
        """Delete every record of `kind` owned by service group `parent`."""

    @abstractmethod
    def delete_service_group(self, sg_id: str) -> Change:
        """Delete a service group together with every record it owns."""

    def count(self, kind: str, parent: Optional[str] = None) -> int:
        return len(self.list(kind, parent))

    def close(self) -> None:
        pass



def write_atomically(path: Path, payload: bytes) -> None:
    """Write `payload` to a temporary file beside `path`, then rename it into place."""
    fd, temp_name = tempfile.mkstemp(prefix=f".{path.stem}.", suffix='.tmp', dir=path.parent)
    try:
        with os.fdopen(fd, 'wb') as handle:
            handle.write(payload)
        os.replace(temp_name, path)
    except BaseException:
        if os.path.exists(temp_name):
            os.unlink(temp_name)
        raise
