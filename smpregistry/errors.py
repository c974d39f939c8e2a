"""
Error taxonomy for the registry engine.

Every failure raised across the manager contract, the backend registry and the
registration coordinator is a RegistryError carrying an ErrorKind. Callers
dispatch on the kind rather than on the concrete class:

    >>> try:
    ...     managers.service_group_manager.create_service_group(owner, pid)
    ... except RegistryError as e:
    ...     status = status_for(e)

Backend-specific exceptions (sqlite3.Error, OSError, ParseError, ...) never
cross the manager contract; they are wrapped in BackendError.
"""

from enum import Enum
from typing import Any, Dict, Optional


class ErrorKind(Enum):
    """Kinds of failure, used for dispatch and for the caller-visible status."""

    VALIDATION = 'validation'
    ALREADY_EXISTS = 'already_exists'
    NOT_FOUND = 'not_found'
    UNAUTHORIZED = 'unauthorized'
    DUPLICATE_BACKEND = 'duplicate_backend'
    NOT_INITIALIZED = 'not_initialized'
    CONFIGURATION = 'configuration'
    LOCATOR = 'locator'
    INCONSISTENT_STATE = 'inconsistent_state'
    BACKEND = 'backend'


class RegistryError(Exception):
    """
    Root of all registry failures.

    Attributes:
        kind: ErrorKind used for dispatch
        message: Human-readable description
        extra: Additional structured details (identifiers, flags)
    """

    kind: ErrorKind = ErrorKind.BACKEND

    def __init__(self, message: str, extra: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.extra = extra or {}

    def __str__(self) -> str:
        return self.message


class ValidationError(RegistryError):
    """Malformed input, rejected before any persistence is attempted."""
    kind = ErrorKind.VALIDATION


class AlreadyExists(RegistryError):
    """Create on a natural key that is already present."""
    kind = ErrorKind.ALREADY_EXISTS


class NotFound(RegistryError):
    """Operation on an absent key."""
    kind = ErrorKind.NOT_FOUND


class Unauthorized(RegistryError):
    """Ownership or credential mismatch on a mutating operation."""
    kind = ErrorKind.UNAUTHORIZED


class DuplicateBackend(RegistryError):
    """A backend identifier was registered twice."""
    kind = ErrorKind.DUPLICATE_BACKEND


class NotInitialized(RegistryError):
    """A manager was requested before a provider was installed."""
    kind = ErrorKind.NOT_INITIALIZED


class ConfigurationError(RegistryError):
    """Invalid or unusable configuration (e.g. unknown backend id)."""
    kind = ErrorKind.CONFIGURATION


class LocatorError(RegistryError):
    """A call to the external locator service failed."""
    kind = ErrorKind.LOCATOR


class BackendError(RegistryError):
    """Storage-engine failure, wrapping the engine's own exception as __cause__."""
    kind = ErrorKind.BACKEND


class InconsistentState(RegistryError):
    """
    Compensation failed after a partial success.

    The locator service and the local store now disagree about a participant.
    This is the only failure that warrants alerting: no retry resolves it.

    Attributes:
        participant: URI form of the affected participant identifier
        primary: The failure that triggered compensation (may be None when
                 the triggering event was the request outcome itself)
        compensation: The failure of the reversing step
    """

    kind = ErrorKind.INCONSISTENT_STATE

    def __init__(self,
                 message: str,
                 participant: str,
                 primary: Optional[BaseException] = None,
                 compensation: Optional[BaseException] = None,
                 extra: Optional[Dict[str, Any]] = None):
        extra = dict(extra or {})
        extra['participant'] = participant
        super().__init__(message, extra)
        self.participant = participant
        self.primary = primary
        self.compensation = compensation

    def __str__(self) -> str:
        parts = [self.message]
        if self.primary is not None:
            parts.append(f"primary: {self.primary}")
        if self.compensation is not None:
            parts.append(f"compensation: {self.compensation}")
        return ' | '.join(parts)


# Caller-visible status per kind
_STATUS_BY_KIND: Dict[ErrorKind, int] = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.ALREADY_EXISTS: 409,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.UNAUTHORIZED: 403,
    ErrorKind.DUPLICATE_BACKEND: 500,
    ErrorKind.NOT_INITIALIZED: 500,
    ErrorKind.CONFIGURATION: 500,
    ErrorKind.LOCATOR: 502,
    ErrorKind.INCONSISTENT_STATE: 500,
    ErrorKind.BACKEND: 500,
}

RECOVERABLE_KINDS = frozenset({
    ErrorKind.VALIDATION,
    ErrorKind.ALREADY_EXISTS,
    ErrorKind.NOT_FOUND,
    ErrorKind.UNAUTHORIZED,
})


def kind_of(error: BaseException) -> ErrorKind:
    """Kind of any exception; foreign exceptions count as backend failures."""
    if isinstance(error, RegistryError):
        return error.kind
    return ErrorKind.BACKEND


def status_for(error: BaseException) -> int:
    """Map a failure to the status code a response layer should report."""
    return _STATUS_BY_KIND[kind_of(error)]


def is_recoverable(error: BaseException) -> bool:
    """True for expected outcomes that are simply reported back to the caller."""
    return kind_of(error) in RECOVERABLE_KINDS


def is_alerting(error: BaseException) -> bool:
    """True only for failures that must reach monitoring beyond request logs."""
    return kind_of(error) is ErrorKind.INCONSISTENT_STATE
