"""
Registration coordinator.

Keeps the local store and the external locator service consistent when a
service group is created or deleted. There is no shared transaction between
the two, so each operation is a small saga:

    create:  locator register  ->  local create   (compensate: locator deregister)
    delete:  local delete      ->  locator deregister

The ordering bounds which inconsistency is possible: the locator never points
at a participant this registry does not (yet, or any longer) serve, except in
the single InconsistentState case where a compensating or final locator call
itself failed.

Each entry call returns a PendingOperation. The request-completion logic of
the caller decides whether the request as a whole succeeded and calls
`resolve(outcome)` exactly once; further calls are no-ops.

Example:
    >>> coordinator = RegistrationCoordinator(context)
    >>> with coordinator.create_service_group('alice', pid) as op:
    ...     op.raise_for_error()
    ...     write_response(op.result.service_group)
"""

import threading
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Optional

from .domain import Change, ParticipantIdentifier, ServiceGroup
from .domain.extension import ExtensionInput
from .errors import (
    AlreadyExists,
    BackendError,
    ConfigurationError,
    InconsistentState,
    LocatorError,
    RegistryError,
    is_recoverable,
)

if TYPE_CHECKING:
    from .configuration.context import RegistryContext
    from .configuration.logger import RegistryLogger
    from .locator.client import LocatorClient


class OperationState(Enum):
    IDLE = 'idle'
    LOCATOR_PENDING = 'locator_pending'
    LOCATOR_CONFIRMED = 'locator_confirmed'
    LOCAL_PENDING = 'local_pending'
    # Both forward steps done; waiting for the request outcome
    AWAITING_OUTCOME = 'awaiting_outcome'
    COMMITTED = 'committed'
    FAILED = 'failed'
    COMPENSATING = 'compensating'
    COMPENSATED_OK = 'compensated_ok'
    COMPENSATED_FAILED = 'compensated_failed'


TERMINAL_STATES = frozenset({
    OperationState.COMMITTED,
    OperationState.FAILED,
    OperationState.COMPENSATED_OK,
    OperationState.COMPENSATED_FAILED,
})


class Outcome(Enum):
    """Overall outcome of the request that drove an operation."""
    SUCCESS = 'success'
    FAILURE = 'failure'


class Action(Enum):
    CREATE = 'create'
    UPDATE = 'update'
    DELETE = 'delete'


@dataclass
class OperationResult:
    """
    Outcome of one coordinated operation.

    Attributes:
        action: Coordinated action
        participant: URI form of the participant identifier
        state: Current state of the operation
        error: Failure surfaced to the caller, if any
        change: Whether the local store was modified
        service_group: The created service group (create only)
    """
    action: Action
    participant: str
    state: OperationState
    error: Optional[BaseException] = None
    change: Change = Change.UNCHANGED
    service_group: Optional[ServiceGroup] = None

    @property
    def success(self) -> bool:
        return self.error is None and self.state in (OperationState.AWAITING_OUTCOME,
                                                      OperationState.COMMITTED)

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_STATES


def as_locator_error(error: Exception, operation: str, participant: ParticipantIdentifier) -> RegistryError:
    """Registry errors pass through; anything else a locator client raises becomes a LocatorError."""
    if isinstance(error, RegistryError):
        return error
    wrapped = LocatorError(
        f"{operation} of {participant.uri_encoded} failed: {error}",
        extra={'participant': participant.uri_encoded, 'operation': operation},
    )
    wrapped.__cause__ = error
    return wrapped


class PendingOperation:
    """
    One coordinated service group write and its single-use outcome callback.

    Everything compensation needs (participant, which locator step was taken,
    the locator client, the compensation timeout) is captured when the
    operation starts, so it does not depend on the inbound request still
    being alive.
    """

    def __init__(self,
                 action: Action,
                 participant: ParticipantIdentifier,
                 locator_client: 'LocatorClient',
                 compensation_timeout: Optional[float],
                 logger: 'RegistryLogger'):
        self.action = action
        self.participant = participant
        self.locator_client = locator_client
        self.compensation_timeout = compensation_timeout
        self.logger = logger

        self.state = OperationState.IDLE
        self.locator_step_taken = False
        self.error: Optional[BaseException] = None
        self.change = Change.UNCHANGED
        self.service_group: Optional[ServiceGroup] = None

        self._lock = threading.Lock()
        self._resolved = False

    def log(self, message: str, level: str = 'INFO'):
        self.logger.log(level.lower(), 'COORD', message)

    @property
    def result(self) -> OperationResult:
        return OperationResult(
            action=self.action,
            participant=self.participant.uri_encoded,
            state=self.state,
            error=self.error,
            change=self.change,
            service_group=self.service_group,
        )

    @property
    def is_resolved(self) -> bool:
        return self._resolved

    def raise_for_error(self) -> None:
        """Raise the surfaced failure, if any."""
        if self.error is not None:
            raise self.error

    # ==================== Outcome ====================

    def resolve(self, outcome: Outcome) -> OperationResult:
        """
        Confirm or compensate, exactly once.

        SUCCESS commits. FAILURE after a successful create deregisters the
        participant at the locator again; the local service group is kept.
        FAILURE after a successful delete is logged and committed: there is
        nothing safe to undo. Calls after the first return the existing
        result without side effects.
        """
        with self._lock:
            if self._resolved:
                return self.result
            self._resolved = True

            if self.state is not OperationState.AWAITING_OUTCOME:
                return self.result

            if outcome is Outcome.SUCCESS:
                self.state = OperationState.COMMITTED
                self.log(f"{self.action.value} {self.participant.uri_encoded} committed")
            elif self.action is Action.CREATE and self.locator_step_taken:
                self.log(
                    f"Request failed after {self.participant.uri_encoded} was created; "
                    f"deregistering at the locator, keeping the local service group",
                    'WARNING',
                )
                self._compensate(primary=None)
            else:
                self.state = OperationState.COMMITTED
                self.log(
                    f"Request failed after {self.action.value} of {self.participant.uri_encoded}; "
                    f"no compensation applies",
                    'WARNING',
                )
            return self.result

    def _compensate(self, primary: Optional[BaseException]) -> None:
        """Deregister at the locator after a successful register. Lock held by caller or not yet shared."""
        self.state = OperationState.COMPENSATING
        try:
            self.locator_client.deregister_participant(self.participant, timeout=self.compensation_timeout)
        except Exception as e:
            self.state = OperationState.COMPENSATED_FAILED
            self.error = InconsistentState(
                f"Locator still registers {self.participant.uri_encoded} but the local create "
                f"did not stand; compensating deregistration failed",
                participant=self.participant.uri_encoded,
                primary=primary,
                compensation=as_locator_error(e, 'Compensating deregistration', self.participant),
                extra={'action': self.action.value},
            )
            self.log(f"INCONSISTENT STATE ({self.action.value}): {self.error}", 'CRITICAL')
            return

        self.state = OperationState.COMPENSATED_OK
        self.error = primary
        self.log(f"Compensated: {self.participant.uri_encoded} deregistered at the locator")

    def _fail(self, error: BaseException, level: str = 'ERROR') -> 'PendingOperation':
        self.state = OperationState.FAILED
        self.error = error
        self._resolved = True
        self.log(f"{self.action.value} {self.participant.uri_encoded} failed: {error}", level)
        return self

    # ==================== Context manager ====================

    def __enter__(self) -> 'PendingOperation':
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        self.resolve(Outcome.FAILURE if exc_type is not None else Outcome.SUCCESS)
        return False


class RegistrationCoordinator:
    """
    Sequences local persistence with locator registration for service groups.

    Never retries; at most one local mutation per call.
    """

    def __init__(self, context: 'RegistryContext'):
        self.context = context

    def log(self, message: str, level: str = 'INFO'):
        self.context.logger.log(level.lower(), 'COORD', message)

    @property
    def locator_enabled(self) -> bool:
        """
        The `write_to_locator` setting.

        Raises:
            ConfigurationError: If the setting is on but no locator is configured
        """
        enabled = self.context.settings_manager.get_settings().write_to_locator
        if enabled and not self.context.locator_client.connected:
            raise ConfigurationError(
                "write_to_locator is set but no locator is configured (locator.active is false)"
            )
        return enabled

    def _begin(self, action: Action, participant: ParticipantIdentifier) -> PendingOperation:
        return PendingOperation(
            action=action,
            participant=participant,
            locator_client=self.context.locator_client,
            compensation_timeout=self.context.config.locator.compensation_timeout,
            logger=self.context.logger,
        )

    def create_service_group(self,
                             owner_id: str,
                             participant: ParticipantIdentifier,
                             extension: ExtensionInput = None,
                             timeout: Optional[float] = None) -> PendingOperation:
        """
        Register at the locator, then create locally.

        Args:
            owner_id: Owning user
            participant: Participant identifier of the new service group
            extension: Optional extension (fragment list or encoded string)
            timeout: Timeout for the locator call, from the inbound request

        Returns:
            PendingOperation in AWAITING_OUTCOME on success, otherwise already
            resolved with the surfaced error
        """
        op = self._begin(Action.CREATE, participant)
        manager = self.context.service_group_manager

        # Reject before touching the locator
        try:
            ServiceGroup(owner_id, participant, extensions=extension, policy=self.context.config.identifier_policy)
        except RegistryError as e:
            return op._fail(e, 'WARNING')
        if manager.contains_service_group_with_id(participant):
            return op._fail(
                AlreadyExists(f"Service group {participant.uri_encoded} already exists"), 'WARNING'
            )
        try:
            locator_enabled = self.locator_enabled
        except ConfigurationError as e:
            return op._fail(e)

        if locator_enabled:
            op.state = OperationState.LOCATOR_PENDING
            try:
                op.locator_client.register_participant(participant, timeout=timeout)
            except Exception as e:
                return op._fail(as_locator_error(e, 'Locator registration', participant))
            op.locator_step_taken = True
            op.state = OperationState.LOCATOR_CONFIRMED

        op.state = OperationState.LOCAL_PENDING
        try:
            op.service_group = manager.create_service_group(owner_id, participant, extension)
        except Exception as e:
            primary = e if isinstance(e, RegistryError) else BackendError(f"Local create failed: {e}")
            if primary is not e:
                primary.__cause__ = e
            self.log(f"Local create of {participant.uri_encoded} failed: {primary}", 'ERROR')
            if op.locator_step_taken:
                with op._lock:
                    op._resolved = True
                    op._compensate(primary=primary)
                return op
            return op._fail(primary)

        op.change = Change.CHANGED
        op.state = OperationState.AWAITING_OUTCOME
        self.log(f"Created {participant.uri_encoded}; awaiting request outcome", 'DEBUG')
        return op

    def update_service_group(self,
                             owner_id: str,
                             participant: ParticipantIdentifier,
                             extension: ExtensionInput = None) -> PendingOperation:
        """
        Update owner and extension of an existing group. Local only.

        The locator knows participants, not their metadata, so nothing is
        sent there and nothing is compensated.
        """
        op = self._begin(Action.UPDATE, participant)
        manager = self.context.service_group_manager

        op.state = OperationState.LOCAL_PENDING
        try:
            op.change = manager.update_service_group(participant, owner_id, extension)
        except RegistryError as e:
            return op._fail(e, 'WARNING' if is_recoverable(e) else 'ERROR')
        op.service_group = manager.get_service_group_of_id(participant)
        op.state = OperationState.AWAITING_OUTCOME
        return op

    def delete_service_group(self,
                             participant: ParticipantIdentifier,
                             timeout: Optional[float] = None) -> PendingOperation:
        """
        Delete locally (cascading), then deregister at the locator.

        A failed local delete never reaches the locator. A failed
        deregistration after a successful local delete surfaces as
        InconsistentState.
        """
        op = self._begin(Action.DELETE, participant)
        manager = self.context.service_group_manager
        try:
            locator_enabled = self.locator_enabled
        except ConfigurationError as e:
            return op._fail(e)

        op.state = OperationState.LOCAL_PENDING
        try:
            op.change = manager.delete_service_group(participant)
        except Exception as e:
            primary = e if isinstance(e, RegistryError) else BackendError(f"Local delete failed: {e}")
            if primary is not e:
                primary.__cause__ = e
            return op._fail(primary)

        if op.change.is_unchanged:
            op.state = OperationState.COMMITTED
            op._resolved = True
            self.log(f"{participant.uri_encoded} was not present; nothing to deregister")
            return op

        if locator_enabled:
            op.state = OperationState.LOCATOR_PENDING
            try:
                op.locator_client.deregister_participant(participant, timeout=timeout)
            except Exception as e:
                error = InconsistentState(
                    f"Service group {participant.uri_encoded} was deleted locally but the locator "
                    f"still points at this registry",
                    participant=participant.uri_encoded,
                    compensation=as_locator_error(e, 'Locator deregistration', participant),
                    extra={'action': Action.DELETE.value},
                )
                op.state = OperationState.FAILED
                op.error = error
                op._resolved = True
                self.log(f"INCONSISTENT STATE (delete): {error}", 'CRITICAL')
                return op
            op.locator_step_taken = True
            op.state = OperationState.LOCATOR_CONFIRMED

        op.state = OperationState.AWAITING_OUTCOME
        return op
