"""Tests for error kinds and their classification."""

import pytest

from smpregistry.errors import (
    AlreadyExists,
    BackendError,
    ErrorKind,
    InconsistentState,
    LocatorError,
    NotFound,
    Unauthorized,
    ValidationError,
    is_alerting,
    is_recoverable,
    kind_of,
    status_for,
)


@pytest.mark.parametrize('error, status', [
    (ValidationError("bad"), 400),
    (AlreadyExists("dup"), 409),
    (NotFound("gone"), 404),
    (Unauthorized("no"), 403),
    (LocatorError("down"), 502),
    (BackendError("disk"), 500),
    (KeyError("foreign"), 500),
])
def test_status_for(error, status):
    assert status_for(error) == status


def test_foreign_exceptions_count_as_backend_failures():
    assert kind_of(OSError("disk")) is ErrorKind.BACKEND
    assert not is_recoverable(OSError("disk"))


def test_only_inconsistent_state_alerts():
    inconsistent = InconsistentState("split", participant='s::v', primary=BackendError("a"),
                                     compensation=LocatorError("b"))

    assert is_alerting(inconsistent)
    assert not is_alerting(LocatorError("down"))
    assert not is_recoverable(inconsistent)
    assert is_recoverable(NotFound("gone"))


def test_inconsistent_state_details():
    error = InconsistentState("split", participant='s::v', compensation=LocatorError("SML down"),
                              extra={'action': 'delete'})

    assert error.extra == {'action': 'delete', 'participant': 's::v'}
    assert str(error) == "split | compensation: SML down"
