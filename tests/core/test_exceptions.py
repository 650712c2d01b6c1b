"""Tests for bolta.core.exceptions."""

import pytest

from bolta.core.exceptions import (
    BoltaError,
    ConfigurationError,
    InvalidManualInputError,
    InvalidTransitionError,
    PermissionDeniedError,
    PersistenceError,
    SensorUnavailableError,
)
from bolta.core.storage import StorageError, StorageKeyError, StoragePermissionError


def test_hierarchy():
    """All exceptions should inherit from BoltaError."""
    for exc_cls in [
        ConfigurationError,
        PermissionDeniedError,
        SensorUnavailableError,
        PersistenceError,
        InvalidManualInputError,
        InvalidTransitionError,
    ]:
        assert issubclass(exc_cls, BoltaError)


def test_storage_errors_are_persistence_errors():
    for exc_cls in [StorageError, StorageKeyError, StoragePermissionError]:
        assert issubclass(exc_cls, PersistenceError)
    assert issubclass(StorageKeyError, KeyError)


def test_manual_input_error_is_value_error():
    with pytest.raises(ValueError, match="positive"):
        raise InvalidManualInputError("must be positive")


def test_catch_base():
    try:
        raise SensorUnavailableError("no accelerometer")
    except BoltaError as e:
        assert "accelerometer" in str(e)
