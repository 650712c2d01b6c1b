"""
Bolta exception hierarchy.

All bolta exceptions inherit from BoltaError, making it easy for consumers
to catch library-level errors while still distinguishing specific failure modes.
"""


class BoltaError(Exception):
    """Base exception class for all bolta errors."""


class ConfigurationError(BoltaError):
    """Raised for configuration errors (missing keys, invalid values)."""


class PermissionDeniedError(BoltaError):
    """Raised when the platform refuses access to the motion sensor."""


class SensorUnavailableError(BoltaError):
    """Raised when the motion sensor is missing or fails fatally."""


class PersistenceError(BoltaError):
    """Raised for storage failures. Non-fatal for a tracking session."""


class InvalidManualInputError(BoltaError, ValueError):
    """Raised for rejected manual step entries (non-positive, non-integer)."""


class InvalidTransitionError(BoltaError):
    """Raised when a session is asked to move to a state it cannot reach."""
