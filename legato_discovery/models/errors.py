"""
Discovery Engine Errors

Error kinds raised by the discovery components. The orchestrator turns
them into Failure envelopes; they never escape its public methods.
"""

from enum import Enum


class ErrorKind(Enum):
    """Enumeration of error kinds reported in failure envelopes."""
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    COMPUTATION = "computation"


class DiscoveryError(Exception):
    """Base class for all discovery engine errors."""

    kind: ErrorKind = ErrorKind.COMPUTATION

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(DiscoveryError):
    """Malformed input, unknown chart/search kind or out-of-range config."""

    kind = ErrorKind.VALIDATION


class NotFoundError(DiscoveryError):
    """A referenced user or song is absent from the supplied snapshot."""

    kind = ErrorKind.NOT_FOUND


class ComputationError(DiscoveryError):
    """Internal invariant violation."""

    kind = ErrorKind.COMPUTATION
