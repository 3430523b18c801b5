from __future__ import annotations


class ArcError(Exception):
    """Base class for every error raised by the client bindings."""


class ValidationError(ArcError, ValueError):
    """Raised before submission when an operation's arguments are rejected."""


class InvalidStateError(ValidationError):
    pass


class UnsupportedOperationError(ValidationError):
    pass


class ConfigurationError(ArcError, ValueError):
    pass


class ParameterBoundError(ConfigurationError):
    def __init__(self, field: str, bound: str) -> None:
        self.field = field
        self.bound = bound
        super().__init__(f"{field} must be {bound}")


class AggregationError(ArcError):
    """A log or receipt query failed while correlating events."""
