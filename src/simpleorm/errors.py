"""
Exception types raised by simpleorm.

Every failure is raised straight to the caller; nothing in the package
retries or recovers. Errors caused by a generated statement carry that
statement in ``sql`` so it can be logged or inspected.
"""

from typing import Optional


class OrmError(Exception):
    """Base class for all simpleorm errors."""

    def __init__(self, message: str, sql: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.sql = sql

    def __str__(self) -> str:
        if self.sql:
            return f"{self.message}\n\n{self.sql}"
        return self.message


class ConfigurationError(OrmError):
    """No connection has been configured, or the configuration is incomplete."""


class NotFoundError(OrmError):
    """A primary-key load matched zero rows."""


class ValidationError(OrmError):
    """A caller supplied a malformed argument."""


class PreparationError(OrmError):
    """The database could not compile a generated statement."""


class ExecutionError(OrmError):
    """A compiled statement failed while executing."""


class StateError(OrmError):
    """The operation is not allowed in the record's current state."""


class SchemaError(OrmError):
    """Column introspection failed."""


class DispatchError(OrmError, AttributeError):
    """A dynamic ``retrieve_by`` call did not match any known pattern."""


__all__ = [
    "OrmError",
    "ConfigurationError",
    "NotFoundError",
    "ValidationError",
    "PreparationError",
    "ExecutionError",
    "StateError",
    "SchemaError",
    "DispatchError",
]
