"""
Errors module.
Exception hierarchy for configuration, store and resolution failures.
"""
from typing import Optional


class RedirectDBIError(Exception):
    """Base class for all redirect errors."""


class ConfigurationError(RedirectDBIError):
    """Configuration is missing or malformed. The handler must fail closed."""


class StoreConnectionError(RedirectDBIError):
    """A session with the membership store could not be established."""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause


class QueryError(RedirectDBIError):
    """A membership query against a single table failed."""

    def __init__(self, table: str, cause: Optional[BaseException] = None):
        super().__init__(f"Query against table '{table}' failed: {cause}")
        self.table = table
        self.cause = cause


class ResolutionError(RedirectDBIError):
    """Resolution was aborted because a table could not be queried."""

    def __init__(self, table: str, cause: BaseException):
        super().__init__(f"Resolution aborted at table '{table}': {cause}")
        self.table = table
        self.cause = cause


class PathOutsideLocationError(RedirectDBIError, ValueError):
    """The request path does not begin with the virtual location prefix."""

    def __init__(self, path: str, location: str):
        super().__init__(f"Path '{path}' is not under location '{location}'")
        self.path = path
        self.location = location
