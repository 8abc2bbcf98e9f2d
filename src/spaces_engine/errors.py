"""
Spaces engine error types.

NotFound and Conflict are normal negative outcomes: the dispatcher turns them
into the failure value declared for the action instead of logging a fault.
"""

from typing import Any, Optional


class SpacesError(Exception):
    def __init__(self, code: str, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.code = code
        self.details = details


class NotFoundError(SpacesError):
    """A referenced window, tab or session no longer exists."""

    def __init__(self, message: str, code: str = "not_found", details: Optional[dict[str, Any]] = None):
        super().__init__(code, message, details)


class ConflictError(SpacesError):
    """A session name is taken and overwriting was not allowed."""

    def __init__(self, message: str, code: str = "name_conflict", details: Optional[dict[str, Any]] = None):
        super().__init__(code, message, details)


class InvalidInputError(SpacesError):
    def __init__(self, message: str, code: str = "invalid_input", details: Optional[dict[str, Any]] = None):
        super().__init__(code, message, details)


class ConnectionError(SpacesError):
    def __init__(self, message: str):
        super().__init__("connection_error", message)
