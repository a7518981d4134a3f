"""Error taxonomy for the security query pipeline."""
from __future__ import annotations


class GuardPostError(Exception):
    """Base class for pipeline errors."""


class InputValidationError(GuardPostError):
    """Raised when a query is missing or blank. Surfaced to the caller."""


class DataReadError(GuardPostError):
    """Raised when one registry function cannot read the entity store."""

    def __init__(self, function_name: str, message: str) -> None:
        super().__init__(f"{function_name}: {message}")
        self.function_name = function_name


class CompletionServiceError(GuardPostError):
    """Raised by completion providers on timeout, transport or response failure."""


class LoggingError(GuardPostError):
    """Raised when a query log entry cannot be persisted."""
