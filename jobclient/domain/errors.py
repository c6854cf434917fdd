# /jobclient/domain/errors.py
from __future__ import annotations


class JobClientError(Exception):
    """Base class for every error raised by the submission pipeline."""


class InvalidArgumentError(JobClientError, ValueError):
    """Bad input to a submission call. Raised before any job id exists."""


class ConversionError(JobClientError, TypeError):
    """An argument value could not be rendered to invariant text."""

    def __init__(self, field: str, value_type: type, detail: str | None = None) -> None:
        self.field = field
        self.value_type = value_type
        type_name = f"{value_type.__module__}.{value_type.__qualname__}"
        message = f"cannot convert argument '{field}' of type {type_name} to text"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class FilterChainError(JobClientError, RuntimeError):
    """A client filter misused its continuation."""


class StorageError(JobClientError):
    """The storage backend rejected or failed a write."""
