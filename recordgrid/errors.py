from __future__ import annotations


class RecordGridError(Exception):
    """Base class for errors raised by recordgrid collaborators."""


class LibraryError(RecordGridError):
    """A library folder or one of its files could not be read."""


class HostApiError(RecordGridError):
    """The host process answered with a non-retryable error."""

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status
